"""
Zentao Extraction Module

- zentao_task_extractor.py: Execution task extraction (tasks, child tasks, accounts)
"""
