"""
Jira Extraction Module

Jira raw-to-tool extraction including:
- jira_issue_extractor.py: Issue fan-out (issue, sprints, comments, worklogs, changelogs, accounts, labels)
- jira_issue_type_extractor.py: Issue type catalog extraction
- jira_changelog_boundary.py: Completeness stamping of embedded child pages
"""
