"""
Baseline status classification per tool.

Each entry maps a native status keyword to a standardized status. These are the
defaults applied before any user-declared status mapping of a scope config.
"""

# Standardized vocabulary
TODO = "TODO"
IN_PROGRESS = "IN_PROGRESS"
DONE = "DONE"
OTHER = "OTHER"

# Jira status category keys (fields.status.statusCategory.key)
JIRA_STATUS_MAPPING = [
    {"status_from": "new", "status_to": TODO},
    {"status_from": "indeterminate", "status_to": IN_PROGRESS},
    {"status_from": "done", "status_to": DONE},
]
JIRA_DEFAULT_STATUS = IN_PROGRESS

# Zentao task statuses
ZENTAO_TASK_STATUS_MAPPING = [
    {"status_from": "wait", "status_to": TODO},
    {"status_from": "doing", "status_to": IN_PROGRESS},
    {"status_from": "pause", "status_to": IN_PROGRESS},
    {"status_from": "done", "status_to": DONE},
    {"status_from": "closed", "status_to": DONE},
    {"status_from": "cancel", "status_to": DONE},
]
ZENTAO_DEFAULT_STATUS = OTHER

# Zentao has no issue-type catalog; tasks standardize to TASK unless mapped
ZENTAO_DEFAULT_TYPE = "TASK"


def build_status_lookup(status_mapping):
    """Turn a status mapping list into a {status_from: status_to} dict."""
    return {entry["status_from"]: entry["status_to"] for entry in status_mapping}
