"""
Extracted record union.

An extractor returns a list of ExtractedRecord; each carries a RecordKind tag and
the column values for that kind's table. The driver routes records to their
table through RECORD_SINKS by tag.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Type

from extraction_service.models.unified_models import (
    Base,
    JiraAccount,
    JiraBoardIssue,
    JiraIssue,
    JiraIssueChangelog,
    JiraIssueChangelogItem,
    JiraIssueComment,
    JiraIssueLabel,
    JiraIssueType,
    JiraSprintIssue,
    JiraWorklog,
    ZentaoAccount,
    ZentaoTask,
)


class RecordKind(str, Enum):
    JIRA_ISSUE_TYPE = "jira_issue_type"
    JIRA_ISSUE = "jira_issue"
    JIRA_SPRINT_ISSUE = "jira_sprint_issue"
    JIRA_COMMENT = "jira_comment"
    JIRA_WORKLOG = "jira_worklog"
    JIRA_CHANGELOG = "jira_changelog"
    JIRA_CHANGELOG_ITEM = "jira_changelog_item"
    JIRA_ACCOUNT = "jira_account"
    JIRA_BOARD_ISSUE = "jira_board_issue"
    JIRA_ISSUE_LABEL = "jira_issue_label"
    ZENTAO_TASK = "zentao_task"
    ZENTAO_ACCOUNT = "zentao_account"


RECORD_SINKS: Dict[RecordKind, Type[Base]] = {
    RecordKind.JIRA_ISSUE_TYPE: JiraIssueType,
    RecordKind.JIRA_ISSUE: JiraIssue,
    RecordKind.JIRA_SPRINT_ISSUE: JiraSprintIssue,
    RecordKind.JIRA_COMMENT: JiraIssueComment,
    RecordKind.JIRA_WORKLOG: JiraWorklog,
    RecordKind.JIRA_CHANGELOG: JiraIssueChangelog,
    RecordKind.JIRA_CHANGELOG_ITEM: JiraIssueChangelogItem,
    RecordKind.JIRA_ACCOUNT: JiraAccount,
    RecordKind.JIRA_BOARD_ISSUE: JiraBoardIssue,
    RecordKind.JIRA_ISSUE_LABEL: JiraIssueLabel,
    RecordKind.ZENTAO_TASK: ZentaoTask,
    RecordKind.ZENTAO_ACCOUNT: ZentaoAccount,
}


@dataclass(frozen=True)
class ExtractedRecord:
    """One row destined for the table registered for `kind`."""
    kind: RecordKind
    values: Dict[str, Any] = field(default_factory=dict)


def group_by_kind(records: List[ExtractedRecord]) -> Dict[RecordKind, List[Dict[str, Any]]]:
    """
    Group record values by kind, keeping kinds in order of first appearance.

    Extractors emit parents before dependents, so writing groups in this order
    writes the parent first.
    """
    groups: Dict[RecordKind, List[Dict[str, Any]]] = {}
    for record in records:
        groups.setdefault(record.kind, []).append(record.values)
    return groups
