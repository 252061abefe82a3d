"""
Jira issue extraction.

Decomposes one raw issue payload (an item of the search API response, with
changelog expanded) into the issue itself and every record derived from it:
sprint links, comments, worklogs, changelogs and their items, referenced
accounts, the board link and labels.
"""

import json
import re
from typing import Any, Iterable, List, Optional

from pydantic import ValidationError
from sqlalchemy import select

from extraction_service.config.status_mapping import (
    JIRA_DEFAULT_STATUS,
    JIRA_STATUS_MAPPING,
    build_status_lookup,
)
from extraction_service.core.database import Database
from extraction_service.core.exceptions import MalformedPayloadError, MissingRequiredFieldError
from extraction_service.core.logging_config import get_logger
from extraction_service.core.utils import DateTimeHelper
from extraction_service.etl.custom_fields import coerce_float, get_custom_field
from extraction_service.etl.jira.jira_changelog_boundary import (
    changelog_issue_updated,
    paged_children_issue_updated,
)
from extraction_service.etl.raw_data import decode_payload
from extraction_service.etl.records import ExtractedRecord, RecordKind
from extraction_service.etl.type_mappings import TypeMappings
from extraction_service.models.unified_models import JiraIssueType, RawExtractionData
from extraction_service.schemas.jira_schemas import ApiAccount, ApiIssue
from extraction_service.schemas.scope_config import JiraOptions, ScopeConfig

logger = get_logger(__name__)

# Jira Server renders sprints as 'com.atlassian.greenhopper.service.sprint.Sprint@1f[id=71,rapidViewId=8,...]'
_LEGACY_SPRINT_ID = re.compile(r'\bid=(\d+)')


def load_jira_type_mappings(database: Database, connection_id: int,
                            scope_config: Optional[ScopeConfig]) -> TypeMappings:
    """Build the run's type/status resolver from the connection's issue type catalog."""
    stmt = select(JiraIssueType.id, JiraIssueType.name).where(JiraIssueType.connection_id == connection_id)
    with database.get_read_session_context() as session:
        issue_types = [(row.id, row.name) for row in session.execute(stmt)]

    logger.debug(f"Loaded {len(issue_types)} issue types for connection {connection_id}")
    return TypeMappings.build(
        issue_types,
        scope_config,
        baseline_status=build_status_lookup(JIRA_STATUS_MAPPING),
        default_status=JIRA_DEFAULT_STATUS,
    )


def _to_int(value: Any, field_name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise MalformedPayloadError(f"Field '{field_name}' is not an integer id: {value!r}") from e


def _optional_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _seconds_to_minutes(seconds: Optional[int]) -> Optional[int]:
    return seconds // 60 if seconds is not None else None


def _as_text(value: Any) -> Optional[str]:
    """Plain text as-is; Atlassian document bodies serialized to JSON."""
    if value is None or isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


def _sprint_ids(*sprint_values: Any) -> List[int]:
    """Sprint ids found in any number of sprint field values, deduplicated in order."""
    sprint_ids: List[int] = []

    def add(sprint_id):
        if sprint_id is not None and sprint_id not in sprint_ids:
            sprint_ids.append(sprint_id)

    for value in sprint_values:
        if value is None:
            continue
        items = value if isinstance(value, list) else [value]
        for item in items:
            if isinstance(item, dict):
                add(_optional_int(item.get('id')))
            elif isinstance(item, str):
                match = _LEGACY_SPRINT_ID.search(item)
                if match:
                    add(int(match.group(1)))
            elif isinstance(item, int) and not isinstance(item, bool):
                add(item)
    return sprint_ids


def _account_record(connection_id: int, account: ApiAccount) -> ExtractedRecord:
    return ExtractedRecord(RecordKind.JIRA_ACCOUNT, {
        'connection_id': connection_id,
        'account_id': account.identifier,
        'account_type': account.account_type,
        'name': account.display_name or account.name,
        'email': account.email_address,
        'avatar_url': account.avatar_urls.get('48x48'),
        'timezone': account.time_zone,
    })


def _require_created(issue: ApiIssue):
    created = DateTimeHelper.parse_jira_datetime(issue.fields.created)
    if created is None:
        raise MissingRequiredFieldError('fields.created')
    return created


def extract_issues(row: RawExtractionData, options: JiraOptions, mappings: TypeMappings,
                   page_size: int) -> List[ExtractedRecord]:
    """
    Extract every record derived from one raw Jira issue.

    Args:
        row: Raw row holding one issue object
        options: Scope options (connection, board, scope config)
        mappings: Type/status resolver of the run
        page_size: Changelog page size the collector requested

    Returns:
        Records with the issue first; empty when the issue has no creation date

    Raises:
        MalformedPayloadError: payload is not a valid issue object
    """
    payload = decode_payload(row)
    try:
        issue = ApiIssue.model_validate(payload)
    except ValidationError as e:
        raise MalformedPayloadError(f"Raw row {row.id} is not a Jira issue: {e}") from e

    try:
        created = _require_created(issue)
    except MissingRequiredFieldError as e:
        logger.debug(f"Skipping issue {issue.key or issue.id} of raw row {row.id}: {e}")
        return []

    connection_id = options.connection_id
    scope_config = options.scope_config or ScopeConfig()
    raw_fields = payload.get('fields') if isinstance(payload.get('fields'), dict) else {}
    fields = issue.fields
    issue_id = _to_int(issue.id, 'id')
    updated = DateTimeHelper.parse_jira_datetime(fields.updated)
    resolution_date = DateTimeHelper.parse_jira_datetime(fields.resolution_date)

    # Type and status standardization
    issue_type = fields.issue_type
    type_id = issue_type.id if issue_type else None
    native_type = mappings.native_type(type_id, issue_type.name if issue_type else None)
    status = fields.status
    status_key = status.status_category.key if status and status.status_category else None

    story_point = 0.0
    if scope_config.story_point_field:
        story_point, _ = coerce_float(get_custom_field(raw_fields, scope_config.story_point_field))

    lead_time_minutes = None
    if resolution_date is not None:
        lead_time_minutes = DateTimeHelper.minutes_between(created, resolution_date)

    records: List[ExtractedRecord] = [ExtractedRecord(RecordKind.JIRA_ISSUE, {
        'connection_id': connection_id,
        'issue_id': issue_id,
        'project_id': _optional_int(fields.project.id) if fields.project else None,
        'project_name': fields.project.name if fields.project else None,
        'self_url': issue.self_url,
        'icon_url': issue_type.icon_url if issue_type else None,
        'issue_key': issue.key,
        'summary': fields.summary,
        'description': _as_text(fields.description),
        'type': native_type,
        'type_id': type_id,
        'epic_key': fields.epic.key if fields.epic else None,
        'status_name': status.name if status else None,
        'status_key': status_key,
        'std_type': mappings.std_type(native_type),
        'std_status': mappings.std_status(native_type, status_key),
        'story_point': story_point,
        'original_estimate_minutes': _seconds_to_minutes(fields.time_original_estimate),
        'aggregate_estimate_minutes': _seconds_to_minutes(fields.aggregate_time_original_estimate),
        'remaining_estimate_minutes': _seconds_to_minutes(fields.time_estimate),
        'time_spent_minutes': _seconds_to_minutes(fields.time_spent),
        'lead_time_minutes': lead_time_minutes,
        'creator_account_id': fields.creator.identifier if fields.creator else None,
        'creator_display_name': fields.creator.display_name if fields.creator else None,
        'assignee_account_id': fields.assignee.identifier if fields.assignee else None,
        'assignee_display_name': fields.assignee.display_name if fields.assignee else None,
        'priority_id': fields.priority.id if fields.priority else None,
        'priority_name': fields.priority.name if fields.priority else None,
        'parent_id': _optional_int(fields.parent.id) if fields.parent else None,
        'parent_key': fields.parent.key if fields.parent else None,
        'resolution_date': resolution_date,
        'created': created,
        'updated': updated,
        'raw_json': payload,
    })]

    sprint_values = [fields.sprint, fields.closed_sprints]
    if scope_config.sprint_field:
        sprint_values.append(get_custom_field(raw_fields, scope_config.sprint_field))
    for sprint_id in _sprint_ids(*sprint_values):
        records.append(ExtractedRecord(RecordKind.JIRA_SPRINT_ISSUE, {
            'connection_id': connection_id,
            'sprint_id': sprint_id,
            'issue_id': issue_id,
            'issue_created_date': created,
            'resolution_date': resolution_date,
        }))

    accounts: List[ApiAccount] = [fields.creator, fields.reporter, fields.assignee]

    # Comments
    comment_page = fields.comment
    if comment_page is not None:
        comments_updated = paged_children_issue_updated(
            len(comment_page.comments), comment_page.total, updated
        )
        for comment in comment_page.comments:
            records.append(ExtractedRecord(RecordKind.JIRA_COMMENT, {
                'connection_id': connection_id,
                'comment_id': comment.id,
                'issue_id': issue_id,
                'self_url': comment.self_url,
                'body': _as_text(comment.body),
                'creator_account_id': comment.author.identifier if comment.author else None,
                'creator_display_name': comment.author.display_name if comment.author else None,
                'created': DateTimeHelper.parse_jira_datetime(comment.created),
                'updated': DateTimeHelper.parse_jira_datetime(comment.updated),
                'issue_updated': comments_updated,
            }))
            accounts.extend([comment.author, comment.update_author])

    # Worklogs
    worklog_page = fields.worklog
    if worklog_page is not None:
        worklogs_updated = paged_children_issue_updated(
            len(worklog_page.worklogs), worklog_page.total, updated
        )
        for worklog in worklog_page.worklogs:
            records.append(ExtractedRecord(RecordKind.JIRA_WORKLOG, {
                'connection_id': connection_id,
                'issue_id': issue_id,
                'worklog_id': worklog.id,
                'author_id': worklog.author.identifier if worklog.author else None,
                'update_author_id': worklog.update_author.identifier if worklog.update_author else None,
                'time_spent': worklog.time_spent,
                'time_spent_seconds': worklog.time_spent_seconds,
                'started': DateTimeHelper.parse_jira_datetime(worklog.started),
                'updated': DateTimeHelper.parse_jira_datetime(worklog.updated),
                'issue_updated': worklogs_updated,
            }))
            accounts.extend([worklog.author, worklog.update_author])

    # Changelogs, headers before items
    if issue.changelog is not None:
        histories = issue.changelog.histories
        changelogs_updated = changelog_issue_updated(len(histories), updated, page_size)
        items: List[ExtractedRecord] = []
        for history in histories:
            changelog_id = _to_int(history.id, 'changelog.histories.id')
            author = history.author
            records.append(ExtractedRecord(RecordKind.JIRA_CHANGELOG, {
                'connection_id': connection_id,
                'changelog_id': changelog_id,
                'issue_id': issue_id,
                'author_account_id': author.identifier if author else None,
                'author_display_name': author.display_name if author else None,
                'author_active': author.active if author else None,
                'created': DateTimeHelper.parse_jira_datetime(history.created),
                'issue_updated': changelogs_updated,
            }))
            accounts.append(author)
            for item in history.items:
                items.append(ExtractedRecord(RecordKind.JIRA_CHANGELOG_ITEM, {
                    'connection_id': connection_id,
                    'changelog_id': changelog_id,
                    'field': item.field,
                    'field_type': item.field_type,
                    'field_id': item.field_id,
                    'from_value': item.from_value,
                    'from_string': item.from_string,
                    'to_value': item.to_value,
                    'to_string': item.to_string,
                }))
        records.extend(items)

    records.extend(_account_records(connection_id, accounts))

    records.append(ExtractedRecord(RecordKind.JIRA_BOARD_ISSUE, {
        'connection_id': connection_id,
        'board_id': options.board_id,
        'issue_id': issue_id,
    }))

    for label in dict.fromkeys(fields.labels):
        records.append(ExtractedRecord(RecordKind.JIRA_ISSUE_LABEL, {
            'connection_id': connection_id,
            'issue_id': issue_id,
            'label_name': label,
        }))

    return records


def _account_records(connection_id: int, accounts: Iterable[Optional[ApiAccount]]) -> List[ExtractedRecord]:
    """Account records with a non-empty identifier, first occurrence wins."""
    seen = set()
    records = []
    for account in accounts:
        if account is None or not account.identifier or account.identifier in seen:
            continue
        seen.add(account.identifier)
        records.append(_account_record(connection_id, account))
    return records
