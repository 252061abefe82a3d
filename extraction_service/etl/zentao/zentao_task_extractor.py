"""
Zentao execution task extraction.

One raw row holds one task of an execution, possibly with nested child tasks.
Every task and child becomes a zentao_tasks row; accounts referenced by the
task are collected into zentao_accounts.
"""

from datetime import datetime
from typing import Any, List, Optional, Tuple

from pydantic import ValidationError

from extraction_service.config.status_mapping import (
    ZENTAO_DEFAULT_STATUS,
    ZENTAO_DEFAULT_TYPE,
    ZENTAO_TASK_STATUS_MAPPING,
    build_status_lookup,
)
from extraction_service.core.exceptions import MalformedPayloadError
from extraction_service.core.logging_config import get_logger
from extraction_service.core.utils import DateTimeHelper
from extraction_service.etl.raw_data import decode_payload
from extraction_service.etl.records import ExtractedRecord, RecordKind
from extraction_service.etl.type_mappings import TypeMappings
from extraction_service.models.unified_models import RawExtractionData
from extraction_service.schemas.scope_config import ScopeConfig, ZentaoOptions
from extraction_service.schemas.zentao_schemas import ApiZentaoAccount, ApiZentaoTask

logger = get_logger(__name__)


def build_zentao_type_mappings(scope_config: Optional[ScopeConfig]) -> TypeMappings:
    """Resolver for Zentao tasks; Zentao has no type catalog, so only user mappings apply."""
    return TypeMappings.build(
        [],
        scope_config,
        baseline_status=build_status_lookup(ZENTAO_TASK_STATUS_MAPPING),
        default_status=ZENTAO_DEFAULT_STATUS,
        default_type=ZENTAO_DEFAULT_TYPE,
    )


def _parse_date(value: Optional[str]) -> Optional[datetime]:
    # Zentao writes unset dates as '0000-00-00' / '0000-00-00 00:00:00'
    if not value or value.startswith('0000-00-00'):
        return None
    return DateTimeHelper.parse_jira_datetime(value)


def _account(value: Any) -> Optional[ApiZentaoAccount]:
    """Zentao sends accounts as objects, or as bare account names on older versions."""
    if isinstance(value, dict):
        try:
            return ApiZentaoAccount.model_validate(value)
        except ValidationError as e:
            raise MalformedPayloadError(f"Invalid Zentao account {value!r}: {e}") from e
    if isinstance(value, str) and value:
        return ApiZentaoAccount(account=value)
    return None


def _account_ref(value: Any) -> Tuple[Optional[int], Optional[str]]:
    account = _account(value)
    if account is None:
        return None, None
    return account.id or None, account.realname or account.account


def _task_url(base_url: Optional[str], task_id: int) -> Optional[str]:
    if not base_url:
        return None
    return f"{base_url.rstrip('/')}/task-view-{task_id}.html"


def _flatten(task: ApiZentaoTask) -> List[ApiZentaoTask]:
    tasks = [task]
    for child in task.children:
        tasks.extend(_flatten(child))
    return tasks


def extract_zentao_tasks(row: RawExtractionData, options: ZentaoOptions,
                         mappings: TypeMappings) -> List[ExtractedRecord]:
    """
    Extract tasks and referenced accounts from one raw Zentao task.

    Tasks without an opened date are dropped, along with the accounts only
    they reference.
    """
    payload = decode_payload(row)
    try:
        root = ApiZentaoTask.model_validate(payload)
    except (ValidationError, ValueError) as e:
        raise MalformedPayloadError(f"Raw row {row.id} is not a Zentao task: {e}") from e

    connection_id = options.connection_id
    tasks: List[ExtractedRecord] = []
    accounts: List[ExtractedRecord] = []
    seen_accounts = set()

    for task in _flatten(root):
        opened_date = _parse_date(task.opened_date)
        if opened_date is None:
            logger.debug(f"Skipping Zentao task {task.id} of raw row {row.id}: no opened date")
            continue

        opened_by_id, opened_by_name = _account_ref(task.opened_by)
        assigned_to_id, assigned_to_name = _account_ref(task.assigned_to)
        finished_id, _ = _account_ref(task.finished_by)
        canceled_id, _ = _account_ref(task.canceled_by)
        closed_by_id, _ = _account_ref(task.closed_by)
        last_edited_id, _ = _account_ref(task.last_edited_by)
        native_type = task.type or ""

        tasks.append(ExtractedRecord(RecordKind.ZENTAO_TASK, {
            'connection_id': connection_id,
            'id': task.id,
            'project': task.project or options.project_id or None,
            'parent': task.parent,
            'execution': task.execution or options.execution_id,
            'module': task.module,
            'story': task.story,
            'from_bug': task.from_bug,
            'name': task.name,
            'type': task.type,
            'mode': task.mode,
            'pri': task.pri,
            'estimate': task.estimate,
            'consumed': task.consumed,
            'db_left': task.left,
            'deadline': task.deadline,
            'status': task.status,
            'sub_status': task.sub_status,
            'description': task.description,
            'opened_by_id': opened_by_id,
            'opened_by_name': opened_by_name,
            'opened_date': opened_date,
            'assigned_to_id': assigned_to_id,
            'assigned_to_name': assigned_to_name,
            'assigned_date': _parse_date(task.assigned_date),
            'real_started': _parse_date(task.real_started),
            'finished_id': finished_id,
            'finished_date': _parse_date(task.finished_date),
            'canceled_id': canceled_id,
            'canceled_date': _parse_date(task.canceled_date),
            'closed_by_id': closed_by_id,
            'closed_date': _parse_date(task.closed_date),
            'closed_reason': task.closed_reason,
            'last_edited_id': last_edited_id,
            'last_edited_date': _parse_date(task.last_edited_date),
            'activated_date': _parse_date(task.activated_date),
            'deleted': task.deleted,
            'progress': task.progress,
            'url': _task_url(options.base_url, task.id),
            'std_type': mappings.std_type(native_type),
            'std_status': mappings.std_status(native_type, task.status),
        }))

        for value in (task.opened_by, task.assigned_to, task.finished_by,
                      task.canceled_by, task.closed_by, task.last_edited_by):
            account = _account(value)
            if account is None or not account.id or account.id in seen_accounts:
                continue
            seen_accounts.add(account.id)
            accounts.append(ExtractedRecord(RecordKind.ZENTAO_ACCOUNT, {
                'connection_id': connection_id,
                'id': account.id,
                'account': account.account,
                'realname': account.realname,
                'avatar': account.avatar,
            }))

    return tasks + accounts
