"""
Jira issue type catalog extraction.

Each raw row holds one object of the issue type endpoint. The resulting
jira_issue_types rows are the native type catalog issue extraction resolves
type ids against, so this runs before issue extraction.
"""

from typing import List

from pydantic import ValidationError

from extraction_service.core.exceptions import MalformedPayloadError
from extraction_service.etl.raw_data import decode_payload
from extraction_service.etl.records import ExtractedRecord, RecordKind
from extraction_service.models.unified_models import RawExtractionData
from extraction_service.schemas.jira_schemas import ApiIssueType
from extraction_service.schemas.scope_config import JiraOptions


def extract_issue_types(row: RawExtractionData, options: JiraOptions) -> List[ExtractedRecord]:
    """Extract one issue type record from a raw row."""
    payload = decode_payload(row)
    try:
        issue_type = ApiIssueType.model_validate(payload)
    except ValidationError as e:
        raise MalformedPayloadError(f"Raw row {row.id} is not a Jira issue type: {e}") from e

    return [ExtractedRecord(RecordKind.JIRA_ISSUE_TYPE, {
        'connection_id': options.connection_id,
        'id': issue_type.id,
        'name': issue_type.name,
        'untranslated_name': issue_type.untranslated_name,
        'description': issue_type.description,
        'subtask': bool(issue_type.subtask),
        'hierarchy_level': issue_type.hierarchy_level,
        'icon_url': issue_type.icon_url,
        'self_url': issue_type.self_url,
    })]
