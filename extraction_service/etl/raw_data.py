"""
Raw data store for the extraction stage.

Raw rows are appended by the collector (one row per API response item) and are
addressed by a raw table name plus the scope fingerprint of the collection.
The extractor only reads them, in insertion order.
"""

import json
from typing import Any, Dict, Iterator, Optional

from sqlalchemy import func, select

from extraction_service.core.config import get_settings
from extraction_service.core.database import Database
from extraction_service.core.exceptions import MalformedPayloadError
from extraction_service.core.logging_config import get_logger
from extraction_service.models.unified_models import RawExtractionData

logger = get_logger(__name__)

# Raw table names
RAW_JIRA_ISSUE_TABLE = "_raw_jira_api_issues"
RAW_JIRA_ISSUE_TYPE_TABLE = "_raw_jira_api_issue_types"
RAW_ZENTAO_TASK_TABLE = "_raw_zentao_api_tasks"


def scope_fingerprint(params: Dict[str, Any]) -> str:
    """
    Canonical encoding of the immutable parameters identifying one scope.

    Key order and whitespace never change the fingerprint, so the collector and
    the extractor always agree on it.

    Example:
        >>> scope_fingerprint({"ConnectionId": 1, "BoardId": 8})
        '{"BoardId":8,"ConnectionId":1}'
    """
    return json.dumps(params, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


class RawStore:
    """Read (and, for tooling, append) access to raw_extraction_data."""

    def __init__(self, database: Database, fetch_batch_size: Optional[int] = None):
        self.database = database
        self.fetch_batch_size = fetch_batch_size or get_settings().RAW_FETCH_BATCH_SIZE

    def fetch(self, table_name: str, params: str) -> Iterator[RawExtractionData]:
        """
        Lazily stream the raw rows of one scope in insertion order.

        Rows are pulled in keyset batches (id > last seen id), each batch on its
        own short read session, so no cursor stays open while the caller writes.
        """
        last_id = 0
        while True:
            stmt = (
                select(RawExtractionData)
                .where(
                    RawExtractionData.table_name == table_name,
                    RawExtractionData.params == params,
                    RawExtractionData.id > last_id,
                )
                .order_by(RawExtractionData.id)
                .limit(self.fetch_batch_size)
            )
            with self.database.get_read_session_context() as session:
                batch = list(session.scalars(stmt))
                for row in batch:
                    session.expunge(row)

            if not batch:
                return
            for row in batch:
                yield row
            if len(batch) < self.fetch_batch_size:
                return
            last_id = batch[-1].id

    def count(self, table_name: str, params: str) -> int:
        """Number of raw rows stored for one scope."""
        stmt = (
            select(func.count())
            .select_from(RawExtractionData)
            .where(RawExtractionData.table_name == table_name, RawExtractionData.params == params)
        )
        with self.database.get_read_session_context() as session:
            return session.scalar(stmt) or 0

    def store(self, table_name: str, params: str, data: Any,
              url: Optional[str] = None, input: Optional[Dict[str, Any]] = None) -> RawExtractionData:
        """
        Append one raw row.

        Args:
            table_name: Raw table name (e.g. '_raw_jira_api_issues')
            params: Scope fingerprint
            data: Response bytes, or any JSON-serializable object
            url: Request URL the payload came from
            input: Collector input that produced the request

        Returns:
            The stored row (detached)
        """
        if isinstance(data, str):
            data = data.encode("utf-8")
        elif not isinstance(data, (bytes, bytearray)):
            data = json.dumps(data).encode("utf-8")

        with self.database.get_write_session_context() as session:
            row = RawExtractionData(
                table_name=table_name,
                params=params,
                data=bytes(data),
                url=url,
                input=input,
            )
            session.add(row)
            session.flush()
            session.refresh(row)
            session.expunge(row)

        logger.debug(f"Raw data stored: ID={row.id}, table={table_name}, params={params}")
        return row


def decode_payload(row: RawExtractionData) -> Dict[str, Any]:
    """Decode a raw row's bytes into a JSON object."""
    try:
        payload = json.loads(row.data)
    except (TypeError, ValueError) as e:
        raise MalformedPayloadError(f"Raw row {row.id} is not valid JSON: {e}") from e
    if not isinstance(payload, dict):
        raise MalformedPayloadError(f"Raw row {row.id} is not a JSON object")
    return payload
