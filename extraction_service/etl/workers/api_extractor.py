"""
Generic raw-to-tool extraction driver.

Streams the raw rows of one scope, hands each to a tool-specific extract
function, and persists everything derived from one row in one transaction.
"""

import threading
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from extraction_service.core.database import Database
from extraction_service.core.exceptions import (
    ExtractionError,
    MalformedPayloadError,
    PersistenceError,
)
from extraction_service.core.job_lock import ScopeLock
from extraction_service.core.logging_config import get_logger
from extraction_service.etl.raw_data import RawStore, scope_fingerprint
from extraction_service.etl.records import RECORD_SINKS, ExtractedRecord, RecordKind, group_by_kind
from extraction_service.etl.workers.bulk_operations import BulkOperations
from extraction_service.models.unified_models import RawExtractionData

logger = get_logger(__name__)

ExtractFunc = Callable[[RawExtractionData], List[ExtractedRecord]]


@dataclass
class ExtractionResult:
    """Outcome of one extraction run."""
    table_name: str
    params: str
    rows_processed: int = 0
    rows_skipped: int = 0
    records_written: Counter = field(default_factory=Counter)
    cancelled: bool = False

    @property
    def total_records(self) -> int:
        return sum(self.records_written.values())


class ApiExtractor:
    """
    Extraction driver for one (raw table, scope) pair.

    Contract for every raw row, in insertion order:
    - the abort event is checked first; a set event stops the run before the row
    - `extract` returns the records derived from the row; an empty list skips it
    - all records of the row are upserted in one transaction, so a row is
      written completely or not at all
    - any failure aborts the run with an ExtractionError naming the row
    """

    def __init__(self, database: Database, params: Dict, table: str, extract: ExtractFunc,
                 raw_store: Optional[RawStore] = None, locks_dir: Optional[str] = None):
        """
        Initialize the extractor.

        Args:
            database: Database holding both raw rows and tool tables
            params: Immutable scope parameters (e.g. {"ConnectionId": 1, "BoardId": 8})
            table: Raw table name to read
            extract: Tool-specific transform of one raw row
            raw_store: Raw row source (defaults to one over `database`)
            locks_dir: Directory for scope lock files
        """
        self.database = database
        self.params = scope_fingerprint(params)
        self.table = table
        self.extract = extract
        self.raw_store = raw_store or RawStore(database)
        self.locks_dir = locks_dir

    def execute(self, abort_event: Optional[threading.Event] = None) -> ExtractionResult:
        """
        Run the extraction over every raw row of the scope.

        Args:
            abort_event: Cooperative cancellation signal, checked between rows

        Returns:
            ExtractionResult with per-kind write counts

        Raises:
            ExtractionAlreadyRunningError: another run holds this scope
            ExtractionError: a row failed to extract or persist; earlier rows stay committed
        """
        result = ExtractionResult(table_name=self.table, params=self.params)

        with ScopeLock(self.table, self.params, locks_dir=self.locks_dir):
            total_rows = self.raw_store.count(self.table, self.params)
            logger.info(f"Extraction started: table={self.table}, params={self.params}, raw_rows={total_rows}")

            for row in self.raw_store.fetch(self.table, self.params):
                if abort_event is not None and abort_event.is_set():
                    result.cancelled = True
                    logger.warning(f"Extraction cancelled before raw row {row.id}: table={self.table}, params={self.params}")
                    break

                records = self._extract_row(row)
                result.rows_processed += 1
                if not records:
                    result.rows_skipped += 1
                    logger.debug(f"Raw row {row.id} produced no records, skipped")
                    continue

                result.records_written.update(self._save_row(row, records))

        logger.info(
            f"Extraction finished: table={self.table}, params={self.params}, "
            f"rows={result.rows_processed}, skipped={result.rows_skipped}, "
            f"records={result.total_records}, cancelled={result.cancelled}"
        )
        return result

    def _extract_row(self, row: RawExtractionData) -> List[ExtractedRecord]:
        try:
            return self.extract(row)
        except MalformedPayloadError as e:
            logger.error(f"Malformed payload in raw row {row.id} ({self.table}, {self.params}): {e}")
            raise ExtractionError("Malformed raw payload", self.params, self.table, row.id) from e
        except Exception as e:
            logger.error(f"Extraction failed on raw row {row.id} ({self.table}, {self.params}): {e}")
            raise ExtractionError(f"Extract function failed: {e}", self.params, self.table, row.id) from e

    def _save_row(self, row: RawExtractionData, records: List[ExtractedRecord]) -> Dict[RecordKind, int]:
        """Upsert every record derived from one raw row in a single transaction."""
        written: Dict[RecordKind, int] = {}
        provenance = {
            'raw_data_params': self.params,
            'raw_data_table': self.table,
            'raw_data_id': row.id,
        }

        try:
            with self.database.get_write_session_context() as session:
                for kind, values in group_by_kind(records).items():
                    model = RECORD_SINKS[kind]
                    stamped = [{**item, **provenance} for item in values]
                    written[kind] = BulkOperations.bulk_upsert(session, model, stamped)
        except Exception as e:
            cause = PersistenceError(f"Failed to persist records of raw row {row.id}: {e}")
            cause.__cause__ = e
            raise ExtractionError(str(cause), self.params, self.table, row.id) from cause

        return written
