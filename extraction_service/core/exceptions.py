"""
Exception hierarchy for the extraction stage.

Fatal errors raised out of a run are always ExtractionError instances that name
the scope fingerprint and the raw row that failed, so a caller can retry narrowly.
"""

from typing import Optional


class ExtractionServiceError(Exception):
    """Base class for all extraction service errors."""


class MalformedPayloadError(ExtractionServiceError):
    """Raw payload cannot be parsed into the tool's wire shape."""


class MissingRequiredFieldError(ExtractionServiceError):
    """A mandatory field (e.g. creation timestamp) is absent from the payload."""

    def __init__(self, field_name: str):
        super().__init__(f"Required field '{field_name}' is missing")
        self.field_name = field_name


class PersistenceError(ExtractionServiceError):
    """The write layer rejected an upsert."""


class ExtractionAlreadyRunningError(ExtractionServiceError):
    """Another run currently owns the scope."""

    def __init__(self, table_name: str, scope_fingerprint: str):
        super().__init__(
            f"Extraction of {table_name} for scope {scope_fingerprint} is already running"
        )
        self.table_name = table_name
        self.scope_fingerprint = scope_fingerprint


class ExtractionError(ExtractionServiceError):
    """A run was aborted by a fatal error on one raw row."""

    def __init__(self, message: str, scope_fingerprint: str, table_name: str,
                 raw_row_id: Optional[int] = None):
        super().__init__(
            f"{message} (table={table_name}, params={scope_fingerprint}, raw_row_id={raw_row_id})"
        )
        self.scope_fingerprint = scope_fingerprint
        self.table_name = table_name
        self.raw_row_id = raw_row_id
