"""
Tests for the generic extraction driver against a real (SQLite) database.
"""

import os
import threading
from functools import partial

import pytest

from conftest import make_comment, make_issue
from extraction_service.config.status_mapping import JIRA_DEFAULT_STATUS, JIRA_STATUS_MAPPING, build_status_lookup
from extraction_service.core.exceptions import (
    ExtractionAlreadyRunningError,
    ExtractionError,
    MalformedPayloadError,
    PersistenceError,
)
from extraction_service.core.job_lock import ScopeLock
from extraction_service.etl.jira.jira_issue_extractor import extract_issues
from extraction_service.etl.raw_data import RAW_JIRA_ISSUE_TABLE, scope_fingerprint
from extraction_service.etl.records import RecordKind
from extraction_service.etl.type_mappings import TypeMappings
from extraction_service.etl.workers.api_extractor import ApiExtractor
from extraction_service.etl.workers.bulk_operations import BulkOperations
from extraction_service.models.unified_models import (
    JiraBoardIssue,
    JiraIssue,
    JiraIssueComment,
    JiraIssueLabel,
    JiraSprintIssue,
    JiraWorklog,
)
from extraction_service.schemas.scope_config import JiraOptions, ScopeConfig

OPTIONS = JiraOptions(connection_id=1, board_id=8, scope_config=ScopeConfig(sprint_field="customfield_10020"))
PARAMS = scope_fingerprint(OPTIONS.api_params())


@pytest.fixture
def extractor_factory(database, raw_store, locks_dir):
    mappings = TypeMappings.build([], None, build_status_lookup(JIRA_STATUS_MAPPING), JIRA_DEFAULT_STATUS)

    def factory(extract=None):
        extract = extract or partial(extract_issues, options=OPTIONS, mappings=mappings, page_size=100)
        return ApiExtractor(database, OPTIONS.api_params(), RAW_JIRA_ISSUE_TABLE, extract,
                            raw_store=raw_store, locks_dir=locks_dir)

    return factory


def stage(raw_store, *payloads):
    return [raw_store.store(RAW_JIRA_ISSUE_TABLE, PARAMS, payload) for payload in payloads]


def count(database, model):
    with database.get_read_session_context() as session:
        return session.query(model).count()


class TestExtractionRun:
    """Test a complete extraction pass."""

    def test_fan_out_persisted(self, database, raw_store, extractor_factory, fan_out_issue):
        stage(raw_store, fan_out_issue)
        result = extractor_factory().execute()

        assert result.rows_processed == 1
        assert result.rows_skipped == 0
        assert result.records_written[RecordKind.JIRA_ISSUE] == 1
        assert count(database, JiraIssue) == 1
        assert count(database, JiraSprintIssue) == 2
        assert count(database, JiraIssueComment) == 3
        assert count(database, JiraWorklog) == 1
        assert count(database, JiraIssueLabel) == 2
        assert count(database, JiraBoardIssue) == 1

    def test_provenance_stamped(self, database, raw_store, extractor_factory):
        rows = stage(raw_store, make_issue())
        extractor_factory().execute()

        with database.get_read_session_context() as session:
            issue = session.query(JiraIssue).one()
        assert issue.raw_data_params == PARAMS
        assert issue.raw_data_table == RAW_JIRA_ISSUE_TABLE
        assert issue.raw_data_id == rows[0].id

    def test_idempotent_rerun(self, database, raw_store, extractor_factory, fan_out_issue):
        stage(raw_store, fan_out_issue, make_issue(issue_id=10002, key="PROJ-2"))
        extractor_factory().execute()

        def snapshot():
            with database.get_read_session_context() as session:
                issues = {(i.connection_id, i.issue_id, i.summary, i.std_status) for i in session.query(JiraIssue)}
                comments = {(c.comment_id, c.issue_id) for c in session.query(JiraIssueComment)}
            return issues, comments

        first = snapshot()
        extractor_factory().execute()
        assert snapshot() == first
        assert count(database, JiraIssue) == 2

    def test_later_payload_updates_existing_row(self, database, raw_store, extractor_factory):
        stage(raw_store, make_issue(summary="Old"), make_issue(summary="New"))
        extractor_factory().execute()

        with database.get_read_session_context() as session:
            issues = session.query(JiraIssue).all()
        assert [issue.summary for issue in issues] == ["New"]

    def test_rows_without_created_are_skipped(self, database, raw_store, extractor_factory):
        stage(raw_store, make_issue(created=None), make_issue(issue_id=10002))
        result = extractor_factory().execute()

        assert result.rows_processed == 2
        assert result.rows_skipped == 1
        assert count(database, JiraIssue) == 1

    def test_other_scopes_are_ignored(self, database, raw_store, extractor_factory):
        raw_store.store(RAW_JIRA_ISSUE_TABLE, scope_fingerprint({"ConnectionId": 1, "BoardId": 9}), make_issue())
        result = extractor_factory().execute()

        assert result.rows_processed == 0
        assert count(database, JiraIssue) == 0


class TestFatalErrors:
    """Test that fatal errors abort the run and name the failing row."""

    def test_malformed_payload_aborts(self, database, raw_store, extractor_factory):
        rows = stage(raw_store, make_issue(), b"{not json", make_issue(issue_id=10003))

        with pytest.raises(ExtractionError) as exc_info:
            extractor_factory().execute()

        error = exc_info.value
        assert error.raw_row_id == rows[1].id
        assert error.scope_fingerprint == PARAMS
        assert error.table_name == RAW_JIRA_ISSUE_TABLE
        assert isinstance(error.__cause__, MalformedPayloadError)
        # Rows before the failure stay committed, rows after it are never reached
        with database.get_read_session_context() as session:
            assert [issue.issue_id for issue in session.query(JiraIssue)] == [10001]

    def test_persistence_failure_writes_nothing_of_the_row(self, database, raw_store, extractor_factory, monkeypatch):
        rows = stage(
            raw_store,
            make_issue(issue_id=10001, comments=[make_comment(1)]),
            make_issue(issue_id=10002, comments=[make_comment(2), make_comment(3)]),
        )
        failing_row_id = rows[1].id
        original_upsert = BulkOperations.bulk_upsert

        def flaky_upsert(session, model, data_list, batch_size=100):
            if model is JiraIssueComment and data_list[0]["raw_data_id"] == failing_row_id:
                raise RuntimeError("connection reset")
            return original_upsert(session, model, data_list, batch_size)

        monkeypatch.setattr(BulkOperations, "bulk_upsert", staticmethod(flaky_upsert))

        with pytest.raises(ExtractionError) as exc_info:
            extractor_factory().execute()

        assert exc_info.value.raw_row_id == failing_row_id
        assert isinstance(exc_info.value.__cause__, PersistenceError)
        with database.get_read_session_context() as session:
            assert [issue.issue_id for issue in session.query(JiraIssue)] == [10001]
            assert [comment.comment_id for comment in session.query(JiraIssueComment)] == ["1"]

    def test_extract_exception_is_wrapped(self, raw_store, extractor_factory):
        rows = stage(raw_store, make_issue())

        def broken_extract(row):
            raise KeyError("fields")

        with pytest.raises(ExtractionError) as exc_info:
            extractor_factory(broken_extract).execute()
        assert exc_info.value.raw_row_id == rows[0].id
        assert isinstance(exc_info.value.__cause__, KeyError)


class TestCancellation:
    """Test cooperative cancellation between rows."""

    def test_abort_before_start(self, database, raw_store, extractor_factory):
        stage(raw_store, make_issue())
        abort_event = threading.Event()
        abort_event.set()

        result = extractor_factory().execute(abort_event)

        assert result.cancelled
        assert result.rows_processed == 0
        assert count(database, JiraIssue) == 0

    def test_abort_stops_before_next_row(self, database, raw_store, extractor_factory):
        stage(raw_store, *[make_issue(issue_id=10001 + i) for i in range(4)])
        abort_event = threading.Event()
        inner = extractor_factory().extract

        def extract_then_abort(row):
            records = inner(row)
            abort_event.set()
            return records

        result = extractor_factory(extract_then_abort).execute(abort_event)

        assert result.cancelled
        assert result.rows_processed == 1
        assert count(database, JiraIssue) == 1


class TestSingleFlight:
    """Test that one scope is never extracted twice at once."""

    def test_concurrent_run_rejected(self, database, raw_store, extractor_factory, locks_dir):
        stage(raw_store, make_issue())

        with ScopeLock(RAW_JIRA_ISSUE_TABLE, PARAMS, locks_dir=locks_dir):
            with pytest.raises(ExtractionAlreadyRunningError):
                extractor_factory().execute()

        assert count(database, JiraIssue) == 0

    def test_lock_released_after_failure(self, raw_store, extractor_factory):
        stage(raw_store, b"[]")
        with pytest.raises(ExtractionError):
            extractor_factory().execute()

        # A failed run frees the scope for the next one
        with pytest.raises(ExtractionError):
            extractor_factory().execute()

    def test_other_scope_not_blocked(self, raw_store, extractor_factory, locks_dir):
        stage(raw_store, make_issue())
        other = scope_fingerprint({"ConnectionId": 2, "BoardId": 8})

        with ScopeLock(RAW_JIRA_ISSUE_TABLE, other, locks_dir=locks_dir):
            result = extractor_factory().execute()
        assert result.rows_processed == 1

    def test_holder_mid_write_blocks_run(self, database, raw_store, extractor_factory, locks_dir):
        fcntl = pytest.importorskip("fcntl")
        stage(raw_store, make_issue())
        lock_path = ScopeLock(RAW_JIRA_ISSUE_TABLE, PARAMS, locks_dir=locks_dir).lock_path
        # Another run that has locked its file but not yet written its PID
        fd = os.open(str(lock_path), os.O_CREAT | os.O_RDWR)
        fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        try:
            with pytest.raises(ExtractionAlreadyRunningError):
                extractor_factory().execute()
        finally:
            os.close(fd)

        assert count(database, JiraIssue) == 0
        assert extractor_factory().execute().rows_processed == 1

    def test_lock_file_of_crashed_run_does_not_block(self, raw_store, extractor_factory, locks_dir):
        stage(raw_store, make_issue())
        ScopeLock(RAW_JIRA_ISSUE_TABLE, PARAMS, locks_dir=locks_dir).lock_path.write_text("")

        assert extractor_factory().execute().rows_processed == 1
