"""
Tests for DateTimeHelper and ScopeLock.
"""

import os
from datetime import datetime, timedelta, timezone

import pytest

from extraction_service.core.exceptions import ExtractionAlreadyRunningError
from extraction_service.core.job_lock import ScopeLock
from extraction_service.core.utils import DateTimeHelper


class TestDateTimeHelper:
    """Test timestamp parsing into naive UTC."""

    @pytest.mark.parametrize("value,expected", [
        ("2023-01-10T10:00:00.000+0000", datetime(2023, 1, 10, 10, 0)),
        ("2023-01-10T12:00:00.000+0200", datetime(2023, 1, 10, 10, 0)),
        ("2023-01-10T15:30:00.000+05:30", datetime(2023, 1, 10, 10, 0)),
        ("2023-01-10T10:00:00Z", datetime(2023, 1, 10, 10, 0)),
        ("2023-01-10 10:00:00", datetime(2023, 1, 10, 10, 0)),
        ("2023-01-10", datetime(2023, 1, 10)),
    ])
    def test_parse(self, value, expected):
        assert DateTimeHelper.parse_jira_datetime(value) == expected

    @pytest.mark.parametrize("value", [None, "", "yesterday", 1673344800])
    def test_unparseable(self, value):
        assert DateTimeHelper.parse_jira_datetime(value) is None

    def test_normalize_aware(self):
        aware = datetime(2023, 1, 10, 12, 0, tzinfo=timezone(timedelta(hours=2)))
        assert DateTimeHelper.normalize_to_naive_utc(aware) == datetime(2023, 1, 10, 10, 0)

    def test_minutes_between(self):
        start = datetime(2023, 1, 10, 10, 0)
        assert DateTimeHelper.minutes_between(start, start + timedelta(minutes=90, seconds=59)) == 90
        assert DateTimeHelper.minutes_between(start, None) is None

    def test_now_default_is_naive(self):
        assert DateTimeHelper.now_default().tzinfo is None


class TestScopeLock:
    """Test single-flight locking of extraction scopes."""

    def test_second_holder_rejected(self, locks_dir):
        with ScopeLock("_raw_jira_api_issues", '{"BoardId":8}', locks_dir=locks_dir):
            with pytest.raises(ExtractionAlreadyRunningError):
                with ScopeLock("_raw_jira_api_issues", '{"BoardId":8}', locks_dir=locks_dir):
                    pass

    def test_released_on_exit(self, locks_dir):
        lock = ScopeLock("_raw_jira_api_issues", '{"BoardId":8}', locks_dir=locks_dir)
        with lock:
            assert lock.lock_path.read_text() == str(os.getpid())
        # The file is kept, only the lock on it is dropped
        assert lock.lock_path.exists()
        with ScopeLock("_raw_jira_api_issues", '{"BoardId":8}', locks_dir=locks_dir):
            pass

    @pytest.mark.parametrize("content", ["4194305", "", "not a pid"])
    def test_leftover_file_without_holder_is_reused(self, locks_dir, content):
        lock = ScopeLock("_raw_jira_api_issues", '{"BoardId":8}', locks_dir=locks_dir)
        lock.lock_path.write_text(content)

        with lock:
            assert lock.lock_path.read_text() == str(os.getpid())

    def test_holder_that_has_not_written_its_pid_blocks(self, locks_dir):
        fcntl = pytest.importorskip("fcntl")
        lock = ScopeLock("_raw_jira_api_issues", '{"BoardId":8}', locks_dir=locks_dir)
        # Another run between creating the file and writing its PID
        fd = os.open(str(lock.lock_path), os.O_CREAT | os.O_RDWR)
        fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        try:
            assert lock.acquire_lock() is False
            assert lock.lock_path.exists()
            assert lock.lock_path.read_text() == ""
        finally:
            os.close(fd)

        assert lock.acquire_lock() is True
        lock.release_lock()

    def test_holder_with_dead_looking_pid_blocks(self, locks_dir):
        fcntl = pytest.importorskip("fcntl")
        lock = ScopeLock("_raw_jira_api_issues", '{"BoardId":8}', locks_dir=locks_dir)
        fd = os.open(str(lock.lock_path), os.O_CREAT | os.O_RDWR)
        fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        os.write(fd, b"4194305")
        try:
            with pytest.raises(ExtractionAlreadyRunningError):
                with lock:
                    pass
        finally:
            os.close(fd)

    def test_scopes_are_independent(self, locks_dir):
        with ScopeLock("_raw_jira_api_issues", '{"BoardId":8}', locks_dir=locks_dir):
            with ScopeLock("_raw_jira_api_issues", '{"BoardId":9}', locks_dir=locks_dir):
                pass
