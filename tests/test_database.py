"""
Tests for Database engine setup and write-session isolation.
"""

import pytest
from sqlalchemy.pool import StaticPool

from extraction_service.core.database import Database
from extraction_service.models.unified_models import JiraAccount


@pytest.fixture
def file_database(tmp_path):
    db = Database(f"sqlite:///{tmp_path / 'extraction.db'}")
    db.create_tables()
    try:
        yield db
    finally:
        db.dispose()


class TestEnginePool:
    """Test that only in-memory SQLite shares one connection."""

    @pytest.mark.parametrize("url", ["sqlite://", "sqlite:///:memory:"])
    def test_memory_uses_static_pool(self, url):
        db = Database(url)
        try:
            assert isinstance(db.engine.pool, StaticPool)
        finally:
            db.dispose()

    def test_file_does_not_share_a_connection(self, file_database):
        assert not isinstance(file_database.engine.pool, StaticPool)


class TestWriteSessionIsolation:
    """Test that a failing write session never undoes another session's group."""

    def test_rollback_of_other_session_keeps_flushed_records(self, file_database):
        with file_database.get_write_session_context() as group_a:
            group_a.add(JiraAccount(connection_id=1, account_id="scope-a-1"))
            group_a.flush()

            with pytest.raises(RuntimeError):
                with file_database.get_write_session_context() as group_b:
                    # Opens group_b's own transaction before it fails
                    group_b.query(JiraAccount).count()
                    raise RuntimeError("row failed")

            group_a.add(JiraAccount(connection_id=1, account_id="scope-a-2"))

        with file_database.get_read_session_context() as session:
            committed = sorted(account.account_id for account in session.query(JiraAccount))
        assert committed == ["scope-a-1", "scope-a-2"]
