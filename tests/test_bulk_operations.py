"""
Tests for BulkOperations upserts.
"""

from extraction_service.etl.workers.bulk_operations import BulkOperations
from extraction_service.models.unified_models import JiraAccount, JiraIssueLabel


def account(account_id, name):
    return {"connection_id": 1, "account_id": account_id, "name": name}


class TestBulkUpsert:
    """Test insert-or-update keyed by primary key."""

    def test_primary_key_columns(self):
        assert BulkOperations.primary_key_columns(JiraIssueLabel) == ["connection_id", "issue_id", "label_name"]

    def test_insert_then_update(self, database):
        with database.get_write_session_context() as session:
            BulkOperations.bulk_upsert(session, JiraAccount, [account("alice", "Alice")])
        with database.get_read_session_context() as session:
            created_at = session.query(JiraAccount).one().created_at

        with database.get_write_session_context() as session:
            BulkOperations.bulk_upsert(session, JiraAccount, [account("alice", "Alice Smith"), account("bob", "Bob")])

        with database.get_read_session_context() as session:
            rows = {row.account_id: row for row in session.query(JiraAccount)}
        assert rows["alice"].name == "Alice Smith"
        assert rows["alice"].created_at == created_at
        assert rows["bob"].name == "Bob"

    def test_duplicate_keys_in_one_call_keep_last(self, database):
        with database.get_write_session_context() as session:
            written = BulkOperations.bulk_upsert(
                session, JiraAccount, [account("alice", "First"), account("alice", "Second")]
            )

        assert written == 1
        with database.get_read_session_context() as session:
            assert session.query(JiraAccount).one().name == "Second"

    def test_key_only_table(self, database):
        labels = [{"connection_id": 1, "issue_id": 10001, "label_name": name} for name in ("a", "b")]
        with database.get_write_session_context() as session:
            BulkOperations.bulk_upsert(session, JiraIssueLabel, labels, batch_size=1)
        with database.get_write_session_context() as session:
            BulkOperations.bulk_upsert(session, JiraIssueLabel, labels)

        with database.get_read_session_context() as session:
            assert session.query(JiraIssueLabel).count() == 2

    def test_empty(self, database):
        with database.get_write_session_context() as session:
            assert BulkOperations.bulk_upsert(session, JiraAccount, []) == 0
