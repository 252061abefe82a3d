"""
Bulk database operations for extraction workers.

Provides batched upserts (INSERT ... ON CONFLICT (primary key) DO UPDATE) so
re-extracting a scope updates existing tool rows instead of duplicating them.
"""

import logging
from typing import Any, Dict, List, Type

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from extraction_service.core.utils import DateTimeHelper

logger = logging.getLogger(__name__)

# Columns that keep their first-written value on conflict
_INSERT_ONLY_COLUMNS = {'created_at'}


class BulkOperations:
    """
    Bulk database operations helper class.

    Provides batched upserts for PostgreSQL and SQLite.
    """

    _INSERT_BUILDERS = {
        'postgresql': pg_insert,
        'sqlite': sqlite_insert,
    }

    @staticmethod
    def primary_key_columns(model) -> List[str]:
        """Column names of the model's primary key, in declaration order."""
        return [column.name for column in sa_inspect(model).primary_key]

    @staticmethod
    def bulk_upsert(session, model: Type, data_list: List[Dict[str, Any]], batch_size: int = 100) -> int:
        """
        Insert rows, updating every non-key column of rows whose primary key exists.

        Rows sharing a primary key within one call collapse to the last one, since
        a single ON CONFLICT statement cannot touch the same row twice.

        Args:
            session: Database session (caller owns the transaction)
            model: Declarative model of the target table
            data_list: Column values per row
            batch_size: Number of rows per statement

        Returns:
            Number of distinct rows written
        """
        if not data_list:
            return 0

        dialect = session.get_bind().dialect.name
        insert_builder = BulkOperations._INSERT_BUILDERS.get(dialect)
        if insert_builder is None:
            raise ValueError(f"Unsupported dialect for upsert: {dialect}")

        table = model.__table__
        key_columns = BulkOperations.primary_key_columns(model)
        now = DateTimeHelper.now_default()

        # Deduplicate on primary key, keeping the last occurrence
        rows_by_key: Dict[tuple, Dict[str, Any]] = {}
        for record in data_list:
            row = dict(record)
            row.setdefault('created_at', now)
            row['last_updated_at'] = now
            rows_by_key[tuple(row.get(col) for col in key_columns)] = row
        rows = list(rows_by_key.values())

        # Every row of one statement must bind the same columns
        columns = [column.name for column in table.columns
                   if any(column.name in row for row in rows)]
        rows = [{col: row.get(col) for col in columns} for row in rows]
        update_columns = [col for col in columns if col not in key_columns and col not in _INSERT_ONLY_COLUMNS]

        for i in range(0, len(rows), batch_size):
            batch = rows[i:i + batch_size]
            stmt = insert_builder(table).values(batch)
            if update_columns:
                stmt = stmt.on_conflict_do_update(
                    index_elements=key_columns,
                    set_={col: stmt.excluded[col] for col in update_columns}
                )
            else:
                stmt = stmt.on_conflict_do_nothing(index_elements=key_columns)
            session.execute(stmt)

            batch_num = i // batch_size + 1
            total_batches = (len(rows) + batch_size - 1) // batch_size
            if total_batches > 1:
                logger.debug(f"[OK] BULK upserted batch {batch_num}/{total_batches} ({len(batch)} {table.name})")

        return len(rows)
