"""
Utilities and helper functions for Extraction Service.
"""

import logging
import re
from datetime import datetime, timezone
from typing import Optional

logger = logging.getLogger(__name__)

# Jira writes offsets without a colon (+0000); fromisoformat on older interpreters rejects that
_COMPACT_OFFSET = re.compile(r'([+-]\d{2})(\d{2})$')


class DateTimeHelper:
    """Utilities for date and time manipulation."""

    @staticmethod
    def parse_jira_datetime(datetime_str: Optional[str]) -> Optional[datetime]:
        """
        Parse Jira datetime string to timezone-naive UTC datetime.

        All tool timestamps are stored as timezone-naive UTC so comparisons
        between parent and child records stay consistent.

        Args:
            datetime_str: Jira datetime string (e.g., '2023-01-01T12:00:00.000+0000')

        Returns:
            Timezone-naive UTC datetime or None if parsing fails
        """
        if not datetime_str or not isinstance(datetime_str, str):
            return None

        value = datetime_str.strip()
        if value.endswith('Z'):
            value = value[:-1] + '+00:00'
        value = _COMPACT_OFFSET.sub(r'\1:\2', value)

        try:
            dt = datetime.fromisoformat(value)
        except ValueError:
            try:
                dt = datetime.strptime(value, '%Y-%m-%d %H:%M:%S')
            except ValueError as e:
                logger.warning(f"Could not parse datetime '{datetime_str}': {e}")
                return None

        return DateTimeHelper.normalize_to_naive_utc(dt)

    @staticmethod
    def normalize_to_naive_utc(dt: Optional[datetime]) -> Optional[datetime]:
        """Convert any datetime to timezone-naive UTC."""
        if dt is None:
            return None
        if dt.tzinfo is not None:
            return dt.astimezone(timezone.utc).replace(tzinfo=None)
        return dt

    @staticmethod
    def minutes_between(start_dt: Optional[datetime], end_dt: Optional[datetime]) -> Optional[int]:
        """Whole minutes elapsed between two datetimes, or None if either is missing."""
        if start_dt is None or end_dt is None:
            return None
        seconds = (DateTimeHelper.normalize_to_naive_utc(end_dt)
                   - DateTimeHelper.normalize_to_naive_utc(start_dt)).total_seconds()
        return int(seconds // 60)

    @staticmethod
    def now_default() -> datetime:
        """Current datetime as timezone-naive UTC."""
        return datetime.now(timezone.utc).replace(tzinfo=None)
