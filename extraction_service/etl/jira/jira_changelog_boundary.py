"""
Incremental boundary detection for child collections embedded in issues.

The issue search API embeds at most one page of changelog histories. When a
payload carries exactly one full page, more histories probably exist upstream,
so the derived changelogs get a NULL issue_updated: downstream treats the issue's
history as incomplete until it is collected again. Otherwise children are stamped
with the issue's updated time, marking them complete as of that snapshot.
"""

from datetime import datetime
from typing import Optional


def changelog_issue_updated(child_count: int, parent_updated: Optional[datetime],
                            page_size: int) -> Optional[datetime]:
    """
    As-of timestamp for changelog records derived from one issue payload.

    Args:
        child_count: Number of histories embedded in the payload
        parent_updated: The issue's last-modified time
        page_size: Page size the collector requested

    Returns:
        None when the page is full (more pages likely), else `parent_updated`
    """
    if child_count == page_size:
        return None
    return parent_updated


def paged_children_issue_updated(child_count: int, total: Optional[int],
                                 parent_updated: Optional[datetime]) -> Optional[datetime]:
    """
    As-of timestamp for comments/worklogs, whose pages report a total.

    A page holding fewer items than the reported total is incomplete. Pages
    without a total are taken as complete.
    """
    if total is not None and child_count < total:
        return None
    return parent_updated
