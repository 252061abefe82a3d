"""
Shared fixtures: in-memory SQLite database and raw payload builders.
"""

import json

import pytest

from extraction_service.core.database import Database
from extraction_service.etl.raw_data import RawStore
from extraction_service.models.unified_models import RawExtractionData

# Test database setup
TEST_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture
def database():
    """Create a test database with all tables."""
    db = Database(TEST_DATABASE_URL)
    db.create_tables()
    try:
        yield db
    finally:
        db.dispose()


@pytest.fixture
def raw_store(database):
    return RawStore(database, fetch_batch_size=2)


@pytest.fixture
def locks_dir(tmp_path):
    path = tmp_path / "locks"
    path.mkdir()
    return str(path)


def make_raw_row(payload, row_id=1, table_name="_raw_jira_api_issues", params='{"BoardId":8,"ConnectionId":1}'):
    """Detached raw row for calling extract functions directly."""
    data = payload if isinstance(payload, bytes) else json.dumps(payload).encode("utf-8")
    return RawExtractionData(id=row_id, table_name=table_name, params=params, data=data)


def make_account(account_id, display_name=None):
    return {
        "accountId": account_id,
        "displayName": display_name or account_id.title(),
        "emailAddress": f"{account_id}@example.com",
        "avatarUrls": {"48x48": f"https://avatars.example.com/{account_id}.png"},
        "timeZone": "UTC",
        "active": True,
        "accountType": "atlassian",
    }


def make_history(history_id, author="alice", field="status", from_string="To Do", to_string="In Progress"):
    return {
        "id": str(history_id),
        "author": make_account(author),
        "created": "2023-01-11T09:00:00.000+0000",
        "items": [{
            "field": field,
            "fieldtype": "jira",
            "fieldId": field,
            "from": "1",
            "fromString": from_string,
            "to": "3",
            "toString": to_string,
        }],
    }


def make_issue(issue_id=10001, key="PROJ-1", created="2023-01-10T10:00:00.000+0000",
               updated="2023-01-12T08:30:00.000+0000", resolution_date=None,
               type_id="10002", type_name="Story", status_category="indeterminate",
               labels=None, sprints=None, comments=None, comment_total=None,
               worklogs=None, histories=None, extra_fields=None, summary="Implement login"):
    """Jira issue as returned by the search API with changelog expanded."""
    fields = {
        "summary": summary,
        "description": "Users can log in",
        "updated": updated,
        "resolutiondate": resolution_date,
        "issuetype": {"id": type_id, "name": type_name, "iconUrl": "https://jira.example.com/story.svg"},
        "status": {"id": "3", "name": "In Progress", "statusCategory": {"key": status_category}},
        "project": {"id": "10000", "key": "PROJ", "name": "Project"},
        "priority": {"id": "2", "name": "High"},
        "creator": make_account("alice"),
        "reporter": make_account("alice"),
        "assignee": make_account("bob"),
        "labels": labels or [],
        "timeoriginalestimate": 7200,
        "timespent": 3600,
    }
    if created is not None:
        fields["created"] = created
    if sprints is not None:
        fields["customfield_10020"] = sprints
    if comments is not None:
        fields["comment"] = {
            "comments": comments,
            "maxResults": len(comments),
            "total": comment_total if comment_total is not None else len(comments),
        }
    if worklogs is not None:
        fields["worklog"] = {"worklogs": worklogs, "maxResults": 20, "total": len(worklogs)}
    fields.update(extra_fields or {})

    payload = {
        "id": str(issue_id),
        "key": key,
        "self": f"https://jira.example.com/rest/api/2/issue/{issue_id}",
        "fields": fields,
    }
    if histories is not None:
        payload["changelog"] = {"histories": histories, "maxResults": len(histories), "total": len(histories)}
    return payload


def make_comment(comment_id, author="carol", body="Looks good"):
    return {
        "id": str(comment_id),
        "self": f"https://jira.example.com/rest/api/2/comment/{comment_id}",
        "body": body,
        "author": make_account(author),
        "updateAuthor": make_account(author),
        "created": "2023-01-11T11:00:00.000+0000",
        "updated": "2023-01-11T11:05:00.000+0000",
    }


def make_worklog(worklog_id, author="bob", seconds=3600):
    return {
        "id": str(worklog_id),
        "author": make_account(author),
        "updateAuthor": make_account(author),
        "timeSpent": "1h",
        "timeSpentSeconds": seconds,
        "started": "2023-01-11T13:00:00.000+0000",
        "updated": "2023-01-11T14:00:00.000+0000",
    }


@pytest.fixture
def issue_factory():
    return make_issue


@pytest.fixture
def fan_out_issue():
    """Issue with 2 sprints, 3 comments, 1 worklog and 2 labels."""
    return make_issue(
        sprints=[{"id": 11, "name": "Sprint 1", "state": "closed"},
                 {"id": 12, "name": "Sprint 2", "state": "active"}],
        comments=[make_comment(1), make_comment(2), make_comment(3, author="dave")],
        worklogs=[make_worklog(501)],
        labels=["backend", "urgent"],
        extra_fields={"customfield_10016": "5"},
    )
