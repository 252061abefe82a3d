"""
Jira REST wire shapes.

Only the fields the extractors read are declared; everything else is tolerated
so API additions never break extraction. The full `fields` object is kept
separately as a plain dict because custom fields are addressed by id.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _JiraModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", coerce_numbers_to_str=True)


class ApiAccount(_JiraModel):
    account_id: Optional[str] = Field(None, alias="accountId")
    name: Optional[str] = None  # Jira Server identifies users by name instead of accountId
    key: Optional[str] = None
    account_type: Optional[str] = Field(None, alias="accountType")
    display_name: Optional[str] = Field(None, alias="displayName")
    email_address: Optional[str] = Field(None, alias="emailAddress")
    avatar_urls: Dict[str, Any] = Field(default_factory=dict, alias="avatarUrls")
    time_zone: Optional[str] = Field(None, alias="timeZone")
    active: Optional[bool] = None

    @property
    def identifier(self) -> str:
        """Native account identifier (Cloud accountId, Server name)."""
        return self.account_id or self.name or ""


class ApiStatusCategory(_JiraModel):
    key: Optional[str] = None
    name: Optional[str] = None


class ApiStatus(_JiraModel):
    id: Optional[str] = None
    name: Optional[str] = None
    status_category: Optional[ApiStatusCategory] = Field(None, alias="statusCategory")


class ApiIssueTypeRef(_JiraModel):
    id: Optional[str] = None
    name: Optional[str] = None
    icon_url: Optional[str] = Field(None, alias="iconUrl")
    subtask: Optional[bool] = None


class ApiNamedRef(_JiraModel):
    id: Optional[str] = None
    key: Optional[str] = None
    name: Optional[str] = None


class ApiComment(_JiraModel):
    id: str
    self_url: Optional[str] = Field(None, alias="self")
    body: Any = None
    author: Optional[ApiAccount] = None
    update_author: Optional[ApiAccount] = Field(None, alias="updateAuthor")
    created: Optional[str] = None
    updated: Optional[str] = None


class ApiCommentPage(_JiraModel):
    comments: List[ApiComment] = Field(default_factory=list)
    max_results: Optional[int] = Field(None, alias="maxResults")
    total: Optional[int] = None


class ApiWorklog(_JiraModel):
    id: str
    author: Optional[ApiAccount] = None
    update_author: Optional[ApiAccount] = Field(None, alias="updateAuthor")
    time_spent: Optional[str] = Field(None, alias="timeSpent")
    time_spent_seconds: Optional[int] = Field(None, alias="timeSpentSeconds")
    started: Optional[str] = None
    updated: Optional[str] = None


class ApiWorklogPage(_JiraModel):
    worklogs: List[ApiWorklog] = Field(default_factory=list)
    max_results: Optional[int] = Field(None, alias="maxResults")
    total: Optional[int] = None


class ApiChangelogItem(_JiraModel):
    field: str = ""
    field_type: Optional[str] = Field(None, alias="fieldtype")
    field_id: Optional[str] = Field(None, alias="fieldId")
    from_value: Optional[str] = Field(None, alias="from")
    from_string: Optional[str] = Field(None, alias="fromString")
    to_value: Optional[str] = Field(None, alias="to")
    to_string: Optional[str] = Field(None, alias="toString")


class ApiChangelogHistory(_JiraModel):
    id: str
    author: Optional[ApiAccount] = None
    created: Optional[str] = None
    items: List[ApiChangelogItem] = Field(default_factory=list)


class ApiChangelog(_JiraModel):
    histories: List[ApiChangelogHistory] = Field(default_factory=list)
    max_results: Optional[int] = Field(None, alias="maxResults")
    total: Optional[int] = None


class ApiIssueFields(_JiraModel):
    summary: Optional[str] = None
    description: Any = None  # Plain text on v2, Atlassian document (dict) on v3
    created: Optional[str] = None
    updated: Optional[str] = None
    resolution_date: Optional[str] = Field(None, alias="resolutiondate")
    issue_type: Optional[ApiIssueTypeRef] = Field(None, alias="issuetype")
    status: Optional[ApiStatus] = None
    project: Optional[ApiNamedRef] = None
    priority: Optional[ApiNamedRef] = None
    parent: Optional[ApiNamedRef] = None
    epic: Optional[ApiNamedRef] = None
    creator: Optional[ApiAccount] = None
    reporter: Optional[ApiAccount] = None
    assignee: Optional[ApiAccount] = None
    labels: List[str] = Field(default_factory=list)
    sprint: Any = None
    closed_sprints: Any = Field(None, alias="closedSprints")
    comment: Optional[ApiCommentPage] = None
    worklog: Optional[ApiWorklogPage] = None
    time_original_estimate: Optional[int] = Field(None, alias="timeoriginalestimate")
    aggregate_time_original_estimate: Optional[int] = Field(None, alias="aggregatetimeoriginalestimate")
    time_estimate: Optional[int] = Field(None, alias="timeestimate")
    time_spent: Optional[int] = Field(None, alias="timespent")


class ApiIssue(_JiraModel):
    id: str
    key: Optional[str] = None
    self_url: Optional[str] = Field(None, alias="self")
    fields: ApiIssueFields = Field(default_factory=ApiIssueFields)
    changelog: Optional[ApiChangelog] = None


class ApiIssueType(_JiraModel):
    id: str
    name: Optional[str] = None
    untranslated_name: Optional[str] = Field(None, alias="untranslatedName")
    description: Optional[str] = None
    subtask: Optional[bool] = False
    hierarchy_level: Optional[int] = Field(None, alias="hierarchyLevel")
    icon_url: Optional[str] = Field(None, alias="iconUrl")
    self_url: Optional[str] = Field(None, alias="self")
