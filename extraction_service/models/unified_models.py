"""
Unified data models for the extraction stage.

Raw staging table plus the per-tool tables the extractors write. Tool tables are
keyed by (connection_id, native id) so re-extraction upserts instead of
duplicating, and every tool row remembers which raw row produced it.
"""

from sqlalchemy import Column, Integer, BigInteger, String, DateTime, Float, Text, Boolean, Index, JSON, LargeBinary, func
from sqlalchemy.orm import declarative_base


Base = declarative_base()


class RawDataOrigin:
    """Provenance columns shared by every tool table."""
    raw_data_params = Column(String(255), quote=False, name="raw_data_params", index=True)  # Scope fingerprint
    raw_data_table = Column(String(255), quote=False, name="raw_data_table")
    raw_data_id = Column(BigInteger, quote=False, name="raw_data_id")
    created_at = Column(DateTime, quote=False, name="created_at", default=func.now())
    last_updated_at = Column(DateTime, quote=False, name="last_updated_at", default=func.now(), onupdate=func.now())


# ============================================================================
# Raw staging
# ============================================================================

class RawExtractionData(Base):
    """Raw API responses awaiting extraction - append only"""
    __tablename__ = 'raw_extraction_data'
    __table_args__ = (
        Index('ix_raw_extraction_data_scope', 'table_name', 'params', 'id'),
        {'quote': False},
    )

    id = Column(Integer, primary_key=True, autoincrement=True, quote=False, name="id")
    table_name = Column(String(255), nullable=False, quote=False, name="table_name")  # '_raw_jira_api_issues', ...
    params = Column(String(255), nullable=False, quote=False, name="params")  # Scope fingerprint
    data = Column(LargeBinary, nullable=False, quote=False, name="data")  # Exact response bytes
    url = Column(Text, nullable=True, quote=False, name="url")
    input = Column(JSON, nullable=True, quote=False, name="input")  # Collector input (e.g. parent ids)
    created_at = Column(DateTime, quote=False, name="created_at", default=func.now())


# ============================================================================
# Jira tool tables
# ============================================================================

class JiraIssueType(Base, RawDataOrigin):
    """Native issue type catalog per connection"""
    __tablename__ = 'jira_issue_types'
    __table_args__ = {'quote': False}

    connection_id = Column(BigInteger, primary_key=True, autoincrement=False, quote=False, name="connection_id")
    id = Column(String(255), primary_key=True, quote=False, name="id")
    name = Column(String(255), quote=False, name="name")
    untranslated_name = Column(String(255), quote=False, name="untranslated_name")
    description = Column(Text, quote=False, name="description")
    subtask = Column(Boolean, quote=False, name="subtask", default=False)
    hierarchy_level = Column(Integer, quote=False, name="hierarchy_level")
    icon_url = Column(String(255), quote=False, name="icon_url")
    self_url = Column(String(255), quote=False, name="self_url")


class JiraIssue(Base, RawDataOrigin):
    """Main issues table"""
    __tablename__ = 'jira_issues'
    __table_args__ = {'quote': False}

    connection_id = Column(BigInteger, primary_key=True, autoincrement=False, quote=False, name="connection_id")
    issue_id = Column(BigInteger, primary_key=True, autoincrement=False, quote=False, name="issue_id")
    project_id = Column(BigInteger, quote=False, name="project_id")
    project_name = Column(String(255), quote=False, name="project_name")
    self_url = Column(String(255), quote=False, name="self_url")
    icon_url = Column(String(255), quote=False, name="icon_url")
    issue_key = Column(String(255), quote=False, name="issue_key")
    summary = Column(Text, quote=False, name="summary")
    description = Column(Text, quote=False, name="description")
    type = Column(String(255), quote=False, name="type")  # Native type name (resolved from type_id)
    type_id = Column(String(255), quote=False, name="type_id")
    epic_key = Column(String(255), quote=False, name="epic_key")
    status_name = Column(String(255), quote=False, name="status_name")
    status_key = Column(String(255), quote=False, name="status_key")
    std_type = Column(String(255), quote=False, name="std_type")
    std_status = Column(String(255), quote=False, name="std_status")
    story_point = Column(Float, quote=False, name="story_point", default=0.0)
    original_estimate_minutes = Column(BigInteger, quote=False, name="original_estimate_minutes")
    aggregate_estimate_minutes = Column(BigInteger, quote=False, name="aggregate_estimate_minutes")
    remaining_estimate_minutes = Column(BigInteger, quote=False, name="remaining_estimate_minutes")
    time_spent_minutes = Column(BigInteger, quote=False, name="time_spent_minutes")
    lead_time_minutes = Column(BigInteger, quote=False, name="lead_time_minutes")
    creator_account_id = Column(String(255), quote=False, name="creator_account_id")
    creator_display_name = Column(String(255), quote=False, name="creator_display_name")
    assignee_account_id = Column(String(255), quote=False, name="assignee_account_id")
    assignee_display_name = Column(String(255), quote=False, name="assignee_display_name")
    priority_id = Column(String(255), quote=False, name="priority_id")
    priority_name = Column(String(255), quote=False, name="priority_name")
    parent_id = Column(BigInteger, quote=False, name="parent_id")
    parent_key = Column(String(255), quote=False, name="parent_key")
    resolution_date = Column(DateTime, quote=False, name="resolution_date")
    created = Column(DateTime, quote=False, name="created")
    updated = Column(DateTime, quote=False, name="updated")
    raw_json = Column(JSON, quote=False, name="raw_json")  # Full original payload for reprocessing


class JiraIssueChangelog(Base, RawDataOrigin):
    """Change history header - one per change event"""
    __tablename__ = 'jira_issue_changelogs'
    __table_args__ = {'quote': False}

    connection_id = Column(BigInteger, primary_key=True, autoincrement=False, quote=False, name="connection_id")
    changelog_id = Column(BigInteger, primary_key=True, autoincrement=False, quote=False, name="changelog_id")
    issue_id = Column(BigInteger, index=True, quote=False, name="issue_id")
    author_account_id = Column(String(255), quote=False, name="author_account_id")
    author_display_name = Column(String(255), quote=False, name="author_display_name")
    author_active = Column(Boolean, quote=False, name="author_active")
    created = Column(DateTime, quote=False, name="created")
    issue_updated = Column(DateTime, nullable=True, quote=False, name="issue_updated")  # NULL = more changelog pages upstream


class JiraIssueChangelogItem(Base, RawDataOrigin):
    """Field changes inside one change event"""
    __tablename__ = 'jira_issue_changelog_items'
    __table_args__ = {'quote': False}

    connection_id = Column(BigInteger, primary_key=True, autoincrement=False, quote=False, name="connection_id")
    changelog_id = Column(BigInteger, primary_key=True, autoincrement=False, quote=False, name="changelog_id")
    field = Column(String(255), primary_key=True, quote=False, name="field")
    field_type = Column(String(255), quote=False, name="field_type")
    field_id = Column(String(255), quote=False, name="field_id")
    from_value = Column(Text, quote=False, name="from_value")
    from_string = Column(Text, quote=False, name="from_string")
    to_value = Column(Text, quote=False, name="to_value")
    to_string = Column(Text, quote=False, name="to_string")


class JiraIssueComment(Base, RawDataOrigin):
    """Issue comments"""
    __tablename__ = 'jira_issue_comments'
    __table_args__ = {'quote': False}

    connection_id = Column(BigInteger, primary_key=True, autoincrement=False, quote=False, name="connection_id")
    comment_id = Column(String(255), primary_key=True, quote=False, name="comment_id")
    issue_id = Column(BigInteger, index=True, quote=False, name="issue_id")
    self_url = Column(String(255), quote=False, name="self_url")
    body = Column(Text, quote=False, name="body")
    creator_account_id = Column(String(255), quote=False, name="creator_account_id")
    creator_display_name = Column(String(255), quote=False, name="creator_display_name")
    created = Column(DateTime, quote=False, name="created")
    updated = Column(DateTime, quote=False, name="updated")
    issue_updated = Column(DateTime, nullable=True, quote=False, name="issue_updated")


class JiraWorklog(Base, RawDataOrigin):
    """Issue worklogs"""
    __tablename__ = 'jira_worklogs'
    __table_args__ = {'quote': False}

    connection_id = Column(BigInteger, primary_key=True, autoincrement=False, quote=False, name="connection_id")
    issue_id = Column(BigInteger, primary_key=True, autoincrement=False, quote=False, name="issue_id")
    worklog_id = Column(String(255), primary_key=True, quote=False, name="worklog_id")
    author_id = Column(String(255), quote=False, name="author_id")
    update_author_id = Column(String(255), quote=False, name="update_author_id")
    time_spent = Column(String(255), quote=False, name="time_spent")
    time_spent_seconds = Column(Integer, quote=False, name="time_spent_seconds")
    started = Column(DateTime, quote=False, name="started")
    updated = Column(DateTime, quote=False, name="updated")
    issue_updated = Column(DateTime, nullable=True, quote=False, name="issue_updated")


class JiraSprintIssue(Base, RawDataOrigin):
    """Sprint membership of issues"""
    __tablename__ = 'jira_sprint_issues'
    __table_args__ = {'quote': False}

    connection_id = Column(BigInteger, primary_key=True, autoincrement=False, quote=False, name="connection_id")
    sprint_id = Column(BigInteger, primary_key=True, autoincrement=False, quote=False, name="sprint_id")
    issue_id = Column(BigInteger, primary_key=True, autoincrement=False, quote=False, name="issue_id")
    issue_created_date = Column(DateTime, quote=False, name="issue_created_date")
    resolution_date = Column(DateTime, quote=False, name="resolution_date")


class JiraBoardIssue(Base, RawDataOrigin):
    """Board membership of issues"""
    __tablename__ = 'jira_board_issues'
    __table_args__ = {'quote': False}

    connection_id = Column(BigInteger, primary_key=True, autoincrement=False, quote=False, name="connection_id")
    board_id = Column(BigInteger, primary_key=True, autoincrement=False, quote=False, name="board_id")
    issue_id = Column(BigInteger, primary_key=True, autoincrement=False, quote=False, name="issue_id")


class JiraIssueLabel(Base, RawDataOrigin):
    """Issue labels"""
    __tablename__ = 'jira_issue_labels'
    __table_args__ = {'quote': False}

    connection_id = Column(BigInteger, primary_key=True, autoincrement=False, quote=False, name="connection_id")
    issue_id = Column(BigInteger, primary_key=True, autoincrement=False, quote=False, name="issue_id")
    label_name = Column(String(255), primary_key=True, quote=False, name="label_name")


class JiraAccount(Base, RawDataOrigin):
    """Users referenced by issues, comments, worklogs and changelogs"""
    __tablename__ = 'jira_accounts'
    __table_args__ = {'quote': False}

    connection_id = Column(BigInteger, primary_key=True, autoincrement=False, quote=False, name="connection_id")
    account_id = Column(String(255), primary_key=True, quote=False, name="account_id")
    account_type = Column(String(255), quote=False, name="account_type")
    name = Column(String(255), quote=False, name="name")
    email = Column(String(255), quote=False, name="email")
    avatar_url = Column(String(255), quote=False, name="avatar_url")
    timezone = Column(String(255), quote=False, name="timezone")


# ============================================================================
# Zentao tool tables
# ============================================================================

class ZentaoTask(Base, RawDataOrigin):
    """Zentao execution tasks"""
    __tablename__ = 'zentao_tasks'
    __table_args__ = {'quote': False}

    connection_id = Column(BigInteger, primary_key=True, autoincrement=False, quote=False, name="connection_id")
    id = Column(BigInteger, primary_key=True, autoincrement=False, quote=False, name="id")
    project = Column(BigInteger, quote=False, name="project")
    parent = Column(BigInteger, quote=False, name="parent")
    execution = Column(BigInteger, quote=False, name="execution")
    module = Column(Integer, quote=False, name="module")
    story = Column(BigInteger, quote=False, name="story")
    from_bug = Column(Integer, quote=False, name="from_bug")
    name = Column(String(255), quote=False, name="name")
    type = Column(String(255), quote=False, name="type")
    mode = Column(String(255), quote=False, name="mode")
    pri = Column(Integer, quote=False, name="pri")
    estimate = Column(Float, quote=False, name="estimate")
    consumed = Column(Float, quote=False, name="consumed")
    db_left = Column(Float, quote=False, name="db_left")
    deadline = Column(String(255), quote=False, name="deadline")
    status = Column(String(255), quote=False, name="status")
    sub_status = Column(String(255), quote=False, name="sub_status")
    description = Column(Text, quote=False, name="description")
    opened_by_id = Column(BigInteger, quote=False, name="opened_by_id")
    opened_by_name = Column(String(255), quote=False, name="opened_by_name")
    opened_date = Column(DateTime, quote=False, name="opened_date")
    assigned_to_id = Column(BigInteger, quote=False, name="assigned_to_id")
    assigned_to_name = Column(String(255), quote=False, name="assigned_to_name")
    assigned_date = Column(DateTime, quote=False, name="assigned_date")
    real_started = Column(DateTime, quote=False, name="real_started")
    finished_id = Column(BigInteger, quote=False, name="finished_id")
    finished_date = Column(DateTime, quote=False, name="finished_date")
    canceled_id = Column(BigInteger, quote=False, name="canceled_id")
    canceled_date = Column(DateTime, quote=False, name="canceled_date")
    closed_by_id = Column(BigInteger, quote=False, name="closed_by_id")
    closed_date = Column(DateTime, quote=False, name="closed_date")
    closed_reason = Column(String(255), quote=False, name="closed_reason")
    last_edited_id = Column(BigInteger, quote=False, name="last_edited_id")
    last_edited_date = Column(DateTime, quote=False, name="last_edited_date")
    activated_date = Column(DateTime, quote=False, name="activated_date")
    deleted = Column(Boolean, quote=False, name="deleted", default=False)
    progress = Column(Float, quote=False, name="progress")
    url = Column(String(255), quote=False, name="url")
    std_status = Column(String(20), quote=False, name="std_status")
    std_type = Column(String(20), quote=False, name="std_type")


class ZentaoAccount(Base, RawDataOrigin):
    """Zentao users referenced by tasks"""
    __tablename__ = 'zentao_accounts'
    __table_args__ = {'quote': False}

    connection_id = Column(BigInteger, primary_key=True, autoincrement=False, quote=False, name="connection_id")
    id = Column(BigInteger, primary_key=True, autoincrement=False, quote=False, name="id")
    account = Column(String(255), quote=False, name="account")
    realname = Column(String(255), quote=False, name="realname")
    avatar = Column(String(255), quote=False, name="avatar")
