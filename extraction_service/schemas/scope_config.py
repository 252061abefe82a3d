"""
Extraction options and user-declared scope configuration.

Scope configs are authored by users (usually as camelCase JSON), so every field
accepts both its alias and its python name.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class StatusMapping(BaseModel):
    """Standardized status for one native status keyword."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    standard_status: str = Field(..., alias="standardStatus")


class TypeMapping(BaseModel):
    """Standardized type plus per-status overrides for one native type."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    standard_type: str = Field(..., alias="standardType")
    status_mappings: Dict[str, StatusMapping] = Field(default_factory=dict, alias="statusMappings")


class ScopeConfig(BaseModel):
    """User-declared extraction configuration for one scope."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    story_point_field: Optional[str] = Field(None, alias="storyPointField", description="Custom field id holding story points")
    sprint_field: Optional[str] = Field(None, alias="sprintField", description="Custom field id holding sprints")
    changelog_page_size: Optional[int] = Field(None, alias="changelogPageSize", ge=1,
                                               description="Changelog page size used by the collector")
    type_mappings: Dict[str, TypeMapping] = Field(default_factory=dict, alias="typeMappings")


class JiraOptions(BaseModel):
    """Immutable parameters of one Jira extraction scope."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    connection_id: int = Field(..., alias="connectionId")
    board_id: int = Field(..., alias="boardId")
    scope_config: Optional[ScopeConfig] = Field(None, alias="scopeConfig")

    def api_params(self) -> Dict[str, Any]:
        """Parameters that identify the scope in the raw store."""
        return {"ConnectionId": self.connection_id, "BoardId": self.board_id}


class ZentaoOptions(BaseModel):
    """Immutable parameters of one Zentao extraction scope."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    connection_id: int = Field(..., alias="connectionId")
    project_id: int = Field(0, alias="projectId")
    execution_id: int = Field(..., alias="executionId")
    base_url: Optional[str] = Field(None, alias="baseUrl", description="Used to build task browse URLs")
    scope_config: Optional[ScopeConfig] = Field(None, alias="scopeConfig")

    def api_params(self) -> Dict[str, Any]:
        """Parameters that identify the scope in the raw store."""
        return {
            "ConnectionId": self.connection_id,
            "ProjectId": self.project_id,
            "ExecutionId": self.execution_id,
        }
