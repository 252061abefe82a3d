"""
Zentao REST wire shapes for execution tasks.

Zentao returns accounts either as objects or as bare account strings, and
numeric fields sometimes as strings, so those are accepted loosely and
normalized by the extractor.
"""

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ApiZentaoAccount(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int = 0
    account: Optional[str] = None
    avatar: Optional[str] = None
    realname: Optional[str] = None


class ApiZentaoTask(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", coerce_numbers_to_str=True)

    id: int
    project: int = 0
    parent: int = 0
    execution: int = 0
    module: int = 0
    story: int = 0
    from_bug: int = Field(0, alias="fromBug")
    name: Optional[str] = None
    type: Optional[str] = None
    mode: Optional[str] = None
    pri: int = 0
    estimate: float = 0.0
    consumed: float = 0.0
    left: float = 0.0
    deadline: Optional[str] = None
    status: Optional[str] = None
    sub_status: Optional[str] = Field(None, alias="subStatus")
    description: Optional[str] = Field(None, alias="desc")
    opened_by: Any = Field(None, alias="openedBy")
    opened_date: Optional[str] = Field(None, alias="openedDate")
    assigned_to: Any = Field(None, alias="assignedTo")
    assigned_date: Optional[str] = Field(None, alias="assignedDate")
    real_started: Optional[str] = Field(None, alias="realStarted")
    finished_by: Any = Field(None, alias="finishedBy")
    finished_date: Optional[str] = Field(None, alias="finishedDate")
    canceled_by: Any = Field(None, alias="canceledBy")
    canceled_date: Optional[str] = Field(None, alias="canceledDate")
    closed_by: Any = Field(None, alias="closedBy")
    closed_date: Optional[str] = Field(None, alias="closedDate")
    closed_reason: Optional[str] = Field(None, alias="closedReason")
    last_edited_by: Any = Field(None, alias="lastEditedBy")
    last_edited_date: Optional[str] = Field(None, alias="lastEditedDate")
    activated_date: Optional[str] = Field(None, alias="activatedDate")
    deleted: bool = False
    progress: float = 0.0
    children: List["ApiZentaoTask"] = Field(default_factory=list)


ApiZentaoTask.model_rebuild()
