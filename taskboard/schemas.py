from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from taskboard.models import Task, User
from taskboard.models.base import as_utc

# --- Envelope ---


class ApiResponse(BaseModel):
    """Every non-empty response body: a human readable message plus the payload."""

    message: str = Field(..., description="Response message")
    data: Any = Field(None, description="Payload, or null on errors")


# --- Request payloads ---
#
# Required fields are optional at the schema level so that a missing field is
# reported by the service layer with the API's own messages, as a 400.


class TaskPayload(BaseModel):
    name: str | None = Field(None, description="Task title, required")
    deadline: datetime | None = Field(None, description="Due date, required")
    description: str | None = Field(None, description="Free text")
    completed: bool | None = Field(None, description="Completion flag")
    assigned_user: Any = Field(
        None,
        alias="assignedUser",
        description="Id of the user to assign, empty for unassigned",
    )
    assigned_user_name: Any = Field(
        None,
        alias="assignedUserName",
        description="Ignored: the name is always read from the assigned user",
    )

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator("deadline")
    @classmethod
    def deadline_in_utc(cls, v: datetime | None) -> datetime | None:
        return as_utc(v)


class UserPayload(BaseModel):
    name: str | None = Field(None, description="Display name, required on create")
    email: str | None = Field(None, description="Unique e-mail, required on create")
    pending_tasks: Any = Field(
        None,
        alias="pendingTasks",
        description="Task ids to assign to the user",
    )

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def provided_fields(self) -> set[str]:
        """Names of the fields present in the request body."""
        return set(self.model_fields_set)


# --- Response records ---


class TaskRecord(BaseModel):
    id: UUID = Field(..., serialization_alias="_id")
    name: str
    description: str = ""
    deadline: datetime
    completed: bool = False
    assigned_user: str = Field("", serialization_alias="assignedUser")
    assigned_user_name: str = Field(
        "unassigned", serialization_alias="assignedUserName"
    )
    date_created: datetime = Field(..., serialization_alias="dateCreated")

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("deadline", "date_created")
    def serialize_in_utc(self, value: datetime) -> datetime:
        return as_utc(value)


class UserRecord(BaseModel):
    id: UUID = Field(..., serialization_alias="_id")
    name: str
    email: str
    pending_tasks: list[str] = Field(
        default_factory=list, serialization_alias="pendingTasks"
    )
    date_created: datetime = Field(..., serialization_alias="dateCreated")

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("date_created")
    def serialize_in_utc(self, value: datetime) -> datetime:
        return as_utc(value)


def serialize_task(task: Task) -> dict[str, Any]:
    return TaskRecord.model_validate(task).model_dump(by_alias=True, mode="json")


def serialize_user(user: User) -> dict[str, Any]:
    return UserRecord.model_validate(user).model_dump(by_alias=True, mode="json")
