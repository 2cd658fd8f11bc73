from __future__ import annotations

from datetime import datetime
from typing import Generic, List, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_serializer
from pydantic.alias_generators import to_camel

from .models import TodoPriority, TodoStatus
from .timefmt import parse_datetime

T = TypeVar("T")

# Incoming schedule fields: ISO8601 string, datetime or explicit null
DateTimeInput = Union[datetime, str, None]

_TITLE_MAX = 200


def _clean_title(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    s = v.strip()
    if not (1 <= len(s) <= _TITLE_MAX):
        raise ValueError(f"title length must be between 1 and {_TITLE_MAX} characters")
    return s


def _parse_strict(value: DateTimeInput) -> Optional[datetime]:
    """
    Normalize a datetime input for updates. None clears the field; a string
    that is not ISO8601 is rejected.
    """
    if value is None:
        return None
    parsed = parse_datetime(value)
    if parsed is None:
        raise ValueError("Invalid datetime format. Use an ISO8601 string (e.g., '2025-01-31T13:45:00Z').")
    return parsed


class _CamelModel(BaseModel):
    # Accept both dueAt and due_at on input; FastAPI serializes by alias
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# PUBLIC_INTERFACE
class TodoCreate(_CamelModel):
    """
    Schema for creating a new Todo item.

    startAt/dueAt are kept as raw strings here; the service parses them and
    stores null for anything that is not a valid ISO8601 instant.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Buy groceries",
                "description": "Milk, eggs, bread",
                "status": "TODO",
                "priority": "HIGH",
                "dueAt": "2025-02-01T10:00:00Z",
            }
        },
    )

    title: str = Field(..., description="Short title for the todo item")
    description: Optional[str] = Field(default=None, description="Optional detailed description")
    status: TodoStatus = Field(default=TodoStatus.TODO, description="Initial status")
    priority: TodoPriority = Field(default=TodoPriority.MEDIUM, description="Priority level")
    start_at: Optional[str] = Field(default=None, description="Planned start as an ISO8601 instant")
    due_at: Optional[str] = Field(default=None, description="Deadline as an ISO8601 instant")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """
        Strip whitespace and enforce 1..200 length.
        """
        return _clean_title(v)  # type: ignore[return-value]


# PUBLIC_INTERFACE
class TodoUpdate(_CamelModel):
    """
    Schema for updating an existing Todo item.
    All fields are optional; only fields present in the payload are applied.
    Schedule fields set to null are cleared.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Buy groceries and supplies",
                "status": "DONE",
                "dueAt": None,
            }
        },
    )

    title: Optional[str] = Field(default=None, description="Short title for the todo item")
    description: Optional[str] = Field(default=None, description="Optional detailed description")
    status: Optional[TodoStatus] = Field(default=None, description="New status")
    priority: Optional[TodoPriority] = Field(default=None, description="New priority")
    start_at: Optional[datetime] = Field(default=None, description="Planned start, or null to clear")
    due_at: Optional[datetime] = Field(default=None, description="Deadline, or null to clear")
    completed_at: Optional[datetime] = Field(default=None, description="Completion time, or null to clear")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: Optional[str]) -> Optional[str]:
        """
        If title is provided, strip whitespace and enforce 1..200 length.
        """
        return _clean_title(v)

    @field_validator("start_at", "due_at", "completed_at", mode="before")
    @classmethod
    def parse_datetimes(cls, v: DateTimeInput) -> Optional[datetime]:
        return _parse_strict(v)


# PUBLIC_INTERFACE
class TodoQuery(BaseModel):
    """
    Filters and pagination for listing todos.
    """

    status: Optional[TodoStatus] = None
    priority: Optional[TodoPriority] = None
    search: Optional[str] = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)


# PUBLIC_INTERFACE
class TodoOut(_CamelModel):
    """
    A Todo item as returned by the API, with display fields derived at
    formatting time.
    """

    id: str = Field(..., description="Unique identifier of the todo item")
    title: str
    description: Optional[str] = None
    status: TodoStatus
    priority: TodoPriority
    start_at: Optional[str] = Field(default=None, description="ISO8601 timestamp or null")
    due_at: Optional[str] = Field(default=None, description="ISO8601 timestamp or null")
    completed_at: Optional[str] = Field(default=None, description="ISO8601 timestamp or null")
    created_at: str
    updated_at: str

    start_at_formatted: str = Field(..., description="e.g. '01 Juni 2024, 10:00' or '-'")
    due_at_formatted: str
    completed_at_formatted: str
    created_at_formatted: str
    updated_at_formatted: str

    is_overdue: bool = Field(..., description="dueAt is in the past, regardless of status")
    time_until_due: Optional[str] = Field(default=None, description="Only present when dueAt is set")
    time_since_created: str

    @model_serializer(mode="wrap")
    def _omit_missing_time_until_due(self, handler):
        data = handler(self)
        if self.time_until_due is None:
            data.pop("timeUntilDue", None)
            data.pop("time_until_due", None)
        return data


# PUBLIC_INTERFACE
class TodoListData(_CamelModel):
    todos: List[TodoOut]
    total: int = Field(..., description="Number of todos matching the filters, before pagination")
    page: int
    limit: int


# PUBLIC_INTERFACE
class TodoStats(_CamelModel):
    """Dashboard counters. Status counts partition total; overdue overlaps them."""

    total: int
    completed: int
    in_progress: int
    todo: int
    blocked: int
    overdue: int
    recent_created: List[TodoOut]


# PUBLIC_INTERFACE
class ApiResponse(BaseModel, Generic[T]):
    """
    Uniform response envelope used by every /api/todos endpoint.
    """

    data: Optional[T] = None
    message: str
    success: bool
