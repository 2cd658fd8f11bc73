from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional, TypedDict


# PUBLIC_INTERFACE
class TodoStatus(str, Enum):
    """Lifecycle status of a todo item."""

    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"
    BLOCKED = "BLOCKED"


# PUBLIC_INTERFACE
class TodoPriority(str, Enum):
    """Priority of a todo item. Ordering follows ``rank``."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    TodoPriority.LOW: 0,
    TodoPriority.MEDIUM: 1,
    TodoPriority.HIGH: 2,
    TodoPriority.URGENT: 3,
}

_unranked = set(TodoPriority) - set(_PRIORITY_RANK)
if _unranked:
    raise RuntimeError(f"Priorities without a sort rank: {sorted(p.value for p in _unranked)}")


# PUBLIC_INTERFACE
class NewTodo(TypedDict):
    """
    Fields supplied to the store when creating a todo. The store assigns
    id, created_at and updated_at.
    """

    title: str
    description: Optional[str]
    status: TodoStatus
    priority: TodoPriority
    start_at: Optional[datetime]
    due_at: Optional[datetime]
    completed_at: Optional[datetime]


# PUBLIC_INTERFACE
class TodoEntity(TypedDict):
    """
    Storage representation of a Todo item.

    Fields:
    - id: Opaque unique identifier assigned by the store
    - title: Short title (1..200 chars, trimmed on input via schemas)
    - description: Optional detailed description
    - status / priority: Closed enumerations, see TodoStatus and TodoPriority
    - start_at / due_at: Optional schedule, set by the caller
    - completed_at: Set when the todo is moved to DONE through an update
    - created_at / updated_at: Aware UTC timestamps maintained by the store
    """

    id: str
    title: str
    description: Optional[str]
    status: TodoStatus
    priority: TodoPriority
    start_at: Optional[datetime]
    due_at: Optional[datetime]
    completed_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime
