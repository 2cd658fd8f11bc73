from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from threading import RLock
from typing import Any, Callable, Iterable, List, Mapping, Optional

from .errors import TodoNotFoundError
from .models import NewTodo, TodoEntity, TodoPriority, TodoStatus
from .settings import Settings, get_settings
from .timefmt import utc_now

# Fields that may be changed after creation
MUTABLE_FIELDS = frozenset(
    {"title", "description", "status", "priority", "start_at", "due_at", "completed_at"}
)

# Sort orders understood by find_many:
# - default: priority desc, due_at asc (nulls last), created_at desc
# - status:  priority desc, due_at asc (nulls last)
# - overdue: due_at asc (nulls last)
# - recent:  created_at desc
ORDERS = frozenset({"default", "status", "overdue", "recent"})

_EARLIEST = datetime.min.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class ListQuery:
    """
    Filter, order and page selection for find_many/count.
    count ignores order, offset and limit.
    """
    status: Optional[TodoStatus] = None
    exclude_status: Optional[TodoStatus] = None
    priority: Optional[TodoPriority] = None
    search: Optional[str] = None
    due_before: Optional[datetime] = None
    order: str = "default"
    offset: int = 0
    limit: Optional[int] = None  # None means no limit

    def __post_init__(self) -> None:
        if self.order not in ORDERS:
            raise ValueError(f"Unknown order {self.order!r}; expected one of {sorted(ORDERS)}")


# PUBLIC_INTERFACE
class Repository(ABC):
    """Abstract async repository contract for todo storage backends."""

    @abstractmethod
    async def create(self, record: NewTodo) -> TodoEntity:
        """Persist a new todo, assigning id/created_at/updated_at, and return it."""

    @abstractmethod
    async def get(self, todo_id: str) -> Optional[TodoEntity]:
        """Return a TodoEntity by id, or None if not found."""

    @abstractmethod
    async def find_many(self, query: ListQuery) -> List[TodoEntity]:
        """
        Return the TodoEntities matching the query filters, ordered and sliced.
        - Status/priority equality, status exclusion
        - Case-insensitive substring search across title OR description
        - due_before: due_at strictly earlier than the given instant
        """

    @abstractmethod
    async def count(self, query: ListQuery) -> int:
        """Return how many TodoEntities match the query filters."""

    @abstractmethod
    async def update(self, todo_id: str, changes: Mapping[str, Any]) -> TodoEntity:
        """
        Apply changes to an existing todo and bump updated_at.
        Raises TodoNotFoundError if no todo has this id.
        """

    @abstractmethod
    async def delete(self, todo_id: str) -> None:
        """Delete a todo. Raises TodoNotFoundError if no todo has this id."""

    @abstractmethod
    async def delete_all(self) -> int:
        """Delete every todo and return how many were removed."""


def check_changes(changes: Mapping[str, Any]) -> None:
    unknown = set(changes) - MUTABLE_FIELDS
    if unknown:
        raise ValueError(f"Fields cannot be updated: {sorted(unknown)}")


def matches(todo: TodoEntity, query: ListQuery) -> bool:
    """Evaluate the filter part of a ListQuery against one entity."""
    if query.status is not None and todo["status"] != query.status:
        return False
    if query.exclude_status is not None and todo["status"] == query.exclude_status:
        return False
    if query.priority is not None and todo["priority"] != query.priority:
        return False
    if query.due_before is not None:
        if todo["due_at"] is None or not todo["due_at"] < query.due_before:
            return False
    if query.search:
        s = query.search.lower()
        title_ok = s in todo["title"].lower()
        desc_ok = s in todo["description"].lower() if todo["description"] else False
        if not (title_ok or desc_ok):
            return False
    return True


def sort_todos(items: Iterable[TodoEntity], order: str) -> List[TodoEntity]:
    """Order entities by applying stable sorts from the last tie-break to the first."""
    result = list(items)
    if order in ("default", "recent"):
        result.sort(key=lambda t: t["created_at"], reverse=True)
    if order in ("default", "status", "overdue"):
        result.sort(key=lambda t: (t["due_at"] is None, t["due_at"] or _EARLIEST))
    if order in ("default", "status"):
        result.sort(key=lambda t: t["priority"].rank, reverse=True)
    return result


class InMemoryRepository(Repository):
    """
    Thread-safe in-memory repository suitable for testing and default runtime.
    """

    def __init__(self, now: Optional[Callable[[], datetime]] = None) -> None:
        self._lock = RLock()
        self._items: dict[str, TodoEntity] = {}
        self._now = now or utc_now

    async def create(self, record: NewTodo) -> TodoEntity:
        now = self._now()
        entity: TodoEntity = {
            "id": str(uuid.uuid4()),
            "title": record["title"],
            "description": record["description"],
            "status": record["status"],
            "priority": record["priority"],
            "start_at": record["start_at"],
            "due_at": record["due_at"],
            "completed_at": record["completed_at"],
            "created_at": now,
            "updated_at": now,
        }
        with self._lock:
            self._items[entity["id"]] = entity
        return entity.copy()  # type: ignore[return-value]

    async def get(self, todo_id: str) -> Optional[TodoEntity]:
        with self._lock:
            item = self._items.get(todo_id)
            return None if item is None else item.copy()  # type: ignore[return-value]

    async def find_many(self, query: ListQuery) -> List[TodoEntity]:
        with self._lock:
            items = [t for t in self._items.values() if matches(t, query)]

        ordered = sort_todos(items, query.order)
        start = max(query.offset, 0)
        end = None if query.limit is None else start + max(query.limit, 0)
        # Return copies to avoid external mutation
        return [t.copy() for t in ordered[start:end]]  # type: ignore[misc]

    async def count(self, query: ListQuery) -> int:
        with self._lock:
            return sum(1 for t in self._items.values() if matches(t, query))

    async def update(self, todo_id: str, changes: Mapping[str, Any]) -> TodoEntity:
        check_changes(changes)
        with self._lock:
            existing = self._items.get(todo_id)
            if existing is None:
                raise TodoNotFoundError(todo_id)

            updated = existing.copy()
            updated.update(changes)  # type: ignore[typeddict-item]
            updated["updated_at"] = self._now()

            self._items[todo_id] = updated
            return updated.copy()  # type: ignore[return-value]

    async def delete(self, todo_id: str) -> None:
        with self._lock:
            if self._items.pop(todo_id, None) is None:
                raise TodoNotFoundError(todo_id)

    async def delete_all(self) -> int:
        with self._lock:
            removed = len(self._items)
            self._items.clear()
            return removed


# PUBLIC_INTERFACE
def get_repository(settings: Optional[Settings] = None) -> Repository:
    """
    Factory to return the configured repository based on settings.
    - memory: InMemoryRepository
    - sqlite: SQLiteRepository
    """
    settings = settings or get_settings()
    if settings.persistence_backend == "sqlite":
        from .db import SQLiteRepository

        return SQLiteRepository(settings.sqlite_db_path)
    return InMemoryRepository()
