from __future__ import annotations

import asyncio
from datetime import datetime, timezone, tzinfo
from typing import Any, Callable, Dict, List, Optional, Tuple

from .errors import TodoNotFoundError
from .logging_config import get_logger
from .models import NewTodo, TodoEntity, TodoStatus
from .repositories import ListQuery, Repository
from .schemas import TodoCreate, TodoOut, TodoQuery, TodoStats, TodoUpdate
from .timefmt import (
    format_time_for_display,
    is_overdue,
    parse_datetime,
    time_until_due,
    to_iso,
    utc_now,
)

logger = get_logger(__name__)

# Non-nullable columns: an explicit null in an update is ignored
_REQUIRED_FIELDS = ("title", "status", "priority")
# Nullable columns: an explicit null in an update clears the value
_NULLABLE_FIELDS = ("description", "start_at", "due_at", "completed_at")


# PUBLIC_INTERFACE
class TodoService:
    """
    Todo lifecycle rules on top of an injected Repository.

    Args:
        repository: Storage backend. The service holds no other state.
        now: Clock used for completion stamps, overdue checks and display fields.
        display_tz: Timezone for the *_formatted display strings.
    """

    def __init__(
        self,
        repository: Repository,
        now: Optional[Callable[[], datetime]] = None,
        display_tz: tzinfo = timezone.utc,
    ) -> None:
        self._repo = repository
        self._now = now or utc_now
        self._display_tz = display_tz

    def format_todo(self, todo: TodoEntity) -> TodoOut:
        """Serialize timestamps and add the human-readable display fields."""
        now = self._now()

        def display(value: Optional[datetime]) -> str:
            return format_time_for_display(value, show_time=True, style="short", tz=self._display_tz)

        due_at = todo["due_at"]
        return TodoOut(
            id=todo["id"],
            title=todo["title"],
            description=todo["description"],
            status=todo["status"],
            priority=todo["priority"],
            start_at=to_iso(todo["start_at"]),
            due_at=to_iso(due_at),
            completed_at=to_iso(todo["completed_at"]),
            created_at=to_iso(todo["created_at"]),
            updated_at=to_iso(todo["updated_at"]),
            start_at_formatted=display(todo["start_at"]),
            due_at_formatted=display(due_at),
            completed_at_formatted=display(todo["completed_at"]),
            created_at_formatted=display(todo["created_at"]),
            updated_at_formatted=display(todo["updated_at"]),
            is_overdue=is_overdue(due_at, now),
            time_until_due=time_until_due(due_at, now) if due_at is not None else None,
            time_since_created=format_time_for_display(todo["created_at"], show_relative=True, now=now),
        )

    def _format_all(self, todos: List[TodoEntity]) -> List[TodoOut]:
        return [self.format_todo(t) for t in todos]

    async def list_todos(self, query: TodoQuery) -> Tuple[List[TodoOut], int]:
        """
        Filter, sort and paginate todos.

        Returns the requested page and the number of todos matching the
        filters before pagination.
        """
        filters = ListQuery(
            status=query.status,
            priority=query.priority,
            search=query.search or None,
            order="default",
            offset=(query.page - 1) * query.limit,
            limit=query.limit,
        )
        todos, total = await asyncio.gather(
            self._repo.find_many(filters),
            self._repo.count(filters),
        )
        return self._format_all(todos), total

    async def get_todo(self, todo_id: str) -> Optional[TodoOut]:
        todo = await self._repo.get(todo_id)
        if todo is None:
            return None
        return self.format_todo(todo)

    async def create_todo(self, data: TodoCreate) -> TodoOut:
        """
        Create a todo. Unparseable startAt/dueAt values are stored as null.

        completed_at always starts out null, even when the todo is created
        directly as DONE; only the update path stamps completion.
        """
        record: NewTodo = {
            "title": data.title,
            "description": data.description,
            "status": data.status,
            "priority": data.priority,
            "start_at": parse_datetime(data.start_at),
            "due_at": parse_datetime(data.due_at),
            "completed_at": None,
        }
        todo = await self._repo.create(record)
        logger.info("Created todo %s (%s, %s)", todo["id"], todo["status"].value, todo["priority"].value)
        return self.format_todo(todo)

    def _build_changes(self, data: TodoUpdate, current_status: Optional[TodoStatus] = None) -> Dict[str, Any]:
        provided = data.model_fields_set
        changes: Dict[str, Any] = {}
        for name in _REQUIRED_FIELDS:
            value = getattr(data, name)
            if name in provided and value is not None:
                changes[name] = value
        for name in _NULLABLE_FIELDS:
            if name in provided:
                changes[name] = getattr(data, name)

        status = changes.get("status")
        if status is TodoStatus.DONE:
            if changes.get("completed_at") is None:
                changes["completed_at"] = self._now()
        elif status is not None:
            # An explicit completedAt survives only when the status is unchanged
            if not (status == current_status and "completed_at" in provided):
                changes["completed_at"] = None
        return changes

    async def update_todo(self, todo_id: str, data: TodoUpdate) -> Optional[TodoOut]:
        """
        Apply a partial update. Returns None if the todo does not exist.

        Completion bookkeeping:
        - status -> DONE without completedAt stamps completed_at with now
        - status -> anything else clears completed_at, unless the status is
          unchanged and completedAt is sent in the same call
        - completedAt alone (no status change) is stored as given
        """
        current_status = None
        if data.status not in (None, TodoStatus.DONE) and "completed_at" in data.model_fields_set:
            current = await self._repo.get(todo_id)
            if current is None:
                logger.info("Update skipped, todo %s not found", todo_id)
                return None
            current_status = current["status"]
        changes = self._build_changes(data, current_status)
        try:
            todo = await self._repo.update(todo_id, changes)
        except TodoNotFoundError:
            logger.info("Update skipped, todo %s not found", todo_id)
            return None
        logger.info("Updated todo %s fields=%s", todo_id, sorted(changes))
        return self.format_todo(todo)

    async def delete_todo(self, todo_id: str) -> bool:
        """Delete a todo. Returns False (never raises) when it does not exist."""
        try:
            await self._repo.delete(todo_id)
        except TodoNotFoundError:
            logger.info("Delete skipped, todo %s not found", todo_id)
            return False
        logger.info("Deleted todo %s", todo_id)
        return True

    async def get_todos_by_status(self, status: TodoStatus) -> List[TodoOut]:
        todos = await self._repo.find_many(ListQuery(status=status, order="status"))
        return self._format_all(todos)

    async def get_overdue_todos(self) -> List[TodoOut]:
        """
        Todos whose due date has passed and that are not DONE, earliest first.
        """
        query = ListQuery(due_before=self._now(), exclude_status=TodoStatus.DONE, order="overdue")
        todos = await self._repo.find_many(query)
        return self._format_all(todos)

    async def get_stats(self) -> TodoStats:
        """
        Dashboard counters plus the five most recently created todos.
        The store queries run concurrently and are not a consistent snapshot.
        """
        overdue = ListQuery(due_before=self._now(), exclude_status=TodoStatus.DONE)
        (
            total,
            completed,
            in_progress,
            todo,
            blocked,
            overdue_count,
            recent,
        ) = await asyncio.gather(
            self._repo.count(ListQuery()),
            self._repo.count(ListQuery(status=TodoStatus.DONE)),
            self._repo.count(ListQuery(status=TodoStatus.IN_PROGRESS)),
            self._repo.count(ListQuery(status=TodoStatus.TODO)),
            self._repo.count(ListQuery(status=TodoStatus.BLOCKED)),
            self._repo.count(overdue),
            self._repo.find_many(ListQuery(order="recent", limit=5)),
        )
        return TodoStats(
            total=total,
            completed=completed,
            in_progress=in_progress,
            todo=todo,
            blocked=blocked,
            overdue=overdue_count,
            recent_created=self._format_all(recent),
        )
