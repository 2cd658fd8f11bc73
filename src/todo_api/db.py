from __future__ import annotations

import asyncio
import os
import sqlite3
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Generator, List, Mapping, Optional, Tuple

from .errors import StoreError, TodoNotFoundError
from .models import NewTodo, TodoEntity, TodoPriority, TodoStatus
from .repositories import ListQuery, Repository, check_changes
from .timefmt import utc_now


@dataclass(frozen=True)
class _Cols:
    table: str = "todos"
    id: str = "id"
    title: str = "title"
    description: str = "description"
    status: str = "status"
    priority: str = "priority"
    start_at: str = "start_at"
    due_at: str = "due_at"
    completed_at: str = "completed_at"
    created_at: str = "created_at"
    updated_at: str = "updated_at"


_COLS = _Cols()
_DATETIME_COLS = frozenset({"start_at", "due_at", "completed_at", "created_at", "updated_at"})

_PRIORITY_RANK_SQL = "CASE {col} {whens} END".format(
    col=_COLS.priority,
    whens=" ".join(f"WHEN '{p.value}' THEN {p.rank}" for p in TodoPriority),
)
_DUE_ASC_NULLS_LAST = f"{_COLS.due_at} IS NULL, {_COLS.due_at} ASC"
_ORDER_SQL = {
    "default": f"{_PRIORITY_RANK_SQL} DESC, {_DUE_ASC_NULLS_LAST}, {_COLS.created_at} DESC",
    "status": f"{_PRIORITY_RANK_SQL} DESC, {_DUE_ASC_NULLS_LAST}",
    "overdue": _DUE_ASC_NULLS_LAST,
    "recent": f"{_COLS.created_at} DESC",
}


def _dump_dt(value: Optional[datetime]) -> Optional[str]:
    # Fixed-width UTC text so that string order equals time order
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f+00:00")


def _load_dt(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromisoformat(value)


def _dump_value(field: str, value: Any) -> Any:
    if field in _DATETIME_COLS:
        return _dump_dt(value)
    if isinstance(value, (TodoStatus, TodoPriority)):
        return value.value
    return value


class SQLiteRepository(Repository):
    """
    Lightweight SQLite repository implementing the Repository interface.

    Each call opens its own connection and runs in a worker thread so the
    event loop is never blocked on disk I/O.
    """

    def __init__(self, db_path: str, now: Optional[Callable[[], datetime]] = None) -> None:
        os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        self._db_path = db_path
        self._now = now or utc_now
        self._run(self._init_db)

    @contextmanager
    def _conn(self) -> Generator[sqlite3.Connection, None, None]:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        # SQLite lower() only folds ASCII
        conn.create_function("py_lower", 1, str.lower, deterministic=True)
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def _run(self, fn: Callable[[sqlite3.Connection], Any]) -> Any:
        try:
            with self._conn() as conn:
                return fn(conn)
        except sqlite3.Error as exc:
            raise StoreError(f"SQLite operation failed: {exc}") from exc

    async def _run_async(self, fn: Callable[[sqlite3.Connection], Any]) -> Any:
        return await asyncio.to_thread(self._run, fn)

    def _init_db(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {_COLS.table} (
                {_COLS.id} TEXT PRIMARY KEY,
                {_COLS.title} TEXT NOT NULL,
                {_COLS.description} TEXT NULL,
                {_COLS.status} TEXT NOT NULL DEFAULT '{TodoStatus.TODO.value}',
                {_COLS.priority} TEXT NOT NULL DEFAULT '{TodoPriority.MEDIUM.value}',
                {_COLS.start_at} TEXT NULL,
                {_COLS.due_at} TEXT NULL,
                {_COLS.completed_at} TEXT NULL,
                {_COLS.created_at} TEXT NOT NULL,
                {_COLS.updated_at} TEXT NOT NULL
            )
            """
        )
        for col in (_COLS.status, _COLS.priority, _COLS.due_at, _COLS.created_at):
            conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{_COLS.table}_{col} ON {_COLS.table}({col})"
            )

    def _row_to_entity(self, row: sqlite3.Row) -> TodoEntity:
        return {
            "id": str(row[_COLS.id]),
            "title": str(row[_COLS.title]),
            "description": row[_COLS.description],
            "status": TodoStatus(row[_COLS.status]),
            "priority": TodoPriority(row[_COLS.priority]),
            "start_at": _load_dt(row[_COLS.start_at]),
            "due_at": _load_dt(row[_COLS.due_at]),
            "completed_at": _load_dt(row[_COLS.completed_at]),
            "created_at": _load_dt(row[_COLS.created_at]),  # type: ignore
            "updated_at": _load_dt(row[_COLS.updated_at]),  # type: ignore
        }

    def _select_one(self, conn: sqlite3.Connection, todo_id: str) -> Optional[sqlite3.Row]:
        return conn.execute(
            f"SELECT * FROM {_COLS.table} WHERE {_COLS.id} = ?", (todo_id,)
        ).fetchone()

    @staticmethod
    def _where(query: ListQuery) -> Tuple[str, list]:
        clauses = []
        params: list = []

        if query.status is not None:
            clauses.append(f"{_COLS.status} = ?")
            params.append(query.status.value)

        if query.exclude_status is not None:
            clauses.append(f"{_COLS.status} != ?")
            params.append(query.exclude_status.value)

        if query.priority is not None:
            clauses.append(f"{_COLS.priority} = ?")
            params.append(query.priority.value)

        if query.due_before is not None:
            clauses.append(f"{_COLS.due_at} IS NOT NULL AND {_COLS.due_at} < ?")
            params.append(_dump_dt(query.due_before))

        if query.search:
            # Case-insensitive substring search on title and description
            clauses.append(
                f"(instr(py_lower({_COLS.title}), ?) > 0 OR instr(py_lower(coalesce({_COLS.description}, '')), ?) > 0)"
            )
            needle = query.search.lower()
            params.extend([needle, needle])

        where_sql = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        return where_sql, params

    async def create(self, record: NewTodo) -> TodoEntity:
        now = _dump_dt(self._now())
        new_id = str(uuid.uuid4())

        def op(conn: sqlite3.Connection) -> TodoEntity:
            conn.execute(
                f"""
                INSERT INTO {_COLS.table} ({_COLS.id}, {_COLS.title}, {_COLS.description}, {_COLS.status},
                    {_COLS.priority}, {_COLS.start_at}, {_COLS.due_at}, {_COLS.completed_at},
                    {_COLS.created_at}, {_COLS.updated_at})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    new_id,
                    record["title"],
                    record["description"],
                    record["status"].value,
                    record["priority"].value,
                    _dump_dt(record["start_at"]),
                    _dump_dt(record["due_at"]),
                    _dump_dt(record["completed_at"]),
                    now,
                    now,
                ),
            )
            row = self._select_one(conn, new_id)
            assert row is not None
            return self._row_to_entity(row)

        return await self._run_async(op)

    async def get(self, todo_id: str) -> Optional[TodoEntity]:
        def op(conn: sqlite3.Connection) -> Optional[TodoEntity]:
            row = self._select_one(conn, todo_id)
            return self._row_to_entity(row) if row else None

        return await self._run_async(op)

    async def find_many(self, query: ListQuery) -> List[TodoEntity]:
        where_sql, params = self._where(query)
        order_sql = f"ORDER BY {_ORDER_SQL[query.order]}"
        # SQLite needs a LIMIT clause before OFFSET; -1 means unbounded
        limit = -1 if query.limit is None else max(query.limit, 0)
        offset = max(query.offset, 0)

        def op(conn: sqlite3.Connection) -> List[TodoEntity]:
            rows = conn.execute(
                f"""
                SELECT * FROM {_COLS.table}
                {where_sql}
                {order_sql}
                LIMIT ? OFFSET ?
                """,
                [*params, limit, offset],
            ).fetchall()
            return [self._row_to_entity(r) for r in rows]

        return await self._run_async(op)

    async def count(self, query: ListQuery) -> int:
        where_sql, params = self._where(query)

        def op(conn: sqlite3.Connection) -> int:
            row = conn.execute(
                f"SELECT COUNT(*) as cnt FROM {_COLS.table} {where_sql}", params
            ).fetchone()
            return int(row["cnt"]) if row else 0

        return await self._run_async(op)

    async def update(self, todo_id: str, changes: Mapping[str, Any]) -> TodoEntity:
        check_changes(changes)
        assignments = [f"{field} = ?" for field in changes]
        values = [_dump_value(field, value) for field, value in changes.items()]
        assignments.append(f"{_COLS.updated_at} = ?")
        values.append(_dump_dt(self._now()))

        def op(conn: sqlite3.Connection) -> TodoEntity:
            cur = conn.execute(
                f"UPDATE {_COLS.table} SET {', '.join(assignments)} WHERE {_COLS.id} = ?",
                (*values, todo_id),
            )
            if cur.rowcount == 0:
                raise TodoNotFoundError(todo_id)
            row = self._select_one(conn, todo_id)
            assert row is not None
            return self._row_to_entity(row)

        return await self._run_async(op)

    async def delete(self, todo_id: str) -> None:
        def op(conn: sqlite3.Connection) -> None:
            cur = conn.execute(f"DELETE FROM {_COLS.table} WHERE {_COLS.id} = ?", (todo_id,))
            if cur.rowcount == 0:
                raise TodoNotFoundError(todo_id)

        await self._run_async(op)

    async def delete_all(self) -> int:
        def op(conn: sqlite3.Connection) -> int:
            return conn.execute(f"DELETE FROM {_COLS.table}").rowcount

        return await self._run_async(op)
