from datetime import datetime, timedelta, timezone

import pytest

from todo_api.db import SQLiteRepository
from todo_api.errors import StoreError, TodoNotFoundError
from todo_api.models import TodoPriority, TodoStatus
from todo_api.repositories import InMemoryRepository, ListQuery, get_repository
from todo_api.settings import get_settings

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


class Clock:
    def __init__(self):
        self.current = NOW

    def __call__(self):
        self.current += timedelta(seconds=1)
        return self.current


def record(title, status=TodoStatus.TODO, priority=TodoPriority.MEDIUM, description=None, due_at=None):
    return {
        "title": title,
        "description": description,
        "status": status,
        "priority": priority,
        "start_at": None,
        "due_at": due_at,
        "completed_at": None,
    }


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    if request.param == "memory":
        return InMemoryRepository(now=Clock())
    return SQLiteRepository(str(tmp_path / "todos.db"), now=Clock())


class TestContract:
    async def test_create_assigns_identity_and_timestamps(self, store):
        a = await store.create(record("a"))
        b = await store.create(record("b"))
        assert a["id"] != b["id"]
        assert a["created_at"] == a["updated_at"]
        assert a["created_at"].tzinfo is not None
        assert await store.get(a["id"]) == a

    async def test_get_missing(self, store):
        assert await store.get("missing") is None

    async def test_update_and_clear(self, store):
        due = NOW + timedelta(days=1)
        todo = await store.create(record("a", due_at=due))
        updated = await store.update(
            todo["id"], {"status": TodoStatus.DONE, "completed_at": NOW, "description": "d"}
        )
        assert updated["status"] is TodoStatus.DONE
        assert updated["completed_at"] == NOW
        assert updated["due_at"] == due
        assert updated["updated_at"] > todo["updated_at"]

        cleared = await store.update(todo["id"], {"due_at": None, "completed_at": None})
        assert cleared["due_at"] is None
        assert cleared["completed_at"] is None
        assert cleared["description"] == "d"

    async def test_update_rejects_unknown_fields(self, store):
        todo = await store.create(record("a"))
        with pytest.raises(ValueError):
            await store.update(todo["id"], {"created_at": NOW})

    async def test_update_missing_raises(self, store):
        with pytest.raises(TodoNotFoundError):
            await store.update("missing", {"title": "x"})

    async def test_delete(self, store):
        todo = await store.create(record("a"))
        await store.delete(todo["id"])
        assert await store.get(todo["id"]) is None
        with pytest.raises(TodoNotFoundError):
            await store.delete(todo["id"])

    async def test_delete_all(self, store):
        await store.create(record("a"))
        await store.create(record("b"))
        assert await store.delete_all() == 2
        assert await store.count(ListQuery()) == 0


class TestQueries:
    async def test_default_order(self, store):
        await store.create(record("low", priority=TodoPriority.LOW))
        await store.create(record("urgent-late", priority=TodoPriority.URGENT, due_at=NOW + timedelta(days=9)))
        await store.create(record("urgent-none", priority=TodoPriority.URGENT))
        await store.create(record("urgent-early", priority=TodoPriority.URGENT, due_at=NOW + timedelta(days=1)))
        await store.create(record("high", priority=TodoPriority.HIGH))
        titles = [t["title"] for t in await store.find_many(ListQuery())]
        assert titles == ["urgent-early", "urgent-late", "urgent-none", "high", "low"]

    async def test_recent_order_and_limit(self, store):
        for i in range(4):
            await store.create(record(f"t{i}"))
        titles = [t["title"] for t in await store.find_many(ListQuery(order="recent", limit=2))]
        assert titles == ["t3", "t2"]

    async def test_offset(self, store):
        for i in range(4):
            await store.create(record(f"t{i}"))
        page = await store.find_many(ListQuery(order="recent", offset=3, limit=10))
        assert [t["title"] for t in page] == ["t0"]

    async def test_search_title_or_description(self, store):
        await store.create(record("Buy Milk"))
        await store.create(record("Errand", description="pick up milk"))
        await store.create(record("Other", description=None))
        query = ListQuery(search="MiLk")
        assert await store.count(query) == 2
        assert {t["title"] for t in await store.find_many(query)} == {"Buy Milk", "Errand"}

    async def test_search_folds_non_ascii_case(self, store):
        await store.create(record("Ärger mit Ölheizung"))
        await store.create(record("Heizung", description="ÜBERPRÜFUNG fällig"))
        await store.create(record("Other"))
        assert [t["title"] for t in await store.find_many(ListQuery(search="ärger"))] == ["Ärger mit Ölheizung"]
        assert await store.count(ListQuery(search="überprüfung")) == 1
        assert await store.count(ListQuery(search="ÖLHEIZUNG")) == 1

    async def test_overdue_filter(self, store):
        await store.create(record("past", due_at=NOW - timedelta(days=1)))
        await store.create(record("past-done", status=TodoStatus.DONE, due_at=NOW - timedelta(days=2)))
        await store.create(record("future", due_at=NOW + timedelta(days=1)))
        await store.create(record("none"))
        query = ListQuery(due_before=NOW, exclude_status=TodoStatus.DONE, order="overdue")
        assert [t["title"] for t in await store.find_many(query)] == ["past"]
        assert await store.count(query) == 1

    async def test_status_and_priority_filters(self, store):
        await store.create(record("a", status=TodoStatus.BLOCKED, priority=TodoPriority.HIGH))
        await store.create(record("b", status=TodoStatus.BLOCKED))
        await store.create(record("c", priority=TodoPriority.HIGH))
        assert await store.count(ListQuery(status=TodoStatus.BLOCKED)) == 2
        assert await store.count(ListQuery(priority=TodoPriority.HIGH)) == 2
        assert await store.count(ListQuery(status=TodoStatus.BLOCKED, priority=TodoPriority.HIGH)) == 1

    def test_unknown_order(self):
        with pytest.raises(ValueError):
            ListQuery(order="random")


class TestSQLiteSpecifics:
    async def test_persists_across_instances(self, tmp_path):
        path = str(tmp_path / "nested" / "todos.db")
        first = SQLiteRepository(path)
        todo = await first.create(record("kept"))
        second = SQLiteRepository(path)
        assert (await second.get(todo["id"]))["title"] == "kept"

    async def test_backend_errors_are_wrapped(self, tmp_path):
        repo = SQLiteRepository(str(tmp_path / "todos.db"))
        repo._db_path = str(tmp_path / "missing-dir" / "todos.db")
        with pytest.raises(StoreError):
            await repo.count(ListQuery())


class TestFactory:
    def test_memory_default(self, monkeypatch):
        monkeypatch.setenv("PERSISTENCE_BACKEND", "memory")
        assert isinstance(get_repository(), InMemoryRepository)

    def test_sqlite(self, monkeypatch, tmp_path):
        monkeypatch.setenv("PERSISTENCE_BACKEND", "sqlite")
        monkeypatch.setenv("SQLITE_DB_PATH", str(tmp_path / "db" / "todos.db"))
        assert isinstance(get_repository(get_settings()), SQLiteRepository)
        assert (tmp_path / "db" / "todos.db").exists()
