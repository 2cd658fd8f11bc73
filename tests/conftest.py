import os
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

# Ensure we default to memory backend for tests to avoid filesystem dependencies
os.environ.setdefault("PERSISTENCE_BACKEND", "memory")

from todo_api.main import create_app  # noqa: E402
from todo_api.repositories import InMemoryRepository  # noqa: E402
from todo_api.service import TodoService  # noqa: E402

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced clock shared by a repository and a service."""

    def __init__(self, start: datetime = NOW) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current += timedelta(**kwargs)
        return self.current


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def repo(clock):
    return InMemoryRepository(now=clock)


@pytest.fixture
def service(repo, clock):
    return TodoService(repo, now=clock)


@pytest.fixture
def client(service):
    app = create_app(service=service)
    with TestClient(app) as c:
        yield c
