"""
Load a sample set of todos into the configured backend.

Usage:
    python -m todo_api.seed

Existing todos are removed first. DONE samples carry their own completion
timestamps, so records are written through the repository rather than the
service's create path (which never stamps completion).
"""
from __future__ import annotations

import asyncio
from typing import List, Optional

from .logging_config import get_logger
from .models import NewTodo, TodoEntity, TodoPriority, TodoStatus
from .repositories import Repository, get_repository
from .timefmt import parse_datetime

logger = get_logger(__name__)

# (title, description, status, priority, start_at, due_at, completed_at)
SAMPLE_TODOS = [
    ("Setup project", "Setup initial project structure with FastAPI and SQLite",
     TodoStatus.DONE, TodoPriority.HIGH, "2024-01-01T09:00:00Z", "2024-01-05T17:00:00Z", "2024-01-03T15:30:00Z"),
    ("Implement authentication", "Login and register flow with JWT",
     TodoStatus.IN_PROGRESS, TodoPriority.HIGH, "2024-01-10T09:00:00Z", "2024-01-15T17:00:00Z", None),
    ("Build UI components", "Base components for the todo board",
     TodoStatus.TODO, TodoPriority.MEDIUM, None, "2024-01-20T17:00:00Z", None),
    ("Setup database schema", "Todo table with status and priority columns",
     TodoStatus.DONE, TodoPriority.HIGH, "2024-01-02T10:00:00Z", "2024-01-04T17:00:00Z", "2024-01-03T14:20:00Z"),
    ("Implement CRUD API for todos", "GET, POST, PUT and DELETE endpoints",
     TodoStatus.IN_PROGRESS, TodoPriority.HIGH, "2024-01-08T09:00:00Z", "2024-01-12T17:00:00Z", None),
    ("Setup testing framework", "pytest for unit and integration tests",
     TodoStatus.TODO, TodoPriority.MEDIUM, None, "2024-01-25T17:00:00Z", None),
    ("Real-time updates", "Push todo changes to clients with Server-Sent Events",
     TodoStatus.TODO, TodoPriority.LOW, None, "2024-02-01T17:00:00Z", None),
    ("Setup CI/CD pipeline", "Automated testing and deployment",
     TodoStatus.TODO, TodoPriority.MEDIUM, None, "2024-01-30T17:00:00Z", None),
    ("Performance tuning", "Caching and query optimisation",
     TodoStatus.TODO, TodoPriority.LOW, None, "2024-02-10T17:00:00Z", None),
    ("Bug fix: login not working", "JWT validation fails in middleware",
     TodoStatus.BLOCKED, TodoPriority.URGENT, "2024-01-12T14:00:00Z", "2024-01-13T17:00:00Z", None),
    ("API documentation", "Publish the OpenAPI description",
     TodoStatus.TODO, TodoPriority.LOW, None, "2024-02-15T17:00:00Z", None),
    ("Monitoring and logging", "Structured logs and error tracking",
     TodoStatus.TODO, TodoPriority.MEDIUM, None, "2024-02-05T17:00:00Z", None),
]


# PUBLIC_INTERFACE
async def seed_todos(repository: Repository) -> List[TodoEntity]:
    """Replace the repository contents with SAMPLE_TODOS and return the created entities."""
    removed = await repository.delete_all()
    logger.info("Removed %d existing todos", removed)

    created = []
    for title, description, status, priority, start_at, due_at, completed_at in SAMPLE_TODOS:
        record: NewTodo = {
            "title": title,
            "description": description,
            "status": status,
            "priority": priority,
            "start_at": parse_datetime(start_at),
            "due_at": parse_datetime(due_at),
            "completed_at": parse_datetime(completed_at),
        }
        created.append(await repository.create(record))

    logger.info("Seeded %d todos", len(created))
    return created


def main(repository: Optional[Repository] = None) -> None:
    asyncio.run(seed_todos(repository or get_repository()))


if __name__ == "__main__":
    main()
