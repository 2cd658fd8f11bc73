from __future__ import annotations


class TodoNotFoundError(LookupError):
    """Raised by a repository when no row matches the given todo id."""

    def __init__(self, todo_id: str) -> None:
        super().__init__(f"Todo {todo_id!r} not found")
        self.todo_id = todo_id


class StoreError(RuntimeError):
    """Raised by a repository when the storage backend fails unexpectedly."""
