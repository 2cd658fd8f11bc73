"""
Todo tracking service package.

Exposes the TodoService and the FastAPI application factory; the module-level
app lives in todo_api.main.
"""

from .service import TodoService  # noqa: F401
