from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse

from ..logging_config import get_logger
from ..models import TodoPriority, TodoStatus
from ..schemas import ApiResponse, TodoCreate, TodoListData, TodoOut, TodoQuery, TodoStats, TodoUpdate
from ..service import TodoService
from ..utils import envelope_response

logger = get_logger(__name__)

router = APIRouter(
    prefix="/api/todos",
    tags=["todos"],
)

_ID_REQUIRED = "ID todo diperlukan"
_NOT_FOUND = "Todo tidak ditemukan"

_ERROR_RESPONSES = {
    400: {"model": ApiResponse[None], "description": "Missing or invalid parameter"},
    500: {"model": ApiResponse[None], "description": "Unexpected failure"},
}
_ID_RESPONSES = {
    **_ERROR_RESPONSES,
    404: {"model": ApiResponse[None], "description": "Todo not found"},
}


# PUBLIC_INTERFACE
def get_todo_service(request: Request) -> TodoService:
    """
    Dependency returning the TodoService created by the application factory.
    """
    return request.app.state.todo_service


def _blank(todo_id: str) -> bool:
    return not todo_id.strip()


# PUBLIC_INTERFACE
@router.get(
    "/",
    response_model=ApiResponse[TodoListData],
    summary="List Todos",
    description=(
        "List todos with optional filters and pagination.\n\n"
        "Query parameters:\n"
        "- status / priority: exact match filters\n"
        "- search: case-insensitive text match on title or description\n"
        "- page: 1-based page number (default 1)\n"
        "- limit: page size 1..100 (default 10)\n\n"
        "Sorted by priority (URGENT first), then due date (earliest first, none last), "
        "then newest first."
    ),
    responses=_ERROR_RESPONSES,
)
async def list_todos(
    todo_status: Optional[TodoStatus] = Query(None, alias="status", description="Filter by status"),
    priority: Optional[TodoPriority] = Query(None, description="Filter by priority"),
    search: Optional[str] = Query(None, description="Search text for title/description"),
    page: int = Query(1, ge=1, description="Page number, starting at 1"),
    limit: int = Query(10, ge=1, le=100, description="Maximum number of items per page"),
    service: TodoService = Depends(get_todo_service),
) -> JSONResponse:
    """
    List todos with pagination and filters.
    """
    query = TodoQuery(status=todo_status, priority=priority, search=search, page=page, limit=limit)
    try:
        todos, total = await service.list_todos(query)
    except Exception:
        logger.exception("Failed to list todos")
        return envelope_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Gagal mengambil daftar todo")

    data = TodoListData(todos=todos, total=total, page=page, limit=limit)
    return envelope_response(status.HTTP_200_OK, "Daftar todo berhasil diambil", data)


# PUBLIC_INTERFACE
@router.get(
    "/overdue",
    response_model=ApiResponse[List[TodoOut]],
    summary="List Overdue Todos",
    description="Todos past their due date that are not DONE, earliest due date first.",
    responses=_ERROR_RESPONSES,
)
async def list_overdue_todos(service: TodoService = Depends(get_todo_service)) -> JSONResponse:
    try:
        todos = await service.get_overdue_todos()
    except Exception:
        logger.exception("Failed to list overdue todos")
        return envelope_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Gagal mengambil todo yang terlambat")
    return envelope_response(status.HTTP_200_OK, "Daftar todo yang terlambat berhasil diambil", todos)


# PUBLIC_INTERFACE
@router.get(
    "/stats",
    response_model=ApiResponse[TodoStats],
    summary="Todo Statistics",
    description="Counts per status, overdue count and the five most recently created todos.",
    responses=_ERROR_RESPONSES,
)
async def todo_stats(service: TodoService = Depends(get_todo_service)) -> JSONResponse:
    try:
        stats = await service.get_stats()
    except Exception:
        logger.exception("Failed to compute todo stats")
        return envelope_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Gagal mengambil statistik todo")
    return envelope_response(status.HTTP_200_OK, "Statistik todo berhasil diambil", stats)


# PUBLIC_INTERFACE
@router.get(
    "/status/{todo_status}",
    response_model=ApiResponse[List[TodoOut]],
    summary="List Todos By Status",
    description="All todos with the given status, highest priority first.",
    responses=_ERROR_RESPONSES,
)
async def list_todos_by_status(
    todo_status: TodoStatus,
    service: TodoService = Depends(get_todo_service),
) -> JSONResponse:
    try:
        todos = await service.get_todos_by_status(todo_status)
    except Exception:
        logger.exception("Failed to list todos with status %s", todo_status.value)
        return envelope_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Gagal mengambil todo berdasarkan status")
    return envelope_response(status.HTTP_200_OK, "Daftar todo berdasarkan status berhasil diambil", todos)


# PUBLIC_INTERFACE
@router.get(
    "/{todo_id}",
    response_model=ApiResponse[TodoOut],
    summary="Get Todo",
    description="Get a single Todo item by ID.",
    responses=_ID_RESPONSES,
)
async def get_todo(todo_id: str, service: TodoService = Depends(get_todo_service)) -> JSONResponse:
    """
    Retrieve a single Todo item by its ID.
    """
    if _blank(todo_id):
        return envelope_response(status.HTTP_400_BAD_REQUEST, _ID_REQUIRED)
    try:
        todo = await service.get_todo(todo_id)
    except Exception:
        logger.exception("Failed to get todo %s", todo_id)
        return envelope_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Gagal mengambil todo")

    if todo is None:
        return envelope_response(status.HTTP_404_NOT_FOUND, _NOT_FOUND)
    return envelope_response(status.HTTP_200_OK, "Todo berhasil ditemukan", todo)


# PUBLIC_INTERFACE
@router.post(
    "/",
    response_model=ApiResponse[TodoOut],
    status_code=status.HTTP_201_CREATED,
    summary="Create Todo",
    description="Create a new Todo item and return the created resource.",
    responses=_ERROR_RESPONSES,
)
async def create_todo(payload: TodoCreate, service: TodoService = Depends(get_todo_service)) -> JSONResponse:
    """
    Create a new Todo.
    """
    try:
        todo = await service.create_todo(payload)
    except Exception:
        logger.exception("Failed to create todo")
        return envelope_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Gagal membuat todo")
    return envelope_response(status.HTTP_201_CREATED, "Todo berhasil dibuat", todo)


# PUBLIC_INTERFACE
@router.put(
    "/{todo_id}",
    response_model=ApiResponse[TodoOut],
    summary="Update Todo",
    description=(
        "Partially update fields of a Todo item. Omitted fields are left unchanged; "
        "startAt, dueAt and completedAt may be set to null to clear them. Setting status "
        "to DONE stamps completedAt; any other status clears it."
    ),
    responses=_ID_RESPONSES,
)
async def update_todo(
    todo_id: str,
    payload: TodoUpdate,
    service: TodoService = Depends(get_todo_service),
) -> JSONResponse:
    """
    Partial update of a Todo item.
    """
    if _blank(todo_id):
        return envelope_response(status.HTTP_400_BAD_REQUEST, _ID_REQUIRED)
    try:
        todo = await service.update_todo(todo_id, payload)
    except Exception:
        logger.exception("Failed to update todo %s", todo_id)
        return envelope_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Gagal mengupdate todo")

    if todo is None:
        return envelope_response(status.HTTP_404_NOT_FOUND, _NOT_FOUND)
    return envelope_response(status.HTTP_200_OK, "Todo berhasil diupdate", todo)


# PUBLIC_INTERFACE
@router.delete(
    "/{todo_id}",
    response_model=ApiResponse[None],
    summary="Delete Todo",
    description="Delete a Todo item by ID.",
    responses=_ID_RESPONSES,
)
async def delete_todo(todo_id: str, service: TodoService = Depends(get_todo_service)) -> JSONResponse:
    """
    Delete a Todo. Returns 200 on success, 404 if not found.
    """
    if _blank(todo_id):
        return envelope_response(status.HTTP_400_BAD_REQUEST, _ID_REQUIRED)
    try:
        deleted = await service.delete_todo(todo_id)
    except Exception:
        logger.exception("Failed to delete todo %s", todo_id)
        return envelope_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Gagal menghapus todo")

    if not deleted:
        return envelope_response(status.HTTP_404_NOT_FOUND, _NOT_FOUND)
    return envelope_response(status.HTTP_200_OK, "Todo berhasil dihapus")
