from __future__ import annotations

from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .logging_config import get_logger
from .repositories import Repository, get_repository
from .routers import todos as todos_router
from .service import TodoService
from .settings import Settings, get_settings
from .utils import envelope_response

logger = get_logger(__name__)

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {
        "name": "todos",
        "description": "CRUD operations for Todo items with filtering, sorting, pagination and stats.",
    },
]


def _describe_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Validasi gagal"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    return f"Validasi gagal: {location}: {first.get('msg', 'invalid value')}"


# PUBLIC_INTERFACE
def create_app(
    repository: Optional[Repository] = None,
    service: Optional[TodoService] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        repository: Storage backend; defaults to the one selected by settings.
        service: Fully built TodoService; takes precedence over repository.
        settings: Application settings; defaults to get_settings().

    Returns:
        The configured FastAPI app with the service on app.state.todo_service.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Todo API",
        description="Todo tracking service with status/priority lifecycle and human-readable time fields.",
        version="0.1.0",
        openapi_tags=openapi_tags,
    )

    if service is None:
        service = TodoService(repository or get_repository(settings), display_tz=settings.display_tz)
    app.state.todo_service = service
    app.state.settings = settings

    # Configure CORS based on settings (.env -> CORS_ALLOW_ORIGINS), with '*' fallback
    allow_all = (settings.cors_allow_origins == ["*"]) or (len(settings.cors_allow_origins) == 0)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request validation errors use the same envelope as every other response
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """
        Return a 400 envelope for request validation errors.

        Response format:
            {
                "data": null,
                "message": "Validasi gagal: <field>: <reason>",
                "success": false
            }
        """
        logger.info("Rejected %s %s: %s", request.method, request.url.path, exc.errors())
        return envelope_response(status.HTTP_400_BAD_REQUEST, _describe_validation_error(exc))

    # PUBLIC_INTERFACE
    @app.get("/", summary="Health Check", tags=["health"])
    def health_check():
        """
        Health check endpoint.

        Returns:
            A JSON object indicating service health.
        """
        return {"message": "Healthy", "backend": settings.persistence_backend}

    app.include_router(todos_router.router)
    logger.info("Todo API ready (backend=%s)", settings.persistence_backend)
    return app


app = create_app()
