from __future__ import annotations

from typing import Any

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


# PUBLIC_INTERFACE
def envelope(data: Any, message: str, success: bool) -> dict:
    """
    Build the standard response envelope.

    Args:
        data: Payload (pydantic models are serialized by alias), or None.
        message: Human-readable outcome message.
        success: Whether the operation succeeded.

    Returns:
        Dict with keys: data, message, success.
    """
    return {
        "data": jsonable_encoder(data, by_alias=True),
        "message": message,
        "success": success,
    }


# PUBLIC_INTERFACE
def envelope_response(status_code: int, message: str, data: Any = None) -> JSONResponse:
    """JSONResponse carrying an envelope; success is derived from the status code."""
    return JSONResponse(
        status_code=status_code,
        content=envelope(data, message, success=status_code < 400),
    )
