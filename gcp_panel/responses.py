"""JSON envelope helpers shared by the API routes."""

from __future__ import annotations

from typing import Any

from fastapi.responses import JSONResponse


def success_response(*, status_code: int = 200, **fields: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": True, **fields})


def error_response(*, status_code: int, message: str, **fields: Any) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message, **fields},
    )
