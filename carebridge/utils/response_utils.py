"""
Standard JSON envelopes for the HTTP service.
"""
from typing import Any, Dict, List, Optional

from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


def _envelope(status: str, message: str, data: Optional[Any], **extra) -> Dict[str, Any]:
    body = {
        "status": status,
        "message": message,
        "data": data if data is not None else {},
    }
    body.update(extra)
    return body


def success_response(
    message: str = "Response was successful",
    data: Optional[Any] = None,
    status_code: int = 200,
    **extra
) -> JSONResponse:
    """``{"status": "success", "message", "data"}`` plus any extra fields."""
    return JSONResponse(content=_envelope("success", message, data, **extra), status_code=status_code)


def error_response(
    message: str = "An error occurred",
    data: Optional[Any] = None,
    status_code: int = 400,
    **extra
) -> JSONResponse:
    """``{"status": "error", "message", "data"}`` plus any extra fields (e.g. ``code``, ``path``)."""
    return JSONResponse(content=_envelope("error", message, data, **extra), status_code=status_code)


def validation_details(exc: RequestValidationError) -> List[Dict[str, str]]:
    return [
        {
            "field": ".".join(str(x) for x in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
