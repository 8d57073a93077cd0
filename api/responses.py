"""
Response helpers.

All responses share one envelope:
    {"status": "success", "data": ..., "message"?: ...}
    {"status": "error", "message": ..., "code": ...}
"""

import functools
import json
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from aiohttp import web


def _default(value: Any) -> Any:
    """JSON encoder fallback for Decimal, datetime and models."""
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime | date):
        return value.isoformat()
    if hasattr(value, "to_dict"):
        return value.to_dict()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


json_dumps = functools.partial(json.dumps, default=_default)


def success(
    data: Any = None, message: str | None = None, status: int = 200
) -> web.Response:
    """
    Build success response.

    Args:
        data: Payload
        message: Optional human-readable message
        status: HTTP status

    Returns:
        JSON response
    """
    body: dict[str, Any] = {"status": "success", "data": data}
    if message:
        body["message"] = message
    return web.json_response(body, status=status, dumps=json_dumps)


def error(message: str, code: str, status: int = 400) -> web.Response:
    """
    Build error response.

    Args:
        message: Human-readable message
        code: Stable error code
        status: HTTP status

    Returns:
        JSON response
    """
    return web.json_response(
        {"status": "error", "message": message, "code": code},
        status=status,
        dumps=json_dumps,
    )
