"""Unified API response wrapper.

All API endpoints return this format:
{
    "code": 0,           // 0=success, non-0=error code
    "msg": "ok",
    "data": { ... },     // null on error
    "request_id": "..."
}
"""

import uuid
from typing import Any

from pydantic import BaseModel, Field


class ApiResponse(BaseModel):
    code: int = 0
    msg: str = "ok"
    data: Any = None
    request_id: str = Field(default_factory=lambda: f"req_{uuid.uuid4().hex[:12]}")


def success_response(data: Any = None) -> ApiResponse:
    return ApiResponse(code=0, msg="ok", data=data if data is not None else {})


def error_response(code: int, msg: str) -> ApiResponse:
    return ApiResponse(code=code, msg=msg, data=None)
