"""Pydantic request/response schemas for the users endpoints.

All responses are wrapped in ApiResponse at the router layer. The password
hash never leaves the service.
"""

from pydantic import Field

from src.hm_common.schemas import JsonModel


class RegisterRequest(JsonModel):
    username: str = Field(..., min_length=1, max_length=64)
    password: str = Field(..., min_length=1, max_length=128)


class LoginRequest(JsonModel):
    username: str
    password: str


class LoginResponse(JsonModel):
    id: int
    username: str
    token: str


class CreateUserRequest(RegisterRequest):
    pass


class UpdateUserRequest(JsonModel):
    username: str = ""
    # Re-hashed when non-empty
    password: str = ""


class UserDetail(JsonModel):
    id: int
    username: str
    created_at: str | None = None
    updated_at: str | None = None
