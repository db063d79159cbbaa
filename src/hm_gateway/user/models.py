"""Domain model for users."""

from dataclasses import dataclass


@dataclass
class User:
    id: int
    username: str
    password_hash: str
    created_at: str | None
    updated_at: str | None
