"""User domain service: register, login.

Reads go through the cached users repository; the username UNIQUE
constraint is the final guard against concurrent registrations.
"""

import logging
from typing import Any

from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError

from src.hm_common.errors import (
    RecordNotFoundError,
    UsernameExistsError,
    UsernameOrPasswordError,
)
from src.hm_common.query import Column, Conditions
from src.hm_gateway.auth.jwt_handler import create_access_token
from src.hm_gateway.auth.password import hash_password, needs_rehash, verify_password
from src.hm_gateway.user.models import User
from src.hm_gateway.user.repository import UserRepository

logger = logging.getLogger(__name__)


def user_changes(body: BaseModel) -> dict[str, Any]:
    """Request body → repository changes, hashing the password if one is given."""
    changes = body.model_dump()
    password = changes.pop("password", "")
    changes["password_hash"] = hash_password(password) if password else ""
    return changes


class UserService:
    """Stateless service — instantiate once, reuse across requests."""

    async def find_by_username(self, username: str, repo: UserRepository) -> User | None:
        try:
            return await repo.get_by_condition(
                Conditions(columns=[Column(name="username", exp="=", value=username)])
            )
        except RecordNotFoundError:
            return None

    async def register(self, username: str, password: str, repo: UserRepository) -> User:
        if await self.find_by_username(username, repo) is not None:
            raise UsernameExistsError()
        try:
            return await repo.create(
                {"username": username, "password_hash": hash_password(password)}
            )
        except IntegrityError as exc:
            # Lost a race with a concurrent registration
            raise UsernameExistsError() from exc

    async def login(
        self, username: str, password: str, repo: UserRepository
    ) -> tuple[User, str]:
        """Authenticate and return (user, access_token).

        Note: "User not found" and "Wrong password" both raise UsernameOrPasswordError
        intentionally — prevents username enumeration attacks.
        """
        user = await self.find_by_username(username, repo)
        if user is None:
            logger.info("login failed: unknown username %r", username)
            raise UsernameOrPasswordError()
        if not verify_password(password, user.password_hash):
            logger.info("login failed: wrong password for user %s", user.id)
            raise UsernameOrPasswordError()
        if needs_rehash(user.password_hash):
            await repo.update_by_key(user.id, {"password_hash": hash_password(password)})
            logger.info("password hash of user %s upgraded", user.id)
        return user, create_access_token(str(user.id))
