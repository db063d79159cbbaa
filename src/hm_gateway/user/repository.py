"""Users repository: cache-aside engine over the users table (soft delete)."""

from functools import lru_cache
from typing import Any

from src.hm_common.cache import get_cache_backend
from src.hm_common.database import async_session_factory
from src.hm_common.errors import register_entity_codes
from src.hm_common.repository import CachedRepository, make_repository
from src.hm_common.store import ColumnMap, Field
from src.hm_gateway.user.db_models import UserModel
from src.hm_gateway.user.models import User

USER_CODES = register_entity_codes(78, "users")

USER_COLUMNS = ColumnMap([
    Field("username", "username", ""),
    Field("password_hash", "password_hash", ""),
])

UserRepository = CachedRepository[Any, User]


@lru_cache(maxsize=1)
def get_user_repository() -> UserRepository:
    """FastAPI dependency: the process-wide users repository."""
    return make_repository(
        name="users",
        session_factory=async_session_factory,
        backend=get_cache_backend(),
        orm_model=UserModel,
        entity_type=User,
        columns=USER_COLUMNS,
        soft_delete_column="deleted_at",
    )
