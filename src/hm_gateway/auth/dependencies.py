"""FastAPI dependency: get_current_user.

Usage in any protected router:
    from src.hm_gateway.auth.dependencies import get_current_user

    @router.get("/protected", dependencies=[Depends(get_current_user)])
    async def protected(): ...
"""

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer

from src.hm_common.errors import RecordNotFoundError, UnauthorizedError
from src.hm_gateway.auth.jwt_handler import decode_token
from src.hm_gateway.user.models import User
from src.hm_gateway.user.repository import UserRepository, get_user_repository

# auto_error=False: a missing header is reported in the standard envelope
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/users/login", auto_error=False)


async def get_current_user(
    token: str | None = Depends(oauth2_scheme),
    repo: UserRepository = Depends(get_user_repository),
) -> User:
    """Validate the Bearer token and return the (cached) user it names.

    Raises UnauthorizedError (HTTP 401) if the token is missing, invalid,
    expired, or names a user that no longer exists.
    """
    if not token:
        raise UnauthorizedError()

    payload = decode_token(token)
    subject = payload.get("sub", "")
    if not subject.isdigit():
        raise UnauthorizedError()

    try:
        return await repo.get_by_key(int(subject))
    except RecordNotFoundError:
        raise UnauthorizedError() from None
