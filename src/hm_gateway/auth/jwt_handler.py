"""JWT token creation and verification.

HS256 (symmetric HMAC) with the shared JWT_SECRET. Tokens carry the user
id in ``sub`` and are not revocable; they are valid until expiry.
"""

from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from config.settings import settings
from src.hm_common.errors import UnauthorizedError

_ALGORITHM = settings.JWT_ALGORITHM  # "HS256"
_ACCESS_EXPIRE = timedelta(minutes=settings.JWT_EXPIRE_MINUTES)


def create_access_token(user_id: str) -> str:
    """Issue an access token for ``user_id``."""
    now = datetime.now(UTC)
    payload = {
        "sub": user_id,
        "type": "access",
        "iat": now,
        "exp": now + _ACCESS_EXPIRE,
    }
    return str(jwt.encode(payload, settings.JWT_SECRET, algorithm=_ALGORITHM))


def decode_token(token: str) -> dict[str, str]:
    """Decode and validate an access token.

    Raises:
        UnauthorizedError: signature invalid, token expired, or not an access token.
    """
    try:
        payload: dict[str, str] = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[_ALGORITHM],  # Explicit list prevents algorithm confusion
        )
    except JWTError:
        raise UnauthorizedError() from None

    if payload.get("type") != "access":
        raise UnauthorizedError()

    return payload
