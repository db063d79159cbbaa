"""Password hashing utilities using bcrypt.

Uses the ``bcrypt`` library directly (>=4.0).  passlib[bcrypt] is intentionally
avoided because passlib is unmaintained and incompatible with bcrypt >=4.
"""

import bcrypt

from config.settings import settings


def hash_password(plain: str) -> str:
    """Hash a plain-text password with bcrypt at the configured cost."""
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(plain.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Verify a plain-text password against a bcrypt hash.

    A malformed stored hash counts as a mismatch.
    """
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


def needs_rehash(hashed: str) -> bool:
    """True when ``hashed`` was made with a cost other than BCRYPT_ROUNDS."""
    # Layout: $2b$<cost>$<salt+digest>
    parts = hashed.split("$")
    if len(parts) < 4 or not parts[2].isdigit():
        return True
    return int(parts[2]) != settings.BCRYPT_ROUNDS
