"""UTC datetime utilities."""

from datetime import datetime, timezone

# Timestamps are stored as VARCHAR columns in this layout
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def now_str() -> str:
    """Current UTC time rendered in the stored timestamp layout."""
    return utc_now().strftime(TIMESTAMP_FORMAT)
