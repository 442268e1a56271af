from datetime import datetime
from zoneinfo import ZoneInfo

from config import USER_TIMEZONE


def get_now() -> datetime:
    """FastAPI dependency — the current time in the user's timezone."""
    return datetime.now(ZoneInfo(USER_TIMEZONE))
