from datetime import datetime
from zoneinfo import ZoneInfo

from ..config import CLINIC_TIMEZONE


def clinic_now() -> datetime:
    """Current wall-clock time in the clinic's zone, as a naive datetime"""
    return datetime.now(ZoneInfo(CLINIC_TIMEZONE)).replace(tzinfo=None)


def get_now() -> datetime:
    """FastAPI dependency for the request time (overridden in tests)"""
    return clinic_now()
