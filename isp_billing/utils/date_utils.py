"""Date manipulation utilities"""

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, the form stored in the database"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def format_local_date(value: datetime | None) -> str:
    """Render dates as DD/MM/YYYY for customer-facing payloads"""
    return value.strftime("%d/%m/%Y") if value else ""
