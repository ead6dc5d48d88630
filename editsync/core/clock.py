from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Текущее время в UTC"""
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite возвращает naive datetime, считаем его UTC"""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)
