from datetime import datetime, timezone


def utcnow() -> datetime:
    """timezone-aware 현재 UTC 시각"""
    return datetime.now(timezone.utc)
