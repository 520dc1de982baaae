# pgboss_dashboard/formatting.py
from datetime import datetime, timedelta, UTC
from typing import Optional, Union


def format_date(moment: Optional[datetime]) -> str:
    if moment is None:
        return "-"
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment.strftime("%b %d, %Y, %I:%M:%S %p")


def format_relative_time(moment: Optional[datetime], now: Optional[datetime] = None) -> str:
    """Coarse age of ``moment``: ``just now``, ``5m ago``, ``3h ago``, ``2d ago``."""
    if moment is None:
        return ""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    now = now or datetime.now(UTC)
    seconds = int((now - moment).total_seconds())
    if seconds < 60:
        return "just now"
    if seconds < 3600:
        return f"{seconds // 60}m ago"
    if seconds < 86400:
        return f"{seconds // 3600}h ago"
    return f"{seconds // 86400}d ago"


def format_duration(duration: Optional[Union[timedelta, int, float]]) -> str:
    """Human duration; plain numbers are milliseconds."""
    if duration is None:
        return "-"
    if isinstance(duration, timedelta):
        ms = int(duration.total_seconds() * 1000)
    else:
        ms = int(duration)
    if ms < 1000:
        return f"{ms}ms"
    if ms < 60_000:
        return f"{ms / 1000:.1f}s"
    if ms < 3_600_000:
        return f"{ms // 60_000}m {(ms % 60_000) // 1000}s"
    return f"{ms // 3_600_000}h {(ms % 3_600_000) // 60_000}m"
