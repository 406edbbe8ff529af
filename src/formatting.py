"""human readable time and duration strings"""

from datetime import datetime, timezone
from typing import Optional


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'' if count == 1 else 's'}"


def format_timestamp(ts: int) -> str:
    """epoch seconds -> 'YYYY-MM-DD HH:MM:SS UTC'"""
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def format_time_remaining(seconds: float) -> str:
    """
    Render the time left until a deadline.

    Only the two largest units are shown, truncated by integer division:
    90000 -> '1 day, 1 hour'. Zero or negative -> 'Ended'.
    """
    if seconds <= 0:
        return "Ended"
    total = int(seconds)
    minutes = total // 60
    hours = minutes // 60
    days = hours // 24
    if days > 0:
        return f"{_plural(days, 'day')}, {_plural(hours % 24, 'hour')}"
    if hours > 0:
        return f"{_plural(hours, 'hour')}, {_plural(minutes % 60, 'minute')}"
    if minutes > 0:
        return f"{_plural(minutes, 'minute')}, {_plural(total % 60, 'second')}"
    return _plural(total, "second")


def format_duration(seconds: Optional[int]) -> str:
    if not seconds:
        return "N/A"
    days = seconds // 86400
    hours = (seconds % 86400) // 3600
    minutes = (seconds % 3600) // 60
    parts = []
    if days > 0:
        parts.append(_plural(days, "day"))
    if hours > 0:
        parts.append(_plural(hours, "hour"))
    if minutes > 0:
        parts.append(_plural(minutes, "minute"))
    return ", ".join(parts) if parts else f"{seconds} seconds"


def format_duration_compact(seconds: int) -> str:
    days = seconds // 86400
    hours = (seconds % 86400) // 3600
    minutes = (seconds % 3600) // 60
    return f"~{days}d {hours}h {minutes}m"
