import time
from typing import List, Optional


def _plural(value: int, unit: str) -> str:
    return f"{value} {unit}{'' if value == 1 else 's'} ago"


def format_relative_time(timestamp: int, now: Optional[int] = None) -> str:
    if now is None:
        now = int(time.time())
    diff = now - timestamp

    if diff < 60:
        return "just now"
    if diff < 3600:
        return _plural(diff // 60, "minute")
    if diff < 86400:
        return _plural(diff // 3600, "hour")
    if diff < 2592000:
        return _plural(diff // 86400, "day")
    if diff < 31536000:
        return _plural(diff // 2592000, "month")
    return _plural(diff // 31536000, "year")


def split_csv(value: Optional[str]) -> List[str]:
    """Split a comma-separated query value, dropping blanks."""
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]
