"""Presentation helpers for session size and save time."""

from datetime import UTC, datetime

_SIZE_UNITS = ("B", "KB", "MB", "GB")


def format_bytes(size: int) -> str:
    """Format a byte count as a short human-readable string."""
    if size <= 0:
        return "0 B"
    index = 0
    while size >= 1024 ** (index + 1) and index < len(_SIZE_UNITS) - 1:
        index += 1
    value = round(size / 1024**index, 1)
    text = f"{value:.1f}".removesuffix(".0")
    return f"{text} {_SIZE_UNITS[index]}"


def get_relative_time(timestamp: datetime, now: datetime | None = None) -> str:
    """Describe how long ago ``timestamp`` was, e.g. ``"5 minutes ago"``."""
    current = now or datetime.now(tz=UTC)
    seconds = (current - timestamp).total_seconds()
    minutes = int(seconds // 60)
    hours = int(seconds // 3600)
    days = int(seconds // 86400)

    if minutes < 1:
        return "just now"
    if minutes < 60:
        return f"{minutes} minute{'' if minutes == 1 else 's'} ago"
    if hours < 24:
        return f"{hours} hour{'' if hours == 1 else 's'} ago"
    if days < 7:
        return f"{days} day{'' if days == 1 else 's'} ago"
    return timestamp.date().isoformat()
