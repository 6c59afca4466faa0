"""Shared utilities for VidQueue."""


def format_duration(seconds) -> str:
    """Format seconds into human readable duration like '5:23' or '1:02:15'."""
    if not seconds:
        return "?"
    seconds = int(seconds)
    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def truncate(text: str, limit: int) -> str:
    """Cut text to at most `limit` characters, marking the cut with an ellipsis."""
    if not text or len(text) <= limit:
        return text or ""
    return text[:max(limit - 1, 0)].rstrip() + "…"
