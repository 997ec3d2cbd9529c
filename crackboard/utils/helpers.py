# Helpers - Utility Functions
# Timestamp formatting shared by the sender and the host

"""
Helpers Module

Provides utility functions for:
- Wire timestamps (ISO-8601, UTC, millisecond precision)
- Human readable durations for log lines
"""

from datetime import datetime, timezone
from typing import Optional

def iso_timestamp(moment: Optional[datetime] = None) -> str:
    """
    Format a moment as an ISO-8601 UTC string

    Matches the collector's expected shape, e.g. "2026-10-19T12:00:00.123Z".

    Args:
        moment: Aware or naive datetime (naive is treated as UTC); now if None

    Returns:
        Formatted timestamp string
    """
    if moment is None:
        moment = datetime.now(timezone.utc)
    elif moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    else:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime('%Y-%m-%dT%H:%M:%S.') + f"{moment.microsecond // 1000:03d}Z"

def format_duration(seconds: Optional[float]) -> str:
    """
    Format a duration for logs

    Args:
        seconds: Duration in seconds (None means "never")

    Returns:
        Formatted string (e.g. "2m 05s", "42.0s", "never")
    """
    if seconds is None:
        return "never"
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}m {secs:02d}s"
