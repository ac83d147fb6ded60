"""Weekly index option expiry dates."""

from __future__ import annotations

from datetime import date, timedelta

THURSDAY = 3  # date.weekday()


def next_weekly_expiry(today: date | None = None) -> str:
    """ISO date of the next Thursday, or today if today is a Thursday."""
    today = today or date.today()
    days_ahead = (THURSDAY - today.weekday()) % 7
    return (today + timedelta(days=days_ahead)).isoformat()
