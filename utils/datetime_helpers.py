"""Timezone-aware date/time helpers for the cabin application."""

from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from flask import current_app


def get_timezone() -> ZoneInfo:
    """Get the configured timezone."""
    tz_name = current_app.config.get('TIMEZONE', 'America/Chicago')
    return ZoneInfo(tz_name)


def get_today() -> date:
    """Get today's date in the configured timezone."""
    return datetime.now(get_timezone()).date()


def season_due_date(
    season_end_month: int = 10,
    season_end_day: int = 31,
    offset_days: int = 0,
    today: date = None
) -> date:
    """
    Payment deadline for the current season.

    Args:
        season_end_month: Month the season ends (1-12)
        season_end_day: Day the season ends
        offset_days: Days after season end that payment is due
        today: Reference date (defaults to today in the configured timezone)

    Returns:
        date: Season end of the reference year plus the offset
    """
    today = today or get_today()
    season_end = date(today.year, season_end_month or 10, season_end_day or 31)
    return season_end + timedelta(days=offset_days or 0)
