"""Calendar helpers for Sunday-based training weeks."""

from datetime import datetime, timedelta, timezone
from typing import List, Optional


def get_week_start(date: Optional[datetime] = None) -> datetime:
    """Midnight UTC on the Sunday that starts the week containing date."""
    date = date or datetime.now(timezone.utc)
    if date.tzinfo is None:
        date = date.replace(tzinfo=timezone.utc)
    date = date.astimezone(timezone.utc)

    # isoweekday: Monday=1 ... Sunday=7
    days_since_sunday = date.isoweekday() % 7
    start = date - timedelta(days=days_since_sunday)
    return start.replace(hour=0, minute=0, second=0, microsecond=0)


def get_next_week_starts(count: int = 4, now: Optional[datetime] = None) -> List[datetime]:
    """Start dates of the current week and the following count-1 weeks."""
    current = get_week_start(now)
    return [current + timedelta(weeks=i) for i in range(count)]


def format_week_range(week_start: datetime) -> str:
    """Format a week as 'Mar 3-9' or 'Mar 31 - Apr 6'."""
    week_end = week_start + timedelta(days=6)
    start_month = week_start.strftime("%b")
    end_month = week_end.strftime("%b")

    if start_month == end_month:
        return f"{start_month} {week_start.day}-{week_end.day}"
    return f"{start_month} {week_start.day} - {end_month} {week_end.day}"


def get_week_label(week_start: datetime, now: Optional[datetime] = None) -> str:
    """Human label relative to the current week."""
    current = get_week_start(now)
    diff_in_weeks = round((get_week_start(week_start) - current) / timedelta(weeks=1))

    if diff_in_weeks == 0:
        return "This Week"
    if diff_in_weeks == 1:
        return "Next Week"
    if diff_in_weeks > 1:
        return f"Week {diff_in_weeks + 1}"
    return format_week_range(week_start)
