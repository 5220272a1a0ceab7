from datetime import datetime

DAY_KEY_FORMAT = "%Y-%m-%d"


def day_key(now: datetime | None = None) -> str:
    """Returns the local calendar date of `now` as 'YYYY-MM-DD'."""
    if now is None:
        now = datetime.now()
    return now.strftime(DAY_KEY_FORMAT)


def parse_day_key(key: str) -> datetime:
    """Parses a 'YYYY-MM-DD' day-key, raising ValueError on anything else."""
    return datetime.strptime(key, DAY_KEY_FORMAT)


def format_time(seconds: float) -> str:
    """
    Formats a duration for the status display.

    '2H 05M' once an hour has passed, otherwise '04:09' (minutes:seconds).
    """
    total = int(max(seconds, 0))
    hours = total // 3600
    minutes = total % 3600 // 60
    secs = total % 60

    if hours > 0:
        return f"{hours}H {minutes:02d}M"
    return f"{minutes:02d}:{secs:02d}"


def goal_progress(seconds: float, goal_hours: float) -> float:
    """Fraction of the daily goal reached, capped at 1.0."""
    if goal_hours <= 0:
        return 1.0
    return min(max(seconds, 0) / (goal_hours * 3600), 1.0)
