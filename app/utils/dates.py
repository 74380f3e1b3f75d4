import calendar
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every datetime column is stored in."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def add_months(value: datetime, months: int) -> datetime:
    """
    Shift a timestamp by whole calendar months.

    The day of month is kept when the target month has it, otherwise it
    is clamped to that month's last day:
        2024-01-31 + 3 months -> 2024-04-30
        2024-01-31 + 1 month  -> 2024-02-29
    """
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)
