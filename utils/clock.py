from datetime import datetime, timedelta


def now() -> datetime:
    return datetime.now()


def start_of_day(value: datetime) -> datetime:
    return datetime(value.year, value.month, value.day)


def day_bounds(value: datetime):
    start = start_of_day(value)
    return start, start + timedelta(days=1)


def to_naive(value: datetime) -> datetime:
    """Aware datetimes are converted to local wall-clock time; naive ones pass through."""
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)
