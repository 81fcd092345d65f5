from datetime import date, datetime, time, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_minutes(t: time) -> int:
    return t.hour * 60 + t.minute


def from_minutes(minutes: int) -> time:
    return time(*divmod(minutes, 60))


def format_minutes(minutes: int) -> str:
    hours, mins = divmod(minutes, 60)
    return f"{hours:02d}:{mins:02d}"


def day_of_week(day: date) -> int:
    """Weekday index used by routines: 0=Sunday, 1=Monday, ..., 6=Saturday."""

    return day.isoweekday() % 7


def session_start(booking_date: date, booking_time: time) -> datetime:
    return datetime.combine(booking_date, booking_time)
