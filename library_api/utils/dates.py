from datetime import date, datetime, timedelta, timezone

from library_api.errors import ValidationError

ONE_DAY = timedelta(days=1)


def utcnow() -> datetime:
    """Naive UTC, the form every DateTime column is stored in."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_datetime(value, field: str) -> datetime:
    """
    Accepts ISO-8601 strings ("2025-03-01", "2025-03-01T10:00:00Z",
    "...+02:00") or datetime/date objects. Aware values are converted to UTC.
    """
    if value is None or value == "":
        raise ValidationError(f"{field} is required")

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    else:
        text = str(value).strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            raise ValidationError(f"Invalid {field} format") from None

    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def days_overdue(due_at: datetime, now: datetime) -> int:
    """Whole days past due, floored; negative while the due date is ahead."""
    return (now - due_at) // ONE_DAY


def isoformat(value):
    return value.isoformat() if value is not None else None
