from datetime import datetime, UTC


def utcnow() -> datetime:
    """
    Current UTC time as a naive datetime.

    Columns are stored without timezone (SQLite drops it anyway), so every
    comparison in the application uses naive UTC values.
    """
    return datetime.now(UTC).replace(tzinfo=None)


def to_timestamp(value: datetime) -> int:
    """Whole seconds since the epoch for a naive UTC datetime."""
    return int(value.replace(tzinfo=UTC).timestamp())
