import uuid
from datetime import datetime, UTC

def make_id(prefix: str) -> str:
    """Generate a unique ID with a given prefix."""
    return f"{prefix}_{uuid.uuid4()}"

def time_now() -> str:
    """Return the current time in ISO format (UTC, no microseconds)."""
    return datetime.now(UTC).replace(microsecond=0).isoformat()

def iso_date(value: datetime) -> str:
    """
    Render a task date as UTC ISO text, keeping sub-second precision only when present.

    Naive datetimes are taken to be UTC already.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    else:
        value = value.astimezone(UTC)
    if value.microsecond == 0:
        return value.isoformat()
    return value.isoformat(timespec="milliseconds")
