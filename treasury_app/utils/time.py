"""Time utilities (UTC)."""

from datetime import date, datetime, timezone


def now_utc_naive() -> datetime:
    """
    Current time in UTC, returned as naive datetime for DB storage.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def today_utc() -> date:
    return now_utc_naive().date()


def to_utc_iso_db(dt: datetime) -> str:
    """
    Convert a DB timestamp to an ISO string with offset.

    DB timestamps in this app are stored as naive UTC.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat()
