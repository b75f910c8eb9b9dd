from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current time as naive UTC, matching how billing timestamps are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
