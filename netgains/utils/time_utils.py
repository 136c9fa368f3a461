from datetime import datetime, timezone


def utc_now() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


def timestamp_ms(moment: datetime = None) -> int:
    """
    Milliseconds since the epoch, used to keep storage keys unique per upload.

    Args:
        moment: Point in time to convert, defaults to now

    Returns:
        int: Epoch milliseconds
    """
    moment = moment or utc_now()
    return int(moment.timestamp() * 1000)
