from datetime import datetime, UTC


def utc_now() -> datetime:
    return datetime.now(UTC)


def to_timestamp(moment: datetime) -> str:
    """
    Render a datetime as a fixed-width ISO string in UTC.
    Fixed width keeps stored timestamps ordered lexicographically.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC).isoformat(timespec="microseconds")
