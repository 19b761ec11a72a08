from datetime import datetime, timezone
from typing import Optional


class Clock:
    """Wall-clock source for all deadline math.

    Every node must read the same clock, so this wraps the system UTC time
    rather than process uptime. Tests swap it through ``deps.get_clock``.
    """

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


system_clock = Clock()
