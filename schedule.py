"""Last-run marker and the "due" check.

Spotlight does not schedule anything. The CLI records when the last briefing
completed and shows whether a new one is due; both live here, outside the
pipeline, so the core never reads wall-clock state other than stamping the
report timestamp.
"""

import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path

logger = logging.getLogger(__name__)

DUE_AFTER_HOURS = 48


def _as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def hours_since(now: datetime, last_run: datetime) -> float:
    """Hours elapsed between last_run and now (negative if last_run is in the future)."""
    return (_as_utc(now) - _as_utc(last_run)) / timedelta(hours=1)


def is_due(now: datetime, last_run: datetime | None, interval_hours: float = DUE_AFTER_HOURS) -> bool:
    """Return True when at least ``interval_hours`` passed since the last run.

    Without a recorded run nothing is due: the app is on standby until the
    first briefing is requested.

    Example:
        >>> last = datetime(2026, 10, 17, 8, 0, tzinfo=timezone.utc)
        >>> is_due(datetime(2026, 10, 19, 8, 0, tzinfo=timezone.utc), last)
        True
    """
    if last_run is None:
        return False
    return hours_since(now, last_run) >= interval_hours


class LastRunMarker:
    """ISO-8601 timestamp of the last completed briefing, kept in a small file."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def read(self) -> datetime | None:
        """Return the recorded timestamp, or None if absent or unreadable."""
        if not self.path.exists():
            return None
        try:
            raw = self.path.read_text(encoding="utf-8").strip()
        except OSError as e:
            logger.warning("Last-run marker unreadable | path=%s error=%s", self.path, e)
            return None
        if not raw:
            return None
        try:
            return _as_utc(datetime.fromisoformat(raw.replace("Z", "+00:00")))
        except ValueError:
            logger.warning("Last-run marker invalid | path=%s value=%r", self.path, raw[:40])
            return None

    def write(self, when: datetime) -> str:
        """Record ``when`` and return the stored ISO-8601 string."""
        value = _as_utc(when).isoformat()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(value + "\n", encoding="utf-8")
        logger.debug("Last-run marker written | path=%s value=%s", self.path, value)
        return value
