"""
Service / facade layer.

This module implements the reading rules before any DB interaction. It
is intentionally free of SQL — it calls `ReadingRepo` to perform
database operations. All write paths go through this service.

Key responsibilities:
- validate submissions (at least one value, value bounds, no future dates)
- default the date to "today" in the configured timezone
- upsert by (user, date) with merge-not-replace semantics per field
- bound history queries to a trailing window of calendar months
"""

import calendar
import logging
from datetime import date, datetime
from typing import Callable, List, Optional
from zoneinfo import ZoneInfo

from errors import ValidationError
from models import ReadingOut
from repo_readings import ReadingRepo
from settings import settings

logger = logging.getLogger(__name__)


def today_in_app_timezone() -> date:
    return datetime.now(ZoneInfo(settings.timezone)).date()


def _to_cents(value: Optional[float]) -> Optional[float]:
    return None if value is None else round(value, 2)


def subtract_months(d: date, months: int) -> date:
    """Same day `months` calendar months earlier, clamped to month end.

    Matches PostgreSQL's `date - interval 'N months'`, e.g.
    2024-05-31 minus 3 months is 2024-02-29.
    """

    total = d.year * 12 + (d.month - 1) - months
    year, month_index = divmod(total, 12)
    month = month_index + 1
    day = min(d.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


class ReadingService:
    """Business rules + validation for daily glucose readings.

    Example usage:
        repo = ReadingRepo(db)
        svc = ReadingService(repo)
        svc.submit("alice", pre_reading=110)
        svc.list_recent("alice")
    """

    def __init__(self, repo: ReadingRepo, today: Callable[[], date] = today_in_app_timezone):
        self.repo = repo
        self.today = today

    def submit(
        self,
        user_id: str,
        pre_reading: Optional[float] = None,
        post_reading: Optional[float] = None,
        reading_date: Optional[date] = None,
    ) -> ReadingOut:
        """Validate and store one submission for `user_id`.

        A value that is not supplied (None) leaves the stored value for
        that day untouched; a supplied value overwrites it.

        Raises:
        - `ValidationError` when both values are missing, a value is out
          of range, or the date is after today
        - `StorageError` from the gateway if the write fails
        """

        if pre_reading is None and post_reading is None:
            raise ValidationError("At least one reading is required")

        # Columns are NUMERIC(6, 2); check the value that will actually be stored.
        pre_reading = _to_cents(pre_reading)
        post_reading = _to_cents(post_reading)
        for label, value in (("Pre-reading", pre_reading), ("Post-reading", post_reading)):
            if value is not None and not 0 < value <= settings.max_reading_mg_dl:
                raise ValidationError(
                    f"{label} must be between 0 and {settings.max_reading_mg_dl:g} mg/dL"
                )

        today = self.today()
        if reading_date is None:
            reading_date = today
        elif reading_date > today:
            raise ValidationError("Future dates are not allowed")

        reading = self.repo.upsert(user_id, reading_date, pre_reading, post_reading)
        logger.info("Saved reading %s for user %s on %s", reading.id, user_id, reading_date)
        return reading

    def list_recent(self, user_id: str, window_months: int = settings.default_window_months) -> List[ReadingOut]:
        """Return the user's readings in the trailing window, oldest first.

        An empty list means the user has no data yet.
        """

        window_months = max(1, min(window_months, settings.max_window_months))
        since = subtract_months(self.today(), window_months)
        return self.repo.fetch_since(user_id, since)

    def health_check(self) -> None:
        """Perform a lightweight DB ping via the repository."""

        self.repo.ping()
