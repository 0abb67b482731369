from __future__ import annotations

from datetime import date, datetime
from zoneinfo import ZoneInfo

from tutor_schedule.config import settings


SCHOOL_ZONEINFO = ZoneInfo(settings.app_timezone or 'Asia/Bangkok')


class TimeProvider:
    """Wall clock in the school's timezone; the only place that reads it."""

    def now(self) -> datetime:
        return datetime.now(SCHOOL_ZONEINFO)

    def today(self) -> date:
        return self.now().date()


class FixedTimeProvider(TimeProvider):
    def __init__(self, frozen_dt: datetime):
        if frozen_dt.tzinfo is None:
            frozen_dt = frozen_dt.replace(tzinfo=SCHOOL_ZONEINFO)
        self._frozen_dt = frozen_dt

    def now(self) -> datetime:
        return self._frozen_dt


default_time_provider = TimeProvider()
