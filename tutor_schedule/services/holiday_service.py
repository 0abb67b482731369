from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from tutor_schedule.config import settings
from tutor_schedule.core.time_utils import as_calendar_day
from tutor_schedule.models import Holiday, HolidayScope
from tutor_schedule.services.schedule_source import ScheduleSource


@dataclass(frozen=True)
class HolidayStatus:
    is_holiday: bool
    name: str | None = None
    holiday_id: str | None = None


def _specificity(holiday: Holiday) -> tuple[int, str]:
    # branch-scoped rows name the day before national ones
    rank = 0 if holiday.scope == HolidayScope.BRANCH.value else 1
    return rank, str(holiday.id)


def pick_display_holiday(holidays: list[Holiday]) -> Holiday | None:
    if not holidays:
        return None
    return sorted(holidays, key=_specificity)[0]


def describe_holiday(source: ScheduleSource, day: date | datetime, branch_id: str) -> HolidayStatus:
    target = as_calendar_day(day)
    holidays = source.list_holidays(branch_id, target, target)
    chosen = pick_display_holiday(holidays)
    if chosen is None:
        return HolidayStatus(is_holiday=False)
    return HolidayStatus(
        is_holiday=True,
        name=(chosen.name or '').strip() or settings.default_holiday_name,
        holiday_id=chosen.id,
    )


def is_holiday(source: ScheduleSource, day: date | datetime, branch_id: str) -> bool:
    return describe_holiday(source, day, branch_id).is_holiday


def holidays_for_branch(
    source: ScheduleSource,
    branch_id: str,
    start_date: date,
    end_date: date,
) -> list[dict[str, Any]]:
    if end_date < start_date:
        raise ValueError('end_date must be greater than or equal to start_date')
    rows = source.list_holidays(branch_id, start_date, end_date)
    return [
        {
            'id': row.id,
            'date': row.holiday_date.isoformat(),
            'name': (row.name or '').strip() or settings.default_holiday_name,
            'scope': row.scope,
            'description': row.description,
        }
        for row in sorted(rows, key=lambda item: (item.holiday_date, _specificity(item)))
    ]
