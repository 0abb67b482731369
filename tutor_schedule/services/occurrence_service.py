from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Iterable

from tutor_schedule.core.time_utils import as_calendar_day
from tutor_schedule.models import SCHEDULABLE_CLASS_STATUSES, ClassOccurrence, OccurrenceStatus, RecurringClass
from tutor_schedule.services.schedule_source import ScheduleSource


@dataclass(frozen=True)
class MaterializedClass:
    recurring_class: RecurringClass
    occurrence: ClassOccurrence | None
    has_live_occurrence: bool


def meets_on(recurring_class: RecurringClass, day: date) -> bool:
    return (
        recurring_class.status in SCHEDULABLE_CLASS_STATUSES
        and day.weekday() in recurring_class.weekdays
        and recurring_class.start_date <= day <= recurring_class.end_date
    )


def candidates_for_date(
    classes: Iterable[RecurringClass],
    day: date | datetime,
    branch_id: str | None = None,
) -> list[RecurringClass]:
    """Classes whose weekly pattern says they could run on ``day``."""
    target = as_calendar_day(day)
    return [
        row
        for row in classes
        if (branch_id is None or row.branch_id == branch_id) and meets_on(row, target)
    ]


def is_live(occurrence: ClassOccurrence | None) -> bool:
    return occurrence is not None and occurrence.status != OccurrenceStatus.CANCELLED.value


def filter_live(
    candidates: Iterable[RecurringClass],
    day: date | datetime,
    get_occurrence: Callable[[str, date], ClassOccurrence | None],
) -> list[MaterializedClass]:
    """Confirm each candidate against its per-date occurrence row.

    A candidate without an occurrence row for the date, or whose row is
    cancelled, is not actually running that day.
    """
    target = as_calendar_day(day)
    payload: list[MaterializedClass] = []
    for row in candidates:
        occurrence = get_occurrence(row.id, target)
        payload.append(
            MaterializedClass(
                recurring_class=row,
                occurrence=occurrence,
                has_live_occurrence=is_live(occurrence),
            )
        )
    return payload


def materialized_classes_on(
    source: ScheduleSource,
    day: date | datetime,
    branch_id: str | None = None,
) -> list[MaterializedClass]:
    target = as_calendar_day(day)
    candidates = candidates_for_date(source.list_recurring_classes(branch_id), target, branch_id)
    return filter_live(candidates, target, source.get_occurrence)


def live_classes_on(
    source: ScheduleSource,
    day: date | datetime,
    branch_id: str | None = None,
) -> list[MaterializedClass]:
    return [row for row in materialized_classes_on(source, day, branch_id) if row.has_live_occurrence]
