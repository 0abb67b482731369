from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Iterable

from tutor_schedule.core.time_utils import as_calendar_day, overlaps
from tutor_schedule.metrics import timed_service
from tutor_schedule.models import ClassStatus
from tutor_schedule.services.conflict_sources import (
    BookingWindow,
    Conflict,
    ConflictKind,
    ConflictSource,
    ConflictTarget,
    Exclusion,
    blocking_sources,
)
from tutor_schedule.services.label_service import LabelResolver
from tutor_schedule.services.schedule_source import ScheduleSource


logger = logging.getLogger(__name__)

_UNSCHEDULABLE_PATTERN_STATUSES = frozenset({ClassStatus.CANCELLED.value, ClassStatus.COMPLETED.value})


def collect_conflicts(
    sources: Iterable[ConflictSource],
    target: ConflictTarget,
    window: BookingWindow,
    exclude: Exclusion | None = None,
) -> list[Conflict]:
    conflicts: list[Conflict] = []
    for conflict_source in sources:
        conflicts.extend(conflict_source.conflicts_for(target, window, exclude))
    if conflicts:
        logger.warning(
            'booking_conflicts count=%s resource=%s id=%s date=%s window=%s-%s',
            len(conflicts),
            target.resource.value,
            target.resource_id,
            window.day.isoformat(),
            window.start_time,
            window.end_time,
        )
    return conflicts


@timed_service('room_conflicts')
def room_conflicts(
    source: ScheduleSource,
    day: date | datetime,
    start_time: str,
    end_time: str,
    branch_id: str,
    room_id: str,
    exclude: Exclusion | None = None,
    labels: LabelResolver | None = None,
) -> list[Conflict]:
    window = BookingWindow(day=as_calendar_day(day), start_time=start_time, end_time=end_time)
    return collect_conflicts(
        blocking_sources(source, labels),
        ConflictTarget.room(branch_id, room_id),
        window,
        exclude,
    )


@timed_service('teacher_conflicts')
def teacher_conflicts(
    source: ScheduleSource,
    day: date | datetime,
    start_time: str,
    end_time: str,
    teacher_id: str,
    exclude: Exclusion | None = None,
    branch_id: str | None = None,
    labels: LabelResolver | None = None,
) -> list[Conflict]:
    """Classes and makeup sessions already taught by ``teacher_id``.

    Without ``branch_id`` every branch is considered, since one teacher
    cannot be in two branches at once.
    """
    window = BookingWindow(day=as_calendar_day(day), start_time=start_time, end_time=end_time)
    return collect_conflicts(
        blocking_sources(source, labels),
        ConflictTarget.teacher(teacher_id, branch_id),
        window,
        exclude,
    )


def _date_ranges_overlap(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    return a_start <= b_end and a_end >= b_start


@timed_service('pattern_room_conflicts')
def pattern_room_conflicts(
    source: ScheduleSource,
    branch_id: str,
    room_id: str,
    weekdays: Iterable[int],
    start_time: str,
    end_time: str,
    start_date: date,
    end_date: date,
    exclude_class_id: str | None = None,
    labels: LabelResolver | None = None,
) -> list[Conflict]:
    """Room clashes for a whole weekly pattern, checked before saving a class.

    Unlike the per-date checkers this compares the pattern itself against
    other classes' patterns, so occurrences do not matter here; drafts count
    because they are about to be published into the same room.
    """
    if end_date < start_date:
        raise ValueError('end_date must be greater than or equal to start_date')
    days = set(weekdays)
    resolver = labels or LabelResolver(source)
    conflicts: list[Conflict] = []

    for row in source.list_recurring_classes(branch_id):
        if exclude_class_id and row.id == exclude_class_id:
            continue
        if row.status in _UNSCHEDULABLE_PATTERN_STATUSES:
            continue
        if row.room_id != room_id:
            continue
        shared_days = days & row.weekdays
        if not shared_days:
            continue
        if not _date_ranges_overlap(start_date, end_date, row.start_date, row.end_date):
            continue
        if not overlaps(start_time, end_time, row.start_time, row.end_time):
            continue
        conflicts.append(
            Conflict(
                kind=ConflictKind.CLASS.value,
                source_id=row.id,
                name=row.name,
                start_time=row.start_time,
                end_time=row.end_time,
                weekdays=tuple(sorted(row.weekdays)),
            )
        )

    for row in source.list_makeup_sessions_in_range(branch_id, room_id, start_date, end_date):
        if row.makeup_date is None or not row.makeup_start_time or not row.makeup_end_time:
            continue
        if row.makeup_date.weekday() not in days:
            continue
        if not overlaps(start_time, end_time, row.makeup_start_time, row.makeup_end_time):
            continue
        conflicts.append(
            Conflict(
                kind=ConflictKind.MAKEUP.value,
                source_id=row.id,
                name=f'Makeup: {resolver.student_name(row.parent_id, row.student_id)}',
                start_time=row.makeup_start_time,
                end_time=row.makeup_end_time,
                day=row.makeup_date,
                weekdays=(row.makeup_date.weekday(),),
            )
        )

    if conflicts:
        logger.warning(
            'pattern_conflicts count=%s branch=%s room=%s range=%s..%s',
            len(conflicts),
            branch_id,
            room_id,
            start_date.isoformat(),
            end_date.isoformat(),
        )
    return conflicts
