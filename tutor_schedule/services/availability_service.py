from __future__ import annotations

import logging
from typing import Any

from tutor_schedule.metrics import record_availability_event, timed_service
from tutor_schedule.schemas import AvailabilityIssue, AvailabilityRequest, AvailabilityResult, IssueDetails, PatternCheckRequest
from tutor_schedule.services.conflict_checker import pattern_room_conflicts, room_conflicts, teacher_conflicts
from tutor_schedule.services.conflict_sources import Conflict, Exclusion
from tutor_schedule.services.holiday_service import describe_holiday
from tutor_schedule.services.label_service import LabelResolver
from tutor_schedule.services.schedule_source import ScheduleSource


logger = logging.getLogger(__name__)

CHECK_FAILED_MESSAGE = 'Availability could not be verified; treat the slot as unavailable.'


def _exclusion(request: AvailabilityRequest) -> Exclusion | None:
    if request.exclude_id and request.exclude_type:
        return Exclusion(kind=request.exclude_type, record_id=request.exclude_id)
    return None


def _conflict_issue(issue_type: str, prefix: str, conflict: Conflict) -> AvailabilityIssue:
    return AvailabilityIssue(
        type=issue_type,
        message=f'{prefix} - {conflict.describe()}',
        details=IssueDetails(
            conflict_type=conflict.kind,
            conflict_id=conflict.source_id,
            conflict_name=conflict.name,
            conflict_time=conflict.time_range,
        ),
    )


def _collect_issues(source: ScheduleSource, request: AvailabilityRequest) -> list[AvailabilityIssue]:
    labels = LabelResolver(source)
    exclude = _exclusion(request)
    issues: list[AvailabilityIssue] = []

    holiday = describe_holiday(source, request.date, request.branch_id)
    if holiday.is_holiday:
        issues.append(
            AvailabilityIssue(
                type='holiday',
                message=f'Selected date is a holiday ({holiday.name})',
                details=IssueDetails(holiday_name=holiday.name),
            )
        )

    for conflict in room_conflicts(
        source,
        request.date,
        request.start_time,
        request.end_time,
        request.branch_id,
        request.room_id,
        exclude=exclude,
        labels=labels,
    ):
        issues.append(_conflict_issue('room_conflict', 'Room unavailable', conflict))

    for conflict in teacher_conflicts(
        source,
        request.date,
        request.start_time,
        request.end_time,
        request.teacher_id,
        exclude=exclude,
        labels=labels,
    ):
        issues.append(_conflict_issue('teacher_conflict', 'Teacher unavailable', conflict))

    return issues


@timed_service('check_availability')
def check_availability(source: ScheduleSource, request: AvailabilityRequest) -> AvailabilityResult:
    """Decide whether a proposed booking is free.

    Conflicts are returned as issues, never raised. A failing data source
    yields an unavailable verdict with a single ``check_failed`` issue so an
    unverifiable booking is never approved.
    """
    try:
        issues = _collect_issues(source, request)
    except Exception:
        logger.exception(
            'availability_check_failed date=%s branch=%s room=%s teacher=%s',
            request.date.isoformat(),
            request.branch_id,
            request.room_id,
            request.teacher_id,
        )
        record_availability_event('check_failed')
        return AvailabilityResult(
            available=False,
            issues=[AvailabilityIssue(type='check_failed', message=CHECK_FAILED_MESSAGE)],
        )

    available = not issues
    record_availability_event('available' if available else 'unavailable')
    return AvailabilityResult(available=available, issues=issues)


def is_available(source: ScheduleSource, request: AvailabilityRequest) -> bool:
    return check_availability(source, request).available


@timed_service('check_class_pattern')
def check_class_pattern(source: ScheduleSource, request: PatternCheckRequest) -> dict[str, Any]:
    """Room check for a weekly class pattern, run before a class is saved.

    Fails closed like ``check_availability``: when the schedule cannot be
    read the pattern is reported unavailable with ``check_failed`` set.
    """
    try:
        conflicts = pattern_room_conflicts(
            source,
            request.branch_id,
            request.room_id,
            request.weekdays,
            request.start_time,
            request.end_time,
            request.start_date,
            request.end_date,
            exclude_class_id=request.exclude_class_id,
        )
    except Exception:
        logger.exception(
            'pattern_check_failed branch=%s room=%s weekdays=%s range=%s..%s',
            request.branch_id,
            request.room_id,
            ','.join(str(day) for day in request.weekdays),
            request.start_date.isoformat(),
            request.end_date.isoformat(),
        )
        record_availability_event('pattern_check_failed')
        return {'available': False, 'conflicts': [], 'check_failed': True}

    return {
        'available': not conflicts,
        'conflicts': [conflict.as_dict() for conflict in conflicts],
        'check_failed': False,
    }
