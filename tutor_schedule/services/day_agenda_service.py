from __future__ import annotations

import logging
from datetime import date, datetime

from tutor_schedule.core.time_utils import as_calendar_day
from tutor_schedule.metrics import timed_service
from tutor_schedule.models import MakeupSession, TrialSession
from tutor_schedule.schemas import BusySlot, DayAgenda, TrialDetail
from tutor_schedule.services.holiday_service import describe_holiday
from tutor_schedule.services.label_service import LabelResolver
from tutor_schedule.services.occurrence_service import live_classes_on
from tutor_schedule.services.schedule_source import ScheduleSource


logger = logging.getLogger(__name__)

TrialGroupKey = tuple[str, str, str, str]


def trial_group_key(trial: TrialSession) -> TrialGroupKey:
    return trial.start_time, trial.end_time, trial.room_id, trial.teacher_id


def group_trial_sessions(trials: list[TrialSession]) -> list[list[TrialSession]]:
    """Bucket trials sharing time, room and teacher, keeping first-seen order."""
    groups: dict[TrialGroupKey, list[TrialSession]] = {}
    for trial in trials:
        groups.setdefault(trial_group_key(trial), []).append(trial)
    return list(groups.values())


def _class_slots(source: ScheduleSource, day: date, branch_id: str, labels: LabelResolver) -> list[BusySlot]:
    slots: list[BusySlot] = []
    for item in live_classes_on(source, day, branch_id):
        row = item.recurring_class
        slots.append(
            BusySlot(
                kind='class',
                source_id=row.id,
                start_time=row.start_time,
                end_time=row.end_time,
                name=row.name,
                room_id=row.room_id,
                room_name=labels.room_name(row.room_id),
                teacher_id=row.teacher_id,
                teacher_name=labels.teacher_name(row.teacher_id),
                subject_name=labels.subject_name(row.subject_id),
            )
        )
    return slots


def _makeup_subject_name(source: ScheduleSource, row: MakeupSession, labels: LabelResolver) -> str:
    try:
        original = source.get_recurring_class(row.original_class_id)
    except Exception:
        logger.warning('makeup_original_class_lookup_failed makeup=%s', row.id, exc_info=True)
        original = None
    return labels.subject_name(original.subject_id if original else None)


def _makeup_slots(source: ScheduleSource, day: date, branch_id: str, labels: LabelResolver) -> list[BusySlot]:
    slots: list[BusySlot] = []
    for row in source.list_scheduled_makeup_sessions(branch_id, day):
        if not row.makeup_start_time or not row.makeup_end_time:
            continue
        student = labels.student_name(row.parent_id, row.student_id)
        slots.append(
            BusySlot(
                kind='makeup',
                source_id=row.id,
                start_time=row.makeup_start_time,
                end_time=row.makeup_end_time,
                name=f'Makeup: {student}',
                room_id=row.makeup_room_id,
                room_name=labels.room_name(row.makeup_room_id),
                teacher_id=row.makeup_teacher_id,
                teacher_name=labels.teacher_name(row.makeup_teacher_id),
                subject_name=_makeup_subject_name(source, row, labels),
            )
        )
    return slots


def _trial_slots(source: ScheduleSource, day: date, branch_id: str, labels: LabelResolver) -> list[BusySlot]:
    slots: list[BusySlot] = []
    for group in group_trial_sessions(source.list_scheduled_trial_sessions(branch_id, day)):
        lead = group[0]
        details = [
            TrialDetail(
                session_id=trial.id,
                student_name=trial.student_name,
                subject_id=trial.subject_id,
                subject_name=labels.subject_name(trial.subject_id),
                status=trial.status,
                attended=trial.attended,
            )
            for trial in group
        ]
        subject_names = list(dict.fromkeys(detail.subject_name for detail in details))
        slots.append(
            BusySlot(
                kind='trial',
                source_id=lead.id,
                start_time=lead.start_time,
                end_time=lead.end_time,
                name='Trial: ' + ', '.join(trial.student_name for trial in group),
                room_id=lead.room_id,
                room_name=labels.room_name(lead.room_id),
                teacher_id=lead.teacher_id,
                teacher_name=labels.teacher_name(lead.teacher_id),
                subject_name=', '.join(subject_names),
                trial_count=len(group),
                trial_details=details,
            )
        )
    return slots


@timed_service('day_agenda')
def day_agenda(
    source: ScheduleSource,
    day: date | datetime,
    branch_id: str,
    labels: LabelResolver | None = None,
) -> DayAgenda:
    """Every busy slot of a branch on one day, sorted by start time.

    Purely descriptive: overlapping entries are reported side by side and
    trial sessions sharing a time, room and teacher collapse into one slot.
    """
    target = as_calendar_day(day)
    resolver = labels or LabelResolver(source)
    holiday = describe_holiday(source, target, branch_id)

    busy_slots: list[BusySlot] = []
    busy_slots.extend(_class_slots(source, target, branch_id, resolver))
    busy_slots.extend(_makeup_slots(source, target, branch_id, resolver))
    busy_slots.extend(_trial_slots(source, target, branch_id, resolver))
    busy_slots.sort(key=lambda slot: slot.start_time)

    return DayAgenda(
        date=target,
        branch_id=branch_id,
        is_holiday=holiday.is_holiday,
        holiday_name=holiday.name,
        busy_slots=busy_slots,
    )
