from __future__ import annotations

from datetime import date, datetime
from typing import Callable, Iterable

from tutor_schedule.config import settings
from tutor_schedule.core.time_utils import add_minutes, format_hhmm, overlaps, parse_hhmm, to_minutes
from tutor_schedule.models import SCHEDULABLE_CLASS_STATUSES, Room
from tutor_schedule.schemas import (
    AvailabilityReport,
    BusySlot,
    DayAgenda,
    GridSlot,
    RoomAvailability,
    SlotEntry,
    TeacherAvailability,
)
from tutor_schedule.services.day_agenda_service import day_agenda
from tutor_schedule.services.label_service import LabelResolver
from tutor_schedule.services.schedule_source import ScheduleSource


VALID_ALIGNMENTS = {'00', '30'}


def generate_time_slots(range_start: str, range_end: str, alignment: str = '30') -> list[GridSlot]:
    """Hour-long slots covering the range, the last one clipped to ``range_end``.

    With alignment '30' a start on the hour moves to half past; with '00' a
    half-past start moves to the next full hour.
    """
    if alignment not in VALID_ALIGNMENTS:
        raise ValueError('alignment must be one of: 00, 30')
    cursor = format_hhmm(*parse_hhmm(range_start))
    range_end = format_hhmm(*parse_hhmm(range_end))
    minute = to_minutes(cursor) % 60
    if (alignment == '30' and minute == 0) or (alignment == '00' and minute == 30):
        cursor = add_minutes(cursor, 30)

    slots: list[GridSlot] = []
    while cursor < range_end:
        slot_end = min(add_minutes(cursor, 60), range_end)
        slots.append(GridSlot(start_time=cursor, end_time=slot_end))
        cursor = slot_end
    return slots


def _mark_busy(template: list[GridSlot], busy: list[BusySlot]) -> list[GridSlot]:
    marked: list[GridSlot] = []
    for slot in template:
        hits = [
            SlotEntry(kind=item.kind, name=item.name)
            for item in busy
            if overlaps(slot.start_time, slot.end_time, item.start_time, item.end_time)
        ]
        marked.append(
            GridSlot(
                start_time=slot.start_time,
                end_time=slot.end_time,
                available=not hits,
                conflicts=hits,
            )
        )
    return marked


def _grid_for(
    agenda: DayAgenda,
    template: list[GridSlot],
    belongs: Callable[[BusySlot], bool],
) -> list[GridSlot]:
    return _mark_busy(template, [item for item in agenda.busy_slots if belongs(item)])


def room_availability(
    agenda: DayAgenda,
    rooms: Iterable[Room],
    range_start: str | None = None,
    range_end: str | None = None,
    alignment: str | None = None,
) -> list[RoomAvailability]:
    template = generate_time_slots(
        range_start or settings.report_range_start,
        range_end or settings.report_range_end,
        alignment or settings.report_slot_alignment,
    )
    return [
        RoomAvailability(
            room_id=room.id,
            room_name=room.name,
            slots=_grid_for(agenda, template, lambda item, room_id=room.id: item.room_id == room_id),
        )
        for room in rooms
    ]


def teacher_availability(
    agenda: DayAgenda,
    teachers: Iterable[tuple[str, str]],
    range_start: str | None = None,
    range_end: str | None = None,
    alignment: str | None = None,
) -> list[TeacherAvailability]:
    template = generate_time_slots(
        range_start or settings.report_range_start,
        range_end or settings.report_range_end,
        alignment or settings.report_slot_alignment,
    )
    return [
        TeacherAvailability(
            teacher_id=teacher_id,
            teacher_name=teacher_name,
            slots=_grid_for(agenda, template, lambda item, key=teacher_id: item.teacher_id == key),
        )
        for teacher_id, teacher_name in teachers
    ]


def _branch_teachers(
    source: ScheduleSource,
    branch_id: str,
    agenda: DayAgenda,
    labels: LabelResolver,
) -> list[tuple[str, str]]:
    teacher_ids: dict[str, None] = {}
    for row in source.list_recurring_classes(branch_id):
        if row.status in SCHEDULABLE_CLASS_STATUSES and row.teacher_id:
            teacher_ids.setdefault(row.teacher_id, None)
    for item in agenda.busy_slots:
        if item.teacher_id:
            teacher_ids.setdefault(item.teacher_id, None)
    pairs = [(teacher_id, labels.teacher_name(teacher_id)) for teacher_id in teacher_ids]
    return sorted(pairs, key=lambda pair: (pair[1].lower(), pair[0]))


def branch_availability_report(
    source: ScheduleSource,
    day: date | datetime,
    branch_id: str,
    range_start: str | None = None,
    range_end: str | None = None,
    alignment: str | None = None,
) -> AvailabilityReport:
    labels = LabelResolver(source)
    agenda = day_agenda(source, day, branch_id, labels=labels)
    rooms = room_availability(agenda, source.list_rooms(branch_id), range_start, range_end, alignment)
    teachers = teacher_availability(
        agenda,
        _branch_teachers(source, branch_id, agenda, labels),
        range_start,
        range_end,
        alignment,
    )
    return AvailabilityReport(agenda=agenda, rooms=rooms, teachers=teachers)
