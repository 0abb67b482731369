from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Protocol

from tutor_schedule.core.time_utils import format_time_range, overlaps
from tutor_schedule.services.label_service import LabelResolver
from tutor_schedule.services.occurrence_service import live_classes_on
from tutor_schedule.services.schedule_source import ScheduleSource


class ConflictKind(str, Enum):
    CLASS = 'class'
    MAKEUP = 'makeup'
    TRIAL = 'trial'


class Resource(str, Enum):
    ROOM = 'room'
    TEACHER = 'teacher'


@dataclass(frozen=True)
class Exclusion:
    """The caller's own record, left out when it edits an existing booking."""

    kind: str
    record_id: str

    def matches(self, kind: str, record_id: str) -> bool:
        return self.kind == kind and self.record_id == record_id


@dataclass(frozen=True)
class ConflictTarget:
    resource: Resource
    resource_id: str
    branch_id: str | None = None

    @classmethod
    def room(cls, branch_id: str, room_id: str) -> 'ConflictTarget':
        return cls(resource=Resource.ROOM, resource_id=room_id, branch_id=branch_id)

    @classmethod
    def teacher(cls, teacher_id: str, branch_id: str | None = None) -> 'ConflictTarget':
        return cls(resource=Resource.TEACHER, resource_id=teacher_id, branch_id=branch_id)


@dataclass(frozen=True)
class BookingWindow:
    day: date
    start_time: str
    end_time: str


@dataclass(frozen=True)
class Conflict:
    kind: str
    source_id: str
    name: str
    start_time: str
    end_time: str
    day: date | None = None
    weekdays: tuple[int, ...] = field(default=())

    @property
    def time_range(self) -> str:
        return format_time_range(self.start_time, self.end_time)

    def describe(self) -> str:
        if self.kind == ConflictKind.MAKEUP.value:
            return f'makeup session for {self.name} {self.time_range}'
        return f'class {self.name} {self.time_range}'

    def as_dict(self) -> dict[str, Any]:
        return {
            'kind': self.kind,
            'source_id': self.source_id,
            'name': self.name,
            'start_time': self.start_time,
            'end_time': self.end_time,
            'time_range': self.time_range,
            'date': self.day.isoformat() if self.day else None,
            'weekdays': list(self.weekdays),
        }


class ConflictSource(Protocol):
    kind: ConflictKind

    def conflicts_for(
        self,
        target: ConflictTarget,
        window: BookingWindow,
        exclude: Exclusion | None = None,
    ) -> list[Conflict]: ...


def _excluded(exclude: Exclusion | None, kind: ConflictKind, record_id: str) -> bool:
    return exclude is not None and exclude.matches(kind.value, record_id)


class ClassOccurrenceSource:
    """Live occurrences of recurring classes on the window's date."""

    kind = ConflictKind.CLASS

    def __init__(self, source: ScheduleSource, labels: LabelResolver | None = None) -> None:
        self.source = source
        self.labels = labels

    @staticmethod
    def _resource_id(row, resource: Resource) -> str | None:
        return row.room_id if resource == Resource.ROOM else row.teacher_id

    def conflicts_for(
        self,
        target: ConflictTarget,
        window: BookingWindow,
        exclude: Exclusion | None = None,
    ) -> list[Conflict]:
        conflicts: list[Conflict] = []
        for item in live_classes_on(self.source, window.day, target.branch_id):
            row = item.recurring_class
            if self._resource_id(row, target.resource) != target.resource_id:
                continue
            if _excluded(exclude, self.kind, row.id):
                continue
            if not overlaps(window.start_time, window.end_time, row.start_time, row.end_time):
                continue
            conflicts.append(
                Conflict(
                    kind=self.kind.value,
                    source_id=row.id,
                    name=row.name,
                    start_time=row.start_time,
                    end_time=row.end_time,
                    day=window.day,
                )
            )
        return conflicts


class MakeupSessionSource:
    """Scheduled makeup sessions placed on the window's date."""

    kind = ConflictKind.MAKEUP

    def __init__(self, source: ScheduleSource, labels: LabelResolver | None = None) -> None:
        self.source = source
        self.labels = labels or LabelResolver(source)

    @staticmethod
    def _resource_id(row, resource: Resource) -> str | None:
        return row.makeup_room_id if resource == Resource.ROOM else row.makeup_teacher_id

    def conflicts_for(
        self,
        target: ConflictTarget,
        window: BookingWindow,
        exclude: Exclusion | None = None,
    ) -> list[Conflict]:
        conflicts: list[Conflict] = []
        for row in self.source.list_scheduled_makeup_sessions(target.branch_id, window.day):
            if not row.makeup_start_time or not row.makeup_end_time:
                continue
            if self._resource_id(row, target.resource) != target.resource_id:
                continue
            if _excluded(exclude, self.kind, row.id):
                continue
            if not overlaps(window.start_time, window.end_time, row.makeup_start_time, row.makeup_end_time):
                continue
            conflicts.append(
                Conflict(
                    kind=self.kind.value,
                    source_id=row.id,
                    name=self.labels.student_name(row.parent_id, row.student_id),
                    start_time=row.makeup_start_time,
                    end_time=row.makeup_end_time,
                    day=window.day,
                )
            )
        return conflicts


# Trial sessions are deliberately absent: they never block a booking and
# are never blocked by one.
BLOCKING_SOURCE_TYPES: tuple[type, ...] = (ClassOccurrenceSource, MakeupSessionSource)


def blocking_sources(source: ScheduleSource, labels: LabelResolver | None = None) -> tuple[ConflictSource, ...]:
    resolver = labels or LabelResolver(source)
    return tuple(source_type(source, resolver) for source_type in BLOCKING_SOURCE_TYPES)
