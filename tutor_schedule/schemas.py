from datetime import date
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from tutor_schedule.core.time_utils import format_hhmm, parse_hhmm


IssueType = Literal['holiday', 'room_conflict', 'teacher_conflict', 'check_failed']
BookingKind = Literal['class', 'makeup', 'trial']


def _check_hhmm(value: str) -> str:
    hour, minute = parse_hhmm(value)
    return format_hhmm(hour, minute)


class AvailabilityRequest(BaseModel):
    date: date
    start_time: str
    end_time: str
    branch_id: str = Field(min_length=1)
    room_id: str = Field(min_length=1)
    teacher_id: str = Field(min_length=1)
    exclude_id: str | None = None
    exclude_type: BookingKind | None = None

    @field_validator('start_time', 'end_time')
    @classmethod
    def _valid_time(cls, value: str) -> str:
        return _check_hhmm(value)

    @model_validator(mode='after')
    def _ordered_window(self) -> 'AvailabilityRequest':
        if self.start_time >= self.end_time:
            raise ValueError('start_time must be before end_time')
        if bool(self.exclude_id) != bool(self.exclude_type):
            raise ValueError('exclude_id and exclude_type must be given together')
        return self


class IssueDetails(BaseModel):
    conflict_type: BookingKind | None = None
    conflict_id: str | None = None
    conflict_name: str | None = None
    conflict_time: str | None = None
    holiday_name: str | None = None


class AvailabilityIssue(BaseModel):
    type: IssueType
    message: str
    details: IssueDetails | None = None


class AvailabilityResult(BaseModel):
    available: bool
    issues: list[AvailabilityIssue] = Field(default_factory=list)


class TrialDetail(BaseModel):
    session_id: str
    student_name: str
    subject_id: str | None = None
    subject_name: str
    status: str
    attended: bool | None = None


class BusySlot(BaseModel):
    kind: BookingKind
    source_id: str
    start_time: str
    end_time: str
    name: str
    room_id: str | None = None
    room_name: str
    teacher_id: str | None = None
    teacher_name: str
    subject_name: str | None = None
    trial_count: int = 0
    trial_details: list[TrialDetail] = Field(default_factory=list)


class DayAgenda(BaseModel):
    date: date
    branch_id: str
    is_holiday: bool
    holiday_name: str | None = None
    busy_slots: list[BusySlot] = Field(default_factory=list)


class SlotEntry(BaseModel):
    kind: BookingKind
    name: str


class GridSlot(BaseModel):
    start_time: str
    end_time: str
    available: bool = True
    conflicts: list[SlotEntry] = Field(default_factory=list)


class RoomAvailability(BaseModel):
    room_id: str
    room_name: str
    slots: list[GridSlot]


class TeacherAvailability(BaseModel):
    teacher_id: str
    teacher_name: str
    slots: list[GridSlot]


class AvailabilityReport(BaseModel):
    agenda: DayAgenda
    rooms: list[RoomAvailability]
    teachers: list[TeacherAvailability]


class PatternCheckRequest(BaseModel):
    branch_id: str = Field(min_length=1)
    room_id: str = Field(min_length=1)
    weekdays: list[int] = Field(min_length=1)
    start_time: str
    end_time: str
    start_date: date
    end_date: date
    exclude_class_id: str | None = None

    @field_validator('start_time', 'end_time')
    @classmethod
    def _valid_time(cls, value: str) -> str:
        return _check_hhmm(value)

    @field_validator('weekdays')
    @classmethod
    def _valid_weekdays(cls, value: list[int]) -> list[int]:
        if any(day < 0 or day > 6 for day in value):
            raise ValueError('weekdays must be between 0 (Monday) and 6 (Sunday)')
        return sorted(set(value))

    @model_validator(mode='after')
    def _ordered_ranges(self) -> 'PatternCheckRequest':
        if self.start_time >= self.end_time:
            raise ValueError('start_time must be before end_time')
        if self.end_date < self.start_date:
            raise ValueError('end_date must be greater than or equal to start_date')
        return self
