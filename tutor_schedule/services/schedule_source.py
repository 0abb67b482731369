from __future__ import annotations

from datetime import date
from typing import Protocol

from sqlalchemy import case, or_, select
from sqlalchemy.orm import Session, selectinload

from tutor_schedule.models import (
    ClassOccurrence,
    Holiday,
    HolidayBranch,
    HolidayScope,
    MakeupSession,
    MakeupStatus,
    OccurrenceStatus,
    RecurringClass,
    Room,
    Student,
    Subject,
    Teacher,
    TrialSession,
    TrialStatus,
)


class ScheduleSource(Protocol):
    """Read-only queries the scheduling engine consumes.

    Every record is owned by the CRUD layer; implementations must not write.
    A ``branch_id`` of ``None`` means "all branches" where noted. An optional
    ``cache_scope`` string names the underlying store for label caching.
    """

    def list_recurring_classes(self, branch_id: str | None = None) -> list[RecurringClass]: ...

    def get_recurring_class(self, class_id: str) -> RecurringClass | None: ...

    def get_occurrence(self, class_id: str, day: date) -> ClassOccurrence | None: ...

    def list_scheduled_makeup_sessions(self, branch_id: str | None, day: date) -> list[MakeupSession]: ...

    def list_makeup_sessions_in_range(
        self, branch_id: str, room_id: str, start_date: date, end_date: date
    ) -> list[MakeupSession]: ...

    def list_scheduled_trial_sessions(self, branch_id: str, day: date) -> list[TrialSession]: ...

    def list_holidays(self, branch_id: str, start_date: date, end_date: date) -> list[Holiday]: ...

    def list_rooms(self, branch_id: str) -> list[Room]: ...

    def get_room(self, room_id: str) -> Room | None: ...

    def get_teacher(self, teacher_id: str) -> Teacher | None: ...

    def get_subject(self, subject_id: str) -> Subject | None: ...

    def get_student(self, parent_id: str, student_id: str) -> Student | None: ...


class SqlScheduleSource:
    def __init__(self, db: Session) -> None:
        self.db = db
        self.cache_scope = f'sql:{db.get_bind().url}'

    def list_recurring_classes(self, branch_id: str | None = None) -> list[RecurringClass]:
        query = self.db.query(RecurringClass).options(selectinload(RecurringClass.meeting_days))
        if branch_id:
            query = query.filter(RecurringClass.branch_id == branch_id)
        return query.order_by(RecurringClass.start_time.asc(), RecurringClass.id.asc()).all()

    def get_recurring_class(self, class_id: str) -> RecurringClass | None:
        return self.db.query(RecurringClass).filter(RecurringClass.id == class_id).first()

    def get_occurrence(self, class_id: str, day: date) -> ClassOccurrence | None:
        # a live row wins over a cancelled one on the same date
        cancelled_last = case((ClassOccurrence.status == OccurrenceStatus.CANCELLED.value, 1), else_=0)
        return (
            self.db.query(ClassOccurrence)
            .filter(
                ClassOccurrence.class_id == class_id,
                ClassOccurrence.session_date == day,
            )
            .order_by(cancelled_last.asc(), ClassOccurrence.session_number.asc(), ClassOccurrence.id.asc())
            .first()
        )

    def list_scheduled_makeup_sessions(self, branch_id: str | None, day: date) -> list[MakeupSession]:
        query = (
            self.db.query(MakeupSession)
            .filter(
                MakeupSession.status == MakeupStatus.SCHEDULED.value,
                MakeupSession.makeup_date == day,
            )
        )
        if branch_id:
            query = query.filter(MakeupSession.makeup_branch_id == branch_id)
        return query.order_by(MakeupSession.makeup_start_time.asc(), MakeupSession.id.asc()).all()

    def list_makeup_sessions_in_range(
        self, branch_id: str, room_id: str, start_date: date, end_date: date
    ) -> list[MakeupSession]:
        return (
            self.db.query(MakeupSession)
            .filter(
                MakeupSession.status == MakeupStatus.SCHEDULED.value,
                MakeupSession.makeup_branch_id == branch_id,
                MakeupSession.makeup_room_id == room_id,
                MakeupSession.makeup_date >= start_date,
                MakeupSession.makeup_date <= end_date,
            )
            .order_by(MakeupSession.makeup_date.asc(), MakeupSession.makeup_start_time.asc())
            .all()
        )

    def list_scheduled_trial_sessions(self, branch_id: str, day: date) -> list[TrialSession]:
        return (
            self.db.query(TrialSession)
            .filter(
                TrialSession.status == TrialStatus.SCHEDULED.value,
                TrialSession.branch_id == branch_id,
                TrialSession.scheduled_date == day,
            )
            .order_by(TrialSession.start_time.asc(), TrialSession.created_at.asc(), TrialSession.id.asc())
            .all()
        )

    def list_holidays(self, branch_id: str, start_date: date, end_date: date) -> list[Holiday]:
        branch_scoped = select(HolidayBranch.holiday_id).where(HolidayBranch.branch_id == branch_id)
        return (
            self.db.query(Holiday)
            .filter(
                Holiday.holiday_date >= start_date,
                Holiday.holiday_date <= end_date,
                or_(
                    Holiday.scope == HolidayScope.NATIONAL.value,
                    Holiday.id.in_(branch_scoped),
                ),
            )
            .order_by(Holiday.holiday_date.asc(), Holiday.id.asc())
            .all()
        )

    def list_rooms(self, branch_id: str) -> list[Room]:
        return (
            self.db.query(Room)
            .filter(Room.branch_id == branch_id, Room.is_active.is_(True))
            .order_by(Room.name.asc(), Room.id.asc())
            .all()
        )

    def get_room(self, room_id: str) -> Room | None:
        return self.db.query(Room).filter(Room.id == room_id).first()

    def get_teacher(self, teacher_id: str) -> Teacher | None:
        return self.db.query(Teacher).filter(Teacher.id == teacher_id).first()

    def get_subject(self, subject_id: str) -> Subject | None:
        return self.db.query(Subject).filter(Subject.id == subject_id).first()

    def get_student(self, parent_id: str, student_id: str) -> Student | None:
        return (
            self.db.query(Student)
            .filter(Student.id == student_id, Student.parent_id == parent_id)
            .first()
        )
