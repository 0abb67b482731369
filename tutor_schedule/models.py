from datetime import date, datetime
from enum import Enum
from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tutor_schedule.db import Base


class ClassStatus(str, Enum):
    DRAFT = 'draft'
    PUBLISHED = 'published'
    STARTED = 'started'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'


SCHEDULABLE_CLASS_STATUSES = frozenset({ClassStatus.PUBLISHED.value, ClassStatus.STARTED.value})


class OccurrenceStatus(str, Enum):
    SCHEDULED = 'scheduled'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'
    RESCHEDULED = 'rescheduled'


class MakeupStatus(str, Enum):
    PENDING = 'pending'
    SCHEDULED = 'scheduled'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'


class TrialStatus(str, Enum):
    SCHEDULED = 'scheduled'
    ATTENDED = 'attended'
    ABSENT = 'absent'
    CANCELLED = 'cancelled'


class HolidayScope(str, Enum):
    NATIONAL = 'national'
    BRANCH = 'branch'


class Branch(Base):
    __tablename__ = 'branches'

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(180))
    code: Mapped[str] = mapped_column(String(20), default='')
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    rooms: Mapped[list['Room']] = relationship('Room', back_populates='branch')


class Room(Base):
    __tablename__ = 'rooms'

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    branch_id: Mapped[str] = mapped_column(ForeignKey('branches.id'), index=True)
    name: Mapped[str] = mapped_column(String(120))
    capacity: Mapped[int] = mapped_column(Integer, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)

    branch: Mapped['Branch'] = relationship('Branch', back_populates='rooms')


class Teacher(Base):
    __tablename__ = 'teachers'

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(180))
    nickname: Mapped[str | None] = mapped_column(String(80), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)


class Subject(Base):
    __tablename__ = 'subjects'

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(180))
    code: Mapped[str] = mapped_column(String(20), default='')


class Parent(Base):
    __tablename__ = 'parents'

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    display_name: Mapped[str] = mapped_column(String(180), default='')

    students: Mapped[list['Student']] = relationship('Student', back_populates='parent')


class Student(Base):
    __tablename__ = 'students'

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    parent_id: Mapped[str] = mapped_column(ForeignKey('parents.id'), index=True)
    name: Mapped[str] = mapped_column(String(180))
    nickname: Mapped[str | None] = mapped_column(String(80), nullable=True)

    parent: Mapped['Parent'] = relationship('Parent', back_populates='students')


class RecurringClass(Base):
    __tablename__ = 'classes'
    __table_args__ = (
        Index('ix_classes_branch_status', 'branch_id', 'status'),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(180))
    code: Mapped[str] = mapped_column(String(40), default='')
    branch_id: Mapped[str] = mapped_column(ForeignKey('branches.id'), index=True)
    room_id: Mapped[str] = mapped_column(ForeignKey('rooms.id'), index=True)
    teacher_id: Mapped[str] = mapped_column(ForeignKey('teachers.id'), index=True)
    subject_id: Mapped[str] = mapped_column(ForeignKey('subjects.id'), index=True)
    start_date: Mapped[date] = mapped_column(Date)
    end_date: Mapped[date] = mapped_column(Date)
    start_time: Mapped[str] = mapped_column(String(5))
    end_time: Mapped[str] = mapped_column(String(5))
    status: Mapped[str] = mapped_column(String(20), default=ClassStatus.DRAFT.value, index=True)
    max_students: Mapped[int] = mapped_column(Integer, default=0)
    enrolled_count: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    meeting_days: Mapped[list['ClassMeetingDay']] = relationship(
        'ClassMeetingDay', back_populates='recurring_class', cascade='all, delete-orphan', lazy='selectin'
    )
    occurrences: Mapped[list['ClassOccurrence']] = relationship('ClassOccurrence', back_populates='recurring_class')

    @property
    def weekdays(self) -> set[int]:
        return {row.weekday for row in self.meeting_days}


class ClassMeetingDay(Base):
    __tablename__ = 'class_meeting_days'
    __table_args__ = (
        UniqueConstraint('class_id', 'weekday', name='uq_class_meeting_days_class_weekday'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    class_id: Mapped[str] = mapped_column(ForeignKey('classes.id'), index=True)
    weekday: Mapped[int] = mapped_column(Integer, index=True)  # Monday=0 ... Sunday=6

    recurring_class: Mapped['RecurringClass'] = relationship('RecurringClass', back_populates='meeting_days')


class ClassOccurrence(Base):
    __tablename__ = 'class_occurrences'
    __table_args__ = (
        Index('ix_class_occurrences_class_date', 'class_id', 'session_date'),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    class_id: Mapped[str] = mapped_column(ForeignKey('classes.id'), index=True)
    session_number: Mapped[int] = mapped_column(Integer, default=1)
    session_date: Mapped[date] = mapped_column(Date, index=True)
    status: Mapped[str] = mapped_column(String(20), default=OccurrenceStatus.SCHEDULED.value, index=True)
    original_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    rescheduled_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    rescheduled_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    recurring_class: Mapped['RecurringClass'] = relationship('RecurringClass', back_populates='occurrences')


class MakeupSession(Base):
    __tablename__ = 'makeup_sessions'
    __table_args__ = (
        Index('ix_makeup_sessions_status_branch_date', 'status', 'makeup_branch_id', 'makeup_date'),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    original_class_id: Mapped[str] = mapped_column(ForeignKey('classes.id'), index=True)
    original_occurrence_id: Mapped[str | None] = mapped_column(ForeignKey('class_occurrences.id'), nullable=True)
    parent_id: Mapped[str] = mapped_column(String(64), index=True)
    student_id: Mapped[str] = mapped_column(String(64), index=True)
    reason: Mapped[str] = mapped_column(Text, default='')
    status: Mapped[str] = mapped_column(String(20), default=MakeupStatus.PENDING.value, index=True)
    makeup_date: Mapped[date | None] = mapped_column(Date, nullable=True, index=True)
    makeup_start_time: Mapped[str | None] = mapped_column(String(5), nullable=True)
    makeup_end_time: Mapped[str | None] = mapped_column(String(5), nullable=True)
    makeup_teacher_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    makeup_branch_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    makeup_room_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    requested_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    original_class: Mapped['RecurringClass'] = relationship('RecurringClass')


class TrialSession(Base):
    __tablename__ = 'trial_sessions'
    __table_args__ = (
        Index('ix_trial_sessions_status_branch_date', 'status', 'branch_id', 'scheduled_date'),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    booking_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    student_name: Mapped[str] = mapped_column(String(180))
    subject_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    scheduled_date: Mapped[date] = mapped_column(Date, index=True)
    start_time: Mapped[str] = mapped_column(String(5))
    end_time: Mapped[str] = mapped_column(String(5))
    teacher_id: Mapped[str] = mapped_column(String(64), index=True)
    branch_id: Mapped[str] = mapped_column(String(64), index=True)
    room_id: Mapped[str] = mapped_column(String(64), index=True)
    status: Mapped[str] = mapped_column(String(20), default=TrialStatus.SCHEDULED.value, index=True)
    attended: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class Holiday(Base):
    __tablename__ = 'holidays'

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    holiday_date: Mapped[date] = mapped_column(Date, index=True)
    scope: Mapped[str] = mapped_column(String(20), default=HolidayScope.NATIONAL.value, index=True)
    name: Mapped[str] = mapped_column(String(180), default='')
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    branch_links: Mapped[list['HolidayBranch']] = relationship(
        'HolidayBranch', back_populates='holiday', cascade='all, delete-orphan', lazy='selectin'
    )

    @property
    def branch_ids(self) -> set[str]:
        return {row.branch_id for row in self.branch_links}


class HolidayBranch(Base):
    __tablename__ = 'holiday_branches'
    __table_args__ = (
        UniqueConstraint('holiday_id', 'branch_id', name='uq_holiday_branches_holiday_branch'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    holiday_id: Mapped[str] = mapped_column(ForeignKey('holidays.id'), index=True)
    branch_id: Mapped[str] = mapped_column(String(64), index=True)

    holiday: Mapped['Holiday'] = relationship('Holiday', back_populates='branch_links')
