import tempfile
import unittest
from datetime import date
from pathlib import Path

from freezegun import freeze_time
from pydantic import ValidationError
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from tutor_schedule.db import Base
from tutor_schedule.metrics import availability_counts
from tutor_schedule.models import (
    Branch,
    ClassMeetingDay,
    ClassOccurrence,
    Holiday,
    HolidayBranch,
    MakeupSession,
    Parent,
    RecurringClass,
    Room,
    Student,
    Subject,
    Teacher,
    TrialSession,
)
from tutor_schedule.schemas import AvailabilityRequest, PatternCheckRequest
from tutor_schedule.services.availability_service import CHECK_FAILED_MESSAGE, check_availability, check_class_pattern, is_available
from tutor_schedule.services.label_service import clear_label_cache
from tutor_schedule.services.schedule_source import SqlScheduleSource


TUESDAY = date(2024, 6, 4)
NEXT_TUESDAY = date(2024, 6, 11)
CHRISTMAS = date(2024, 12, 25)


def _request(day=TUESDAY, start='10:30', end='11:00', *, room_id='R101', teacher_id='T2', **extra):
    return AvailabilityRequest(
        date=day,
        start_time=start,
        end_time=end,
        branch_id='B',
        room_id=room_id,
        teacher_id=teacher_id,
        **extra,
    )


def _pattern_request(**extra):
    return PatternCheckRequest(
        branch_id='B',
        room_id='R101',
        weekdays=[1],
        start_time='11:00',
        end_time='12:00',
        start_date=date(2024, 7, 1),
        end_date=date(2024, 7, 31),
        **extra,
    )


class _FailingSource:
    def __getattr__(self, name):
        def _fail(*args, **kwargs):
            raise RuntimeError('database unavailable')

        return _fail


class AvailabilityServiceTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls._tmpdir = tempfile.TemporaryDirectory()
        db_path = Path(cls._tmpdir.name) / 'test_availability_service.db'
        cls._engine = create_engine(f"sqlite:///{db_path}", connect_args={'check_same_thread': False})
        cls._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=cls._engine)
        Base.metadata.create_all(bind=cls._engine)

    @classmethod
    def tearDownClass(cls):
        cls._engine.dispose()
        cls._tmpdir.cleanup()

    def setUp(self):
        clear_label_cache()
        db = self._session_factory()
        try:
            for table in (
                HolidayBranch,
                Holiday,
                TrialSession,
                MakeupSession,
                ClassOccurrence,
                ClassMeetingDay,
                RecurringClass,
                Student,
                Parent,
                Subject,
                Teacher,
                Room,
                Branch,
            ):
                db.query(table).delete()
            db.add_all(
                [
                    Branch(id='B', name='Bangna'),
                    Room(id='R101', branch_id='B', name='Room 101'),
                    Room(id='R102', branch_id='B', name='Room 102'),
                    Teacher(id='T1', name='Somchai'),
                    Teacher(id='T2', name='Malee'),
                    Teacher(id='T3', name='Anan'),
                    Subject(id='S1', name='Python Basics'),
                    Parent(id='P1', display_name='Khun Wan'),
                    Student(id='ST1', parent_id='P1', name='Alice Wong', nickname='Ally'),
                    RecurringClass(
                        id='python101',
                        name='Python101',
                        branch_id='B',
                        room_id='R101',
                        teacher_id='T1',
                        subject_id='S1',
                        start_date=date(2024, 6, 1),
                        end_date=date(2024, 8, 31),
                        start_time='10:00',
                        end_time='11:30',
                        status='published',
                        meeting_days=[ClassMeetingDay(weekday=1)],
                    ),
                    ClassOccurrence(id='occ-1', class_id='python101', session_number=1, session_date=TUESDAY, status='scheduled'),
                    ClassOccurrence(
                        id='occ-2', class_id='python101', session_number=2, session_date=NEXT_TUESDAY, status='cancelled'
                    ),
                ]
            )
            db.commit()
        finally:
            db.close()
        self.db = self._session_factory()
        self.source = SqlScheduleSource(self.db)

    def tearDown(self):
        self.db.close()

    def test_live_class_blocks_the_room(self):
        result = check_availability(self.source, _request())

        self.assertFalse(result.available)
        self.assertEqual(len(result.issues), 1)
        issue = result.issues[0]
        self.assertEqual(issue.type, 'room_conflict')
        self.assertIn('Python101 10:00-11:30', issue.message)
        self.assertEqual(issue.details.conflict_type, 'class')
        self.assertEqual(issue.details.conflict_id, 'python101')
        self.assertEqual(issue.details.conflict_time, '10:00-11:30')

    def test_same_teacher_in_another_room_is_a_teacher_conflict(self):
        result = check_availability(self.source, _request(room_id='R102', teacher_id='T1'))

        self.assertFalse(result.available)
        self.assertEqual([issue.type for issue in result.issues], ['teacher_conflict'])
        self.assertTrue(result.issues[0].message.startswith('Teacher unavailable - '))

    def test_room_and_teacher_issues_are_both_reported(self):
        result = check_availability(self.source, _request(teacher_id='T1'))
        self.assertEqual([issue.type for issue in result.issues], ['room_conflict', 'teacher_conflict'])

    def test_cancelled_occurrence_frees_the_slot(self):
        result = check_availability(self.source, _request(NEXT_TUESDAY, teacher_id='T1'))

        self.assertTrue(result.available)
        self.assertEqual(result.issues, [])

    def test_national_holiday_blocks_any_request(self):
        self.db.add(Holiday(id='xmas', holiday_date=CHRISTMAS, scope='national', name='Christmas'))
        self.db.commit()

        result = check_availability(self.source, _request(CHRISTMAS, '14:00', '15:00', room_id='R102', teacher_id='T3'))

        self.assertFalse(result.available)
        self.assertEqual(len(result.issues), 1)
        self.assertEqual(result.issues[0].type, 'holiday')
        self.assertEqual(result.issues[0].message, 'Selected date is a holiday (Christmas)')
        self.assertEqual(result.issues[0].details.holiday_name, 'Christmas')

    def test_branch_holiday_alone_makes_slot_unavailable(self):
        self.db.add(Holiday(id='closure', holiday_date=TUESDAY, scope='branch', name='Staff day'))
        self.db.add(HolidayBranch(holiday_id='closure', branch_id='B'))
        self.db.commit()

        result = check_availability(self.source, _request(start='14:00', end='15:00', room_id='R102', teacher_id='T3'))

        self.assertFalse(result.available)
        self.assertEqual(len(result.issues), 1)
        self.assertEqual(result.issues[0].type, 'holiday')
        self.assertEqual(result.issues[0].details.holiday_name, 'Staff day')

    def test_holiday_issue_comes_before_conflicts(self):
        self.db.add(Holiday(id='closure', holiday_date=TUESDAY, scope='branch', name='Staff day'))
        self.db.add(HolidayBranch(holiday_id='closure', branch_id='B'))
        self.db.commit()

        result = check_availability(self.source, _request(teacher_id='T1'))
        self.assertEqual([issue.type for issue in result.issues], ['holiday', 'room_conflict', 'teacher_conflict'])

    def test_trial_sessions_do_not_block(self):
        self.db.add(
            TrialSession(
                id='trial-1',
                student_name='Ben',
                scheduled_date=TUESDAY,
                start_time='14:00',
                end_time='15:00',
                teacher_id='T3',
                branch_id='B',
                room_id='R101',
                status='scheduled',
            )
        )
        self.db.commit()

        self.assertTrue(is_available(self.source, _request(start='14:00', end='15:00', teacher_id='T3')))

    def test_makeup_session_blocks_room_with_student_name(self):
        self.db.add(
            MakeupSession(
                id='mk-1',
                original_class_id='python101',
                parent_id='P1',
                student_id='ST1',
                status='scheduled',
                makeup_date=TUESDAY,
                makeup_start_time='13:00',
                makeup_end_time='14:00',
                makeup_teacher_id='T2',
                makeup_branch_id='B',
                makeup_room_id='R102',
            )
        )
        self.db.commit()

        result = check_availability(self.source, _request(start='13:30', end='14:30', room_id='R102', teacher_id='T3'))

        self.assertEqual(len(result.issues), 1)
        self.assertEqual(result.issues[0].message, 'Room unavailable - makeup session for Ally 13:00-14:00')
        self.assertEqual(result.issues[0].details.conflict_type, 'makeup')

    def test_excluding_own_class_when_editing(self):
        result = check_availability(
            self.source,
            _request(start='10:00', end='11:30', teacher_id='T1', exclude_id='python101', exclude_type='class'),
        )
        self.assertTrue(result.available)

    def test_touching_boundary_is_available(self):
        self.assertTrue(is_available(self.source, _request(start='11:30', end='12:30', teacher_id='T1')))

    def test_failing_source_yields_check_failed(self):
        with self.assertLogs('tutor_schedule.services.availability_service', level='ERROR'):
            result = check_availability(_FailingSource(), _request())

        self.assertFalse(result.available)
        self.assertEqual(len(result.issues), 1)
        self.assertEqual(result.issues[0].type, 'check_failed')
        self.assertEqual(result.issues[0].message, CHECK_FAILED_MESSAGE)

    def test_class_pattern_reports_conflicts(self):
        result = check_class_pattern(self.source, _pattern_request())

        self.assertFalse(result['available'])
        self.assertFalse(result['check_failed'])
        self.assertEqual([item['source_id'] for item in result['conflicts']], ['python101'])

    def test_class_pattern_fails_closed_when_source_fails(self):
        with self.assertLogs('tutor_schedule.services.availability_service', level='ERROR'):
            result = check_class_pattern(_FailingSource(), _pattern_request())

        self.assertEqual(result, {'available': False, 'conflicts': [], 'check_failed': True})

    @freeze_time('2024-06-04 03:00:00')
    def test_outcomes_are_counted(self):
        check_availability(self.source, _request(NEXT_TUESDAY))
        before = availability_counts()

        check_availability(self.source, _request(NEXT_TUESDAY))
        check_availability(self.source, _request())
        after = availability_counts()

        self.assertEqual(after.get('available', 0) - before.get('available', 0), 1)
        self.assertEqual(after.get('unavailable', 0) - before.get('unavailable', 0), 1)


class AvailabilityRequestTests(unittest.TestCase):
    def test_rejects_inverted_window(self):
        with self.assertRaises(ValidationError):
            _request(start='11:00', end='10:00')
        with self.assertRaises(ValidationError):
            _request(start='10:00', end='10:00')

    def test_rejects_malformed_times(self):
        for value in ('9:00', '24:00', '10:60', 'ten'):
            with self.subTest(value=value):
                with self.assertRaises(ValidationError):
                    _request(start=value, end='23:00')

    def test_exclusion_needs_both_fields(self):
        with self.assertRaises(ValidationError):
            _request(exclude_id='python101')
        with self.assertRaises(ValidationError):
            _request(exclude_type='class')
        with self.assertRaises(ValidationError):
            _request(exclude_id='python101', exclude_type='lesson')


if __name__ == '__main__':
    unittest.main()
