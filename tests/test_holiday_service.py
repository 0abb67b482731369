import tempfile
import unittest
from datetime import date, datetime
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from tutor_schedule.db import Base
from tutor_schedule.models import Branch, Holiday, HolidayBranch
from tutor_schedule.services.holiday_service import describe_holiday, holidays_for_branch, is_holiday, pick_display_holiday
from tutor_schedule.services.schedule_source import SqlScheduleSource


CHRISTMAS = date(2024, 12, 25)


class HolidayServiceTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls._tmpdir = tempfile.TemporaryDirectory()
        db_path = Path(cls._tmpdir.name) / 'test_holiday_service.db'
        cls._engine = create_engine(f"sqlite:///{db_path}", connect_args={'check_same_thread': False})
        cls._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=cls._engine)
        Base.metadata.create_all(bind=cls._engine)

    @classmethod
    def tearDownClass(cls):
        cls._engine.dispose()
        cls._tmpdir.cleanup()

    def setUp(self):
        db = self._session_factory()
        try:
            for table in (HolidayBranch, Holiday, Branch):
                db.query(table).delete()
            db.add_all([Branch(id='B', name='Bangna'), Branch(id='C', name='Chidlom')])
            db.commit()
        finally:
            db.close()
        self.db = self._session_factory()
        self.source = SqlScheduleSource(self.db)

    def tearDown(self):
        self.db.close()

    def _holiday(self, holiday_id, day, *, name='Holiday', scope='national', branches=()):
        row = Holiday(
            id=holiday_id,
            holiday_date=day,
            scope=scope,
            name=name,
            branch_links=[HolidayBranch(branch_id=branch_id) for branch_id in branches],
        )
        self.db.add(row)
        self.db.commit()
        return row

    def test_national_holiday_applies_to_every_branch(self):
        self._holiday('xmas', CHRISTMAS, name='Christmas')

        for branch_id in ('B', 'C', 'unknown-branch'):
            status = describe_holiday(self.source, CHRISTMAS, branch_id)
            self.assertTrue(status.is_holiday)
            self.assertEqual(status.name, 'Christmas')
            self.assertEqual(status.holiday_id, 'xmas')

    def test_branch_holiday_only_applies_to_linked_branches(self):
        self._holiday('closure', date(2024, 7, 1), name='Staff training', scope='branch', branches=('B',))

        self.assertTrue(is_holiday(self.source, date(2024, 7, 1), 'B'))
        self.assertFalse(is_holiday(self.source, date(2024, 7, 1), 'C'))
        self.assertFalse(is_holiday(self.source, date(2024, 7, 2), 'B'))

    def test_ordinary_day_is_not_a_holiday(self):
        status = describe_holiday(self.source, date(2024, 6, 4), 'B')
        self.assertFalse(status.is_holiday)
        self.assertIsNone(status.name)

    def test_datetime_input_uses_calendar_day(self):
        self._holiday('xmas', CHRISTMAS, name='Christmas')
        self.assertTrue(is_holiday(self.source, datetime(2024, 12, 25, 23, 30), 'B'))

    def test_branch_specific_holiday_names_a_shared_day(self):
        self._holiday('a-national', CHRISTMAS, name='Christmas')
        self._holiday('z-branch', CHRISTMAS, name='Bangna Festival', scope='branch', branches=('B',))

        self.assertEqual(describe_holiday(self.source, CHRISTMAS, 'B').name, 'Bangna Festival')
        self.assertEqual(describe_holiday(self.source, CHRISTMAS, 'C').name, 'Christmas')

    def test_blank_name_falls_back_to_default(self):
        self._holiday('blank', CHRISTMAS, name='   ')
        self.assertEqual(describe_holiday(self.source, CHRISTMAS, 'B').name, 'Holiday')

    def test_pick_display_holiday_breaks_ties_by_id(self):
        first = Holiday(id='a', holiday_date=CHRISTMAS, scope='national', name='A')
        second = Holiday(id='b', holiday_date=CHRISTMAS, scope='national', name='B')
        self.assertIs(pick_display_holiday([second, first]), first)
        self.assertIsNone(pick_display_holiday([]))

    def test_holidays_for_branch_lists_range_in_date_order(self):
        self._holiday('newyear', date(2025, 1, 1), name='New Year')
        self._holiday('xmas', CHRISTMAS, name='Christmas')
        self._holiday('closure', date(2024, 12, 30), name='Cleaning', scope='branch', branches=('C',))
        self._holiday('outside', date(2025, 2, 1), name='Later')

        rows = holidays_for_branch(self.source, 'B', date(2024, 12, 1), date(2025, 1, 31))

        self.assertEqual([row['id'] for row in rows], ['xmas', 'newyear'])
        self.assertEqual(rows[0]['date'], '2024-12-25')
        self.assertEqual(rows[0]['scope'], 'national')

    def test_holidays_for_branch_rejects_inverted_range(self):
        with self.assertRaises(ValueError):
            holidays_for_branch(self.source, 'B', date(2025, 1, 31), date(2024, 12, 1))


if __name__ == '__main__':
    unittest.main()
