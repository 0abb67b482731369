from datetime import timedelta
from pathlib import Path
import sys


# Ensure imports work when running this file directly: `python scripts/init_db.py`.
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from tutor_schedule.core.time_provider import default_time_provider
from tutor_schedule.db import Base, SessionLocal, engine
from tutor_schedule.models import (
    Branch,
    ClassMeetingDay,
    ClassOccurrence,
    Parent,
    RecurringClass,
    Room,
    Student,
    Subject,
    Teacher,
    TrialSession,
)


Base.metadata.create_all(bind=engine)

db = SessionLocal()
try:
    if not db.query(Branch).first():
        today = default_time_provider.today()
        db.add_all(
            [
                Branch(id='bangna', name='Bangna', code='BN'),
                Room(id='bn-101', branch_id='bangna', name='Room 101', capacity=8),
                Room(id='bn-102', branch_id='bangna', name='Room 102', capacity=6),
                Teacher(id='t-somchai', name='Somchai Dee', nickname='Kru Chai'),
                Teacher(id='t-malee', name='Malee Suk'),
                Subject(id='python', name='Python Basics', code='PY1'),
                Parent(id='p-wan', display_name='Khun Wan'),
                Student(id='s-ally', parent_id='p-wan', name='Alice Wong', nickname='Ally'),
            ]
        )
        db.commit()

        # one class meeting on today's weekday, with occurrences for the next four weeks
        python101 = RecurringClass(
            id='python101',
            name='Python101',
            code='PY101',
            branch_id='bangna',
            room_id='bn-101',
            teacher_id='t-somchai',
            subject_id='python',
            start_date=today,
            end_date=today + timedelta(weeks=12),
            start_time='10:00',
            end_time='11:30',
            status='published',
            max_students=8,
            meeting_days=[ClassMeetingDay(weekday=today.weekday())],
        )
        db.add(python101)
        for number in range(1, 5):
            db.add(
                ClassOccurrence(
                    id=f'python101-{number}',
                    class_id=python101.id,
                    session_number=number,
                    session_date=today + timedelta(weeks=number - 1),
                )
            )

        for idx, student_name in enumerate(('Ben', 'Cara', 'Dan'), start=1):
            db.add(
                TrialSession(
                    id=f'trial-{idx}',
                    student_name=student_name,
                    subject_id='python',
                    scheduled_date=today,
                    start_time='14:00',
                    end_time='15:00',
                    teacher_id='t-malee',
                    branch_id='bangna',
                    room_id='bn-102',
                )
            )
        db.commit()
finally:
    db.close()

print('DB initialized with sample data.')
