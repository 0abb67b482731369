import sys
from zoneinfo import ZoneInfo

import httpx
from sqlalchemy import inspect, text

from tutor_schedule.config import settings
from tutor_schedule.core.time_provider import default_time_provider
from tutor_schedule.db import Base, SessionLocal, engine
from tutor_schedule.schemas import AvailabilityRequest
from tutor_schedule.services.availability_grid_service import generate_time_slots
from tutor_schedule.services.availability_service import check_availability
from tutor_schedule.services.schedule_source import SqlScheduleSource


GREEN = '\033[32m'
RED = '\033[31m'
RESET = '\033[0m'


def run_check(name, fn):
    try:
        message = fn() or ''
        suffix = f' - {message}' if message else ''
        print(f'{GREEN}PASS{RESET} {name}{suffix}')
        return True
    except Exception as exc:
        print(f'{RED}FAIL{RESET} {name} - {exc}')
        return False


def check_db_connectivity_and_write():
    with engine.begin() as conn:
        conn.execute(text('SELECT 1'))
        conn.execute(text('CREATE TABLE IF NOT EXISTS _healthcheck_write (id INTEGER PRIMARY KEY, note TEXT)'))
        conn.execute(text("INSERT INTO _healthcheck_write (note) VALUES ('check')"))
        conn.execute(text("DELETE FROM _healthcheck_write WHERE note='check'"))
        conn.execute(text('DROP TABLE IF EXISTS _healthcheck_write'))
    return 'connect + write ok'


def check_schema_tables():
    existing = set(inspect(engine).get_table_names())
    missing = sorted(set(Base.metadata.tables) - existing)
    if missing:
        raise RuntimeError(f'Missing tables: {missing} (run scripts/init_db.py)')
    return f'tables={len(Base.metadata.tables)}'


def check_settings():
    ZoneInfo(settings.app_timezone)
    generate_time_slots(settings.report_range_start, settings.report_range_end, settings.report_slot_alignment)
    if not settings.database_url.strip():
        raise RuntimeError('DATABASE_URL is empty')
    return f'timezone={settings.app_timezone}'


def check_availability_engine():
    db = SessionLocal()
    try:
        request = AvailabilityRequest(
            date=default_time_provider.today(),
            start_time='23:00',
            end_time='23:30',
            branch_id='__healthcheck__',
            room_id='__healthcheck__',
            teacher_id='__healthcheck__',
        )
        result = check_availability(SqlScheduleSource(db), request)
        if any(issue.type == 'check_failed' for issue in result.issues):
            raise RuntimeError('availability check could not read the schedule')
        return f'available={result.available}'
    finally:
        db.close()


def check_http_health():
    url = f"{settings.app_base_url.rstrip('/')}/health"
    res = httpx.get(url, timeout=8)
    if res.status_code != 200:
        raise RuntimeError(f'HTTP {res.status_code} from {url}')
    payload = res.json()
    if payload.get('status') != 'ok':
        raise RuntimeError(f'Unexpected health payload: {payload}')
    return f"env={payload.get('env')}"


def main():
    checks = [
        ('Database connectivity and write access', check_db_connectivity_and_write),
        ('Schema tables present', check_schema_tables),
        ('Settings valid', check_settings),
        ('Availability engine reads the schedule', check_availability_engine),
        ('HTTP /health reachable', check_http_health),
    ]

    all_ok = True
    for name, fn in checks:
        all_ok = run_check(name, fn) and all_ok

    if not all_ok:
        sys.exit(1)
    sys.exit(0)


if __name__ == '__main__':
    main()
