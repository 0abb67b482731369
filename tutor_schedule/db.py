import logging
import time

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from tutor_schedule.config import settings
from tutor_schedule.request_context import current_endpoint


_slow_logger = logging.getLogger('tutor_schedule.db.slow_query')


def attach_slow_query_logging(target: Engine, threshold_ms: int | None = None) -> Engine:
    """Log statements slower than ``threshold_ms`` with the endpoint that issued them."""
    limit_ms = settings.db_slow_query_ms if threshold_ms is None else threshold_ms

    @event.listens_for(target, 'before_cursor_execute')
    def _before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        context._query_start_time = time.perf_counter()

    @event.listens_for(target, 'after_cursor_execute')
    def _after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        start = getattr(context, '_query_start_time', None)
        if start is None:
            return
        duration_ms = (time.perf_counter() - start) * 1000.0
        if duration_ms >= limit_ms:
            _slow_logger.warning(
                'slow_query duration_ms=%.2f endpoint="%s" sql=%s',
                duration_ms,
                current_endpoint.get(),
                ' '.join((statement or '').split()),
            )

    return target


def build_engine(database_url: str) -> Engine:
    # sqlite connections are handed between the threadpool workers
    connect_args = {'check_same_thread': False} if database_url.startswith('sqlite') else {}
    return attach_slow_query_logging(create_engine(database_url, connect_args=connect_args))


engine = build_engine(settings.database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
