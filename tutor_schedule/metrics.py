from __future__ import annotations

import logging
import threading
import time
from datetime import datetime, timezone
from functools import wraps
from typing import Callable

from tutor_schedule.config import settings


logger = logging.getLogger('tutor_schedule.metrics')

CACHE = 'cache'
AVAILABILITY = 'availability'
SERVICE = 'service'


class MetricsExporter:
    def export_minute(self, *, family: str, minute_start: datetime, counts: dict[str, int]) -> None:
        raise NotImplementedError


class LogMetricsExporter(MetricsExporter):
    def export_minute(self, *, family: str, minute_start: datetime, counts: dict[str, int]) -> None:
        rendered = ' '.join(f'{key}={counts[key]}' for key in sorted(counts))
        logger.info('%s_metrics minute=%s %s', family, minute_start.isoformat(), rendered)


_exporter: MetricsExporter = LogMetricsExporter()


def set_metrics_exporter(exporter: MetricsExporter) -> None:
    global _exporter
    _exporter = exporter


class _MinuteCounter:
    """Event counts for the current wall-clock minute, exported when the minute rolls over."""

    def __init__(self, family: str) -> None:
        self.family = family
        self._lock = threading.Lock()
        self._minute: int | None = None
        self._counts: dict[str, int] = {}

    def _export_locked(self) -> None:
        if self._minute is None or not self._counts:
            return
        minute_start = datetime.fromtimestamp(self._minute * 60, tz=timezone.utc)
        try:
            _exporter.export_minute(family=self.family, minute_start=minute_start, counts=dict(self._counts))
        except Exception:
            logger.exception('metrics_export_failed family=%s minute=%s', self.family, minute_start.isoformat())
        self._counts.clear()

    def record(self, key: str) -> None:
        minute = int(time.time() // 60)
        with self._lock:
            if self._minute != minute:
                self._export_locked()
                self._minute = minute
            self._counts[key] = self._counts.get(key, 0) + 1

    def snapshot(self) -> dict[str, int]:
        with self._lock:
            return dict(self._counts)

    def flush(self) -> None:
        with self._lock:
            self._export_locked()


_counters: dict[str, _MinuteCounter] = {
    family: _MinuteCounter(family) for family in (CACHE, AVAILABILITY, SERVICE)
}


def record_event(family: str, key: str) -> None:
    _counters[family].record(key)


def record_cache_event(event: str) -> None:
    record_event(CACHE, event)


def record_availability_event(outcome: str) -> None:
    record_event(AVAILABILITY, outcome)


def availability_counts() -> dict[str, int]:
    return _counters[AVAILABILITY].snapshot()


def service_counts() -> dict[str, int]:
    return _counters[SERVICE].snapshot()


def flush_metrics() -> None:
    for counter in _counters.values():
        counter.flush()


def timed_service(label: str, *, threshold_ms: int | None = None) -> Callable[[Callable[..., object]], Callable[..., object]]:
    """Count calls to an engine function and log the ones slower than the threshold."""

    def decorator(func: Callable[..., object]) -> Callable[..., object]:
        threshold_value = threshold_ms if threshold_ms is not None else settings.metrics_slow_ms

        @wraps(func)
        def wrapper(*args: object, **kwargs: object):
            started = time.perf_counter()
            try:
                return func(*args, **kwargs)
            finally:
                duration_ms = (time.perf_counter() - started) * 1000.0
                record_event(SERVICE, f'{label}_calls')
                if duration_ms >= threshold_value:
                    record_event(SERVICE, f'{label}_slow')
                    logger.info('service_timer label=%s duration_ms=%.2f event=service', label, duration_ms)

        return wrapper

    return decorator
