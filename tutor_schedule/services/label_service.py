from __future__ import annotations

import logging
from typing import Any, Callable

from tutor_schedule.cache import cache, cache_key
from tutor_schedule.config import settings
from tutor_schedule.services.schedule_source import ScheduleSource


LABEL_CACHE_PREFIX = 'labels'
logger = logging.getLogger(__name__)


def clear_label_cache() -> None:
    cache.invalidate_prefix(LABEL_CACHE_PREFIX)


class LabelResolver:
    """Human-readable names for reference ids.

    Lookups never raise: a missing row or a failing lookup yields the
    configured placeholder. Only resolved names are cached, keyed by the
    source's cache_scope; a rename shows up after label_cache_ttl
    seconds or after clear_label_cache().
    """

    def __init__(self, source: ScheduleSource, *, use_cache: bool = True) -> None:
        self.source = source
        self.use_cache = use_cache
        # names are cached per database, never shared between sources
        self.cache_scope = getattr(source, 'cache_scope', None) or f'source-{id(source)}'

    def _resolve(
        self,
        kind: str,
        identity: str,
        lookup: Callable[[], Any],
        render: Callable[[Any], str | None],
        placeholder: str,
    ) -> str:
        def load() -> str | None:
            try:
                row = lookup()
            except Exception:
                logger.warning('label_lookup_failed kind=%s id=%s', kind, identity, exc_info=True)
                return None
            label = render(row) if row is not None else None
            if not label:
                logger.debug('label_missing kind=%s id=%s', kind, identity)
            return label or None

        if self.use_cache:
            label = cache.get_or_load(
                cache_key(LABEL_CACHE_PREFIX, f'{self.cache_scope}:{kind}:{identity}'),
                load,
                ttl=settings.label_cache_ttl,
            )
        else:
            label = load()
        return label or placeholder

    def room_name(self, room_id: str | None) -> str:
        if not room_id:
            return settings.unknown_room_label
        return self._resolve(
            'room',
            room_id,
            lambda: self.source.get_room(room_id),
            lambda row: row.name,
            settings.unknown_room_label,
        )

    def teacher_name(self, teacher_id: str | None) -> str:
        if not teacher_id:
            return settings.unknown_teacher_label
        return self._resolve(
            'teacher',
            teacher_id,
            lambda: self.source.get_teacher(teacher_id),
            lambda row: row.nickname or row.name,
            settings.unknown_teacher_label,
        )

    def subject_name(self, subject_id: str | None) -> str:
        if not subject_id:
            return settings.unknown_subject_label
        return self._resolve(
            'subject',
            subject_id,
            lambda: self.source.get_subject(subject_id),
            lambda row: row.name,
            settings.unknown_subject_label,
        )

    def student_name(self, parent_id: str | None, student_id: str | None) -> str:
        if not parent_id or not student_id:
            return settings.unknown_student_label
        return self._resolve(
            'student',
            f'{parent_id}:{student_id}',
            lambda: self.source.get_student(parent_id, student_id),
            lambda row: row.nickname or row.name,
            settings.unknown_student_label,
        )
