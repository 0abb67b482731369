from __future__ import annotations

from datetime import date, datetime


def overlaps(a_start: str, a_end: str, b_start: str, b_end: str) -> bool:
    """Half-open overlap test over zero-padded 'HH:MM' strings.

    Lexical order equals chronological order only for zero-padded 24-hour
    values; callers must supply them in that form. Touching endpoints
    (a_end == b_start) do not overlap.
    """
    return a_start < b_end and a_end > b_start


def format_time_range(start_time: str, end_time: str) -> str:
    return f'{start_time}-{end_time}'


def parse_hhmm(value: str) -> tuple[int, int]:
    text = (value or '').strip()
    if len(text) != 5 or text[2] != ':' or not (text[:2] + text[3:]).isdigit():
        raise ValueError('time must be zero-padded HH:MM')
    hour = int(text[:2])
    minute = int(text[3:])
    if hour > 23 or minute > 59:
        raise ValueError('time must be zero-padded HH:MM')
    return hour, minute


def format_hhmm(hour: int, minute: int) -> str:
    return f'{hour:02d}:{minute:02d}'


def to_minutes(value: str) -> int:
    hour, minute = parse_hhmm(value)
    return hour * 60 + minute


def add_minutes(value: str, minutes: int) -> str:
    total = min(to_minutes(value) + int(minutes), 23 * 60 + 59)
    return format_hhmm(total // 60, total % 60)


def as_calendar_day(value: date | datetime) -> date:
    # datetime is a date subclass, so check it first
    if isinstance(value, datetime):
        return value.date()
    return value
