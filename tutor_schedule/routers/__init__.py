from tutor_schedule.routers import availability

__all__ = [
    'availability',
]
