from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', extra='ignore')

    app_name: str = 'Tutor Schedule'
    app_env: str = 'local'
    app_base_url: str = 'http://127.0.0.1:8000'
    app_timezone: str = 'Asia/Bangkok'
    database_url: str = 'sqlite:///./tutor_schedule.db'
    db_slow_query_ms: int = 100
    metrics_slow_ms: int = 200
    default_cache_ttl: int = 60
    label_cache_ttl: int = 300
    unknown_room_label: str = 'Unspecified room'
    unknown_teacher_label: str = 'Unspecified teacher'
    unknown_subject_label: str = 'Unspecified subject'
    unknown_student_label: str = 'Student'
    default_holiday_name: str = 'Holiday'
    report_range_start: str = '08:00'
    report_range_end: str = '19:00'
    report_slot_alignment: str = '30'


settings = Settings()
