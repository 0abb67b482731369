from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from tutor_schedule.core.time_provider import TimeProvider, default_time_provider
from tutor_schedule.db import get_db
from tutor_schedule.route_logging import EndpointNameRoute
from tutor_schedule.schemas import (
    AvailabilityReport,
    AvailabilityRequest,
    AvailabilityResult,
    DayAgenda,
    PatternCheckRequest,
)
from tutor_schedule.services.availability_grid_service import branch_availability_report
from tutor_schedule.services.availability_service import check_availability, check_class_pattern
from tutor_schedule.services.day_agenda_service import day_agenda
from tutor_schedule.services.holiday_service import holidays_for_branch
from tutor_schedule.services.schedule_source import ScheduleSource, SqlScheduleSource


router = APIRouter(prefix='/api/availability', tags=['Availability'], route_class=EndpointNameRoute)


def get_schedule_source(db: Session = Depends(get_db)) -> ScheduleSource:
    return SqlScheduleSource(db)


def get_time_provider() -> TimeProvider:
    return default_time_provider


@router.post('/check', response_model=AvailabilityResult)
def check_booking(
    payload: AvailabilityRequest,
    source: ScheduleSource = Depends(get_schedule_source),
):
    return check_availability(source, payload)


@router.get('/day', response_model=DayAgenda)
def get_day_agenda(
    branch_id: str = Query(..., min_length=1),
    day: date | None = Query(default=None, alias='date'),
    source: ScheduleSource = Depends(get_schedule_source),
    time_provider: TimeProvider = Depends(get_time_provider),
):
    return day_agenda(source, day or time_provider.today(), branch_id)


@router.get('/report', response_model=AvailabilityReport)
def get_availability_report(
    branch_id: str = Query(..., min_length=1),
    day: date | None = Query(default=None, alias='date'),
    range_start: str | None = Query(default=None),
    range_end: str | None = Query(default=None),
    alignment: str | None = Query(default=None),
    source: ScheduleSource = Depends(get_schedule_source),
    time_provider: TimeProvider = Depends(get_time_provider),
):
    try:
        return branch_availability_report(
            source,
            day or time_provider.today(),
            branch_id,
            range_start=range_start,
            range_end=range_end,
            alignment=alignment,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.post('/pattern-check')
def check_pattern(
    payload: PatternCheckRequest,
    source: ScheduleSource = Depends(get_schedule_source),
):
    return check_class_pattern(source, payload)


@router.get('/holidays')
def list_branch_holidays(
    branch_id: str = Query(..., min_length=1),
    start: date = Query(...),
    end: date = Query(...),
    source: ScheduleSource = Depends(get_schedule_source),
):
    try:
        holidays = holidays_for_branch(source, branch_id, start, end)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {
        'branch_id': branch_id,
        'start': start.isoformat(),
        'end': end.isoformat(),
        'holidays': holidays,
    }
