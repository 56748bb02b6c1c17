from datetime import time

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_backend.auth.dependencies import get_current_user
from clinic_backend.core.errors import SchedulingError
from clinic_backend.database import get_db
from clinic_backend.routes.common import CamelModel, database_unavailable, ensure_database_ready, to_http_exception
from clinic_backend.services import working_hours
from clinic_backend.services.access_policy import Caller, authorize_working_hours_update, require
from clinic_backend.services.availability import parse_time_of_day

router = APIRouter(tags=['doctors'])


class WorkingHoursEntryRequest(CamelModel):
    day_of_week: int
    start_time: str
    end_time: str


class WorkingHoursResponse(CamelModel):
    id: int
    doctor_id: int
    day_of_week: int
    start_time: time
    end_time: time


@router.get('/{doctor_id}/working-hours', response_model=list[WorkingHoursResponse])
def list_working_hours(
    doctor_id: int,
    db: Session = Depends(get_db),
    current_user: Caller = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        return working_hours.get_working_hours(db, doctor_id)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.put('/{doctor_id}/working-hours', response_model=list[WorkingHoursResponse])
def update_working_hours(
    doctor_id: int,
    entries: list[WorkingHoursEntryRequest],
    db: Session = Depends(get_db),
    current_user: Caller = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        require(
            authorize_working_hours_update(current_user, doctor_id),
            'Only admins or the doctor can change working hours.',
        )
        parsed_entries = [
            (entry.day_of_week, parse_time_of_day(entry.start_time), parse_time_of_day(entry.end_time))
            for entry in entries
        ]
        return working_hours.upsert_working_hours(db, doctor_id, parsed_entries)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc
