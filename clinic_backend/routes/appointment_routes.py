from datetime import date, datetime, time

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_backend.auth.dependencies import get_current_user
from clinic_backend.core import config
from clinic_backend.core.errors import SchedulingError
from clinic_backend.database import get_db
from clinic_backend.models.appointment import AppointmentStatus
from clinic_backend.routes.common import CamelModel, database_unavailable, ensure_database_ready, to_http_exception
from clinic_backend.services import scheduler
from clinic_backend.services.access_policy import (
    Caller,
    authorize_create,
    authorize_delete,
    authorize_reschedule,
    authorize_status_update,
    authorize_view,
    require,
    scope_filter,
)

router = APIRouter(tags=['appointments'])


def _normalize_notes(value: str | None) -> str | None:
    if value is None:
        return None

    normalized = value.strip()
    if not normalized:
        return None

    if len(normalized) > config.MAX_APPOINTMENT_NOTES_LENGTH:
        raise ValueError(f'Notes must be {config.MAX_APPOINTMENT_NOTES_LENGTH} characters or fewer.')

    return normalized


class CreateAppointmentRequest(CamelModel):
    patient_id: int
    doctor_id: int
    appointment_date: date
    start_time: str
    end_time: str
    notes: str | None = None

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        return _normalize_notes(value)


class RescheduleAppointmentRequest(CamelModel):
    appointment_date: date
    start_time: str
    end_time: str
    notes: str | None = None

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        return _normalize_notes(value)


class UpdateStatusRequest(CamelModel):
    status: str
    notes: str | None = None

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        return _normalize_notes(value)


class AppointmentResponse(CamelModel):
    id: int
    patient_id: int
    doctor_id: int
    appointment_date: date
    start_time: time
    end_time: time
    status: AppointmentStatus
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class AvailabilityResponse(CamelModel):
    is_available: bool
    doctor_id: int
    date: date
    start_time: str
    end_time: str


@router.get('/availability', response_model=AvailabilityResponse)
def check_availability(
    doctor_id: int = Query(..., alias='doctorId'),
    appointment_date: date = Query(..., alias='date'),
    start_time: str = Query(..., alias='startTime'),
    end_time: str = Query(..., alias='endTime'),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        is_available = scheduler.check_availability(db, doctor_id, appointment_date, start_time, end_time)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    return AvailabilityResponse(
        is_available=is_available,
        doctor_id=doctor_id,
        date=appointment_date,
        start_time=start_time,
        end_time=end_time,
    )


@router.get('/me', response_model=list[AppointmentResponse])
def list_my_appointments(
    db: Session = Depends(get_db),
    current_user: Caller = Depends(get_current_user),
):
    if not (current_user.is_patient or current_user.is_doctor):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail='Only patients and doctors have their own appointments.',
        )
    if current_user.is_patient and current_user.patient_id is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Patient profile not found.')
    if current_user.is_doctor and current_user.doctor_id is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Doctor profile not found.')

    ensure_database_ready()

    try:
        if current_user.is_patient:
            return scheduler.list_appointments_for_patient(db, current_user.patient_id)
        return scheduler.list_appointments_for_doctor(db, current_user.doctor_id)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('', response_model=list[AppointmentResponse])
def filter_appointments(
    appointment_date: date | None = Query(default=None, alias='date'),
    doctor_id: int | None = Query(default=None, alias='doctorId'),
    patient_id: int | None = Query(default=None, alias='patientId'),
    appointment_status: str | None = Query(default=None, alias='status'),
    db: Session = Depends(get_db),
    current_user: Caller = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        decision, scoped_doctor_id, scoped_patient_id = scope_filter(current_user, doctor_id, patient_id)
        require(decision, 'You may only view your own appointments.')

        return scheduler.filter_appointments(
            db,
            appointment_date=appointment_date,
            doctor_id=scoped_doctor_id,
            patient_id=scoped_patient_id,
            status=appointment_status,
        )
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.post('', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(
    data: CreateAppointmentRequest,
    db: Session = Depends(get_db),
    current_user: Caller = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        require(
            authorize_create(current_user, data.patient_id, data.doctor_id),
            'You may only book appointments for yourself.',
        )
        return scheduler.create_appointment(
            db,
            patient_id=data.patient_id,
            doctor_id=data.doctor_id,
            appointment_date=data.appointment_date,
            start_time=data.start_time,
            end_time=data.end_time,
            notes=data.notes,
        )
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.get('/{appointment_id}', response_model=AppointmentResponse)
def get_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    current_user: Caller = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        appointment = scheduler.get_appointment(db, appointment_id)
        require(authorize_view(current_user, appointment), 'You may not view this appointment.')
        return appointment
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.put('/{appointment_id}', response_model=AppointmentResponse)
def reschedule_appointment(
    appointment_id: int,
    data: RescheduleAppointmentRequest,
    db: Session = Depends(get_db),
    current_user: Caller = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        appointment = scheduler.get_appointment(db, appointment_id)
        require(authorize_reschedule(current_user, appointment), 'You may not change this appointment.')
        return scheduler.reschedule_appointment(
            db,
            appointment_id,
            appointment_date=data.appointment_date,
            start_time=data.start_time,
            end_time=data.end_time,
            notes=data.notes,
        )
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.put('/{appointment_id}/status', response_model=AppointmentResponse)
def update_appointment_status(
    appointment_id: int,
    data: UpdateStatusRequest,
    db: Session = Depends(get_db),
    current_user: Caller = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        appointment = scheduler.get_appointment(db, appointment_id)
        require(
            authorize_status_update(current_user, appointment, data.status),
            'You may not change the status of this appointment.',
        )
        return scheduler.update_appointment_status(db, appointment_id, data.status, data.notes)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.delete('/{appointment_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    current_user: Caller = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        require(authorize_delete(current_user), 'Only admins can delete appointments.')
        deleted = scheduler.delete_appointment(db, appointment_id)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f'Appointment with ID {appointment_id} not found',
        )
