"""Appointment scheduling operations.

Create and reschedule run the availability check and the write while holding a
per-doctor lock, and lock the doctor row for the transaction, so two
overlapping bookings for one doctor cannot both pass the check.
"""

import logging
from contextlib import contextmanager
from datetime import date, datetime
from threading import Lock
from weakref import WeakValueDictionary

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_backend.core import config
from clinic_backend.core.errors import (
    InvalidInputError,
    InvalidStatusError,
    InvalidStatusTransitionError,
    NotFoundError,
    SchedulingConflictError,
    StorageFaultError,
)
from clinic_backend.models.appointment import Appointment, AppointmentStatus
from clinic_backend.models.patient import Patient
from clinic_backend.services.availability import (
    is_doctor_available,
    parse_time_of_day,
    validate_time_range,
)

logger = logging.getLogger(__name__)

DOCTOR_UNAVAILABLE_DETAIL = 'The doctor is not available at the requested time.'

ALLOWED_STATUS_TRANSITIONS = {
    AppointmentStatus.SCHEDULED: {
        AppointmentStatus.SCHEDULED,
        AppointmentStatus.CONFIRMED,
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
    },
    AppointmentStatus.CONFIRMED: {
        AppointmentStatus.CONFIRMED,
        AppointmentStatus.SCHEDULED,
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
    },
    AppointmentStatus.COMPLETED: {AppointmentStatus.COMPLETED},
    AppointmentStatus.CANCELLED: {AppointmentStatus.CANCELLED},
    AppointmentStatus.NO_SHOW: {AppointmentStatus.NO_SHOW},
}

# Entries disappear once no caller holds the doctor's lock.
_doctor_locks: WeakValueDictionary = WeakValueDictionary()
_doctor_locks_guard = Lock()


@contextmanager
def doctor_schedule_lock(doctor_id: int):
    with _doctor_locks_guard:
        lock = _doctor_locks.get(doctor_id)
        if lock is None:
            lock = Lock()
            _doctor_locks[doctor_id] = lock
    with lock:
        yield


def parse_status(value: str | None) -> AppointmentStatus:
    normalized = (value or '').strip().lower()
    for status in AppointmentStatus:
        if status.value.lower() == normalized:
            return status
    raise InvalidStatusError(f'Invalid status value: {value}')


def validate_notes_length(notes: str | None) -> None:
    if notes is not None and len(notes) > config.MAX_APPOINTMENT_NOTES_LENGTH:
        raise InvalidInputError(f'Notes must be {config.MAX_APPOINTMENT_NOTES_LENGTH} characters or fewer.')


def _commit(db: Session, appointment: Appointment | None = None) -> None:
    try:
        db.commit()
        if appointment is not None:
            db.refresh(appointment)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to persist appointment changes')
        raise StorageFaultError('Database unavailable. Appointment changes were not saved.') from exc


def get_appointment(db: Session, appointment_id: int) -> Appointment:
    appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
    if appointment is None:
        raise NotFoundError(f'Appointment with ID {appointment_id} not found')
    return appointment


def create_appointment(
    db: Session,
    patient_id: int,
    doctor_id: int,
    appointment_date: date,
    start_time: str,
    end_time: str,
    notes: str | None = None,
) -> Appointment:
    start = parse_time_of_day(start_time)
    end = parse_time_of_day(end_time)
    validate_time_range(start, end)
    validate_notes_length(notes)

    if db.query(Patient).filter(Patient.id == patient_id).first() is None:
        raise NotFoundError(f'Patient with ID {patient_id} not found')

    with doctor_schedule_lock(doctor_id):
        if not is_doctor_available(db, doctor_id, appointment_date, start, end, for_update=True):
            db.rollback()
            raise SchedulingConflictError(DOCTOR_UNAVAILABLE_DETAIL)

        appointment = Appointment(
            patient_id=patient_id,
            doctor_id=doctor_id,
            appointment_date=appointment_date,
            start_time=start,
            end_time=end,
            status=AppointmentStatus.SCHEDULED,
            notes=notes,
            created_at=datetime.now(),
        )
        db.add(appointment)
        _commit(db, appointment)

    logger.info('Created appointment %s for doctor %s on %s', appointment.id, doctor_id, appointment_date)
    return appointment


def reschedule_appointment(
    db: Session,
    appointment_id: int,
    appointment_date: date,
    start_time: str,
    end_time: str,
    notes: str | None = None,
) -> Appointment:
    appointment = get_appointment(db, appointment_id)

    start = parse_time_of_day(start_time)
    end = parse_time_of_day(end_time)
    validate_time_range(start, end)
    validate_notes_length(notes)

    with doctor_schedule_lock(appointment.doctor_id):
        slot_changed = (
            appointment.appointment_date != appointment_date
            or appointment.start_time != start
            or appointment.end_time != end
        )
        if slot_changed and not is_doctor_available(
            db,
            appointment.doctor_id,
            appointment_date,
            start,
            end,
            exclude_appointment_id=appointment.id,
            for_update=True,
        ):
            db.rollback()
            raise SchedulingConflictError(DOCTOR_UNAVAILABLE_DETAIL)

        appointment.appointment_date = appointment_date
        appointment.start_time = start
        appointment.end_time = end
        if notes is not None:
            appointment.notes = notes
        appointment.updated_at = datetime.now()
        _commit(db, appointment)

    logger.info('Rescheduled appointment %s to %s %s-%s', appointment.id, appointment_date, start, end)
    return appointment


def update_appointment_status(
    db: Session,
    appointment_id: int,
    status: str,
    notes: str | None = None,
) -> Appointment:
    appointment = get_appointment(db, appointment_id)
    new_status = parse_status(status)
    current_status = AppointmentStatus(appointment.status)

    if config.ENFORCE_STATUS_TRANSITIONS and new_status not in ALLOWED_STATUS_TRANSITIONS[current_status]:
        raise InvalidStatusTransitionError(
            f'Cannot change status from {current_status.value} to {new_status.value}.'
        )

    combined_notes = appointment.notes
    if notes:
        combined_notes = f'{appointment.notes}\n{notes}' if appointment.notes else notes
        validate_notes_length(combined_notes)

    # A cancelled slot may have been rebooked, so reviving it needs a fresh check.
    reopening = current_status == AppointmentStatus.CANCELLED and new_status != AppointmentStatus.CANCELLED

    with doctor_schedule_lock(appointment.doctor_id):
        if reopening and not is_doctor_available(
            db,
            appointment.doctor_id,
            appointment.appointment_date,
            appointment.start_time,
            appointment.end_time,
            exclude_appointment_id=appointment.id,
            for_update=True,
        ):
            db.rollback()
            raise SchedulingConflictError(DOCTOR_UNAVAILABLE_DETAIL)

        appointment.status = new_status
        appointment.notes = combined_notes
        appointment.updated_at = datetime.now()
        _commit(db, appointment)

    logger.info('Appointment %s status %s -> %s', appointment.id, current_status.value, new_status.value)
    return appointment


def delete_appointment(db: Session, appointment_id: int) -> bool:
    appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
    if appointment is None:
        return False

    db.delete(appointment)
    _commit(db)
    logger.info('Deleted appointment %s', appointment_id)
    return True


def filter_appointments(
    db: Session,
    appointment_date: date | None = None,
    doctor_id: int | None = None,
    patient_id: int | None = None,
    status: str | None = None,
) -> list[Appointment]:
    query = db.query(Appointment)

    if appointment_date is not None:
        query = query.filter(Appointment.appointment_date == appointment_date)
    if doctor_id is not None:
        query = query.filter(Appointment.doctor_id == doctor_id)
    if patient_id is not None:
        query = query.filter(Appointment.patient_id == patient_id)
    if status:
        try:
            query = query.filter(Appointment.status == parse_status(status))
        except InvalidStatusError:
            logger.warning('Ignoring unrecognized status filter %r', status)

    return query.order_by(Appointment.appointment_date.asc(), Appointment.start_time.asc()).all()


def list_appointments_for_patient(db: Session, patient_id: int) -> list[Appointment]:
    return filter_appointments(db, patient_id=patient_id)


def list_appointments_for_doctor(db: Session, doctor_id: int) -> list[Appointment]:
    return filter_appointments(db, doctor_id=doctor_id)


def check_availability(
    db: Session,
    doctor_id: int,
    appointment_date: date,
    start_time: str,
    end_time: str,
) -> bool:
    start = parse_time_of_day(start_time)
    end = parse_time_of_day(end_time)
    validate_time_range(start, end)
    return is_doctor_available(db, doctor_id, appointment_date, start, end)
