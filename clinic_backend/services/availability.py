"""Doctor availability checks.

A slot is bookable when the doctor exists, the slot fits the doctor's working
window for that weekday, and no other non-cancelled appointment for the doctor
on that date overlaps it. Negative outcomes are returned as ``False`` and
logged; a database fault during the lookup is logged and also resolves to
``False``.
"""

import logging
from datetime import date, datetime, time

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_backend.core import config
from clinic_backend.core.errors import InvalidInputError, InvalidTimeFormatError
from clinic_backend.models.appointment import Appointment, AppointmentStatus
from clinic_backend.models.doctor import Doctor, WorkingHours

logger = logging.getLogger(__name__)

TIME_FORMATS = ('%H:%M', '%H:%M:%S')


def parse_time_of_day(value: str) -> time:
    normalized = (value or '').strip()
    for time_format in TIME_FORMATS:
        try:
            return datetime.strptime(normalized, time_format).time()
        except ValueError:
            continue
    raise InvalidTimeFormatError(f'Invalid time format: {value!r}. Expected HH:mm.')


def validate_time_range(start_time: time, end_time: time) -> None:
    if end_time <= start_time:
        raise InvalidInputError('End time must be after start time.')


def times_overlap(start_a: time, end_a: time, start_b: time, end_b: time) -> bool:
    return start_a < end_b and end_a > start_b


def is_weekend(day: date) -> bool:
    return day.weekday() in config.WEEKEND_DAYS


def resolve_working_window(db: Session, doctor_id: int, day: date) -> tuple[time, time] | None:
    """Return the (start, end) window that applies to ``doctor_id`` on ``day``.

    A stored entry for the weekday wins. Without one, the configured fallback
    policy decides: ``default`` closes weekends and opens weekdays for the
    default workday, ``strict`` closes the day.
    """
    weekday = day.weekday()
    entry = db.query(WorkingHours).filter(
        WorkingHours.doctor_id == doctor_id,
        WorkingHours.day_of_week == weekday,
    ).first()

    if entry is not None:
        return entry.start_time, entry.end_time

    if config.WORKING_HOURS_FALLBACK == 'strict':
        logger.info('Doctor %s has no working hours on weekday %s', doctor_id, weekday)
        return None

    if is_weekend(day):
        logger.info('Doctor %s has no working hours on weekend day %s', doctor_id, weekday)
        return None

    return config.DEFAULT_WORKDAY_START, config.DEFAULT_WORKDAY_END


def find_conflicting_appointments(
    db: Session,
    doctor_id: int,
    day: date,
    start_time: time,
    end_time: time,
    exclude_appointment_id: int | None = None,
) -> list[Appointment]:
    query = db.query(Appointment).filter(
        Appointment.doctor_id == doctor_id,
        Appointment.appointment_date == day,
        Appointment.status != AppointmentStatus.CANCELLED,
    )
    if exclude_appointment_id is not None:
        query = query.filter(Appointment.id != exclude_appointment_id)

    return [
        candidate
        for candidate in query.all()
        if times_overlap(start_time, end_time, candidate.start_time, candidate.end_time)
    ]


def is_doctor_available(
    db: Session,
    doctor_id: int,
    appointment_date: date,
    start_time: time,
    end_time: time,
    exclude_appointment_id: int | None = None,
    for_update: bool = False,
) -> bool:
    logger.info(
        'Checking availability for doctor %s on %s from %s to %s',
        doctor_id, appointment_date, start_time, end_time,
    )

    try:
        doctor_query = db.query(Doctor).filter(Doctor.id == doctor_id)
        if for_update:
            doctor_query = doctor_query.with_for_update()
        doctor = doctor_query.first()

        if doctor is None:
            logger.warning('Doctor %s not found', doctor_id)
            return False

        if end_time <= start_time:
            logger.info('Rejected slot: end time %s is not after start time %s', end_time, start_time)
            return False

        window = resolve_working_window(db, doctor_id, appointment_date)
        if window is None:
            return False

        window_start, window_end = window
        if start_time < window_start or end_time > window_end:
            logger.info(
                'Requested time %s-%s is outside working hours %s-%s',
                start_time, end_time, window_start, window_end,
            )
            return False

        conflicts = find_conflicting_appointments(
            db, doctor_id, appointment_date, start_time, end_time, exclude_appointment_id,
        )
        if conflicts:
            for conflict in conflicts:
                logger.info(
                    'Overlapping appointment %s: %s-%s',
                    conflict.id, conflict.start_time, conflict.end_time,
                )
            return False
    except SQLAlchemyError:
        logger.exception('Error checking availability for doctor %s', doctor_id)
        return False

    logger.info(
        'Doctor %s is available on %s from %s to %s',
        doctor_id, appointment_date, start_time, end_time,
    )
    return True
