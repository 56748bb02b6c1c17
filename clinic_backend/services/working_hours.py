import logging
from datetime import time

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_backend.core.errors import InvalidInputError, NotFoundError, StorageFaultError
from clinic_backend.models.doctor import Doctor, WorkingHours
from clinic_backend.services.availability import validate_time_range

logger = logging.getLogger(__name__)


def get_doctor(db: Session, doctor_id: int) -> Doctor:
    doctor = db.query(Doctor).filter(Doctor.id == doctor_id).first()
    if doctor is None:
        raise NotFoundError(f'Doctor with ID {doctor_id} not found')
    return doctor


def get_working_hours(db: Session, doctor_id: int) -> list[WorkingHours]:
    get_doctor(db, doctor_id)
    return db.query(WorkingHours).filter(
        WorkingHours.doctor_id == doctor_id,
    ).order_by(WorkingHours.day_of_week.asc()).all()


def upsert_working_hours(
    db: Session,
    doctor_id: int,
    entries: list[tuple[int, time, time]],
) -> list[WorkingHours]:
    """Write ``(day_of_week, start, end)`` entries; an existing weekday is updated in place."""
    get_doctor(db, doctor_id)

    for day_of_week, start_time, end_time in entries:
        if not 0 <= day_of_week <= 6:
            raise InvalidInputError('Day of week must be between 0 (Monday) and 6 (Sunday).')
        validate_time_range(start_time, end_time)

    existing = {
        entry.day_of_week: entry
        for entry in db.query(WorkingHours).filter(WorkingHours.doctor_id == doctor_id).all()
    }

    for day_of_week, start_time, end_time in entries:
        entry = existing.get(day_of_week)
        if entry is None:
            entry = WorkingHours(doctor_id=doctor_id, day_of_week=day_of_week)
            db.add(entry)
            existing[day_of_week] = entry
        entry.start_time = start_time
        entry.end_time = end_time

    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to save working hours for doctor %s', doctor_id)
        raise StorageFaultError('Database unavailable. Working hours were not saved.') from exc

    logger.info('Updated working hours for doctor %s (%d entries)', doctor_id, len(entries))
    return get_working_hours(db, doctor_id)
