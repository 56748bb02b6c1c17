"""Appointment model definitions."""

import enum
from datetime import datetime

from sqlalchemy import CheckConstraint, Column, Date, DateTime, Enum, ForeignKey, Index, Integer, String, Time
from clinic_backend.core import config
from clinic_backend.database import Base


class AppointmentStatus(str, enum.Enum):
    SCHEDULED = "Scheduled"
    CONFIRMED = "Confirmed"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    NO_SHOW = "NoShow"


class Appointment(Base):
    """Represents a booked slot between a patient and a doctor."""
    __tablename__ = "appointments"
    __table_args__ = (
        CheckConstraint("end_time > start_time", name="ck_appointments_time_order"),
        Index("idx_appointments_doctor_date", "doctor_id", "appointment_date"),
    )

    id = Column(Integer, primary_key=True)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False, index=True)
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=False)
    appointment_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    status = Column(
        Enum(AppointmentStatus, values_callable=lambda members: [member.value for member in members]),
        nullable=False,
        default=AppointmentStatus.SCHEDULED,
    )
    notes = Column(String(config.NOTES_COLUMN_LENGTH))
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, nullable=True)
