"""Doctor and working-hours model definitions."""

from sqlalchemy import Boolean, CheckConstraint, Column, ForeignKey, Integer, String, Time, UniqueConstraint
from sqlalchemy.orm import relationship

from clinic_backend.database import Base


class Doctor(Base):
    """Represents a doctor who can be booked."""
    __tablename__ = "doctors"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, unique=True)
    name = Column(String(100), nullable=False)
    specialty = Column(String(100))
    phone_number = Column(String(20))
    is_available_today = Column(Boolean, default=False)  # informational only

    working_hours = relationship(
        "WorkingHours",
        back_populates="doctor",
        cascade="all, delete-orphan",
        order_by="WorkingHours.day_of_week",
    )


class WorkingHours(Base):
    """A doctor's recurring window for one weekday (0=Monday ... 6=Sunday)."""
    __tablename__ = "working_hours"
    __table_args__ = (
        UniqueConstraint("doctor_id", "day_of_week", name="uq_working_hours_doctor_day"),
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_working_hours_day_range"),
        CheckConstraint("end_time > start_time", name="ck_working_hours_time_order"),
    )

    id = Column(Integer, primary_key=True)
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=False, index=True)
    day_of_week = Column(Integer, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)

    doctor = relationship("Doctor", back_populates="working_hours")
