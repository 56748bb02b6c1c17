import os
from datetime import date, time

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from clinic_backend.database import Base  # noqa: E402
from clinic_backend.models.appointment import Appointment, AppointmentStatus  # noqa: E402
from clinic_backend.models.doctor import Doctor, WorkingHours  # noqa: E402
from clinic_backend.models.patient import Patient  # noqa: E402
from clinic_backend.models.user import User  # noqa: E402


@pytest.fixture
def appointment_db():
    engine = create_engine('sqlite:///:memory:')
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    db = testing_session_local()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def make_doctor(appointment_db):
    def _make_doctor(name: str = 'Dr. Grey', user_id: int | None = None, hours=None) -> Doctor:
        doctor = Doctor(name=name, user_id=user_id, specialty='General')
        appointment_db.add(doctor)
        appointment_db.flush()
        for day_of_week, start_time, end_time in hours or []:
            appointment_db.add(
                WorkingHours(doctor_id=doctor.id, day_of_week=day_of_week, start_time=start_time, end_time=end_time)
            )
        appointment_db.commit()
        appointment_db.refresh(doctor)
        return doctor

    return _make_doctor


@pytest.fixture
def make_patient(appointment_db):
    def _make_patient(name: str = 'Pat Doe', user_id: int | None = None) -> Patient:
        patient = Patient(name=name, user_id=user_id)
        appointment_db.add(patient)
        appointment_db.commit()
        appointment_db.refresh(patient)
        return patient

    return _make_patient


@pytest.fixture
def make_user(appointment_db):
    def _make_user(email: str, role: str) -> User:
        user = User(email=email, role=role)
        appointment_db.add(user)
        appointment_db.commit()
        appointment_db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_appointment(appointment_db):
    def _make_appointment(
        doctor_id: int,
        patient_id: int,
        appointment_date: date,
        start_time: time,
        end_time: time,
        status: AppointmentStatus = AppointmentStatus.SCHEDULED,
        notes: str | None = None,
    ) -> Appointment:
        appointment = Appointment(
            doctor_id=doctor_id,
            patient_id=patient_id,
            appointment_date=appointment_date,
            start_time=start_time,
            end_time=end_time,
            status=status,
            notes=notes,
        )
        appointment_db.add(appointment)
        appointment_db.commit()
        appointment_db.refresh(appointment)
        return appointment

    return _make_appointment
