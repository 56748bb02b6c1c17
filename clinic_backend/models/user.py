"""User model definitions."""

from sqlalchemy import Column, Integer, String
from clinic_backend.database import Base

ROLE_ADMIN = "admin"
ROLE_DOCTOR = "doctor"
ROLE_PATIENT = "patient"


class User(Base):
    """Represents an authenticated account issued by the identity provider."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True)
    role = Column(String)  # admin/doctor/patient
