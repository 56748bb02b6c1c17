"""Patient model definitions."""

from sqlalchemy import Column, ForeignKey, Integer, String
from clinic_backend.database import Base


class Patient(Base):
    """Represents a patient who books appointments."""
    __tablename__ = "patients"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, unique=True)
    name = Column(String(100), nullable=False)
