"""User model definitions."""

from sqlalchemy import Column, Integer, String
from backend.database import Base

PATIENT_ROLE = "patient"
PROFESSIONAL_ROLE = "professional"


class User(Base):
    """Represents an authenticated patient or professional account."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True)
    full_name = Column(String)
    role = Column(String, default=PATIENT_ROLE)  # patient/professional
