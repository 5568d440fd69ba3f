from sqlalchemy import (
    Column, Integer, ForeignKey, Date, DateTime, Boolean, Text, Index,
    Enum as SQLEnum, text
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum

from ..core.database import Base
from .department import HalfDay

class RegistrationStatus(str, enum.Enum):
    COMMITTED = "committed"
    ACCEPTED = "accepted"
    TERMINATED = "terminated"

# Enum columns store member names, so the partial index compares against those
_ACTIVE_ONLY = text("status != 'TERMINATED'")

class Registration(Base):
    __tablename__ = "registrations"
    __table_args__ = (
        # At most one active registration per patient and schedule
        Index(
            "uq_registration_active",
            "patient_id", "department_id", "date", "half_day",
            unique=True,
            sqlite_where=_ACTIVE_ONLY,
            postgresql_where=_ACTIVE_ONLY,
        ),
        Index("ix_registration_doctor_slot", "doctor_id", "date", "half_day"),
    )

    id = Column(Integer, primary_key=True, index=True)

    # Relationships
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False, index=True)
    department_id = Column(Integer, ForeignKey("departments.id"), nullable=False)
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=False)

    # Schedule
    date = Column(Date, nullable=False)
    half_day = Column(SQLEnum(HalfDay), nullable=False)

    # Lifecycle
    status = Column(SQLEnum(RegistrationStatus), nullable=False, default=RegistrationStatus.COMMITTED)
    terminated_cause = Column(Text, nullable=False, default="")

    # Tracking
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    patient = relationship("Patient", back_populates="registrations")
    doctor = relationship("Doctor", back_populates="registrations")
    department = relationship("Department")
    milestones = relationship(
        "MileStone",
        back_populates="registration",
        order_by="MileStone.id",
        cascade="all, delete-orphan",
    )

    @property
    def is_active(self) -> bool:
        return self.status != RegistrationStatus.TERMINATED

    def __repr__(self):
        return (
            f"<Registration(id={self.id}, patient_id={self.patient_id}, doctor_id={self.doctor_id}, "
            f"date='{self.date}', half_day='{self.half_day}', status='{self.status}')>"
        )

class MileStone(Base):
    """A small progress step recorded by the doctor during a registration."""
    __tablename__ = "milestones"

    id = Column(Integer, primary_key=True, index=True)
    registration_id = Column(Integer, ForeignKey("registrations.id"), nullable=False, index=True)
    activity = Column(Text, nullable=False, default="")
    checked = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, server_default=func.now())

    registration = relationship("Registration", back_populates="milestones")

    def __repr__(self):
        return f"<MileStone(id={self.id}, registration_id={self.registration_id}, checked={self.checked})>"
