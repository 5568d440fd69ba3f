from sqlalchemy import (
    Column, Integer, String, ForeignKey, Date, Text, CheckConstraint,
    UniqueConstraint, Enum as SQLEnum
)
from sqlalchemy.orm import relationship
import enum

from ..core.database import Base

class HalfDay(str, enum.Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    WHOLE = "whole"  # its own bucket, not morning + afternoon

class Department(Base):
    __tablename__ = "departments"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, unique=True)
    detail = Column(Text, nullable=True)

    # Relationships
    doctors = relationship("Doctor", back_populates="department", order_by="Doctor.id")
    schedules = relationship(
        "DepartmentSchedule",
        back_populates="department",
        order_by=lambda: [DepartmentSchedule.date, DepartmentSchedule.half_day],
    )

    def __repr__(self):
        return f"<Department(id={self.id}, name='{self.name}')>"

class DepartmentSchedule(Base):
    """A bookable slot: one department, one date, one half day."""
    __tablename__ = "department_schedules"
    __table_args__ = (
        UniqueConstraint("department_id", "date", "half_day", name="uq_schedule_slot"),
        CheckConstraint("capacity >= 0", name="ck_schedule_capacity"),
        CheckConstraint("occupancy >= 0 AND occupancy <= capacity", name="ck_schedule_occupancy"),
    )

    id = Column(Integer, primary_key=True, index=True)
    department_id = Column(Integer, ForeignKey("departments.id"), nullable=False, index=True)

    date = Column(Date, nullable=False)
    half_day = Column(SQLEnum(HalfDay), nullable=False)

    # Capacity is fixed by schedule tooling; occupancy only grows through admissions
    capacity = Column(Integer, nullable=False, default=0)
    occupancy = Column(Integer, nullable=False, default=0)

    # Relationships
    department = relationship("Department", back_populates="schedules")

    @property
    def remaining(self) -> int:
        return self.capacity - self.occupancy

    def __repr__(self):
        return (
            f"<DepartmentSchedule(id={self.id}, department_id={self.department_id}, "
            f"date='{self.date}', half_day='{self.half_day}', {self.occupancy}/{self.capacity})>"
        )
