from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload
from datetime import date
from typing import List, Optional

from ..core.exceptions import DuplicateBooking, InvalidTransition, NotFound, StoreConflict
from ..models.department import Department, DepartmentSchedule, HalfDay
from ..models.doctor import Doctor
from ..models.patient import Patient
from ..models.registration import MileStone, Registration, RegistrationStatus

class SlotStore:
    """Department schedules with their capacity and occupancy."""

    def __init__(self, db: Session):
        self.db = db

    def get_slot(self, department_id: int, day: date, half_day: HalfDay) -> Optional[DepartmentSchedule]:
        return self.db.query(DepartmentSchedule).filter(
            DepartmentSchedule.department_id == department_id,
            DepartmentSchedule.date == day,
            DepartmentSchedule.half_day == half_day
        ).first()

    def increment_occupancy(self, slot_id: int) -> None:
        """Take one place in the slot, or raise StoreConflict if it is full."""
        result = self.db.execute(
            update(DepartmentSchedule)
            .where(
                DepartmentSchedule.id == slot_id,
                DepartmentSchedule.occupancy < DepartmentSchedule.capacity
            )
            .values(occupancy=DepartmentSchedule.occupancy + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise StoreConflict(f"Schedule {slot_id} changed while admitting")

class RegistrationStore:
    def __init__(self, db: Session):
        self.db = db

    def find_registrations(self, patient_id: int, department_id: int, day: date,
                           half_day: HalfDay) -> List[Registration]:
        return self.db.query(Registration).filter(
            Registration.patient_id == patient_id,
            Registration.department_id == department_id,
            Registration.date == day,
            Registration.half_day == half_day
        ).all()

    def create_registration(self, registration: Registration) -> Registration:
        self.db.add(registration)
        self.db.flush()
        return registration

    def get_registration(self, registration_id: int) -> Registration:
        registration = self.db.query(Registration).options(
            selectinload(Registration.milestones)
        ).filter(Registration.id == registration_id).first()
        if not registration:
            raise NotFound(f"Registration {registration_id} not found")
        return registration

    def update_status(self, registration_id: int, status: RegistrationStatus,
                      terminated_cause: str = "") -> Registration:
        """Write a new status unless the registration is already terminated."""
        try:
            result = self.db.execute(
                update(Registration)
                .where(
                    Registration.id == registration_id,
                    Registration.status != RegistrationStatus.TERMINATED
                )
                .values(status=status, terminated_cause=terminated_cause)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                self.db.rollback()
                raise InvalidTransition(f"Registration {registration_id} is already terminated")
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise DuplicateBooking(
                "Patient already holds another active registration for this schedule"
            )
        self.db.expire_all()
        return self.get_registration(registration_id)

    def list_by_patient(self, patient_id: int) -> List[Registration]:
        return self.db.query(Registration).options(
            selectinload(Registration.milestones)
        ).filter(
            Registration.patient_id == patient_id
        ).order_by(Registration.date.desc(), Registration.id.desc()).all()

    def list_by_doctor(self, doctor_id: int) -> List[Registration]:
        return self.db.query(Registration).options(
            selectinload(Registration.milestones)
        ).filter(
            Registration.doctor_id == doctor_id
        ).order_by(Registration.date.desc(), Registration.id.desc()).all()

class ProviderDirectory:
    def __init__(self, db: Session):
        self.db = db

    def list_providers(self, department_id: int) -> List[int]:
        """Available doctors of a department, in a stable (id) order."""
        rows = self.db.query(Doctor.id).filter(
            Doctor.department_id == department_id,
            Doctor.is_available.is_(True)
        ).order_by(Doctor.id.asc()).all()
        return [row.id for row in rows]

class LoadIndex:
    """Active registrations per doctor, derived on every read."""

    def __init__(self, db: Session):
        self.db = db

    def count_active(self, doctor_id: int, day: date, half_day: HalfDay) -> int:
        return self.db.query(func.count(Registration.id)).filter(
            Registration.doctor_id == doctor_id,
            Registration.date == day,
            Registration.half_day == half_day,
            Registration.status != RegistrationStatus.TERMINATED
        ).scalar()

class MilestoneStore:
    def __init__(self, db: Session):
        self.db = db

    def get(self, milestone_id: int) -> MileStone:
        milestone = self.db.query(MileStone).filter(MileStone.id == milestone_id).first()
        if not milestone:
            raise NotFound(f"Milestone {milestone_id} not found")
        return milestone

    def create(self, registration_id: int, activity: str) -> MileStone:
        milestone = MileStone(registration_id=registration_id, activity=activity)
        self.db.add(milestone)
        self.db.commit()
        self.db.refresh(milestone)
        return milestone

    def update(self, milestone: MileStone, activity: Optional[str], checked: bool) -> MileStone:
        if activity is not None:
            milestone.activity = activity
        milestone.checked = checked
        self.db.commit()
        self.db.refresh(milestone)
        return milestone

    def delete(self, milestone: MileStone) -> None:
        self.db.delete(milestone)
        self.db.commit()

def get_department(db: Session, department_id: int) -> Department:
    department = db.query(Department).filter(Department.id == department_id).first()
    if not department:
        raise NotFound(f"Department {department_id} not found")
    return department

def get_patient(db: Session, patient_id: int) -> Patient:
    patient = db.query(Patient).filter(Patient.id == patient_id).first()
    if not patient:
        raise NotFound(f"Patient {patient_id} not found")
    return patient
