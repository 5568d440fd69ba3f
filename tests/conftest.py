import os
import tempfile

# Set testing environment before the application modules read settings
os.environ["TESTING"] = "1"
os.environ.setdefault(
    "TEST_DATABASE_URL",
    f"sqlite:///{os.path.join(tempfile.gettempdir(), 'hospital_registration_test.db')}"
)

from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from hospital_registration.core.database import Base
from hospital_registration.core.locks import SlotLockTable
from hospital_registration.core.security import Identity, UserRole
from hospital_registration.models.department import Department, DepartmentSchedule, HalfDay
from hospital_registration.models.doctor import Doctor
from hospital_registration.models.patient import Patient
from hospital_registration.models.registration import Registration, RegistrationStatus
from hospital_registration.services.admission_service import AdmissionService

TODAY = date(2024, 4, 30)
SLOT_DAY = date(2024, 5, 1)

class Factory:
    """Inserts master data directly, the way schedule tooling would."""

    def __init__(self, db):
        self.db = db

    def _save(self, obj):
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def department(self, name="Orthopedics", detail=None):
        return self._save(Department(name=name, detail=detail))

    def doctor(self, department, first_name="Gregory", last_name="House", is_available=True):
        return self._save(Doctor(
            department_id=department.id,
            first_name=first_name,
            last_name=last_name,
            is_available=is_available,
        ))

    def patient(self, first_name="Jane", last_name="Doe"):
        return self._save(Patient(first_name=first_name, last_name=last_name))

    def schedule(self, department, day=SLOT_DAY, half_day=HalfDay.MORNING, capacity=2, occupancy=0):
        return self._save(DepartmentSchedule(
            department_id=department.id,
            date=day,
            half_day=half_day,
            capacity=capacity,
            occupancy=occupancy,
        ))

    def registration(self, patient, doctor, day=SLOT_DAY, half_day=HalfDay.MORNING,
                     status=RegistrationStatus.COMMITTED, terminated_cause=""):
        return self._save(Registration(
            patient_id=patient.id,
            department_id=doctor.department_id,
            doctor_id=doctor.id,
            date=day,
            half_day=half_day,
            status=status,
            terminated_cause=terminated_cause,
        ))

@pytest.fixture
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()

@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)

@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()

@pytest.fixture
def factory(db):
    return Factory(db)

@pytest.fixture
def locks():
    return SlotLockTable(timeout=5)

@pytest.fixture
def admission(db, locks):
    return AdmissionService(db, locks=locks, today=lambda: TODAY)

def patient_identity(patient):
    return Identity(role=UserRole.PATIENT, id=patient.id)

def doctor_identity(doctor):
    return Identity(role=UserRole.DOCTOR, id=doctor.id)
