from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List

from ...core.database import get_db
from ...core.security import Identity
from ...api.deps import (
    get_admission_service, get_current_identity, get_doctor_identity,
    get_patient_identity
)
from ...schemas.registration import (
    MileStoneCreate, MileStoneResponse, RegistrationCreate,
    RegistrationResponse, RegistrationStatusUpdate
)
from ...services.admission_service import AdmissionService
from ...services.milestone_service import MilestoneService
from ...services.registration_service import RegistrationService

router = APIRouter(tags=["Registrations"])

@router.post("/registrations", response_model=RegistrationResponse, status_code=status.HTTP_201_CREATED)
def create_registration(
    submit: RegistrationCreate,
    identity: Identity = Depends(get_current_identity),
    admission: AdmissionService = Depends(get_admission_service)
):
    """Register a patient into a department schedule."""
    # Plain def: admission blocks on the slot lock, so it runs in the threadpool
    registration = admission.admit(submit, identity)
    return RegistrationResponse.model_validate(registration)

@router.get("/patient/registrations", response_model=List[RegistrationResponse])
async def get_registrations_by_patient(
    identity: Identity = Depends(get_patient_identity),
    db: Session = Depends(get_db)
):
    """All registrations of the current patient."""
    registrations = RegistrationService(db).list_for_patient(identity.id)
    return [RegistrationResponse.model_validate(r) for r in registrations]

@router.get("/doctor/registrations", response_model=List[RegistrationResponse])
async def get_registrations_by_doctor(
    identity: Identity = Depends(get_doctor_identity),
    db: Session = Depends(get_db)
):
    """All registrations assigned to the current doctor."""
    registrations = RegistrationService(db).list_for_doctor(identity.id)
    return [RegistrationResponse.model_validate(r) for r in registrations]

@router.get("/registrations/{registration_id}", response_model=RegistrationResponse)
async def get_registration(
    registration_id: int,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db)
):
    """A single registration, for its patient or its doctor."""
    registration = RegistrationService(db).get_registration(registration_id, identity)
    return RegistrationResponse.model_validate(registration)

@router.put("/registrations/{registration_id}/status", response_model=RegistrationResponse)
async def update_registration_status(
    registration_id: int,
    update: RegistrationStatusUpdate,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db)
):
    """Change the status of a registration (assigned doctor only)."""
    registration = RegistrationService(db).update_status(
        registration_id, update.status, update.terminated_cause, identity
    )
    return RegistrationResponse.model_validate(registration)

@router.post(
    "/registrations/{registration_id}/milestones",
    response_model=MileStoneResponse,
    status_code=status.HTTP_201_CREATED
)
async def create_milestone(
    registration_id: int,
    milestone_data: MileStoneCreate,
    identity: Identity = Depends(get_doctor_identity),
    db: Session = Depends(get_db)
):
    """Add a milestone to a registration."""
    milestone = MilestoneService(db).create(registration_id, milestone_data.activity)
    return MileStoneResponse.model_validate(milestone)
