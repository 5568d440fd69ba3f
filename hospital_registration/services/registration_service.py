from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from ..core.exceptions import InvalidTransition, MissingTerminationCause, Unauthorized
from ..core.security import Identity
from ..models.registration import Registration, RegistrationStatus
from .stores import RegistrationStore

logger = logging.getLogger(__name__)

class RegistrationService:
    def __init__(self, db: Session):
        self.db = db
        self.registrations = RegistrationStore(db)

    def get_registration(self, registration_id: int, actor: Identity) -> Registration:
        """Return a registration visible to its patient, its doctor or an admin."""
        registration = self.registrations.get_registration(registration_id)
        if not (
            actor.is_admin
            or actor.is_patient(registration.patient_id)
            or actor.is_doctor(registration.doctor_id)
        ):
            raise Unauthorized(f"Registration {registration_id} is not yours")
        return registration

    def list_for_patient(self, patient_id: int) -> List[Registration]:
        return self.registrations.list_by_patient(patient_id)

    def list_for_doctor(self, doctor_id: int) -> List[Registration]:
        return self.registrations.list_by_doctor(doctor_id)

    def update_status(
        self,
        registration_id: int,
        status: RegistrationStatus,
        terminated_cause: Optional[str],
        actor: Identity,
    ) -> Registration:
        """Move a registration to a new status.

        Only the assigned doctor may do this. Terminated is final and must
        come with a cause; committed and accepted can be set from any other
        non-terminal status. Slot occupancy is not given back on termination.
        """
        registration = self.registrations.get_registration(registration_id)
        if not actor.is_doctor(registration.doctor_id):
            raise Unauthorized(f"Only the assigned doctor can update registration {registration_id}")

        if registration.status == RegistrationStatus.TERMINATED:
            raise InvalidTransition(f"Registration {registration_id} is already terminated")

        cause = ""
        if status == RegistrationStatus.TERMINATED:
            if not terminated_cause or not terminated_cause.strip():
                raise MissingTerminationCause()
            cause = terminated_cause

        previous = registration.status
        registration = self.registrations.update_status(registration_id, status, cause)
        logger.info(
            f"Registration {registration_id} moved from {previous.value} to {status.value} "
            f"by doctor {actor.id}"
        )
        return registration
