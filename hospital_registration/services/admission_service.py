from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session
from datetime import date
from typing import Callable, Optional, Tuple
import logging

from ..core.config import settings
from ..core.exceptions import (
    CapacityExceeded, DuplicateBooking, InvalidSlot, RegistrationError,
    StoreConflict, Unauthorized, Unavailable
)
from ..core.locks import slot_locks
from ..core.security import Identity, UserRole
from ..models.department import HalfDay
from ..models.registration import Registration, RegistrationStatus
from ..schemas.registration import RegistrationCreate
from .assignment import AssignmentPolicy
from .stores import RegistrationStore, SlotStore, get_department, get_patient

logger = logging.getLogger(__name__)

def slot_key(department_id: int, day: date, half_day: HalfDay) -> Tuple[int, str, str]:
    """Lock key identifying one department schedule."""
    return (department_id, day.isoformat(), half_day.value)

class AdmissionService:
    """Turns a registration request into a committed registration.

    The whole decision (duplicate check, schedule validation, capacity check,
    doctor assignment and commit) runs under the lock of the target schedule,
    so two requests for the same schedule are strictly serialized while
    requests for different schedules proceed in parallel.
    """

    def __init__(
        self,
        db: Session,
        locks=None,
        today: Optional[Callable[[], date]] = None,
        max_retries: Optional[int] = None,
    ):
        self.db = db
        self.locks = locks if locks is not None else slot_locks
        self.today = today or date.today
        self.max_retries = max_retries if max_retries is not None else settings.ADMISSION_MAX_RETRIES
        self.slots = SlotStore(db)
        self.registrations = RegistrationStore(db)
        self.assignment = AssignmentPolicy(db)

    def admit(self, request: RegistrationCreate, actor: Identity) -> Registration:
        """Admit a patient into a schedule and return the new registration."""
        patient_id = self._resolve_patient(request, actor)

        # Referenced records must exist before we queue for the schedule
        get_department(self.db, request.department_id)
        get_patient(self.db, patient_id)

        key = slot_key(request.department_id, request.date, request.half_day)
        with self.locks.hold(key):
            for attempt in range(1, self.max_retries + 1):
                try:
                    registration = self._decide(patient_id, request)
                except StoreConflict as exc:
                    # Start over: the schedule may look different now
                    logger.warning(
                        f"Store conflict admitting patient {patient_id} into {key} "
                        f"(attempt {attempt}/{self.max_retries}): {exc.detail}"
                    )
                    continue

                logger.info(
                    f"Registration {registration.id} committed: patient {patient_id} -> "
                    f"doctor {registration.doctor_id} on {key}"
                )
                return registration

        logger.error(f"Giving up admitting patient {patient_id} into {key} after {self.max_retries} attempts")
        raise Unavailable(f"Schedule {request.date} {request.half_day.value} is busy, please retry")

    def _resolve_patient(self, request: RegistrationCreate, actor: Identity) -> int:
        if actor.role == UserRole.PATIENT:
            if request.patient_id is not None and request.patient_id != actor.id:
                raise Unauthorized("Patients can only register themselves")
            return actor.id

        # Doctors and admins may register on behalf of a patient
        if request.patient_id is None:
            raise RegistrationError("patient_id is required when registering on behalf of a patient")
        return request.patient_id

    def _decide(self, patient_id: int, request: RegistrationCreate) -> Registration:
        """One full admission attempt; leaves no partial state on failure."""
        try:
            # Duplicate check: terminated registrations do not block a new one
            existing = self.registrations.find_registrations(
                patient_id, request.department_id, request.date, request.half_day
            )
            if any(r.is_active for r in existing):
                raise DuplicateBooking()

            # Schedule must exist and not be in the past
            slot = self.slots.get_slot(request.department_id, request.date, request.half_day)
            if slot is None:
                raise InvalidSlot(f"No schedule for {request.date} {request.half_day.value}")
            if slot.date < self.today():
                raise InvalidSlot(f"Schedule {slot.date} {slot.half_day.value} is in the past")

            if slot.occupancy >= slot.capacity:
                raise CapacityExceeded()

            doctor_id = self.assignment.select_provider(
                request.department_id, request.date, request.half_day
            )

            # Commit: occupancy and registration land in the same transaction
            self.slots.increment_occupancy(slot.id)
            registration = self.registrations.create_registration(Registration(
                patient_id=patient_id,
                department_id=request.department_id,
                doctor_id=doctor_id,
                date=request.date,
                half_day=request.half_day,
                status=RegistrationStatus.COMMITTED,
                terminated_cause="",
            ))
            self.db.commit()
        except (IntegrityError, OperationalError) as exc:
            self.db.rollback()
            logger.error(f"Registration insert failed: {exc}")
            raise StoreConflict("Registration could not be stored") from exc
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(registration)
        return registration
