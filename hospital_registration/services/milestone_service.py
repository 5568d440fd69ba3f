from sqlalchemy.orm import Session
from typing import Optional
import logging

from ..core.exceptions import Unauthorized
from ..core.security import Identity
from ..models.registration import MileStone
from .stores import MilestoneStore, RegistrationStore

logger = logging.getLogger(__name__)

class MilestoneService:
    def __init__(self, db: Session):
        self.db = db
        self.milestones = MilestoneStore(db)
        self.registrations = RegistrationStore(db)

    def create(self, registration_id: int, activity: str) -> MileStone:
        """Record a new progress step on a registration."""
        # Raises NotFound for an unknown registration
        self.registrations.get_registration(registration_id)
        milestone = self.milestones.create(registration_id, activity)
        logger.info(f"Milestone {milestone.id} added to registration {registration_id}")
        return milestone

    def update(self, milestone_id: int, activity: Optional[str], checked: bool,
               actor: Identity) -> MileStone:
        """Edit or check a milestone; only the assigned doctor may do this."""
        milestone = self._owned_milestone(milestone_id, actor)
        return self.milestones.update(milestone, activity, checked)

    def delete(self, milestone_id: int, actor: Identity) -> None:
        """Remove a milestone; only the assigned doctor may do this."""
        milestone = self._owned_milestone(milestone_id, actor)
        self.milestones.delete(milestone)
        logger.info(f"Milestone {milestone_id} deleted by doctor {actor.id}")

    def _owned_milestone(self, milestone_id: int, actor: Identity) -> MileStone:
        milestone = self.milestones.get(milestone_id)
        registration = self.registrations.get_registration(milestone.registration_id)
        if not actor.is_doctor(registration.doctor_id):
            logger.warning(f"Rejected change to milestone {milestone_id} by {actor.role.value} {actor.id}")
            raise Unauthorized(f"Milestone {milestone_id} belongs to another doctor's registration")
        return milestone
