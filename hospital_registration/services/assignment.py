from sqlalchemy.orm import Session
from datetime import date
import logging

from ..core.exceptions import NoEligibleProvider
from ..models.department import HalfDay
from .stores import LoadIndex, ProviderDirectory

logger = logging.getLogger(__name__)

class AssignmentPolicy:
    """Greedy least-load doctor selection.

    Load is the number of active registrations a doctor holds on the same
    date and half day. The doctor with the strictly smallest load wins; on a
    tie the doctor listed first by the directory (lowest id) wins, so repeated
    runs over the same data always give the same answer.
    """

    def __init__(self, db: Session):
        self.directory = ProviderDirectory(db)
        self.loads = LoadIndex(db)

    def select_provider(self, department_id: int, day: date, half_day: HalfDay) -> int:
        best_id, best_load = None, None
        for doctor_id in self.directory.list_providers(department_id):
            load = self.loads.count_active(doctor_id, day, half_day)
            if best_load is None or load < best_load:
                best_id, best_load = doctor_id, load

        if best_id is None:
            raise NoEligibleProvider(f"Department {department_id} has no available doctor")

        logger.debug(f"Selected doctor {best_id} with load {best_load} for {day} {half_day.value}")
        return best_id
