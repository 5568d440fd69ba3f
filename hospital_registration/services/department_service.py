from sqlalchemy.orm import Session
from typing import List

from ..models.department import Department
from ..schemas.department import DepartmentDetailResponse, ScheduleResponse
from .stores import get_department

class DepartmentService:
    """Read-only views over departments, their doctors and schedules."""

    def __init__(self, db: Session):
        self.db = db

    def list_departments(self) -> List[Department]:
        return self.db.query(Department).order_by(Department.id).all()

    def get_department(self, department_id: int) -> DepartmentDetailResponse:
        department = get_department(self.db, department_id)
        return DepartmentDetailResponse(
            id=department.id,
            name=department.name,
            detail=department.detail,
            doctors=[doctor.full_name for doctor in department.doctors],
            schedules=[ScheduleResponse.model_validate(s) for s in department.schedules],
        )
