from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from ...core.database import get_db
from ...schemas.department import DepartmentDetailResponse, DepartmentResponse
from ...services.department_service import DepartmentService

router = APIRouter(prefix="/departments", tags=["Departments"])

@router.get("", response_model=List[DepartmentResponse])
async def get_all_departments(db: Session = Depends(get_db)):
    """List all departments of the hospital."""
    departments = DepartmentService(db).list_departments()
    return [DepartmentResponse.model_validate(d) for d in departments]

@router.get("/{department_id}", response_model=DepartmentDetailResponse)
async def get_department(department_id: int, db: Session = Depends(get_db)):
    """Department details with its doctors and schedules."""
    return DepartmentService(db).get_department(department_id)
