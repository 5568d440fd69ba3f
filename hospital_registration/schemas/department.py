from pydantic import BaseModel, ConfigDict
from typing import List, Optional
import datetime as dt

from ..models.department import HalfDay

class DepartmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    detail: Optional[str] = None

class ScheduleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    date: dt.date
    half_day: HalfDay
    capacity: int
    occupancy: int
    remaining: int

class DepartmentDetailResponse(DepartmentResponse):
    doctors: List[str]
    schedules: List[ScheduleResponse]
