from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
import datetime as dt

from ..models.department import HalfDay
from ..models.registration import RegistrationStatus

class RegistrationCreate(BaseModel):
    department_id: int
    date: dt.date
    half_day: HalfDay
    # Required when a doctor or admin books on behalf of a patient
    patient_id: Optional[int] = None

class RegistrationStatusUpdate(BaseModel):
    status: RegistrationStatus
    terminated_cause: Optional[str] = None

class MileStoneCreate(BaseModel):
    activity: str = ""

class MileStoneUpdate(BaseModel):
    activity: Optional[str] = None
    checked: bool

class MileStoneResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    registration_id: int
    activity: str
    checked: bool

class RegistrationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_id: int
    department_id: int
    doctor_id: int
    date: dt.date
    half_day: HalfDay
    status: RegistrationStatus
    terminated_cause: str = ""
    milestones: List[MileStoneResponse] = Field(default_factory=list)
