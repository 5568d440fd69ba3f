from datetime import datetime, timedelta
from typing import Optional
from jose import JWTError, jwt
from fastapi import HTTPException, status
from fastapi.security import HTTPBearer
from pydantic import BaseModel
from dataclasses import dataclass
from enum import Enum

from .config import settings

# JWT Security
security = HTTPBearer()

class UserRole(str, Enum):
    ADMIN = "admin"
    DOCTOR = "doctor"
    PATIENT = "patient"

class TokenPayload(BaseModel):
    sub: Optional[int] = None
    role: Optional[str] = None
    exp: Optional[int] = None
    token_type: Optional[str] = None  # "access" or "refresh"

@dataclass(frozen=True)
class Identity:
    """Authenticated caller as seen by the registration core.

    ``id`` is the doctor id for doctors, the patient id for patients.
    """
    role: UserRole
    id: int

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def is_doctor(self, doctor_id: Optional[int]) -> bool:
        return self.role == UserRole.DOCTOR and doctor_id is not None and self.id == doctor_id

    def is_patient(self, patient_id: Optional[int]) -> bool:
        return self.role == UserRole.PATIENT and patient_id is not None and self.id == patient_id

# JWT utilities
def create_access_token(
    identity: Identity,
    expires_delta: Optional[timedelta] = None
) -> str:
    """Create JWT access token for an identity."""
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(
            minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )

    to_encode = {
        # "sub" must be a string for compliant JWT decoders
        "sub": str(identity.id),
        "role": identity.role.value,
        "exp": expire,
        "token_type": "access",
    }

    return jwt.encode(
        to_encode,
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM
    )

def verify_token(token: str) -> Optional[TokenPayload]:
    """Verify and decode JWT token."""
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM]
        )

        return TokenPayload(**payload)

    except (JWTError, ValueError):
        return None

# Security exceptions
class AuthenticationError(HTTPException):
    def __init__(self, detail: str = "Could not validate credentials"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )

class AuthorizationError(HTTPException):
    def __init__(self, detail: str = "Not enough permissions"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
        )
