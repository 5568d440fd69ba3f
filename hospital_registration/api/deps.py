from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import List

from ..core.database import get_db
from ..core.locks import get_slot_locks
from ..core.security import (
    security, verify_token, AuthenticationError,
    AuthorizationError, Identity, UserRole, TokenPayload
)
from ..services.admission_service import AdmissionService

async def get_current_user_token(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> TokenPayload:
    """Extract and verify JWT token from Authorization header."""
    token = credentials.credentials

    # Verify token
    token_payload = verify_token(token)
    if not token_payload:
        raise AuthenticationError("Invalid or expired token")

    # Check if token is access token
    if token_payload.token_type != "access":
        raise AuthenticationError("Invalid token type")

    return token_payload

async def get_current_identity(
    token_payload: TokenPayload = Depends(get_current_user_token)
) -> Identity:
    """Build the (role, id) pair the registration core works with."""
    if token_payload.sub is None or not token_payload.role:
        raise AuthenticationError("Invalid token payload")

    try:
        role = UserRole(token_payload.role)
    except ValueError:
        raise AuthenticationError("Unknown role in token")

    return Identity(role=role, id=token_payload.sub)

# Role-based access control dependencies
def require_role(allowed_roles: List[UserRole]):
    """Create a dependency that requires specific user roles."""
    async def role_checker(
        identity: Identity = Depends(get_current_identity)
    ) -> Identity:
        if identity.role not in allowed_roles:
            raise AuthorizationError(
                f"Access denied. Required roles: {[role.value for role in allowed_roles]}"
            )
        return identity

    return role_checker

# Specific role dependencies
async def get_doctor_identity(
    identity: Identity = Depends(require_role([UserRole.DOCTOR]))
) -> Identity:
    """Require doctor role."""
    return identity

async def get_patient_identity(
    identity: Identity = Depends(require_role([UserRole.PATIENT]))
) -> Identity:
    """Require patient role."""
    return identity

def get_admission_service(db: Session = Depends(get_db)) -> AdmissionService:
    """Admission service bound to the request session and the slot locks."""
    return AdmissionService(db, locks=get_slot_locks())
