from fastapi import status


class RegistrationError(Exception):
    """Base class for every error raised by the registration core."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    default_detail: str = "Registration request failed"

    def __init__(self, detail: str = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)

    @property
    def kind(self) -> str:
        return type(self).__name__


# Validation failures: terminal for the request, never retried
class InvalidSlot(RegistrationError):
    default_detail = "Schedule does not exist or is in the past"

class DuplicateBooking(RegistrationError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Patient already holds an active registration for this schedule"

class CapacityExceeded(RegistrationError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Schedule has no remaining capacity"

class NoEligibleProvider(RegistrationError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "No doctor of the department can take this registration"

class MissingTerminationCause(RegistrationError):
    default_detail = "A terminated registration requires a cause"

class InvalidTransition(RegistrationError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "A terminated registration cannot change status"

class Unauthorized(RegistrationError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Not allowed to act on this resource"

class NotFound(RegistrationError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Resource not found"


# Store-level signals
class StoreConflict(RegistrationError):
    """A concurrent writer won the race; the admission decision is re-run."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Concurrent update detected"

class Unavailable(RegistrationError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "Registration service is busy, please retry"
