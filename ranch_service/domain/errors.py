"""
Domain error kinds.

Every error carries the HTTP status code the API layer maps it to, so the
error handler middleware never needs to know individual error classes.
"""
from typing import Optional


class RanchServiceError(Exception):
    """Base class for all errors raised by the ranch core."""

    status_code: int = 500
    kind: str = "internal_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(RanchServiceError):
    """Malformed or out-of-policy input."""

    status_code = 400
    kind = "validation_error"

    def __init__(self, message: str, errors: Optional[list[str]] = None):
        super().__init__(message)
        self.errors = list(errors) if errors else [message]


class NotFoundError(RanchServiceError):
    """Ranch or pasture id unknown."""

    status_code = 404
    kind = "not_found"


class AuthorizationError(RanchServiceError):
    """Mutation attempted by a user who does not own the ranch."""

    status_code = 403
    kind = "forbidden"


class ConflictError(RanchServiceError):
    """Operation blocked by the current state of the ranch."""

    status_code = 409
    kind = "conflict"


class RotationError(ConflictError):
    """Base class for rotation policy violations."""

    kind = "rotation_error"


class CapacityExceededError(RotationError):
    """Destination pasture cannot hold the rotated animals."""

    kind = "capacity_exceeded"


class RestPeriodViolationError(RotationError):
    """Destination pasture has not finished its rest period."""

    kind = "rest_period_violation"


class DependencyTimeoutError(RanchServiceError, TimeoutError):
    """An external dependency did not respond in time."""

    status_code = 504
    kind = "timeout"


class PersistenceError(RanchServiceError):
    """Transient failure of the persistence backend."""

    status_code = 503
    kind = "persistence_error"


class ImageProcessingError(RanchServiceError):
    """The image service failed to process an upload."""

    status_code = 502
    kind = "image_processing_error"
