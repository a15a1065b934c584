"""Expected, recoverable outcomes of tracker operations.

Service code raises these; ``server.py`` maps each one to a JSON body carrying
``success: false``, a machine-readable ``error`` category and a human message.
"""
from typing import Optional


class TrackerError(Exception):
    status_code = 400
    category = "error"

    def __init__(self, message: str, *, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field


class ValidationError(TrackerError):
    status_code = 400
    category = "validation_error"


class NotAuthenticated(TrackerError):
    status_code = 401
    category = "not_authenticated"


class Forbidden(TrackerError):
    status_code = 403
    category = "forbidden"


class NotFound(TrackerError):
    status_code = 404
    category = "not_found"


class Conflict(TrackerError):
    status_code = 409
    category = "conflict"


class InvalidStateTransition(TrackerError):
    status_code = 400
    category = "invalid_state_transition"
