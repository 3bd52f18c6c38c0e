"""Error taxonomy for graph mutations and the request workflow.

Every error carries an HTTP status and a stable ``code`` so the app-level
exception handler in ``main.py`` can render it without per-route mapping.
"""

from __future__ import annotations


class WhanauError(Exception):
    status_code = 400
    code = "ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(WhanauError):
    code = "VALIDATION_ERROR"


class SelfLink(ValidationError):
    code = "SELF_LINK"


class CycleDetected(WhanauError):
    status_code = 409
    code = "CYCLE_DETECTED"


class NotFound(WhanauError):
    status_code = 404
    code = "NOT_FOUND"


class PersonNotFound(NotFound):
    code = "PERSON_NOT_FOUND"

    def __init__(self, person_id: str) -> None:
        super().__init__(f"person not found: {person_id}")
        self.person_id = person_id


class EdgeNotFound(NotFound):
    code = "EDGE_NOT_FOUND"


class PartnershipNotFound(NotFound):
    code = "PARTNERSHIP_NOT_FOUND"


class RequestNotFound(NotFound):
    code = "REQUEST_NOT_FOUND"


class Forbidden(WhanauError):
    status_code = 403
    code = "FORBIDDEN"


class RequestAlreadyHandled(WhanauError):
    status_code = 409
    code = "ALREADY_HANDLED"
