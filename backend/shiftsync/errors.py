# Overview: Domain error taxonomy shared by services and routes.

"""
Errors raised by the authorization and reconciliation services.

Every error carries a machine-readable ``kind`` and the HTTP status the API
layer answers with. Services raise them synchronously; nothing recovers them
internally.
"""


class ShiftSyncError(Exception):
    """Base class for errors surfaced to API callers."""

    kind = "Error"
    status_code = 400

    def __init__(self, message: str | None = None):
        super().__init__(message or self.kind)
        self.message = message or self.kind

    def to_dict(self) -> dict:
        return {"error": self.message, "kind": self.kind}


class Forbidden(ShiftSyncError):
    """Acting user lacks the required permission or venue scope."""

    kind = "Forbidden"
    status_code = 403


class NotFound(ShiftSyncError):
    """A referenced entity id does not resolve."""

    kind = "NotFound"
    status_code = 404


class InvalidState(ShiftSyncError):
    """A precondition was violated (verified record, self-verification, lost race)."""

    kind = "InvalidState"
    status_code = 409


class ValidationError(InvalidState):
    """400-level input problem (negative amount, malformed field)."""

    status_code = 400
