"""Error kinds raised by the reservation services.

Every business-rule violation is raised as one of these classes; the error
handler registered in ``create_app`` turns them into JSON responses, so
route code never has to inspect error messages to pick a status code.
"""


class ReservationSystemError(Exception):
    kind = "error"
    status_code = 500

    def __init__(self, message: str, details=None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        body = {"error": self.message, "kind": self.kind}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationFailed(ReservationSystemError):
    kind = "validation"
    status_code = 400


class AuthenticationRequired(ReservationSystemError):
    kind = "unauthenticated"
    status_code = 401

    def __init__(self, message: str = "Authentication required", details=None):
        super().__init__(message, details)


class PermissionDenied(ReservationSystemError):
    kind = "forbidden"
    status_code = 403

    def __init__(self, message: str = "Forbidden", details=None):
        super().__init__(message, details)


class NotFound(ReservationSystemError):
    kind = "not_found"
    status_code = 404


class Conflict(ReservationSystemError):
    kind = "conflict"
    status_code = 409


class SlotUnavailable(Conflict):
    """The slot was taken by another reservation."""

    def __init__(self, message: str = "Selected time slot is no longer available", details=None):
        super().__init__(message, details)
