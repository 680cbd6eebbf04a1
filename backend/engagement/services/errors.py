"""
Typed errors raised by the engagement services.

NotFound, InvalidArgument and Conflict are surfaced to the caller verbatim.
DependencyUnavailable is raised by collaborators; the lifecycle engine
swallows it for best-effort steps.
"""


class EngagementError(Exception):
    code = "error"

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict:
        return {"detail": self.message, "code": self.code, **self.context}


class NotFound(EngagementError):
    """Entity missing or inactive. Never says which."""
    code = "not_found"


class InvalidArgument(EngagementError):
    code = "invalid_argument"

    def __init__(self, field: str, message: str):
        super().__init__(message, field=field)
        self.field = field


class Conflict(EngagementError):
    """
    Uniqueness violation. For bookings, `existing` describes the blocking
    booking so a human can pick another slot.
    """
    code = "conflict"

    def __init__(self, message: str, existing: dict | None = None):
        context = {"existing_booking": existing} if existing is not None else {}
        super().__init__(message, **context)
        self.existing = existing


class DependencyUnavailable(EngagementError):
    code = "dependency_unavailable"
