"""
Service-level error taxonomy

Services raise these instead of HTTPException so the same rules hold no matter
which surface calls them; main.py renders them into the JSON error shape.
"""


class ServiceError(Exception):
    """Base class for all domain errors"""

    code = "internal"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class Unauthenticated(ServiceError):
    code = "unauthenticated"
    status_code = 401


class PermissionDenied(ServiceError):
    code = "permission-denied"
    status_code = 403


class InvalidArgument(ServiceError):
    code = "invalid-argument"
    status_code = 400


class NotFound(ServiceError):
    code = "not-found"
    status_code = 404


class AlreadyExists(ServiceError):
    code = "already-exists"
    status_code = 409


class AlreadyJoined(AlreadyExists):
    code = "already-joined"


class Conflict(ServiceError):
    code = "conflict"
    status_code = 409


class Internal(ServiceError):
    code = "internal"
    status_code = 500
