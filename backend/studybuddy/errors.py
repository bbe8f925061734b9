"""Typed failure signals shared by services, the auth gate and the HTTP layer.

Every failure a request can end in is a `ServiceError` carrying an
`ErrorKind`. The kind decides the HTTP status; the message is the only
text ever shown to the client.
"""

from enum import Enum


class ErrorKind(Enum):
    VALIDATION = ("validation_error", 400)
    INVALID_ID = ("invalid_id", 400)
    EMPTY_UPDATE = ("empty_update", 400)
    UNAUTHORIZED = ("unauthorized", 401)
    NOT_FOUND = ("not_found", 404)
    DUPLICATE_EMAIL = ("duplicate_email", 409)
    INTERNAL = ("internal", 500)

    def __init__(self, code: str, status: int):
        self.code = code
        self.status = status


INTERNAL_MESSAGE = "Internal server error"


class ServiceError(Exception):
    """A request failure with a known kind and a client-safe message."""

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    @property
    def status(self) -> int:
        return self.kind.status

    def __repr__(self):
        return f"ServiceError({self.kind.code!r}, {self.message!r})"


def http_status_for(exc: Exception) -> int:
    """Map any exception to the status code the HTTP layer should send.

    Only a `ServiceError` whose status lies in [400, 600) keeps its own
    status; everything else is a 500.
    """
    status = getattr(exc, "status", None)
    if isinstance(exc, ServiceError) and isinstance(status, int) and 400 <= status < 600:
        return status
    return 500


def validation_error(message: str) -> ServiceError:
    return ServiceError(ErrorKind.VALIDATION, message)
