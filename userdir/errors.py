"""Error taxonomy shared by the directory client and the controllers."""

from typing import Dict, Optional


class DirectoryError(Exception):
    """Base class for failures reported by the remote directory API."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class Unauthorized(DirectoryError):
    """The token (or the login credentials) was rejected. Always forces a logout."""


class NotFound(DirectoryError):
    """The addressed record or page does not exist on the server."""


class ServerError(DirectoryError):
    """Any other non-2xx answer, or a 2xx answer that could not be understood."""


class NetworkError(DirectoryError):
    """The request never produced an HTTP response (connection, DNS, timeout)."""


class ValidationError(Exception):
    """Field-level validation failed; carries the field -> message mapping."""

    def __init__(self, field_errors: Dict[str, str]):
        super().__init__(", ".join(f"{k}: {v}" for k, v in field_errors.items()))
        self.field_errors = dict(field_errors)


__all__ = [
    "DirectoryError",
    "Unauthorized",
    "NotFound",
    "ServerError",
    "NetworkError",
    "ValidationError",
]
