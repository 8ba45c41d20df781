"""Error types raised by the cache mediator and backend clients.

Expected outcomes such as a reservation conflict or a cache miss are not
errors; they are reported through the result models in
:mod:`turbogha.storage.models`.
"""

from typing import Any, Optional


class TurboghaError(Exception):
    """Base exception for turbogha."""

    pass


class ConfigurationError(TurboghaError):
    """Raised when the remote cache is selected but not usable."""

    pass


class OperationError(TurboghaError):
    """Raised when the remote cache or its transport fails unexpectedly.

    Attributes:
        status_code: HTTP status returned by the service, if any
        body: Raw response body, kept for diagnostics
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Any = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.body = body

    def __str__(self) -> str:
        message = super().__str__()
        if self.status_code is not None:
            return f"{message} (status {self.status_code})"
        return message


class IntegrityError(OperationError):
    """Raised when a cache entry was found but its content cannot be read."""

    pass
