"""Failure taxonomy for completion clients.

Hides which SDK exception a provider actually raised. Every failure that
leaves a client is one of the ``ServiceError`` subclasses below, so callers
can tell the kinds apart without importing any provider SDK.
"""


class ServiceError(Exception):
    """Base class for every failure raised by a completion client."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message or "unknown error"

    @property
    def kind(self) -> str:
        """Short name of the failure kind (e.g. ``NetworkError``)."""
        return type(self).__name__

    def describe(self) -> str:
        """Human-readable message that keeps the failure kind visible."""
        return f"{self.kind}: {self.message}"

    def __str__(self) -> str:
        return self.message


class NetworkError(ServiceError):
    """Transport or connectivity failure, including timeouts."""


class AuthError(ServiceError):
    """Missing or rejected credential."""


class RemoteError(ServiceError):
    """The service was reachable but answered with an error payload."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    def describe(self) -> str:
        if self.status_code is not None:
            return f"{self.kind} ({self.status_code}): {self.message}"
        return super().describe()


class EmptyResponseError(ServiceError):
    """The service answered but returned no usable text."""
