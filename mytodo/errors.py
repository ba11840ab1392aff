"""Exceptions raised when talking to Jira and the other remote services."""

from typing import Optional


class MytodoError(Exception):
    """Base class for every failure the CLI reports as a remote error."""


class TransportError(MytodoError):
    """The request could not be built or the network call failed."""


class DecodeError(MytodoError):
    """The service answered but the payload could not be decoded."""


class RemoteServiceError(MytodoError):
    """The service answered with a non-success status."""

    def __init__(self, status_code: Optional[int], body: str = "", message: Optional[str] = None):
        self.status_code = status_code
        self.body = body
        super().__init__(message or f"HTTP {status_code}: {body}")


class NotFoundError(RemoteServiceError):
    """The requested issue (or epic) does not exist."""
