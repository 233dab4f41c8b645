"""Status definitions, sync status values and exceptions for WealthMate.

This module provides:
    - Status: enumeration of possible application states
    - STATUS_MESSAGE: user-facing messages for each status
    - get_message: retrieve the message for a status
    - SyncState / SyncStatus: the outcome of the most recent sync attempt
    - Result: explicit success/failure value returned by remote operations
    - BaseStatusException: base exception carrying a Status
    - Specific exceptions (e.g., TokenInvalidException) raised by the remote transport
"""
import dataclasses
import enum
import logging
from typing import Any, Dict, Generic, Optional, TypeVar

T = TypeVar('T')


class Status(enum.StrEnum):
    """Enumeration of application status codes."""
    UnknownStatus = enum.auto()
    Okay = enum.auto()

    # Credentials
    TokenNotConfigured = enum.auto()
    TokenInvalid = enum.auto()

    # Remote document
    GistNotFound = enum.auto()
    RemoteDataInvalid = enum.auto()

    # Transport
    RequestTimedOut = enum.auto()
    ServiceUnavailable = enum.auto()

    CacheInvalid = enum.auto()


STATUS_MESSAGE: Dict[Status, str] = {
    Status.UnknownStatus: 'Unknown status.',
    Status.Okay: 'Everything is okay.',

    Status.TokenNotConfigured: 'Cloud sync is not configured. Add a GitHub token in the settings.',
    Status.TokenInvalid: 'The GitHub token was rejected. Check that it is valid and has the "gist" scope.',

    Status.GistNotFound: 'Could not find the cloud document.',
    Status.RemoteDataInvalid: 'The cloud document could not be read.',

    Status.RequestTimedOut: 'Request timed out. Check your internet connection.',
    Status.ServiceUnavailable: 'GitHub is unavailable. Please check your connection.',

    Status.CacheInvalid: 'The local data file is invalid.',
}


def get_message(status: Status) -> str:
    """
    Get the message for a given status.

    Args:
        status (Status): The status enum.

    Returns:
        str: The message associated with the status.
    """
    return STATUS_MESSAGE.get(status, 'Unknown status')


class SyncState(enum.StrEnum):
    """The closed set of sync states."""
    Idle = enum.auto()
    Syncing = enum.auto()
    NotConfigured = enum.auto()
    Success = enum.auto()
    Error = enum.auto()


@dataclasses.dataclass(frozen=True)
class SyncStatus:
    """Reflection of the most recent sync attempt.

    Only ``Success`` and ``Error`` carry a message.
    """
    state: SyncState = SyncState.Idle
    message: str = ''

    @classmethod
    def idle(cls) -> 'SyncStatus':
        return cls(SyncState.Idle)

    @classmethod
    def syncing(cls) -> 'SyncStatus':
        return cls(SyncState.Syncing)

    @classmethod
    def not_configured(cls) -> 'SyncStatus':
        return cls(SyncState.NotConfigured)

    @classmethod
    def success(cls, message: str) -> 'SyncStatus':
        return cls(SyncState.Success, message)

    @classmethod
    def error(cls, message: str) -> 'SyncStatus':
        return cls(SyncState.Error, message)

    @property
    def is_error(self) -> bool:
        return self.state == SyncState.Error

    def __str__(self) -> str:
        if self.message:
            return f'{self.state.name}: {self.message}'
        return self.state.name


@dataclasses.dataclass(frozen=True)
class Result(Generic[T]):
    """Explicit success/failure value.

    Remote operations return a Result instead of raising, so their failures are
    visible to the caller's control flow rather than escaping as exceptions.

    Attributes:
        value: The payload of a successful operation (may itself be None).
        error: The exception of a failed operation, None on success.
    """
    value: Optional[T] = None
    error: Optional[BaseException] = None

    @classmethod
    def success(cls, value: Optional[T] = None) -> 'Result[T]':
        return cls(value=value)

    @classmethod
    def failure(cls, error: BaseException) -> 'Result[T]':
        if error is None:
            raise ValueError('A failed result requires an error.')
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def message(self) -> str:
        """The failure reason as user-facing text, empty on success."""
        if self.error is None:
            return ''
        return str(self.error) or type(self.error).__name__

    def unwrap(self) -> Any:
        """Return the value, or raise the stored error."""
        if self.error is not None:
            raise self.error
        return self.value


class BaseStatusException(Exception):
    """Base exception for status-based errors in WealthMate.

    Attributes:
        status (Status): Status code associated with this error.
        status_message (str): User-facing message for the status.

    Args:
        message (str): Optional additional context for the error.
    """
    status = Status.UnknownStatus

    def __init__(self, message: str = None):
        self.status_message = get_message(self.status)
        exception_message = f'{self.status_message} {message}' if message else self.status_message
        super().__init__(exception_message)

        logging.error(exception_message)

        from ..ui.actions import signals
        signals.error.emit(message or self.status_message)


class UnknownException(BaseStatusException):
    """Exception for an unknown error during status processing."""
    pass


class TokenNotConfiguredException(BaseStatusException):
    """Exception raised when no GitHub access token is stored."""
    status = Status.TokenNotConfigured


class TokenInvalidException(BaseStatusException):
    """Exception raised when GitHub rejects the access token (HTTP 401/403)."""
    status = Status.TokenInvalid

    def __init__(self, message: str = None):
        super().__init__(message)

        from ..ui.actions import signals
        signals.tokenRejected.emit()


class GistNotFoundException(BaseStatusException):
    """Exception raised when the cached gist id does not resolve to a gist (HTTP 404)."""
    status = Status.GistNotFound


class RemoteDataInvalidException(BaseStatusException):
    """Exception raised when the gist content cannot be decoded into a snapshot."""
    status = Status.RemoteDataInvalid


class RequestTimedOutException(BaseStatusException):
    """Exception raised when a request to GitHub times out."""
    status = Status.RequestTimedOut


class ServiceUnavailableException(BaseStatusException):
    """Exception raised when GitHub cannot be reached or answers with an error."""
    status = Status.ServiceUnavailable


class CacheInvalidException(BaseStatusException):
    """Exception raised when the local data file is corrupted."""
    status = Status.CacheInvalid
