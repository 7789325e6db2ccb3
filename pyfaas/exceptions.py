"""Exceptions raised by pyfaas."""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Categories of failures reported per function."""

    NOT_FOUND_ON_PLATFORM = "not_found_on_platform"
    """A required function has no record on the platform"""

    IN_FLIGHT_CONFLICT = "in_flight_conflict"
    """A deployment for the function is already running"""

    VALIDATION_FAILURE = "validation_failure"
    """The platform rejected the submitted code or metadata"""

    TRANSPORT_FAILURE = "transport_failure"
    """Network, authentication or unexpected API failure"""

    LOCAL_CONFIG = "local_config"
    """The local function folder or configuration is unusable"""

    CANCELLED = "cancelled"
    """Watching was stopped before a terminal state was reached"""


# Friendly messages for well-known platform error codes
ERROR_MESSAGES: dict[str, str] = {
    "com.liveperson.faas.ui.payload-too-large": (
        "Payload is too large for provided function"
    ),
    "com.liveperson.faas.fm.validation.general": (
        "Provided function did not pass validation"
    ),
    "com.liveperson.faas.fm.validation.invalid-syntax": "Invalid Syntax",
    "com.liveperson.faas.fm.validation.contract-error": (
        "The code you are trying to push is not a valid function"
    ),
    "com.liveperson.faas.fm.validation.unallowed-dependency": (
        "You can only use the dependencies that you enabled in the settings"
    ),
    "com.liveperson.faas.fm.validation.to-long": (
        "Source code exceeded the maximum length of 100,000 characters"
    ),
    "com.liveperson.faas.fm.validation.unallowed-code": (
        "Your code contains expressions currently not allowed on the "
        "Functions platform (e.g. eval())"
    ),
    "com.liveperson.faas.dm.action.not-allowed": "Not allowed to deploy a function",
    "com.liveperson.faas.db.conflict": (
        "Operation conflicted with an operation of another user"
    ),
}


class FaasError(Exception):
    """Base exception for all pyfaas errors."""

    kind: ErrorKind = ErrorKind.TRANSPORT_FAILURE

    def __init__(self, message: str, error_code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code


class FaasAPIError(FaasError):
    """Raised when a platform API request fails."""


class FaasConfigError(FaasError):
    """Raised when the client configuration is incomplete."""

    kind = ErrorKind.LOCAL_CONFIG


class FaasAuthenticationError(FaasAPIError):
    """Raised when the bearer token is missing, expired or invalid."""


class FaasPermissionError(FaasAPIError):
    """Raised when the user may not perform an action."""


class FaasNetworkError(FaasAPIError):
    """Raised on connection problems and timeouts."""


class FaasRateLimitError(FaasAPIError):
    """Raised when the platform throttles requests."""


class FaasInvalidResponseError(FaasAPIError):
    """Raised when the platform answers with something that is not JSON."""


class FaasValidationError(FaasAPIError):
    """Raised when the platform rejects code or metadata as invalid."""

    kind = ErrorKind.VALIDATION_FAILURE


class FaasNotFoundError(FaasAPIError):
    """Raised when a platform resource does not exist."""

    kind = ErrorKind.NOT_FOUND_ON_PLATFORM


class FaasConflictError(FaasAPIError):
    """Raised when a deployment for the function is already in progress."""

    kind = ErrorKind.IN_FLIGHT_CONFLICT


class FunctionNotFoundError(FaasNotFoundError):
    """Raised when requested functions are missing on the platform."""

    def __init__(self, names: list[str]):
        self.names = names
        joined = ", ".join(names)
        super().__init__(
            f"Function(s) {joined} were not found on the platform. "
            "Please make sure they were pushed first."
        )


class LocalFunctionError(FaasError):
    """Raised when a local function folder cannot be read."""

    kind = ErrorKind.LOCAL_CONFIG


class WatchCancelledError(FaasError):
    """Raised when a state watch is interrupted."""

    kind = ErrorKind.CANCELLED


class WatchTimeoutError(FaasError):
    """Raised when a state watch exceeds its optional timeout."""

    kind = ErrorKind.TRANSPORT_FAILURE
