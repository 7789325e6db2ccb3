"""PyFaaS - push, pull and deploy serverless functions from a local project."""

from .api import FaasClient
from .exceptions import (
    ErrorKind,
    FaasAPIError,
    FaasAuthenticationError,
    FaasConfigError,
    FaasConflictError,
    FaasError,
    FaasInvalidResponseError,
    FaasNetworkError,
    FaasNotFoundError,
    FaasPermissionError,
    FaasRateLimitError,
    FaasValidationError,
    FunctionNotFoundError,
    LocalFunctionError,
    WatchCancelledError,
    WatchTimeoutError,
)
from .project import LocalProject

__all__ = [
    "FaasClient",
    "LocalProject",
    "ErrorKind",
    "FaasError",
    "FaasAPIError",
    "FaasAuthenticationError",
    "FaasConfigError",
    "FaasConflictError",
    "FaasInvalidResponseError",
    "FaasNetworkError",
    "FaasNotFoundError",
    "FaasPermissionError",
    "FaasRateLimitError",
    "FaasValidationError",
    "FunctionNotFoundError",
    "LocalFunctionError",
    "WatchCancelledError",
    "WatchTimeoutError",
]
