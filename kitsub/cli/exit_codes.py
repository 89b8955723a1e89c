"""Process exit codes used by the Kitsub CLI."""

import requests

from kitsub.core.exceptions import (
    ConfigurationError,
    IntegrityError,
    OperationCancelledError,
    ProvisioningError,
)

SUCCESS = 0
VALIDATION_ERROR = 1
PROVISIONING_FAILURE = 3
INTEGRITY_FAILURE = 4
UNEXPECTED_ERROR = 5
INTERRUPTED = 130  # Standard exit code for SIGINT


def exit_code_for(error: BaseException) -> int:
    """Map an exception raised by a command to an exit code."""
    if isinstance(error, (KeyboardInterrupt, OperationCancelledError)):
        return INTERRUPTED
    if isinstance(error, ConfigurationError):
        return VALIDATION_ERROR
    if isinstance(error, IntegrityError):
        return INTEGRITY_FAILURE
    if isinstance(error, (ProvisioningError, requests.RequestException)):
        return PROVISIONING_FAILURE
    return UNEXPECTED_ERROR


__all__ = [
    "INTEGRITY_FAILURE",
    "INTERRUPTED",
    "PROVISIONING_FAILURE",
    "SUCCESS",
    "UNEXPECTED_ERROR",
    "VALIDATION_ERROR",
    "exit_code_for",
]
