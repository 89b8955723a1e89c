"""
Centralized exception hierarchy for Kitsub.

This module defines the exceptions raised by the tool provisioning engine
and the surrounding CLI.
"""


# ============================================================================
# Base Exceptions
# ============================================================================


class KitsubError(Exception):
    """Base exception for all Kitsub errors."""

    pass


# ============================================================================
# Configuration Exceptions
# ============================================================================


class ConfigurationError(KitsubError):
    """Raised when the tools manifest or a configuration file is malformed."""

    pass


# ============================================================================
# Provisioning Exceptions
# ============================================================================


class ProvisioningError(KitsubError):
    """Raised when downloading or extracting a toolset fails."""

    pass


class ExtractionError(ProvisioningError):
    """Raised when a declared file cannot be located in a downloaded archive."""

    def __init__(self, tool_name: str, file_key: str, archive_path: str):
        self.tool_name = tool_name
        self.file_key = file_key
        self.archive_path = archive_path
        super().__init__(
            f"Missing {file_key} entry '{archive_path}' in {tool_name} archive."
        )


class ArchiveFormatError(ProvisioningError):
    """Raised when an archive cannot be read as its declared type."""

    pass


class IntegrityError(KitsubError):
    """Raised on checksum mismatches or unsafe archive contents."""

    pass


class ChecksumParseError(IntegrityError):
    """Raised when no SHA256 value can be found in a checksum source."""

    pass


class OperationCancelledError(KitsubError):
    """Raised when a provisioning operation observes a cancellation request."""

    pass
