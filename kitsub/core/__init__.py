"""
Core functionality for Kitsub.

This package contains the foundational modules the tool provisioning engine
depends on.
"""

from .directory import (
    CACHE_DIR_ENV_VAR,
    DirectoryError,
    ToolCachePaths,
    get_app_base_dir,
    get_startup_state_path,
    get_user_config_dir,
    get_user_data_dir,
)

from .exceptions import (
    ArchiveFormatError,
    ChecksumParseError,
    ConfigurationError,
    ExtractionError,
    IntegrityError,
    KitsubError,
    OperationCancelledError,
    ProvisioningError,
)

from .platform import (
    PROVISIONING_PLATFORM_ID,
    PlatformDetector,
    host_platform_id,
)

from .state import StartupState, StartupStateStore

__all__ = [
    "CACHE_DIR_ENV_VAR",
    "DirectoryError",
    "ToolCachePaths",
    "get_app_base_dir",
    "get_startup_state_path",
    "get_user_config_dir",
    "get_user_data_dir",
    "ArchiveFormatError",
    "ChecksumParseError",
    "ConfigurationError",
    "ExtractionError",
    "IntegrityError",
    "KitsubError",
    "OperationCancelledError",
    "ProvisioningError",
    "PROVISIONING_PLATFORM_ID",
    "PlatformDetector",
    "host_platform_id",
    "StartupState",
    "StartupStateStore",
]
