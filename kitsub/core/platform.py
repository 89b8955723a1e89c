"""
Platform detection for tool provisioning.

Provisioning is defined for exactly one platform. Any host running that
platform's OS can use it. On other hosts the detector still reports the
identifier, with a warning, so callers uniformly fall back to PATH resolution
instead of failing.

Usage:
    from kitsub.core.platform import PlatformDetector

    detector = PlatformDetector()
    if detector.is_supported:
        print(f"Provisioning for {detector.runtime_id()}")
"""

import logging
import platform

logger = logging.getLogger(__name__)

PROVISIONING_PLATFORM_ID = "win-x64"


def _normalize_arch(machine: str) -> str:
    machine = machine.lower()
    if machine in ("x86_64", "amd64", "x64"):
        return "x64"
    elif machine in ("aarch64", "arm64"):
        return "arm64"
    elif machine in ("i386", "i686", "x86"):
        return "x86"
    return machine


def _os_part(platform_id: str) -> str:
    return platform_id.split("-", 1)[0].lower()


def host_platform_id() -> str:
    """
    Get the identifier of the running host (e.g. 'win-x64', 'linux-arm64').

    Returns:
        Host identifier in '<os>-<arch>' form
    """
    system = platform.system().lower()
    if system == "windows":
        os_name = "win"
    elif system == "darwin":
        os_name = "osx"
    else:
        os_name = system
    return f"{os_name}-{_normalize_arch(platform.machine())}"


class PlatformDetector:
    """
    Detects the platform identifier used for tool provisioning.

    Attributes:
        supported_id: The single platform identifier provisioning supports
    """

    def __init__(self, supported_id: str = PROVISIONING_PLATFORM_ID):
        self.supported_id = supported_id

    @property
    def is_supported(self) -> bool:
        """
        Whether the running host can use provisioned tools.

        Only the OS part is compared; a Windows ARM64 host runs the x64
        toolset under emulation.
        """
        return _os_part(host_platform_id()) == _os_part(self.supported_id)

    def runtime_id(self) -> str:
        """
        Get the platform identifier used for provisioning.

        Logs a warning when the host cannot use provisioned tools.
        """
        if not self.is_supported:
            logger.warning(
                f"Tool provisioning is only available on {self.supported_id}; "
                "falling back to PATH resolution."
            )
        return self.supported_id


__all__ = [
    "PROVISIONING_PLATFORM_ID",
    "PlatformDetector",
    "host_platform_id",
]
