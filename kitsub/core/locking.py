"""
Cross-process locking for toolset provisioning.

Each versioned toolset directory has its own lock marker file, so concurrent
Kitsub processes provisioning the same (platform, version) are serialized
while unrelated toolsets never wait on each other.

Usage:
    from kitsub.core.locking import toolset_lock

    with toolset_lock(toolset_root, timeout=600):
        # Download, verify, extract, record hashes
        pass
"""

import logging
from contextlib import contextmanager
from pathlib import Path

from filelock import FileLock, Timeout as LockTimeout

from kitsub.core.exceptions import ProvisioningError

logger = logging.getLogger(__name__)

LOCK_FILE_NAME = ".provision.lock"
DEFAULT_LOCK_TIMEOUT = 600


@contextmanager
def toolset_lock(toolset_root: Path, timeout: float = DEFAULT_LOCK_TIMEOUT):
    """
    Acquire the exclusive provisioning lock for a toolset directory.

    The lock is always released when the block exits, including on error.

    Args:
        toolset_root: Versioned toolset directory (created if missing)
        timeout: Maximum wait time in seconds

    Yields:
        Path of the lock marker file

    Raises:
        ProvisioningError: If the lock can't be acquired within timeout
    """
    toolset_root.mkdir(parents=True, exist_ok=True)
    lock_path = toolset_root / LOCK_FILE_NAME
    lock = FileLock(lock_path, timeout=timeout)

    try:
        with lock:
            logger.debug(f"Acquired provisioning lock: {lock_path}")
            yield lock_path
            logger.debug(f"Released provisioning lock: {lock_path}")
    except LockTimeout as e:
        logger.error(
            f"Could not acquire provisioning lock after {timeout}s. "
            "Another Kitsub process may be downloading this toolset."
        )
        raise ProvisioningError(
            f"Could not acquire provisioning lock for {toolset_root} after {timeout}s. "
            "Another Kitsub process may be downloading this toolset."
        ) from e


__all__ = [
    "DEFAULT_LOCK_TIMEOUT",
    "LOCK_FILE_NAME",
    "LockTimeout",
    "toolset_lock",
]
