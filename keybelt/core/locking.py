"""
Install lock for keybelt.

Two installer runs sharing the same runtime directory would race on the
staging file, the cache archive and the versioned install directory. A
file-based lock (via the `filelock` library) serializes them across
processes and is released automatically if the holder dies.

Usage:
    from keybelt.core.locking import install_lock

    with install_lock(paths.lock_path, timeout=300):
        # Download, extract and publish
        pass
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from filelock import FileLock, Timeout

from keybelt.core.exceptions import InstallLockTimeout

logger = logging.getLogger(__name__)


@contextmanager
def install_lock(lock_path: Path, timeout: float = 300) -> Iterator[None]:
    """
    Hold an exclusive lock for the duration of an install.

    Args:
        lock_path: Lock file location (parent directory must exist)
        timeout: Maximum wait time in seconds

    Raises:
        InstallLockTimeout: If the lock can't be acquired within timeout
    """
    lock = FileLock(str(lock_path), timeout=timeout)

    try:
        lock.acquire()
    except Timeout as e:
        raise InstallLockTimeout(
            f"Could not acquire install lock {lock_path} after {timeout}s. "
            "Another keybelt process may be running."
        ) from e

    logger.debug(f"Acquired install lock: {lock_path}")
    try:
        yield
    finally:
        lock.release()
        logger.debug(f"Released install lock: {lock_path}")
