"""
Concurrent access control for voltakit.

Installs of one tool into one install root are serialized at two levels:

- Within a process, a ``threading.Lock`` keyed by (install root, tool name) is
  created on demand, so independent callers in the same interpreter queue up.
- Across processes, a ``filelock.FileLock`` on a per-key lock file makes
  parallel builds on the same machine wait for each other.

Installs of different tools, or of the same tool into different install
roots, do not block each other.

Usage:
    from voltakit.core.locking import LockManager

    lock_manager = LockManager(lock_dir)
    with lock_manager.install_lock(install_root, "volta"):
        # Safely replace <install_root>/volta
        pass
"""

import hashlib
import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Optional, Tuple

from filelock import FileLock, Timeout as LockTimeout

from voltakit.core.directory import get_global_cache_dir

logger = logging.getLogger(__name__)

_process_locks: Dict[Tuple[str, str], threading.Lock] = {}
_process_locks_guard = threading.Lock()


def _get_process_lock(key: Tuple[str, str]) -> threading.Lock:
    """Get (or create) the in-process lock for a key."""
    with _process_locks_guard:
        lock = _process_locks.get(key)
        if lock is None:
            lock = threading.Lock()
            _process_locks[key] = lock
        return lock


def install_lock_key(install_directory: Path, tool_name: str) -> Tuple[str, str]:
    """
    Build the lock key for a tool installed under an install root.

    Args:
        install_directory: Install root
        tool_name: Tool name (e.g., 'volta')

    Returns:
        (resolved install root, tool name)
    """
    return str(Path(install_directory).resolve()), tool_name


class LockManager:
    """
    Manages locks for tool installations.

    Attributes:
        lock_dir: Directory where lock files are stored
    """

    def __init__(self, lock_dir: Optional[Path] = None):
        """
        Initialize lock manager.

        Args:
            lock_dir: Directory for lock files (default: global cache/lock/)
        """
        if lock_dir is None:
            lock_dir = get_global_cache_dir() / "lock"

        self.lock_dir = Path(lock_dir)
        self.lock_dir.mkdir(parents=True, exist_ok=True)

    def lock_path_for(self, install_directory: Path, tool_name: str) -> Path:
        """
        Get the lock file guarding a tool installation.

        Args:
            install_directory: Install root
            tool_name: Tool name

        Returns:
            Path like ``<lock_dir>/install-volta-1a2b3c4d5e6f.lock``
        """
        root, _ = install_lock_key(install_directory, tool_name)
        digest = hashlib.sha256(root.encode("utf-8")).hexdigest()[:12]
        safe_name = tool_name.replace("/", "-").replace("\\", "-").replace(":", "-")
        return self.lock_dir / f"install-{safe_name}-{digest}.lock"

    @contextmanager
    def install_lock(
        self, install_directory: Path, tool_name: str, timeout: float = -1
    ):
        """
        Acquire the lock for installing a tool into an install root.

        Args:
            install_directory: Install root
            tool_name: Tool name (e.g., 'volta')
            timeout: Maximum wait time in seconds (-1 waits forever)

        Yields:
            None

        Raises:
            LockTimeout: If lock can't be acquired within timeout

        Example:
            >>> lock_manager = LockManager()
            >>> with lock_manager.install_lock(Path('.'), 'volta', timeout=300):
            ...     install()
        """
        key = install_lock_key(install_directory, tool_name)
        process_lock = _get_process_lock(key)

        if not process_lock.acquire(timeout=timeout):
            message = (
                f"Could not acquire install lock for {tool_name} after {timeout}s. "
                "Another install in this process is still running."
            )
            logger.error(message)
            raise LockTimeout(message)

        try:
            lock_path = self.lock_path_for(install_directory, tool_name)
            lock = FileLock(lock_path, timeout=timeout)
            try:
                lock.acquire()
            except LockTimeout as e:
                message = (
                    f"Could not acquire install lock for {tool_name} after {timeout}s. "
                    "Another process may be installing this tool."
                )
                logger.error(message)
                raise LockTimeout(message) from e

            logger.debug(f"Acquired install lock: {lock_path}")
            try:
                yield
            finally:
                lock.release()
                logger.debug(f"Released install lock: {lock_path}")
        finally:
            process_lock.release()


__all__ = [
    "LockManager",
    "LockTimeout",
    "install_lock_key",
]
