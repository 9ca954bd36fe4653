"""
Directory structure management for voltakit.

Directory Structure:
    Global Cache (~/.voltakit/ or %USERPROFILE%\\.voltakit\\):
        - cache/   : Downloaded tool archives, keyed by name and version
        - lock/    : Concurrent access control files

    Install Root (<project-root>/ by default):
        - volta/   : Extracted Volta distribution
"""

import os
from pathlib import Path

from voltakit.core.exceptions import VoltaKitError


class DirectoryError(VoltaKitError):
    """Base exception for directory-related errors."""

    pass


def get_global_cache_dir() -> Path:
    """
    Get the platform-specific global cache directory path.

    Returns:
        Path: The global cache directory path.
            - Windows: %USERPROFILE%\\.voltakit
            - Linux/macOS: ~/.voltakit/

    Example:
        >>> cache_dir = get_global_cache_dir()
        >>> print(cache_dir)
        /home/user/.voltakit  # on Linux
    """
    if os.name == "nt":  # Windows
        user_profile = os.environ.get("USERPROFILE")
        if not user_profile:
            raise DirectoryError(
                "USERPROFILE environment variable is not set. "
                "Cannot determine global cache directory."
            )
        return Path(user_profile) / ".voltakit"
    else:  # Linux/macOS
        return Path.home() / ".voltakit"


def get_archive_cache_dir() -> Path:
    """Get the default directory for downloaded archives."""
    return get_global_cache_dir() / "cache"


def verify_directory_writable(path: Path) -> bool:
    """
    Verify that a directory exists and is writable.

    Args:
        path: Directory path to verify.

    Returns:
        bool: True if directory exists and is writable, False otherwise.
    """
    if not path.exists():
        return False

    if not path.is_dir():
        return False

    # Try to create a temporary file to test write permissions
    try:
        test_file = path / ".write_test"
        test_file.touch()
        test_file.unlink()
        return True
    except (OSError, IOError):
        return False


__all__ = [
    "DirectoryError",
    "get_global_cache_dir",
    "get_archive_cache_dir",
    "verify_directory_writable",
]
