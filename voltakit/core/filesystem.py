"""
File system utilities for voltakit.

This module provides:
- Archive extraction (tar.gz, tgz, tar.xz, tar.bz2, zip) with directory
  traversal protection and detection of truncated archives
- Safe directory deletion
- Path utilities

Truncated archives (typically left behind by an interrupted download) are
reported as CorruptedArchiveError so that callers can throw the archive away
and fetch it again.
"""

import logging
import os
import shutil
import sys
import tarfile
import zipfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Optional, Union

from voltakit.core.exceptions import (
    ArchiveExtractionError,
    CorruptedArchiveError,
    FilesystemError,
    InsecureArchiveError,
    UnsupportedArchiveFormat,
)

logger = logging.getLogger(__name__)

# Platform detection
IS_WINDOWS = os.name == "nt"

SUPPORTED_ARCHIVE_EXTENSIONS = (
    ".zip",
    ".tar.gz",
    ".tgz",
    ".tar.xz",
    ".tar.bz2",
    ".tbz2",
)


# ============================================================================
# Path Utilities
# ============================================================================


def is_relative_to(path: Path, parent: Path) -> bool:
    """
    Check if path is relative to parent.

    Args:
        path: Path to check
        parent: Potential parent path

    Returns:
        True if path is under parent

    Example:
        >>> is_relative_to(Path('/a/b/c'), Path('/a'))
        True
        >>> is_relative_to(Path('/a/b'), Path('/c'))
        False
    """
    try:
        path.relative_to(parent)
        return True
    except ValueError:
        return False


# ============================================================================
# Archive Extraction
# ============================================================================


class ArchiveExtractor(ABC):
    """Abstract interface for unpacking an archive into a directory."""

    @abstractmethod
    def extract(self, archive_path: Path, destination: Path) -> None:
        """
        Extract an archive.

        Args:
            archive_path: Path to the archive file
            destination: Directory to extract to

        Raises:
            CorruptedArchiveError: If the archive is truncated
            ArchiveExtractionError: For any other extraction failure
        """
        pass


class DefaultArchiveExtractor(ArchiveExtractor):
    """ArchiveExtractor using the standard tarfile/zipfile modules."""

    def __init__(self, progress_callback: Optional[Callable[[int, int], None]] = None):
        self.progress_callback = progress_callback

    def extract(self, archive_path: Path, destination: Path) -> None:
        extract_archive(archive_path, destination, self.progress_callback)


def _validate_archive_path(path: str, destination: Path) -> None:
    """
    Validate that an archive member path is safe to extract.

    Prevents directory traversal attacks (e.g., paths containing '../').

    Args:
        path: Member path from archive
        destination: Extraction destination

    Raises:
        InsecureArchiveError: If path attempts directory traversal
    """
    member_path = (destination / path).resolve()

    if not is_relative_to(member_path, destination.resolve()):
        raise InsecureArchiveError(
            f"Archive member '{path}' attempts directory traversal. "
            "This is a security risk and extraction has been blocked."
        )


def is_truncated_archive_error(error: Optional[BaseException]) -> bool:
    """
    Check whether an extraction error was caused by premature end of data.

    Follows the exception chain, since compression layers raise EOFError while
    tarfile reports the same condition as ReadError('unexpected end of data').

    Args:
        error: Exception raised while reading an archive

    Returns:
        True if the archive ended before it was complete
    """
    seen = set()
    while error is not None and id(error) not in seen:
        seen.add(id(error))
        if isinstance(error, (EOFError, CorruptedArchiveError)):
            return True
        if isinstance(error, tarfile.ReadError) and "unexpected end of data" in str(
            error
        ):
            return True
        error = error.__cause__ or error.__context__
    return False


def extract_archive(
    archive_path: Union[str, Path],
    destination: Union[str, Path],
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> None:
    """
    Extract an archive to a destination directory.

    Automatically detects archive format and extracts safely.
    Validates all paths to prevent directory traversal attacks.

    Supported formats:
    - .zip
    - .tar.gz, .tgz
    - .tar.xz
    - .tar.bz2, .tbz2

    Args:
        archive_path: Path to the archive file
        destination: Directory to extract to
        progress_callback: Optional callback(current, total) for progress

    Raises:
        UnsupportedArchiveFormat: If archive format is not recognized
        CorruptedArchiveError: If the archive is truncated
        ArchiveExtractionError: If extraction fails
        InsecureArchiveError: If archive contains malicious paths

    Example:
        >>> extract_archive('volta-v1.1.1.tar.gz', '/tmp/volta')
    """
    archive_path = Path(archive_path)
    destination = Path(destination)

    if not archive_path.exists():
        raise ArchiveExtractionError(f"Archive not found: {archive_path}")

    destination.mkdir(parents=True, exist_ok=True)

    archive_name = archive_path.name.lower()

    try:
        if archive_name.endswith(".zip"):
            _extract_zip(archive_path, destination, progress_callback)
        elif archive_name.endswith((".tar.gz", ".tgz")):
            _extract_tar(archive_path, destination, "r:gz", progress_callback)
        elif archive_name.endswith(".tar.xz"):
            _extract_tar(archive_path, destination, "r:xz", progress_callback)
        elif archive_name.endswith((".tar.bz2", ".tbz2")):
            _extract_tar(archive_path, destination, "r:bz2", progress_callback)
        else:
            raise UnsupportedArchiveFormat(
                f"Unsupported archive format: {archive_path.name}. "
                f"Supported: {', '.join(SUPPORTED_ARCHIVE_EXTENSIONS)}"
            )
    except (InsecureArchiveError, UnsupportedArchiveFormat):
        raise
    except Exception as e:
        if is_truncated_archive_error(e):
            raise CorruptedArchiveError(
                f"Archive {archive_path} is truncated or corrupted: {e}"
            ) from e
        raise ArchiveExtractionError(f"Failed to extract {archive_path}: {e}") from e


def _extract_zip(
    archive_path: Path,
    destination: Path,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> None:
    """Extract a ZIP archive."""
    with zipfile.ZipFile(archive_path, "r") as zf:
        members = zf.namelist()
        total = len(members)

        # Validate all paths first
        for member in members:
            _validate_archive_path(member, destination)

        for i, member in enumerate(members):
            zf.extract(member, destination)
            if progress_callback:
                progress_callback(i + 1, total)


def _extract_tar(
    archive_path: Path,
    destination: Path,
    mode: str,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> None:
    """Extract a tar archive with specified compression."""
    with tarfile.open(archive_path, mode) as tar:
        members = tar.getmembers()
        total = len(members)

        # Validate all paths first
        for member in members:
            _validate_archive_path(member.name, destination)

        # Extract with filter for security (Python 3.12+)
        # For older Python, we've already validated paths above
        if sys.version_info >= (3, 12):
            tar.extractall(destination, filter="data")
        else:
            tar.extractall(destination)

        if progress_callback:
            progress_callback(total, total)


# ============================================================================
# Safe File Operations
# ============================================================================


def safe_rmtree(
    path: Union[str, Path], require_prefix: Optional[Union[str, Path]] = None
) -> None:
    """
    Safely remove a directory tree with safeguards.

    Args:
        path: Directory to remove
        require_prefix: If specified, path must be under this directory

    Raises:
        ValueError: If path is not under require_prefix
        FilesystemError: If deletion fails

    Example:
        >>> safe_rmtree('/tmp/build', require_prefix='/tmp')
        >>> safe_rmtree('/usr/bin', require_prefix='/home')  # ValueError
    """
    path = Path(path).resolve()

    # Safety check: require path to be under specified prefix
    if require_prefix is not None:
        require_prefix = Path(require_prefix).resolve()
        if not is_relative_to(path, require_prefix):
            raise ValueError(
                f"Refusing to delete '{path}': "
                f"not under required prefix '{require_prefix}'"
            )

    if not path.exists():
        return  # Already gone, nothing to do

    if not path.is_dir():
        raise FilesystemError(f"Path is not a directory: {path}")

    try:
        # Handle read-only files on Windows
        if IS_WINDOWS:

            def handle_remove_readonly(func, path, exc):
                """Error handler for Windows read-only files."""
                if not os.access(path, os.W_OK):
                    os.chmod(path, 0o777)
                    func(path)
                else:
                    raise

            shutil.rmtree(path, onerror=handle_remove_readonly)
        else:
            shutil.rmtree(path)

    except Exception as e:
        raise FilesystemError(f"Failed to remove directory '{path}': {e}") from e


__all__ = [
    "SUPPORTED_ARCHIVE_EXTENSIONS",
    "is_relative_to",
    "ArchiveExtractor",
    "DefaultArchiveExtractor",
    "is_truncated_archive_error",
    "extract_archive",
    "safe_rmtree",
]
