"""
Centralized exception hierarchy for voltakit.

This module defines the exceptions raised across the install engine so that
callers can tell the failed phase (configuration, download, extraction) apart
while still catching a single base class.
"""


# ============================================================================
# Base Exceptions
# ============================================================================


class VoltaKitError(Exception):
    """Base exception for all voltakit errors."""

    pass


# ============================================================================
# Installation Exceptions
# ============================================================================


class InstallationError(VoltaKitError):
    """
    Raised when a tool installation fails.

    This is the only exception surfaced by ``VoltaInstaller.install()``. The
    underlying download or extraction error is kept as ``__cause__``.
    """

    pass


class ConfigurationError(InstallationError):
    """Raised when the install request is malformed (e.g. no 'v' prefix)."""

    pass


# ============================================================================
# Download Exceptions
# ============================================================================


class DownloadError(VoltaKitError):
    """Raised when a file cannot be downloaded (network, auth, HTTP or I/O)."""

    pass


# ============================================================================
# Filesystem / Archive Exceptions
# ============================================================================


class FilesystemError(VoltaKitError):
    """Base exception for filesystem operations."""

    pass


class ArchiveExtractionError(FilesystemError):
    """Failed to extract an archive."""

    pass


class CorruptedArchiveError(ArchiveExtractionError):
    """
    Archive ended prematurely.

    Usually the result of an interrupted download. The installer reacts to this
    sub-kind by deleting the cached archive so the next run downloads it again.
    """

    pass


class UnsupportedArchiveFormat(ArchiveExtractionError):
    """Archive format is not supported."""

    pass


class InsecureArchiveError(ArchiveExtractionError):
    """Archive contains insecure paths (directory traversal attempt)."""

    pass


# ============================================================================
# Process Exceptions
# ============================================================================


class ProcessExecutionError(VoltaKitError):
    """Raised when a process cannot be started or exits with a non-zero code."""

    def __init__(self, message: str, exit_code: int = -1):
        self.exit_code = exit_code
        super().__init__(message)


__all__ = [
    "VoltaKitError",
    "InstallationError",
    "ConfigurationError",
    "DownloadError",
    "FilesystemError",
    "ArchiveExtractionError",
    "CorruptedArchiveError",
    "UnsupportedArchiveFormat",
    "InsecureArchiveError",
    "ProcessExecutionError",
]
