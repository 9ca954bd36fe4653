"""
Test doubles for voltakit components.

This package provides archive builders and counting collaborators to enable
isolated, deterministic testing of installs.
"""

from .installation import (
    CountingDownloader,
    CountingExtractor,
    FailingExtractor,
    build_volta_archive,
    build_truncated_archive,
    volta_script,
)

__all__ = [
    "CountingDownloader",
    "CountingExtractor",
    "FailingExtractor",
    "build_volta_archive",
    "build_truncated_archive",
    "volta_script",
]
