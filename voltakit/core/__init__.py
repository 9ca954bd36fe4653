"""
Core functionality for voltakit.

This package contains the tool-agnostic building blocks the installers
depend on: downloading, archive extraction, caching, locking and running
processes.
"""

from .directory import (
    get_global_cache_dir,
    get_archive_cache_dir,
    verify_directory_writable,
    DirectoryError,
)

from .locking import (
    LockManager,
    LockTimeout,
)

from .platform import (
    PlatformInfo,
    detect_platform,
    clear_platform_cache,
)

from .cache import (
    CacheDescriptor,
    CacheResolver,
    DirectoryCacheResolver,
)

from .proxy import (
    Proxy,
    ProxyConfig,
)

from .exceptions import (
    VoltaKitError,
    InstallationError,
    ConfigurationError,
    DownloadError,
    FilesystemError,
    ArchiveExtractionError,
    CorruptedArchiveError,
    UnsupportedArchiveFormat,
    InsecureArchiveError,
    ProcessExecutionError,
)

__all__ = [
    "get_global_cache_dir",
    "get_archive_cache_dir",
    "verify_directory_writable",
    "DirectoryError",
    "LockManager",
    "LockTimeout",
    "PlatformInfo",
    "detect_platform",
    "clear_platform_cache",
    "CacheDescriptor",
    "CacheResolver",
    "DirectoryCacheResolver",
    "Proxy",
    "ProxyConfig",
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
