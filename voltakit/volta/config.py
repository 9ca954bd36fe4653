"""
Immutable configuration values for an install.

InstallConfig describes *where* a tool goes and is shared by every install
into the same root; InstallRequest describes *what* to install and is built
once per install call.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from voltakit.core.cache import CacheResolver, DirectoryCacheResolver
from voltakit.core.directory import get_archive_cache_dir
from voltakit.core.platform import PlatformInfo, detect_platform


@dataclass(frozen=True)
class InstallConfig:
    """
    Install location and environment.

    Attributes:
        install_directory: Install root; tools go to subdirectories of it
        working_directory: Directory installed tools are run from
        platform: Target platform
        cache_resolver: Resolver for downloaded archives
    """

    install_directory: Path
    working_directory: Path
    platform: PlatformInfo = field(default_factory=detect_platform)
    cache_resolver: CacheResolver = field(
        default_factory=lambda: DirectoryCacheResolver(get_archive_cache_dir())
    )


@dataclass(frozen=True)
class Credentials:
    """Basic-auth credentials for the download server."""

    username: str
    password: Optional[str] = None

    def __repr__(self) -> str:
        # Keep passwords out of logs and tracebacks
        return f"Credentials(username={self.username!r}, password='***')"


@dataclass(frozen=True)
class InstallRequest:
    """
    A request to install one version of a tool.

    Attributes:
        version: Requested version, with its 'v' prefix (e.g., 'v1.1.1')
        download_root: Base URL the version and file name are appended to;
            the tool's default release host is used when empty
        credentials: Optional credentials for the download server
    """

    version: str
    download_root: Optional[str] = None
    credentials: Optional[Credentials] = None

    @property
    def bare_version(self) -> str:
        """
        Requested version without its leading 'v'.

        Example:
            >>> InstallRequest('v1.1.1').bare_version
            '1.1.1'
        """
        return self.version[1:] if self.version.startswith("v") else self.version


__all__ = ["InstallConfig", "Credentials", "InstallRequest"]
