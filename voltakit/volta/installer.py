"""
Volta installation.

This module orchestrates installing a pinned Volta version into an install
root:

1. Serialize with other installs of the same tool into the same root
2. Validate the requested version ('v' prefix required)
3. Probe the existing installation and skip when it already matches
4. Resolve the archive in the local cache, downloading it when missing
5. Replace the install directory with the freshly extracted archive
6. Normalize the directory layout

A truncated archive (usually left behind by an interrupted download) is
deleted together with the partial install directory before the error is
raised, so the next run starts from scratch. Nothing is retried within a call.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from voltakit.core.cache import CacheDescriptor, DirectoryCacheResolver
from voltakit.core.download import FileDownloader, HttpFileDownloader
from voltakit.core.exceptions import (
    ConfigurationError,
    CorruptedArchiveError,
    DownloadError,
    FilesystemError,
    InstallationError,
)
from voltakit.core.filesystem import (
    ArchiveExtractor,
    DefaultArchiveExtractor,
    safe_rmtree,
)
from voltakit.core.locking import LockManager, LockTimeout
from voltakit.core.platform import PlatformInfo
from voltakit.core.proxy import ProxyConfig
from voltakit.volta.config import Credentials, InstallConfig, InstallRequest
from voltakit.volta.executor import (
    InstallVoltaExecutorConfig,
    ProbeResult,
    ProbeStatus,
    probe_installed_version,
)
from voltakit.volta.layout import VOLTA_LAYOUT, ToolLayout

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InstallResult:
    """Result of an install call."""

    version: str
    """Requested version, including 'v' prefix"""

    install_directory: Path
    """Directory the tool lives in"""

    skipped: bool
    """Whether the requested version was already installed"""

    downloaded: bool = False
    """Whether the archive had to be downloaded (False on cache hit or skip)"""


class VoltaInstaller:
    """
    Installs a pinned Volta version into an install root.

    The installer holds configuration and collaborators only; every call to
    ``install()`` probes the current state afresh.

    Example:
        >>> config = InstallConfig(Path("."), Path("."))
        >>> installer = VoltaInstaller(config)
        >>> result = installer.install(InstallRequest("v1.1.1"))
        >>> print(result.install_directory)
    """

    def __init__(
        self,
        config: InstallConfig,
        archive_extractor: Optional[ArchiveExtractor] = None,
        file_downloader: Optional[FileDownloader] = None,
        lock_manager: Optional[LockManager] = None,
        layout: ToolLayout = VOLTA_LAYOUT,
    ):
        """
        Initialize installer.

        Args:
            config: Install location, platform and cache
            archive_extractor: Extractor (default: DefaultArchiveExtractor)
            file_downloader: Downloader (default: direct HttpFileDownloader)
            lock_manager: Lock manager (default: global lock directory)
            layout: Tool layout (default: Volta)
        """
        self.config = config
        self.archive_extractor = archive_extractor or DefaultArchiveExtractor()
        self.file_downloader = file_downloader or HttpFileDownloader()
        self.lock_manager = lock_manager or LockManager()
        self.layout = layout

    @property
    def install_directory(self) -> Path:
        return self.layout.install_directory(self.config.install_directory)

    def install(
        self, request: InstallRequest, lock_timeout: float = -1
    ) -> InstallResult:
        """
        Install the requested version unless it is already present.

        Args:
            request: Version, download root and credentials
            lock_timeout: Seconds to wait for concurrent installs (-1 waits forever)

        Returns:
            InstallResult

        Raises:
            ConfigurationError: If the version does not start with 'v'
            InstallationError: If locking, download or extraction fails; the
                underlying error is the ``__cause__``
        """
        name = self.layout.display_name

        try:
            with self.lock_manager.install_lock(
                self.config.install_directory, self.layout.name, timeout=lock_timeout
            ):
                download_root = (
                    request.download_root or self.layout.default_download_root
                )

                if not request.version.startswith("v"):
                    raise ConfigurationError(
                        f"{name} version has to start with prefix 'v', "
                        f"got '{request.version}'"
                    )

                if self._is_already_installed(request):
                    return InstallResult(
                        version=request.version,
                        install_directory=self.install_directory,
                        skipped=True,
                    )

                return self._install(request, download_root)
        except LockTimeout as e:
            raise InstallationError(
                f"Could not acquire the {name} install lock: {e}"
            ) from e

    def probe(self) -> ProbeResult:
        """Probe the version of the currently installed binary."""
        executor_config = InstallVoltaExecutorConfig(self.config, self.layout)
        return probe_installed_version(executor_config)

    def _is_already_installed(self, request: InstallRequest) -> bool:
        name = self.layout.display_name
        result = self.probe()

        if result.status is ProbeStatus.PROBE_FAILED:
            logger.info(f"Could not determine installed {name} version, reinstalling")
            return False

        if not result.is_installed:
            return False

        if result.version == request.bare_version:
            logger.info(f"{name} {result.version} is already installed.")
            return True

        logger.info(
            f"{name} {result.version} was installed, "
            f"but we need version {request.version}"
        )
        return False

    def _install(self, request: InstallRequest, download_root: str) -> InstallResult:
        name = self.layout.display_name
        version = request.version

        logger.info(f"Installing {name} version {version}")

        extension = self.layout.archive_extension(self.config.platform)
        download_url = self.layout.archive_url(download_root, version, extension)
        logger.info(f"Will download {name} here: {download_url}")

        descriptor = CacheDescriptor(self.layout.name, version, extension)
        try:
            archive = self.config.cache_resolver.resolve(descriptor)
        except OSError as e:
            raise InstallationError(
                f"Could not prepare the cache entry for {name}: {e}"
            ) from e

        install_directory = self.install_directory

        try:
            downloaded = self._download_file_if_missing(
                download_url, archive, request.credentials
            )

            # Clean out files of any previous version before unpacking
            self._delete_install_directory(install_directory)

            if not install_directory.exists():
                logger.debug(f"Creating install directory {install_directory}")
                install_directory.mkdir(parents=True, exist_ok=True)

            try:
                self._extract_file(archive, install_directory)
            except CorruptedArchiveError:
                logger.error(
                    f"The archive file {archive} is corrupted and will be deleted. "
                    "Please try the build again."
                )
                self._cleanup_corrupted(archive, install_directory)
                raise

            self.layout.normalize(install_directory, request.bare_version)

        except DownloadError as e:
            raise InstallationError(f"Could not download {name}: {e}") from e
        except (FilesystemError, OSError) as e:
            raise InstallationError(
                f"Could not extract the {name} archive: {e}"
            ) from e

        logger.info(f"Installed {name} {version} locally.")
        return InstallResult(
            version=version,
            install_directory=install_directory,
            skipped=False,
            downloaded=downloaded,
        )

    def _download_file_if_missing(
        self, download_url: str, destination: Path, credentials: Optional[Credentials]
    ) -> bool:
        if destination.exists():
            logger.info(f"Using cached archive {destination}")
            return False

        logger.info(f"Downloading {download_url} to {destination}")
        self.file_downloader.download(
            download_url,
            destination,
            credentials.username if credentials else None,
            credentials.password if credentials else None,
        )
        return True

    def _delete_install_directory(self, install_directory: Path) -> None:
        if not install_directory.is_dir():
            return

        try:
            safe_rmtree(
                install_directory, require_prefix=self.config.install_directory
            )
        except (FilesystemError, ValueError) as e:
            logger.warning(
                f"Failed to delete existing {self.layout.display_name} "
                f"installation: {e}"
            )

    def _extract_file(self, archive: Path, destination: Path) -> None:
        logger.info(f"Unpacking {archive} into {destination}")
        self.archive_extractor.extract(archive, destination)

    def _cleanup_corrupted(self, archive: Path, install_directory: Path) -> None:
        try:
            archive.unlink(missing_ok=True)
            logger.debug(f"Removed archive: {archive}")
        except OSError as e:
            logger.warning(f"Failed to remove archive {archive}: {e}")

        try:
            safe_rmtree(
                install_directory, require_prefix=self.config.install_directory
            )
            logger.debug(f"Removed partial installation: {install_directory}")
        except (FilesystemError, ValueError) as e:
            logger.warning(f"Failed to remove partial installation: {e}")


def install_volta(
    version: str,
    install_directory: Path,
    working_directory: Optional[Path] = None,
    download_root: Optional[str] = None,
    credentials: Optional[Credentials] = None,
    proxy_config: Optional[ProxyConfig] = None,
    cache_directory: Optional[Path] = None,
    platform: Optional[PlatformInfo] = None,
    lock_manager: Optional[LockManager] = None,
) -> InstallResult:
    """
    Convenience function to install Volta with default collaborators.

    For repeated installs into the same root, create a VoltaInstaller and reuse it.

    Args:
        version: Version to install, with 'v' prefix
        install_directory: Install root (Volta goes to ``<root>/volta``)
        working_directory: Directory Volta runs in (default: install root)
        download_root: Release host override
        credentials: Optional download credentials
        proxy_config: Optional proxies
        cache_directory: Archive cache (default: ~/.voltakit/cache)
        platform: Target platform (default: detected)
        lock_manager: Lock manager (default: global lock directory)

    Returns:
        InstallResult

    Example:
        >>> from voltakit.volta.installer import install_volta
        >>> result = install_volta("v1.1.1", Path("."))
        >>> print("skipped" if result.skipped else "installed")
    """
    install_directory = Path(install_directory)
    options = {}
    if platform is not None:
        options["platform"] = platform
    if cache_directory is not None:
        options["cache_resolver"] = DirectoryCacheResolver(cache_directory)

    config = InstallConfig(
        install_directory=install_directory,
        working_directory=Path(working_directory or install_directory),
        **options,
    )
    installer = VoltaInstaller(
        config,
        file_downloader=HttpFileDownloader(proxy_config),
        lock_manager=lock_manager,
    )
    return installer.install(
        InstallRequest(
            version=version, download_root=download_root, credentials=credentials
        )
    )


__all__ = ["InstallResult", "VoltaInstaller", "install_volta"]
