"""
Tool-specific archive and directory conventions.

A ToolLayout captures everything the install engine needs to know about one
tool: where its archive lives relative to the download root, where it is
unpacked, where the executable ends up and whether the archive nests its
contents under a versioned folder that has to be renamed.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from voltakit.core.platform import PlatformInfo

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolLayout:
    """
    Archive and directory layout of a tool.

    Attributes:
        name: Tool name used in file names and cache keys (e.g., 'volta')
        display_name: Human-readable name for log messages
        install_path: Subdirectory of the install root the archive is unpacked into
        executable: Executable path relative to ``install_path``
        default_download_root: Release host used when no download root is given
        extension: Archive extension without leading dot
        root_directory: Fixed folder inside ``install_path`` the tool must live
            in after install, or None when the archive is used as-is
        versioned_root: Folder name template (``{version}`` is the bare
            version) that is renamed to ``root_directory`` when present
    """

    name: str
    display_name: str
    install_path: str
    executable: str
    default_download_root: str
    extension: str = "tar.gz"
    root_directory: Optional[str] = None
    versioned_root: Optional[str] = None

    def archive_extension(self, platform: PlatformInfo) -> str:
        """
        Get the archive extension for a platform.

        Every platform currently receives ``extension``. Tools publishing
        per-platform archives (e.g. zip on Windows) override this method.
        """
        return self.extension

    def archive_url(self, download_root: str, version: str, extension: str) -> str:
        """
        Build the archive download URL.

        Args:
            download_root: Base URL; the version is appended verbatim
            version: Requested version including 'v' prefix
            extension: Archive extension

        Example:
            >>> VOLTA_LAYOUT.archive_url('https://host/download/', 'v1.1.1', 'tar.gz')
            'https://host/download/v1.1.1/volta-v1.1.1.tar.gz'
        """
        return f"{download_root}{version}/{self.name}-{version}.{extension}"

    def install_directory(self, install_root: Path) -> Path:
        return Path(install_root) / self.install_path

    def executable_path(self, install_root: Path, platform: PlatformInfo) -> Path:
        """Get the absolute path the executable has after install."""
        relative = Path(self.executable)
        return (
            self.install_directory(install_root)
            / relative.parent
            / platform.executable_name(relative.name)
        )

    def normalize(self, install_directory: Path, bare_version: str) -> None:
        """
        Ensure the unpacked archive uses the expected root folder.

        No-op when ``root_directory`` is unset. Otherwise, when the expected
        root folder is missing, the versioned folder is renamed to it.

        Args:
            install_directory: Directory the archive was unpacked into
            bare_version: Version without 'v' prefix

        Raises:
            FileNotFoundError: If neither the expected nor the versioned
                folder exists
            OSError: If the rename fails
        """
        if not self.root_directory:
            return

        root = install_directory / self.root_directory
        if root.exists():
            return

        if self.versioned_root:
            versioned = install_directory / self.versioned_root.format(
                version=bare_version
            )
            logger.debug(
                f"{self.display_name} root directory not found, "
                f"checking for {versioned.name}"
            )
            if versioned.is_dir():
                versioned.rename(root)
                return

        raise FileNotFoundError(
            f"Could not find {self.display_name} distribution directory during extract"
        )


DEFAULT_VOLTA_DOWNLOAD_ROOT = "https://github.com/volta-cli/volta/releases/download/"

VOLTA_LAYOUT = ToolLayout(
    name="volta",
    display_name="Volta",
    install_path="volta",
    executable="dist/bin/volta",
    default_download_root=DEFAULT_VOLTA_DOWNLOAD_ROOT,
)


__all__ = ["ToolLayout", "VOLTA_LAYOUT", "DEFAULT_VOLTA_DOWNLOAD_ROOT"]
