"""
Platform detection for voltakit.

This module detects the current platform (OS and CPU architecture). The result
decides how executables are named, how PATH is assembled for spawned processes
and, for tools that publish per-platform archives, which archive to fetch.

Usage:
    from voltakit.core.platform import detect_platform

    platform_info = detect_platform()
    print(f"Platform string: {platform_info.platform_string()}")
"""

import functools
import platform
from dataclasses import dataclass


@dataclass(frozen=True)
class PlatformInfo:
    """
    Platform information.

    Attributes:
        os: Operating system ('windows', 'linux', 'macos')
        arch: CPU architecture ('x64', 'arm64', 'x86', 'arm')
    """

    os: str
    arch: str

    def platform_string(self) -> str:
        """
        Get canonical platform string (e.g., 'linux-x64', 'macos-arm64').

        Example:
            >>> PlatformInfo('linux', 'x64').platform_string()
            'linux-x64'
        """
        return f"{self.os}-{self.arch}"

    def is_windows(self) -> bool:
        return self.os == "windows"

    @property
    def path_separator(self) -> str:
        """Separator used between PATH entries."""
        return ";" if self.is_windows() else ":"

    @property
    def path_variable(self) -> str:
        """Name of the PATH environment variable."""
        return "Path" if self.is_windows() else "PATH"

    def executable_name(self, name: str) -> str:
        """
        Get the file name of an executable on this platform.

        Example:
            >>> PlatformInfo('windows', 'x64').executable_name('volta')
            'volta.exe'
        """
        if self.is_windows() and not name.lower().endswith(".exe"):
            return f"{name}.exe"
        return name

    def __str__(self) -> str:
        return self.platform_string()


@functools.lru_cache(maxsize=1)
def detect_platform() -> PlatformInfo:
    """
    Detect current platform information.

    This function is cached - it only runs detection once per process.

    Returns:
        PlatformInfo instance with detected platform information
    """
    return PlatformInfo(os=_detect_os(), arch=_detect_architecture())


def _detect_os() -> str:
    """
    Detect operating system.

    Returns:
        Normalized OS name: 'windows', 'linux', 'macos'

    Raises:
        RuntimeError: If OS is not supported
    """
    system = platform.system().lower()

    if system == "windows":
        return "windows"
    elif system == "linux":
        return "linux"
    elif system == "darwin":
        return "macos"
    else:
        raise RuntimeError(f"Unsupported operating system: {system}")


def _detect_architecture() -> str:
    """
    Detect CPU architecture.

    Returns:
        Normalized architecture: 'x64', 'arm64', 'x86', 'arm'
    """
    machine = platform.machine().lower()

    if machine in ("x86_64", "amd64", "x64"):
        return "x64"
    elif machine in ("aarch64", "arm64"):
        return "arm64"
    elif machine in ("i386", "i686", "x86"):
        return "x86"
    elif machine.startswith("arm"):
        return "arm"
    else:
        # Return original for unknown architectures
        return machine


def clear_platform_cache():
    """
    Clear the platform detection cache.

    This forces the next call to detect_platform() to re-detect.
    """
    detect_platform.cache_clear()


__all__ = [
    "PlatformInfo",
    "detect_platform",
    "clear_platform_cache",
]
