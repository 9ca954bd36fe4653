"""
Volta installation.

Installs a pinned Volta version into a project directory and probes
existing installations.
"""

from .config import Credentials, InstallConfig, InstallRequest
from .executor import (
    InstallVoltaExecutorConfig,
    ProbeResult,
    ProbeStatus,
    VoltaExecutor,
    VoltaExecutorConfig,
    probe_installed_version,
)
from .installer import InstallResult, VoltaInstaller, install_volta
from .layout import DEFAULT_VOLTA_DOWNLOAD_ROOT, VOLTA_LAYOUT, ToolLayout

__all__ = [
    "Credentials",
    "InstallConfig",
    "InstallRequest",
    "InstallVoltaExecutorConfig",
    "ProbeResult",
    "ProbeStatus",
    "VoltaExecutor",
    "VoltaExecutorConfig",
    "probe_installed_version",
    "InstallResult",
    "VoltaInstaller",
    "install_volta",
    "DEFAULT_VOLTA_DOWNLOAD_ROOT",
    "VOLTA_LAYOUT",
    "ToolLayout",
]
