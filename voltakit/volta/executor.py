"""
Running the locally installed Volta binary.

The installer only uses this to ask an existing installation for its version,
which decides whether a (re)install is needed.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

from voltakit.core.exceptions import ProcessExecutionError
from voltakit.core.platform import PlatformInfo
from voltakit.core.process import ProcessExecutor
from voltakit.volta.config import InstallConfig
from voltakit.volta.layout import VOLTA_LAYOUT, ToolLayout

logger = logging.getLogger(__name__)


class VoltaExecutorConfig(ABC):
    """Where the Volta binary is and how it should be run."""

    @property
    @abstractmethod
    def volta_path(self) -> Path:
        pass

    @property
    @abstractmethod
    def working_directory(self) -> Path:
        pass

    @property
    @abstractmethod
    def platform(self) -> PlatformInfo:
        pass


class InstallVoltaExecutorConfig(VoltaExecutorConfig):
    """Executor configuration pointing at the binary inside an install root."""

    def __init__(
        self, install_config: InstallConfig, layout: ToolLayout = VOLTA_LAYOUT
    ):
        self.install_config = install_config
        self.layout = layout

    @property
    def volta_path(self) -> Path:
        return self.layout.executable_path(
            self.install_config.install_directory, self.install_config.platform
        )

    @property
    def working_directory(self) -> Path:
        return self.install_config.working_directory

    @property
    def platform(self) -> PlatformInfo:
        return self.install_config.platform


class VoltaExecutor:
    """Bind a Volta binary, its arguments and environment to a ProcessExecutor."""

    def __init__(
        self,
        config: VoltaExecutorConfig,
        arguments: List[str],
        additional_environment: Optional[Dict[str, str]] = None,
        timeout: Optional[int] = None,
    ):
        volta = config.volta_path.absolute()
        self.executor = ProcessExecutor(
            working_directory=config.working_directory,
            paths=[volta.parent],
            command=[str(volta), *arguments],
            platform=config.platform,
            additional_environment=additional_environment,
            timeout=timeout,
        )

    def execute_and_get_result(self) -> str:
        return self.executor.execute_and_get_result()

    def execute_and_redirect_output(self) -> int:
        return self.executor.execute_and_redirect_output()


class ProbeStatus(Enum):
    """Outcome of asking an installation for its version."""

    INSTALLED = "installed"
    NOT_INSTALLED = "not_installed"
    PROBE_FAILED = "probe_failed"


@dataclass(frozen=True)
class ProbeResult:
    """
    Result of probing an existing installation.

    Attributes:
        status: Probe outcome
        version: Reported version (no 'v' prefix) when installed
        error: Failure cause when the probe failed
    """

    status: ProbeStatus
    version: Optional[str] = None
    error: Optional[Exception] = None

    @classmethod
    def installed(cls, version: str) -> "ProbeResult":
        return cls(status=ProbeStatus.INSTALLED, version=version)

    @classmethod
    def not_installed(cls) -> "ProbeResult":
        return cls(status=ProbeStatus.NOT_INSTALLED)

    @classmethod
    def failed(cls, error: Exception) -> "ProbeResult":
        return cls(status=ProbeStatus.PROBE_FAILED, error=error)

    @property
    def is_installed(self) -> bool:
        return self.status is ProbeStatus.INSTALLED


def probe_installed_version(
    config: VoltaExecutorConfig, timeout: Optional[int] = 60
) -> ProbeResult:
    """
    Ask the installed binary for its version.

    No process is spawned when the binary does not exist. A failing binary is
    reported as PROBE_FAILED instead of raising.

    Args:
        config: Executor configuration locating the binary
        timeout: Seconds to wait for ``--version``

    Returns:
        ProbeResult
    """
    binary = config.volta_path
    if not binary.exists():
        logger.debug(f"No executable at {binary}")
        return ProbeResult.not_installed()

    try:
        executor = VoltaExecutor(config, ["--version"], timeout=timeout)
        version = executor.execute_and_get_result()
    except ProcessExecutionError as e:
        logger.debug(f"Version probe of {binary} failed: {e}")
        return ProbeResult.failed(e)

    return ProbeResult.installed(version.strip())


__all__ = [
    "VoltaExecutorConfig",
    "InstallVoltaExecutorConfig",
    "VoltaExecutor",
    "ProbeStatus",
    "ProbeResult",
    "probe_installed_version",
]
