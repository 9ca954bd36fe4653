"""
Execution of locally installed executables.

ProcessExecutor runs a command with extra directories prepended to PATH, so an
installed tool can find its sibling binaries without being on the user's PATH.
"""

import logging
import os
import subprocess
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from voltakit.core.exceptions import ProcessExecutionError
from voltakit.core.platform import PlatformInfo

logger = logging.getLogger(__name__)


class ProcessExecutor:
    """
    Run a command in a working directory with an augmented PATH.

    Example:
        >>> executor = ProcessExecutor(
        ...     Path.cwd(), [Path("volta/dist/bin")],
        ...     ["volta/dist/bin/volta", "--version"], detect_platform(),
        ... )
        >>> executor.execute_and_get_result()
        '1.1.1'
    """

    def __init__(
        self,
        working_directory: Union[str, Path],
        paths: Sequence[Union[str, Path]],
        command: List[str],
        platform: PlatformInfo,
        additional_environment: Optional[Dict[str, str]] = None,
        timeout: Optional[int] = None,
    ):
        """
        Initialize process executor.

        Args:
            working_directory: Directory the process runs in
            paths: Directories prepended to PATH
            command: Executable followed by its arguments
            platform: Platform deciding PATH variable name and separator
            additional_environment: Extra environment variables
            timeout: Optional timeout in seconds (no limit if None)
        """
        self.working_directory = Path(working_directory)
        self.paths = [str(p) for p in paths]
        self.command = [str(part) for part in command]
        self.platform = platform
        self.additional_environment = additional_environment or {}
        self.timeout = timeout

    def build_environment(self) -> Dict[str, str]:
        """
        Build the environment for the child process.

        Returns:
            Copy of the current environment with ``paths`` prepended to PATH
            and ``additional_environment`` applied
        """
        env = dict(os.environ)

        # Windows environments may spell the variable 'PATH' or 'Path'
        path_key = self.platform.path_variable
        for key in env:
            if key.upper() == "PATH":
                path_key = key
                break

        current = env.get(path_key, "")
        entries = list(self.paths)
        if current:
            entries.append(current)
        env[path_key] = self.platform.path_separator.join(entries)

        env.update(self.additional_environment)
        return env

    def _run(self) -> subprocess.CompletedProcess:
        logger.debug(
            f"Executing {' '.join(self.command)} in {self.working_directory}"
        )
        try:
            return subprocess.run(
                self.command,
                cwd=self.working_directory,
                env=self.build_environment(),
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise ProcessExecutionError(
                f"Process timed out after {self.timeout}s: {self.command[0]}"
            ) from e
        except OSError as e:
            raise ProcessExecutionError(
                f"Could not start process {self.command[0]}: {e}"
            ) from e
        except UnicodeDecodeError as e:
            raise ProcessExecutionError(
                f"Process {self.command[0]} wrote output that is not valid text"
            ) from e

    def execute_and_get_result(self) -> str:
        """
        Run the command and return its standard output.

        Returns:
            Standard output with surrounding whitespace removed

        Raises:
            ProcessExecutionError: If the process cannot be started or exits
                with a non-zero code
        """
        result = self._run()

        if result.returncode != 0:
            output = " ".join(
                part.strip() for part in (result.stdout, result.stderr) if part
            )
            raise ProcessExecutionError(
                f"{self.command[0]} exited with code {result.returncode}: {output}",
                exit_code=result.returncode,
            )

        return result.stdout.strip()

    def execute_and_redirect_output(self) -> int:
        """
        Run the command, logging its output line by line.

        Standard output is logged at INFO, standard error at WARNING.

        Returns:
            Exit code of the process

        Raises:
            ProcessExecutionError: If the process cannot be started
        """
        result = self._run()

        for line in result.stdout.splitlines():
            logger.info(line)
        for line in result.stderr.splitlines():
            logger.warning(line)

        return result.returncode


__all__ = ["ProcessExecutor"]
