"""
voltakit CLI argument parser.

This module implements the command-line interface for voltakit using argparse.
"""

import argparse
import importlib
import logging
import sys
from pathlib import Path
from typing import List, Optional

# Get version from package
try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("voltakit")
except PackageNotFoundError:
    __version__ = "0.1.0"

logger = logging.getLogger(__name__)


class CLI:
    """voltakit command-line interface."""

    def __init__(self):
        """Initialize CLI with argument parser."""
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """
        Create argument parser with all subcommands.

        Returns:
            Configured ArgumentParser instance
        """
        parser = argparse.ArgumentParser(
            prog="voltakit",
            description="voltakit - Project-local Volta installer",
            epilog='Use "voltakit COMMAND --help" for command-specific help',
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )

        # Global options
        parser.add_argument(
            "--version", action="version", version=f"voltakit {__version__}"
        )
        parser.add_argument(
            "--verbose", "-v", action="store_true", help="Enable verbose output"
        )
        parser.add_argument(
            "--quiet",
            "-q",
            action="store_true",
            help="Enable minimal output (errors only)",
        )
        parser.add_argument(
            "--config",
            type=Path,
            metavar="PATH",
            help="Path to configuration file (default: ./voltakit.yaml)",
        )
        parser.add_argument(
            "--project-root",
            type=Path,
            metavar="PATH",
            default=Path.cwd(),
            help="Project root directory (default: current directory)",
        )

        # Subcommands
        subparsers = parser.add_subparsers(
            dest="command", help="Available commands", metavar="COMMAND"
        )

        self._add_install_command(subparsers)

        return parser

    def _add_install_command(self, subparsers):
        """Add 'install' subcommand."""
        parser = subparsers.add_parser(
            "install",
            help="Install Volta into the project",
            description=(
                "Install a pinned Volta version into the project, "
                "skipping the download when it is already installed"
            ),
        )
        parser.add_argument(
            "--volta-version",
            metavar="VERSION",
            help="Volta version to install, with 'v' prefix (e.g., v1.1.1)",
        )
        parser.add_argument(
            "--download-root",
            metavar="URL",
            help="Base URL the version and archive name are appended to",
        )
        parser.add_argument(
            "--install-directory",
            type=Path,
            metavar="PATH",
            help="Install root; Volta goes to <PATH>/volta (default: project root)",
        )
        parser.add_argument(
            "--cache-directory",
            type=Path,
            metavar="PATH",
            help="Directory for downloaded archives (default: ~/.voltakit/cache)",
        )
        parser.add_argument(
            "--username", metavar="NAME", help="Username for the download server"
        )
        parser.add_argument(
            "--password", metavar="SECRET", help="Password for the download server"
        )
        parser.add_argument(
            "--proxy", metavar="URL", help="Proxy URL (e.g., http://proxy:8080)"
        )
        parser.add_argument(
            "--no-proxy",
            metavar="HOSTS",
            help="Hosts to reach directly, separated by '|' (e.g., *.corp|localhost)",
        )
        parser.add_argument(
            "--skip",
            action="store_true",
            default=None,
            help="Skip the installation",
        )

    def parse_args(self, args: Optional[List[str]] = None):
        """
        Parse command-line arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Parsed arguments namespace
        """
        return self.parser.parse_args(args)

    def run(self, args: Optional[List[str]] = None) -> int:
        """
        Run CLI with given arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Exit code (0 for success, non-zero for error)
        """
        parsed_args = self.parse_args(args)

        # Configure logging
        self._configure_logging(parsed_args)

        # Check if command specified
        if not parsed_args.command:
            self.parser.print_help()
            return 1

        # Dispatch to command handler
        try:
            return self._dispatch_command(parsed_args)
        except KeyboardInterrupt:
            logger.info("Operation cancelled by user")
            return 130  # Standard exit code for SIGINT
        except Exception as e:
            logger.error(f"Error: {e}")
            if parsed_args.verbose:
                import traceback

                traceback.print_exc()
            return 1

    def _configure_logging(self, args):
        """
        Configure logging based on verbose/quiet flags.

        Args:
            args: Parsed arguments with verbose/quiet flags
        """
        if args.verbose:
            level = logging.DEBUG
            format_str = "%(levelname)s [%(name)s] %(message)s"
        elif args.quiet:
            level = logging.ERROR
            format_str = "%(levelname)s: %(message)s"
        else:
            level = logging.INFO
            format_str = "%(message)s"

        logging.basicConfig(
            level=level,
            format=format_str,
            force=True,  # Reconfigure if already configured
        )

    def _dispatch_command(self, args) -> int:
        """
        Dispatch to appropriate command handler.

        Args:
            args: Parsed arguments with command field

        Returns:
            Exit code from command handler
        """
        # Command module mapping
        command_map = {
            "install": "voltakit.cli.commands.install",
        }

        module_name = command_map.get(args.command)
        if not module_name:
            logger.error(f"Unknown command: {args.command}")
            return 1

        try:
            module = importlib.import_module(module_name)
        except ImportError as e:
            logger.error(f"Failed to load command module: {e}")
            return 1

        if not hasattr(module, "run"):
            logger.error(f"Command module {module_name} has no run() function")
            return 1

        return module.run(args)


def main():
    """Main entry point for CLI."""
    cli = CLI()
    sys.exit(cli.run())


if __name__ == "__main__":
    main()
