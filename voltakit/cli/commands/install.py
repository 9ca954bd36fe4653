"""
Install command implementation.

Installs the configured Volta version into the project. Values come from the
command line first, then from the ``volta`` section of the configuration
file, then from defaults:

    volta:
      version: v1.1.1
      download_root: https://mirror.example.com/volta/
      install_directory: .
      cache_directory: ~/.voltakit/cache
      skip: false
      proxies:
        - id: corporate
          protocol: https
          host: proxy.example.com
          port: 3128
          non_proxy_hosts: "*.example.com|localhost"
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from voltakit.cli.utils import (
    config_file_path,
    env_value,
    get_section,
    load_yaml_config,
    parse_bool,
    print_error,
    resolve_path,
    resolve_project_root,
)
from voltakit.core.cache import DirectoryCacheResolver
from voltakit.core.directory import get_archive_cache_dir, verify_directory_writable
from voltakit.core.download import (
    DownloadProgress,
    HttpFileDownloader,
    format_progress,
)
from voltakit.core.exceptions import ConfigurationError, InstallationError
from voltakit.core.filesystem import DefaultArchiveExtractor
from voltakit.core.proxy import ProxyConfig
from voltakit.volta.config import Credentials, InstallConfig, InstallRequest
from voltakit.volta.installer import VoltaInstaller

logger = logging.getLogger(__name__)

USERNAME_ENV = "VOLTAKIT_USERNAME"
PASSWORD_ENV = "VOLTAKIT_PASSWORD"
SKIP_ENV = "VOLTAKIT_SKIP"

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2


def run(args) -> int:
    """
    Run the install command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 on success or skip, 1 on install failure, 2 on usage or
        configuration error)
    """
    logger.debug(f"Arguments: {args}")

    project_root = resolve_project_root(args.project_root)

    try:
        config = load_yaml_config(config_file_path(args))
        section = get_section(config, "volta")
        skip = _resolve_skip(args, section)
    except (OSError, ValueError) as e:
        print_error(f"Invalid configuration: {e}")
        return EXIT_USAGE

    if skip:
        logger.info("Skipping Volta installation")
        return EXIT_SUCCESS

    version = args.volta_version or section.get("version")
    if not version:
        print_error(
            "No Volta version configured",
            "Pass --volta-version or set 'version' in the 'volta' config section",
        )
        return EXIT_USAGE

    try:
        install_root = _resolve_directory(
            args.install_directory, section.get("install_directory"), project_root
        )
        cache_directory = _resolve_directory(
            args.cache_directory,
            section.get("cache_directory"),
            project_root,
            default=get_archive_cache_dir(),
        )
        proxy_config = _resolve_proxies(args, section)
    except ValueError as e:
        print_error(f"Invalid configuration: {e}")
        return EXIT_USAGE

    if install_root.exists() and not verify_directory_writable(install_root):
        print_error(f"Install directory is not writable: {install_root}")
        return EXIT_FAILURE

    progress = ProgressDisplay(enabled=not args.quiet)
    installer = VoltaInstaller(
        InstallConfig(
            install_directory=install_root,
            working_directory=project_root,
            cache_resolver=DirectoryCacheResolver(cache_directory),
        ),
        archive_extractor=DefaultArchiveExtractor(progress.show_extraction),
        file_downloader=HttpFileDownloader(
            proxy_config, progress_callback=progress.show_download
        ),
    )
    request = InstallRequest(
        version=str(version),
        download_root=args.download_root or section.get("download_root"),
        credentials=_resolve_credentials(args),
    )

    try:
        result = installer.install(request)
    except ConfigurationError as e:
        progress.finish()
        print_error(str(e))
        return EXIT_USAGE
    except InstallationError as e:
        progress.finish()
        cause = e.__cause__
        print_error(str(e), str(cause) if cause else None)
        return EXIT_FAILURE

    progress.finish()
    if result.skipped:
        print(f"Volta {result.version} is already installed, skipped")
    else:
        print(f"Installed Volta {result.version} into {result.install_directory}")
    return EXIT_SUCCESS


class ProgressDisplay:
    """Single-line download and extraction progress on stdout."""

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self.active = False

    def show_download(self, progress: DownloadProgress) -> None:
        if not self.enabled:
            return
        print(f"\r  Downloading: {format_progress(progress)}", end="", flush=True)
        self.active = True

    def show_extraction(self, current: int, total: int) -> None:
        if not self.enabled:
            return
        print(f"\r  Extracting: {current}/{total} entries", end="", flush=True)
        self.active = True

    def finish(self) -> None:
        if self.active:
            print()
            self.active = False


def _resolve_skip(args, section: Dict[str, Any]) -> bool:
    if args.skip:
        return True
    env_skip = env_value(SKIP_ENV)
    if env_skip is not None:
        return parse_bool(env_skip)
    return parse_bool(section.get("skip", False))


def _resolve_directory(
    cli_value: Optional[Path],
    config_value: Any,
    project_root: Path,
    default: Optional[Path] = None,
) -> Path:
    if cli_value is not None:
        return Path(cli_value).expanduser().resolve()
    if config_value:
        return resolve_path(config_value, project_root).resolve()
    return default if default is not None else project_root


def _resolve_proxies(args, section: Dict[str, Any]) -> ProxyConfig:
    if args.proxy:
        return ProxyConfig.from_url(args.proxy, args.no_proxy)

    entries = section.get("proxies")
    if entries is not None and not isinstance(entries, list):
        raise ValueError("'proxies' must be a list of mappings")
    return ProxyConfig.from_dicts(entries)


def _resolve_credentials(args) -> Optional[Credentials]:
    username = args.username or env_value(USERNAME_ENV)
    if not username:
        return None
    password = args.password or env_value(PASSWORD_ENV)
    return Credentials(username=username, password=password)
