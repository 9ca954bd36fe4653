"""
Network download manager with progress tracking and atomic writes.

This module provides downloading capabilities with:
- HTTP/HTTPS downloads with TLS verification
- Optional basic authentication and proxy selection
- file:// URLs for local mirrors
- Progress reporting (bytes, percentage, speed, ETA)
- Atomic-or-absent results: data is written to a temporary sibling file and
  renamed into place only after the transfer completed
"""

import logging
import shutil
import tempfile
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Optional
from urllib.parse import unquote, urlparse
from urllib.request import url2pathname

import requests
from requests.exceptions import RequestException

from voltakit.core.exceptions import DownloadError
from voltakit.core.proxy import ProxyConfig

logger = logging.getLogger(__name__)


@dataclass
class DownloadProgress:
    """Progress information for a download."""

    bytes_downloaded: int
    total_bytes: int
    percentage: float
    speed_bps: float  # bytes per second
    eta_seconds: float  # estimated time remaining

    def __str__(self) -> str:
        """Format progress for display."""
        return format_progress(self)


class FileDownloader(ABC):
    """Abstract interface for fetching a URL into a local file."""

    @abstractmethod
    def download(
        self,
        url: str,
        destination: Path,
        username: Optional[str] = None,
        password: Optional[str] = None,
    ) -> Path:
        """
        Download a URL to a local path.

        Implementations must not leave a partially written file at
        ``destination`` when they fail.

        Args:
            url: URL to download from
            destination: Local path to save the file
            username: Optional basic-auth user
            password: Optional basic-auth password

        Returns:
            Path to downloaded file

        Raises:
            DownloadError: On any network, HTTP-status or I/O failure
        """
        pass


class HttpFileDownloader(FileDownloader):
    """
    FileDownloader backed by ``requests``.

    Example:
        >>> downloader = HttpFileDownloader(ProxyConfig())
        >>> downloader.download(url, Path("cache/volta-v1.2.3.tar.gz"))
    """

    def __init__(
        self,
        proxy_config: Optional[ProxyConfig] = None,
        timeout: int = 30,
        progress_callback: Optional[Callable[[DownloadProgress], None]] = None,
    ):
        """
        Initialize downloader.

        Args:
            proxy_config: Proxies to consult for each URL (direct if None)
            timeout: Request timeout in seconds
            progress_callback: Optional callback for progress updates
        """
        self.proxy_config = proxy_config or ProxyConfig()
        self.timeout = timeout
        self.progress_callback = progress_callback

    def download(
        self,
        url: str,
        destination: Path,
        username: Optional[str] = None,
        password: Optional[str] = None,
    ) -> Path:
        return download_file(
            url,
            destination,
            username=username,
            password=password,
            proxies=self.proxy_config.proxies_for(url),
            progress_callback=self.progress_callback,
            timeout=self.timeout,
        )


def download_file(
    url: str,
    destination: Path,
    username: Optional[str] = None,
    password: Optional[str] = None,
    proxies: Optional[Dict[str, str]] = None,
    progress_callback: Optional[Callable[[DownloadProgress], None]] = None,
    timeout: int = 30,
) -> Path:
    """
    Download file from URL to destination.

    The transfer goes to a temporary file next to ``destination`` which is
    renamed into place on success and removed on failure, so ``destination``
    either holds the complete file or does not exist.

    Args:
        url: URL to download from (http, https or file)
        destination: Local path to save file
        username: Optional basic-auth user (ignored for file:// URLs)
        password: Optional basic-auth password
        proxies: ``requests`` proxies mapping
        progress_callback: Optional callback for progress updates
        timeout: Request timeout in seconds

    Returns:
        Path to downloaded file

    Raises:
        DownloadError: If download fails
        ValueError: If URL or destination is invalid

    Example:
        >>> from voltakit.core.download import download_file
        >>> url = "https://github.com/volta-cli/volta/releases/download/v1.1.1/volta-v1.1.1.tar.gz"
        >>> download_file(url, Path("cache/volta-v1.1.1.tar.gz"))
    """
    if not url:
        raise ValueError("URL cannot be empty")

    if not destination:
        raise ValueError("Destination path cannot be empty")

    # Ensure destination directory exists
    destination = Path(destination)
    destination.parent.mkdir(parents=True, exist_ok=True)

    # Temp file in the same directory keeps the final rename on one filesystem
    temp_fd, temp_path_str = tempfile.mkstemp(
        dir=destination.parent, prefix=f".{destination.name}.", suffix=".part"
    )
    temp_path = Path(temp_path_str)

    try:
        with open(temp_fd, "wb") as f:
            if urlparse(url).scheme == "file":
                _copy_local_file(url, f)
            else:
                _download_with_progress(
                    url=url,
                    output=f,
                    auth=(username, password or "") if username else None,
                    proxies=proxies or {},
                    progress_callback=progress_callback,
                    timeout=timeout,
                )
        temp_path.replace(destination)
    except RequestException as e:
        logger.error(f"Error during download: {e}")
        raise DownloadError(f"Could not download {url}: {e}") from e
    except OSError as e:
        logger.error(f"Error writing {destination}: {e}")
        raise DownloadError(f"Could not download {url} to {destination}: {e}") from e
    finally:
        temp_path.unlink(missing_ok=True)

    logger.info(f"Download complete: {destination}")
    return destination


def _copy_local_file(url: str, output) -> None:
    """Copy the file referenced by a file:// URL into an open binary stream."""
    source = Path(url2pathname(unquote(urlparse(url).path)))
    logger.info(f"Copying from {source}")

    with open(source, "rb") as src:
        shutil.copyfileobj(src, output)


def _download_with_progress(
    url: str,
    output,
    auth: Optional[tuple],
    proxies: Dict[str, str],
    progress_callback: Optional[Callable[[DownloadProgress], None]],
    timeout: int,
) -> None:
    """
    Perform download with streaming and progress updates.

    This is an internal function called by download_file().

    Args:
        url: URL to download
        output: Binary stream to write to
        auth: (username, password) tuple or None
        proxies: ``requests`` proxies mapping
        progress_callback: Progress callback function
        timeout: Request timeout in seconds

    Raises:
        RequestException: If HTTP request fails
    """
    logger.info(f"Downloading from {url}")

    with requests.get(
        url,
        stream=True,
        timeout=timeout,
        allow_redirects=True,
        auth=auth,
        proxies=proxies,
    ) as response:
        response.raise_for_status()

        content_length = response.headers.get("content-length")
        total_size = int(content_length) if content_length else 0

        downloaded = 0
        start_time = time.time()
        last_progress_time = start_time

        for chunk in response.iter_content(chunk_size=8192):
            if not chunk:
                continue

            output.write(chunk)
            downloaded += len(chunk)

            # Report progress (max once per 0.5 seconds to avoid spam)
            current_time = time.time()
            if progress_callback and (
                current_time - last_progress_time >= 0.5 or downloaded == total_size
            ):
                elapsed = current_time - start_time
                speed = downloaded / elapsed if elapsed > 0 else 0
                remaining = total_size - downloaded if total_size > 0 else 0
                eta = remaining / speed if speed > 0 else 0

                progress_callback(
                    DownloadProgress(
                        bytes_downloaded=downloaded,
                        total_bytes=total_size if total_size > 0 else downloaded,
                        percentage=(downloaded / total_size * 100)
                        if total_size > 0
                        else 0,
                        speed_bps=speed,
                        eta_seconds=eta,
                    )
                )
                last_progress_time = current_time


def format_progress(progress: DownloadProgress) -> str:
    """
    Format progress for display.

    Args:
        progress: Download progress information

    Returns:
        Formatted progress string

    Example:
        >>> progress = DownloadProgress(52428800, 104857600, 50.0, 1048576, 50)
        >>> print(format_progress(progress))
        50.0/100.0 MB (50.0%) at 1.0 MB/s ETA: 50s
    """
    mb_downloaded = progress.bytes_downloaded / 1024 / 1024
    mb_total = progress.total_bytes / 1024 / 1024
    speed_mbps = progress.speed_bps / 1024 / 1024

    if progress.total_bytes > 0:
        return (
            f"{mb_downloaded:.1f}/{mb_total:.1f} MB "
            f"({progress.percentage:.1f}%) "
            f"at {speed_mbps:.1f} MB/s "
            f"ETA: {progress.eta_seconds:.0f}s"
        )
    else:
        # Unknown total size
        return f"{mb_downloaded:.1f} MB " f"at {speed_mbps:.1f} MB/s"


__all__ = [
    "DownloadProgress",
    "FileDownloader",
    "HttpFileDownloader",
    "download_file",
    "format_progress",
]
