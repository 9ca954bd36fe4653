"""
Unit tests for VoltaInstaller.

Tests cover:
- Fresh installs, reinstalls and skips
- Version validation before any work is done
- Archive cache reuse
- Cleanup after corrupted and failed extractions
- Serialization of concurrent installs
"""

import dataclasses
import logging
import os
import sys
import threading

import pytest
from filelock import Timeout as LockTimeout

from voltakit.core.cache import CacheDescriptor
from voltakit.core.exceptions import (
    ArchiveExtractionError,
    ConfigurationError,
    CorruptedArchiveError,
    DownloadError,
    InstallationError,
)
from voltakit.core.locking import LockManager
from voltakit.volta.config import Credentials, InstallRequest
from voltakit.volta.executor import ProbeStatus
from voltakit.volta.installer import InstallResult, VoltaInstaller, install_volta
from voltakit.volta.layout import DEFAULT_VOLTA_DOWNLOAD_ROOT

from tests.mocks import (
    CountingDownloader,
    CountingExtractor,
    FailingExtractor,
    build_truncated_archive,
    build_volta_archive,
    volta_script,
)

requires_posix = pytest.mark.skipif(
    sys.platform == "win32", reason="fake binaries are shell scripts"
)


def _cached_archive(cache_dir, version="v1.2.3"):
    return cache_dir / "volta" / version / f"volta-{version}.tar.gz"


def _snapshot(directory):
    """Map every file below ``directory`` to its size and modification time."""
    snapshot = {}
    for path in sorted(directory.rglob("*")):
        stat = path.stat()
        snapshot[str(path.relative_to(directory))] = (stat.st_size, stat.st_mtime_ns)
    return snapshot


def _install_binary(install_root, version):
    binary = install_root / "volta" / "dist" / "bin" / "volta"
    binary.parent.mkdir(parents=True, exist_ok=True)
    binary.write_text(volta_script(version))
    os.chmod(binary, 0o755)
    return binary


# ============================================================================
# Fresh installs
# ============================================================================


@requires_posix
class TestFreshInstall:
    """Tests for installing into an empty install root."""

    def test_install_populates_directory(
        self, installer, install_root, downloader, extractor
    ):
        """Test a fresh install downloads, extracts and can be probed."""
        result = installer.install(InstallRequest("v1.2.3"))

        assert result == InstallResult(
            version="v1.2.3",
            install_directory=install_root / "volta",
            skipped=False,
            downloaded=True,
        )
        assert (install_root / "volta" / "dist" / "bin" / "volta").is_file()
        assert downloader.count == 1
        assert extractor.count == 1

        probe = installer.probe()
        assert probe.status is ProbeStatus.INSTALLED
        assert probe.version == "1.2.3"

    def test_default_download_url(self, installer, downloader, cache_dir):
        """Test the archive is fetched from the default release host."""
        installer.install(InstallRequest("v1.2.3"))

        url, destination, username, password = downloader.calls[0]
        assert url == f"{DEFAULT_VOLTA_DOWNLOAD_ROOT}v1.2.3/volta-v1.2.3.tar.gz"
        assert destination == _cached_archive(cache_dir)
        assert username is None
        assert password is None

    def test_custom_download_root_and_credentials(self, installer, downloader):
        """Test download root and credentials are passed to the downloader."""
        request = InstallRequest(
            "v1.2.3",
            download_root="https://mirror.example.com/volta/",
            credentials=Credentials("deploy", "secret"),
        )

        installer.install(request)

        url, _, username, password = downloader.calls[0]
        assert url == "https://mirror.example.com/volta/v1.2.3/volta-v1.2.3.tar.gz"
        assert (username, password) == ("deploy", "secret")

    def test_archive_kept_in_cache(self, installer, cache_dir):
        """Test the downloaded archive stays in the cache after install."""
        installer.install(InstallRequest("v1.2.3"))

        assert _cached_archive(cache_dir).is_file()


# ============================================================================
# Skips
# ============================================================================


@requires_posix
class TestSkip:
    """Tests for skipping installs of the version already present."""

    def test_matching_version_is_skipped(
        self, installer, install_root, downloader, extractor
    ):
        """Test a matching probe performs no download and no extraction."""
        _install_binary(install_root, "1.2.3")
        before = _snapshot(install_root)

        result = installer.install(InstallRequest("v1.2.3"))

        assert result.skipped
        assert not result.downloaded
        assert downloader.count == 0
        assert extractor.count == 0
        assert _snapshot(install_root) == before

    def test_second_install_is_skipped(
        self, installer, install_root, downloader, extractor
    ):
        """Test installing twice leaves the directory unchanged."""
        installer.install(InstallRequest("v1.2.3"))
        before = _snapshot(install_root)

        result = installer.install(InstallRequest("v1.2.3"))

        assert result.skipped
        assert downloader.count == 1
        assert extractor.count == 1
        assert _snapshot(install_root) == before

    def test_different_version_is_replaced(
        self, installer, install_root, downloader, extractor
    ):
        """Test an older installation is removed before unpacking."""
        _install_binary(install_root, "1.0.0")
        stale = install_root / "volta" / "stale.txt"
        stale.write_text("left over")

        result = installer.install(InstallRequest("v1.2.3"))

        assert not result.skipped
        assert not stale.exists()
        assert installer.probe().version == "1.2.3"
        assert extractor.count == 1

    def test_failed_probe_reinstalls(self, installer, install_root, extractor):
        """Test a broken binary is treated as not installed."""
        binary = install_root / "volta" / "dist" / "bin" / "volta"
        binary.parent.mkdir(parents=True)
        binary.write_text("#!/bin/sh\nexit 1\n")
        os.chmod(binary, 0o755)

        result = installer.install(InstallRequest("v1.2.3"))

        assert not result.skipped
        assert extractor.count == 1
        assert installer.probe().version == "1.2.3"

    def test_undecodable_version_output_reinstalls(
        self, installer, install_root, extractor
    ):
        """Test a binary printing non-UTF-8 bytes is treated as not installed."""
        binary = install_root / "volta" / "dist" / "bin" / "volta"
        binary.parent.mkdir(parents=True)
        binary.write_text("#!/bin/sh\nprintf '\\377\\376garbage'\n")
        os.chmod(binary, 0o755)

        result = installer.install(InstallRequest("v1.2.3"))

        assert not result.skipped
        assert extractor.count == 1
        assert installer.probe().version == "1.2.3"

    def test_install_directory_outside_root_is_kept(
        self, installer, install_root, tmp_path, caplog
    ):
        """Test a symlinked install directory is not deleted and does not fail."""
        elsewhere = tmp_path / "elsewhere"
        _install_binary(elsewhere, "1.0.0")
        (install_root / "volta").symlink_to(elsewhere / "volta")

        with caplog.at_level(logging.WARNING, logger="voltakit.volta.installer"):
            result = installer.install(InstallRequest("v1.2.3"))

        assert not result.skipped
        assert "Failed to delete existing" in caplog.text
        assert (elsewhere / "volta").is_dir()


# ============================================================================
# Validation
# ============================================================================


class TestVersionValidation:
    """Tests for version validation."""

    def test_missing_prefix(self, installer, install_root, downloader, extractor):
        """Test a version without 'v' fails before any download."""
        with pytest.raises(ConfigurationError, match="has to start with prefix 'v'"):
            installer.install(InstallRequest("1.2.3"))

        assert downloader.count == 0
        assert extractor.count == 0
        assert not (install_root / "volta").exists()

    def test_missing_prefix_is_installation_error(self, installer):
        """Test callers catching InstallationError see configuration errors."""
        with pytest.raises(InstallationError):
            installer.install(InstallRequest("latest"))

    @requires_posix
    def test_missing_prefix_checked_before_probe(
        self, installer, install_root, downloader
    ):
        """Test validation happens even when the bare version is installed."""
        _install_binary(install_root, "1.2.3")

        with pytest.raises(ConfigurationError):
            installer.install(InstallRequest("1.2.3"))

        assert downloader.count == 0


# ============================================================================
# Cache
# ============================================================================


class TestArchiveCache:
    """Tests for archive cache reuse."""

    def test_cached_archive_is_reused(
        self, installer, cache_dir, install_root, downloader, extractor
    ):
        """Test an archive already in the cache is not downloaded again."""
        build_volta_archive(_cached_archive(cache_dir), "1.2.3")

        result = installer.install(InstallRequest("v1.2.3"))

        assert not result.downloaded
        assert downloader.count == 0
        assert extractor.count == 1
        assert (install_root / "volta" / "dist" / "bin" / "volta").is_file()

    def test_cache_entry_failure(self, install_config, downloader, lock_manager):
        """Test a cache that cannot be prepared raises InstallationError."""

        class BrokenResolver:
            def resolve(self, descriptor: CacheDescriptor):
                raise PermissionError("read-only cache")

        config = dataclasses.replace(install_config, cache_resolver=BrokenResolver())
        installer = VoltaInstaller(
            config, file_downloader=downloader, lock_manager=lock_manager
        )

        with pytest.raises(InstallationError, match="cache entry"):
            installer.install(InstallRequest("v1.2.3"))

        assert downloader.count == 0


# ============================================================================
# Failures
# ============================================================================


class TestFailures:
    """Tests for download and extraction failures."""

    def test_corrupted_archive_is_removed(
        self, install_config, install_root, cache_dir, lock_manager, tmp_path
    ):
        """Test a truncated archive and partial install are deleted."""
        truncated = build_truncated_archive(tmp_path / "bad" / "volta-v1.2.3.tar.gz")
        installer = VoltaInstaller(
            install_config,
            archive_extractor=CountingExtractor(),
            file_downloader=CountingDownloader(truncated),
            lock_manager=lock_manager,
        )

        with pytest.raises(InstallationError) as exc_info:
            installer.install(InstallRequest("v1.2.3"))

        assert isinstance(exc_info.value.__cause__, CorruptedArchiveError)
        assert not _cached_archive(cache_dir).exists()
        assert not (install_root / "volta").exists()

    def test_corrupted_archive_redownloaded_next_time(
        self, install_config, cache_dir, lock_manager, volta_archive, tmp_path
    ):
        """Test the next install after a corrupted archive downloads again."""
        truncated = build_truncated_archive(tmp_path / "bad" / "volta-v1.2.3.tar.gz")
        failing = VoltaInstaller(
            install_config,
            file_downloader=CountingDownloader(truncated),
            lock_manager=lock_manager,
        )
        with pytest.raises(InstallationError):
            failing.install(InstallRequest("v1.2.3"))

        downloader = CountingDownloader(volta_archive)
        installer = VoltaInstaller(
            install_config, file_downloader=downloader, lock_manager=lock_manager
        )
        result = installer.install(InstallRequest("v1.2.3"))

        assert result.downloaded
        assert downloader.count == 1

    def test_other_extraction_failure_keeps_archive(
        self, install_config, cache_dir, downloader, lock_manager
    ):
        """Test non-corruption extraction errors keep the cached archive."""
        installer = VoltaInstaller(
            install_config,
            archive_extractor=FailingExtractor(),
            file_downloader=downloader,
            lock_manager=lock_manager,
        )

        with pytest.raises(InstallationError, match="Could not extract") as exc_info:
            installer.install(InstallRequest("v1.2.3"))

        assert isinstance(exc_info.value.__cause__, ArchiveExtractionError)
        assert not isinstance(exc_info.value.__cause__, CorruptedArchiveError)
        assert _cached_archive(cache_dir).is_file()

    def test_download_failure(
        self, install_config, install_root, cache_dir, extractor, lock_manager
    ):
        """Test download errors are wrapped and nothing is extracted."""
        downloader = CountingDownloader(error=DownloadError("HTTP 401"))
        installer = VoltaInstaller(
            install_config,
            archive_extractor=extractor,
            file_downloader=downloader,
            lock_manager=lock_manager,
        )

        with pytest.raises(InstallationError, match="Could not download Volta") as e:
            installer.install(InstallRequest("v1.2.3"))

        assert isinstance(e.value.__cause__, DownloadError)
        assert extractor.count == 0
        assert not _cached_archive(cache_dir).exists()
        assert not (install_root / "volta").exists()

    def test_lock_timeout(self, installer, install_root, lock_manager, downloader):
        """Test waiting too long for a concurrent install fails."""
        acquired = threading.Event()
        release = threading.Event()

        def hold_lock():
            with lock_manager.install_lock(install_root, "volta"):
                acquired.set()
                release.wait(5)

        holder = threading.Thread(target=hold_lock)
        holder.start()
        try:
            assert acquired.wait(5)
            with pytest.raises(InstallationError, match="install lock") as exc_info:
                installer.install(InstallRequest("v1.2.3"), lock_timeout=0.1)
        finally:
            release.set()
            holder.join()

        assert isinstance(exc_info.value.__cause__, LockTimeout)
        assert downloader.count == 0


# ============================================================================
# Concurrency
# ============================================================================


@requires_posix
class TestConcurrentInstalls:
    """Tests for concurrent installs into the same root."""

    def test_single_extraction(self, install_config, volta_archive, tmp_path):
        """Test N concurrent installs extract the archive exactly once."""
        downloader = CountingDownloader(volta_archive)
        extractor = CountingExtractor(delay=0.05)
        results = []
        errors = []

        def worker():
            installer = VoltaInstaller(
                install_config,
                archive_extractor=extractor,
                file_downloader=downloader,
                lock_manager=LockManager(tmp_path / "locks"),
            )
            try:
                results.append(installer.install(InstallRequest("v1.2.3")))
            except InstallationError as e:
                errors.append(e)

        threads = [threading.Thread(target=worker) for _ in range(6)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert extractor.count == 1
        assert downloader.count == 1
        assert sorted(r.skipped for r in results) == [False] + [True] * 5


# ============================================================================
# Convenience function
# ============================================================================


@requires_posix
class TestInstallVolta:
    """Tests for install_volta."""

    def test_install_from_file_mirror(self, tmp_path, lock_manager):
        """Test installing from a file:// mirror with default collaborators."""
        mirror = tmp_path / "mirror"
        build_volta_archive(mirror / "v1.2.3" / "volta-v1.2.3.tar.gz", "1.2.3")
        install_root = tmp_path / "project"

        result = install_volta(
            "v1.2.3",
            install_root,
            download_root=mirror.as_uri() + "/",
            cache_directory=tmp_path / "cache",
            lock_manager=lock_manager,
        )

        assert not result.skipped
        assert result.downloaded
        assert (install_root / "volta" / "dist" / "bin" / "volta").is_file()
        assert _cached_archive(tmp_path / "cache").is_file()

        again = install_volta(
            "v1.2.3",
            install_root,
            download_root=mirror.as_uri() + "/",
            cache_directory=tmp_path / "cache",
            lock_manager=lock_manager,
        )
        assert again.skipped
