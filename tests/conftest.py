"""
Pytest configuration and shared fixtures for voltakit tests.
"""

import logging
import tempfile
from pathlib import Path
from typing import Generator

import pytest

from voltakit.core.cache import DirectoryCacheResolver
from voltakit.core.locking import LockManager
from voltakit.core.platform import PlatformInfo, detect_platform
from voltakit.volta.config import InstallConfig
from voltakit.volta.installer import VoltaInstaller

from tests.mocks import CountingDownloader, CountingExtractor, build_volta_archive


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--integration",
        action="store_true",
        default=False,
        help="run integration tests that require network access",
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless --integration flag is provided."""
    if not config.getoption("--integration"):
        skip_integration = pytest.mark.skip(reason="need --integration option to run")
        for item in items:
            if "integration" in item.keywords:
                item.add_marker(skip_integration)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests (requires --integration)",
    )
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )


# ============================================================================
# Shared Test Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Undo logging configuration done by CLI runs."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create temporary directory for test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def platform_info() -> PlatformInfo:
    """Platform of the machine running the tests."""
    return detect_platform()


@pytest.fixture
def install_root(tmp_path: Path) -> Path:
    """Empty install root."""
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    """Archive cache directory outside the install root."""
    return tmp_path / "cache"


@pytest.fixture
def lock_manager(tmp_path: Path) -> LockManager:
    """Lock manager writing lock files into the test directory."""
    return LockManager(lock_dir=tmp_path / "locks")


@pytest.fixture
def install_config(install_root: Path, cache_dir: Path) -> InstallConfig:
    """Install configuration for the test install root and cache."""
    return InstallConfig(
        install_directory=install_root,
        working_directory=install_root,
        cache_resolver=DirectoryCacheResolver(cache_dir),
    )


@pytest.fixture
def volta_archive(tmp_path: Path) -> Path:
    """Volta-shaped archive whose binary reports version 1.2.3."""
    return build_volta_archive(tmp_path / "release" / "volta-v1.2.3.tar.gz", "1.2.3")


@pytest.fixture
def downloader(volta_archive: Path) -> CountingDownloader:
    """Downloader serving the test archive."""
    return CountingDownloader(volta_archive)


@pytest.fixture
def extractor() -> CountingExtractor:
    """Extractor counting extraction calls."""
    return CountingExtractor()


@pytest.fixture
def installer(
    install_config: InstallConfig,
    downloader: CountingDownloader,
    extractor: CountingExtractor,
    lock_manager: LockManager,
) -> VoltaInstaller:
    """Installer wired to the counting collaborators."""
    return VoltaInstaller(
        install_config,
        archive_extractor=extractor,
        file_downloader=downloader,
        lock_manager=lock_manager,
    )
