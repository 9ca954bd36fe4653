"""
Local archive cache for downloaded tools.

Archives are stored outside the install directory so that a tool can be
reinstalled (or an install directory wiped) without downloading it again.

Cache Layout (DirectoryCacheResolver):
    <cache_directory>/
        volta/
            v1.2.3/
                volta-v1.2.3.tar.gz
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheDescriptor:
    """
    Key of a cached archive.

    Attributes:
        name: Tool name (e.g., 'volta')
        version: Tool version as requested (e.g., 'v1.2.3')
        extension: Archive extension without leading dot (e.g., 'tar.gz')
        classifier: Optional qualifier such as a platform string
    """

    name: str
    version: str
    extension: str
    classifier: Optional[str] = None

    def file_name(self) -> str:
        """
        Get the archive file name for this descriptor.

        Example:
            >>> CacheDescriptor('volta', 'v1.2.3', 'tar.gz').file_name()
            'volta-v1.2.3.tar.gz'
        """
        stem = f"{self.name}-{self.version}"
        if self.classifier:
            stem += f"-{self.classifier}"
        return f"{stem}.{self.extension}"


class CacheResolver(ABC):
    """
    Abstract interface mapping a CacheDescriptor to a local file path.

    Implementations must be deterministic: the same descriptor always resolves
    to the same path for a given cache location.
    """

    @abstractmethod
    def resolve(self, descriptor: CacheDescriptor) -> Path:
        """
        Resolve the local path used to store the archive.

        Args:
            descriptor: Cache key

        Returns:
            Path where the archive is (or will be) stored. The file itself may
            not exist yet.
        """
        pass


class DirectoryCacheResolver(CacheResolver):
    """Cache resolver storing archives in a plain directory tree."""

    def __init__(self, cache_directory: Union[str, Path]):
        """
        Initialize directory cache resolver.

        Args:
            cache_directory: Root directory of the cache
        """
        self.cache_directory = Path(cache_directory)

    def resolve(self, descriptor: CacheDescriptor) -> Path:
        archive_dir = self.cache_directory / descriptor.name / descriptor.version
        archive_dir.mkdir(parents=True, exist_ok=True)

        archive_path = archive_dir / descriptor.file_name()
        logger.debug(f"Resolved cache entry {descriptor} to {archive_path}")
        return archive_path

    def __repr__(self) -> str:
        return f"DirectoryCacheResolver({str(self.cache_directory)!r})"


__all__ = [
    "CacheDescriptor",
    "CacheResolver",
    "DirectoryCacheResolver",
]
