"""Build output collection for uploads run after the bundler has written to disk."""
from collections.abc import MutableMapping
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List
import logging
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BundleAsset:
    """One emitted file, shaped like a bundler asset record."""
    file_name: str
    path: Path

    @property
    def source(self) -> bytes:
        return self.path.read_bytes()


class FileCollector:
    """Collects emitted files from a build output folder."""

    @staticmethod
    def collect_files(folder: Path) -> List[Path]:
        """
        Collect all files recursively.

        Args:
            folder: Build output root

        Returns:
            Sorted list of file paths
        """
        return sorted(item for item in folder.rglob("*") if item.is_file())


class BuildOutputBundle(MutableMapping):
    """
    ArtifactSet backed by a build output directory.

    Keys are POSIX paths relative to the directory. Deleting a key removes
    the file from disk.
    """

    def __init__(self, folder: Path):
        self._folder = Path(folder)
        if not self._folder.is_dir():
            raise NotADirectoryError(f"build output is not a directory: {self._folder}")
        self._assets: Dict[str, BundleAsset] = {}
        for path in FileCollector.collect_files(self._folder):
            name = path.relative_to(self._folder).as_posix()
            self._assets[name] = BundleAsset(name, path)

    @property
    def folder(self) -> Path:
        return self._folder

    def __getitem__(self, key: str) -> BundleAsset:
        return self._assets[key]

    def __setitem__(self, key: str, value) -> None:
        path = self._folder / key
        path.parent.mkdir(parents=True, exist_ok=True)
        content = value.source if isinstance(value, BundleAsset) else value
        if isinstance(content, str):
            path.write_text(content, encoding="utf-8")
        else:
            path.write_bytes(bytes(content))
        self._assets[key] = BundleAsset(key, path)

    def __delitem__(self, key: str) -> None:
        asset = self._assets.pop(key)
        asset.path.unlink(missing_ok=True)
        logger.debug(f"Deleted {asset.path}")

    def __iter__(self) -> Iterator[str]:
        return iter(self._assets)

    def __len__(self) -> int:
        return len(self._assets)
