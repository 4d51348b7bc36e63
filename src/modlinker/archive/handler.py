"""Archive handlers for ZIP, 7z, RAR and compressed tarballs.

Provides a uniform interface for listing and extracting mod archives
regardless of format.  Formats are sniffed from the file suffix only.
"""

from __future__ import annotations

import logging
import os
import shutil
import tarfile
import zipfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import IO

import rarfile

from modlinker.errors import UnsupportedArchiveError
from modlinker.utils.paths import archive_suffix, rename_recursive

logger = logging.getLogger(__name__)

DEFAULT_MODE = 0o755


class SupportedArchive(StrEnum):
    SEVEN_ZIP = "7zip"
    ZIP = "zip"
    TAR_GZ = "tar.gz"
    TAR_XZ = "tar.xz"
    RAR = "rar"

    @classmethod
    def from_path(cls, path: str | Path) -> SupportedArchive:
        """Detect the archive format from a case-insensitive suffix.

        Raises:
            UnsupportedArchiveError: If the suffix is not recognised.
        """
        suffix = archive_suffix(Path(path).name)
        if suffix in (".7z", ".7zip"):
            return cls.SEVEN_ZIP
        if suffix == ".zip":
            return cls.ZIP
        if suffix == ".tar.gz":
            return cls.TAR_GZ
        if suffix == ".tar.xz":
            return cls.TAR_XZ
        if suffix == ".rar":
            return cls.RAR
        raise UnsupportedArchiveError(path)


@dataclass(frozen=True, slots=True)
class ArchiveEntry:
    filename: str
    is_dir: bool
    size: int = 0


def _safe_target(destination: Path, name: str) -> Path | None:
    """Resolve *name* below *destination*, or ``None`` for path traversal entries."""
    normalised = name.replace("\\", "/").lstrip("/")
    target = destination / normalised
    if not target.resolve().is_relative_to(destination.resolve()):
        logger.warning("Skipping path traversal entry: %s", name)
        return None
    return target


def _write_stream(stream: IO[bytes], target: Path) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    with open(target, "wb") as out:
        shutil.copyfileobj(stream, out)


class ArchiveHandler(ABC):
    """Base class for archive format handlers."""

    @abstractmethod
    def list_entries(self) -> list[ArchiveEntry]:
        """Return all entries in the archive."""

    @abstractmethod
    def extract_all(self, destination: Path) -> int:
        """Write every regular file below *destination*. Returns the file count."""

    @abstractmethod
    def close(self) -> None:
        """Release resources."""

    def __enter__(self) -> ArchiveHandler:
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        self.close()


class ZipHandler(ArchiveHandler):
    """Handler for .zip archives using stdlib zipfile.

    Some archives carry Unix modes that leave extracted directories
    unwritable.  When the plain extraction fails the destination is wiped
    and a second pass recreates directories as ``0o755`` and applies each
    file's own mode explicitly.
    """

    def __init__(self, path: str | Path) -> None:
        self._zf = zipfile.ZipFile(path, "r")

    def list_entries(self) -> list[ArchiveEntry]:
        return [
            ArchiveEntry(filename=info.filename, is_dir=info.is_dir(), size=info.file_size)
            for info in self._zf.infolist()
        ]

    def extract_all(self, destination: Path) -> int:
        try:
            self._zf.extractall(destination)
        except (OSError, zipfile.BadZipFile) as exc:
            logger.warning(
                "Default zip extraction into %s failed (%s), retrying with explicit modes",
                destination,
                exc,
            )
            shutil.rmtree(destination, ignore_errors=True)
            return self._extract_with_modes(destination)
        return sum(1 for info in self._zf.infolist() if not info.is_dir())

    def _extract_with_modes(self, destination: Path) -> int:
        destination.mkdir(mode=DEFAULT_MODE, parents=True, exist_ok=True)
        count = 0
        for info in self._zf.infolist():
            target = _safe_target(destination, info.filename)
            if target is None:
                continue
            if info.is_dir():
                target.mkdir(mode=DEFAULT_MODE, parents=True, exist_ok=True)
                continue

            target.parent.mkdir(mode=DEFAULT_MODE, parents=True, exist_ok=True)
            with self._zf.open(info) as stream:
                _write_stream(stream, target)
            mode = (info.external_attr >> 16) & 0o777
            os.chmod(target, mode or DEFAULT_MODE)
            count += 1
        return count

    def close(self) -> None:
        self._zf.close()


class SevenZipHandler(ArchiveHandler):
    """Handler for .7z archives using py7zr."""

    def __init__(self, path: str | Path) -> None:
        try:
            import py7zr
        except ImportError as exc:
            raise ImportError("py7zr is required for .7z support: pip install py7zr") from exc
        self._path = Path(path)
        self._archive = py7zr.SevenZipFile(self._path, mode="r")

    def list_entries(self) -> list[ArchiveEntry]:
        entries: list[ArchiveEntry] = []
        for entry in self._archive.list():
            entries.append(
                ArchiveEntry(
                    filename=entry.filename,
                    is_dir=entry.is_directory,
                    size=entry.uncompressed if hasattr(entry, "uncompressed") else 0,
                )
            )
        return entries

    def extract_all(self, destination: Path) -> int:
        files = [e for e in self.list_entries() if not e.is_dir]
        self._archive.reset()
        destination.mkdir(parents=True, exist_ok=True)
        self._archive.extractall(path=destination)
        return len(files)

    def close(self) -> None:
        self._archive.close()


class RarHandler(ArchiveHandler):
    """Handler for .rar archives using rarfile.

    rarfile delegates decompression to an ``unrar``/``unar``/``bsdtar``
    binary found on ``PATH``.  Headers are walked one by one and anything
    that is not a regular file is skipped.
    """

    def __init__(self, path: str | Path) -> None:
        self._rf = rarfile.RarFile(path)

    def list_entries(self) -> list[ArchiveEntry]:
        return [
            ArchiveEntry(filename=info.filename, is_dir=info.is_dir(), size=info.file_size)
            for info in self._rf.infolist()
        ]

    def extract_all(self, destination: Path) -> int:
        count = 0
        for info in self._rf.infolist():
            if not info.is_file():
                continue
            target = _safe_target(destination, info.filename)
            if target is None:
                continue
            with self._rf.open(info) as stream:
                _write_stream(stream, target)
            count += 1
        return count

    def close(self) -> None:
        self._rf.close()


class TarHandler(ArchiveHandler):
    """Handler for .tar.gz and .tar.xz archives using stdlib tarfile."""

    def __init__(self, path: str | Path, compression: str) -> None:
        self._tf = tarfile.open(path, f"r:{compression}")

    def list_entries(self) -> list[ArchiveEntry]:
        return [
            ArchiveEntry(filename=member.name, is_dir=member.isdir(), size=member.size)
            for member in self._tf.getmembers()
        ]

    def extract_all(self, destination: Path) -> int:
        count = 0
        for member in self._tf.getmembers():
            if not member.isfile():
                continue
            target = _safe_target(destination, member.name)
            if target is None:
                continue
            stream = self._tf.extractfile(member)
            if stream is None:
                continue
            with stream:
                _write_stream(stream, target)
            count += 1
        return count

    def close(self) -> None:
        self._tf.close()


def open_archive(path: str | Path) -> ArchiveHandler:
    """Open an archive file and return the appropriate handler.

    Raises:
        UnsupportedArchiveError: If the file suffix is not supported.
        zipfile.BadZipFile: If a ZIP file is corrupt.
    """
    kind = SupportedArchive.from_path(path)

    if kind == SupportedArchive.ZIP:
        return ZipHandler(path)
    if kind == SupportedArchive.SEVEN_ZIP:
        return SevenZipHandler(path)
    if kind == SupportedArchive.RAR:
        return RarHandler(path)
    if kind == SupportedArchive.TAR_GZ:
        return TarHandler(path, "gz")
    return TarHandler(path, "xz")


def extract_archive(path: str | Path, destination: Path) -> int:
    """Extract *path* into *destination* and fold all names to lowercase.

    FOMOD configs reference files in arbitrary casing, so the extracted tree
    is renamed to lowercase before anything else looks at it.
    """
    with open_archive(path) as archive:
        count = archive.extract_all(destination)
    rename_recursive(destination)
    logger.info("Extracted %d files from %s", count, Path(path).name)
    return count
