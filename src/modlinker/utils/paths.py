"""Path and naming helpers shared by the decoder, installers and deployer.

Mod archives are unpacked with whatever casing their authors used, while
FOMOD configs and the game itself are case-insensitive.  Everything below
the cache directory is therefore folded to lowercase right after
extraction, and destinations are always compared as lowercase POSIX paths.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Iterator
from pathlib import Path

from modlinker.constants import ARCHIVE_SUFFIXES

logger = logging.getLogger(__name__)


def to_posix(path: str) -> str:
    """Convert backslashes to forward slashes and collapse doubled separators."""
    normalised = path.replace("\\", "/")
    while "//" in normalised:
        normalised = normalised.replace("//", "/")
    return normalised


def add_extension(path: Path, extension: str) -> Path:
    """Append ``.extension`` after the full file name.

    >>> add_extension(Path("textures/a.dds"), "starmod_bkp").as_posix()
    'textures/a.dds.starmod_bkp'
    """
    return path.with_name(f"{path.name}.{extension}")


def archive_suffix(name: str) -> str | None:
    """Return the recognised archive suffix of *name* (lowercase), if any."""
    lower = name.lower()
    for suffix in ARCHIVE_SUFFIXES:
        if lower.endswith(suffix):
            return suffix
    return None


def strip_archive_suffix(name: str) -> str:
    """Remove a recognised archive suffix, including composite ones.

    >>> strip_archive_suffix("SkyUI-12604-5-2SE.tar.gz")
    'SkyUI-12604-5-2SE'
    >>> strip_archive_suffix("notes.txt")
    'notes'
    """
    suffix = archive_suffix(name)
    if suffix:
        return name[: -len(suffix)]
    return name.rsplit(".", 1)[0] if "." in name else name


def bare_name_for(archive_name: str) -> str:
    """The lowercase stem of an archive, used as cache subdirectory and key."""
    return strip_archive_suffix(Path(archive_name).name).lower()


def walk(
    root: Path,
    *,
    min_depth: int = 1,
    max_depth: int | None = None,
    contents_first: bool = False,
) -> Iterator[tuple[Path, int]]:
    """Yield ``(path, depth)`` for entries below *root* without following symlinks.

    Depth 1 is a direct child of *root*.  Entries are visited in sorted
    order so results are deterministic across filesystems.
    """

    def _walk(directory: Path, depth: int) -> Iterator[tuple[Path, int]]:
        if max_depth is not None and depth > max_depth:
            return
        try:
            children = sorted(directory.iterdir(), key=lambda p: p.name)
        except NotADirectoryError:
            return
        for child in children:
            is_dir = child.is_dir() and not child.is_symlink()
            if not contents_first and depth >= min_depth:
                yield child, depth
            if is_dir:
                yield from _walk(child, depth + 1)
            if contents_first and depth >= min_depth:
                yield child, depth

    yield from _walk(root, 1)


def iter_files(root: Path) -> Iterator[Path]:
    """Yield every regular file below *root*, in sorted walk order."""
    for path, _ in walk(root):
        if path.is_file() and not path.is_symlink():
            yield path


def _is_real_dir(path: Path) -> bool:
    return path.is_dir() and not path.is_symlink()


def _drop_collision(kept: Path, dropped: Path) -> None:
    logger.warning("Case collision: keeping %s, dropping %s", kept, dropped)
    if _is_real_dir(dropped):
        shutil.rmtree(dropped)
    else:
        dropped.unlink()


def merge_dirs(source: Path, target: Path) -> None:
    """Move the contents of *source* into *target* recursively, then remove *source*.

    Subdirectories present in both are merged in turn.  When a file already
    exists at the destination the entry in *target* is kept and the one from
    *source* is dropped with a warning.
    """
    for child in sorted(source.iterdir(), key=lambda p: p.name):
        dest = target / child.name
        if _is_real_dir(child) and _is_real_dir(dest):
            merge_dirs(child, dest)
        elif dest.exists() or dest.is_symlink():
            _drop_collision(dest, child)
        else:
            child.rename(dest)
    source.rmdir()


def lower_case(path: Path) -> Path:
    """Rename a single entry to its lowercase basename and return the new path."""
    target = path.with_name(path.name.lower())
    if target.name == path.name:
        return path

    logger.debug("rename lower-case %s -> %s", path, target)
    if _is_real_dir(path) and _is_real_dir(target):
        merge_dirs(path, target)
        return target
    if target.exists() or target.is_symlink():
        _drop_collision(target, path)
        return target

    path.rename(target)
    return target


def rename_recursive(root: Path) -> None:
    """Fold every file and directory name below *root* to lowercase.

    Children are renamed before their parents so that paths collected
    during the walk stay valid.
    """
    for path, _ in walk(root, contents_first=True):
        if path.is_symlink():
            continue
        if path.is_dir() or path.is_file():
            lower_case(path)


def remove_empty_dirs(root: Path) -> int:
    """Remove every empty directory below *root*, depth-first. Returns the count."""
    removed = 0
    for path, _ in walk(root, contents_first=True):
        if path.is_dir() and not path.is_symlink() and not any(path.iterdir()):
            path.rmdir()
            removed += 1
    return removed
