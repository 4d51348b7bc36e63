"""Error taxonomy surfaced by the core services.

Every error raised on purpose derives from :class:`ModManagerError` so the
command boundary can report it and exit non-zero. Filesystem failures are
left as the ``OSError`` subclasses Python raises.
"""

from __future__ import annotations

from pathlib import Path


class ModManagerError(Exception):
    pass


class UnsupportedArchiveError(ModManagerError):
    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        super().__init__(f"The file '{self.path}' is in an unsupported archive format")


class ArchiveNotFoundError(ModManagerError):
    def __init__(self, query: str) -> None:
        self.query = query
        super().__init__(f"The archive '{query}' cannot be found in the download directory")


class MultipleDataDirectoriesError(ModManagerError):
    def __init__(self, mod: str) -> None:
        self.mod = mod
        super().__init__(f"The mod '{mod}' has multiple data directories")


class InstallerCancelledError(ModManagerError):
    def __init__(self, mod: str) -> None:
        self.mod = mod
        super().__init__(f"The installer of mod '{mod}' has been cancelled")


class ModNotFoundError(ModManagerError):
    def __init__(self, query: str) -> None:
        self.query = query
        super().__init__(f"The mod '{query}' could not be found. Is the mod installed?")


class FileNotFoundInModError(ModManagerError):
    def __init__(self, mod: str, filename: str) -> None:
        self.mod = mod
        self.filename = filename
        super().__init__(f"Could not find the file '{filename}' in mod '{mod}'")


class TagNotFoundError(ModManagerError):
    def __init__(self, mod: str, tag: str) -> None:
        self.mod = mod
        self.tag = tag
        super().__init__(f"Could not find tag '{tag}' in mod '{mod}'")


class DuplicateTagError(ModManagerError):
    def __init__(self, mod: str, tag: str) -> None:
        self.mod = mod
        self.tag = tag
        super().__init__(f"Mod '{mod}' already has the tag '{tag}'")


class GameDirNotConfiguredError(ModManagerError):
    def __init__(self) -> None:
        super().__init__(
            "No game directory is configured; set MODLINKER_GAME_DIR or run 'modlinker edit-config'"
        )
