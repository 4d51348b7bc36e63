"""Symlink deployment of cached mods into the game directory.

Mods are linked in ascending rank so that a later mod replaces links laid
down by an earlier one (last writer wins).  Files in the game directory
that were not put there by us are renamed aside to ``<name>.starmod_bkp``
and restored once the destination is free again.

Everything runs sequentially; a filesystem error stops the operation and
leaves the game directory partially updated.  Running ``disable-all``
brings it back to a clean state.
"""

from __future__ import annotations

import errno
import logging
import os
from collections.abc import Sequence
from pathlib import Path

from modlinker.constants import BACKUP_EXTENSION
from modlinker.schemas.manifest import InstallFile, Manifest, ModState
from modlinker.services.manifest_store import write_manifest
from modlinker.utils.paths import add_extension, remove_empty_dirs, walk

logger = logging.getLogger(__name__)


class Deployer:
    def __init__(self, cache_dir: Path, game_dir: Path) -> None:
        self.cache_dir = Path(os.path.abspath(cache_dir))
        self.game_dir = Path(os.path.abspath(game_dir))

    # ------------------------------------------------------------------
    # Path helpers
    # ------------------------------------------------------------------

    def source_path(self, mod: Manifest, entry: InstallFile) -> Path:
        return self.cache_dir / mod.bare_name / entry.source

    def destination_path(self, entry: InstallFile) -> Path:
        return self.game_dir / entry.destination

    @staticmethod
    def _link_target(link: Path) -> Path:
        target = Path(os.readlink(link))
        if not target.is_absolute():
            target = link.parent / target
        return Path(os.path.normpath(target))

    def points_into_cache(self, link: Path) -> bool:
        return self._link_target(link).is_relative_to(self.cache_dir)

    # ------------------------------------------------------------------
    # Single mod
    # ------------------------------------------------------------------

    def enable(self, mod: Manifest) -> None:
        """Link every active file of *mod* into the game directory.

        A negative priority means the mod stays disabled whatever the caller
        asks for.
        """
        if mod.is_enabled:
            return
        if mod.priority < 0:
            logger.info("'%s' has a negative priority, keeping it disabled", mod.name)
            self.disable(mod)
            return

        for entry in mod.files:
            self._link(mod, entry)

        mod.state = ModState.ENABLED
        write_manifest(self.cache_dir, mod)
        logger.info("Enabled '%s' (%d files)", mod.name, len(mod.files))

    def _link(self, mod: Manifest, entry: InstallFile) -> None:
        origin = self.source_path(mod, entry)
        destination = self.destination_path(entry)
        if not origin.exists():
            raise FileNotFoundError(errno.ENOENT, f"Source of '{mod.name}' is missing", str(origin))

        destination.parent.mkdir(parents=True, exist_ok=True)

        if destination.is_symlink():
            if self.points_into_cache(destination):
                logger.debug(
                    "overrule %s (%s > %s)", destination, origin, self._link_target(destination)
                )
                destination.unlink()
            else:
                self._backup(destination)
        elif destination.is_dir():
            logger.debug("Skipping %s: destination is a directory", destination)
            return
        elif destination.exists():
            self._backup(destination)

        logger.debug("link %s -> %s", destination, origin)
        os.symlink(origin, destination)

    def _backup(self, destination: Path) -> None:
        backup = add_extension(destination, BACKUP_EXTENSION)
        if backup.exists() or backup.is_symlink():
            raise FileExistsError(
                errno.EEXIST, "Backup of a foreign file already exists", str(backup)
            )
        logger.info("renaming foreign file %s -> %s", destination, backup)
        destination.rename(backup)

    def disable(self, mod: Manifest) -> None:
        """Remove the links of *mod*, tidy the game directory and persist the state."""
        self._unlink(mod)
        self._tidy()
        mod.state = ModState.DISABLED
        write_manifest(self.cache_dir, mod)
        logger.info("Disabled '%s'", mod.name)

    def _unlink(self, mod: Manifest) -> int:
        removed = 0
        for entry in [*mod.files, *mod.disabled_files]:
            destination = self.destination_path(entry)
            if not destination.is_symlink():
                continue
            if self._link_target(destination) != self.source_path(mod, entry):
                logger.debug("passing over %s, not linked by '%s'", destination, mod.name)
                continue
            destination.unlink()
            removed += 1
        return removed

    def _tidy(self) -> None:
        if not self.game_dir.is_dir():
            return
        self.restore_backups()
        remove_empty_dirs(self.game_dir)

    # ------------------------------------------------------------------
    # Whole catalogue
    # ------------------------------------------------------------------

    def re_enable(self, mods: Sequence[Manifest], start: int = 0, stop: int | None = None) -> None:
        """Unlink every mod in ``mods[start:stop]`` and relink the enabled ones in rank order."""
        selection = list(mods[start:stop])
        enabled = [m for m in selection if m.is_enabled]

        for mod in selection:
            self._unlink(mod)
            mod.state = ModState.DISABLED
        self._tidy()

        for mod in selection:
            if mod not in enabled:
                write_manifest(self.cache_dir, mod)
        for mod in enabled:
            self.enable(mod)

    def enable_all(self, mods: Sequence[Manifest]) -> None:
        for mod in mods:
            mod.state = ModState.ENABLED
        self.re_enable(mods)

    def disable_all(self, mods: Sequence[Manifest]) -> None:
        for mod in mods:
            self._unlink(mod)
        self._tidy()
        for mod in mods:
            mod.state = ModState.DISABLED
            write_manifest(self.cache_dir, mod)
        logger.info("Disabled %d mods", len(mods))

    def enable_mod(self, mods: Sequence[Manifest], index: int) -> None:
        """Enable one mod and relayer the catalogue so higher ranks still win."""
        mods[index].state = ModState.ENABLED
        self.re_enable(mods)

    def disable_mod(self, mods: Sequence[Manifest], index: int) -> None:
        """Disable one mod and relink lower ranked mods that it was covering."""
        self._unlink(mods[index])
        mods[index].state = ModState.DISABLED
        self.re_enable(mods)

    def restore_backups(self) -> int:
        """Move ``.starmod_bkp`` files back wherever the original path is free."""
        suffix = f".{BACKUP_EXTENSION}"
        restored = 0
        for path, _ in walk(self.game_dir):
            if not path.name.endswith(suffix) or path.is_symlink() or not path.is_file():
                continue
            original = path.with_name(path.name[: -len(suffix)])
            if original.exists() or original.is_symlink():
                continue
            logger.debug("Restoring backup %s -> %s", path, original)
            path.rename(original)
            restored += 1
        return restored

    def linked_files(self) -> list[Path]:
        """Links in the game directory that point into the cache."""
        if not self.game_dir.is_dir():
            return []
        return [p for p, _ in walk(self.game_dir) if p.is_symlink() and self.points_into_cache(p)]
