"""The ordered list of installed mods and the edits users make to it.

Rank is the index in the catalogue after sorting by ``(priority,
bare_name)``.  Every mutation re-serialises the affected manifest
immediately; re-layering the game directory is left to the deployer.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from pathlib import Path

from modlinker.errors import (
    DuplicateTagError,
    FileNotFoundInModError,
    ModNotFoundError,
    TagNotFoundError,
)
from modlinker.matching.fuzzy import Scorer, SkimScorer, best_match
from modlinker.schemas.manifest import InstallFile, Manifest
from modlinker.services.installers import install_custom
from modlinker.services.manifest_store import (
    gather_manifests,
    remove_mod_files,
    write_manifest,
)

logger = logging.getLogger(__name__)


class ModCatalogue:
    def __init__(
        self,
        cache_dir: Path,
        mods: list[Manifest] | None = None,
        scorer: Scorer | None = None,
    ) -> None:
        self.cache_dir = cache_dir
        self.mods: list[Manifest] = mods if mods is not None else []
        self.scorer: Scorer = scorer or SkimScorer()

    @classmethod
    def gather(cls, cache_dir: Path, scorer: Scorer | None = None) -> ModCatalogue:
        return cls(cache_dir, gather_manifests(cache_dir), scorer)

    def __len__(self) -> int:
        return len(self.mods)

    def __iter__(self) -> Iterator[Manifest]:
        return iter(self.mods)

    def __getitem__(self, index: int) -> Manifest:
        return self.mods[index]

    def save(self, mod: Manifest) -> None:
        write_manifest(self.cache_dir, mod)

    def resort(self) -> None:
        self.mods.sort(key=lambda m: (m.priority, m.bare_name))

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def find(self, query: str) -> int:
        """Resolve *query* to a rank.

        Tries an exact bare or display name first, then a numeric index,
        then the fuzzy scorer over display names.

        Raises:
            ModNotFoundError: If no strategy yields a mod.
        """
        for index, mod in enumerate(self.mods):
            if query in (mod.bare_name, mod.display_name):
                return index

        if query.isascii() and query.isdigit():
            index = int(query)
            if index < len(self.mods):
                return index

        index = best_match([m.name for m in self.mods], query, self.scorer)
        if index is None:
            raise ModNotFoundError(query)
        logger.debug("Fuzzy matched '%s' to '%s'", query, self.mods[index].name)
        return index

    def find_mod(self, query: str) -> Manifest:
        return self.mods[self.find(query)]

    def with_tag(self, tag: str) -> list[Manifest]:
        return [m for m in self.mods if tag in m.tags]

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------

    def set_name(self, index: int, name: str) -> None:
        mod = self.mods[index]
        mod.display_name = name
        self.save(mod)

    def set_priority(self, index: int, priority: int) -> None:
        """Change a mod's priority and re-sort. Negative means force disabled."""
        mod = self.mods[index]
        mod.priority = priority
        self.save(mod)
        self.resort()

    def add_tag(self, index: int, tag: str) -> None:
        mod = self.mods[index]
        if tag in mod.tags:
            raise DuplicateTagError(mod.name, tag)
        mod.tags.add(tag)
        self.save(mod)

    def remove_tag(self, index: int, tag: str) -> None:
        mod = self.mods[index]
        if tag not in mod.tags:
            raise TagNotFoundError(mod.name, tag)
        mod.tags.discard(tag)
        self.save(mod)

    def disable_file(self, index: int, name: str) -> None:
        """Move a file from ``files`` to ``disabled_files``.

        *name* matches either the full source path or its basename.
        """
        mod = self.mods[index]
        entry = _find_file(mod.files, name)
        if entry is None:
            raise FileNotFoundInModError(mod.name, name)
        mod.files.remove(entry)
        mod.disabled_files.append(entry)
        self.save(mod)

    def enable_file(self, index: int, name: str) -> None:
        mod = self.mods[index]
        entry = _find_file(mod.disabled_files, name)
        if entry is None:
            raise FileNotFoundInModError(mod.name, name)
        mod.disabled_files.remove(entry)
        mod.files.append(entry)
        self.save(mod)

    def remove(self, index: int) -> Manifest:
        """Forget a mod and delete its cache state. The caller disables it first."""
        mod = self.mods.pop(index)
        remove_mod_files(self.cache_dir, mod)
        return mod

    def create_custom(self, name: str, origin: Path | None = None) -> Manifest:
        """Register a user-managed mod directory.

        With *origin*, the cache subdirectory becomes a symlink to it so
        files edited in place are picked up on the next enable.
        """
        bare_name = name.lower()
        mod_dir = self.cache_dir / bare_name
        if origin is not None:
            os.symlink(origin.resolve(), mod_dir, target_is_directory=True)
        else:
            mod_dir.mkdir(parents=True, exist_ok=True)

        mod = install_custom(self.cache_dir, bare_name)
        mod.display_name = name
        self.save(mod)
        self.mods.append(mod)
        self.resort()
        logger.info("Created custom mod '%s'", name)
        return mod


def _find_file(files: list[InstallFile], name: str) -> InstallFile | None:
    lowered = name.lower()
    for entry in files:
        if entry.source.lower() == lowered or entry.basename.lower() == lowered:
            return entry
    return None

