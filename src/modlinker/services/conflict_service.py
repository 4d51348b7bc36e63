"""File-level conflict analysis across the enabled mods of a catalogue.

Two enabled mods conflict when they install to the same destination.  The
mod with the higher rank (later in the catalogue) owns the link, so for a
given mod every contributor ranked after it is a mod it loses to and every
contributor ranked before it is a mod it wins over.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import StrEnum

from modlinker.schemas.manifest import Manifest

logger = logging.getLogger(__name__)


class ConflictTag(StrEnum):
    ENABLED = "Enabled"
    WINNER = "Winner"
    LOSER = "Loser"
    CONFLICT = "Conflict"
    COMPLETE_LOSER = "CompleteLoser"
    DISABLED = "Disabled"


@dataclass(slots=True)
class ModConflicts:
    conflict_files: list[str] = field(default_factory=list)
    losing_to: list[str] = field(default_factory=list)
    winning_over: list[str] = field(default_factory=list)


def _append_unique(target: list[str], names: Sequence[str]) -> None:
    for name in names:
        if name not in target:
            target.append(name)


def conflicts_by_file(mods: Sequence[Manifest]) -> dict[str, list[str]]:
    """Map each contested destination to its contributors in rank order."""
    contributors: dict[str, list[str]] = {}
    for mod in mods:
        if not mod.is_enabled:
            continue
        for destination in dict.fromkeys(f.destination for f in mod.files):
            contributors.setdefault(destination, []).append(mod.bare_name)
    return {dest: names for dest, names in contributors.items() if len(names) > 1}


def conflicts_by_mod(mods: Sequence[Manifest]) -> dict[str, ModConflicts]:
    """Per-mod conflict files and the mods it loses to or wins over.

    Only mods that take part in at least one conflict appear in the result.
    """
    by_file = conflicts_by_file(mods)
    result: dict[str, ModConflicts] = {}
    for destination, names in by_file.items():
        for position, name in enumerate(names):
            entry = result.setdefault(name, ModConflicts())
            entry.conflict_files.append(destination)
            _append_unique(entry.losing_to, names[position + 1 :])
            _append_unique(entry.winning_over, names[:position])
    return result


def _is_complete_loser(mod: Manifest, by_file: dict[str, list[str]]) -> bool:
    destinations = mod.destinations()
    if not destinations:
        return False
    for destination in destinations:
        names = by_file.get(destination)
        if not names or names[-1] == mod.bare_name:
            return False
    return True


def classify(
    mod: Manifest,
    by_file: dict[str, list[str]],
    by_mod: dict[str, ModConflicts],
) -> ConflictTag:
    if not mod.is_enabled:
        return ConflictTag.DISABLED

    conflicts = by_mod.get(mod.bare_name)
    if conflicts is None:
        return ConflictTag.ENABLED

    losing, winning = bool(conflicts.losing_to), bool(conflicts.winning_over)
    if losing and _is_complete_loser(mod, by_file):
        return ConflictTag.COMPLETE_LOSER
    if losing and winning:
        return ConflictTag.CONFLICT
    if losing:
        return ConflictTag.LOSER
    if winning:
        return ConflictTag.WINNER
    return ConflictTag.ENABLED


def classify_all(mods: Sequence[Manifest]) -> dict[str, ConflictTag]:
    """Tag every mod in the catalogue, keyed by bare name."""
    by_file = conflicts_by_file(mods)
    by_mod = conflicts_by_mod(mods)
    tags = {mod.bare_name: classify(mod, by_file, by_mod) for mod in mods}
    logger.debug("Classified %d mods, %d contested files", len(tags), len(by_file))
    return tags


def file_winners(mods: Sequence[Manifest]) -> dict[str, str]:
    """Map each contested destination to the mod whose link ends up there."""
    return {dest: names[-1] for dest, names in conflicts_by_file(mods).items()}
