"""Mod-kind detection and the per-kind installers that build manifests.

Installers run on an already extracted, lowercased directory
``<cache>/<bare_name>/`` and return a :class:`Manifest`; only
:func:`install_extracted` writes it to disk.
"""

from __future__ import annotations

import logging
from pathlib import Path

from modlinker.constants import (
    CUSTOM_MOD_PRIORITY,
    CUSTOM_MOD_VERSION,
    DATA_DIR_NAME,
    FOMOD_INFO_FILE,
    LOADER_EXTENSIONS,
    PLUGIN_DIR_EXTENSIONS,
    README_MARKER,
)
from modlinker.errors import MultipleDataDirectoriesError
from modlinker.schemas.manifest import InstallFile, Manifest, ModKind, normalise_destination
from modlinker.services.fomod_install_service import find_fomod_root, run_fomod_installer
from modlinker.services.manifest_store import apply_sidecar, read_sidecar, write_manifest
from modlinker.services.prompt import Prompter
from modlinker.utils.paths import iter_files, walk

logger = logging.getLogger(__name__)


def detect_mod_kind(mod_dir: Path) -> ModKind:
    """Classify an extracted mod by its layout.

    ``fomod/info.xml`` and ``fomod/moduleconfig.xml`` within the first two
    levels make a FOMOD installer, an ``.exe`` within three levels a loader,
    anything else plain data.
    """
    root = find_fomod_root(mod_dir)
    if root is not None and (mod_dir / root / FOMOD_INFO_FILE).is_file():
        return ModKind.FOMOD

    for path, _ in walk(mod_dir, max_depth=3):
        if path.suffix.lower() == ".exe" and path.is_file():
            return ModKind.LOADER

    return ModKind.DATA


def _data_dirs(mod_dir: Path, min_depth: int, max_depth: int) -> list[Path]:
    return [
        path
        for path, _ in walk(mod_dir, min_depth=min_depth, max_depth=max_depth)
        if path.name == DATA_DIR_NAME and path.is_dir() and not path.is_symlink()
    ]


def _plugin_dirs(mod_dir: Path, extension: str) -> list[Path]:
    dirs: list[Path] = []
    for path, _ in walk(mod_dir, max_depth=5):
        if path.suffix.lower() == f".{extension}" and path.is_file() and not path.is_symlink():
            if path.parent not in dirs:
                dirs.append(path.parent)
    return dirs


def find_data_dir(mod_dir: Path) -> Path:
    """The directory whose contents map onto the game's ``data/``.

    A ``data/`` directory is searched within two levels, then down to five.
    Without one, the directory holding the ``.esm`` plugins is used, then the
    one holding ``.esl`` plugins, and finally the mod root.

    Raises:
        MultipleDataDirectoriesError: If the layout is ambiguous.
    """
    candidates = _data_dirs(mod_dir, 1, 2) or _data_dirs(mod_dir, 3, 5)
    for extension in PLUGIN_DIR_EXTENSIONS:
        if candidates:
            break
        candidates = _plugin_dirs(mod_dir, extension)

    if len(candidates) > 1:
        raise MultipleDataDirectoriesError(mod_dir.name)
    if candidates:
        logger.debug("Data dir of %s is %s", mod_dir.name, candidates[0].relative_to(mod_dir))
        return candidates[0]
    return mod_dir


def install_data(cache_dir: Path, bare_name: str) -> Manifest:
    mod_dir = cache_dir / bare_name
    data_dir = find_data_dir(mod_dir)
    files = [
        InstallFile.create(
            path.relative_to(mod_dir).as_posix(),
            path.relative_to(data_dir).as_posix(),
        )
        for path in iter_files(data_dir)
    ]
    return Manifest(bare_name=bare_name, display_name=bare_name, kind=ModKind.DATA, files=files)


def install_loader(cache_dir: Path, bare_name: str) -> Manifest:
    """Script extenders and similar: dll/exe files linked into the game root."""
    mod_dir = cache_dir / bare_name
    files = [
        InstallFile.raw(path.relative_to(mod_dir).as_posix(), path.name.lower())
        for path in iter_files(mod_dir)
        if path.suffix.lower().lstrip(".") in LOADER_EXTENSIONS
    ]
    return Manifest(bare_name=bare_name, display_name=bare_name, kind=ModKind.LOADER, files=files)


def install_custom(cache_dir: Path, bare_name: str) -> Manifest:
    """Manifest for a user-managed directory.

    The directory may be a link to files the user edits in place, which are
    never renamed, so sources keep their on-disk casing.
    """
    mod_dir = cache_dir / bare_name
    files = []
    for path in iter_files(mod_dir):
        relative = path.relative_to(mod_dir).as_posix()
        files.append(InstallFile(source=relative, destination=normalise_destination(relative)))
    manifest = Manifest(
        bare_name=bare_name,
        display_name=bare_name,
        kind=ModKind.CUSTOM,
        version=CUSTOM_MOD_VERSION,
        priority=CUSTOM_MOD_PRIORITY,
        files=files,
    )
    disable_readmes(manifest)
    return manifest


def disable_readmes(manifest: Manifest) -> None:
    """Move files whose name contains ``readme`` to ``disabled_files``."""
    keep: list[InstallFile] = []
    for entry in manifest.files:
        if README_MARKER in entry.basename.lower():
            manifest.disabled_files.append(entry)
        else:
            keep.append(entry)
    manifest.files = keep


def install_extracted(
    cache_dir: Path,
    bare_name: str,
    prompter: Prompter,
    priority: int = 0,
) -> Manifest:
    """Detect the kind of an extracted mod, build its manifest and write it.

    Metadata from a cached download-manager sidecar overrides the name,
    version and Nexus id the installer came up with.

    Raises:
        MultipleDataDirectoriesError: For an ambiguous data layout.
        InstallerCancelledError: If a FOMOD installer is exited.
    """
    mod_dir = cache_dir / bare_name
    kind = detect_mod_kind(mod_dir)
    logger.info("Installing '%s' as %s mod", bare_name, kind)

    if kind == ModKind.FOMOD:
        manifest = run_fomod_installer(cache_dir, bare_name, prompter)
    elif kind == ModKind.LOADER:
        manifest = install_loader(cache_dir, bare_name)
    else:
        manifest = install_data(cache_dir, bare_name)

    disable_readmes(manifest)
    manifest.priority = priority

    sidecar = read_sidecar(manifest.sidecar_path(cache_dir))
    if sidecar is not None:
        apply_sidecar(manifest, sidecar)

    write_manifest(cache_dir, manifest)
    return manifest
