"""Intake of archives from the download directory into the cache.

``<downloads>/<Archive-123-1-0.7z>`` is extracted to
``<cache>/<archive-123-1-0>/``, lowercased, and installed.  When the
download manager left ``<Archive-123-1-0.7z>.json`` next to the archive,
a copy is kept as ``<cache>/<archive-123-1-0>.dmodman``.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Sequence
from pathlib import Path

from modlinker.archive.handler import extract_archive
from modlinker.constants import SIDECAR_EXTENSION
from modlinker.errors import ArchiveNotFoundError
from modlinker.matching.fuzzy import Scorer, SkimScorer, best_match
from modlinker.schemas.manifest import Manifest
from modlinker.services.catalogue import ModCatalogue
from modlinker.services.deploy_service import Deployer
from modlinker.services.installers import install_extracted
from modlinker.services.manifest_store import (
    manifest_path,
    try_load_manifest,
)
from modlinker.services.prompt import Prompter
from modlinker.utils.paths import add_extension, archive_suffix, bare_name_for

logger = logging.getLogger(__name__)


def list_downloads(download_dir: Path) -> list[Path]:
    """Archives with a supported suffix in *download_dir*, sorted by name."""
    if not download_dir.is_dir():
        return []
    return sorted(
        (p for p in download_dir.iterdir() if p.is_file() and archive_suffix(p.name)),
        key=lambda p: p.name.lower(),
    )


def sidecar_for(archive: Path) -> Path | None:
    """The download manager's record for *archive*, if it left one."""
    candidates = (
        add_extension(archive, SIDECAR_EXTENSION),
        archive.parent / f"{bare_name_for(archive.name)}.{SIDECAR_EXTENSION}",
    )
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    return None


def is_extracted(cache_dir: Path, archive: Path) -> bool:
    bare_name = bare_name_for(archive.name)
    return (cache_dir / bare_name).is_dir() and try_load_manifest(cache_dir, bare_name) is not None


def extract_download(
    download_dir: Path,
    cache_dir: Path,
    archive: Path,
    prompter: Prompter,
) -> Manifest | None:
    """Extract and install one archive. Returns ``None`` if it is already in the cache.

    Raises:
        UnsupportedArchiveError: If the archive format is not supported.
        InstallerCancelledError: If a FOMOD installer is exited.
    """
    archive = archive if archive.is_absolute() else download_dir / archive
    bare_name = bare_name_for(archive.name)
    mod_dir = cache_dir / bare_name

    if is_extracted(cache_dir, archive):
        logger.info("'%s' is already extracted, skipping", archive.name)
        return None

    # Leftovers of an interrupted or cancelled run.
    if mod_dir.exists():
        shutil.rmtree(mod_dir)
    manifest_path(cache_dir, bare_name).unlink(missing_ok=True)

    mod_dir.mkdir(parents=True)
    extract_archive(archive, mod_dir)

    sidecar = sidecar_for(archive)
    if sidecar is not None:
        cached = Manifest(bare_name=bare_name).sidecar_path(cache_dir)
        shutil.copyfile(sidecar, cached)
        logger.debug("Cached sidecar %s -> %s", sidecar.name, cached.name)

    return install_extracted(cache_dir, bare_name, prompter)


def extract_all(download_dir: Path, cache_dir: Path, prompter: Prompter) -> list[Manifest]:
    """Extract every download not yet in the cache, one after the other."""
    installed: list[Manifest] = []
    for archive in list_downloads(download_dir):
        manifest = extract_download(download_dir, cache_dir, archive, prompter)
        if manifest is not None:
            installed.append(manifest)
    logger.info("Extracted %d new downloads", len(installed))
    return installed


def find_download(downloads: Sequence[Path], query: str, scorer: Scorer | None = None) -> Path:
    """Resolve *query* by index, exact file name, then fuzzy file name.

    Raises:
        ArchiveNotFoundError: If nothing matches.
    """
    if query.isascii() and query.isdigit() and int(query) < len(downloads):
        return downloads[int(query)]

    for archive in downloads:
        if query in (archive.name, bare_name_for(archive.name)):
            return archive

    index = best_match([a.name for a in downloads], query, scorer or SkimScorer())
    if index is None:
        raise ArchiveNotFoundError(query)
    return downloads[index]


def reinstall(
    catalogue: ModCatalogue,
    query: str,
    deployer: Deployer,
    prompter: Prompter,
) -> Manifest:
    """Run the installer again on an already extracted mod, keeping its priority.

    The cached sidecar stays in place so download metadata survives.
    """
    index = catalogue.find(query)
    old = catalogue[index]
    was_enabled = old.is_enabled
    deployer.disable(old)

    manifest_path(catalogue.cache_dir, old.bare_name).unlink(missing_ok=True)

    manifest = install_extracted(
        catalogue.cache_dir, old.bare_name, prompter, priority=old.priority
    )
    manifest.tags = set(old.tags)
    catalogue.mods[index] = manifest
    catalogue.save(manifest)

    if was_enabled:
        deployer.enable_mod(catalogue.mods, index)
    return manifest

