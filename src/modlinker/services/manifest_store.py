"""Reading and writing manifests and cached sidecar records in the cache directory."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from pydantic import ValidationError

from modlinker.constants import MANIFEST_EXTENSION
from modlinker.schemas.manifest import Manifest
from modlinker.schemas.sidecar import DownloadSidecar

logger = logging.getLogger(__name__)


def manifest_path(cache_dir: Path, bare_name: str) -> Path:
    return cache_dir / f"{bare_name}.{MANIFEST_EXTENSION}"


def write_manifest(cache_dir: Path, manifest: Manifest) -> Path:
    """Replace ``<bare_name>.json`` with the current state of *manifest*."""
    path = manifest.manifest_path(cache_dir)
    path.unlink(missing_ok=True)
    path.write_text(manifest.model_dump_json(indent=2), encoding="utf-8")
    logger.debug("Wrote manifest %s", path)
    return path


def load_manifest(path: Path) -> Manifest:
    """Parse a single manifest.

    Raises:
        OSError: If the file cannot be read.
        pydantic.ValidationError: If the content is not a valid manifest.
    """
    return Manifest.model_validate_json(path.read_text(encoding="utf-8"))


def try_load_manifest(cache_dir: Path, bare_name: str) -> Manifest | None:
    path = manifest_path(cache_dir, bare_name)
    if not path.is_file():
        return None
    try:
        return load_manifest(path)
    except (ValidationError, UnicodeDecodeError) as exc:
        logger.warning("Ignoring unreadable manifest %s: %s", path, exc)
        return None


def gather_manifests(cache_dir: Path) -> list[Manifest]:
    """Load every manifest in *cache_dir*, ordered by ``(priority, bare_name)``."""
    if not cache_dir.is_dir():
        return []

    manifests: list[Manifest] = []
    for path in sorted(cache_dir.glob(f"*.{MANIFEST_EXTENSION}")):
        if not path.is_file():
            continue
        try:
            manifests.append(load_manifest(path))
        except (ValidationError, UnicodeDecodeError) as exc:
            logger.warning("Skipping unparsable manifest %s: %s", path.name, exc)
    manifests.sort(key=lambda m: (m.priority, m.bare_name))
    return manifests


def remove_mod_files(cache_dir: Path, manifest: Manifest) -> None:
    """Delete the mod's cache subdirectory, manifest and cached sidecar."""
    mod_dir = manifest.cache_path(cache_dir)
    if mod_dir.is_symlink():
        mod_dir.unlink()
    elif mod_dir.is_dir():
        shutil.rmtree(mod_dir)
    manifest.manifest_path(cache_dir).unlink(missing_ok=True)
    manifest.sidecar_path(cache_dir).unlink(missing_ok=True)
    logger.info("Removed '%s' from %s", manifest.bare_name, cache_dir)


def read_sidecar(path: Path) -> DownloadSidecar | None:
    """Parse a download manager sidecar, or ``None`` if absent or malformed."""
    if not path.is_file():
        return None
    try:
        return DownloadSidecar.model_validate_json(path.read_text(encoding="utf-8"))
    except (ValidationError, UnicodeDecodeError) as exc:
        logger.warning("Ignoring malformed sidecar %s: %s", path, exc)
        return None


def apply_sidecar(manifest: Manifest, sidecar: DownloadSidecar) -> None:
    """Let the download manager's record override installer-derived metadata."""
    if sidecar.name:
        manifest.display_name = sidecar.name
    if sidecar.version:
        manifest.version = sidecar.version
    manifest.nexus_id = sidecar.mod_id
