"""Persisted per-mod metadata.

A :class:`Manifest` is written as ``<bare_name>.json`` next to the mod's
cache subdirectory.  Older manifests may lack optional fields, so every
field except the key has a default.
"""

from __future__ import annotations

from enum import StrEnum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from modlinker.constants import (
    CACHED_SIDECAR_EXTENSION,
    DATA_DIR_NAME,
    MANIFEST_EXTENSION,
    TEXTURES_DIR_NAME,
)
from modlinker.utils.paths import to_posix


class ModKind(StrEnum):
    DATA = "Data"
    FOMOD = "FoMod"
    LOADER = "Loader"
    CUSTOM = "Custom"


class ModState(StrEnum):
    ENABLED = "Enabled"
    DISABLED = "Disabled"


def normalise_destination(destination: str) -> str:
    """Rewrite a destination so it is lowercase, slash separated and under ``data/``.

    >>> normalise_destination("Data\\\\Textures\\\\A.dds")
    'data/textures/a.dds'
    >>> normalise_destination("meshes//b.nif")
    'data/meshes/b.nif'
    """
    dest = to_posix(destination).lower().strip("/")
    if dest == DATA_DIR_NAME:
        dest = ""
    elif dest.startswith(f"{DATA_DIR_NAME}/"):
        dest = dest[len(DATA_DIR_NAME) + 1 :]
    dest = to_posix(f"{DATA_DIR_NAME}/{dest}").rstrip("/")
    return dest.replace("/textures/", f"/{TEXTURES_DIR_NAME}/")


class InstallFile(BaseModel):
    """A ``(source, destination)`` pair.

    ``source`` is relative to the mod's cache subdirectory, ``destination``
    relative to the game directory.  Use :meth:`create` for regular files and
    :meth:`raw` for loader files that land in the game root.
    """

    model_config = ConfigDict(frozen=True)

    source: str
    destination: str

    @classmethod
    def create(cls, source: str, destination: str) -> InstallFile:
        return cls(source=to_posix(source).lower(), destination=normalise_destination(destination))

    @classmethod
    def raw(cls, source: str, destination: str) -> InstallFile:
        return cls(source=to_posix(source).lower(), destination=to_posix(destination))

    @property
    def basename(self) -> str:
        return self.source.rsplit("/", 1)[-1]


class Manifest(BaseModel):
    bare_name: str
    display_name: str = ""
    kind: ModKind = ModKind.DATA
    version: str | None = None
    nexus_id: int | None = Field(default=None, ge=0, le=2**32 - 1)
    state: ModState = ModState.DISABLED
    priority: int = 0
    files: list[InstallFile] = Field(default_factory=list)
    disabled_files: list[InstallFile] = Field(default_factory=list)
    tags: set[str] = Field(default_factory=set)

    @field_serializer("tags")
    def _serialize_tags(self, tags: set[str]) -> list[str]:
        return sorted(tags)

    @property
    def name(self) -> str:
        return self.display_name or self.bare_name

    @property
    def is_enabled(self) -> bool:
        return self.state == ModState.ENABLED

    def cache_path(self, cache_dir: Path) -> Path:
        return cache_dir / self.bare_name

    def manifest_path(self, cache_dir: Path) -> Path:
        return cache_dir / f"{self.bare_name}.{MANIFEST_EXTENSION}"

    def sidecar_path(self, cache_dir: Path) -> Path:
        return cache_dir / f"{self.bare_name}.{CACHED_SIDECAR_EXTENSION}"

    def destinations(self) -> set[str]:
        return {f.destination for f in self.files}
