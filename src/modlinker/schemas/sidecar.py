"""JSON record written next to an archive by the external download manager.

Example::

    {
      "game": "skyrimspecialedition",
      "file_name": "SkyUI_5_2_SE-12604-5-2SE-1573753254.7z",
      "mod_id": 12604,
      "file_id": 35407,
      "update_status": {"UpToDate": 1710000000}
    }
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, field_serializer, field_validator

from modlinker.utils.paths import strip_archive_suffix


class UpdateStatusKind(StrEnum):
    UP_TO_DATE = "UpToDate"
    HAS_NEW_FILE = "HasNewFile"
    OUT_OF_DATE = "OutOfDate"
    IGNORED_UNTIL = "IgnoredUntil"


class UpdateStatus(BaseModel):
    kind: UpdateStatusKind
    timestamp: int = Field(ge=0)


class DownloadSidecar(BaseModel):
    game: str = ""
    file_name: str
    mod_id: int = Field(ge=0, le=2**32 - 1)
    file_id: int = 0
    update_status: UpdateStatus | None = None

    @field_validator("update_status", mode="before")
    @classmethod
    def _parse_tagged_status(cls, value: Any) -> Any:
        # Externally tagged: {"UpToDate": 1710000000}
        if isinstance(value, dict) and len(value) == 1:
            ((kind, timestamp),) = value.items()
            if kind in UpdateStatusKind._value2member_map_:
                return {"kind": kind, "timestamp": timestamp}
        return value

    @field_serializer("update_status")
    def _serialize_status(self, status: UpdateStatus | None) -> dict[str, int] | None:
        if status is None:
            return None
        return {status.kind.value: status.timestamp}

    def _split(self) -> tuple[str, str | None]:
        lowered = self.file_name.lower()
        marker = f"-{self.mod_id}-"
        if marker not in lowered:
            return strip_archive_suffix(lowered), None
        head, _, tail = lowered.partition(marker)
        return head, strip_archive_suffix(tail)

    @property
    def name(self) -> str:
        return self._split()[0]

    @property
    def version(self) -> str | None:
        remainder = self._split()[1]
        if not remainder:
            return None
        head, sep, _ = remainder.rpartition("-")
        if not sep:
            return None
        return head.replace("-", ".") or None

    @property
    def timestamp(self) -> int | None:
        remainder = self._split()[1]
        if not remainder or "-" not in remainder:
            return None
        last = remainder.rpartition("-")[2]
        return int(last) if last.isascii() and last.isdigit() else None
