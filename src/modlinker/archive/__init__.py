from modlinker.archive.handler import (
    ArchiveEntry,
    ArchiveHandler,
    RarHandler,
    SevenZipHandler,
    SupportedArchive,
    TarHandler,
    ZipHandler,
    extract_archive,
    open_archive,
)

__all__ = [
    "ArchiveEntry",
    "ArchiveHandler",
    "RarHandler",
    "SevenZipHandler",
    "SupportedArchive",
    "TarHandler",
    "ZipHandler",
    "extract_archive",
    "open_archive",
]
