"""Archive naming and the sequential tar output container."""

from .naming import archive_name
from .tar_archive import Compression, TarArchive
from .writer import ArchiveWriter, BaseArchiveWriter, DryRunArchiveWriter

__all__ = [
    "ArchiveWriter",
    "BaseArchiveWriter",
    "Compression",
    "DryRunArchiveWriter",
    "TarArchive",
    "archive_name",
]
