"""Streaming accepted files into the output archive."""

import logging
from abc import ABC, abstractmethod
from pathlib import Path

from dir2tar.exceptions import AppendError, FileOpenError
from dir2tar.models import ArchiveEntry
from dir2tar.trace import TRACE
from dir2tar.types import EntryKind

from .naming import archive_name
from .tar_archive import TarArchive

logger = logging.getLogger(__name__)


class BaseArchiveWriter(ABC):
    """Interface the walker hands accepted entries to."""

    @abstractmethod
    def archive(
        self, path: Path, target_name: str, root_length: int, kind: EntryKind = EntryKind.FILE
    ) -> ArchiveEntry:
        """Write one accepted entry and return it.

        Raises:
            IoFailure: If the entry could not be written; the call may be repeated.
        """
        pass


class ArchiveWriter(BaseArchiveWriter):
    """Computes member names and streams source files into a TarArchive.

    Each call opens the source file, streams it and closes it again before
    returning, whether the append succeeded or not. Failures are reported as
    typed exceptions so the caller can consult its recovery policy; calling
    ``archive`` again after a failure re-opens the file from scratch.

    Attributes:
        container (TarArchive): The output archive, owned exclusively by this writer.

    Example:
        >>> import tempfile, tarfile
        >>> with tempfile.TemporaryDirectory() as tmp:
        ...     root = Path(tmp).resolve() / "docs"
        ...     root.mkdir()
        ...     _ = (root / "README.md").write_text("hi")
        ...     with TarArchive(Path(tmp) / "out.tar") as container:
        ...         entry = ArchiveWriter(container).archive(root / "README.md", "docs", len(str(root)))
        ...     entry.archive_name
        'docs/README.md'
    """

    def __init__(self, container: TarArchive) -> None:
        self.container = container

    def archive(
        self, path: Path, target_name: str, root_length: int, kind: EntryKind = EntryKind.FILE
    ) -> ArchiveEntry:
        """Append one source file (or unfollowed symlink) to the archive.

        Args:
            path: Absolute, canonical path of the source entry.
            target_name: Name of the target the entry belongs to.
            root_length: Length of the target root the entry was found under.
            kind: FILE to stream the content, SYMLINK to store the link itself.

        Returns:
            The entry that was written.

        Raises:
            FileOpenError: If the source cannot be opened (or a link cannot be read).
            AppendError: If streaming the content into the archive fails.
        """
        name = archive_name(path, target_name, root_length)
        logger.log(TRACE, "Archiving: %s", path)

        if kind is EntryKind.SYMLINK:
            try:
                info = self.container.append_link(path, name)
            except OSError as e:
                raise FileOpenError(path, name, e) from e
            return ArchiveEntry(path, name, info.size)

        try:
            source = open(path, "rb")
        except OSError as e:
            raise FileOpenError(path, name, e) from e

        with source:
            try:
                info = self.container.append_file(source, name, source=path)
            except OSError as e:
                raise AppendError(path, name, e) from e

        logger.log(TRACE, "Archived: %s", path)
        return ArchiveEntry(path, name, info.size)


class DryRunArchiveWriter(BaseArchiveWriter):
    """Writer that computes member names and logs them without writing anything."""

    def archive(
        self, path: Path, target_name: str, root_length: int, kind: EntryKind = EntryKind.FILE
    ) -> ArchiveEntry:
        name = archive_name(path, target_name, root_length)
        try:
            size = path.lstat().st_size if kind is EntryKind.SYMLINK else path.stat().st_size
        except OSError as e:
            raise FileOpenError(path, name, e) from e
        logger.info("Would archive \"%s\" as %s", path, name)
        return ArchiveEntry(path, name, size)
