"""Sequential tar output container.

This module provides the single output stream a backup run writes to. Members are
appended strictly one at a time. For uncompressed output a failed append is
rolled back to the previous member boundary, so a later retry or skip never
leaves a half-written member behind. Compressed output cannot be rewound, so a
source is read in full into a spool file before its header is written; a failing
read then leaves no trace in the archive.
"""

import logging
import tarfile
import tempfile
import types
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Optional, Type

from dir2tar.exceptions import ArchiveFinalizeError
from dir2tar.trace import TRACE
from dir2tar.types import PathType

logger = logging.getLogger(__name__)

# Sources up to this size are staged in memory before a compressed append
SPOOL_MAX_SIZE = 16 * 1024 * 1024
COPY_BUFSIZE = 64 * 1024


class Compression(str, Enum):
    """Compression applied to the whole tar stream.

    Values:
        NONE: Plain tar; failed appends can be rolled back
        GZ: gzip
        BZ2: bzip2
        XZ: xz / LZMA
    """

    NONE = "none"
    GZ = "gz"
    BZ2 = "bz2"
    XZ = "xz"

    @property
    def write_mode(self) -> str:
        """The ``tarfile.open`` mode for writing with this compression.

        Example:
            >>> Compression.GZ.write_mode
            'w:gz'
            >>> Compression.NONE.write_mode
            'w'
        """
        return "w" if self is Compression.NONE else f"w:{self.value}"


class TarArchive:
    """Exclusive owner of the output tar stream for one run.

    The archive is created on construction. Use it as a context manager: leaving
    the block normally finishes the archive (end-of-archive marker, flush, close);
    leaving it with an exception abandons it, closing the file without the marker.

    Attributes:
        path (Path): Location of the output archive.
        compression (Compression): Compression applied to the stream.
        member_count (int): Number of members appended so far.

    Example:
        >>> import io, tempfile
        >>> with tempfile.TemporaryDirectory() as tmp:
        ...     with TarArchive(Path(tmp) / "out.tar") as archive:
        ...         _ = archive.append_file(io.BytesIO(b"hello"), "docs/hello.txt", size=5)
        ...     with tarfile.open(Path(tmp) / "out.tar") as check:
        ...         check.getnames()
        ['docs/hello.txt']
    """

    def __init__(self, path: PathType, compression: Compression = Compression.NONE) -> None:
        """Create the output archive.

        Args:
            path: Location of the archive file. Its parent directory must exist.
            compression: Compression applied to the stream. Defaults to NONE.

        Raises:
            OSError: If the archive file cannot be created.
        """
        self.path = Path(path)
        self.compression = compression
        self.member_count = 0
        self._tar: Optional[tarfile.TarFile] = tarfile.open(self.path, compression.write_mode)
        logger.debug("Created archive \"%s\" (mode %s).", self.path, compression.write_mode)

    @property
    def closed(self) -> bool:
        return self._tar is None

    @property
    def rewindable(self) -> bool:
        """Whether a failed append can be rolled back to the last member boundary."""
        return self.compression is Compression.NONE

    def _require_open(self) -> tarfile.TarFile:
        if self._tar is None:
            raise ValueError("Cannot append to a closed TarArchive")
        return self._tar

    def append_file(
        self, fileobj: BinaryIO, name: str, size: Optional[int] = None, source: Optional[Path] = None
    ) -> tarfile.TarInfo:
        """Stream an opened file into the archive as a regular member.

        Args:
            fileobj: Binary file object positioned at the start of the content.
            name: Member name inside the archive.
            size: Number of bytes to copy. When omitted, metadata (size, mode,
                owner, mtime) is taken from ``fileobj`` with ``fstat``.
            source: Source path, used only in log lines.

        Returns:
            The header written for the member.

        Raises:
            OSError: If reading the source or writing the archive fails. The
                archive is rolled back first when it is rewindable; for
                compressed output a failing source read happens before
                anything is written.
        """
        tar = self._require_open()
        if size is None:
            info = tar.gettarinfo(arcname=name, fileobj=fileobj)
        else:
            info = tarfile.TarInfo(name)
            info.size = size
        try:
            if self.rewindable or not info.isreg():
                self._append(tar, info, fileobj, source)
            else:
                with self._spool(fileobj, info.size) as spooled:
                    self._append(tar, info, spooled, source)
        except OSError:
            # gettarinfo() registered the inode; later hard links must not point at this member
            self._forget(tar, info.name)
            raise
        return info

    @staticmethod
    def _spool(fileobj: BinaryIO, size: int) -> "tempfile.SpooledTemporaryFile[bytes]":
        spooled: "tempfile.SpooledTemporaryFile[bytes]" = tempfile.SpooledTemporaryFile(max_size=SPOOL_MAX_SIZE)
        try:
            remaining = size
            while remaining:
                chunk = fileobj.read(min(remaining, COPY_BUFSIZE))
                if not chunk:
                    raise OSError(f"unexpected end of data ({remaining} of {size} bytes missing)")
                spooled.write(chunk)
                remaining -= len(chunk)
            spooled.seek(0)
        except BaseException:
            spooled.close()
            raise
        return spooled

    @staticmethod
    def _forget(tar: tarfile.TarFile, name: str) -> None:
        for inode in [key for key, member_name in tar.inodes.items() if member_name == name]:
            del tar.inodes[inode]

    def append_link(self, source: Path, name: str) -> tarfile.TarInfo:
        """Store a symbolic link as a link member, without following it.

        Args:
            source: Path of the symbolic link.
            name: Member name inside the archive.

        Returns:
            The header written for the member.

        Raises:
            OSError: If the link cannot be read or the archive write fails.
        """
        tar = self._require_open()
        info = tar.gettarinfo(str(source), arcname=name)
        self._append(tar, info, None, source)
        return info

    def _append(
        self, tar: tarfile.TarFile, info: tarfile.TarInfo, fileobj: Optional[BinaryIO], source: Optional[Path]
    ) -> None:
        start = tar.offset
        try:
            tar.addfile(info, fileobj)
        except OSError:
            self._rollback(tar, start, info.name)
            raise
        self.member_count += 1
        logger.log(TRACE, "Appended \"%s\" as %s (%d bytes).", source or info.name, info.name, info.size)

    def _rollback(self, tar: tarfile.TarFile, start: int, name: str) -> None:
        if not self.rewindable:
            logger.error(
                "Writing %s to the compressed archive failed; the archive is unreadable from this member on.", name
            )
            return
        if tar.fileobj is None:
            return
        # Truncating the raw file restores the last member boundary.
        tar.fileobj.seek(start)
        tar.fileobj.truncate()
        tar.offset = start
        logger.debug("Rolled archive back to offset %d after failed append of %s.", start, name)

    def finish(self) -> None:
        """Write the end-of-archive marker, flush and close the archive.

        Raises:
            ArchiveFinalizeError: If any of these steps fails.
        """
        if self._tar is None:
            return
        tar, self._tar = self._tar, None
        try:
            tar.close()
        except OSError as e:
            raise ArchiveFinalizeError(self.path, e) from e
        logger.debug("Finished archive \"%s\" with %d member(s).", self.path, self.member_count)

    def abandon(self) -> None:
        """Close the archive file without writing the end-of-archive marker.

        The file is left truncated. Errors while closing are logged, not raised.
        """
        if self._tar is None:
            return
        tar, self._tar = self._tar, None
        try:
            if tar.fileobj is not None:
                tar.fileobj.close()
        except OSError as e:
            logger.warning("Error while closing abandoned archive \"%s\": %s", self.path, e)
        tar.closed = True
        logger.warning("Archive \"%s\" was left incomplete.", self.path)

    def __enter__(self) -> "TarArchive":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[types.TracebackType],
    ) -> None:
        if exc_type is None:
            self.finish()
        else:
            self.abandon()
