"""Per-file progress notifications.

The walker reports every completed and skipped file to a ProgressSink. Nothing
in the traversal depends on what a sink does with the notifications.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from humanfriendly import format_size

from dir2tar.models import ArchiveEntry

logger = logging.getLogger(__name__)


class ProgressSink(Protocol):
    """Receiver of completion and skip notifications."""

    def file_completed(self, entry: ArchiveEntry) -> None: ...

    def file_skipped(self, path: Path, reason: str) -> None: ...


@dataclass
class RunCounters:
    """Running totals for one backup run.

    Attributes:
        completed: Files written to the archive.
        skipped: Files left out after a failure or because they cannot be archived.
        bytes_written: Content bytes of the completed files.

    Example:
        >>> counters = RunCounters()
        >>> counters.file_completed(ArchiveEntry(Path("/a"), "t/a", 2048))
        >>> counters.file_skipped(Path("/b"), "ignored")
        >>> counters.completed, counters.skipped, counters.bytes_written
        (1, 1, 2048)
    """

    completed: int = 0
    skipped: int = 0
    bytes_written: int = 0

    def file_completed(self, entry: ArchiveEntry) -> None:
        self.completed += 1
        self.bytes_written += entry.size

    def file_skipped(self, path: Path, reason: str) -> None:
        self.skipped += 1


class LoggingProgressSink(RunCounters):
    """Counters that log a progress line every ``interval`` completed files.

    Attributes:
        interval: Number of completed files between two progress lines; 0 disables them.
    """

    def __init__(self, interval: int = 1000) -> None:
        super().__init__()
        if interval < 0:
            raise ValueError("interval cannot be negative")
        self.interval = interval

    def file_completed(self, entry: ArchiveEntry) -> None:
        super().file_completed(entry)
        if self.interval and self.completed % self.interval == 0:
            logger.info("%d files completed (%s).", self.completed, format_size(self.bytes_written))

    def file_skipped(self, path: Path, reason: str) -> None:
        super().file_skipped(path, reason)
        logger.info("Skipped \"%s\" (%s).", path, reason)
