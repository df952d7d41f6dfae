"""Backup run driver.

This module ties settings, exclusion rules, the walker and the archive writer
together into a complete run: every target is walked in declaration order into a
single archive, which is finalized once all targets are done.
"""

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from humanfriendly import format_size, format_timespan

from dir2tar.archive.tar_archive import TarArchive
from dir2tar.archive.writer import ArchiveWriter, BaseArchiveWriter, DryRunArchiveWriter
from dir2tar.exclusion_rules.composite_rules import rules_for_target
from dir2tar.progress import LoggingProgressSink, RunCounters
from dir2tar.recovery import RecoveryPolicy
from dir2tar.settings import Settings
from dir2tar.traversal.path_walker import PathWalker

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BackupResult:
    """Outcome of a finished run.

    Attributes:
        archive_path: Location of the archive, or None for a dry run.
        completed: Files written to the archive.
        skipped: Files left out after failures or because they could not be archived.
        bytes_written: Content bytes of the completed files.
        elapsed: Wall-clock duration of the run in seconds.
    """

    archive_path: Optional[Path]
    completed: int
    skipped: int
    bytes_written: int
    elapsed: float

    @property
    def success(self) -> bool:
        """True when every accepted file made it into the archive."""
        return self.skipped == 0

    def summary(self) -> str:
        """Format the counts into a human-readable string.

        Example:
            >>> print(BackupResult(None, 3, 1, 2048, 1.5).summary())
            Files completed: 3
            Files skipped: 1
            Archived: 2.05 KB
            Elapsed: 1.5 seconds
        """
        return "\n".join(
            [
                f"Files completed: {self.completed}",
                f"Files skipped: {self.skipped}",
                f"Archived: {format_size(self.bytes_written)}",
                f"Elapsed: {format_timespan(self.elapsed)}",
            ]
        )


class Backup:
    """A single backup run over the configured targets.

    Attributes:
        settings (Settings): Validated run settings.
        policy (RecoveryPolicy): Resolves file-level failures.
        dry_run (bool): Walk and filter without writing an archive.
        should_stop (Optional[Callable[[], bool]]): Polled between entries to stop the run.
        progress (RunCounters): Completion and skip counters of the run.
    """

    def __init__(
        self,
        settings: Settings,
        policy: RecoveryPolicy,
        dry_run: bool = False,
        should_stop: Optional[Callable[[], bool]] = None,
        progress: Optional[RunCounters] = None,
    ) -> None:
        self.settings = settings
        self.policy = policy
        self.dry_run = dry_run
        self.should_stop = should_stop
        self.progress = progress if progress is not None else LoggingProgressSink(settings.progress_interval)

    def run(self, archive_path: Optional[Path] = None) -> BackupResult:
        """Walk every target into one archive and finalize it.

        Args:
            archive_path: Output location. Defaults to the settings' archive path
                expanded with the current time. Ignored for a dry run.

        Returns:
            The outcome of the run.

        Raises:
            OSError: If the archive file cannot be created.
            BackupAbortedError: If the recovery policy answered EXIT; the archive is
                left without its end-of-archive marker.
            BackupInterruptedError: If the run was stopped between two files.
            ArchiveFinalizeError: If the archive cannot be finished.
        """
        started = time.monotonic()
        logger.info("Backup started!")

        if self.dry_run:
            logger.info("Dry run: no archive will be written.")
            self._walk_targets(DryRunArchiveWriter())
            path = None
        else:
            path = archive_path if archive_path is not None else self.settings.resolve_archive_path()
            logger.info("Preparing to start... (archive: %s)", path)
            with TarArchive(path, self.settings.compression) as container:
                self._walk_targets(ArchiveWriter(container))
                logger.info("Finishing...")

        result = BackupResult(
            archive_path=path,
            completed=self.progress.completed,
            skipped=self.progress.skipped,
            bytes_written=self.progress.bytes_written,
            elapsed=time.monotonic() - started,
        )
        logger.info("Backup finished! (%d files, %d skipped)", result.completed, result.skipped)
        return result

    def _walk_targets(self, writer: BaseArchiveWriter) -> None:
        walker = PathWalker(
            writer,
            self.policy,
            progress=self.progress,
            follow_symlinks=self.settings.follow_symlinks,
            should_stop=self.should_stop,
        )
        for target in self.settings.targets:
            walker.walk(target, rules_for_target(self.settings.filters, target.name))


def run_backup(settings: Settings, policy: RecoveryPolicy, dry_run: bool = False) -> BackupResult:
    """Run a backup with the given settings and recovery policy.

    Example:
        >>> from dir2tar.recovery import FixedRecoveryPolicy, RecoveryAction
        >>> result = run_backup(settings, FixedRecoveryPolicy(RecoveryAction.IGNORE))  # doctest: +SKIP
        >>> result.completed  # doctest: +SKIP
        128
    """
    return Backup(settings, policy, dry_run=dry_run).run()
