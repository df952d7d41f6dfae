"""Depth-first traversal of target roots.

The walker keeps pending paths on an explicit last-in-first-out list instead of
recursing, so traversal depth never grows the call stack. Excluded children are
never pushed, which prunes a whole subtree with a single filter evaluation.

Sibling order is not part of the contract: children are pushed in sorted order
and therefore popped in reverse, and callers must treat the files of a directory
as a set.
"""

import logging
import os
import stat
from pathlib import Path
from typing import Callable, List, Optional, Set

from dir2tar.archive.writer import BaseArchiveWriter
from dir2tar.exceptions import BackupAbortedError, BackupInterruptedError, DirectoryListError, IoFailure
from dir2tar.exclusion_rules.base_rules import BaseExclusionRules
from dir2tar.models import Target
from dir2tar.progress import ProgressSink, RunCounters
from dir2tar.recovery import RecoveryAction, RecoveryPolicy
from dir2tar.types import EntryKind

from .file_identifier import FileIdentifier

logger = logging.getLogger(__name__)


def classify(path: Path, follow_symlinks: bool = True) -> EntryKind:
    """Determine how an entry is treated by the walker.

    Args:
        path: Entry to classify.
        follow_symlinks: Whether symbolic links are resolved to their targets.
            Links that cannot be resolved are always classified as SYMLINK.

    Returns:
        The entry kind.

    Raises:
        OSError: If the entry itself cannot be inspected (e.g. it vanished).

    Example:
        >>> import tempfile
        >>> with tempfile.TemporaryDirectory() as tmp:
        ...     classify(Path(tmp))
        <EntryKind.DIRECTORY: 'directory'>
    """
    mode = path.lstat().st_mode
    if stat.S_ISLNK(mode):
        if not follow_symlinks:
            return EntryKind.SYMLINK
        try:
            mode = path.stat().st_mode
        except OSError:
            logger.debug("Dangling symlink \"%s\" is stored as a link.", path)
            return EntryKind.SYMLINK
    if stat.S_ISDIR(mode):
        return EntryKind.DIRECTORY
    if stat.S_ISREG(mode):
        return EntryKind.FILE
    return EntryKind.SPECIAL


class PathWalker:
    """Walks target roots and hands every surviving file to an archive writer.

    Directory-listing failures are logged and the affected subtree is abandoned.
    File-level failures raised by the writer are resolved by the recovery policy:
    EXIT raises BackupAbortedError, IGNORE counts the file as skipped, and RETRY
    calls the writer again for the same file without re-walking or re-filtering.

    Symbolic Link Behavior:
        When follow_symlinks is True (default) links are resolved; a directory
        reached a second time during the walk of one root is skipped, which also
        breaks symlink loops. When it is False links are handed to the writer as
        links and never descended into.

    Attributes:
        writer (BaseArchiveWriter): Receives accepted entries.
        policy (RecoveryPolicy): Resolves file-level failures.
        progress (ProgressSink): Receives completion and skip notifications.
        follow_symlinks (bool): Whether to follow symbolic links.
        should_stop (Callable[[], bool]): Polled between two entries; True stops the walk.

    Example:
        >>> walker = PathWalker(writer, policy)  # doctest: +SKIP
        >>> walker.walk(Target("docs", (Path("/data/docs"),)), rules)  # doctest: +SKIP
        >>> walker.progress.completed  # doctest: +SKIP
        42
    """

    def __init__(
        self,
        writer: BaseArchiveWriter,
        policy: RecoveryPolicy,
        progress: Optional[ProgressSink] = None,
        follow_symlinks: bool = True,
        should_stop: Optional[Callable[[], bool]] = None,
    ) -> None:
        self.writer = writer
        self.policy = policy
        self.progress: ProgressSink = progress if progress is not None else RunCounters()
        self.follow_symlinks = follow_symlinks
        self.should_stop = should_stop

    def walk(self, target: Target, rules: BaseExclusionRules) -> None:
        """Archive every non-excluded file under the roots of a target, in root order.

        Args:
            target: The target to walk.
            rules: Exclusion rules applying to this target.

        Raises:
            BackupAbortedError: If the recovery policy answered EXIT.
            BackupInterruptedError: If ``should_stop`` returned True.
        """
        logger.info("Current target: %s", target.name)
        for root in target.roots:
            self.walk_root(target, root, rules)

    def walk_root(self, target: Target, root: Path, rules: BaseExclusionRules) -> None:
        """Archive every non-excluded file under a single root of a target.

        The root itself is never tested against the rules; only its descendants are.
        """
        logger.info("Current path: %s", root)
        root_length = len(str(root))
        visited: Set[FileIdentifier] = set()
        pending: List[Path] = [root]

        while pending:
            if self.should_stop is not None and self.should_stop():
                raise BackupInterruptedError()

            path = pending.pop()
            try:
                kind = classify(path, self.follow_symlinks)
            except OSError as e:
                logger.warning("Cannot inspect \"%s\": %s", path, e.strerror or e)
                continue

            if kind is EntryKind.DIRECTORY:
                if self.follow_symlinks and not self._first_visit(path, visited):
                    logger.warning("Skipping \"%s\": directory already visited (symlink loop?).", path)
                    continue
                try:
                    children = self._list_directory(path)
                except DirectoryListError as e:
                    logger.warning("%s", e)
                    continue
                pending.extend(child for child in children if not rules.exclude(child))
            elif kind is EntryKind.SPECIAL:
                logger.warning("Skipping special file \"%s\".", path)
                self.progress.file_skipped(path, "special file")
            else:
                self._archive(path, target, root_length, kind)

    def _first_visit(self, path: Path, visited: Set[FileIdentifier]) -> bool:
        try:
            file_id = FileIdentifier.from_stat(path.stat())
        except OSError:
            # Unidentifiable directories are listed; listing reports the real error.
            return True
        if file_id in visited:
            return False
        visited.add(file_id)
        return True

    def _list_directory(self, path: Path) -> List[Path]:
        try:
            names = sorted(os.listdir(path))
        except OSError as e:
            raise DirectoryListError(path, e) from e
        return [path / name for name in names]

    def _archive(self, path: Path, target: Target, root_length: int, kind: EntryKind) -> None:
        attempt = 1
        while True:
            try:
                entry = self.writer.archive(path, target.name, root_length, kind)
            except IoFailure as failure:
                action = self.policy.resolve(failure, attempt)
                if action is RecoveryAction.EXIT:
                    raise BackupAbortedError(failure) from failure
                if action is RecoveryAction.IGNORE:
                    self.progress.file_skipped(path, str(failure))
                    return
                attempt += 1
                logger.info("Retrying \"%s\" (attempt %d).", path, attempt)
                continue
            self.progress.file_completed(entry)
            return
