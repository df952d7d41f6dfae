"""Unit tests for the PathWalker."""

import logging
import os
import sys
from pathlib import Path
from typing import List
from unittest.mock import patch

import pytest

from dir2tar.archive.naming import archive_name
from dir2tar.archive.writer import BaseArchiveWriter
from dir2tar.exceptions import AppendError, BackupAbortedError, BackupInterruptedError, FileOpenError
from dir2tar.exclusion_rules.composite_rules import CompositeExclusionRules, rules_for_target
from dir2tar.models import ArchiveEntry, Target
from dir2tar.progress import RunCounters
from dir2tar.recovery import FixedRecoveryPolicy, RecoveryAction, RecoveryPolicy
from dir2tar.traversal.path_walker import PathWalker, classify
from dir2tar.types import EntryKind


class RecordingWriter(BaseArchiveWriter):
    """Writer that records archive names, failing the first ``failures`` calls per listed path."""

    def __init__(self, failures=None, error=FileOpenError):
        self.names: List[str] = []
        self.kinds: List[EntryKind] = []
        self.calls: List[Path] = []
        self.failures = dict(failures or {})
        self.error = error

    def archive(self, path, target_name, root_length, kind=EntryKind.FILE):
        self.calls.append(path)
        name = archive_name(path, target_name, root_length)
        if self.failures.get(path, 0) > 0:
            self.failures[path] -= 1
            raise self.error(path, name, OSError(5, "Input/output error"))
        self.names.append(name)
        self.kinds.append(kind)
        return ArchiveEntry(path, name, 1)


class ScriptedPolicy(RecoveryPolicy):
    """Policy answering from a fixed list and recording the failures it saw."""

    def __init__(self, answers):
        self.answers = list(answers)
        self.seen = []

    def resolve(self, failure, attempt):
        self.seen.append((failure, attempt))
        return self.answers.pop(0)


NO_RULES = CompositeExclusionRules([])


@pytest.fixture
def ignore_policy():
    return FixedRecoveryPolicy(RecoveryAction.IGNORE)


def test_walks_every_file(docs_target, ignore_policy):
    writer = RecordingWriter()
    PathWalker(writer, ignore_policy).walk(docs_target, NO_RULES)
    assert sorted(writer.names) == ["docs/README.md", "docs/build/out.txt", "docs/src/guide.md"]


def test_excluded_directory_is_pruned(docs_target, ignore_policy, skip_build_filter):
    writer = RecordingWriter()
    PathWalker(writer, ignore_policy).walk(docs_target, rules_for_target([skip_build_filter], "docs"))
    assert sorted(writer.names) == ["docs/README.md", "docs/src/guide.md"]
    assert not any(name.startswith("docs/build/") for name in writer.names)


def test_marker_keeps_directory(docs_tree, docs_target, ignore_policy, skip_build_filter):
    (docs_tree / "build" / ".keep").touch()
    writer = RecordingWriter()
    PathWalker(writer, ignore_policy).walk(docs_target, rules_for_target([skip_build_filter], "docs"))
    assert sorted(writer.names) == ["docs/README.md", "docs/build/.keep", "docs/build/out.txt", "docs/src/guide.md"]


def test_pruned_subtree_is_not_evaluated(docs_tree, docs_target, ignore_policy, skip_build_filter):
    """Descendants of an excluded directory are never looked at."""
    deep = docs_tree / "build" / "a" / "b"
    deep.mkdir(parents=True)
    (deep / "c.txt").touch()

    class CountingRules(CompositeExclusionRules):
        def __init__(self, inner):
            super().__init__(inner.rules)
            self.seen = []

        def exclude(self, path):
            self.seen.append(path)
            return super().exclude(path)

    rules = CountingRules(rules_for_target([skip_build_filter], "docs"))
    PathWalker(RecordingWriter(), ignore_policy).walk(docs_target, rules)
    assert docs_tree / "build" in rules.seen
    assert not any(docs_tree / "build" in p.parents for p in rules.seen)


def test_root_is_never_filtered(tmp_path, ignore_policy, make_filter):
    root = (tmp_path / "build").resolve()
    root.mkdir()
    (root / "x.txt").touch()
    rules = rules_for_target([make_filter("skip", ["global"], ["build"], ["!.keep"])], "t")
    writer = RecordingWriter()
    PathWalker(writer, ignore_policy).walk(Target("t", (root,)), rules)
    assert writer.names == ["t/x.txt"]


def test_root_file(tmp_path, ignore_policy):
    root = (tmp_path / "hosts").resolve()
    root.write_text("127.0.0.1 localhost")
    writer = RecordingWriter()
    PathWalker(writer, ignore_policy).walk(Target("system", (root,)), NO_RULES)
    assert writer.names == ["system/hosts"]


def test_multiple_roots_in_order(tmp_path, ignore_policy):
    first = tmp_path / "first"
    second = tmp_path / "second"
    for root in (first, second):
        root.mkdir()
        (root / f"{root.name}.txt").touch()
    writer = RecordingWriter()
    PathWalker(writer, ignore_policy).walk(Target("t", (first.resolve(), second.resolve())), NO_RULES)
    assert writer.names == ["t/first.txt", "t/second.txt"]


def test_missing_root_is_skipped(tmp_path, ignore_policy, caplog):
    existing = tmp_path / "existing"
    existing.mkdir()
    (existing / "a.txt").touch()
    writer = RecordingWriter()
    with caplog.at_level(logging.WARNING):
        PathWalker(writer, ignore_policy).walk(Target("t", (tmp_path / "missing", existing)), NO_RULES)
    assert writer.names == ["t/a.txt"]
    assert "Cannot inspect" in caplog.text


def test_empty_directories_produce_nothing(tmp_path, ignore_policy):
    (tmp_path / "empty" / "deeper").mkdir(parents=True)
    writer = RecordingWriter()
    PathWalker(writer, ignore_policy).walk(Target("t", (tmp_path.resolve(),)), NO_RULES)
    assert writer.names == []


def test_deep_tree_does_not_recurse(tmp_path, ignore_policy):
    path = tmp_path.resolve()
    current = path
    try:
        for _ in range(sys.getrecursionlimit() + 50):
            current = current / "d"
            current.mkdir()
    except OSError:
        pytest.skip("filesystem does not allow a tree this deep")
    (current / "leaf.txt").touch()
    writer = RecordingWriter()
    PathWalker(writer, ignore_policy).walk(Target("t", (path,)), NO_RULES)
    assert len(writer.names) == 1
    assert writer.names[0].endswith("/d/leaf.txt")


@pytest.mark.skipif(os.name == "nt" or os.geteuid() == 0, reason="needs POSIX permissions and a non-root user")
def test_unlistable_directory_is_skipped(docs_tree, docs_target, ignore_policy, caplog):
    locked = docs_tree / "src"
    locked.chmod(0)
    try:
        writer = RecordingWriter()
        with caplog.at_level(logging.WARNING):
            PathWalker(writer, ignore_policy).walk(docs_target, NO_RULES)
    finally:
        locked.chmod(0o755)
    assert sorted(writer.names) == ["docs/README.md", "docs/build/out.txt"]
    assert "Cannot iterate entries" in caplog.text


def test_listing_failure_abandons_subtree_only(docs_tree, docs_target, ignore_policy, caplog):
    real_listdir = os.listdir

    def failing_listdir(path):
        if Path(path) == docs_tree / "build":
            raise PermissionError(13, "Permission denied")
        return real_listdir(path)

    writer = RecordingWriter()
    with patch("dir2tar.traversal.path_walker.os.listdir", side_effect=failing_listdir):
        with caplog.at_level(logging.WARNING):
            PathWalker(writer, ignore_policy).walk(docs_target, NO_RULES)
    assert sorted(writer.names) == ["docs/README.md", "docs/src/guide.md"]
    assert "Permission denied" in caplog.text


class TestRecovery:
    """Test how writer failures are routed through the recovery policy."""

    def test_ignore_counts_as_skipped(self, docs_tree, docs_target):
        failing = docs_tree / "README.md"
        writer = RecordingWriter({failing: 1})
        progress = RunCounters()
        PathWalker(writer, FixedRecoveryPolicy(RecoveryAction.IGNORE), progress).walk(docs_target, NO_RULES)
        assert sorted(writer.names) == ["docs/build/out.txt", "docs/src/guide.md"]
        assert progress.completed == 2
        assert progress.skipped == 1

    def test_retry_reinvokes_writer_for_same_file(self, docs_tree, docs_target):
        failing = docs_tree / "README.md"
        writer = RecordingWriter({failing: 2}, error=AppendError)
        policy = ScriptedPolicy([RecoveryAction.RETRY, RecoveryAction.RETRY])
        progress = RunCounters()
        PathWalker(writer, policy, progress).walk(docs_target, NO_RULES)
        assert writer.calls.count(failing) == 3
        assert [attempt for _, attempt in policy.seen] == [1, 2]
        assert "docs/README.md" in writer.names
        assert progress.completed == 3
        assert progress.skipped == 0

    def test_retry_does_not_rewalk(self, docs_tree, docs_target):
        failing = docs_tree / "src" / "guide.md"
        writer = RecordingWriter({failing: 1})
        PathWalker(writer, ScriptedPolicy([RecoveryAction.RETRY])).walk(docs_target, NO_RULES)
        assert sorted(writer.names) == ["docs/README.md", "docs/build/out.txt", "docs/src/guide.md"]
        assert len(writer.calls) == 4

    def test_retry_then_ignore(self, docs_tree, docs_target):
        failing = docs_tree / "README.md"
        writer = RecordingWriter({failing: 5})
        progress = RunCounters()
        PathWalker(writer, FixedRecoveryPolicy.retry_once(), progress).walk(docs_target, NO_RULES)
        assert writer.calls.count(failing) == 2
        assert progress.skipped == 1

    def test_exit_aborts(self, docs_tree, docs_target):
        failing = docs_tree / "README.md"
        writer = RecordingWriter({failing: 1})
        with pytest.raises(BackupAbortedError) as excinfo:
            PathWalker(writer, FixedRecoveryPolicy(RecoveryAction.EXIT)).walk(docs_target, NO_RULES)
        assert isinstance(excinfo.value.failure, FileOpenError)
        assert excinfo.value.failure.path == failing

    def test_policy_sees_each_failure(self, docs_tree, docs_target):
        writer = RecordingWriter({docs_tree / "README.md": 1, docs_tree / "src" / "guide.md": 1})
        policy = ScriptedPolicy([RecoveryAction.IGNORE, RecoveryAction.IGNORE])
        PathWalker(writer, policy).walk(docs_target, NO_RULES)
        assert sorted(f.archive_name for f, _ in policy.seen) == ["docs/README.md", "docs/src/guide.md"]


def test_should_stop_interrupts(docs_target, ignore_policy):
    writer = RecordingWriter()
    with pytest.raises(BackupInterruptedError):
        PathWalker(writer, ignore_policy, should_stop=lambda: True).walk(docs_target, NO_RULES)
    assert writer.names == []


def test_special_files_are_skipped(tmp_path, ignore_policy):
    if not hasattr(os, "mkfifo"):
        pytest.skip("mkfifo not available")
    root = tmp_path.resolve()
    os.mkfifo(root / "pipe")
    (root / "regular.txt").touch()
    writer = RecordingWriter()
    progress = RunCounters()
    PathWalker(writer, ignore_policy, progress).walk(Target("t", (root,)), NO_RULES)
    assert writer.names == ["t/regular.txt"]
    assert progress.skipped == 1


class TestSymlinks:
    """Test symbolic link handling."""

    @pytest.fixture
    def linked_tree(self, tmp_path):
        root = tmp_path / "root"
        root.mkdir()
        root = root.resolve()
        (root / "real").mkdir()
        (root / "real" / "file.txt").write_text("x")
        outside = tmp_path / "outside"
        outside.mkdir()
        (outside / "other.txt").write_text("y")
        try:
            (root / "linked").symlink_to(outside)
            (root / "real" / "loop").symlink_to(root)
        except (OSError, NotImplementedError):
            pytest.skip("symlinks not supported")
        return root

    def test_follow_symlinks(self, linked_tree, ignore_policy):
        writer = RecordingWriter()
        PathWalker(writer, ignore_policy, follow_symlinks=True).walk(Target("t", (linked_tree,)), NO_RULES)
        assert "t/linked/other.txt" in writer.names
        assert "t/real/file.txt" in writer.names
        # The loop back to the root is cut, so every file appears once
        assert len(writer.names) == len(set(writer.names)) == 2

    def test_no_follow_stores_links(self, linked_tree, ignore_policy):
        writer = RecordingWriter()
        PathWalker(writer, ignore_policy, follow_symlinks=False).walk(Target("t", (linked_tree,)), NO_RULES)
        assert sorted(writer.names) == ["t/linked", "t/real/file.txt", "t/real/loop"]
        assert writer.kinds.count(EntryKind.SYMLINK) == 2


class TestClassify:
    """Test entry classification."""

    def test_kinds(self, tmp_path):
        (tmp_path / "f").touch()
        (tmp_path / "d").mkdir()
        assert classify(tmp_path / "f") is EntryKind.FILE
        assert classify(tmp_path / "d") is EntryKind.DIRECTORY

    def test_symlinks(self, tmp_path):
        (tmp_path / "d").mkdir()
        (tmp_path / "to_dir").symlink_to(tmp_path / "d")
        (tmp_path / "dangling").symlink_to(tmp_path / "nothing")
        assert classify(tmp_path / "to_dir") is EntryKind.DIRECTORY
        assert classify(tmp_path / "to_dir", follow_symlinks=False) is EntryKind.SYMLINK
        assert classify(tmp_path / "dangling") is EntryKind.SYMLINK

    def test_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            classify(tmp_path / "missing")
