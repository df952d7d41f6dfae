"""Test configuration and fixtures for dir2tar."""

import tarfile
from pathlib import PurePath

import pytest

from dir2tar.models import Condition, Filter, Target


def _make_filter(name, scopes, triggers, conditions=(), **kwargs):
    return Filter(
        name=name,
        scopes=frozenset(scopes),
        triggers=tuple(PurePath(trigger) for trigger in triggers),
        conditions=tuple(Condition.parse(condition) for condition in conditions),
        **kwargs,
    )


def _archive_names(archive_path):
    with tarfile.open(archive_path) as tar:
        return tar.getnames()


@pytest.fixture
def make_filter():
    """Build a Filter from the plain strings used in settings files."""
    return _make_filter


@pytest.fixture
def archive_names():
    """Return the member names of a finished tar archive."""
    return _archive_names


@pytest.fixture
def docs_tree(tmp_path):
    """Create the docs tree used by the build-pruning scenarios.

    Layout::

        data/docs/README.md
        data/docs/build/out.txt
        data/docs/src/guide.md
    """
    root = tmp_path / "data" / "docs"
    root.mkdir(parents=True)
    root = root.resolve()
    (root / "README.md").write_text("# Docs")
    (root / "build").mkdir()
    (root / "build" / "out.txt").write_text("generated")
    (root / "src").mkdir()
    (root / "src" / "guide.md").write_text("guide")
    return root


@pytest.fixture
def docs_target(docs_tree):
    return Target("docs", (docs_tree,))


@pytest.fixture
def skip_build_filter(make_filter):
    return make_filter("skip-build", ["docs"], ["build"], ["!.keep"])
