"""Immutable run inputs: targets, filters and the conditions guarding them.

Instances are built once from configuration before a run starts and are never
mutated while the run is in progress.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path, PurePath
from typing import FrozenSet, Tuple

GLOBAL_SCOPE = "global"
NEGATION_PREFIX = "!"


class FilterKind(str, Enum):
    """What a filter does to the entries it matches.

    Values:
        EXCLUDE: Matching entries are left out of the archive (the only kind evaluated)
        INCLUDE: Declared for future use; filters of this kind are never evaluated
    """

    EXCLUDE = "exclude"
    INCLUDE = "include"


@dataclass(frozen=True)
class Condition:
    """A single existence check relative to a candidate entry's parent directory.

    Attributes:
        relative_path: Path checked for existence, relative to the parent directory.
        negate: When True the condition holds if the path does NOT exist.

    Example:
        >>> Condition.parse("!.keep")
        Condition(relative_path=PurePosixPath('.keep'), negate=True)
        >>> Condition.parse("Makefile").negate
        False
    """

    relative_path: PurePath
    negate: bool = False

    @classmethod
    def parse(cls, text: str) -> "Condition":
        """Build a condition from its textual form, where a leading ``!`` means negate."""
        negate = text.startswith(NEGATION_PREFIX)
        if negate:
            text = text[len(NEGATION_PREFIX) :]  # noqa: E203
        return cls(PurePath(text), negate)

    def __str__(self) -> str:
        return f"{NEGATION_PREFIX if self.negate else ''}{self.relative_path}"


@dataclass(frozen=True)
class Filter:
    """A named rule that drops entries matching a trigger when a condition holds.

    Attributes:
        name: Filter name, used in log lines.
        scopes: Target names the filter applies to, or ``"global"``.
        triggers: Paths relative to a candidate's parent that the candidate must equal.
        conditions: Existence checks evaluated in order; the first that holds excludes.
        kind: What the filter does to matched entries.
    """

    name: str
    scopes: FrozenSet[str]
    triggers: Tuple[PurePath, ...]
    conditions: Tuple[Condition, ...] = ()
    kind: FilterKind = FilterKind.EXCLUDE

    def applies_to(self, target_name: str) -> bool:
        """Check whether this filter is scoped to the given target.

        Example:
            >>> f = Filter("f", frozenset({"global"}), ())
            >>> f.applies_to("anything")
            True
        """
        return target_name in self.scopes or GLOBAL_SCOPE in self.scopes


@dataclass(frozen=True)
class Target:
    """A named archive prefix bound to one or more canonical source roots.

    Attributes:
        name: Top-level directory name inside the archive.
        roots: Absolute, canonical source paths, walked in order.
    """

    name: str
    roots: Tuple[Path, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ArchiveEntry:
    """A file accepted for archiving, paired with its name inside the archive.

    Attributes:
        source_path: Absolute path of the file on disk.
        archive_name: Name of the member inside the archive.
        size: Number of content bytes written for the member.
    """

    source_path: Path
    archive_name: str
    size: int = 0
