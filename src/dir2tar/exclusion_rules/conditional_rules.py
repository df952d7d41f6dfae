"""Trigger-and-condition exclusion rules.

A filter matches an entry when one of its triggers, joined to the entry's parent
directory, names the entry itself. A matched entry is excluded as soon as one of
the filter's conditions holds; conditions are existence checks relative to the
same parent directory.
"""

import logging
from pathlib import Path

from dir2tar.exceptions import UnsupportedFilterKindError
from dir2tar.models import Condition, Filter, FilterKind

from .base_rules import BaseExclusionRules

logger = logging.getLogger(__name__)


def condition_holds(condition: Condition, parent: Path) -> bool:
    """Evaluate one existence condition against a parent directory.

    Args:
        condition: The condition to evaluate.
        parent: Directory the condition's path is relative to.

    Returns:
        True if the path exists and the condition is not negated, or the path is
        missing and the condition is negated.
    """
    found = (parent / condition.relative_path).exists()
    return found != condition.negate


def is_excluded(filter: Filter, entry_path: Path) -> bool:
    """Decide whether a single filter excludes a filesystem entry.

    Triggers are always resolved against the immediate parent of ``entry_path``.
    For every trigger naming the entry, conditions are evaluated in declaration
    order and the first one that holds excludes the entry. A filter without
    conditions never excludes anything.

    Args:
        filter: An exclusion filter.
        entry_path: Absolute path of the candidate file or directory.

    Returns:
        True if the entry must be left out of the archive.

    Raises:
        UnsupportedFilterKindError: If the filter is not an exclusion filter.

    Example:
        >>> import tempfile
        >>> from pathlib import PurePath
        >>> with tempfile.TemporaryDirectory() as tmp:
        ...     build = Path(tmp) / "build"
        ...     build.mkdir()
        ...     f = Filter("skip-build", frozenset({"global"}), (PurePath("build"),), (Condition.parse("!.keep"),))
        ...     is_excluded(f, build)
        True
    """
    if filter.kind is not FilterKind.EXCLUDE:
        raise UnsupportedFilterKindError(filter.name, filter.kind.value)

    parent = entry_path.parent
    for trigger in filter.triggers:
        if parent / trigger != entry_path:
            continue
        for condition in filter.conditions:
            if condition_holds(condition, parent):
                logger.debug("Filter '%s' excluded \"%s\" (condition: %s)", filter.name, entry_path, condition)
                return True
    return False


class ConditionalExclusionRules(BaseExclusionRules):
    """Exclusion rules backed by a single trigger-and-condition filter.

    Attributes:
        filter (Filter): The exclusion filter evaluated by these rules.

    Example:
        >>> from pathlib import PurePath
        >>> f = Filter("vacuous", frozenset({"docs"}), (PurePath("build"),))
        >>> rules = ConditionalExclusionRules(f)
        >>> rules.has_rules()
        False
        >>> rules.exclude(Path("/data/docs/build"))
        False
    """

    def __init__(self, filter: Filter):
        """Initialize the rules.

        Args:
            filter: The filter to evaluate. Must be an exclusion filter.

        Raises:
            UnsupportedFilterKindError: If the filter is not an exclusion filter.
        """
        if filter.kind is not FilterKind.EXCLUDE:
            raise UnsupportedFilterKindError(filter.name, filter.kind.value)
        self.filter = filter

    def exclude(self, path: Path) -> bool:
        return is_excluded(self.filter, path)

    def has_rules(self) -> bool:
        # Without triggers nothing matches; without conditions nothing is excluded.
        return bool(self.filter.triggers and self.filter.conditions)

    def __repr__(self) -> str:
        return f"ConditionalExclusionRules(filter={self.filter.name!r})"
