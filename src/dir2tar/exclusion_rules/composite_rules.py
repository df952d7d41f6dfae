"""Composite exclusion rules for combining the filters that apply to one target."""

import logging
from pathlib import Path
from typing import Iterable, List, Sequence

from dir2tar.models import Filter, FilterKind

from .base_rules import BaseExclusionRules
from .conditional_rules import ConditionalExclusionRules

logger = logging.getLogger(__name__)


class CompositeExclusionRules(BaseExclusionRules):
    """Composite exclusion rules that combine multiple rule types.

    A path is excluded if ANY of the constituent rules determines it should be
    excluded. Rules are consulted in the order given and evaluation stops at the
    first rule that excludes, so an exclusion by one rule is final for that entry.

    An empty composite is valid and excludes nothing.

    Attributes:
        rules (List[BaseExclusionRules]): List of constituent exclusion rules.

    Example:
        >>> CompositeExclusionRules([]).exclude(Path("/data/docs/README.md"))
        False
    """

    def __init__(self, rules: Sequence[BaseExclusionRules]):
        """Initialize composite exclusion rules.

        Args:
            rules: Sequence of exclusion rules to combine, in evaluation order.

        Raises:
            TypeError: If any rule doesn't implement BaseExclusionRules.
        """
        for i, rule in enumerate(rules):
            if not isinstance(rule, BaseExclusionRules):
                raise TypeError(f"Rule at index {i} must implement BaseExclusionRules, " f"got {type(rule)}")

        self.rules: List[BaseExclusionRules] = list(rules)

    def exclude(self, path: Path) -> bool:
        """Check if a path should be excluded by any constituent rule.

        Args:
            path: Absolute path of the file or directory to check.

        Returns:
            True if ANY of the constituent rules excludes the path, False if ALL
            rules keep it.
        """
        return any(rule.exclude(path) for rule in self.rules)

    def has_rules(self) -> bool:
        return any(rule.has_rules() for rule in self.rules)

    def __len__(self) -> int:
        return len(self.rules)

    def __repr__(self) -> str:
        return f"CompositeExclusionRules(rules={self.rules!r})"


def rules_for_target(filters: Iterable[Filter], target_name: str) -> CompositeExclusionRules:
    """Build the exclusion rules applying to one target.

    Filters are kept in declaration order and scoped down to those whose scopes
    contain ``target_name`` or ``"global"``. Filters of a kind other than
    exclusion are skipped with a warning instead of being applied as exclusions.

    Args:
        filters: All configured filters, in declaration order.
        target_name: Name of the target about to be walked.

    Returns:
        The combined rules for the target.
    """
    rules: List[BaseExclusionRules] = []
    for filter in filters:
        if not filter.applies_to(target_name):
            continue
        if filter.kind is not FilterKind.EXCLUDE:
            logger.warning(
                "Filter '%s' has kind '%s', which is not supported yet; ignoring it.", filter.name, filter.kind.value
            )
            continue
        rules.append(ConditionalExclusionRules(filter))

    logger.debug("Target '%s' has %d applicable filter(s).", target_name, len(rules))
    return CompositeExclusionRules(rules)
