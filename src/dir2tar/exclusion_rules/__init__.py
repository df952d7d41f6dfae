"""Exclusion rules for pruning files and directories from a backup."""

from .base_rules import BaseExclusionRules
from .composite_rules import CompositeExclusionRules, rules_for_target
from .conditional_rules import ConditionalExclusionRules, is_excluded

__all__ = [
    "BaseExclusionRules",
    "CompositeExclusionRules",
    "ConditionalExclusionRules",
    "is_excluded",
    "rules_for_target",
]
