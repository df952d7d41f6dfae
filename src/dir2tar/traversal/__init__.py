"""Depth-first traversal of target roots with subtree pruning."""

from .file_identifier import FileIdentifier
from .path_walker import PathWalker, classify

__all__ = ["FileIdentifier", "PathWalker", "classify"]
