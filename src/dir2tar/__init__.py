"""Directory to tar archive backup utilities.

This package walks configured directory trees, prunes subtrees with
scope-based exclusion filters, and streams the surviving files into a
single tar archive, recovering from per-file I/O failures without
aborting the whole run.
"""

from importlib.metadata import PackageNotFoundError, version

# Expose the version for both programmatic use and CLI
try:
    __version__ = version("dir2tar")
except PackageNotFoundError:
    __version__ = "unknown"
