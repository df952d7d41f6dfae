from enum import Enum
from os import PathLike
from typing import Union

# Complete path type including strings and any path-like object
PathType = Union[str, PathLike[str]]


class EntryKind(Enum):
    """Enumeration of filesystem entry kinds met during traversal.

    Attributes:
        FILE: Regular file (or a followed symlink to one)
        DIRECTORY: Directory (or a followed symlink to one)
        SYMLINK: Symbolic link that is stored as a link, not followed
        SPECIAL: FIFO, socket or device node; never opened
    """

    FILE = "file"
    DIRECTORY = "directory"
    SYMLINK = "symlink"
    SPECIAL = "special"
