from abc import ABC, abstractmethod
from pathlib import Path


class BaseExclusionRules(ABC):
    """
    Abstract base class defining the interface for file/directory exclusion rules.

    This class serves as a contract for the rule types the walker consults before
    descending into a directory or archiving a file. Implementations must be pure
    with respect to the rule state: the answer may depend on the filesystem, but
    asking never changes anything.

    Example:
        >>> class TmpRules(BaseExclusionRules):
        ...     def exclude(self, path: Path) -> bool:
        ...         return path.suffix == ".tmp"
        >>> TmpRules().exclude(Path("/data/build/temp.tmp"))
        True
        >>> TmpRules().exclude(Path("/data/main.py"))
        False
    """

    @abstractmethod
    def exclude(self, path: Path) -> bool:
        """
        Determine if a given entry should be left out of the archive.

        Args:
            path (Path): Absolute path of the file or directory to check.

        Returns:
            bool: True if the entry (and, for a directory, everything under it)
                should be excluded, False if it should be kept.
        """
        pass

    def has_rules(self) -> bool:
        """
        Check whether these rules can exclude anything at all.

        Returns:
            bool: True unless the implementation knows it never excludes.
        """
        return True
