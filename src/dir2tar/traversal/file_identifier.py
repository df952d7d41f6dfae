"""File identifier for recognising a directory reached twice through symlinks."""

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class FileIdentifier:
    """Identity of a file or directory by device and inode.

    The combination of device ID and inode number uniquely identifies a file or
    directory, whatever path it was reached through.

    Attributes:
        device_id (int): The device ID from stat information.
        inode_number (int): The inode number from stat information.

    Note:
        On Windows, inode numbers come from the file index and are good enough
        for telling directories apart during one run.
    """

    device_id: int
    inode_number: int

    @classmethod
    def from_stat(cls, stat_result: os.stat_result) -> "FileIdentifier":
        """Build an identifier from the result of ``os.stat``."""
        return cls(stat_result.st_dev, stat_result.st_ino)
