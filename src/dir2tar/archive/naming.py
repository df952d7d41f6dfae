"""Archive-relative member names."""

import os
from pathlib import Path

ARCHIVE_SEPARATOR = "/"


def archive_name(path: Path, target_name: str, root_length: int) -> str:
    """Compute the name a source file receives inside the archive.

    The first ``root_length`` characters of the absolute source path (the target
    root the file was found under) are replaced with the target name. A file that
    is itself a root keeps only its basename under the target name.

    Args:
        path: Absolute, canonical path of the source file.
        target_name: Name of the target being archived.
        root_length: Length of the root path string, captured before the root is
            walked.

    Returns:
        The member name, always using ``/`` as separator.

    Example:
        >>> archive_name(Path("/data/docs/build/out.txt"), "docs", len("/data/docs"))
        'docs/build/out.txt'
        >>> archive_name(Path("/etc/hosts"), "system", len("/etc/hosts"))
        'system/hosts'
    """
    path_string = str(path)
    if len(path_string) == root_length:
        return f"{target_name}{ARCHIVE_SEPARATOR}{path.name}"

    suffix = path_string[root_length:]
    if os.sep != ARCHIVE_SEPARATOR:
        suffix = suffix.replace(os.sep, ARCHIVE_SEPARATOR)
    # A filesystem root such as "/" leaves no separator at the start of the suffix.
    if not suffix.startswith(ARCHIVE_SEPARATOR):
        suffix = ARCHIVE_SEPARATOR + suffix
    return target_name + suffix
