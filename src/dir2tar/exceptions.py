from pathlib import Path
from typing import Optional


class Dir2TarError(Exception):
    """Base class for every error raised by dir2tar."""

    pass


class ConfigMissingError(Dir2TarError):
    """
    Exception raised when the settings file does not exist.

    The loader creates an empty settings file at the expected location before raising,
    so the operator has a file to fill in on the next run. This error is fatal and is
    never retried.

    Attributes:
        settings_path (Path): Location where the settings file was expected.

    Example:
        >>> error = ConfigMissingError(Path("settings.toml"))
        >>> str(error)
        'Settings file not found: settings.toml (an empty one was created)'
    """

    def __init__(self, settings_path: Path) -> None:
        self.settings_path = settings_path
        super().__init__(f"Settings file not found: {settings_path} (an empty one was created)")


class SettingsError(Dir2TarError):
    """
    Exception raised when the settings file cannot be parsed or fails validation.

    Example:
        >>> error = SettingsError("duplicate target name 'docs'")
        >>> str(error)
        "duplicate target name 'docs'"
    """

    pass


class UnsupportedFilterKindError(Dir2TarError):
    """
    Exception raised when a filter of a kind the engine cannot apply reaches it.

    Only exclusion filters are evaluated. Other kinds must be set aside before
    evaluation rather than being treated as exclusions.

    Attributes:
        filter_name (str): Name of the offending filter.
        kind (str): The filter kind value.
    """

    def __init__(self, filter_name: str, kind: str) -> None:
        self.filter_name = filter_name
        self.kind = kind
        super().__init__(f"Filter '{filter_name}' has unsupported kind '{kind}'")


class DirectoryListError(Dir2TarError):
    """
    Exception raised when the entries of a directory cannot be enumerated.

    The walker catches this error, logs a warning, and abandons the subtree.

    Attributes:
        path (Path): Directory that could not be listed.
        cause (OSError): The underlying operating system error.
    """

    def __init__(self, path: Path, cause: OSError) -> None:
        self.path = path
        self.cause = cause
        super().__init__(f"Cannot iterate entries in \"{path}\": {cause.strerror or cause}")


class IoFailure(Dir2TarError):
    """
    Base class for recoverable per-file I/O failures.

    Instances are handed to a RecoveryPolicy, which decides whether the run exits,
    skips the file, or retries the failed operation.

    Attributes:
        path (Path): Source file being archived.
        archive_name (str): Name the file was to receive inside the archive.
        cause (OSError): The underlying operating system error.
    """

    operation = "process"

    def __init__(self, path: Path, archive_name: str, cause: OSError) -> None:
        self.path = path
        self.archive_name = archive_name
        self.cause = cause
        super().__init__(f"Failed to {self.operation} \"{path}\": {cause.strerror or cause}")


class FileOpenError(IoFailure):
    """
    Exception raised when a source file cannot be opened for reading.

    Example:
        >>> error = FileOpenError(Path("/data/a.txt"), "docs/a.txt", PermissionError(13, "Permission denied"))
        >>> str(error)
        'Failed to open "/data/a.txt": Permission denied'
    """

    operation = "open"


class AppendError(IoFailure):
    """
    Exception raised when streaming an opened file into the archive fails.

    Example:
        >>> error = AppendError(Path("/data/a.txt"), "docs/a.txt", OSError(5, "Input/output error"))
        >>> str(error)
        'Failed to append "/data/a.txt": Input/output error'
    """

    operation = "append"


class ArchiveFinalizeError(Dir2TarError):
    """
    Exception raised when the output archive cannot be finished, flushed or closed.

    This error is fatal; no recovery is attempted.

    Attributes:
        archive_path (Path): The output archive location.
        cause (OSError): The underlying operating system error.
    """

    def __init__(self, archive_path: Path, cause: OSError) -> None:
        self.archive_path = archive_path
        self.cause = cause
        super().__init__(f"Failed to finalize archive \"{archive_path}\": {cause.strerror or cause}")


class BackupAbortedError(Dir2TarError):
    """
    Exception raised when the operator chooses to exit after a file failure.

    The archive is left truncated: the end-of-archive marker is not written.

    Attributes:
        failure (Optional[IoFailure]): The failure that led to the abort, if any.
    """

    def __init__(self, failure: Optional[IoFailure] = None, message: str = "Backup aborted") -> None:
        self.failure = failure
        if failure is not None:
            message = f"{message}: {failure}"
        super().__init__(message)


class BackupInterruptedError(BackupAbortedError):
    """
    Exception raised when the run is stopped by an interrupt (Ctrl+C) between two files.

    Example:
        >>> str(BackupInterruptedError())
        'Backup interrupted'
    """

    def __init__(self) -> None:
        super().__init__(None, "Backup interrupted")
