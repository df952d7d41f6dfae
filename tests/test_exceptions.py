"""Unit tests for the dir2tar exception types."""

from pathlib import Path

import pytest

from dir2tar.exceptions import (
    AppendError,
    ArchiveFinalizeError,
    BackupAbortedError,
    BackupInterruptedError,
    ConfigMissingError,
    DirectoryListError,
    Dir2TarError,
    FileOpenError,
    IoFailure,
    SettingsError,
    UnsupportedFilterKindError,
)


@pytest.mark.parametrize(
    "error",
    [
        ConfigMissingError(Path("settings.toml")),
        SettingsError("bad"),
        UnsupportedFilterKindError("f", "include"),
        DirectoryListError(Path("/d"), OSError(13, "Permission denied")),
        FileOpenError(Path("/f"), "t/f", OSError(2, "No such file or directory")),
        AppendError(Path("/f"), "t/f", OSError(5, "Input/output error")),
        ArchiveFinalizeError(Path("out.tar"), OSError(28, "No space left on device")),
        BackupAbortedError(),
        BackupInterruptedError(),
    ],
)
def test_all_derive_from_base(error):
    assert isinstance(error, Dir2TarError)


def test_io_failure_messages():
    cause = OSError(13, "Permission denied")
    open_error = FileOpenError(Path("/data/a"), "t/a", cause)
    append_error = AppendError(Path("/data/a"), "t/a", cause)
    assert str(open_error) == 'Failed to open "/data/a": Permission denied'
    assert str(append_error) == 'Failed to append "/data/a": Permission denied'
    assert isinstance(open_error, IoFailure) and isinstance(append_error, IoFailure)
    assert open_error.cause is cause
    assert open_error.archive_name == "t/a"


def test_io_failure_without_strerror():
    error = FileOpenError(Path("/data/a"), "t/a", OSError("plain message"))
    assert str(error) == 'Failed to open "/data/a": plain message'


def test_aborted_carries_failure():
    failure = FileOpenError(Path("/data/a"), "t/a", OSError(13, "Permission denied"))
    error = BackupAbortedError(failure)
    assert error.failure is failure
    assert str(error) == 'Backup aborted: Failed to open "/data/a": Permission denied'


def test_interrupted_is_an_abort():
    error = BackupInterruptedError()
    assert isinstance(error, BackupAbortedError)
    assert error.failure is None
    assert str(error) == "Backup interrupted"


def test_unsupported_kind_message():
    assert str(UnsupportedFilterKindError("keep-src", "include")) == "Filter 'keep-src' has unsupported kind 'include'"
