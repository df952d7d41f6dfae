"""Command-line argument parsing for dir2tar.

This module defines the command-line interface for dir2tar,
handling argument parsing and validation.
"""

import argparse
from pathlib import Path
from typing import Optional

from dir2tar import __version__
from dir2tar.settings import DEFAULT_SETTINGS_PATH

RECOVERY_MODES = ["prompt", "ignore", "retry-once", "exit"]
LOG_LEVELS = ["trace", "debug", "info", "warning", "error"]


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the command-line argument parser.

    Returns:
        An ArgumentParser instance configured with dir2tar's options.
    """
    description = """
    dir2tar: A filter-aware, fault-tolerant directory-to-tar backup tool.

    Every target in the settings file is walked depth-first and its files are
    streamed into a single tar archive under a top-level directory named after
    the target. Filters prune files and whole subtrees depending on the presence
    (or absence) of marker files next to them.

    When a file cannot be opened or appended, the run stops and asks whether to
    exit, ignore the file, or retry it.
    """

    epilog = """
    Examples:
      # Run with ./settings.toml
      dir2tar

      # Use another settings file and write to a specific archive
      dir2tar -c /etc/dir2tar/settings.toml -o /backup/today.tar

      # Unattended run: skip unreadable files, fail the exit code if any were skipped
      dir2tar --on-error ignore --strict

      # Show what would be archived without writing anything
      dir2tar --dry-run -v

      # Display version information and exit
      dir2tar --version
    """

    parser = argparse.ArgumentParser(
        prog="dir2tar",
        description=description,
        epilog=epilog,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    # Version information
    parser.add_argument(
        "-V", "--version", action="version", version=f"dir2tar {__version__}", help="Show the version and exit"
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        metavar="FILE",
        default=DEFAULT_SETTINGS_PATH,
        help=f"Settings file (default: {DEFAULT_SETTINGS_PATH}). An empty one is created if it does not exist.",
    )
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        metavar="FILE",
        help="Archive path, overriding 'archive_path' from the settings file (strftime directives are expanded).",
    )
    parser.add_argument(
        "-e",
        "--on-error",
        choices=RECOVERY_MODES,
        default="prompt",
        help=(
            "What to do when a file cannot be opened or appended: ask interactively (default), "
            "skip it, retry once and then skip it, or exit immediately."
        ),
    )
    parser.add_argument(
        "-n",
        "--dry-run",
        action="store_true",
        help="Walk and filter the targets and log the archive names without writing an archive.",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Exit with status 3 if any file was skipped.",
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (-v: debug, -vv: trace). Default level comes from $DIR2TAR_LOG or info.",
    )
    verbosity.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        help="Set the log level explicitly.",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Do not print the summary to stderr at the end of the run.",
    )

    return parser


def validate_args(args: argparse.Namespace) -> None:
    """Validate command-line arguments.

    Performs additional validation beyond what argparse can handle.

    Args:
        args: Parsed command-line arguments.

    Raises:
        ValueError: If any arguments fail validation.
    """
    if args.dry_run and args.output:
        raise ValueError("--dry-run does not write an archive; -o/--output cannot be used with it")
    if args.output is not None and args.output.is_dir():
        raise ValueError(f"-o/--output must name a file, not a directory: {args.output}")


def log_level_from_args(args: argparse.Namespace) -> Optional[str]:
    """Pick the log level requested on the command line, or None to use the environment default.

    Example:
        >>> log_level_from_args(argparse.Namespace(log_level=None, verbose=2))
        'trace'
    """
    if args.log_level:
        return str(args.log_level)
    if args.verbose >= 2:
        return "trace"
    if args.verbose == 1:
        return "debug"
    return None
