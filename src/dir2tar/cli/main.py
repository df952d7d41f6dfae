"""Command-line interface for dir2tar.

This module provides the command-line entry point: it parses arguments, sets up
logging and signal handling, loads the settings file, runs the backup and maps
the outcome onto an exit code.

Exit Codes:
    0: Successful completion
    1: Runtime error, missing or invalid settings, or run aborted by the operator
    2: Command-line syntax error
    3: Files were skipped and --strict was given
    130: Interrupted by SIGINT (Ctrl+C)

Example:
    # Back up the targets of ./settings.toml
    $ dir2tar

    # Unattended, with a separate settings file
    $ dir2tar -c backup.toml --on-error retry-once
"""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from dir2tar.backup import Backup, BackupResult
from dir2tar.cli.argparser import create_parser, log_level_from_args, validate_args
from dir2tar.cli.log_setup import setup_logging
from dir2tar.cli.signal_handler import setup_signal_handling, signal_handler
from dir2tar.exceptions import (
    ArchiveFinalizeError,
    BackupAbortedError,
    BackupInterruptedError,
    ConfigMissingError,
    SettingsError,
)
from dir2tar.recovery import create_policy
from dir2tar.settings import load_settings

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_SKIPPED = 3
EXIT_INTERRUPTED = 130


def expand_output_path(output: Optional[Path], now: Optional[datetime] = None) -> Optional[Path]:
    """Expand strftime directives in an archive path given on the command line.

    Example:
        >>> expand_output_path(Path("out-%Y.tar"), datetime(2024, 1, 2, tzinfo=timezone.utc))
        PosixPath('out-2024.tar')
    """
    if output is None:
        return None
    moment = now if now is not None else datetime.now(timezone.utc)
    return Path(moment.strftime(str(output))).expanduser()


def report(result: BackupResult, quiet: bool) -> None:
    """Log the outcome of a run and print the summary to stderr unless quiet."""
    if result.skipped:
        logger.warning("%d file(s) were skipped.", result.skipped)
    if not quiet:
        print(result.summary(), file=sys.stderr)


def main() -> None:
    """Main entry point for the dir2tar command-line interface.

    Exit codes:
        0: Successful completion
        1: Runtime error during execution
        2: Command-line syntax error
        3: Files were skipped and --strict was given
        130: Interrupted by SIGINT (Ctrl+C)
    """
    parser = create_parser()
    args = parser.parse_args()

    try:
        validate_args(args)
    except ValueError as e:
        parser.error(str(e))

    setup_logging(log_level_from_args(args))
    setup_signal_handling()

    try:
        settings = load_settings(args.config)
        backup = Backup(
            settings,
            create_policy(args.on_error),
            dry_run=args.dry_run,
            should_stop=signal_handler.should_stop,
        )
        result = backup.run(expand_output_path(args.output))
    except BackupInterruptedError as e:
        logger.warning("%s", e)
        sys.exit(EXIT_INTERRUPTED)
    except KeyboardInterrupt:
        logger.warning("Backup aborted by a second interrupt.")
        sys.exit(EXIT_INTERRUPTED)
    except (ConfigMissingError, SettingsError, BackupAbortedError, ArchiveFinalizeError) as e:
        logger.error("%s", e)
        sys.exit(EXIT_ERROR)
    except OSError as e:
        logger.error("Error: %s", e)
        sys.exit(EXIT_ERROR)

    report(result, args.quiet)

    if signal_handler.sigint_received.is_set():
        sys.exit(EXIT_INTERRUPTED)
    if args.strict and not result.success:
        sys.exit(EXIT_SKIPPED)
    sys.exit(EXIT_OK)


if __name__ == "__main__":
    main()
