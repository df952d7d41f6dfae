"""Ctrl+C handling for backup runs.

The first SIGINT only records the request: the walker polls ``should_stop``
between two entries, so the file being written is completed and the archive is
abandoned at a member boundary. A second SIGINT goes to the handler that was
installed before, which normally raises KeyboardInterrupt immediately.
"""

import logging
import signal
from threading import Event
from types import FrameType
from typing import Optional

logger = logging.getLogger(__name__)


class SignalHandler:
    """Turns the first SIGINT into a stop request.

    Attributes:
        sigint_received: Set once a SIGINT has arrived.
        original_sigint_handler: Handler that was active before ``install``, restored on the first SIGINT.
    """

    def __init__(self) -> None:
        self.sigint_received = Event()
        self.original_sigint_handler = signal.getsignal(signal.SIGINT)

    def install(self) -> None:
        """Route SIGINT to this handler, remembering the one currently active."""
        self.original_sigint_handler = signal.getsignal(signal.SIGINT)
        signal.signal(signal.SIGINT, self.handle_sigint)

    def handle_sigint(self, signum: int, frame: Optional[FrameType]) -> None:
        """Record the stop request and hand later SIGINTs back to the original handler."""
        self.sigint_received.set()
        signal.signal(signal.SIGINT, self.original_sigint_handler)
        logger.warning("Interrupt received; stopping after the current file (press Ctrl+C again to abort now).")

    def should_stop(self) -> bool:
        """Report whether a stop was requested."""
        return self.sigint_received.is_set()


# One handler per process, shared by the CLI and the walker it drives
signal_handler = SignalHandler()


def setup_signal_handling() -> None:
    """Install the process-wide SIGINT handler."""
    signal_handler.install()
