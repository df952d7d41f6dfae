"""Recovery policies for per-file I/O failures.

A policy is consulted every time opening or appending a file fails. It answers
with a RecoveryAction; the caller carries the action out. Policies keep no state
between failures: each failure is resolved on its own.
"""

import logging
import sys
from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, Dict, Optional, TextIO

from dir2tar.exceptions import IoFailure

logger = logging.getLogger(__name__)


class RecoveryAction(str, Enum):
    """Action to take after a file could not be opened or appended.

    Values:
        EXIT: Abort the whole run, leaving the archive truncated
        IGNORE: Skip the file and continue with the next one
        RETRY: Run the failed operation again, re-opening the file
    """

    EXIT = "exit"
    IGNORE = "ignore"
    RETRY = "retry"


class RecoveryPolicy(ABC):
    """Decision point invoked once per file-level failure."""

    @abstractmethod
    def resolve(self, failure: IoFailure, attempt: int) -> RecoveryAction:
        """Decide what to do about a failure.

        Args:
            failure: The failure that just happened.
            attempt: How many times the operation has been tried for this file,
                starting at 1.

        Returns:
            The action the caller must carry out.
        """
        pass


class FixedRecoveryPolicy(RecoveryPolicy):
    """Headless policy that always answers the same way.

    RETRY must be bounded: it is answered until the operation has been tried
    ``retries + 1`` times, and ``then`` (which cannot be RETRY) is answered
    afterwards. ``retries`` is ignored for the other actions.

    Example:
        >>> from pathlib import Path
        >>> from dir2tar.exceptions import FileOpenError
        >>> failure = FileOpenError(Path("/a"), "t/a", OSError(5, "Input/output error"))
        >>> policy = FixedRecoveryPolicy.retry_once()
        >>> policy.resolve(failure, 1), policy.resolve(failure, 2)
        (<RecoveryAction.RETRY: 'retry'>, <RecoveryAction.IGNORE: 'ignore'>)
    """

    def __init__(
        self,
        action: RecoveryAction,
        retries: Optional[int] = None,
        then: RecoveryAction = RecoveryAction.IGNORE,
    ) -> None:
        if retries is not None and retries < 0:
            raise ValueError("retries cannot be negative")
        if action is RecoveryAction.RETRY and retries is None:
            raise ValueError("RETRY needs a retries limit")
        if then is RecoveryAction.RETRY:
            raise ValueError("then cannot be RETRY")
        self.action = action
        self.retries = retries
        self.then = then

    @classmethod
    def retry_once(cls) -> "FixedRecoveryPolicy":
        return cls(RecoveryAction.RETRY, retries=1, then=RecoveryAction.IGNORE)

    def resolve(self, failure: IoFailure, attempt: int) -> RecoveryAction:
        if self.action is RecoveryAction.RETRY and self.retries is not None and attempt > self.retries:
            action = self.then
        else:
            action = self.action
        logger.warning("%s -> %s", failure, action.value)
        return action

    def __repr__(self) -> str:
        return f"FixedRecoveryPolicy(action={self.action.value!r}, retries={self.retries!r}, then={self.then.value!r})"


class InteractiveRecoveryPolicy(RecoveryPolicy):
    """Policy that asks the operator on the terminal and blocks until answered.

    The prompt is repeated until a recognised answer is given. End of input is
    treated as EXIT, since nobody is left to answer.

    Attributes:
        input_func: Callable reading one answer line, ``input`` by default.
        output: Stream the failure description and prompt are written to.
    """

    CHOICES: Dict[str, RecoveryAction] = {
        "e": RecoveryAction.EXIT,
        "exit": RecoveryAction.EXIT,
        "i": RecoveryAction.IGNORE,
        "ignore": RecoveryAction.IGNORE,
        "r": RecoveryAction.RETRY,
        "retry": RecoveryAction.RETRY,
    }
    PROMPT = "[E]xit, [I]gnore, [R]etry? "

    def __init__(self, input_func: Callable[[str], str] = input, output: Optional[TextIO] = None) -> None:
        self.input_func = input_func
        self.output = output

    def resolve(self, failure: IoFailure, attempt: int) -> RecoveryAction:
        output = self.output if self.output is not None else sys.stderr
        logger.warning("Archive failure on attempt %d: %s", attempt, failure)
        print(f"Error: {failure}", file=output)
        while True:
            output.flush()
            try:
                answer = self.input_func(self.PROMPT)
            except EOFError:
                logger.warning("No answer available on input; exiting.")
                return RecoveryAction.EXIT
            action = self.CHOICES.get(answer.strip().lower())
            if action is not None:
                logger.info("Operator chose %s for \"%s\".", action.value, failure.path)
                return action
            print(f"Unrecognised answer {answer.strip()!r}.", file=output)


def create_policy(mode: str) -> RecoveryPolicy:
    """Create the recovery policy selected by name.

    Args:
        mode: One of ``prompt``, ``ignore``, ``retry-once`` or ``exit``.

    Returns:
        A new policy instance.

    Raises:
        ValueError: If the mode is not recognised.

    Example:
        >>> create_policy("ignore")
        FixedRecoveryPolicy(action='ignore', retries=None, then='ignore')
    """
    if mode == "prompt":
        return InteractiveRecoveryPolicy()
    if mode == "ignore":
        return FixedRecoveryPolicy(RecoveryAction.IGNORE)
    if mode == "retry-once":
        return FixedRecoveryPolicy.retry_once()
    if mode == "exit":
        return FixedRecoveryPolicy(RecoveryAction.EXIT)
    raise ValueError(f"Unknown recovery mode '{mode}'")
