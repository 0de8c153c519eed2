"""Typed round errors.

Play errors (illegal or stale actions) are recoverable and leave the round
untouched. Integrity errors mean the fairness protocol was violated and
the round must be treated as disputed.
"""

from enum import Enum
from typing import Any


class ErrorKind(Enum):
    """Error kinds surfaced to callers."""

    ILLEGAL_ACTION = "ILLEGAL_ACTION"
    DECK_EXHAUSTED = "DECK_EXHAUSTED"
    COMMITMENT_MISMATCH = "COMMITMENT_MISMATCH"
    STALE_ACTION = "STALE_ACTION"
    REPLAY_MISMATCH = "REPLAY_MISMATCH"

    def __str__(self) -> str:
        return self.value


class RoundError(Exception):
    """Base class for errors local to a single round."""

    kind: ErrorKind

    def __init__(self, message: str, snapshot: Any = None) -> None:
        super().__init__(message)
        self.message = message
        # Current round state so the caller can resynchronize
        self.snapshot = snapshot

    def __str__(self) -> str:
        return f"{self.kind}: {self.message}"


class PlayError(RoundError):
    """A usage mistake; the round is unchanged."""


class IllegalAction(PlayError):
    """Action is not in the current legal set, or no hand may act."""

    kind = ErrorKind.ILLEGAL_ACTION


class StaleAction(PlayError):
    """Action carries an out-of-order or replayed turn counter."""

    kind = ErrorKind.STALE_ACTION


class DeckExhausted(RoundError):
    """A card was requested from an empty deck. Fatal to the round."""

    kind = ErrorKind.DECK_EXHAUSTED


class IntegrityError(RoundError):
    """The fairness protocol was violated."""


class ReplayMismatch(IntegrityError):
    """Replaying a round record does not reproduce its recorded result."""

    kind = ErrorKind.REPLAY_MISMATCH


class CommitmentMismatch(IntegrityError):
    """A revealed seed does not hash to its published commitment."""

    kind = ErrorKind.COMMITMENT_MISMATCH

    def __init__(
        self,
        message: str,
        snapshot: Any = None,
        party: str | None = None,
    ) -> None:
        super().__init__(message, snapshot)
        self.party = party


class RoundNotFound(KeyError):
    """No round is registered under the given id."""

    def __init__(self, round_id: str) -> None:
        super().__init__(round_id)
        self.round_id = round_id

    def __str__(self) -> str:
        return f"Unknown round: {self.round_id}"
