"""Round state machine, action processor and table service."""

from fairjack.game.actions import Action, LegalActions, derive_legal_actions
from fairjack.game.events import EventType, GameEvent
from fairjack.game.round import GameRound
from fairjack.game.snapshot import RoundRecord, RoundSnapshot
from fairjack.game.state import RoundPhase
from fairjack.game.table import Dealer, Table
from fairjack.game.verify import replay_round, verify_record

__all__ = [
    "Action",
    "LegalActions",
    "derive_legal_actions",
    "EventType",
    "GameEvent",
    "GameRound",
    "RoundRecord",
    "RoundSnapshot",
    "RoundPhase",
    "Dealer",
    "Table",
    "replay_round",
    "verify_record",
]
