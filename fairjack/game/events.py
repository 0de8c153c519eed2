"""Round events for the event system."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from typing import Any, Callable


class EventType(Enum):
    """Types of round events."""

    # Protocol events
    ROUND_STARTED = auto()
    ROUND_COMMITTED = auto()
    SEEDS_REVEALED = auto()

    # Card events
    CARD_DEALT = auto()

    # Player action events
    PLAYER_HIT = auto()
    PLAYER_STAND = auto()
    PLAYER_DOUBLE = auto()
    PLAYER_SPLIT = auto()

    # Dealer events
    DEALER_REVEALS = auto()
    DEALER_HITS = auto()
    DEALER_STANDS = auto()
    DEALER_BUSTS = auto()
    DEALER_BLACKJACK = auto()

    # Outcome events
    PLAYER_BLACKJACK = auto()
    PLAYER_BUSTS = auto()
    HAND_SETTLED = auto()
    ROUND_SETTLED = auto()

    # Error events
    INVALID_ACTION = auto()
    STALE_ACTION = auto()
    COMMITMENT_MISMATCH = auto()
    DECK_EXHAUSTED = auto()


@dataclass(frozen=True)
class GameEvent:
    """
    Immutable round event.

    Events let observers (logging, transport) follow a round without
    reaching into its state.
    """

    event_type: EventType
    round_id: str = ""
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)

    def __str__(self) -> str:
        return f"{self.event_type.name}[{self.round_id}]: {self.data}"


EventHandler = Callable[[GameEvent], None]


class EventEmitter:
    """
    Fans a round's events out to subscribers and keeps them in order.

    A subscriber registered with an event type sees only that type;
    one registered without sees everything.
    """

    def __init__(self, round_id: str = "") -> None:
        self._round_id = round_id
        self._subscribers: list[tuple[EventType | None, EventHandler]] = []
        self._log: list[GameEvent] = []

    def subscribe(self, handler: EventHandler, event_type: EventType | None = None) -> None:
        self._subscribers.append((event_type, handler))

    def emit(self, event: GameEvent) -> None:
        self._log.append(event)
        for wanted, handler in self._subscribers:
            if wanted is None or wanted == event.event_type:
                handler(event)

    def emit_new(self, event_type: EventType, **data: Any) -> GameEvent:
        """Build an event stamped with this round's id and emit it."""
        event = GameEvent(event_type=event_type, round_id=self._round_id, data=data)
        self.emit(event)
        return event

    @property
    def history(self) -> tuple[GameEvent, ...]:
        return tuple(self._log)

    def of_type(self, event_type: EventType) -> list[GameEvent]:
        """Past events of one type, oldest first."""
        return [event for event in self._log if event.event_type == event_type]
