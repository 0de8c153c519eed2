"""Read-only views of a round handed to the transport layer."""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from fairjack.cards import Card
from fairjack.game.actions import Action, LegalActions
from fairjack.game.state import RoundPhase
from fairjack.hand import HandState, Outcome
from fairjack.rules import RuleSet


@dataclass(frozen=True)
class HandSnapshot:
    """One player hand as seen by the caller."""

    cards: tuple[Card, ...]
    state: HandState
    hard_total: int
    best_total: int
    is_soft: bool
    is_blackjack: bool
    is_busted: bool


@dataclass(frozen=True)
class ActionRecord:
    """An applied action, as kept in the round's action log."""

    turn: int
    hand_index: int
    action: Action


@dataclass(frozen=True)
class RoundSnapshot:
    """
    Immutable state of a round.

    While players are acting, the dealer's hole card is withheld: it appears
    as None in dealer_cards and is left out of dealer_total.
    """

    round_id: str
    phase: RoundPhase
    dealer_cards: tuple[Card | None, ...]
    dealer_total: int
    player_hands: tuple[HandSnapshot, ...]
    active_mask: tuple[bool, ...]
    bets: tuple[Decimal, ...]
    current_hand_index: int | None
    legal_actions: LegalActions
    turn: int
    player_commitment: bytes
    dealer_commitment: bytes | None
    player_pubkey: bytes
    outcomes: tuple[Outcome, ...] | None = None
    payouts: tuple[Decimal, ...] | None = None
    cards_remaining: int | None = None

    @property
    def hole_card_hidden(self) -> bool:
        return any(card is None for card in self.dealer_cards)

    @property
    def total_payout(self) -> Decimal | None:
        if self.payouts is None:
            return None
        return sum(self.payouts, Decimal("0"))

    def to_dict(self) -> dict[str, Any]:
        """Serialize to JSON-friendly primitives."""
        return {
            "round_id": self.round_id,
            "phase": self.phase.name,
            "dealer_cards": [_card_dict(c) for c in self.dealer_cards],
            "dealer_total": self.dealer_total,
            "player_hands": [
                {
                    "cards": [_card_dict(c) for c in hand.cards],
                    "state": hand.state.name,
                    "hard_total": hand.hard_total,
                    "best_total": hand.best_total,
                    "is_soft": hand.is_soft,
                    "is_blackjack": hand.is_blackjack,
                    "is_busted": hand.is_busted,
                }
                for hand in self.player_hands
            ],
            "active_mask": list(self.active_mask),
            "bets": [str(b) for b in self.bets],
            "current_hand_index": self.current_hand_index,
            "legal_actions": list(self.legal_actions),
            "turn": self.turn,
            "player_commitment": self.player_commitment.hex(),
            "dealer_commitment": self.dealer_commitment.hex() if self.dealer_commitment else None,
            "player_pubkey": self.player_pubkey.hex(),
            "outcomes": [o.value for o in self.outcomes] if self.outcomes is not None else None,
            "payouts": [str(p) for p in self.payouts] if self.payouts is not None else None,
        }


@dataclass(frozen=True)
class RoundRecord:
    """Everything a third party needs to replay and verify a settled round."""

    round_id: str
    player_seed: bytes
    dealer_seed: bytes
    player_commitment: bytes
    dealer_commitment: bytes
    player_pubkey: bytes
    bets: tuple[Decimal, ...]
    actions: tuple[ActionRecord, ...] = field(default_factory=tuple)
    payouts: tuple[Decimal, ...] | None = None
    rules: RuleSet = field(default_factory=RuleSet)


def _card_dict(card: Card | None) -> dict[str, Any]:
    if card is None:
        return {"rank": None, "suit": None, "value": 0, "hidden": True}
    return {
        "rank": card.rank.value,
        "suit": card.suit.value,
        "value": card.value,
        "hidden": False,
    }
