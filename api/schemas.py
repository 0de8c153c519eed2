"""Pydantic schemas for API requests and responses."""

from decimal import Decimal
from typing import Annotated, Literal

from pydantic import BaseModel, Field

from fairjack.cards import Card
from fairjack.game.snapshot import RoundSnapshot

PositiveAmount = Annotated[Decimal, Field(gt=0)]
ActionName = Literal["hit", "stand", "double", "split"]


# Round schemas
class StartRoundRequest(BaseModel):
    """Request to open a round."""

    bets: list[PositiveAmount] = Field(..., min_length=1, description="One bet per hand")
    player_seed: str | None = Field(default=None, description="Client's 16-byte seed, hex")
    player_pubkey: str | None = Field(default=None, description="Client's 32-byte key, hex")


class StartRoundResponse(BaseModel):
    """Commitments published before any card is dealt."""

    round_token: str
    round_id: str
    commitment: str
    dealer_commitment: str
    player_pubkey: str


class DealRequest(BaseModel):
    """Request to deal; dealer_seed is hex, omitted to use the house seed."""

    dealer_seed: str | None = None


class ActionRequest(BaseModel):
    """Request for player action."""

    action: ActionName
    turn: int = Field(..., ge=0)
    hand_index: int | None = Field(default=None, ge=0)


class CardResponse(BaseModel):
    """Card representation; rank and suit are None for the hole card."""

    rank: int | None
    suit: str | None
    value: int
    label: str
    hidden: bool = False

    @classmethod
    def from_card(cls, card: Card | None) -> "CardResponse":
        if card is None:
            return cls(rank=None, suit=None, value=0, label="??", hidden=True)
        return cls(
            rank=card.rank.value,
            suit=card.suit.value,
            value=card.value,
            label=str(card),
        )


class HandResponse(BaseModel):
    """Hand representation."""

    cards: list[CardResponse]
    state: str
    hard_total: int
    best_total: int
    is_soft: bool
    is_blackjack: bool
    is_busted: bool
    bet: Decimal


class LegalActionsResponse(BaseModel):
    """The four-element legal-action tuple."""

    can_hit: bool
    can_stand: bool
    can_double: bool
    can_split: bool


class RoundStateResponse(BaseModel):
    """Current round state."""

    round_id: str
    phase: str
    dealer_cards: list[CardResponse]
    dealer_total: int
    player_hands: list[HandResponse]
    active_mask: list[bool]
    current_hand_index: int | None
    turn: int
    legal_actions: LegalActionsResponse
    player_commitment: str
    dealer_commitment: str | None
    outcomes: list[str] | None = None
    payouts: list[Decimal] | None = None

    @classmethod
    def from_snapshot(cls, snapshot: RoundSnapshot) -> "RoundStateResponse":
        legal = snapshot.legal_actions
        return cls(
            round_id=snapshot.round_id,
            phase=snapshot.phase.name,
            dealer_cards=[CardResponse.from_card(c) for c in snapshot.dealer_cards],
            dealer_total=snapshot.dealer_total,
            player_hands=[
                HandResponse(
                    cards=[CardResponse.from_card(c) for c in hand.cards],
                    state=hand.state.name,
                    hard_total=hand.hard_total,
                    best_total=hand.best_total,
                    is_soft=hand.is_soft,
                    is_blackjack=hand.is_blackjack,
                    is_busted=hand.is_busted,
                    bet=bet,
                )
                for hand, bet in zip(snapshot.player_hands, snapshot.bets)
            ],
            active_mask=list(snapshot.active_mask),
            current_hand_index=snapshot.current_hand_index,
            turn=snapshot.turn,
            legal_actions=LegalActionsResponse(
                can_hit=legal.can_hit,
                can_stand=legal.can_stand,
                can_double=legal.can_double,
                can_split=legal.can_split,
            ),
            player_commitment=snapshot.player_commitment.hex(),
            dealer_commitment=(
                snapshot.dealer_commitment.hex() if snapshot.dealer_commitment else None
            ),
            outcomes=[o.value for o in snapshot.outcomes] if snapshot.outcomes else None,
            payouts=list(snapshot.payouts) if snapshot.payouts else None,
        )


class RevealResponse(BaseModel):
    """Both seeds with the commitments they must hash to."""

    player_seed: str
    dealer_seed: str
    player_commitment: str
    dealer_commitment: str


class ErrorDetail(BaseModel):
    """Typed rejection with the state to resynchronize from."""

    kind: str
    message: str
    state: RoundStateResponse | None = None


# Verification schemas
class ActionLogEntry(BaseModel):
    """One entry of a round's action log."""

    turn: int = Field(..., ge=0)
    hand_index: int = Field(..., ge=0)
    action: ActionName


class VerifyRequest(BaseModel):
    """A revealed round to replay; bytes fields are hex."""

    round_id: str = "replay"
    player_seed: str
    dealer_seed: str
    player_commitment: str
    dealer_commitment: str
    player_pubkey: str
    bets: list[PositiveAmount] = Field(..., min_length=1)
    actions: list[ActionLogEntry] = []
    payouts: list[Decimal] | None = None


class VerifyResponse(BaseModel):
    """Verification verdict."""

    valid: bool
    kind: str | None = None
    message: str | None = None
    state: RoundStateResponse | None = None
