"""Hand scoring and per-hand state for blackjack."""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Iterable, Iterator

from fairjack.cards import Card


class HandState(Enum):
    """Per-hand lifecycle. Only ACTIVE hands may act."""

    ACTIVE = auto()
    STANDING = auto()
    BUSTED = auto()
    DOUBLED_STANDING = auto()
    SPLIT = auto()

    @property
    def is_terminal(self) -> bool:
        return self in (HandState.STANDING, HandState.BUSTED, HandState.DOUBLED_STANDING)

    def __str__(self) -> str:
        return self.name.replace("_", " ").title()


# Valid hand state transitions
HAND_TRANSITIONS: dict[HandState, list[HandState]] = {
    HandState.ACTIVE: [
        HandState.ACTIVE,
        HandState.STANDING,
        HandState.BUSTED,
        HandState.DOUBLED_STANDING,
        HandState.SPLIT,
    ],
    HandState.STANDING: [],
    HandState.BUSTED: [],
    HandState.DOUBLED_STANDING: [],
    HandState.SPLIT: [],  # Replaced by two new ACTIVE hands
}


class Outcome(Enum):
    """Result of one player hand against the dealer."""

    BLACKJACK = "blackjack"
    WIN = "win"
    PUSH = "push"
    LOSE = "lose"


def hard_total(cards: Iterable[Card]) -> int:
    """Sum of card values with every ace counted as 1."""
    return sum(card.value for card in cards)


def best_total(cards: Iterable[Card]) -> int:
    """
    Calculate the blackjack-optimal total.

    At most one ace is promoted to 11, and only if that does not bust.
    """
    cards = list(cards)
    total = hard_total(cards)
    if any(card.is_ace for card in cards) and total + 10 <= 21:
        total += 10
    return total


@dataclass
class Hand:
    """An ordered sequence of cards owned by the dealer or one player slot."""

    cards: list[Card] = field(default_factory=list)
    state: HandState = HandState.ACTIVE
    is_split_hand: bool = False

    def add_card(self, card: Card) -> None:
        """Add a card to the hand."""
        self.cards.append(card)

    def transition_to(self, new_state: HandState) -> None:
        """Move to a new state, refusing transitions out of terminal states."""
        if new_state not in HAND_TRANSITIONS[self.state]:
            raise ValueError(f"Invalid hand transition: {self.state.name} -> {new_state.name}")
        self.state = new_state

    @property
    def hard_total(self) -> int:
        return hard_total(self.cards)

    @property
    def value(self) -> int:
        """Best total for the hand."""
        return best_total(self.cards)

    @property
    def is_soft(self) -> bool:
        """Check if an ace is currently counted as 11."""
        return self.value != self.hard_total

    @property
    def is_blackjack(self) -> bool:
        """Check if the hand is a natural (two-card 21, not from a split)."""
        return (
            len(self.cards) == 2
            and self.value == 21
            and not self.is_split_hand
        )

    @property
    def is_busted(self) -> bool:
        """Check if the hand has busted (hard total > 21)."""
        return self.hard_total > 21

    @property
    def is_pair(self) -> bool:
        """Check if the hand is two cards of equal rank."""
        return (
            len(self.cards) == 2
            and self.cards[0].rank == self.cards[1].rank
        )

    @property
    def is_active(self) -> bool:
        return self.state == HandState.ACTIVE

    def __len__(self) -> int:
        return len(self.cards)

    def __iter__(self) -> Iterator[Card]:
        return iter(self.cards)

    def __str__(self) -> str:
        cards_str = " ".join(str(card) for card in self.cards)
        value_str = f"({self.value})"
        if self.is_soft:
            value_str = f"(soft {self.value})"
        if self.is_blackjack:
            value_str = "(BLACKJACK)"
        if self.is_busted:
            value_str = "(BUST)"
        return f"{cards_str} {value_str}"

    def __repr__(self) -> str:
        return f"Hand({self.cards!r}, value={self.value}, state={self.state.name})"


def evaluate_hands(player_hand: Hand, dealer_hand: Hand) -> Outcome:
    """
    Compare a finished player hand with the dealer's.

    A player bust loses regardless of the dealer. A player natural beats
    any dealer hand that is not itself a natural.
    """
    if player_hand.is_busted:
        return Outcome.LOSE

    player_bj = player_hand.is_blackjack
    dealer_bj = dealer_hand.is_blackjack

    if player_bj and dealer_bj:
        return Outcome.PUSH
    if player_bj:
        return Outcome.BLACKJACK
    if dealer_bj:
        return Outcome.LOSE

    if dealer_hand.is_busted:
        return Outcome.WIN

    player_value = player_hand.value
    dealer_value = dealer_hand.value
    if player_value > dealer_value:
        return Outcome.WIN
    if dealer_value > player_value:
        return Outcome.LOSE
    return Outcome.PUSH
