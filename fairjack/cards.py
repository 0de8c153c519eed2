"""Card and Deck classes - immutable cards and seed-derived deck order."""

import hashlib
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterator

from fairjack.errors import DeckExhausted

logger = logging.getLogger(__name__)

_SUIT_SYMBOLS = {"hearts": "♥", "diamonds": "♦", "clubs": "♣", "spades": "♠"}
_FACE_LABELS = {1: "A", 11: "J", 12: "Q", 13: "K"}


class Suit(Enum):
    HEARTS = "hearts"
    DIAMONDS = "diamonds"
    CLUBS = "clubs"
    SPADES = "spades"

    def __str__(self) -> str:
        return _SUIT_SYMBOLS[self.value]


class Rank(Enum):
    """Card ranks 1..13, ace low."""

    ACE = 1
    TWO = 2
    THREE = 3
    FOUR = 4
    FIVE = 5
    SIX = 6
    SEVEN = 7
    EIGHT = 8
    NINE = 9
    TEN = 10
    JACK = 11
    QUEEN = 12
    KING = 13

    def __str__(self) -> str:
        return _FACE_LABELS.get(self.value, str(self.value))

    @property
    def blackjack_value(self) -> int:
        """Point value with faces at 10 and the ace at 1."""
        return min(self.value, 10)

    @property
    def is_ace(self) -> bool:
        return self is Rank.ACE


@dataclass(frozen=True, slots=True)
class Card:
    """A rank and suit. Equal cards compare and hash equal."""

    rank: Rank
    suit: Suit

    def __str__(self) -> str:
        return f"{self.rank}{self.suit}"

    def __repr__(self) -> str:
        return f"Card({self.rank.name}, {self.suit.name})"

    @property
    def value(self) -> int:
        """Point value; whether an ace counts 11 is decided by the hand."""
        return self.rank.blackjack_value

    @property
    def is_ace(self) -> bool:
        return self.rank.is_ace

    @classmethod
    def from_string(cls, text: str) -> "Card":
        """
        Parse short notation: rank then suit, e.g. 'AS', '10h', 'T♦'.

        Raises:
            ValueError: if either part is not recognized
        """
        text = text.strip().upper()
        rank = _RANK_CODES.get(text[:-1])
        suit = _SUIT_CODES.get(text[-1:])
        if rank is None or suit is None:
            raise ValueError(f"Invalid card: {text!r}")
        return cls(rank, suit)


_RANK_CODES = {str(rank): rank for rank in Rank} | {"1": Rank.ACE, "T": Rank.TEN}
_SUIT_CODES = {suit.name[0]: suit for suit in Suit} | {str(suit): suit for suit in Suit}


def full_deck() -> list[Card]:
    """Return the 52-card domain in canonical order (suit-major)."""
    return [Card(rank, suit) for suit in Suit for rank in Rank]


class _HashStream:
    """SHA-256 in counter mode, used as the shuffle's byte source."""

    def __init__(self, key: bytes) -> None:
        self._key = key
        self._counter = 0
        self._buffer = b""

    def read(self, n: int) -> bytes:
        while len(self._buffer) < n:
            block = hashlib.sha256(
                self._key + self._counter.to_bytes(8, "big")
            ).digest()
            self._buffer += block
            self._counter += 1
        out, self._buffer = self._buffer[:n], self._buffer[n:]
        return out

    def below(self, bound: int) -> int:
        """Uniform integer in [0, bound) by rejection sampling."""
        # 32-bit draws; reject the tail that would bias the modulo
        limit = (1 << 32) - ((1 << 32) % bound)
        while True:
            x = int.from_bytes(self.read(4), "big")
            if x < limit:
                return x % bound


class Deck:
    """
    An ordered 52-card deck.

    Cards are drawn from the front. The order is fixed at construction so
    the same seed material always reproduces the same deal.
    """

    def __init__(self, cards: list[Card] | None = None) -> None:
        """Initialize a deck, in canonical order unless cards are given."""
        self._cards: list[Card] = list(cards) if cards is not None else full_deck()
        self._position = 0

    @classmethod
    def from_seed(cls, seed_material: bytes) -> "Deck":
        """
        Shuffle the canonical deck with Fisher-Yates keyed by seed material.

        Args:
            seed_material: Combined seed bytes from both parties

        Returns:
            A deck whose order depends only on seed_material
        """
        cards = full_deck()
        stream = _HashStream(seed_material)
        for i in range(len(cards) - 1, 0, -1):
            j = stream.below(i + 1)
            cards[i], cards[j] = cards[j], cards[i]
        return cls(cards)

    def draw(self) -> Card:
        """Draw the next card from the front of the deck."""
        if self._position >= len(self._cards):
            raise DeckExhausted("Cannot draw from an exhausted deck")
        card = self._cards[self._position]
        self._position += 1
        logger.debug("Drew %s (%d left)", card, self.cards_remaining)
        return card

    @property
    def order(self) -> list[Card]:
        """Return the full deck order, including drawn cards."""
        return list(self._cards)

    @property
    def drawn(self) -> list[Card]:
        """Return the cards drawn so far, in draw order."""
        return self._cards[: self._position]

    @property
    def cards_remaining(self) -> int:
        """Return the number of cards remaining."""
        return len(self._cards) - self._position

    def __len__(self) -> int:
        return self.cards_remaining

    def __iter__(self) -> Iterator[Card]:
        return iter(self._cards[self._position :])


def derive_deck(seed_material: bytes) -> Deck:
    """Derive the round's deck from combined seed material."""
    return Deck.from_seed(seed_material)
