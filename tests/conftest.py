"""Pytest fixtures for fairjack tests."""

import os

# Endpoint tests make many requests from one client address
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import pytest
from hypothesis import strategies as st

from fairjack.cards import Card, Deck, Rank, Suit
from fairjack.fairness import SeededRandomSource, commit
from fairjack.game import GameRound, RoundPhase, Table
from fairjack.hand import Hand
from fairjack.rules import RuleSet

PLAYER_SEED = bytes(range(16))
PLAYER_PUBKEY = bytes(range(32))
DEALER_SEED = bytes(range(100, 116))


def make_hand(*cards: str) -> Hand:
    """Build a hand from short card strings like 'AH', '10C'."""
    hand = Hand()
    for card in cards:
        hand.add_card(Card.from_string(card))
    return hand


def play_out(game_round: GameRound) -> None:
    """Stand on every hand until the round leaves the player turn."""
    while game_round.phase == RoundPhase.PLAYER_TURN:
        game_round.apply("stand", game_round.turn)


@pytest.fixture
def random_source():
    """Seeded random source for reproducible tests."""
    return SeededRandomSource(42)


@pytest.fixture
def rules():
    """Default ruleset."""
    return RuleSet()


@pytest.fixture
def table(random_source):
    """A table drawing seeds from the seeded source."""
    return Table(random_source=random_source, min_bet=1, max_bet=1000)


@pytest.fixture
def new_round():
    """A round with the player's commitment only."""
    return GameRound(bets=[10], player_seed=PLAYER_SEED, player_pubkey=PLAYER_PUBKEY)


@pytest.fixture
def committed_round(new_round):
    """A round with both commitments recorded, not yet dealt."""
    new_round.record_dealer_commitment(commit(DEALER_SEED))
    return new_round


@pytest.fixture
def stacked_round(monkeypatch):
    """
    Factory for dealt rounds whose deck holds exactly the given cards.

    Deal order is each player hand, dealer up card, each player hand,
    dealer hole card, then whatever actions draw.
    """

    def factory(*cards: str, bets=(10,), rules: RuleSet | None = None) -> GameRound:
        deck = Deck([Card.from_string(c) for c in cards])
        monkeypatch.setattr("fairjack.game.round.derive_deck", lambda _material: deck)
        game_round = GameRound(
            bets=list(bets),
            player_seed=PLAYER_SEED,
            player_pubkey=PLAYER_PUBKEY,
            rules=rules,
        )
        game_round.record_dealer_commitment(commit(DEALER_SEED))
        game_round.deal(DEALER_SEED)
        return game_round

    return factory


@pytest.fixture
def empty_hand():
    """An empty player hand."""
    return Hand()


@pytest.fixture
def blackjack_hand():
    """A natural blackjack hand."""
    return make_hand("AH", "10C")


@pytest.fixture
def soft_17_hand():
    """A soft 17 hand (A-6)."""
    return make_hand("AS", "6H")


@pytest.fixture
def hard_16_hand():
    """A hard 16 hand (10-6)."""
    return make_hand("10S", "6H")


@pytest.fixture
def bust_hand():
    """A busted hand (10-6-K)."""
    return make_hand("10S", "6H", "KD")


@pytest.fixture
def pair_8s_hand():
    """A pair of 8s hand."""
    return make_hand("8C", "8H")


# Hypothesis strategies for property-based testing
cards = st.builds(Card, st.sampled_from(list(Rank)), st.sampled_from(list(Suit)))
card_lists = st.lists(cards, min_size=0, max_size=8)
seeds = st.binary(min_size=16, max_size=16)
