"""Tests for Card and Deck classes."""

import pytest
from hypothesis import given

from conftest import seeds
from fairjack.cards import Card, Deck, Rank, Suit, derive_deck, full_deck
from fairjack.errors import DeckExhausted, ErrorKind


class TestCard:
    """Tests for the Card class."""

    def test_card_creation(self):
        """Test creating a card."""
        card = Card(Rank.ACE, Suit.SPADES)
        assert card.rank == Rank.ACE
        assert card.suit == Suit.SPADES

    def test_card_immutability(self):
        """Test that cards are immutable."""
        card = Card(Rank.ACE, Suit.SPADES)
        with pytest.raises(AttributeError):
            card.rank = Rank.KING

    def test_card_value(self):
        """Test card point values; the ace counts 1 on its own."""
        assert Card(Rank.TWO, Suit.HEARTS).value == 2
        assert Card(Rank.TEN, Suit.HEARTS).value == 10
        assert Card(Rank.JACK, Suit.HEARTS).value == 10
        assert Card(Rank.QUEEN, Suit.HEARTS).value == 10
        assert Card(Rank.KING, Suit.HEARTS).value == 10
        assert Card(Rank.ACE, Suit.HEARTS).value == 1

    def test_card_is_ace(self):
        """Test ace detection."""
        assert Card(Rank.ACE, Suit.SPADES).is_ace
        assert not Card(Rank.KING, Suit.SPADES).is_ace

    def test_card_equality(self):
        """Test cards compare by rank and suit."""
        assert Card(Rank.ACE, Suit.SPADES) == Card(Rank.ACE, Suit.SPADES)
        assert Card(Rank.ACE, Suit.SPADES) != Card(Rank.ACE, Suit.HEARTS)
        assert len({Card(Rank.ACE, Suit.SPADES), Card(Rank.ACE, Suit.SPADES)}) == 1

    def test_card_string(self):
        """Test card string representation."""
        assert str(Card(Rank.ACE, Suit.SPADES)) == "A♠"
        assert str(Card(Rank.TEN, Suit.HEARTS)) == "10♥"
        assert str(Card(Rank.KING, Suit.DIAMONDS)) == "K♦"

    def test_from_string(self):
        """Test parsing cards from strings."""
        assert Card.from_string("AS") == Card(Rank.ACE, Suit.SPADES)
        assert Card.from_string("10h") == Card(Rank.TEN, Suit.HEARTS)
        assert Card.from_string("TD") == Card(Rank.TEN, Suit.DIAMONDS)
        assert Card.from_string("2♣") == Card(Rank.TWO, Suit.CLUBS)

    @pytest.mark.parametrize("text", ["", "A", "1X", "ZS", "11H"])
    def test_from_string_invalid(self, text):
        """Test malformed card strings are rejected."""
        with pytest.raises(ValueError):
            Card.from_string(text)


class TestDeck:
    """Tests for the Deck class."""

    def test_full_deck_domain(self):
        """Test the canonical deck holds every rank of every suit once."""
        cards = full_deck()
        assert len(cards) == 52
        assert len(set(cards)) == 52
        for suit in Suit:
            assert sum(1 for c in cards if c.suit == suit) == 13

    def test_draws_from_front(self):
        """Test cards come off in deck order."""
        deck = Deck([Card.from_string("AS"), Card.from_string("KH")])
        assert deck.draw() == Card(Rank.ACE, Suit.SPADES)
        assert deck.draw() == Card(Rank.KING, Suit.HEARTS)
        assert deck.cards_remaining == 0

    def test_drawn_tracks_history(self):
        """Test drawn cards are kept in draw order."""
        deck = derive_deck(b"history")
        first = deck.draw()
        second = deck.draw()
        assert deck.drawn == [first, second]
        assert deck.order[:2] == [first, second]
        assert len(deck) == 50

    def test_exhausted_deck_raises(self):
        """Test drawing from an empty deck is a typed error."""
        deck = Deck([Card.from_string("AS")])
        deck.draw()
        with pytest.raises(DeckExhausted) as exc_info:
            deck.draw()
        assert exc_info.value.kind == ErrorKind.DECK_EXHAUSTED

    def test_full_deck_exhausts_after_52(self):
        """Test a derived deck yields exactly 52 cards."""
        deck = derive_deck(b"seed material")
        drawn = [deck.draw() for _ in range(52)]
        assert len(set(drawn)) == 52
        with pytest.raises(DeckExhausted):
            deck.draw()


class TestDeriveDeck:
    """Tests for seed-derived deck order."""

    def test_same_seed_same_order(self):
        """Test the order is a pure function of the seed material."""
        assert derive_deck(b"abc").order == derive_deck(b"abc").order

    def test_different_seed_different_order(self):
        """Test distinct seeds give distinct orders."""
        assert derive_deck(b"abc").order != derive_deck(b"abd").order

    def test_shuffled(self):
        """Test the derived order is not the canonical one."""
        assert derive_deck(b"abc").order != full_deck()

    @given(seeds)
    def test_derived_deck_is_permutation(self, seed):
        """Property: every derived deck is a permutation of the 52 cards."""
        order = derive_deck(seed).order
        assert len(order) == 52
        assert set(order) == set(full_deck())
