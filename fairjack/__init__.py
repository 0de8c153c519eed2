"""Provably fair blackjack engine - 100% transport-agnostic."""

from fairjack.cards import Card, Deck, Rank, Suit, derive_deck
from fairjack.errors import (
    CommitmentMismatch,
    DeckExhausted,
    ErrorKind,
    IllegalAction,
    RoundError,
    RoundNotFound,
    StaleAction,
)
from fairjack.fairness import commit, generate_seed, verify_commitment
from fairjack.hand import Hand, HandState, best_total, hard_total
from fairjack.rules import RuleSet

__all__ = [
    "Card",
    "Deck",
    "Rank",
    "Suit",
    "derive_deck",
    "CommitmentMismatch",
    "DeckExhausted",
    "ErrorKind",
    "IllegalAction",
    "RoundError",
    "RoundNotFound",
    "StaleAction",
    "commit",
    "generate_seed",
    "verify_commitment",
    "Hand",
    "HandState",
    "best_total",
    "hard_total",
    "RuleSet",
]
