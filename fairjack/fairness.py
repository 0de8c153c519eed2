"""Seed commitment protocol.

Each party draws a secret seed, publishes only its SHA-256 commitment,
and reveals the seed after the round settles. The deck is derived from
both seeds, so neither party alone controls the card order.
"""

import hashlib
import hmac
import secrets
from random import Random
from typing import Protocol

from fairjack.errors import CommitmentMismatch

SEED_SIZE = 16
PUBKEY_SIZE = 32
COMMITMENT_SIZE = 32


class RandomSource(Protocol):
    """Provider of random bytes, injected wherever seeds are generated."""

    def token_bytes(self, n: int) -> bytes:
        ...


class SystemRandomSource:
    """Cryptographically secure source backed by the OS CSPRNG."""

    def token_bytes(self, n: int) -> bytes:
        return secrets.token_bytes(n)


class SeededRandomSource:
    """Deterministic source for tests and reproducible simulations."""

    def __init__(self, seed: int | bytes = 0) -> None:
        self._rng = Random(seed)

    def token_bytes(self, n: int) -> bytes:
        return self._rng.randbytes(n)


def generate_seed(source: RandomSource) -> bytes:
    """Draw a fresh 16-byte round seed."""
    return source.token_bytes(SEED_SIZE)


def generate_pubkey(source: RandomSource) -> bytes:
    """Draw a 32-byte per-round client key."""
    return source.token_bytes(PUBKEY_SIZE)


def commit(seed: bytes) -> bytes:
    """Return the 32-byte SHA-256 commitment to a seed."""
    return hashlib.sha256(seed).digest()


def verify_commitment(seed: bytes, commitment: bytes, party: str | None = None) -> None:
    """
    Check a revealed seed against its earlier commitment.

    Raises:
        CommitmentMismatch: if the seed does not hash to the commitment
    """
    if not hmac.compare_digest(commit(seed), commitment):
        who = f"{party} " if party else ""
        raise CommitmentMismatch(
            f"Revealed {who}seed does not match its commitment",
            party=party,
        )


def combine_seeds(dealer_seed: bytes, player_seed: bytes) -> bytes:
    """Combine both revealed seeds into the deck's seed material."""
    return hashlib.sha256(dealer_seed + player_seed).digest()
