"""Table service: the engine's interface to the transport layer."""

import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Sequence

from fairjack.errors import IllegalAction, RoundNotFound
from fairjack.fairness import (
    RandomSource,
    SystemRandomSource,
    commit,
    generate_pubkey,
    generate_seed,
)
from fairjack.game.actions import Action, LegalActions
from fairjack.game.events import EventHandler, EventType, GameEvent
from fairjack.game.round import GameRound
from fairjack.game.snapshot import RoundSnapshot
from fairjack.rules import RuleSet

logger = logging.getLogger(__name__)


class Dealer:
    """House side of the commitment protocol: one secret seed per round."""

    def __init__(self, random_source: RandomSource) -> None:
        self._random = random_source
        self._seeds: dict[str, bytes] = {}

    def open(self, round_id: str) -> bytes:
        """Draw a seed for the round and return its commitment."""
        seed = generate_seed(self._random)
        self._seeds[round_id] = seed
        return commit(seed)

    def seed_for(self, round_id: str) -> bytes:
        """Return the held seed for a round."""
        try:
            return self._seeds[round_id]
        except KeyError:
            raise RoundNotFound(round_id) from None

    def forget(self, round_id: str) -> None:
        self._seeds.pop(round_id, None)


def _log_event(event: GameEvent) -> None:
    logger.debug("%s", event)


class Table:
    """
    Registry of independent rounds sharing one random source.

    Rounds never share mutable state; an error raised for one round
    leaves every other round untouched.
    """

    def __init__(
        self,
        rules: RuleSet | None = None,
        random_source: RandomSource | None = None,
        dealer: Dealer | None = None,
        min_bet: int | Decimal | None = None,
        max_bet: int | Decimal | None = None,
        round_ttl: int | None = None,
    ) -> None:
        """
        Initialize a table.

        Args:
            rules: Rules applied to every round at this table
            random_source: Source for seeds and keys (OS CSPRNG by default)
            dealer: House dealer (one sharing random_source by default)
            min_bet: Smallest accepted bet per hand
            max_bet: Largest accepted bet per hand
            round_ttl: Seconds a round is kept before cleanup_expired drops it
        """
        self.rules = rules or RuleSet()
        self._random = random_source or SystemRandomSource()
        self.dealer = dealer or Dealer(self._random)
        self.min_bet = Decimal(str(min_bet)) if min_bet is not None else None
        self.max_bet = Decimal(str(max_bet)) if max_bet is not None else None
        self.round_ttl = round_ttl
        self._rounds: dict[str, tuple[GameRound, datetime]] = {}
        self._subscribers: list[tuple[EventHandler, EventType | None]] = []

    def subscribe(self, handler: EventHandler, event_type: EventType | None = None) -> None:
        """Subscribe to events of every round opened after this call."""
        self._subscribers.append((handler, event_type))

    def get(self, round_id: str) -> GameRound:
        """Look up a round by id."""
        try:
            game_round, _ = self._rounds[round_id]
        except KeyError:
            raise RoundNotFound(round_id) from None
        return game_round

    def _validate_bets(self, bet_amounts: Sequence[int | Decimal | str]) -> None:
        for amount in bet_amounts:
            value = Decimal(str(amount))
            if self.min_bet is not None and value < self.min_bet:
                raise ValueError(f"Bet must be at least {self.min_bet}")
            if self.max_bet is not None and value > self.max_bet:
                raise ValueError(f"Bet must be at most {self.max_bet}")

    def start_round(
        self,
        bet_amounts: Sequence[int | Decimal | str],
        player_seed: bytes | None = None,
        player_pubkey: bytes | None = None,
    ) -> tuple[bytes, str]:
        """
        Open a round and record both commitments. Deals nothing.

        Args:
            bet_amounts: One bet per initial player hand
            player_seed: The client's own secret seed; drawn from the table's
                random source only when the client brings none
            player_pubkey: The client's per-round key, drawn likewise

        Returns:
            The player's commitment digest and the new round id
        """
        self._validate_bets(bet_amounts)
        if player_seed is None:
            player_seed = generate_seed(self._random)
        if player_pubkey is None:
            player_pubkey = generate_pubkey(self._random)
        game_round = GameRound(
            bets=bet_amounts,
            player_seed=player_seed,
            player_pubkey=player_pubkey,
            rules=self.rules,
        )
        game_round.subscribe(_log_event)
        for handler, event_type in self._subscribers:
            game_round.subscribe(handler, event_type)

        game_round.record_dealer_commitment(self.dealer.open(game_round.round_id))
        self._rounds[game_round.round_id] = (game_round, datetime.now())
        logger.info(
            "Round %s opened with %d hand(s)",
            game_round.round_id,
            len(game_round.player_hands),
        )
        return game_round.player_commitment, game_round.round_id

    def deal(self, round_id: str, dealer_seed: bytes | None = None) -> RoundSnapshot:
        """
        Deal the opening hands.

        Args:
            round_id: Round to deal
            dealer_seed: The dealer's revealed seed; the house dealer's held
                seed when omitted

        Raises:
            CommitmentMismatch: dealer_seed does not match the dealer commitment
        """
        game_round = self.get(round_id)
        if dealer_seed is None:
            dealer_seed = self.dealer.seed_for(round_id)
        return game_round.deal(dealer_seed)

    def submit_action(
        self,
        round_id: str,
        action: Action | str,
        turn: int,
        hand_index: int | None = None,
    ) -> tuple[RoundSnapshot, LegalActions]:
        """Apply one action and return the new state with its legal actions."""
        game_round = self.get(round_id)
        legal = game_round.apply(action, turn, hand_index=hand_index)
        return game_round.snapshot(), legal

    def reveal(self, round_id: str) -> tuple[bytes, bytes]:
        """Reveal (player_seed, dealer_seed) once the round is over."""
        return self.get(round_id).reveal()

    def verify(self, round_id: str, player_seed: bytes, dealer_seed: bytes) -> None:
        """Check claimed seeds against the round's commitments without touching the round."""
        self.get(round_id).verify_seeds(player_seed, dealer_seed)

    def commitments(self, round_id: str) -> tuple[bytes, bytes]:
        """
        Return the published (player, dealer) commitments.

        Raises:
            IllegalAction: the dealer has not committed yet
        """
        game_round = self.get(round_id)
        if game_round.dealer_commitment is None:
            raise IllegalAction("No dealer commitment on record", snapshot=game_round.snapshot())
        return game_round.player_commitment, game_round.dealer_commitment

    def snapshot(self, round_id: str) -> RoundSnapshot:
        return self.get(round_id).snapshot()

    def discard(self, round_id: str) -> None:
        """Drop a round and the dealer's seed for it."""
        self._rounds.pop(round_id, None)
        self.dealer.forget(round_id)

    def cleanup_expired(self) -> int:
        """Remove rounds older than round_ttl."""
        if self.round_ttl is None:
            return 0
        cutoff = datetime.now() - timedelta(seconds=self.round_ttl)
        expired = [rid for rid, (_, created) in self._rounds.items() if created < cutoff]
        for rid in expired:
            self.discard(rid)
        return len(expired)

    def __contains__(self, round_id: object) -> bool:
        return round_id in self._rounds

    def __len__(self) -> int:
        return len(self._rounds)
