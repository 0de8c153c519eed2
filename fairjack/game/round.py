"""Game round aggregate with phase state machine and action processor."""

import logging
from decimal import Decimal
from typing import Callable, Sequence
from uuid import uuid4

from transitions import Machine

from fairjack.cards import Card, Deck, derive_deck
from fairjack.errors import (
    CommitmentMismatch,
    DeckExhausted,
    IllegalAction,
    StaleAction,
)
from fairjack.fairness import (
    COMMITMENT_SIZE,
    PUBKEY_SIZE,
    SEED_SIZE,
    combine_seeds,
    commit,
    verify_commitment,
)
from fairjack.game.actions import Action, LegalActions, NO_ACTIONS, derive_legal_actions
from fairjack.game.events import EventEmitter, EventType, GameEvent
from fairjack.game.snapshot import ActionRecord, HandSnapshot, RoundRecord, RoundSnapshot
from fairjack.game.state import RoundPhase
from fairjack.hand import Hand, HandState, Outcome, best_total, evaluate_hands
from fairjack.rules import RuleSet

logger = logging.getLogger(__name__)


class GameRound:
    """
    One round of blackjack between the house and a single client.

    All mutation goes through record_dealer_commitment, deal and apply.
    The player's commitment is fixed at construction; the deck only comes
    into existence once the dealer's commitment has also been recorded.
    """

    # State machine states
    STATES = [p.name.lower() for p in RoundPhase]

    # State machine transitions
    TRANSITIONS = [
        {"trigger": "commitments_recorded", "source": "uncommitted", "dest": "committed"},
        {"trigger": "cards_dealt", "source": "committed", "dest": "player_turn"},
        {"trigger": "players_done", "source": "player_turn", "dest": "dealer_turn"},
        {"trigger": "dealer_done", "source": "dealer_turn", "dest": "settled"},
        {
            "trigger": "flag_disputed",
            "source": ["uncommitted", "committed", "player_turn", "dealer_turn", "settled", "void"],
            "dest": "disputed",
        },
        {
            "trigger": "flag_void",
            "source": ["committed", "player_turn", "dealer_turn"],
            "dest": "void",
        },
    ]

    def __init__(
        self,
        bets: Sequence[int | Decimal | str],
        player_seed: bytes,
        player_pubkey: bytes,
        rules: RuleSet | None = None,
        round_id: str | None = None,
    ) -> None:
        """
        Create a round at bet time. No cards are dealt yet.

        Args:
            bets: One bet amount per initial player hand
            player_seed: The client's 16-byte secret seed
            player_pubkey: The client's 32-byte per-round key
            rules: Table rules (uses defaults if not provided)
            round_id: Identifier; a fresh UUID if not provided
        """
        self.rules = rules or RuleSet()
        self.round_id = round_id or str(uuid4())

        if len(player_seed) != SEED_SIZE:
            raise ValueError(f"player_seed must be {SEED_SIZE} bytes")
        if len(player_pubkey) != PUBKEY_SIZE:
            raise ValueError(f"player_pubkey must be {PUBKEY_SIZE} bytes")
        amounts = [Decimal(str(b)) for b in bets]
        if not amounts:
            raise ValueError("At least one bet is required")
        if len(amounts) > self.rules.max_initial_hands:
            raise ValueError(f"At most {self.rules.max_initial_hands} hands per round")
        if any(a <= 0 for a in amounts):
            raise ValueError("Bets must be positive")

        self.player_seed = player_seed
        self.player_pubkey = player_pubkey
        self.player_commitment = commit(player_seed)
        self.dealer_commitment: bytes | None = None
        self._dealer_seed: bytes | None = None

        self.initial_bets: tuple[Decimal, ...] = tuple(amounts)
        self.bets: list[Decimal] = list(amounts)
        self.player_hands: list[Hand] = [Hand() for _ in amounts]
        self.dealer_hand = Hand()
        self.current_hand_index: int | None = 0
        self.turn = 0
        self.action_log: list[ActionRecord] = []
        self.outcomes: list[Outcome] | None = None
        self.payouts: list[Decimal] | None = None

        self._deck: Deck | None = None
        self.events = EventEmitter(self.round_id)

        self.machine = Machine(
            model=self,
            states=self.STATES,
            transitions=self.TRANSITIONS,
            initial="uncommitted",
            auto_transitions=False,
            model_attribute="_machine_state",
        )
        self.events.emit_new(EventType.ROUND_STARTED, hands=len(amounts))

    @property
    def phase(self) -> RoundPhase:
        """Get current phase as enum."""
        return RoundPhase[self._machine_state.upper()]  # type: ignore

    @property
    def active_mask(self) -> list[bool]:
        """Parallel to player_hands: True while that hand may act."""
        return [hand.is_active for hand in self.player_hands]

    @property
    def current_hand(self) -> Hand | None:
        if self.current_hand_index is None:
            return None
        return self.player_hands[self.current_hand_index]

    @property
    def deck(self) -> Deck | None:
        return self._deck

    def subscribe(
        self,
        handler: Callable[[GameEvent], None],
        event_type: EventType | None = None,
    ) -> None:
        """Subscribe to round events."""
        self.events.subscribe(handler, event_type)

    # Commitment protocol

    def record_dealer_commitment(self, commitment: bytes) -> None:
        """Record the dealer's published commitment, closing the commit phase."""
        if self.phase != RoundPhase.UNCOMMITTED:
            raise IllegalAction(
                f"Dealer commitment already recorded (phase {self.phase.name})",
                snapshot=self.snapshot(),
            )
        if len(commitment) != COMMITMENT_SIZE:
            raise ValueError(f"Commitment must be {COMMITMENT_SIZE} bytes")

        self.dealer_commitment = commitment
        self.commitments_recorded()
        self.events.emit_new(
            EventType.ROUND_COMMITTED,
            player_commitment=self.player_commitment.hex(),
            dealer_commitment=commitment.hex(),
        )
        logger.info("Round %s committed", self.round_id)

    def deal(self, dealer_seed: bytes) -> RoundSnapshot:
        """
        Accept the dealer's seed, derive the deck and deal the opening hands.

        Raises:
            IllegalAction: if both commitments are not yet recorded, or the
                round was already dealt
            CommitmentMismatch: if dealer_seed does not match the dealer's
                commitment; the round is flagged disputed
        """
        if self.phase != RoundPhase.COMMITTED:
            raise IllegalAction(
                f"Cannot deal in phase {self.phase.name}",
                snapshot=self.snapshot(),
            )

        self._dealer_seed = dealer_seed
        self._check_commitment(dealer_seed, self.dealer_commitment, "dealer")

        self._deck = derive_deck(combine_seeds(dealer_seed, self.player_seed))

        # Deal: each player hand, dealer, each player hand, dealer (face down)
        for hand in self.player_hands:
            self._deal_card_to_hand(hand)
        self._deal_card_to_hand(self.dealer_hand)
        for hand in self.player_hands:
            self._deal_card_to_hand(hand)
        self._deal_card_to_hand(self.dealer_hand, face_up=False)

        for index, hand in enumerate(self.player_hands):
            if hand.is_blackjack:
                hand.transition_to(HandState.STANDING)
                self.events.emit_new(EventType.PLAYER_BLACKJACK, hand_index=index)

        if self.rules.dealer_peeks and self.dealer_hand.is_blackjack:
            self.events.emit_new(EventType.DEALER_BLACKJACK)
            for hand in self.player_hands:
                if hand.is_active:
                    hand.transition_to(HandState.STANDING)

        self.cards_dealt()
        logger.info("Round %s dealt %d hand(s)", self.round_id, len(self.player_hands))

        self.current_hand_index = self._next_active_index()
        if self.current_hand_index is None:
            self._finish_player_turn()
        return self.snapshot()

    # Action processor

    def legal_actions(self) -> LegalActions:
        """Return the legal-action tuple for the current hand."""
        if self.phase != RoundPhase.PLAYER_TURN or self.current_hand_index is None:
            return NO_ACTIONS
        hand = self.player_hands[self.current_hand_index]
        return derive_legal_actions(
            hand,
            self.active_mask[self.current_hand_index],
            self.rules,
            hand_count=len(self.player_hands),
        )

    def apply(
        self,
        action: Action | str,
        turn: int,
        hand_index: int | None = None,
    ) -> LegalActions:
        """
        Apply one player action to the current hand.

        Args:
            action: hit, stand, double or split
            turn: The caller's view of the round's turn counter
            hand_index: Optionally, the hand the caller believes is current

        Returns:
            The legal actions after the transition

        Raises:
            StaleAction: turn or hand_index do not match the round
            IllegalAction: the action is not currently legal
        """
        if turn != self.turn:
            self.events.emit_new(EventType.STALE_ACTION, expected=self.turn, received=turn)
            raise StaleAction(
                f"Turn {turn} does not match current turn {self.turn}",
                snapshot=self.snapshot(),
            )
        if hand_index is not None and hand_index != self.current_hand_index:
            self.events.emit_new(
                EventType.STALE_ACTION,
                expected_hand=self.current_hand_index,
                received_hand=hand_index,
            )
            raise StaleAction(
                f"Hand {hand_index} is not the current hand",
                snapshot=self.snapshot(),
            )

        try:
            action = Action.parse(action)
        except ValueError as exc:
            self.events.emit_new(EventType.INVALID_ACTION, message=str(exc))
            raise IllegalAction(str(exc), snapshot=self.snapshot()) from exc

        index = self.current_hand_index
        if index is None or not self.legal_actions().allows(action):
            self.events.emit_new(
                EventType.INVALID_ACTION,
                message=f"Cannot {action} now",
                phase=self.phase.name,
            )
            raise IllegalAction(f"Cannot {action} now", snapshot=self.snapshot())

        self.action_log.append(ActionRecord(turn=self.turn, hand_index=index, action=action))
        self.turn += 1
        logger.debug("Round %s turn %d: %s on hand %d", self.round_id, turn, action, index)

        handlers = {
            Action.HIT: self._hit,
            Action.STAND: self._stand,
            Action.DOUBLE: self._double,
            Action.SPLIT: self._split,
        }
        handlers[action](index)
        return self.legal_actions()

    def _hit(self, index: int) -> None:
        hand = self.player_hands[index]
        self._deal_card_to_hand(hand)
        self.events.emit_new(EventType.PLAYER_HIT, hand_index=index, hand_value=hand.value)

        if hand.is_busted:
            hand.transition_to(HandState.BUSTED)
            self.events.emit_new(EventType.PLAYER_BUSTS, hand_index=index)
            self._advance_to_next_hand()

    def _stand(self, index: int) -> None:
        hand = self.player_hands[index]
        hand.transition_to(HandState.STANDING)
        self.events.emit_new(EventType.PLAYER_STAND, hand_index=index, hand_value=hand.value)
        self._advance_to_next_hand()

    def _double(self, index: int) -> None:
        hand = self.player_hands[index]
        self.bets[index] *= 2
        self._deal_card_to_hand(hand)
        # No further cards, whatever the total
        hand.transition_to(HandState.DOUBLED_STANDING)
        self.events.emit_new(
            EventType.PLAYER_DOUBLE,
            hand_index=index,
            hand_value=hand.value,
            new_bet=str(self.bets[index]),
        )
        if hand.is_busted:
            self.events.emit_new(EventType.PLAYER_BUSTS, hand_index=index)
        self._advance_to_next_hand()

    def _split(self, index: int) -> None:
        original = self.player_hands[index]
        first_card, second_card = original.cards
        original.transition_to(HandState.SPLIT)

        first = Hand(cards=[first_card], is_split_hand=True)
        second = Hand(cards=[second_card], is_split_hand=True)
        self.player_hands[index] = first
        self.player_hands.insert(index + 1, second)
        self.bets.insert(index + 1, self.bets[index])

        self._deal_card_to_hand(first)
        self._deal_card_to_hand(second)
        self.events.emit_new(
            EventType.PLAYER_SPLIT,
            hand_index=index,
            hand1_value=first.value,
            hand2_value=second.value,
        )

        if first_card.is_ace and not self.rules.hit_split_aces:
            first.transition_to(HandState.STANDING)
            second.transition_to(HandState.STANDING)
            self._advance_to_next_hand()

    def _next_active_index(self) -> int | None:
        # Hands before the current one are always finished
        for index, hand in enumerate(self.player_hands):
            if hand.is_active:
                return index
        return None

    def _advance_to_next_hand(self) -> None:
        """Move to the next active hand or to the dealer."""
        self.current_hand_index = self._next_active_index()
        if self.current_hand_index is None:
            self._finish_player_turn()

    def _finish_player_turn(self) -> None:
        self.players_done()
        self._play_dealer()
        self._resolve_round()
        self.dealer_done()
        logger.info(
            "Round %s settled: %s",
            self.round_id,
            ", ".join(o.value for o in self.outcomes or []),
        )

    # Dealer play and settlement

    def _play_dealer(self) -> None:
        """Dealer reveals the hole card and draws to the house rule."""
        self.events.emit_new(
            EventType.DEALER_REVEALS,
            card=str(self.dealer_hand.cards[1]) if len(self.dealer_hand) >= 2 else None,
            hand_value=self.dealer_hand.value,
        )

        while self._dealer_should_hit():
            self._deal_card_to_hand(self.dealer_hand)
            self.events.emit_new(EventType.DEALER_HITS, hand_value=self.dealer_hand.value)

        if self.dealer_hand.is_busted:
            self.events.emit_new(EventType.DEALER_BUSTS)
        else:
            self.events.emit_new(EventType.DEALER_STANDS, hand_value=self.dealer_hand.value)

    def _dealer_should_hit(self) -> bool:
        """Determine if dealer should hit."""
        value = self.dealer_hand.value
        if value < 17:
            return True
        if value == 17 and self.dealer_hand.is_soft and self.rules.dealer_hits_soft_17:
            return True
        return False

    def _resolve_round(self) -> None:
        """Compare every player hand with the dealer and fix payouts."""
        outcomes: list[Outcome] = []
        payouts: list[Decimal] = []
        bj_multiplier = 1 + Decimal(str(self.rules.blackjack_payout))

        for index, hand in enumerate(self.player_hands):
            outcome = evaluate_hands(hand, self.dealer_hand)
            bet = self.bets[index]
            # Total return, stake included
            if outcome == Outcome.BLACKJACK:
                payout = bet * bj_multiplier
            elif outcome == Outcome.WIN:
                payout = bet * 2
            elif outcome == Outcome.PUSH:
                payout = bet
            else:
                payout = Decimal("0")
            outcomes.append(outcome)
            payouts.append(payout)
            self.events.emit_new(
                EventType.HAND_SETTLED,
                hand_index=index,
                outcome=outcome.value,
                payout=str(payout),
            )

        self.outcomes = outcomes
        self.payouts = payouts
        self.events.emit_new(
            EventType.ROUND_SETTLED,
            total_payout=str(sum(payouts, Decimal("0"))),
        )

    def _deal_card_to_hand(self, hand: Hand, face_up: bool = True) -> Card:
        """Draw the next card into a hand; an empty deck voids the round."""
        if self._deck is None:
            raise IllegalAction("No cards before the deal", snapshot=self.snapshot())
        try:
            card = self._deck.draw()
        except DeckExhausted as exc:
            self.flag_void()
            self.events.emit_new(EventType.DECK_EXHAUSTED)
            logger.error("Round %s void: deck exhausted", self.round_id)
            raise DeckExhausted(str(exc.message), snapshot=self.snapshot()) from exc

        hand.add_card(card)
        self.events.emit_new(
            EventType.CARD_DEALT,
            card=str(card) if face_up else "??",
            hand="dealer" if hand is self.dealer_hand else "player",
        )
        return card

    # Reveal and verification

    def _check_commitment(self, seed: bytes, commitment: bytes | None, party: str) -> None:
        if commitment is None:
            raise IllegalAction(f"No {party} commitment on record", snapshot=self.snapshot())
        try:
            verify_commitment(seed, commitment, party=party)
        except CommitmentMismatch as exc:
            if self.phase != RoundPhase.DISPUTED:
                self.flag_disputed()
            self.events.emit_new(EventType.COMMITMENT_MISMATCH, party=party)
            logger.warning("Round %s disputed: %s", self.round_id, exc.message)
            raise CommitmentMismatch(exc.message, snapshot=self.snapshot(), party=party) from exc

    def reveal(self) -> tuple[bytes, bytes]:
        """
        Reveal both seeds once the round is over.

        Both seeds are re-checked against their commitments first.

        Raises:
            IllegalAction: the round is still in play
            CommitmentMismatch: a seed fails its commitment
        """
        if not self.phase.is_final or self._dealer_seed is None:
            raise IllegalAction(
                f"Seeds are revealed only after the round ends (phase {self.phase.name})",
                snapshot=self.snapshot(),
            )
        self._check_commitment(self.player_seed, self.player_commitment, "player")
        self._check_commitment(self._dealer_seed, self.dealer_commitment, "dealer")
        self.events.emit_new(EventType.SEEDS_REVEALED)
        return self.player_seed, self._dealer_seed

    def verify_seeds(self, player_seed: bytes, dealer_seed: bytes) -> None:
        """
        Check seeds claimed by a third party against the recorded commitments.

        Read-only: a wrong claim says nothing about the round itself, so the
        phase is left as it is.

        Raises:
            IllegalAction: the dealer commitment is not recorded yet
            CommitmentMismatch: a claimed seed misses its commitment
        """
        if self.dealer_commitment is None:
            raise IllegalAction("No dealer commitment on record", snapshot=self.snapshot())
        for party, seed, commitment in (
            ("player", player_seed, self.player_commitment),
            ("dealer", dealer_seed, self.dealer_commitment),
        ):
            try:
                verify_commitment(seed, commitment, party=party)
            except CommitmentMismatch as exc:
                raise CommitmentMismatch(
                    exc.message, snapshot=self.snapshot(), party=party
                ) from exc

    def record(self) -> RoundRecord:
        """Return the replayable record of a settled round."""
        dealer_seed, dealer_commitment = self._dealer_seed, self.dealer_commitment
        if self.phase != RoundPhase.SETTLED or dealer_seed is None or dealer_commitment is None:
            raise IllegalAction(
                f"Only settled rounds have a record (phase {self.phase.name})",
                snapshot=self.snapshot(),
            )
        return RoundRecord(
            round_id=self.round_id,
            player_seed=self.player_seed,
            dealer_seed=dealer_seed,
            player_commitment=self.player_commitment,
            dealer_commitment=dealer_commitment,
            player_pubkey=self.player_pubkey,
            bets=self.initial_bets,
            actions=tuple(self.action_log),
            payouts=tuple(self.payouts or ()),
            rules=self.rules,
        )

    # Views

    def snapshot(self) -> RoundSnapshot:
        """Return an immutable view of the round."""
        hide_hole = self.phase == RoundPhase.PLAYER_TURN and len(self.dealer_hand) >= 2
        dealer_cards: list[Card | None] = list(self.dealer_hand.cards)
        if hide_hole:
            dealer_cards[1] = None
        visible = [c for c in dealer_cards if c is not None]

        return RoundSnapshot(
            round_id=self.round_id,
            phase=self.phase,
            dealer_cards=tuple(dealer_cards),
            dealer_total=best_total(visible),
            player_hands=tuple(
                HandSnapshot(
                    cards=tuple(hand.cards),
                    state=hand.state,
                    hard_total=hand.hard_total,
                    best_total=hand.value,
                    is_soft=hand.is_soft,
                    is_blackjack=hand.is_blackjack,
                    is_busted=hand.is_busted,
                )
                for hand in self.player_hands
            ),
            active_mask=tuple(self.active_mask),
            bets=tuple(self.bets),
            current_hand_index=self.current_hand_index,
            legal_actions=self.legal_actions(),
            turn=self.turn,
            player_commitment=self.player_commitment,
            dealer_commitment=self.dealer_commitment,
            player_pubkey=self.player_pubkey,
            outcomes=tuple(self.outcomes) if self.outcomes is not None else None,
            payouts=tuple(self.payouts) if self.payouts is not None else None,
            cards_remaining=self._deck.cards_remaining if self._deck else None,
        )

    def __repr__(self) -> str:
        return f"GameRound({self.round_id!r}, phase={self.phase.name}, turn={self.turn})"
