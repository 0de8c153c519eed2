"""Third-party verification of settled rounds by replay."""

import logging

from fairjack.errors import ReplayMismatch
from fairjack.fairness import verify_commitment
from fairjack.game.round import GameRound
from fairjack.game.snapshot import RoundRecord, RoundSnapshot

logger = logging.getLogger(__name__)


def replay_round(record: RoundRecord) -> RoundSnapshot:
    """
    Rebuild a round from its seeds and action log.

    The replay runs the same transition function as live play, so any
    disagreement surfaces as the same typed errors.

    Args:
        record: Seeds, bets, rules and the ordered action log

    Returns:
        Snapshot of the replayed round after its last action
    """
    game_round = GameRound(
        bets=record.bets,
        player_seed=record.player_seed,
        player_pubkey=record.player_pubkey,
        rules=record.rules,
        round_id=record.round_id,
    )
    game_round.record_dealer_commitment(record.dealer_commitment)
    game_round.deal(record.dealer_seed)
    for entry in record.actions:
        game_round.apply(entry.action, entry.turn, hand_index=entry.hand_index)
    return game_round.snapshot()


def verify_record(record: RoundRecord) -> RoundSnapshot:
    """
    Verify a round record end to end.

    Checks both seeds against their commitments, replays the round and,
    when the record carries payouts, compares them with the replay.

    Raises:
        CommitmentMismatch: a seed does not match its commitment
        ReplayMismatch: the replay disagrees with the recorded payouts
    """
    verify_commitment(record.player_seed, record.player_commitment, party="player")
    verify_commitment(record.dealer_seed, record.dealer_commitment, party="dealer")

    snapshot = replay_round(record)
    if record.payouts is not None and snapshot.payouts != tuple(record.payouts):
        logger.warning("Replay of round %s disagrees with recorded payouts", record.round_id)
        raise ReplayMismatch(
            "Replayed payouts do not match the recorded payouts",
            snapshot=snapshot,
        )
    return snapshot
