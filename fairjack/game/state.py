"""Round phase enumeration."""

from enum import Enum, auto


class RoundPhase(Enum):
    """
    Round state machine phases.

    Flow: UNCOMMITTED → COMMITTED → PLAYER_TURN → DEALER_TURN → SETTLED

    Cards can only be dealt from COMMITTED, so no card exists before both
    parties' commitments are on record.
    """

    # Player seed drawn, dealer commitment not yet recorded
    UNCOMMITTED = auto()

    # Both commitments recorded, nothing dealt
    COMMITTED = auto()

    # Player hands acting
    PLAYER_TURN = auto()

    # Dealer draws to its house rule
    DEALER_TURN = auto()

    # Outcomes and payouts fixed
    SETTLED = auto()

    # A revealed seed failed its commitment check
    DISPUTED = auto()

    # Deck exhausted mid-round
    VOID = auto()

    @property
    def is_final(self) -> bool:
        return self in (RoundPhase.SETTLED, RoundPhase.DISPUTED, RoundPhase.VOID)

    def __str__(self) -> str:
        return self.name.replace("_", " ").title()
