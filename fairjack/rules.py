"""Table rule variations."""

from dataclasses import dataclass


@dataclass(frozen=True)
class RuleSet:
    """
    Blackjack table rules configuration.

    Re-split and split-ace policy are configurable rather than fixed.
    """

    # Dealer rules
    dealer_hits_soft_17: bool = False  # S17 by default
    dealer_peeks: bool = True  # Dealer natural ends the round at deal

    # Blackjack payout (3:2 = 1.5, 6:5 = 1.2)
    blackjack_payout: float = 1.5

    # Hand limits
    max_initial_hands: int = 4
    max_hands: int = 4  # Splitting stops once this many hands are in play

    # Split rules
    resplit: bool = True
    hit_split_aces: bool = True

    # Double down rules
    double_after_split: bool = True  # DAS

    def __post_init__(self) -> None:
        """Validate rule combinations."""
        if self.blackjack_payout < 1.0:
            raise ValueError("blackjack_payout must be at least 1.0")
        if self.max_initial_hands < 1:
            raise ValueError("max_initial_hands must be at least 1")
        if self.max_hands < self.max_initial_hands:
            raise ValueError("max_hands must be at least max_initial_hands")

    @classmethod
    def house(cls) -> "RuleSet":
        """Default house rules."""
        return cls()

    @classmethod
    def strict(cls) -> "RuleSet":
        """No re-splitting, one card to split aces, no double after split."""
        return cls(
            resplit=False,
            hit_split_aces=False,
            double_after_split=False,
        )
