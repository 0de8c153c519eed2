"""Player actions and legal-action derivation."""

from enum import Enum
from typing import NamedTuple

from fairjack.hand import Hand
from fairjack.rules import RuleSet


class Action(Enum):
    """Actions a player hand may take."""

    HIT = "hit"
    STAND = "stand"
    DOUBLE = "double"
    SPLIT = "split"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: "str | Action") -> "Action":
        """Accept an Action or its lowercase name."""
        if isinstance(value, Action):
            return value
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(f"Unknown action: {value}") from None


class LegalActions(NamedTuple):
    """The four-element legal-action tuple for the active hand."""

    can_hit: bool = False
    can_stand: bool = False
    can_double: bool = False
    can_split: bool = False

    def allows(self, action: Action) -> bool:
        return {
            Action.HIT: self.can_hit,
            Action.STAND: self.can_stand,
            Action.DOUBLE: self.can_double,
            Action.SPLIT: self.can_split,
        }[action]

    @property
    def actions(self) -> list[Action]:
        """Return the permitted actions in canonical order."""
        return [a for a in Action if self.allows(a)]

    @property
    def has_any(self) -> bool:
        return any(self)


NO_ACTIONS = LegalActions()


def derive_legal_actions(
    hand: Hand | None,
    active: bool,
    rules: RuleSet | None = None,
    hand_count: int = 1,
) -> LegalActions:
    """
    Derive what the given hand may do.

    Args:
        hand: The hand at the current index
        active: Whether that hand may still act
        rules: Table rules gating doubles and splits
        hand_count: Number of player hands currently in play

    Returns:
        All False unless the hand is active
    """
    if hand is None or not active:
        return NO_ACTIONS
    rules = rules or RuleSet()

    two_cards = len(hand) == 2
    can_double = two_cards and (rules.double_after_split or not hand.is_split_hand)
    can_split = (
        hand.is_pair
        and hand_count < rules.max_hands
        and (rules.resplit or not hand.is_split_hand)
    )
    return LegalActions(
        can_hit=hand.hard_total < 21,
        can_stand=True,
        can_double=can_double,
        can_split=can_split,
    )
