"""
Level Rules
===========

Handles level outcome checks, the countdown clock, time bonuses and the
policy applied when a timed level runs out of time.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from bubble_popper.popper_core.config_loader import GameConfig, LevelDefinition, get_config


class Mode(str, Enum):
    """Top-level session state."""
    MENU = "menu"
    PLAYING = "playing"
    LEVEL_COMPLETE = "levelComplete"
    GAME_OVER = "gameOver"
    GAME_COMPLETE = "gameComplete"


class TimeoutPolicy(str, Enum):
    """What happens when a timed level's clock reaches zero."""
    GAME_OVER = "game_over"   # Stop in the gameOver state, retry available
    RESET = "reset"           # Full reset back to the menu


@dataclass
class LevelOutcome:
    """Result of an outcome check while playing."""
    cleared: bool
    timed_out: bool

    @property
    def finished(self) -> bool:
        return self.cleared or self.timed_out

    @staticmethod
    def none() -> "LevelOutcome":
        return LevelOutcome(False, False)

    @staticmethod
    def level_cleared() -> "LevelOutcome":
        return LevelOutcome(True, False)

    @staticmethod
    def time_up() -> "LevelOutcome":
        return LevelOutcome(False, True)


class LevelRules:
    """
    Outcome and bonus rules for a level in play.

    - Cleared: no bubbles remain
    - Timed out: a countdown is active and has reached zero
    """

    def __init__(self, config: Optional[GameConfig] = None):
        """
        Initialize level rules.

        Args:
            config: Game configuration. Uses default if None.
        """
        if config is None:
            config = get_config()

        self._config = config
        self._timeout_policy = TimeoutPolicy(config.session.timeout_policy)
        self._bonus_per_second = config.scoring.time_bonus_per_second
        self._untimed_bonus = config.scoring.untimed_bonus_per_level

    @property
    def timeout_policy(self) -> TimeoutPolicy:
        return self._timeout_policy

    def check(
        self,
        bubbles_remaining: int,
        time_left: Optional[int],
        live_bubbles: Optional[int] = None
    ) -> LevelOutcome:
        """
        Check both exit conditions.

        A field whose bubbles are all popping is already cleared; the clock
        running out while their removals are pending does not time it out.

        Args:
            bubbles_remaining: Bubbles not yet removed from the field.
            time_left: Seconds left, or None for an untimed level.
            live_bubbles: Bubbles not yet popped. Defaults to bubbles_remaining.
        """
        if bubbles_remaining <= 0:
            return LevelOutcome.level_cleared()
        if live_bubbles is None:
            live_bubbles = bubbles_remaining
        if time_left is not None and time_left <= 0 and live_bubbles > 0:
            return LevelOutcome.time_up()
        return LevelOutcome.none()

    @staticmethod
    def tick_countdown(time_left: Optional[int]) -> Optional[int]:
        """One countdown step, clamped at zero. Untimed stays None."""
        if time_left is None:
            return None
        return max(0, time_left - 1)

    def time_bonus(self, level: LevelDefinition, time_left: Optional[int]) -> int:
        """
        Bonus awarded on completion.

        Timed levels pay per second left on the clock; untimed levels pay
        a flat amount scaled by level number.
        """
        if level.is_timed:
            return max(0, time_left or 0) * self._bonus_per_second
        return self._untimed_bonus * level.number
