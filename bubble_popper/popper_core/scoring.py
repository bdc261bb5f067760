"""
Scoring System
==============

Score, streaks and the rewards ledger.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

from bubble_popper.popper_core.config_loader import GameConfig, LevelDefinition, get_config

DEFAULT_TONE = "default"


@dataclass
class PopEvent:
    """Record of a scoring pop."""
    points: int
    level_number: int
    streak: int
    best_streak: int
    is_milestone: bool

    def __repr__(self) -> str:
        if self.is_milestone:
            return f"PopEvent(+{self.points}, streak={self.streak}, milestone)"
        return f"PopEvent(+{self.points}, streak={self.streak})"


@dataclass(frozen=True)
class UnlockedReward:
    """A reward granted by completing a level."""
    level_number: int
    sound: Optional[str] = None
    skin: Optional[str] = None


class ScoreLedger:
    """
    Tracks score, streaks and unlocked rewards.

    Pops on level n are worth points_per_level * n. Streaks only grow;
    there are no miss events, so a streak ends only on reset.
    """

    def __init__(self, config: Optional[GameConfig] = None):
        """
        Initialize ledger.

        Args:
            config: Game configuration. Uses default if None.
        """
        if config is None:
            config = get_config()

        self._config = config
        self._points_per_level = config.scoring.points_per_level
        self._milestone = config.scoring.streak_milestone
        self._score: int = 0
        self._streak: int = 0
        self._best_streak: int = 0
        self._pops: int = 0
        self._unlocked: List[UnlockedReward] = []

    @property
    def score(self) -> int:
        return self._score

    @property
    def streak(self) -> int:
        return self._streak

    @property
    def best_streak(self) -> int:
        return self._best_streak

    @property
    def pops(self) -> int:
        """Total bubbles popped since the last reset."""
        return self._pops

    @property
    def unlocked(self) -> Tuple[UnlockedReward, ...]:
        """Rewards in the order they were unlocked."""
        return tuple(self._unlocked)

    @property
    def unlocked_skins(self) -> Tuple[str, ...]:
        return tuple(r.skin for r in self._unlocked if r.skin is not None)

    def points_for(self, level_number: int) -> int:
        """Points for a single pop on the given level."""
        return self._points_per_level * level_number

    def apply_pop(self, level_number: int) -> PopEvent:
        """
        Apply score and streak for one pop.

        Args:
            level_number: Level the pop happened on.

        Returns:
            PopEvent; is_milestone is set when the new streak is a
            positive multiple of the milestone.
        """
        points = self.points_for(level_number)
        self._score += points
        self._pops += 1
        self._streak += 1
        if self._streak > self._best_streak:
            self._best_streak = self._streak

        return PopEvent(
            points=points,
            level_number=level_number,
            streak=self._streak,
            best_streak=self._best_streak,
            is_milestone=self._streak % self._milestone == 0
        )

    def add_bonus(self, points: int) -> None:
        """Add bonus points. Negative amounts are ignored."""
        self._score += max(0, points)

    def unlock(self, level: LevelDefinition) -> Optional[UnlockedReward]:
        """
        Record the reward a completed level defines.

        Returns:
            The new reward, or None if the level defines none or it was
            already unlocked.
        """
        if level.unlock is None:
            return None
        if self.is_level_unlocked(level.number):
            return None
        reward = UnlockedReward(
            level_number=level.number,
            sound=level.unlock.sound,
            skin=level.unlock.skin
        )
        self._unlocked.append(reward)
        return reward

    def is_level_unlocked(self, level_number: int) -> bool:
        return any(r.level_number == level_number for r in self._unlocked)

    def is_sound_unlocked(self, sound: str) -> bool:
        return any(r.sound == sound for r in self._unlocked)

    def select_tone(self, level: Optional[LevelDefinition]) -> str:
        """
        Pick the tone profile for a pop on the given level.

        The level's own sound is used only once it has been unlocked.
        """
        if level is None or level.unlock is None or level.unlock.sound is None:
            return DEFAULT_TONE
        if self.is_sound_unlocked(level.unlock.sound):
            return level.unlock.sound
        return DEFAULT_TONE

    def reset(self, keep_unlocks: bool = False) -> None:
        """Reset score and streaks, optionally keeping unlocked rewards."""
        self._score = 0
        self._streak = 0
        self._best_streak = 0
        self._pops = 0
        if not keep_unlocks:
            self._unlocked = []
