"""
Bubble Field
============

Generates the randomized set of bubbles for a level.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, List, Optional

from bubble_popper.popper_core.config_loader import GameConfig, LevelDefinition, get_config
from bubble_popper.popper_core.rng import RandomSource


@dataclass
class Bubble:
    """
    A poppable target in the current field.

    Position is in percent of the play area, size is a diameter in pixels.
    """
    id: int
    x: float
    y: float
    size: float
    color: str
    popping: bool = False
    shimmer: bool = False

    def contains(self, px: float, py: float, area_width: float, area_height: float) -> bool:
        """True if play-area pixel (px, py) lies inside this bubble."""
        cx = self.x / 100.0 * area_width
        cy = self.y / 100.0 * area_height
        return math.hypot(px - cx, py - cy) <= self.size / 2.0


class BubbleFieldGenerator:
    """
    Produces bubble fields sized and colored per level.

    Positions are drawn independently, so bubbles may overlap.
    """

    def __init__(self, config: Optional[GameConfig] = None, rng: Optional[RandomSource] = None):
        if config is None:
            config = get_config()

        self._config = config
        self._rng = rng if rng is not None else RandomSource()

    def effective_count(self, level: LevelDefinition, viewport_is_narrow: bool) -> int:
        """Number of bubbles to generate for a level on this viewport."""
        count = level.bubble_count
        if count <= 0:
            return 0
        if viewport_is_narrow:
            count = int(count * self._config.field.narrow_fraction)
        return max(self._config.field.min_bubbles, count)

    def generate(self, level: LevelDefinition, viewport_is_narrow: bool = False) -> List[Bubble]:
        """
        Generate a fresh field for a level.

        Args:
            level: The level being started.
            viewport_is_narrow: Small-screen adaptation, fewer bubbles.

        Returns:
            List of bubbles with ids 0..count-1. Empty if the level has no
            palette or no bubbles.
        """
        palette = level.theme.colors
        count = self.effective_count(level, viewport_is_narrow)
        if not palette or count == 0:
            return []

        low = self._config.field.edge_margin
        high = 100.0 - low
        shimmer_p = self._config.field.shimmer_probability

        bubbles = []
        for i in range(count):
            bubbles.append(Bubble(
                id=i,
                x=self._rng.uniform(low, high),
                y=self._rng.uniform(low, high),
                size=self._rng.uniform(level.min_size, level.max_size),
                color=self._rng.choice(palette),
                shimmer=self._rng.chance(shimmer_p)
            ))
        return bubbles

    def reroll_shimmer(self, bubbles: Iterable[Bubble]) -> None:
        """Re-roll every bubble's shimmer flag."""
        p = self._config.field.shimmer_reroll_probability
        for bubble in bubbles:
            bubble.shimmer = self._rng.chance(p)
