"""
RNG - Injectable Random Source
==============================

Every random decision in the engine (bubble placement, colors, particle
velocities, quotes, completion messages) goes through one RandomSource so
that a session is reproducible from its seed and tests can script exact
outcomes by subclassing.
"""

from __future__ import annotations

from typing import Optional, Sequence, TypeVar

import numpy as np

T = TypeVar("T")


class RandomSource:
    """
    Seeded pseudo-random source backed by a numpy Generator.

    Subclasses may override random() and uniform_array() to supply
    deterministic sequences; the other helpers are built on top of them.
    """

    def __init__(self, seed: Optional[int] = None):
        """
        Initialize random source.

        Args:
            seed: Random seed for reproducibility. Random if None.
        """
        self._seed = seed
        self._gen = np.random.default_rng(seed)

    @property
    def seed(self) -> Optional[int]:
        return self._seed

    def random(self) -> float:
        """Uniform float in [0, 1)."""
        return float(self._gen.random())

    def uniform(self, low: float, high: float) -> float:
        """Uniform float in [low, high]."""
        return low + (high - low) * self.random()

    def uniform_array(self, low: float, high: float, count: int) -> np.ndarray:
        """Array of `count` uniform floats in [low, high)."""
        return self._gen.uniform(low, high, count)

    def chance(self, probability: float) -> bool:
        """True with the given probability."""
        return self.random() < probability

    def choice(self, items: Sequence[T]) -> Optional[T]:
        """
        Pick one item uniformly.

        Returns:
            The chosen item, or None for an empty sequence.
        """
        if not items:
            return None
        index = min(int(self.random() * len(items)), len(items) - 1)
        return items[index]

    def reset(self, seed: Optional[int] = None) -> None:
        """
        Reset the generator with optional new seed.

        Args:
            seed: New random seed. Keeps current if None.
        """
        if seed is not None:
            self._seed = seed
        self._gen = np.random.default_rng(self._seed)
