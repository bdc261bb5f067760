"""
Level Catalog
=============

Provides convenient access to level definitions loaded from config.
"""

from __future__ import annotations

from typing import Iterator, Optional, Tuple

from bubble_popper.popper_core.config_loader import (
    GameConfig,
    LevelDefinition,
    get_config
)


class LevelCatalog:
    """
    Ordered collection of all levels, indexed by 1-based level number.

    Catalog order is the progression and unlock order.
    """

    def __init__(self, config: Optional[GameConfig] = None):
        """
        Initialize catalog from game config.

        Args:
            config: GameConfig instance. If None, loads from default location.
        """
        if config is None:
            config = get_config()

        self._config = config
        self._levels: Tuple[LevelDefinition, ...] = config.levels

    def __len__(self) -> int:
        """Total number of levels."""
        return len(self._levels)

    def __getitem__(self, number: int) -> LevelDefinition:
        """Get level by number."""
        level = self.get(number)
        if level is None:
            raise IndexError(f"Level {number} out of range [1, {len(self._levels)}]")
        return level

    def __iter__(self) -> Iterator[LevelDefinition]:
        return iter(self._levels)

    @property
    def first(self) -> LevelDefinition:
        return self._levels[0]

    @property
    def last(self) -> LevelDefinition:
        return self._levels[-1]

    def get(self, number: int) -> Optional[LevelDefinition]:
        """
        Look up a level by number.

        Returns:
            The level, or None if there is no such level.
        """
        if 1 <= number <= len(self._levels):
            return self._levels[number - 1]
        return None

    def has_level(self, number: int) -> bool:
        return self.get(number) is not None

    def is_last(self, number: int) -> bool:
        """True if no level follows the given one."""
        return number >= len(self._levels)
