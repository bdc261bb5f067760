"""
Popper Core - The session engine.

This module provides the level-progression state machine and all supporting
systems (bubble fields, particles, scoring, rules, scheduling, RNG).

Main exports:
- GameSession: One player's session, driven by commands, pops and time
- SessionSnapshot: Read-only state handed to renderers
- LevelCatalog: Ordered level definitions
- GameConfig: Configuration loaded from game_config.yaml
"""

from bubble_popper.popper_core.config_loader import (
    GameConfig,
    LevelDefinition,
    load_config,
    get_config,
)
from bubble_popper.popper_core.level_catalog import LevelCatalog
from bubble_popper.popper_core.rng import RandomSource
from bubble_popper.popper_core.bubble_field import Bubble, BubbleFieldGenerator
from bubble_popper.popper_core.particles import Particle, ParticleSimulator
from bubble_popper.popper_core.scoring import ScoreLedger, UnlockedReward
from bubble_popper.popper_core.rules import Mode, TimeoutPolicy
from bubble_popper.popper_core.state_snapshot import SessionSnapshot
from bubble_popper.popper_core.session import GameSession

__all__ = [
    "GameConfig",
    "LevelDefinition",
    "load_config",
    "get_config",
    "LevelCatalog",
    "RandomSource",
    "Bubble",
    "BubbleFieldGenerator",
    "Particle",
    "ParticleSimulator",
    "ScoreLedger",
    "UnlockedReward",
    "Mode",
    "TimeoutPolicy",
    "SessionSnapshot",
    "GameSession",
]
