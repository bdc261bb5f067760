"""
Configuration Loader
====================

Loads and validates game_config.yaml, providing typed access to all parameters.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import yaml

logger = logging.getLogger(__name__)

TIMEOUT_POLICIES = ("game_over", "reset")
REQUIRED_TONES = ("default", "ocean", "cosmic")


@dataclass(frozen=True)
class BoardConfig:
    """Play area geometry."""
    width: int           # Play area width in pixels
    height: int          # Play area height in pixels
    narrow_width: int    # Viewports narrower than this are "narrow"


@dataclass(frozen=True)
class TimingConfig:
    """Scheduler intervals and delays, in milliseconds."""
    animation_tick: int
    countdown_tick: int
    level_intro: int
    pop_grace: int
    quote_duration: int
    shimmer_interval: int


@dataclass(frozen=True)
class FieldConfig:
    """Bubble field generation parameters."""
    edge_margin: float
    narrow_fraction: float
    min_bubbles: int
    shimmer_probability: float
    shimmer_reroll_probability: float


@dataclass(frozen=True)
class EmitterConfig:
    """One particle population (pop burst or confetti)."""
    count: int
    vx: Tuple[float, float]
    vy: Tuple[float, float]
    life: int
    gravity: float
    spawn_y: float = 0.0
    colors: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ParticlesConfig:
    burst: EmitterConfig
    confetti: EmitterConfig


@dataclass(frozen=True)
class ScoringConfig:
    """Scoring parameters."""
    points_per_level: int
    streak_milestone: int
    time_bonus_per_second: int
    untimed_bonus_per_level: int


@dataclass(frozen=True)
class SessionConfig:
    """Session-wide policies."""
    timeout_policy: str          # "game_over" or "reset"
    keep_unlocks_on_reset: bool


@dataclass(frozen=True)
class ToneConfig:
    """Parameters for one pop tone profile."""
    name: str
    start_hz: float
    end_hz: float
    duration: float   # Seconds
    gain: float


@dataclass(frozen=True)
class ThemeConfig:
    """Display theme of a level."""
    name: str
    background: str
    colors: Tuple[str, ...]


@dataclass(frozen=True)
class UnlockConfig:
    """Reward granted when a level is completed."""
    sound: Optional[str] = None
    skin: Optional[str] = None


@dataclass(frozen=True)
class LevelDefinition:
    """Configuration for a single level."""
    number: int
    name: str
    bubble_count: int
    min_size: float
    max_size: float
    time_limit: Optional[int]    # Whole seconds, None for untimed levels
    theme: ThemeConfig
    unlock: Optional[UnlockConfig] = None

    @property
    def is_timed(self) -> bool:
        return self.time_limit is not None

    @property
    def size_range(self) -> Tuple[float, float]:
        return (self.min_size, self.max_size)


@dataclass(frozen=True)
class GameConfig:
    """
    Complete game configuration loaded from YAML.

    All values are immutable to prevent accidental modification during runtime.
    """
    board: BoardConfig
    timing: TimingConfig
    field: FieldConfig
    particles: ParticlesConfig
    scoring: ScoringConfig
    session: SessionConfig
    colors: Dict[str, Tuple[int, int, int]]
    tones: Dict[str, ToneConfig]
    levels: Tuple[LevelDefinition, ...]
    quotes: Tuple[str, ...]
    completion_messages: Tuple[str, ...]

    @property
    def num_levels(self) -> int:
        return len(self.levels)

    def get_color(self, color_id: str) -> Tuple[int, int, int]:
        """Get RGB for a color id."""
        if color_id in self.colors:
            return self.colors[color_id]
        raise ValueError(f"Unknown color id: {color_id}")


def _parse_range(data: List, what: str) -> Tuple[float, float]:
    """Parse a [low, high] pair from YAML."""
    if len(data) != 2:
        raise ValueError(f"{what} must have 2 values [low, high], got {data}")
    low, high = float(data[0]), float(data[1])
    if low > high:
        raise ValueError(f"{what} low ({low}) exceeds high ({high})")
    return (low, high)


def _parse_color(color_data: List) -> Tuple[int, int, int]:
    """Parse RGB color from YAML."""
    if len(color_data) != 3:
        raise ValueError(f"Color must have 3 values [R, G, B], got {color_data}")
    return (int(color_data[0]), int(color_data[1]), int(color_data[2]))


def _parse_emitter(data: dict) -> EmitterConfig:
    return EmitterConfig(
        count=int(data["count"]),
        vx=_parse_range(data["vx"], "vx"),
        vy=_parse_range(data["vy"], "vy"),
        life=int(data["life"]),
        gravity=float(data["gravity"]),
        spawn_y=float(data.get("spawn_y", 0.0)),
        colors=tuple(str(c) for c in data.get("colors", ()))
    )


def _parse_level(level_data: dict) -> LevelDefinition:
    """Parse a single level definition from YAML."""
    min_size, max_size = _parse_range(level_data["size"], "size")
    time_limit = level_data.get("time_limit")

    theme_data = level_data["theme"]
    theme = ThemeConfig(
        name=str(theme_data["name"]),
        background=str(theme_data["background"]),
        colors=tuple(str(c) for c in theme_data.get("colors", ()))
    )

    unlock = None
    unlock_data = level_data.get("unlock")
    if unlock_data:
        unlock = UnlockConfig(
            sound=unlock_data.get("sound"),
            skin=unlock_data.get("skin")
        )

    return LevelDefinition(
        number=int(level_data["number"]),
        name=str(level_data["name"]),
        bubble_count=int(level_data["bubble_count"]),
        min_size=min_size,
        max_size=max_size,
        time_limit=int(time_limit) if time_limit is not None else None,
        theme=theme,
        unlock=unlock
    )


def _validate_config(config: GameConfig) -> None:
    """Validate configuration consistency."""
    if not config.levels:
        raise ValueError("At least one level must be defined")

    # Level numbers are contiguous from 1
    for i, level in enumerate(config.levels, start=1):
        if level.number != i:
            raise ValueError(f"Level number mismatch: expected {i}, got {level.number}")
        if level.bubble_count < 0:
            raise ValueError(f"Level {i}: bubble_count must be >= 0")
        if level.time_limit is not None and level.time_limit <= 0:
            raise ValueError(f"Level {i}: time_limit must be positive or null")
        for color_id in level.theme.colors:
            if color_id not in config.colors:
                raise ValueError(f"Level {i}: unknown color id '{color_id}'")
        if level.unlock is not None and level.unlock.sound is not None:
            if level.unlock.sound not in config.tones:
                raise ValueError(f"Level {i}: unknown unlock sound '{level.unlock.sound}'")

    if not config.particles.confetti.colors:
        raise ValueError("Confetti colors must not be empty")
    for color_id in config.particles.confetti.colors:
        if color_id not in config.colors:
            raise ValueError(f"Confetti: unknown color id '{color_id}'")

    for tone in REQUIRED_TONES:
        if tone not in config.tones:
            raise ValueError(f"Missing tone profile '{tone}'")

    if config.session.timeout_policy not in TIMEOUT_POLICIES:
        raise ValueError(
            f"timeout_policy must be one of {TIMEOUT_POLICIES}, "
            f"got '{config.session.timeout_policy}'"
        )

    if config.scoring.streak_milestone <= 0:
        raise ValueError("streak_milestone must be positive")

    if not 0.0 <= config.field.edge_margin < 50.0:
        raise ValueError(f"edge_margin must be in [0, 50), got {config.field.edge_margin}")

    if not config.quotes:
        raise ValueError("quotes must not be empty")
    if not config.completion_messages:
        raise ValueError("completion_messages must not be empty")


def load_config(config_path: Optional[str] = None) -> GameConfig:
    """
    Load and validate game configuration from YAML.

    Args:
        config_path: Path to game_config.yaml. If None, uses default location.

    Returns:
        Validated GameConfig instance.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ValueError: If config validation fails.
    """
    if config_path is None:
        config_path = os.path.join(
            os.path.dirname(os.path.dirname(__file__)),
            "game_config.yaml"
        )

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "r") as f:
        raw = yaml.safe_load(f)

    board_data = raw["board"]
    board = BoardConfig(
        width=int(board_data["width"]),
        height=int(board_data["height"]),
        narrow_width=int(board_data.get("narrow_width", 768))
    )

    timing_data = raw["timing"]
    timing = TimingConfig(
        animation_tick=int(timing_data.get("animation_tick", 16)),
        countdown_tick=int(timing_data.get("countdown_tick", 1000)),
        level_intro=int(timing_data.get("level_intro", 2000)),
        pop_grace=int(timing_data.get("pop_grace", 300)),
        quote_duration=int(timing_data.get("quote_duration", 2000)),
        shimmer_interval=int(timing_data.get("shimmer_interval", 2000))
    )

    field_data = raw["field"]
    field = FieldConfig(
        edge_margin=float(field_data.get("edge_margin", 7.5)),
        narrow_fraction=float(field_data.get("narrow_fraction", 0.6)),
        min_bubbles=int(field_data.get("min_bubbles", 1)),
        shimmer_probability=float(field_data.get("shimmer_probability", 0.5)),
        shimmer_reroll_probability=float(field_data.get("shimmer_reroll_probability", 0.3))
    )

    particles_data = raw["particles"]
    particles = ParticlesConfig(
        burst=_parse_emitter(particles_data["burst"]),
        confetti=_parse_emitter(particles_data["confetti"])
    )

    scoring_data = raw["scoring"]
    scoring = ScoringConfig(
        points_per_level=int(scoring_data.get("points_per_level", 10)),
        streak_milestone=int(scoring_data.get("streak_milestone", 5)),
        time_bonus_per_second=int(scoring_data.get("time_bonus_per_second", 5)),
        untimed_bonus_per_level=int(scoring_data.get("untimed_bonus_per_level", 50))
    )

    session_data = raw.get("session", {})
    session = SessionConfig(
        timeout_policy=str(session_data.get("timeout_policy", "game_over")),
        keep_unlocks_on_reset=bool(session_data.get("keep_unlocks_on_reset", False))
    )

    colors = {str(k): _parse_color(v) for k, v in raw["colors"].items()}

    tones = {
        str(name): ToneConfig(
            name=str(name),
            start_hz=float(t["start_hz"]),
            end_hz=float(t["end_hz"]),
            duration=float(t["duration"]),
            gain=float(t["gain"])
        )
        for name, t in raw["tones"].items()
    }

    config = GameConfig(
        board=board,
        timing=timing,
        field=field,
        particles=particles,
        scoring=scoring,
        session=session,
        colors=colors,
        tones=tones,
        levels=tuple(_parse_level(level) for level in raw["levels"]),
        quotes=tuple(str(q) for q in raw["quotes"]),
        completion_messages=tuple(str(m) for m in raw["completion_messages"])
    )

    _validate_config(config)
    logger.debug("Loaded config from %s (%d levels)", config_path, config.num_levels)
    return config


# Module-level singleton for convenience
_cached_config: Optional[GameConfig] = None


def get_config() -> GameConfig:
    """Get the cached game configuration, loading if necessary."""
    global _cached_config
    if _cached_config is None:
        _cached_config = load_config()
    return _cached_config


def reload_config(config_path: Optional[str] = None) -> GameConfig:
    """Reload the configuration (useful for testing)."""
    global _cached_config
    _cached_config = load_config(config_path)
    return _cached_config
