"""
State Snapshot
==============

Read-only view of a session for renderers. Snapshots hold copies, so a
renderer can keep one around without seeing later mutations.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, TYPE_CHECKING

from bubble_popper.popper_core.bubble_field import Bubble
from bubble_popper.popper_core.config_loader import ThemeConfig
from bubble_popper.popper_core.particles import Particle
from bubble_popper.popper_core.rules import Mode
from bubble_popper.popper_core.scoring import UnlockedReward

if TYPE_CHECKING:
    from bubble_popper.popper_core.session import GameSession


@dataclass(frozen=True)
class SessionSnapshot:
    """Complete session state at one instant."""
    mode: Mode
    level: int
    level_name: str
    theme: Optional[ThemeConfig]
    time_left: Optional[int]          # None for untimed levels
    bubbles_remaining: int
    score: int
    streak: int
    best_streak: int

    bubbles: Tuple[Bubble, ...]
    particles: Tuple[Particle, ...]
    confetti: Tuple[Particle, ...]

    level_intro: bool
    show_quote: bool
    quote: str
    completion_message: str
    unlocked: Tuple[UnlockedReward, ...]
    unlocked_skins: Tuple[str, ...]

    # Display preferences, no effect on game logic
    sound_enabled: bool
    dark_theme: bool

    def to_dict(self) -> Dict[str, Any]:
        """Plain-dict form, e.g. for JSON."""
        return {
            "mode": self.mode.value,
            "level": self.level,
            "level_name": self.level_name,
            "theme": dataclasses.asdict(self.theme) if self.theme else None,
            "time_left": self.time_left,
            "bubbles_remaining": self.bubbles_remaining,
            "score": self.score,
            "streak": self.streak,
            "best_streak": self.best_streak,
            "bubbles": [dataclasses.asdict(b) for b in self.bubbles],
            "particles": [
                dict(dataclasses.asdict(p), opacity=p.opacity) for p in self.particles
            ],
            "confetti": [
                dict(dataclasses.asdict(p), opacity=p.opacity) for p in self.confetti
            ],
            "level_intro": self.level_intro,
            "show_quote": self.show_quote,
            "quote": self.quote,
            "completion_message": self.completion_message,
            "unlocked": [dataclasses.asdict(r) for r in self.unlocked],
            "unlocked_skins": list(self.unlocked_skins),
            "sound_enabled": self.sound_enabled,
            "dark_theme": self.dark_theme,
        }


class SnapshotBuilder:
    """Builds snapshots from a live session."""

    def build(self, session: "GameSession") -> SessionSnapshot:
        level = session.current_level
        return SessionSnapshot(
            mode=session.mode,
            level=session.level,
            level_name=level.name if level else "",
            theme=level.theme if level else None,
            time_left=session.time_left,
            bubbles_remaining=session.bubbles_remaining,
            score=session.score,
            streak=session.streak,
            best_streak=session.best_streak,
            bubbles=tuple(dataclasses.replace(b) for b in session.bubbles),
            particles=tuple(session.particles.particles),
            confetti=tuple(session.particles.confetti),
            level_intro=session.level_intro,
            show_quote=session.show_quote,
            quote=session.quote,
            completion_message=session.completion_message,
            unlocked=session.ledger.unlocked,
            unlocked_skins=session.ledger.unlocked_skins,
            sound_enabled=session.sound_enabled,
            dark_theme=session.dark_theme,
        )
