"""
Particles
=========

Ballistic particles for pop bursts and level-complete confetti.

Each population lives in flat numpy arrays, so one tick updates every
particle from the same pre-tick state.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from bubble_popper.popper_core.config_loader import EmitterConfig, GameConfig, get_config
from bubble_popper.popper_core.rng import RandomSource


@dataclass(frozen=True)
class Particle:
    """Read-only view of one particle, in play-area pixels and ticks."""
    id: int
    x: float
    y: float
    vx: float
    vy: float
    life: int
    max_life: int
    color: str

    @property
    def opacity(self) -> float:
        """Linear fade, life / max_life in [0, 1]."""
        if self.max_life <= 0:
            return 0.0
        return max(0.0, min(1.0, self.life / self.max_life))


class ParticlePool:
    """
    One particle population with a shared gravity constant.

    Usage:
        pool = ParticlePool(gravity=0.5)
        pool.add(x, y, vx, vy, life, colors)
        pool.advance()
        pool.particles
    """

    def __init__(self, gravity: float):
        self.gravity = gravity
        self._next_id = 0
        self.clear()

    def clear(self) -> None:
        """Remove all particles."""
        self.ids = np.zeros(0, dtype=np.int64)
        self.x = np.zeros(0, dtype=np.float64)
        self.y = np.zeros(0, dtype=np.float64)
        self.vx = np.zeros(0, dtype=np.float64)
        self.vy = np.zeros(0, dtype=np.float64)
        self.life = np.zeros(0, dtype=np.int32)
        self.max_life = np.zeros(0, dtype=np.int32)
        self.colors: List[str] = []

    def __len__(self) -> int:
        return len(self.ids)

    def add(
        self,
        x: np.ndarray,
        y: np.ndarray,
        vx: np.ndarray,
        vy: np.ndarray,
        life: int,
        colors: List[str]
    ) -> List[Particle]:
        """
        Append a batch of particles.

        Returns:
            The particles just added.
        """
        count = len(colors)
        if count == 0:
            return []

        ids = np.arange(self._next_id, self._next_id + count, dtype=np.int64)
        self._next_id += count
        start = len(self.ids)

        self.ids = np.concatenate([self.ids, ids])
        self.x = np.concatenate([self.x, np.broadcast_to(x, count).astype(np.float64)])
        self.y = np.concatenate([self.y, np.broadcast_to(y, count).astype(np.float64)])
        self.vx = np.concatenate([self.vx, np.asarray(vx, dtype=np.float64)])
        self.vy = np.concatenate([self.vy, np.asarray(vy, dtype=np.float64)])
        self.life = np.concatenate([self.life, np.full(count, life, dtype=np.int32)])
        self.max_life = np.concatenate([self.max_life, np.full(count, life, dtype=np.int32)])
        self.colors.extend(colors)

        return self._views(range(start, start + count))

    def advance(self, ticks: int = 1) -> None:
        """
        Step the population forward.

        Per tick: position += velocity, vy += gravity, life -= 1, then
        particles with life <= 0 are pruned.
        """
        for _ in range(max(0, ticks)):
            if len(self.ids) == 0:
                return
            self.x = self.x + self.vx
            self.y = self.y + self.vy
            self.vy = self.vy + self.gravity
            self.life = self.life - 1

            alive = self.life > 0
            if not alive.all():
                self.ids = self.ids[alive]
                self.x = self.x[alive]
                self.y = self.y[alive]
                self.vx = self.vx[alive]
                self.vy = self.vy[alive]
                self.life = self.life[alive]
                self.max_life = self.max_life[alive]
                self.colors = [c for c, keep in zip(self.colors, alive) if keep]

    @property
    def particles(self) -> List[Particle]:
        return self._views(range(len(self.ids)))

    def _views(self, indices) -> List[Particle]:
        return [
            Particle(
                id=int(self.ids[i]),
                x=float(self.x[i]),
                y=float(self.y[i]),
                vx=float(self.vx[i]),
                vy=float(self.vy[i]),
                life=int(self.life[i]),
                max_life=int(self.max_life[i]),
                color=self.colors[i]
            )
            for i in indices
        ]


class ParticleSimulator:
    """
    Owns the pop-burst and confetti populations.

    Confetti uses a gentler gravity and a longer life than pop particles.
    """

    def __init__(self, config: Optional[GameConfig] = None, rng: Optional[RandomSource] = None):
        if config is None:
            config = get_config()

        self._config = config
        self._rng = rng if rng is not None else RandomSource()
        self._burst_cfg: EmitterConfig = config.particles.burst
        self._confetti_cfg: EmitterConfig = config.particles.confetti

        self.pop_pool = ParticlePool(self._burst_cfg.gravity)
        self.confetti_pool = ParticlePool(self._confetti_cfg.gravity)

    @property
    def particles(self) -> List[Particle]:
        return self.pop_pool.particles

    @property
    def confetti(self) -> List[Particle]:
        return self.confetti_pool.particles

    def spawn_burst(
        self,
        origin: Tuple[float, float],
        color: str,
        count: Optional[int] = None
    ) -> List[Particle]:
        """
        Spawn a pop burst at a tap location.

        Args:
            origin: (x, y) in play-area pixels.
            color: Color id for every particle in the burst.
            count: Number of particles, config default (8) if None.
        """
        cfg = self._burst_cfg
        n = cfg.count if count is None else max(0, count)
        if n == 0:
            return []
        return self.pop_pool.add(
            x=np.float64(origin[0]),
            y=np.float64(origin[1]),
            vx=self._rng.uniform_array(cfg.vx[0], cfg.vx[1], n),
            vy=self._rng.uniform_array(cfg.vy[0], cfg.vy[1], n),
            life=cfg.life,
            colors=[color] * n
        )

    def spawn_confetti(self, area_width: float, count: Optional[int] = None) -> List[Particle]:
        """
        Spawn confetti across the top of the play area.

        Args:
            area_width: Play-area width in pixels.
            count: Number of pieces, config default (50) if None.
        """
        cfg = self._confetti_cfg
        n = cfg.count if count is None else max(0, count)
        if n == 0:
            return []
        colors = [self._rng.choice(cfg.colors) for _ in range(n)]
        return self.confetti_pool.add(
            x=self._rng.uniform_array(0.0, max(0.0, float(area_width)), n),
            y=np.float64(cfg.spawn_y),
            vx=self._rng.uniform_array(cfg.vx[0], cfg.vx[1], n),
            vy=self._rng.uniform_array(cfg.vy[0], cfg.vy[1], n),
            life=cfg.life,
            colors=colors
        )

    def advance(self, ticks: int = 1) -> None:
        """Advance both populations."""
        self.pop_pool.advance(ticks)
        self.confetti_pool.advance(ticks)

    def clear(self) -> None:
        self.pop_pool.clear()
        self.confetti_pool.clear()
