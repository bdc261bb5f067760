"""
Game Session
============

Main session orchestrator combining the level catalog, bubble fields,
particles, scoring and rules into the menu -> playing -> levelComplete |
gameOver -> playing | gameComplete state machine.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Tuple

from bubble_popper.popper_core.bubble_field import Bubble, BubbleFieldGenerator
from bubble_popper.popper_core.config_loader import GameConfig, LevelDefinition, get_config
from bubble_popper.popper_core.level_catalog import LevelCatalog
from bubble_popper.popper_core.particles import ParticleSimulator
from bubble_popper.popper_core.rng import RandomSource
from bubble_popper.popper_core.rules import LevelRules, Mode, TimeoutPolicy
from bubble_popper.popper_core.scheduler import ScheduledTask, TaskScheduler
from bubble_popper.popper_core.scoring import ScoreLedger, UnlockedReward
from bubble_popper.popper_core.state_snapshot import SessionSnapshot, SnapshotBuilder

logger = logging.getLogger(__name__)

ToneSink = Callable[[str], None]


class GameSession:
    """
    One player's session, owning all mutable game state.

    Orchestrates:
    - Level intro, play, completion and timeout transitions
    - Bubble field generation and pop handling
    - Particle and confetti simulation
    - Score, streak and reward bookkeeping

    Time is simulated: advance_time() drives the animation tick, the
    countdown and every deferred action. Level-scoped tasks are tagged
    with a generation counter that is bumped whenever a level is abandoned,
    so a task left over from an earlier level can never touch the new one.
    """

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        seed: Optional[int] = None,
        rng: Optional[RandomSource] = None,
        area_size: Optional[Tuple[float, float]] = None,
        tone_sink: Optional[ToneSink] = None
    ):
        """
        Initialize session in the menu.

        Args:
            config: Game configuration. Uses default if None.
            seed: Random seed for reproducibility. Ignored if rng is given.
            rng: Random source to use for every random decision.
            area_size: Play-area (width, height) in pixels. Board size if None.
            tone_sink: Called with a tone profile name on every pop.
        """
        if config is None:
            config = get_config()

        self._config = config
        self._timing = config.timing
        self._rng = rng if rng is not None else RandomSource(seed)
        self._tone_sink = tone_sink

        # Subsystems
        self._catalog = LevelCatalog(config)
        self._generator = BubbleFieldGenerator(config, self._rng)
        self._particles = ParticleSimulator(config, self._rng)
        self._ledger = ScoreLedger(config)
        self._rules = LevelRules(config)
        self._scheduler = TaskScheduler()
        self._snapshot_builder = SnapshotBuilder()

        if area_size is None:
            area_size = (config.board.width, config.board.height)
        self._area_width, self._area_height = float(area_size[0]), float(area_size[1])

        # Display preferences survive resets
        self._sound_enabled: bool = True
        self._dark_theme: bool = False

        self._generation: int = 0
        self._countdown_task: Optional[ScheduledTask] = None
        self._quote_task: Optional[ScheduledTask] = None
        self._init_state()

        # Session-lifetime intervals
        self._scheduler.call_every(self._timing.animation_tick, self._on_animation_tick)
        self._scheduler.call_every(self._timing.shimmer_interval, self._on_shimmer_tick)

    def _init_state(self) -> None:
        self._mode: Mode = Mode.MENU
        self._level: int = 1
        self._time_left: Optional[int] = None
        self._bubbles: Dict[int, Bubble] = {}
        self._bubbles_remaining: int = 0
        self._level_intro: bool = False
        self._show_quote: bool = False
        self._quote: str = ""
        self._completion_message: str = ""

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def config(self) -> GameConfig:
        return self._config

    @property
    def catalog(self) -> LevelCatalog:
        return self._catalog

    @property
    def mode(self) -> Mode:
        return self._mode

    @property
    def level(self) -> int:
        """Current level number."""
        return self._level

    @property
    def current_level(self) -> Optional[LevelDefinition]:
        return self._catalog.get(self._level)

    @property
    def time_left(self) -> Optional[int]:
        """Seconds left on the clock, None when no countdown is running."""
        return self._time_left

    @property
    def bubbles(self) -> List[Bubble]:
        return list(self._bubbles.values())

    @property
    def bubbles_remaining(self) -> int:
        return self._bubbles_remaining

    @property
    def score(self) -> int:
        return self._ledger.score

    @property
    def streak(self) -> int:
        return self._ledger.streak

    @property
    def best_streak(self) -> int:
        return self._ledger.best_streak

    @property
    def unlocked(self) -> Tuple[UnlockedReward, ...]:
        return self._ledger.unlocked

    @property
    def ledger(self) -> ScoreLedger:
        return self._ledger

    @property
    def particles(self) -> ParticleSimulator:
        return self._particles

    @property
    def scheduler(self) -> TaskScheduler:
        return self._scheduler

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def level_intro(self) -> bool:
        return self._level_intro

    @property
    def show_quote(self) -> bool:
        return self._show_quote

    @property
    def quote(self) -> str:
        return self._quote

    @property
    def completion_message(self) -> str:
        return self._completion_message

    @property
    def sound_enabled(self) -> bool:
        return self._sound_enabled

    @property
    def dark_theme(self) -> bool:
        return self._dark_theme

    @property
    def area_size(self) -> Tuple[float, float]:
        return (self._area_width, self._area_height)

    @property
    def viewport_is_narrow(self) -> bool:
        return self._area_width < self._config.board.narrow_width

    @property
    def now(self) -> int:
        """Simulated time in milliseconds."""
        return self._scheduler.now

    def snapshot(self) -> SessionSnapshot:
        """Build a read-only snapshot for rendering."""
        return self._snapshot_builder.build(self)

    def bubble_at(self, x: float, y: float) -> Optional[Bubble]:
        """Topmost live bubble under play-area pixel (x, y), if any."""
        for bubble in reversed(list(self._bubbles.values())):
            if not bubble.popping and bubble.contains(x, y, self._area_width, self._area_height):
                return bubble
        return None

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def start_level(self, number: int) -> bool:
        """
        Begin the intro for a level from the menu.

        Returns:
            True if accepted. Unknown levels and other modes are ignored.
        """
        if self._mode is not Mode.MENU or self._level_intro:
            logger.debug("start_level(%s) ignored in mode %s", number, self._mode.value)
            return False
        if not self._catalog.has_level(number):
            logger.debug("start_level(%s) ignored: no such level", number)
            return False
        self._begin_intro(number)
        return True

    def advance_to_next_level(self) -> bool:
        """Move on from levelComplete to the next level's intro."""
        if self._mode is not Mode.LEVEL_COMPLETE or self._level_intro:
            logger.debug("advance_to_next_level ignored in mode %s", self._mode.value)
            return False
        if not self._catalog.has_level(self._level + 1):
            return False
        self._begin_intro(self._level + 1)
        return True

    def retry_level(self) -> bool:
        """Replay the current level after a game over."""
        if self._mode is not Mode.GAME_OVER or self._level_intro:
            logger.debug("retry_level ignored in mode %s", self._mode.value)
            return False
        self._begin_intro(self._level)
        return True

    def return_to_menu(self) -> bool:
        """Leave a finished level for the menu. This is a full reset."""
        if self._mode not in (Mode.LEVEL_COMPLETE, Mode.GAME_OVER, Mode.GAME_COMPLETE):
            logger.debug("return_to_menu ignored in mode %s", self._mode.value)
            return False
        return self.reset()

    def reset(self) -> bool:
        """
        Restore the initial menu state from any state.

        Cancels every level-scoped task and clears bubbles and particles.
        Unlocked rewards are kept only if the session config asks for it.
        """
        self._new_generation()
        self._particles.clear()
        self._ledger.reset(keep_unlocks=self._config.session.keep_unlocks_on_reset)
        self._init_state()
        logger.info("Session reset")
        return True

    def toggle_sound(self) -> bool:
        self._sound_enabled = not self._sound_enabled
        return True

    def toggle_theme(self) -> bool:
        self._dark_theme = not self._dark_theme
        return True

    def set_area_size(self, width: float, height: float) -> None:
        """Update the play-area size used for confetti and viewport checks."""
        self._area_width, self._area_height = float(width), float(height)

    def close(self) -> None:
        """Tear down the session, dropping every pending task."""
        self._generation += 1
        self._scheduler.cancel_all()
        self._countdown_task = None
        self._quote_task = None

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def pop(self, bubble_id: int, coordinates: Tuple[float, float]) -> bool:
        """
        Pop a bubble.

        Args:
            bubble_id: Id of the bubble hit.
            coordinates: Hit point in play-area pixels.

        Returns:
            True if the pop counted. Pops outside play, on unknown bubbles
            or on bubbles already popping are ignored.
        """
        if self._mode is not Mode.PLAYING:
            logger.debug("pop(%s) ignored in mode %s", bubble_id, self._mode.value)
            return False
        bubble = self._bubbles.get(bubble_id)
        if bubble is None or bubble.popping:
            logger.debug("pop(%s) ignored: no live bubble", bubble_id)
            return False

        bubble.popping = True
        self._schedule(self._timing.pop_grace, lambda: self._remove_bubble(bubble_id))
        self._particles.spawn_burst(coordinates, bubble.color)

        event = self._ledger.apply_pop(self._level)
        if event.is_milestone:
            self._show_new_quote()

        if self._sound_enabled and self._tone_sink is not None:
            self._tone_sink(self._ledger.select_tone(self.current_level))
        return True

    def advance_time(self, ms: int) -> int:
        """
        Advance simulated time, running every task that falls due.

        Returns:
            Number of callbacks run.
        """
        return self._scheduler.advance(ms)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _schedule(self, delay: int, callback: Callable[[], None]) -> ScheduledTask:
        """Schedule a one-shot task bound to the current generation."""
        return self._scheduler.call_later(
            delay, self._guarded(callback), generation=self._generation
        )

    def _guarded(self, callback: Callable[[], None]) -> Callable[[], None]:
        generation = self._generation

        def run() -> None:
            if generation != self._generation:
                return
            callback()

        return run

    def _new_generation(self) -> None:
        """Abandon everything scheduled for the current level."""
        self._generation += 1
        self._scheduler.cancel_stale(self._generation)
        self._countdown_task = None
        self._quote_task = None
        self._show_quote = False
        self._quote = ""

    def _begin_intro(self, number: int) -> None:
        self._new_generation()
        self._level = number
        self._bubbles = {}
        self._bubbles_remaining = 0
        self._time_left = None
        self._completion_message = ""
        self._level_intro = True
        self._schedule(self._timing.level_intro, self._finish_intro)
        logger.info("Level %d intro", number)

    def _finish_intro(self) -> None:
        level = self.current_level
        if level is None:
            return

        field = self._generator.generate(level, self.viewport_is_narrow)
        self._bubbles = {bubble.id: bubble for bubble in field}
        self._bubbles_remaining = len(field)
        self._time_left = level.time_limit
        if level.is_timed:
            self._countdown_task = self._scheduler.call_every(
                self._timing.countdown_tick,
                self._guarded(self._on_countdown_tick),
                generation=self._generation
            )
        self._level_intro = False
        self._mode = Mode.PLAYING
        logger.info(
            "Level %d started: %d bubbles, %s",
            level.number, len(field),
            f"{level.time_limit}s limit" if level.is_timed else "untimed"
        )
        self._check_outcome()

    def _remove_bubble(self, bubble_id: int) -> None:
        if self._bubbles.pop(bubble_id, None) is None:
            return
        self._bubbles_remaining = max(0, self._bubbles_remaining - 1)
        self._check_outcome()

    def _on_countdown_tick(self) -> None:
        if self._mode is not Mode.PLAYING:
            return
        self._time_left = self._rules.tick_countdown(self._time_left)
        self._check_outcome()

    def _check_outcome(self) -> None:
        if self._mode is not Mode.PLAYING:
            return
        live = sum(1 for bubble in self._bubbles.values() if not bubble.popping)
        outcome = self._rules.check(self._bubbles_remaining, self._time_left, live)
        if not outcome.finished:
            return
        if outcome.cleared:
            self._complete_level()
        elif outcome.timed_out:
            self._time_up()

    def _stop_countdown(self) -> None:
        self._scheduler.cancel(self._countdown_task)
        self._countdown_task = None

    def _complete_level(self) -> None:
        level = self.current_level
        self._stop_countdown()

        self._completion_message = self._rng.choice(self._config.completion_messages)
        self._particles.spawn_confetti(self._area_width)

        reward = self._ledger.unlock(level)
        if reward is not None:
            logger.info("Unlocked reward from level %d: %s", level.number, reward)

        bonus = self._rules.time_bonus(level, self._time_left)
        self._ledger.add_bonus(bonus)

        if self._catalog.is_last(level.number):
            self._mode = Mode.GAME_COMPLETE
        else:
            self._mode = Mode.LEVEL_COMPLETE
        logger.info(
            "Level %d complete (bonus %d, score %d) -> %s",
            level.number, bonus, self._ledger.score, self._mode.value
        )

    def _time_up(self) -> None:
        self._stop_countdown()
        logger.info("Level %d timed out with %d bubbles left", self._level, self._bubbles_remaining)

        if self._rules.timeout_policy is TimeoutPolicy.RESET:
            self.reset()
            return

        # Pending removals and quotes belong to the abandoned field
        self._new_generation()
        self._bubbles = {}
        self._mode = Mode.GAME_OVER

    def _show_new_quote(self) -> None:
        self._scheduler.cancel(self._quote_task)
        self._quote = self._rng.choice(self._config.quotes)
        self._show_quote = True
        self._quote_task = self._schedule(self._timing.quote_duration, self._hide_quote)

    def _hide_quote(self) -> None:
        self._show_quote = False
        self._quote_task = None

    def _on_animation_tick(self) -> None:
        self._particles.advance(1)

    def _on_shimmer_tick(self) -> None:
        if self._bubbles:
            self._generator.reroll_shimmer(self._bubbles.values())
