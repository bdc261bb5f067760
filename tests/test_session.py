"""
Tests for the game session state machine.
"""

import dataclasses

import pytest

from bubble_popper.popper_core.config_loader import load_config
from bubble_popper.popper_core.rng import RandomSource
from bubble_popper.popper_core.rules import Mode
from bubble_popper.popper_core.session import GameSession

INTRO = 2000
GRACE = 300
SESSION_INTERVALS = 2  # animation tick and shimmer re-roll


class ScriptedRandom(RandomSource):
    """Random source that always returns the same value."""

    def __init__(self, value):
        super().__init__(seed=0)
        self._value = value

    def random(self) -> float:
        return self._value


@pytest.fixture
def config():
    return load_config()


@pytest.fixture
def tones():
    return []


@pytest.fixture
def session(config, tones):
    s = GameSession(config=config, seed=42, tone_sink=tones.append)
    yield s
    s.close()


def with_session(config, **changes):
    return dataclasses.replace(config, session=dataclasses.replace(config.session, **changes))


def play(session, level):
    """Start a level from the menu and wait out the intro."""
    assert session.start_level(level)
    session.advance_time(INTRO)
    assert session.mode is Mode.PLAYING


def pop_n(session, n):
    live = [b for b in session.bubbles if not b.popping]
    for bubble in live[:n]:
        assert session.pop(bubble.id, (100.0, 100.0))


def clear_level(session):
    pop_n(session, len(session.bubbles))
    session.advance_time(GRACE)


class TestInitialState:
    """Test the session before any command."""

    def test_starts_in_menu(self, session):
        """A new session is in the menu with zeroed state."""
        assert session.mode is Mode.MENU
        assert session.level == 1
        assert session.score == 0
        assert session.streak == 0
        assert session.bubbles == []
        assert session.time_left is None

    def test_pop_in_menu_ignored(self, session):
        """Pops in the menu are ignored."""
        assert not session.pop(0, (0.0, 0.0))
        assert session.score == 0


class TestLevelIntro:
    """Test the timed intro before play."""

    def test_no_bubbles_during_intro(self, session, config):
        """The field appears only when the intro ends."""
        assert session.start_level(1)
        assert session.level_intro
        assert session.bubbles == []
        session.advance_time(INTRO - 1)
        assert session.level_intro
        assert session.bubbles == []
        assert session.mode is Mode.MENU

        session.advance_time(1)
        assert not session.level_intro
        assert session.mode is Mode.PLAYING
        assert len(session.bubbles) == config.levels[0].bubble_count
        assert session.bubbles_remaining == config.levels[0].bubble_count

    def test_untimed_level_has_no_clock(self, session):
        """Untimed levels never time out."""
        play(session, 1)
        assert session.time_left is None
        session.advance_time(120000)
        assert session.mode is Mode.PLAYING

    def test_timed_level_starts_clock_after_intro(self, session):
        """The clock starts after the intro."""
        session.start_level(2)
        session.advance_time(INTRO)
        assert session.time_left == 60
        session.advance_time(1000)
        assert session.time_left == 59

    def test_start_level_ignored_during_intro(self, session):
        """A pending intro blocks another start."""
        assert session.start_level(1)
        assert not session.start_level(2)
        assert session.level == 1

    def test_invalid_level_ignored(self, session):
        """Unknown level numbers are ignored."""
        assert not session.start_level(0)
        assert not session.start_level(99)
        assert session.mode is Mode.MENU
        assert not session.level_intro

    def test_narrow_viewport_gets_fewer_bubbles(self, config):
        """Narrow sessions get smaller fields."""
        session = GameSession(config=config, seed=1, area_size=(500, 700))
        assert session.viewport_is_narrow
        play(session, 1)
        assert len(session.bubbles) < config.levels[0].bubble_count

    def test_empty_field_completes_immediately(self, config):
        """An empty field completes when the intro ends."""
        levels = (dataclasses.replace(config.levels[0], bubble_count=0),) + config.levels[1:]
        session = GameSession(config=dataclasses.replace(config, levels=levels), seed=1)
        session.start_level(1)
        session.advance_time(INTRO)
        assert session.mode is Mode.LEVEL_COMPLETE


class TestPopping:
    """Test pop handling, scoring and quotes."""

    def test_reference_scenario(self, session):
        """Level 1, five pops: streak 5, quote shown, score 50, ten left."""
        play(session, 1)
        assert session.bubbles_remaining == 15
        pop_n(session, 5)
        assert session.streak == 5
        assert session.show_quote
        assert session.quote in session.config.quotes
        assert session.score == 50
        session.advance_time(GRACE)
        assert session.bubbles_remaining == 10
        assert len(session.bubbles) == 10

    def test_popping_bubble_removed_after_grace(self, session):
        """A popped bubble leaves after the grace period."""
        play(session, 1)
        bubble = session.bubbles[0]
        assert session.pop(bubble.id, (10.0, 10.0))
        assert bubble.popping
        session.advance_time(GRACE - 1)
        assert session.bubbles_remaining == 15
        session.advance_time(1)
        assert session.bubbles_remaining == 14
        assert bubble.id not in [b.id for b in session.bubbles]

    def test_double_pop_ignored(self, session):
        """A popping bubble can't be popped again."""
        play(session, 1)
        bubble_id = session.bubbles[0].id
        assert session.pop(bubble_id, (0.0, 0.0))
        assert not session.pop(bubble_id, (0.0, 0.0))
        assert session.score == 10
        assert session.streak == 1

    def test_unknown_bubble_ignored(self, session):
        """Unknown bubble ids are ignored."""
        play(session, 1)
        assert not session.pop(999, (0.0, 0.0))
        assert session.score == 0

    def test_pop_spawns_burst_at_coordinates(self, session):
        """A pop bursts in the bubble's color at the click."""
        play(session, 1)
        bubble = session.bubbles[0]
        session.pop(bubble.id, (42.0, 24.0))
        particles = session.particles.particles
        assert len(particles) == 8
        assert all(p.color == bubble.color for p in particles)
        assert all((p.x, p.y) == (42.0, 24.0) for p in particles)

    def test_particles_decay_on_animation_tick(self, session):
        """The animation tick ages particles out."""
        play(session, 1)
        session.pop(session.bubbles[0].id, (0.0, 0.0))
        session.advance_time(16 * 30)
        assert session.particles.particles == []

    def test_score_scales_with_level(self, session):
        """Pops on level 2 score twenty each."""
        play(session, 1)
        clear_level(session)
        assert session.advance_to_next_level()
        session.advance_time(INTRO)
        before = session.score
        pop_n(session, 3)
        assert session.score - before == 10 * 2 * 3

    def test_quote_only_on_milestones(self, session):
        """Quotes appear on every fifth pop."""
        play(session, 1)
        shown = []
        for i in range(10):
            bubble = [b for b in session.bubbles if not b.popping][0]
            was_shown = session.show_quote
            session.pop(bubble.id, (0.0, 0.0))
            shown.append(session.show_quote and not was_shown)
            session.advance_time(2000)
        assert [i + 1 for i, s in enumerate(shown) if s] == [5, 10]

    def test_quote_hides_after_duration(self, session):
        """A quote hides after its duration."""
        play(session, 1)
        pop_n(session, 5)
        session.advance_time(1999)
        assert session.show_quote
        session.advance_time(1)
        assert not session.show_quote

    def test_new_quote_supersedes_old(self, session):
        """A new quote restarts the hide timer."""
        play(session, 1)
        pop_n(session, 5)
        session.advance_time(1500)
        pop_n(session, 5)
        session.advance_time(1000)
        assert session.show_quote
        session.advance_time(1000)
        assert not session.show_quote

    def test_scripted_quote_and_message(self, config):
        """Scripted draws pick the first quote and message."""
        session = GameSession(config=config, rng=ScriptedRandom(0.0))
        play(session, 1)
        pop_n(session, 5)
        assert session.quote == config.quotes[0]
        clear_level(session)
        assert session.completion_message == config.completion_messages[0]

    def test_best_streak_monotonic(self, session):
        """Best streak never decreases."""
        play(session, 1)
        best = []
        for _ in range(12):
            pop_n(session, 1)
            best.append(session.best_streak)
        assert best == sorted(best)
        assert session.best_streak == 12


class TestLevelCompletion:
    """Test clearing levels and progression."""

    def test_last_pop_completes_after_grace(self, session, config):
        """The level completes once the last removal runs."""
        play(session, 1)
        pop_n(session, len(session.bubbles))
        assert session.mode is Mode.PLAYING
        session.advance_time(GRACE)
        assert session.mode is Mode.LEVEL_COMPLETE
        assert session.completion_message in config.completion_messages
        assert len(session.particles.confetti) == config.particles.confetti.count

    def test_untimed_bonus(self, session, config):
        """Untimed levels add the flat bonus."""
        play(session, 1)
        clear_level(session)
        expected = 10 * 15 + config.scoring.untimed_bonus_per_level * 1
        assert session.score == expected

    def test_timed_bonus_and_unlock(self, session, config):
        """Timed levels pay for seconds left and unlock rewards."""
        play(session, 2)
        session.advance_time(5000)
        assert session.time_left == 55
        clear_level(session)
        assert session.mode is Mode.LEVEL_COMPLETE
        expected = 20 * 20 + 55 * config.scoring.time_bonus_per_second
        assert session.score == expected
        assert [r.sound for r in session.unlocked] == ["ocean"]

    def test_clock_stops_on_completion(self, session):
        """Completion stops the countdown."""
        play(session, 2)
        clear_level(session)
        left = session.time_left
        session.advance_time(10000)
        assert session.time_left == left
        assert session.scheduler.pending == SESSION_INTERVALS

    def test_advance_to_next_level(self, session):
        """Next level starts with its intro and clock."""
        play(session, 1)
        clear_level(session)
        assert session.advance_to_next_level()
        assert session.level == 2
        assert session.level_intro
        session.advance_time(INTRO)
        assert session.mode is Mode.PLAYING
        assert session.time_left == 60

    def test_last_level_completes_game(self, session, config):
        """Clearing the last level completes the game."""
        last = len(config.levels)
        play(session, last)
        clear_level(session)
        assert session.mode is Mode.GAME_COMPLETE
        assert not session.advance_to_next_level()
        assert session.return_to_menu()
        assert session.mode is Mode.MENU

    def test_commands_ignored_in_wrong_mode(self, session):
        """Commands outside their modes are ignored."""
        assert not session.advance_to_next_level()
        assert not session.retry_level()
        assert not session.return_to_menu()
        play(session, 1)
        assert not session.advance_to_next_level()
        assert not session.retry_level()
        assert not session.start_level(2)


class TestTimeout:
    """Test timed levels running out."""

    def test_timeout_game_over(self, session):
        """Running out of time ends in game over."""
        play(session, 2)
        session.advance_time(59000)
        assert session.mode is Mode.PLAYING
        assert session.time_left == 1
        session.advance_time(1000)
        assert session.mode is Mode.GAME_OVER
        assert session.time_left == 0
        assert session.bubbles == []
        assert session.scheduler.pending == SESSION_INTERVALS

    def test_retry_gets_fresh_clock(self, session):
        """Retry restarts the level with a full clock."""
        play(session, 2)
        session.advance_time(60000)
        assert session.retry_level()
        session.advance_time(INTRO)
        assert session.mode is Mode.PLAYING
        assert session.time_left == 60
        session.advance_time(1000)
        assert session.time_left == 59

    def test_stale_removal_does_not_touch_retried_level(self, session, config):
        """Removals from a timed-out field don't reach the retry."""
        play(session, 2)
        session.advance_time(59900)
        pop_n(session, 1)
        session.advance_time(100)
        assert session.mode is Mode.GAME_OVER

        session.retry_level()
        session.advance_time(INTRO)
        count = config.levels[1].bubble_count
        assert session.bubbles_remaining == count
        session.advance_time(GRACE)
        assert session.bubbles_remaining == count
        assert session.mode is Mode.PLAYING

    def test_timeout_reset_policy(self, config):
        """The reset policy returns to the menu on timeout."""
        session = GameSession(config=with_session(config, timeout_policy="reset"), seed=3)
        play(session, 2)
        pop_n(session, 2)
        session.advance_time(60000)
        assert session.mode is Mode.MENU
        assert session.score == 0
        assert session.level == 1
        assert session.scheduler.pending == SESSION_INTERVALS

    def test_clock_runs_out_while_last_bubbles_pop(self, session):
        """Popping every bubble before zero still clears the level at zero."""
        play(session, 2)
        session.advance_time(59900)
        pop_n(session, len(session.bubbles))
        session.advance_time(100)
        assert session.time_left == 0
        assert session.mode is Mode.PLAYING
        session.advance_time(GRACE - 100)
        assert session.mode is Mode.LEVEL_COMPLETE
        assert session.bubbles_remaining == 0
        assert session.score == 20 * 20
        assert [r.sound for r in session.unlocked] == ["ocean"]

    def test_live_bubble_at_zero_still_times_out(self, session):
        """One bubble left unpopped at zero ends the level."""
        play(session, 2)
        session.advance_time(59900)
        pop_n(session, len(session.bubbles) - 1)
        session.advance_time(100)
        assert session.mode is Mode.GAME_OVER


class TestReset:
    """Test full resets."""

    def test_reset_from_playing(self, session):
        """Reset clears play state back to the menu."""
        play(session, 2)
        pop_n(session, 5)
        session.reset()
        assert session.mode is Mode.MENU
        assert (session.score, session.streak, session.best_streak) == (0, 0, 0)
        assert session.level == 1
        assert session.bubbles == []
        assert session.particles.particles == []
        assert session.particles.confetti == []
        assert session.time_left is None
        assert not session.show_quote
        assert session.scheduler.pending == SESSION_INTERVALS

    def test_pending_removal_cancelled(self, session):
        """Reset cancels pending removals."""
        play(session, 1)
        pop_n(session, 1)
        session.reset()
        play(session, 1)
        session.advance_time(GRACE)
        assert session.bubbles_remaining == 15

    def test_reset_during_intro(self, session):
        """Reset cancels a pending intro."""
        session.start_level(3)
        session.reset()
        session.advance_time(INTRO * 2)
        assert session.mode is Mode.MENU
        assert session.bubbles == []

    def test_reset_clears_unlocks_by_default(self, session):
        """Reset clears score, streaks and unlocks."""
        play(session, 2)
        clear_level(session)
        assert session.unlocked
        session.return_to_menu()
        assert session.unlocked == ()

    def test_keep_unlocks_policy_and_tone(self, config, tones):
        """Kept unlocks switch the level's pop tone."""
        session = GameSession(
            config=with_session(config, keep_unlocks_on_reset=True),
            seed=5,
            tone_sink=tones.append
        )
        play(session, 2)
        pop_n(session, 1)
        assert tones == ["default"]
        session.advance_time(GRACE)
        clear_level(session)
        session.return_to_menu()
        assert [r.sound for r in session.unlocked] == ["ocean"]

        play(session, 2)
        pop_n(session, 1)
        assert tones[-1] == "ocean"

    def test_display_preferences(self, session, tones):
        """Sound and theme toggles survive reset."""
        assert session.toggle_theme()
        assert session.dark_theme
        assert session.toggle_sound()
        assert not session.sound_enabled
        play(session, 1)
        pop_n(session, 1)
        assert tones == []
        session.reset()
        assert session.dark_theme
        assert not session.sound_enabled


class TestSnapshot:
    """Test the renderer-facing snapshot."""

    def test_snapshot_fields(self, session):
        """Snapshot mirrors session state."""
        play(session, 2)
        pop_n(session, 1)
        snap = session.snapshot()
        assert snap.mode is Mode.PLAYING
        assert snap.level == 2
        assert snap.time_left == 60
        assert snap.score == 20
        assert snap.streak == 1
        assert len(snap.bubbles) == 20
        assert len(snap.particles) == 8
        assert snap.theme.name == session.current_level.theme.name

    def test_snapshot_is_a_copy(self, session):
        """Snapshots don't follow later changes."""
        play(session, 1)
        snap = session.snapshot()
        session.pop(snap.bubbles[0].id, (0.0, 0.0))
        assert not snap.bubbles[0].popping
        assert session.snapshot().bubbles[0].popping

    def test_to_dict(self, session):
        """to_dict gives plain values."""
        play(session, 1)
        pop_n(session, 1)
        data = session.snapshot().to_dict()
        assert data["mode"] == "playing"
        assert data["time_left"] is None
        assert len(data["particles"]) == 8
        assert 0.0 <= data["particles"][0]["opacity"] <= 1.0

    def test_unlocked_skins(self, session):
        """Skins earned by clearing levels appear in the snapshot."""
        assert session.snapshot().unlocked_skins == ()
        play(session, 2)
        clear_level(session)
        snap = session.snapshot()
        assert snap.unlocked_skins == ("pearl",)
        assert snap.to_dict()["unlocked_skins"] == ["pearl"]


class TestHitTesting:
    """Test locating bubbles from play-area pixels."""

    def test_bubble_at(self, session):
        """Hit testing finds the bubble under a pixel."""
        play(session, 1)
        width, height = session.area_size
        bubble = session.bubbles[-1]
        x = bubble.x / 100.0 * width
        y = bubble.y / 100.0 * height
        hit = session.bubble_at(x, y)
        assert hit is not None
        assert hit.contains(x, y, width, height)

    def test_popping_bubbles_not_hit(self, session):
        """Popping bubbles are not hit."""
        play(session, 1)
        for bubble in session.bubbles:
            session.pop(bubble.id, (0.0, 0.0))
        width, height = session.area_size
        bubble = session.bubbles[0]
        assert session.bubble_at(bubble.x / 100.0 * width, bubble.y / 100.0 * height) is None
