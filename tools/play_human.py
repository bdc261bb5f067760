"""
Human Play Mode
================

Play Bubble Popper interactively. This is the presentation and audio side
of the game: it draws session snapshots and synthesizes pop tones, while
all game logic stays in GameSession.

Controls:
    - Click: Pop a bubble
    - 1-9: Start level from the menu
    - N: Next level (after completing one)
    - R: Retry level (after game over)
    - M: Return to menu
    - Backspace: Reset session
    - S: Toggle sound
    - T: Toggle dark theme
    - ESC: Quit

Usage:
    python -m tools.play_human [--seed SEED] [--width WIDTH] [--height HEIGHT]
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Dict, Optional, Tuple

import numpy as np

try:
    import pygame
    PYGAME_AVAILABLE = True
except ImportError:
    PYGAME_AVAILABLE = False

from bubble_popper.popper_core.config_loader import GameConfig, ToneConfig, load_config
from bubble_popper.popper_core.rules import Mode
from bubble_popper.popper_core.session import GameSession
from bubble_popper.popper_core.state_snapshot import SessionSnapshot

logger = logging.getLogger("play_human")

SAMPLE_RATE = 44100


class ToneSynth:
    """
    Plays pop tones: an exponential frequency sweep with a decaying gain.

    Sounds are rendered once per profile and cached.
    """

    def __init__(self, tones: Dict[str, ToneConfig]):
        self._tones = tones
        self._cache: Dict[str, "pygame.mixer.Sound"] = {}
        self._enabled = True
        try:
            pygame.mixer.init(frequency=SAMPLE_RATE, size=-16, channels=1)
        except pygame.error as e:
            logger.warning("Audio disabled: %s", e)
            self._enabled = False

    @staticmethod
    def render_samples(tone: ToneConfig, sample_rate: int = SAMPLE_RATE) -> np.ndarray:
        """Render a tone profile to int16 samples."""
        n = max(1, int(tone.duration * sample_rate))
        t = np.arange(n) / sample_rate
        ratio = tone.end_hz / tone.start_hz
        freq = tone.start_hz * ratio ** (t / tone.duration)
        phase = 2.0 * np.pi * np.cumsum(freq) / sample_rate
        # Gain falls to 0.01 over the tone, as an exponential ramp
        gain = tone.gain * (0.01 / tone.gain) ** (t / tone.duration)
        return (np.sin(phase) * gain * 32767).astype(np.int16)

    def play(self, profile: str) -> None:
        if not self._enabled:
            return
        tone = self._tones.get(profile) or self._tones["default"]
        sound = self._cache.get(tone.name)
        if sound is None:
            sound = pygame.sndarray.make_sound(self.render_samples(tone))
            self._cache[tone.name] = sound
        sound.play()


class BubbleRenderer:
    """Draws a session snapshot into the play area."""

    def __init__(self, config: GameConfig, window_width: int, window_height: int):
        self._config = config
        self._window_width = window_width
        self._window_height = window_height

        self._top_ui_height = 60
        self._area_rect = pygame.Rect(
            20, self._top_ui_height,
            window_width - 40, window_height - self._top_ui_height - 20
        )

        self._light_bg = ((253, 242, 248), (224, 231, 255))
        self._dark_bg = ((49, 46, 129), (30, 27, 75))
        self._text_light = (255, 255, 255)
        self._text_dark = (60, 40, 80)

        pygame.font.init()
        self._font_huge = pygame.font.Font(None, 56)
        self._font_large = pygame.font.Font(None, 40)
        self._font_medium = pygame.font.Font(None, 28)

    @property
    def area_rect(self) -> "pygame.Rect":
        return self._area_rect

    def screen_to_area(self, pos: Tuple[int, int]) -> Optional[Tuple[float, float]]:
        """Translate a window position to play-area pixels, None if outside."""
        if not self._area_rect.collidepoint(pos):
            return None
        return (float(pos[0] - self._area_rect.x), float(pos[1] - self._area_rect.y))

    def render(self, screen: "pygame.Surface", snap: SessionSnapshot) -> None:
        top, bottom = self._dark_bg if snap.dark_theme else self._light_bg
        for y in range(self._window_height):
            t = y / self._window_height
            color = tuple(int(top[i] * (1 - t) + bottom[i] * t) for i in range(3))
            pygame.draw.line(screen, color, (0, y), (self._window_width, y))

        text_color = self._text_light if snap.dark_theme else self._text_dark
        self._draw_hud(screen, snap, text_color)

        area = pygame.Surface(self._area_rect.size, pygame.SRCALPHA)
        area.fill((255, 255, 255, 40))
        self._draw_bubbles(area, snap)
        self._draw_particles(area, snap)
        screen.blit(area, self._area_rect.topleft)

        self._draw_overlay(screen, snap, text_color)

    def _draw_hud(self, screen, snap: SessionSnapshot, color) -> None:
        parts = [f"Score: {snap.score}", f"Streak: {snap.streak}", f"Best: {snap.best_streak}"]
        if snap.mode is not Mode.MENU:
            parts.append(f"Level {snap.level}")
            parts.append(f"Left: {snap.bubbles_remaining}")
        if snap.time_left is not None:
            parts.append(f"Time: {snap.time_left}s")
        if snap.unlocked_skins:
            parts.append("Skins: " + ", ".join(snap.unlocked_skins))
        if not snap.sound_enabled:
            parts.append("(muted)")
        text = self._font_medium.render("   ".join(parts), True, color)
        screen.blit(text, (20, 20))

    def _draw_bubbles(self, surface, snap: SessionSnapshot) -> None:
        w, h = self._area_rect.size
        for bubble in snap.bubbles:
            cx = int(bubble.x / 100.0 * w)
            cy = int(bubble.y / 100.0 * h)
            radius = int(bubble.size / 2)
            rgb = self._config.get_color(bubble.color)
            if bubble.popping:
                pygame.draw.circle(surface, rgb + (90,), (cx, cy), int(radius * 1.5), 3)
                continue
            alpha = 255 if bubble.shimmer else 220
            pygame.draw.circle(surface, rgb + (alpha,), (cx, cy), radius)
            pygame.draw.circle(surface, (255, 255, 255, 120), (cx, cy), radius, 2)
            highlight = max(2, radius // 5)
            pygame.draw.circle(
                surface, (255, 255, 255, 200),
                (cx - radius // 3, cy - radius // 3), highlight
            )

    def _draw_particles(self, surface, snap: SessionSnapshot) -> None:
        for particle in snap.particles + snap.confetti:
            rgb = self._config.get_color(particle.color)
            alpha = int(255 * particle.opacity)
            pygame.draw.circle(surface, rgb + (alpha,), (int(particle.x), int(particle.y)), 3)

    def _draw_centered(self, screen, font, text: str, y: int, color) -> None:
        surf = font.render(text, True, color)
        screen.blit(surf, ((self._window_width - surf.get_width()) // 2, y))

    def _draw_overlay(self, screen, snap: SessionSnapshot, color) -> None:
        mid = self._window_height // 2
        if snap.level_intro:
            self._draw_centered(screen, self._font_huge, f"Level {snap.level}", mid - 40, color)
            self._draw_centered(screen, self._font_large, snap.level_name, mid + 10, color)
        elif snap.mode is Mode.MENU:
            self._draw_centered(screen, self._font_huge, "Bubble Popper", mid - 120, color)
            for i, level in enumerate(self._config.levels):
                limit = f"{level.time_limit}s" if level.time_limit else "untimed"
                line = f"{level.number}: {level.name} ({level.bubble_count} bubbles, {limit})"
                self._draw_centered(screen, self._font_medium, line, mid - 50 + i * 30, color)
        elif snap.mode is Mode.LEVEL_COMPLETE:
            self._draw_centered(screen, self._font_huge, snap.completion_message, mid - 40, color)
            self._draw_centered(screen, self._font_medium, "N: next level   M: menu", mid + 20, color)
        elif snap.mode is Mode.GAME_OVER:
            self._draw_centered(screen, self._font_huge, "Time's up!", mid - 40, color)
            self._draw_centered(screen, self._font_medium, "R: retry   M: menu", mid + 20, color)
        elif snap.mode is Mode.GAME_COMPLETE:
            self._draw_centered(screen, self._font_huge, "All levels complete!", mid - 40, color)
            summary = f"Final Score: {snap.score} | Best Streak: {snap.best_streak}"
            self._draw_centered(screen, self._font_medium, summary, mid + 20, color)

        if snap.show_quote:
            self._draw_centered(screen, self._font_large, snap.quote, mid - 100, color)


class HumanPlayer:
    """Interactive Bubble Popper window."""

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        seed: Optional[int] = None,
        window_width: int = 960,
        window_height: int = 720,
        target_fps: int = 60
    ):
        if not PYGAME_AVAILABLE:
            raise ImportError("pygame required. Install: pip install pygame")

        if config is None:
            config = load_config()

        self._config = config
        self._target_fps = target_fps

        pygame.init()
        self._screen = pygame.display.set_mode((window_width, window_height))
        pygame.display.set_caption("Bubble Popper")
        self._clock = pygame.time.Clock()

        self._renderer = BubbleRenderer(config, window_width, window_height)
        self._synth = ToneSynth(config.tones)
        self._session = GameSession(
            config=config,
            seed=seed,
            area_size=self._renderer.area_rect.size,
            tone_sink=self._synth.play
        )
        self._running = True

    def run(self) -> int:
        """Run the game loop. Returns final score."""
        print("=== Bubble Popper ===")
        print("Press 1-9 to start a level, click bubbles to pop them, ESC to quit")
        print()

        while self._running:
            self._handle_events()
            elapsed = self._clock.tick(self._target_fps)
            self._session.advance_time(elapsed)
            self._renderer.render(self._screen, self._session.snapshot())
            pygame.display.flip()

        score = self._session.score
        self._session.close()
        pygame.quit()
        return score

    def _handle_events(self) -> None:
        """Process pygame events."""
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                self._running = False

            elif event.type == pygame.KEYDOWN:
                self._handle_key(event)

            elif event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
                self._handle_click(event.pos)

    def _handle_key(self, event) -> None:
        session = self._session
        if event.key == pygame.K_ESCAPE:
            self._running = False
        elif event.key == pygame.K_n:
            session.advance_to_next_level()
        elif event.key == pygame.K_r:
            session.retry_level()
        elif event.key == pygame.K_m:
            session.return_to_menu()
        elif event.key == pygame.K_BACKSPACE:
            session.reset()
        elif event.key == pygame.K_s:
            session.toggle_sound()
        elif event.key == pygame.K_t:
            session.toggle_theme()
        elif event.unicode and event.unicode.isdigit():
            session.start_level(int(event.unicode))

    def _handle_click(self, pos: Tuple[int, int]) -> None:
        local = self._renderer.screen_to_area(pos)
        if local is None:
            return
        bubble = self._session.bubble_at(*local)
        if bubble is not None and self._session.pop(bubble.id, local):
            logger.debug("Popped %d, score %d", bubble.id, self._session.score)


def main():
    parser = argparse.ArgumentParser(description="Play Bubble Popper interactively")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--width", type=int, default=960, help="Window width (default: 960)")
    parser.add_argument("--height", type=int, default=720, help="Window height (default: 720)")
    parser.add_argument("--fps", type=int, default=60, help="Target FPS")
    parser.add_argument("--config", type=str, default=None, help="Path to game_config.yaml")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s"
    )

    try:
        config = load_config(args.config)
        player = HumanPlayer(
            config=config,
            seed=args.seed,
            window_width=args.width,
            window_height=args.height,
            target_fps=args.fps
        )
        score = player.run()
        print(f"\nFinal Score: {score}")
        return 0
    except ImportError as e:
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
