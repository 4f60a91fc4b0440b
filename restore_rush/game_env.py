import gymnasium as gym
from gymnasium.spaces import MultiDiscrete
import numpy as np
import pygame
import pygame.gfxdraw
import math
import logging
import os

from .config import FPS, GRID_SIZE, SAVE_PATH, configure_logging
from .levels import LEVELS
from .pointer import SurfaceMapping
from .progress import ProgressStore
from .session import RoundSession, WRONG_TOOL_TIME_PENALTY
from .shapes import build_clean_colors, build_dirt_base_colors
from .tools import ToolKind, TOOL_HINTS, dirt_label, tool_label, tool_settings

os.environ.setdefault("SDL_VIDEODRIVER", "dummy")

logger = logging.getLogger(__name__)


class GameEnv(gym.Env):
    metadata = {"render_modes": ["rgb_array"], "render_fps": FPS}

    user_guide = (
        "Controls: Arrow keys move the pointer. Hold space to clean. Shift cycles Brush/Spray/Scraper."
    )

    game_description = (
        "Scrub dust, rust and paint off an old object with the right tool before the timer runs out."
    )

    # Frames auto-advance for real-time gameplay.
    auto_advance = True

    def __init__(self, render_mode="rgb_array", progress=None, level_index=None, grid_size=GRID_SIZE):
        super().__init__()

        # --- Constants ---
        self.SCREEN_WIDTH = 640
        self.SCREEN_HEIGHT = 400
        self.FPS = FPS
        self.DT = 1.0 / self.FPS
        self.GRID_SIZE = max(32, int(grid_size))
        self.POINTER_SPEED = 8
        self.SURFACE_RECT = (24, 40, 336, 336)

        # --- Gymnasium Spaces ---
        self.observation_space = gym.spaces.Box(
            low=0, high=255, shape=(self.SCREEN_HEIGHT, self.SCREEN_WIDTH, 3), dtype=np.uint8
        )
        self.action_space = MultiDiscrete([5, 2, 2])

        # --- Pygame Setup ---
        pygame.init()
        pygame.font.init()
        self.screen = pygame.Surface((self.SCREEN_WIDTH, self.SCREEN_HEIGHT))
        self.clock = pygame.time.Clock()
        self.font_main = pygame.font.Font(None, 30)
        self.font_small = pygame.font.Font(None, 20)
        self.font_large = pygame.font.Font(None, 52)

        # --- Colors ---
        self.COLOR_BG = (13, 18, 28)
        self.COLOR_FRAME = (41, 51, 69)
        self.COLOR_PANEL = (26, 36, 51)
        self.COLOR_TEXT = (224, 235, 255)
        self.COLOR_TEXT_DIM = (184, 209, 242)
        self.COLOR_COMBO = (255, 224, 115)
        self.COLOR_WRONG = (255, 120, 120)
        self.COLOR_BAR_BG = (56, 71, 92)
        self.COLOR_BAR_FILL = (87, 201, 143)
        self.COLOR_TARGET = (255, 255, 255)
        self.COLOR_TOOL = (28, 41, 64)
        self.COLOR_TOOL_SELECTED = (46, 148, 219)
        self.COLOR_POINTER = (255, 240, 160)
        self.COLOR_SPARKLE = (255, 255, 230)

        # --- State Variables ---
        self.progress = progress if progress is not None else ProgressStore()
        self.requested_level = level_index
        self.session = None
        self.mapping = SurfaceMapping(self.SURFACE_RECT, self.GRID_SIZE, self.GRID_SIZE)
        self.pointer_pos = [0.0, 0.0]
        self.pointer_down = False
        self.prev_space_held = False
        self.prev_shift_held = False
        self.score = 0.0
        self.steps = 0
        self.game_over = False
        self.particles = []

        self.clean_rgb = None
        self.dirt_base = None
        self.object_rgb = None
        self.object_surface = None

        self.reset(seed=42)
        self.validate_implementation()

    def reset(self, seed=None, options=None):
        super().reset(seed=seed)
        options = options or {}

        level_index = options.get("level_index", self.requested_level)
        if level_index is None:
            level_index = self.progress.current_level

        self.session = RoundSession(self.progress, level_index, self.GRID_SIZE, self.GRID_SIZE)
        self.progress.set_current_level(self.session.level_index)

        x, y, w, h = self.SURFACE_RECT
        self.pointer_pos = [x + w / 2, y + h / 2]
        self.pointer_down = False
        self.prev_space_held = True  # Prevent a stroke on the first frame
        self.prev_shift_held = True
        self.score = 0.0
        self.steps = 0
        self.game_over = False
        self.particles = []

        self._build_object_layers()

        return self._get_observation(), self._get_info()

    def step(self, action):
        if self.game_over:
            return self._get_observation(), 0, True, False, self._get_info()

        movement, space_action, shift_action = action
        space_held = space_action == 1
        shift_held = shift_action == 1
        reward = 0.0

        # --- Handle Actions ---
        # 1. Pointer movement
        if movement == 1: self.pointer_pos[1] -= self.POINTER_SPEED  # Up
        elif movement == 2: self.pointer_pos[1] += self.POINTER_SPEED  # Down
        elif movement == 3: self.pointer_pos[0] -= self.POINTER_SPEED  # Left
        elif movement == 4: self.pointer_pos[0] += self.POINTER_SPEED  # Right
        self.pointer_pos[0] = min(max(self.pointer_pos[0], 0), self.SCREEN_WIDTH - 1)
        self.pointer_pos[1] = min(max(self.pointer_pos[1], 0), self.SCREEN_HEIGHT - 1)

        # 2. Tool cycling (on key press, not hold)
        if shift_held and not self.prev_shift_held:
            self.session.cycle_tool()
        self.prev_shift_held = shift_held

        # 3. Cleaning
        pointer = self.mapping.sample(self.pointer_pos, space_held, space_held and not self.prev_space_held)
        self.pointer_down = space_held
        self.prev_space_held = space_held

        clean_before = self.session.clean_fraction
        wrong_before = self.session.wrong_stroke_count
        ended = self.session.tick(self.DT, pointer)

        # --- Calculate Reward ---
        cleaned = self.session.clean_fraction - clean_before
        reward += cleaned * 100.0
        if self.session.wrong_stroke_count > wrong_before:
            reward -= 1.0
        if cleaned > 0 and pointer.inside:
            self._create_sparkles(self.pointer_pos, min(6, 1 + int(cleaned * 400)))

        if ended:
            self.game_over = True
            result = self.session.result
            if result.won:
                reward += 50.0 + result.stars * 10.0
            else:
                reward -= 10.0
            logger.debug("Episode over after %d steps, score %.1f", self.steps + 1, self.score + reward)

        # --- Update Game State ---
        self.steps += 1
        self.score += reward
        self._update_particles()

        terminated = bool(self.game_over)
        return self._get_observation(), float(reward), terminated, False, self._get_info()

    # --- Rendering ---

    def _build_object_layers(self):
        field = self.session.field
        style = self.session.level.shape_style
        self.clean_rgb = build_clean_colors(style, field.width, field.height)
        self.dirt_base = build_dirt_base_colors(style, field.dirt_kinds)
        self.object_rgb = np.zeros((field.height, field.width, 3), dtype=np.float64)
        self._composite_region(0, 0, field.width - 1, field.height - 1)
        field.consume_dirty_region()

    def _composite_region(self, min_x, min_y, max_x, max_y):
        field = self.session.field
        window = (slice(min_y, max_y + 1), slice(min_x, max_x + 1))
        alpha = (self.dirt_base[window][..., 3] * field.dirt_values[window])[..., None]
        color = self.clean_rgb[window] * (1.0 - alpha) + self.dirt_base[window][..., :3] * alpha
        frame = np.array(self.COLOR_FRAME, dtype=np.float64) / 255.0
        color[~field.object_mask[window]] = frame
        self.object_rgb[window] = color

        # Grid rows grow upward, screen rows grow downward.
        image = (np.flipud(self.object_rgb) * 255).astype(np.uint8)
        surf = pygame.surfarray.make_surface(np.transpose(image, (1, 0, 2)))
        self.object_surface = pygame.transform.scale(surf, self.SURFACE_RECT[2:])

    def _get_observation(self):
        region = self.session.field.consume_dirty_region()
        if region is not None:
            self._composite_region(*region)

        self.screen.fill(self.COLOR_BG)
        self._render_game()
        self._render_ui()
        arr = pygame.surfarray.array3d(self.screen)
        return np.transpose(arr, (1, 0, 2)).astype(np.uint8)

    def _render_game(self):
        x, y, w, h = self.SURFACE_RECT
        pygame.draw.rect(self.screen, self.COLOR_FRAME, (x - 8, y - 8, w + 16, h + 16), border_radius=6)
        self.screen.blit(self.object_surface, (x, y))

        self._render_particles()

        # Render pointer with the tool's reach
        radius_cells, _ = tool_settings(self.session.selected_tool)
        radius = max(2, int(radius_cells * w / self.GRID_SIZE))
        px, py = int(self.pointer_pos[0]), int(self.pointer_pos[1])
        pulse = 1 + int(math.sin(self.steps * 0.3) * 1.5) if self.pointer_down else 0
        pygame.gfxdraw.aacircle(self.screen, px, py, radius + pulse, self.COLOR_POINTER)
        pygame.gfxdraw.filled_circle(self.screen, px, py, 2, self.COLOR_POINTER)

    def _render_ui(self):
        session = self.session
        panel_x = self.SURFACE_RECT[0] + self.SURFACE_RECT[2] + 24
        panel_w = self.SCREEN_WIDTH - panel_x - 16

        # Objective
        title = self.font_small.render(
            f"{session.level.name} - clean at least {session.target_permille / 10:.1f}%", True, self.COLOR_TEXT_DIM
        )
        self.screen.blit(title, (self.SURFACE_RECT[0], 12))

        pygame.draw.rect(self.screen, self.COLOR_PANEL, (panel_x, 40, panel_w, 220), border_radius=6)
        lines = [
            (f"Level {session.level_index + 1}", self.font_main, self.COLOR_TEXT),
            (f"Time: {session.time_remaining:.1f}s", self.font_main, self.COLOR_TEXT),
            (f"Cleaned: {session.clean_permille / 10:.1f}% / {session.target_permille / 10:.1f}%", self.font_small, self.COLOR_TEXT),
            (f"Strokes: {session.stroke_count}", self.font_small, self.COLOR_TEXT),
            (f"Combo: x{max(0, session.combo_streak)}", self.font_small, self.COLOR_COMBO),
        ]
        ty = 50
        for text, font, color in lines:
            surf = font.render(text, True, color)
            self.screen.blit(surf, (panel_x + 12, ty))
            ty += surf.get_height() + 8

        # Progress bar with target marker
        bar = pygame.Rect(panel_x + 12, ty + 4, panel_w - 24, 14)
        pygame.draw.rect(self.screen, self.COLOR_BAR_BG, bar, border_radius=4)
        fill_w = int(bar.width * session.clean_permille / 1000)
        if fill_w > 0:
            pygame.draw.rect(self.screen, self.COLOR_BAR_FILL, (bar.x, bar.y, fill_w, bar.height), border_radius=4)
        target_x = bar.x + int(bar.width * session.target_permille / 1000)
        pygame.draw.line(self.screen, self.COLOR_TARGET, (target_x, bar.y - 3), (target_x, bar.bottom + 2), 2)

        # Tool buttons
        button_w = (panel_w - 16) // 3
        for i, tool in enumerate(ToolKind):
            rect = pygame.Rect(panel_x + i * (button_w + 8), 272, button_w, 30)
            color = self.COLOR_TOOL_SELECTED if tool == session.selected_tool else self.COLOR_TOOL
            pygame.draw.rect(self.screen, color, rect, border_radius=5)
            label = self.font_small.render(tool_label(tool), True, self.COLOR_TEXT)
            self.screen.blit(label, label.get_rect(center=rect.center))

        # Hints
        if session.wrong_tool_hint_active:
            hint, hint_color = f"Wrong tool used: -{WRONG_TOOL_TIME_PENALTY:.1f}s", self.COLOR_WRONG
        else:
            hint, hint_color = TOOL_HINTS[session.selected_tool], self.COLOR_TEXT_DIM
        self.screen.blit(self.font_small.render(hint, True, hint_color), (panel_x, 312))

        rules = self.font_small.render("Dust=Brush | Rust=Scraper | Paint=Spray", True, self.COLOR_TEXT_DIM)
        self.screen.blit(rules, (panel_x, 334))
        self.screen.blit(self.font_small.render(self._cursor_hint(), True, self.COLOR_TEXT), (panel_x, 356))

        # Game Over Message
        if self.game_over:
            overlay = pygame.Surface((self.SCREEN_WIDTH, self.SCREEN_HEIGHT), pygame.SRCALPHA)
            overlay.fill((0, 0, 0, 180))
            self.screen.blit(overlay, (0, 0))

            result = session.result
            msg = "RESTORED!" if result.won else "TIME'S UP"
            color = (138, 235, 179) if result.won else (255, 143, 143)
            end_text = self.font_large.render(msg, True, color)
            self.screen.blit(end_text, end_text.get_rect(center=(self.SCREEN_WIDTH / 2, self.SCREEN_HEIGHT / 2 - 30)))

            stars = "*" * result.stars + "-" * (3 - result.stars)
            summary = self.font_main.render(
                f"Stars: {stars}   Coins: +{result.coin_reward}   Cleaned: {result.clean_fraction * 100:.1f}%",
                True, self.COLOR_TEXT,
            )
            self.screen.blit(summary, summary.get_rect(center=(self.SCREEN_WIDTH / 2, self.SCREEN_HEIGHT / 2 + 20)))

            details = self.font_small.render(
                f"Actions: {result.strokes}   Time: {result.duration_seconds:.1f}s   Total Coins: {self.progress.coins}",
                True, self.COLOR_TEXT_DIM,
            )
            self.screen.blit(details, details.get_rect(center=(self.SCREEN_WIDTH / 2, self.SCREEN_HEIGHT / 2 + 50)))

    def _cursor_hint(self):
        if not self.mapping.contains(self.pointer_pos):
            return "Under Cursor: -"
        hint = self.session.describe_cell(self.mapping.to_cell(self.pointer_pos))
        if hint is None:
            return "Under Cursor: clean area"
        state = "correct" if hint.correct else "wrong"
        return f"Under Cursor: {dirt_label(hint.dirt_kind)} | Best: {tool_label(hint.best_tool)} ({state} x{hint.multiplier:.2f})"

    def _create_sparkles(self, pos, count):
        for _ in range(count):
            angle = self.np_random.random() * 2 * math.pi
            speed = 0.5 + self.np_random.random() * 2
            vel = [math.cos(angle) * speed, math.sin(angle) * speed]
            lifetime = 8 + int(self.np_random.integers(0, 10))
            self.particles.append({'pos': list(pos), 'vel': vel, 'life': lifetime, 'max_life': lifetime})

    def _update_particles(self):
        for p in self.particles:
            p['pos'][0] += p['vel'][0]
            p['pos'][1] += p['vel'][1]
            p['vel'][0] *= 0.9
            p['vel'][1] *= 0.9
            p['life'] -= 1
        self.particles = [p for p in self.particles if p['life'] > 0]

    def _render_particles(self):
        for p in self.particles:
            life_ratio = p['life'] / p['max_life']
            radius = int(life_ratio * 3)
            if radius > 0:
                color = tuple(int(c * life_ratio) for c in self.COLOR_SPARKLE)
                pygame.gfxdraw.filled_circle(self.screen, int(p['pos'][0]), int(p['pos'][1]), radius, color)

    def _get_info(self):
        session = self.session
        info = {
            "score": self.score,
            "steps": self.steps,
            "level": session.level_index,
            "clean_fraction": session.clean_fraction,
            "time_remaining": session.time_remaining,
            "tool": tool_label(session.selected_tool),
            "strokes": session.stroke_count,
            "combo": session.combo_streak,
            "best_combo": session.best_combo,
        }
        if session.result is not None:
            result = session.result
            info.update(
                won=result.won, stars=result.stars, coins=result.coin_reward,
                duration=result.duration_seconds, total_coins=self.progress.coins,
            )
        return info

    def close(self):
        pygame.quit()

    def validate_implementation(self):
        # Test action space
        assert self.action_space.shape == (3,)
        assert self.action_space.nvec.tolist() == [5, 2, 2]

        # Test observation space
        test_obs = self._get_observation()
        assert test_obs.shape == (self.SCREEN_HEIGHT, self.SCREEN_WIDTH, 3)
        assert test_obs.dtype == np.uint8

        # Test reset
        obs, info = self.reset()
        assert obs.shape == (self.SCREEN_HEIGHT, self.SCREEN_WIDTH, 3)
        assert isinstance(info, dict)

        # Test step
        test_action = self.action_space.sample()
        obs, reward, term, trunc, info = self.step(test_action)
        assert obs.shape == (self.SCREEN_HEIGHT, self.SCREEN_WIDTH, 3)
        assert isinstance(reward, (int, float))
        assert isinstance(term, bool)
        assert trunc is False
        assert isinstance(info, dict)

        # Leave a fresh round behind
        self.reset()


# Example usage for interactive play
if __name__ == '__main__':
    # The main loop needs a real display, so we unset the dummy driver
    if os.environ.get("SDL_VIDEODRIVER") == "dummy":
        del os.environ["SDL_VIDEODRIVER"]

    configure_logging()
    progress = ProgressStore.load(SAVE_PATH)
    env = GameEnv(progress=progress)
    obs, info = env.reset()

    print(env.user_guide)
    print(env.game_description)

    render_screen = pygame.display.set_mode((env.SCREEN_WIDTH, env.SCREEN_HEIGHT))
    pygame.display.set_caption("Restore Rush")
    clock = pygame.time.Clock()

    running = True
    while running:
        shift_held = 0
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                running = False
            elif event.type == pygame.KEYDOWN:
                if event.key == pygame.K_1: env.session.select_tool(ToolKind.BRUSH)
                elif event.key == pygame.K_2: env.session.select_tool(ToolKind.SPRAY)
                elif event.key == pygame.K_3: env.session.select_tool(ToolKind.SCRAPER)
                elif event.key == pygame.K_n and env.game_over and info.get("won"):
                    obs, info = env.reset(options={"level_index": min(env.session.level_index + 1, len(LEVELS) - 1)})
                elif event.key == pygame.K_r:
                    obs, info = env.reset(options={"level_index": env.session.level_index})
                elif event.key == pygame.K_ESCAPE:
                    running = False

        # --- Mouse drives the pointer directly ---
        keys = pygame.key.get_pressed()
        env.pointer_pos = list(pygame.mouse.get_pos())
        space_held = 1 if pygame.mouse.get_pressed()[0] or keys[pygame.K_SPACE] else 0
        if keys[pygame.K_LSHIFT] or keys[pygame.K_RSHIFT]: shift_held = 1

        obs, reward, terminated, truncated, info = env.step([0, space_held, shift_held])

        surf = pygame.surfarray.make_surface(np.transpose(obs, (1, 0, 2)))
        render_screen.blit(surf, (0, 0))
        pygame.display.flip()

        clock.tick(env.FPS)

    print(f"Final Info: {info}")
    env.close()
