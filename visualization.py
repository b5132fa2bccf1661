# visualization.py
"""
Replays a finished trajectory with Pygame.

The renderer never simulates: every frame it draws is read from a
TrajectoryResult, with squash/stretch and trail lengths taken from the
result's TrajectoryCache.
"""
import logging
import math
from typing import Dict, Optional, Tuple, TYPE_CHECKING

import pygame

from board import Board
from constants import (
    BACKGROUND_COLOR, BALL_COLOR, BALL_RADIUS, BOARD_COLOR, BORDER_COLOR,
    BORDER_WIDTH, FPS, PEG_COLOR, PEG_FLASH_FRAMES, PEG_HIT_COLOR, PEG_RADIUS,
    SLOT_WALL_THICKNESS, TARGET_SLOT_COLOR, TRAIL_MAX_ALPHA, UI_PANEL_WIDTH,
)
from trajectory_cache import get_cached_values

if TYPE_CHECKING:
    from simulation import TrajectoryResult


# --- Data Contracts ---
#
# class Visualizer:
#   - __init__(self, board: Board, colors: Optional[dict] = None,
#              info: Optional[dict] = None, fps: int = FPS)
#     - Side Effects: initializes Pygame and opens a window of
#       (board.width + UI_PANEL_WIDTH, board.height).
#
#   - draw(self, result: TrajectoryResult, frame: int) -> bool:
#     - Renders one trajectory frame and handles events.
#     - Outputs: False if the user has quit, True otherwise.
#
#   - replay(self, result: TrajectoryResult, hold_frames: int = FPS) -> bool:
#     - Plays every frame at the configured fps, then holds the final frame.

_DEFAULT_COLORS: Dict[str, Tuple[int, int, int]] = {
    "background": BACKGROUND_COLOR,
    "board": BOARD_COLOR,
    "border": BORDER_COLOR,
    "peg": PEG_COLOR,
    "peg_hit": PEG_HIT_COLOR,
    "ball": BALL_COLOR,
    "target_slot": TARGET_SLOT_COLOR,
}


def _with_alpha(color: pygame.Color, alpha: int) -> Tuple[int, int, int, int]:
    return color.r, color.g, color.b, alpha


class Visualizer:
    """
    Draws the board, the ball with its trail, and an info panel.
    """
    def __init__(self, board: Board, colors: Optional[dict] = None, info: Optional[dict] = None, fps: int = FPS):
        pygame.init()
        pygame.font.init()

        self.board = board
        self.fps = fps
        self.offset = board.css_border
        width = int(board.width) + UI_PANEL_WIDTH
        height = int(board.height)
        self.screen = pygame.display.set_mode((width, height))
        self.board_width = int(board.width)

        self.trail_surface = pygame.Surface((self.board_width, height), pygame.SRCALPHA)
        self.ui_panel_surface = pygame.Surface((UI_PANEL_WIDTH, height), pygame.SRCALPHA)
        self.ui_panel_surface.fill((40, 40, 40, 200))

        pygame.display.set_caption("Plinko Drop")
        self.clock = pygame.time.Clock()
        self.colors = self._initialize_colors(colors)

        try:
            self.font_title = pygame.font.SysFont("Segoe UI", 16, bold=True)
            self.font_main = pygame.font.SysFont("Segoe UI", 14)
        except pygame.error:
            logging.warning("Segoe UI font not found, falling back to default sans-serif.")
            self.font_title = pygame.font.SysFont(None, 20, bold=True)
            self.font_main = pygame.font.SysFont(None, 18)

        self.text_color_key = (200, 200, 200)
        self.text_color_value = (255, 255, 255)
        self.info = info if info is not None else {}

        logging.info(f"Visualizer initialized with Pygame display ({width}x{height}).")

    def _initialize_colors(self, config_colors: Optional[dict]) -> Dict[str, pygame.Color]:
        """Reads colours from config, keeping the defaults for missing or bad entries."""
        colors = {name: pygame.Color(*rgb) for name, rgb in _DEFAULT_COLORS.items()}
        if not config_colors:
            logging.info("No colors found in config. Using the default palette.")
            return colors

        for name, rgb in config_colors.items():
            if name not in colors:
                logging.warning(f"Ignoring unknown color '{name}' in config.")
                continue
            try:
                colors[name] = pygame.Color(*rgb)
            except (ValueError, TypeError) as e:
                logging.error(f"Could not parse color '{name}' from config: {e}. Keeping the default.")
        return colors

    def _to_screen(self, x: float, y: float) -> Tuple[int, int]:
        # Physics runs in the content frame; the screen adds the CSS border
        return int(round(x + self.offset)), int(round(y + self.offset))

    def _draw_board(self, result: "TrajectoryResult", frame: int):
        board = self.board
        slots = board.slots
        self.screen.fill(self.colors["background"])
        pygame.draw.rect(self.screen, self.colors["board"], pygame.Rect(0, 0, self.board_width, int(board.height)))

        # Side walls
        inner_right = board.content_width - BORDER_WIDTH
        pygame.draw.rect(self.screen, self.colors["border"], pygame.Rect(*self._to_screen(0, 0), BORDER_WIDTH, int(board.height)))
        pygame.draw.rect(self.screen, self.colors["border"], pygame.Rect(*self._to_screen(inner_right, 0), BORDER_WIDTH, int(board.height)))

        # Buckets
        for slot in range(slots.slot_count):
            left, right = board.slot_bounds(slot)
            top_left = self._to_screen(left, slots.bucket_zone_y)
            if slot == result.target_slot:
                highlight = pygame.Surface((int(right - left), int(slots.bucket_height)), pygame.SRCALPHA)
                highlight.fill(_with_alpha(self.colors["target_slot"], 60))
                self.screen.blit(highlight, top_left)
            pygame.draw.rect(
                self.screen, self.colors["border"],
                pygame.Rect(top_left[0], top_left[1], SLOT_WALL_THICKNESS, int(slots.bucket_height))
            )
        right_wall = self._to_screen(board.slot_bounds(slots.slot_count - 1)[1] - SLOT_WALL_THICKNESS, slots.bucket_zone_y)
        pygame.draw.rect(
            self.screen, self.colors["border"],
            pygame.Rect(right_wall[0], right_wall[1], SLOT_WALL_THICKNESS, int(slots.bucket_height))
        )

        # Pegs flash for a few frames after each hit
        recent = set()
        for point in result.trajectory[max(0, frame - PEG_FLASH_FRAMES + 1):frame + 1]:
            recent.update((hit.row, hit.col) for hit in point.pegs_hit)
        for peg in board.pegs:
            color = self.colors["peg_hit"] if (peg.row, peg.col) in recent else self.colors["peg"]
            pygame.draw.circle(self.screen, color, self._to_screen(peg.x, peg.y), PEG_RADIUS)

    def _draw_ball(self, result: "TrajectoryResult", frame: int):
        point = result.trajectory[frame]
        _, scale_x, scale_y, trail_length = get_cached_values(result.cache, frame)

        # Trail, fading toward the tail
        self.trail_surface.fill((0, 0, 0, 0))
        start = max(0, frame - trail_length)
        tail = result.trajectory[start:frame]
        for i, past in enumerate(tail):
            alpha = int(TRAIL_MAX_ALPHA * (i + 1) / (len(tail) + 1))
            radius = max(1, int(BALL_RADIUS * (i + 1) / (len(tail) + 1)))
            pygame.draw.circle(self.trail_surface, _with_alpha(self.colors["ball"], alpha), self._to_screen(past.x, past.y), radius)
        self.screen.blit(self.trail_surface, (0, 0))

        width = max(2, int(2 * BALL_RADIUS * scale_x))
        height = max(2, int(2 * BALL_RADIUS * scale_y))
        cx, cy = self._to_screen(point.x, point.y)
        pygame.draw.ellipse(self.screen, self.colors["ball"], pygame.Rect(cx - width // 2, cy - height // 2, width, height))

        # Spin marker
        end = (cx + math.cos(point.rotation) * BALL_RADIUS * 0.7, cy + math.sin(point.rotation) * BALL_RADIUS * 0.7)
        pygame.draw.line(self.screen, self.colors["background"], (cx, cy), end, 2)

    def _draw_info_panel(self, result: "TrajectoryResult", frame: int):
        panel_x = self.board_width
        self.screen.blit(self.ui_panel_surface, (panel_x, 0))
        point = result.trajectory[frame]
        speed, _, _, _ = get_cached_values(result.cache, frame)

        entries = dict(self.info)
        entries.update({
            "Frame": f"{frame + 1}/{len(result.trajectory)}",
            "Target Slot": result.target_slot,
            "Landed Slot": result.landed_slot,
            "Attempts": result.attempts,
            "Speed": f"{speed:.1f}",
            "Position": f"{point.x:.1f}, {point.y:.1f}",
        })

        title = self.font_title.render("Plinko Drop", True, self.text_color_value)
        self.screen.blit(title, (panel_x + 15, 12))
        line_y = 44
        line_height = self.font_main.get_linesize() + 4
        for key, value in entries.items():
            display_key = key.replace('_', ' ').title() if '_' in key else key
            key_surf = self.font_main.render(f"{display_key}:", True, self.text_color_key)
            value_surf = self.font_main.render(str(value), True, self.text_color_value)
            self.screen.blit(key_surf, (panel_x + 15, line_y))
            self.screen.blit(value_surf, value_surf.get_rect(topright=(panel_x + UI_PANEL_WIDTH - 15, line_y)))
            line_y += line_height

    def draw(self, result: "TrajectoryResult", frame: int) -> bool:
        """
        Draws one frame of the replay and handles events.

        Returns:
            bool: False if the user has quit, True otherwise.
        """
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                logging.info("Quit event received. Shutting down visualizer.")
                return False
            if event.type == pygame.KEYDOWN and event.key == pygame.K_ESCAPE:
                logging.info("ESC key pressed. Shutting down visualizer.")
                return False

        frame = min(max(frame, 0), len(result.trajectory) - 1)
        self._draw_board(result, frame)
        self._draw_ball(result, frame)
        self._draw_info_panel(result, frame)

        pygame.display.flip()
        self.clock.tick(self.fps)
        return True

    def replay(self, result: "TrajectoryResult", hold_frames: int = FPS) -> bool:
        """Plays the whole trajectory once. Returns False if the user quit."""
        logging.info(f"Replaying {len(result.trajectory)} frames at {self.fps} fps.")
        for frame in range(len(result.trajectory)):
            if not self.draw(result, frame):
                return False
        last = len(result.trajectory) - 1
        for _ in range(hold_frames):
            if not self.draw(result, last):
                return False
        return True

    def close(self):
        """Shuts down Pygame."""
        pygame.quit()
        logging.info("Pygame shut down.")
