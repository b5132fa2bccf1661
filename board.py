# board.py
"""
Static board geometry: the staggered peg lattice, the prize slots and the
drop zones.

Everything here is a pure function of the board configuration. The peg
layout for a configuration is computed once and shared, read-only, by every
drop on that board. Physics constants are re-exported from constants.py so
callers can take the whole board description from one module.
"""
import functools
import logging
import math
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

import numpy as np

from constants import (
    BALL_RADIUS, BORDER_WIDTH, BOTTOM_OVERFLOW, BOUNCE_RANDOMNESS_MAX,
    BOUNCE_RANDOMNESS_MIN, BUCKET_FLOOR_OFFSET, COLLISION_RADIUS, CSS_BORDER,
    DEFAULT_BOARD_HEIGHT, DEFAULT_BOARD_WIDTH, DEFAULT_PEG_ROWS, DEFAULT_SLOT_COUNT,
    DROP_ZONE_POSITIONS, DROP_ZONE_RANGES, NARROW_BUCKET_HEIGHT,
    NARROW_SLOT_THRESHOLD, NORMAL_BALL_RADIUS, NORMAL_CLEARANCE,
    NORMAL_PEG_RADIUS, OPTIMAL_PEG_COLUMNS, PEG_RADIUS, PEG_TOP_OFFSET,
    PLAYABLE_HEIGHT_RATIO, SLOT_WALL_THICKNESS, SMALL_BALL_RADIUS,
    SMALL_BUCKET_HEIGHT, SMALL_CLEARANCE, SMALL_PEG_RADIUS,
    SMALL_SLOT_THRESHOLD, SMALL_VIEWPORT_WIDTH, STANDARD_BUCKET_HEIGHT,
)
from errors import ConfigurationError, GeometryError

__all__ = [
    "BALL_RADIUS", "BORDER_WIDTH", "BOUNCE_RANDOMNESS_MAX",
    "BOUNCE_RANDOMNESS_MIN", "COLLISION_RADIUS", "PEG_RADIUS",
    "Peg", "PegField", "SlotDimensions", "Board",
    "generate_peg_layout", "calculate_slot_dimensions", "slot_bounds",
    "get_slot_boundaries", "determine_landed_slot", "get_drop_zone_range",
    "get_drop_zone_center", "validate_board_dimensions", "validate_peg_rows",
    "validate_slot_index", "build_board",
]

# --- Data Contracts ---
#
# generate_peg_layout(board_width, board_height, peg_rows, css_border) -> List[Peg]:
#   - Inputs: positive board dimensions in pixels, positive row count,
#     non-negative CSS border inset.
#   - Outputs: pegs in row-major order, columns ascending.
#   - Invariants: identical inputs give an identical list; even rows hold
#     OPTIMAL_PEG_COLUMNS + 1 pegs, odd rows OPTIMAL_PEG_COLUMNS pegs offset
#     by half the spacing; every x lies inside the content width.
#
# class PegField:
#   - __init__(self, pegs: Sequence[Peg])
#   - Invariants: self.xs and self.ys are read-only float64 arrays of shape
#     (N,), aligned with self.pegs. self.shape is (rows, cols) large enough
#     to index every (row, col) pair.
#
# build_board(board_width, board_height, peg_rows, slot_count, css_border) -> Board:
#   - Memoised per argument tuple; the returned Board is read-only.
#   - Raises ConfigurationError for invalid inputs and GeometryError when
#     a slot cannot hold the ball or the buckets overlap the peg field.


@dataclass(frozen=True)
class Peg:
    """A fixed circular obstacle in the staggered lattice."""
    row: int
    col: int
    x: float
    y: float


class PegField:
    """
    Peg positions packed into NumPy arrays for the collision kernel.
    """
    def __init__(self, pegs: Sequence[Peg]):
        self.pegs: Tuple[Peg, ...] = tuple(pegs)
        self.xs = np.array([p.x for p in self.pegs], dtype=np.float64)
        self.ys = np.array([p.y for p in self.pegs], dtype=np.float64)
        self.xs.flags.writeable = False
        self.ys.flags.writeable = False

        if self.pegs:
            rows = max(p.row for p in self.pegs) + 1
            cols = max(p.col for p in self.pegs) + 1
        else:
            rows, cols = 0, 0
        self.shape: Tuple[int, int] = (rows, cols)

    def __len__(self) -> int:
        return len(self.pegs)

    def __iter__(self):
        return iter(self.pegs)

    def __getitem__(self, index: int) -> Peg:
        return self.pegs[index]


@dataclass(frozen=True)
class SlotDimensions:
    slot_count: int
    slot_width: float
    playable_width: float
    bucket_zone_y: float
    bucket_height: float
    bucket_floor_y: float


@dataclass(frozen=True)
class Board:
    """
    A fully laid out board. Coordinates are in the content frame, i.e. the
    board minus its CSS border.
    """
    width: float
    height: float
    peg_rows: int
    css_border: float
    content_width: float
    pegs: Tuple[Peg, ...]
    slots: SlotDimensions
    peg_field: PegField = field(compare=False, repr=False)

    @property
    def min_x(self) -> float:
        return BORDER_WIDTH + BALL_RADIUS

    @property
    def max_x(self) -> float:
        return self.content_width - BORDER_WIDTH - BALL_RADIUS

    @property
    def min_y(self) -> float:
        return BORDER_WIDTH + BALL_RADIUS

    @property
    def max_y(self) -> float:
        return self.height - BALL_RADIUS + BOTTOM_OVERFLOW

    @property
    def slot_count(self) -> int:
        return self.slots.slot_count

    def slot_bounds(self, slot_index: int) -> Tuple[float, float]:
        return slot_bounds(slot_index, self.slots)

    def slot_center(self, slot_index: int) -> float:
        left, right = self.slot_bounds(slot_index)
        return (left + right) / 2

    def landed_slot(self, x: float) -> int:
        return determine_landed_slot(x, self.slots)


def validate_board_dimensions(board_width: float, board_height: float) -> None:
    if not (board_width > 0 and board_height > 0):
        msg = f"Invalid board dimensions: {board_width}x{board_height}"
        logging.error(msg)
        raise ConfigurationError(msg)


def validate_peg_rows(peg_rows: int) -> None:
    if peg_rows <= 0:
        msg = f"Peg rows must be greater than zero, got {peg_rows}"
        logging.error(msg)
        raise ConfigurationError(msg)


def validate_slot_index(slot_index: int, slot_count: int) -> None:
    if not 0 <= slot_index < slot_count:
        msg = f"Slot index {slot_index} is out of bounds for slot count {slot_count}"
        logging.error(msg)
        raise ConfigurationError(msg)


def _content_width(board_width: float, css_border: float) -> float:
    content_width = board_width - css_border * 2
    if content_width <= 2 * BORDER_WIDTH:
        msg = (
            f"Board width {board_width} leaves no playable area after a "
            f"{css_border}px border and {BORDER_WIDTH}px walls."
        )
        logging.error(msg)
        raise ConfigurationError(msg)
    return content_width


def generate_peg_layout(
    board_width: float,
    board_height: float,
    peg_rows: int,
    css_border: float = CSS_BORDER,
) -> List[Peg]:
    """
    Lays out the staggered peg lattice.

    Rows are spread evenly over the playable height. Even rows carry one peg
    more than odd rows, and odd rows are shifted by half the horizontal
    spacing, which gives the classic Plinko diamond pattern.

    Args:
        board_width (float): Total board width in pixels.
        board_height (float): Total board height in pixels.
        peg_rows (int): Number of peg rows.
        css_border (float): Border inset on each side, outside the physics.

    Returns:
        List[Peg]: Pegs in row-major order.
    """
    validate_board_dimensions(board_width, board_height)
    validate_peg_rows(peg_rows)
    internal_width = _content_width(board_width, css_border)

    # Narrow boards get smaller pegs and tighter clearance
    if internal_width <= SMALL_VIEWPORT_WIDTH:
        min_clearance = SMALL_PEG_RADIUS + SMALL_BALL_RADIUS + SMALL_CLEARANCE
    else:
        min_clearance = NORMAL_PEG_RADIUS + NORMAL_BALL_RADIUS + NORMAL_CLEARANCE

    playable_height = board_height * PLAYABLE_HEIGHT_RATIO
    vertical_spacing = playable_height / (peg_rows + 1)

    left_edge = BORDER_WIDTH + min_clearance
    right_edge = internal_width - BORDER_WIDTH - min_clearance
    if right_edge < left_edge:
        # Too narrow for the clearance; collapse the span to the centre
        left_edge = right_edge = internal_width / 2
    horizontal_spacing = (right_edge - left_edge) / OPTIMAL_PEG_COLUMNS

    pegs: List[Peg] = []
    for row in range(peg_rows):
        y = vertical_spacing * (row + 1) + BORDER_WIDTH + PEG_TOP_OFFSET

        is_offset_row = row % 2 == 1
        pegs_in_row = OPTIMAL_PEG_COLUMNS if is_offset_row else OPTIMAL_PEG_COLUMNS + 1

        for col in range(pegs_in_row):
            offset = col + 0.5 if is_offset_row else col
            x = left_edge + horizontal_spacing * offset
            x = min(max(x, left_edge), right_edge)
            pegs.append(Peg(row=row, col=col, x=x, y=y))

    logging.debug(
        f"Generated {len(pegs)} pegs in {peg_rows} rows "
        f"(h-spacing {horizontal_spacing:.2f}px, v-spacing {vertical_spacing:.2f}px)."
    )
    return pegs


def calculate_bucket_height(slot_width: float) -> float:
    """Narrower slots need taller buckets."""
    if slot_width < NARROW_SLOT_THRESHOLD:
        return NARROW_BUCKET_HEIGHT
    if slot_width < SMALL_SLOT_THRESHOLD:
        return SMALL_BUCKET_HEIGHT
    return STANDARD_BUCKET_HEIGHT


def calculate_slot_dimensions(
    board_width: float,
    board_height: float,
    slot_count: int,
    css_border: float = CSS_BORDER,
) -> SlotDimensions:
    validate_board_dimensions(board_width, board_height)
    if slot_count <= 0:
        msg = f"slot_count must be greater than zero, got {slot_count}"
        logging.error(msg)
        raise ConfigurationError(msg)

    internal_width = _content_width(board_width, css_border)
    playable_width = internal_width - BORDER_WIDTH * 2
    slot_width = playable_width / slot_count
    bucket_height = calculate_bucket_height(slot_width)

    return SlotDimensions(
        slot_count=slot_count,
        slot_width=slot_width,
        playable_width=playable_width,
        bucket_zone_y=board_height - bucket_height,
        bucket_height=bucket_height,
        bucket_floor_y=board_height - BALL_RADIUS + BUCKET_FLOOR_OFFSET,
    )


def slot_bounds(slot_index: int, slots: SlotDimensions) -> Tuple[float, float]:
    """Returns the (left, right) x of a slot cell, walls included."""
    validate_slot_index(slot_index, slots.slot_count)
    left = BORDER_WIDTH + slot_index * slots.slot_width
    return left, left + slots.slot_width


def get_slot_boundaries(
    slot_index: int,
    slots: SlotDimensions,
    wall_thickness: float = SLOT_WALL_THICKNESS,
) -> Tuple[float, float]:
    """Returns the inner (left, right) edges the ball collides with."""
    left, right = slot_bounds(slot_index, slots)
    return left + wall_thickness, right - wall_thickness


def determine_landed_slot(x: float, slots: SlotDimensions) -> int:
    """Maps an x coordinate to a slot index, clamped to the valid range."""
    relative_x = min(max(x - BORDER_WIDTH, 0.0), slots.playable_width - 1e-6)
    index = int(math.floor(relative_x / slots.slot_width))
    return min(max(index, 0), slots.slot_count - 1)


def get_drop_zone_range(zone: str, content_width: float) -> Tuple[float, float]:
    if zone not in DROP_ZONE_RANGES:
        msg = f"Unknown drop zone '{zone}'. Expected one of {sorted(DROP_ZONE_RANGES)}."
        logging.error(msg)
        raise ConfigurationError(msg)
    low, high = DROP_ZONE_RANGES[zone]
    return content_width * low, content_width * high


def get_drop_zone_center(zone: str, content_width: float) -> float:
    if zone not in DROP_ZONE_POSITIONS:
        msg = f"Unknown drop zone '{zone}'. Expected one of {sorted(DROP_ZONE_POSITIONS)}."
        logging.error(msg)
        raise ConfigurationError(msg)
    return content_width * DROP_ZONE_POSITIONS[zone]


def _check_reachable(pegs: Sequence[Peg], slots: SlotDimensions) -> None:
    inner_width = slots.slot_width - 2 * SLOT_WALL_THICKNESS
    if inner_width < 2 * BALL_RADIUS:
        msg = (
            f"Slots are {slots.slot_width:.2f}px wide; the ball ({2 * BALL_RADIUS:.0f}px) "
            f"cannot rest between {SLOT_WALL_THICKNESS:.0f}px walls."
        )
        logging.critical(msg)
        raise GeometryError(msg)

    lowest_peg_y = max((p.y for p in pegs), default=0.0)
    if slots.bucket_zone_y <= lowest_peg_y + COLLISION_RADIUS:
        msg = (
            f"Bucket zone at y={slots.bucket_zone_y:.1f} overlaps the peg field "
            f"(lowest peg at y={lowest_peg_y:.1f})."
        )
        logging.critical(msg)
        raise GeometryError(msg)


@functools.lru_cache(maxsize=32)
def build_board(
    board_width: float,
    board_height: float,
    peg_rows: int,
    slot_count: int,
    css_border: float = CSS_BORDER,
) -> Board:
    """
    Builds (or returns the cached) board for a configuration.
    """
    pegs = generate_peg_layout(board_width, board_height, peg_rows, css_border)
    slots = calculate_slot_dimensions(board_width, board_height, slot_count, css_border)
    _check_reachable(pegs, slots)

    board = Board(
        width=board_width,
        height=board_height,
        peg_rows=peg_rows,
        css_border=css_border,
        content_width=_content_width(board_width, css_border),
        pegs=tuple(pegs),
        slots=slots,
        peg_field=PegField(pegs),
    )
    logging.info(
        f"Board built: {board_width}x{board_height}, {peg_rows} rows, "
        f"{len(pegs)} pegs, {slot_count} slots of {slots.slot_width:.2f}px."
    )
    return board


def board_from_config(params: dict) -> Board:
    """Builds a board from the "board" section of config.json."""
    return build_board(
        params.get('width', DEFAULT_BOARD_WIDTH),
        params.get('height', DEFAULT_BOARD_HEIGHT),
        params.get('peg_rows', DEFAULT_PEG_ROWS),
        params.get('slot_count', DEFAULT_SLOT_COUNT),
        params.get('css_border', CSS_BORDER),
    )
