# collision.py
"""
Collision detection and response for one simulation tick.

Pegs are tested continuously against the ball's motion segment so a fast
ball cannot tunnel through a peg between two ticks. Each peg carries its own
cooldown: a peg hit on frame f registers again only from frame
f + COOLDOWN_FRAMES, while contact inside the cooldown is still resolved
physically. Side walls, bucket walls and the bucket floor are static
surfaces without cooldown.
"""
import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np
from numba import jit

from board import Board, Peg, PegField, determine_landed_slot, get_slot_boundaries
from constants import (
    BALL_RADIUS, BUCKET_FLOOR_DAMPING, BUCKET_WALL_DAMPING, COLLISION_RADIUS,
    COOLDOWN_FRAMES, FLOOR_FRICTION, FLOOR_KICK, FLOOR_REST_SPEED,
    MAX_TOTAL_SPEED, MAX_VELOCITY, MIN_BOUNCE_VELOCITY, RESTITUTION,
    SEPARATION, SETTLE_SPEED, STEERING_NUDGE,
)
from rng import Rng

# --- Data Contracts ---
#
# detect_and_handle_peg_collisions(state, old_state, pegs, recent_collisions,
#                                  frame, bounce_randomness, rng, steering=None)
#                                  -> CollisionResult:
#   - Inputs:
#     - state: tentative BallState after integrating this tick.
#     - old_state: BallState at the start of the tick.
#     - pegs: PegField or a sequence of Peg.
#     - recent_collisions: CooldownTable owned by the current run.
#     - frame: current frame index.
#     - bounce_randomness: width (radians) of the bounce angle perturbation.
#     - rng: the run's Rng; one draw per registered hit.
#     - steering: optional Steering toward the target slot.
#   - Outputs: corrected BallState, the PegHits registered this tick, and
#     the first registered peg (or None).
#   - Side Effects: writes recent_collisions for every registered hit.
#   - Invariants: the returned position is never inside COLLISION_RADIUS of
#     the peg that was resolved; a peg inside its cooldown is never reported.
#
# class CooldownTable:
#   - Dense (rows, cols) int64 array of last registered frame, -1 = never.
#   - is_cooling(row, col, frame) is True iff frame - last < cooldown_frames.

# Contact time reported for pegs the motion segment never reaches.
_NO_CONTACT = np.inf


@dataclass(frozen=True)
class BallState:
    """Instantaneous physical state of the ball."""
    x: float
    y: float
    vx: float
    vy: float

    @property
    def speed(self) -> float:
        return math.hypot(self.vx, self.vy)


@dataclass(frozen=True)
class PegHit:
    row: int
    col: int


@dataclass(frozen=True)
class Steering:
    """
    Pulls registered bounces toward the centre of a target slot.

    The nudge grows with the horizontal distance to the target, saturating
    at one slot width, and is scaled by the bounce's own random draw so that
    steered bounces keep the natural spread.
    """
    target_x: float
    slot_width: float
    strength: float
    nudge: float = STEERING_NUDGE

    def horizontal_nudge(self, x: float, draw: float) -> float:
        direction = (self.target_x - x) / self.slot_width
        direction = min(max(direction, -1.0), 1.0)
        return direction * self.strength * self.nudge * draw


class CooldownTable:
    """
    Last registered hit frame for every peg, indexed by (row, col).
    """
    def __init__(self, rows: int, cols: int, cooldown_frames: int = COOLDOWN_FRAMES):
        self.cooldown_frames = cooldown_frames
        self._last_hit = np.full((rows, cols), -1, dtype=np.int64)

    @classmethod
    def for_pegs(cls, pegs: Union[PegField, Sequence[Peg]], cooldown_frames: int = COOLDOWN_FRAMES) -> "CooldownTable":
        peg_field = pegs if isinstance(pegs, PegField) else PegField(pegs)
        rows, cols = peg_field.shape
        return cls(rows, cols, cooldown_frames)

    def last_hit(self, row: int, col: int) -> Optional[int]:
        last = int(self._last_hit[row, col])
        return None if last < 0 else last

    def is_cooling(self, row: int, col: int, frame: int) -> bool:
        last = self.last_hit(row, col)
        return last is not None and frame - last < self.cooldown_frames

    def record(self, row: int, col: int, frame: int) -> None:
        self._last_hit[row, col] = frame

    def cooling_pegs(self, frame: int) -> List[Tuple[int, int]]:
        """(row, col) of every peg still inside its cooldown at this frame."""
        last = self._last_hit
        mask = (last >= 0) & (frame - last < self.cooldown_frames)
        return [(int(r), int(c)) for r, c in zip(*np.nonzero(mask))]


@dataclass(frozen=True)
class CollisionResult:
    state: BallState
    pegs_hit: Tuple[PegHit, ...] = ()
    hit_peg: Optional[Peg] = None


@dataclass(frozen=True)
class BucketResult:
    state: BallState
    bucket_wall_hit: Optional[str] = None
    bucket_floor_hit: bool = False
    settled: bool = False


@jit(nopython=True)
def _contact_times_numba(x0, y0, x1, y1, peg_xs, peg_ys, radius_sq):
    """
    Numba-jitted continuous collision test of one motion segment against
    every peg.

    Returns, for each peg, the earliest t in [0, 1] at which the point
    (x0, y0) + t * (x1 - x0, y1 - y0) lies within the collision radius, or
    inf when the segment never comes that close. A segment that starts
    inside the radius reports t = 0.
    """
    peg_count = peg_xs.shape[0]
    times = np.full(peg_count, np.inf)
    dx = x1 - x0
    dy = y1 - y0
    a = dx * dx + dy * dy

    for i in range(peg_count):
        fx = x0 - peg_xs[i]
        fy = y0 - peg_ys[i]
        c = fx * fx + fy * fy - radius_sq
        if c <= 0.0:
            times[i] = 0.0
            continue
        if a < 1e-12:
            continue

        b = 2.0 * (fx * dx + fy * dy)
        if b >= 0.0:
            # Moving away from (or tangent to) the peg
            continue
        discriminant = b * b - 4.0 * a * c
        if discriminant < 0.0:
            continue

        # c > 0 and b < 0 put the entry root strictly after t = 0
        t = (-b - np.sqrt(discriminant)) / (2.0 * a)
        if t <= 1.0:
            times[i] = t
    return times


def _limit_speed(vx: float, vy: float) -> Tuple[float, float]:
    vx = min(max(vx, -MAX_VELOCITY), MAX_VELOCITY)
    vy = min(max(vy, -MAX_VELOCITY), MAX_VELOCITY)

    speed = math.hypot(vx, vy)
    if 0.0 < speed < MIN_BOUNCE_VELOCITY:
        scale = MIN_BOUNCE_VELOCITY / speed
        vx *= scale
        vy *= scale

    speed = math.hypot(vx, vy)
    if speed > MAX_TOTAL_SPEED:
        scale = MAX_TOTAL_SPEED / speed
        vx *= scale
        vy *= scale
    return vx, vy


def _resolve_peg_contact(
    peg: Peg,
    x: float,
    y: float,
    vx: float,
    vy: float,
    register: bool,
    bounce_randomness: float,
    rng: Rng,
    steering: Optional[Steering],
) -> Tuple[float, float, float, float]:
    """
    Pushes the ball out of one peg and, for a registered hit, bounces it.
    """
    normal_x = x - peg.x
    normal_y = y - peg.y
    dist = math.hypot(normal_x, normal_y)
    if dist < 0.1:
        # Ball centre on the peg centre: push back the way it came
        speed = math.hypot(vx, vy)
        if speed > 0.0:
            normal_x, normal_y = -vx / speed, -vy / speed
        else:
            normal_x, normal_y = 0.0, -1.0
    else:
        normal_x /= dist
        normal_y /= dist

    x = peg.x + normal_x * (COLLISION_RADIUS + SEPARATION)
    y = peg.y + normal_y * (COLLISION_RADIUS + SEPARATION)
    dot = vx * normal_x + vy * normal_y

    if not register:
        # Resting contact: cancel the inward component only
        if dot < 0.0:
            vx -= dot * normal_x
            vy -= dot * normal_y
        return x, y, vx, vy

    if dot < 0.0:
        vx -= 2.0 * dot * normal_x
        vy -= 2.0 * dot * normal_y
    vx *= RESTITUTION
    vy *= RESTITUTION

    draw = rng.next()
    angle = (draw - 0.5) * bounce_randomness
    cos_a = math.cos(angle)
    sin_a = math.sin(angle)
    vx, vy = vx * cos_a - vy * sin_a, vx * sin_a + vy * cos_a

    if steering is not None:
        vx += steering.horizontal_nudge(x, draw)

    vx, vy = _limit_speed(vx, vy)
    return x, y, vx, vy


def detect_and_handle_peg_collisions(
    state: BallState,
    old_state: BallState,
    pegs: Union[PegField, Sequence[Peg]],
    recent_collisions: CooldownTable,
    frame: int,
    bounce_randomness: float,
    rng: Rng,
    steering: Optional[Steering] = None,
) -> CollisionResult:
    """
    Detects and resolves peg collisions for one tick.

    The earliest contact along the motion segment is resolved first: the
    ball is moved back to the contact point and pushed out along the
    peg-to-ball normal. Pegs still overlapping the corrected position are
    then resolved in layout order.

    Returns:
        CollisionResult: corrected state and the hits registered this tick.
    """
    peg_field = pegs if isinstance(pegs, PegField) else PegField(pegs)
    if len(peg_field) == 0:
        return CollisionResult(state)

    radius_sq = COLLISION_RADIUS * COLLISION_RADIUS
    times = _contact_times_numba(
        float(old_state.x), float(old_state.y), float(state.x), float(state.y),
        peg_field.xs, peg_field.ys, radius_sq
    )
    primary = int(np.argmin(times))
    t = float(times[primary])
    if t == _NO_CONTACT:
        return CollisionResult(state)

    # 1. Move to the earliest contact point on the segment
    x = old_state.x + (state.x - old_state.x) * t
    y = old_state.y + (state.y - old_state.y) * t
    vx, vy = state.vx, state.vy

    pegs_hit: List[PegHit] = []
    hit_peg: Optional[Peg] = None

    def resolve(index: int) -> None:
        nonlocal x, y, vx, vy, hit_peg
        peg = peg_field[index]
        register = not recent_collisions.is_cooling(peg.row, peg.col, frame)
        if register:
            pegs_hit.append(PegHit(peg.row, peg.col))
            recent_collisions.record(peg.row, peg.col, frame)
            if hit_peg is None:
                hit_peg = peg
        x, y, vx, vy = _resolve_peg_contact(
            peg, x, y, vx, vy, register, bounce_randomness, rng, steering
        )

    resolve(primary)

    # 2. Resolve any peg the corrected position still overlaps
    overlaps = _contact_times_numba(x, y, x, y, peg_field.xs, peg_field.ys, radius_sq)
    for index in np.flatnonzero(overlaps == 0.0):
        if index != primary:
            resolve(int(index))

    return CollisionResult(BallState(x, y, vx, vy), tuple(pegs_hit), hit_peg)


def handle_wall_collisions(state: BallState, min_x: float, max_x: float) -> Tuple[BallState, Optional[str]]:
    """
    Reflects the ball off the side walls.

    The ball's previous position is always inside [min_x, max_x], so the
    motion segment crosses a wall exactly when the new x lies beyond it.
    Returns the corrected state and 'left', 'right' or None.
    """
    if state.x < min_x:
        return BallState(min_x, state.y, abs(state.vx) * RESTITUTION, state.vy), 'left'
    if state.x > max_x:
        return BallState(max_x, state.y, -abs(state.vx) * RESTITUTION, state.vy), 'right'
    return state, None


def handle_bucket_physics(state: BallState, board: Board, rng: Rng) -> BucketResult:
    """
    Bucket walls, bucket floor and settle detection.

    Below the bucket zone the ball is confined to the slot it occupies.
    The floor bounces it with extra damping and a small random horizontal
    kick; weak bounces come to rest and roll out under floor friction.
    """
    slots = board.slots
    x, y, vx, vy = state.x, state.y, state.vx, state.vy
    if y < slots.bucket_zone_y:
        return BucketResult(state)

    bucket_wall_hit = None
    bucket_floor_hit = False
    settled = False

    current_slot = determine_landed_slot(x, slots)
    left_edge, right_edge = get_slot_boundaries(current_slot, slots)
    if x - BALL_RADIUS < left_edge:
        x = left_edge + BALL_RADIUS
        if vx < 0.0:
            bucket_wall_hit = 'left'
        vx = abs(vx) * RESTITUTION * BUCKET_WALL_DAMPING
    elif x + BALL_RADIUS > right_edge:
        x = right_edge - BALL_RADIUS
        if vx > 0.0:
            bucket_wall_hit = 'right'
        vx = -abs(vx) * RESTITUTION * BUCKET_WALL_DAMPING

    if y >= slots.bucket_floor_y:
        y = slots.bucket_floor_y
        if vy > 0.0:
            bucket_floor_hit = vy > FLOOR_REST_SPEED
            bounced = vy * RESTITUTION * BUCKET_FLOOR_DAMPING
            if bounced >= FLOOR_REST_SPEED:
                vy = -bounced
                vx += (rng.next() - 0.5) * FLOOR_KICK
            else:
                vy = 0.0
                vx *= FLOOR_FRICTION

        settled = abs(vx) < SETTLE_SPEED and abs(vy) < SETTLE_SPEED
        if settled:
            logging.debug(f"Ball settled in slot {current_slot} at x={x:.2f}.")

    return BucketResult(BallState(x, y, vx, vy), bucket_wall_hit, bucket_floor_hit, settled)
