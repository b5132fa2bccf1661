# simulation.py
"""
Handles the core simulation logic: the fixed-tick stepping loop that turns
a drop into a frame-indexed trajectory, and the outcome search that finds a
trajectory ending in a predetermined slot.

A single run is a pure function of (board, start conditions, seed). The
outcome search runs a deterministic sequence of such runs, so the accepted
trajectory is itself a pure function of (board, drop, target slot, seed).
"""
import enum
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from board import Board, validate_slot_index, get_drop_zone_range
from collision import (
    BallState, CooldownTable, PegHit, Steering, detect_and_handle_peg_collisions,
    handle_bucket_physics, handle_wall_collisions,
)
from constants import (
    AIR_DRAG, BALL_RADIUS, BORDER_WIDTH, BOUNCE_RANDOMNESS_MAX,
    BOUNCE_RANDOMNESS_MIN, CLASSIC_DROP_RANGE, DROP_HEIGHT_OFFSET, DT,
    GRAVITY, MAX_DIST_PER_FRAME, MAX_TOTAL_SPEED, STEERING_NUDGE,
    TERMINAL_VELOCITY,
)
from errors import (
    ConfigurationError, NonTerminationError, OutcomeConstraintError,
    SimulationStalledError,
)
from rng import create_rng, validate_seed
from trajectory_cache import TrajectoryCache, generate_trajectory_cache

# --- Data Contracts ---
#
# class TrajectorySimulator:
#   - __init__(self, board: Board, config: SimulationConfig)
#   - run(self, params: SimulationParams, seed: int) -> SimulationResult:
#     - Outputs: the full trajectory (rest frames first) and the landed slot.
#     - Raises: NonTerminationError when max_ticks frames pass without the
#       ball settling; SimulationStalledError when the ball stops making
#       vertical progress above the bucket zone for stall_frames ticks.
#     - Invariants: point.frame == index for every point; identical inputs
#       give an identical tuple of points.
#
# generate_trajectory(board, target_slot, seed, drop_x=None, drop_zone=None,
#                     config=None) -> TrajectoryResult:
#   - Raises: ConfigurationError for a bad target slot, drop or seed;
#     OutcomeConstraintError after max_attempts runs without a match.
#   - Invariants: result.landed_slot == target_slot and the last point's x
#     lies inside board.slot_bounds(target_slot).


class Phase(enum.Enum):
    FALLING = "falling"
    ENTERING_BUCKET = "entering_bucket"
    SETTLED = "settled"


@dataclass(frozen=True)
class TrajectoryPoint:
    """One simulated frame, as handed to the renderer."""
    frame: int
    x: float
    y: float
    rotation: float
    vx: float
    vy: float
    pegs_hit: Tuple[PegHit, ...] = ()
    wall_hit: Optional[str] = None
    bucket_wall_hit: Optional[str] = None
    bucket_floor_hit: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "frame": self.frame,
            "x": self.x,
            "y": self.y,
            "rotation": self.rotation,
            "vx": self.vx,
            "vy": self.vy,
            "pegsHit": [{"row": hit.row, "col": hit.col} for hit in self.pegs_hit],
            "wallHit": self.wall_hit,
            "bucketWallHit": self.bucket_wall_hit,
            "bucketFloorHit": self.bucket_floor_hit,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TrajectoryPoint":
        return cls(
            frame=int(data["frame"]),
            x=float(data["x"]),
            y=float(data["y"]),
            rotation=float(data.get("rotation", 0.0)),
            vx=float(data.get("vx", 0.0)),
            vy=float(data.get("vy", 0.0)),
            pegs_hit=tuple(PegHit(int(h["row"]), int(h["col"])) for h in data.get("pegsHit") or ()),
            wall_hit=data.get("wallHit"),
            bucket_wall_hit=data.get("bucketWallHit"),
            bucket_floor_hit=bool(data.get("bucketFloorHit", False)),
        )


@dataclass(frozen=True)
class SimulationConfig:
    """Tunables for the stepping loop and the outcome search."""
    max_ticks: int = 1200
    rest_frames: int = 15
    stall_frames: int = 60
    stall_distance: float = 0.5
    max_attempts: int = 500
    steering_base: float = 0.25
    steering_ramp: float = 0.05
    max_steering: float = 4.0
    steering_nudge: float = STEERING_NUDGE

    def __post_init__(self):
        if self.max_ticks <= self.rest_frames:
            msg = f"max_ticks ({self.max_ticks}) must exceed rest_frames ({self.rest_frames})."
            logging.critical(msg)
            raise ConfigurationError(msg)
        if self.max_attempts <= 0:
            msg = f"max_attempts must be positive, got {self.max_attempts}."
            logging.critical(msg)
            raise ConfigurationError(msg)

    @classmethod
    def from_dict(cls, params: Dict[str, Any]) -> "SimulationConfig":
        """Reads the "simulation" section of config.json."""
        defaults = cls()
        return cls(
            max_ticks=int(params.get('max_ticks', defaults.max_ticks)),
            rest_frames=int(params.get('rest_frames', defaults.rest_frames)),
            stall_frames=int(params.get('stall_frames', defaults.stall_frames)),
            stall_distance=float(params.get('stall_distance', defaults.stall_distance)),
            max_attempts=int(params.get('max_attempts', defaults.max_attempts)),
            steering_base=float(params.get('steering_base', defaults.steering_base)),
            steering_ramp=float(params.get('steering_ramp', defaults.steering_ramp)),
            max_steering=float(params.get('max_steering', defaults.max_steering)),
            steering_nudge=float(params.get('steering_nudge', defaults.steering_nudge)),
        )


@dataclass(frozen=True)
class SimulationParams:
    start_x: float
    start_vx: float = 0.0
    bounce_randomness: float = 0.5
    steering: Optional[Steering] = None


@dataclass(frozen=True)
class SimulationResult:
    trajectory: Tuple[TrajectoryPoint, ...]
    landed_slot: int
    final_phase: Phase


@dataclass
class TrajectoryResult:
    """The accepted trajectory, its render cache and search bookkeeping."""
    trajectory: Tuple[TrajectoryPoint, ...]
    cache: TrajectoryCache
    landed_slot: int
    target_slot: int
    seed: Optional[int]
    attempts: int
    slot_histogram: Dict[int, int] = field(default_factory=dict)
    stalled_attempts: int = 0
    source: str = "simulated"


class TrajectorySimulator:
    """
    Steps one ball from its drop point until it rests in a bucket.
    """
    def __init__(self, board: Board, config: Optional[SimulationConfig] = None):
        self.board = board
        self.config = config if config is not None else SimulationConfig()

    def run(self, params: SimulationParams, seed: int) -> SimulationResult:
        """
        Executes one deterministic drop.

        Args:
            params (SimulationParams): Start conditions and bounce tuning.
            seed (int): Seed for this run's Rng.

        Returns:
            SimulationResult: The trajectory and the slot it landed in.
        """
        board = self.board
        config = self.config
        slots = board.slots
        rng = create_rng(seed)
        cooldowns = CooldownTable.for_pegs(board.peg_field)

        state = BallState(params.start_x, BORDER_WIDTH + DROP_HEIGHT_OFFSET, params.start_vx, 0.0)
        trajectory: List[TrajectoryPoint] = []
        rotation = 0.0
        phase = Phase.FALLING
        frame = 0

        # Rest frames before the drop
        for _ in range(config.rest_frames):
            trajectory.append(TrajectoryPoint(frame, state.x, state.y, 0.0, 0.0, 0.0))
            frame += 1

        stuck_frames = 0
        last_y = state.y

        while phase is not Phase.SETTLED:
            if frame >= config.max_ticks:
                msg = (
                    f"Ball did not settle within {config.max_ticks} frames "
                    f"(last position x={state.x:.2f}, y={state.y:.2f}, phase {phase.value})."
                )
                logging.critical(msg)
                raise NonTerminationError(msg)

            # 1. Integrate gravity, terminal velocity and drag
            vx, vy = state.vx, state.vy
            vy = min(vy + GRAVITY * DT, TERMINAL_VELOCITY)
            speed = math.hypot(vx, vy)
            if speed > MAX_TOTAL_SPEED:
                scale = MAX_TOTAL_SPEED / speed
                vx *= scale
                vy *= scale
            vx *= AIR_DRAG

            old_state = BallState(state.x, state.y, vx, vy)
            tentative = BallState(state.x + vx * DT, state.y + vy * DT, vx, vy)

            # 2. Pegs
            collision = detect_and_handle_peg_collisions(
                tentative, old_state, board.peg_field, cooldowns, frame,
                params.bounce_randomness, rng, params.steering
            )
            state = collision.state

            # 3. Side walls and vertical bounds
            state, wall_hit = handle_wall_collisions(state, board.min_x, board.max_x)
            clamped_y = min(max(state.y, board.min_y), board.max_y)
            if clamped_y != state.y:
                state = BallState(state.x, clamped_y, state.vx, state.vy)

            # Distance cap, before the buckets confine the ball to its slot
            if collision.hit_peg is None:
                moved_x = state.x - old_state.x
                moved_y = state.y - old_state.y
                moved = math.hypot(moved_x, moved_y)
                if moved > MAX_DIST_PER_FRAME:
                    scale = MAX_DIST_PER_FRAME / moved
                    state = BallState(
                        old_state.x + moved_x * scale, old_state.y + moved_y * scale,
                        state.vx, state.vy
                    )

            # 4. Buckets
            bucket = handle_bucket_physics(state, board, rng)
            state = bucket.state
            if bucket.settled:
                phase = Phase.SETTLED
            elif state.y >= slots.bucket_zone_y:
                phase = Phase.ENTERING_BUCKET

            rotation += (state.vx / BALL_RADIUS) * DT * 60

            # 5. Final speed cap
            speed = state.speed
            if speed > MAX_TOTAL_SPEED:
                scale = MAX_TOTAL_SPEED / speed
                state = BallState(state.x, state.y, state.vx * scale, state.vy * scale)

            # 6. Stall detection above the buckets
            if state.y < slots.bucket_zone_y:
                if abs(state.y - last_y) < config.stall_distance:
                    stuck_frames += 1
                    if stuck_frames > config.stall_frames:
                        msg = (
                            f"Ball stalled above the buckets at x={state.x:.2f}, "
                            f"y={state.y:.2f} (frame {frame})."
                        )
                        logging.warning(msg)
                        raise SimulationStalledError(msg)
                else:
                    stuck_frames = 0
                last_y = state.y

            trajectory.append(TrajectoryPoint(
                frame=frame,
                x=state.x,
                y=state.y,
                rotation=rotation,
                vx=state.vx,
                vy=state.vy,
                pegs_hit=collision.pegs_hit,
                wall_hit=wall_hit,
                bucket_wall_hit=bucket.bucket_wall_hit,
                bucket_floor_hit=bucket.bucket_floor_hit,
            ))
            frame += 1

        landed_slot = board.landed_slot(state.x)
        return SimulationResult(tuple(trajectory), landed_slot, phase)


def _resolve_drop_range(board: Board, drop_x: Optional[float], drop_zone: Optional[str]) -> Tuple[float, float]:
    """Returns (centre, half-width) of the start x search window."""
    if drop_x is not None and drop_zone is not None:
        msg = f"Pass either drop_x ({drop_x}) or drop_zone ({drop_zone!r}), not both."
        logging.error(msg)
        raise ConfigurationError(msg)
    if drop_zone is not None:
        low, high = get_drop_zone_range(drop_zone, board.content_width)
        return (low + high) / 2, (high - low) / 2
    if drop_x is not None:
        if not board.min_x <= drop_x <= board.max_x:
            msg = f"Drop x {drop_x} is outside the board ({board.min_x:.1f} to {board.max_x:.1f})."
            logging.error(msg)
            raise ConfigurationError(msg)
        return drop_x, CLASSIC_DROP_RANGE
    return board.content_width / 2, CLASSIC_DROP_RANGE


def _micro_offset(attempt: int, search_range: float) -> float:
    # Imperceptible start offsets that still change the whole path
    pattern = attempt % 7
    if pattern == 0:
        return 0.0
    if pattern == 1:
        return search_range * 0.3
    if pattern == 2:
        return -search_range * 0.3
    if pattern == 3:
        return search_range * 0.6
    if pattern == 4:
        return -search_range * 0.6
    if pattern == 5:
        return math.sin(attempt * 0.618) * search_range * 0.8
    return math.cos(attempt * 1.414) * search_range * 0.8


def attempt_seed(seed: int, attempt: int) -> int:
    return seed * 65537 + attempt * 31337


def generate_trajectory(
    board: Board,
    target_slot: int,
    seed: int,
    drop_x: Optional[float] = None,
    drop_zone: Optional[str] = None,
    config: Optional[SimulationConfig] = None,
) -> TrajectoryResult:
    """
    Finds a trajectory that ends in target_slot.

    Attempts are deterministic: attempt k varies the start x inside the drop
    window, the bounce randomness, and its own sub-seed, and steers
    registered peg bounces toward the target with a strength that grows
    with k. The first attempt that lands in the target slot is returned.

    Args:
        board (Board): The board to drop on.
        target_slot (int): The predetermined winning slot.
        seed (int): Master seed; the same seed replays the same result.
        drop_x (Optional[float]): Explicit drop position (content frame).
        drop_zone (Optional[str]): Named drop zone; exclusive with drop_x.
        config (Optional[SimulationConfig]): Loop and search tunables.

    Returns:
        TrajectoryResult: The accepted trajectory with its render cache.
    """
    config = config if config is not None else SimulationConfig()
    validate_slot_index(target_slot, board.slot_count)
    validate_seed(seed)
    center_x, search_range = _resolve_drop_range(board, drop_x, drop_zone)

    simulator = TrajectorySimulator(board, config)
    target_x = board.slot_center(target_slot)
    slot_histogram: Dict[int, int] = {}
    stalled_attempts = 0

    for attempt in range(config.max_attempts):
        start_x = center_x + _micro_offset(attempt, search_range)
        start_x = min(max(start_x, board.min_x), board.max_x)
        bounce_randomness = BOUNCE_RANDOMNESS_MIN + ((attempt % 100) / 100) * (
            BOUNCE_RANDOMNESS_MAX - BOUNCE_RANDOMNESS_MIN
        )
        strength = min(config.max_steering, config.steering_base + attempt * config.steering_ramp)
        steering = Steering(target_x, board.slots.slot_width, strength, config.steering_nudge)
        params = SimulationParams(start_x, 0.0, bounce_randomness, steering)

        try:
            result = simulator.run(params, attempt_seed(seed, attempt))
        except SimulationStalledError:
            stalled_attempts += 1
            logging.warning(f"Attempt {attempt + 1} stalled; trying the next start condition.")
            continue

        slot_histogram[result.landed_slot] = slot_histogram.get(result.landed_slot, 0) + 1
        logging.debug(
            f"Attempt {attempt + 1}: start x={start_x:.2f}, randomness={bounce_randomness:.2f}, "
            f"steering={strength:.2f} -> slot {result.landed_slot} in {len(result.trajectory)} frames."
        )

        if result.landed_slot == target_slot:
            logging.info(
                f"Trajectory for slot {target_slot} found after {attempt + 1} attempt(s) "
                f"({len(result.trajectory)} frames, seed {seed})."
            )
            return TrajectoryResult(
                trajectory=result.trajectory,
                cache=generate_trajectory_cache(result.trajectory),
                landed_slot=result.landed_slot,
                target_slot=target_slot,
                seed=seed,
                attempts=attempt + 1,
                slot_histogram=slot_histogram,
                stalled_attempts=stalled_attempts,
            )

    msg = (
        f"No trajectory landed in slot {target_slot} after {config.max_attempts} attempts "
        f"(landed slots: {slot_histogram}, stalled: {stalled_attempts})."
    )
    logging.critical(msg)
    raise OutcomeConstraintError(msg)


def trajectory_from_precomputed(
    points: Sequence[Union[TrajectoryPoint, Dict[str, Any]]],
    board: Board,
    target_slot: Optional[int] = None,
) -> TrajectoryResult:
    """
    Wraps a provider-supplied path after checking it is replayable.

    The frames must be numbered 0..n-1 and, when target_slot is given, the
    last point must rest in that slot.
    """
    trajectory = tuple(p if isinstance(p, TrajectoryPoint) else TrajectoryPoint.from_dict(p) for p in points)
    if not trajectory:
        msg = "Precomputed trajectory is empty."
        logging.error(msg)
        raise ConfigurationError(msg)
    for index, point in enumerate(trajectory):
        if point.frame != index:
            msg = f"Precomputed trajectory frame {point.frame} found at index {index}."
            logging.error(msg)
            raise ConfigurationError(msg)

    landed_slot = board.landed_slot(trajectory[-1].x)
    if target_slot is not None:
        validate_slot_index(target_slot, board.slot_count)
        if landed_slot != target_slot:
            msg = f"Precomputed trajectory lands in slot {landed_slot}, expected {target_slot}."
            logging.error(msg)
            raise OutcomeConstraintError(msg)

    return TrajectoryResult(
        trajectory=trajectory,
        cache=generate_trajectory_cache(trajectory),
        landed_slot=landed_slot,
        target_slot=landed_slot if target_slot is None else target_slot,
        seed=None,
        attempts=0,
        slot_histogram={landed_slot: 1},
        source="precomputed",
    )
