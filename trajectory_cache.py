# trajectory_cache.py
"""
Per-frame rendering values precomputed from a finished trajectory.

The renderer needs speed, squash/stretch scale and trail length on every
frame. They depend only on the trajectory, so they are computed once with
NumPy into a structure of arrays and looked up by frame index afterwards.
"""
import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np

from constants import (
    MAX_SQUASH, MAX_STRETCH, MAX_TRAIL_LENGTH, MIN_TRAIL_LENGTH,
    SCALE_X_RANGE, SCALE_Y_RANGE, SQUASH_MIN_SPEED, SQUASH_SPEED_SCALE,
    STRETCH_MIN_VY, STRETCH_SPEED_SCALE, TRAIL_LENGTHS, TRAIL_SPEED_BANDS,
)
from errors import CacheInvariantError

# --- Data Contracts ---
#
# generate_trajectory_cache(trajectory) -> TrajectoryCache:
#   - Inputs: a sequence of points exposing vx, vy and pegs_hit.
#   - Outputs: read-only float32 speeds/scale_x/scale_y and uint8
#     trail_lengths, one entry per point.
#   - Invariants: every array has len(trajectory) entries; scale_x within
#     SCALE_X_RANGE, scale_y within SCALE_Y_RANGE, trail lengths within
#     [MIN_TRAIL_LENGTH, MAX_TRAIL_LENGTH].
#
# get_cached_values(cache, frame) -> (speed, scale_x, scale_y, trail_length):
#   - Returns DEFAULT_VALUES for a missing cache or a frame out of range.

DEFAULT_VALUES: Tuple[float, float, float, int] = (0.0, 1.0, 1.0, MIN_TRAIL_LENGTH)


@dataclass(frozen=True)
class TrajectoryCache:
    speeds: np.ndarray
    scale_x: np.ndarray
    scale_y: np.ndarray
    trail_lengths: np.ndarray
    trajectory_length: int

    def __post_init__(self):
        for name in ('speeds', 'scale_x', 'scale_y', 'trail_lengths'):
            array = getattr(self, name)
            if array.shape != (self.trajectory_length,):
                msg = (
                    f"Cache array '{name}' has shape {array.shape}, "
                    f"expected ({self.trajectory_length},)."
                )
                logging.critical(msg)
                raise CacheInvariantError(msg)
            array.flags.writeable = False

    def __len__(self) -> int:
        return self.trajectory_length

    def values_at(self, frame: int) -> Tuple[float, float, float, int]:
        if not 0 <= frame < self.trajectory_length:
            return DEFAULT_VALUES
        return (
            float(self.speeds[frame]),
            float(self.scale_x[frame]),
            float(self.scale_y[frame]),
            int(self.trail_lengths[frame]),
        )


def generate_trajectory_cache(trajectory: Sequence) -> TrajectoryCache:
    """
    Builds the cache for a trajectory.

    Squash wins over stretch: a frame with a registered peg hit at speed
    above SQUASH_MIN_SPEED squashes, otherwise a fast fall stretches.
    """
    length = len(trajectory)
    vx = np.fromiter((p.vx for p in trajectory), dtype=np.float64, count=length)
    vy = np.fromiter((p.vy for p in trajectory), dtype=np.float64, count=length)
    peg_hit = np.fromiter((bool(p.pegs_hit) for p in trajectory), dtype=bool, count=length)

    speeds = np.hypot(vx, vy)

    squash = peg_hit & (speeds > SQUASH_MIN_SPEED)
    squash_amount = np.minimum(speeds / SQUASH_SPEED_SCALE, MAX_SQUASH)

    stretch = ~squash & (vy > STRETCH_MIN_VY)
    stretch_amount = np.minimum(vy / STRETCH_SPEED_SCALE, MAX_STRETCH)

    scale_x = np.ones(length)
    scale_y = np.ones(length)
    scale_x[squash] = 1.0 + squash_amount[squash] / 2
    scale_y[squash] = 1.0 - squash_amount[squash]
    scale_x[stretch] = 1.0 - 0.4 * stretch_amount[stretch]
    scale_y[stretch] = 1.0 + stretch_amount[stretch]
    scale_x = np.clip(scale_x, *SCALE_X_RANGE)
    scale_y = np.clip(scale_y, *SCALE_Y_RANGE)

    # Faster balls leave longer trails
    band = np.searchsorted(np.asarray(TRAIL_SPEED_BANDS, dtype=np.float64), speeds, side='right')
    trail_lengths = np.asarray(TRAIL_LENGTHS, dtype=np.uint8)[band]
    trail_lengths = np.clip(trail_lengths, MIN_TRAIL_LENGTH, MAX_TRAIL_LENGTH).astype(np.uint8)

    cache = TrajectoryCache(
        speeds=speeds.astype(np.float32),
        scale_x=scale_x.astype(np.float32),
        scale_y=scale_y.astype(np.float32),
        trail_lengths=trail_lengths,
        trajectory_length=length,
    )
    logging.debug(f"Trajectory cache built for {length} frames ({int(squash.sum())} squash frames).")
    return cache


def get_cached_values(cache: Optional[TrajectoryCache], frame: int) -> Tuple[float, float, float, int]:
    if cache is None:
        return DEFAULT_VALUES
    return cache.values_at(frame)
