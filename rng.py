# rng.py
"""
Seeded pseudo-random generator with explicit, copyable state.

All randomness in a drop flows through one Rng instance created from the
drop's seed. There is no module-level generator. The draw sequence comes
from NumPy's PCG64 bit generator: its raw 64-bit output stream and its
SeedSequence seeding are both version-stable, so a saved seed replays the
same trajectory on any later install. Floats are built from the raw stream
here rather than through Generator.random(), whose method-level stream is
not covered by that guarantee.
"""
import copy
import logging
import time
from typing import Any, Dict

import numpy as np

from errors import ConfigurationError

# --- Data Contracts ---
#
# create_rng(seed: int) -> Rng:
#   - Inputs: a non-negative integer seed.
#   - Outputs: a fresh generator positioned at the start of the seed's stream.
#   - Invariants: two generators created from the same seed return the same
#     sequence from next(), forever.
#
# class Rng:
#   - next(self) -> float: uniform in [0, 1), 53 bits of precision.
#   - copy(self) -> Rng: independent generator at the same position.
#   - state: the bit-generator state dict; assigning it rewinds/advances.

_DOUBLE_UNIT = 1.0 / 9007199254740992.0  # 2**-53


def validate_seed(seed: int) -> None:
    if isinstance(seed, bool) or not isinstance(seed, (int, np.integer)) or seed < 0:
        msg = f"Seed must be a non-negative integer, got {seed!r}"
        logging.error(msg)
        raise ConfigurationError(msg)


class Rng:
    """
    Deterministic uniform generator over a PCG64 stream.
    """
    def __init__(self, seed: int):
        validate_seed(seed)
        self.seed = int(seed)
        self._bit_generator = np.random.PCG64(self.seed)

    def next(self) -> float:
        # Top 53 bits of one raw draw -> [0, 1)
        raw = int(self._bit_generator.random_raw())
        return (raw >> 11) * _DOUBLE_UNIT

    def copy(self) -> "Rng":
        clone = Rng(self.seed)
        clone.state = self.state
        return clone

    @property
    def state(self) -> Dict[str, Any]:
        return copy.deepcopy(self._bit_generator.state)

    @state.setter
    def state(self, value: Dict[str, Any]) -> None:
        self._bit_generator.state = copy.deepcopy(value)

    def __repr__(self) -> str:
        return f"Rng(seed={self.seed})"


def create_rng(seed: int) -> Rng:
    return Rng(seed)


def generate_seed() -> int:
    """Returns a fresh seed for drops that do not need to be replayed."""
    seed = time.time_ns() % (2 ** 53)
    logging.debug(f"Generated seed {seed}.")
    return seed
