# errors.py
"""
Typed errors raised by the trajectory pipeline.

Every anomaly detected while laying out the board, simulating a drop or
building the render cache propagates to the caller as one of these types.
The outcome search skips stalled attempts and logs each one; nothing else
is caught inside the pipeline.
"""


class PlinkoError(Exception):
    """Base class for all errors raised by this package."""


class ConfigurationError(PlinkoError, ValueError):
    """Invalid input: board dimensions, row count, slot index, seed, drop position."""


class GeometryError(ConfigurationError):
    """The board layout cannot produce a resting position in a requested slot."""


class CacheInvariantError(ConfigurationError):
    """The per-frame cache arrays do not match the trajectory length."""


class NonTerminationError(PlinkoError, RuntimeError):
    """The ball did not settle inside the tick budget."""


class SimulationStalledError(NonTerminationError):
    """The ball stopped making vertical progress above the bucket zone."""


class OutcomeConstraintError(PlinkoError, RuntimeError):
    """No trajectory could be produced that ends in the target slot."""
