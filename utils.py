# utils.py
"""
Utility functions shared by the simulator entry points.

Logging setup, configuration loading and trajectory JSON import/export live
here because they serve every entry point without belonging to the physics.
"""
import logging
import logging.handlers
import json
import os
from typing import Any, Dict, List, Optional

# --- Data Contracts ---
#
# setup_logging(config: Dict[str, Any]) -> None:
#   - Inputs: a dictionary whose optional "logging" key holds "level",
#     "format" and "log_file".
#   - Side Effects: replaces the root logger's handlers with a console
#     handler and a rotating file handler (1MB, 5 backups). Creates the log
#     directory when missing.
#
# save_trajectory(path, trajectory, metadata=None) -> None:
#   - Writes {"metadata": {...}, "trajectory": [point.to_dict(), ...]}.
#   - Keys inside each point are camelCase (pegsHit, wallHit, ...).
#
# load_trajectory(path) -> (List[dict], Dict[str, Any]):
#   - Reads the same layout back; raises ValueError on a missing
#     "trajectory" list.

DEFAULT_LOG_FILE = 'logs/plinko.log'


def setup_logging(config: Dict[str, Any]) -> None:
    """
    Configures the root logger from the "logging" config section.
    """
    log_config = config.get('logging', {})
    log_level = log_config.get('level', 'INFO').upper()
    log_format = log_config.get('format', '%(asctime)s - %(levelname)s - %(message)s')
    log_file_path = log_config.get('log_file', DEFAULT_LOG_FILE)

    log_dir = os.path.dirname(log_file_path)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    logger = logging.getLogger()
    logger.setLevel(log_level)

    # Clear existing handlers to avoid duplication
    if logger.hasHandlers():
        logger.handlers.clear()

    formatter = logging.Formatter(log_format)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # Rotates at 1MB, keeps 5 backups
    file_handler = logging.handlers.RotatingFileHandler(
        log_file_path, maxBytes=1024*1024, backupCount=5
    )
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    logging.info("Logging system initialized.")
    logging.debug(f"Log level {log_level}, log file {log_file_path}.")


def load_config(path: str) -> Dict[str, Any]:
    """Loads a JSON configuration file."""
    logging.info(f"Loading configuration from {path}...")
    try:
        with open(path, 'r') as f:
            config = json.load(f)
        logging.info("Configuration loaded successfully.")
        return config
    except FileNotFoundError:
        logging.error(f"Configuration file not found at {path}.")
        raise
    except json.JSONDecodeError:
        logging.error(f"Error decoding JSON from {path}.")
        raise


def save_trajectory(path: str, trajectory, metadata: Optional[Dict[str, Any]] = None) -> None:
    """
    Exports a trajectory as JSON for replay or hand-off to a renderer.

    Args:
        path (str): Output file; parent directories are created.
        trajectory: Sequence of TrajectoryPoint.
        metadata (Optional[Dict[str, Any]]): Extra top-level fields such as
            the seed and target slot.
    """
    out_dir = os.path.dirname(path)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)

    payload = {
        "metadata": dict(metadata or {}),
        "trajectory": [point.to_dict() for point in trajectory],
    }
    with open(path, 'w') as f:
        json.dump(payload, f, indent=2)
    logging.info(f"Trajectory with {len(payload['trajectory'])} frames written to {path}.")


def load_trajectory(path: str):
    """Reads a file written by save_trajectory. Returns (points, metadata)."""
    logging.info(f"Loading trajectory from {path}...")
    with open(path, 'r') as f:
        payload = json.load(f)

    points: List[Dict[str, Any]] = payload.get("trajectory") if isinstance(payload, dict) else None
    if not isinstance(points, list):
        msg = f"{path} does not contain a 'trajectory' list."
        logging.error(msg)
        raise ValueError(msg)
    return points, payload.get("metadata", {})
