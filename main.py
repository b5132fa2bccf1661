# main.py
"""
Main entry point for the Plinko drop simulator.

This script orchestrates one drop:
1. Loads configuration from `config.json`.
2. Initializes the logging system.
3. Builds the board and searches for a trajectory into the target slot.
4. Optionally exports the trajectory and replays it in a Pygame window.
"""
import logging
import cProfile
import pstats
import io
import sys

from utils import setup_logging, load_config, save_trajectory


def main(config_path: str = 'config.json') -> int:
    """
    Runs one drop as configured. Returns a process exit code.
    """
    # Logging is not set up yet, so we use a print for this one error.
    try:
        config = load_config(config_path)
    except Exception as e:
        print(f"FATAL: Could not load {config_path}. Error: {e}")
        return 1

    setup_logging(config)
    logging.info("--- Plinko Drop Starting ---")

    board_params = config.get('board', {})
    sim_params = config.get('simulation', {})
    run_params = config.get('run_control', {})
    vis_params = config.get('visualization', {})

    from board import board_from_config
    from errors import PlinkoError
    from rng import generate_seed
    from simulation import SimulationConfig, generate_trajectory

    try:
        board = board_from_config(board_params)
        sim_config = SimulationConfig.from_dict(sim_params)
    except PlinkoError as e:
        logging.critical(f"Invalid configuration: {e}")
        return 1

    seed = run_params.get('seed')
    if seed is None:
        seed = generate_seed()
        logging.info(f"No seed configured. Using fresh seed {seed}.")
    target_slot = run_params.get('target_slot', 0)

    profiler = cProfile.Profile() if run_params.get('profile', False) else None
    if profiler is not None:
        profiler.enable()
    try:
        result = generate_trajectory(
            board,
            target_slot,
            seed,
            drop_x=run_params.get('drop_x'),
            drop_zone=run_params.get('drop_zone'),
            config=sim_config,
        )
    except PlinkoError as e:
        logging.critical(f"Trajectory generation failed: {e}")
        return 1
    finally:
        if profiler is not None:
            profiler.disable()

    final = result.trajectory[-1]
    logging.info(
        f"Slot {result.landed_slot} reached in {len(result.trajectory)} frames after "
        f"{result.attempts} attempt(s); final position ({final.x:.2f}, {final.y:.2f})."
    )
    logging.debug(f"Landed-slot histogram over attempts: {result.slot_histogram}")
    total_hits = sum(len(point.pegs_hit) for point in result.trajectory)
    logging.debug(f"Registered peg hits: {total_hits}, stalled attempts: {result.stalled_attempts}")

    if profiler is not None:
        logging.info("--- Performance Profile ---")
        s = io.StringIO()
        stats = pstats.Stats(profiler, stream=s).sort_stats('cumtime')
        stats.print_stats(20) # Top 20 by cumulative time
        logging.info(f"\n{s.getvalue()}")

    export_path = run_params.get('export_path')
    if export_path:
        save_trajectory(export_path, result.trajectory, {
            "seed": seed,
            "targetSlot": result.target_slot,
            "landedSlot": result.landed_slot,
            "attempts": result.attempts,
            "board": board_params,
        })

    if vis_params.get('enabled', False):
        from visualization import Visualizer
        visualizer = Visualizer(
            board,
            colors=vis_params.get('colors'),
            info={"Seed": seed},
            fps=vis_params.get('fps', 60),
        )
        visualizer.replay(result)
        visualizer.close()

    logging.info("--- Plinko Drop Finished ---")
    return 0


if __name__ == "__main__":
    sys.exit(main(*sys.argv[1:2]))
