# main.py
import os
import psutil # For memory monitoring
import logging
import cProfile
import pstats
import io
import argparse

from config import config, ConfigurationError
from layout_engine import LayoutEngine
from orbital_layout import find_layout_violations
from solarsystem import build_sol_system

class LayoutReport:
    """Runs the engine once over the built-in Sol system and logs what a renderer would receive.

    The report covers the resolved layout (visual radius, orbit distance and
    absolute position of every object), the camera frame for the focused object,
    Keplerian predictions at the requested simulation time and the cache
    statistics, followed by the process memory use as reported by `psutil`.

    Attributes:
        engine (LayoutEngine): The engine instance owned by this report.
        system (SystemSnapshot): The Sol snapshot built from `config.SolarSystem`.
        process (psutil.Process): The current process, for memory monitoring.
    """
    def __init__(self):
        try:
            self.engine = LayoutEngine()
            self.system = build_sol_system()
        except ConfigurationError as e:
            logging.critical(f"Failed to initialize LayoutReport due to ConfigurationError: {e}", exc_info=True)
            raise
        self.process = psutil.Process(os.getpid())

    def run(self, view_mode: str, focus_id: str, time_seconds: float):
        for message in self.system.validate_hierarchy():
            logging.warning(f"Hierarchy: {message}")

        frame, layout = self.engine.frame_focus(focus_id, self.system, view_mode)

        logging.info(f"{'=' * 15} Layout ({layout.view_mode}) {'=' * 15}")
        for obj in self.system.pre_order():
            placed = layout[obj.id]
            indent = '  ' * self.system.depth_of(obj.id)
            logging.info(
                f"{indent}{obj.name:<20} r={placed.visual_radius:9.4f} orbit={placed.orbit_distance:10.4f} "
                f"x={placed.position[0]:11.4f}{' (widened)' if placed.widened else ''}"
            )

        violations = find_layout_violations(self.system, layout)
        if violations:
            for violation in violations:
                logging.error(f"Layout violation: {violation}")
        else:
            logging.info("No overlaps: parent clearance and sibling spacing hold for every object.")

        policy = self.engine.policy(view_mode)
        logging.info(
            f"Focal frame for '{frame.focal_id}': outer={frame.outer_id or '<synthetic>'} ({frame.strategy}), "
            f"span={frame.span:.4f}, target={frame.midpoint.round(4).tolist()}, "
            f"camera distance={frame.camera_distance(policy):.4f}"
        )

        predictions = self.engine.predict_positions(self.system, time_seconds, view_mode)
        logging.info(f"{'=' * 15} Predictions at t={time_seconds:.0f}s {'=' * 15}")
        for object_id, prediction in predictions.items():
            logging.info(f"{object_id:<16} |r|={prediction.distance:10.4f} confidence={prediction.confidence:.2f}")

        # A second call must be served from the cache.
        self.engine.get_layout(self.system, view_mode)
        stats = self.engine.stats()
        logging.info(
            f"Cache: {stats.total_entries} entries, hit rate {stats.hit_rate:.2f}, "
            f"{stats.memory_usage} / {stats.max_memory} bytes"
        )
        self.check_memory()

    def check_memory(self):
        try:
            memory_mb = self.process.memory_info().rss / (1024 * 1024)
            logging.info(f"Process memory usage: {memory_mb:.2f} MB")
            if memory_mb > config.Monitoring.MEMORY_USAGE_WARN_MB:
                logging.warning(
                    f"High memory usage: {memory_mb:.2f} MB exceeds threshold of "
                    f"{config.Monitoring.MEMORY_USAGE_WARN_MB} MB."
                )
        except psutil.Error as e_psutil:
            logging.error(f"Could not retrieve memory usage: {e_psutil}", exc_info=True)


def main(argv=None):
    """Command-line entry point.

    Options:
        --mode: View mode id (defaults to `config.ViewModes.DEFAULT_MODE`).
        --focus: Object id to frame (defaults to "jupiter").
        --time: Simulation time in seconds for predictions.
        --profile: Wraps the run in `cProfile` and saves `layout_profile.prof`.
    """
    parser = argparse.ArgumentParser(description="Lay out the built-in Sol system under a view mode.")
    parser.add_argument('--mode', default=config.ViewModes.DEFAULT_MODE,
                        choices=sorted(config.ViewModes.MODE_DATA), help="View mode to lay out.")
    parser.add_argument('--focus', default='jupiter', help="Object id to frame with the camera.")
    parser.add_argument('--time', type=float, default=0.0, help="Simulation time in seconds.")
    parser.add_argument('--profile', action='store_true', help="Enable cProfile for performance analysis.")
    args = parser.parse_args(argv)

    profiler = None
    if args.profile:
        profiler = cProfile.Profile()
        profiler.enable()
        logging.info("cProfile profiling enabled. Output will be saved to layout_profile.prof upon completion.")

    exit_code = 0
    try:
        LayoutReport().run(args.mode, args.focus, args.time)
    except ConfigurationError as e_config_main:
        logging.critical(f"Layout engine could not start due to a ConfigurationError: {e_config_main}", exc_info=True)
        exit_code = 2
    except LookupError as e_lookup:
        logging.error(f"Cannot frame '{args.focus}': {e_lookup}")
        exit_code = 1
    finally:
        if profiler:
            profiler.disable()
            stats_file = "layout_profile.prof"
            try:
                profiler.dump_stats(stats_file)
                summary = io.StringIO()
                pstats.Stats(profiler, stream=summary).sort_stats('cumulative').print_stats(15)
                logging.info(f"Profiling data saved to {stats_file}\n{summary.getvalue()}")
            except OSError as e_profile_dump:
                logging.error(f"Failed to save profiling data to {stats_file}: {e_profile_dump}", exc_info=True)
    return exit_code


if __name__ == "__main__":
    raise SystemExit(main())
