# config.py
import math
import logging

# Configure basic logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(module)s - %(message)s')

# Fundamental Physical Constants (used across different config sections)
AU_KM = 149597870.7  # Astronomical Unit in kilometers
SECONDS_PER_DAY = 86400.0
DAYS_PER_YEAR = 365.25
EARTH_RADIUS_KM = 6371.0

# Classification keys used by the per-mode tables below. Must match the values
# of solarsystem.Classification.
CLASSIFICATION_KEYS = ('star', 'planet', 'moon', 'belt', 'station', 'jump-point')


class ConfigurationError(Exception):
    """Custom exception for engine configuration errors.

    Raised by `EngineConfig.validate()` and by `validate_mode_data()` (through
    `ScalingPolicy.from_mode_data()`) when settings are invalid, inconsistent,
    or missing. This is the only error the engine treats as fatal: it is raised
    while configuration is loaded, before any layout pass begins.

    Attributes:
        message (str): A human-readable explanation of the configuration error.
                       This is the first argument passed to the exception constructor.
    """
    pass


class EngineConfig:
    """Centralized, hierarchical configuration for the orbital layout engine.

    Parameters live in nested static classes (e.g., `EngineConfig.Kepler`,
    `EngineConfig.Cache`, `EngineConfig.ViewModes`) for organized access. An
    instance named `config` is created at the end of this module and is
    importable via `from config import config`. The instance is read-only
    data: services that hold mutable state (caches, registries) are built by
    their callers and take their defaults from here.

    The constructor invokes `validate()`, which checks every section and every
    view mode and raises `ConfigurationError` on the first problem found.

    Example Usage:
        >>> from config import config
        >>> print(f"Default view mode: {config.ViewModes.DEFAULT_MODE}")
        >>> print(f"Kepler tolerance: {config.Kepler.TOLERANCE}")
    """

    # --- Size Classification ---
    class Sizing:
        """Thresholds for classifying objects that arrive without a classification.

        Attributes:
            STAR_RADIUS_THRESHOLD_KM (float): Radius at or above which an unclassified
                                              object is treated as star-like.
            PLANET_RADIUS_THRESHOLD_KM (float): Radius at or above which an unclassified
                                                object is treated as planet-like. Anything
                                                smaller is moon/asteroid-like.
            HIERARCHY_RATIO (float): Minimum visual size ratio of a parent over its
                                     largest point child in modes that enforce it.
        """
        STAR_RADIUS_THRESHOLD_KM = 100000.0
        PLANET_RADIUS_THRESHOLD_KM = 2000.0
        HIERARCHY_RATIO = 1.2

    # --- Layout ---
    class Layout:
        """Configuration for the collision-free orbital layout pass.

        Attributes:
            MIN_BELT_WIDTH_FRACTION (float): Width (as a fraction of the mode's
                                             `min_distance`) given to belts whose
                                             stated span is empty or inverted.
            DEPTH_WARNING_THRESHOLD (int): Hierarchy depth above which a warning is
                                           logged. Traversal is iterative, so deep
                                           trees never exhaust the call stack.
            WIDENING_LOG_SAMPLE (int): Number of widened object ids quoted in the
                                       per-pass warning.
        """
        MIN_BELT_WIDTH_FRACTION = 0.5
        DEPTH_WARNING_THRESHOLD = 16
        WIDENING_LOG_SAMPLE = 5

    # --- Kepler Solver ---
    class Kepler:
        """Configuration for the Newton solver of Kepler's equation.

        Attributes:
            TOLERANCE (float): Convergence tolerance on |E - e sin E - M|.
            MAX_ITERATIONS (int): Hard iteration cap; the solver always terminates.
            HIGH_ECCENTRICITY_THRESHOLD (float): Above this eccentricity the initial
                                                 guess switches to pi.
        """
        TOLERANCE = 1e-8
        MAX_ITERATIONS = 50
        HIGH_ECCENTRICITY_THRESHOLD = 0.8

    # --- Position Prediction ---
    class Prediction:
        """Configuration for per-frame orbital position prediction.

        Attributes:
            FRAME_SECONDS (float): Wall-clock lifetime of a cached prediction (one frame).
            CACHE_CLEANUP_MULTIPLIER (float): Cached predictions older than
                                              `FRAME_SECONDS * CACHE_CLEANUP_MULTIPLIER`
                                              are pruned.
            CONVERGED_CONFIDENCE (float): Confidence reported for a converged solve.
            UNCONVERGED_CONFIDENCE (float): Confidence reported when the solver hit
                                            its iteration cap.
            DEFAULT_PERIOD_CONFIDENCE (float): Confidence multiplier applied when the
                                               orbital period was missing and
                                               `DEFAULT_PERIOD_DAYS` was used.
            DEFAULT_PERIOD_DAYS (float): Orbital period assumed when none is given.
            MAX_WORKERS (int): Thread pool size for batch predictions.
        """
        FRAME_SECONDS = 1.0 / 60.0
        CACHE_CLEANUP_MULTIPLIER = 5.0
        CONVERGED_CONFIDENCE = 1.0
        UNCONVERGED_CONFIDENCE = 0.5
        DEFAULT_PERIOD_CONFIDENCE = 0.8
        DEFAULT_PERIOD_DAYS = DAYS_PER_YEAR
        MAX_WORKERS = 4

    # --- Camera Framing ---
    class Focal:
        """Configuration for camera focal-frame resolution.

        Attributes:
            FALLBACK_FRACTION (float): Fraction of the focus position's magnitude used
                                       as the synthetic outer offset for isolated objects.
            FALLBACK_RADIUS_MULTIPLIER (float): Lower bound of the synthetic offset,
                                                in multiples of the focus visual radius.
            MIN_FALLBACK_OFFSET (float): Absolute lower bound of the synthetic offset.
            DEGENERATE_SPAN (float): Candidates closer than this to the focus are ignored.
        """
        FALLBACK_FRACTION = 0.5
        FALLBACK_RADIUS_MULTIPLIER = 3.0
        MIN_FALLBACK_OFFSET = 0.1
        DEGENERATE_SPAN = 1e-9

    # --- Calculation Cache ---
    class Cache:
        """Configuration for the layout calculation cache.

        Attributes:
            MAX_ENTRIES (int): Maximum number of cached layouts.
            MAX_MEMORY_MB (float): Maximum estimated memory held by cached layouts.
            KEY_ID_SAMPLE_SIZE (int): Number of sorted object ids quoted in cache keys.
            BASE_ENTRY_BYTES (int): Fixed overhead in the size estimate of an entry.
            BYTES_PER_OBJECT (int): Per-object cost in the size estimate of an entry.
            KEY_OVERHEAD_BYTES (int): Overhead added for key and bookkeeping.
        """
        MAX_ENTRIES = 100
        MAX_MEMORY_MB = 50.0
        KEY_ID_SAMPLE_SIZE = 5
        BASE_ENTRY_BYTES = 1000
        BYTES_PER_OBJECT = 200
        KEY_OVERHEAD_BYTES = 500

    # --- Monitoring Configuration ---
    class Monitoring:
        """Configuration for system resource monitoring.

        Attributes:
            MEMORY_USAGE_WARN_MB (int): Process memory usage threshold in Megabytes.
                                        If exceeded, a warning is logged.
        """
        MEMORY_USAGE_WARN_MB = 512

    # --- Debug Configuration ---
    class Debug:
        """Toggles for verbose debug logging.

        Attributes:
            LAYOUT (bool): Per-object placement details from the layout pass.
            KEPLER_SOLVER (bool): Convergence details from Kepler's equation solver.
            CACHE (bool): Cache hits, misses and evictions.
            FOCAL_POINT (bool): Candidate selection in the focal-point resolver.
            CONFIG_VALIDATION (bool): Log each validated view mode on startup.
        """
        LAYOUT = False
        KEPLER_SOLVER = False
        CACHE = False
        FOCAL_POINT = False
        CONFIG_VALIDATION = False

    # --- Built-in Star System ---
    class SolarSystem:
        """Built-in Sol system used by the command-line demo and the tests.

        Attributes:
            PLANET_DATA (Dict[str, Dict]): Object id mapped to a record with the display
                                           name, classification, physical properties and
                                           orbital elements. Point orbits carry
                                           `semi_major_axis_au`, `eccentricity`,
                                           `inclination_deg`, `orbital_period_days`,
                                           `longitude_of_ascending_node_deg`,
                                           `argument_of_periapsis_deg` and
                                           `mean_anomaly_at_epoch_deg`; belts carry
                                           `inner_radius_au` and `outer_radius_au`.
                                           `central_body` is the parent id, None for roots.
        """
        PLANET_DATA = {
            'sun': {
                'name': 'Sun', 'classification': 'star',
                'mass_kg': 1.9885e30, 'radius_km': 695700.0, 'temperature_k': 5772.0,
                'central_body': None
            },
            'mercury': {
                'name': 'Mercury', 'classification': 'planet',
                'mass_kg': 0.33011e24, 'radius_km': 2439.7, 'temperature_k': 440.0,
                'semi_major_axis_au': 0.387098, 'eccentricity': 0.205630, 'inclination_deg': 7.005,
                'orbital_period_days': 87.969,
                'longitude_of_ascending_node_deg': 48.331, 'argument_of_periapsis_deg': 29.124,
                'mean_anomaly_at_epoch_deg': 174.794, 'central_body': 'sun'
            },
            'venus': {
                'name': 'Venus', 'classification': 'planet',
                'mass_kg': 4.8675e24, 'radius_km': 6051.8, 'temperature_k': 737.0,
                'semi_major_axis_au': 0.723332, 'eccentricity': 0.006772, 'inclination_deg': 3.39458,
                'orbital_period_days': 224.701,
                'longitude_of_ascending_node_deg': 76.680, 'argument_of_periapsis_deg': 54.884,
                'mean_anomaly_at_epoch_deg': 50.447, 'central_body': 'sun'
            },
            'earth': {
                'name': 'Earth', 'classification': 'planet',
                'mass_kg': 5.97237e24, 'radius_km': 6371.0, 'temperature_k': 288.0,
                'semi_major_axis_au': 1.00000261, 'eccentricity': 0.01671123, 'inclination_deg': 0.00005,
                'orbital_period_days': 365.256,
                'longitude_of_ascending_node_deg': 348.73936, 'argument_of_periapsis_deg': 114.20783,
                'mean_anomaly_at_epoch_deg': 357.51716, 'central_body': 'sun'
            },
            'moon': {
                'name': 'Moon', 'classification': 'moon',
                'mass_kg': 0.07346e24, 'radius_km': 1737.4, 'temperature_k': 250.0,
                'semi_major_axis_au': 0.00257, 'eccentricity': 0.0549, 'inclination_deg': 5.145,
                'orbital_period_days': 27.3217,
                'longitude_of_ascending_node_deg': 125.08, 'argument_of_periapsis_deg': 318.15,
                'mean_anomaly_at_epoch_deg': 115.36, 'central_body': 'earth'
            },
            'gateway': {
                'name': 'Gateway Station', 'classification': 'station',
                'mass_kg': 4.0e4, 'radius_km': 0.05, 'temperature_k': 290.0,
                'semi_major_axis_au': 0.0004, 'eccentricity': 0.0, 'inclination_deg': 0.0,
                'orbital_period_days': 6.5,
                'central_body': 'moon'
            },
            'mars': {
                'name': 'Mars', 'classification': 'planet',
                'mass_kg': 0.64171e24, 'radius_km': 3389.5, 'temperature_k': 210.0,
                'semi_major_axis_au': 1.523679, 'eccentricity': 0.09340, 'inclination_deg': 1.850,
                'orbital_period_days': 686.980,
                'longitude_of_ascending_node_deg': 49.558, 'argument_of_periapsis_deg': 286.502,
                'mean_anomaly_at_epoch_deg': 19.412, 'central_body': 'sun'
            },
            'main-belt': {
                'name': 'Main Asteroid Belt', 'classification': 'belt',
                'mass_kg': 2.39e21, 'radius_km': 0.0,
                'inner_radius_au': 2.2, 'outer_radius_au': 3.2,
                'central_body': 'sun'
            },
            'jupiter': {
                'name': 'Jupiter', 'classification': 'planet',
                'mass_kg': 1898.19e24, 'radius_km': 69911.0, 'temperature_k': 165.0,
                'semi_major_axis_au': 5.2044, 'eccentricity': 0.0489, 'inclination_deg': 1.303,
                'orbital_period_days': 4332.59,
                'longitude_of_ascending_node_deg': 100.464, 'argument_of_periapsis_deg': 273.867,
                'mean_anomaly_at_epoch_deg': 20.020, 'central_body': 'sun'
            },
            'io': {
                'name': 'Io', 'classification': 'moon',
                'mass_kg': 0.089319e24, 'radius_km': 1821.6, 'temperature_k': 110.0,
                'semi_major_axis_au': 0.002819, 'eccentricity': 0.0041, 'inclination_deg': 0.050,
                'orbital_period_days': 1.769,
                'mean_anomaly_at_epoch_deg': 0.0, 'central_body': 'jupiter'
            },
            'europa': {
                'name': 'Europa', 'classification': 'moon',
                'mass_kg': 0.04800e24, 'radius_km': 1560.8, 'temperature_k': 102.0,
                'semi_major_axis_au': 0.004486, 'eccentricity': 0.0094, 'inclination_deg': 0.470,
                'orbital_period_days': 3.551,
                'mean_anomaly_at_epoch_deg': 100.0, 'central_body': 'jupiter'
            },
            'ganymede': {
                'name': 'Ganymede', 'classification': 'moon',
                'mass_kg': 0.14819e24, 'radius_km': 2634.1, 'temperature_k': 110.0,
                'semi_major_axis_au': 0.007155, 'eccentricity': 0.0013, 'inclination_deg': 0.204,
                'orbital_period_days': 7.155,
                'mean_anomaly_at_epoch_deg': 200.0, 'central_body': 'jupiter'
            },
            'callisto': {
                'name': 'Callisto', 'classification': 'moon',
                'mass_kg': 0.10759e24, 'radius_km': 2410.3, 'temperature_k': 134.0,
                'semi_major_axis_au': 0.012585, 'eccentricity': 0.0074, 'inclination_deg': 0.205,
                'orbital_period_days': 16.689,
                'mean_anomaly_at_epoch_deg': 300.0, 'central_body': 'jupiter'
            },
            'saturn': {
                'name': 'Saturn', 'classification': 'planet',
                'mass_kg': 568.34e24, 'radius_km': 58232.0, 'temperature_k': 134.0,
                'semi_major_axis_au': 9.5826, 'eccentricity': 0.0565, 'inclination_deg': 2.485,
                'orbital_period_days': 10759.22,
                'longitude_of_ascending_node_deg': 113.665, 'argument_of_periapsis_deg': 339.392,
                'mean_anomaly_at_epoch_deg': 317.020, 'central_body': 'sun'
            },
            'titan': {
                'name': 'Titan', 'classification': 'moon',
                'mass_kg': 0.13452e24, 'radius_km': 2574.7, 'temperature_k': 94.0,
                'semi_major_axis_au': 0.008168, 'eccentricity': 0.0288, 'inclination_deg': 0.34854,
                'orbital_period_days': 15.945,
                'mean_anomaly_at_epoch_deg': 0.0, 'central_body': 'saturn'
            },
            'uranus': {
                'name': 'Uranus', 'classification': 'planet',
                'mass_kg': 86.813e24, 'radius_km': 25362.0, 'temperature_k': 76.0,
                'semi_major_axis_au': 19.2184, 'eccentricity': 0.0457, 'inclination_deg': 0.772,
                'orbital_period_days': 30688.5,
                'longitude_of_ascending_node_deg': 74.006, 'argument_of_periapsis_deg': 96.999,
                'mean_anomaly_at_epoch_deg': 142.238600, 'central_body': 'sun'
            },
            'neptune': {
                'name': 'Neptune', 'classification': 'planet',
                'mass_kg': 102.413e24, 'radius_km': 24622.0, 'temperature_k': 72.0,
                'semi_major_axis_au': 30.110, 'eccentricity': 0.0113, 'inclination_deg': 1.770,
                'orbital_period_days': 60182.0,
                'longitude_of_ascending_node_deg': 131.783, 'argument_of_periapsis_deg': 276.336,
                'mean_anomaly_at_epoch_deg': 256.228, 'central_body': 'sun'
            },
            'sol-jump-point': {
                'name': 'Sol Jump Point', 'classification': 'jump-point',
                'mass_kg': 0.0, 'radius_km': 0.0,
                'semi_major_axis_au': 45.0, 'eccentricity': 0.0, 'inclination_deg': 0.0,
                'orbital_period_days': 110000.0,
                'central_body': 'sun'
            },
        }

    # --- View Modes ---
    class ViewModes:
        """Named bundles of non-physical scaling and camera constants.

        Each entry in `MODE_DATA` is turned into a `scaling_policy.ScalingPolicy`.
        Per-classification tables are keyed by the strings in `CLASSIFICATION_KEYS`
        and must cover all of them.

        Attributes:
            DEFAULT_MODE (str): Mode used when an unknown mode id is requested.
            MODE_DATA (Dict[str, Dict]): Mode id mapped to its constants:
                `sizing` ("scaled" multiplies the physical radius by `radius_scale`
                and the per-classification `size_multipliers`; "fixed" uses
                `fixed_sizes`), `size_clamps` ((min, max) per classification),
                `orbit_scaling` (scene units per AU), `min_distance` (gap between
                neighbouring siblings), `safety_multiplier` (first child keeps at
                least this many parent radii from the parent centre),
                `equidistant` (ignore astronomical distances), `enforce_size_hierarchy`
                and `camera` multipliers and absolute bounds.
        """
        DEFAULT_MODE = 'realistic'

        MODE_DATA = {
            'realistic': {
                'name': 'Realistic',
                'sizing': 'scaled',
                'radius_scale': 2e-6,
                'size_multipliers': {
                    'star': 1.0, 'planet': 8.0, 'moon': 8.0,
                    'belt': 1.0, 'station': 8.0, 'jump-point': 1.0,
                },
                'size_clamps': {
                    'star': (0.5, 5.0), 'planet': (0.03, 2.0), 'moon': (0.02, 0.8),
                    'belt': (0.05, 0.5), 'station': (0.01, 0.2), 'jump-point': (0.05, 0.5),
                },
                'orbit_scaling': 10.0,
                'min_distance': 0.05,
                'safety_multiplier': 1.5,
                'equidistant': False,
                'enforce_size_hierarchy': True,
                'camera': {
                    'radius_multiplier': 4.0, 'min_distance_multiplier': 2.5,
                    'max_distance_multiplier': 15.0, 'absolute_min_distance': 0.3,
                    'absolute_max_distance': 1000.0, 'span_distance_factor': 1.5,
                },
            },
            'navigational': {
                'name': 'Navigational',
                'sizing': 'fixed',
                'fixed_sizes': {
                    'star': 2.0, 'planet': 1.2, 'moon': 0.6,
                    'belt': 0.8, 'station': 0.3, 'jump-point': 0.4,
                },
                'size_clamps': {
                    'star': (1.0, 6.0), 'planet': (0.4, 3.0), 'moon': (0.2, 1.5),
                    'belt': (0.2, 2.0), 'station': (0.1, 1.0), 'jump-point': (0.2, 1.0),
                },
                'orbit_scaling': 40.0,
                'min_distance': 1.0,
                'safety_multiplier': 3.0,
                'equidistant': False,
                'enforce_size_hierarchy': False,
                'camera': {
                    'radius_multiplier': 3.0, 'min_distance_multiplier': 2.0,
                    'max_distance_multiplier': 10.0, 'absolute_min_distance': 0.5,
                    'absolute_max_distance': 5000.0, 'span_distance_factor': 1.2,
                },
            },
            'profile': {
                'name': 'Profile',
                'sizing': 'fixed',
                'fixed_sizes': {
                    'star': 1.5, 'planet': 0.8, 'moon': 0.4,
                    'belt': 0.6, 'station': 0.2, 'jump-point': 0.3,
                },
                'size_clamps': {
                    'star': (0.5, 3.0), 'planet': (0.2, 1.5), 'moon': (0.1, 1.0),
                    'belt': (0.1, 1.5), 'station': (0.05, 0.6), 'jump-point': (0.1, 0.8),
                },
                'orbit_scaling': 0.3,
                'min_distance': 0.3,
                'safety_multiplier': 3.5,
                'equidistant': True,
                'enforce_size_hierarchy': False,
                'camera': {
                    'radius_multiplier': 3.5, 'min_distance_multiplier': 2.0,
                    'max_distance_multiplier': 12.0, 'absolute_min_distance': 0.3,
                    'absolute_max_distance': 500.0, 'span_distance_factor': 1.2,
                },
            },
            'scientific': {
                'name': 'Scientific',
                'sizing': 'scaled',
                'radius_scale': 3.0 / EARTH_RADIUS_KM,
                'size_multipliers': {
                    'star': 0.05, 'planet': 1.0, 'moon': 1.0,
                    'belt': 1.0, 'station': 50.0, 'jump-point': 1.0,
                },
                'size_clamps': {
                    'star': (2.0, 40.0), 'planet': (0.1, 12.0), 'moon': (0.05, 3.0),
                    'belt': (0.1, 2.0), 'station': (0.05, 1.0), 'jump-point': (0.1, 1.0),
                },
                'orbit_scaling': 80.0,
                'min_distance': 0.1,
                'safety_multiplier': 1.1,
                'equidistant': False,
                'enforce_size_hierarchy': True,
                'camera': {
                    'radius_multiplier': 4.0, 'min_distance_multiplier': 2.5,
                    'max_distance_multiplier': 20.0, 'absolute_min_distance': 0.5,
                    'absolute_max_distance': 20000.0, 'span_distance_factor': 1.5,
                },
            },
        }

    def __init__(self):
        """Initializes the `EngineConfig` instance and validates it.

        Raises:
            ConfigurationError: If `self.validate()` detects any invalid or
                                inconsistent setting.
        """
        self.validate()

    def validate(self):
        """Performs comprehensive validation of all engine configuration settings.

        -   **Sizing**: thresholds positive and ordered, hierarchy ratio >= 1.
        -   **Kepler / Prediction / Focal / Cache / Layout**: tolerances, caps,
            confidences in [0, 1], limits positive.
        -   **SolarSystem**: radii and masses non-negative, eccentricity in [0, 1),
            belts ordered, `central_body` references valid and not self-referential.
        -   **ViewModes**: default mode present and every mode passes the same
            checks as `ScalingPolicy.validate()` (no negative or non-finite
            multipliers, clamps ordered, tables cover every classification).

        Raises:
            ConfigurationError: If any configuration setting is found to be invalid.
        """
        # Sizing
        if not (0 < self.Sizing.PLANET_RADIUS_THRESHOLD_KM < self.Sizing.STAR_RADIUS_THRESHOLD_KM):
            raise ConfigurationError(
                f"Sizing thresholds must satisfy 0 < PLANET_RADIUS_THRESHOLD_KM "
                f"({self.Sizing.PLANET_RADIUS_THRESHOLD_KM}) < STAR_RADIUS_THRESHOLD_KM "
                f"({self.Sizing.STAR_RADIUS_THRESHOLD_KM})."
            )
        if self.Sizing.HIERARCHY_RATIO < 1.0:
            raise ConfigurationError("Sizing.HIERARCHY_RATIO must be at least 1.0.")

        # Layout
        if self.Layout.MIN_BELT_WIDTH_FRACTION <= 0:
            raise ConfigurationError("Layout.MIN_BELT_WIDTH_FRACTION must be positive.")
        if self.Layout.DEPTH_WARNING_THRESHOLD <= 0 or self.Layout.WIDENING_LOG_SAMPLE <= 0:
            raise ConfigurationError("Layout.DEPTH_WARNING_THRESHOLD and Layout.WIDENING_LOG_SAMPLE must be positive.")

        # Kepler
        if not (0 < self.Kepler.TOLERANCE < 1e-3):
            raise ConfigurationError(f"Kepler.TOLERANCE ({self.Kepler.TOLERANCE}) must be in (0, 1e-3).")
        if self.Kepler.MAX_ITERATIONS <= 0:
            raise ConfigurationError("Kepler.MAX_ITERATIONS must be positive.")
        if not (0.0 <= self.Kepler.HIGH_ECCENTRICITY_THRESHOLD < 1.0):
            raise ConfigurationError("Kepler.HIGH_ECCENTRICITY_THRESHOLD must be in [0, 1).")

        # Prediction
        if self.Prediction.FRAME_SECONDS <= 0 or self.Prediction.CACHE_CLEANUP_MULTIPLIER < 1.0:
            raise ConfigurationError(
                "Prediction.FRAME_SECONDS must be positive and CACHE_CLEANUP_MULTIPLIER at least 1."
            )
        for name in ("CONVERGED_CONFIDENCE", "UNCONVERGED_CONFIDENCE", "DEFAULT_PERIOD_CONFIDENCE"):
            value = getattr(self.Prediction, name)
            if not (0.0 <= value <= 1.0):
                raise ConfigurationError(f"Prediction.{name} ({value}) must be between 0.0 and 1.0.")
        if self.Prediction.UNCONVERGED_CONFIDENCE > self.Prediction.CONVERGED_CONFIDENCE:
            raise ConfigurationError("Prediction.UNCONVERGED_CONFIDENCE cannot exceed CONVERGED_CONFIDENCE.")
        if self.Prediction.DEFAULT_PERIOD_DAYS <= 0 or self.Prediction.MAX_WORKERS <= 0:
            raise ConfigurationError("Prediction.DEFAULT_PERIOD_DAYS and Prediction.MAX_WORKERS must be positive.")

        # Focal
        if self.Focal.FALLBACK_FRACTION <= 0 or self.Focal.FALLBACK_RADIUS_MULTIPLIER <= 0 \
                or self.Focal.MIN_FALLBACK_OFFSET <= 0:
            raise ConfigurationError("Focal fallback settings must be positive.")
        if self.Focal.DEGENERATE_SPAN < 0:
            raise ConfigurationError("Focal.DEGENERATE_SPAN cannot be negative.")

        # Cache
        if self.Cache.MAX_ENTRIES <= 0 or self.Cache.MAX_MEMORY_MB <= 0:
            raise ConfigurationError("Cache.MAX_ENTRIES and Cache.MAX_MEMORY_MB must be positive.")
        if self.Cache.KEY_ID_SAMPLE_SIZE <= 0:
            raise ConfigurationError("Cache.KEY_ID_SAMPLE_SIZE must be positive.")
        if min(self.Cache.BASE_ENTRY_BYTES, self.Cache.BYTES_PER_OBJECT, self.Cache.KEY_OVERHEAD_BYTES) < 0:
            raise ConfigurationError("Cache size-estimate constants cannot be negative.")

        # Monitoring
        if self.Monitoring.MEMORY_USAGE_WARN_MB <= 0:
            raise ConfigurationError("Monitoring.MEMORY_USAGE_WARN_MB must be positive.")

        # Built-in system data
        for object_id, data in self.SolarSystem.PLANET_DATA.items():
            if data.get('classification') not in CLASSIFICATION_KEYS:
                raise ConfigurationError(
                    f"Object '{object_id}' has unknown classification {data.get('classification')!r}."
                )
            if data.get('mass_kg', -1.0) < 0:
                raise ConfigurationError(f"Mass of object '{object_id}' cannot be negative.")
            if data.get('radius_km', -1.0) < 0:
                raise ConfigurationError(f"Radius of object '{object_id}' cannot be negative.")
            if data.get('semi_major_axis_au', 0.0) < 0:
                raise ConfigurationError(f"Semi-major axis of object '{object_id}' cannot be negative.")
            if not (0.0 <= data.get('eccentricity', 0.0) < 1.0):
                raise ConfigurationError(
                    f"Eccentricity of object '{object_id}' ({data.get('eccentricity')}) must be >= 0 and < 1."
                )
            if 'inner_radius_au' in data and not (0.0 <= data['inner_radius_au'] < data.get('outer_radius_au', -1.0)):
                raise ConfigurationError(f"Belt '{object_id}' must have 0 <= inner_radius_au < outer_radius_au.")

            central_body = data.get('central_body')
            if central_body is not None:
                if central_body not in self.SolarSystem.PLANET_DATA:
                    raise ConfigurationError(f"Central body '{central_body}' for '{object_id}' not found in PLANET_DATA.")
                if central_body == object_id:
                    raise ConfigurationError(f"Object '{object_id}' cannot orbit itself.")

        # View modes
        if self.ViewModes.DEFAULT_MODE not in self.ViewModes.MODE_DATA:
            raise ConfigurationError(
                f"ViewModes.DEFAULT_MODE '{self.ViewModes.DEFAULT_MODE}' is not defined in MODE_DATA."
            )
        for mode_id, data in self.ViewModes.MODE_DATA.items():
            validate_mode_data(mode_id, data)
            if self.Debug.CONFIG_VALIDATION:
                logging.info(f"View mode '{mode_id}' validated.")

        logging.info("Configuration validated successfully.")


def _require_finite_positive(mode_id: str, label: str, value, allow_zero: bool = False):
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise ConfigurationError(f"View mode '{mode_id}': {label} must be a finite number, got {value!r}.")
    if value < 0 or (value == 0 and not allow_zero):
        raise ConfigurationError(f"View mode '{mode_id}': {label} must be positive, got {value}.")


def _require_complete_table(mode_id: str, label: str, table):
    if not isinstance(table, dict):
        raise ConfigurationError(f"View mode '{mode_id}': {label} must be a mapping.")
    missing = [key for key in CLASSIFICATION_KEYS if key not in table]
    if missing:
        raise ConfigurationError(f"View mode '{mode_id}': {label} is missing classifications {missing}.")
    unknown = [key for key in table if key not in CLASSIFICATION_KEYS]
    if unknown:
        raise ConfigurationError(f"View mode '{mode_id}': {label} has unknown classifications {unknown}.")


def validate_mode_data(mode_id: str, data: dict):
    """Validates one raw `ViewModes.MODE_DATA` entry.

    Shared by `EngineConfig.validate()` and `ScalingPolicy.from_mode_data()` so
    that custom modes registered at runtime are held to the same rules as the
    built-in ones.

    Raises:
        ConfigurationError: On a missing table entry, a negative, zero or
                            non-finite multiplier, or an inverted bound.
    """
    sizing = data.get('sizing')
    if sizing not in ('scaled', 'fixed'):
        raise ConfigurationError(f"View mode '{mode_id}': sizing must be 'scaled' or 'fixed', got {sizing!r}.")

    if sizing == 'scaled':
        _require_finite_positive(mode_id, "radius_scale", data.get('radius_scale'))
        _require_complete_table(mode_id, "size_multipliers", data.get('size_multipliers'))
        for key, value in data['size_multipliers'].items():
            _require_finite_positive(mode_id, f"size_multipliers[{key}]", value)
    else:
        _require_complete_table(mode_id, "fixed_sizes", data.get('fixed_sizes'))
        for key, value in data['fixed_sizes'].items():
            _require_finite_positive(mode_id, f"fixed_sizes[{key}]", value)

    _require_complete_table(mode_id, "size_clamps", data.get('size_clamps'))
    for key, bounds in data['size_clamps'].items():
        if not isinstance(bounds, (tuple, list)) or len(bounds) != 2:
            raise ConfigurationError(f"View mode '{mode_id}': size_clamps[{key}] must be a (min, max) pair.")
        low, high = bounds
        _require_finite_positive(mode_id, f"size_clamps[{key}] min", low)
        _require_finite_positive(mode_id, f"size_clamps[{key}] max", high)
        if low > high:
            raise ConfigurationError(f"View mode '{mode_id}': size_clamps[{key}] min ({low}) exceeds max ({high}).")

    _require_finite_positive(mode_id, "orbit_scaling", data.get('orbit_scaling'))
    _require_finite_positive(mode_id, "min_distance", data.get('min_distance'), allow_zero=True)
    _require_finite_positive(mode_id, "safety_multiplier", data.get('safety_multiplier'))
    if data['safety_multiplier'] < 1.0:
        raise ConfigurationError(
            f"View mode '{mode_id}': safety_multiplier ({data['safety_multiplier']}) must be at least 1.0."
        )

    camera = data.get('camera')
    if not isinstance(camera, dict):
        raise ConfigurationError(f"View mode '{mode_id}': camera settings are missing.")
    for key in ('radius_multiplier', 'min_distance_multiplier', 'max_distance_multiplier',
                'absolute_min_distance', 'absolute_max_distance', 'span_distance_factor'):
        _require_finite_positive(mode_id, f"camera.{key}", camera.get(key))
    if camera['min_distance_multiplier'] > camera['max_distance_multiplier']:
        raise ConfigurationError(f"View mode '{mode_id}': camera min_distance_multiplier exceeds max_distance_multiplier.")
    if camera['absolute_min_distance'] > camera['absolute_max_distance']:
        raise ConfigurationError(f"View mode '{mode_id}': camera absolute_min_distance exceeds absolute_max_distance.")


# --- Instantiate the configuration ---
# This makes the config object available for import and runs validation.
# e.g., from config import config
try:
    config = EngineConfig()
except ConfigurationError as e:
    logging.error(f"FATAL CONFIGURATION ERROR: {e}", exc_info=True)
    raise
