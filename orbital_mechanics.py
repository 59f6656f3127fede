# orbital_mechanics.py
import logging
import math
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Tuple

import numpy as np

from config import config, SECONDS_PER_DAY
from orbital_layout import LayoutResult
from physics_utils import (PhysicsError, is_finite_positive, orbital_rotation_matrix,
                           safe_divide, wrap_angle)
from scaling_policy import ScalingPolicy
from solarsystem import BeltOrbit, CelestialObject, PointOrbit


@dataclass(frozen=True)
class KeplerSolution:
    eccentric_anomaly: float
    converged: bool
    iterations: int
    residual: float


def solve_kepler_equation(mean_anomaly_rad: float, e: float, tolerance: Optional[float] = None,
                          max_iterations: Optional[int] = None) -> KeplerSolution:
    """
    Solves Kepler's Equation M = E - e * sin(E) for the eccentric anomaly E using Newton-Raphson.

    The loop is bounded by `max_iterations`; when the cap is reached the last
    iterate is returned with `converged=False` so callers can lower their
    confidence instead of failing.

    Args:
        mean_anomaly_rad: Mean anomaly in radians (any value; it is wrapped to [0, 2*pi)).
        e: Eccentricity (0 <= e < 1).
        tolerance: Convergence tolerance on |f(E)|. Defaults to `config.Kepler.TOLERANCE`.
        max_iterations: Iteration cap. Defaults to `config.Kepler.MAX_ITERATIONS`.

    Returns:
        KeplerSolution with E in radians, the convergence flag, the number of
        Newton steps taken and the final residual |E - e sin E - M|.

    Raises:
        PhysicsError: If the eccentricity is not a finite value in [0, 1).
    """
    tolerance = config.Kepler.TOLERANCE if tolerance is None else tolerance
    max_iterations = config.Kepler.MAX_ITERATIONS if max_iterations is None else max_iterations

    if not (math.isfinite(e) and 0.0 <= e < 1.0):
        raise PhysicsError(f"Eccentricity e={e} is out of bounds [0, 1) for Kepler's equation solver.")
    if not math.isfinite(mean_anomaly_rad):
        raise PhysicsError(f"Mean anomaly {mean_anomaly_rad} is not finite.")

    M_rad = wrap_angle(mean_anomaly_rad)
    if e == 0.0:
        return KeplerSolution(M_rad, True, 0, 0.0)

    # Starting at pi keeps Newton monotone for very eccentric orbits.
    E_rad = M_rad + e * math.sin(M_rad)
    if e > config.Kepler.HIGH_ECCENTRICITY_THRESHOLD:
        E_rad = math.pi

    f_E = E_rad - e * math.sin(E_rad) - M_rad
    for iteration in range(1, max_iterations + 1):
        f_prime_E = 1.0 - e * math.cos(E_rad)
        # f'(E) >= 1 - e > 0 for e < 1, so the step is always defined.
        E_rad = E_rad - safe_divide(f_E, f_prime_E, epsilon=1e-15)
        f_E = E_rad - e * math.sin(E_rad) - M_rad
        if abs(f_E) < tolerance:
            return KeplerSolution(E_rad, True, iteration, abs(f_E))

    if config.Debug.KEPLER_SOLVER:
        logging.debug(f"Kepler solver did not converge after {max_iterations} iterations for "
                      f"M={M_rad}, e={e}. Last E={E_rad}, f(E)={f_E}")
    return KeplerSolution(E_rad, False, max_iterations, abs(f_E))


@dataclass(frozen=True)
class PredictedPosition:
    """Parent-relative state of an object at one simulation time.

    `position` is in scene units and `velocity` in scene units per simulated
    second. `confidence` is 1.0 for exact answers (static objects, converged
    solves), lower when the solver hit its cap or a default period was used, and
    0.0 for placeholders returned on malformed elements.
    """
    object_id: str
    position: np.ndarray
    velocity: np.ndarray
    time: float
    confidence: float
    converged: bool = True
    iterations: int = 0
    true_anomaly: float = 0.0

    @property
    def distance(self) -> float:
        return float(np.linalg.norm(self.position))


@dataclass
class _CachedPrediction:
    prediction: PredictedPosition
    created_at: float = field(default_factory=time.monotonic)


class OrbitalPositionPredictor:
    """Deterministic Keplerian position/velocity for objects around their parent.

    Predictions are cached per (object id, time, view mode) for one frame of
    wall-clock time (`config.Prediction.FRAME_SECONDS`), since callers ask for
    the same answer many times per frame. The cache is guarded by a lock so
    `predict_many` can run predictions on a thread pool.
    """

    def __init__(self, frame_seconds: Optional[float] = None, clock=time.monotonic):
        self.frame_seconds = config.Prediction.FRAME_SECONDS if frame_seconds is None else frame_seconds
        self._clock = clock
        self._cache: Dict[Tuple[str, float, str, Optional[float]], _CachedPrediction] = {}
        self._lock = threading.Lock()
        self._last_cleanup = clock()

    # --- Public API ---
    def predict(self, obj: CelestialObject, parent: Optional[CelestialObject], time_seconds: float,
                policy: ScalingPolicy, layout: Optional[LayoutResult] = None) -> PredictedPosition:
        """
        Predicts the parent-relative position and velocity of `obj` at `time_seconds`.

        Args:
            obj: The orbiting object.
            parent: Its parent, or None for a root.
            time_seconds: Simulation time since epoch, in seconds.
            policy: View mode whose `orbit_scaling` converts AU to scene units.
            layout: Optional resolved layout of the same snapshot and mode. When it
                    contains `obj`, its (collision-free) orbit distance replaces the
                    scaled semi-major axis so predicted orbits match the layout.

        Returns:
            PredictedPosition. Never raises for bad orbital elements.
        """
        layout_distance = self._layout_distance(obj, layout)
        key = (obj.id, float(time_seconds), policy.mode_id, layout_distance)
        now = self._clock()
        with self._lock:
            cached = self._cache.get(key)
            if cached is not None and now - cached.created_at <= self.frame_seconds:
                return cached.prediction

        prediction = self._compute(obj, parent, time_seconds, policy, layout_distance)

        with self._lock:
            self._cache[key] = _CachedPrediction(prediction, now)
            if now - self._last_cleanup > self.frame_seconds * config.Prediction.CACHE_CLEANUP_MULTIPLIER:
                self._prune(now)
        return prediction

    def predict_many(self, pairs: Iterable[Tuple[CelestialObject, Optional[CelestialObject]]], time_seconds: float,
                     policy: ScalingPolicy, layout: Optional[LayoutResult] = None,
                     max_workers: Optional[int] = None) -> Dict[str, PredictedPosition]:
        """Predicts a batch of (object, parent) pairs in parallel and merges them into a dict by object id."""
        pairs = list(pairs)
        if not pairs:
            return {}
        max_workers = config.Prediction.MAX_WORKERS if max_workers is None else max_workers
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = [executor.submit(self.predict, obj, parent, time_seconds, policy, layout)
                       for obj, parent in pairs]
            return {pair[0].id: future.result() for pair, future in zip(pairs, futures)}

    def clear_cache(self):
        with self._lock:
            self._cache.clear()

    @property
    def cache_size(self) -> int:
        with self._lock:
            return len(self._cache)

    def _prune(self, now: float):
        max_age = self.frame_seconds * config.Prediction.CACHE_CLEANUP_MULTIPLIER
        stale = [key for key, entry in self._cache.items() if now - entry.created_at > max_age]
        for key in stale:
            del self._cache[key]
        self._last_cleanup = now

    # --- Computation ---
    @staticmethod
    def _layout_distance(obj: CelestialObject, layout: Optional[LayoutResult]) -> Optional[float]:
        if layout is None or obj.id not in layout:
            return None
        return float(layout[obj.id].orbit_distance)

    @staticmethod
    def _static(obj: CelestialObject, time_seconds: float, confidence: float) -> PredictedPosition:
        return PredictedPosition(obj.id, np.zeros(3, dtype=np.float64), np.zeros(3, dtype=np.float64),
                                 time_seconds, confidence)

    def _compute(self, obj: CelestialObject, parent: Optional[CelestialObject], time_seconds: float,
                 policy: ScalingPolicy, layout_distance: Optional[float]) -> PredictedPosition:
        orbit = obj.orbit
        if orbit is None or parent is None or isinstance(orbit, BeltOrbit):
            return self._static(obj, time_seconds, 1.0)
        if not isinstance(orbit, PointOrbit) or not math.isfinite(time_seconds):
            return self._static(obj, time_seconds, 0.0)

        angles = (orbit.inclination, orbit.longitude_of_ascending_node,
                  orbit.argument_of_periapsis, orbit.mean_anomaly_at_epoch)
        # A layout distance never stands in for a missing semi-major axis.
        if not is_finite_positive(orbit.semi_major_axis) or not all(math.isfinite(a) for a in angles):
            logging.debug(f"Object '{obj.id}' has incomplete orbital elements; returning a placeholder.")
            return self._static(obj, time_seconds, 0.0)

        e = orbit.eccentricity
        semi_major_axis = orbit.semi_major_axis * policy.orbit_scaling
        if layout_distance is not None:
            semi_major_axis = layout_distance
        if not is_finite_positive(semi_major_axis):
            logging.debug(f"Object '{obj.id}' has incomplete orbital elements; returning a placeholder.")
            return self._static(obj, time_seconds, 0.0)

        confidence_scale = 1.0
        period_days = orbit.orbital_period
        if not is_finite_positive(period_days):
            period_days = config.Prediction.DEFAULT_PERIOD_DAYS
            confidence_scale = config.Prediction.DEFAULT_PERIOD_CONFIDENCE

        period_seconds = period_days * SECONDS_PER_DAY
        n_rad_s = 2.0 * math.pi / period_seconds  # mean motion
        M_rad = math.radians(orbit.mean_anomaly_at_epoch) + n_rad_s * time_seconds

        try:
            solution = solve_kepler_equation(M_rad, e)
        except PhysicsError as err:
            logging.warning(f"Cannot predict '{obj.id}': {err}")
            return self._static(obj, time_seconds, 0.0)

        E_rad = solution.eccentric_anomaly
        cos_E, sin_E = math.cos(E_rad), math.sin(E_rad)
        sqrt_1_minus_e_sq = math.sqrt(max(0.0, 1.0 - e * e))

        r = semi_major_axis * (1.0 - e * cos_E)
        nu_rad = math.atan2(sqrt_1_minus_e_sq * sin_E, cos_E - e)

        # Perifocal frame: x toward periapsis, y along the direction of motion at periapsis.
        position_pf = np.array([semi_major_axis * (cos_E - e),
                                semi_major_axis * sqrt_1_minus_e_sq * sin_E,
                                0.0], dtype=np.float64)
        # dE/dt = n / (1 - e cos E) = n a / r
        speed_term = safe_divide(n_rad_s * semi_major_axis * semi_major_axis, r)
        velocity_pf = np.array([-speed_term * sin_E,
                                speed_term * sqrt_1_minus_e_sq * cos_E,
                                0.0], dtype=np.float64)

        rotation = orbital_rotation_matrix(math.radians(orbit.longitude_of_ascending_node),
                                           math.radians(orbit.argument_of_periapsis),
                                           math.radians(orbit.inclination))
        if solution.converged:
            confidence = config.Prediction.CONVERGED_CONFIDENCE
        else:
            confidence = config.Prediction.UNCONVERGED_CONFIDENCE

        return PredictedPosition(
            object_id=obj.id,
            position=rotation @ position_pf,
            velocity=rotation @ velocity_pf,
            time=time_seconds,
            confidence=confidence * confidence_scale,
            converged=solution.converged,
            iterations=solution.iterations,
            true_anomaly=nu_rad,
        )
