# visual_size.py
import logging
import math
from typing import Dict, Optional

from config import config
from physics_utils import is_finite_positive
from scaling_policy import ScalingPolicy, SizingStrategy
from solarsystem import CelestialObject, Classification, SystemSnapshot


class VisualSizeCalculator:
    """Maps physical radius and classification to a clamped visual size.

    The result is always finite and inside the mode's clamp for the object's
    classification. Invalid radii (zero, negative, NaN, infinite) fail closed
    to the clamp minimum.
    """

    def __init__(self, star_threshold_km: Optional[float] = None, planet_threshold_km: Optional[float] = None):
        self.star_threshold_km = config.Sizing.STAR_RADIUS_THRESHOLD_KM if star_threshold_km is None else star_threshold_km
        self.planet_threshold_km = config.Sizing.PLANET_RADIUS_THRESHOLD_KM if planet_threshold_km is None else planet_threshold_km

    def classify(self, radius_km: float) -> Classification:
        """Infers a classification from radius alone; invalid radii count as planet-like."""
        if not is_finite_positive(radius_km):
            return Classification.PLANET
        if radius_km >= self.star_threshold_km:
            return Classification.STAR
        if radius_km >= self.planet_threshold_km:
            return Classification.PLANET
        return Classification.MOON

    def calculate(self, radius_km: float, classification: Optional[Classification], policy: ScalingPolicy) -> float:
        if classification is None:
            classification = self.classify(radius_km)

        clamp = policy.clamp_for(classification)
        if not is_finite_positive(radius_km):
            if config.Debug.LAYOUT:
                logging.debug(f"Invalid radius {radius_km!r} for {classification.value}; using minimum {clamp.minimum}.")
            return clamp.minimum

        if policy.sizing is SizingStrategy.FIXED:
            size = policy.fixed_sizes[classification]
        else:
            size = float(radius_km) * policy.radius_scale * policy.size_multipliers[classification]

        # Extreme inputs can still overflow the multiplication.
        if not math.isfinite(size):
            return clamp.maximum if size > 0 else clamp.minimum
        return clamp.apply(size)

    def calculate_for(self, obj: CelestialObject, policy: ScalingPolicy) -> float:
        return self.calculate(obj.radius_km, self.effective_classification(obj), policy)

    def effective_classification(self, obj: CelestialObject) -> Classification:
        if obj.classification is not None:
            return obj.classification
        if obj.is_belt:
            return Classification.BELT
        return self.classify(obj.radius_km)

    def calculate_all(self, snapshot: SystemSnapshot, policy: ScalingPolicy) -> Dict[str, float]:
        return {obj.id: self.calculate_for(obj, policy) for obj in snapshot}
