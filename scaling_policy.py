# scaling_policy.py
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from config import config, ConfigurationError, validate_mode_data
from solarsystem import Classification


class SizingStrategy(Enum):
    SCALED = 'scaled'  # physical radius times a mode factor
    FIXED = 'fixed'    # one constant per classification


@dataclass(frozen=True)
class SizeClamp:
    minimum: float
    maximum: float

    def apply(self, value: float) -> float:
        return min(max(value, self.minimum), self.maximum)


@dataclass(frozen=True)
class CameraConfig:
    """Camera distance rules of a view mode.

    Per-object distances are multiples of the object's visual radius bounded by
    the absolute limits; focal frames use `span_distance_factor` times the span.
    """
    radius_multiplier: float
    min_distance_multiplier: float
    max_distance_multiplier: float
    absolute_min_distance: float
    absolute_max_distance: float
    span_distance_factor: float


@dataclass(frozen=True)
class ScalingPolicy:
    """Immutable bundle of every constant one view mode applies.

    Build instances with `from_mode_data()` (which validates) rather than
    directly, so that invalid constants are rejected before any layout pass.
    """
    mode_id: str
    name: str
    sizing: SizingStrategy
    radius_scale: float
    size_multipliers: Mapping[Classification, float]
    fixed_sizes: Mapping[Classification, float]
    size_clamps: Mapping[Classification, SizeClamp]
    orbit_scaling: float
    min_distance: float
    safety_multiplier: float
    equidistant: bool
    enforce_size_hierarchy: bool
    camera: CameraConfig

    @classmethod
    def from_mode_data(cls, mode_id: str, data: Mapping) -> 'ScalingPolicy':
        """Validates a raw mode record (see `config.EngineConfig.ViewModes`) and converts it.

        Raises:
            ConfigurationError: If the record is invalid.
        """
        validate_mode_data(mode_id, dict(data))
        sizing = SizingStrategy(data['sizing'])

        def table(raw: Optional[Mapping]) -> Dict[Classification, float]:
            if not raw:
                return {}
            return {Classification(key): float(value) for key, value in raw.items()}

        return cls(
            mode_id=mode_id,
            name=data.get('name', mode_id.title()),
            sizing=sizing,
            radius_scale=float(data.get('radius_scale', 0.0)),
            size_multipliers=table(data.get('size_multipliers')),
            fixed_sizes=table(data.get('fixed_sizes')),
            size_clamps={Classification(key): SizeClamp(float(low), float(high))
                         for key, (low, high) in data['size_clamps'].items()},
            orbit_scaling=float(data['orbit_scaling']),
            min_distance=float(data['min_distance']),
            safety_multiplier=float(data['safety_multiplier']),
            equidistant=bool(data.get('equidistant', False)),
            enforce_size_hierarchy=bool(data.get('enforce_size_hierarchy', False)),
            camera=CameraConfig(**{key: float(value) for key, value in data['camera'].items()}),
        )

    def clamp_for(self, classification: Classification) -> SizeClamp:
        return self.size_clamps[classification]

    def minimum_size(self, classification: Classification) -> float:
        return self.size_clamps[classification].minimum

    def fingerprint(self) -> Tuple:
        """Every numeric constant that affects layout output, in a stable order."""
        ordered = list(Classification)
        return (
            self.mode_id,
            self.sizing.value,
            self.radius_scale,
            tuple(self.size_multipliers.get(c, 0.0) for c in ordered),
            tuple(self.fixed_sizes.get(c, 0.0) for c in ordered),
            tuple((self.size_clamps[c].minimum, self.size_clamps[c].maximum) for c in ordered),
            self.orbit_scaling,
            self.min_distance,
            self.safety_multiplier,
            self.equidistant,
            self.enforce_size_hierarchy,
            (self.camera.radius_multiplier, self.camera.min_distance_multiplier,
             self.camera.max_distance_multiplier, self.camera.absolute_min_distance,
             self.camera.absolute_max_distance, self.camera.span_distance_factor),
        )


class ViewModeRegistry:
    """Named view modes available to one engine instance.

    Args:
        mode_data: Raw mode records keyed by mode id. Defaults to
                   `config.ViewModes.MODE_DATA`.
        default_mode: Mode returned for unknown ids. Defaults to
                      `config.ViewModes.DEFAULT_MODE`.

    Raises:
        ConfigurationError: If any mode is invalid or the default is missing.
    """

    def __init__(self, mode_data: Optional[Mapping[str, Mapping]] = None, default_mode: Optional[str] = None):
        mode_data = config.ViewModes.MODE_DATA if mode_data is None else mode_data
        self.default_mode = config.ViewModes.DEFAULT_MODE if default_mode is None else default_mode
        self._policies: Dict[str, ScalingPolicy] = {}
        for mode_id, data in mode_data.items():
            self._policies[mode_id] = ScalingPolicy.from_mode_data(mode_id, data)
        if self.default_mode not in self._policies:
            raise ConfigurationError(f"Default view mode '{self.default_mode}' is not registered.")

    def register(self, policy: ScalingPolicy):
        """Adds or replaces a mode. The policy must be built through `from_mode_data()`."""
        if not isinstance(policy, ScalingPolicy):
            raise ConfigurationError(f"Expected a ScalingPolicy, got {type(policy).__name__}.")
        self._policies[policy.mode_id] = policy
        logging.info(f"Registered view mode '{policy.mode_id}'.")

    def get(self, mode_id: str) -> ScalingPolicy:
        policy = self._policies.get(mode_id)
        if policy is None:
            logging.warning(f"Unknown view mode '{mode_id}'; falling back to '{self.default_mode}'.")
            policy = self._policies[self.default_mode]
        return policy

    def __contains__(self, mode_id) -> bool:
        return mode_id in self._policies

    def __iter__(self) -> Iterable[ScalingPolicy]:
        return iter(self._policies.values())

    @property
    def mode_ids(self) -> List[str]:
        return list(self._policies)
