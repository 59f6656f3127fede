# layout_engine.py
import logging
from typing import Dict, Iterable, Optional, Tuple

from calculation_cache import CacheStatistics, CalculationCache
from focal_point import FocalFrame, FocalPointResolver
from orbital_layout import LayoutResult, OrbitalLayoutCalculator
from orbital_mechanics import OrbitalPositionPredictor, PredictedPosition
from scaling_policy import ScalingPolicy, ViewModeRegistry
from solarsystem import CelestialObject, SystemSnapshot
from visual_size import VisualSizeCalculator


class LayoutEngine:
    """Owns every stateful part of the engine for one caller.

    Each instance has its own view-mode registry, layout cache and prediction
    cache; nothing is shared through module-level state. Callers run one
    instance per displayed system (or share one between systems) and call it
    from their frame loop.

    Sequencing: framing always reads a completed `LayoutResult`. Use
    `frame_focus()` to compute (or fetch) the layout and frame in one call, or
    pass the result of `get_layout()` to `resolve_focal_frame()`.

    Attributes:
        registry (ViewModeRegistry): Named view modes.
        cache (CalculationCache): Memoized layouts.
        size_calculator (VisualSizeCalculator): Visual size rules.
        layout_calculator (OrbitalLayoutCalculator): Collision-free placement.
        predictor (OrbitalPositionPredictor): Per-frame Keplerian positions.
        focal_resolver (FocalPointResolver): Camera framing.
    """

    def __init__(self, registry: Optional[ViewModeRegistry] = None, cache: Optional[CalculationCache] = None,
                 size_calculator: Optional[VisualSizeCalculator] = None,
                 layout_calculator: Optional[OrbitalLayoutCalculator] = None,
                 predictor: Optional[OrbitalPositionPredictor] = None,
                 focal_resolver: Optional[FocalPointResolver] = None):
        self.registry = registry if registry is not None else ViewModeRegistry()
        self.cache = cache if cache is not None else CalculationCache()
        self.size_calculator = size_calculator or VisualSizeCalculator()
        self.layout_calculator = layout_calculator or OrbitalLayoutCalculator(self.size_calculator)
        self.predictor = predictor or OrbitalPositionPredictor()
        self.focal_resolver = focal_resolver or FocalPointResolver()

    def policy(self, view_mode: str) -> ScalingPolicy:
        return self.registry.get(view_mode)

    # --- Layout ---
    def get_layout(self, system: SystemSnapshot, view_mode: str) -> LayoutResult:
        """Cached layout of `system` under `view_mode`.

        Repeated calls with an unchanged snapshot and mode return the same
        object. A changed snapshot or mode constants produce a different key.
        """
        policy = self.registry.get(view_mode)
        key = self.cache.generate_key(policy.mode_id, system, policy)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        sizes = self.size_calculator.calculate_all(system, policy)
        result = self.layout_calculator.calculate(system, policy, sizes)
        self.cache.set(key, result, policy.mode_id)
        logging.info(f"Computed layout for {len(system)} objects in view mode '{policy.mode_id}'.")
        return result

    # --- Framing ---
    def resolve_focal_frame(self, focus_id: str, system: SystemSnapshot, layout: LayoutResult) -> FocalFrame:
        return self.focal_resolver.resolve(focus_id, system, layout)

    def frame_focus(self, focus_id: str, system: SystemSnapshot, view_mode: str) -> Tuple[FocalFrame, LayoutResult]:
        """Resolves the layout first, then the frame, so framing never sees a partial layout."""
        layout = self.get_layout(system, view_mode)
        return self.focal_resolver.resolve(focus_id, system, layout), layout

    # --- Prediction ---
    def predict_position(self, obj: CelestialObject, parent: Optional[CelestialObject], time_seconds: float,
                         view_mode: str, layout: Optional[LayoutResult] = None) -> PredictedPosition:
        return self.predictor.predict(obj, parent, time_seconds, self.registry.get(view_mode), layout)

    def predict_positions(self, system: SystemSnapshot, time_seconds: float, view_mode: str,
                          object_ids: Optional[Iterable[str]] = None,
                          use_layout: bool = False) -> Dict[str, PredictedPosition]:
        """Predicts every (or every listed) object of a system in parallel."""
        ids = list(object_ids) if object_ids is not None else system.ids
        pairs = [(system.get(object_id), system.parent_of(object_id)) for object_id in ids if object_id in system]
        layout = self.get_layout(system, view_mode) if use_layout else None
        return self.predictor.predict_many(pairs, time_seconds, self.registry.get(view_mode), layout)

    # --- Cache introspection ---
    def stats(self) -> CacheStatistics:
        return self.cache.get_statistics()

    def clear(self):
        self.cache.clear()
        self.predictor.clear_cache()

    def clear_for_view_mode(self, view_mode: str) -> int:
        return self.cache.clear_for_view_mode(view_mode)
