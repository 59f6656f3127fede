# focal_point.py
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from config import config
from orbital_layout import LAYOUT_AXIS, LayoutResult
from physics_utils import normalize_vector
from scaling_policy import ScalingPolicy
from solarsystem import CelestialObject, SystemSnapshot


class FocusResolutionError(LookupError):
    """Raised when a focal frame is requested for an object the snapshot or layout does not contain."""
    pass


@dataclass(frozen=True)
class FocalFrame:
    """Camera framing pair for one focus event.

    Attributes:
        focal_id: The focused object; always the framing centre.
        outer_id: The object bounding the frame, or None for a synthesized point.
        focal_position: Resolved position of the focus.
        outer_position: Resolved position of the outer bound.
        span: Distance between the two positions (always > 0).
        midpoint: Camera target, halfway between the two positions.
        strategy: "children", "siblings" or "fallback".
    """
    focal_id: str
    outer_id: Optional[str]
    focal_position: np.ndarray
    outer_position: np.ndarray
    span: float
    midpoint: np.ndarray
    strategy: str

    def camera_distance(self, policy: ScalingPolicy) -> float:
        """Suggested viewing distance for the frame under a view mode's camera bounds."""
        camera = policy.camera
        distance = self.span * camera.span_distance_factor
        return min(max(distance, camera.absolute_min_distance), camera.absolute_max_distance)


class FocalPointResolver:
    """Finds the (focus, outer object) pair a camera should frame.

    Works only on the logical object tree and a completed `LayoutResult`, in
    this order: the farthest child of the focus; otherwise the farthest sibling
    (the focus stays the centre); otherwise a synthetic point offset outward
    from the focus.

    "Farthest" is the resolved distance from the focus itself, not from the
    parent, so the chosen sibling is not necessarily the outermost orbit.
    """

    def __init__(self, fallback_fraction: Optional[float] = None):
        self.fallback_fraction = config.Focal.FALLBACK_FRACTION if fallback_fraction is None else fallback_fraction

    def resolve(self, focus_id: str, snapshot: SystemSnapshot, layout: LayoutResult) -> FocalFrame:
        """
        Args:
            focus_id: Id of the focused object.
            snapshot: The logical object forest.
            layout: Layout computed for `snapshot`. It must be complete: framing
                    never reads positions that placement has not produced yet.

        Raises:
            FocusResolutionError: If the focus is unknown to the snapshot, or the
                                  layout lacks an object the resolver needs.
        """
        if focus_id not in snapshot:
            raise FocusResolutionError(f"Focus object '{focus_id}' is not part of the system.")
        focal_position = self._position(layout, focus_id)

        children = snapshot.children_of(focus_id)
        outer = self._farthest(children, focal_position, layout)
        if outer is not None:
            return self._frame(focus_id, outer[0], focal_position, outer[1], "children")

        siblings = snapshot.siblings_of(focus_id)
        outer = self._farthest(siblings, focal_position, layout)
        if outer is not None:
            return self._frame(focus_id, outer[0], focal_position, outer[1], "siblings")

        return self._frame(focus_id, None, focal_position,
                           self._fallback_point(focus_id, focal_position, layout), "fallback")

    @staticmethod
    def _position(layout: LayoutResult, object_id: str) -> np.ndarray:
        placed = layout.get(object_id)
        if placed is None:
            raise FocusResolutionError(
                f"Object '{object_id}' has no resolved position; compute the layout for this system before framing."
            )
        return placed.position

    def _farthest(self, candidates: List[CelestialObject], focal_position: np.ndarray,
                  layout: LayoutResult) -> Optional[Tuple[str, np.ndarray]]:
        best = None
        best_distance = config.Focal.DEGENERATE_SPAN
        # Sorted ids make ties deterministic.
        for candidate in sorted(candidates, key=lambda c: c.id):
            position = self._position(layout, candidate.id)
            distance = float(np.linalg.norm(position - focal_position))
            if config.Debug.FOCAL_POINT:
                logging.debug(f"Focal candidate '{candidate.id}' at distance {distance:.4f}.")
            if distance > best_distance:
                best, best_distance = (candidate.id, position), distance
        return best

    def _fallback_point(self, focus_id: str, focal_position: np.ndarray, layout: LayoutResult) -> np.ndarray:
        magnitude = float(np.linalg.norm(focal_position))
        direction = normalize_vector(focal_position)
        if not np.any(direction):
            direction = LAYOUT_AXIS
        offset = max(self.fallback_fraction * magnitude,
                     layout[focus_id].visual_radius * config.Focal.FALLBACK_RADIUS_MULTIPLIER,
                     config.Focal.MIN_FALLBACK_OFFSET)
        return focal_position + offset * direction

    @staticmethod
    def _frame(focal_id: str, outer_id: Optional[str], focal_position: np.ndarray,
               outer_position: np.ndarray, strategy: str) -> FocalFrame:
        return FocalFrame(
            focal_id=focal_id,
            outer_id=outer_id,
            focal_position=focal_position.copy(),
            outer_position=outer_position.copy(),
            span=float(np.linalg.norm(outer_position - focal_position)),
            midpoint=0.5 * (focal_position + outer_position),
            strategy=strategy,
        )
