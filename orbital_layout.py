# orbital_layout.py
import logging
import math
import time
from dataclasses import dataclass
from typing import Dict, Iterator, List, Mapping, Optional, Tuple

import numpy as np

from config import config, DAYS_PER_YEAR
from physics_utils import is_finite_positive
from scaling_policy import ScalingPolicy
from solarsystem import (BeltOrbit, CelestialObject, Classification, PointOrbit, SystemSnapshot,
                         orbital_period_is_valid)
from visual_size import VisualSizeCalculator

# Slack for floating point comparisons when checking placement invariants.
LAYOUT_EPSILON = 1e-9

# Unit vector of the axis along which orbit distances are laid out.
LAYOUT_AXIS = np.array([1.0, 0.0, 0.0], dtype=np.float64)


@dataclass(frozen=True)
class CameraDistances:
    optimal: float
    minimum: float
    maximum: float


@dataclass(frozen=True)
class BeltLayout:
    """Scaled belt span, measured from the parent's centre."""
    inner_radius: float
    outer_radius: float

    @property
    def center(self) -> float:
        return 0.5 * (self.inner_radius + self.outer_radius)

    @property
    def width(self) -> float:
        return self.outer_radius - self.inner_radius


@dataclass(frozen=True)
class ObjectLayout:
    """Resolved placement of one object.

    Attributes:
        object_id: Id of the placed object.
        parent_id: Id of the parent it was placed under, None for roots.
        classification: Classification used for sizing.
        visual_radius: Final visual radius.
        orbit_distance: Distance from the parent's centre (0 for roots). For belts
                        this is the centre of the span.
        extent: Half-width of the interval the object and its whole sub-tree occupy
                around `orbit_distance`.
        position: Absolute position (3-vector) along the layout axis.
        camera: Suggested camera distances for focusing on this object.
        belt: Scaled span for belts, None otherwise.
        animation_speed: Orbits per year, 0 for static objects.
        widened: True if the orbit was pushed past its scaled distance.
    """
    object_id: str
    parent_id: Optional[str]
    classification: Classification
    visual_radius: float
    orbit_distance: float
    extent: float
    position: np.ndarray
    camera: CameraDistances
    belt: Optional[BeltLayout] = None
    animation_speed: float = 0.0
    widened: bool = False

    @property
    def inner_edge(self) -> float:
        return self.orbit_distance - self.extent

    @property
    def outer_edge(self) -> float:
        return self.orbit_distance + self.extent


class LayoutResult:
    """Read-only layout of a whole snapshot under one view mode."""

    def __init__(self, view_mode: str, objects: Dict[str, ObjectLayout], widened: List[str],
                 computed_at: Optional[float] = None):
        self.view_mode = view_mode
        self._objects = objects
        self.widened = tuple(widened)
        self.computed_at = time.time() if computed_at is None else computed_at

    def __getitem__(self, object_id: str) -> ObjectLayout:
        return self._objects[object_id]

    def __contains__(self, object_id) -> bool:
        return object_id in self._objects

    def __len__(self) -> int:
        return len(self._objects)

    def __iter__(self) -> Iterator[str]:
        return iter(self._objects)

    def get(self, object_id: str) -> Optional[ObjectLayout]:
        return self._objects.get(object_id)

    def items(self):
        return self._objects.items()

    def values(self):
        return self._objects.values()

    def position_of(self, object_id: str) -> np.ndarray:
        return self._objects[object_id].position

    def visual_radius_of(self, object_id: str) -> float:
        return self._objects[object_id].visual_radius

    def __repr__(self):
        return f"LayoutResult(view_mode={self.view_mode!r}, objects={len(self._objects)}, widened={len(self.widened)})"


class OrbitalLayoutCalculator:
    """Places every object of a snapshot so that no two bodies overlap.

    Guarantees, for every object O with parent P:

    - O's inner edge (orbit distance minus its sub-tree extent, which is at
      least its visual radius) stays outside P's visual radius.
    - The occupied intervals of siblings never overlap and keep at least the
      mode's `min_distance` between them.

    Scaled astronomical distances are used where they already satisfy both;
    otherwise the orbit is widened and the pass logs a warning. Later siblings
    are only ever pushed outward, never the ones already placed.
    """

    def __init__(self, size_calculator: Optional[VisualSizeCalculator] = None,
                 hierarchy_ratio: Optional[float] = None):
        self.size_calculator = size_calculator or VisualSizeCalculator()
        self.hierarchy_ratio = config.Sizing.HIERARCHY_RATIO if hierarchy_ratio is None else hierarchy_ratio

    def calculate(self, snapshot: SystemSnapshot, policy: ScalingPolicy,
                  visual_sizes: Optional[Mapping[str, float]] = None) -> LayoutResult:
        classifications = {obj.id: self.size_calculator.effective_classification(obj) for obj in snapshot}

        sizes: Dict[str, float] = {}
        for obj in snapshot:
            size = visual_sizes.get(obj.id) if visual_sizes is not None else None
            if not is_finite_positive(size):
                size = self.size_calculator.calculate(obj.radius_km, classifications[obj.id], policy)
            sizes[obj.id] = float(size)

        if policy.enforce_size_hierarchy:
            self._enforce_size_hierarchy(snapshot, policy, sizes, classifications)

        distances, extents, belts, widened = self._place(snapshot, policy, sizes)
        positions = self._absolute_positions(snapshot, distances)

        widened_set = set(widened)
        objects = {}
        for obj in snapshot.pre_order():
            radius = sizes[obj.id]
            objects[obj.id] = ObjectLayout(
                object_id=obj.id,
                parent_id=snapshot.parent_id_of(obj.id),
                classification=classifications[obj.id],
                visual_radius=radius,
                orbit_distance=distances[obj.id],
                extent=extents[obj.id],
                position=positions[obj.id],
                camera=self._camera_distances(radius if obj.id not in belts else extents[obj.id], policy),
                belt=belts.get(obj.id),
                animation_speed=self._animation_speed(obj),
                widened=obj.id in widened_set,
            )

        if widened:
            sample = ', '.join(widened[:config.Layout.WIDENING_LOG_SAMPLE])
            logging.warning(
                f"Layout '{policy.mode_id}': widened {len(widened)} orbit(s) past their scaled distance "
                f"to keep bodies apart (e.g. {sample})."
            )

        return LayoutResult(policy.mode_id, objects, widened)

    # --- Sizes ---
    def _enforce_size_hierarchy(self, snapshot: SystemSnapshot, policy: ScalingPolicy,
                                sizes: Dict[str, float], classifications: Dict[str, Classification]):
        """Makes every point parent at least `hierarchy_ratio` times its largest point child."""
        for obj in snapshot.post_order():
            if not classifications[obj.id].is_point_body:
                continue
            point_children = [child for child in snapshot.children_of(obj.id)
                              if classifications[child.id].is_point_body]
            if not point_children:
                continue

            needed = self.hierarchy_ratio * max(sizes[child.id] for child in point_children)
            if sizes[obj.id] >= needed:
                continue

            grown = min(needed, policy.clamp_for(classifications[obj.id]).maximum)
            sizes[obj.id] = max(sizes[obj.id], grown)
            if sizes[obj.id] >= needed:
                continue

            cap = sizes[obj.id] / self.hierarchy_ratio
            for child in point_children:
                if sizes[child.id] > cap:
                    sizes[child.id] = max(cap, policy.clamp_for(classifications[child.id]).minimum)

    # --- Placement ---
    def _belt_width(self, orbit: BeltOrbit, policy: ScalingPolicy, radius: float) -> float:
        width = (orbit.outer_radius - orbit.inner_radius) * policy.orbit_scaling
        if not is_finite_positive(width):
            fallback = config.Layout.MIN_BELT_WIDTH_FRACTION * policy.min_distance
            width = fallback if fallback > 0 else 2.0 * radius
        return width

    def _desired_distance(self, obj: CelestialObject, policy: ScalingPolicy) -> Optional[float]:
        """Scaled astronomical distance, or None when it is unknown or ignored by the mode."""
        if policy.equidistant:
            return None
        if isinstance(obj.orbit, BeltOrbit):
            desired = obj.orbit.center * policy.orbit_scaling
        elif isinstance(obj.orbit, PointOrbit):
            desired = obj.orbit.semi_major_axis * policy.orbit_scaling
        else:
            return None
        return desired if is_finite_positive(desired) else None

    def _place(self, snapshot: SystemSnapshot, policy: ScalingPolicy, sizes: Dict[str, float]):
        distances: Dict[str, float] = {}
        extents: Dict[str, float] = {}
        belt_widths: Dict[str, float] = {}
        widened: List[str] = []

        for obj in snapshot.post_order():
            children = snapshot.children_of(obj.id)
            if children:
                widened.extend(self._place_children(obj, children, policy, sizes, distances, extents))

            own_extent = sizes[obj.id]
            if isinstance(obj.orbit, BeltOrbit) and snapshot.parent_id_of(obj.id) is not None:
                belt_widths[obj.id] = self._belt_width(obj.orbit, policy, sizes[obj.id])
                own_extent = max(own_extent, 0.5 * belt_widths[obj.id])
            subtree_extent = max((distances[child.id] + extents[child.id] for child in children), default=0.0)
            extents[obj.id] = max(own_extent, subtree_extent)

            if snapshot.parent_id_of(obj.id) is None:
                distances[obj.id] = 0.0

        max_depth = max((snapshot.depth_of(object_id) for object_id in snapshot.ids), default=0)
        if max_depth > config.Layout.DEPTH_WARNING_THRESHOLD:
            logging.warning(f"Layout '{policy.mode_id}': hierarchy depth {max_depth} exceeds "
                            f"{config.Layout.DEPTH_WARNING_THRESHOLD}; check the system data.")

        belts = {}
        for object_id, width in belt_widths.items():
            center = distances[object_id]
            belts[object_id] = BeltLayout(center - 0.5 * width, center + 0.5 * width)
        return distances, extents, belts, widened

    def _place_children(self, parent: CelestialObject, children: List[CelestialObject], policy: ScalingPolicy,
                        sizes: Dict[str, float], distances: Dict[str, float], extents: Dict[str, float]) -> List[str]:
        """Assigns orbit distances to the (already resolved) children of one parent.

        Children keep the order of their scaled distances. Each one gets the larger
        of its scaled distance and the first position where its occupied interval
        clears the parent (or the previous sibling) by the mode's gap.
        """
        parent_radius = sizes[parent.id]
        gap = policy.min_distance

        def sort_key(child: CelestialObject) -> Tuple[float, str]:
            desired = self._desired_distance(child, policy)
            if desired is None and not policy.equidistant:
                desired = math.inf
            elif desired is None:
                desired = self._raw_distance(child)
            return desired, child.id

        widened = []
        inner_floor = max(parent_radius * policy.safety_multiplier, parent_radius + gap)
        for child in sorted(children, key=sort_key):
            extent = extents[child.id]
            required = inner_floor + extent
            desired = self._desired_distance(child, policy)
            if desired is None:
                distance = required
            else:
                distance = max(desired, required)
                if desired < required - LAYOUT_EPSILON:
                    widened.append(child.id)
                    if config.Debug.LAYOUT:
                        logging.debug(f"'{child.id}' widened from {desired:.4f} to {distance:.4f} around '{parent.id}'.")
            distances[child.id] = distance
            inner_floor = distance + extent + gap
        return widened

    @staticmethod
    def _raw_distance(obj: CelestialObject) -> float:
        # Ordering key for modes that ignore astronomical distances.
        if isinstance(obj.orbit, BeltOrbit):
            value = obj.orbit.center
        elif isinstance(obj.orbit, PointOrbit):
            value = obj.orbit.semi_major_axis
        else:
            value = math.inf
        return value if is_finite_positive(value) else math.inf

    def _absolute_positions(self, snapshot: SystemSnapshot, distances: Dict[str, float]) -> Dict[str, np.ndarray]:
        positions: Dict[str, np.ndarray] = {}
        for obj in snapshot.pre_order():
            parent_id = snapshot.parent_id_of(obj.id)
            if parent_id is None:
                positions[obj.id] = np.zeros(3, dtype=np.float64)
            else:
                positions[obj.id] = positions[parent_id] + distances[obj.id] * LAYOUT_AXIS
        return positions

    # --- Derived per-object values ---
    @staticmethod
    def _camera_distances(radius: float, policy: ScalingPolicy) -> CameraDistances:
        camera = policy.camera
        minimum = max(radius * camera.min_distance_multiplier, camera.absolute_min_distance)
        maximum = min(radius * camera.max_distance_multiplier, camera.absolute_max_distance)
        if minimum > maximum:
            minimum = maximum
        optimal = min(max(radius * camera.radius_multiplier, minimum), maximum)
        return CameraDistances(optimal=optimal, minimum=minimum, maximum=maximum)

    @staticmethod
    def _animation_speed(obj: CelestialObject) -> float:
        if not orbital_period_is_valid(obj.orbit):
            return 0.0
        return DAYS_PER_YEAR / obj.orbit.orbital_period


def find_layout_violations(snapshot: SystemSnapshot, layout: LayoutResult,
                           tolerance: float = LAYOUT_EPSILON) -> List[str]:
    """Lists every parent-clearance or sibling-overlap violation in a layout (empty if valid)."""
    violations = []
    for obj in snapshot:
        parent_id = snapshot.parent_id_of(obj.id)
        if parent_id is None:
            continue
        child_layout, parent_layout = layout[obj.id], layout[parent_id]
        if child_layout.orbit_distance - child_layout.visual_radius < parent_layout.visual_radius - tolerance:
            violations.append(
                f"'{obj.id}' intersects its parent '{parent_id}': orbit {child_layout.orbit_distance:.6f} - "
                f"radius {child_layout.visual_radius:.6f} < parent radius {parent_layout.visual_radius:.6f}."
            )
        if child_layout.inner_edge < parent_layout.visual_radius - tolerance:
            violations.append(f"Sub-tree of '{obj.id}' reaches inside its parent '{parent_id}'.")

    groups = [snapshot.children_of(obj.id) for obj in snapshot]
    for siblings in groups:
        intervals = sorted((layout[s.id].inner_edge, layout[s.id].outer_edge, s.id) for s in siblings)
        farthest_end, farthest_id = -math.inf, None
        for start, end, object_id in intervals:
            if start < farthest_end - tolerance:
                violations.append(f"Occupied intervals of siblings '{farthest_id}' and '{object_id}' overlap.")
            if end > farthest_end:
                farthest_end, farthest_id = end, object_id
    return violations
