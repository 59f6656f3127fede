# solarsystem.py
import hashlib
import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

from config import config


class Classification(Enum):
    """Closed set of object kinds the engine knows how to size and place.

    Every per-classification table of a view mode is checked at load time to
    cover all members, so lookups keyed by a member never miss.
    """
    STAR = 'star'
    PLANET = 'planet'
    MOON = 'moon'
    BELT = 'belt'
    STATION = 'station'
    JUMP_POINT = 'jump-point'

    @classmethod
    def parse(cls, value) -> Optional['Classification']:
        """Accepts a member, its value ("jump-point") or its name ("JUMP_POINT").

        Returns None for absent input. Unknown strings are logged and also
        return None, so the object falls back to radius-based classification.
        """
        if value is None or isinstance(value, cls):
            return value
        text = str(value).strip()
        if not text:
            return None
        for member in cls:
            if text.lower() == member.value or text.upper().replace('-', '_') == member.name:
                return member
        logging.warning(f"Unknown classification {value!r}; it will be inferred from the object's radius.")
        return None

    @property
    def is_point_body(self) -> bool:
        """Bodies with a single orbital radius (everything except belts)."""
        return self is not Classification.BELT


@dataclass(frozen=True)
class PointOrbit:
    parent: str
    semi_major_axis: float  # AU
    eccentricity: float = 0.0
    inclination: float = 0.0  # degrees
    orbital_period: Optional[float] = None  # days
    longitude_of_ascending_node: float = 0.0  # degrees (Ω)
    argument_of_periapsis: float = 0.0  # degrees (ω)
    mean_anomaly_at_epoch: float = 0.0  # degrees (M0)


@dataclass(frozen=True)
class BeltOrbit:
    parent: str
    inner_radius: float  # AU
    outer_radius: float  # AU

    @property
    def center(self) -> float:
        return 0.5 * (self.inner_radius + self.outer_radius)

    @property
    def width(self) -> float:
        return self.outer_radius - self.inner_radius


Orbit = Union[PointOrbit, BeltOrbit]


@dataclass(frozen=True)
class CelestialObject:
    """One object of a star system, as supplied by the data-loading layer.

    Attributes:
        id: Unique identifier within its system.
        name: Display name.
        classification: Object kind, or None to classify by radius.
        radius_km: Physical radius. May be zero or invalid for abstract objects
                   (belts, jump points); sizing fails closed on such values.
        mass_kg: Physical mass.
        temperature_k: Surface or effective temperature.
        orbit: Point or belt orbit around `orbit.parent`, None for roots.
        properties: Any other physical properties, carried through unchanged.
    """
    id: str
    name: str = ''
    classification: Optional[Classification] = None
    radius_km: float = 0.0
    mass_kg: float = 0.0
    temperature_k: Optional[float] = None
    orbit: Optional[Orbit] = None
    properties: Mapping[str, object] = field(default_factory=dict, compare=False)

    @property
    def parent_id(self) -> Optional[str]:
        return self.orbit.parent if self.orbit is not None else None

    @property
    def is_belt(self) -> bool:
        return isinstance(self.orbit, BeltOrbit) or self.classification is Classification.BELT

    @classmethod
    def from_dict(cls, record: Mapping) -> 'CelestialObject':
        """Builds an object from a plain record.

        Expected shape::

            {'id': 'earth', 'name': 'Earth', 'classification': 'planet',
             'properties': {'radius': 6371.0, 'mass': 5.97e24, 'temperature': 288},
             'orbit': {'parent': 'sun', 'semi_major_axis': 1.0, 'eccentricity': 0.0167,
                       'inclination': 0.0, 'orbital_period': 365.25}}

        Belts give `inner_radius`/`outer_radius` in `orbit` instead of a
        semi-major axis. Radius, mass and temperature may also be top-level keys.
        """
        properties = dict(record.get('properties') or {})
        radius = record.get('radius_km', properties.pop('radius', 0.0))
        mass = record.get('mass_kg', properties.pop('mass', 0.0))
        temperature = record.get('temperature_k', properties.pop('temperature', None))

        orbit = None
        orbit_record = record.get('orbit')
        if orbit_record:
            parent = orbit_record.get('parent')
            if 'inner_radius' in orbit_record or 'outer_radius' in orbit_record:
                orbit = BeltOrbit(
                    parent=parent,
                    inner_radius=_as_float(orbit_record.get('inner_radius')),
                    outer_radius=_as_float(orbit_record.get('outer_radius')),
                )
            else:
                orbit = PointOrbit(
                    parent=parent,
                    semi_major_axis=_as_float(orbit_record.get('semi_major_axis')),
                    eccentricity=_as_float(orbit_record.get('eccentricity', 0.0)),
                    inclination=_as_float(orbit_record.get('inclination', 0.0)),
                    orbital_period=_as_optional_float(orbit_record.get('orbital_period')),
                    longitude_of_ascending_node=_as_float(orbit_record.get('longitude_of_ascending_node', 0.0)),
                    argument_of_periapsis=_as_float(orbit_record.get('argument_of_periapsis', 0.0)),
                    mean_anomaly_at_epoch=_as_float(orbit_record.get('mean_anomaly_at_epoch', 0.0)),
                )

        return cls(
            id=str(record['id']),
            name=str(record.get('name', record['id'])),
            classification=Classification.parse(record.get('classification')),
            radius_km=_as_float(radius),
            mass_kg=_as_float(mass),
            temperature_k=_as_optional_float(temperature),
            orbit=orbit,
            properties=properties,
        )


def _as_float(value) -> float:
    # Malformed numbers become NaN and are handled downstream (fail closed).
    try:
        return float(value)
    except (TypeError, ValueError):
        return float('nan')


def _as_optional_float(value) -> Optional[float]:
    return None if value is None else _as_float(value)


# Parent/child classification pairings that are unusual enough to report.
_EXPECTED_CHILDREN = {
    Classification.STAR: {Classification.STAR, Classification.PLANET, Classification.BELT,
                          Classification.STATION, Classification.JUMP_POINT},
    Classification.PLANET: {Classification.MOON, Classification.STATION, Classification.BELT},
    Classification.MOON: {Classification.MOON, Classification.STATION},
    Classification.BELT: set(),
    Classification.STATION: set(),
    Classification.JUMP_POINT: set(),
}


class SystemSnapshot:
    """Immutable forest of `CelestialObject`s for one layout invocation.

    The parent links are resolved once at construction. Objects whose parent is
    unknown, is the object itself, or closes a cycle become orphan roots; each
    repair is logged as a warning and recorded in `repairs`. No method mutates
    the snapshot, so it can be shared between threads.
    """

    def __init__(self, objects: Iterable[CelestialObject], name: str = ''):
        self.name = name
        self._objects: Dict[str, CelestialObject] = {}
        for obj in objects:
            if obj.id in self._objects:
                logging.warning(f"Duplicate object id '{obj.id}' in system '{name}'; keeping the last definition.")
            self._objects[obj.id] = obj

        self.repairs: List[str] = []
        self._parent: Dict[str, Optional[str]] = {}
        for object_id, obj in self._objects.items():
            parent_id = obj.parent_id
            if parent_id is not None and parent_id == object_id:
                self._record_repair(f"Object '{object_id}' names itself as its orbit parent; treating it as an orphan root.")
                parent_id = None
            elif parent_id is not None and parent_id not in self._objects:
                self._record_repair(f"Orbit parent '{parent_id}' of object '{object_id}' not found; treating it as an orphan root.")
                parent_id = None
            self._parent[object_id] = parent_id

        self._break_cycles()

        self._children: Dict[str, List[str]] = {object_id: [] for object_id in self._objects}
        self._roots: List[str] = []
        for object_id in self._objects:
            parent_id = self._parent[object_id]
            if parent_id is None:
                self._roots.append(object_id)
            else:
                self._children[parent_id].append(object_id)

        self._fingerprint = None

    def _record_repair(self, message: str):
        logging.warning(message)
        self.repairs.append(message)

    def _break_cycles(self):
        # Walk up from every object; a walk that revisits a node on its own
        # path has found a cycle. The node where the cycle is detected loses its
        # parent link, which turns the cycle into a chain under a new root.
        state: Dict[str, int] = {}  # 1 = on current path, 2 = known acyclic
        for start in self._objects:
            path = []
            node = start
            while node is not None and state.get(node) is None:
                state[node] = 1
                path.append(node)
                node = self._parent[node]
            if node is not None and state.get(node) == 1:
                self._record_repair(
                    f"Circular orbit reference through '{node}'; treating it as an orphan root."
                )
                self._parent[node] = None
            for visited in path:
                state[visited] = 2

    # --- Lookups ---
    def __len__(self) -> int:
        return len(self._objects)

    def __contains__(self, object_id) -> bool:
        return object_id in self._objects

    def __iter__(self) -> Iterator[CelestialObject]:
        return iter(self._objects.values())

    @property
    def ids(self) -> List[str]:
        return list(self._objects)

    def get(self, object_id: str) -> Optional[CelestialObject]:
        return self._objects.get(object_id)

    def parent_of(self, object_id: str) -> Optional[CelestialObject]:
        parent_id = self._parent.get(object_id)
        return self._objects[parent_id] if parent_id is not None else None

    def parent_id_of(self, object_id: str) -> Optional[str]:
        return self._parent.get(object_id)

    def children_of(self, object_id: str) -> List[CelestialObject]:
        return [self._objects[child_id] for child_id in self._children.get(object_id, [])]

    def siblings_of(self, object_id: str) -> List[CelestialObject]:
        """Objects sharing the same parent, excluding the object. Roots are siblings of each other."""
        if object_id not in self._objects:
            return []
        parent_id = self._parent[object_id]
        candidates = self._roots if parent_id is None else self._children[parent_id]
        return [self._objects[other] for other in candidates if other != object_id]

    @property
    def roots(self) -> List[CelestialObject]:
        return [self._objects[object_id] for object_id in self._roots]

    def depth_of(self, object_id: str) -> int:
        depth = 0
        node = self._parent.get(object_id)
        while node is not None:
            depth += 1
            node = self._parent[node]
        return depth

    # --- Traversal ---
    def post_order(self) -> List[CelestialObject]:
        """Children before parents, using an explicit stack."""
        order = []
        for root_id in self._roots:
            stack: List[Tuple[str, bool]] = [(root_id, False)]
            while stack:
                object_id, expanded = stack.pop()
                if expanded:
                    order.append(self._objects[object_id])
                    continue
                stack.append((object_id, True))
                for child_id in reversed(self._children[object_id]):
                    stack.append((child_id, False))
        return order

    def pre_order(self) -> List[CelestialObject]:
        """Parents before children, using an explicit stack."""
        order = []
        stack = list(reversed(self._roots))
        while stack:
            object_id = stack.pop()
            order.append(self._objects[object_id])
            stack.extend(reversed(self._children[object_id]))
        return order

    # --- Diagnostics ---
    def validate_hierarchy(self) -> List[str]:
        """Reports unusual parent/child classification pairings (e.g. a moon orbiting a star).

        These are not errors: layout handles any forest. The list is meant for
        logs and data-quality reports.
        """
        warnings = []
        for obj in self._objects.values():
            parent = self.parent_of(obj.id)
            if parent is None or parent.classification is None or obj.classification is None:
                continue
            if obj.classification not in _EXPECTED_CHILDREN[parent.classification]:
                warnings.append(
                    f"{obj.classification.value} '{obj.id}' orbits {parent.classification.value} '{parent.id}'."
                )
            if isinstance(obj.orbit, BeltOrbit) != (obj.classification is Classification.BELT):
                warnings.append(f"Object '{obj.id}' orbit type does not match its classification.")
        return warnings

    def fingerprint(self) -> str:
        """Stable digest of everything in the snapshot that affects layout."""
        if self._fingerprint is None:
            digest = hashlib.md5()
            for object_id in sorted(self._objects):
                obj = self._objects[object_id]
                classification = obj.classification.value if obj.classification is not None else '-'
                digest.update(
                    f"{object_id}|{self._parent[object_id]}|{classification}|{obj.radius_km!r}|{obj.orbit!r};".encode('utf-8')
                )
            self._fingerprint = digest.hexdigest()
        return self._fingerprint


def build_sol_system(data: Optional[Mapping[str, Mapping]] = None) -> SystemSnapshot:
    """Builds a snapshot from `config.SolarSystem.PLANET_DATA` (or a record set of the same shape)."""
    data = config.SolarSystem.PLANET_DATA if data is None else data
    objects = []
    for object_id, record in data.items():
        orbit = None
        parent = record.get('central_body')
        if parent is not None:
            if 'inner_radius_au' in record:
                orbit = BeltOrbit(parent=parent,
                                  inner_radius=record['inner_radius_au'],
                                  outer_radius=record['outer_radius_au'])
            else:
                orbit = PointOrbit(
                    parent=parent,
                    semi_major_axis=record.get('semi_major_axis_au', float('nan')),
                    eccentricity=record.get('eccentricity', 0.0),
                    inclination=record.get('inclination_deg', 0.0),
                    orbital_period=record.get('orbital_period_days'),
                    longitude_of_ascending_node=record.get('longitude_of_ascending_node_deg', 0.0),
                    argument_of_periapsis=record.get('argument_of_periapsis_deg', 0.0),
                    mean_anomaly_at_epoch=record.get('mean_anomaly_at_epoch_deg', 0.0),
                )
        objects.append(CelestialObject(
            id=object_id,
            name=record.get('name', object_id),
            classification=Classification.parse(record.get('classification')),
            radius_km=record.get('radius_km', 0.0),
            mass_kg=record.get('mass_kg', 0.0),
            temperature_k=record.get('temperature_k'),
            orbit=orbit,
        ))
    return SystemSnapshot(objects, name='Sol')


def orbital_period_is_valid(orbit: Optional[Orbit]) -> bool:
    return isinstance(orbit, PointOrbit) and orbit.orbital_period is not None \
        and math.isfinite(orbit.orbital_period) and orbit.orbital_period > 0
