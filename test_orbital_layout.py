import unittest

import numpy as np

from orbital_layout import OrbitalLayoutCalculator, find_layout_violations, LayoutResult
from scaling_policy import ViewModeRegistry
from solarsystem import (BeltOrbit, CelestialObject, Classification, PointOrbit, SystemSnapshot,
                         build_sol_system)


def point(object_id, parent, a, classification, radius_km, period=None):
    return CelestialObject(id=object_id, name=object_id, classification=classification, radius_km=radius_km,
                           orbit=PointOrbit(parent=parent, semi_major_axis=a, orbital_period=period))


def earth_moon_system():
    return SystemSnapshot([
        CelestialObject(id='sun', classification=Classification.STAR, radius_km=695700.0),
        point('earth', 'sun', 1.0, Classification.PLANET, 6371.0, 365.256),
        point('moon', 'earth', 0.00257, Classification.MOON, 1737.4, 27.32),
    ])


class TestLayoutInvariants(unittest.TestCase):

    def setUp(self):
        self.registry = ViewModeRegistry()
        self.calculator = OrbitalLayoutCalculator()
        self.sol = build_sol_system()

    def test_parent_clearance_in_every_mode(self):
        for policy in self.registry:
            layout = self.calculator.calculate(self.sol, policy)
            for obj in self.sol:
                parent = self.sol.parent_of(obj.id)
                if parent is None:
                    continue
                child_layout = layout[obj.id]
                self.assertGreaterEqual(
                    child_layout.orbit_distance - child_layout.visual_radius + 1e-9,
                    layout[parent.id].visual_radius,
                    msg=f"{policy.mode_id}: {obj.id} intersects {parent.id}",
                )

    def test_siblings_never_overlap_in_every_mode(self):
        for policy in self.registry:
            layout = self.calculator.calculate(self.sol, policy)
            for obj in self.sol:
                intervals = sorted((layout[c.id].inner_edge, layout[c.id].outer_edge)
                                   for c in self.sol.children_of(obj.id))
                for (_, previous_end), (next_start, _) in zip(intervals, intervals[1:]):
                    self.assertGreaterEqual(next_start + 1e-9, previous_end, msg=policy.mode_id)
            self.assertEqual(find_layout_violations(self.sol, layout), [], msg=policy.mode_id)

    def test_moon_clears_earth_in_every_mode(self):
        system = earth_moon_system()
        for policy in self.registry:
            layout = self.calculator.calculate(system, policy)
            moon, earth = layout['moon'], layout['earth']
            self.assertGreater(moon.orbit_distance - moon.visual_radius, earth.visual_radius, msg=policy.mode_id)
            self.assertGreater(moon.position[0] - moon.visual_radius, earth.position[0] + earth.visual_radius)

    def test_widening_is_recorded_and_logged(self):
        policy = self.registry.get('realistic')
        with self.assertLogs(level='WARNING') as captured:
            layout = self.calculator.calculate(earth_moon_system(), policy)
        self.assertIn('moon', layout.widened)
        self.assertTrue(layout['moon'].widened)
        self.assertGreater(layout['moon'].orbit_distance, 0.00257 * policy.orbit_scaling)
        self.assertTrue(any('widened' in line for line in captured.output))

    def test_scaled_distance_kept_when_clear(self):
        for policy in self.registry:
            if policy.equidistant:
                continue
            layout = self.calculator.calculate(self.sol, policy)
            for obj in self.sol:
                if isinstance(obj.orbit, PointOrbit) and obj.id not in layout.widened:
                    self.assertAlmostEqual(layout[obj.id].orbit_distance,
                                           obj.orbit.semi_major_axis * policy.orbit_scaling,
                                           msg=f"{policy.mode_id}: {obj.id}")

    def test_realistic_jupiter_keeps_astronomical_distance(self):
        policy = self.registry.get('realistic')
        layout = self.calculator.calculate(self.sol, policy)
        self.assertNotIn('jupiter', layout.widened)
        self.assertAlmostEqual(layout['jupiter'].orbit_distance, 5.2044 * policy.orbit_scaling)

    def test_sibling_order_follows_orbits(self):
        for policy in self.registry:
            layout = self.calculator.calculate(self.sol, policy)
            planets = sorted((c for c in self.sol.children_of('sun')),
                             key=lambda c: c.orbit.center if isinstance(c.orbit, BeltOrbit) else c.orbit.semi_major_axis)
            distances = [layout[p.id].orbit_distance for p in planets]
            self.assertEqual(distances, sorted(distances), msg=policy.mode_id)

    def test_belt_uses_span(self):
        policy = self.registry.get('realistic')
        layout = self.calculator.calculate(self.sol, policy)
        belt = layout['main-belt']
        self.assertIsNotNone(belt.belt)
        self.assertAlmostEqual(belt.belt.inner_radius, 2.2 * policy.orbit_scaling)
        self.assertAlmostEqual(belt.belt.outer_radius, 3.2 * policy.orbit_scaling)
        self.assertAlmostEqual(belt.orbit_distance, 2.7 * policy.orbit_scaling)
        self.assertAlmostEqual(belt.extent, 0.5 * policy.orbit_scaling)
        self.assertIsNone(layout['earth'].belt)

    def test_absolute_positions_follow_parents(self):
        layout = self.calculator.calculate(self.sol, self.registry.get('navigational'))
        np.testing.assert_array_equal(layout.position_of('sun'), np.zeros(3))
        np.testing.assert_array_almost_equal(
            layout.position_of('moon'),
            layout.position_of('earth') + np.array([layout['moon'].orbit_distance, 0.0, 0.0]),
        )
        self.assertEqual(layout['sun'].orbit_distance, 0.0)
        self.assertIsNone(layout['sun'].parent_id)
        self.assertEqual(layout['moon'].parent_id, 'earth')


class TestLayoutEdgeCases(unittest.TestCase):

    def setUp(self):
        self.registry = ViewModeRegistry()
        self.calculator = OrbitalLayoutCalculator()

    def test_orphan_placed_at_origin(self):
        with self.assertLogs(level='WARNING'):
            system = SystemSnapshot([
                CelestialObject(id='sun', classification=Classification.STAR, radius_km=695700.0),
                point('rogue', 'missing-star', 3.0, Classification.PLANET, 7000.0),
            ])
        layout = self.calculator.calculate(system, self.registry.get('realistic'))
        self.assertEqual(layout['rogue'].orbit_distance, 0.0)
        np.testing.assert_array_equal(layout.position_of('rogue'), np.zeros(3))
        self.assertIsNone(layout['rogue'].parent_id)

    def test_malformed_elements_do_not_abort(self):
        system = SystemSnapshot([
            CelestialObject(id='sun', classification=Classification.STAR, radius_km=695700.0),
            point('nan-planet', 'sun', float('nan'), Classification.PLANET, float('nan')),
            point('earth', 'sun', 1.0, Classification.PLANET, 6371.0),
        ])
        for policy in self.registry:
            layout = self.calculator.calculate(system, policy)
            self.assertEqual(find_layout_violations(system, layout), [])
            self.assertEqual(layout['nan-planet'].visual_radius, policy.minimum_size(Classification.PLANET))
            self.assertGreater(layout['nan-planet'].orbit_distance, layout['earth'].orbit_distance)

    def test_deeply_nested_moons(self):
        objects = [CelestialObject(id='m0', classification=Classification.PLANET, radius_km=6000.0)]
        objects += [point(f'm{i}', f'm{i - 1}', 0.001, Classification.MOON, 1000.0) for i in range(1, 13)]
        system = SystemSnapshot(objects)
        layout = self.calculator.calculate(system, self.registry.get('navigational'))
        self.assertEqual(len(layout), 13)
        self.assertEqual(find_layout_violations(system, layout), [])

    def test_supplied_sizes_are_used(self):
        system = earth_moon_system()
        policy = self.registry.get('navigational')
        layout = self.calculator.calculate(system, policy, {'sun': 3.0, 'earth': 1.0, 'moon': 0.5})
        self.assertEqual(layout['sun'].visual_radius, 3.0)
        self.assertEqual(layout['moon'].visual_radius, 0.5)
        self.assertEqual(find_layout_violations(system, layout), [])

    def test_size_hierarchy_grows_parent(self):
        system = SystemSnapshot([
            CelestialObject(id='dwarf', classification=Classification.STAR, radius_km=300000.0),
            point('giant', 'dwarf', 5.0, Classification.PLANET, 69911.0),
        ])
        layout = self.calculator.calculate(system, self.registry.get('realistic'))
        giant = layout['giant'].visual_radius
        self.assertAlmostEqual(giant, 69911.0 * 2e-6 * 8.0)
        self.assertAlmostEqual(layout['dwarf'].visual_radius, 1.2 * giant)

    def test_size_hierarchy_not_applied_to_fixed_modes(self):
        system = SystemSnapshot([
            CelestialObject(id='dwarf', classification=Classification.MOON, radius_km=300.0),
            point('giant', 'dwarf', 5.0, Classification.PLANET, 69911.0),
        ])
        layout = self.calculator.calculate(system, self.registry.get('navigational'))
        self.assertEqual(layout['dwarf'].visual_radius, 0.6)
        self.assertEqual(layout['giant'].visual_radius, 1.2)

    def test_equidistant_mode_ignores_astronomical_distance(self):
        policy = self.registry.get('profile')
        system = SystemSnapshot([
            CelestialObject(id='sun', classification=Classification.STAR, radius_km=695700.0),
            point('near', 'sun', 0.4, Classification.PLANET, 2440.0),
            point('far', 'sun', 30.0, Classification.PLANET, 24622.0),
        ])
        layout = self.calculator.calculate(system, policy)
        gap = layout['far'].inner_edge - layout['near'].outer_edge
        self.assertAlmostEqual(gap, policy.min_distance)
        self.assertEqual(layout.widened, ())

    def test_camera_distances(self):
        policy = self.registry.get('realistic')
        layout = self.calculator.calculate(earth_moon_system(), policy)
        camera = layout['sun'].camera
        radius = layout['sun'].visual_radius
        self.assertAlmostEqual(camera.optimal, radius * 4.0)
        self.assertAlmostEqual(camera.minimum, radius * 2.5)
        self.assertAlmostEqual(camera.maximum, radius * 15.0)
        moon_camera = layout['moon'].camera
        self.assertEqual(moon_camera.minimum, policy.camera.absolute_min_distance)
        self.assertLessEqual(moon_camera.minimum, moon_camera.optimal)
        self.assertLessEqual(moon_camera.optimal, moon_camera.maximum)

    def test_animation_speed(self):
        layout = self.calculator.calculate(earth_moon_system(), self.registry.get('realistic'))
        self.assertAlmostEqual(layout['earth'].animation_speed, 365.25 / 365.256)
        self.assertEqual(layout['sun'].animation_speed, 0.0)

    def test_violation_detector_flags_overlap(self):
        system = earth_moon_system()
        layout = self.calculator.calculate(system, self.registry.get('realistic'))
        moon = layout['moon']
        broken = {object_id: placed for object_id, placed in layout.items()}
        broken['moon'] = type(moon)(
            object_id='moon', parent_id='earth', classification=moon.classification,
            visual_radius=moon.visual_radius, orbit_distance=0.0, extent=moon.extent,
            position=moon.position, camera=moon.camera,
        )
        violations = find_layout_violations(system, LayoutResult('realistic', broken, []))
        self.assertTrue(violations)


if __name__ == '__main__':
    unittest.main(argv=['first-arg-is-ignored'], exit=False)
