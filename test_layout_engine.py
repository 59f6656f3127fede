import unittest

from calculation_cache import CalculationCache
from layout_engine import LayoutEngine
from main import main
from solarsystem import CelestialObject, Classification, SystemSnapshot, build_sol_system


class TestLayoutEngine(unittest.TestCase):

    def setUp(self):
        self.engine = LayoutEngine()
        self.sol = build_sol_system()

    def test_layout_is_memoized(self):
        first = self.engine.get_layout(self.sol, 'realistic')
        self.assertIs(self.engine.get_layout(self.sol, 'realistic'), first)
        self.assertIs(self.engine.get_layout(build_sol_system(), 'realistic'), first)
        stats = self.engine.stats()
        self.assertEqual(stats.misses, 1)
        self.assertEqual(stats.hits, 2)

    def test_modes_are_cached_separately(self):
        realistic = self.engine.get_layout(self.sol, 'realistic')
        navigational = self.engine.get_layout(self.sol, 'navigational')
        self.assertIsNot(realistic, navigational)
        self.assertEqual(navigational.view_mode, 'navigational')
        self.assertEqual(self.engine.clear_for_view_mode('realistic'), 1)
        self.assertIsNot(self.engine.get_layout(self.sol, 'realistic'), realistic)
        self.assertIs(self.engine.get_layout(self.sol, 'navigational'), navigational)

    def test_changed_snapshot_is_recomputed(self):
        first = self.engine.get_layout(self.sol, 'realistic')
        extended = SystemSnapshot(list(self.sol) + [
            CelestialObject(id='wanderer', classification=Classification.STAR, radius_km=300000.0)])
        second = self.engine.get_layout(extended, 'realistic')
        self.assertIsNot(second, first)
        self.assertIn('wanderer', second)

    def test_unknown_mode_falls_back_to_default(self):
        with self.assertLogs(level='WARNING'):
            layout = self.engine.get_layout(self.sol, 'cinematic')
        self.assertEqual(layout.view_mode, 'realistic')
        self.assertIs(self.engine.get_layout(self.sol, 'realistic'), layout)

    def test_clear_empties_both_caches(self):
        self.engine.get_layout(self.sol, 'profile')
        self.engine.predict_positions(self.sol, 0.0, 'profile')
        self.engine.clear()
        self.assertEqual(self.engine.stats().total_entries, 0)
        self.assertEqual(self.engine.predictor.cache_size, 0)

    def test_injected_cache_is_used(self):
        cache = CalculationCache(max_entries=1)
        engine = LayoutEngine(cache=cache)
        engine.get_layout(self.sol, 'realistic')
        engine.get_layout(self.sol, 'profile')
        self.assertIs(engine.cache, cache)
        self.assertEqual(len(cache), 1)

    def test_frame_focus_reads_completed_layout(self):
        frame, layout = self.engine.frame_focus('io', self.sol, 'navigational')
        self.assertEqual(len(layout), len(self.sol))
        self.assertEqual(frame.focal_id, 'io')
        self.assertEqual(frame.outer_id, 'callisto')
        self.assertIs(self.engine.get_layout(self.sol, 'navigational'), layout)
        again = self.engine.resolve_focal_frame('io', self.sol, layout)
        self.assertEqual(again.outer_id, frame.outer_id)

    def test_predict_position(self):
        prediction = self.engine.predict_position(self.sol.get('earth'), self.sol.get('sun'), 0.0, 'scientific')
        self.assertEqual(prediction.object_id, 'earth')
        self.assertGreater(prediction.confidence, 0.0)

    def test_predict_positions(self):
        everything = self.engine.predict_positions(self.sol, 1e6, 'realistic')
        self.assertEqual(set(everything), set(self.sol.ids))
        self.assertEqual(everything['sun'].confidence, 1.0)

        subset = self.engine.predict_positions(self.sol, 1e6, 'realistic', object_ids=['earth', 'vulcan'])
        self.assertEqual(set(subset), {'earth'})

    def test_layout_predictions_not_served_from_scaled_cache(self):
        layout = self.engine.get_layout(self.sol, 'navigational')
        scaled = self.engine.predict_positions(self.sol, 0.0, 'navigational')
        laid_out = self.engine.predict_positions(self.sol, 0.0, 'navigational', use_layout=True)
        self.assertIn('moon', layout.widened)
        moon = self.sol.get('moon').orbit
        self.assertAlmostEqual(scaled['moon'].distance / (moon.semi_major_axis * 40.0),
                               laid_out['moon'].distance / layout['moon'].orbit_distance)
        self.assertGreater(laid_out['moon'].distance, scaled['moon'].distance)

    def test_predictions_can_follow_layout_distances(self):
        layout = self.engine.get_layout(self.sol, 'realistic')
        predictions = self.engine.predict_positions(self.sol, 0.0, 'realistic', object_ids=['moon'], use_layout=True)
        distance = layout['moon'].orbit_distance
        e = self.sol.get('moon').orbit.eccentricity
        self.assertGreaterEqual(predictions['moon'].distance, distance * (1 - e) - 1e-9)
        self.assertLessEqual(predictions['moon'].distance, distance * (1 + e) + 1e-9)


class TestCommandLine(unittest.TestCase):

    def test_runs_every_mode(self):
        for mode in ('realistic', 'navigational', 'profile', 'scientific'):
            self.assertEqual(main(['--mode', mode, '--time', '86400']), 0)

    def test_unknown_focus_exit_code(self):
        self.assertEqual(main(['--focus', 'vulcan']), 1)


if __name__ == '__main__':
    unittest.main(argv=['first-arg-is-ignored'], exit=False)
