import threading
import unittest

from calculation_cache import CalculationCache, estimate_layout_size
from orbital_layout import LayoutResult
from scaling_policy import ViewModeRegistry
from solarsystem import build_sol_system


def dummy_result(view_mode='realistic'):
    return LayoutResult(view_mode, {}, [])


class TestCacheKeys(unittest.TestCase):

    def setUp(self):
        self.registry = ViewModeRegistry()
        self.sol = build_sol_system()

    def test_key_is_deterministic(self):
        policy = self.registry.get('realistic')
        first = CalculationCache.generate_key('realistic', self.sol, policy)
        second = CalculationCache.generate_key('realistic', build_sol_system(), policy)
        self.assertEqual(first, second)
        self.assertTrue(first.startswith('realistic|'))
        self.assertIn(str(len(self.sol)), first)

    def test_key_changes_with_mode_and_policy(self):
        realistic = self.registry.get('realistic')
        navigational = self.registry.get('navigational')
        self.assertNotEqual(CalculationCache.generate_key('realistic', self.sol, realistic),
                            CalculationCache.generate_key('navigational', self.sol, navigational))
        self.assertNotEqual(CalculationCache.generate_key('realistic', self.sol, realistic),
                            CalculationCache.generate_key('realistic', self.sol, navigational))

    def test_estimate_grows_with_objects(self):
        self.assertGreater(estimate_layout_size(list(range(10))), estimate_layout_size([]))


class TestCalculationCache(unittest.TestCase):

    def test_set_get_and_rates(self):
        cache = CalculationCache()
        result = dummy_result()
        self.assertIsNone(cache.get('realistic|a'))
        cache.set('realistic|a', result)
        self.assertIs(cache.get('realistic|a'), result)
        self.assertTrue(cache.has('realistic|a'))
        self.assertIn('realistic|a', cache)
        stats = cache.get_statistics()
        self.assertEqual((stats.hits, stats.misses), (1, 1))
        self.assertAlmostEqual(stats.hit_rate, 0.5)
        self.assertAlmostEqual(stats.miss_rate, 0.5)
        self.assertEqual(stats.total_entries, 1)

    def test_entry_limit_evicts_least_recently_used(self):
        cache = CalculationCache(max_entries=2)
        cache.set('realistic|a', dummy_result())
        cache.set('realistic|b', dummy_result())
        cache.get('realistic|a')
        cache.set('realistic|c', dummy_result())
        self.assertEqual(len(cache), 2)
        self.assertIn('realistic|a', cache)
        self.assertNotIn('realistic|b', cache)
        self.assertEqual(cache.get_statistics().evictions, 1)

    def test_memory_limit_always_holds(self):
        cache = CalculationCache(max_memory_bytes=250, size_estimator=lambda result: 100)
        for i in range(10):
            cache.set(f'realistic|{i}', dummy_result())
            self.assertLessEqual(cache.get_statistics().memory_usage, 250)
        self.assertEqual(len(cache), 2)
        self.assertIn('realistic|9', cache)
        self.assertIn('realistic|8', cache)

    def test_overwrite_does_not_double_count(self):
        cache = CalculationCache(size_estimator=lambda result: 100)
        cache.set('realistic|a', dummy_result())
        cache.set('realistic|a', dummy_result())
        self.assertEqual(cache.get_statistics().memory_usage, 100)

    def test_oversized_entry_not_retained(self):
        cache = CalculationCache(max_memory_bytes=50, size_estimator=lambda result: 100)
        with self.assertLogs(level='WARNING'):
            cache.set('realistic|big', dummy_result())
        self.assertEqual(len(cache), 0)
        self.assertEqual(cache.get_statistics().memory_usage, 0)

    def test_clear_for_view_mode_keeps_other_modes(self):
        cache = CalculationCache(size_estimator=lambda result: 10)
        cache.set('realistic|a', dummy_result())
        cache.set('realistic|b', dummy_result())
        cache.set('profile|a', dummy_result('profile'))
        self.assertEqual(cache.clear_for_view_mode('realistic'), 2)
        self.assertEqual(len(cache), 1)
        self.assertIn('profile|a', cache)
        self.assertEqual(cache.get_statistics().memory_usage, 10)
        self.assertEqual(cache.clear_for_view_mode('scientific'), 0)

    def test_clear_resets_everything(self):
        cache = CalculationCache()
        cache.set('realistic|a', dummy_result())
        cache.get('realistic|a')
        cache.clear()
        stats = cache.get_statistics()
        self.assertEqual((stats.total_entries, stats.hits, stats.misses, stats.memory_usage), (0, 0, 0, 0))
        self.assertIsNone(stats.oldest_entry)

    def test_age_eviction_and_timestamps(self):
        now = [1000.0]
        cache = CalculationCache(clock=lambda: now[0])
        cache.set('realistic|old', dummy_result())
        now[0] = 1100.0
        cache.set('realistic|new', dummy_result())
        stats = cache.get_statistics()
        self.assertEqual(stats.oldest_entry, 1000.0)
        self.assertEqual(stats.newest_entry, 1100.0)
        now[0] = 1150.0
        self.assertEqual(cache.evict_older_than(100.0), 1)
        self.assertNotIn('realistic|old', cache)
        self.assertIn('realistic|new', cache)

    def test_memory_breakdown_per_mode(self):
        cache = CalculationCache(size_estimator=lambda result: 40)
        cache.set('realistic|a', dummy_result())
        cache.set('profile|a', dummy_result('profile'))
        cache.set('profile|b', dummy_result('profile'))
        self.assertEqual(cache.memory_breakdown(), {'realistic': 40, 'profile': 80})

    def test_concurrent_writers(self):
        cache = CalculationCache(max_entries=100, size_estimator=lambda result: 10)

        def writer(worker):
            for i in range(50):
                cache.set(f'realistic|{worker}-{i}', dummy_result())
                cache.get(f'realistic|{worker}-{i}')

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        stats = cache.get_statistics()
        self.assertEqual(stats.total_entries, 100)
        self.assertEqual(stats.memory_usage, 1000)
        self.assertEqual(stats.evictions, 300)


if __name__ == '__main__':
    unittest.main(argv=['first-arg-is-ignored'], exit=False)
