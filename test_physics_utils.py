import math
import unittest
import numpy as np
from physics_utils import (safe_divide, normalize_vector, is_finite_positive, wrap_angle,
                           orbital_rotation_matrix, PhysicsError)

class TestSafeDivide(unittest.TestCase):

    def test_typical_division_scalar(self):
        self.assertAlmostEqual(safe_divide(10, 2), 5.0)
        self.assertAlmostEqual(safe_divide(7, 3), 7/3)
        self.assertAlmostEqual(safe_divide(-10, 2), -5.0)
        self.assertAlmostEqual(safe_divide(0, 5), 0.0)

    def test_division_by_zero_scalar_default_zero(self):
        self.assertAlmostEqual(safe_divide(5, 0), 0.0)
        self.assertAlmostEqual(safe_divide(5, 1e-13), 0.0) # Below default epsilon
        self.assertAlmostEqual(safe_divide(0, 0), 0.0)

    def test_division_by_zero_scalar_custom_default(self):
        self.assertAlmostEqual(safe_divide(5, 0, default_on_zero_denom=99.0), 99.0)

    def test_custom_epsilon(self):
        self.assertAlmostEqual(safe_divide(1.0, 1e-13, epsilon=1e-15), 1e13)

    def test_typical_division_numpy_array(self):
        num = np.array([10.0, 7.0, 0.0, -4.0])
        den = np.array([2.0, 3.0, 5.0, -2.0])
        np.testing.assert_array_almost_equal(safe_divide(num, den), np.array([5.0, 7/3, 0.0, 2.0]))

    def test_division_by_zero_numpy_array(self):
        num = np.array([5.0, 0.0, -5.0, 1.0])
        den = np.array([0.0, 0.0, 1e-14, 2.0])
        np.testing.assert_array_almost_equal(safe_divide(num, den), np.array([0.0, 0.0, 0.0, 0.5]))
        np.testing.assert_array_almost_equal(safe_divide(num, den, default_on_zero_denom=-1.0),
                                             np.array([-1.0, -1.0, -1.0, 0.5]))


class TestNormalizeVector(unittest.TestCase):

    def test_normalize_3d(self):
        np.testing.assert_array_almost_equal(normalize_vector(np.array([3.0, 4.0, 0.0])), np.array([0.6, 0.8, 0.0]))

    def test_normalize_list_input(self):
        result = normalize_vector([1, 1, 1])
        self.assertAlmostEqual(np.linalg.norm(result), 1.0)

    def test_zero_vector(self):
        np.testing.assert_array_equal(normalize_vector(np.zeros(3)), np.zeros(3))
        np.testing.assert_array_equal(normalize_vector(np.array([1e-15, 0.0, 0.0])), np.zeros(3))


class TestIsFinitePositive(unittest.TestCase):

    def test_accepts_positive_numbers(self):
        self.assertTrue(is_finite_positive(1))
        self.assertTrue(is_finite_positive(1e-300))
        self.assertTrue(is_finite_positive(np.float64(2.5)))

    def test_rejects_invalid_values(self):
        for value in (0, -5, float('nan'), float('inf'), float('-inf'), None, True, 'abc'):
            self.assertFalse(is_finite_positive(value), msg=repr(value))


class TestWrapAngle(unittest.TestCase):

    def test_wraps_into_range(self):
        self.assertAlmostEqual(wrap_angle(-math.pi / 2), 1.5 * math.pi)
        self.assertAlmostEqual(wrap_angle(5 * math.pi), math.pi)
        self.assertEqual(wrap_angle(0.0), 0.0)
        for angle in (-100.0, -2 * math.pi, 2 * math.pi, 1e6):
            wrapped = wrap_angle(angle)
            self.assertGreaterEqual(wrapped, 0.0)
            self.assertLess(wrapped, 2 * math.pi)


class TestOrbitalRotationMatrix(unittest.TestCase):

    def test_identity_for_zero_angles(self):
        np.testing.assert_array_almost_equal(orbital_rotation_matrix(0.0, 0.0, 0.0), np.eye(3))

    def test_is_orthonormal(self):
        rotation = orbital_rotation_matrix(0.7, 1.9, 0.4)
        np.testing.assert_array_almost_equal(rotation @ rotation.T, np.eye(3))
        self.assertAlmostEqual(np.linalg.det(rotation), 1.0)

    def test_polar_inclination_lifts_orbit_plane(self):
        rotation = orbital_rotation_matrix(0.0, 0.0, math.pi / 2)
        np.testing.assert_array_almost_equal(rotation @ np.array([0.0, 1.0, 0.0]), np.array([0.0, 0.0, 1.0]))
        np.testing.assert_array_almost_equal(rotation @ np.array([1.0, 0.0, 0.0]), np.array([1.0, 0.0, 0.0]))

    def test_node_rotates_about_z(self):
        rotation = orbital_rotation_matrix(math.pi / 2, 0.0, 0.0)
        np.testing.assert_array_almost_equal(rotation @ np.array([1.0, 0.0, 0.0]), np.array([0.0, 1.0, 0.0]))


class TestPhysicsError(unittest.TestCase):

    def test_is_exception(self):
        with self.assertRaises(PhysicsError):
            raise PhysicsError("bad elements")


if __name__ == '__main__':
    unittest.main(argv=['first-arg-is-ignored'], exit=False)
