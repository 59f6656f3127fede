# physics_utils.py

import math
import numpy as np

class PhysicsError(Exception):
    """Custom exception for orbital-mechanics errors, including numerical issues."""
    pass

def safe_divide(numerator, denominator, epsilon=1e-12, default_on_zero_denom=0.0):
    """
    Safely divides two numbers, handling potential division by zero.

    Args:
        numerator (float or np.ndarray): The number(s) to be divided.
        denominator (float or np.ndarray): The number(s) to divide by.
        epsilon (float): Threshold below which the denominator is considered zero.
        default_on_zero_denom (float): Value to return where the denominator is effectively zero.

    Returns:
        float or np.ndarray: The quotient, or default_on_zero_denom where the denominator is near zero.
    """
    if isinstance(denominator, np.ndarray):
        is_zero = np.abs(denominator) < epsilon
        result = np.divide(numerator, denominator, out=np.zeros_like(denominator, dtype=np.float64), where=~is_zero)
        result[is_zero] = default_on_zero_denom
        return result
    if abs(denominator) < epsilon:
        return default_on_zero_denom
    return numerator / denominator

def normalize_vector(vector, epsilon=1e-12):
    """
    Normalizes a vector to unit length.

    Args:
        vector (np.ndarray): The vector to normalize.
        epsilon (float): Threshold below which the vector's magnitude is considered zero.

    Returns:
        np.ndarray: The unit vector, or a zero vector of the same shape if the
                    magnitude is close to zero.
    """
    if not isinstance(vector, np.ndarray):
        vector = np.array(vector, dtype=float)

    norm = np.linalg.norm(vector)
    if norm < epsilon:
        return np.zeros_like(vector, dtype=float)
    return vector / norm

def is_finite_positive(value) -> bool:
    """True for a real, finite number strictly greater than zero (bools excluded)."""
    if value is None or isinstance(value, bool):
        return False
    try:
        value = float(value)
    except (TypeError, ValueError):
        return False
    return math.isfinite(value) and value > 0.0

def wrap_angle(angle_rad: float) -> float:
    """Wraps an angle into [0, 2*pi)."""
    wrapped = math.fmod(angle_rad, 2.0 * math.pi)
    if wrapped < 0.0:
        wrapped += 2.0 * math.pi
    # fmod of a value just below a multiple of 2*pi can round up to exactly 2*pi
    if wrapped >= 2.0 * math.pi:
        wrapped = 0.0
    return wrapped

def orbital_rotation_matrix(longitude_of_ascending_node_rad: float,
                            argument_of_periapsis_rad: float,
                            inclination_rad: float) -> np.ndarray:
    """
    Builds the perifocal-to-reference rotation R = Rz(Omega) . Rx(i) . Rz(omega).

    The reference frame has its x-y plane on the parent's equator/ecliptic and z
    along the orbit normal of a zero-inclination body.

    Args:
        longitude_of_ascending_node_rad: Omega, in radians.
        argument_of_periapsis_rad: omega, in radians.
        inclination_rad: i, in radians.

    Returns:
        np.ndarray: 3x3 rotation matrix.
    """
    cos_O, sin_O = math.cos(longitude_of_ascending_node_rad), math.sin(longitude_of_ascending_node_rad)
    cos_w, sin_w = math.cos(argument_of_periapsis_rad), math.sin(argument_of_periapsis_rad)
    cos_i, sin_i = math.cos(inclination_rad), math.sin(inclination_rad)

    return np.array([
        [cos_O * cos_w - sin_O * sin_w * cos_i, -cos_O * sin_w - sin_O * cos_w * cos_i,  sin_O * sin_i],
        [sin_O * cos_w + cos_O * sin_w * cos_i, -sin_O * sin_w + cos_O * cos_w * cos_i, -cos_O * sin_i],
        [sin_w * sin_i,                          cos_w * sin_i,                          cos_i],
    ], dtype=np.float64)

if __name__ == '__main__':
    print("--- safe_divide ---")
    print(f"5 / 2 = {safe_divide(5, 2)}")
    print(f"5 / 0 (default 0.0) = {safe_divide(5, 0)}")
    print(f"Array division: {safe_divide(np.array([1.0, 6.0]), np.array([2.0, 0.0]))}")

    print("\n--- normalize_vector ---")
    print(f"Normalize [3, 4, 0]: {normalize_vector(np.array([3.0, 4.0, 0.0]))}")
    print(f"Normalize [0, 0, 0]: {normalize_vector(np.array([0.0, 0.0, 0.0]))}")

    print("\n--- wrap_angle / orbital_rotation_matrix ---")
    print(f"wrap_angle(-pi/2) = {wrap_angle(-math.pi / 2)}")
    print(f"Identity rotation:\n{orbital_rotation_matrix(0.0, 0.0, 0.0)}")
