"""Unit tests for robot_ekf.utils (angle wrapping and linear algebra helpers)."""

import unittest

import numpy as np

from robot_ekf.utils import (
    angle_diff,
    condition_number,
    congruence,
    is_positive_semidefinite,
    is_symmetric,
    kalman_gain,
    mahalanobis_squared,
    symmetrize,
    wrap_angle,
    wrap_angle_array,
)


class TestAngles(unittest.TestCase):

    def test_wrap_angle(self) -> None:
        self.assertAlmostEqual(wrap_angle(0.5), 0.5)
        self.assertAlmostEqual(wrap_angle(3.5 * np.pi), -0.5 * np.pi)
        self.assertAlmostEqual(wrap_angle(-2 * np.pi + 0.1), 0.1)
        self.assertIsInstance(wrap_angle(1.0), float)

    def test_wrap_angle_array(self) -> None:
        wrapped = wrap_angle_array([0.0, 2 * np.pi + 0.2, -3 * np.pi / 2])
        np.testing.assert_allclose(wrapped, [0.0, 0.2, np.pi / 2], atol=1e-12)
        self.assertTrue(np.all(np.abs(wrap_angle_array(np.linspace(-20, 20, 101))) <= np.pi))

    def test_angle_diff_across_seam(self) -> None:
        measured = np.deg2rad(179.0)
        predicted = np.deg2rad(-179.0)
        self.assertAlmostEqual(angle_diff(measured, predicted), np.deg2rad(-2.0))
        self.assertAlmostEqual(angle_diff(predicted, measured), np.deg2rad(2.0))

    def test_angle_diff_arrays(self) -> None:
        diff = angle_diff(np.array([np.pi - 0.1, 0.3]), np.array([-np.pi + 0.1, 0.1]))
        np.testing.assert_allclose(diff, [-0.2, 0.2], atol=1e-12)


class TestLinalg(unittest.TestCase):

    def test_symmetrize(self) -> None:
        P = np.array([[1.0, 0.2], [0.4, 2.0]])
        P_sym = symmetrize(P)
        np.testing.assert_allclose(P_sym, [[1.0, 0.3], [0.3, 2.0]])
        np.testing.assert_array_equal(P_sym, P_sym.T)

    def test_congruence(self) -> None:
        A = np.array([[1.0, 2.0], [0.0, 1.0]])
        P = np.diag([1.0, 3.0])
        np.testing.assert_allclose(congruence(A, P), A @ P @ A.T)

    def test_symmetry_and_psd_checks(self) -> None:
        self.assertTrue(is_symmetric(np.eye(3)))
        self.assertFalse(is_symmetric(np.array([[1.0, 1.0], [0.0, 1.0]])))
        self.assertFalse(is_symmetric(np.ones((2, 3))))

        self.assertTrue(is_positive_semidefinite(np.diag([1.0, 0.0])))
        self.assertFalse(is_positive_semidefinite(np.diag([1.0, -1e-3])))
        self.assertTrue(is_positive_semidefinite(np.diag([1.0, -1e-12])))

    def test_condition_number(self) -> None:
        self.assertAlmostEqual(condition_number(np.diag([10.0, 1.0])), 10.0)
        self.assertEqual(condition_number(np.zeros((2, 2))), float("inf"))

    def test_kalman_gain_matches_explicit_inverse(self) -> None:
        rng = np.random.default_rng(3)
        A = rng.normal(size=(4, 4))
        P = A @ A.T + np.eye(4)
        H = rng.normal(size=(2, 4))
        S = H @ P @ H.T + 0.5 * np.eye(2)

        K = kalman_gain(P, H, S)

        np.testing.assert_allclose(K, P @ H.T @ np.linalg.inv(S), rtol=1e-10, atol=1e-12)

    def test_kalman_gain_rejects_indefinite_s(self) -> None:
        with self.assertRaises(np.linalg.LinAlgError):
            kalman_gain(np.eye(2), np.eye(2), np.diag([1.0, -1.0]))

    def test_mahalanobis_squared(self) -> None:
        self.assertAlmostEqual(mahalanobis_squared(np.array([2.0, 3.0]), np.diag([4.0, 9.0])), 2.0)


if __name__ == "__main__":
    unittest.main()
