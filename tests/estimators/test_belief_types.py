"""Unit tests for GaussianBelief and Measurement data types."""

import unittest

import numpy as np

from robot_ekf.errors import DimensionMismatch
from robot_ekf.estimators import GaussianBelief, Measurement


class TestGaussianBelief(unittest.TestCase):
    """Test suite for GaussianBelief."""

    def test_valid_construction(self) -> None:
        belief = GaussianBelief(np.array([1.0, 2.0, 0.5]), np.diag([0.1, 0.2, 0.3]))

        self.assertEqual(belief.state_size, 3)
        np.testing.assert_array_equal(belief.mean, [1.0, 2.0, 0.5])
        np.testing.assert_array_equal(belief.covariance, np.diag([0.1, 0.2, 0.3]))

    def test_accepts_lists(self) -> None:
        belief = GaussianBelief([0, 0], [[1, 0], [0, 1]])
        self.assertEqual(belief.mean.dtype, np.float64)

    def test_covariance_shape_mismatch(self) -> None:
        with self.assertRaises(DimensionMismatch) as ctx:
            GaussianBelief(np.zeros(3), np.eye(2))
        self.assertEqual(ctx.exception.expected, (3, 3))
        self.assertEqual(ctx.exception.actual, (2, 2))

    def test_mean_must_be_1d(self) -> None:
        with self.assertRaises(DimensionMismatch):
            GaussianBelief(np.zeros((3, 1)), np.eye(3))

    def test_dimension_mismatch_is_value_error(self) -> None:
        with self.assertRaises(ValueError):
            GaussianBelief(np.zeros(2), np.eye(3))

    def test_non_symmetric_covariance_rejected(self) -> None:
        with self.assertRaises(ValueError):
            GaussianBelief(np.zeros(2), np.array([[1.0, 0.5], [0.0, 1.0]]))

    def test_indefinite_covariance_rejected(self) -> None:
        with self.assertRaises(ValueError):
            GaussianBelief(np.zeros(2), np.diag([1.0, -0.5]))

    def test_inputs_are_copied(self) -> None:
        mean = np.zeros(2)
        cov = np.eye(2)
        belief = GaussianBelief(mean, cov)
        mean[0] = 10.0
        cov[0, 0] = 10.0
        self.assertEqual(belief.mean[0], 0.0)
        self.assertEqual(belief.covariance[0, 0], 1.0)

    def test_views_are_read_only(self) -> None:
        belief = GaussianBelief(np.zeros(2), np.eye(2))
        with self.assertRaises(ValueError):
            belief.mean[0] = 1.0
        with self.assertRaises(ValueError):
            belief.covariance[0, 0] = 2.0

    def test_replace(self) -> None:
        belief = GaussianBelief(np.zeros(2), np.eye(2))
        belief.replace(np.array([1.0, 2.0]), 2.0 * np.eye(2))

        np.testing.assert_array_equal(belief.mean, [1.0, 2.0])
        np.testing.assert_array_equal(belief.covariance, 2.0 * np.eye(2))

    def test_failed_replace_leaves_belief_unchanged(self) -> None:
        belief = GaussianBelief(np.zeros(2), np.eye(2))

        with self.assertRaises(DimensionMismatch):
            belief.replace(np.array([1.0, 2.0]), np.eye(3))
        with self.assertRaises(DimensionMismatch):
            belief.replace(np.array([1.0, 2.0, 3.0]), np.eye(2))

        np.testing.assert_array_equal(belief.mean, [0.0, 0.0])
        np.testing.assert_array_equal(belief.covariance, np.eye(2))

    def test_copy_is_independent(self) -> None:
        belief = GaussianBelief(np.zeros(2), np.eye(2))
        clone = belief.copy()
        clone.replace(np.ones(2), 3.0 * np.eye(2))

        np.testing.assert_array_equal(belief.mean, [0.0, 0.0])
        np.testing.assert_array_equal(clone.mean, [1.0, 1.0])


class TestMeasurement(unittest.TestCase):
    """Test suite for Measurement dataclass."""

    def test_valid_measurement(self) -> None:
        meas = Measurement(z=np.array([1.0, 2.0]), R=np.diag([0.1, 0.2]))
        self.assertEqual(meas.size, 2)
        np.testing.assert_array_equal(meas.z, [1.0, 2.0])

    def test_coerces_lists(self) -> None:
        meas = Measurement(z=[1, 2], R=[[1, 0], [0, 1]])
        self.assertIsInstance(meas.z, np.ndarray)
        self.assertEqual(meas.R.dtype, np.float64)

    def test_r_shape_mismatch(self) -> None:
        with self.assertRaises(DimensionMismatch):
            Measurement(z=np.array([1.0, 2.0]), R=np.eye(3))

    def test_z_must_be_1d(self) -> None:
        with self.assertRaises(DimensionMismatch):
            Measurement(z=np.array([[1.0]]), R=np.eye(1))

    def test_asymmetric_r(self) -> None:
        with self.assertRaises(ValueError):
            Measurement(z=np.zeros(2), R=np.array([[1.0, 0.3], [0.0, 1.0]]))

    def test_negative_definite_r(self) -> None:
        with self.assertRaises(ValueError):
            Measurement(z=np.zeros(1), R=np.array([[-1.0]]))

    def test_frozen(self) -> None:
        meas = Measurement(z=np.zeros(1), R=np.eye(1))
        with self.assertRaises(AttributeError):
            meas.z = np.ones(1)


if __name__ == "__main__":
    unittest.main()
