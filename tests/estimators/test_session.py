"""
Unit tests for EstimationSession.

Covers the predict-then-update cycle, singular-S policies, chi-square
gating, and history recording.
"""

import logging

import numpy as np
import pytest

from robot_ekf.errors import DimensionMismatch, SingularInnovationCovariance
from robot_ekf.estimators import (
    EstimationSession,
    ExtendedKalmanFilter,
    GaussianBelief,
    Measurement,
)
from robot_ekf.models import (
    FunctionMeasurementModel,
    FunctionMotionModel,
    PoseMeasurement2D,
    VelocityKinematicsModel,
    VelocityNoiseParams,
)


def static_motion(q_diag=(0.0, 0.01, 0.01)):
    """Identity motion with constant process noise."""
    return FunctionMotionModel(
        f=lambda x: x.copy(),
        F=lambda x: np.eye(3),
        Q=np.diag(q_diag),
        state_size=3,
        discrete=True,
    )


def x_sensor():
    """Observes the first state component only."""
    return FunctionMeasurementModel(
        h=lambda x: x[:1],
        H=lambda x: np.array([[1.0, 0.0, 0.0]]),
        state_size=3,
        measurement_size=1,
    )


@pytest.fixture
def belief():
    return GaussianBelief(np.zeros(3), np.diag([0.1, 0.1, 0.05]))


def test_step_matches_manual_cycle(belief):
    noise = VelocityNoiseParams(0.1, 0.01, 0.01, 0.1)
    session = EstimationSession(belief, VelocityKinematicsModel(noise))
    session.motion_model.set_control(1.0, 0.2)
    meas = Measurement(z=np.array([0.12, 0.01]), R=0.01 * np.eye(2))

    result = session.step(0.1, [(PoseMeasurement2D(), meas)])

    ekf = ExtendedKalmanFilter()
    motion = VelocityKinematicsModel(noise)
    motion.set_control(1.0, 0.2)
    expected = ekf.update_measurement(ekf.predict(belief, motion, 0.1), PoseMeasurement2D(), meas)

    np.testing.assert_allclose(result.mean, expected.mean)
    np.testing.assert_allclose(result.covariance, expected.covariance)
    assert session.belief is result
    assert session.stats.steps == 1
    assert session.stats.updates == 1


def test_step_without_measurements_only_predicts(belief):
    session = EstimationSession(belief, static_motion())
    session.step(None)
    session.step(None)

    assert session.stats.steps == 2
    assert session.stats.updates == 0
    np.testing.assert_allclose(
        session.belief.covariance, np.diag([0.1, 0.12, 0.07])
    )


def test_initial_belief_not_modified(belief):
    session = EstimationSession(belief, static_motion())
    session.step(None, [(x_sensor(), Measurement(np.array([1.0]), np.array([[0.1]])))])

    np.testing.assert_array_equal(belief.mean, np.zeros(3))
    np.testing.assert_array_equal(belief.covariance, np.diag([0.1, 0.1, 0.05]))


class TestSingularPolicy:

    @pytest.fixture
    def degenerate_belief(self):
        return GaussianBelief(np.zeros(3), np.diag([0.0, 1.0, 1.0]))

    def exact_measurement(self):
        return Measurement(z=np.array([1.0]), R=np.zeros((1, 1)))

    def test_raise_policy(self, degenerate_belief):
        session = EstimationSession(degenerate_belief, static_motion())

        with pytest.raises(SingularInnovationCovariance):
            session.step(None, [(x_sensor(), self.exact_measurement())])

    def test_skip_policy_keeps_predicted_belief(self, degenerate_belief, caplog):
        session = EstimationSession(degenerate_belief, static_motion(), on_singular="skip")
        good = Measurement(z=np.array([0.2, 0.3]), R=0.1 * np.eye(2))

        with caplog.at_level(logging.WARNING, logger="robot_ekf.estimators.session"):
            session.step(
                None,
                [(x_sensor(), self.exact_measurement()), (PoseMeasurement2D(), good)],
            )

        assert session.stats.skipped_singular == 1
        assert session.stats.updates == 1
        assert "skipped" in caplog.text
        # the later pose measurement still corrected y
        assert session.belief.mean[1] > 0.0

    def test_skip_with_gate(self, degenerate_belief):
        """A singular S bypasses the gate and falls through to the skip policy."""
        session = EstimationSession(
            degenerate_belief, static_motion(), on_singular="skip", gate_confidence=0.95
        )
        session.step(None, [(x_sensor(), self.exact_measurement())])

        assert session.stats.skipped_singular == 1
        assert session.stats.rejected_by_gate == 0


class TestGating:

    def test_outlier_rejected(self, belief, caplog):
        session = EstimationSession(belief, static_motion(), gate_confidence=0.99)
        outlier = Measurement(z=np.array([50.0, -50.0]), R=0.01 * np.eye(2))

        with caplog.at_level(logging.WARNING, logger="robot_ekf.estimators.session"):
            session.step(None, [(PoseMeasurement2D(), outlier)])

        assert session.stats.rejected_by_gate == 1
        assert session.stats.updates == 0
        np.testing.assert_array_equal(session.belief.mean, np.zeros(3))
        assert "rejected" in caplog.text

    def test_inlier_accepted(self, belief):
        session = EstimationSession(belief, static_motion(), gate_confidence=0.99)
        inlier = Measurement(z=np.array([0.1, -0.1]), R=0.01 * np.eye(2))

        session.step(None, [(PoseMeasurement2D(), inlier)])

        assert session.stats.rejected_by_gate == 0
        assert session.stats.updates == 1

    def test_no_gate_accepts_outlier(self, belief):
        session = EstimationSession(belief, static_motion())
        outlier = Measurement(z=np.array([50.0, -50.0]), R=0.01 * np.eye(2))

        session.step(None, [(PoseMeasurement2D(), outlier)])

        assert session.stats.updates == 1
        assert session.belief.mean[0] > 40.0


def test_history(belief):
    session = EstimationSession(belief, static_motion(), record_history=True)
    for _ in range(3):
        session.step(None)

    assert len(session.history) == 4
    np.testing.assert_array_equal(session.history[0].covariance, belief.covariance)
    np.testing.assert_array_equal(session.history[-1].covariance, session.belief.covariance)
    assert session.history[1].covariance[1, 1] < session.history[2].covariance[1, 1]


def test_history_off_by_default(belief):
    session = EstimationSession(belief, static_motion())
    session.step(None)
    assert session.history == []


class TestConstruction:

    def test_motion_model_size_mismatch(self):
        belief = GaussianBelief(np.zeros(4), np.eye(4))
        with pytest.raises(DimensionMismatch):
            EstimationSession(belief, VelocityKinematicsModel())

    def test_invalid_policy(self, belief):
        with pytest.raises(ValueError):
            EstimationSession(belief, static_motion(), on_singular="ignore")

    def test_invalid_gate_confidence(self, belief):
        with pytest.raises(ValueError):
            EstimationSession(belief, static_motion(), gate_confidence=1.5)
