"""Caller-side estimation loop.

EstimationSession owns one belief and one motion model and runs the
predict-then-update cycle. It is where skip/gate policy lives: the engine
itself always raises, the session decides what a failed measurement means
for the loop.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from robot_ekf.errors import DimensionMismatch, SingularInnovationCovariance
from robot_ekf.estimators.extended_kalman_filter import ExtendedKalmanFilter
from robot_ekf.estimators.gating import chi_square_threshold
from robot_ekf.estimators.types import GaussianBelief, Measurement
from robot_ekf.models.base import MeasurementModel, MotionModel

logger = logging.getLogger(__name__)

SINGULAR_POLICIES = ("raise", "skip")


@dataclass
class SessionStats:
    """Counters kept by an EstimationSession."""

    steps: int = 0
    updates: int = 0
    skipped_singular: int = 0
    rejected_by_gate: int = 0


class EstimationSession:
    """
    Filter loop for one estimated system (e.g. one robot).

    Each session must have its own belief and model instances; models keep
    scratch buffers and are not safe to share between concurrent loops.

    Example:
        >>> session = EstimationSession(belief, VelocityKinematicsModel(noise))
        >>> session.motion_model.set_control(1.0, 0.1)
        >>> session.step(0.1, [(PoseMeasurement2D(), Measurement(z, R))])
    """

    def __init__(
        self,
        belief: GaussianBelief,
        motion_model: MotionModel,
        ekf: Optional[ExtendedKalmanFilter] = None,
        on_singular: str = "raise",
        gate_confidence: Optional[float] = None,
        record_history: bool = False,
    ):
        """
        Args:
            belief: Initial belief (prior).
            motion_model: Motion model applied once per step.
            ekf: Engine to use (default configuration if None).
            on_singular: "raise" to propagate SingularInnovationCovariance,
                "skip" to drop that measurement and keep the current belief.
            gate_confidence: If set, measurements whose NIS exceeds the
                chi-square quantile at this confidence are rejected.
            record_history: Keep a copy of the belief after every step.

        Raises:
            DimensionMismatch: If the motion model does not match the belief.
            ValueError: If a policy value is invalid.
        """
        if motion_model.state_size != belief.state_size:
            raise DimensionMismatch(
                f"Motion model state size {motion_model.state_size} does not match "
                f"belief state size {belief.state_size}"
            )
        if on_singular not in SINGULAR_POLICIES:
            raise ValueError(
                f"on_singular must be one of {SINGULAR_POLICIES}, got {on_singular!r}"
            )
        if gate_confidence is not None and not (0 < gate_confidence < 1):
            raise ValueError(f"gate_confidence must be in (0, 1), got {gate_confidence}")

        self.belief = belief
        self.motion_model = motion_model
        self.ekf = ekf if ekf is not None else ExtendedKalmanFilter()
        self.on_singular = on_singular
        self.gate_confidence = gate_confidence
        self.record_history = record_history

        self.stats = SessionStats()
        self.history: List[GaussianBelief] = [belief.copy()] if record_history else []

    def step(
        self,
        dt: Optional[float],
        measurements: Iterable[Tuple[MeasurementModel, Measurement]] = (),
    ) -> GaussianBelief:
        """
        Run one cycle: predict once, then apply each measurement in order.

        Args:
            dt: Elapsed time since the previous step.
            measurements: (model, Measurement) pairs observed at this step.

        Returns:
            The session's belief after the cycle.
        """
        self.belief = self.ekf.predict(self.belief, self.motion_model, dt)
        self.stats.steps += 1

        for model, measurement in measurements:
            if self.gate_confidence is not None and not self._passes_gate(model, measurement):
                continue
            try:
                self.belief = self.ekf.update_measurement(self.belief, model, measurement)
            except SingularInnovationCovariance as e:
                if self.on_singular == "raise":
                    raise
                self.stats.skipped_singular += 1
                logger.warning(
                    "step %d: skipped %s measurement (%s)",
                    self.stats.steps, type(model).__name__, e,
                )
                continue
            self.stats.updates += 1

        if self.record_history:
            self.history.append(self.belief.copy())
        return self.belief

    def _passes_gate(self, model: MeasurementModel, measurement: Measurement) -> bool:
        innovation = self.ekf.innovation(self.belief, model, measurement.z, measurement.R)
        if innovation.nis is None:
            # singular S: let update() apply the on_singular policy
            return True

        threshold = chi_square_threshold(measurement.size, self.gate_confidence)
        logger.debug("step %d: NIS=%.4g (threshold %.4g)", self.stats.steps, innovation.nis, threshold)
        if innovation.nis < threshold:
            return True

        self.stats.rejected_by_gate += 1
        logger.warning(
            "step %d: rejected %s measurement, NIS %.4g >= %.4g",
            self.stats.steps, type(model).__name__, innovation.nis, threshold,
        )
        return False
