"""
Extended Kalman Filter engine.

The engine owns no model logic and no belief. Each call receives the belief
and the model to apply, and returns a new belief:

    Prediction (motion model f, evaluated at the prior mean x):
        x' = f(x)
        P' = F P F^T + Q,               F = ∂f/∂x |_x

    Update (measurement model h, evaluated at the predicted mean x'):
        y  = z - h(x')
        S  = H P' H^T + R,              H = ∂h/∂x |_x'
        K  = P' H^T S^{-1}
        x'' = x' + K y
        P'' = (I - K H) P'
        P'' <- 0.5 (P'' + P''^T)

Ordering is the caller's responsibility: predict exactly once per control
input before each update. Calling update() on a belief that was never
predicted is still a valid Bayesian update of the prior, but is a caller
error whenever the filter is driven by motion.
"""

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple

import numpy as np

from robot_ekf.errors import (
    DimensionMismatch,
    SingularInnovationCovariance,
    check_matrix,
    check_vector,
)
from robot_ekf.estimators.types import GaussianBelief, Innovation, Measurement
from robot_ekf.models.base import MeasurementModel, MotionModel
from robot_ekf.utils.linalg import (
    condition_number,
    congruence,
    kalman_gain,
    mahalanobis_squared,
    symmetrize,
)

logger = logging.getLogger(__name__)

COVARIANCE_FORMS = ("standard", "joseph")


@dataclass(frozen=True)
class EKFConfig:
    """Numerical settings of the EKF engine.

    Attributes:
        max_condition_number: Innovation covariances S with a larger
            condition number are treated as singular.
        symmetrize: Average covariances with their transpose after each step.
        covariance_form: "standard" for P'' = (I - K H) P', or "joseph" for
            P'' = (I - K H) P' (I - K H)^T + K R K^T.
    """

    max_condition_number: float = 1e12
    symmetrize: bool = True
    covariance_form: str = "standard"

    def __post_init__(self) -> None:
        if not self.max_condition_number > 1.0:
            raise ValueError(
                f"max_condition_number must be > 1, got {self.max_condition_number}"
            )
        if self.covariance_form not in COVARIANCE_FORMS:
            raise ValueError(
                f"covariance_form must be one of {COVARIANCE_FORMS}, "
                f"got {self.covariance_form!r}"
            )

    @classmethod
    def from_dict(cls, params: Mapping[str, Any]) -> "EKFConfig":
        """Build from a mapping such as a parsed configuration file."""
        unknown = set(params) - {"max_condition_number", "symmetrize", "covariance_form"}
        if unknown:
            raise ValueError(f"Unknown EKF config keys: {sorted(unknown)}")
        return cls(**params)


class ExtendedKalmanFilter:
    """
    Extended Kalman Filter for nonlinear systems.

    The EKF linearizes the motion and measurement models around the current
    estimate. Models are passed per call, so one engine can serve several
    sensors, and models can be swapped between cycles as long as their
    dimensions match the belief.

    Example:
        >>> ekf = ExtendedKalmanFilter()
        >>> belief = GaussianBelief(np.zeros(3), 0.1 * np.eye(3))
        >>> motion = VelocityKinematicsModel(VelocityNoiseParams(0.1, 0.01, 0.01, 0.1))
        >>> motion.set_control(1.0, 0.2)
        >>> belief = ekf.predict(belief, motion, dt=0.1)
        >>> belief = ekf.update(belief, PoseMeasurement2D(), np.array([0.1, 0.0]), 0.01 * np.eye(2))
    """

    def __init__(self, config: Optional[EKFConfig] = None):
        self.config = config if config is not None else EKFConfig()

    def predict(
        self,
        belief: GaussianBelief,
        motion_model: MotionModel,
        dt: Optional[float] = None,
    ) -> GaussianBelief:
        """
        Prediction step (time update).

        The model's Jacobian F is evaluated at the prior mean, i.e. before
        the state is propagated.

        Args:
            belief: Prior belief N(x, P). Not modified.
            motion_model: Motion model providing f, F and Q.
            dt: Elapsed time, required for time-variant models.

        Returns:
            Predicted belief N(x', P').

        Raises:
            DimensionMismatch: If the model's state size differs from the
                belief's, or the model returns arrays of the wrong shape.
        """
        n = belief.state_size
        if motion_model.state_size != n:
            raise DimensionMismatch(
                f"Motion model state size {motion_model.state_size} does not match "
                f"belief state size {n}",
                expected=(n,),
                actual=(motion_model.state_size,),
            )

        motion_model.compute(belief.mean, dt)

        x_pred = check_vector(motion_model.predicted_mean(), n, "Predicted mean")
        F = check_matrix(motion_model.jacobian(), n, n, "Motion Jacobian F")
        Q = check_matrix(motion_model.process_noise(), n, n, "Process noise Q")

        P_pred = congruence(F, belief.covariance) + Q
        if self.config.symmetrize:
            P_pred = symmetrize(P_pred)

        predicted = belief.copy()
        predicted.replace(x_pred, P_pred)
        return predicted

    def update(
        self,
        belief: GaussianBelief,
        measurement_model: MeasurementModel,
        z: np.ndarray,
        R: np.ndarray,
    ) -> GaussianBelief:
        """
        Measurement update (correction step).

        Args:
            belief: Predicted belief N(x', P'). Not modified.
            measurement_model: Measurement model providing h and H.
            z: Measurement vector (m,).
            R: Measurement noise covariance (m × m).

        Returns:
            Posterior belief N(x'', P'').

        Raises:
            DimensionMismatch: If z, R or the model disagree with each other
                or with the belief.
            SingularInnovationCovariance: If S is not positive definite or is
                too ill-conditioned. The caller decides whether to skip the
                measurement or retry with a regularized R.
        """
        H, y, S, R = self._innovation_terms(belief, measurement_model, z, R)

        cond = condition_number(S)
        if cond > self.config.max_condition_number:
            raise SingularInnovationCovariance(
                f"Innovation covariance is ill-conditioned (cond={cond:.3g}, "
                f"limit={self.config.max_condition_number:.3g})",
                condition_number=cond,
            )

        P = belief.covariance
        try:
            K = kalman_gain(P, H, S)
        except np.linalg.LinAlgError as e:
            raise SingularInnovationCovariance(
                f"Innovation covariance is not positive definite: {e}",
                condition_number=cond,
            ) from e

        x_post = belief.mean + K @ y

        I_KH = np.eye(belief.state_size) - K @ H
        if self.config.covariance_form == "joseph":
            P_post = congruence(I_KH, P) + congruence(K, R)
        else:
            P_post = I_KH @ P

        if self.config.symmetrize:
            P_post = symmetrize(P_post)

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "EKF update: |y|=%.4g, cond(S)=%.3g, trace P %.4g -> %.4g",
                np.linalg.norm(y), cond, np.trace(P), np.trace(P_post),
            )

        posterior = belief.copy()
        posterior.replace(x_post, P_post)
        return posterior

    def update_measurement(
        self,
        belief: GaussianBelief,
        measurement_model: MeasurementModel,
        measurement: Measurement,
    ) -> GaussianBelief:
        """update() taking a Measurement packet."""
        return self.update(belief, measurement_model, measurement.z, measurement.R)

    def innovation(
        self,
        belief: GaussianBelief,
        measurement_model: MeasurementModel,
        z: np.ndarray,
        R: np.ndarray,
    ) -> Innovation:
        """
        Innovation and its covariance, without updating the belief.

        Useful for consistency checks and outlier gating before update().

        Returns:
            Innovation with y, S and the normalized innovation squared
            (nis is None when S is not positive definite).
        """
        _, y, S, _ = self._innovation_terms(belief, measurement_model, z, R)
        try:
            nis = mahalanobis_squared(y, S)
        except np.linalg.LinAlgError:
            nis = None
        return Innovation(y=y, S=S, nis=nis)

    def _innovation_terms(
        self,
        belief: GaussianBelief,
        measurement_model: MeasurementModel,
        z: np.ndarray,
        R: np.ndarray,
    ) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        """Validate inputs, then return (H, y, S, R)."""
        n = belief.state_size
        m = measurement_model.measurement_size
        if measurement_model.state_size != n:
            raise DimensionMismatch(
                f"Measurement model state size {measurement_model.state_size} does not "
                f"match belief state size {n}",
                expected=(n,),
                actual=(measurement_model.state_size,),
            )
        z = check_vector(z, m, "Measurement z")
        R = check_matrix(R, m, m, "Measurement noise R")

        measurement_model.compute(belief.mean)
        z_pred = check_vector(
            measurement_model.predicted_measurement(), m, "Predicted measurement"
        )
        H = check_matrix(measurement_model.jacobian(), m, n, "Measurement Jacobian H")

        y = measurement_model.innovation(z, z_pred)
        S = symmetrize(congruence(H, belief.covariance) + R)
        return H, y, S, R
