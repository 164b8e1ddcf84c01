"""
Motion models (process models) for the EKF.

Provides:
- VelocityKinematicsModel: 2D robot driven by translational/angular velocity
- ConstantVelocityModel: linear constant-velocity model in 1, 2 or 3 axes
- Process noise helpers

References:
    S. Thrun, W. Burgard, D. Fox, "Probabilistic Robotics", MIT Press 2006,
    Section 5.3 and Table 5.3 (velocity motion model, EKF linearization).
"""

import logging
import warnings
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import numpy as np

from robot_ekf.models.base import MotionModel
from robot_ekf.utils.linalg import symmetrize

logger = logging.getLogger(__name__)


def validate_time_step(dt: Optional[float], model_name: str = "motion model") -> float:
    """
    Validate the elapsed time passed to a time-variant model.

    Args:
        dt: Time step in seconds.
        model_name: Name of model for error messages.

    Returns:
        dt as float.

    Raises:
        ValueError: If dt is missing or negative.
        TypeError: If dt is not numeric.
    """
    if dt is None:
        raise ValueError(f"{model_name}: dt is required for a time-variant model")
    if not isinstance(dt, (int, float, np.floating, np.integer)):
        raise TypeError(f"{model_name}: dt must be numeric, got {type(dt)}")
    if dt < 0:
        raise ValueError(f"{model_name}: dt must be non-negative, got {dt}")
    if dt > 10.0:
        warnings.warn(
            f"{model_name}: dt={dt}s is unusually large. "
            "Check units (should be seconds).",
            RuntimeWarning
        )
    return float(dt)


@dataclass(frozen=True)
class VelocityNoiseParams:
    """Robot-specific control noise coefficients a1..a4.

    They scale control magnitude into control-noise variance:

        M = diag(a1·v² + a2·ω², a3·v² + a4·ω²)

    Attributes:
        a1: Translational variance per unit v².
        a2: Translational variance per unit ω².
        a3: Angular variance per unit v².
        a4: Angular variance per unit ω².
    """

    a1: float = 0.0
    a2: float = 0.0
    a3: float = 0.0
    a4: float = 0.0

    def __post_init__(self) -> None:
        for name in ("a1", "a2", "a3", "a4"):
            value = getattr(self, name)
            if not isinstance(value, (int, float, np.floating, np.integer)):
                raise TypeError(f"{name} must be numeric, got {type(value)}")
            if not np.isfinite(value) or value < 0:
                raise ValueError(f"{name} must be a finite non-negative number, got {value}")

    @classmethod
    def from_dict(cls, params: Mapping[str, Any]) -> "VelocityNoiseParams":
        """Build from a mapping such as a parsed calibration file."""
        unknown = set(params) - {"a1", "a2", "a3", "a4"}
        if unknown:
            raise ValueError(f"Unknown noise parameters: {sorted(unknown)}")
        return cls(**{k: float(v) for k, v in params.items()})

    def control_noise(self, v: float, omega: float) -> np.ndarray:
        """2x2 control noise covariance M for the given controls."""
        return np.diag([
            self.a1 * v * v + self.a2 * omega * omega,
            self.a3 * v * v + self.a4 * omega * omega,
        ])


class VelocityKinematicsModel(MotionModel):
    """
    2D robot kinematics driven by translational and angular velocity.

    State: x = [x, y, θ]
    Control: u = [v, ω] set with set_control() before compute()

    Motion model (ω ≠ 0):
        x' = x + v/ω·(-sin θ + sin(θ + ω·dt))
        y' = y + v/ω·( cos θ - cos(θ + ω·dt))
        θ' = θ + ω·dt

    At ω = 0 the arc formula is a removable singularity and the straight
    line closed form is used instead:
        x' = x + v·cos θ·dt
        y' = y + v·sin θ·dt
        θ' = θ + ω·dt   (= θ at ω = 0)

    Process noise is the control noise M mapped into state space through
    the control Jacobian V = ∂f/∂u:

        Q = V M V^T

    Example:
        >>> model = VelocityKinematicsModel(VelocityNoiseParams(0.1, 0.01, 0.01, 0.1))
        >>> model.set_control(1.0, 0.0)
        >>> model.compute(np.zeros(3), dt=1.0)
        >>> model.predicted_mean()
        array([1., 0., 0.])
    """

    def __init__(
        self,
        noise: Optional[VelocityNoiseParams] = None,
        angular_velocity_threshold: float = 1e-6,
    ):
        """
        Configure the robot motion model.

        Args:
            noise: Control noise coefficients a1..a4 (all zero if None).
            angular_velocity_threshold: |ω| at or below which the straight
                line branch is taken (rad/s). Zero means exact equality.

        Raises:
            ValueError: If the threshold is negative.
        """
        super().__init__(state_size=3)
        if angular_velocity_threshold < 0:
            raise ValueError(
                f"angular_velocity_threshold must be non-negative, got {angular_velocity_threshold}"
            )
        self.noise = noise if noise is not None else VelocityNoiseParams()
        self.angular_velocity_threshold = float(angular_velocity_threshold)

        self.v = 0.0
        self.omega = 0.0

        # control Jacobian and control noise
        self._V = np.zeros((3, 2))
        self._M = np.zeros((2, 2))

    def set_control(self, translational_velocity: float, angular_velocity: float) -> None:
        """
        Specify velocity controls used by the next compute().

        Args:
            translational_velocity: v in m/s.
            angular_velocity: ω in rad/s.
        """
        self.v = float(translational_velocity)
        self.omega = float(angular_velocity)

    def is_straight(self) -> bool:
        """True if the current control selects the straight-line branch."""
        return abs(self.omega) <= self.angular_velocity_threshold

    def _compute(self, mean: np.ndarray, dt: Optional[float]) -> None:
        T = validate_time_step(dt, "VelocityKinematicsModel")
        x, y, theta = mean
        v, w = self.v, self.omega

        s = np.sin(theta)
        c = np.cos(theta)

        self._F[:] = np.eye(3)
        self._V[:] = 0.0

        if self.is_straight():
            logger.debug("straight-line branch: v=%.6g, omega=%.3g", v, w)
            self._x_pred[0] = x + v * c * T
            self._x_pred[1] = y + v * s * T
            self._x_pred[2] = theta + w * T

            self._F[0, 2] = -v * s * T
            self._F[1, 2] = v * c * T

            self._V[0, 0] = c * T
            self._V[1, 0] = s * T
            self._V[2, 1] = T
        else:
            r = v / w
            d_theta = w * T

            sp = np.sin(theta + d_theta)
            cp = np.cos(theta + d_theta)

            self._x_pred[0] = x + r * (-s + sp)
            self._x_pred[1] = y + r * (c - cp)
            self._x_pred[2] = theta + d_theta

            self._F[0, 2] = r * (-c + cp)
            self._F[1, 2] = r * (-s + sp)

            self._V[0, 0] = (-s + sp) / w
            self._V[0, 1] = v * (s - sp) / (w * w) + r * cp * T
            self._V[1, 0] = (c - cp) / w
            self._V[1, 1] = -v * (c - cp) / (w * w) + r * sp * T
            self._V[2, 1] = T

        self._M[:] = self.noise.control_noise(v, w)
        self._Q[:] = symmetrize(self._V @ self._M @ self._V.T)

    def control_jacobian(self) -> np.ndarray:
        """Control Jacobian V = ∂f/∂[v, ω] (3x2) from the last compute()."""
        self._require_computed()
        return self._V.copy()

    def control_noise(self) -> np.ndarray:
        """Control noise covariance M (2x2) from the last compute()."""
        self._require_computed()
        return self._M.copy()


def create_process_noise_continuous_white_acceleration(
    dt: float,
    q: float,
    dim: int = 2
) -> np.ndarray:
    """
    Process noise covariance for a continuous white acceleration model.

    State ordering is all positions first, then all velocities:
    [p_1, ..., p_dim, v_1, ..., v_dim].

    Args:
        dt: Time step in seconds
        q: Process noise intensity (acceleration spectral density, m²/s³)
        dim: Spatial dimension (1, 2, or 3)

    Returns:
        (2·dim × 2·dim) process noise covariance matrix

    Example:
        >>> Q = create_process_noise_continuous_white_acceleration(dt=0.1, q=0.5, dim=2)
        >>> Q.shape
        (4, 4)
    """
    if dim not in (1, 2, 3):
        raise ValueError(f"Dimension must be 1, 2, or 3, got {dim}")
    if q < 0:
        raise ValueError(f"q must be non-negative, got {q}")

    Q_1d = q * np.array([
        [dt**3 / 3, dt**2 / 2],
        [dt**2 / 2, dt]
    ])
    return np.kron(Q_1d, np.eye(dim))


class ConstantVelocityModel(MotionModel):
    """
    Constant velocity motion model in 1, 2 or 3 axes.

    State: x = [p_1..p_dim, v_1..v_dim]
    Dynamics: p' = p + v·dt, v' = v

    The model is linear, so F does not depend on the state.

    Example:
        >>> model = ConstantVelocityModel(dim=2, q=0.1)
        >>> model.compute(np.array([0.0, 0.0, 1.0, 0.5]), dt=0.5)
        >>> model.predicted_mean()[:2]
        array([0.5 , 0.25])
    """

    def __init__(self, dim: int = 2, q: float = 1.0):
        if dim not in (1, 2, 3):
            raise ValueError(f"Dimension must be 1, 2, or 3, got {dim}")
        if q < 0:
            raise ValueError(f"q must be non-negative, got {q}")
        super().__init__(state_size=2 * dim)
        self.dim = dim
        self.q = float(q)

    def _compute(self, mean: np.ndarray, dt: Optional[float]) -> None:
        T = validate_time_step(dt, "ConstantVelocityModel")
        self._F[:] = np.kron(np.array([[1.0, T], [0.0, 1.0]]), np.eye(self.dim))
        self._x_pred[:] = self._F @ mean
        self._Q[:] = create_process_noise_continuous_white_acceleration(T, self.q, self.dim)
