"""
Capability interfaces for motion and measurement models.

The EKF engine holds no model logic of its own. It drives any object that
implements one of these two contracts:

    MotionModel:       compute(x, dt) -> x' = f(x), F = ∂f/∂x, Q
    MeasurementModel:  compute(x')    -> h(x'), H = ∂h/∂x

Concrete models keep their results in scratch buffers allocated once at
construction and overwritten on every compute() call. A model instance is
therefore NOT safe to share between threads; give each estimation loop its
own instances.
"""

from abc import ABC, abstractmethod
from typing import Optional

import numpy as np

from robot_ekf.errors import check_vector


class MotionModel(ABC):
    """Abstract base class for process (motion) models.

    Subclasses declare the state dimension, allocate the three result
    buffers in __init__ and fill them in compute().
    """

    def __init__(self, state_size: int):
        """
        Allocate result buffers.

        Args:
            state_size: Dimension n of the state vector.
        """
        if state_size <= 0:
            raise ValueError(f"state_size must be positive, got {state_size}")
        self._state_size = state_size
        self._x_pred = np.zeros(state_size)
        self._F = np.eye(state_size)
        self._Q = np.zeros((state_size, state_size))
        self._computed = False

    @property
    def state_size(self) -> int:
        """Declared dimension of the state vector."""
        return self._state_size

    def compute(self, mean: np.ndarray, dt: Optional[float] = None) -> None:
        """
        Recompute predicted mean, state Jacobian and process noise.

        The Jacobian is evaluated at `mean`, the pre-prediction estimate.

        Args:
            mean: Current state estimate (n,).
            dt: Elapsed time in seconds. Required by time-variant models,
                ignored by discrete-step models.

        Raises:
            DimensionMismatch: If mean does not have length state_size.
        """
        mean = check_vector(mean, self._state_size, f"{type(self).__name__} state")
        self._compute(mean, dt)
        self._computed = True

    @abstractmethod
    def _compute(self, mean: np.ndarray, dt: Optional[float]) -> None:
        """Fill self._x_pred, self._F and self._Q for a validated mean."""

    def _require_computed(self) -> None:
        if not self._computed:
            raise RuntimeError(f"{type(self).__name__}.compute() has not been called")

    def predicted_mean(self) -> np.ndarray:
        """Predicted mean x' from the last compute() (copy)."""
        self._require_computed()
        return self._x_pred.copy()

    def jacobian(self) -> np.ndarray:
        """State Jacobian F = ∂f/∂x from the last compute() (copy)."""
        self._require_computed()
        return self._F.copy()

    def process_noise(self) -> np.ndarray:
        """Process noise covariance Q from the last compute() (copy)."""
        self._require_computed()
        return self._Q.copy()


class MeasurementModel(ABC):
    """Abstract base class for measurement (sensor) models."""

    def __init__(self, state_size: int, measurement_size: int):
        """
        Allocate result buffers.

        Args:
            state_size: Dimension n of the state vector.
            measurement_size: Dimension m of the measurement vector.
        """
        if state_size <= 0 or measurement_size <= 0:
            raise ValueError(
                f"Sizes must be positive, got state_size={state_size}, "
                f"measurement_size={measurement_size}"
            )
        self._state_size = state_size
        self._measurement_size = measurement_size
        self._z_pred = np.zeros(measurement_size)
        self._H = np.zeros((measurement_size, state_size))
        self._computed = False

    @property
    def state_size(self) -> int:
        return self._state_size

    @property
    def measurement_size(self) -> int:
        return self._measurement_size

    def compute(self, predicted_mean: np.ndarray) -> None:
        """
        Recompute predicted measurement h(x') and Jacobian H = ∂h/∂x at x'.

        Raises:
            DimensionMismatch: If predicted_mean does not have length state_size.
        """
        x = check_vector(predicted_mean, self._state_size, f"{type(self).__name__} state")
        self._compute(x)
        self._computed = True

    @abstractmethod
    def _compute(self, x: np.ndarray) -> None:
        """Fill self._z_pred and self._H for a validated state."""

    def _require_computed(self) -> None:
        if not self._computed:
            raise RuntimeError(f"{type(self).__name__}.compute() has not been called")

    def predicted_measurement(self) -> np.ndarray:
        """Predicted measurement h(x') from the last compute() (copy)."""
        self._require_computed()
        return self._z_pred.copy()

    def jacobian(self) -> np.ndarray:
        """Measurement Jacobian H from the last compute() (copy)."""
        self._require_computed()
        return self._H.copy()

    def innovation(self, z: np.ndarray, z_pred: np.ndarray) -> np.ndarray:
        """
        Innovation z - z_pred.

        Override for sensors with angular components, which must be wrapped
        to [-π, π].
        """
        return z - z_pred
