"""
Adapters that turn plain functions into motion/measurement models.

Useful for discrete-step process models and for one-off sensor models in
experiments and tests, where writing a full subclass is overkill:

    >>> model = FunctionMeasurementModel(
    ...     h=lambda x: np.array([x[0] + x[2], x[1] ** 2]),
    ...     H=lambda x: np.array([[1.0, 0.0, 1.0], [0.0, 2 * x[1], 0.0]]),
    ...     state_size=3, measurement_size=2)
"""

from typing import Callable, Optional, Union

import numpy as np

from robot_ekf.errors import check_matrix, check_vector
from robot_ekf.models.base import MeasurementModel, MotionModel
from robot_ekf.models.motion_models import validate_time_step


class FunctionMotionModel(MotionModel):
    """
    Motion model backed by callables.

    Time-variant form (discrete=False):
        f(x, dt) -> x',  F(x, dt) -> ∂f/∂x,  Q(dt) -> process noise
    Discrete-step form (discrete=True), dt is not used:
        f(x) -> x',      F(x) -> ∂f/∂x,      Q() -> process noise

    Q may also be a constant array.
    """

    def __init__(
        self,
        f: Callable[..., np.ndarray],
        F: Callable[..., np.ndarray],
        Q: Union[np.ndarray, Callable[..., np.ndarray]],
        state_size: int,
        discrete: bool = False,
    ):
        super().__init__(state_size)
        self.f = f
        self.F = F
        self.Q = Q
        self.discrete = discrete

    def _compute(self, mean: np.ndarray, dt: Optional[float]) -> None:
        n = self.state_size
        if self.discrete:
            args = ()
        else:
            args = (validate_time_step(dt, "FunctionMotionModel"),)

        # F is evaluated at the pre-prediction mean
        F = check_matrix(self.F(mean, *args), n, n, "Process Jacobian F")
        x_pred = check_vector(self.f(mean, *args), n, "Predicted state")
        Q = self.Q(*args) if callable(self.Q) else self.Q
        Q = check_matrix(Q, n, n, "Process noise Q")

        self._F[:] = F
        self._x_pred[:] = x_pred
        self._Q[:] = Q


class FunctionMeasurementModel(MeasurementModel):
    """
    Measurement model backed by callables h(x) and H(x).

    Args:
        h: Measurement function h(x) -> z_pred (m,).
        H: Jacobian function H(x) -> ∂h/∂x (m × n).
        state_size: n.
        measurement_size: m.
        innovation: Optional innovation function (z, z_pred) -> y, e.g.
            for angle wrapping. Defaults to z - z_pred.
    """

    def __init__(
        self,
        h: Callable[[np.ndarray], np.ndarray],
        H: Callable[[np.ndarray], np.ndarray],
        state_size: int,
        measurement_size: int,
        innovation: Optional[Callable[[np.ndarray, np.ndarray], np.ndarray]] = None,
    ):
        super().__init__(state_size, measurement_size)
        self.h = h
        self.H = H
        self.innovation_func = innovation

    def _compute(self, x: np.ndarray) -> None:
        m, n = self.measurement_size, self.state_size
        self._z_pred[:] = check_vector(self.h(x), m, "Predicted measurement")
        self._H[:] = check_matrix(self.H(x), m, n, "Measurement Jacobian H")

    def innovation(self, z: np.ndarray, z_pred: np.ndarray) -> np.ndarray:
        if self.innovation_func is not None:
            return np.asarray(self.innovation_func(z, z_pred), dtype=float)
        return z - z_pred
