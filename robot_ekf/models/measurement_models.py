"""
Measurement models for a planar robot pose.

Provides:
- PoseMeasurement2D: direct position (and optionally heading) fix
- RangeBearingMeasurement2D: range and robot-relative bearing to landmarks

Both work on any state vector that contains the pose [x, y, θ] at
configurable indices, so they can be paired with larger states.
"""

from typing import Sequence, Tuple

import numpy as np

from robot_ekf.models.base import MeasurementModel
from robot_ekf.utils import angle_diff, wrap_angle


class PoseMeasurement2D(MeasurementModel):
    """
    Direct pose measurement (GPS/UWB position fix, optionally a compass).

    Measurement: z = [x, y] or [x, y, θ] (with include_heading=True)

    Example:
        >>> model = PoseMeasurement2D()
        >>> model.compute(np.array([5.0, 7.0, 0.3]))
        >>> model.predicted_measurement()
        array([5., 7.])
    """

    def __init__(
        self,
        state_size: int = 3,
        include_heading: bool = False,
        pose_indices: Tuple[int, int, int] = (0, 1, 2),
    ):
        """
        Args:
            state_size: Dimension of the state vector.
            include_heading: Also measure the heading θ.
            pose_indices: Indices of [x, y, θ] in the state vector.
        """
        super().__init__(state_size, 3 if include_heading else 2)
        if max(pose_indices) >= state_size:
            raise ValueError(
                f"pose_indices {pose_indices} out of range for state_size {state_size}"
            )
        self.include_heading = include_heading
        self.idx = list(pose_indices[:self.measurement_size])

        # H is constant: one unit entry per measured component
        for row, col in enumerate(self.idx):
            self._H[row, col] = 1.0

    def _compute(self, x: np.ndarray) -> None:
        self._z_pred[:] = x[self.idx]

    def innovation(self, z: np.ndarray, z_pred: np.ndarray) -> np.ndarray:
        y = z - z_pred
        if self.include_heading:
            y[2] = angle_diff(float(z[2]), float(z_pred[2]))
        return y


class RangeBearingMeasurement2D(MeasurementModel):
    """
    Range and bearing from the robot to known landmarks.

    For each landmark l, with d = l - [x, y]:
        range:   r = ||d||
        bearing: φ = atan2(d_y, d_x) - θ   (in the robot frame, wrapped)

    Measurement: z = [r_0, φ_0, r_1, φ_1, ...]

    Bearing innovations are wrapped to [-π, π].

    Example:
        >>> model = RangeBearingMeasurement2D([[10.0, 0.0]])
        >>> model.compute(np.array([0.0, 0.0, np.pi / 2]))
        >>> model.predicted_measurement()
        array([10.        , -1.57079633])
    """

    def __init__(
        self,
        landmarks: Sequence[Sequence[float]],
        state_size: int = 3,
        pose_indices: Tuple[int, int, int] = (0, 1, 2),
        min_range: float = 1e-6,
    ):
        """
        Args:
            landmarks: Landmark positions, shape (N, 2).
            state_size: Dimension of the state vector.
            pose_indices: Indices of [x, y, θ] in the state vector.
            min_range: Below this range the Jacobian rows are zeroed, since
                bearing is undefined at the landmark itself.
        """
        landmarks = np.asarray(landmarks, dtype=float)
        if landmarks.ndim != 2 or landmarks.shape[1] != 2:
            raise ValueError(f"Landmarks must be (N, 2) array, got shape {landmarks.shape}")
        if len(landmarks) == 0:
            raise ValueError("At least one landmark is required")
        if max(pose_indices) >= state_size:
            raise ValueError(
                f"pose_indices {pose_indices} out of range for state_size {state_size}"
            )

        super().__init__(state_size, 2 * len(landmarks))
        self.landmarks = landmarks
        self.idx = pose_indices
        self.min_range = min_range

    def _compute(self, x: np.ndarray) -> None:
        ix, iy, ith = self.idx
        px, py, theta = x[ix], x[iy], x[ith]

        self._H[:] = 0.0
        for i, (lx, ly) in enumerate(self.landmarks):
            dx = lx - px
            dy = ly - py
            q = dx * dx + dy * dy
            r = np.sqrt(q)

            self._z_pred[2 * i] = r
            self._z_pred[2 * i + 1] = wrap_angle(np.arctan2(dy, dx) - theta)

            if r < self.min_range:
                continue

            self._H[2 * i, ix] = -dx / r
            self._H[2 * i, iy] = -dy / r
            self._H[2 * i + 1, ix] = dy / q
            self._H[2 * i + 1, iy] = -dx / q
            self._H[2 * i + 1, ith] = -1.0

    def innovation(self, z: np.ndarray, z_pred: np.ndarray) -> np.ndarray:
        y = z - z_pred
        y[1::2] = angle_diff(z[1::2], z_pred[1::2])
        return y
