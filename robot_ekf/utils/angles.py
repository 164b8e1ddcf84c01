"""
Angle wrapping for headings and bearings.

Headings are left unwrapped by the motion models (the kinematic formulas are
continuous in θ), but angular innovations must be wrapped to [-π, π] or a
bearing that crosses the ±π seam produces a ~2π residual.
"""

from typing import Union

import numpy as np


def wrap_angle(angle: float) -> float:
    """
    Wrap angle to [-π, π].

    Example:
        >>> wrap_angle(3.5 * np.pi)
        -1.5707963267948966
    """
    return float(np.arctan2(np.sin(angle), np.cos(angle)))


def wrap_angle_array(angles: np.ndarray) -> np.ndarray:
    """Vectorized wrap_angle()."""
    angles = np.asarray(angles, dtype=float)
    return np.arctan2(np.sin(angles), np.cos(angles))


def angle_diff(angle1: Union[float, np.ndarray],
               angle2: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
    """
    Shortest signed difference angle1 - angle2, wrapped to [-π, π].

    This is the innovation for a bearing or heading measurement:
    measured = +179°, predicted = -179° gives 2°, not 358°.

    Args:
        angle1: Measured angle(s) in radians.
        angle2: Predicted angle(s) in radians.

    Returns:
        Wrapped difference, same shape as the inputs.
    """
    if isinstance(angle1, np.ndarray) or isinstance(angle2, np.ndarray):
        return wrap_angle_array(np.asarray(angle1) - np.asarray(angle2))
    return wrap_angle(angle1 - angle2)
