"""
Utility functions shared by the estimators and models.
"""

from .angles import wrap_angle, wrap_angle_array, angle_diff
from .linalg import (
    symmetrize,
    congruence,
    is_symmetric,
    is_positive_semidefinite,
    condition_number,
    kalman_gain,
    mahalanobis_squared,
)

__all__ = [
    'wrap_angle',
    'wrap_angle_array',
    'angle_diff',
    'symmetrize',
    'congruence',
    'is_symmetric',
    'is_positive_semidefinite',
    'condition_number',
    'kalman_gain',
    'mahalanobis_squared',
]
