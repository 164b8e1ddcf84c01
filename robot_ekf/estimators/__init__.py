"""
State estimation with the Extended Kalman Filter.

Available components:
    - GaussianBelief, Measurement, Innovation: data exchanged with the engine
    - ExtendedKalmanFilter (EKFConfig): predict/update recursion
    - Chi-square innovation gating
    - EstimationSession: caller-side predict/update loop with skip policies
"""

from robot_ekf.estimators.types import GaussianBelief, Measurement, Innovation
from robot_ekf.estimators.extended_kalman_filter import EKFConfig, ExtendedKalmanFilter
from robot_ekf.estimators.gating import (
    mahalanobis_distance_squared,
    chi_square_threshold,
    chi_square_gate,
)
from robot_ekf.estimators.session import EstimationSession, SessionStats

__all__ = [
    # Data types
    "GaussianBelief",
    "Measurement",
    "Innovation",
    # Engine
    "EKFConfig",
    "ExtendedKalmanFilter",
    # Gating
    "mahalanobis_distance_squared",
    "chi_square_threshold",
    "chi_square_gate",
    # Filter loop
    "EstimationSession",
    "SessionStats",
]
