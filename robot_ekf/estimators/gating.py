"""Chi-square innovation gating.

A filter whose models are consistent produces innovations whose normalized
squared magnitude (NIS)

    d² = y^T S^{-1} y

follows a chi-square distribution with m = dim(y) degrees of freedom.
Measurements with d² above the χ²(m) quantile at the chosen confidence are
likely outliers; the caller may discard them and keep the predicted belief.
"""

import numpy as np
from scipy import stats

from robot_ekf.errors import DimensionMismatch, SingularInnovationCovariance
from robot_ekf.utils.linalg import mahalanobis_squared


def mahalanobis_distance_squared(y: np.ndarray, S: np.ndarray) -> float:
    """Squared Mahalanobis distance (NIS) of an innovation.

    Args:
        y: Innovation vector (m,).
        S: Innovation covariance (m × m), positive definite.

    Returns:
        d² = y^T S^{-1} y.

    Raises:
        DimensionMismatch: If y and S are incompatible.
        SingularInnovationCovariance: If S is not positive definite.

    Example:
        >>> mahalanobis_distance_squared(np.array([3.0, 4.0]), np.eye(2))
        25.0
    """
    y = np.asarray(y, dtype=float)
    S = np.asarray(S, dtype=float)

    if y.ndim != 1:
        raise DimensionMismatch(f"Innovation y must be 1D, got shape {y.shape}", actual=y.shape)
    m = len(y)
    if S.shape != (m, m):
        raise DimensionMismatch(
            f"Innovation dimension {m} incompatible with S shape {S.shape}",
            expected=(m, m),
            actual=S.shape,
        )

    try:
        return mahalanobis_squared(y, S)
    except np.linalg.LinAlgError as e:
        raise SingularInnovationCovariance(
            f"Innovation covariance S is not positive definite: {e}"
        ) from e


def chi_square_threshold(dof: int, confidence: float = 0.95) -> float:
    """Chi-square critical value χ²(dof) at the given confidence.

    Example:
        >>> round(chi_square_threshold(dof=2, confidence=0.95), 3)
        5.991
    """
    if dof < 1:
        raise ValueError(f"Degrees of freedom must be positive, got {dof}")
    if not (0 < confidence < 1):
        raise ValueError(f"Confidence level must be in (0, 1), got {confidence}")
    return float(stats.chi2.ppf(confidence, dof))


def chi_square_gate(y: np.ndarray, S: np.ndarray, confidence: float = 0.95) -> bool:
    """Accept a measurement if its NIS is below the chi-square threshold.

    Args:
        y: Innovation vector (m,).
        S: Innovation covariance (m × m), positive definite.
        confidence: Confidence level in (0, 1). Higher values accept
            larger innovations.

    Returns:
        True to accept the measurement, False to reject it as an outlier.

    Example:
        >>> chi_square_gate(np.array([0.1, 0.2]), np.eye(2))
        True
        >>> chi_square_gate(np.array([5.0, 5.0]), np.eye(2))
        False
    """
    d_squared = mahalanobis_distance_squared(y, S)
    return bool(d_squared < chi_square_threshold(len(np.atleast_1d(y)), confidence))
