"""
Linear-algebra primitives used by the filter core.

The EKF only needs multiply, transpose, identity and a solve against a
symmetric positive definite matrix. Covariances are kept full and symmetric;
when floating-point products leave a small asymmetry the result is
symmetrized:

    P_sym = 0.5 * (P + P^T)
"""

from typing import Tuple

import numpy as np
from scipy import linalg as sla


def symmetrize(P: np.ndarray) -> np.ndarray:
    """Return 0.5 * (P + P^T)."""
    return 0.5 * (P + P.T)


def congruence(A: np.ndarray, P: np.ndarray) -> np.ndarray:
    """Return A @ P @ A^T (covariance mapped through a linear map A)."""
    return A @ P @ A.T


def is_symmetric(P: np.ndarray, atol: float = 1e-9) -> bool:
    """Check symmetry to an absolute tolerance."""
    P = np.asarray(P)
    return P.ndim == 2 and P.shape[0] == P.shape[1] and np.allclose(P, P.T, atol=atol)


def is_positive_semidefinite(P: np.ndarray, atol: float = 1e-9) -> bool:
    """
    Check that P is symmetric with all eigenvalues >= -atol.

    Args:
        P: Square matrix.
        atol: Tolerance on symmetry and on negative eigenvalues.

    Returns:
        True if P is a valid covariance matrix.
    """
    if not is_symmetric(P, atol=atol):
        return False
    eigvals = np.linalg.eigvalsh(symmetrize(np.asarray(P, dtype=float)))
    return bool(np.all(eigvals >= -atol))


def condition_number(S: np.ndarray) -> float:
    """2-norm condition number of S (inf when S is singular)."""
    with np.errstate(divide="ignore", invalid="ignore"):
        cond = np.linalg.cond(S)
    if not np.isfinite(cond):
        return float("inf")
    return float(cond)


def cholesky_factor(S: np.ndarray) -> Tuple[np.ndarray, bool]:
    """
    Cholesky-factor a symmetric positive definite matrix.

    Raises:
        numpy.linalg.LinAlgError: If S is not positive definite.
    """
    return sla.cho_factor(S, lower=True, check_finite=True)


def kalman_gain(P: np.ndarray, H: np.ndarray, S: np.ndarray) -> np.ndarray:
    """
    Kalman gain K = P H^T S^{-1} without forming S^{-1}.

    Solves S K^T = H P^T (S and P symmetric) through a Cholesky factor of S.

    Args:
        P: Predicted state covariance (n × n).
        H: Measurement Jacobian (m × n).
        S: Innovation covariance H P H^T + R (m × m).

    Returns:
        Gain matrix (n × m).

    Raises:
        numpy.linalg.LinAlgError: If S is not positive definite.
    """
    factor = cholesky_factor(S)
    PHt = P @ H.T
    return sla.cho_solve(factor, PHt.T).T


def mahalanobis_squared(y: np.ndarray, S: np.ndarray) -> float:
    """y^T S^{-1} y through a Cholesky solve."""
    factor = cholesky_factor(S)
    return float(y @ sla.cho_solve(factor, y))
