"""
Exception types raised by the estimation core.

Every failure is reported synchronously to the caller; nothing here is
recovered inside the filter.
"""

from typing import Optional, Tuple

import numpy as np


class EstimationError(Exception):
    """Base class for estimation failures."""


class DimensionMismatch(EstimationError, ValueError):
    """
    A vector or matrix size disagrees with a declared state/measurement size.

    Attributes:
        expected: Expected shape (or size) if known.
        actual: Shape (or size) that was received.
    """

    def __init__(
        self,
        message: str,
        expected: Optional[Tuple[int, ...]] = None,
        actual: Optional[Tuple[int, ...]] = None,
    ):
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class SingularInnovationCovariance(EstimationError, np.linalg.LinAlgError):
    """
    Innovation covariance S cannot be inverted reliably.

    Raised when S is not positive definite or its condition number exceeds
    the configured limit. The belief passed to the update is left unchanged.

    Attributes:
        condition_number: Condition number of S (inf if singular).
    """

    def __init__(self, message: str, condition_number: float = float("inf")):
        super().__init__(message)
        self.condition_number = condition_number


def check_vector(v: np.ndarray, size: int, name: str) -> np.ndarray:
    """
    Coerce to a float 1D array and check its length.

    Raises:
        DimensionMismatch: If v is not 1D of the given size.
    """
    v = np.asarray(v, dtype=float)
    if v.ndim != 1 or v.shape[0] != size:
        raise DimensionMismatch(
            f"{name} must have shape ({size},), got {v.shape}",
            expected=(size,),
            actual=v.shape,
        )
    return v


def check_matrix(M: np.ndarray, rows: int, cols: int, name: str) -> np.ndarray:
    """
    Coerce to a float 2D array and check its shape.

    Raises:
        DimensionMismatch: If M does not have shape (rows, cols).
    """
    M = np.asarray(M, dtype=float)
    if M.shape != (rows, cols):
        raise DimensionMismatch(
            f"{name} must have shape ({rows}, {cols}), got {M.shape}",
            expected=(rows, cols),
            actual=M.shape,
        )
    return M
