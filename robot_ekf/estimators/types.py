"""Data types exchanged with the EKF engine.

GaussianBelief is the long-lived estimate owned by the caller's estimation
loop. Measurement and Innovation are transient per-update packets.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np

from robot_ekf.errors import DimensionMismatch, check_matrix, check_vector
from robot_ekf.utils.linalg import is_positive_semidefinite


class GaussianBelief:
    """Multivariate normal state estimate N(mean, covariance).

    The belief is an opaque data holder: read access to mean and covariance,
    and a single mutator, replace(), that swaps in the result of a filter
    step. Arrays handed out by the properties are read-only views.

    Attributes:
        mean: State estimate (n,).
        covariance: State covariance (n × n), symmetric PSD.

    Example:
        >>> belief = GaussianBelief(np.zeros(3), np.eye(3))
        >>> belief.state_size
        3
    """

    def __init__(self, mean: np.ndarray, covariance: np.ndarray):
        """
        Create a belief from an explicit mean and covariance.

        Args:
            mean: State estimate (n,).
            covariance: State covariance (n × n).

        Raises:
            DimensionMismatch: If mean is not 1D or covariance is not (n, n).
            ValueError: If covariance is not symmetric positive semi-definite.
        """
        mean = np.asarray(mean, dtype=float)
        if mean.ndim != 1:
            raise DimensionMismatch(
                f"Belief mean must be 1D, got shape {mean.shape}", actual=mean.shape
            )
        n = mean.shape[0]
        covariance = check_matrix(covariance, n, n, "Belief covariance")

        if not is_positive_semidefinite(covariance):
            raise ValueError("Belief covariance must be symmetric positive semi-definite")

        self._mean = mean.copy()
        self._covariance = covariance.copy()
        self._mean.setflags(write=False)
        self._covariance.setflags(write=False)

    @property
    def mean(self) -> np.ndarray:
        return self._mean

    @property
    def covariance(self) -> np.ndarray:
        return self._covariance

    @property
    def state_size(self) -> int:
        return self._mean.shape[0]

    def replace(self, mean: np.ndarray, covariance: np.ndarray) -> None:
        """
        Replace mean and covariance after a filter step.

        Both arrays are validated before either is stored, so a failed
        replace leaves the belief unchanged.

        Raises:
            DimensionMismatch: If the new arrays do not match the state size.
        """
        n = self.state_size
        mean = check_vector(mean, n, "Belief mean").copy()
        covariance = check_matrix(covariance, n, n, "Belief covariance").copy()
        mean.setflags(write=False)
        covariance.setflags(write=False)
        self._mean = mean
        self._covariance = covariance

    def copy(self) -> "GaussianBelief":
        # stored arrays are read-only, so the copy can share them
        clone = GaussianBelief.__new__(GaussianBelief)
        clone._mean = self._mean
        clone._covariance = self._covariance
        return clone

    def __repr__(self) -> str:
        return (
            f"GaussianBelief(mean={np.array2string(self._mean, precision=4)}, "
            f"trace(P)={np.trace(self._covariance):.4g})"
        )


@dataclass(frozen=True)
class Measurement:
    """Observed measurement vector with its noise covariance.

    Attributes:
        z: Measurement vector (m,).
        R: Measurement noise covariance (m × m), symmetric PSD.

    Example:
        >>> meas = Measurement(z=np.array([1.0, 2.0]), R=np.diag([0.1, 0.1]))
        >>> meas.size
        2
    """

    z: np.ndarray
    R: np.ndarray

    def __post_init__(self) -> None:
        z = np.asarray(self.z, dtype=float)
        if z.ndim != 1:
            raise DimensionMismatch(
                f"Measurement z must be 1D array, got shape {z.shape}", actual=z.shape
            )
        m = z.shape[0]
        R = check_matrix(self.R, m, m, "Measurement covariance R")

        if not np.allclose(R, R.T):
            raise ValueError("Covariance R must be symmetric")

        eigvals = np.linalg.eigvalsh(R)
        if np.any(eigvals < -1e-10):
            raise ValueError(
                f"Covariance R must be positive semi-definite, got eigenvalues {eigvals}"
            )

        # frozen dataclass: bypass __setattr__ to store the coerced arrays
        object.__setattr__(self, "z", z)
        object.__setattr__(self, "R", R)

    @property
    def size(self) -> int:
        return self.z.shape[0]


@dataclass(frozen=True)
class Innovation:
    """Innovation of a measurement against a predicted belief.

    Attributes:
        y: Innovation z - h(x') (m,), angle-wrapped where the model requires.
        S: Innovation covariance H P H^T + R (m × m).
        nis: Normalized innovation squared y^T S^{-1} y (None if S singular).
    """

    y: np.ndarray
    S: np.ndarray
    nis: Optional[float] = None
