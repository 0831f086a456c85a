"""
QoSData: Container for a partially observed user × service QoS matrix.

This module provides:
- Sample extraction (observed (row, col, value) triples in row-major order)
- The QoSData container with observation mask and summary statistics
"""

import numpy as np
from typing import Tuple

from ..objectives.losses import EPS


def extract_samples(
    matrix: np.ndarray,
    eps: float = EPS
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Collect the observed cells of a QoS matrix as training samples.

    A cell is observed when |value| > eps. Cells are returned in row-major
    order, so the pre-shuffle sample order is reproducible.

    Parameters:
        matrix: Observation matrix (n_users × n_services)
        eps: Missing-value threshold

    Returns:
        rows: User index of each sample (n_samples,)
        cols: Service index of each sample (n_samples,)
        values: Observed value of each sample (n_samples,)

    Example:
        >>> M = np.array([[0.5, 0.0], [0.0, 0.8]])
        >>> rows, cols, values = extract_samples(M)
        >>> rows, cols, values
        (array([0, 1]), array([0, 1]), array([0.5, 0.8]))
    """
    # np.nonzero walks the mask in C (row-major) order
    rows, cols = np.nonzero(np.abs(matrix) > eps)
    values = matrix[rows, cols].astype(np.float64)
    return rows, cols, values


class QoSData:
    """
    Container for a QoS observation matrix.

    Attributes:
        matrix (np.ndarray): Observation matrix (n_users × n_services), 0 = missing
        observed_mask (np.ndarray): Boolean mask of observed cells
        n_users (int): Number of users (rows)
        n_services (int): Number of services (columns)
        n_observed (int): Number of observed cells
        density (float): Fraction of observed cells

    Example:
        >>> M = np.random.rand(50, 100)
        >>> M[M < 0.8] = 0  # Keep ~20% of entries
        >>> data = QoSData(M)
        >>> print(f"Observed: {data.n_observed} ({100*data.density:.1f}%)")
    """

    def __init__(self, matrix: np.ndarray, eps: float = EPS):
        """
        Initialize QoSData.

        Parameters:
            matrix: QoS matrix (n_users × n_services)
                - matrix[i, j] = QoS value user i observed for service j
                - Use 0 for unobserved entries
            eps: Missing-value threshold

        Raises:
            ValueError: If the matrix is not 2D, is empty or contains NaN/inf
        """
        matrix = np.asarray(matrix, dtype=np.float64)
        if matrix.ndim != 2:
            raise ValueError(f"matrix must be 2D array, got shape {matrix.shape}")
        if matrix.shape[0] < 1 or matrix.shape[1] < 1:
            raise ValueError(f"matrix must be non-empty, got shape {matrix.shape}")
        if not np.all(np.isfinite(matrix)):
            raise ValueError("matrix must contain only finite values")

        self.matrix = matrix
        self.eps = eps
        self.observed_mask = np.abs(matrix) > eps

        self.n_users, self.n_services = matrix.shape
        self.n_observed = int(np.sum(self.observed_mask))
        self.density = self.n_observed / matrix.size

    def samples(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Observed (rows, cols, values) in row-major order."""
        return extract_samples(self.matrix, self.eps)

    def __repr__(self) -> str:
        return (
            f"QoSData("
            f"n_users={self.n_users}, "
            f"n_services={self.n_services}, "
            f"n_observed={self.n_observed})"
        )

    def summary(self) -> str:
        """Get detailed summary of the data."""
        values = self.matrix[self.observed_mask]
        if values.size > 0:
            value_range = f"[{values.min():.3f}, {values.max():.3f}]"
            value_mean = f"{values.mean():.3f}"
        else:
            value_range = "n/a"
            value_mean = "n/a"

        lines = [
            "=" * 50,
            "QoSData Summary",
            "=" * 50,
            f"Number of users:          {self.n_users}",
            f"Number of services:       {self.n_services}",
            f"Observed entries:         {self.n_observed} ({100*self.density:.1f}%)",
            "",
            "Observed values:",
            f"  - Range:                {value_range}",
            f"  - Mean:                 {value_mean}",
            "=" * 50,
        ]
        return "\n".join(lines)
