"""
Preprocessing utilities for QoS matrices.

- remove_entries: sparsify a dense QoS matrix into a training matrix plus a
  held-out test mask (the usual density-based evaluation protocol)
- QoSNormalizer: scale raw QoS values into (0, 1] so they fit the sigmoid range
"""

import numpy as np
from typing import Optional, Tuple

from ..objectives.losses import EPS


def remove_entries(
    matrix: np.ndarray,
    density: float,
    random_state: Optional[int] = None
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Randomly keep a fraction of the observed entries for training.

    Parameters:
        matrix: Dense QoS matrix (n_users × n_services); zeros are treated as
                missing and never selected
        density: Fraction of all cells to keep, in (0, 1]
        random_state: Random seed for reproducibility

    Returns:
        train_matrix: Copy of matrix with removed cells set to 0
        test_mask: Boolean mask of observed cells that were removed

    Example:
        >>> M = np.random.rand(100, 200)
        >>> train, test_mask = remove_entries(M, density=0.1, random_state=0)
        >>> np.mean(train > 0)
        0.1
    """
    if not 0 < density <= 1:
        raise ValueError(f"density must be in (0, 1], got {density}")

    rng = np.random.default_rng(random_state)
    observed = np.abs(matrix) > EPS
    observed_idx = np.flatnonzero(observed)

    n_keep = min(int(round(density * matrix.size)), observed_idx.size)
    keep_idx = rng.choice(observed_idx, size=n_keep, replace=False)

    keep_mask = np.zeros(matrix.size, dtype=bool)
    keep_mask[keep_idx] = True
    keep_mask = keep_mask.reshape(matrix.shape)

    train_matrix = np.where(keep_mask, matrix, 0.0)
    test_mask = observed & ~keep_mask

    return train_matrix, test_mask


class QoSNormalizer:
    """
    Scale QoS values by the largest observed value.

    Response times and throughputs live on arbitrary positive scales, while the
    model predicts through a sigmoid. Dividing by the maximum maps observed
    values into (0, 1]; missing cells (0) stay 0.

    Example:
        >>> normalizer = QoSNormalizer()
        >>> M_scaled = normalizer.fit_transform(M_train)
        >>> P = normalizer.inverse_transform(trainer.predict())
    """

    def __init__(self):
        self.max_value_: Optional[float] = None

    def fit(self, matrix: np.ndarray) -> 'QoSNormalizer':
        observed = np.abs(matrix) > EPS
        if not np.any(observed):
            raise ValueError("Cannot fit normalizer on a matrix without observed entries")
        self.max_value_ = float(np.max(matrix[observed]))
        if self.max_value_ <= 0:
            raise ValueError(f"Observed QoS values must be positive, got max {self.max_value_}")
        return self

    def transform(self, matrix: np.ndarray) -> np.ndarray:
        self._check_fitted()
        return matrix / self.max_value_

    def fit_transform(self, matrix: np.ndarray) -> np.ndarray:
        return self.fit(matrix).transform(matrix)

    def inverse_transform(self, matrix: np.ndarray) -> np.ndarray:
        self._check_fitted()
        return matrix * self.max_value_

    def _check_fitted(self):
        if self.max_value_ is None:
            raise ValueError("Normalizer not fitted. Call fit() first.")
