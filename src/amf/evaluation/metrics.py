"""
Accuracy metrics for QoS prediction.

All metrics are computed over held-out cells only (the entries removed from
the training matrix):

- MAE:  mean absolute error
- NMAE: MAE normalized by the mean true value
- RMSE: root mean squared error
- MRE:  median relative error |p - r| / r
- NPRE: 90th percentile of the relative error
"""

import numpy as np
from typing import Dict
from sklearn.metrics import mean_absolute_error, mean_squared_error


def evaluate(
    true_matrix: np.ndarray,
    pred_matrix: np.ndarray,
    test_mask: np.ndarray
) -> Dict[str, float]:
    """
    Compute prediction accuracy on the test cells.

    Parameters:
        true_matrix: Ground-truth QoS matrix (n_users × n_services)
        pred_matrix: Predicted QoS matrix (n_users × n_services)
        test_mask: Boolean mask of cells to evaluate

    Returns:
        metrics: Dict with keys 'MAE', 'NMAE', 'RMSE', 'MRE', 'NPRE'

    Raises:
        ValueError: If shapes differ or the mask selects no cell

    Example:
        >>> train, test_mask = remove_entries(Q, density=0.2, random_state=0)
        >>> trainer = AMFTrainer(random_seed=0).fit(train)
        >>> metrics = evaluate(Q, trainer.predict(), test_mask)
        >>> print(f"MAE={metrics['MAE']:.4f}")
    """
    if true_matrix.shape != pred_matrix.shape:
        raise ValueError(
            f"pred_matrix shape {pred_matrix.shape} must match "
            f"true_matrix shape {true_matrix.shape}"
        )
    if test_mask.shape != true_matrix.shape:
        raise ValueError(
            f"test_mask shape {test_mask.shape} must match "
            f"true_matrix shape {true_matrix.shape}"
        )
    if not np.any(test_mask):
        raise ValueError("test_mask selects no cells")

    r = true_matrix[test_mask]
    p = pred_matrix[test_mask]

    mae = mean_absolute_error(r, p)
    rmse = np.sqrt(mean_squared_error(r, p))
    relative_error = np.abs(p - r) / r

    return {
        'MAE': float(mae),
        'NMAE': float(mae / np.mean(r)),
        'RMSE': float(rmse),
        'MRE': float(np.median(relative_error)),
        'NPRE': float(np.percentile(relative_error, 90)),
    }
