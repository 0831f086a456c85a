"""
Loss Functions for AMF

This module implements the squashing function used by the factor model and
the loss that is monitored during training:

1. sigmoid / grad_sigmoid: Logistic link between U·Sᵀ and QoS values
2. Relative loss: Relative squared error on observed cells + L2 penalty

The optimizer follows per-sample gradients (see optimization/sgd.py); the
aggregate loss below is only evaluated for progress reporting.
"""

import numpy as np


# Cells with |value| <= EPS are treated as missing, not as a zero measurement
EPS = 1e-10


def sigmoid(x):
    """Logistic function 1 / (1 + e^{-x}), elementwise."""
    return 1 / (1 + np.exp(-x))


def grad_sigmoid(x):
    """
    Derivative of the logistic function.

    Written as 1 / (2 + e^{-x} + e^{x}), which equals σ(x)(1 - σ(x)) and is
    symmetric in x.
    """
    return 1 / (2 + np.exp(-x) + np.exp(x))


def relative_loss(
    U: np.ndarray,
    S: np.ndarray,
    removed_matrix: np.ndarray,
    pred_matrix: np.ndarray,
    lambda_reg: float
) -> float:
    """
    Regularized relative squared error over observed entries.

    L = 0.5 Σ_{(i,j) observed} ((r_ij - p_ij) / r_ij)² + 0.5 λ (||U||² + ||S||²)

    Relative error keeps large response times from dominating the objective,
    which is what the confidence-weighted updates are designed around.

    Parameters:
        U: User latent factors (n_users × d)
        S: Service latent factors (n_services × d)
        removed_matrix: Observation matrix (n_users × n_services), zeros = missing
        pred_matrix: Current predictions (n_users × n_services); only the
                     observed cells are read
        lambda_reg: Regularization strength

    Returns:
        loss: Scalar loss value

    Example:
        >>> R = np.array([[0.5, 0.0], [0.0, 0.8]])
        >>> U = np.ones((2, 1))
        >>> S = np.ones((2, 1))
        >>> P = sigmoid(U @ S.T)
        >>> loss = relative_loss(U, S, R, P, lambda_reg=0.01)
    """
    observed = np.abs(removed_matrix) > EPS
    r = removed_matrix[observed]
    p = pred_matrix[observed]

    cost = 0.5 * np.sum(((r - p) / r) ** 2)
    reg_term = 0.5 * lambda_reg * (np.sum(U ** 2) + np.sum(S ** 2))

    return float(cost + reg_term)
