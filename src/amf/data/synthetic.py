"""
Synthetic Data Generation for AMF Testing
=========================================

Generates QoS matrices from a known low-rank sigmoid model, so that training
can be checked against a ground truth:

    Q = sigmoid(U_true · S_trueᵀ) + noise

Values are clipped into (0, 1) and never fall below `min_value`, which keeps
the relative error terms of the AMF objective well conditioned.
"""

import numpy as np
from typing import Optional, Tuple

from ..objectives.losses import sigmoid


def generate_low_rank_qos(
    n_users: int = 50,
    n_services: int = 80,
    rank: int = 3,
    noise: float = 0.0,
    min_value: float = 0.05,
    random_state: Optional[int] = None
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Generate a fully observed QoS matrix with low-rank sigmoid structure.

    Parameters:
        n_users: Number of users (rows)
        n_services: Number of services (columns)
        rank: Rank of the latent factors
        noise: Std of additive Gaussian noise applied after the sigmoid
        min_value: Lower bound of generated values (must be > 0)
        random_state: Random seed for reproducibility

    Returns:
        Q: QoS matrix (n_users × n_services), every cell observed
        U_true: User factors (n_users × rank)
        S_true: Service factors (n_services × rank)

    Example:
        >>> Q, U_true, S_true = generate_low_rank_qos(20, 30, rank=2, random_state=0)
        >>> Q.shape
        (20, 30)
    """
    if n_users < 1 or n_services < 1:
        raise ValueError(
            f"n_users and n_services must be positive, got ({n_users}, {n_services})"
        )
    if rank < 1:
        raise ValueError(f"rank must be positive, got {rank}")
    if not 0 < min_value < 1:
        raise ValueError(f"min_value must be in (0, 1), got {min_value}")

    rng = np.random.default_rng(random_state)

    U_true = rng.normal(0.0, 1.0, size=(n_users, rank))
    S_true = rng.normal(0.0, 1.0, size=(n_services, rank))

    Q = sigmoid(U_true @ S_true.T)
    if noise > 0:
        Q = Q + rng.normal(0.0, noise, size=Q.shape)

    Q = np.clip(Q, min_value, 1.0 - 1e-6)

    return Q, U_true, S_true
