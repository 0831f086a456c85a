"""
Adaptive confidence tracking for AMF.

Every user and every service carries one scalar confidence value, estimated
online from the relative prediction error of the samples it takes part in.
For a sample (i, j) the error is split between the two sides in proportion to
their current confidence:

    w_i = e_u[i] / (e_u[i] + e_s[j])        w_j = e_s[j] / (e_u[i] + e_s[j])

and each side is moved toward the observed error by an exponential moving
average with rate beta · w:

    e_u[i] <- beta·w_i·err + (1 - beta·w_i)·e_u[i]
    e_s[j] <- beta·w_j·err + (1 - beta·w_j)·e_s[j]

The weights w_i, w_j scale the gradient steps of U[i] and S[j].

Note:
    err = |p - r| / r divides by the raw observed value. Values close to zero
    give very large errors; nothing is clamped.
"""

import numpy as np
from typing import Tuple


class ConfidenceTracker:
    """
    Per-user and per-service confidence state.

    Parameters
    ----------
    n_users : int
        Number of users
    n_services : int
        Number of services
    beta : float
        Moving-average rate of the confidence update

    Attributes
    ----------
    user_confidence : np.ndarray, shape (n_users,)
        Current user confidence values, initialized to 1.0
    service_confidence : np.ndarray, shape (n_services,)
        Current service confidence values, initialized to 1.0
    """

    def __init__(self, n_users: int, n_services: int, beta: float):
        if n_users < 1:
            raise ValueError(f"n_users must be positive, got {n_users}")
        if n_services < 1:
            raise ValueError(f"n_services must be positive, got {n_services}")

        self.beta = beta
        self.user_confidence = np.ones(n_users)
        self.service_confidence = np.ones(n_services)

    def weights(self, i: int, j: int) -> Tuple[float, float]:
        """Blend weights (w_i, w_j) of user i and service j; they sum to 1."""
        eu = self.user_confidence[i]
        es = self.service_confidence[j]
        return eu / (eu + es), es / (eu + es)

    def update(self, i: int, j: int, r: float, p: float) -> Tuple[float, float]:
        """
        Update the confidence of user i and service j from one sample.

        Parameters
        ----------
        i, j : int
            User and service index of the sample
        r : float
            Observed value
        p : float
            Predicted value

        Returns
        -------
        (w_i, w_j) : tuple of float
            Blend weights computed from the confidences before the update
        """
        err = np.abs(p - r) / r
        wi, wj = self.weights(i, j)

        beta = self.beta
        self.user_confidence[i] = beta * wi * err + (1 - beta * wi) * self.user_confidence[i]
        self.service_confidence[j] = beta * wj * err + (1 - beta * wj) * self.service_confidence[j]

        return wi, wj

    def __repr__(self) -> str:
        return (
            f"ConfidenceTracker("
            f"n_users={len(self.user_confidence)}, "
            f"n_services={len(self.service_confidence)}, "
            f"beta={self.beta})"
        )
