"""
Stochastic gradient descent with adaptive confidence weights.

This module implements the AMF training loop. For each observed sample
(i, j, r), with uv = U[i]·S[j] and p = σ(uv):

    ∂L/∂U[i] = w_i (p - r) σ'(uv) S[j] / r² + λ U[i]
    ∂L/∂S[j] = w_j (p - r) σ'(uv) U[i] / r² + λ S[j]

where (w_i, w_j) come from the ConfidenceTracker. Both gradients are taken at
the pre-update factors, then applied with learning rate eta.

Samples are visited in a new random order every epoch. The factor matrices
and the prediction matrix are caller-owned and updated in place.
"""

import warnings
from datetime import datetime
from typing import Dict, Optional

import numpy as np

from ..data.qos_data import extract_samples
from ..models.confidence import ConfidenceTracker
from ..objectives.losses import EPS, sigmoid, grad_sigmoid, relative_loss


# Observed values below this make 1/r and 1/r² large enough to destabilize SGD
SMALL_VALUE_THRESHOLD = 1e-3


def predict_matrix(
    U: np.ndarray,
    S: np.ndarray,
    removed_matrix: Optional[np.ndarray] = None,
    out: Optional[np.ndarray] = None
) -> np.ndarray:
    """
    Compute predictions σ(U[i]·S[j]).

    Parameters:
        U: User latent factors (n_users × d)
        S: Service latent factors (n_services × d)
        removed_matrix: If given, only cells observed in this matrix are
                        recomputed; other cells of `out` are left untouched
        out: Prediction matrix (n_users × n_services) to write into;
             a zero matrix is allocated if None

    Returns:
        out: The prediction matrix

    Example:
        >>> U = np.random.rand(3, 2)
        >>> S = np.random.rand(4, 2)
        >>> P = predict_matrix(U, S)
        >>> P.shape
        (3, 4)
    """
    if out is None:
        out = np.zeros((U.shape[0], S.shape[0]))

    if removed_matrix is None:
        out[...] = sigmoid(U @ S.T)
    else:
        rows, cols = np.nonzero(np.abs(removed_matrix) > EPS)
        out[rows, cols] = sigmoid(np.sum(U[rows] * S[cols], axis=1))

    return out


def sgd_update(
    U: np.ndarray,
    S: np.ndarray,
    i: int,
    j: int,
    r: float,
    tracker: ConfidenceTracker,
    lambda_reg: float,
    eta: float
):
    """
    Apply one confidence-weighted SGD step for sample (i, j, r).

    Updates U[i], S[j] and the tracker's confidences in place.

    Returns:
        (w_i, w_j): Blend weights used for this sample
    """
    u_i = U[i]
    s_j = S[j]

    uv = np.dot(u_i, s_j)
    p = sigmoid(uv)

    wi, wj = tracker.update(i, j, r, p)

    coef = (p - r) * grad_sigmoid(uv) / (r * r)
    grad_u = wi * coef * s_j + lambda_reg * u_i
    grad_s = wj * coef * u_i + lambda_reg * s_j

    U[i] -= eta * grad_u
    S[j] -= eta * grad_s

    return wi, wj


def run_amf(
    removed_matrix: np.ndarray,
    U: np.ndarray,
    S: np.ndarray,
    pred_matrix: np.ndarray,
    lambda_reg: float,
    max_iter: int,
    eta: float,
    beta: float,
    rng: Optional[np.random.Generator] = None,
    verbose: bool = False,
    log_interval: int = 10000,
    history: Optional[Dict[str, list]] = None,
    check_finite: bool = True
) -> ConfidenceTracker:
    """
    Train U and S on the observed entries of removed_matrix.

    Training procedure:
    1. Extract observed samples (row-major)
    2. For each epoch: shuffle samples, then for each sample
       a. Predict p = σ(U[i]·S[j])
       b. Update user/service confidence
       c. Gradient step on U[i], S[j]
       d. Every `log_interval` processed samples (when verbose), recompute
          observed predictions and the loss, and print a progress line
    3. Recompute the full prediction matrix

    Parameters:
        removed_matrix: Observation matrix (n_users × n_services), 0 = missing
        U: User latent factors (n_users × d), updated in place
        S: Service latent factors (n_services × d), updated in place
        pred_matrix: Prediction matrix (n_users × n_services), overwritten
        lambda_reg: L2 regularization strength
        max_iter: Number of epochs
        eta: Learning rate
        beta: Confidence moving-average rate
        rng: Random generator used for shuffling (fresh unseeded one if None)
        verbose: Whether to print periodic loss diagnostics
        log_interval: Number of processed samples between diagnostics
        history: Optional dict with 'checkpoint', 'epoch', 'loss' lists that
                 diagnostics are appended to
        check_finite: Warn when training produced NaN or inf values

    Returns:
        tracker: Final confidence state

    Warns:
        RuntimeWarning: No observed entries; observed values below
                        SMALL_VALUE_THRESHOLD; non-finite factors after training
    """
    if rng is None:
        rng = np.random.default_rng()

    n_users, n_services = removed_matrix.shape
    rows, cols, values = extract_samples(removed_matrix)
    n_samples = len(values)

    if n_samples == 0:
        warnings.warn(
            "No observed entries in the input matrix. Factors are left unchanged.",
            RuntimeWarning
        )

    n_small = int(np.sum(np.abs(values) < SMALL_VALUE_THRESHOLD))
    if n_small > 0:
        warnings.warn(
            f"{n_small} observed values are below {SMALL_VALUE_THRESHOLD:g}; "
            f"relative-error gradients may overflow.",
            RuntimeWarning
        )

    tracker = ConfidenceTracker(n_users, n_services, beta)

    with np.errstate(over='ignore', divide='ignore', invalid='ignore'):
        for epoch in range(max_iter):
            order = rng.permutation(n_samples)

            for s in range(n_samples):
                k = order[s]
                sgd_update(
                    U, S, rows[k], cols[k], values[k],
                    tracker, lambda_reg, eta
                )

                if verbose and (epoch * n_samples + s) % log_interval == 0:
                    predict_matrix(U, S, removed_matrix, out=pred_matrix)
                    loss = relative_loss(U, S, removed_matrix, pred_matrix, lambda_reg)
                    if history is not None:
                        history['checkpoint'].append(epoch * n_samples + s)
                        history['epoch'].append(epoch)
                        history['loss'].append(loss)
                    timestamp = datetime.now().strftime("%Y-%m-%d %X")
                    print(f"{timestamp}: iter = {epoch}, lossValue = {loss:.6f}")

        predict_matrix(U, S, out=pred_matrix)

    if check_finite and not (
        np.all(np.isfinite(U))
        and np.all(np.isfinite(S))
        and np.all(np.isfinite(pred_matrix))
    ):
        warnings.warn(
            "Training produced non-finite values in the latent factors or "
            "predictions. Observed values close to zero destabilize the "
            "relative-error updates; consider rescaling the data.",
            RuntimeWarning
        )

    return tracker
