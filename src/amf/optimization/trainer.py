"""
AMF Trainer: Adaptive Matrix Factorization for QoS prediction

This module provides two entry points around the SGD loop in sgd.py:

1. AMFTrainer: object interface that owns its factors and keeps a training
   history (fit / predict / plot_loss_curves)
2. amf_train: buffer interface that trains caller-supplied flat (row-major)
   or 2D arrays in place

Model:
    Q[i, j] ≈ σ(U[i]·S[j])

Per-sample updates are scaled by adaptive user/service confidence weights
(see models/confidence.py), so entities whose predictions have been reliable
take smaller steps on their own factors.
"""

import numpy as np
from typing import Optional, Dict, Union

from ..data.qos_data import QoSData
from ..objectives.losses import sigmoid
from .sgd import run_amf, predict_matrix


def _validate_hyperparameters(
    latent_dim: int,
    lambda_reg: float,
    max_iter: int,
    eta: float,
    beta: float,
    dim_name: str = "latent_dim"
):
    if latent_dim < 1:
        raise ValueError(f"{dim_name} must be positive, got {latent_dim}")
    if lambda_reg < 0:
        raise ValueError(f"lambda_reg must be non-negative, got {lambda_reg}")
    if max_iter < 0:
        raise ValueError(f"max_iter must be non-negative, got {max_iter}")
    if eta <= 0:
        raise ValueError(f"eta must be positive, got {eta}")
    if not 0 <= beta <= 1:
        raise ValueError(f"beta must be in [0, 1], got {beta}")


class AMFTrainer:
    """
    Adaptive Matrix Factorization trainer.

    Learns user factors U (n_users × d) and service factors S (n_services × d)
    from the observed entries of a QoS matrix, then predicts every cell as
    σ(U[i]·S[j]).

    Attributes:
        latent_dim: Dimensionality of latent space (d)
        lambda_reg: L2 regularization strength
        max_iter: Number of SGD epochs
        eta: Learning rate
        beta: Confidence moving-average rate
        U: User latent factors (n_users × d)
        S: Service latent factors (n_services × d)
        pred_: Full prediction matrix after fit
        user_confidence_: Final per-user confidence
        service_confidence_: Final per-service confidence
        history: Diagnostic loss checkpoints (filled when verbose)

    Example:
        >>> from amf.data import QoSData
        >>> from amf.optimization import AMFTrainer
        >>>
        >>> data = QoSData(M_train)
        >>> trainer = AMFTrainer(latent_dim=10, max_iter=300, random_seed=0)
        >>> trainer.fit(data)
        >>> P = trainer.predict()
    """

    def __init__(
        self,
        latent_dim: int = 10,
        lambda_reg: float = 0.001,
        max_iter: int = 300,
        eta: float = 0.8,
        beta: float = 0.3,
        verbose: bool = False,
        log_interval: int = 10000,
        check_finite: bool = True,
        random_seed: Optional[int] = None
    ):
        """
        Initialize AMF trainer.

        Parameters:
            latent_dim: Dimensionality of latent factors (d)
            lambda_reg: L2 regularization strength (λ ≥ 0)
            max_iter: Number of passes over the observed samples (≥ 0)
            eta: SGD learning rate (> 0)
            beta: Rate of the confidence moving average, in [0, 1]
            verbose: Whether to print training progress and loss checkpoints
            log_interval: Processed samples between loss checkpoints
            check_finite: Warn when training ends with NaN/inf values
            random_seed: Seed for factor initialization and shuffling

        Raises:
            ValueError: If parameters are invalid
        """
        _validate_hyperparameters(latent_dim, lambda_reg, max_iter, eta, beta)
        if log_interval < 1:
            raise ValueError(f"log_interval must be positive, got {log_interval}")

        self.latent_dim = latent_dim
        self.lambda_reg = lambda_reg
        self.max_iter = max_iter
        self.eta = eta
        self.beta = beta
        self.verbose = verbose
        self.log_interval = log_interval
        self.check_finite = check_finite
        self.random_seed = random_seed

        # Latent factors (initialized in fit)
        self.U: Optional[np.ndarray] = None
        self.S: Optional[np.ndarray] = None
        self.pred_: Optional[np.ndarray] = None

        self.user_confidence_: Optional[np.ndarray] = None
        self.service_confidence_: Optional[np.ndarray] = None

        self.history: Dict[str, list] = {
            'checkpoint': [],
            'epoch': [],
            'loss': []
        }

    def fit(
        self,
        data: Union[QoSData, np.ndarray],
        U_init: Optional[np.ndarray] = None,
        S_init: Optional[np.ndarray] = None,
        rng: Optional[np.random.Generator] = None
    ) -> 'AMFTrainer':
        """
        Fit the factor model on the observed entries.

        Parameters:
            data: QoSData or raw observation matrix (0 = missing)
            U_init: Initial user factors (n_users × d); uniform random if None
            S_init: Initial service factors (n_services × d); uniform random if None
            rng: Random generator for initialization and shuffling;
                 overrides random_seed when given

        Returns:
            self: Fitted trainer (for method chaining)

        Raises:
            ValueError: If initial factor shapes do not match the data
        """
        if not isinstance(data, QoSData):
            data = QoSData(data)

        n_users, n_services = data.n_users, data.n_services
        d = self.latent_dim

        if rng is None:
            rng = np.random.default_rng(self.random_seed)

        if U_init is not None:
            U_init = np.array(U_init, dtype=np.float64)
            if U_init.shape != (n_users, d):
                raise ValueError(
                    f"U_init shape {U_init.shape} must be ({n_users}, {d})"
                )
            self.U = U_init
        else:
            self.U = rng.random((n_users, d))

        if S_init is not None:
            S_init = np.array(S_init, dtype=np.float64)
            if S_init.shape != (n_services, d):
                raise ValueError(
                    f"S_init shape {S_init.shape} must be ({n_services}, {d})"
                )
            self.S = S_init
        else:
            self.S = rng.random((n_services, d))

        self.pred_ = np.zeros((n_users, n_services))
        self.history = {
            'checkpoint': [],
            'epoch': [],
            'loss': []
        }

        if self.verbose:
            print(f"Starting AMF training...")
            print(f"  Data: {n_users} users × {n_services} services")
            print(f"  Observed: {data.n_observed} ({100*data.density:.1f}%)")
            print(f"  Latent dim: {d}")
            print(f"  λ={self.lambda_reg:.4f}, η={self.eta:.4f}, β={self.beta:.2f}")
            print(f"  Epochs: {self.max_iter}")
            print()

        tracker = run_amf(
            data.matrix, self.U, self.S, self.pred_,
            lambda_reg=self.lambda_reg,
            max_iter=self.max_iter,
            eta=self.eta,
            beta=self.beta,
            rng=rng,
            verbose=self.verbose,
            log_interval=self.log_interval,
            history=self.history,
            check_finite=self.check_finite
        )

        self.user_confidence_ = tracker.user_confidence
        self.service_confidence_ = tracker.service_confidence

        if self.verbose:
            if self.history['loss']:
                print(f"\n✓ Training finished, last loss: {self.history['loss'][-1]:.6f}")
            else:
                print(f"\n✓ Training finished")
            print()

        return self

    def predict(
        self,
        users: Optional[np.ndarray] = None,
        services: Optional[np.ndarray] = None
    ) -> np.ndarray:
        """
        Predict QoS values.

        Parameters:
            users: User indices of the cells to predict
            services: Service indices of the cells to predict (same length)
                      If both are None, the full prediction matrix is returned

        Returns:
            predictions: (n_users × n_services) matrix, or (n_cells,) values

        Raises:
            ValueError: If model not fitted or only one index array is given

        Example:
            >>> P = trainer.predict()                    # full matrix
            >>> p = trainer.predict([0, 1], [3, 7])      # two cells
        """
        if self.U is None or self.S is None:
            raise ValueError("Model not fitted. Call fit() first.")

        if users is None and services is None:
            return predict_matrix(self.U, self.S)
        if users is None or services is None:
            raise ValueError("users and services must be given together")

        users = np.asarray(users)
        services = np.asarray(services)
        if users.shape != services.shape:
            raise ValueError(
                f"users shape {users.shape} must match services shape {services.shape}"
            )

        uv = np.sum(self.U[users] * self.S[services], axis=-1)
        return sigmoid(uv)

    def plot_loss_curves(self, figsize=(6, 4)):
        """
        Plot the loss recorded at diagnostic checkpoints.

        Requires verbose=True during fit (checkpoints are only taken then).

        Parameters:
            figsize: Figure size (width, height)
        """
        if len(self.history['loss']) == 0:
            print("No training history. Fit the model with verbose=True first.")
            return

        try:
            import matplotlib.pyplot as plt
        except ImportError:
            print("matplotlib not available. Install with: pip install matplotlib")
            return

        fig, ax = plt.subplots(figsize=figsize)
        ax.plot(self.history['checkpoint'], self.history['loss'], 'b-', linewidth=2)
        ax.set_xlabel('Processed samples')
        ax.set_ylabel('Loss')
        ax.set_title('AMF Relative Loss')
        ax.grid(True, alpha=0.3)

        plt.tight_layout()
        plt.show()


def amf_train(
    removed: np.ndarray,
    n_users: int,
    n_services: int,
    dim: int,
    lambda_reg: float,
    max_iter: int,
    eta: float,
    beta: float,
    debug: bool,
    U: np.ndarray,
    S: np.ndarray,
    pred: np.ndarray,
    rng: Optional[Union[int, np.random.Generator]] = None
):
    """
    Train AMF on caller-owned buffers.

    All arrays may be flat row-major buffers or already 2D. U, S and pred are
    written in place; removed is only read.

    Parameters:
        removed: Observation matrix buffer (n_users·n_services), 0 = missing
        n_users: Number of users
        n_services: Number of services
        dim: Latent dimension
        lambda_reg: L2 regularization strength
        max_iter: Number of epochs
        eta: Learning rate
        beta: Confidence moving-average rate
        debug: Print timestamped loss checkpoints
        U: Initial user factors buffer (n_users·dim)
        S: Initial service factors buffer (n_services·dim)
        pred: Output prediction buffer (n_users·n_services)
        rng: Seed or Generator for the per-epoch shuffle

    Returns:
        (U, S, pred): 2D views onto the caller's buffers

    Raises:
        ValueError: On invalid dimensions, hyperparameters or buffer sizes
    """
    if n_users < 1 or n_services < 1:
        raise ValueError(
            f"n_users and n_services must be positive, got ({n_users}, {n_services})"
        )
    _validate_hyperparameters(dim, lambda_reg, max_iter, eta, beta, dim_name="dim")

    removed_matrix = _as_matrix(removed, n_users, n_services, "removed")
    U_view = _as_matrix(U, n_users, dim, "U")
    S_view = _as_matrix(S, n_services, dim, "S")
    pred_view = _as_matrix(pred, n_users, n_services, "pred")

    run_amf(
        removed_matrix, U_view, S_view, pred_view,
        lambda_reg=lambda_reg,
        max_iter=max_iter,
        eta=eta,
        beta=beta,
        rng=np.random.default_rng(rng),
        verbose=debug
    )

    return U_view, S_view, pred_view


def _as_matrix(buffer: np.ndarray, n_rows: int, n_cols: int, name: str) -> np.ndarray:
    """Row-major 2D view onto a buffer; never copies."""
    if not isinstance(buffer, np.ndarray) or buffer.dtype != np.float64:
        raise ValueError(f"{name} must be a float64 numpy array")
    if buffer.size != n_rows * n_cols:
        raise ValueError(
            f"{name} has {buffer.size} elements, expected {n_rows}×{n_cols}={n_rows * n_cols}"
        )
    if not buffer.flags['C_CONTIGUOUS']:
        raise ValueError(f"{name} must be C-contiguous")

    # reshape of a contiguous array is a view; writes reach the caller's buffer
    return buffer.reshape(n_rows, n_cols)
