"""
AMF: Adaptive Matrix Factorization for QoS prediction

Learns low-rank user and service factors from a sparsely observed
user × service QoS matrix, predicting every entry as σ(U[i]·S[j]).

Training is stochastic gradient descent on a relative squared error, with
per-user and per-service confidence weights that adapt online:
- Confidence tracking: moving average of relative prediction error
- Confidence-weighted gradients: error split between user and service side
- Relative loss: L = ½·Σ((r - p)/r)² + ½·λ(||U||² + ||S||²)
"""

__version__ = "0.1.0"

# Core data structures
from .data import QoSData, extract_samples, remove_entries, QoSNormalizer

# Confidence model
from .models import ConfidenceTracker

# Loss functions
from .objectives import sigmoid, grad_sigmoid, relative_loss

# Optimization
from .optimization import (
    predict_matrix,
    run_amf,
    AMFTrainer,
    amf_train
)

# Evaluation
from .evaluation import evaluate

__all__ = [
    # Data
    "QoSData",
    "extract_samples",
    "remove_entries",
    "QoSNormalizer",

    # Confidence
    "ConfidenceTracker",

    # Losses
    "sigmoid",
    "grad_sigmoid",
    "relative_loss",

    # Optimization
    "predict_matrix",
    "run_amf",
    "AMFTrainer",
    "amf_train",

    # Evaluation
    "evaluate",
]
