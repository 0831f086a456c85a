"""
AMF Optimization

This module contains the confidence-weighted SGD loop and the trainer
interfaces built on top of it:

1. sgd.py: per-sample update, predictor and the epoch loop (run_amf)
2. trainer.py: AMFTrainer (object interface) and amf_train (buffer interface)
"""

from .sgd import sgd_update, predict_matrix, run_amf, SMALL_VALUE_THRESHOLD
from .trainer import AMFTrainer, amf_train

__all__ = [
    # SGD
    'sgd_update',
    'predict_matrix',
    'run_amf',
    'SMALL_VALUE_THRESHOLD',
    # Trainers
    'AMFTrainer',
    'amf_train',
]
