"""
AMF Evaluation

This module contains accuracy metrics for QoS prediction.
"""

from .metrics import evaluate

__all__ = ["evaluate"]
