"""
AMF Optimization Objectives

This module contains the link function and the monitored loss.
"""

from .losses import (
    EPS,
    sigmoid,
    grad_sigmoid,
    relative_loss
)

__all__ = [
    "EPS",
    "sigmoid",
    "grad_sigmoid",
    "relative_loss"
]
