"""
AMF Models

This module contains the adaptive confidence model shared by the trainer.
"""

from .confidence import ConfidenceTracker

__all__ = ["ConfidenceTracker"]
