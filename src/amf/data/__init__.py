"""
AMF Data Structures

This module contains data handling and preprocessing utilities.
"""

from .qos_data import QoSData, extract_samples
from .preprocessing import remove_entries, QoSNormalizer
from .synthetic import generate_low_rank_qos

__all__ = [
    # Data structures
    "QoSData",
    "extract_samples",
    # Preprocessing
    "remove_entries",
    "QoSNormalizer",
    # Synthetic data generation
    "generate_low_rank_qos",
]
