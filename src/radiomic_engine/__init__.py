"""Radiomic feature extraction engine for 3D medical image volumes."""

from __future__ import annotations

from .errors import (
    ComputationError,
    DecodeError,
    DegenerateRangeError,
    EmptyForegroundError,
    RadiomicsError,
)
from .features.batch import BatchResult, FileResult, extract, extract_files
from .features.extractor import FeatureConfig, FeatureExtractor, FeatureSet
from .volume import VoxelSpacing

__version__ = "0.1.0"

__all__ = [
    "RadiomicsError",
    "DecodeError",
    "EmptyForegroundError",
    "DegenerateRangeError",
    "ComputationError",
    "BatchResult",
    "FileResult",
    "FeatureConfig",
    "FeatureExtractor",
    "FeatureSet",
    "VoxelSpacing",
    "extract",
    "extract_files",
]
