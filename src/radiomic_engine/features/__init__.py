"""Radiomics feature extraction for 3D medical image volumes.

Features are grouped into five categories:
1. First-order intensity/histogram features (28 features)
2. Shape features (11 features)
3. GLCM texture features (16 features)
4. GLRLM texture features (19 features)
5. GLSZM texture features (16 features)
"""

from __future__ import annotations

from .batch import BatchResult, FileResult, extract, extract_file, extract_files
from .extractor import FeatureConfig, FeatureExtractor, FeatureSet
from .intensity import extract_first_order_features
from .preprocessing import PreparedVolume, prepare_volume, quantize_volume
from .run_length import compute_glrlm, extract_glrlm_features
from .shape import extract_shape_features, surface_area
from .size_zone import compute_glszm, extract_glszm_features, slice_zones
from .texture import compute_glcm, extract_glcm_features

__all__ = [
    "BatchResult",
    "FeatureConfig",
    "FeatureExtractor",
    "FeatureSet",
    "FileResult",
    "PreparedVolume",
    "compute_glcm",
    "compute_glrlm",
    "compute_glszm",
    "extract",
    "extract_file",
    "extract_files",
    "extract_first_order_features",
    "extract_glcm_features",
    "extract_glrlm_features",
    "extract_glszm_features",
    "extract_shape_features",
    "prepare_volume",
    "quantize_volume",
    "slice_zones",
    "surface_area",
]
