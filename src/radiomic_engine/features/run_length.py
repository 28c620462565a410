"""GLRLM (Gray-Level Run-Length Matrix) texture features for 3D volumes.

Runs are maximal sequences of identical gray levels along the rows of
each X-Y slice (same direction as the GLCM offset). Runs longer than
``max_run_length`` are dropped rather than clipped.
"""

from __future__ import annotations

import numpy as np

from .texture import EPS, normalize_matrix

DEFAULT_MAX_RUN_LENGTH = 50

GLRLM_FEATURE_NAMES = (
    "short_run_emphasis",
    "long_run_emphasis",
    "gray_level_non_uniformity",
    "run_length_non_uniformity",
    "run_percentage",
    "low_gray_level_run_emphasis",
    "high_gray_level_run_emphasis",
    "gray_level_variance",
    "run_length_variance",
    "gray_level_mean",
    "run_length_mean",
    "run_entropy",
    "uniformity",
    "low_gray_level_run_emphasis_2",
    "high_gray_level_run_emphasis_2",
    "short_run_high_gray_level_emphasis",
    "long_run_low_gray_level_emphasis",
    "short_run_low_gray_level_emphasis",
    "long_run_high_gray_level_emphasis",
)


def find_runs(quantized: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Locate every run along the rows of every slice.

    Returns:
        Tuple of (gray level, run length) arrays, one entry per run.
    """
    quantized = np.asarray(quantized)
    # One line per (x, z) pair, walking along Y
    lines = np.moveaxis(quantized, 1, -1).reshape(-1, quantized.shape[1])
    if lines.size == 0:
        return np.empty(0, dtype=np.int64), np.empty(0, dtype=np.int64)

    starts_mask = np.ones(lines.shape, dtype=bool)
    starts_mask[:, 1:] = lines[:, 1:] != lines[:, :-1]

    flat = lines.ravel()
    starts = np.flatnonzero(starts_mask.ravel())
    ends = np.append(starts[1:], flat.size)
    return flat[starts].astype(np.int64), ends - starts


def compute_glrlm(
    quantized: np.ndarray,
    levels: int = 256,
    max_run_length: int = DEFAULT_MAX_RUN_LENGTH,
    normalize: bool = True,
) -> np.ndarray:
    """Build the ``levels x max_run_length`` run-length matrix.

    Column ``j`` holds runs of length ``j + 1``.
    """
    values, lengths = find_runs(quantized)
    keep = lengths <= max_run_length
    index = values[keep] * max_run_length + (lengths[keep] - 1)
    counts = np.bincount(index, minlength=levels * max_run_length)
    glrlm = counts.reshape(levels, max_run_length).astype(np.float64)
    return normalize_matrix(glrlm) if normalize else glrlm


def glrlm_features(glrlm: np.ndarray, num_voxels: int) -> dict[str, float]:
    """Derive 19 features from a run-length count matrix.

    Args:
        glrlm: Raw run counts, ``levels x max_run_length``.
        num_voxels: Total voxel count of the volume, for run percentage.

    Gray levels and run lengths are indexed from 1 in the emphasis terms.
    """
    glrlm = np.asarray(glrlm, dtype=np.float64)
    ng, nr = glrlm.shape
    total_runs = glrlm.sum()
    pij = normalize_matrix(glrlm)

    i_vals = np.arange(1, ng + 1, dtype=np.float64)[:, np.newaxis]
    j_vals = np.arange(1, nr + 1, dtype=np.float64)[np.newaxis, :]
    i_sq = i_vals**2
    j_sq = j_vals**2
    inverted = ng - i_vals + 1

    sum_gray = pij.sum(axis=1)
    sum_run = pij.sum(axis=0)

    mu_i = np.sum(i_vals.ravel() * sum_gray)
    mu_j = np.sum(j_vals.ravel() * sum_run)

    return {
        "short_run_emphasis": float(np.sum(pij / j_sq)),
        "long_run_emphasis": float(np.sum(pij * j_sq)),
        "gray_level_non_uniformity": float(np.sum(sum_gray**2)),
        "run_length_non_uniformity": float(np.sum(sum_run**2)),
        "run_percentage": float(total_runs / num_voxels) if num_voxels else 0.0,
        "low_gray_level_run_emphasis": float(np.sum(pij / i_sq)),
        "high_gray_level_run_emphasis": float(np.sum(pij * i_sq)),
        "gray_level_variance": float(np.sum((i_vals.ravel() - mu_i) ** 2 * sum_gray)),
        "run_length_variance": float(np.sum((j_vals.ravel() - mu_j) ** 2 * sum_run)),
        "gray_level_mean": float(mu_i),
        "run_length_mean": float(mu_j),
        "run_entropy": float(-np.sum(pij * np.log2(pij + EPS))),
        "uniformity": float(np.sum(pij**2)),
        "low_gray_level_run_emphasis_2": float(np.sum(pij / i_vals)),
        "high_gray_level_run_emphasis_2": float(np.sum(pij * inverted)),
        "short_run_high_gray_level_emphasis": float(np.sum(pij / j_sq * inverted)),
        "long_run_low_gray_level_emphasis": float(np.sum(pij * j_sq * i_vals)),
        "short_run_low_gray_level_emphasis": float(np.sum(pij / j_sq / i_sq)),
        "long_run_high_gray_level_emphasis": float(np.sum(pij * j_sq * i_sq)),
    }


def extract_glrlm_features(
    quantized: np.ndarray,
    levels: int = 256,
    max_run_length: int = DEFAULT_MAX_RUN_LENGTH,
) -> dict[str, float]:
    """Build the GLRLM of a quantized volume and derive its features."""
    counts = compute_glrlm(quantized, levels=levels, max_run_length=max_run_length, normalize=False)
    return glrlm_features(counts, num_voxels=int(np.asarray(quantized).size))
