"""GLCM (Gray-Level Co-occurrence Matrix) texture features for 3D volumes.

The matrix uses a single offset: each voxel is paired with its neighbour
in the same row and the next column of its slice (offset [0, +1] in the
X-Y plane). Slice matrices are summed over Z and L1-normalized. No
symmetrisation or angle averaging is applied.
"""

from __future__ import annotations

import numpy as np
from skimage.feature import graycomatrix

EPS = np.finfo(np.float64).eps

GLCM_FEATURE_NAMES = (
    "autocorrelation",
    "contrast",
    "correlation",
    "homogeneity",
    "joint_energy",
    "joint_entropy",
    "difference_average",
    "difference_entropy",
    "difference_variance",
    "cluster_prominence",
    "cluster_shade",
    "imc1",
    "imc2",
    "idm",
    "idmn",
    "maximum_probability",
)


def normalize_matrix(matrix: np.ndarray) -> np.ndarray:
    """L1-normalize a count matrix; an empty matrix stays all zeros."""
    matrix = np.asarray(matrix, dtype=np.float64)
    total = matrix.sum()
    if total > 0:
        return matrix / total
    return matrix.copy()


def compute_glcm(quantized: np.ndarray, levels: int = 256, normalize: bool = True) -> np.ndarray:
    """Build the co-occurrence matrix of a quantized (X, Y, Z) volume.

    Args:
        quantized: Integer gray levels in ``0 .. levels - 1``.
        levels: Number of gray levels (matrix is ``levels x levels``).
        normalize: Return probabilities instead of raw pair counts.

    Returns:
        Matrix where entry ``[i, j]`` counts voxels of level ``i`` whose
        next-column neighbour has level ``j``.
    """
    quantized = np.asarray(quantized)
    dtype = np.uint8 if levels <= 256 else np.uint16

    glcm = np.zeros((levels, levels), dtype=np.float64)
    for z in range(quantized.shape[2]):
        # Angle 0, distance 1: pixel (r, c) paired with (r, c + 1)
        counts = graycomatrix(
            quantized[:, :, z].astype(dtype),
            distances=[1],
            angles=[0],
            levels=levels,
            symmetric=False,
            normed=False,
        )
        glcm += counts[:, :, 0, 0]
    return normalize_matrix(glcm) if normalize else glcm


def glcm_features(glcm: np.ndarray) -> dict[str, float]:
    """Derive 16 texture features from a normalized co-occurrence matrix.

    Gray-level indices run from 0. Every logarithm and division is guarded
    with machine epsilon, and the IMC2 radicand is clamped at zero.
    """
    glcm = np.asarray(glcm, dtype=np.float64)
    ng = glcm.shape[0]

    i_idx, j_idx = np.indices((ng, ng), dtype=np.float64)

    px = glcm.sum(axis=1)
    py = glcm.sum(axis=0)

    mu_i = np.sum(i_idx * glcm)
    mu_j = np.sum(j_idx * glcm)
    i_cent = i_idx - mu_i
    j_cent = j_idx - mu_j
    sigma_i = np.sqrt(np.sum(i_cent**2 * glcm))
    sigma_j = np.sqrt(np.sum(j_cent**2 * glcm))

    diff_abs = np.abs(i_idx - j_idx)
    diff_sq = (i_idx - j_idx) ** 2

    autocorrelation = np.sum(i_idx * j_idx * glcm)
    contrast = np.sum(diff_sq * glcm)
    correlation = np.sum(i_cent * j_cent * glcm) / (sigma_i * sigma_j + EPS)
    homogeneity = np.sum(glcm / (1 + diff_abs))
    joint_energy = np.sum(glcm**2)
    joint_entropy = -np.sum(glcm * np.log2(glcm + EPS))

    # Distribution of |i - j|
    p_diff = np.bincount(diff_abs.astype(np.int64).ravel(), weights=glcm.ravel(), minlength=ng)
    p_diff = normalize_matrix(p_diff)
    k = np.arange(ng, dtype=np.float64)
    difference_average = np.sum(k * p_diff)
    difference_entropy = -np.sum(p_diff * np.log2(p_diff + EPS))
    difference_variance = np.sum((k - difference_average) ** 2 * p_diff)

    sum_cent = i_idx + j_idx - mu_i - mu_j
    cluster_prominence = np.sum(sum_cent**4 * glcm)
    cluster_shade = np.sum(sum_cent**3 * glcm)

    hx = -np.sum(px * np.log2(px + EPS))
    hy = -np.sum(py * np.log2(py + EPS))
    hxy = joint_entropy
    px_py = np.outer(px, py)
    hxy1 = -np.sum(glcm * np.log2(px_py + EPS))
    hxy2 = -np.sum(px_py * np.log2(px_py + EPS))

    imc1 = (hxy - hxy1) / (max(hx, hy) + EPS)
    imc2 = np.sqrt(max(0.0, 1 - np.exp(-2 * (hxy2 - hxy))))

    idm = np.sum(glcm / (1 + diff_sq))
    idmn = np.sum(glcm / (1 + diff_sq / (ng - 1) ** 2))

    return {
        "autocorrelation": float(autocorrelation),
        "contrast": float(contrast),
        "correlation": float(correlation),
        "homogeneity": float(homogeneity),
        "joint_energy": float(joint_energy),
        "joint_entropy": float(joint_entropy),
        "difference_average": float(difference_average),
        "difference_entropy": float(difference_entropy),
        "difference_variance": float(difference_variance),
        "cluster_prominence": float(cluster_prominence),
        "cluster_shade": float(cluster_shade),
        "imc1": float(imc1),
        "imc2": float(imc2),
        "idm": float(idm),
        "idmn": float(idmn),
        "maximum_probability": float(glcm.max()),
    }


def extract_glcm_features(quantized: np.ndarray, levels: int = 256) -> dict[str, float]:
    """Build the normalized GLCM of a quantized volume and derive its features."""
    return glcm_features(compute_glcm(quantized, levels=levels))
