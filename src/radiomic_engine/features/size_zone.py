"""GLSZM (Gray-Level Size-Zone Matrix) texture features for 3D volumes.

Zones are 8-connected groups of equal gray level inside each X-Y slice.
Every pixel of the quantized slice belongs to exactly one zone, background
included. Zone sizes are accumulated over slices into a matrix whose width
grows with the largest zone seen and is finally trimmed to the last
non-empty column.
"""

from __future__ import annotations

import numpy as np
from skimage import measure

from .texture import EPS, normalize_matrix

DEFAULT_MAX_ZONE_SIZE = 1000

GLSZM_FEATURE_NAMES = (
    "small_zone_emphasis",
    "large_zone_emphasis",
    "gray_level_non_uniformity",
    "zone_size_non_uniformity",
    "low_gray_level_zone_emphasis",
    "high_gray_level_zone_emphasis",
    "zone_percentage",
    "gray_level_variance",
    "zone_size_variance",
    "zone_entropy",
    "uniformity",
    "small_zone_high_gray_level_emphasis",
    "large_zone_low_gray_level_emphasis",
    "small_zone_low_gray_level_emphasis",
    "large_zone_high_gray_level_emphasis",
    "gray_level_non_uniformity_normalized",
)


def label_zones(slice_2d: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Label the 8-connected zones of a 2D slice.

    Labelling is iterative (union-find), so zone size is not limited by
    recursion depth, and each pixel gets exactly one label.

    Returns:
        ``(levels, sizes)`` arrays with one entry per zone, in the raster
        order of each zone's first pixel. Sizes sum to the slice's pixel
        count.
    """
    pixels = np.asarray(slice_2d).astype(np.int64)
    if pixels.size == 0:
        return np.zeros(0, dtype=np.int64), np.zeros(0, dtype=np.int64)

    # Gray levels are never negative, so background=-1 zones every pixel
    labels = measure.label(pixels, background=-1, connectivity=2).ravel()
    sizes = np.bincount(labels)[1:]
    levels = np.zeros(sizes.size, dtype=np.int64)
    levels[labels - 1] = pixels.ravel()
    return levels, sizes


def slice_zones(slice_2d: np.ndarray) -> list[tuple[int, int]]:
    """Partition a 2D slice into zones.

    Returns:
        List of (gray level, zone size) pairs in scan order. Zone sizes sum
        to the slice's pixel count.
    """
    levels, sizes = label_zones(slice_2d)
    return list(zip(levels.tolist(), sizes.tolist(), strict=True))


class ZoneSizeAccumulator:
    """Growable ``levels x width`` count buffer for zone sizes.

    Column ``j`` holds zones of size ``j + 1``. The buffer starts at
    ``initial_width`` columns and doubles (at least) when a larger zone is
    added. ``max_seen`` tracks the largest zone size recorded.
    """

    def __init__(self, levels: int, initial_width: int = DEFAULT_MAX_ZONE_SIZE) -> None:
        self.levels = levels
        self.counts = np.zeros((levels, max(1, initial_width)), dtype=np.float64)
        self.max_seen = 0

    @property
    def width(self) -> int:
        return self.counts.shape[1]

    def _grow(self, size: int) -> None:
        new_width = max(size, 2 * self.width)
        widened = np.zeros((self.levels, new_width), dtype=np.float64)
        widened[:, : self.width] = self.counts
        self.counts = widened

    def add_zones(self, levels: np.ndarray, sizes: np.ndarray) -> None:
        """Count one zone per ``(levels[k], sizes[k])`` pair."""
        sizes = np.asarray(sizes, dtype=np.int64)
        if sizes.size == 0:
            return
        largest = int(sizes.max())
        if largest > self.width:
            self._grow(largest)
        np.add.at(self.counts, (np.asarray(levels, dtype=np.int64), sizes - 1), 1)
        self.max_seen = max(self.max_seen, largest)

    def matrix(self) -> np.ndarray:
        """Counts trimmed to the last non-empty column (one column if empty)."""
        return self.counts[:, : max(1, self.max_seen)].copy()


def compute_glszm(
    quantized: np.ndarray,
    levels: int = 256,
    max_zone_size: int = DEFAULT_MAX_ZONE_SIZE,
    normalize: bool = True,
) -> np.ndarray:
    """Build the size-zone matrix of a quantized (X, Y, Z) volume.

    Args:
        quantized: Integer gray levels in ``0 .. levels - 1``.
        levels: Number of gray levels (matrix rows).
        max_zone_size: Initial accumulator width, capped at one slice's
            pixel count; the matrix widens if a larger zone appears.
        normalize: Return probabilities instead of raw zone counts.
    """
    quantized = np.asarray(quantized)
    slice_pixels = quantized.shape[0] * quantized.shape[1]
    accumulator = ZoneSizeAccumulator(levels, initial_width=min(max_zone_size, slice_pixels))

    for z in range(quantized.shape[2]):
        accumulator.add_zones(*label_zones(quantized[:, :, z]))

    glszm = accumulator.matrix()
    return normalize_matrix(glszm) if normalize else glszm


def glszm_features(glszm: np.ndarray, num_voxels: int) -> dict[str, float]:
    """Derive 16 features from a size-zone count matrix.

    Args:
        glszm: Raw zone counts, ``levels x max_zone_size_seen``.
        num_voxels: Total voxel count of the volume, for zone percentage.

    Non-uniformities are computed on the normalized matrix, so the
    normalized gray-level non-uniformity divides by its total of 1.
    """
    glszm = np.asarray(glszm, dtype=np.float64)
    ng, ns = glszm.shape
    total_zones = glszm.sum()
    pij = normalize_matrix(glszm)

    i_vals = np.arange(1, ng + 1, dtype=np.float64)[:, np.newaxis]
    j_vals = np.arange(1, ns + 1, dtype=np.float64)[np.newaxis, :]
    i_sq = i_vals**2
    j_sq = j_vals**2
    inverted = ng - i_vals + 1

    sum_gray = pij.sum(axis=1)
    sum_zone = pij.sum(axis=0)
    total = pij.sum()

    mu_i = np.sum(i_vals.ravel() * sum_gray)
    mu_j = np.sum(j_vals.ravel() * sum_zone)

    gray_level_non_uniformity = np.sum(sum_gray**2)

    return {
        "small_zone_emphasis": float(np.sum(pij / j_sq)),
        "large_zone_emphasis": float(np.sum(pij * j_sq)),
        "gray_level_non_uniformity": float(gray_level_non_uniformity),
        "zone_size_non_uniformity": float(np.sum(sum_zone**2)),
        "low_gray_level_zone_emphasis": float(np.sum(pij / i_sq)),
        "high_gray_level_zone_emphasis": float(np.sum(pij * i_sq)),
        "zone_percentage": float(total_zones / num_voxels) if num_voxels else 0.0,
        "gray_level_variance": float(np.sum((i_vals.ravel() - mu_i) ** 2 * sum_gray)),
        "zone_size_variance": float(np.sum((j_vals.ravel() - mu_j) ** 2 * sum_zone)),
        "zone_entropy": float(-np.sum(pij * np.log2(pij + EPS))),
        "uniformity": float(np.sum(pij**2)),
        "small_zone_high_gray_level_emphasis": float(np.sum(pij / j_sq * inverted)),
        "large_zone_low_gray_level_emphasis": float(np.sum(pij * j_sq * i_vals)),
        "small_zone_low_gray_level_emphasis": float(np.sum(pij / j_sq / i_sq)),
        "large_zone_high_gray_level_emphasis": float(np.sum(pij * j_sq * i_sq)),
        "gray_level_non_uniformity_normalized": float(gray_level_non_uniformity / total) if total > 0 else 0.0,
    }


def extract_glszm_features(
    quantized: np.ndarray,
    levels: int = 256,
    max_zone_size: int = DEFAULT_MAX_ZONE_SIZE,
) -> dict[str, float]:
    """Build the GLSZM of a quantized volume and derive its features."""
    counts = compute_glszm(quantized, levels=levels, max_zone_size=max_zone_size, normalize=False)
    return glszm_features(counts, num_voxels=int(np.asarray(quantized).size))
