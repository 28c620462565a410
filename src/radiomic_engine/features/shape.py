"""Shape/morphological features from a 3D foreground mask.

The mask is taken as-is (intensity > 0); no thresholding or connected
component selection is applied. Physical units come from the voxel spacing.
"""

from __future__ import annotations

import numpy as np

from radiomic_engine.volume import VoxelSpacing

EPS = np.finfo(np.float64).eps

SHAPE_FEATURE_NAMES = (
    "volume",
    "major_axis_length",
    "middle_axis_length",
    "minor_axis_length",
    "elongation",
    "flatness",
    "surface_area",
    "sphericity",
    "compactness_1",
    "compactness_2",
    "surface_to_volume_ratio",
)


def surface_area(mask: np.ndarray, spacing: VoxelSpacing) -> float:
    """Approximate surface area by counting exposed voxel faces.

    A face of a foreground voxel is exposed when its 6-connected neighbour
    is background or lies outside the volume. X-facing faces weigh
    ``y * z``, Y-facing ``x * z`` and Z-facing ``x * y``.
    """
    padded = np.pad(np.asarray(mask, dtype=bool), 1, mode="constant", constant_values=False)
    face_areas = (spacing.y * spacing.z, spacing.x * spacing.z, spacing.x * spacing.y)

    area = 0.0
    for axis, face_area in enumerate(face_areas):
        # A transition between neighbours along the axis marks one exposed face
        exposed = np.count_nonzero(np.diff(padded, axis=axis))
        area += exposed * face_area
    return float(area)


def principal_axis_variances(mask: np.ndarray, spacing: VoxelSpacing) -> np.ndarray:
    """Eigenvalues of the physical-coordinate covariance, sorted descending."""
    coords = np.argwhere(mask).astype(np.float64) * np.array(spacing.as_tuple())
    if coords.shape[0] < 2:
        return np.zeros(3)
    covariance = np.cov(coords, rowvar=False)
    eigenvalues = np.linalg.eigvalsh(covariance)
    return np.clip(np.sort(eigenvalues)[::-1], 0.0, None)


def extract_shape_features(mask: np.ndarray, spacing: VoxelSpacing | None = None) -> dict[str, float]:
    """Extract shape features from a boolean foreground mask.

    Args:
        mask: Boolean 3D mask (X, Y, Z).
        spacing: Voxel spacing in mm (default: isotropic 1 mm).

    Returns:
        Dictionary with 11 features in ``SHAPE_FEATURE_NAMES`` order, or an
        empty dictionary when the mask has no foreground voxels. Axis
        lengths are ``4 * sqrt(lambda)`` of the covariance eigenvalues
        (largest, middle, smallest), each offset by machine epsilon.
    """
    spacing = spacing or VoxelSpacing()
    mask = np.asarray(mask, dtype=bool)

    volume = float(np.count_nonzero(mask) * spacing.voxel_volume)
    if volume == 0:
        return {}

    largest, middle, smallest = principal_axis_variances(mask, spacing) + EPS

    area = surface_area(mask, spacing)

    return {
        "volume": volume,
        "major_axis_length": float(4 * np.sqrt(largest)),
        "middle_axis_length": float(4 * np.sqrt(middle)),
        "minor_axis_length": float(4 * np.sqrt(smallest)),
        "elongation": float(np.sqrt(middle / largest)),
        "flatness": float(np.sqrt(smallest / largest)),
        "surface_area": area,
        "sphericity": float(np.pi ** (1 / 3) * (6 * volume) ** (2 / 3) / (area + EPS)),
        "compactness_1": float(volume / np.sqrt(np.pi * area**3)),
        "compactness_2": float(36 * np.pi * volume**2 / area**3),
        "surface_to_volume_ratio": area / volume,
    }
