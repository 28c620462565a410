"""Volume preprocessing shared by every feature engine.

A single pass over the decoded volume produces:
- the foreground mask (intensity > 0),
- the finite foreground intensity population used by first-order statistics,
- the min-max quantized volume used to build the texture matrices.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from radiomic_engine.errors import DegenerateRangeError, EmptyForegroundError
from radiomic_engine.volume import VoxelSpacing, as_volume

DEFAULT_LEVELS = 256


@dataclass(frozen=True)
class PreparedVolume:
    """Everything the feature engines need for one file.

    Attributes:
        mask: Boolean foreground mask, same shape as the source volume.
        intensities: Finite foreground intensities as a flat float64 array.
        quantized: Quantized gray levels (uint8 for up to 256 levels).
        spacing: Voxel spacing of the source volume.
        levels: Number of gray levels used for quantization.
    """

    mask: np.ndarray
    intensities: np.ndarray
    quantized: np.ndarray
    spacing: VoxelSpacing
    levels: int = DEFAULT_LEVELS


def build_mask(volume: np.ndarray) -> np.ndarray:
    """Foreground mask: every voxel with intensity strictly greater than zero."""
    with np.errstate(invalid="ignore"):
        return np.asarray(volume > 0, dtype=bool)


def foreground_intensities(volume: np.ndarray, mask: np.ndarray) -> np.ndarray:
    """Flat array of masked intensities with NaN and Inf removed.

    Raises:
        EmptyForegroundError: If no finite foreground voxel remains.
    """
    values = volume[mask]
    values = values[np.isfinite(values)]
    if values.size == 0:
        raise EmptyForegroundError("No finite foreground voxels (intensity > 0) in volume")
    return values.astype(np.float64, copy=False)


def quantize_volume(volume: np.ndarray, levels: int = DEFAULT_LEVELS) -> np.ndarray:
    """Min-max rescale the whole volume to integer gray levels ``0 .. levels - 1``.

    The range is taken over the entire volume, not just the foreground.
    Rounding is half-to-even. Non-finite voxels map to the lowest level
    (``+inf`` to the highest).

    Raises:
        DegenerateRangeError: If the volume has no finite values or max == min.
    """
    finite = volume[np.isfinite(volume)]
    if finite.size == 0:
        raise DegenerateRangeError("Volume has no finite intensities to quantize")

    vmin, vmax = float(finite.min()), float(finite.max())
    if vmax == vmin:
        raise DegenerateRangeError(f"Volume has a zero intensity range (min = max = {vmin})")

    top = levels - 1
    with np.errstate(invalid="ignore", over="ignore"):
        scaled = np.round((volume - vmin) / (vmax - vmin) * top)
    scaled = np.nan_to_num(scaled, nan=0.0, posinf=float(top), neginf=0.0)
    dtype = np.uint8 if levels <= 256 else np.uint16
    return np.clip(scaled, 0, top).astype(dtype)


def prepare_volume(
    volume: np.ndarray,
    spacing: VoxelSpacing,
    levels: int = DEFAULT_LEVELS,
) -> PreparedVolume:
    """Run the full preprocessing step for one decoded volume.

    Raises:
        EmptyForegroundError: No finite foreground voxels.
        DegenerateRangeError: Zero intensity range across the volume.
    """
    array = as_volume(volume)
    mask = build_mask(array)
    intensities = foreground_intensities(array, mask)
    quantized = quantize_volume(array, levels=levels)
    for derived in (mask, intensities, quantized):
        derived.setflags(write=False)
    return PreparedVolume(
        mask=mask,
        intensities=intensities,
        quantized=quantized,
        spacing=spacing,
        levels=levels,
    )
