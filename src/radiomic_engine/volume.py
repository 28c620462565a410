"""Decoded volume primitives: voxel spacing and array normalisation."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class VoxelSpacing:
    """Physical size of one voxel in millimetres along X, Y and Z."""

    x: float = 1.0
    y: float = 1.0
    z: float = 1.0

    def __post_init__(self) -> None:
        for axis in ("x", "y", "z"):
            value = float(getattr(self, axis))
            if not np.isfinite(value) or value <= 0:
                msg = f"Voxel spacing along {axis} must be a positive finite number, got {value}"
                raise ValueError(msg)
            object.__setattr__(self, axis, value)

    @classmethod
    def from_sequence(cls, values) -> VoxelSpacing:
        """Build spacing from the first three entries, padding missing axes with 1.0."""
        padded = [float(v) for v in list(values)[:3]]
        padded += [1.0] * (3 - len(padded))
        return cls(*padded)

    @property
    def voxel_volume(self) -> float:
        """Volume of a single voxel in cubic millimetres."""
        return self.x * self.y * self.z

    def as_tuple(self) -> tuple[float, float, float]:
        return (self.x, self.y, self.z)


def as_volume(volume: np.ndarray) -> np.ndarray:
    """Return the volume as a float64 3D array, promoting 2D images to one slice."""
    array = np.asarray(volume, dtype=np.float64)
    if array.ndim == 2:
        array = array[:, :, np.newaxis]
    if array.ndim != 3:
        msg = f"Expected a 2D or 3D volume, got an array with {array.ndim} dimensions"
        raise ValueError(msg)
    return array
