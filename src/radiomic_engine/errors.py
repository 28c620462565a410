"""Error taxonomy for per-file radiomics extraction.

Every error here is fatal for the file being processed and nothing else:
the batch orchestrator records it in that file's result and moves on.
"""

from __future__ import annotations


class RadiomicsError(Exception):
    """Base class for all per-file extraction failures."""


class DecodeError(RadiomicsError):
    """The file is missing, unsupported, or its container could not be read."""


class EmptyForegroundError(RadiomicsError):
    """No finite foreground voxels (intensity > 0) were found in the volume."""


class DegenerateRangeError(RadiomicsError):
    """The volume has a zero intensity range, so it cannot be quantized."""


class ComputationError(RadiomicsError):
    """A feature engine failed numerically or produced a non-finite value."""
