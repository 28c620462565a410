"""Readers for NIfTI and DICOM containers.

The engine only ever sees the decoded intensity volume and its voxel
spacing; this module is the single place that touches file formats.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

import nibabel as nib
import numpy as np
import pydicom
from loguru import logger

from radiomic_engine.errors import DecodeError
from radiomic_engine.volume import VoxelSpacing

NIFTI_SUFFIXES = (".nii.gz", ".nii", ".gz")
DICOM_SUFFIXES = (".dcm", ".dicom", ".ima")


def detect_file_type(path: str | Path) -> str | None:
    """Return ``"nifti"``, ``"dicom"`` or None based on the file extension."""
    name = Path(path).name.lower()
    if name.endswith(NIFTI_SUFFIXES):
        return "nifti"
    if name.endswith(DICOM_SUFFIXES):
        return "dicom"
    return None


def read_nifti(path: Path) -> tuple[np.ndarray, VoxelSpacing]:
    """Read a NIfTI volume (optionally gzipped) with nibabel."""
    try:
        img = nib.load(str(path))
        volume = np.asarray(img.get_fdata(dtype=np.float64))
        zooms = img.header.get_zooms()
    except Exception as exc:  # nibabel header errors, truncated or corrupt gzip streams
        msg = f"Error reading NIfTI file {path.name}: {exc}"
        raise DecodeError(msg) from exc

    if volume.ndim == 2:
        volume = volume[:, :, np.newaxis]
    if volume.ndim != 3:
        msg = f"Expected a 3D NIfTI volume in {path.name}, got shape {volume.shape}"
        raise DecodeError(msg)

    try:
        spacing = VoxelSpacing.from_sequence(zooms)
    except ValueError as exc:
        msg = f"Invalid voxel spacing in {path.name}: {exc}"
        raise DecodeError(msg) from exc
    return volume, spacing


def read_dicom(path: Path) -> tuple[np.ndarray, VoxelSpacing]:
    """Read a single DICOM file with pydicom.

    Pixel data is returned as stored (no modality LUT). Rows and columns are
    transposed so the first axis runs along image columns, and single frames
    become a one-slice volume.
    """
    try:
        ds = pydicom.dcmread(str(path))
        pixels = np.asarray(ds.pixel_array, dtype=np.float64)
    except Exception as exc:  # missing tags, unsupported transfer syntaxes
        msg = f"Error reading DICOM file {path.name}: {exc}"
        raise DecodeError(msg) from exc

    if pixels.ndim == 2:
        volume = pixels.T[:, :, np.newaxis]
    elif pixels.ndim == 3:
        # (frames, rows, cols) -> (cols, rows, frames)
        volume = np.transpose(pixels, (2, 1, 0))
    else:
        msg = f"Unsupported DICOM pixel array shape {pixels.shape} in {path.name}"
        raise DecodeError(msg)

    pixel_spacing = getattr(ds, "PixelSpacing", None) or [1.0, 1.0]
    slice_thickness = getattr(ds, "SliceThickness", None) or 1.0
    try:
        spacing = VoxelSpacing(float(pixel_spacing[0]), float(pixel_spacing[1]), float(slice_thickness))
    except (ValueError, TypeError, IndexError) as exc:
        msg = f"Invalid voxel spacing in {path.name}: {exc}"
        raise DecodeError(msg) from exc
    return volume, spacing


def decode(path: str | Path) -> tuple[np.ndarray, VoxelSpacing]:
    """Decode a medical image file into an intensity volume and voxel spacing.

    Raises:
        DecodeError: If the file does not exist, has an unsupported
            extension, or cannot be read.
    """
    path = Path(path)
    if not path.is_file():
        msg = f"File not found: {path}"
        raise DecodeError(msg)

    file_type = detect_file_type(path)
    if file_type is None:
        msg = f"Unsupported file format: {path.name}"
        raise DecodeError(msg)

    logger.debug(f"Decoding {path.name} as {file_type}")
    if file_type == "nifti":
        return read_nifti(path)
    return read_dicom(path)


def collect_files(inputs: Iterable[str | Path]) -> list[Path]:
    """Expand a mix of files and directories into supported image files.

    Directories are searched recursively and their matches sorted; explicit
    file paths are kept as given, in order.
    """
    files: list[Path] = []
    for item in inputs:
        path = Path(item)
        if path.is_dir():
            found = sorted(p for p in path.rglob("*") if p.is_file() and detect_file_type(p) is not None)
            logger.info(f"Found {len(found)} supported files in {path}")
            files.extend(found)
        else:
            files.append(path)
    return files
