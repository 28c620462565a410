"""Batch extraction across files with per-file failure isolation.

Each file is decoded and run through the FeatureExtractor on its own. Any
failure in any stage is recorded in that file's FileResult, classified by the
RadiomicsError taxonomy, and never stops the rest of the batch. In parallel
mode files are spread over a joblib worker pool; each worker fills exactly
one pre-allocated result slot, so output order always matches input order.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from time import perf_counter
from typing import Any

import numpy as np
from joblib import Parallel, cpu_count, delayed
from loguru import logger
from tqdm import tqdm

from radiomic_engine.decode import decode
from radiomic_engine.errors import ComputationError, DecodeError, RadiomicsError
from radiomic_engine.volume import VoxelSpacing

from .extractor import FeatureConfig, FeatureExtractor, FeatureSet

Decoder = Callable[[str | Path], tuple[np.ndarray, VoxelSpacing]]

MODE_PARALLEL = "paralelo"
MODE_SEQUENTIAL = "lineal"
MODE_NONE = "none"


@dataclass(frozen=True)
class FileResult:
    """Outcome of extracting one file.

    Attributes:
        filename: Base name of the input file.
        success: Whether every stage completed.
        features: Extracted features, None on failure.
        error: Failure message, None on success.
        error_type: Name of the RadiomicsError subclass raised, None on success.
        elapsed: Wall time spent on this file in seconds.
    """

    filename: str
    success: bool
    features: FeatureSet | None = None
    error: str | None = None
    error_type: str | None = None
    elapsed: float = 0.0

    @property
    def feature_count(self) -> int:
        return self.features.feature_count if self.features is not None else 0

    def to_dict(self) -> dict[str, Any]:
        if self.success and self.features is not None:
            return {
                "archivo": self.filename,
                "success": True,
                "num_caracteristicas": self.feature_count,
                "caracteristicas": self.features.to_dict(),
            }
        return {
            "archivo": self.filename,
            "success": False,
            "error": self.error,
            "tipo_error": self.error_type,
            "num_caracteristicas": 0,
        }


@dataclass(frozen=True)
class BatchResult:
    """Results of one batch, in input order, plus timing and counters."""

    results: list[FileResult] = field(default_factory=list)
    total_time: float = 0.0
    mode: str = MODE_NONE
    error: str | None = None

    @property
    def success_count(self) -> int:
        return sum(1 for result in self.results if result.success)

    @property
    def failure_count(self) -> int:
        return len(self.results) - self.success_count

    @property
    def success(self) -> bool:
        """True when at least one file succeeded."""
        return self.success_count > 0

    def failures(self) -> list[FileResult]:
        return [result for result in self.results if not result.success]

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the nested map consumed by the calling layer."""
        results = [result.to_dict() for result in self.results]
        payload: dict[str, Any] = {
            "success": self.success,
            "results": results,
            "tiempo_total": self.total_time,
            "modo_usado": self.mode,
            "archivos_procesados": len(self.results),
            "archivos_exitosos": self.success_count,
            "archivos_fallidos": self.failure_count,
        }
        if self.error is not None:
            payload["error"] = self.error
        return payload

    def summary(self) -> dict[str, Any]:
        """Feature counts per category, summed over successful files."""
        per_category: dict[str, int] = {}
        for result in self.results:
            if not result.success or result.features is None:
                continue
            for category in result.features.categories:
                per_category[category] = per_category.get(category, 0) + len(result.features[category])

        if not per_category:
            return {"error": "No successful results"}
        return {
            "total_features": sum(per_category.values()),
            "features_por_categoria": per_category,
            "categorias": list(per_category),
        }


def _failed(path: Path, error: RadiomicsError, start: float) -> FileResult:
    return FileResult(
        filename=path.name,
        success=False,
        error=str(error),
        error_type=type(error).__name__,
        elapsed=perf_counter() - start,
    )


def extract_file(
    path: str | Path,
    config: FeatureConfig | None = None,
    decoder: Decoder = decode,
) -> FileResult:
    """Decode one file and extract its features, capturing per-file errors.

    Every exception raised while handling the file ends up in the returned
    FileResult. Errors outside the RadiomicsError taxonomy are classified by
    the stage that raised them: DecodeError while decoding, ComputationError
    while extracting.
    """
    path = Path(path)
    start = perf_counter()
    logger.info(f"Processing {path.name}")

    stage = "decoding"
    try:
        volume, spacing = decoder(path)
        logger.debug(f"  Decoded {path.name}: shape {np.shape(volume)}")
        stage = "extracting"
        features = FeatureExtractor(config).extract(volume, spacing)
    except RadiomicsError as exc:
        logger.warning(f"Failed {path.name} ({type(exc).__name__}): {exc}")
        return _failed(path, exc, start)
    except Exception as exc:
        logger.exception(f"Unexpected {type(exc).__name__} while {stage} {path.name}")
        error_cls = DecodeError if stage == "decoding" else ComputationError
        error = error_cls(f"Error {stage} {path.name}: {type(exc).__name__}: {exc}")
        return _failed(path, error, start)

    elapsed = perf_counter() - start
    logger.info(f"Completed {path.name}: {features.feature_count} features in {elapsed:.2f}s")
    return FileResult(filename=path.name, success=True, features=features, elapsed=elapsed)


def _extract_slot(
    index: int,
    path: str | Path,
    config: FeatureConfig | None,
    decoder: Decoder,
) -> tuple[int, FileResult]:
    return index, extract_file(path, config=config, decoder=decoder)


def extract_files(
    paths: Sequence[str | Path],
    parallel: bool = False,
    config: FeatureConfig | None = None,
    n_jobs: int = -1,
    backend: str = "loky",
    show_progress: bool = False,
    decoder: Decoder = decode,
) -> BatchResult:
    """Extract features from many files, sequentially or in parallel.

    Args:
        paths: Input files, processed (and reported) in this order.
        parallel: Spread files over a worker pool instead of a plain loop.
        config: Feature extraction configuration. Uses defaults if None.
        n_jobs: Number of parallel workers (-1 = all CPUs).
        backend: joblib backend for parallel mode.
        show_progress: Whether to show a progress bar.
        decoder: Callable turning a path into (volume, spacing).

    Returns:
        BatchResult with one FileResult per input path.
    """
    paths = list(paths)
    mode = MODE_PARALLEL if parallel else MODE_SEQUENTIAL
    logger.info(f"Radiomics extraction: {len(paths)} files, mode {mode}")

    if not paths:
        logger.warning("No files given for extraction")
        return BatchResult(error="No files provided for processing")

    start = perf_counter()
    results: list[FileResult | None] = [None] * len(paths)

    if parallel:
        workers = cpu_count() if n_jobs == -1 else n_jobs
        logger.info(f"Starting parallel extraction with {workers} workers ({backend})")
        slots = Parallel(n_jobs=n_jobs, backend=backend)(
            delayed(_extract_slot)(index, path, config, decoder)
            for index, path in enumerate(tqdm(paths, desc="Extracting features", disable=not show_progress))
        )
        for index, file_result in slots:
            results[index] = file_result
    else:
        iterator = tqdm(paths, desc="Extracting features") if show_progress else paths
        for index, path in enumerate(iterator):
            logger.debug(f"File {index + 1} of {len(paths)}")
            results[index] = extract_file(path, config=config, decoder=decoder)

    batch = BatchResult(results=list(results), total_time=perf_counter() - start, mode=mode)

    logger.info(f"Extraction complete in {batch.total_time:.2f}s")
    logger.info(f"  Processed: {len(batch.results)}")
    logger.info(f"  Succeeded: {batch.success_count}")
    logger.info(f"  Failed: {batch.failure_count}")
    if batch.success_count:
        logger.info(f"  Mean time per successful file: {batch.total_time / batch.success_count:.2f}s")
    return batch


def extract(paths: Sequence[str | Path], parallel: bool = False) -> BatchResult:
    """Extract features from files with default settings."""
    return extract_files(paths, parallel=parallel)
