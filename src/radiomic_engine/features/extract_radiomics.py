"""CLI for extracting radiomics features from NIfTI/DICOM files.

This script extracts first-order, shape and texture features from every
input file and writes the batch result as JSON.

Example:
    # Extract features from a directory with default config
    python -m radiomic_engine.features.extract_radiomics "paths.inputs=[data/scans]"

    # Run in parallel with fewer gray levels
    python -m radiomic_engine.features.extract_radiomics extraction.parallel=true features.levels=64

    # Specify number of parallel jobs
    python -m radiomic_engine.features.extract_radiomics extraction.parallel=true extraction.n_jobs=4
"""

from __future__ import annotations

import json
from pathlib import Path

import hydra
from loguru import logger
from omegaconf import DictConfig

from radiomic_engine.decode import collect_files

from .batch import extract_files
from .extractor import FeatureConfig


@hydra.main(version_base=None, config_path="../../../configs", config_name="config")
def main(cfg: DictConfig) -> None:
    """Extract radiomics features from the configured input files."""
    inputs = list(cfg.paths.get("inputs", []) or [])
    output_path = Path(cfg.paths.get("output", "outputs/radiomics_results.json"))

    feature_config = FeatureConfig.from_hydra(cfg)
    extraction_cfg = cfg.get("extraction", {})

    logger.info("Radiomics Feature Extraction")
    logger.info(f"  Inputs: {inputs}")
    logger.info(f"  Output: {output_path}")
    logger.info(f"  Feature config: {feature_config}")

    files = collect_files(inputs)
    if not files:
        logger.error("No input files found; set paths.inputs")
        return

    batch = extract_files(
        files,
        parallel=bool(extraction_cfg.get("parallel", False)),
        config=feature_config,
        n_jobs=int(extraction_cfg.get("n_jobs", -1)),
        backend=str(extraction_cfg.get("backend", "loky")),
        show_progress=bool(extraction_cfg.get("show_progress", True)),
    )

    for failed in batch.failures():
        logger.warning(f"  {failed.filename}: {failed.error_type}: {failed.error}")

    summary = batch.summary()
    if "error" not in summary:
        logger.info(f"  Features per file category: {summary['features_por_categoria']}")

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("w") as f:
        json.dump(batch.to_dict(), f, indent=2)
    logger.info(f"Saved results to {output_path}")


if __name__ == "__main__":
    main()
