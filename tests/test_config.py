"""Tests for Hydra configuration validation and the extraction CLI."""

import json
from pathlib import Path

import nibabel as nib
import numpy as np
import pytest
from hydra import compose, initialize_config_dir
from omegaconf import DictConfig

from radiomic_engine.features import FeatureConfig
from radiomic_engine.features.extract_radiomics import main

# Get absolute path to configs directory
CONFIGS_DIR = str(Path(__file__).parent.parent / "configs")


@pytest.fixture(scope="module")
def default_config() -> DictConfig:
    """Load the default configuration."""
    with initialize_config_dir(version_base="1.3", config_dir=CONFIGS_DIR):
        return compose(config_name="config")


def test_config_loads_successfully(default_config: DictConfig):
    """Test that the default config can be loaded without errors."""
    assert default_config is not None
    assert isinstance(default_config, DictConfig)


def test_config_has_required_sections(default_config: DictConfig):
    """Test that all required config sections exist."""
    for section in ["features", "extraction", "paths"]:
        assert section in default_config, f"Missing required section: {section}"


def test_feature_config_from_hydra(default_config: DictConfig):
    """Test that the features section builds the default FeatureConfig."""
    assert FeatureConfig.from_hydra(default_config) == FeatureConfig()


def test_extraction_config_structure(default_config: DictConfig):
    """Test extraction configuration has required fields."""
    extraction_cfg = default_config.extraction

    assert isinstance(extraction_cfg.parallel, bool)
    assert extraction_cfg.n_jobs == -1
    assert extraction_cfg.backend in {"loky", "threading", "multiprocessing"}


def test_config_overrides():
    """Test Hydra-style overrides of feature settings."""
    with initialize_config_dir(version_base="1.3", config_dir=CONFIGS_DIR):
        cfg = compose(config_name="config", overrides=["features.levels=64", "extraction.parallel=true"])

    assert FeatureConfig.from_hydra(cfg).levels == 64
    assert cfg.extraction.parallel is True


def test_cli_writes_results(tmp_path: Path):
    """Test the CLI end to end on a directory of NIfTI files."""
    rng = np.random.default_rng(1)
    inputs = tmp_path / "scans"
    inputs.mkdir()
    for i in range(2):
        data = (rng.random((8, 8, 2)) * 50 + 1).astype(np.float32)
        nib.save(nib.Nifti1Image(data, affine=np.eye(4)), str(inputs / f"scan_{i}.nii"))

    output = tmp_path / "out" / "results.json"
    with initialize_config_dir(version_base="1.3", config_dir=CONFIGS_DIR):
        cfg = compose(
            config_name="config",
            overrides=["extraction.show_progress=false", "features.levels=32"],
        )
    cfg.paths.inputs = [str(inputs)]
    cfg.paths.output = str(output)

    main(cfg)

    payload = json.loads(output.read_text())
    assert payload["success"] is True
    assert payload["archivos_procesados"] == 2
    assert payload["results"][0]["num_caracteristicas"] == 90
