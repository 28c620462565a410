"""Main FeatureExtractor class for radiomics feature extraction.

This module provides a unified interface for extracting radiomics features
from one decoded 3D volume, combining first-order, shape and the three
texture-matrix families into a single FeatureSet.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from time import perf_counter
from typing import TYPE_CHECKING

import numpy as np
from loguru import logger

from radiomic_engine.errors import ComputationError
from radiomic_engine.volume import VoxelSpacing

from .intensity import FIRST_ORDER_FEATURE_NAMES, extract_first_order_features
from .preprocessing import DEFAULT_LEVELS, PreparedVolume, prepare_volume
from .run_length import DEFAULT_MAX_RUN_LENGTH, GLRLM_FEATURE_NAMES, extract_glrlm_features
from .shape import SHAPE_FEATURE_NAMES, extract_shape_features
from .size_zone import DEFAULT_MAX_ZONE_SIZE, GLSZM_FEATURE_NAMES, extract_glszm_features
from .texture import GLCM_FEATURE_NAMES, extract_glcm_features

if TYPE_CHECKING:
    from omegaconf import DictConfig

FEATURE_CATEGORIES: dict[str, tuple[str, ...]] = {
    "first_order": FIRST_ORDER_FEATURE_NAMES,
    "shape": SHAPE_FEATURE_NAMES,
    "texture_glcm": GLCM_FEATURE_NAMES,
    "texture_glrlm": GLRLM_FEATURE_NAMES,
    "texture_glszm": GLSZM_FEATURE_NAMES,
}

# Library errors an engine may raise on bad numerics
NUMERICAL_ERRORS = (ValueError, ArithmeticError, np.linalg.LinAlgError)


@dataclass
class FeatureConfig:
    """Configuration for feature extraction.

    Attributes:
        use_first_order: Whether to extract first-order intensity features.
        use_shape: Whether to extract shape features.
        use_glcm: Whether to extract GLCM texture features.
        use_glrlm: Whether to extract GLRLM texture features.
        use_glszm: Whether to extract GLSZM texture features.
        levels: Number of gray levels for quantization and texture matrices.
        max_run_length: Longest run counted by the GLRLM.
        max_zone_size: Initial GLSZM width (widened on demand).
    """

    use_first_order: bool = True
    use_shape: bool = True
    use_glcm: bool = True
    use_glrlm: bool = True
    use_glszm: bool = True
    levels: int = DEFAULT_LEVELS
    max_run_length: int = DEFAULT_MAX_RUN_LENGTH
    max_zone_size: int = DEFAULT_MAX_ZONE_SIZE

    def __post_init__(self) -> None:
        if self.levels < 2:
            msg = f"levels must be at least 2, got {self.levels}"
            raise ValueError(msg)
        if self.max_run_length < 1:
            msg = f"max_run_length must be at least 1, got {self.max_run_length}"
            raise ValueError(msg)
        if self.max_zone_size < 1:
            msg = f"max_zone_size must be at least 1, got {self.max_zone_size}"
            raise ValueError(msg)

    @classmethod
    def from_dict(cls, cfg: Mapping) -> FeatureConfig:
        """Create FeatureConfig from a dictionary."""
        return cls(
            use_first_order=bool(cfg.get("use_first_order", True)),
            use_shape=bool(cfg.get("use_shape", True)),
            use_glcm=bool(cfg.get("use_glcm", True)),
            use_glrlm=bool(cfg.get("use_glrlm", True)),
            use_glszm=bool(cfg.get("use_glszm", True)),
            levels=int(cfg.get("levels", DEFAULT_LEVELS)),
            max_run_length=int(cfg.get("max_run_length", DEFAULT_MAX_RUN_LENGTH)),
            max_zone_size=int(cfg.get("max_zone_size", DEFAULT_MAX_ZONE_SIZE)),
        )

    @classmethod
    def from_hydra(cls, cfg: DictConfig) -> FeatureConfig:
        """Create FeatureConfig from Hydra config."""
        features_cfg = cfg.get("features", {})
        return cls.from_dict(dict(features_cfg))

    def enabled_categories(self) -> list[str]:
        flags = {
            "first_order": self.use_first_order,
            "shape": self.use_shape,
            "texture_glcm": self.use_glcm,
            "texture_glrlm": self.use_glrlm,
            "texture_glszm": self.use_glszm,
        }
        return [category for category, enabled in flags.items() if enabled]


@dataclass(frozen=True)
class FeatureSet:
    """Immutable, ordered collection of features grouped by category.

    Stored as ``((category, ((name, value), ...)), ...)`` so it hashes,
    pickles and keeps insertion order.
    """

    entries: tuple[tuple[str, tuple[tuple[str, float], ...]], ...] = ()

    @classmethod
    def from_dict(cls, features: Mapping[str, Mapping[str, float]]) -> FeatureSet:
        return cls(
            tuple(
                (category, tuple((name, float(value)) for name, value in values.items()))
                for category, values in features.items()
            )
        )

    @property
    def categories(self) -> list[str]:
        return [category for category, _ in self.entries]

    @property
    def feature_count(self) -> int:
        return sum(len(values) for _, values in self.entries)

    def __getitem__(self, category: str) -> dict[str, float]:
        for name, values in self.entries:
            if name == category:
                return dict(values)
        raise KeyError(category)

    def __contains__(self, category: object) -> bool:
        return category in self.categories

    def __iter__(self) -> Iterator[str]:
        return iter(self.categories)

    def __len__(self) -> int:
        return len(self.entries)

    def to_dict(self) -> dict[str, dict[str, float]]:
        """Nested ``{category: {feature: value}}`` mapping."""
        return {category: dict(values) for category, values in self.entries}

    def flatten(self) -> dict[str, float]:
        """Flat ``{"category.feature": value}`` mapping."""
        return {f"{category}.{name}": value for category, values in self.entries for name, value in values}


def check_finite(category: str, features: Mapping[str, float]) -> None:
    """Raise ComputationError if any feature of a category is NaN or infinite."""
    bad = [name for name, value in features.items() if not np.isfinite(value)]
    if bad:
        msg = f"Non-finite {category} features: {', '.join(bad)}"
        raise ComputationError(msg)


class FeatureExtractor:
    """Extract radiomics features from a decoded 3D volume.

    The volume is preprocessed once (mask, intensity population, quantized
    levels) and each enabled engine runs on the shared result.

    Example:
        >>> extractor = FeatureExtractor()
        >>> rng = np.random.default_rng(42)
        >>> volume = rng.random((16, 16, 4)) * 100
        >>> features = extractor.extract(volume, VoxelSpacing(0.8, 0.8, 2.0))
        >>> print(f"Extracted {features.feature_count} features")
    """

    def __init__(self, config: FeatureConfig | None = None) -> None:
        """Initialize the feature extractor.

        Args:
            config: Feature extraction configuration. Uses defaults if None.
        """
        self.config = config or FeatureConfig()

    def _engines(self, prepared: PreparedVolume) -> dict[str, Callable[[], dict[str, float]]]:
        cfg = self.config
        return {
            "first_order": lambda: extract_first_order_features(
                prepared.intensities, prepared.spacing.voxel_volume
            ),
            "shape": lambda: extract_shape_features(prepared.mask, prepared.spacing),
            "texture_glcm": lambda: extract_glcm_features(prepared.quantized, levels=cfg.levels),
            "texture_glrlm": lambda: extract_glrlm_features(
                prepared.quantized, levels=cfg.levels, max_run_length=cfg.max_run_length
            ),
            "texture_glszm": lambda: extract_glszm_features(
                prepared.quantized, levels=cfg.levels, max_zone_size=cfg.max_zone_size
            ),
        }

    def extract(self, volume: np.ndarray, spacing: VoxelSpacing | None = None) -> FeatureSet:
        """Extract all configured features from one volume.

        Args:
            volume: 3D intensity array (X, Y, Z); 2D images become one slice.
            spacing: Voxel spacing in mm (default: isotropic 1 mm).

        Returns:
            FeatureSet with one entry per enabled category.

        Raises:
            EmptyForegroundError: No finite voxel with intensity > 0.
            DegenerateRangeError: The volume has a zero intensity range.
            ComputationError: An engine failed or produced a non-finite value.
        """
        spacing = spacing or VoxelSpacing()
        prepared = prepare_volume(volume, spacing, levels=self.config.levels)
        logger.debug(
            f"Prepared volume {prepared.quantized.shape}: "
            f"{prepared.intensities.size} foreground voxels, spacing {spacing.as_tuple()}"
        )

        engines = self._engines(prepared)
        features: dict[str, dict[str, float]] = {}
        for category in self.config.enabled_categories():
            start = perf_counter()
            try:
                values = engines[category]()
            except NUMERICAL_ERRORS as exc:
                msg = f"{category} computation failed: {exc}"
                raise ComputationError(msg) from exc
            check_finite(category, values)
            features[category] = values
            logger.debug(f"  {category}: {len(values)} features in {perf_counter() - start:.3f}s")

        return FeatureSet.from_dict(features)

    def get_feature_names(self) -> list[str]:
        """Get ``category.feature`` names of all features being extracted.

        Returns:
            List of feature names in the order they appear in a FeatureSet.
        """
        return [
            f"{category}.{name}"
            for category in self.config.enabled_categories()
            for name in FEATURE_CATEGORIES[category]
        ]

    @property
    def feature_dim(self) -> int:
        """Number of features extracted from a non-empty volume."""
        return len(self.get_feature_names())
