"""First-order intensity/histogram features for 3D volumes.

All statistics are computed over the foreground intensity population
(finite voxels with intensity > 0). The histogram used for the entropy
family has 256 bins spanning [min, max] of that population.
"""

from __future__ import annotations

import numpy as np

from radiomic_engine.errors import EmptyForegroundError

HISTOGRAM_BINS = 256

FIRST_ORDER_FEATURE_NAMES = (
    "mean",
    "variance",
    "standard_deviation",
    "energy",
    "maximum",
    "minimum",
    "total_energy",
    "entropy",
    "percentile_10",
    "percentile_25",
    "median",
    "percentile_75",
    "percentile_90",
    "interquartile_range",
    "range",
    "mean_absolute_deviation",
    "root_mean_squared",
    "skewness",
    "kurtosis",
    "shannon_entropy",
    "renyi_entropy",
    "mode",
    "coefficient_of_variation",
    "normalized_entropy",
    "robust_mean_absolute_deviation",
    "robust_range",
    "quartile_coefficient_of_dispersion",
    "median_absolute_deviation",
)


def intensity_histogram(values: np.ndarray, bins: int = HISTOGRAM_BINS) -> tuple[np.ndarray, np.ndarray]:
    """Histogram over [min, max] with the top edge nudged up by one ulp.

    The nudge keeps the maximum inside the last bin and gives a non-empty
    range when every value is identical.
    """
    vmin = float(values.min())
    vmax = float(values.max())
    edges = np.linspace(vmin, vmax + np.spacing(vmax), bins + 1)
    counts, edges = np.histogram(values, bins=edges)
    return counts, edges


def extract_first_order_features(intensities: np.ndarray, voxel_volume: float = 1.0) -> dict[str, float]:
    """Extract first-order statistics from the foreground intensity population.

    Args:
        intensities: Flat array of finite foreground intensities.
        voxel_volume: Physical volume of one voxel (mm^3), scales total energy.

    Returns:
        Dictionary with 28 features in ``FIRST_ORDER_FEATURE_NAMES`` order.
        Variance is the sample variance (N - 1); skewness and kurtosis are
        the plain (non-excess) standardized moments and fall back to 0 for a
        zero-variance population.

    Raises:
        EmptyForegroundError: If the population is empty.
    """
    values = np.asarray(intensities, dtype=np.float64).ravel()
    n = values.size
    if n == 0:
        raise EmptyForegroundError("Cannot compute first-order features of an empty intensity population")

    mean = float(np.mean(values))
    # Sample variance, exactly zero for a constant population
    variance = float(np.var(values, ddof=1)) if n > 1 and values.max() > values.min() else 0.0
    std = float(np.sqrt(variance))
    vmin = float(values.min())
    vmax = float(values.max())

    energy = float(np.sum(values**2))
    total_energy = voxel_volume * energy

    counts, edges = intensity_histogram(values)
    p = counts / n
    p_nonzero = p[p > 0]
    entropy = float(-np.sum(p_nonzero * np.log2(p_nonzero)))
    renyi_entropy = float(-np.log2(np.sum(p_nonzero**2)))

    p10, p25, median, p75, p90 = (float(q) for q in np.quantile(values, [0.10, 0.25, 0.50, 0.75, 0.90]))

    deviations = values - mean
    if variance > 0:
        skewness = float(np.mean(deviations**3) / std**3)
        kurtosis = float(np.mean(deviations**4) / variance**2)
    else:
        skewness = 0.0
        kurtosis = 0.0

    # Only values inside [p10, p90] contribute to the robust deviation
    in_range = values[(values >= p10) & (values <= p90)]
    rmad = float(np.mean(np.abs(in_range - in_range.mean()))) if in_range.size else 0.0

    mode_bin = int(np.argmax(counts))
    mode = float((edges[mode_bin] + edges[mode_bin + 1]) / 2)

    return {
        "mean": mean,
        "variance": variance,
        "standard_deviation": std,
        "energy": energy,
        "maximum": vmax,
        "minimum": vmin,
        "total_energy": float(total_energy),
        "entropy": entropy,
        "percentile_10": p10,
        "percentile_25": p25,
        "median": median,
        "percentile_75": p75,
        "percentile_90": p90,
        "interquartile_range": p75 - p25,
        "range": vmax - vmin,
        "mean_absolute_deviation": float(np.mean(np.abs(deviations))),
        "root_mean_squared": float(np.sqrt(energy / n)),
        "skewness": skewness,
        "kurtosis": kurtosis,
        "shannon_entropy": entropy,
        "renyi_entropy": renyi_entropy,
        "mode": mode,
        "coefficient_of_variation": std / mean,
        "normalized_entropy": float(entropy / np.log2(HISTOGRAM_BINS)),
        "robust_mean_absolute_deviation": rmad,
        "robust_range": p90 - p10,
        "quartile_coefficient_of_dispersion": (p75 - p25) / (p75 + p25),
        "median_absolute_deviation": float(np.mean(np.abs(values - median))),
    }
