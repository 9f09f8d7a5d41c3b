"""
Frequency distribution of iteration totals for histogram display.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, List

import numpy as np

from quant_worker_internal.monte_carlo.config import HISTOGRAM_BINS


@dataclass(frozen=True)
class HistogramBin:
    bin_start: float
    bin_end: float
    bin_mid: float
    count: int

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "bin_start": self.bin_start,
            "bin_end": self.bin_end,
            "bin_mid": self.bin_mid,
            "count": self.count,
        }


def _synthetic_bin(value: float, count: int) -> HistogramBin:
    half_width = abs(value) * 0.05 if value != 0 else 0.5
    return HistogramBin(
        bin_start=value - half_width,
        bin_end=value + half_width,
        bin_mid=value,
        count=count,
    )


def build_histogram(totals: np.ndarray, num_bins: int = HISTOGRAM_BINS) -> List[HistogramBin]:
    """
    Bin totals into num_bins equal-width buckets over [min, max].

    Every total lands in exactly one bin: bin = min(floor((v - min) / width), num_bins - 1),
    the clamp puts the maximum into the last bin. A zero or non-finite range
    yields one synthetic bin centred on the minimum holding all n totals.

    Args:
        totals: Iteration totals (any order)
        num_bins: Number of bins

    Returns:
        List of HistogramBin, counts summing to len(totals)
    """
    if num_bins < 1:
        raise ValueError(f"num_bins must be at least 1, got {num_bins}")

    values = np.asarray(totals, dtype=float)
    n = len(values)
    if n == 0:
        return []

    low = float(np.min(values))
    high = float(np.max(values))
    span = high - low
    if span == 0 or not math.isfinite(span):
        return [_synthetic_bin(low, n)]

    width = span / num_bins
    indices = np.floor((values - low) / width).astype(np.int64)
    indices = np.clip(indices, 0, num_bins - 1)
    counts = np.bincount(indices, minlength=num_bins)

    return [
        HistogramBin(
            bin_start=low + i * width,
            bin_end=low + (i + 1) * width,
            bin_mid=low + (i + 0.5) * width,
            count=int(counts[i]),
        )
        for i in range(num_bins)
    ]
