"""
PURPOSE: Summary statistics over the simulated iteration totals.

RESPONSIBILITIES:
- Percentiles by linear interpolation between order statistics
- Mean and sample standard deviation (n - 1 denominator)
- Percentile table with variance from base, target percentile value
- Exceedance (S-curve) points

CONVENTIONS:
- Percentile P of a sorted array x of length n:
      index = P / 100 * (n - 1), lo = floor(index), hi = ceil(index)
      value = x[lo] + (x[hi] - x[lo]) * (index - lo)
  The increment form keeps the function monotone in P and returns x[lo]
  exactly when x[lo] == x[hi].
- stdDev is the sample standard deviation. A single iteration, or a constant
  set of totals, has stdDev exactly 0.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List

import numpy as np

from quant_worker_internal.monte_carlo.config import EXCEEDANCE_MAX_POINTS, get_percentile_levels
from quant_worker_internal.monte_carlo.outputs import ExceedancePoint, PercentileRow


@dataclass(frozen=True)
class SummaryStatistics:
    mean: float
    std_dev: float
    minimum: float
    maximum: float
    percentile_table: List[PercentileRow]
    p10: float
    p50: float
    p90: float
    target_percentile: int
    target_value: float
    exceedance_curve: List[ExceedancePoint] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "mean": self.mean,
            "std_dev": self.std_dev,
            "min": self.minimum,
            "max": self.maximum,
            "percentile_table": [row.to_dict() for row in self.percentile_table],
            "p10": self.p10,
            "p50": self.p50,
            "p90": self.p90,
            "target_percentile": self.target_percentile,
            "target_value": self.target_value,
            "exceedance_curve": [point.to_dict() for point in self.exceedance_curve],
        }


def percentile_of_sorted(sorted_values: np.ndarray, percentile: float) -> float:
    """
    Percentile of an ascending array by linear interpolation.

    Args:
        sorted_values: Ascending values, at least one element
        percentile: Percentile in [0, 100]

    Returns:
        Interpolated value as float

    Raises:
        ValueError: If the array is empty or percentile outside [0, 100]
    """
    n = len(sorted_values)
    if n == 0:
        raise ValueError("cannot take a percentile of an empty array")
    if not 0 <= percentile <= 100:
        raise ValueError(f"percentile must be in [0, 100], got {percentile}")

    index = percentile / 100.0 * (n - 1)
    lower = int(math.floor(index))
    upper = int(math.ceil(index))
    low_value = float(sorted_values[lower])
    if lower == upper:
        return low_value
    weight = index - lower
    return low_value + (float(sorted_values[upper]) - low_value) * weight


def mean_and_std(values: np.ndarray):
    """Arithmetic mean and sample standard deviation (ddof=1).

    Returns:
        tuple (mean, std_dev); std_dev is 0.0 for n == 1 or constant input
    """
    n = len(values)
    if n == 0:
        raise ValueError("cannot summarise an empty array")
    lowest = float(np.min(values))
    if n == 1 or lowest == float(np.max(values)):
        return lowest, 0.0
    return float(np.mean(values)), float(np.std(values, ddof=1))


def exceedance_curve(sorted_values: np.ndarray, max_points: int = EXCEEDANCE_MAX_POINTS) -> List[ExceedancePoint]:
    """
    Exceedance (S-curve) points from ascending totals.

    Point at rank r has probability 1 - r / n of the outcome meeting or
    exceeding its value. The curve is thinned to every ceil(n / max_points)-th
    rank, always starting at rank 0.
    """
    n = len(sorted_values)
    if n == 0:
        return []
    if max_points < 1:
        raise ValueError(f"max_points must be at least 1, got {max_points}")

    step = int(math.ceil(n / max_points))
    return [
        ExceedancePoint(value=float(sorted_values[rank]), probability=1.0 - rank / n)
        for rank in range(0, n, step)
    ]


def percentile_table(sorted_values: np.ndarray, levels: Iterable[int], base: float) -> List[PercentileRow]:
    """Rows of {percentile, value, variance_from_base} in ascending percentile order."""
    rows = []
    for level in sorted(set(levels)):
        value = percentile_of_sorted(sorted_values, level)
        rows.append(PercentileRow(percentile=level, value=value, variance_from_base=value - base))
    return rows


def aggregate(totals: np.ndarray, target_percentile: int, base: float,
              exceedance_points: int = EXCEEDANCE_MAX_POINTS) -> SummaryStatistics:
    """
    Summarise the iteration totals of a run.

    Args:
        totals: Iteration totals in production order (not modified)
        target_percentile: Caller's target percentile, merged into the table
        base: Deterministic baseline for variance_from_base
        exceedance_points: Maximum number of exceedance curve points

    Returns:
        SummaryStatistics
    """
    sorted_values = np.sort(np.asarray(totals, dtype=float))
    if len(sorted_values) == 0:
        raise ValueError("totals must not be empty")

    mean, std_dev = mean_and_std(sorted_values)
    table = percentile_table(sorted_values, get_percentile_levels(target_percentile), base)
    by_level = {row.percentile: row.value for row in table}

    return SummaryStatistics(
        mean=mean,
        std_dev=std_dev,
        minimum=float(sorted_values[0]),
        maximum=float(sorted_values[-1]),
        percentile_table=table,
        p10=by_level[10],
        p50=by_level[50],
        p90=by_level[90],
        target_percentile=int(target_percentile),
        target_value=by_level[int(target_percentile)],
        exceedance_curve=exceedance_curve(sorted_values, exceedance_points),
    )
