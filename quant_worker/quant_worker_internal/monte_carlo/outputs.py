"""
PURPOSE: Result structures returned by the risk simulation engine.

This module defines the immutable output of a run: distribution, summary
statistics, percentile table, sensitivity ranking, histogram and exceedance
curve. Values are exact; rounding and currency formatting belong to the
presentation layer.

SRP/DRY: Single responsibility = output structure and serialization.
         No simulation, no statistics.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

import numpy as np

from quant_worker_internal.monte_carlo.models import SimulationSettings

if TYPE_CHECKING:
    from quant_worker_internal.monte_carlo.histogram import HistogramBin
    from quant_worker_internal.monte_carlo.sensitivity import SensitivityItem


@dataclass(frozen=True)
class PercentileRow:
    """One row of the probability band table."""
    percentile: int
    value: float
    variance_from_base: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "percentile": self.percentile,
            "value": self.value,
            "variance_from_base": self.variance_from_base,
        }


@dataclass(frozen=True)
class ExceedancePoint:
    """S-curve point: probability that the outcome meets or exceeds value."""
    value: float
    probability: float

    def to_dict(self) -> Dict[str, Any]:
        return {"value": self.value, "probability": self.probability}


@dataclass(frozen=True)
class SimulationResult:
    """Structured output of one simulation run.

    Attributes:
        base (float): Deterministic baseline supplied by the caller.
        distribution (np.ndarray): Iteration totals in production order (read-only).
        mean (float): Arithmetic mean of the totals.
        std_dev (float): Sample standard deviation of the totals (n - 1).
        percentile_table (list): PercentileRow per reported level, ascending.
        p10, p50, p90 (float): Convenience extracts from percentile_table.
        target_percentile (int): Caller's target confidence level.
        target_value (float): Total at the target percentile.
        sensitivity_analysis (list): SensitivityItem, descending share.
        risks_analyzed (int): Risks included in the run.
        total_risks (int): Risks in the register, including skipped ones.
        settings (SimulationSettings): Echo of the settings used.
        histogram (list): HistogramBin frequency distribution.
        exceedance_curve (list): ExceedancePoint S-curve.
        clamped_risk_ids (tuple): Cost-only risks that had negative draws clamped.
        seed_entropy (int | None): Entropy that replays the run.
    """
    base: float
    distribution: np.ndarray
    mean: float
    std_dev: float
    percentile_table: List[PercentileRow]
    p10: float
    p50: float
    p90: float
    target_percentile: int
    target_value: float
    sensitivity_analysis: List["SensitivityItem"]
    risks_analyzed: int
    total_risks: int
    settings: SimulationSettings
    histogram: List["HistogramBin"] = field(default_factory=list)
    exceedance_curve: List[ExceedancePoint] = field(default_factory=list)
    clamped_risk_ids: Tuple[str, ...] = ()
    seed_entropy: Optional[int] = None

    def __post_init__(self):
        distribution = np.array(self.distribution, dtype=float)
        distribution.setflags(write=False)
        object.__setattr__(self, "distribution", distribution)

    @property
    def iterations(self) -> int:
        return int(self.distribution.shape[0])

    def to_dict(self) -> Dict[str, Any]:
        """Convert results to dictionary for JSON serialization (exact values)."""
        return {
            "base": self.base,
            "distribution": self.distribution.tolist(),
            "mean": self.mean,
            "std_dev": self.std_dev,
            "percentile_table": [row.to_dict() for row in self.percentile_table],
            "p10": self.p10,
            "p50": self.p50,
            "p90": self.p90,
            "target_percentile": self.target_percentile,
            "target_value": self.target_value,
            "sensitivity_analysis": [item.to_dict() for item in self.sensitivity_analysis],
            "risks_analyzed": self.risks_analyzed,
            "total_risks": self.total_risks,
            "settings": self.settings.to_dict(),
            "histogram": [b.to_dict() for b in self.histogram],
            "exceedance_curve": [p.to_dict() for p in self.exceedance_curve],
            "clamped_risk_ids": list(self.clamped_risk_ids),
            "seed_entropy": self.seed_entropy,
        }
