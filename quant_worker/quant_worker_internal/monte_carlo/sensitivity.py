"""
PURPOSE: Variance-based sensitivity ranking of risk drivers (tornado chart data).

Each risk's share of outcome variance is its contribution variance divided by
the sum of all risks' contribution variances, so shares sum to 1.0 across the
ranked risks. Pearson correlation against the iteration totals is reported
alongside the share but never used for ordering.

SRP/DRY: Single responsibility = sensitivity analysis only.
         No result formatting, no simulation.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

import numpy as np
from scipy import stats

from quant_worker_internal.monte_carlo.config import ZERO_VARIANCE_TOLERANCE
from quant_worker_internal.monte_carlo.models import RiskInput


@dataclass(frozen=True)
class SensitivityItem:
    """Represents a single risk driver and its share of outcome variance.

    Attributes:
        risk_id (str): Risk identifier.
        variance_contribution (float): Share of summed contribution variance [0, 1].
        correlation (float): Pearson correlation of the risk's contributions
                             with the iteration totals [-1, 1].
        rank (int): Rank order (1 = largest share).
        risk_number (str | None): Register number, when known.
        title (str | None): Register title, when known.
    """
    risk_id: str
    variance_contribution: float
    correlation: float
    rank: int
    risk_number: Optional[str] = None
    title: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "risk_id": self.risk_id,
            "risk_number": self.risk_number,
            "title": self.title,
            "variance_contribution": self.variance_contribution,
            "correlation": self.correlation,
            "rank": self.rank,
        }


class SensitivityAnalyzer:
    """
    Ranks risks by their share of total contribution variance.

    Method:
    - var_i = variance of risk i's per-iteration contributions
    - share_i = var_i / sum_j var_j
    - correlation_i = Pearson(contributions_i, totals)
    Risks whose contributions never vary (never occurred, fixed impact with
    deterministic occurrence) are omitted instead of reported with NaN.
    The cutoff is relative to the largest variance, so the ranking does not
    depend on the units of the impacts.

    Assumptions:
    - Risks are sampled independently, so the summed contribution variance is
      the variance of the risk part of the totals up to sampling error.
    """

    def __init__(self, top_n: Optional[int] = None, zero_variance_tolerance: float = ZERO_VARIANCE_TOLERANCE):
        """
        Args:
            top_n: Truncate the ranked list to the first top_n risks (None = all).
                   Shares are computed before truncation.
            zero_variance_tolerance: Variances at or below this fraction of the
                                     largest risk variance are treated as zero.
        """
        self.top_n = top_n
        self.zero_variance_tolerance = zero_variance_tolerance

    def analyze(
        self,
        contributions: Mapping[str, np.ndarray],
        totals: np.ndarray,
        risks: Optional[Mapping[str, RiskInput]] = None,
    ) -> List[SensitivityItem]:
        """
        Compute the ranked variance contribution of each risk.

        Args:
            contributions: Risk id -> per-iteration contribution array, length n.
            totals: Iteration totals, length n.
            risks: Optional risk id -> RiskInput for number/title metadata.

        Returns:
            List of SensitivityItem sorted by variance_contribution (descending).
            Ties keep input order.

        Raises:
            ValueError: If an array length differs from len(totals).
        """
        totals = np.asarray(totals, dtype=float)
        n = len(totals)
        risks = risks or {}

        variances = []
        for risk_id, values in contributions.items():
            values = np.asarray(values, dtype=float)
            if len(values) != n:
                raise ValueError(
                    f"contributions for {risk_id} have length {len(values)}, expected {n}"
                )
            variance = self._variance(values)
            if variance > 0:
                variances.append((risk_id, values, variance))

        # Cutoff is relative to the largest variance.
        if variances:
            cutoff = self.zero_variance_tolerance * max(v for _, _, v in variances)
            variances = [item for item in variances if item[2] > cutoff]

        total_variance = sum(v for _, _, v in variances)
        if not variances or total_variance <= 0:
            return []

        totals_vary = n > 1 and np.ptp(totals) > 0

        scored = []
        for risk_id, values, variance in variances:
            correlation = self._correlation(values, totals) if totals_vary else 0.0
            scored.append((risk_id, variance / total_variance, correlation))

        scored.sort(key=lambda item: item[1], reverse=True)
        if self.top_n is not None:
            scored = scored[: self.top_n]

        results = []
        for rank, (risk_id, share, correlation) in enumerate(scored, 1):
            risk = risks.get(risk_id)
            results.append(
                SensitivityItem(
                    risk_id=risk_id,
                    variance_contribution=share,
                    correlation=correlation,
                    rank=rank,
                    risk_number=risk.risk_number if risk is not None else None,
                    title=risk.title if risk is not None else None,
                )
            )
        return results

    @staticmethod
    def _variance(values: np.ndarray) -> float:
        # Constant arrays are exactly zero; np.var can leave rounding residue.
        if len(values) < 2 or np.ptp(values) == 0:
            return 0.0
        return float(np.var(values))

    @staticmethod
    def _correlation(values: np.ndarray, totals: np.ndarray) -> float:
        result = stats.pearsonr(values, totals)
        correlation = float(result[0])
        if not np.isfinite(correlation):
            return 0.0
        return correlation

    @staticmethod
    def to_dataframe_compatible(items: List[SensitivityItem]) -> Dict[str, List]:
        """
        Convert sensitivity items to a column-oriented dict (pandas/CSV friendly).

        Args:
            items: List of SensitivityItem objects.

        Returns:
            Dictionary with keys as column names, values as lists (one per row).
        """
        return {
            "rank": [item.rank for item in items],
            "risk_id": [item.risk_id for item in items],
            "risk_number": [item.risk_number for item in items],
            "title": [item.title for item in items],
            "variance_contribution": [item.variance_contribution for item in items],
            "correlation": [item.correlation for item in items],
        }
