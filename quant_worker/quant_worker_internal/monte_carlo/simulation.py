"""
PURPOSE: Entry point of the risk quantification Monte Carlo engine.

Runs the iteration engine over a risk register, then hands the full
iteration record to the statistics, sensitivity and histogram stages.

SINGLE RESPONSIBILITY:
- run(risks, settings, base) -> SimulationResult
- Compose engine output with the three analysis stages
- Return an immutable result (no I/O, no formatting)

CONSTRAINTS:
- Pure synchronous computation; cancellation and progress belong to jobs.py
- Does NOT modify input risks; reads only
"""

import logging
from typing import Iterable, Optional

from quant_worker_internal.monte_carlo.aggregation import aggregate
from quant_worker_internal.monte_carlo.config import (
    BATCH_SIZE,
    EXCEEDANCE_MAX_POINTS,
    HISTOGRAM_BINS,
)
from quant_worker_internal.monte_carlo.distributions import DEFAULT_PARAMS, SamplerParams
from quant_worker_internal.monte_carlo.engine import IterationEngine, RandomState, RawRunData
from quant_worker_internal.monte_carlo.histogram import build_histogram
from quant_worker_internal.monte_carlo.models import RiskInput, SimulationSettings
from quant_worker_internal.monte_carlo.outputs import SimulationResult
from quant_worker_internal.monte_carlo.sensitivity import SensitivityAnalyzer

logger = logging.getLogger(__name__)


class RiskSimulation:
    """
    Monte Carlo simulation of cost/schedule risk exposure.

    Each iteration samples every risk's occurrence and impact, adds the
    included impacts to the base and records the total. The totals are then
    summarised into percentiles, mean and sample standard deviation, a
    tornado ranking and a histogram.

    Example:
        >>> sim = RiskSimulation()
        >>> result = sim.run(risks, SimulationSettings(iterations=10000, target_percentile=80),
        ...                  base=2_500_000, random_state=7)
        >>> result.target_value
    """

    def __init__(
        self,
        params: SamplerParams = DEFAULT_PARAMS,
        batch_size: int = BATCH_SIZE,
        max_workers: Optional[int] = None,
        histogram_bins: int = HISTOGRAM_BINS,
        exceedance_points: int = EXCEEDANCE_MAX_POINTS,
        top_n: Optional[int] = None,
    ):
        """
        Initialize simulation engine.

        Args:
            params: Distribution parameter constants (PERT lambda, z-span, floor)
            batch_size: Iterations per seeded batch
            max_workers: Thread pool size for batches, None = serial
            histogram_bins: Number of histogram bins
            exceedance_points: Maximum number of S-curve points
            top_n: Truncate the sensitivity ranking, None = all varying risks
        """
        self.engine = IterationEngine(params=params, batch_size=batch_size, max_workers=max_workers)
        self.analyzer = SensitivityAnalyzer(top_n=top_n)
        self.histogram_bins = histogram_bins
        self.exceedance_points = exceedance_points

    def run(
        self,
        risks: Iterable[RiskInput],
        settings: SimulationSettings,
        base: float = 0.0,
        random_state: RandomState = None,
        total_risks: Optional[int] = None,
    ) -> SimulationResult:
        """
        Execute the simulation.

        Args:
            risks: Risks to include (already filtered to valid estimates)
            settings: Iterations and target percentile for the revision
            base: Deterministic baseline total supplied by the caller
            random_state: int seed or SeedSequence; None uses settings.random_seed
            total_risks: Register size including skipped risks, defaults to len(risks)

        Returns:
            SimulationResult

        Raises:
            SimulationValidationError: If risks or settings are malformed
        """
        raw = self.engine.run(risks, settings, base=base, random_state=random_state)
        return self.analyze(raw, settings, total_risks=total_risks)

    def analyze(self, raw: RawRunData, settings: SimulationSettings,
                total_risks: Optional[int] = None) -> SimulationResult:
        """Run the statistics, sensitivity and histogram stages over a completed run."""
        if total_risks is not None and total_risks < len(raw.risks):
            raise ValueError(
                f"total_risks ({total_risks}) cannot be less than risks analyzed ({len(raw.risks)})"
            )

        summary = aggregate(raw.totals, settings.target_percentile, raw.base,
                            exceedance_points=self.exceedance_points)
        sensitivity = self.analyzer.analyze(
            raw.contributions_by_risk(),
            raw.totals,
            risks={risk.id: risk for risk in raw.risks},
        )
        histogram = build_histogram(raw.totals, self.histogram_bins)

        logger.info(
            "Risk simulation complete: %s iterations, mean=%s, P%s=%s",
            raw.iterations,
            summary.mean,
            summary.target_percentile,
            summary.target_value,
        )

        return SimulationResult(
            base=raw.base,
            distribution=raw.totals,
            mean=summary.mean,
            std_dev=summary.std_dev,
            percentile_table=summary.percentile_table,
            p10=summary.p10,
            p50=summary.p50,
            p90=summary.p90,
            target_percentile=summary.target_percentile,
            target_value=summary.target_value,
            sensitivity_analysis=sensitivity,
            risks_analyzed=len(raw.risks),
            total_risks=len(raw.risks) if total_risks is None else total_risks,
            settings=settings,
            histogram=histogram,
            exceedance_curve=summary.exceedance_curve,
            clamped_risk_ids=tuple(raw.clamped_counts),
            seed_entropy=raw.seed_entropy,
        )


def run_simulation(
    risks: Iterable[RiskInput],
    settings: SimulationSettings,
    base: float = 0.0,
    random_state: RandomState = None,
    params: SamplerParams = DEFAULT_PARAMS,
    max_workers: Optional[int] = None,
) -> SimulationResult:
    """Module-level wrapper for a single run with default analysis options."""
    simulation = RiskSimulation(params=params, max_workers=max_workers)
    return simulation.run(risks, settings, base=base, random_state=random_state)
