"""
PURPOSE: Iteration engine for the risk Monte Carlo simulation.

Drives N iterations over the risk register. Each iteration starts from the
caller's base, adds every included risk's signed impact and records both the
iteration total and each risk's contribution.

SINGLE RESPONSIBILITY:
- Validate the run inputs before any sampling
- Split iterations into fixed-size batches, one child seed per batch
- Sample batches serially or on a thread pool, merge in batch order
- Return raw run data (no statistics, no formatting)

REPRODUCIBILITY:
- Batch k always draws from child k of the run's SeedSequence, and batch
  boundaries depend only on BATCH_SIZE, so a run is bit-identical whatever the
  worker count.
- Risks are sampled in register order within a batch; each risk consumes its
  own contiguous block of the batch stream.
"""

import logging
import math
import numbers
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np

from quant_worker_internal.monte_carlo.config import BATCH_SIZE, MAX_ITERATIONS
from quant_worker_internal.monte_carlo.distributions import DEFAULT_PARAMS, SamplerParams
from quant_worker_internal.monte_carlo.errors import SimulationValidationError
from quant_worker_internal.monte_carlo.models import RiskInput, SimulationSettings, validate_seed
from quant_worker_internal.monte_carlo.risk_events import sample_risk_contributions

logger = logging.getLogger(__name__)

RandomState = Union[int, np.random.SeedSequence, None]


@dataclass(frozen=True)
class BatchSpec:
    """One slice of the iteration range and the seed that drives it."""
    index: int
    start: int
    size: int
    seed: np.random.SeedSequence

    @property
    def stop(self) -> int:
        return self.start + self.size


@dataclass(frozen=True)
class RunPlan:
    """Validated inputs plus the batch layout of a run."""
    risks: Tuple[RiskInput, ...]
    settings: SimulationSettings
    base: float
    batches: Tuple[BatchSpec, ...]
    seed_entropy: int

    @property
    def iterations(self) -> int:
        return self.settings.iterations


@dataclass
class IterationBatch:
    """Sampled totals and per-risk contributions for one batch.

    Attributes:
        totals: Shape (size,), base plus included impacts per iteration.
        contributions: Shape (num_risks, size), signed impact per risk,
                       zero where the occurrence gate excluded the risk.
        clamped: Shape (num_risks,), cost-only draws clamped to zero.
    """
    index: int
    start: int
    totals: np.ndarray
    contributions: np.ndarray
    clamped: np.ndarray

    @property
    def size(self) -> int:
        return int(self.totals.shape[0])


@dataclass
class RawRunData:
    """Full in-memory iteration record of a run, consumed by the analysis stages."""
    risks: Tuple[RiskInput, ...]
    base: float
    totals: np.ndarray
    contributions: np.ndarray
    clamped_counts: Dict[str, int] = field(default_factory=dict)
    seed_entropy: Optional[int] = None

    @property
    def iterations(self) -> int:
        return int(self.totals.shape[0])

    def contributions_by_risk(self) -> Dict[str, np.ndarray]:
        """Map risk id to its per-iteration contribution array (views, not copies)."""
        return {risk.id: self.contributions[i] for i, risk in enumerate(self.risks)}


def validate_run_inputs(risks: Sequence[RiskInput], settings: SimulationSettings, base: float) -> None:
    """
    Validate a run before any sampling.

    Raises:
        SimulationValidationError: On the first offending risk or setting.
    """
    if not isinstance(settings, SimulationSettings):
        raise SimulationValidationError(
            f"settings must be SimulationSettings, got {type(settings).__name__}",
            field="settings",
        )
    if settings.iterations <= 0 or settings.iterations > MAX_ITERATIONS:
        raise SimulationValidationError(
            f"iterations must be in [1, {MAX_ITERATIONS}], got {settings.iterations}",
            field="iterations",
        )
    if isinstance(base, bool) or not isinstance(base, numbers.Real) or not math.isfinite(base):
        raise SimulationValidationError(f"base must be a finite number, got {base!r}", field="base")

    seen = set()
    for risk in risks:
        if not isinstance(risk, RiskInput):
            raise SimulationValidationError(
                f"risks must contain RiskInput items, got {type(risk).__name__}",
                field="risks",
            )
        if risk.id in seen:
            raise SimulationValidationError(
                f"Duplicate risk id: {risk.id}", risk_id=risk.id, field="id"
            )
        seen.add(risk.id)
        if not risk.p10 <= risk.p50 <= risk.p90:
            raise SimulationValidationError(
                f"Risk {risk.id}: p10 <= p50 <= p90 violated "
                f"({risk.p10}, {risk.p50}, {risk.p90})",
                risk_id=risk.id,
                field="p10",
            )


def _seed_sequence(random_state: RandomState) -> np.random.SeedSequence:
    if isinstance(random_state, np.random.SeedSequence):
        # Rebuild so spawning never depends on how often the caller spawned before.
        return np.random.SeedSequence(
            entropy=random_state.entropy,
            spawn_key=random_state.spawn_key,
            pool_size=random_state.pool_size,
        )
    return np.random.SeedSequence(random_state)


class IterationEngine:
    """
    Runs the iteration loop over a validated risk register.

    Example:
        >>> engine = IterationEngine()
        >>> raw = engine.run(risks, SimulationSettings(iterations=10000), base=0.0, random_state=42)
        >>> raw.totals.shape
        (10000,)
    """

    def __init__(self, params: SamplerParams = DEFAULT_PARAMS, batch_size: int = BATCH_SIZE,
                 max_workers: Optional[int] = None):
        """
        Args:
            params: Distribution parameter constants.
            batch_size: Iterations per batch. Fixes the random stream layout.
            max_workers: Thread pool size; None or 1 runs batches serially.
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")
        if max_workers is not None and max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}")
        self.params = params
        self.batch_size = batch_size
        self.max_workers = max_workers

    def plan(self, risks: Iterable[RiskInput], settings: SimulationSettings, base: float = 0.0,
             random_state: RandomState = None) -> RunPlan:
        """Validate inputs and lay out batches with their child seeds."""
        risks = tuple(risks)
        validate_run_inputs(risks, settings, base)

        if random_state is None:
            random_state = settings.random_seed
        if not isinstance(random_state, np.random.SeedSequence):
            validate_seed(random_state)
        seed_seq = _seed_sequence(random_state)
        logger.debug("Run seed entropy: %s", seed_seq.entropy)

        iterations = settings.iterations
        num_batches = -(-iterations // self.batch_size)
        children = seed_seq.spawn(num_batches)

        batches = []
        for index, child in enumerate(children):
            start = index * self.batch_size
            size = min(self.batch_size, iterations - start)
            batches.append(BatchSpec(index=index, start=start, size=size, seed=child))

        return RunPlan(
            risks=risks,
            settings=settings,
            base=float(base),
            batches=tuple(batches),
            seed_entropy=seed_seq.entropy,
        )

    def run_batch(self, plan: RunPlan, spec: BatchSpec) -> IterationBatch:
        """Sample one batch. Safe to call from several threads: each batch owns its Generator."""
        rng = np.random.default_rng(spec.seed)
        num_risks = len(plan.risks)

        totals = np.full(spec.size, plan.base, dtype=float)
        contributions = np.empty((num_risks, spec.size), dtype=float)
        clamped = np.zeros(num_risks, dtype=np.int64)

        for i, risk in enumerate(plan.risks):
            contributions[i], clamped[i] = sample_risk_contributions(
                risk, rng, spec.size, params=self.params
            )
            totals += contributions[i]

        return IterationBatch(
            index=spec.index,
            start=spec.start,
            totals=totals,
            contributions=contributions,
            clamped=clamped,
        )

    def iter_batches(self, plan: RunPlan) -> Iterator[IterationBatch]:
        """Yield batches lazily in order, so a caller can stop between batches."""
        for spec in plan.batches:
            batch = self.run_batch(plan, spec)
            logger.debug("Batch %s/%s done (%s iterations)", spec.index + 1, len(plan.batches), spec.size)
            yield batch

    def assemble(self, plan: RunPlan, batches: Iterable[IterationBatch]) -> RawRunData:
        """Merge batches in batch order into the run's iteration record."""
        ordered: List[IterationBatch] = sorted(batches, key=lambda b: b.index)
        if len(ordered) != len(plan.batches):
            raise ValueError(f"expected {len(plan.batches)} batches, got {len(ordered)}")

        num_risks = len(plan.risks)
        totals = np.concatenate([b.totals for b in ordered])
        if num_risks:
            contributions = np.concatenate([b.contributions for b in ordered], axis=1)
        else:
            contributions = np.empty((0, totals.shape[0]), dtype=float)
        clamped_total = np.sum([b.clamped for b in ordered], axis=0) if num_risks else []

        clamped_counts = {}
        for i, risk in enumerate(plan.risks):
            count = int(clamped_total[i])
            if count:
                clamped_counts[risk.id] = count
                logger.warning(
                    "Risk %s is cost-only: clamped %s negative impact draws to zero",
                    risk.id,
                    count,
                )

        return RawRunData(
            risks=plan.risks,
            base=plan.base,
            totals=totals,
            contributions=contributions,
            clamped_counts=clamped_counts,
            seed_entropy=plan.seed_entropy,
        )

    def run(self, risks: Iterable[RiskInput], settings: SimulationSettings, base: float = 0.0,
            random_state: RandomState = None) -> RawRunData:
        """
        Execute the iteration loop.

        Args:
            risks: Risks to include, in register order.
            settings: Iteration count and target percentile.
            base: Deterministic baseline added to every iteration total.
            random_state: int seed or SeedSequence; None uses settings.random_seed,
                          then OS entropy.

        Returns:
            RawRunData with totals of length settings.iterations

        Raises:
            SimulationValidationError: If risks or settings are malformed.
        """
        plan = self.plan(risks, settings, base, random_state)
        workers = self.max_workers or 1

        logger.info(
            "Running risk simulation: %s risks, %s iterations, %s batches, %s workers",
            len(plan.risks),
            plan.iterations,
            len(plan.batches),
            workers,
        )

        if workers == 1 or len(plan.batches) == 1:
            batches = list(self.iter_batches(plan))
        else:
            with ThreadPoolExecutor(max_workers=workers) as executor:
                batches = list(executor.map(lambda spec: self.run_batch(plan, spec), plan.batches))

        return self.assemble(plan, batches)
