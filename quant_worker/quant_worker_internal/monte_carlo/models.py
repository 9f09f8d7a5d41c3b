"""
PURPOSE: Input data model for the risk simulation engine.

RESPONSIBILITIES:
- DistributionShape: closed set of shapes a three-point estimate can be sampled from
- RiskInput: one risk as fed to the engine (immutable for the duration of a run)
- SimulationSettings: iteration count, target percentile and optional seed
- Field-level validation; run-level validation lives in engine.py

SRP/DRY CHECK:
    Plain frozen dataclasses with no sampling logic. Register payload parsing
    (camelCase, percentages, incomplete rows) is handled by schemas.py.
"""

import math
import numbers
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from quant_worker_internal.monte_carlo.config import (
    ALLOWED_TARGET_PERCENTILES,
    DEFAULT_ITERATIONS,
    DEFAULT_TARGET_PERCENTILE,
    MAX_ITERATIONS,
    MIN_ITERATIONS,
)
from quant_worker_internal.monte_carlo.errors import SimulationValidationError


class DistributionShape(str, Enum):
    """Shape used to turn a P10/P50/P90 estimate into a sampling function."""
    TRIANGULAR = "triangular"
    PERT = "pert"
    UNIFORM = "uniform"
    NORMAL = "normal"
    LOGNORMAL = "lognormal"
    WEIBULL = "weibull"

    @classmethod
    def parse(cls, value: Any, risk_id: Optional[str] = None) -> "DistributionShape":
        """Resolve a shape tag. Unknown tags are an error, never a silent default."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            tag = value.strip().lower().replace("_", "-")
            if tag == "normal-like":
                tag = "normal"
            for shape in cls:
                if shape.value == tag:
                    return shape
        raise SimulationValidationError(
            f"Unknown distribution shape: {value!r}. "
            f"Must be one of {[s.value for s in cls]}",
            risk_id=risk_id,
            field="distribution_shape",
        )


@dataclass(frozen=True)
class RiskInput:
    """One risk's three-point impact estimate and occurrence probability.

    Attributes:
        id: Identifier, unique within a run and stable across runs.
        p10: Optimistic impact (10th percentile given the risk occurs).
        p50: Most likely impact.
        p90: Pessimistic impact.
        probability: Occurrence probability in [0, 1].
        distribution_shape: DistributionShape or its tag string.
        cost_only: If True, negative sampled impacts are clamped to zero.
        risk_number: Register number (e.g. "R001"), echoed in sensitivity output.
        title: Register title, echoed in sensitivity output.
    """
    id: str
    p10: float
    p50: float
    p90: float
    probability: float
    distribution_shape: DistributionShape = DistributionShape.TRIANGULAR
    cost_only: bool = False
    risk_number: Optional[str] = None
    title: Optional[str] = None

    def __post_init__(self):
        shape = DistributionShape.parse(self.distribution_shape, risk_id=self.id)
        object.__setattr__(self, "distribution_shape", shape)

        for name in ("p10", "p50", "p90", "probability"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, numbers.Real):
                raise SimulationValidationError(
                    f"Risk {self.id}: {name} must be a number, got {type(value).__name__}",
                    risk_id=self.id,
                    field=name,
                )
            if not math.isfinite(value):
                raise SimulationValidationError(
                    f"Risk {self.id}: {name} must be finite, got {value}",
                    risk_id=self.id,
                    field=name,
                )
            object.__setattr__(self, name, float(value))

        if self.p10 > self.p50:
            raise SimulationValidationError(
                f"Risk {self.id}: p10 ({self.p10}) must not exceed p50 ({self.p50})",
                risk_id=self.id,
                field="p10",
            )
        if self.p50 > self.p90:
            raise SimulationValidationError(
                f"Risk {self.id}: p50 ({self.p50}) must not exceed p90 ({self.p90})",
                risk_id=self.id,
                field="p90",
            )
        if not 0.0 <= self.probability <= 1.0:
            raise SimulationValidationError(
                f"Risk {self.id}: probability must be in [0, 1], got {self.probability}",
                risk_id=self.id,
                field="probability",
            )

    @property
    def spread(self) -> float:
        return self.p90 - self.p10


def validate_seed(seed: Any) -> None:
    """A seed is None (OS entropy) or a non-negative int."""
    if seed is None:
        return
    if isinstance(seed, bool) or not isinstance(seed, numbers.Integral) or seed < 0:
        raise SimulationValidationError(
            f"random_seed must be a non-negative integer or None, got {seed!r}",
            field="random_seed",
        )


@dataclass(frozen=True)
class SimulationSettings:
    """Per-run settings supplied by the revision's settings store."""
    iterations: int = DEFAULT_ITERATIONS
    target_percentile: int = DEFAULT_TARGET_PERCENTILE
    random_seed: Optional[int] = None
    allowed_percentiles: tuple = field(default=ALLOWED_TARGET_PERCENTILES, repr=False)

    def __post_init__(self):
        if isinstance(self.iterations, bool) or not isinstance(self.iterations, int):
            raise SimulationValidationError(
                f"iterations must be int, got {type(self.iterations).__name__}",
                field="iterations",
            )
        if not MIN_ITERATIONS <= self.iterations <= MAX_ITERATIONS:
            raise SimulationValidationError(
                f"iterations must be in [{MIN_ITERATIONS}, {MAX_ITERATIONS}], got {self.iterations}",
                field="iterations",
            )
        if self.target_percentile not in self.allowed_percentiles:
            raise SimulationValidationError(
                f"target_percentile must be one of {list(self.allowed_percentiles)}, "
                f"got {self.target_percentile}",
                field="target_percentile",
            )
        validate_seed(self.random_seed)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "iterations": self.iterations,
            "target_percentile": self.target_percentile,
            "random_seed": self.random_seed,
        }
