"""
PURPOSE: Boundary schemas between the engine and the host application.

RESPONSIBILITIES:
- Parse risk register rows (camelCase, probability as a percentage 0-100)
- Skip rows without a complete quantitative estimate
- Parse revision settings
- Render a SimulationResult as the camelCase payload the report views consume

SRP/DRY CHECK:
    Pydantic models only describe wire shapes. Engine-level validation
    (p10 <= p50 <= p90, known shapes, iteration limits) stays in models.py
    and raises SimulationValidationError with the offending risk id.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from quant_worker_internal.monte_carlo.config import (
    DEFAULT_ITERATIONS,
    DEFAULT_TARGET_PERCENTILE,
)
from quant_worker_internal.monte_carlo.models import RiskInput, SimulationSettings
from quant_worker_internal.monte_carlo.outputs import SimulationResult

logger = logging.getLogger(__name__)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RiskRegisterEntry(_CamelModel):
    id: str
    risk_number: Optional[str] = None
    title: Optional[str] = None
    optimistic_p10: Optional[float] = None
    likely_p50: Optional[float] = None
    pessimistic_p90: Optional[float] = None
    probability: Optional[float] = Field(
        default=None,
        description="Occurrence probability as a percentage, 0-100.",
    )
    distribution_model: Optional[str] = None
    cost_only: bool = False

    def is_complete(self) -> bool:
        """A row is simulated only when every quantitative field is filled in."""
        return None not in (
            self.optimistic_p10,
            self.likely_p50,
            self.pessimistic_p90,
            self.probability,
            self.distribution_model,
        )

    def to_risk_input(self) -> RiskInput:
        """Convert to the engine's RiskInput (probability percentage -> fraction)."""
        return RiskInput(
            id=self.id,
            p10=self.optimistic_p10,
            p50=self.likely_p50,
            p90=self.pessimistic_p90,
            probability=self.probability / 100.0,
            distribution_shape=self.distribution_model,
            cost_only=self.cost_only,
            risk_number=self.risk_number,
            title=self.title,
        )


class RevisionSettings(_CamelModel):
    monte_carlo_iterations: int = DEFAULT_ITERATIONS
    target_percentile: int = DEFAULT_TARGET_PERCENTILE
    seed: Optional[int] = None

    def to_settings(self) -> SimulationSettings:
        return SimulationSettings(
            iterations=self.monte_carlo_iterations,
            target_percentile=self.target_percentile,
            random_seed=self.seed,
        )


def build_risk_inputs(
    entries: Iterable[Union[RiskRegisterEntry, Dict[str, Any]]],
) -> Tuple[List[RiskInput], int]:
    """
    Convert register rows into engine inputs.

    Args:
        entries: RiskRegisterEntry objects or raw dicts (camelCase or snake_case keys)

    Returns:
        tuple (risks with complete estimates in register order, total row count)

    Raises:
        pydantic.ValidationError: If a row is malformed (e.g. non-numeric P10)
        SimulationValidationError: If a complete row violates engine invariants
    """
    risks = []
    total = 0
    skipped = []
    for entry in entries:
        total += 1
        if not isinstance(entry, RiskRegisterEntry):
            entry = RiskRegisterEntry.model_validate(entry)
        if not entry.is_complete():
            skipped.append(entry.id)
            continue
        risks.append(entry.to_risk_input())

    if skipped:
        logger.debug("Skipping %s risks without a complete estimate: %s", len(skipped), skipped)
    return risks, total


class PercentileRowPayload(_CamelModel):
    percentile: int
    value: float
    variance_from_base: float


class SensitivityItemPayload(_CamelModel):
    risk_id: str
    risk_number: Optional[str] = None
    title: Optional[str] = None
    variance_contribution: float
    correlation: float


class HistogramBinPayload(_CamelModel):
    bin_start: float
    bin_end: float
    bin_mid: float
    count: int


class ExceedancePointPayload(_CamelModel):
    value: float
    probability: float


class SettingsPayload(_CamelModel):
    iterations: int
    target_percentile: int


class SimulationResultPayload(_CamelModel):
    p10: float
    p50: float
    p90: float
    mean: float
    std_dev: float
    base: float
    target_value: float
    target_percentile: int
    distribution: List[float]
    percentile_table: List[PercentileRowPayload]
    sensitivity_analysis: List[SensitivityItemPayload]
    histogram: List[HistogramBinPayload]
    exceedance_curve: List[ExceedancePointPayload]
    risks_analyzed: int
    total_risks: int
    settings: SettingsPayload

    @classmethod
    def from_result(cls, result: SimulationResult) -> "SimulationResultPayload":
        return cls(
            p10=result.p10,
            p50=result.p50,
            p90=result.p90,
            mean=result.mean,
            std_dev=result.std_dev,
            base=result.base,
            target_value=result.target_value,
            target_percentile=result.target_percentile,
            distribution=result.distribution.tolist(),
            percentile_table=[
                PercentileRowPayload(
                    percentile=row.percentile,
                    value=row.value,
                    variance_from_base=row.variance_from_base,
                )
                for row in result.percentile_table
            ],
            sensitivity_analysis=[
                SensitivityItemPayload(
                    risk_id=item.risk_id,
                    risk_number=item.risk_number,
                    title=item.title,
                    variance_contribution=item.variance_contribution,
                    correlation=item.correlation,
                )
                for item in result.sensitivity_analysis
            ],
            histogram=[
                HistogramBinPayload(
                    bin_start=b.bin_start,
                    bin_end=b.bin_end,
                    bin_mid=b.bin_mid,
                    count=b.count,
                )
                for b in result.histogram
            ],
            exceedance_curve=[
                ExceedancePointPayload(value=p.value, probability=p.probability)
                for p in result.exceedance_curve
            ],
            risks_analyzed=result.risks_analyzed,
            total_risks=result.total_risks,
            settings=SettingsPayload(
                iterations=result.settings.iterations,
                target_percentile=result.settings.target_percentile,
            ),
        )


def result_payload(result: SimulationResult) -> Dict[str, Any]:
    """Render a SimulationResult as the camelCase dict served to the report views."""
    return SimulationResultPayload.from_result(result).model_dump(by_alias=True)
