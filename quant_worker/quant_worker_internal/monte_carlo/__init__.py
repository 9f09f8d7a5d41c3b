"""
Monte Carlo simulation module for construction risk quantification.

PURPOSE:
    Quantify cost/schedule exposure of a project's risk register by sampling
    each risk's occurrence and three-point impact estimate over many
    iterations, then reporting percentile bands, distribution, tornado
    ranking and summary statistics for a base estimate plus uncertainty.

RESPONSIBILITIES:
    - Expose distribution samplers (triangular, PERT, uniform, normal, lognormal, Weibull)
    - Provide the Bernoulli occurrence gate
    - Drive seeded, batched iterations (serial or threaded, bit-identical)
    - Summarise totals: percentiles, mean, sample std dev, exceedance curve
    - Compute variance-share sensitivity ranking
    - Bin totals into a histogram

SRP/DRY CHECK:
    Each submodule has a single responsibility:
    - models.py / errors.py: Input data model and validation errors
    - distributions.py: Sampling from impact distributions only
    - risk_events.py: Occurrence gate + per-risk contributions only
    - engine.py: Batched iteration loop only
    - aggregation.py: Summary statistics only
    - sensitivity.py: Sensitivity analysis only
    - histogram.py: Frequency distribution only
    - outputs.py: Result structures only
    - simulation.py: run() composition only
    - schemas.py: Register / payload boundary shapes only
    - jobs.py: Background job wrapper only
"""

from .errors import SimulationValidationError
from .models import DistributionShape, RiskInput, SimulationSettings
from .distributions import SamplerParams, sample_impact
from .risk_events import occurs, sample_risk_event
from .engine import IterationEngine, RawRunData
from .aggregation import aggregate, percentile_of_sorted
from .sensitivity import SensitivityAnalyzer, SensitivityItem
from .histogram import HistogramBin, build_histogram
from .outputs import ExceedancePoint, PercentileRow, SimulationResult
from .simulation import RiskSimulation, run_simulation

__version__ = "0.1.0"

__all__ = [
    "SimulationValidationError",
    "DistributionShape",
    "RiskInput",
    "SimulationSettings",
    "SamplerParams",
    "sample_impact",
    "occurs",
    "sample_risk_event",
    "IterationEngine",
    "RawRunData",
    "aggregate",
    "percentile_of_sorted",
    "SensitivityAnalyzer",
    "SensitivityItem",
    "HistogramBin",
    "build_histogram",
    "ExceedancePoint",
    "PercentileRow",
    "SimulationResult",
    "RiskSimulation",
    "run_simulation",
]
