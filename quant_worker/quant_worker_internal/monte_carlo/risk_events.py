"""
Risk event sampling for Monte Carlo simulation.

PURPOSE:
    Model each register risk as a Bernoulli trial with an impact distribution.
    A risk occurs with its probability and, when it occurs, contributes an
    impact drawn from its three-point estimate.

RESPONSIBILITIES:
    - Occurrence gate (did the risk occur this iteration?)
    - Combine occurrence and impact into per-iteration signed contributions
    - Cost-only clamping of negative impacts
    - NO aggregation across risks, NO statistics

RANDOM STREAM LAYOUT:
    The gate consumes exactly one uniform draw per iteration whatever the
    probability (0 and 1 included), and impacts are drawn for every iteration
    then masked. The stream consumed by a risk therefore never depends on its
    probability value. `u < probability` with u in [0, 1) makes probability 0
    always false and probability 1 always true.
"""

from typing import Tuple

import numpy as np

from quant_worker_internal.monte_carlo.distributions import (
    DEFAULT_PARAMS,
    SamplerParams,
    sample_impact,
)
from quant_worker_internal.monte_carlo.models import RiskInput


def occurs(risk: RiskInput, rng: np.random.Generator) -> bool:
    """Single Bernoulli draw with success probability risk.probability."""
    return bool(rng.random() < risk.probability)


def sample_occurrences(probability: float, rng: np.random.Generator, size: int) -> np.ndarray:
    """
    Sample occurrence flags for `size` iterations.

    Args:
        probability: Probability of the risk occurring (0 to 1)
        rng: numpy Generator
        size: Number of iterations

    Returns:
        Boolean numpy array of shape (size,)

    Raises:
        ValueError: If probability not in [0, 1]
    """
    if not 0 <= probability <= 1:
        raise ValueError(f"probability must be in [0, 1], got {probability}")
    return rng.random(size) < probability


def sample_risk_event(risk: RiskInput, rng: np.random.Generator,
                      params: SamplerParams = DEFAULT_PARAMS) -> float:
    """
    Sample one iteration of a risk: occurrence gate, then impact if it occurred.

    Returns:
        float: Signed impact, 0.0 if the risk did not occur.
    """
    if not occurs(risk, rng):
        return 0.0
    impact = sample_impact(risk, rng, params=params)
    if risk.cost_only and impact < 0:
        return 0.0
    return impact


def sample_risk_contributions(
    risk: RiskInput,
    rng: np.random.Generator,
    size: int,
    params: SamplerParams = DEFAULT_PARAMS,
) -> Tuple[np.ndarray, int]:
    """
    Sample a risk's signed contribution for `size` iterations.

    Args:
        risk: Validated risk
        rng: numpy Generator owned by the caller
        size: Number of iterations
        params: Distribution parameter constants

    Returns:
        tuple (contributions of shape (size,), number of clamped cost-only draws).
        Contribution is zero where the gate excluded the risk.
    """
    occurred = sample_occurrences(risk.probability, rng, size)
    impacts = np.asarray(sample_impact(risk, rng, size=size, params=params), dtype=float)

    clamped = 0
    if risk.cost_only:
        clamped = int(np.count_nonzero(occurred & (impacts < 0)))
        impacts = np.maximum(impacts, 0.0)

    return np.where(occurred, impacts, 0.0), clamped
