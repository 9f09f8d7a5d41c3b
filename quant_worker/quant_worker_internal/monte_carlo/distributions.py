"""
PURPOSE: Probabilistic distribution samplers for risk impact uncertainty.

RESPONSIBILITIES:
- Turn a risk's P10/P50/P90 estimate into a sampling function per shape
  (triangular, Beta-PERT, uniform, normal, lognormal, Weibull)
- Draw from an injected numpy Generator only (no global random state)
- Single responsibility: only sampling, no occurrence gating or aggregation

SUPPORT PER SHAPE:
- triangular, pert, uniform: bounded, samples stay within [p10, p90]
- normal: unbounded both sides (~20% of draws fall outside [p10, p90]) unless
  a floor is configured
- lognormal, weibull: unbounded right tail, samples exceed p90 with roughly 10%
  probability by construction
- p90 - p10 below ZERO_SPREAD_TOLERANCE: fixed value (p50, or p10 for uniform)
"""

import math
from dataclasses import dataclass
from typing import Optional, Union

import numpy as np
from scipy.stats import lognorm, triang, weibull_min

from quant_worker_internal.monte_carlo.config import (
    NORMAL_FLOOR,
    NORMAL_Z_SPAN,
    PERT_LAMBDA,
    ZERO_SPREAD_TOLERANCE,
)
from quant_worker_internal.monte_carlo.models import DistributionShape, RiskInput

Sample = Union[float, np.ndarray]


@dataclass(frozen=True)
class SamplerParams:
    """Constants used to derive distribution parameters from three-point estimates.

    Attributes:
        pert_lambda: Beta-PERT peakedness (4 is the classic PERT weighting).
        z_span: Distance in standard deviations between P10 and P90 of a normal.
        normal_floor: Lower clamp applied to normal samples, None = unbounded.
    """
    pert_lambda: float = PERT_LAMBDA
    z_span: float = NORMAL_Z_SPAN
    normal_floor: Optional[float] = NORMAL_FLOOR

    def __post_init__(self):
        if self.pert_lambda <= 0:
            raise ValueError(f"pert_lambda must be positive, got {self.pert_lambda}")
        if self.z_span <= 0:
            raise ValueError(f"z_span must be positive, got {self.z_span}")


DEFAULT_PARAMS = SamplerParams()


def _constant(value: float, size: Optional[int]) -> Sample:
    if size is None:
        return float(value)
    return np.full(size, float(value))


def _finish(values: np.ndarray, size: Optional[int]) -> Sample:
    if size is None:
        return float(values[0])
    return values


def _count(size: Optional[int]) -> int:
    return 1 if size is None else int(size)


def sample_triangular(p10: float, p50: float, p90: float, rng: np.random.Generator,
                      size: Optional[int] = None) -> Sample:
    """
    Sample from a triangular distribution with min=p10, mode=p50, max=p90.

    Args:
        p10: Left bound
        p50: Peak
        p90: Right bound
        rng: numpy Generator
        size: Number of samples, None for a single float

    Returns:
        float or numpy array of sampled impacts
    """
    if p90 - p10 <= ZERO_SPREAD_TOLERANCE:
        return _constant(p50, size)

    # Scipy triangular requires normalized parameters: c = (mode - a) / (b - a)
    a = p10
    b = p90
    c = float(np.clip((p50 - a) / (b - a), 0.0, 1.0))

    values = triang.rvs(c, loc=a, scale=b - a, size=_count(size), random_state=rng)
    return _finish(np.asarray(values, dtype=float), size)


def sample_pert(p10: float, p50: float, p90: float, rng: np.random.Generator,
                size: Optional[int] = None, lam: float = PERT_LAMBDA) -> Sample:
    """
    Sample from a Beta-PERT distribution on [p10, p90] with mode p50.

    Shape parameters follow the standard PERT mapping:
        alpha = 1 + lam * (mode - min) / (max - min)
        beta  = 1 + lam * (max - mode) / (max - min)
    so the mean is (min + lam * mode + max) / (lam + 2).
    """
    if p90 - p10 <= ZERO_SPREAD_TOLERANCE:
        return _constant(p50, size)

    a = p10
    b = p90
    width = b - a
    alpha = 1.0 + lam * (p50 - a) / width
    beta = 1.0 + lam * (b - p50) / width

    beta_samples = rng.beta(alpha, beta, size=_count(size))
    return _finish(a + width * beta_samples, size)


def sample_uniform(p10: float, p90: float, rng: np.random.Generator,
                   size: Optional[int] = None) -> Sample:
    """Sample uniformly in [p10, p90]. P50 is ignored for this shape."""
    if p90 - p10 <= ZERO_SPREAD_TOLERANCE:
        return _constant(p10, size)
    return _finish(rng.uniform(p10, p90, size=_count(size)), size)


def sample_normal(p10: float, p50: float, p90: float, rng: np.random.Generator,
                  size: Optional[int] = None, z_span: float = NORMAL_Z_SPAN,
                  floor: Optional[float] = NORMAL_FLOOR) -> Sample:
    """
    Sample from a normal distribution centred on p50.

    For a normal, P10 and P90 sit at z = -1.28 and z = +1.28, so
    sigma = (p90 - p10) / z_span with z_span = 2.56 by default.

    Args:
        floor: If given, samples below the floor are clamped to it.
    """
    if p90 - p10 <= ZERO_SPREAD_TOLERANCE:
        return _constant(p50, size)

    std_dev = (p90 - p10) / z_span
    values = rng.normal(p50, std_dev, size=_count(size))
    if floor is not None:
        values = np.maximum(values, floor)
    return _finish(values, size)


def compute_lognormal_params(p10: float, p50: float, p90: float, z_span: float = NORMAL_Z_SPAN):
    """Compute lognormal (mu, sigma) from a positive three-point estimate.

    The median of a lognormal is exp(mu), so mu = ln(p50). P10 and P90 sit at
    mu -/+ (z_span / 2) * sigma in log space, so sigma = ln(p90 / p10) / z_span.

    Raises:
        ValueError: if any value is not positive
    """
    if p10 <= 0 or p50 <= 0 or p90 <= 0:
        raise ValueError("lognormal parameters require positive p10, p50 and p90")
    mu = math.log(p50)
    sigma = math.log(p90 / p10) / z_span
    return mu, sigma


def sample_lognormal(p10: float, p50: float, p90: float, rng: np.random.Generator,
                     size: Optional[int] = None, z_span: float = NORMAL_Z_SPAN) -> Sample:
    """
    Sample from a lognormal fitted to the three-point estimate.

    All-negative estimates are mirrored (sample the positive mirror, negate).
    Mixed-sign estimates cannot be lognormal and fall back to a normal.
    """
    if p90 - p10 <= ZERO_SPREAD_TOLERANCE:
        return _constant(p50, size)

    if p10 > 0:
        mu, sigma = compute_lognormal_params(p10, p50, p90, z_span)
        values = lognorm.rvs(s=sigma, scale=np.exp(mu), size=_count(size), random_state=rng)
        return _finish(np.asarray(values, dtype=float), size)

    if p90 < 0:
        mirrored = sample_lognormal(-p90, -p50, -p10, rng, size=size, z_span=z_span)
        return -mirrored

    return sample_normal(p10, p50, p90, rng, size=size, z_span=z_span, floor=None)


def compute_weibull_params(p50: float, p90: float):
    """Solve Weibull (shape k, scale lambda) from the P50 and P90 quantiles.

    Quantile function: x(q) = lambda * (-ln(1 - q)) ** (1 / k), hence
    p90 / p50 = (ln 10 / ln 2) ** (1 / k).

    Returns:
        tuple (k, scale), or None when the estimate has no valid Weibull fit
    """
    if p50 <= 0:
        return None
    ratio = p90 / p50
    if not math.isfinite(ratio) or ratio <= 1:
        return None
    k = math.log(math.log(10) / math.log(2)) / math.log(ratio)
    if not math.isfinite(k) or k <= 0:
        return None
    scale = p50 / math.log(2) ** (1 / k)
    return k, scale


def sample_weibull(p10: float, p50: float, p90: float, rng: np.random.Generator,
                   size: Optional[int] = None, z_span: float = NORMAL_Z_SPAN) -> Sample:
    """
    Sample from a Weibull fitted to P50/P90. Requires p10 > 0 and p90 > p50;
    otherwise falls back to a normal fitted to the same estimate.
    """
    if p90 - p10 <= ZERO_SPREAD_TOLERANCE:
        return _constant(p50, size)

    fit = compute_weibull_params(p50, p90) if p10 > 0 else None
    if fit is None:
        return sample_normal(p10, p50, p90, rng, size=size, z_span=z_span, floor=None)

    k, scale = fit
    values = weibull_min.rvs(k, scale=scale, size=_count(size), random_state=rng)
    return _finish(np.asarray(values, dtype=float), size)


def sample_impact(risk: RiskInput, rng: np.random.Generator, size: Optional[int] = None,
                  params: SamplerParams = DEFAULT_PARAMS) -> Sample:
    """
    Draw impact value(s) for a risk given that it occurs.

    Args:
        risk: Risk with a validated three-point estimate
        rng: numpy Generator owned by the caller
        size: Number of samples, None for a single float
        params: Distribution parameter constants

    Returns:
        float or numpy array of impacts (cost-only clamping is not applied here)
    """
    shape = risk.distribution_shape
    p10, p50, p90 = risk.p10, risk.p50, risk.p90

    if shape is DistributionShape.TRIANGULAR:
        return sample_triangular(p10, p50, p90, rng, size=size)
    if shape is DistributionShape.PERT:
        return sample_pert(p10, p50, p90, rng, size=size, lam=params.pert_lambda)
    if shape is DistributionShape.UNIFORM:
        return sample_uniform(p10, p90, rng, size=size)
    if shape is DistributionShape.NORMAL:
        return sample_normal(p10, p50, p90, rng, size=size, z_span=params.z_span,
                             floor=params.normal_floor)
    if shape is DistributionShape.LOGNORMAL:
        return sample_lognormal(p10, p50, p90, rng, size=size, z_span=params.z_span)
    if shape is DistributionShape.WEIBULL:
        return sample_weibull(p10, p50, p90, rng, size=size, z_span=params.z_span)

    raise ValueError(f"Unknown distribution shape: {shape}")

