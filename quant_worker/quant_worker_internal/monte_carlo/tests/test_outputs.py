"""
PURPOSE: Unit tests for outputs.py module.

Tests cover:
1. Result creation with hand-built data
2. Immutability of the result and its distribution
3. Serialization to JSON-compatible dicts with exact values
"""

import numpy as np
import pytest

from quant_worker_internal.monte_carlo.histogram import HistogramBin
from quant_worker_internal.monte_carlo.models import SimulationSettings
from quant_worker_internal.monte_carlo.outputs import (
    ExceedancePoint,
    PercentileRow,
    SimulationResult,
)
from quant_worker_internal.monte_carlo.sensitivity import SensitivityItem


def _result(**overrides):
    fields = dict(
        base=100.0,
        distribution=[130.0, 110.0, 120.0],
        mean=120.0,
        std_dev=10.0,
        percentile_table=[
            PercentileRow(percentile=50, value=120.0, variance_from_base=20.0),
            PercentileRow(percentile=80, value=126.0, variance_from_base=26.0),
        ],
        p10=112.0,
        p50=120.0,
        p90=128.0,
        target_percentile=80,
        target_value=126.0,
        sensitivity_analysis=[
            SensitivityItem(risk_id="r1", variance_contribution=1.0, correlation=1.0, rank=1),
        ],
        risks_analyzed=1,
        total_risks=3,
        settings=SimulationSettings(iterations=3, target_percentile=80, random_seed=5),
        histogram=[HistogramBin(bin_start=110.0, bin_end=130.0, bin_mid=120.0, count=3)],
        exceedance_curve=[ExceedancePoint(value=110.0, probability=1.0)],
    )
    fields.update(overrides)
    return SimulationResult(**fields)


class TestSimulationResult:
    """Tests for SimulationResult dataclass."""

    def test_creation(self):
        result = _result()
        assert result.iterations == 3
        assert result.target_value == 126.0
        assert result.total_risks == 3
        assert result.clamped_risk_ids == ()
        assert result.seed_entropy is None

    def test_distribution_keeps_production_order(self):
        result = _result()
        assert result.distribution.tolist() == [130.0, 110.0, 120.0]

    def test_distribution_is_copied_and_read_only(self):
        source = np.array([1.0, 2.0, 3.0])
        result = _result(distribution=source)
        source[0] = 99.0
        assert result.distribution[0] == 1.0
        with pytest.raises(ValueError):
            result.distribution[1] = 0.0

    def test_frozen(self):
        result = _result()
        with pytest.raises(AttributeError):
            result.mean = 0.0

    def test_to_dict_serialization(self):
        payload = _result(clamped_risk_ids=("r2",), seed_entropy=5).to_dict()
        assert payload["distribution"] == [130.0, 110.0, 120.0]
        assert payload["percentile_table"][1] == {
            "percentile": 80,
            "value": 126.0,
            "variance_from_base": 26.0,
        }
        assert payload["sensitivity_analysis"][0]["risk_id"] == "r1"
        assert payload["histogram"][0]["count"] == 3
        assert payload["exceedance_curve"] == [{"value": 110.0, "probability": 1.0}]
        assert payload["settings"] == {"iterations": 3, "target_percentile": 80, "random_seed": 5}
        assert payload["clamped_risk_ids"] == ["r2"]
        assert payload["seed_entropy"] == 5

    def test_values_not_rounded(self):
        payload = _result(mean=123.456789123).to_dict()
        assert payload["mean"] == 123.456789123


class TestSensitivityItem:

    def test_to_dict(self):
        item = SensitivityItem(risk_id="r1", variance_contribution=0.25, correlation=-0.4, rank=2,
                               risk_number="R-004", title="Design change")
        assert item.to_dict() == {
            "risk_id": "r1",
            "risk_number": "R-004",
            "title": "Design change",
            "variance_contribution": 0.25,
            "correlation": -0.4,
            "rank": 2,
        }
