"""
Unit tests for the input data model.

STRATEGY:
    1. Valid risks construct and normalise their fields
    2. Each malformed field raises SimulationValidationError naming the risk and field
    3. Shape tags resolve to the closed DistributionShape set
    4. Settings enforce iteration limits and the allowed target percentiles
"""

import unittest

from quant_worker_internal.monte_carlo.errors import SimulationValidationError
from quant_worker_internal.monte_carlo.models import (
    DistributionShape,
    RiskInput,
    SimulationSettings,
)


class TestRiskInput(unittest.TestCase):
    """Test RiskInput construction and validation."""

    def test_valid_risk(self):
        risk = RiskInput(id="r1", p10=80, p50=100, p90=140, probability=0.5,
                         distribution_shape="pert")
        self.assertEqual(risk.distribution_shape, DistributionShape.PERT)
        self.assertIsInstance(risk.p10, float)
        self.assertEqual(risk.spread, 60.0)

    def test_default_shape_is_triangular(self):
        risk = RiskInput(id="r1", p10=1, p50=2, p90=3, probability=1)
        self.assertIs(risk.distribution_shape, DistributionShape.TRIANGULAR)

    def test_p10_above_p50_rejected(self):
        with self.assertRaises(SimulationValidationError) as ctx:
            RiskInput(id="r7", p10=120, p50=100, p90=140, probability=0.5)
        self.assertEqual(ctx.exception.risk_id, "r7")
        self.assertEqual(ctx.exception.field, "p10")

    def test_p50_above_p90_rejected(self):
        with self.assertRaises(SimulationValidationError) as ctx:
            RiskInput(id="r8", p10=80, p50=150, p90=140, probability=0.5)
        self.assertEqual(ctx.exception.risk_id, "r8")
        self.assertEqual(ctx.exception.field, "p90")

    def test_probability_out_of_range_rejected(self):
        for probability in (-0.01, 1.01, 50):
            with self.assertRaises(SimulationValidationError) as ctx:
                RiskInput(id="r2", p10=1, p50=2, p90=3, probability=probability)
            self.assertEqual(ctx.exception.field, "probability")

    def test_probability_bounds_accepted(self):
        RiskInput(id="never", p10=1, p50=2, p90=3, probability=0)
        RiskInput(id="always", p10=1, p50=2, p90=3, probability=1)

    def test_non_finite_rejected(self):
        with self.assertRaises(SimulationValidationError) as ctx:
            RiskInput(id="r3", p10=float("nan"), p50=2, p90=3, probability=0.5)
        self.assertEqual(ctx.exception.field, "p10")

    def test_non_numeric_rejected(self):
        with self.assertRaises(SimulationValidationError):
            RiskInput(id="r4", p10="1", p50=2, p90=3, probability=0.5)

    def test_unknown_shape_rejected(self):
        with self.assertRaises(SimulationValidationError) as ctx:
            RiskInput(id="r5", p10=1, p50=2, p90=3, probability=0.5, distribution_shape="cauchy")
        self.assertEqual(ctx.exception.risk_id, "r5")
        self.assertEqual(ctx.exception.field, "distribution_shape")

    def test_negative_impacts_allowed(self):
        """Opportunities carry negative impacts."""
        risk = RiskInput(id="o1", p10=-50, p50=-30, p90=-10, probability=0.4)
        self.assertEqual(risk.p10, -50.0)

    def test_immutable(self):
        risk = RiskInput(id="r1", p10=1, p50=2, p90=3, probability=0.5)
        with self.assertRaises(AttributeError):
            risk.p10 = 0

    def test_error_to_dict(self):
        with self.assertRaises(SimulationValidationError) as ctx:
            RiskInput(id="r9", p10=5, p50=2, p90=3, probability=0.5)
        payload = ctx.exception.to_dict()
        self.assertEqual(payload["risk_id"], "r9")
        self.assertEqual(payload["field"], "p10")
        self.assertIn("p10", payload["message"])


class TestDistributionShape(unittest.TestCase):
    """Test shape tag parsing."""

    def test_parse_tags(self):
        self.assertIs(DistributionShape.parse("triangular"), DistributionShape.TRIANGULAR)
        self.assertIs(DistributionShape.parse("PERT"), DistributionShape.PERT)
        self.assertIs(DistributionShape.parse(" uniform "), DistributionShape.UNIFORM)
        self.assertIs(DistributionShape.parse("lognormal"), DistributionShape.LOGNORMAL)
        self.assertIs(DistributionShape.parse("weibull"), DistributionShape.WEIBULL)

    def test_normal_like_alias(self):
        self.assertIs(DistributionShape.parse("normal-like"), DistributionShape.NORMAL)
        self.assertIs(DistributionShape.parse("normal_like"), DistributionShape.NORMAL)
        self.assertIs(DistributionShape.parse("normal"), DistributionShape.NORMAL)

    def test_parse_enum_passthrough(self):
        self.assertIs(DistributionShape.parse(DistributionShape.PERT), DistributionShape.PERT)

    def test_parse_rejects_non_string(self):
        with self.assertRaises(SimulationValidationError):
            DistributionShape.parse(None)


class TestSimulationSettings(unittest.TestCase):
    """Test SimulationSettings validation."""

    def test_defaults(self):
        settings = SimulationSettings()
        self.assertEqual(settings.iterations, 10000)
        self.assertEqual(settings.target_percentile, 80)
        self.assertIsNone(settings.random_seed)

    def test_zero_iterations_rejected(self):
        with self.assertRaises(SimulationValidationError) as ctx:
            SimulationSettings(iterations=0)
        self.assertEqual(ctx.exception.field, "iterations")
        self.assertIsNone(ctx.exception.risk_id)

    def test_negative_iterations_rejected(self):
        with self.assertRaises(SimulationValidationError):
            SimulationSettings(iterations=-5)

    def test_float_iterations_rejected(self):
        with self.assertRaises(SimulationValidationError):
            SimulationSettings(iterations=1000.0)

    def test_target_percentile_must_be_allowed(self):
        for target in (50, 70, 80, 85, 90, 95):
            self.assertEqual(SimulationSettings(target_percentile=target).target_percentile, target)
        with self.assertRaises(SimulationValidationError) as ctx:
            SimulationSettings(target_percentile=75)
        self.assertEqual(ctx.exception.field, "target_percentile")

    def test_seed_accepted(self):
        self.assertEqual(SimulationSettings(random_seed=0).random_seed, 0)
        self.assertEqual(SimulationSettings(random_seed=2**63).random_seed, 2**63)

    def test_invalid_seed_rejected(self):
        for seed in (-1, 1.5, "42", True):
            with self.assertRaises(SimulationValidationError) as ctx:
                SimulationSettings(random_seed=seed)
            self.assertEqual(ctx.exception.field, "random_seed")
            self.assertIsNone(ctx.exception.risk_id)

    def test_to_dict(self):
        settings = SimulationSettings(iterations=5000, target_percentile=90, random_seed=3)
        self.assertEqual(
            settings.to_dict(),
            {"iterations": 5000, "target_percentile": 90, "random_seed": 3},
        )


if __name__ == "__main__":
    unittest.main()
