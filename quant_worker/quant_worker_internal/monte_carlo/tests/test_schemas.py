"""
Unit tests for register parsing and the camelCase result payload.
"""

import unittest

from pydantic import ValidationError

from quant_worker_internal.monte_carlo.errors import SimulationValidationError
from quant_worker_internal.monte_carlo.models import DistributionShape
from quant_worker_internal.monte_carlo.schemas import (
    RevisionSettings,
    RiskRegisterEntry,
    build_risk_inputs,
    result_payload,
)
from quant_worker_internal.monte_carlo.simulation import run_simulation


def _row(**overrides):
    row = {
        "id": "r1",
        "riskNumber": "R-001",
        "title": "Late steel delivery",
        "optimisticP10": 10_000,
        "likelyP50": 25_000,
        "pessimisticP90": 60_000,
        "probability": 40,
        "distributionModel": "Normal-like",
    }
    row.update(overrides)
    return row


class TestRegisterParsing(unittest.TestCase):

    def test_camel_case_row(self):
        entry = RiskRegisterEntry.model_validate(_row())
        risk = entry.to_risk_input()
        self.assertEqual(risk.id, "r1")
        self.assertEqual(risk.p50, 25_000.0)
        self.assertAlmostEqual(risk.probability, 0.4)
        self.assertIs(risk.distribution_shape, DistributionShape.NORMAL)
        self.assertEqual(risk.risk_number, "R-001")

    def test_snake_case_row(self):
        entry = RiskRegisterEntry(id="r2", optimistic_p10=1, likely_p50=2, pessimistic_p90=3,
                                  probability=100, distribution_model="pert", cost_only=True)
        risk = entry.to_risk_input()
        self.assertEqual(risk.probability, 1.0)
        self.assertTrue(risk.cost_only)

    def test_incomplete_rows_skipped(self):
        rows = [
            _row(id="a"),
            _row(id="b", likelyP50=None),
            _row(id="c", distributionModel=None),
            _row(id="d", probability=10),
        ]
        with self.assertLogs("quant_worker_internal.monte_carlo.schemas", level="DEBUG"):
            risks, total = build_risk_inputs(rows)
        self.assertEqual([r.id for r in risks], ["a", "d"])
        self.assertEqual(total, 4)

    def test_malformed_row(self):
        with self.assertRaises(ValidationError):
            build_risk_inputs([_row(optimisticP10="lots")])

    def test_invariant_violation_names_risk(self):
        with self.assertRaises(SimulationValidationError) as ctx:
            build_risk_inputs([_row(id="bad", optimisticP10=90_000)])
        self.assertEqual(ctx.exception.risk_id, "bad")

    def test_probability_over_hundred(self):
        with self.assertRaises(SimulationValidationError) as ctx:
            build_risk_inputs([_row(probability=150)])
        self.assertEqual(ctx.exception.field, "probability")


class TestRevisionSettings(unittest.TestCase):

    def test_defaults(self):
        settings = RevisionSettings().to_settings()
        self.assertEqual(settings.iterations, 10000)
        self.assertEqual(settings.target_percentile, 80)

    def test_camel_case(self):
        settings = RevisionSettings.model_validate(
            {"monteCarloIterations": 5000, "targetPercentile": 90, "seed": 12}
        ).to_settings()
        self.assertEqual(settings.iterations, 5000)
        self.assertEqual(settings.target_percentile, 90)
        self.assertEqual(settings.random_seed, 12)

    def test_disallowed_target(self):
        with self.assertRaises(SimulationValidationError):
            RevisionSettings(target_percentile=60).to_settings()


class TestResultPayload(unittest.TestCase):

    def setUp(self):
        rows = [_row(id="a"), _row(id="b", probability=80), _row(id="c", likelyP50=None)]
        risks, _ = build_risk_inputs(rows)
        self.result = run_simulation(risks, RevisionSettings(monte_carlo_iterations=2000).to_settings(),
                                     base=500_000, random_state=8)
        self.payload = result_payload(self.result)

    def test_camel_case_keys(self):
        for key in ("p10", "p50", "p90", "mean", "stdDev", "base", "targetValue", "targetPercentile",
                    "distribution", "percentileTable", "sensitivityAnalysis", "histogram",
                    "exceedanceCurve", "risksAnalyzed", "totalRisks", "settings"):
            self.assertIn(key, self.payload)
        self.assertIn("varianceFromBase", self.payload["percentileTable"][0])
        self.assertIn("riskId", self.payload["sensitivityAnalysis"][0])
        self.assertIn("varianceContribution", self.payload["sensitivityAnalysis"][0])
        self.assertIn("binStart", self.payload["histogram"][0])
        self.assertEqual(self.payload["settings"], {"iterations": 2000, "targetPercentile": 80})

    def test_values_exact(self):
        self.assertEqual(self.payload["stdDev"], self.result.std_dev)
        self.assertEqual(self.payload["targetValue"], self.result.target_value)
        self.assertEqual(len(self.payload["distribution"]), 2000)

    def test_register_metadata(self):
        first = self.payload["sensitivityAnalysis"][0]
        self.assertEqual(first["riskNumber"], "R-001")
        self.assertEqual(first["title"], "Late steel delivery")


if __name__ == "__main__":
    unittest.main()
