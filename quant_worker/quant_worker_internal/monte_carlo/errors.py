"""
Error types raised by the risk simulation engine.

Only malformed input is an error. Degenerate but valid input (fixed-value
risks, a single iteration, an empty register) completes normally.
"""
from typing import Optional


class SimulationValidationError(ValueError):
    """Malformed risk or settings detected before any sampling starts.

    Attributes:
        risk_id: Offending risk id, or None when the error is in the settings.
        field: Name of the offending field (e.g. "p10", "probability", "iterations").
    """

    def __init__(self, message: str, risk_id: Optional[str] = None, field: Optional[str] = None):
        super().__init__(message)
        self.risk_id = risk_id
        self.field = field

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "message": str(self),
            "risk_id": self.risk_id,
            "field": self.field,
        }
