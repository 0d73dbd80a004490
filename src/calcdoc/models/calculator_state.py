"""CalculatorState model: the engine-owned values of one calculator session.

State is an immutable value. The calculation engine produces a new
CalculatorState on every transition instead of mutating the current one,
so a reader holding a reference always sees one complete pass.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class CalculatorState(BaseModel):
    """Input values, calculated values and per-variable errors.

    Attributes:
        input_values: Current value of every input variable.
        calculated_values: Result of every calculated variable from the last
            recalculation pass (0 for variables that failed).
        errors: Evaluation error message per failed calculated variable.
    """

    input_values: dict[str, float] = Field(default_factory=dict)
    calculated_values: dict[str, float] = Field(default_factory=dict)
    errors: dict[str, str] = Field(default_factory=dict)

    model_config = {"frozen": True, "extra": "forbid"}

    @property
    def has_errors(self) -> bool:
        """True if any calculated variable failed in the last pass."""
        return bool(self.errors)

    def value_of(self, name: str) -> float | None:
        """Current value of a variable, input or calculated."""
        if name in self.calculated_values:
            return self.calculated_values[name]
        return self.input_values.get(name)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "input_values": dict(self.input_values),
            "calculated_values": dict(self.calculated_values),
            "errors": dict(self.errors),
        }
