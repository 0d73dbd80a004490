"""Tests for the calculation engine.

Tests cover:
- Declaration-ordered recalculation and forward references
- Input seeding and overrides
- Pure state transitions
- Listener notification and unsubscription
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from calcdoc.calc import (
    CalculationEngine,
    apply_input_change,
    initial_input_values,
    recalculate,
)
from calcdoc.models import CalculatorState, Document
from calcdoc.parsers import ParserOptions, parse_document


def _document(
    content: str,
    auto_detect_inputs: bool = True,
    explicit_inputs: tuple[str, ...] = (),
) -> Document:
    options = ParserOptions(
        auto_detect_inputs=auto_detect_inputs,
        explicit_inputs=explicit_inputs,
        render_content=False,
    )
    result = parse_document(content, options=options)
    assert result.document is not None, result.errors
    return result.document


class TestRecalculation:
    """Test one full recalculation pass."""

    def test_chained_calculations(self) -> None:
        """Calculations may use earlier calculations."""
        engine = CalculationEngine(_document("# A\na = 10\nb = a * 2\nc = b + 5\n"))

        assert engine.get_calculated_values() == {"b": 20.0, "c": 25.0}
        assert engine.get_errors() == {}

    def test_forward_reference_fails(self) -> None:
        """A reference to a later variable is undefined and contributes 0."""
        engine = CalculationEngine(_document("# A\na = 10\nc = b + 5\nb = a * 2\n"))

        assert engine.get_errors() == {"c": "undefined variable: b"}
        assert engine.get_calculated_values() == {"c": 0.0, "b": 20.0}

    def test_failed_value_propagates_as_zero(self) -> None:
        """Dependents of a failed variable see 0."""
        engine = CalculationEngine(_document("# A\nbad = 1 / 0\nnext = bad + 1\n"))

        assert engine.get_errors() == {"bad": "Invalid result: Infinity"}
        assert engine.get_calculated_values() == {"bad": 0.0, "next": 1.0}

    def test_order_spans_sections(self, sample_markdown: str) -> None:
        """Declaration order is global across sections, hidden included."""
        engine = CalculationEngine(_document(sample_markdown))

        values = engine.get_calculated_values()
        assert values["tax"] == pytest.approx(20.0)
        assert values["total"] == pytest.approx(120.0)
        assert values["margin"] == pytest.approx(12.0)

    @pytest.mark.parametrize("name", ["return", "yield", "lambda", "in", "None", "True"])
    def test_keyword_variable_names(self, name: str) -> None:
        """Variables named like Python keywords can be referenced."""
        engine = CalculationEngine(
            _document(f"# A\n{name} = 0.07\nprincipal = 100\nprofit = principal * {name}\n")
        )

        assert engine.get_errors() == {}
        assert engine.get_input_values() == {name: 0.07}
        assert engine.get_calculated_values()["profit"] == pytest.approx(7.0)

    def test_empty_calculation_is_zero(self) -> None:
        """Explicit inputs aside, an empty expression evaluates to 0."""
        engine = CalculationEngine(_document("# A\nx = \n", auto_detect_inputs=False))
        assert engine.get_calculated_values() == {"x": 0.0}


class TestInputs:
    """Test input seeding and changes."""

    def test_input_defaults_from_literals(self) -> None:
        """Inputs start at their literal values."""
        document = _document("# A\nx = 5\ny = -2.5\nz = \n")
        assert initial_input_values(document) == {"x": 5.0, "y": -2.5, "z": 0.0}

    def test_explicit_input_with_expression_defaults(self) -> None:
        """An explicit input uses its leading number, or 0."""
        document = _document("# A\nx = 10 * 2\ny = a + b\n", explicit_inputs=("x", "y"))
        assert initial_input_values(document) == {"x": 10.0, "y": 0.0}

    def test_overrides_win(self) -> None:
        """Caller values replace literal defaults."""
        document = _document("# A\nx = 5\ny = x * 2\n")
        engine = CalculationEngine(document, initial_values={"x": 7})

        assert engine.get_input_values() == {"x": 7.0}
        assert engine.get_calculated_values() == {"y": 14.0}

    def test_input_change_recalculates(self) -> None:
        """Changing an input recalculates every dependent."""
        engine = CalculationEngine(_document("# A\nx = 5\ny = 10\nsum = x + y\nproduct = x * y\n"))
        assert engine.get_calculated_values() == {"sum": 15.0, "product": 50.0}

        engine.handle_input_change("x", 10)

        assert engine.get_input_values() == {"x": 10.0, "y": 10.0}
        assert engine.get_calculated_values() == {"sum": 20.0, "product": 100.0}

    def test_sum_and_product_follow_inputs(self) -> None:
        """Both inputs can change; every calculation follows."""
        engine = CalculationEngine(_document("# A\nx = 10\ny = 5\nsum = x + y\nproduct = x * y\n"))

        engine.handle_input_change("x", 20)

        assert engine.get_calculated_values() == {"sum": 25.0, "product": 100.0}

    def test_returned_maps_are_copies(self) -> None:
        """Mutating returned maps does not touch engine state."""
        engine = CalculationEngine(_document("# A\nx = 1\ny = x\n"))
        engine.get_input_values()["x"] = 99.0
        engine.get_calculated_values()["y"] = 99.0

        assert engine.get_input_values() == {"x": 1.0}
        assert engine.get_calculated_values() == {"y": 1.0}


class TestPureTransitions:
    """Test the functional state API."""

    def test_recalculate_is_idempotent(self, sample_markdown: str) -> None:
        """Recalculating twice with the same inputs gives the same state."""
        document = _document(sample_markdown)
        state = CalculatorState(input_values=initial_input_values(document))

        once = recalculate(document, state)
        twice = recalculate(document, once)
        assert once == twice

    def test_apply_input_change_returns_new_state(self) -> None:
        """The original state is left untouched."""
        document = _document("# A\nx = 1\ny = x + 1\n")
        before = recalculate(document, CalculatorState(input_values={"x": 1.0}))

        after = apply_input_change(document, before, "x", 4.0)

        assert before.calculated_values == {"y": 2.0}
        assert after.calculated_values == {"y": 5.0}
        assert after.input_values == {"x": 4.0}

    def test_state_is_frozen(self) -> None:
        """CalculatorState cannot be mutated in place."""
        state = CalculatorState()
        with pytest.raises(ValidationError):
            state.errors = {"x": "boom"}  # type: ignore[misc]

    def test_value_of(self) -> None:
        """value_of reads calculated values before inputs."""
        state = CalculatorState(input_values={"a": 1.0}, calculated_values={"b": 2.0})
        assert state.value_of("a") == 1.0
        assert state.value_of("b") == 2.0
        assert state.value_of("c") is None


class TestListeners:
    """Test listener notification."""

    def test_constructor_listeners(self) -> None:
        """Constructor callbacks fire on recalculation and input changes."""
        inputs: list[dict[str, float]] = []
        calculated: list[dict[str, float]] = []
        engine = CalculationEngine(
            _document("# A\nx = 1\ny = x * 3\n"),
            on_input_values_changed=inputs.append,
            on_calculated_values_changed=calculated.append,
        )
        assert calculated == [{"y": 3.0}]
        assert inputs == []

        engine.handle_input_change("x", 2)

        assert inputs == [{"x": 2.0}]
        assert calculated == [{"y": 3.0}, {"y": 6.0}]

    def test_unsubscribe(self) -> None:
        """The returned callable stops notifications."""
        engine = CalculationEngine(_document("# A\nx = 1\ny = x\n"))
        seen: list[dict[str, float]] = []
        unsubscribe = engine.add_calculation_listener(seen.append)

        engine.handle_input_change("x", 2)
        unsubscribe()
        engine.handle_input_change("x", 3)

        assert seen == [{"y": 2.0}]

    def test_listener_sees_complete_state(self) -> None:
        """State is swapped before listeners run."""
        engine = CalculationEngine(_document("# A\nx = 1\ny = x + 1\nz = y + 1\n"))
        observed: list[dict[str, float]] = []
        engine.add_calculation_listener(lambda _: observed.append(engine.get_calculated_values()))

        engine.handle_input_change("x", 10)

        assert observed == [{"y": 11.0, "z": 12.0}]

    def test_unknown_input_warns(self, caplog: pytest.LogCaptureFixture) -> None:
        """Changing a non-input logs a warning but still applies."""
        engine = CalculationEngine(_document("# A\nx = 1\ny = x\n"))

        with caplog.at_level("WARNING", logger="calcdoc.calc.engine"):
            engine.handle_input_change("y", 5)

        assert "not an input variable" in caplog.text
        assert engine.get_calculated_values() == {"y": 1.0}
