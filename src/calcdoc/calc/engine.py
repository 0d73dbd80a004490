"""Calculation engine: declaration-ordered recalculation of a Document.

The engine owns the input values of one calculator session and derives every
calculated variable from them. State is an immutable CalculatorState; the
pure transition functions ``recalculate`` and ``apply_input_change`` return
a new state, and CalculationEngine wraps them for interactive use with
explicit listener registration.

Ordering: calculated variables are evaluated in global declaration order.
A variable may reference inputs and calculations declared before it; a
reference to one declared later fails as an undefined variable. There is
no dependency graph.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Mapping

from calcdoc.calc.evaluator import ExpressionEvaluator
from calcdoc.calc.functions import FunctionRegistry
from calcdoc.models.calculator_state import CalculatorState
from calcdoc.models.document import Document

logger = logging.getLogger(__name__)

FALLBACK_ERROR = "Calculation error"
FALLBACK_VALUE = 0.0

_LEADING_NUMBER_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")

ValuesListener = Callable[[dict[str, float]], None]


def _literal_default(expression: str) -> float:
    """Leading numeric literal of an input's expression, 0 if there is none."""
    match = _LEADING_NUMBER_RE.match(expression.strip())
    return float(match.group(0)) if match else 0.0


def initial_input_values(
    document: Document,
    overrides: Mapping[str, float] | None = None,
) -> dict[str, float]:
    """Seed values for every input variable.

    Args:
        document: The parsed document.
        overrides: Caller-supplied values that take precedence over the
            literal defaults written in the document.

    Returns:
        Mapping of input name to starting value.
    """
    values: dict[str, float] = {}
    for name in document.input_variables:
        variable = document.get_variable(name)
        if variable is None:
            continue
        if overrides is not None and name in overrides:
            values[name] = float(overrides[name])
        else:
            values[name] = _literal_default(variable.expression)
    return values


def recalculate(
    document: Document,
    state: CalculatorState,
    registry: FunctionRegistry | None = None,
) -> CalculatorState:
    """Run one full recalculation pass.

    Every calculated variable is evaluated in declaration order against the
    input values plus the calculated values produced earlier in this pass.
    A failed evaluation records its error and contributes 0, so variables
    that reference it still receive a number.

    Returns:
        New CalculatorState with the same inputs and freshly computed
        calculated values and errors.
    """
    calculated: dict[str, float] = {}
    errors: dict[str, str] = {}
    evaluator = ExpressionEvaluator(registry=registry)

    for variable in document.variables:
        if variable.is_input:
            continue

        evaluator.set_variables({**state.input_values, **calculated})
        result = evaluator.evaluate(variable.expression)

        if result.success and result.value is not None:
            calculated[variable.name] = result.value
        else:
            errors[variable.name] = result.error or FALLBACK_ERROR
            calculated[variable.name] = FALLBACK_VALUE

    if errors:
        logger.debug(
            "Recalculated %d variable(s), %d error(s): %s",
            len(calculated),
            len(errors),
            sorted(errors),
        )

    return CalculatorState(
        input_values=dict(state.input_values),
        calculated_values=calculated,
        errors=errors,
    )


def apply_input_change(
    document: Document,
    state: CalculatorState,
    name: str,
    value: float,
    registry: FunctionRegistry | None = None,
) -> CalculatorState:
    """Merge one input change into the state and recalculate."""
    changed = CalculatorState(
        input_values={**state.input_values, name: float(value)},
        calculated_values=state.calculated_values,
        errors=state.errors,
    )
    return recalculate(document, changed, registry)


class CalculationEngine:
    """Reactive calculator bound to one Document.

    Construction seeds the inputs and runs the first recalculation pass.
    Each public operation swaps in a complete new state before listeners
    are notified, so a listener or reader never sees a partial pass.

    Not safe for concurrent mutation: use one engine per session.
    """

    def __init__(
        self,
        document: Document,
        initial_values: Mapping[str, float] | None = None,
        on_input_values_changed: ValuesListener | None = None,
        on_calculated_values_changed: ValuesListener | None = None,
        registry: FunctionRegistry | None = None,
    ) -> None:
        """Initialize the engine and run the first recalculation.

        Args:
            document: Parsed document to calculate.
            initial_values: Input values overriding the document's literals.
            on_input_values_changed: Called with the new input map after
                every input change.
            on_calculated_values_changed: Called with the new calculated map
                after every recalculation.
            registry: Function registry for expressions.
        """
        self._document = document
        self._registry = registry
        self._input_listeners: list[ValuesListener] = []
        self._calculation_listeners: list[ValuesListener] = []
        if on_input_values_changed is not None:
            self._input_listeners.append(on_input_values_changed)
        if on_calculated_values_changed is not None:
            self._calculation_listeners.append(on_calculated_values_changed)

        self._state = CalculatorState(
            input_values=initial_input_values(document, initial_values),
        )
        self.recalculate()

    @property
    def document(self) -> Document:
        return self._document

    @property
    def state(self) -> CalculatorState:
        """Current immutable state."""
        return self._state

    def add_input_listener(self, listener: ValuesListener) -> Callable[[], None]:
        """Register a listener for input changes.

        Returns:
            Callable that unregisters the listener.
        """
        self._input_listeners.append(listener)
        return lambda: self._remove(self._input_listeners, listener)

    def add_calculation_listener(self, listener: ValuesListener) -> Callable[[], None]:
        """Register a listener for recalculations.

        Returns:
            Callable that unregisters the listener.
        """
        self._calculation_listeners.append(listener)
        return lambda: self._remove(self._calculation_listeners, listener)

    def recalculate(self) -> None:
        """Recalculate every calculated variable and notify listeners."""
        self._state = recalculate(self._document, self._state, self._registry)
        self._notify(self._calculation_listeners, self._state.calculated_values)

    def handle_input_change(self, name: str, value: float) -> None:
        """Set an input value, notify input listeners, then recalculate."""
        variable = self._document.get_variable(name)
        if variable is None or not variable.is_input:
            logger.warning("Input change for '%s', which is not an input variable", name)

        self._state = CalculatorState(
            input_values={**self._state.input_values, name: float(value)},
            calculated_values=self._state.calculated_values,
            errors=self._state.errors,
        )
        self._notify(self._input_listeners, self._state.input_values)
        self.recalculate()

    def get_input_values(self) -> dict[str, float]:
        return dict(self._state.input_values)

    def get_calculated_values(self) -> dict[str, float]:
        return dict(self._state.calculated_values)

    def get_errors(self) -> dict[str, str]:
        return dict(self._state.errors)

    @staticmethod
    def _notify(listeners: list[ValuesListener], values: Mapping[str, float]) -> None:
        for listener in list(listeners):
            listener(dict(values))

    @staticmethod
    def _remove(listeners: list[ValuesListener], listener: ValuesListener) -> None:
        if listener in listeners:
            listeners.remove(listener)
