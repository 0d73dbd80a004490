"""calcdoc calculation engine.

This package provides:
- ExpressionEvaluator: Safe evaluation of arithmetic expressions
- FunctionRegistry: Functions and constants available to expressions
- CalculationEngine: Declaration-ordered recalculation of a Document
- Exceptions: Typed expression failures, reported as EvalResult messages
"""

from calcdoc.calc.engine import (
    CalculationEngine,
    apply_input_change,
    initial_input_values,
    recalculate,
)
from calcdoc.calc.evaluator import (
    EvalResult,
    ExpressionError,
    ExpressionEvaluator,
    ExpressionSyntaxError,
    FunctionArityError,
    UndefinedVariableError,
    UnknownFunctionError,
    UnsupportedExpressionError,
    UnsupportedOperatorError,
    evaluate_expression,
)
from calcdoc.calc.functions import FunctionRegistry, NumericFunction, default_registry

__all__ = [
    "CalculationEngine",
    "EvalResult",
    "ExpressionError",
    "ExpressionEvaluator",
    "ExpressionSyntaxError",
    "FunctionArityError",
    "FunctionRegistry",
    "NumericFunction",
    "UndefinedVariableError",
    "UnknownFunctionError",
    "UnsupportedExpressionError",
    "UnsupportedOperatorError",
    "apply_input_change",
    "default_registry",
    "evaluate_expression",
    "initial_input_values",
    "recalculate",
]
