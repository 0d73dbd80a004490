"""Safe arithmetic expression evaluator.

Expressions are parsed with the ``ast`` module and evaluated by walking the
tree; only numeric literals, variable names, arithmetic operators and
registered functions are accepted, so no Python code is ever executed.

Grammar (Python precedence):
    +  -  *  /  %      arithmetic
    ^  (or **)         exponentiation, right-associative, binds tightest
    -x  +x             unary sign
    f(a, b, ...)       functions from the FunctionRegistry
    PI  E              constants (a variable of the same name wins)

Any identifier is a valid variable name, including Python keywords such as
``return`` or ``True``.

Failures never raise out of ``evaluate``: they are returned as
EvalResult(success=False) with a deterministic message.
"""

from __future__ import annotations

import ast
import io
import keyword
import logging
import math
import operator
import tokenize
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from calcdoc.calc.functions import (
    CONSTANTS,
    FunctionRegistry,
    default_registry,
    divide,
    modulo,
    power,
)

logger = logging.getLogger(__name__)

GENERIC_ERROR = "Evaluation error"
INVALID_RESULT_PREFIX = "Invalid result"
KEYWORD_ALIAS_PREFIX = "__kw_"

_BINARY_OPERATORS: dict[type[ast.operator], Callable[[float, float], float]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: divide,
    ast.Mod: modulo,
    ast.Pow: power,
}

_UNARY_OPERATORS: dict[type[ast.unaryop], Callable[[float], float]] = {
    ast.USub: operator.neg,
    ast.UAdd: operator.pos,
}


class ExpressionError(Exception):
    """Base class for expected expression failures."""


class ExpressionSyntaxError(ExpressionError):
    """Raised when an expression cannot be parsed."""


class UndefinedVariableError(ExpressionError):
    """Raised when an expression references a name missing from the context."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"undefined variable: {name}")


class UnsupportedOperatorError(ExpressionError):
    """Raised for operators outside the arithmetic grammar (``//``, ``&``, ``~``...)."""

    def __init__(self, op: ast.AST) -> None:
        self.operator = type(op).__name__
        super().__init__(f"unsupported operator: {self.operator}")


class UnsupportedExpressionError(ExpressionError):
    """Raised for syntax that parses but is not arithmetic (comparisons, strings...)."""


class UnknownFunctionError(ExpressionError):
    """Raised when a call names a function that is not registered."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"unknown function: {name}")


class FunctionArityError(ExpressionError):
    """Raised when a function is called with the wrong number of arguments."""


@dataclass(frozen=True, slots=True)
class EvalResult:
    """Outcome of evaluating one expression.

    Attributes:
        success: True if a finite number was produced.
        value: The result (None if success=False).
        error: Failure message (None if success=True).
    """

    success: bool
    value: float | None = None
    error: str | None = None

    @classmethod
    def ok(cls, value: float) -> EvalResult:
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, error: str) -> EvalResult:
        return cls(success=False, error=error)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        if self.success:
            return {"success": True, "value": self.value}
        return {"success": False, "error": self.error}


def describe_number(value: float) -> str:
    """Render a number the way error messages show it (Infinity, NaN, ...)."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    return repr(value)


def _alias_keywords(source: str) -> str:
    """Rename identifiers that are Python keywords (``return``, ``True``...).

    Document variables may use any identifier; keywords are rewritten to
    ``__kw_<name>`` so the expression still parses, and resolved back by
    ``_variable_name``.

    Raises:
        ExpressionSyntaxError: If the text cannot be tokenized.
    """
    try:
        tokens = list(tokenize.generate_tokens(io.StringIO(source).readline))
    except (tokenize.TokenError, SyntaxError) as e:
        raise ExpressionSyntaxError(f"Syntax error: {e.args[0]}") from e

    if not any(t.type == tokenize.NAME and keyword.iskeyword(t.string) for t in tokens):
        return source

    rewritten = [
        (t.type, KEYWORD_ALIAS_PREFIX + t.string)
        if t.type == tokenize.NAME and keyword.iskeyword(t.string)
        else (t.type, t.string)
        for t in tokens
    ]
    return tokenize.untokenize(rewritten).strip()


def _variable_name(identifier: str) -> str:
    """Undo keyword aliasing for a parsed identifier."""
    if identifier.startswith(KEYWORD_ALIAS_PREFIX):
        original = identifier[len(KEYWORD_ALIAS_PREFIX) :]
        if keyword.iskeyword(original):
            return original
    return identifier


@lru_cache(maxsize=1024)
def compile_expression(expression: str) -> ast.expr:
    """Parse an expression into an AST node, caching by source text.

    Raises:
        ExpressionSyntaxError: If the text is not a valid expression.
    """
    source = _alias_keywords(expression.strip().replace("^", "**"))
    try:
        tree = ast.parse(source, mode="eval")
    except SyntaxError as e:
        raise ExpressionSyntaxError(f"Syntax error: {e.msg}") from e
    except ValueError as e:
        raise ExpressionSyntaxError(f"Syntax error: {e}") from e
    return tree.body


def _constant(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise UnsupportedExpressionError(f"unsupported expression: literal {value!r}")
    try:
        return float(value)
    except OverflowError:
        return math.inf


def _evaluate_node(
    node: ast.expr,
    variables: Mapping[str, float],
    registry: FunctionRegistry,
) -> float:
    if isinstance(node, ast.Constant):
        return _constant(node.value)

    if isinstance(node, ast.Name):
        name = _variable_name(node.id)
        if name in variables:
            return float(variables[name])
        if name in CONSTANTS:
            return CONSTANTS[name]
        raise UndefinedVariableError(name)

    if isinstance(node, ast.BinOp):
        binary = _BINARY_OPERATORS.get(type(node.op))
        if binary is None:
            raise UnsupportedOperatorError(node.op)
        left = _evaluate_node(node.left, variables, registry)
        right = _evaluate_node(node.right, variables, registry)
        return binary(left, right)

    if isinstance(node, ast.UnaryOp):
        unary = _UNARY_OPERATORS.get(type(node.op))
        if unary is None:
            raise UnsupportedOperatorError(node.op)
        return unary(_evaluate_node(node.operand, variables, registry))

    if isinstance(node, ast.Call):
        return _evaluate_call(node, variables, registry)

    raise UnsupportedExpressionError(f"unsupported expression: {type(node).__name__}")


def _evaluate_call(
    node: ast.Call,
    variables: Mapping[str, float],
    registry: FunctionRegistry,
) -> float:
    if not isinstance(node.func, ast.Name):
        raise UnsupportedExpressionError(
            "unsupported expression: only named functions can be called"
        )
    name = _variable_name(node.func.id)
    if node.keywords:
        raise UnsupportedExpressionError(
            f"unsupported expression: keyword arguments in call to {name}"
        )

    spec = registry.get(name)
    if spec is None:
        raise UnknownFunctionError(name)
    if not spec.accepts(len(node.args)):
        raise FunctionArityError(
            f"{spec.name}() takes {spec.arity_text()} argument(s), got {len(node.args)}"
        )

    args = [_evaluate_node(arg, variables, registry) for arg in node.args]
    return float(spec.fn(*args))


class ExpressionEvaluator:
    """Evaluates expressions against a variable context.

    The context is replaced wholesale with ``set_variables``; the evaluator
    keeps no other state between calls.
    """

    def __init__(
        self,
        variables: Mapping[str, float] | None = None,
        registry: FunctionRegistry | None = None,
    ) -> None:
        """Initialize the evaluator.

        Args:
            variables: Initial variable context (name -> number).
            registry: Function registry. Defaults to the core functions.
        """
        self._variables: Mapping[str, float] = variables if variables is not None else {}
        self._registry = registry or default_registry()

    @property
    def variables(self) -> dict[str, float]:
        """Copy of the current variable context."""
        return dict(self._variables)

    def set_variables(self, variables: Mapping[str, float]) -> None:
        """Replace the variable context."""
        self._variables = variables

    def evaluate(self, expression: str) -> EvalResult:
        """Evaluate an expression against the current context.

        Returns:
            EvalResult.ok(value) for a finite result. Empty or blank
            expressions evaluate to 0. Every failure, including a non-finite
            result, is returned as EvalResult.fail(message).
        """
        try:
            if not expression or not expression.strip():
                return EvalResult.ok(0.0)
            node = compile_expression(expression)
            value = _evaluate_node(node, self._variables, self._registry)
        except ExpressionError as e:
            return EvalResult.fail(str(e))
        except Exception:
            logger.debug("Unexpected failure evaluating %r", expression, exc_info=True)
            return EvalResult.fail(GENERIC_ERROR)

        if not math.isfinite(value):
            return EvalResult.fail(f"{INVALID_RESULT_PREFIX}: {describe_number(value)}")

        return EvalResult.ok(value)

    def evaluate_all(self, expressions: Mapping[str, str]) -> dict[str, EvalResult]:
        """Evaluate several named expressions independently against the same context."""
        return {name: self.evaluate(expr) for name, expr in expressions.items()}


def evaluate_expression(
    expression: str,
    variables: Mapping[str, float] | None = None,
) -> EvalResult:
    """Evaluate a single expression with a one-off context."""
    return ExpressionEvaluator(variables).evaluate(expression)
