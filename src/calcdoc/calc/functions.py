"""Function registry for the expression evaluator.

Every function callable from an expression is described by a NumericFunction
spec with arity bounds. Math domain errors and overflows do not raise: they
produce NaN or Infinity, which the evaluator reports as invalid results.
"""

from __future__ import annotations

import math
from collections.abc import Callable
from dataclasses import dataclass
from functools import cache

CONSTANTS: dict[str, float] = {
    "PI": math.pi,
    "E": math.e,
}

# Floats at or above this magnitude have no fractional part.
_EXACT_INTEGER_LIMIT = 2.0**52


@dataclass(frozen=True)
class NumericFunction:
    """Specification for a function available in expressions.

    Attributes:
        name: Name used in expressions (e.g., "sqrt").
        fn: Implementation taking floats and returning a float.
        min_args: Minimum number of arguments.
        max_args: Maximum number of arguments, None for variadic.
        description: One-line description for help output.
    """

    name: str
    fn: Callable[..., float]
    min_args: int = 1
    max_args: int | None = 1
    description: str = ""

    def accepts(self, arg_count: int) -> bool:
        """Check whether the function accepts this many arguments."""
        if arg_count < self.min_args:
            return False
        return self.max_args is None or arg_count <= self.max_args

    def arity_text(self) -> str:
        """Human-readable arity, e.g. "1", "1-2" or "at least 1"."""
        if self.max_args is None:
            return f"at least {self.min_args}"
        if self.max_args == self.min_args:
            return str(self.min_args)
        return f"{self.min_args}-{self.max_args}"


class FunctionRegistry:
    """Registry of functions available to expressions.

    Functions are immutable once registered.
    """

    def __init__(self) -> None:
        self._functions: dict[str, NumericFunction] = {}

    def register(self, spec: NumericFunction) -> None:
        """Register a function.

        Raises:
            ValueError: If a function with this name is already registered.
        """
        if spec.name in self._functions:
            raise ValueError(f"Function '{spec.name}' already registered")
        self._functions[spec.name] = spec

    def get(self, name: str) -> NumericFunction | None:
        """Get a function spec by name, None if not registered."""
        return self._functions.get(name)

    def get_or_raise(self, name: str) -> NumericFunction:
        """Get a function spec or raise if not found.

        Raises:
            KeyError: If no function is registered under this name.
        """
        spec = self.get(name)
        if spec is None:
            raise KeyError(f"No function registered: {name}")
        return spec

    def list_registered(self) -> list[str]:
        """List all registered function names, sorted."""
        return sorted(self._functions)

    def __contains__(self, name: object) -> bool:
        return name in self._functions


def _ieee(fn: Callable[..., float]) -> Callable[..., float]:
    """Map math domain errors to NaN and overflows to Infinity."""

    def wrapper(*args: float) -> float:
        try:
            return float(fn(*args))
        except OverflowError:
            return math.inf
        except (ValueError, ZeroDivisionError):
            return math.nan

    wrapper.__name__ = getattr(fn, "__name__", "function")
    return wrapper


def power(base: float, exponent: float) -> float:
    """Exponentiation with IEEE results instead of exceptions."""
    try:
        return math.pow(base, exponent)
    except OverflowError:
        return math.inf
    except ValueError:
        if base == 0 and exponent < 0:
            return math.inf
        return math.nan


def divide(numerator: float, denominator: float) -> float:
    """Division yielding ±Infinity or NaN for a zero denominator."""
    if denominator == 0:
        if numerator == 0 or math.isnan(numerator):
            return math.nan
        return math.copysign(math.inf, numerator) * math.copysign(1.0, denominator)
    return numerator / denominator


def modulo(numerator: float, denominator: float) -> float:
    """Remainder with the sign of the numerator; NaN for a zero denominator."""
    if denominator == 0:
        return math.nan
    return math.fmod(numerator, denominator)


def _round(value: float, digits: float = 0) -> float:
    # Half away from zero; builtin round() is half-to-even.
    if not math.isfinite(value) or (digits >= 0 and abs(value) >= _EXACT_INTEGER_LIMIT):
        return value
    try:
        factor = 10.0 ** int(digits)
    except OverflowError:
        return value
    scaled = abs(value) * factor
    if not math.isfinite(scaled):
        return value
    rounded = math.floor(scaled + 0.5) / factor
    return math.copysign(rounded, value)


def _sign(value: float) -> float:
    if value == 0 or math.isnan(value):
        return value
    return math.copysign(1.0, value)


def _log(value: float, base: float | None = None) -> float:
    if value == 0:
        return -math.inf
    if base is None:
        return math.log(value)
    return math.log(value, base)


CORE_FUNCTIONS: tuple[NumericFunction, ...] = (
    NumericFunction("sqrt", _ieee(math.sqrt), description="Square root"),
    NumericFunction("abs", _ieee(abs), description="Absolute value"),
    NumericFunction("min", _ieee(min), 1, None, "Smallest argument"),
    NumericFunction("max", _ieee(max), 1, None, "Largest argument"),
    NumericFunction("round", _ieee(_round), 1, 2, "Round half away from zero"),
    NumericFunction("floor", _ieee(math.floor), description="Round down"),
    NumericFunction("ceil", _ieee(math.ceil), description="Round up"),
    NumericFunction("trunc", _ieee(math.trunc), description="Drop the fractional part"),
    NumericFunction("sign", _ieee(_sign), description="-1, 0 or 1"),
    NumericFunction("exp", _ieee(math.exp), description="e raised to x"),
    NumericFunction("log", _ieee(_log), 1, 2, "Natural logarithm, or log to a base"),
    NumericFunction("ln", _ieee(_log), description="Natural logarithm"),
    NumericFunction("log10", _ieee(math.log10), description="Base-10 logarithm"),
    NumericFunction("log2", _ieee(math.log2), description="Base-2 logarithm"),
    NumericFunction("sin", _ieee(math.sin), description="Sine (radians)"),
    NumericFunction("cos", _ieee(math.cos), description="Cosine (radians)"),
    NumericFunction("tan", _ieee(math.tan), description="Tangent (radians)"),
    NumericFunction("asin", _ieee(math.asin), description="Arc sine"),
    NumericFunction("acos", _ieee(math.acos), description="Arc cosine"),
    NumericFunction("atan", _ieee(math.atan), description="Arc tangent"),
    NumericFunction("pow", power, 2, 2, "x raised to y"),
    NumericFunction("hypot", _ieee(math.hypot), 1, None, "Euclidean norm"),
)


@cache
def default_registry() -> FunctionRegistry:
    """Registry holding CORE_FUNCTIONS, built once."""
    registry = FunctionRegistry()
    for spec in CORE_FUNCTIONS:
        registry.register(spec)
    return registry
