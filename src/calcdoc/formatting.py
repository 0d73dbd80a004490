"""Named formatters for displaying calculated values.

Each formatter takes a float and returns display text. Non-finite values
render as ``Infinity``, ``-Infinity`` or ``NaN`` in every formatter.
"""

from __future__ import annotations

import math
import re
from collections.abc import Callable

from calcdoc.calc.evaluator import describe_number

Formatter = Callable[[float], str]

DEFAULT_DECIMALS = 6

_WORD_SPLIT_RE = re.compile(r"(?=[A-Z])|_|-")


def format_default(value: float, decimals: int = DEFAULT_DECIMALS) -> str:
    """Fixed-point with ``decimals`` places."""
    if not math.isfinite(value):
        return describe_number(value)
    return f"{value:.{decimals}f}"


def format_currency(value: float) -> str:
    """``$1234.50``; negatives as ``-$1234.50``."""
    if not math.isfinite(value):
        return describe_number(value)
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):.2f}"


def format_percentage(value: float) -> str:
    """``12.50%``. The value is already a percentage, it is not scaled."""
    if not math.isfinite(value):
        return describe_number(value)
    return f"{value:.2f}%"


def format_compact(value: float) -> str:
    """``1.2k``, ``3.4M``, ``5.6B``; below one thousand, two decimals."""
    if not math.isfinite(value):
        return describe_number(value)
    magnitude = abs(value)
    sign = "-" if value < 0 else ""
    if magnitude >= 1e9:
        return f"{sign}{magnitude / 1e9:.1f}B"
    if magnitude >= 1e6:
        return f"{sign}{magnitude / 1e6:.1f}M"
    if magnitude >= 1e3:
        return f"{sign}{magnitude / 1e3:.1f}k"
    return f"{value:.2f}"


def format_scientific(value: float) -> str:
    """Two-decimal mantissa with an unpadded signed exponent: ``1.23e+4``."""
    if not math.isfinite(value):
        return describe_number(value)
    mantissa, exponent = f"{value:.2e}".split("e")
    return f"{mantissa}e{int(exponent):+d}"


FORMATTERS: dict[str, Formatter] = {
    "default": format_default,
    "currency": format_currency,
    "percentage": format_percentage,
    "compact": format_compact,
    "scientific": format_scientific,
}

FORMATTER_NAMES: tuple[str, ...] = tuple(FORMATTERS)


def get_formatter(name: str, decimals: int = DEFAULT_DECIMALS) -> Formatter:
    """Look up a formatter by name.

    ``decimals`` only applies to the default formatter.

    Raises:
        KeyError: If no formatter has this name.
    """
    if name not in FORMATTERS:
        raise KeyError(f"Unknown formatter: '{name}'. Valid options: {list(FORMATTER_NAMES)}")
    if name == "default":
        return lambda value: format_default(value, decimals)
    return FORMATTERS[name]


def to_title_case(identifier: str) -> str:
    """Turn a variable name into a display label.

    Splits before capitals and on ``_`` and ``-``: ``basePrice`` and
    ``base_price`` both become ``Base Price``.
    """
    words = [w for w in _WORD_SPLIT_RE.split(identifier) if w]
    return " ".join(w[:1].upper() + w[1:].lower() for w in words)
