"""calcdoc - literate calculation documents.

Parses markdown or org-style documents that interleave prose with
``name = expression`` lines, and recalculates every derived value when an
input changes.
"""

from calcdoc.calc import CalculationEngine, ExpressionEvaluator, evaluate_expression
from calcdoc.models import CalculatorState, Document
from calcdoc.parsers import ParserOptions, ParseResult, parse_document, parse_path

__version__ = "0.1.0"

__all__ = [
    "CalculationEngine",
    "CalculatorState",
    "Document",
    "ExpressionEvaluator",
    "ParseResult",
    "ParserOptions",
    "__version__",
    "evaluate_expression",
    "parse_document",
    "parse_path",
]
