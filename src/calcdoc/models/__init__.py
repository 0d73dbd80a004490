"""calcdoc domain models: pydantic models for documents and calculator state."""

from calcdoc.models.calculator_state import CalculatorState
from calcdoc.models.document import (
    ContentItem,
    Document,
    DocumentFormat,
    Section,
    SectionItem,
    SectionItemType,
    Variable,
    VariableItem,
    load_document_json,
)

__all__ = [
    "CalculatorState",
    "ContentItem",
    "Document",
    "DocumentFormat",
    "Section",
    "SectionItem",
    "SectionItemType",
    "Variable",
    "VariableItem",
    "load_document_json",
]
