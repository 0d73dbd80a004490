"""Base types for document parsing.

Provides:
- ParserOptions: Input-detection and rendering options
- ParseError: Structured error with code, message and context
- ParseResult: Result type returned by every parse entrypoint
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from calcdoc.models.document import Document


class ParseErrorCode(str, Enum):
    """Standardized error codes for parsing failures."""

    DUPLICATE_VARIABLE = "duplicate_variable"
    READ_ERROR = "read_error"
    INTERNAL_ERROR = "internal_error"


@dataclass(frozen=True, slots=True)
class ParseError:
    """Structured parsing error.

    Attributes:
        code: Standardized error code from ParseErrorCode enum.
        message: Human-readable error description.
        context: Short description of what the parser was doing.
        line: 1-based source line the error refers to, if any.
        details: Optional additional context (exception type, names, ...).
    """

    code: ParseErrorCode
    message: str
    context: str = ""
    line: int | None = None
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "code": self.code.value,
            "message": self.message,
            "context": self.context,
            "line": self.line,
            "details": self.details,
        }


@dataclass(frozen=True, slots=True)
class ParserOptions:
    """Options controlling how variables and prose are interpreted.

    Attributes:
        auto_detect_inputs: Treat bare numeric literals as inputs.
        explicit_inputs: Names always treated as inputs, regardless of
            their expression.
        language: Expression language tag stored on the Document.
        render_content: Run prose blocks through the prose renderer.
    """

    auto_detect_inputs: bool = True
    explicit_inputs: tuple[str, ...] = ()
    language: str = "default"
    render_content: bool = True


@dataclass(slots=True)
class ParseResult:
    """Result of parsing a document.

    Attributes:
        success: True if a Document was produced.
        document: The parsed Document (None if success=False).
        errors: Structured errors (empty if success=True).
        warnings: Non-fatal issues encountered during parsing.
        metadata: Document statistics (line_count, section_count, ...).
    """

    success: bool
    document: Document | None = None
    errors: list[ParseError] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def error(self) -> ParseError | None:
        """First error, if any."""
        return self.errors[0] if self.errors else None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "success": self.success,
            "document": self.document.to_dict() if self.document is not None else None,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": self.warnings,
            "metadata": self.metadata,
        }
