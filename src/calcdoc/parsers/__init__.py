"""calcdoc document parsers.

This package turns literate calculation files into Document models.

Modules:
    base: Shared types (ParserOptions, ParseResult, ParseError)
    text_utils: Line classification (headers, tags, assignments, format)
    rendering: Prose-to-markup renderers for content blocks
    document: The line-oriented document parser
"""

from calcdoc.parsers.base import ParseError, ParseErrorCode, ParserOptions, ParseResult
from calcdoc.parsers.document import (
    parse_document,
    parse_markdown_document,
    parse_outline_document,
    parse_path,
)
from calcdoc.parsers.rendering import MarkdownRenderer, ProseRenderer, render_markdown
from calcdoc.parsers.text_utils import detect_format, is_simple_value, strip_emojis

__all__ = [
    "MarkdownRenderer",
    "ParseError",
    "ParseErrorCode",
    "ParseResult",
    "ParserOptions",
    "ProseRenderer",
    "detect_format",
    "is_simple_value",
    "parse_document",
    "parse_markdown_document",
    "parse_outline_document",
    "parse_path",
    "render_markdown",
    "strip_emojis",
]
