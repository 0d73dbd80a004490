"""Line classification helpers shared by the document parser.

All functions are pure: they inspect a single line (or a whole file for
format detection) and never keep state between calls.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from calcdoc.models.document import DocumentFormat

IDENTIFIER_PATTERN = r"[A-Za-z_][A-Za-z0-9_]*"

_MARKDOWN_HEADER_RE = re.compile(r"^(#{1,6})\s+")
_OUTLINE_HEADER_RE = re.compile(r"^(\*+)\s+")
_MARKDOWN_MARKER_RE = re.compile(r"^#+\s*")
_OUTLINE_MARKER_RE = re.compile(r"^\*+\s*")

# Header markers as they appear anywhere in a file, for format sniffing.
_MARKDOWN_CONTENT_RE = re.compile(r"^# |\n## ", re.MULTILINE)
_OUTLINE_CONTENT_RE = re.compile(r"^\* |\n\*\* ", re.MULTILINE)

_TAGS_RE = re.compile(rf":({IDENTIFIER_PATTERN}(?::{IDENTIFIER_PATTERN})*):$")
_TRAILING_TAGS_RE = re.compile(r"\s*:[A-Za-z_][A-Za-z0-9_:]*:\s*$")

_EMOJI_RE = re.compile(r"[\U0001F300-\U0001F9FF\u2600-\u26FF\u2700-\u27BF]")

_SIMPLE_VALUE_RE = re.compile(r"-?\d*\.?\d+")
_ASSIGNMENT_RE = re.compile(rf"^({IDENTIFIER_PATTERN})\s*=\s*(.*)$")

HIDDEN_TAG = "hidden"


@dataclass(frozen=True, slots=True)
class Assignment:
    """A ``name = expression`` line split into its parts."""

    name: str
    expression: str


def detect_format(content: str, filename: str | None = None) -> DocumentFormat:
    """Detect the document format.

    The filename extension wins when it is ``.md`` or ``.org``. Otherwise the
    content is sniffed for markdown headers, then org headers. Markdown is
    the default when neither is found.
    """
    if filename:
        if filename.endswith(".md"):
            return DocumentFormat.MARKDOWN
        if filename.endswith(".org"):
            return DocumentFormat.OUTLINE

    if _MARKDOWN_CONTENT_RE.search(content):
        return DocumentFormat.MARKDOWN
    if _OUTLINE_CONTENT_RE.search(content):
        return DocumentFormat.OUTLINE

    return DocumentFormat.MARKDOWN


def strip_emojis(text: str) -> str:
    """Remove emoji codepoints from text."""
    return _EMOJI_RE.sub("", text)


def is_simple_value(expression: str) -> bool:
    """Check whether an expression is a bare numeric literal (or empty).

    Used as the default heuristic for telling inputs from calculations.
    """
    trimmed = expression.strip()
    if trimmed == "":
        return True
    return _SIMPLE_VALUE_RE.fullmatch(trimmed) is not None


def extract_tags(line: str) -> list[str]:
    """Extract the trailing ``:tag1:tag2:`` block of a header line."""
    match = _TAGS_RE.search(line)
    if not match:
        return []
    return [tag for tag in match.group(1).split(":") if tag]


def is_hidden_section(line: str) -> bool:
    """True if the header line carries the ``:hidden:`` tag."""
    return HIDDEN_TAG in extract_tags(line)


def extract_section_name(line: str, fmt: DocumentFormat) -> str:
    """Extract a section name from a header line.

    Header markers, the trailing tag block and emojis are removed.
    """
    if fmt == DocumentFormat.MARKDOWN:
        name = _MARKDOWN_MARKER_RE.sub("", line, count=1)
    else:
        name = _OUTLINE_MARKER_RE.sub("", line, count=1)

    name = _TRAILING_TAGS_RE.sub("", name, count=1)
    return strip_emojis(name).strip()


def extract_heading_level(line: str, fmt: DocumentFormat) -> int:
    """Number of header marker characters, or 0 if the line is not a header."""
    pattern = _MARKDOWN_HEADER_RE if fmt == DocumentFormat.MARKDOWN else _OUTLINE_HEADER_RE
    match = pattern.match(line)
    return len(match.group(1)) if match else 0


def is_section_header(line: str, fmt: DocumentFormat) -> bool:
    """Check if a line is a section header.

    A marker must be followed by whitespace: ``#NoSpace`` is not a header.
    """
    pattern = _MARKDOWN_HEADER_RE if fmt == DocumentFormat.MARKDOWN else _OUTLINE_HEADER_RE
    return pattern.match(line) is not None


def parse_variable_assignment(line: str) -> Assignment | None:
    """Parse a ``name = expression`` line.

    Returns:
        Assignment with the trimmed expression, or None if the line is not
        an assignment.
    """
    match = _ASSIGNMENT_RE.match(line)
    if not match:
        return None
    return Assignment(name=match.group(1), expression=match.group(2).strip())
