"""Document parser: literate calculation files to a structured Document.

Turns markdown or org-style text into ordered sections, variables and prose
blocks, tagging each variable as an input or a calculation.

Requirements:
- Total: any text produces a Document; empty or header-less text produces
  a Document with no sections
- Never raises: unexpected failures are captured in ParseResult
- Order-preserving: variables and prose keep their source interleaving
- Duplicate variable names are rejected with DUPLICATE_VARIABLE
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import assert_never

from calcdoc.models.document import (
    ContentItem,
    Document,
    DocumentFormat,
    Section,
    Variable,
    VariableItem,
)
from calcdoc.parsers.base import ParseError, ParseErrorCode, ParserOptions, ParseResult
from calcdoc.parsers.rendering import MarkdownRenderer, ProseRenderer
from calcdoc.parsers.text_utils import (
    Assignment,
    detect_format,
    extract_heading_level,
    extract_section_name,
    is_hidden_section,
    is_section_header,
    is_simple_value,
    parse_variable_assignment,
)

logger = logging.getLogger(__name__)

LEADING_SECTION_NAME = ""
FENCE_MARKERS = ("```", "~~~")
PARSE_FAILURE_CONTEXT = "Failed to parse file content"


@dataclass
class _SectionBuilder:
    """Mutable section under construction."""

    name: str
    order: int
    level: int
    hidden: bool
    variables: list[Variable] = field(default_factory=list)
    items: list[VariableItem | ContentItem] = field(default_factory=list)

    def build(self, renderer: ProseRenderer | None) -> Section:
        items: list[VariableItem | ContentItem] = []
        for item in self.items:
            if isinstance(item, ContentItem):
                html = renderer(item.text) if renderer is not None else None
                items.append(ContentItem(text=item.text, html=html))
            elif isinstance(item, VariableItem):
                items.append(item)
            else:
                assert_never(item)

        return Section(
            name=self.name,
            order=self.order,
            level=self.level,
            hidden=self.hidden,
            variables=self.variables,
            items=items,
        )


class _DocumentBuilder:
    """Accumulates sections, variables and prose while lines are scanned."""

    def __init__(self, fmt: DocumentFormat, options: ParserOptions) -> None:
        self.fmt = fmt
        self.options = options
        self.sections: dict[str, _SectionBuilder] = {}
        self.variables: list[Variable] = []
        self.input_variables: list[str] = []
        self.errors: list[ParseError] = []
        self.warnings: list[str] = []
        self._current: _SectionBuilder | None = None
        self._prose: list[str] = []
        self._defined_at: dict[str, int] = {}
        self._explicit_inputs = frozenset(options.explicit_inputs)

    def start_section(self, line: str, line_no: int) -> None:
        """Handle a header line: close the current prose block, switch section."""
        if self._current is None:
            self._discard_preamble()
        else:
            self.flush_prose()

        name = extract_section_name(line, self.fmt)
        if name == LEADING_SECTION_NAME:
            self.warnings.append(
                f"Header on line {line_no} has no name; its content joins the unnamed section"
            )
        section = self.sections.get(name)
        if section is None:
            section = _SectionBuilder(
                name=name,
                order=len(self.sections),
                level=extract_heading_level(line, self.fmt),
                hidden=is_hidden_section(line),
            )
            self.sections[name] = section
        self._current = section

    def add_variable(self, assignment: Assignment, line_no: int) -> None:
        """Handle an assignment line."""
        if assignment.name in self._defined_at:
            first_line = self._defined_at[assignment.name]
            self.errors.append(
                ParseError(
                    code=ParseErrorCode.DUPLICATE_VARIABLE,
                    message=(
                        f"Variable '{assignment.name}' is already defined on line {first_line}"
                    ),
                    context=f"Redefinition on line {line_no}",
                    line=line_no,
                    details={"name": assignment.name, "first_line": first_line},
                )
            )
            return
        self._defined_at[assignment.name] = line_no

        section = self._current_or_leading()
        self.flush_prose()

        variable = Variable(
            name=assignment.name,
            expression=assignment.expression,
            is_input=self._is_input(assignment),
            section=section.name,
            order=len(section.variables),
        )
        section.variables.append(variable)
        section.items.append(VariableItem(variable=variable))
        self.variables.append(variable)
        if variable.is_input:
            self.input_variables.append(variable.name)

    def add_prose(self, line: str) -> None:
        self._prose.append(line)

    def add_blank(self) -> None:
        # Blank lines only separate paragraphs inside an open prose block.
        if self._prose and self._prose[-1] != "":
            self._prose.append("")

    def flush_prose(self) -> None:
        """Move the buffered prose into the current section as one content block."""
        text = "\n".join(self._prose).strip()
        self._prose = []
        if text and self._current is not None:
            self._current.items.append(ContentItem(text=text))

    def finish(self, renderer: ProseRenderer | None) -> Document:
        if self._current is None:
            self._discard_preamble()
        else:
            self.flush_prose()

        sections = [builder.build(renderer) for builder in self.sections.values()]
        return Document(
            format=self.fmt,
            language=self.options.language,
            sections=sections,
            variables=self.variables,
            input_variables=self.input_variables,
        )

    def _is_input(self, assignment: Assignment) -> bool:
        if assignment.name in self._explicit_inputs:
            return True
        if self.options.auto_detect_inputs:
            return is_simple_value(assignment.expression)
        return False

    def _current_or_leading(self) -> _SectionBuilder:
        """Current section, creating the implicit leading section if needed."""
        if self._current is None:
            leading = self.sections.get(LEADING_SECTION_NAME)
            if leading is None:
                leading = _SectionBuilder(
                    name=LEADING_SECTION_NAME,
                    order=len(self.sections),
                    level=0,
                    hidden=False,
                )
                self.sections[LEADING_SECTION_NAME] = leading
            self._current = leading
        return self._current

    def _discard_preamble(self) -> None:
        text = "\n".join(self._prose).strip()
        self._prose = []
        if text:
            line_count = len(text.splitlines())
            logger.debug("Discarding %d line(s) of text before the first header", line_count)
            self.warnings.append(
                f"Discarded {line_count} line(s) of text before the first section header"
            )


def _fence_marker(line: str) -> str | None:
    for marker in FENCE_MARKERS:
        if line.startswith(marker):
            return marker
    return None


def _scan_lines(lines: list[str], builder: _DocumentBuilder) -> None:
    fence: str | None = None
    fence_line = 0

    for line_no, raw_line in enumerate(lines, start=1):
        line = raw_line.strip()

        if fence is not None:
            if line.startswith(fence) and line.strip(fence[0]) == "":
                fence = None
            continue

        if not line:
            builder.add_blank()
            continue

        if is_section_header(line, builder.fmt):
            builder.start_section(line, line_no)
            continue

        if builder.fmt == DocumentFormat.MARKDOWN:
            marker = _fence_marker(line)
            if marker is not None:
                fence = marker
                fence_line = line_no
                continue

        # Malformed markdown headers, org directives and comments.
        if line.startswith("#"):
            continue

        assignment = parse_variable_assignment(line)
        if assignment is not None:
            builder.add_variable(assignment, line_no)
        else:
            builder.add_prose(line)

    if fence is not None:
        builder.warnings.append(f"Unclosed code fence starting on line {fence_line}")


def _parse(
    content: str,
    fmt: DocumentFormat | None,
    filename: str | None,
    options: ParserOptions | None,
    renderer: ProseRenderer | None,
) -> ParseResult:
    if options is None:
        options = ParserOptions()

    try:
        if fmt is None:
            fmt = detect_format(content, filename)

        lines = content.replace("\r\n", "\n").replace("\r", "\n").split("\n")
        builder = _DocumentBuilder(fmt, options)
        _scan_lines(lines, builder)

        if builder.errors:
            return ParseResult(success=False, errors=builder.errors, warnings=builder.warnings)

        if options.render_content and renderer is None:
            renderer = MarkdownRenderer()
        document = builder.finish(renderer if options.render_content else None)
    except Exception as e:
        logger.error("Unexpected failure while parsing %s", filename or "<content>", exc_info=True)
        return ParseResult(
            success=False,
            errors=[
                ParseError(
                    code=ParseErrorCode.INTERNAL_ERROR,
                    message=str(e) or "Unknown parsing error",
                    context=PARSE_FAILURE_CONTEXT,
                    details={"type": type(e).__name__},
                )
            ],
        )

    content_blocks = sum(len(s.content_blocks()) for s in document.sections)
    metadata = {
        "format": document.format.value,
        "line_count": len(lines),
        "section_count": len(document.sections),
        "variable_count": len(document.variables),
        "input_count": len(document.input_variables),
        "content_block_count": content_blocks,
    }
    logger.debug("Parsed %s document: %s", document.format.value, metadata)

    return ParseResult(
        success=True,
        document=document,
        warnings=builder.warnings,
        metadata=metadata,
    )


def parse_document(
    content: str,
    filename: str | None = None,
    options: ParserOptions | None = None,
    renderer: ProseRenderer | None = None,
) -> ParseResult:
    """Parse a literate calculation document.

    Args:
        content: Raw document text.
        filename: Optional filename; a ``.md``/``.org`` extension decides the
            format, otherwise it is detected from the content.
        options: Parser options (defaults to ParserOptions()).
        renderer: Prose renderer for content blocks. Defaults to a
            MarkdownRenderer when options.render_content is set.

    Returns:
        ParseResult with success=True and the Document, or success=False
        with structured errors.

    Behavior:
        - Lines are trimmed; blank lines only separate prose paragraphs.
        - Headers open (or re-enter) a section; level and hidden flag are
          fixed by the first occurrence of a section name.
        - Markdown fenced code blocks and ``#`` lines are skipped; org
          ``#`` lines (directives, comments) are skipped.
        - ``name = expression`` lines define variables; any other line is
          prose, grouped into content blocks between assignments/headers.
        - Never raises exceptions; all failures captured in result.
    """
    return _parse(content, None, filename, options, renderer)


def parse_markdown_document(
    content: str,
    options: ParserOptions | None = None,
    renderer: ProseRenderer | None = None,
) -> ParseResult:
    """Parse content as markdown, skipping format detection."""
    return _parse(content, DocumentFormat.MARKDOWN, None, options, renderer)


def parse_outline_document(
    content: str,
    options: ParserOptions | None = None,
    renderer: ProseRenderer | None = None,
) -> ParseResult:
    """Parse content as an org-style outline, skipping format detection."""
    return _parse(content, DocumentFormat.OUTLINE, None, options, renderer)


def parse_path(
    path: str | Path,
    options: ParserOptions | None = None,
    renderer: ProseRenderer | None = None,
) -> ParseResult:
    """Read a UTF-8 file and parse it, using its name for format detection.

    Read failures are returned as READ_ERROR results.
    """
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        message = f"File not found: {path}"
    except (OSError, UnicodeDecodeError) as e:
        message = f"Cannot read {path}: {e}"
    else:
        return parse_document(content, filename=path.name, options=options, renderer=renderer)

    return ParseResult(
        success=False,
        errors=[
            ParseError(
                code=ParseErrorCode.READ_ERROR,
                message=message,
                context="Failed to read document",
                details={"path": str(path)},
            )
        ],
    )
