"""Document and expression routes for the calcdoc API.

Provides:
- POST /v1/documents/parse: Parse a document into its structure
- POST /v1/documents/calculate: Parse and calculate a document
- POST /v1/expressions/evaluate: Evaluate a single expression

Requests are stateless: every calculation builds its own engine.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Request
from pydantic import BaseModel, ConfigDict, Field

from calcdoc.api.errors import CalcdocHttpError
from calcdoc.calc import CalculationEngine, evaluate_expression
from calcdoc.config import CalcdocConfig
from calcdoc.models import DocumentFormat
from calcdoc.parsers import (
    MarkdownRenderer,
    ParserOptions,
    ParseResult,
    parse_document,
    parse_markdown_document,
    parse_outline_document,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["Documents"])


class ParseOptionsModel(BaseModel):
    """Parser options accepted in request bodies."""

    model_config = ConfigDict(extra="forbid")

    format: DocumentFormat | None = None
    auto_detect_inputs: bool = True
    explicit_inputs: list[str] = Field(default_factory=list)
    language: str = "default"
    render_content: bool = True


class ParseRequest(BaseModel):
    """Request body for POST /v1/documents/parse."""

    model_config = ConfigDict(extra="forbid")

    content: str
    filename: str | None = None
    options: ParseOptionsModel | None = None


class CalculateRequest(ParseRequest):
    """Request body for POST /v1/documents/calculate."""

    inputs: dict[str, float] | None = None


class EvaluateRequest(BaseModel):
    """Request body for POST /v1/expressions/evaluate."""

    model_config = ConfigDict(extra="forbid")

    expression: str
    variables: dict[str, float] | None = None


def _get_config(request: Request) -> CalcdocConfig:
    """Configuration installed on the app by create_app."""
    config: CalcdocConfig = request.app.state.config
    return config


def _parse(body: ParseRequest, config: CalcdocConfig) -> ParseResult:
    """Parse the request content, raising 422 on failure."""
    requested = body.options or ParseOptionsModel()
    options = ParserOptions(
        auto_detect_inputs=requested.auto_detect_inputs,
        explicit_inputs=tuple(requested.explicit_inputs),
        language=requested.language,
        render_content=requested.render_content and config.render_content,
    )
    renderer = MarkdownRenderer(config.markdown_extensions) if options.render_content else None

    if requested.format == DocumentFormat.MARKDOWN:
        result = parse_markdown_document(body.content, options, renderer)
    elif requested.format == DocumentFormat.OUTLINE:
        result = parse_outline_document(body.content, options, renderer)
    else:
        result = parse_document(body.content, body.filename, options, renderer)

    if not result.success or result.document is None:
        first = result.error
        raise CalcdocHttpError(
            status_code=422,
            code="PARSE_FAILED",
            message=first.message if first is not None else "Document could not be parsed",
            details={
                "errors": [e.to_dict() for e in result.errors],
                "warnings": result.warnings,
            },
        )
    return result


@router.post("/documents/parse")
def parse_document_route(body: ParseRequest, request: Request) -> dict[str, Any]:
    """Parse a document.

    Returns:
        ParseResult as JSON (document, warnings, metadata).
    """
    return _parse(body, _get_config(request)).to_dict()


@router.post("/documents/calculate")
def calculate_document_route(body: CalculateRequest, request: Request) -> dict[str, Any]:
    """Parse a document and run one calculation pass.

    ``inputs`` override the literal values of input variables; naming a
    variable that is not an input is rejected with 422.
    """
    result = _parse(body, _get_config(request))
    document = result.document
    assert document is not None

    inputs = body.inputs or {}
    unknown = sorted(name for name in inputs if name not in document.input_variables)
    if unknown:
        raise CalcdocHttpError(
            status_code=422,
            code="UNKNOWN_INPUT",
            message=f"Not input variables: {', '.join(unknown)}",
            details={"names": unknown},
        )

    engine = CalculationEngine(document, initial_values=inputs)
    return {
        "document": document.to_dict(),
        "state": engine.state.to_dict(),
    }


@router.post("/expressions/evaluate", tags=["Expressions"])
def evaluate_expression_route(body: EvaluateRequest) -> dict[str, Any]:
    """Evaluate one expression against the supplied variables."""
    return evaluate_expression(body.expression, body.variables).to_dict()
