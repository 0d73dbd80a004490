"""calcdoc CLI - parse and calculate literate calculation documents.

Usage:
    calcdoc parse PATH [--format markdown|org] [--input NAME]... [--no-auto-detect]
                       [--no-render] [--language L]
    calcdoc calc PATH [--set NAME=VALUE]... [--formatter NAME] [--decimals N]
                      [--text] [--show-hidden]
    calcdoc eval EXPR [--var NAME=VALUE]...
    calcdoc serve [--host HOST] [--port PORT]

PATH may be "-" to read the document from stdin.

Exit codes:
    0: Success
    1: Internal error (unexpected)
    2: Parse failure / evaluation errors / invalid arguments or configuration
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from calcdoc import __version__
from calcdoc.calc import CalculationEngine, evaluate_expression
from calcdoc.config import CalcdocConfig, ConfigError, configure_logging, load_config
from calcdoc.formatting import FORMATTER_NAMES, Formatter, get_formatter, to_title_case
from calcdoc.models import CalculatorState, Document, DocumentFormat
from calcdoc.parsers import (
    MarkdownRenderer,
    ParserOptions,
    ParseResult,
    parse_document,
    parse_markdown_document,
    parse_outline_document,
)
from calcdoc.parsers.document import LEADING_SECTION_NAME

STDIN_PATH = "-"
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8000


def _output_json(data: dict[str, Any]) -> None:
    """Output JSON to stdout with deterministic ordering."""
    print(json.dumps(data, sort_keys=True, indent=2))


def _make_error_result(code: str, message: str) -> dict[str, Any]:
    """Create a failed result dict with a single error."""
    return {
        "errors": [{"code": code, "message": message}],
        "success": False,
    }


def _read_source(path: str) -> tuple[str | None, str | None, str | None]:
    """Read document text from a file or stdin.

    Returns:
        Tuple of (content, filename, error_message). If error_message is not
        None, the other values should be ignored.
    """
    if path == STDIN_PATH:
        return sys.stdin.read(), None, None

    try:
        return Path(path).read_text(encoding="utf-8"), Path(path).name, None
    except FileNotFoundError:
        return None, None, f"File not found: {path}"
    except (OSError, UnicodeDecodeError) as e:
        return None, None, f"Cannot read {path}: {e}"


def _parse_assignments(pairs: list[str] | None) -> dict[str, float]:
    """Parse repeated NAME=VALUE arguments.

    Raises:
        ValueError: If a pair has no "=" or its value is not a number.
    """
    values: dict[str, float] = {}
    for pair in pairs or []:
        name, sep, raw = pair.partition("=")
        name = name.strip()
        if not sep or not name:
            raise ValueError(f"Expected NAME=VALUE, got '{pair}'")
        try:
            values[name] = float(raw)
        except ValueError as e:
            raise ValueError(f"Value for '{name}' is not a number: '{raw}'") from e
    return values


def _parse_source(
    args: argparse.Namespace,
    config: CalcdocConfig,
) -> tuple[ParseResult | None, str | None]:
    """Read and parse the document named by args.path.

    Returns:
        Tuple of (parse_result, read_error). Exactly one is not None.
    """
    content, filename, error_msg = _read_source(args.path)
    if error_msg is not None or content is None:
        return None, error_msg

    options = ParserOptions(
        auto_detect_inputs=not getattr(args, "no_auto_detect", False),
        explicit_inputs=tuple(getattr(args, "input", None) or ()),
        language=getattr(args, "language", "default"),
        render_content=config.render_content and not getattr(args, "no_render", False),
    )
    renderer = MarkdownRenderer(config.markdown_extensions) if options.render_content else None

    fmt = getattr(args, "format", None)
    if fmt == DocumentFormat.MARKDOWN:
        return parse_markdown_document(content, options, renderer), None
    if fmt == DocumentFormat.OUTLINE:
        return parse_outline_document(content, options, renderer), None
    return parse_document(content, filename, options, renderer), None


def cmd_parse(args: argparse.Namespace, config: CalcdocConfig) -> int:
    """Execute parse command with deterministic JSON output.

    Exit codes:
        0: Document parsed
        2: Read or parse failure
    """
    result, error_msg = _parse_source(args, config)
    if result is None:
        _output_json(_make_error_result("READ_ERROR", error_msg or "Cannot read input"))
        return 2

    _output_json(result.to_dict())
    return 0 if result.success else 2


def _render_text_report(
    document: Document,
    state: CalculatorState,
    formatter: Formatter,
    show_hidden: bool,
) -> str:
    """Human-readable report: one block per section, one line per variable."""
    lines: list[str] = []
    sections = document.sections if show_hidden else document.visible_sections()

    for section in sections:
        if lines:
            lines.append("")
        if section.name != LEADING_SECTION_NAME:
            suffix = " (hidden)" if section.hidden else ""
            lines.append(f"== {section.name}{suffix} ==")

        for variable in section.variables:
            label = to_title_case(variable.name)
            value = state.value_of(variable.name)
            shown = formatter(value) if value is not None else "-"
            if variable.is_input:
                lines.append(f"{label} [input]: {shown}")
            elif variable.name in state.errors:
                lines.append(f"{label}: {shown}  ! {state.errors[variable.name]}")
            else:
                lines.append(f"{label}: {shown}")

    return "\n".join(lines)


def cmd_calc(args: argparse.Namespace, config: CalcdocConfig) -> int:
    """Execute calc command.

    Exit codes:
        0: Every calculated variable evaluated
        2: Read/parse failure, invalid --set, or evaluation errors
    """
    try:
        overrides = _parse_assignments(args.set)
    except ValueError as e:
        _output_json(_make_error_result("INVALID_ARGUMENT", str(e)))
        return 2

    result, error_msg = _parse_source(args, config)
    if result is None:
        _output_json(_make_error_result("READ_ERROR", error_msg or "Cannot read input"))
        return 2
    if not result.success or result.document is None:
        _output_json(result.to_dict())
        return 2

    document = result.document
    unknown = sorted(name for name in overrides if name not in document.input_variables)
    if unknown:
        _output_json(
            _make_error_result("UNKNOWN_INPUT", f"Not input variables: {', '.join(unknown)}")
        )
        return 2

    engine = CalculationEngine(document, initial_values=overrides)
    state = engine.state

    decimals = args.decimals if args.decimals is not None else config.decimals
    formatter = get_formatter(args.formatter or config.formatter, decimals)

    if args.text:
        print(_render_text_report(document, state, formatter, args.show_hidden))
    else:
        _output_json(
            {
                "calculated": state.calculated_values,
                "errors": state.errors,
                "formatted": {
                    v.name: formatter(state.value_of(v.name) or 0.0) for v in document.variables
                },
                "inputs": state.input_values,
            }
        )

    return 2 if state.has_errors else 0


def cmd_eval(args: argparse.Namespace, config: CalcdocConfig) -> int:
    """Execute eval command.

    Exit codes:
        0: Expression evaluated to a finite number
        2: Evaluation failed or invalid --var
    """
    try:
        variables = _parse_assignments(args.var)
    except ValueError as e:
        _output_json(_make_error_result("INVALID_ARGUMENT", str(e)))
        return 2

    result = evaluate_expression(args.expression, variables)
    _output_json(result.to_dict())
    return 0 if result.success else 2


def cmd_serve(args: argparse.Namespace, config: CalcdocConfig) -> int:
    """Serve the HTTP API with uvicorn until interrupted."""
    import uvicorn

    from calcdoc.app import create_app

    uvicorn.run(
        create_app(config),
        host=args.host,
        port=args.port,
        log_level=config.log_level.lower(),
    )
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="calcdoc",
        description="calcdoc - literate calculation documents",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # parse command
    parse_parser = subparsers.add_parser(
        "parse",
        help="Parse a document and print its structure as JSON",
    )
    parse_parser.add_argument("path", metavar="PATH", help="Document path, or - for stdin")
    parse_parser.add_argument(
        "--format",
        choices=[f.value for f in DocumentFormat],
        default=None,
        help="Force the document format instead of detecting it",
    )
    parse_parser.add_argument(
        "--input",
        action="append",
        metavar="NAME",
        help="Treat NAME as an input variable (repeatable)",
    )
    parse_parser.add_argument(
        "--no-auto-detect",
        action="store_true",
        default=False,
        help="Do not treat bare numeric literals as inputs",
    )
    parse_parser.add_argument(
        "--no-render",
        action="store_true",
        default=False,
        help="Do not render prose blocks to HTML",
    )
    parse_parser.add_argument(
        "--language",
        default="default",
        help="Expression language tag stored on the document",
    )

    # calc command
    calc_parser = subparsers.add_parser(
        "calc",
        help="Parse a document and calculate every variable",
    )
    calc_parser.add_argument("path", metavar="PATH", help="Document path, or - for stdin")
    calc_parser.add_argument(
        "--set",
        action="append",
        metavar="NAME=VALUE",
        help="Override an input value (repeatable)",
    )
    calc_parser.add_argument(
        "--formatter",
        choices=FORMATTER_NAMES,
        default=None,
        help="Value formatter (defaults to CALCDOC_FORMATTER)",
    )
    calc_parser.add_argument(
        "--decimals",
        type=int,
        default=None,
        metavar="N",
        help="Decimal places for the default formatter (defaults to CALCDOC_DECIMALS)",
    )
    calc_parser.add_argument(
        "--text",
        action="store_true",
        default=False,
        help="Print a human-readable report instead of JSON",
    )
    calc_parser.add_argument(
        "--show-hidden",
        action="store_true",
        default=False,
        help="Include hidden sections in the text report",
    )

    # eval command
    eval_parser = subparsers.add_parser(
        "eval",
        help="Evaluate a single expression",
    )
    eval_parser.add_argument("expression", metavar="EXPR", help="Expression to evaluate")
    eval_parser.add_argument(
        "--var",
        action="append",
        metavar="NAME=VALUE",
        help="Variable available to the expression (repeatable)",
    )

    # serve command
    serve_parser = subparsers.add_parser(
        "serve",
        help="Serve the HTTP API",
    )
    serve_parser.add_argument(
        "--host",
        default=DEFAULT_HOST,
        help=f"Host to bind to (default: {DEFAULT_HOST})",
    )
    serve_parser.add_argument(
        "--port",
        type=int,
        default=DEFAULT_PORT,
        help=f"Port to listen on (default: {DEFAULT_PORT})",
    )

    return parser


COMMANDS = {
    "parse": cmd_parse,
    "calc": cmd_calc,
    "eval": cmd_eval,
    "serve": cmd_serve,
}


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Exit codes:
        0: Success
        1: Internal error (unexpected)
        2: Parse failure / evaluation errors / invalid arguments or configuration
    """
    try:
        parser = create_parser()
        args = parser.parse_args(argv)

        if args.command is None:
            parser.print_help()
            return 0

        try:
            config = load_config()
        except ConfigError as e:
            _output_json(_make_error_result("INVALID_CONFIG", str(e)))
            return 2
        configure_logging(config)

        if args.command == "calc" and args.decimals is not None and args.decimals < 0:
            _output_json(_make_error_result("INVALID_ARGUMENT", "--decimals must be >= 0"))
            return 2

        return COMMANDS[args.command](args, config)

    except Exception as e:
        # Fail-closed: unexpected errors return exit code 1
        _output_json(_make_error_result("INTERNAL_ERROR", str(e)))
        return 1


if __name__ == "__main__":
    sys.exit(main())
