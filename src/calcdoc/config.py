"""Environment configuration for calcdoc.

Settings are read once into an immutable CalcdocConfig. Invalid values fail
at load time with ConfigError instead of being silently replaced.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Final

from calcdoc.formatting import DEFAULT_DECIMALS, FORMATTER_NAMES
from calcdoc.parsers.rendering import DEFAULT_MARKDOWN_EXTENSIONS, MarkdownRenderer

logger = logging.getLogger(__name__)

ENV_LOG_LEVEL: Final[str] = "CALCDOC_LOG_LEVEL"
ENV_FORMATTER: Final[str] = "CALCDOC_FORMATTER"
ENV_DECIMALS: Final[str] = "CALCDOC_DECIMALS"
ENV_RENDER_CONTENT: Final[str] = "CALCDOC_RENDER_CONTENT"
ENV_MARKDOWN_EXTENSIONS: Final[str] = "CALCDOC_MARKDOWN_EXTENSIONS"

DEFAULT_LOG_LEVEL: Final[str] = "WARNING"
DEFAULT_FORMATTER: Final[str] = "default"

LOG_LEVELS: Final[frozenset[str]] = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})

_TRUE_VALUES: Final[frozenset[str]] = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES: Final[frozenset[str]] = frozenset({"0", "false", "no", "off"})


class ConfigError(Exception):
    """Raised when calcdoc configuration is invalid."""


@dataclass(frozen=True)
class CalcdocConfig:
    """calcdoc runtime configuration (immutable).

    Attributes:
        log_level: Root logging level name.
        formatter: Default value formatter for reports.
        decimals: Decimal places used by the default formatter.
        render_content: Render prose blocks to HTML while parsing.
        markdown_extensions: Python-Markdown extensions for rendering.
    """

    log_level: str = DEFAULT_LOG_LEVEL
    formatter: str = DEFAULT_FORMATTER
    decimals: int = DEFAULT_DECIMALS
    render_content: bool = True
    markdown_extensions: tuple[str, ...] = DEFAULT_MARKDOWN_EXTENSIONS

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.log_level not in LOG_LEVELS:
            raise ConfigError(
                f"{ENV_LOG_LEVEL} must be one of {sorted(LOG_LEVELS)}, got '{self.log_level}'"
            )
        if self.formatter not in FORMATTER_NAMES:
            raise ConfigError(
                f"{ENV_FORMATTER} must be one of {list(FORMATTER_NAMES)}, got '{self.formatter}'"
            )
        if self.decimals < 0:
            raise ConfigError(
                f"{ENV_DECIMALS} must be a non-negative integer, got {self.decimals}"
            )
        try:
            MarkdownRenderer(self.markdown_extensions)
        except (ImportError, AttributeError, TypeError, ValueError) as e:
            raise ConfigError(
                f"{ENV_MARKDOWN_EXTENSIONS} names an unusable extension: {e}"
            ) from e


def _get_env_str(env_var: str, default: str) -> str:
    raw = os.environ.get(env_var, "").strip()
    return raw or default


def _parse_non_negative_int(env_var: str, default: int) -> int:
    """Parse a non-negative integer from an environment variable.

    Raises:
        ConfigError: If the value is set but not a non-negative integer.
    """
    raw = os.environ.get(env_var, "").strip()
    if not raw:
        return default

    try:
        value = int(raw)
    except ValueError as e:
        raise ConfigError(f"{env_var} must be a non-negative integer, got '{raw}'") from e

    if value < 0:
        raise ConfigError(f"{env_var} must be a non-negative integer, got {value}")

    return value


def _parse_bool(env_var: str, default: bool) -> bool:
    """Parse a boolean flag (1/0, true/false, yes/no, on/off).

    Raises:
        ConfigError: If the value is set but not a recognised flag.
    """
    raw = os.environ.get(env_var, "").strip().lower()
    if not raw:
        return default
    if raw in _TRUE_VALUES:
        return True
    if raw in _FALSE_VALUES:
        return False
    raise ConfigError(f"{env_var} must be a boolean flag, got '{raw}'")


def _parse_list(env_var: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.environ.get(env_var)
    if raw is None or not raw.strip():
        return default
    return tuple(part.strip() for part in raw.split(",") if part.strip())


def load_config() -> CalcdocConfig:
    """Load configuration from environment variables.

    Environment variables:
        CALCDOC_LOG_LEVEL: Logging level name (default: WARNING)
        CALCDOC_FORMATTER: Report value formatter (default: default)
        CALCDOC_DECIMALS: Default formatter decimal places (default: 6)
        CALCDOC_RENDER_CONTENT: Render prose blocks to HTML (default: on)
        CALCDOC_MARKDOWN_EXTENSIONS: Comma-separated Python-Markdown
            extensions (default: extra,sane_lists)

    Returns:
        CalcdocConfig with validated values.

    Raises:
        ConfigError: If any value is invalid.
    """
    config = CalcdocConfig(
        log_level=_get_env_str(ENV_LOG_LEVEL, DEFAULT_LOG_LEVEL).upper(),
        formatter=_get_env_str(ENV_FORMATTER, DEFAULT_FORMATTER),
        decimals=_parse_non_negative_int(ENV_DECIMALS, DEFAULT_DECIMALS),
        render_content=_parse_bool(ENV_RENDER_CONTENT, True),
        markdown_extensions=_parse_list(ENV_MARKDOWN_EXTENSIONS, DEFAULT_MARKDOWN_EXTENSIONS),
    )
    logger.debug("Loaded configuration: %s", config)
    return config


def configure_logging(config: CalcdocConfig) -> None:
    """Configure root logging on stderr at the configured level."""
    logging.basicConfig(
        level=getattr(logging, config.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
