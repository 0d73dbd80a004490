"""Pytest configuration and fixtures for calcdoc tests.

This module provides sample documents and environment isolation shared by
all tests.
"""

from __future__ import annotations

import pytest

from calcdoc.config import (
    ENV_DECIMALS,
    ENV_FORMATTER,
    ENV_LOG_LEVEL,
    ENV_MARKDOWN_EXTENSIONS,
    ENV_RENDER_CONTENT,
)

SAMPLE_MARKDOWN = """\
# Pricing 💰

The base price before tax.

basePrice = 100
taxRate = 0.2

## Totals

tax = basePrice * taxRate
total = basePrice + tax

The total includes tax.

# Internals :hidden:

margin = total * 0.1
"""

SAMPLE_ORG = """\
#+TITLE: Loan

* Loan
principal = 1000
rate = 0.05

** Interest
interest = principal * rate
"""


@pytest.fixture(autouse=True)
def clear_calcdoc_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove calcdoc environment variables so tests see the defaults."""
    for env_var in (
        ENV_LOG_LEVEL,
        ENV_FORMATTER,
        ENV_DECIMALS,
        ENV_RENDER_CONTENT,
        ENV_MARKDOWN_EXTENSIONS,
    ):
        monkeypatch.delenv(env_var, raising=False)


@pytest.fixture
def sample_markdown() -> str:
    """Markdown document with inputs, calculations, prose and a hidden section."""
    return SAMPLE_MARKDOWN


@pytest.fixture
def sample_org() -> str:
    """Org outline document with a directive line and nested headers."""
    return SAMPLE_ORG
