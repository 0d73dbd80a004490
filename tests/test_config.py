"""Tests for environment configuration."""

from __future__ import annotations

import pytest

from calcdoc.config import (
    ENV_DECIMALS,
    ENV_FORMATTER,
    ENV_LOG_LEVEL,
    ENV_MARKDOWN_EXTENSIONS,
    ENV_RENDER_CONTENT,
    CalcdocConfig,
    ConfigError,
    load_config,
)


class TestLoadConfig:
    """Test loading configuration from the environment."""

    def test_defaults(self) -> None:
        """Unset variables give the defaults."""
        config = load_config()

        assert config == CalcdocConfig()
        assert config.log_level == "WARNING"
        assert config.formatter == "default"
        assert config.decimals == 6
        assert config.render_content is True
        assert config.markdown_extensions == ("extra", "sane_lists")

    def test_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Every variable is read."""
        monkeypatch.setenv(ENV_LOG_LEVEL, "debug")
        monkeypatch.setenv(ENV_FORMATTER, "currency")
        monkeypatch.setenv(ENV_DECIMALS, "2")
        monkeypatch.setenv(ENV_RENDER_CONTENT, "no")
        monkeypatch.setenv(ENV_MARKDOWN_EXTENSIONS, "tables, toc")

        config = load_config()

        assert config.log_level == "DEBUG"
        assert config.formatter == "currency"
        assert config.decimals == 2
        assert config.render_content is False
        assert config.markdown_extensions == ("tables", "toc")

    def test_blank_values_use_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Whitespace-only values count as unset."""
        monkeypatch.setenv(ENV_DECIMALS, "  ")
        monkeypatch.setenv(ENV_RENDER_CONTENT, "")

        assert load_config() == CalcdocConfig()

    @pytest.mark.parametrize(
        ("env_var", "value"),
        [
            (ENV_DECIMALS, "abc"),
            (ENV_DECIMALS, "-1"),
            (ENV_RENDER_CONTENT, "maybe"),
            (ENV_FORMATTER, "roman"),
            (ENV_LOG_LEVEL, "LOUD"),
            (ENV_MARKDOWN_EXTENSIONS, "no_such_ext"),
        ],
    )
    def test_invalid_values(
        self, monkeypatch: pytest.MonkeyPatch, env_var: str, value: str
    ) -> None:
        """Invalid values fail at load time naming the variable."""
        monkeypatch.setenv(env_var, value)

        with pytest.raises(ConfigError, match=env_var):
            load_config()
