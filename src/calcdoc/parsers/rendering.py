"""Prose rendering: converts content blocks to markup.

The parser treats rendering as a collaborator: any callable taking the raw
prose text and returning markup can be passed as the renderer. The default
renderer converts markdown to HTML with Python-Markdown.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

import markdown

ProseRenderer = Callable[[str], str]

DEFAULT_MARKDOWN_EXTENSIONS: tuple[str, ...] = ("extra", "sane_lists")


class MarkdownRenderer:
    """Markdown-to-HTML renderer backed by Python-Markdown.

    One converter instance is reused and reset between content blocks,
    so a renderer is not safe to share across threads.
    """

    def __init__(self, extensions: Sequence[str] | None = None) -> None:
        """Initialize the renderer.

        Args:
            extensions: Python-Markdown extension names. Defaults to
                DEFAULT_MARKDOWN_EXTENSIONS.
        """
        self._extensions = tuple(
            DEFAULT_MARKDOWN_EXTENSIONS if extensions is None else extensions
        )
        self._converter = markdown.Markdown(extensions=list(self._extensions))

    @property
    def extensions(self) -> tuple[str, ...]:
        """Configured extension names."""
        return self._extensions

    def __call__(self, text: str) -> str:
        """Render a prose block to HTML."""
        self._converter.reset()
        return self._converter.convert(text)


def render_markdown(text: str) -> str:
    """Render markdown text with the default extensions."""
    return MarkdownRenderer()(text)
