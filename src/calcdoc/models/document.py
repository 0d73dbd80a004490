"""Document model: structured representation of a literate calculation file.

A Document is produced by the parser from markdown or org-style text. It
holds the ordered sections, every variable in declaration order, and the
names of the variables that are user inputs.

Section items form a discriminated union on ``type``:
- VariableItem: a reference to a variable defined at that position
- ContentItem: a block of prose between/around assignments
"""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import Annotated, Any, Literal, assert_never

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)


class DocumentFormat(StrEnum):
    """Source file format."""

    OUTLINE = "org"
    MARKDOWN = "markdown"


class SectionItemType(StrEnum):
    """Discriminator for SectionItem variants."""

    VARIABLE = "variable"
    CONTENT = "content"


class Variable(BaseModel):
    """A named quantity defined by an expression.

    Attributes:
        name: Identifier used to reference the variable in expressions.
        expression: Raw expression source text (trimmed).
        is_input: True for user-editable base values, False for calculations.
        section: Name of the owning section ("" for the leading section).
        order: 0-based position within the owning section.
    """

    name: str = Field(..., min_length=1, description="Variable identifier")
    expression: str = Field(default="", description="Raw expression source")
    is_input: bool = Field(default=False, description="User-editable input")
    section: str = Field(default="", description="Owning section name")
    order: int = Field(default=0, ge=0, description="Position within section")

    model_config = {"frozen": True, "extra": "forbid"}


class VariableItem(BaseModel):
    """Section item pointing at a variable definition."""

    type: Literal[SectionItemType.VARIABLE] = SectionItemType.VARIABLE
    variable: Variable

    model_config = {"frozen": True, "extra": "forbid"}


class ContentItem(BaseModel):
    """Section item holding a prose block.

    ``text`` is the raw block as it appeared in the source. ``html`` is the
    rendered markup, or None when rendering was disabled.
    """

    type: Literal[SectionItemType.CONTENT] = SectionItemType.CONTENT
    text: str
    html: str | None = None

    model_config = {"frozen": True, "extra": "forbid"}


SectionItem = Annotated[
    VariableItem | ContentItem,
    Field(discriminator="type"),
]


class Section(BaseModel):
    """A named grouping of variables and prose, one per distinct header."""

    name: str = Field(..., description="Section name (emojis and tags stripped)")
    order: int = Field(..., ge=0, description="First-seen order in the document")
    level: int = Field(default=1, ge=0, description="Header depth")
    hidden: bool = Field(default=False, description="Calculated but not displayed")
    variables: list[Variable] = Field(default_factory=list)
    items: list[SectionItem] = Field(default_factory=list)

    model_config = {"frozen": True, "extra": "forbid"}

    def content_blocks(self) -> list[ContentItem]:
        """Return the prose blocks of this section in source order."""
        blocks: list[ContentItem] = []
        for item in self.items:
            if isinstance(item, ContentItem):
                blocks.append(item)
            elif isinstance(item, VariableItem):
                continue
            else:
                assert_never(item)
        return blocks


class Document(BaseModel):
    """Parsed literate calculation document.

    Attributes:
        format: Source format (markdown or org).
        language: Expression language tag carried through from parser options.
        sections: Sections in first-seen order.
        variables: Every variable in global declaration order.
        input_variables: Names of input variables in declaration order.
    """

    format: DocumentFormat = DocumentFormat.MARKDOWN
    language: str = "default"
    sections: list[Section] = Field(default_factory=list)
    variables: list[Variable] = Field(default_factory=list)
    input_variables: list[str] = Field(default_factory=list)

    model_config = {"frozen": True, "extra": "forbid"}

    def get_variable(self, name: str) -> Variable | None:
        """Look up a variable by name."""
        for variable in self.variables:
            if variable.name == name:
                return variable
        return None

    def get_section(self, name: str) -> Section | None:
        """Look up a section by name."""
        for section in self.sections:
            if section.name == name:
                return section
        return None

    def visible_sections(self) -> list[Section]:
        """Sections that are not tagged hidden."""
        return [s for s in self.sections if not s.hidden]

    def calculated_variables(self) -> list[Variable]:
        """Non-input variables in declaration order."""
        return [v for v in self.variables if not v.is_input]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return self.model_dump(mode="json")


def load_document_json(raw: str | bytes) -> Document | None:
    """Load a Document previously serialized with ``to_dict``/JSON.

    Returns:
        The Document, or None if the payload is not valid JSON or does not
        have the document shape.
    """
    try:
        return Document.model_validate_json(raw)
    except ValidationError as e:
        logger.error("Failed to load document JSON: %s", e.errors(include_url=False)[:3])
        return None
