# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Page Blocks: structured document extraction from noisy web page DOMs.

Turns an article page into one ordered sequence of typed content blocks
(headings, paragraphs, images, lists, tables, quotes, code, separators and
bracketed infobox regions) that every exporter consumes uniformly.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, ClassVar

from pydantic import ValidationError

from pageblocks.errors import SelectorConfigError
from pageblocks.schemas import SelectorPayload

__all__ = [
    "BlockType",
    "Code",
    "ContentBlock",
    "ExtractionDiagnostics",
    "ExtractionResult",
    "Heading",
    "Image",
    "InfoboxEnd",
    "InfoboxStart",
    "ListBlock",
    "ListItem",
    "Paragraph",
    "Quote",
    "SelectorConfig",
    "Separator",
    "Table",
]


class BlockType(StrEnum):
    """Content block discriminator (wire value of the ``type`` field)."""

    HEADING = "heading"
    PARAGRAPH = "paragraph"
    IMAGE = "image"
    QUOTE = "quote"
    LIST = "list"
    CODE = "code"
    TABLE = "table"
    SEPARATOR = "separator"
    INFOBOX_START = "infobox_start"
    INFOBOX_END = "infobox_end"


@dataclass(frozen=True, slots=True)
class Heading:
    block_type: ClassVar[BlockType] = BlockType.HEADING

    level: int  # 1..6
    text: str  # html fragment
    id: str  # never empty


@dataclass(frozen=True, slots=True)
class Paragraph:
    block_type: ClassVar[BlockType] = BlockType.PARAGRAPH

    text: str
    id: str = ""


@dataclass(frozen=True, slots=True)
class Image:
    block_type: ClassVar[BlockType] = BlockType.IMAGE

    src: str  # absolute URL, unique per run
    alt: str = ""
    id: str = ""


@dataclass(frozen=True, slots=True)
class Quote:
    block_type: ClassVar[BlockType] = BlockType.QUOTE

    text: str
    id: str = ""


@dataclass(frozen=True, slots=True)
class ListItem:
    """One ``<li>`` of a list block. ``html`` is never empty."""

    html: str
    id: str = ""


@dataclass(frozen=True, slots=True)
class ListBlock:
    block_type: ClassVar[BlockType] = BlockType.LIST

    ordered: bool
    items: tuple[ListItem, ...]
    id: str = ""


@dataclass(frozen=True, slots=True)
class Code:
    block_type: ClassVar[BlockType] = BlockType.CODE

    language: str
    text: str  # plain text, whitespace preserved
    id: str = ""


@dataclass(frozen=True, slots=True)
class Table:
    block_type: ClassVar[BlockType] = BlockType.TABLE

    headers: tuple[str, ...]
    rows: tuple[tuple[str, ...], ...]
    id: str = ""


@dataclass(frozen=True, slots=True)
class Separator:
    block_type: ClassVar[BlockType] = BlockType.SEPARATOR

    id: str = ""


@dataclass(frozen=True, slots=True)
class InfoboxStart:
    block_type: ClassVar[BlockType] = BlockType.INFOBOX_START

    title: str = ""
    id: str = ""


@dataclass(frozen=True, slots=True)
class InfoboxEnd:
    block_type: ClassVar[BlockType] = BlockType.INFOBOX_END


ContentBlock = (
    Heading | Paragraph | Image | Quote | ListBlock | Code | Table | Separator | InfoboxStart | InfoboxEnd
)


@dataclass(frozen=True, slots=True)
class SelectorConfig:
    """CSS selectors handed to the engine by the selector-discovery step.

    Immutable for the duration of a run. Every field is optional; a missing
    container selector falls back to ``<body>``.
    """

    content: str | None = None
    article_container: str | None = None
    exclude: tuple[str, ...] = ()
    title: str | None = None
    author: str | None = None  # literal author string, not a selector

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SelectorConfig:
        """Build from the camelCase JSON payload (``articleContainer`` etc.).

        Raises:
            SelectorConfigError: the payload is not an object or a field has the wrong type.
        """
        try:
            payload = SelectorPayload.model_validate(data)
        except ValidationError as e:
            raise SelectorConfigError(f"Invalid selector config: {e}") from e
        return cls(
            content=payload.content,
            article_container=payload.article_container,
            exclude=tuple(payload.exclude),
            title=payload.title,
            author=payload.author,
        )

    @property
    def container_selectors(self) -> list[str]:
        """Container candidates in priority order."""
        return [s for s in (self.content, self.article_container) if s]


@dataclass
class ExtractionDiagnostics:
    """Observability counters for one extraction run."""

    container_found: bool = False
    container_selector: str | None = None
    multiple_containers: bool = False
    container_count: int = 0
    elements_processed: int = 0
    elements_excluded: int = 0
    elements_hidden: int = 0
    heading_count: int = 0


@dataclass
class ExtractionResult:
    """Ordered block sequence plus run diagnostics."""

    blocks: list[ContentBlock] = field(default_factory=list)
    diagnostics: ExtractionDiagnostics = field(default_factory=ExtractionDiagnostics)
    title: str = ""
    author: str = ""
    publish_date: str = ""

    @property
    def block_counts(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for block in self.blocks:
            key = str(block.block_type)
            counts[key] = counts.get(key, 0) + 1
        return counts
