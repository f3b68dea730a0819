# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Extraction result serialization.

Two output formats:
- JSON: the block sequence in the wire shape exporters consume
- Text: one line per block, for eyeballing a run in a terminal
"""

from __future__ import annotations

import dataclasses
import json
import re
from typing import Any

from . import ContentBlock, ExtractionResult, Heading, Image, InfoboxEnd, InfoboxStart, ListBlock, Table

_TAG_RE = re.compile(r"<[^>]*>")
_WS_RE = re.compile(r"\s+")
_PREVIEW_LEN = 80
_INDENT = "  "


def to_dict(block: ContentBlock) -> dict[str, Any]:
    """Wire shape of one block: ``{"type": ..., **fields}``."""
    return {"type": str(block.block_type), **dataclasses.asdict(block)}


def result_to_dict(result: ExtractionResult) -> dict[str, Any]:
    return {
        "title": result.title,
        "author": result.author,
        "publish_date": result.publish_date,
        "content": [to_dict(b) for b in result.blocks],
        "debug": dataclasses.asdict(result.diagnostics),
    }


def to_json(result: ExtractionResult, indent: int | None = 2) -> str:
    """Serialize an ExtractionResult to a JSON string.

    Args:
        result: ExtractionResult to serialize
        indent: JSON indentation level (None for a single line)

    Returns:
        JSON string
    """
    return json.dumps(result_to_dict(result), ensure_ascii=False, indent=indent)


def _preview(fragment: str) -> str:
    text = _WS_RE.sub(" ", _TAG_RE.sub("", fragment)).strip()
    if len(text) > _PREVIEW_LEN:
        text = text[: _PREVIEW_LEN - 3] + "..."
    return text


def _render_block_line(block: ContentBlock) -> str:
    if isinstance(block, Heading):
        return f"{'#' * block.level} {_preview(block.text)} {{#{block.id}}}"
    if isinstance(block, Image):
        alt = _preview(block.alt)
        return f"[image] {block.src}" + (f' "{alt}"' if alt else "")
    if isinstance(block, ListBlock):
        kind = "ol" if block.ordered else "ul"
        return f"[{kind}] {len(block.items)} items"
    if isinstance(block, Table):
        return f"[table] {len(block.headers)} cols x {len(block.rows)} rows"
    if isinstance(block, InfoboxStart):
        return f"[infobox] {block.title}".rstrip()
    if isinstance(block, InfoboxEnd):
        return "[/infobox]"
    text = getattr(block, "text", "")
    label = f"[{block.block_type}]"
    return f"{label} {_preview(text)}" if text else label


def to_text(result: ExtractionResult) -> str:
    """One line per block, indented inside infoboxes."""
    lines = []
    if result.title:
        lines.append(f"Title: {result.title}")
    if result.author:
        lines.append(f"Author: {result.author}")
    if result.publish_date:
        lines.append(f"Published: {result.publish_date}")
    if lines:
        lines.append("")

    depth = 0
    for block in result.blocks:
        if isinstance(block, InfoboxEnd):
            depth = max(depth - 1, 0)
        lines.append(_INDENT * depth + _render_block_line(block))
        if isinstance(block, InfoboxStart):
            depth += 1

    diag = result.diagnostics
    lines.append("")
    lines.append(
        f"Blocks: {len(result.blocks)} | processed: {diag.elements_processed}"
        f" | excluded: {diag.elements_excluded} | hidden: {diag.elements_hidden}"
        f" | container: {diag.container_selector} x{diag.container_count}"
    )
    return "\n".join(lines)
