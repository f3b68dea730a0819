# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Pydantic schema for the selector payload produced by selector discovery.

The payload is LLM output: camelCase keys, optional fields, and the odd
blank selector or bare string where a list was expected. ``SelectorPayload``
validates and normalizes it; ``SelectorConfig.from_dict`` turns the result
into the engine-facing frozen dataclass.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SelectorPayload(BaseModel):
    """CSS selectors for one page (all optional)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    content: str | None = Field(None, description="Main content container selector")
    article_container: str | None = Field(
        None, alias="articleContainer", description="Fallback article container selector"
    )
    exclude: list[str] = Field(default_factory=list, description="Sub-trees to drop (ads, share bars, comments)")
    title: str | None = Field(None, description="Page title selector")
    author: str | None = Field(None, description="Literal author name, not a selector")

    @field_validator("exclude", mode="before")
    @classmethod
    def _wrap_single_exclude(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return value

    @field_validator("exclude")
    @classmethod
    def _drop_blank_excludes(cls, value: list[str]) -> list[str]:
        return [sel.strip() for sel in value if sel.strip()]

    @field_validator("content", "article_container", "title", "author")
    @classmethod
    def _blank_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None
