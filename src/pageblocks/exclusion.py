# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Exclusion / visibility gate and infobox detection.

Infobox containers (spoilers, callouts, ``<aside>``, ``<details>``) are never
excluded outright: they are emitted as bracketed regions and their children
are gated one by one.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

import lxml.html

from pageblocks.dom import (
    PageRuntime,
    Selector,
    class_name,
    class_tokens,
    compile_selectors,
    element_children,
    tag_name,
    text_content,
)

logger = logging.getLogger(__name__)

# Substring match against the lower-cased class attribute
INFOBOX_CLASSES = (
    "spoiler",
    "interview",
    "terminology",
    "infobox",
    "note-box",
    "callout",
    "aside-box",
    "expandable",
    "collapsible",
)

INFOBOX_TAGS = frozenset({"aside", "details"})

_TITLE_CLASSES = ("spoiler-title", "interview-title")
_TITLE_TAGS = frozenset({"h3", "h4"})


def is_infobox_div(el: lxml.html.HtmlElement) -> bool:
    if tag_name(el) != "div":
        return False
    cls = class_name(el).lower()
    return any(name in cls for name in INFOBOX_CLASSES)


def is_infobox(el: lxml.html.HtmlElement) -> bool:
    return tag_name(el) in INFOBOX_TAGS or is_infobox_div(el)


def infobox_title_source(el: lxml.html.HtmlElement) -> lxml.html.HtmlElement | None:
    """Direct ``<summary>`` child, else the first direct title-class/h3/h4 child."""
    children = element_children(el)
    for child in children:
        if tag_name(child) == "summary":
            return child
    for child in children:
        if tag_name(child) in _TITLE_TAGS or class_tokens(child).intersection(_TITLE_CLASSES):
            return child
    return None


def infobox_title(el: lxml.html.HtmlElement) -> str:
    source = infobox_title_source(el)
    return text_content(source).strip() if source is not None else ""


def is_infobox_title_child(child: lxml.html.HtmlElement, title: str) -> bool:
    """True for children already represented by the infobox title."""
    if tag_name(child) == "summary" or "spoiler-title" in class_tokens(child):
        return True
    return bool(title) and text_content(child).strip() == title


class ExclusionFilter:
    """Decides whether an element (or one of its ancestors) is configured noise.

    Match sets are computed lazily, once per selector per document, since
    the DOM is never modified during a run.
    """

    def __init__(self, exclude: Iterable[str] = ()) -> None:
        self.selectors: tuple[Selector, ...] = compile_selectors(exclude)
        self._match_sets: dict[lxml.html.HtmlElement, list[set[lxml.html.HtmlElement]]] = {}

    def _sets_for(self, el: lxml.html.HtmlElement) -> list[set[lxml.html.HtmlElement]]:
        root = el.getroottree().getroot()
        sets = self._match_sets.get(root)
        if sets is None:
            sets = [sel.match_set(el) for sel in self.selectors]
            self._match_sets[root] = sets
        return sets

    def should_exclude(self, el: lxml.html.HtmlElement) -> bool:
        if is_infobox(el):
            return False
        if not self.selectors:
            return False
        sets = self._sets_for(el)
        node = el
        while node is not None:
            if any(node in matched for matched in sets):
                return True
            node = node.getparent()
        return False


def is_visible(el: lxml.html.HtmlElement, runtime: PageRuntime) -> bool:
    """Computed-style gate. A failing style query counts as visible."""
    try:
        return not runtime.is_hidden(el)
    except Exception as e:
        logger.debug("Style query failed for <%s>, treating as visible: %s", tag_name(el), e)
        return True
