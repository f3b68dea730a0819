# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""DOM primitives over lxml: soft-fail CSS selectors, element helpers, page runtime.

Selectors arrive from an external discovery step and may be malformed or use
syntax cssselect does not support. Every selector operation here degrades to
"no match" instead of raising, so a bad selector never aborts a run.

Browser-only facts (computed style, ``currentSrc``, natural image size) are
read through the ``PageRuntime`` protocol. ``StaticRuntime`` answers them from
the serialized markup alone.
"""

from __future__ import annotations

import functools
import html
import logging
import re
from collections.abc import Iterable
from typing import Protocol

import lxml.html
from cssselect import HTMLTranslator, SelectorError
from lxml import etree

logger = logging.getLogger(__name__)

_TRANSLATOR = HTMLTranslator()

_SELECTOR_CACHE_SIZE = 512

# Inline style checks (no CSS cascade without a browser)
_DISPLAY_NONE_RE = re.compile(r"display\s*:\s*none", re.IGNORECASE)
_VISIBILITY_HIDDEN_RE = re.compile(r"visibility\s*:\s*hidden", re.IGNORECASE)


class Selector:
    """A compiled CSS selector.

    cssselect anchors combinators at the context node, so "does this element
    match" is answered against ``match_set``, the set of all matches in the
    element's document, rather than by a ``self::`` query. Obtain instances
    through ``compile_selector``.
    """

    __slots__ = ("css", "_descendant", "_descendant_or_self")

    def __init__(self, css: str, descendant: etree.XPath, descendant_or_self: etree.XPath) -> None:
        self.css = css
        self._descendant = descendant
        self._descendant_or_self = descendant_or_self

    def __repr__(self) -> str:
        return f"Selector({self.css!r})"

    def select(self, el: lxml.html.HtmlElement, *, include_self: bool = False) -> list[lxml.html.HtmlElement]:
        """All matches below ``el`` in document order (``querySelectorAll``)."""
        xpath = self._descendant_or_self if include_self else self._descendant
        return _evaluate(xpath, el, self.css)

    def first(self, el: lxml.html.HtmlElement) -> lxml.html.HtmlElement | None:
        """First descendant match (``querySelector``)."""
        found = self.select(el)
        return found[0] if found else None

    def match_set(self, el: lxml.html.HtmlElement) -> set[lxml.html.HtmlElement]:
        """Every element in ``el``'s document that this selector matches."""
        return set(self.select(_document_root(el), include_self=True))


def _document_root(el: lxml.html.HtmlElement) -> lxml.html.HtmlElement:
    root = el
    parent = root.getparent()
    while parent is not None:
        root = parent
        parent = root.getparent()
    return root


def _evaluate(xpath: etree.XPath, el: lxml.html.HtmlElement, css: str) -> list[lxml.html.HtmlElement]:
    try:
        result = xpath(el)
    except etree.XPathError as e:
        logger.debug("Selector %r failed to evaluate: %s", css, e)
        return []
    if not isinstance(result, list):
        return []
    return [node for node in result if isinstance(node, etree._Element) and isinstance(node.tag, str)]


@functools.lru_cache(maxsize=_SELECTOR_CACHE_SIZE)
def compile_selector(css: str) -> Selector | None:
    """Compile a CSS selector, or return None if it is malformed or unsupported.

    Cached, so a rejected selector is logged once per process.
    """
    if not css or not css.strip():
        return None
    css = css.strip()
    try:
        return Selector(
            css,
            etree.XPath(_TRANSLATOR.css_to_xpath(css, prefix="descendant::")),
            etree.XPath(_TRANSLATOR.css_to_xpath(css, prefix="descendant-or-self::")),
        )
    except (SelectorError, etree.XPathError) as e:
        logger.warning("Ignoring unusable selector %r: %s", css, e)
        return None


def compile_selectors(selectors: Iterable[str]) -> tuple[Selector, ...]:
    """Compile a selector list, silently dropping the unusable ones."""
    compiled = []
    for css in selectors:
        sel = compile_selector(css)
        if sel is not None:
            compiled.append(sel)
    return tuple(compiled)


def select_all(el: lxml.html.HtmlElement, css: str) -> list[lxml.html.HtmlElement]:
    """Soft ``querySelectorAll``: an unusable selector yields no elements."""
    sel = compile_selector(css)
    return sel.select(el) if sel is not None else []


# ---------------------------------------------------------------------------
# Element helpers
# ---------------------------------------------------------------------------


def tag_name(el: etree._Element) -> str:
    """Lower-cased tag name; empty for comments and processing instructions."""
    return el.tag.lower() if isinstance(el.tag, str) else ""


def element_children(el: lxml.html.HtmlElement) -> list[lxml.html.HtmlElement]:
    return [child for child in el if isinstance(child.tag, str)]


def first_element_child(el: lxml.html.HtmlElement) -> lxml.html.HtmlElement | None:
    for child in el:
        if isinstance(child.tag, str):
            return child
    return None


def text_content(el: lxml.html.HtmlElement) -> str:
    """Raw ``textContent`` (not stripped)."""
    return el.text_content() or ""


def class_name(el: lxml.html.HtmlElement) -> str:
    return el.get("class") or ""


def class_tokens(el: lxml.html.HtmlElement) -> set[str]:
    return set(class_name(el).split())


def closest_tag(el: lxml.html.HtmlElement, tag: str) -> lxml.html.HtmlElement | None:
    """Nearest proper ancestor with the given tag name."""
    parent = el.getparent()
    while parent is not None:
        if tag_name(parent) == tag:
            return parent
        parent = parent.getparent()
    return None


def first_descendant(el: lxml.html.HtmlElement, tag: str) -> lxml.html.HtmlElement | None:
    for desc in el.iterdescendants(tag):
        return desc
    return None


def inner_html(el: lxml.html.HtmlElement) -> str:
    """Serialize the element's children the way ``innerHTML`` does."""
    parts = [html.escape(el.text, quote=False)] if el.text else []
    for child in el:
        # tostring() of a child includes its tail text
        parts.append(etree.tostring(child, encoding="unicode", method="html"))
    return "".join(parts)


def parse_int_attr(el: lxml.html.HtmlElement, name: str) -> int | None:
    """Leading integer of an attribute value (``parseInt`` semantics), or None."""
    raw = (el.get(name) or "").strip()
    m = re.match(r"[+-]?\d+", raw)
    return int(m.group(0)) if m else None


# ---------------------------------------------------------------------------
# Page runtime
# ---------------------------------------------------------------------------


class PageRuntime(Protocol):
    """Browser-side facts the engine consumes but cannot compute from markup."""

    def is_hidden(self, el: lxml.html.HtmlElement) -> bool:
        """True when computed style is ``display: none`` or ``visibility: hidden``."""
        ...

    def current_src(self, img: lxml.html.HtmlElement) -> str | None:
        """The URL the browser actually selected for this image, if known."""
        ...

    def natural_size(self, img: lxml.html.HtmlElement) -> tuple[int, int] | None:
        """Intrinsic (width, height) of a loaded image, if known."""
        ...


class StaticRuntime:
    """PageRuntime for a serialized DOM: inline styles only, no loaded images."""

    def is_hidden(self, el: lxml.html.HtmlElement) -> bool:
        if "hidden" in el.attrib:
            return True
        style = el.get("style") or ""
        if not style:
            return False
        return bool(_DISPLAY_NONE_RE.search(style) or _VISIBILITY_HIDDEN_RE.search(style))

    def current_src(self, img: lxml.html.HtmlElement) -> str | None:
        return None

    def natural_size(self, img: lxml.html.HtmlElement) -> tuple[int, int] | None:
        return None
