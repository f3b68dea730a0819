# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Document metadata: title, author, publish date.

The title and author feed the heading/byline dedup checks in the extractor.
"""

from __future__ import annotations

import re

import lxml.html

from pageblocks import SelectorConfig
from pageblocks.dom import closest_tag, compile_selector, select_all, text_content

_BY_PREFIX_RE = re.compile(r"^by\s+", re.IGNORECASE)

_DATE_SELECTORS = (
    "time[datetime]",
    "time",
    '[itemprop="datePublished"]',
    ".date",
    ".post-date",
)


def _query_first(doc: lxml.html.HtmlElement, css: str | None) -> lxml.html.HtmlElement | None:
    sel = compile_selector(css) if css else None
    if sel is None:
        return None
    found = sel.select(doc, include_self=True)
    return found[0] if found else None


def resolve_title(doc: lxml.html.HtmlElement, selectors: SelectorConfig) -> str:
    """Configured title selector, else the article-list page h1, else the first h1."""
    title_el = _query_first(doc, selectors.title)
    if title_el is not None:
        title = text_content(title_el).strip()
        if title:
            return title

    h1s = list(doc.iter("h1"))
    if len(select_all(doc, "main article")) > 1:
        # Listing-style page: the page title lives outside <main>
        for h1 in h1s:
            if closest_tag(h1, "main") is None:
                title = text_content(h1).strip()
                if title:
                    return title
                break

    if h1s:
        return text_content(h1s[0]).strip()
    return ""


def clean_author(raw: str | None) -> str:
    if not raw:
        return ""
    return _BY_PREFIX_RE.sub("", raw.strip()).strip()


def resolve_publish_date(doc: lxml.html.HtmlElement) -> str:
    for css in _DATE_SELECTORS:
        el = _query_first(doc, css)
        if el is None:
            continue
        if el.get("datetime") is not None:
            value = el.get("datetime") or ""
        else:
            value = text_content(el).strip()
        if value:
            return value
    return ""
