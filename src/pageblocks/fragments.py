# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""HTML fragment building for block text.

A fragment is the inner HTML of a cloned element with excluded sub-trees
removed and link targets resolved against the page URL. The live DOM is
never modified.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Iterable
from urllib.parse import urljoin, urlsplit

import lxml.html

from pageblocks.dom import Selector, inner_html

logger = logging.getLogger(__name__)

_ABSOLUTE_PREFIXES = ("http://", "https://", "data:")


def to_absolute_url(url: str | None, base_url: str = "") -> str:
    """Resolve ``url`` against ``base_url``; in-page fragments stay relative.

    Returns the input unchanged when it is already absolute or cannot be
    resolved.
    """
    if not url:
        return ""
    url = url.strip()
    if url.startswith(_ABSOLUTE_PREFIXES) or url.startswith("#"):
        return url
    if not base_url:
        return url
    try:
        return urljoin(base_url, url)
    except ValueError:
        return url


def is_absolute_url(url: str) -> bool:
    """True when ``url`` carries its own scheme (``https:``, ``data:`` ...)."""
    if not url:
        return False
    try:
        return bool(urlsplit(url).scheme)
    except ValueError:
        return False


def document_base_url(doc: lxml.html.HtmlElement, base_url: str = "") -> str:
    """The URL relative links in ``doc`` resolve against.

    The first ``<base href>`` wins, itself resolved against ``base_url`` or,
    when that is empty, the URL the document was parsed with.
    """
    page_url = base_url or doc.getroottree().docinfo.URL or ""
    for base in doc.iter("base"):
        href = (base.get("href") or "").strip()
        if href:
            return urljoin(page_url, href) if page_url else href
    return page_url


def _absolutize_links(root: lxml.html.HtmlElement, base_url: str) -> None:
    for a in root.iter("a"):
        href = a.get("href")
        if href is not None:
            a.set("href", to_absolute_url(href, base_url))


def _strip_excluded(root: lxml.html.HtmlElement, excludes: Iterable[Selector]) -> None:
    # The clone root takes part in matching ("p .share" on a cloned <p>) but is never removed
    for sel in excludes:
        for el in sel.select(root, include_self=True):
            if el is not root and el.getparent() is not None:
                # drop_tree() keeps the tail text
                el.drop_tree()


def build_fragment(
    el: lxml.html.HtmlElement,
    *,
    base_url: str = "",
    excludes: Iterable[Selector] = (),
) -> str:
    """Inner HTML of ``el`` with absolute links and excluded descendants removed."""
    clone = copy.deepcopy(el)
    clone.tail = None
    _absolutize_links(clone, base_url)
    _strip_excluded(clone, excludes)
    return inner_html(clone)
