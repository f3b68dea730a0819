# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Table-of-contents mapping: normalized heading text -> anchor id.

Built from the first in-article list whose in-page links look like a TOC.
Headings without an explicit id later borrow the anchor their TOC entry
points at, so TOC links keep working after export.
"""

from __future__ import annotations

import logging
import re

import lxml.html

from pageblocks.dom import select_all, text_content

logger = logging.getLogger(__name__)

_TAG_RE = re.compile(r"<[^>]*>")
_WHITESPACE_RE = re.compile(r"\s+")

# Fewer in-page links than this is an incidental link list, not a TOC
MIN_TOC_LINKS = 2


def normalize_text(text: str | None) -> str:
    """Strip tags, collapse whitespace, trim, lower-case."""
    text = _TAG_RE.sub("", text or "")
    return _WHITESPACE_RE.sub(" ", text).strip().lower()


def extract_toc_mapping(list_el: lxml.html.HtmlElement, mapping: dict[str, str]) -> bool:
    """Populate ``mapping`` from the in-page links under ``list_el``.

    Returns True if at least one entry was added. The caller's list element is
    only read; a list that is not a TOC leaves ``mapping`` untouched.
    """
    links = select_all(list_el, 'a[href^="#"]')
    if len(links) < MIN_TOC_LINKS:
        return False

    added = 0
    for link in links:
        href = link.get("href") or ""
        if not href.startswith("#"):
            continue
        anchor = href[1:]
        text = normalize_text(text_content(link))
        if text and anchor:
            mapping[text] = anchor
            added += 1

    if added:
        logger.debug("TOC mapping built: %d entries from %d links", added, len(links))
    return added > 0
