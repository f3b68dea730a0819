# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Container resolution: which element(s) the traversal starts from.

Strategies, first hit wins:
  1. ``content`` / ``articleContainer`` selector. Several matches are
     parallel containers (multi-chapter pages).
  2. A single container holding more than one ``<article>`` is split into
     those articles.
  3. ``<body>``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import lxml.html

from pageblocks import SelectorConfig
from pageblocks.dom import compile_selector

logger = logging.getLogger(__name__)

BODY_SELECTOR = "body"


@dataclass
class ContainerResolution:
    containers: list[lxml.html.HtmlElement] = field(default_factory=list)
    selector: str | None = None
    found: bool = False
    multiple: bool = False

    @property
    def count(self) -> int:
        return len(self.containers)


def _body(doc: lxml.html.HtmlElement) -> lxml.html.HtmlElement:
    body = doc.find(".//body")
    return body if body is not None else doc


def resolve_containers(doc: lxml.html.HtmlElement, selectors: SelectorConfig) -> ContainerResolution:
    """Pick root container(s). Never raises; unusable selectors are skipped."""
    resolution = ContainerResolution()
    single: lxml.html.HtmlElement | None = None

    for css in selectors.container_selectors:
        sel = compile_selector(css)
        if sel is None:
            continue
        matches = sel.select(doc, include_self=True)
        if len(matches) > 1:
            resolution.containers = matches
            resolution.selector = css
            resolution.found = True
            resolution.multiple = True
            break
        if len(matches) == 1:
            single = matches[0]
            resolution.selector = css
            resolution.found = True
            break
        logger.debug("Container selector %r matched nothing", css)

    if single is not None:
        articles = list(single.iterdescendants("article"))
        if len(articles) > 1:
            resolution.containers = articles
            resolution.multiple = True
        else:
            resolution.containers = [single]

    if not resolution.containers:
        resolution.containers = [_body(doc)]
        resolution.selector = BODY_SELECTOR

    logger.debug(
        "Resolved %d container(s) via %s (multiple=%s)",
        resolution.count,
        resolution.selector,
        resolution.multiple,
    )
    return resolution
