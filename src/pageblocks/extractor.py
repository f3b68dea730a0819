# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Structured document extraction: DOM -> ordered content blocks.

Walks the children of each resolved container, gates every element through
the exclusion/visibility filter, classifies it by tag and hands it to one
block handler. Generic containers and infoboxes recurse; any other unhandled
tag is dropped without descending, so nested block content is never emitted
twice.

All run state (counters, image dedup set, TOC mapping, footnotes latch)
lives in one ``ExtractionContext`` per call. Concurrent runs share nothing.
"""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum

import lxml.html

from pageblocks import (
    Code,
    ContentBlock,
    ExtractionDiagnostics,
    ExtractionResult,
    Heading,
    Image,
    InfoboxEnd,
    InfoboxStart,
    ListBlock,
    ListItem,
    Paragraph,
    Quote,
    SelectorConfig,
    Separator,
    Table,
)
from pageblocks.anchors import get_anchor_id, prepend_anchor_marker
from pageblocks.containers import resolve_containers
from pageblocks.dom import (
    PageRuntime,
    StaticRuntime,
    class_name,
    closest_tag,
    element_children,
    first_descendant,
    tag_name,
    text_content,
)
from pageblocks.errors import DocumentParseError
from pageblocks.exclusion import ExclusionFilter, infobox_title, is_infobox, is_infobox_title_child, is_visible
from pageblocks.fragments import build_fragment, document_base_url
from pageblocks.images import resolve_image
from pageblocks.metadata import clean_author, resolve_publish_date, resolve_title
from pageblocks.toc import extract_toc_mapping, normalize_text

logger = logging.getLogger(__name__)

# Deeper sub-trees are skipped (pathological or hostile markup)
MAX_TRAVERSAL_DEPTH = 200

FOOTNOTES_SECTION_ID = "footnotes-section"

# Bylines misclassified as headings are shorter than this
_AUTHOR_BYLINE_MAX_LEN = 50
# Decorative dividers: "***", "---", "• • •"
_SEPARATOR_ONLY_RE = re.compile(r"^[—–\-._·•*]+$")
_SEPARATOR_MAX_LEN = 3
_WHITESPACE_RE = re.compile(r"\s")
_LANGUAGE_CLASS_RE = re.compile(r"language-(\w+)")

_HEADING_TAGS = frozenset({"h1", "h2", "h3", "h4", "h5", "h6"})
_GENERIC_CONTAINER_TAGS = frozenset({"div", "section", "article"})
_TABLE_SECTION_TAGS = frozenset({"thead", "tfoot"})


class ElementKind(StrEnum):
    """What an element becomes. OTHER emits nothing and is not descended into."""

    HEADING = "heading"
    PARAGRAPH = "paragraph"
    IMAGE = "image"
    FIGURE = "figure"
    QUOTE = "quote"
    LIST = "list"
    CODE = "code"
    TABLE = "table"
    SEPARATOR = "separator"
    INFOBOX = "infobox"
    CONTAINER = "container"
    OTHER = "other"


_SIMPLE_KINDS: dict[str, ElementKind] = {
    "p": ElementKind.PARAGRAPH,
    "img": ElementKind.IMAGE,
    "figure": ElementKind.FIGURE,
    "blockquote": ElementKind.QUOTE,
    "ul": ElementKind.LIST,
    "ol": ElementKind.LIST,
    "pre": ElementKind.CODE,
    "table": ElementKind.TABLE,
    "hr": ElementKind.SEPARATOR,
}


def classify_element(el: lxml.html.HtmlElement) -> ElementKind:
    tag = tag_name(el)
    if tag in _HEADING_TAGS:
        return ElementKind.HEADING
    kind = _SIMPLE_KINDS.get(tag)
    if kind is not None:
        return kind
    # Infobox divs take precedence over the generic container rule
    if is_infobox(el):
        return ElementKind.INFOBOX
    if tag in _GENERIC_CONTAINER_TAGS:
        return ElementKind.CONTAINER
    return ElementKind.OTHER


# ---------------------------------------------------------------------------
# Run configuration and state
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ExtractionOptions:
    """Per-run inputs that are not selectors.

    ``title`` and ``author`` are resolved by the caller and only used to drop
    duplicate title headings and byline paragraphs.
    """

    base_url: str = ""
    title: str = ""
    author: str = ""
    runtime: PageRuntime = field(default_factory=StaticRuntime)
    footnotes_title: str = "Footnotes"


@dataclass
class ExtractionContext:
    """Mutable state for exactly one extraction run."""

    options: ExtractionOptions
    exclusion: ExclusionFilter
    blocks: list[ContentBlock] = field(default_factory=list)
    diagnostics: ExtractionDiagnostics = field(default_factory=ExtractionDiagnostics)
    added_image_urls: set[str] = field(default_factory=set)
    toc_mapping: dict[str, str] = field(default_factory=dict)
    footnotes_header_added: bool = False
    depth_limit_hit: bool = False
    # options.base_url, or the document's own <base href> / parse URL
    base_url: str = ""

    def fragment(self, el: lxml.html.HtmlElement) -> str:
        return build_fragment(el, base_url=self.base_url, excludes=self.exclusion.selectors)

    def emit(self, block: ContentBlock) -> None:
        self.blocks.append(block)


# ---------------------------------------------------------------------------
# Block handlers
# ---------------------------------------------------------------------------

Handler = Callable[[lxml.html.HtmlElement, str, ExtractionContext, int], None]


def _is_byline(text: str, author: str) -> bool:
    if not author:
        return False
    text_lower = text.lower()
    author_lower = author.lower()
    return text_lower == author_lower or (len(text) < _AUTHOR_BYLINE_MAX_LEN and author_lower in text_lower)


def _handle_heading(el: lxml.html.HtmlElement, element_id: str, ctx: ExtractionContext, depth: int) -> None:
    text = text_content(el).strip()
    if not text or text == ctx.options.title:
        return
    if _is_byline(text, ctx.options.author):
        return

    heading_id = element_id
    if not heading_id:
        heading_id = ctx.toc_mapping.get(normalize_text(text)) or str(ctx.diagnostics.heading_count + 1)
    ctx.diagnostics.heading_count += 1
    ctx.emit(Heading(level=int(tag_name(el)[1]), text=ctx.fragment(el), id=heading_id))


def _is_decorative_divider(plain_text: str) -> bool:
    compact = _WHITESPACE_RE.sub("", plain_text)
    return len(compact) <= _SEPARATOR_MAX_LEN and _SEPARATOR_ONLY_RE.match(compact) is not None


def _handle_paragraph(el: lxml.html.HtmlElement, element_id: str, ctx: ExtractionContext, depth: int) -> None:
    fragment = ctx.fragment(el)
    if not fragment.strip():
        return
    plain_text = text_content(el).strip()
    if ctx.options.author and plain_text == ctx.options.author:
        return
    if _is_decorative_divider(plain_text):
        return
    # An own id is kept by the exporter on the block; nested anchors need a marker
    if element_id and not el.get("id"):
        fragment = prepend_anchor_marker(fragment, element_id)
    ctx.emit(Paragraph(text=fragment, id=element_id))


def _emit_image(
    img: lxml.html.HtmlElement,
    ctx: ExtractionContext,
    *,
    alt: str,
    block_id: str,
    container: lxml.html.HtmlElement | None = None,
) -> None:
    decision = resolve_image(
        img,
        container=container,
        base_url=ctx.base_url,
        runtime=ctx.options.runtime,
        seen=ctx.added_image_urls,
    )
    if not decision.accepted:
        logger.debug("Image skipped (%s): %s", decision.reason, decision.src)
        return
    ctx.emit(Image(src=decision.src, alt=alt, id=block_id))


def _handle_image(el: lxml.html.HtmlElement, element_id: str, ctx: ExtractionContext, depth: int) -> None:
    if closest_tag(el, "figure") is not None:
        return  # handled at the <figure> level
    _emit_image(el, ctx, alt=el.get("alt") or "", block_id=element_id)


def _handle_figure(el: lxml.html.HtmlElement, element_id: str, ctx: ExtractionContext, depth: int) -> None:
    img = first_descendant(el, "img")
    if img is None:
        return
    caption = first_descendant(el, "figcaption")
    alt = ctx.fragment(caption) if caption is not None else img.get("alt") or ""
    _emit_image(img, ctx, alt=alt, block_id=element_id or img.get("id") or "", container=el)


def _handle_quote(el: lxml.html.HtmlElement, element_id: str, ctx: ExtractionContext, depth: int) -> None:
    ctx.emit(Quote(text=ctx.fragment(el), id=element_id))


def _handle_list(el: lxml.html.HtmlElement, element_id: str, ctx: ExtractionContext, depth: int) -> None:
    if not ctx.toc_mapping:
        extract_toc_mapping(el, ctx.toc_mapping)

    items = []
    for li in element_children(el):
        if tag_name(li) != "li":
            continue
        fragment = ctx.fragment(li)
        if not fragment.strip():
            continue
        li_id = get_anchor_id(li)
        items.append(ListItem(html=prepend_anchor_marker(fragment, li_id), id=li_id))

    if items:
        ctx.emit(ListBlock(ordered=tag_name(el) == "ol", items=tuple(items), id=element_id))


def _handle_code(el: lxml.html.HtmlElement, element_id: str, ctx: ExtractionContext, depth: int) -> None:
    code = first_descendant(el, "code")
    text = text_content(code if code is not None else el)
    language = "text"
    if code is not None:
        m = _LANGUAGE_CLASS_RE.search(class_name(code))
        if m:
            language = m.group(1)
    ctx.emit(Code(language=language, text=text, id=element_id))


def _body_rows(table: lxml.html.HtmlElement) -> list[lxml.html.HtmlElement]:
    """``tbody tr`` as a browser sees it: the table's own rows outside thead/tfoot."""
    rows = []
    for tr in table.iterdescendants("tr"):
        if closest_tag(tr, "table") is not table:
            continue
        if tag_name(tr.getparent()) in _TABLE_SECTION_TAGS:
            continue
        rows.append(tr)
    return rows


def _handle_table(el: lxml.html.HtmlElement, element_id: str, ctx: ExtractionContext, depth: int) -> None:
    headers = tuple(text_content(th).strip() for th in el.iterdescendants("th"))
    # One row per body <tr>, even a th-only row; cells of nested tables belong to those tables
    rows = [
        tuple(ctx.fragment(td) for td in tr.iterdescendants("td") if closest_tag(td, "tr") is tr)
        for tr in _body_rows(el)
    ]
    if headers or rows:
        ctx.emit(Table(headers=headers, rows=tuple(rows), id=element_id))


def _handle_separator(el: lxml.html.HtmlElement, element_id: str, ctx: ExtractionContext, depth: int) -> None:
    ctx.emit(Separator(id=element_id))


def _handle_infobox(el: lxml.html.HtmlElement, element_id: str, ctx: ExtractionContext, depth: int) -> None:
    title = infobox_title(el)
    ctx.emit(InfoboxStart(title=title, id=element_id))
    for child in element_children(el):
        if is_infobox_title_child(child, title):
            continue
        process_element(child, ctx, depth + 1)
    ctx.emit(InfoboxEnd())


def _is_footnotes_section(el: lxml.html.HtmlElement) -> bool:
    return "footnotes" in class_name(el).lower() or "footnotes" in (el.get("id") or "").lower()


def _handle_container(el: lxml.html.HtmlElement, element_id: str, ctx: ExtractionContext, depth: int) -> None:
    if not ctx.footnotes_header_added and _is_footnotes_section(el):
        ctx.emit(Separator(id=""))
        ctx.emit(Heading(level=2, text=ctx.options.footnotes_title, id=FOOTNOTES_SECTION_ID))
        ctx.footnotes_header_added = True
    for child in element_children(el):
        process_element(child, ctx, depth + 1)


_HANDLERS: dict[ElementKind, Handler] = {
    ElementKind.HEADING: _handle_heading,
    ElementKind.PARAGRAPH: _handle_paragraph,
    ElementKind.IMAGE: _handle_image,
    ElementKind.FIGURE: _handle_figure,
    ElementKind.QUOTE: _handle_quote,
    ElementKind.LIST: _handle_list,
    ElementKind.CODE: _handle_code,
    ElementKind.TABLE: _handle_table,
    ElementKind.SEPARATOR: _handle_separator,
    ElementKind.INFOBOX: _handle_infobox,
    ElementKind.CONTAINER: _handle_container,
}


# ---------------------------------------------------------------------------
# Traversal
# ---------------------------------------------------------------------------


def process_element(el: lxml.html.HtmlElement, ctx: ExtractionContext, depth: int = 0) -> None:
    """Gate, classify and emit one element (recursing for containers)."""
    if depth > MAX_TRAVERSAL_DEPTH:
        if not ctx.depth_limit_hit:
            logger.warning("Traversal depth limit (%d) reached, skipping deeper content", MAX_TRAVERSAL_DEPTH)
            ctx.depth_limit_hit = True
        return

    diagnostics = ctx.diagnostics
    if ctx.exclusion.should_exclude(el):
        diagnostics.elements_excluded += 1
        return
    if not is_visible(el, ctx.options.runtime):
        diagnostics.elements_hidden += 1
        return

    diagnostics.elements_processed += 1
    element_id = get_anchor_id(el)
    handler = _HANDLERS.get(classify_element(el))
    if handler is not None:
        handler(el, element_id, ctx, depth)


def extract_blocks(
    doc: lxml.html.HtmlElement,
    selectors: SelectorConfig | None = None,
    options: ExtractionOptions | None = None,
) -> ExtractionResult:
    """Run the engine over an already-parsed document. Never raises for content."""
    selectors = selectors or SelectorConfig()
    options = options or ExtractionOptions()
    t0 = time.perf_counter()

    logger.debug(
        "Extraction start: content=%r article_container=%r exclude=%d base_url=%r",
        selectors.content,
        selectors.article_container,
        len(selectors.exclude),
        options.base_url,
    )

    resolution = resolve_containers(doc, selectors)
    ctx = ExtractionContext(
        options=options,
        exclusion=ExclusionFilter(selectors.exclude),
        base_url=document_base_url(doc, options.base_url),
    )
    diagnostics = ctx.diagnostics
    diagnostics.container_found = resolution.found
    diagnostics.container_selector = resolution.selector
    diagnostics.multiple_containers = resolution.multiple
    diagnostics.container_count = resolution.count

    for container in resolution.containers:
        for child in element_children(container):
            process_element(child, ctx)

    logger.info(
        "Extracted %d blocks in %.1fms (container=%s x%d, processed=%d, excluded=%d, hidden=%d)",
        len(ctx.blocks),
        (time.perf_counter() - t0) * 1000,
        resolution.selector,
        resolution.count,
        diagnostics.elements_processed,
        diagnostics.elements_excluded,
        diagnostics.elements_hidden,
    )
    return ExtractionResult(
        blocks=ctx.blocks,
        diagnostics=diagnostics,
        title=options.title,
        author=options.author,
    )


def load_document(html: str | bytes, base_url: str | None = None) -> lxml.html.HtmlElement:
    """Parse page HTML into a document tree.

    ``base_url`` is recorded as the document URL for link resolution.

    Raises:
        DocumentParseError: empty input or markup lxml cannot recover.
    """
    if isinstance(html, str):
        html = html.encode("utf-8")
    if not html or not html.strip():
        raise DocumentParseError("Empty HTML input")
    try:
        parser = lxml.html.HTMLParser(recover=True, encoding="utf-8")
        return lxml.html.document_fromstring(html, parser=parser, base_url=base_url or None)
    except Exception as e:
        raise DocumentParseError(f"lxml parsing failed: {e}") from e


def extract_document(
    html: str | bytes,
    base_url: str = "",
    selectors: SelectorConfig | None = None,
    runtime: PageRuntime | None = None,
    *,
    title: str | None = None,
    footnotes_title: str = "Footnotes",
) -> ExtractionResult:
    """Parse, resolve title/author/date, and extract blocks from one page.

    An explicit ``title`` skips title resolution.
    """
    selectors = selectors or SelectorConfig()
    doc = load_document(html, base_url)
    if title is None:
        title = resolve_title(doc, selectors)
    author = clean_author(selectors.author)
    options = ExtractionOptions(
        base_url=base_url,
        title=title,
        author=author,
        runtime=runtime if runtime is not None else StaticRuntime(),
        footnotes_title=footnotes_title,
    )
    result = extract_blocks(doc, selectors, options)
    result.publish_date = resolve_publish_date(doc)
    return result
