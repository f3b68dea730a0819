# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Cross-reference anchor resolution.

Citation and footnote links usually target an inline anchor one level inside
the semantic block (``<p><sup><a id="ref-3">``), not the block itself. The
resolver looks at the element, then its first child, then the first nested
id-bearing anchor, so those links still resolve after export.
"""

from __future__ import annotations

import re

import lxml.html

from pageblocks.dom import compile_selector, first_element_child, tag_name

_NESTED_ANCHOR_CSS = 'a[id], a[name], span[id], span[name], sup[id], [id^="source"], [id^="ref"], [id^="cite"]'

_FIRST_CHILD_ANCHOR_TAGS = frozenset({"a", "span"})


def _own_anchor(el: lxml.html.HtmlElement) -> str:
    return el.get("id") or el.get("name") or ""


def get_anchor_id(el: lxml.html.HtmlElement) -> str:
    """Stable cross-reference id for ``el``, or ``""`` when it has none.

    Priority: own ``id`` > own ``name`` > first child ``<a>``/``<span>`` id/name
    > first nested id-bearing descendant.
    """
    own = _own_anchor(el)
    if own:
        return own

    first = first_element_child(el)
    if first is not None and tag_name(first) in _FIRST_CHILD_ANCHOR_TAGS:
        child_anchor = _own_anchor(first)
        if child_anchor:
            return child_anchor

    nested_sel = compile_selector(_NESTED_ANCHOR_CSS)
    nested = nested_sel.first(el) if nested_sel is not None else None
    if nested is not None:
        return _own_anchor(nested)
    return ""


def _escape_attr(value: str) -> str:
    # lxml escapes only & and " inside double-quoted attribute values
    return value.replace("&", "&amp;").replace('"', "&quot;")


def _id_attr_re(anchor_id: str) -> re.Pattern[str]:
    quoted = re.escape(_escape_attr(anchor_id))
    return re.compile(rf"""(?<![\w-])id\s*=\s*(["']){quoted}\1""")


def has_anchor_marker(fragment: str, anchor_id: str) -> bool:
    """True if the fragment already carries an element with ``id=anchor_id``."""
    return bool(anchor_id) and _id_attr_re(anchor_id).search(fragment) is not None


def anchor_marker(anchor_id: str) -> str:
    """Invisible, empty anchor that renderers can still link to."""
    escaped = _escape_attr(anchor_id)
    return f'<a id="{escaped}" name="{escaped}"></a>'


def prepend_anchor_marker(fragment: str, anchor_id: str) -> str:
    """Prepend an anchor marker unless the fragment already has one. Idempotent."""
    if not anchor_id or has_anchor_marker(fragment, anchor_id):
        return fragment
    return anchor_marker(anchor_id) + fragment
