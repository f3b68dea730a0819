# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for anchor id resolution and anchor-marker insertion."""

from __future__ import annotations

import pytest

pytest.importorskip("hypothesis")

from hypothesis import given, settings  # noqa: E402
from hypothesis import strategies as st  # noqa: E402

from pageblocks.anchors import anchor_marker, get_anchor_id, has_anchor_marker, prepend_anchor_marker
from tests._dom_helpers import parse_el


class TestGetAnchorId:
    def test_own_id(self):
        assert get_anchor_id(parse_el('<p id="intro" name="other">x</p>')) == "intro"

    def test_own_name(self):
        assert get_anchor_id(parse_el('<a name="top">x</a>')) == "top"

    def test_first_child_anchor(self):
        assert get_anchor_id(parse_el('<p><a name="p5"></a>Body</p>')) == "p5"

    def test_first_child_span_id(self):
        assert get_anchor_id(parse_el('<li><span id="note-1">1</span> text</li>')) == "note-1"

    def test_first_child_other_tag_falls_through_to_nested(self):
        assert get_anchor_id(parse_el('<p>Text<sup id="fn1">1</sup></p>')) == "fn1"

    def test_nested_prefixed_id(self):
        assert get_anchor_id(parse_el('<p><em>x <b id="ref-2">y</b></em></p>')) == "ref-2"

    def test_nested_anchor_name(self):
        assert get_anchor_id(parse_el('<p>Some <i>text <a name="cite_7"></a></i></p>')) == "cite_7"

    def test_unrelated_nested_id_ignored(self):
        assert get_anchor_id(parse_el('<p>x <b id="bold">y</b></p>')) == ""

    def test_none(self):
        assert get_anchor_id(parse_el("<p>Plain</p>")) == ""


class TestAnchorMarker:
    def test_marker_shape(self):
        assert anchor_marker("s1") == '<a id="s1" name="s1"></a>'

    def test_marker_escapes_quotes(self):
        assert anchor_marker('a"b') == '<a id="a&quot;b" name="a&quot;b"></a>'

    def test_prepend(self):
        assert prepend_anchor_marker("Body", "p5") == '<a id="p5" name="p5"></a>Body'

    def test_prepend_skips_existing_inline_anchor(self):
        frag = 'Text<sup><a id="ref-1">1</a></sup>'
        assert prepend_anchor_marker(frag, "ref-1") == frag

    def test_prepend_empty_id_noop(self):
        assert prepend_anchor_marker("Body", "") == "Body"

    def test_data_id_is_not_a_marker(self):
        assert not has_anchor_marker('<span data-id="x">y</span>', "x")

    def test_single_quoted_id_counts(self):
        assert has_anchor_marker("<a id='x'></a>", "x")

    def test_prefix_id_is_not_a_match(self):
        assert not has_anchor_marker('<a id="ref-10"></a>', "ref-1")

    @settings(max_examples=50, deadline=5000)
    @given(anchor=st.text(min_size=1, max_size=20), body=st.text(max_size=40))
    def test_prepend_is_idempotent(self, anchor, body):
        once = prepend_anchor_marker(body, anchor)
        assert prepend_anchor_marker(once, anchor) == once
