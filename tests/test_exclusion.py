# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for exclusion.py: exclude selectors, visibility, infobox detection."""

from __future__ import annotations

import pytest

from pageblocks.dom import StaticRuntime
from pageblocks.exclusion import (
    ExclusionFilter,
    infobox_title,
    infobox_title_source,
    is_infobox,
    is_infobox_div,
    is_infobox_title_child,
    is_visible,
)
from tests._dom_helpers import FakeRuntime, parse_doc, parse_el


class TestInfoboxDetection:
    @pytest.mark.parametrize(
        "cls",
        ["spoiler", "Callout-Warning", "note-box", "x-collapsible-y", "interview", "terminology"],
    )
    def test_infobox_div_classes(self, cls):
        assert is_infobox_div(parse_el(f'<div class="{cls}">x</div>'))

    def test_plain_div(self):
        assert not is_infobox_div(parse_el('<div class="content">x</div>'))

    def test_only_divs(self):
        assert not is_infobox_div(parse_el('<section class="callout">x</section>'))

    @pytest.mark.parametrize("markup", ["<aside>x</aside>", "<details>x</details>"])
    def test_infobox_tags(self, markup):
        assert is_infobox(parse_el(markup))


class TestInfoboxTitle:
    def test_summary(self):
        el = parse_el("<details><p>body</p><summary>More</summary></details>")
        assert infobox_title(el) == "More"

    def test_title_class(self):
        el = parse_el('<aside class="spoiler"><div class="spoiler-title"> Warning </div><p>x</p></aside>')
        assert infobox_title(el) == "Warning"

    def test_heading_child(self):
        el = parse_el("<aside><h4>Side note</h4><p>x</p></aside>")
        assert infobox_title(el) == "Side note"

    def test_first_matching_child_in_document_order(self):
        el = parse_el('<aside><h3>Heading</h3><div class="interview-title">Q&amp;A</div></aside>')
        assert infobox_title(el) == "Heading"

    def test_nested_title_not_used(self):
        el = parse_el("<aside><div><h3>Deep</h3></div></aside>")
        assert infobox_title_source(el) is None
        assert infobox_title(el) == ""

    def test_title_child_detection(self):
        el = parse_el('<aside><div class="spoiler-title">T</div><p>T</p><p>other</p></aside>')
        title_div, same_text, other = list(el)
        assert is_infobox_title_child(title_div, "T")
        assert is_infobox_title_child(same_text, "T")
        assert not is_infobox_title_child(other, "T")

    def test_empty_title_matches_nothing_by_text(self):
        el = parse_el("<aside><p></p></aside>")
        assert not is_infobox_title_child(el[0], "")


class TestExclusionFilter:
    def test_direct_match(self):
        doc = parse_doc('<div class="ads">x</div>')
        div = next(doc.iter("div"))
        assert ExclusionFilter([".ads"]).should_exclude(div)

    def test_ancestor_match(self):
        doc = parse_doc('<div class="ads"><p>x</p></div>')
        p = next(doc.iter("p"))
        assert ExclusionFilter([".ads"]).should_exclude(p)

    def test_combinator_selector(self):
        doc = parse_doc('<div class="post"><p class="meta">m</p></div><p class="meta">n</p>')
        inside, outside = doc.iter("p")
        flt = ExclusionFilter([".post > .meta"])
        assert flt.should_exclude(inside)
        assert not flt.should_exclude(outside)

    def test_no_match(self):
        doc = parse_doc("<p>x</p>")
        assert not ExclusionFilter([".ads"]).should_exclude(next(doc.iter("p")))

    def test_empty_filter(self):
        flt = ExclusionFilter()
        assert flt.selectors == ()
        assert not flt.should_exclude(parse_el("<p>x</p>"))

    def test_malformed_selector_ignored(self):
        flt = ExclusionFilter(["p[", ".ads"])
        assert [s.css for s in flt.selectors] == [".ads"]
        doc = parse_doc('<p>x</p><div class="ads">y</div>')
        assert not flt.should_exclude(next(doc.iter("p")))

    def test_infobox_carve_out(self):
        doc = parse_doc('<aside class="ads">a</aside><details class="ads">d</details><div class="ads spoiler">s</div>')
        flt = ExclusionFilter([".ads"])
        for el in doc.iter("aside", "details", "div"):
            assert not flt.should_exclude(el)

    def test_infobox_children_still_gated(self):
        doc = parse_doc('<aside class="ads"><p>x</p></aside>')
        p = next(doc.iter("p"))
        assert ExclusionFilter([".ads"]).should_exclude(p)

    def test_match_sets_are_per_document(self):
        flt = ExclusionFilter([".ads"])
        first = parse_doc('<p class="ads">x</p>')
        second = parse_doc("<p>y</p>")
        assert flt.should_exclude(next(first.iter("p")))
        assert not flt.should_exclude(next(second.iter("p")))


class TestIsVisible:
    def test_static_hidden(self):
        assert not is_visible(parse_el('<p style="display:none">x</p>'), StaticRuntime())

    def test_static_visible(self):
        assert is_visible(parse_el("<p>x</p>"), StaticRuntime())

    def test_failing_style_query_is_visible(self):
        assert is_visible(parse_el("<p>x</p>"), FakeRuntime(raise_on_style=True))
