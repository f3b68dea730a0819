# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for TOC mapping extraction."""

from __future__ import annotations

from pageblocks.toc import extract_toc_mapping, normalize_text
from tests._dom_helpers import parse_el


class TestNormalizeText:
    def test_strips_tags_and_collapses_whitespace(self):
        assert normalize_text("  <b>Hello</b>\n   World ") == "hello world"

    def test_none(self):
        assert normalize_text(None) == ""


class TestExtractTocMapping:
    def test_builds_mapping(self):
        ul = parse_el('<ul><li><a href="#a">First</a></li><li><a href="#b">Second</a></li></ul>')
        mapping: dict[str, str] = {}
        assert extract_toc_mapping(ul, mapping) is True
        assert mapping == {"first": "a", "second": "b"}

    def test_single_link_is_not_a_toc(self):
        ul = parse_el('<ul><li><a href="#a">Only</a></li><li><a href="/x">External</a></li></ul>')
        mapping: dict[str, str] = {}
        assert extract_toc_mapping(ul, mapping) is False
        assert mapping == {}

    def test_nested_links_counted(self):
        ol = parse_el(
            '<ol><li><a href="#ch1">Chapter  One</a>'
            '<ol><li><a href="#ch1-1">Part <em>A</em></a></li></ol></li></ol>'
        )
        mapping: dict[str, str] = {}
        extract_toc_mapping(ol, mapping)
        assert mapping == {"chapter one": "ch1", "part a": "ch1-1"}

    def test_duplicate_text_last_wins(self):
        ul = parse_el('<ul><li><a href="#x1">Notes</a></li><li><a href="#x2">Notes</a></li></ul>')
        mapping: dict[str, str] = {}
        extract_toc_mapping(ul, mapping)
        assert mapping == {"notes": "x2"}

    def test_empty_text_and_bare_hash_skipped(self):
        ul = parse_el('<ul><li><a href="#"></a></li><li><a href="#a"> </a></li><li><a href="#b">B</a></li></ul>')
        mapping: dict[str, str] = {}
        assert extract_toc_mapping(ul, mapping) is True
        assert mapping == {"b": "b"}

    def test_list_not_modified(self):
        markup = '<ul><li><a href="#a">First</a></li><li><a href="#b">Second</a></li></ul>'
        ul = parse_el(markup)
        before = len(list(ul.iter()))
        extract_toc_mapping(ul, {})
        assert len(list(ul.iter())) == before
