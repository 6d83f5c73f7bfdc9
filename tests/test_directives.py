"""Tests for the shared directive tables and span helpers."""

import pytest

from notescribe.pipeline.directives import (
    collapse_blank_lines,
    detect_syntax,
    normalize_kind,
    overlaps,
    remove_spans,
    split_terms,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Language", "language"),
        ("  Page   Number ", "page number"),
        ("pagenumber", "page number"),
        ("NOTES", "notes"),
    ],
)
def test_normalize_kind(raw, expected):
    assert normalize_kind(raw) == expected


class TestSpans:
    def test_adjacent_spans_do_not_overlap(self):
        assert not overlaps((2, 4), [(4, 6)])
        assert not overlaps((2, 4), [(0, 2)])

    def test_overlapping_spans(self):
        assert overlaps((2, 4), [(3, 5)])
        assert overlaps((2, 4), [(0, 10)])

    def test_remove_spans_unsorted_and_overlapping(self):
        assert remove_spans("abcdef", [(3, 5), (1, 2), (4, 6)]) == "ac"

    def test_remove_nothing(self):
        assert remove_spans("abc", []) == "abc"


def test_split_terms_drops_empty_entries():
    assert split_terms(" a, ,b ,, c ") == ["a", "b", "c"]


def test_collapse_blank_lines():
    assert collapse_blank_lines("a\n   \n\n\nb  \n") == "a\n\nb"


@pytest.mark.parametrize(
    "text, expected",
    [
        ("<lang>Latin</lang> body", "tag"),
        ("<note>aside</note>", "tag"),
        ("[[note: aside]]", "bracket"),
        ("[[language: Latin]] <term>opus</term>", "mixed"),
        ("plain prose", "none"),
        ("[[foo: unknown kinds do not count]]", "none"),
    ],
)
def test_detect_syntax(text, expected):
    assert detect_syntax(text) == expected
