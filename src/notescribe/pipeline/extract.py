# src/notescribe/pipeline/extract.py
from __future__ import annotations
import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from ..models.schema import ExtractedMetadata
from .directives import (
    ANNOTATION_BRACKETS,
    ANNOTATION_TAGS,
    ANY_BRACKET_RE,
    COMMA_LIST_FIELDS,
    METADATA_BRACKET_RE,
    METADATA_BRACKETS,
    METADATA_TAG_RE,
    METADATA_TAGS,
    SINGLETON_FIELDS,
    Span,
    collapse_blank_lines,
    normalize_kind,
    overlaps,
    remove_spans,
    split_terms,
)

log = logging.getLogger(__name__)

_CODE_FENCE_RE = re.compile(
    r"\A\s*```[ \t]*(?:markdown|md)?[ \t]*\n([\s\S]*?)\n?[ \t]*```\s*\Z",
    re.IGNORECASE,
)
# "Here is the translation of page 12:" and friends, colon at end of line
_PREAMBLE_RE = re.compile(
    r"\A\s*(?:here\s+is|here's|below\s+is|i\s+have\s+translated|the\s+following\s+is)"
    r"\b[^\n]*:[ \t]*(?:\n|\Z)(?:[ \t]*\n)*",
    re.IGNORECASE,
)
_DIRECTIVE_TAG = r"<(?:%s)>" % "|".join(
    re.escape(tag) for tag in sorted(set(METADATA_TAGS) | set(ANNOTATION_TAGS))
)
# Unbracketed "Summary: ..." runs to a blank line, the next directive or the end.
# Other inline HTML stays part of the summary.
_SUMMARY_LINE_RE = re.compile(
    r"^[ \t]*summary[ \t]*:[ \t]*((?:(?!\n[ \t]*\n|\[\[|"
    + _DIRECTIVE_TAG
    + r")[\s\S])*)",
    re.IGNORECASE | re.MULTILINE,
)


@dataclass(frozen=True)
class _Hit:
    """
    One matched metadata directive, in coordinates of the scanned text.
    """

    start: int
    end: int
    field: Optional[str]  # None: strip only (header)
    value: str
    legacy: bool  # bracket syntax or unbracketed summary

    @property
    def span(self) -> Span:
        return (self.start, self.end)


# ---------------------------
# Wrappers
# ---------------------------
def strip_wrappers(text: str) -> str:
    """
    Remove a whole-text code fence and leading AI preambles,
    repeating until neither is present.
    """
    while True:
        fence = _CODE_FENCE_RE.match(text)
        if fence:
            text = fence.group(1)
            continue
        preamble = _PREAMBLE_RE.match(text)
        if preamble:
            text = text[preamble.end() :]
            continue
        return text


# ---------------------------
# Scanning
# ---------------------------
def _tag_hits(text: str) -> List[_Hit]:
    return [
        _Hit(m.start(), m.end(), METADATA_TAGS[m.group(1).lower()], m.group(2), False)
        for m in METADATA_TAG_RE.finditer(text)
    ]


def _bracket_hits(text: str, taken: List[Span]) -> List[_Hit]:
    hits: List[_Hit] = []
    for m in METADATA_BRACKET_RE.finditer(text):
        if overlaps(m.span(), taken):
            # already inside a tag span that is being removed
            continue
        field = METADATA_BRACKETS[normalize_kind(m.group(1))]
        hits.append(_Hit(m.start(), m.end(), field, m.group(2), True))
    return hits


def _summary_line_hits(text: str) -> List[_Hit]:
    return [
        _Hit(m.start(), m.end(), "summary", m.group(1), True)
        for m in _SUMMARY_LINE_RE.finditer(text)
    ]


def _leftover_spans(text: str) -> List[Span]:
    """
    Any [[word: ...]] that is not an inline annotation.
    """
    return [
        m.span()
        for m in ANY_BRACKET_RE.finditer(text)
        if normalize_kind(m.group(1)) not in ANNOTATION_BRACKETS
    ]


# ---------------------------
# Merging
# ---------------------------
def _normalize_value(field: str, raw: str) -> List[str]:
    if field == "summary":
        value = " ".join(raw.split())
        return [value] if value else []
    if field in COMMA_LIST_FIELDS:
        return split_terms(raw)
    value = raw.strip()
    return [value] if value else []


def _merge(metadata: ExtractedMetadata, hits: List[_Hit]) -> None:
    """
    Singletons: first writer wins, tag syntax before legacy syntax.
    Lists: every hit appends, in document order.
    """
    singles = sorted(
        (h for h in hits if h.field in SINGLETON_FIELDS),
        key=lambda h: (h.legacy, h.start),
    )
    for hit in singles:
        values = _normalize_value(hit.field, hit.value)
        if values and getattr(metadata, hit.field) is None:
            setattr(metadata, hit.field, values[0])

    for hit in sorted(hits, key=lambda h: h.start):
        if hit.field is None or hit.field in SINGLETON_FIELDS:
            continue
        getattr(metadata, hit.field).extend(_normalize_value(hit.field, hit.value))


def _extract_pass(text: str, metadata: ExtractedMetadata) -> str:
    """
    One round of scanning. Each stage finds all matches, then rebuilds the
    string once from the removal set.
    """
    tag_hits = _tag_hits(text)
    taken = [h.span for h in tag_hits]
    hits = tag_hits + _bracket_hits(text, taken)
    _merge(metadata, hits)
    text = remove_spans(text, (h.span for h in hits))

    summary_hits = _summary_line_hits(text)
    _merge(metadata, summary_hits)
    text = remove_spans(text, (h.span for h in summary_hits))

    return remove_spans(text, _leftover_spans(text))


def extract(text: str) -> Tuple[str, ExtractedMetadata]:
    """
    Scrape metadata directives out of a page of text.

    Returns the cleaned text and the collected metadata. Never raises:
    anything that is not a recognised directive is left in place.
    """
    metadata = ExtractedMetadata()
    if not text:
        return "", metadata

    # Removing a directive can expose a preamble or a summary line at the
    # start of a line, so run to a fixed point.
    rounds = 0
    while True:
        rounds += 1
        before = text
        text = _extract_pass(strip_wrappers(text), metadata)
        if text == before:
            break

    clean = collapse_blank_lines(text)
    log.debug(
        "extracted metadata in %d round(s): %s",
        rounds,
        metadata.model_dump(exclude_defaults=True),
    )
    return clean, metadata


def extract_metadata(text: str) -> ExtractedMetadata:
    return extract(text)[1]
