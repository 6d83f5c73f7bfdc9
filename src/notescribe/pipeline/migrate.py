# src/notescribe/pipeline/migrate.py
from __future__ import annotations
import logging
import re
from typing import List, Pattern, Set, Tuple

from .directives import (
    BRACKET_BODY,
    METADATA_BRACKET_RE,
    METADATA_BRACKETS,
    METADATA_TAG_RE,
    METADATA_TAGS,
    SINGLETON_FIELDS,
    Span,
    normalize_kind,
    overlaps,
    remove_spans,
)

log = logging.getLogger(__name__)

# bracket kind pattern -> tag name
_TAG_MAPPINGS: List[Tuple[Pattern[str], str]] = [
    (re.compile(r"\[\[\s*" + kind + r"\s*:\s*" + BRACKET_BODY + r"\]\]", re.I), tag)
    for kind, tag in [
        # display annotations
        (r"notes?", "note"),
        (r"margin", "margin"),
        (r"gloss", "gloss"),
        (r"insert", "insert"),
        (r"unclear", "unclear"),
        (r"term", "term"),
        (r"image", "image-desc"),
        # metadata
        (r"language", "lang"),
        (r"page\s*number", "page-num"),
        (r"folio", "folio"),
        (r"signature", "sig"),
        (r"header", "header"),
        (r"meta", "meta"),
        (r"warning", "warning"),
        (r"abbrev", "abbrev"),
        (r"vocabulary", "vocab"),
        (r"summary", "summary"),
        (r"keywords", "keywords"),
    ]
]


def _shadowed_singletons(text: str) -> List[Span]:
    """
    Bracket singletons that never reach the metadata: a tag already sets the
    field, or an earlier bracket does. These are dropped, not promoted.
    """
    tag_spans: List[Span] = []
    taken: Set[str] = set()
    for m in METADATA_TAG_RE.finditer(text):
        tag_spans.append(m.span())
        field = METADATA_TAGS[m.group(1).lower()]
        if field in SINGLETON_FIELDS and m.group(2).strip():
            taken.add(field)

    shadowed: List[Span] = []
    for m in METADATA_BRACKET_RE.finditer(text):
        field = METADATA_BRACKETS[normalize_kind(m.group(1))]
        if field not in SINGLETON_FIELDS or not m.group(2).strip():
            continue
        if overlaps(m.span(), tag_spans):
            continue
        if field in taken:
            shadowed.append(m.span())
        else:
            taken.add(field)
    return shadowed


def migrate_text(text: str) -> Tuple[str, int]:
    """
    Rewrite legacy "[[kind: content]]" directives as "<tag>content</tag>".

    Returns the migrated text and the number of directives rewritten or
    dropped. Unknown kinds are left alone.
    """
    shadowed = _shadowed_singletons(text)
    if shadowed:
        text = remove_spans(text, shadowed)
    changes = len(shadowed)
    for pattern, tag in _TAG_MAPPINGS:
        text, n = pattern.subn(lambda m, tag=tag: f"<{tag}>{m.group(1)}</{tag}>", text)
        changes += n
    if changes:
        log.debug("migrated %d directive(s) to tag syntax", changes)
    return text, changes
