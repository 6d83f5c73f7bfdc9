# src/notescribe/pipeline/directives.py
from __future__ import annotations
import re
from typing import Dict, Iterable, List, Literal, Optional, Tuple

Span = Tuple[int, int]
SyntaxVersion = Literal["tag", "bracket", "mixed", "none"]

# ---------------------------
# Directive tables
# ---------------------------
# metadata field names, as used on ExtractedMetadata
SINGLETON_FIELDS = frozenset(
    {"language", "page_number", "folio", "signature", "warning", "summary"}
)
COMMA_LIST_FIELDS = frozenset({"vocabulary", "keywords"})

# <tag> -> field; None means "strip and discard"
METADATA_TAGS: Dict[str, Optional[str]] = {
    "lang": "language",
    "page-num": "page_number",
    "folio": "folio",
    "sig": "signature",
    "warning": "warning",
    "meta": "meta",
    "abbrev": "abbreviations",
    "vocab": "vocabulary",
    "summary": "summary",
    "keywords": "keywords",
    "header": None,
}

# [[kind: ...]] -> field; kinds are normalised with normalize_kind()
METADATA_BRACKETS: Dict[str, Optional[str]] = {
    "language": "language",
    "page number": "page_number",
    "folio": "folio",
    "warning": "warning",
    "signature": "signature",
    "meta": "meta",
    "abbrev": "abbreviations",
    "vocabulary": "vocabulary",
    "summary": "summary",
    "keywords": "keywords",
    "header": None,
}

# inline annotation kinds, bracket and tag spellings
ANNOTATION_BRACKETS: Dict[str, str] = {
    "note": "note",
    "notes": "note",
    "term": "term",
    "margin": "margin",
    "gloss": "gloss",
    "insert": "insert",
    "unclear": "unclear",
    "image": "image",
}
ANNOTATION_TAGS: Dict[str, str] = {
    "note": "note",
    "term": "term",
    "margin": "margin",
    "gloss": "gloss",
    "insert": "insert",
    "unclear": "unclear",
    "image-desc": "image",
}

# Bracket content may span lines but never contains another "[[", so an
# unterminated directive cannot swallow the next one.
BRACKET_BODY = r"((?:(?!\[\[)[\s\S])*?)"

METADATA_TAG_RE = re.compile(
    r"<(lang|page-num|folio|sig|warning|meta|abbrev|vocab|summary|keywords|header)>"
    r"([\s\S]*?)</\1\s*>",
    re.IGNORECASE,
)
METADATA_BRACKET_RE = re.compile(
    r"\[\[\s*(language|page\s*number|folio|warning|signature|meta|abbrev|vocabulary"
    r"|summary|keywords|header)\s*:" + BRACKET_BODY + r"\]\]",
    re.IGNORECASE,
)
ANNOTATION_BRACKET_RE = re.compile(
    r"\[\[\s*(notes?|term|margin|gloss|insert|unclear|image)\s*:"
    + BRACKET_BODY
    + r"\]\]",
    re.IGNORECASE,
)
ANNOTATION_TAG_RE = re.compile(
    r"<(note|term|margin|gloss|insert|unclear|image-desc)>([\s\S]*?)</\1\s*>",
    re.IGNORECASE,
)
# any [[word: ...]] shape, known or not
ANY_BRACKET_RE = re.compile(
    r"\[\[\s*([A-Za-z][\w\- ]*?)\s*:" + BRACKET_BODY + r"\]\]"
)

_BLANK_RUN_RE = re.compile(r"\n{3,}")
_WS_ONLY_LINE_RE = re.compile(r"^[ \t]+$", re.MULTILINE)


# ---------------------------
# Span helpers
# ---------------------------
def normalize_kind(raw: str) -> str:
    """
    Lowercase a bracket kind and fold internal whitespace,
    so "Page  Number" and "pagenumber" both become "page number".
    """
    kind = re.sub(r"\s+", " ", raw.strip().lower())
    if kind == "pagenumber":
        return "page number"
    return kind


def overlaps(span: Span, taken: Iterable[Span]) -> bool:
    start, end = span
    return any(start < t_end and t_start < end for t_start, t_end in taken)


def remove_spans(text: str, spans: Iterable[Span]) -> str:
    """
    Rebuild text without the given (start, end) spans.
    Overlapping or unsorted spans are fine.
    """
    pieces: List[str] = []
    cursor = 0
    for start, end in sorted(spans):
        if end <= cursor:
            continue
        start = max(start, cursor)
        pieces.append(text[cursor:start])
        cursor = end
    pieces.append(text[cursor:])
    return "".join(pieces)


def split_terms(value: str) -> List[str]:
    return [t.strip() for t in value.split(",") if t.strip()]


def collapse_blank_lines(text: str) -> str:
    """
    Empty whitespace-only lines, keep at most one blank line between
    paragraphs, and trim.
    """
    text = _WS_ONLY_LINE_RE.sub("", text)
    return _BLANK_RUN_RE.sub("\n\n", text).strip()


def detect_syntax(text: str) -> SyntaxVersion:
    """
    Which directive syntax a stored page uses.
    """
    has_tag = bool(METADATA_TAG_RE.search(text) or ANNOTATION_TAG_RE.search(text))
    has_bracket = bool(
        METADATA_BRACKET_RE.search(text) or ANNOTATION_BRACKET_RE.search(text)
    )
    if has_tag and has_bracket:
        return "mixed"
    if has_tag:
        return "tag"
    if has_bracket:
        return "bracket"
    return "none"
