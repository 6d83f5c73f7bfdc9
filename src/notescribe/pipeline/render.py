# src/notescribe/pipeline/render.py
from __future__ import annotations
import html
import logging
import re
from typing import Callable, List, Optional, Tuple

from ..config import READ_MODE, RenderMode
from ..models.schema import NOTE_KINDS, AnnotationSpan
from .directives import (
    ANNOTATION_BRACKET_RE,
    ANNOTATION_BRACKETS,
    ANNOTATION_TAG_RE,
    ANNOTATION_TAGS,
)

log = logging.getLogger(__name__)

# Positions where a directive may start. Heading-before-arrow only counts at
# the start of a line.
_OPENER_RE = re.compile(r"\[\[|<(?=[A-Za-z])|->|::|^#{1,6}[ \t]*->", re.MULTILINE)

# Centered text may wrap lines but never crosses a paragraph break.
_NO_PARA = r"(?:(?!\n[ \t]*\n)[\s\S])+?"

_HEADING_BEFORE_RE = re.compile(
    r"^(#{1,6})(?!#)[ \t]*->[ \t]*([^\n]+?)[ \t]*#*[ \t]*<-", re.MULTILINE
)
_HEADING_INSIDE_RE = re.compile(
    r"->[ \t]*(#{1,6})(?!#)[ \t]*([^\n]+?)[ \t]*#*[ \t]*<-"
)
_CENTER_ARROW_RE = re.compile(r"->(" + _NO_PARA + r")<-")
_CENTER_COLON_RE = re.compile(r"::(" + _NO_PARA + r")::")
_TERM_SPLIT_RE = re.compile(r"→|->")

# "12. In the beginning" is verse numbering, not an ordered list
_NUMBERED_PARA_RE = re.compile(r"^([ \t]{0,3}\d+)\.(?=[ \t]|$)", re.MULTILINE)

_CSS_CLASSES = {
    "note": "inline-note",
    "term": "term-note",
    "margin": "margin-note",
    "gloss": "gloss-note",
    "insert": "insert-note",
    "unclear": "unclear-text",
    "image": "image-desc",
}

_Match = Optional[Tuple[AnnotationSpan, int]]


# ---------------------------
# Span builders
# ---------------------------
def _annotation(kind: str, content: str) -> AnnotationSpan:
    content = content.strip()
    if kind == "term":
        parts = [p.strip() for p in _TERM_SPLIT_RE.split(content, maxsplit=1)]
        gloss = parts[1] if len(parts) > 1 and parts[1] else None
        return AnnotationSpan(kind="term", content=parts[0], gloss=gloss)
    return AnnotationSpan(kind=kind, content=content)


def _centered(content: str, level: Optional[int] = None) -> Optional[AnnotationSpan]:
    lines = [ln.strip() for ln in content.strip().splitlines()]
    content = "\n".join(ln for ln in lines if ln)
    if not content:
        return None
    return AnnotationSpan(
        kind="heading" if level else "center",
        content=content,
        level=level,
        children=parse_annotations(content),
    )


def _try_heading(text: str, pos: int) -> _Match:
    for pattern in (_HEADING_BEFORE_RE, _HEADING_INSIDE_RE):
        m = pattern.match(text, pos)
        if m:
            span = _centered(m.group(2), level=len(m.group(1)))
            if span:
                return span, m.end()
    return None


def _try_center(text: str, pos: int) -> _Match:
    for pattern in (_CENTER_ARROW_RE, _CENTER_COLON_RE):
        m = pattern.match(text, pos)
        if m:
            span = _centered(m.group(1))
            if span:
                return span, m.end()
    return None


def _try_bracket(text: str, pos: int) -> _Match:
    m = ANNOTATION_BRACKET_RE.match(text, pos)
    if not m:
        return None
    return _annotation(ANNOTATION_BRACKETS[m.group(1).lower()], m.group(2)), m.end()


def _try_tag(text: str, pos: int) -> _Match:
    m = ANNOTATION_TAG_RE.match(text, pos)
    if not m:
        return None
    return _annotation(ANNOTATION_TAGS[m.group(1).lower()], m.group(2)), m.end()


# centering first, so "->x<-" is never read as a term arrow
_MATCHERS: Tuple[Callable[[str, int], _Match], ...] = (
    _try_heading,
    _try_center,
    _try_bracket,
    _try_tag,
)


# ---------------------------
# Parsing
# ---------------------------
def parse_annotations(text: str) -> List[AnnotationSpan]:
    """
    Split clean text into typed spans, left to right.

    Unmatched openers stay in the surrounding plain text. No mode is applied
    here; see render().
    """
    spans: List[AnnotationSpan] = []
    literal_from = 0
    pos = 0
    while True:
        opener = _OPENER_RE.search(text, pos)
        if not opener:
            break
        start = opener.start()
        hit = None
        for matcher in _MATCHERS:
            hit = matcher(text, start)
            if hit:
                break
        if hit is None:
            pos = start + 1
            continue
        span, end = hit
        if start > literal_from:
            spans.append(AnnotationSpan(kind="text", content=text[literal_from:start]))
        spans.append(span)
        literal_from = pos = end

    if literal_from < len(text):
        spans.append(AnnotationSpan(kind="text", content=text[literal_from:]))
    return spans


def _is_visible(span: AnnotationSpan, mode: RenderMode) -> bool:
    if span.kind in NOTE_KINDS:
        return mode.show_notes
    if span.kind == "image":
        return mode.reveal_image_descriptions
    # text, terms and centering are always shown
    return True


def apply_mode(spans: List[AnnotationSpan], mode: RenderMode) -> List[AnnotationSpan]:
    """
    Drop hidden spans entirely and merge the plain text around them.
    """
    out: List[AnnotationSpan] = []
    for span in spans:
        if not _is_visible(span, mode):
            continue
        if span.children:
            children = apply_mode(span.children, mode)
            if not children:
                # nothing left to center
                continue
            span = span.model_copy(update={"children": children})
        if span.kind == "text" and out and out[-1].kind == "text":
            out[-1] = AnnotationSpan(kind="text", content=out[-1].content + span.content)
            continue
        out.append(span)
    return out


def render(clean_text: str, mode: RenderMode = READ_MODE) -> List[AnnotationSpan]:
    """
    Parse clean text and apply the visibility rules of the given mode.
    """
    spans = apply_mode(parse_annotations(clean_text), mode)
    log.debug("rendered %d span(s) with %s", len(spans), mode.to_dict())
    return spans


# ---------------------------
# Display
# ---------------------------
def to_plain_text(spans: List[AnnotationSpan]) -> str:
    return "".join(span.display for span in spans)


def escape_numbered_paragraphs(text: str) -> str:
    r"""
    Turn "12. " at the start of a line into "12\. " so a markdown renderer
    keeps it as paragraph numbering.
    """
    return _NUMBERED_PARA_RE.sub(r"\1\\.", text)


def _span_markup(span: AnnotationSpan) -> str:
    if span.kind == "text":
        return span.content
    if span.kind in ("center", "heading"):
        inner = "".join(_span_markup(child) for child in span.children)
        inner = inner.replace("\n", "<br>")
        if span.kind == "heading":
            return f'<h{span.level} class="text-center">{inner}</h{span.level}>'
        return f'<div class="text-center">{inner}</div>'

    css = _CSS_CLASSES[span.kind]
    content = html.escape(span.content, quote=False)
    if span.kind == "term":
        gloss = f" ({html.escape(span.gloss, quote=False)})" if span.gloss else ""
        return f'<span class="{css}"><em>{content}</em>{gloss}</span>'
    if span.kind == "unclear":
        return f'<span class="{css}">{content}?</span>'
    if span.kind == "image":
        return f'<div class="{css}">{content}</div>'
    return f'<span class="{css}">{content}</span>'


def render_markup(clean_text: str, mode: RenderMode = READ_MODE) -> str:
    """
    Render clean text to markdown with inline HTML for the annotation kinds.
    Block layout (paragraphs, lists, tables) is left to the markdown renderer.
    """
    spans = render(escape_numbered_paragraphs(clean_text), mode)
    return "".join(_span_markup(span) for span in spans)
