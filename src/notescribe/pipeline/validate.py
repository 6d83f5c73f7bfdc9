# src/notescribe/pipeline/validate.py
"""
Formatting checks for page text before it is saved.

The checks are shallow: they look at delimiter balance and tag names,
not at whether a directive makes sense where it appears.
"""
from __future__ import annotations
import logging
import re
from typing import Iterable, List, Optional, Tuple

from ..models.schema import SuggestedFix, ValidationIssue, ValidationResult
from .directives import ANY_BRACKET_RE, ANNOTATION_TAG_RE, Span

log = logging.getLogger(__name__)

# Known bracket kinds (legacy syntax)
VALID_BRACKET_KINDS = frozenset(
    [
        # display annotations
        "margin",
        "note",
        "notes",
        "gloss",
        "insert",
        "unclear",
        "term",
        "image",
        # metadata
        "meta",
        "language",
        "page number",
        "header",
        "signature",
        "vocabulary",
        "summary",
        "keywords",
        "warning",
        "folio",
        "abbrev",
        "markup",
    ]
)

# Known tag names (current syntax)
VALID_XML_TAGS = frozenset(
    [
        # display annotations
        "note",
        "margin",
        "gloss",
        "insert",
        "unclear",
        "term",
        "image-desc",
        # metadata
        "lang",
        "page-num",
        "folio",
        "sig",
        "header",
        "meta",
        "warning",
        "abbrev",
        "vocab",
        "summary",
        "keywords",
    ]
)

CONTEXT_RADIUS = 30

_XML_OPEN_RE = re.compile(r"<([a-z][a-z0-9-]*)>", re.IGNORECASE)
_XML_CLOSE_RE = re.compile(r"</([a-z][a-z0-9-]*)>", re.IGNORECASE)
_EMPTY_BRACKET_RE = re.compile(r"\[\[\w+:\s*\]\]")
_EMPTY_XML_RE = re.compile(r"<([a-z][a-z0-9-]*)>\s*</\1>", re.IGNORECASE)


def _context(text: str, position: int, length: int = 0) -> str:
    """
    A short excerpt around position, with ellipses where it was cut.
    """
    start = max(0, position - CONTEXT_RADIUS)
    end = min(len(text), position + length + CONTEXT_RADIUS)
    prefix = "..." if start > 0 else ""
    suffix = "..." if end < len(text) else ""
    return f"{prefix}{text[start:end]}{suffix}"


def _issue(
    text: str,
    type_: str,
    message: str,
    position: int,
    length: int,
    fix: Optional[SuggestedFix] = None,
    context_length: Optional[int] = None,
) -> ValidationIssue:
    if context_length is None:
        context_length = length
    return ValidationIssue(
        type=type_,
        message=message,
        position=position,
        length=length,
        context=_context(text, position, context_length),
        suggested_fix=fix,
    )


def _delete(position: int, length: int) -> SuggestedFix:
    return SuggestedFix(type="delete", position=position, length=length)


# ---------------------------
# Bracket syntax
# ---------------------------
def _check_brackets(text: str) -> List[ValidationIssue]:
    issues: List[ValidationIssue] = []
    open_stack: List[int] = []
    i = 0
    while i < len(text):
        pair = text[i : i + 2]
        if pair == "[[":
            if open_stack:
                issues.append(
                    _issue(
                        text,
                        "nested_bracket",
                        "Nested brackets detected - brackets inside another tag",
                        i,
                        2,
                        _delete(i, 2),
                    )
                )
            open_stack.append(i)
            i += 2
            continue
        if pair == "]]":
            if open_stack:
                issues.extend(_check_bracket_body(text, open_stack.pop(), i))
            else:
                issues.append(
                    _issue(
                        text,
                        "unclosed_close",
                        "Closing ]] without matching opening [[",
                        i,
                        2,
                        _delete(i, 2),
                    )
                )
            i += 2
            continue
        i += 1

    for open_pos in open_stack:
        # suggest closing at the end of the paragraph
        next_para = text.find("\n\n", open_pos + 2)
        insert_at = next_para if next_para > open_pos + 2 else len(text)
        issues.append(
            _issue(
                text,
                "unclosed_open",
                "Opening [[ without matching closing ]]",
                open_pos,
                2,
                SuggestedFix(type="insert", position=insert_at, text="]]"),
                context_length=min(50, len(text) - open_pos),
            )
        )
    return issues


def _check_bracket_body(
    text: str, open_pos: int, close_pos: int
) -> List[ValidationIssue]:
    body = text[open_pos + 2 : close_pos]
    colon = body.find(":")
    if colon <= 0:
        return []
    kind = body[:colon].strip().lower()
    value = body[colon + 1 :].strip()
    length = close_pos + 2 - open_pos

    issues: List[ValidationIssue] = []
    if kind not in VALID_BRACKET_KINDS:
        # NOTE: no automatic fix, an unknown kind might be intentional
        issues.append(
            _issue(text, "unknown_tag", f'Unknown tag type: "{kind}"', open_pos, length)
        )
    if not value:
        issues.append(
            _issue(
                text,
                "empty_tag",
                f"Empty tag content for [[{kind}:]]",
                open_pos,
                length,
                _delete(open_pos, length),
            )
        )
    return issues


# ---------------------------
# Centering markers
# ---------------------------
def _outside(positions: Iterable[int], spans: List[Span]) -> List[int]:
    return [p for p in positions if not any(s <= p < e for s, e in spans)]


def _check_centering(text: str) -> List[ValidationIssue]:
    # "->" inside a directive is a term gloss arrow, not a centering marker
    inside = [m.span() for m in ANY_BRACKET_RE.finditer(text)]
    inside.extend(m.span() for m in ANNOTATION_TAG_RE.finditer(text))
    opens = _outside((m.start() for m in re.finditer("->", text)), inside)
    closes = _outside((m.start() for m in re.finditer("<-", text)), inside)
    if len(opens) == len(closes):
        return []

    issues: List[ValidationIssue] = []
    oi = ci = 0
    while oi < len(opens) or ci < len(closes):
        open_pos = opens[oi] if oi < len(opens) else None
        close_pos = closes[ci] if ci < len(closes) else None

        if close_pos is not None and (open_pos is None or close_pos < open_pos):
            issues.append(
                _issue(
                    text,
                    "unbalanced_center",
                    "Closing <- without matching opening ->",
                    close_pos,
                    2,
                    _delete(close_pos, 2),
                )
            )
            ci += 1
            continue

        next_close = next((c for c in closes if c > open_pos), None)
        another_open_first = (
            next_close is not None
            and oi + 1 < len(opens)
            and opens[oi + 1] < next_close
        )
        if next_close is None or another_open_first:
            issues.append(
                _issue(
                    text,
                    "unbalanced_center",
                    "Opening -> without matching closing <-",
                    open_pos,
                    2,
                    _delete(open_pos, 2),
                )
            )
        else:
            ci += 1
        oi += 1
    return issues


# ---------------------------
# Tag syntax
# ---------------------------
def _check_xml(text: str) -> List[ValidationIssue]:
    issues: List[ValidationIssue] = []
    events: List[Tuple[int, str, str]] = []  # (position, "open"|"close", tag)

    for m in _XML_OPEN_RE.finditer(text):
        tag = m.group(1).lower()
        events.append((m.start(), "open", tag))
        if tag not in VALID_XML_TAGS:
            issues.append(
                _issue(
                    text,
                    "unknown_xml_tag",
                    f"Unknown XML tag: <{tag}>",
                    m.start(),
                    len(tag) + 2,
                )
            )
    for m in _XML_CLOSE_RE.finditer(text):
        events.append((m.start(), "close", m.group(1).lower()))
    events.sort()

    stack: List[Tuple[str, int]] = []
    for position, kind, tag in events:
        if kind == "open":
            stack.append((tag, position))
            continue
        close_len = len(tag) + 3
        match_idx = next((i for i, (t, _) in enumerate(stack) if t == tag), None)
        if match_idx is None:
            issues.append(
                _issue(
                    text,
                    "unclosed_xml",
                    f"Closing </{tag}> without matching opening <{tag}>",
                    position,
                    close_len,
                    _delete(position, close_len),
                )
            )
            continue
        open_pos = stack.pop(match_idx)[1]
        if not text[open_pos + len(tag) + 2 : position].strip():
            length = position + close_len - open_pos
            issues.append(
                _issue(
                    text,
                    "empty_xml_tag",
                    f"Empty XML tag: <{tag}></{tag}>",
                    open_pos,
                    length,
                    _delete(open_pos, length),
                )
            )

    for tag, position in stack:
        issues.append(
            _issue(
                text,
                "unclosed_xml",
                f"Opening <{tag}> without matching closing </{tag}>",
                position,
                len(tag) + 2,
                SuggestedFix(type="insert", position=len(text), text=f"</{tag}>"),
                context_length=50,
            )
        )
    return issues


# ---------------------------
# Public API
# ---------------------------
def validate_text(text: str) -> ValidationResult:
    """
    Check page text for unbalanced delimiters, unknown kinds and empty
    directives. Issues are ordered by position.
    """
    if not text:
        return ValidationResult(valid=True, issues=[])

    issues = _check_brackets(text) + _check_centering(text) + _check_xml(text)
    issues.sort(key=lambda issue: issue.position)
    log.debug("validation found %d issue(s)", len(issues))
    return ValidationResult(valid=not issues, issues=issues)


def apply_fix(text: str, fix: SuggestedFix) -> str:
    if fix.type == "insert":
        return text[: fix.position] + (fix.text or "") + text[fix.position :]
    end = fix.position + (fix.length or 0)
    if fix.type == "delete":
        return text[: fix.position] + text[end:]
    return text[: fix.position] + (fix.text or "") + text[end:]


def apply_fixes(text: str, issues: Iterable[ValidationIssue]) -> Tuple[str, int]:
    """
    Apply every suggested fix, last position first so earlier offsets stay
    valid. A fix reaching into an already edited region is skipped.
    """
    fixes = sorted(
        (i.suggested_fix for i in issues if i.suggested_fix is not None),
        key=lambda f: f.position,
        reverse=True,
    )
    applied = 0
    floor = len(text)  # lowest offset edited so far
    for fix in fixes:
        if fix.position + (fix.length or 0) > floor:
            log.debug("skipping overlapping fix at %d", fix.position)
            continue
        text = apply_fix(text, fix)
        floor = fix.position
        applied += 1
    return text, applied


def cleanup_empty_tags(text: str) -> Tuple[str, int]:
    """
    Remove directives with no content, such as "[[unclear:]]" or
    "<note> </note>". Returns the cleaned text and how many were removed.
    """
    if not text:
        return text, 0

    cleaned, bracket_count = _EMPTY_BRACKET_RE.subn("", text)
    cleaned, xml_count = _EMPTY_XML_RE.subn("", cleaned)
    removed = bracket_count + xml_count
    if not removed:
        return text, 0

    # tidy the spacing the removed tags leave behind
    cleaned = re.sub(r"  +", " ", cleaned)
    cleaned = re.sub(r" +\n", "\n", cleaned)
    cleaned = re.sub(r"\n +", "\n", cleaned)
    return cleaned, removed
