# src/notescribe/models/schema.py
from __future__ import annotations
from typing import Literal, Optional, List
from pydantic import BaseModel, Field

SpanKind = Literal[
    "text",
    "note",
    "term",
    "margin",
    "gloss",
    "insert",
    "unclear",
    "image",
    "center",
    "heading",
]

# Kinds hidden when notes are switched off. Terms are vocabulary, not commentary.
NOTE_KINDS = frozenset({"note", "margin", "gloss", "insert", "unclear"})


class ExtractedMetadata(BaseModel):
    """
    Metadata scraped from one page of text.
    """

    language: Optional[str] = None
    page_number: Optional[str] = None
    folio: Optional[str] = None
    signature: Optional[str] = None  # printer's signature mark
    warning: Optional[str] = None  # upstream OCR/translation quality flag
    summary: Optional[str] = None
    meta: List[str] = Field(default_factory=list)
    abbreviations: List[str] = Field(default_factory=list)
    vocabulary: List[str] = Field(default_factory=list)
    keywords: List[str] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not any(getattr(self, name) for name in type(self).model_fields)

    @property
    def page_label(self) -> Optional[str]:
        """
        Short page reference; a folio takes precedence over a page number.
        """
        if self.folio:
            return f"f. {self.folio}"
        if self.page_number:
            return f"p. {self.page_number}"
        return None


class AnnotationSpan(BaseModel):
    """
    A typed fragment of clean text.
    """

    kind: SpanKind
    content: str
    gloss: Optional[str] = None  # term only: "word -> meaning"
    level: Optional[int] = None  # heading only: 1-6
    # center/heading: the content parsed again, so annotations nest
    children: List[AnnotationSpan] = Field(default_factory=list)

    @property
    def display(self) -> str:
        if self.kind in ("center", "heading"):
            return "".join(child.display for child in self.children)
        if self.kind == "term" and self.gloss:
            return f"{self.content} ({self.gloss})"
        if self.kind == "unclear":
            return f"{self.content}?"
        return self.content


class RenderedPage(BaseModel):
    """
    Everything a reader view needs for one page.
    """

    clean_text: str
    metadata: Optional[ExtractedMetadata] = None
    spans: List[AnnotationSpan] = Field(default_factory=list)
    markup: str = ""


IssueType = Literal[
    "unclosed_open",
    "unclosed_close",
    "unknown_tag",
    "empty_tag",
    "nested_bracket",
    "unbalanced_center",
    "unclosed_xml",
    "unknown_xml_tag",
    "empty_xml_tag",
]


class SuggestedFix(BaseModel):
    type: Literal["insert", "delete", "replace"]
    position: int
    text: Optional[str] = None
    length: Optional[int] = None


class ValidationIssue(BaseModel):
    """
    A single formatting problem found in page text.
    """

    type: IssueType
    message: str
    position: int
    length: int
    context: str
    suggested_fix: Optional[SuggestedFix] = None


class ValidationResult(BaseModel):
    valid: bool
    issues: List[ValidationIssue] = Field(default_factory=list)
