# src/notescribe/__init__.py
from __future__ import annotations

__version__ = "0.1.0"

from .config import EDIT_MODE, READ_MODE, RenderMode
from .models.schema import AnnotationSpan, ExtractedMetadata, RenderedPage
from .pipeline.directives import detect_syntax
from .pipeline.extract import extract, extract_metadata
from .pipeline.migrate import migrate_text
from .pipeline.page import render_page
from .pipeline.render import (
    escape_numbered_paragraphs,
    parse_annotations,
    render,
    render_markup,
    to_plain_text,
)
from .pipeline.validate import apply_fix, cleanup_empty_tags, validate_text

__all__ = [
    "__version__",
    "AnnotationSpan",
    "EDIT_MODE",
    "ExtractedMetadata",
    "READ_MODE",
    "RenderMode",
    "RenderedPage",
    "apply_fix",
    "cleanup_empty_tags",
    "detect_syntax",
    "escape_numbered_paragraphs",
    "extract",
    "extract_metadata",
    "migrate_text",
    "parse_annotations",
    "render",
    "render_markup",
    "render_page",
    "to_plain_text",
    "validate_text",
]
