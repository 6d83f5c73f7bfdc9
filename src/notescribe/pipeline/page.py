# src/notescribe/pipeline/page.py
from __future__ import annotations
from ..config import READ_MODE, RenderMode
from ..models.schema import RenderedPage
from .extract import extract
from .render import render, render_markup


def render_page(text: str, mode: RenderMode = READ_MODE) -> RenderedPage:
    """
    Extract metadata, then render the clean text.

    Extraction always runs to completion first: metadata and annotation
    directives share the "[[kind: ...]]" shape and must not be matched twice.
    """
    clean_text, metadata = extract(text)
    return RenderedPage(
        clean_text=clean_text,
        metadata=metadata if mode.show_metadata else None,
        spans=render(clean_text, mode),
        markup=render_markup(clean_text, mode),
    )
