"""Tests for notescribe.pipeline.render inline annotations."""

import pytest

from notescribe.config import EDIT_MODE, READ_MODE, RenderMode
from notescribe.pipeline.render import (
    escape_numbered_paragraphs,
    parse_annotations,
    render,
    render_markup,
    to_plain_text,
)

NOTES_OFF = RenderMode(show_notes=False)


def kinds(spans):
    return [s.kind for s in spans]


class TestTerms:
    def test_term_visible_when_notes_hidden(self):
        spans = render(
            "See [[term: opus → work]] here [[note: editorial aside]]", NOTES_OFF
        )
        text = to_plain_text(spans)
        assert "opus (work)" in text
        assert "editorial aside" not in text
        assert kinds(spans) == ["text", "term", "text"]

    def test_ascii_arrow_gloss(self):
        (span,) = parse_annotations("[[term: lapis -> stone]]")
        assert span.content == "lapis"
        assert span.gloss == "stone"

    def test_term_without_gloss(self):
        (span,) = parse_annotations("[[term: azoth]]")
        assert span.gloss is None
        assert span.display == "azoth"

    def test_arrow_inside_term_is_not_centering(self):
        spans = parse_annotations("[[term: opus -> work]] and later <- stray")
        assert kinds(spans) == ["term", "text"]
        assert spans[0].gloss == "work"
        assert spans[1].content == " and later <- stray"

    def test_term_markup(self):
        assert render_markup("[[term: opus → work]]") == (
            '<span class="term-note"><em>opus</em> (work)</span>'
        )


class TestNotes:
    def test_note_shown_by_default(self):
        spans = render("Text [[note: editorial aside]]")
        assert spans[-1].kind == "note"
        assert spans[-1].content == "editorial aside"

    def test_notes_plural_is_a_note(self):
        (span,) = parse_annotations("[[notes: two things]]")
        assert span.kind == "note"

    @pytest.mark.parametrize("kind", ["note", "margin", "gloss", "insert", "unclear"])
    def test_hidden_kinds_are_elided(self, kind):
        spans = render(f"a [[{kind}: hidden]] b", NOTES_OFF)
        assert kinds(spans) == ["text"]
        assert spans[0].content == "a  b"

    def test_unclear_gets_question_mark(self):
        (span,) = render("[[unclear: illegible]]")
        assert span.display == "illegible?"
        assert render_markup("[[unclear: illegible]]") == (
            '<span class="unclear-text">illegible?</span>'
        )

    def test_multiline_note(self):
        (span,) = parse_annotations("[[margin: Nota\nbene]]")
        assert span.kind == "margin"
        assert span.content == "Nota\nbene"

    def test_tag_syntax_annotations(self):
        spans = parse_annotations(
            "<margin>Nota bene</margin> text <term>aqua → water</term>"
        )
        assert kinds(spans) == ["margin", "text", "term"]
        assert spans[2].gloss == "water"

    def test_markup_escapes_content(self):
        assert render_markup("[[note: a < b & c]]") == (
            '<span class="inline-note">a &lt; b &amp; c</span>'
        )


class TestImageDescriptions:
    TEXT = "Text\n\n[[image: woodcut of a dragon]]\n\nMore"

    def test_hidden_in_read_mode(self):
        assert "woodcut" not in to_plain_text(render(self.TEXT, READ_MODE))

    def test_shown_in_edit_mode(self):
        spans = render(self.TEXT, EDIT_MODE)
        assert "image" in kinds(spans)

    def test_independent_of_show_notes(self):
        reveal_only = RenderMode(show_notes=False, reveal_image_descriptions=True)
        notes_only = RenderMode(show_notes=True, reveal_image_descriptions=False)
        assert "image" in kinds(render(self.TEXT, reveal_only))
        assert "image" not in kinds(render(self.TEXT, notes_only))

    def test_tag_form(self):
        (span,) = parse_annotations("<image-desc>a lion</image-desc>")
        assert span.kind == "image"


class TestCentering:
    def test_heading_inside_arrows(self):
        (span,) = render("->## Title<-")
        assert span.kind == "heading"
        assert span.level == 2
        assert span.content == "Title"

    def test_heading_before_arrows(self):
        (span,) = render("### ->Book Three<-")
        assert span.kind == "heading"
        assert span.level == 3
        assert span.content == "Book Three"

    def test_trailing_hashes_dropped(self):
        (span,) = render("# ->Chapter One #<-")
        assert span.level == 1
        assert span.content == "Chapter One"

    def test_heading_markup(self):
        assert render_markup("->## Title<-") == '<h2 class="text-center">Title</h2>'

    def test_centered_block_line_breaks(self):
        (span,) = render("->IN NOMINE\n  DOMINI<-")
        assert span.kind == "center"
        assert span.content == "IN NOMINE\nDOMINI"
        assert render_markup("->IN NOMINE\n  DOMINI<-") == (
            '<div class="text-center">IN NOMINE<br>DOMINI</div>'
        )

    def test_more_than_six_hashes_is_not_a_heading(self):
        (span,) = render("->####### x<-")
        assert span.kind == "center"
        assert span.content == "####### x"

    def test_double_colon_block(self):
        (span,) = render("::FINIS::")
        assert span.kind == "center"
        assert span.content == "FINIS"

    def test_centering_does_not_cross_paragraphs(self):
        text = "->A\n\nB<-"
        assert kinds(parse_annotations(text)) == ["text"]
        assert to_plain_text(render(text)) == text

    def test_annotations_nest_inside_centering(self):
        (span,) = render("->[[note: aside]] TITLE<-", NOTES_OFF)
        assert span.kind == "center"
        assert kinds(span.children) == ["text"]
        markup = render_markup("->[[note: aside]] TITLE<-", NOTES_OFF)
        assert "aside" not in markup
        assert "TITLE" in markup

    def test_fully_hidden_block_is_dropped(self):
        text = "Intro ->[[note: aside]]<- end"
        spans = render(text, NOTES_OFF)
        assert kinds(spans) == ["text"]
        assert spans[0].content == "Intro  end"
        assert "text-center" not in render_markup(text, NOTES_OFF)


class TestNumberedParagraphs:
    def test_period_escaped(self):
        text = "12. In the beginning\n13. And the earth"
        assert escape_numbered_paragraphs(text) == (
            "12\\. In the beginning\n13\\. And the earth"
        )

    def test_escape_is_idempotent(self):
        once = escape_numbered_paragraphs("7. Verse")
        assert escape_numbered_paragraphs(once) == once

    def test_mid_line_number_untouched(self):
        text = "In the year 1600. Then"
        assert escape_numbered_paragraphs(text) == text

    def test_markup_applies_guard(self):
        assert render_markup("1. First [[term: opus]]").startswith("1\\. First")


class TestPassThrough:
    @pytest.mark.parametrize(
        "text",
        [
            "Just prose.",
            "[[term: unterminated",
            "a -> b without a closing marker",
            "<em>inline html</em>",
            "",
        ],
    )
    def test_unmatched_syntax_is_literal(self, text):
        assert to_plain_text(render(text)) == text

    def test_render_is_deterministic(self):
        text = "->## T<- [[term: a → b]] [[note: n]] ::c::"
        assert render(text, NOTES_OFF) == render(text, NOTES_OFF)
