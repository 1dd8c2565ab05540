"""Tests for document structure: paragraphs, blank lines, command blocks."""

from __future__ import annotations

from burro.ast import Command, Paragraph, Text
from tests.conftest import assert_command, body_text


class TestEmptyDocument:
    def test_empty(self, parse_source):
        doc = parse_source("")
        assert doc.children == ()

    def test_only_newlines(self, parse_source):
        doc = parse_source("\n\n\n")
        assert doc.children == ()

    def test_only_whitespace_lines(self, parse_source):
        doc = parse_source("  \n\t\n  \n")
        assert doc.children == ()

    def test_only_comments(self, parse_source):
        doc = parse_source("; nothing\n; here\n")
        assert doc.children == ()


class TestParagraphs:
    def test_single_paragraph(self, parse_source):
        doc = parse_source("Hello world.\n")
        assert len(doc.children) == 1
        assert isinstance(doc.children[0], Paragraph)
        assert body_text(doc.children[0]).strip() == "Hello world."

    def test_paragraph_no_trailing_newline(self, parse_source):
        doc = parse_source("Hello world.")
        assert len(doc.children) == 1
        assert isinstance(doc.children[0], Paragraph)

    def test_multiline_paragraph(self, parse_source):
        doc = parse_source("Line one.\nLine two.\n\n")
        assert len(doc.children) == 1
        assert body_text(doc.children[0]).strip() == "Line one. Line two."

    def test_text_is_coalesced(self, parse_source):
        doc = parse_source("a\nb\\.c")
        para = doc.children[0]
        assert len(para.body) == 1
        assert isinstance(para.body[0], Text)
        assert para.body[0].value == "a b.c"

    def test_paragraph_span(self, parse_source):
        doc = parse_source("first\n\nsecond line")
        second = doc.children[1]
        assert second.span.start.line == 3
        assert second.span.start.column == 1

    def test_reading_order(self, parse_source):
        doc = parse_source("a\n\nb\n\nc")
        assert [body_text(p) for p in doc.children] == ["a", "b", "c"]


class TestCommandBlocks:
    def test_lone_command_is_command_block(self, parse_source):
        doc = parse_source(".page_break\n")
        assert len(doc.children) == 1
        assert_command(doc.children[0], "page_break", has_argument=False)

    def test_lone_command_surrounded_by_whitespace(self, parse_source):
        doc = parse_source("  .pt_size[18]  \n")
        assert_command(doc.children[0], "pt_size")

    def test_command_with_text_is_paragraph(self, parse_source):
        doc = parse_source(".bold[Hi] there")
        para = doc.children[0]
        assert isinstance(para, Paragraph)
        assert isinstance(para.body[0], Command)
        assert para.body[1].value == " there"

    def test_setting_then_content_share_a_paragraph(self, parse_source):
        doc = parse_source(".align[center]\n.bold[Burro]")
        assert len(doc.children) == 1
        para = doc.children[0]
        assert isinstance(para, Paragraph)
        names = [n.name for n in para.body if isinstance(n, Command)]
        assert names == ["align", "bold"]

    def test_mixed_blocks(self, parse_source):
        doc = parse_source(".align[justify]\n\nText here.\n\n.page_break\n\nMore.")
        kinds = [type(c).__name__ for c in doc.children]
        assert kinds == ["Command", "Paragraph", "Command", "Paragraph"]

    def test_command_span(self, parse_source):
        doc = parse_source("xx .pt_size[18] yy")
        cmd = doc.children[0].body[1]
        assert cmd.span.start.column == 4
        assert cmd.span.end.column == 16
