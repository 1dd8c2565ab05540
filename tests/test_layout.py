"""Tests for the layout engine.

FixedMetrics makes every glyph half the point size wide, so at the default
12pt each character is 6pt and the default column (612 - 2 * 72) holds 78.
"""

from __future__ import annotations

import pytest

import burro
from burro.errors import (
    DuplicateDefinitionError,
    FontResolutionError,
    LayoutError,
    LayoutOverflowWarning,
    StateUnderflowError,
    TabEnvironmentError,
    TabNavigationOutOfRangeError,
    UndefinedTabListError,
)
from burro.layout import AUTO_LEADING, PageGeometry
from tests.conftest import placement, texts

LEFT = 72.0
RIGHT = 612.0 - 72.0
FIRST_BASELINE = 72.0 + AUTO_LEADING * 12


class TestScenarios:
    def test_centered_bold(self, typeset):
        layout = typeset(".align[center]\n.bold[Burro]")
        assert len(layout.placements) == 1
        p = layout.placements[0]
        assert p.text == "Burro"
        assert p.font == "times-bold"
        assert p.x == pytest.approx(LEFT + (468 - 30) / 2)
        assert p.y == pytest.approx(FIRST_BASELINE)

    def test_point_size_push_and_pop(self, typeset):
        layout = typeset(".pt_size[18]\nHello\n.pt_size[-]\nWorld")
        hello = placement(layout, "Hello")
        world = placement(layout, "World")
        assert hello.size == 18.0
        assert world.size == 12.0

    def test_variable_placement(self, typeset):
        layout = typeset("#define(x)(Hi)\n~x")
        assert texts(layout) == ["Hi"]

    def test_undefined_tab_list(self, typeset):
        with pytest.raises(UndefinedTabListError, match="undefined tab list: L"):
            typeset(".load_tabs[L]")

    def test_non_quad_tab_keeps_one_baseline(self, typeset):
        layout = typeset(
            ".tab{.length[60] .quad[false]}[narrow]\n\n"
            ".tab_list{.tab[narrow]}[L]\n\n"
            ".load_tabs[L]\n.tab[narrow] one two three four five six seven"
        )
        assert texts(layout) == ["one two three four five six seven"]
        assert layout.placements[0].x == pytest.approx(LEFT)

    def test_quad_tab_wraps(self, typeset):
        layout = typeset(
            ".tab{.length[60]}[narrow]\n\n"
            ".tab_list{.tab[narrow]}[L]\n\n"
            ".load_tabs[L]\n.tab[narrow] one two three four five six seven"
        )
        assert texts(layout) == ["one two", "three four", "five six", "seven"]
        ys = [p.y for p in layout.placements]
        assert ys == sorted(ys)
        assert len(set(ys)) == 4


class TestLineBreaking:
    def test_words_merge_into_one_placement(self, typeset):
        layout = typeset("Hello   world\nagain")
        assert texts(layout) == ["Hello world again"]

    def test_greedy_wrap(self, typeset):
        words = ["aaaa"] * 20
        layout = typeset(" ".join(words))
        # 15 words (444pt) fit in 468pt, the 16th would need 474pt
        assert texts(layout) == [" ".join(words[:15]), " ".join(words[15:])]
        assert layout.placements[1].y == pytest.approx(FIRST_BASELINE + AUTO_LEADING * 12)

    def test_mixed_style_word(self, typeset):
        layout = typeset("a.bold[b]c")
        assert texts(layout) == ["a", "b", "c"]
        assert [p.x for p in layout.placements] == pytest.approx([72.0, 78.0, 84.0])
        assert layout.placements[1].font == "times-bold"

    def test_style_changes_split_placements(self, typeset):
        layout = typeset("a .bold[b c] d")
        assert texts(layout) == ["a", "b c", "d"]

    def test_nested_styles(self, typeset):
        layout = typeset(".bold[.italic[x]] .i y")
        assert placement(layout, "x").font == "times-bold_italic"
        assert placement(layout, "y").font == "times-italic"

    def test_family(self, typeset):
        layout = typeset(".family[courier]\nmono .family[-]\nserif")
        assert placement(layout, "mono").font == "courier-roman"
        assert placement(layout, "serif").font == "times-roman"

    def test_long_word_overflows(self, typeset):
        layout = typeset("x" * 100)
        assert len(layout.placements) == 1
        assert len(layout.warnings) == 1
        assert "right margin" in layout.warnings[0].message


class TestAlignment:
    def test_right(self, typeset):
        layout = typeset(".align[right]\nabc")
        assert layout.placements[0].x == pytest.approx(RIGHT - 18)

    def test_center(self, typeset):
        layout = typeset(".align[center]\nabcd")
        assert layout.placements[0].x == pytest.approx(LEFT + (468 - 24) / 2)

    def test_justify_fills_width(self, typeset):
        layout = typeset(".align[justify]\n" + " ".join(["aaaa"] * 20))
        first_line = [p for p in layout.placements if p.y == layout.placements[0].y]
        assert len(first_line) == 15
        assert first_line[0].x == pytest.approx(LEFT)
        assert first_line[-1].x + 24 == pytest.approx(RIGHT)

    def test_justify_last_line_is_ragged(self, typeset):
        layout = typeset(".align[justify]\n" + " ".join(["aaaa"] * 20))
        last = layout.placements[-1]
        assert last.text == " ".join(["aaaa"] * 5)
        assert last.x == pytest.approx(LEFT)

    def test_block_command_flushes_line(self, typeset):
        layout = typeset("first\n.align[center]\nsecond")
        first = placement(layout, "first")
        second = placement(layout, "second")
        assert first.x == pytest.approx(LEFT)
        assert second.y > first.y
        assert second.x == pytest.approx(LEFT + (468 - 36) / 2)

    def test_alignment_straddles_paragraphs(self, typeset):
        layout = typeset(".align[right]\n\none\n\ntwo\n\n.align[-]\n\nthree")
        assert placement(layout, "two").x == pytest.approx(RIGHT - 18)
        assert placement(layout, "three").x == pytest.approx(LEFT)


class TestSettings:
    def test_explicit_leading(self, typeset):
        layout = typeset(".leading[20]\n\none\n\ntwo")
        assert [p.y for p in layout.placements] == pytest.approx([92.0, 112.0])

    def test_relative_leading_from_auto(self, typeset):
        layout = typeset(".leading[+2]\n\none")
        assert layout.placements[0].y == pytest.approx(72 + 14.4 + 2)

    def test_par_space(self, typeset):
        layout = typeset(".par_space[10]\n\none\n\ntwo")
        one, two = layout.placements
        assert one.y == pytest.approx(FIRST_BASELINE)
        assert two.y == pytest.approx(FIRST_BASELINE + 10 + 14.4)

    def test_par_indent_first_line_only(self, typeset):
        layout = typeset(".par_indent[24]\n\n" + " ".join(["aaaa"] * 20))
        assert layout.placements[0].x == pytest.approx(LEFT + 24)
        assert layout.placements[-1].x == pytest.approx(LEFT)

    def test_relative_margin(self, typeset):
        layout = typeset(".margin_left[+36]\nx")
        assert layout.placements[0].x == pytest.approx(108.0)

    def test_margins_reset_pops_all_four(self, typeset):
        layout = typeset(".margins[2in]\n\na\n\n.margins[-]\n\nb")
        assert placement(layout, "a").x == pytest.approx(144.0)
        assert placement(layout, "b").x == pytest.approx(72.0)

    def test_reset_underflow(self, typeset):
        with pytest.raises(StateUnderflowError) as exc_info:
            typeset("text\n\n.pt_size[-]")
        assert exc_info.value.span.start.line == 3

    def test_negative_point_size(self, typeset):
        with pytest.raises(LayoutError, match="pt_size must be positive"):
            typeset(".pt_size[-20]\nx")

    def test_unknown_family(self, typeset):
        with pytest.raises(FontResolutionError, match="unknown font family: nosuch"):
            typeset(".family[nosuch]\nx")


class TestPages:
    def test_empty_document_has_one_page(self, typeset):
        layout = typeset("")
        assert layout.placements == ()
        assert layout.pages == (PageGeometry(612.0, 792.0, 72.0, 72.0, 72.0, 72.0),)

    def test_page_break(self, typeset):
        layout = typeset("one\n\n.page_break\n\ntwo")
        assert len(layout.pages) == 2
        assert placement(layout, "one").page == 0
        two = placement(layout, "two")
        assert two.page == 1
        assert two.y == pytest.approx(FIRST_BASELINE)

    def test_overflow_allocates_page(self, typeset):
        layout = typeset(".page_height[200]\n\na\n\nb\n\nc\n\nd")
        assert layout.pages[0].height == 200.0
        assert [p.page for p in layout.placements] == [0, 0, 0, 1]
        assert placement(layout, "d").y == pytest.approx(FIRST_BASELINE)

    def test_par_space_skipped_at_page_top(self, typeset):
        layout = typeset(".par_space[10]\n\n.page_height[200]\n\na\n\nb\n\nc")
        c = placement(layout, "c")
        assert c.page == 1
        assert c.y == pytest.approx(FIRST_BASELINE)

    def test_descenders_must_clear_bottom_margin(self, typeset):
        # Bottom limit 117: the third baseline (115.2) fits, its descent (2.4) does not
        layout = typeset(".page_height[189]\n\na\n\nb\n\nc")
        assert [p.page for p in layout.placements] == [0, 0, 1]
        assert layout.warnings == ()

    def test_leading_taller_than_page_warns(self, typeset):
        layout = typeset(".leading[2000]\nx y")
        xy = placement(layout, "x y")
        assert xy.page == 0
        assert xy.y == pytest.approx(2072.0)
        assert len(layout.pages) == 1
        assert [w.message for w in layout.warnings] == ["line runs past the bottom margin"]

    def test_each_oversized_line_warns_on_its_own_page(self, typeset):
        layout = typeset(".leading[2000]\n\na\n\nb")
        assert [p.page for p in layout.placements] == [0, 1]
        assert [w.page for w in layout.warnings] == [0, 1]

    def test_page_size_applies_to_next_page(self, typeset):
        layout = typeset("a\n\n.page_width[300]\n\n.page_break\n\nb")
        assert layout.pages[0].width == 612.0
        assert layout.pages[1].width == 300.0


TAB_PREAMBLE = (
    ".tab{.length[100]}[a]\n"
    ".tab{.indent[150] .length[100] .direction[right]}[b]\n"
    ".tab_list{.tab[a] .tab[b]}[L]\n\n"
)


class TestTabs:
    def test_rows_and_columns(self, typeset):
        layout = typeset(
            TAB_PREAMBLE
            + ".load_tabs[L]\n.tab[a] Name .tab[b] 42 .tab[a] Other .tab[b] 7\n.quit_tabs\nAfter"
        )
        row1 = FIRST_BASELINE
        row2 = FIRST_BASELINE + 14.4
        assert (placement(layout, "Name").x, placement(layout, "Name").y) == pytest.approx((72.0, row1))
        assert (placement(layout, "42").x, placement(layout, "42").y) == pytest.approx((310.0, row1))
        assert (placement(layout, "Other").x, placement(layout, "Other").y) == pytest.approx((72.0, row2))
        assert (placement(layout, "7").x, placement(layout, "7").y) == pytest.approx((316.0, row2))
        after = placement(layout, "After")
        assert (after.x, after.y) == pytest.approx((72.0, row2 + 14.4))

    def test_next_tab_navigation(self, typeset):
        layout = typeset(TAB_PREAMBLE + ".load_tabs[L]\n.next_tab x .next_tab y .previous_tab z")
        x, y, z = (placement(layout, t) for t in "xyz")
        assert x.y == y.y
        assert z.y > y.y
        assert z.x == pytest.approx(72.0)

    def test_quit_restores_alignment(self, typeset):
        layout = typeset(
            TAB_PREAMBLE + ".align[right]\n\n.load_tabs[L]\n\n.tab[a] x\n\n.quit_tabs\n\nEnd"
        )
        assert placement(layout, "x").x == pytest.approx(72.0)
        assert placement(layout, "End").x == pytest.approx(RIGHT - 18)

    def test_definitions_may_follow_use(self, typeset):
        layout = typeset(".load_tabs[L]\n.tab[a] x\n.quit_tabs\n\n" + TAB_PREAMBLE)
        assert texts(layout) == ["x"]

    def test_wide_tab_warns(self, typeset):
        layout = typeset(
            ".tab{.indent[400] .length[100]}[w]\n.tab_list{.tab[w]}[W]\n\n.load_tabs[W]\n.tab[w] x"
        )
        assert len(layout.warnings) == 1
        assert isinstance(layout.warnings[0], LayoutOverflowWarning)
        assert "tab 'w'" in layout.warnings[0].message

    def test_non_quad_past_right_margin_warns(self, typeset):
        layout = typeset(
            ".tab{.length[60] .quad[false]}[n]\n.tab_list{.tab[n]}[N]\n\n"
            ".load_tabs[N]\n.tab[n] " + " ".join(["word"] * 30)
        )
        assert len(layout.placements) == 1
        assert [w.message for w in layout.warnings] == ["line runs past the right margin"]

    def test_navigation_error(self, typeset):
        with pytest.raises(TabNavigationOutOfRangeError):
            typeset(TAB_PREAMBLE + ".load_tabs[L]\n.tab[b]\n.next_tab")

    def test_nested_load(self, typeset):
        with pytest.raises(TabEnvironmentError):
            typeset(TAB_PREAMBLE + ".load_tabs[L]\n\n.load_tabs[L]")

    def test_tab_without_environment(self, typeset):
        with pytest.raises(TabEnvironmentError, match="without a loaded tab list"):
            typeset(TAB_PREAMBLE + ".tab[a] x")

    def test_duplicate_tab_definition(self, typeset):
        with pytest.raises(DuplicateDefinitionError, match="duplicate tab definition: a"):
            typeset(TAB_PREAMBLE + ".tab{.length[5]}[a]")


class TestCompile:
    def test_builtin_fonts(self):
        layout = burro.compile(".bold[Hello] world")
        assert [p.font for p in layout.placements] == ["Times-Bold", "Times-Roman"]

    def test_custom_metrics(self, metrics):
        layout = burro.compile("Hello", fonts=metrics)
        assert layout.placements[0].font == "times-roman"
