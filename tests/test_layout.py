"""
Tests for the layout engine: wrapping, pagination and footers.

A fixed-width measurer stands in for font metrics so line and page counts
are exact: regular glyphs are 5pt wide, bold glyphs 8pt.
"""

import pytest
from pydantic import ValidationError

from src.section1_normalization.schemas import RiskLevel
from src.section2_report_render.config import LayoutConfig
from src.section2_report_render.layout import (
    BarBlock,
    BarRun,
    InstructionKind,
    LayoutEngine,
    LayoutState,
    TextBlock,
    TextRun,
    line_text,
    line_width,
    wrap_text,
)


class FixedWidthMeasure:
    def __init__(self, regular: float = 5.0, bold: float = 8.0):
        self.regular = regular
        self.bold = bold

    def __call__(self, text: str, font_size: float, bold: bool = False) -> float:
        return len(text) * (self.bold if bold else self.regular)


fixed_measure = FixedWidthMeasure()


# Body area runs from y=20 to y=180: sixteen 10pt lines per page
CONFIG = LayoutConfig(
    page_width=300,
    page_height=200,
    margin=20,
    footer_reserve=20,
    line_height_body=10,
    line_height_heading=20,
)
LINES_PER_PAGE = 16


def _line(text: str, **kwargs) -> TextBlock:
    return TextBlock(text=text, font_size=8, line_height=10, **kwargs)


def _layout(blocks, footer_text="Footer"):
    return LayoutEngine(CONFIG, measure=fixed_measure).layout(blocks, footer_text)


class TestWrapText:
    """Test greedy word wrapping."""

    @pytest.mark.parametrize("max_width", [20, 37, 50, 80, 200, 1000])
    def test_words_are_never_split(self, max_width):
        text = "The quick  brown fox jumps over the lazy dog " * 5
        lines = wrap_text(text, max_width, 10, measure=fixed_measure)

        words = [word for line in lines for word in line_text(line).split()]
        assert words == text.split()
        for line in lines:
            assert not line_text(line)[:1].isspace()
            assert line_width(line) <= max_width or len(line) == 1

    def test_interior_whitespace_is_kept(self):
        lines = wrap_text("a  b", 1000, 10, measure=fixed_measure)
        assert [line_text(line) for line in lines] == ["a  b"]

    def test_overlong_word_gets_own_line(self):
        lines = wrap_text("tiny supercalifragilistic tiny", 30, 10, measure=fixed_measure)
        assert [line_text(line) for line in lines] == ["tiny", "supercalifragilistic", "tiny"]

    def test_newlines_force_breaks(self):
        lines = wrap_text("alpha\n\nbeta", 1000, 10, measure=fixed_measure)
        assert [line_text(line) for line in lines] == ["alpha", "", "beta"]

    def test_bold_width_decides_the_break(self):
        plain = wrap_text("aaaa fraud", 55, 10, measure=fixed_measure)
        emphasized = wrap_text("aaaa fraud", 55, 10, emphasize=True, measure=fixed_measure)

        assert len(plain) == 1
        assert len(emphasized) == 2
        assert emphasized[1][0].bold is True

    def test_empty_text_is_one_empty_line(self):
        assert wrap_text("", 100, 10, measure=fixed_measure) == [[]]


class TestPagination:
    """Test overflow-driven page breaks."""

    @pytest.mark.parametrize("pages", [1, 2, 3, 4])
    def test_exact_page_count(self, pages):
        blocks = [_line(f"Line {index}") for index in range(LINES_PER_PAGE * pages)]
        result = _layout(blocks)

        assert len(result) == pages
        assert all(len(page.body) == LINES_PER_PAGE for page in result)

    def test_one_extra_line_adds_a_page(self):
        blocks = [_line(f"Line {index}") for index in range(LINES_PER_PAGE * 2 + 1)]
        assert len(_layout(blocks)) == 3

    def test_body_stays_above_footer_reserve(self):
        blocks = [_line(f"Line {index}") for index in range(50)]
        blocks.append(BarBlock(label="Visual Artifacts", value=35, risk_level=RiskLevel.HIGH, font_size=8, line_height=10))

        for page in _layout(blocks):
            for instruction in page.body:
                if isinstance(instruction, BarRun):
                    assert instruction.y + instruction.height <= CONFIG.body_limit
                else:
                    assert instruction.y <= CONFIG.body_limit

    def test_block_taller_than_page_terminates(self):
        text = "\n".join(f"row {index}" for index in range(40))
        result = _layout([_line(text)])

        assert len(result) == 3
        assert [len(page.body) for page in result] == [16, 16, 8]

    def test_pages_are_numbered(self):
        blocks = [_line(f"Line {index}") for index in range(40)]
        assert [page.number for page in _layout(blocks)] == [1, 2, 3]

    def test_list_continuation_marker(self):
        blocks = [_line(f"item {index}", prefix=f"{index}. ", list_id="reasons") for index in range(1, 21)]
        first, second = _layout(blocks)

        assert all(run.kind is not InstructionKind.MARKER for run in first.body)
        marker = second.body[0]
        assert marker.kind is InstructionKind.MARKER
        assert marker.text == "(continued)"
        assert marker.y <= CONFIG.margin + CONFIG.line_height_body

    def test_no_marker_outside_lists(self):
        blocks = [_line(f"Line {index}") for index in range(20)]
        second = _layout(blocks)[1]

        assert all(run.kind is not InstructionKind.MARKER for run in second.body)

    def test_no_marker_before_first_list_item(self):
        blocks = [_line(f"Line {index}") for index in range(15)]
        blocks.append(_line("first line\nsecond line", prefix="1. ", list_id="reasons"))
        second = _layout(blocks)[1]

        assert second.body[0].kind is InstructionKind.TEXT
        assert second.body[0].text == "1. "

    def test_heading_moves_with_multi_line_first_item(self):
        blocks = [_line(f"Line {index}") for index in range(14)]
        blocks.append(_line("Reasons", bold=True, keep_with_next=True))
        blocks.append(_line("first line\nsecond line", prefix="1. ", list_id="reasons"))
        first, second = _layout(blocks)

        assert "Reasons" not in first.text
        assert second.body[0].text == "Reasons"
        assert [run.text for run in second.body[1:]] == ["1. ", "first line", "second line"]

    def test_heading_stays_when_first_item_fits(self):
        blocks = [_line(f"Line {index}") for index in range(13)]
        blocks.append(_line("Reasons", bold=True, keep_with_next=True))
        blocks.append(_line("first line\nsecond line", prefix="1. ", list_id="reasons"))
        (page,) = _layout(blocks)

        assert "Reasons" in page.text

    def test_block_height(self):
        engine = LayoutEngine(CONFIG, measure=fixed_measure)

        assert engine.block_height(_line("one\ntwo\nthree")) == 30
        assert engine.block_height(
            BarBlock(label="Visual Artifacts", value=35, risk_level=RiskLevel.HIGH, font_size=8, line_height=10)
        ) == 20

    def test_emphasis_runs_are_positioned(self):
        (page,) = _layout([_line("Document was Tampered. badly", emphasize=True)])

        assert [run.text for run in page.body] == ["Document was ", "Tampered.", " badly"]
        assert [run.bold for run in page.body] == [False, True, False]
        assert [run.x for run in page.body] == [20.0, 85.0, 157.0]

    def test_bar_block(self):
        (page,) = _layout([
            BarBlock(label="Visual Artifacts", value=35, risk_level=RiskLevel.HIGH, font_size=8, line_height=10),
        ])
        label, bar = page.body

        assert label.text == "Visual Artifacts: 35%"
        assert bar.fill_ratio == pytest.approx(0.35)
        assert bar.width == CONFIG.content_width
        assert bar.risk_level == RiskLevel.HIGH


class TestFooters:
    """Test the footer pass."""

    def test_every_page_has_one_identical_footer(self):
        blocks = [_line(f"Line {index}") for index in range(40)]
        pages = _layout(blocks)

        assert all(len(page.footers) == 1 for page in pages)
        assert all(page.instructions[-1] == page.footer for page in pages)
        assert len({page.footer.text for page in pages}) == 1
        assert pages[0].footer.text == "Footer - 3 pages"

    def test_single_page_footer(self):
        (page,) = _layout([_line("only line")])

        assert page.footer.text == "Footer - 1 page"
        assert page.footer.y > CONFIG.body_limit

    def test_footer_clears_body_and_page_edge(self):
        blocks = [_line(f"Line {index}") for index in range(40)]

        for page in _layout(blocks):
            footer = page.footer
            assert footer.y - footer.font_size >= CONFIG.body_limit
            assert footer.y + footer.font_size / 2 <= CONFIG.page_height
            assert all(run.y < footer.y - footer.font_size for run in page.body)

    def test_footer_is_centered(self):
        (page,) = _layout([_line("only line")])
        width = fixed_measure(page.footer.text, 8)

        assert page.footer.x == pytest.approx((CONFIG.page_width - width) / 2)


class TestEngineState:
    """Test the engine's lifecycle."""

    def test_layout_finishes_engine(self):
        engine = LayoutEngine(CONFIG, measure=fixed_measure)
        engine.layout([_line("text")], "Footer")

        assert engine.state is LayoutState.DONE

    def test_write_after_finish_raises(self):
        engine = LayoutEngine(CONFIG, measure=fixed_measure)
        engine.finish()

        with pytest.raises(RuntimeError):
            engine.write(_line("too late"))

    def test_unknown_block_type_raises(self):
        engine = LayoutEngine(CONFIG, measure=fixed_measure)

        with pytest.raises(TypeError):
            engine.write(TextRun(text="not a block", x=0, y=0, font_size=8))


class TestLayoutConfig:
    """Test geometry validation."""

    def test_camel_case_names(self):
        config = LayoutConfig(
            pageWidth=300,
            pageHeight=200,
            margin=20,
            footerReserve=20,
            lineHeightBody=10,
            lineHeightHeading=20,
        )
        assert config == CONFIG

    def test_derived_geometry(self):
        assert CONFIG.content_width == 260
        assert CONFIG.body_limit == 180

    def test_margins_wider_than_page(self):
        with pytest.raises(ValidationError):
            LayoutConfig(
                page_width=300, page_height=200, margin=160,
                footer_reserve=20, line_height_body=10, line_height_heading=20,
            )

    def test_page_too_short_for_marker_and_line(self):
        with pytest.raises(ValidationError):
            LayoutConfig(
                page_width=300, page_height=60, margin=20,
                footer_reserve=20, line_height_body=10, line_height_heading=20,
            )

    @pytest.mark.parametrize("footer_reserve", [0, 8, 15])
    def test_footer_reserve_too_small_for_footer(self, footer_reserve):
        with pytest.raises(ValidationError):
            LayoutConfig(
                pageWidth=300, pageHeight=200, margin=20,
                footerReserve=footer_reserve, lineHeightBody=10, lineHeightHeading=20,
            )

    def test_default_is_a4(self):
        config = LayoutConfig.default()
        assert (config.page_width, config.page_height) == (595, 842)
