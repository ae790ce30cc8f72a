"""
Layout engine for paginated reports.

Blocks are laid out top to bottom with a single forward cursor. Before a
block is written its height is computed from its wrapped lines; if it does
not fit above the footer reserve a new page is started. Footers are stamped
in a separate pass once the total page count is known.

Coordinates are PDF points with the origin at the top-left corner. The y of
a text run is its baseline.
"""

import logging
from enum import Enum
from typing import Callable, Literal, Optional, Union

import fitz  # PyMuPDF
from pydantic import BaseModel, ConfigDict, Field

from ..section1_normalization.schemas import RiskLevel
from .config import LayoutConfig, RendererConfig
from .text import is_risk_term, sanitize_text, split_preserving_whitespace

logger = logging.getLogger(__name__)

# (text, font_size, bold) -> width in points
Measure = Callable[[str, float, bool], float]


def measure_text(text: str, font_size: float, bold: bool = False) -> float:
    """Width of text in the report's regular or bold base-14 font."""
    fontname = RendererConfig.BOLD_FONT if bold else RendererConfig.BODY_FONT
    return fitz.get_text_length(text, fontname=fontname, fontsize=font_size)


class InstructionKind(str, Enum):
    TEXT = "text"
    MARKER = "marker"
    FOOTER = "footer"


class TextRun(BaseModel):
    """A run of text drawn in one font at one position."""
    model_config = ConfigDict(frozen=True)

    kind: InstructionKind = InstructionKind.TEXT
    text: str
    x: float
    y: float
    font_size: float
    bold: bool = False


class BarRun(BaseModel):
    """A horizontal score bar: a full-width track filled to fill_ratio."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["bar"] = "bar"
    x: float
    y: float
    width: float
    height: float
    fill_ratio: float = Field(..., ge=0.0, le=1.0)
    risk_level: RiskLevel


Instruction = Union[TextRun, BarRun]


class Page(BaseModel):
    """One fixed-size page; the last instruction is always its footer."""
    number: int = Field(..., ge=1)
    instructions: list[Instruction] = Field(default_factory=list)

    @property
    def footers(self) -> list[TextRun]:
        return [
            instruction for instruction in self.instructions
            if isinstance(instruction, TextRun) and instruction.kind is InstructionKind.FOOTER
        ]

    @property
    def footer(self) -> Optional[TextRun]:
        footers = self.footers
        return footers[-1] if footers else None

    @property
    def body(self) -> list[Instruction]:
        return [
            instruction for instruction in self.instructions
            if not (isinstance(instruction, TextRun) and instruction.kind is InstructionKind.FOOTER)
        ]

    @property
    def text(self) -> str:
        """All body text on the page, one run per line of output."""
        return "\n".join(run.text for run in self.body if isinstance(run, TextRun))


class Segment(BaseModel):
    """A measured word or whitespace token inside a wrapped line."""
    model_config = ConfigDict(frozen=True)

    text: str
    bold: bool = False
    width: float = 0.0


WrappedLine = list[Segment]


def line_text(line: WrappedLine) -> str:
    return "".join(segment.text for segment in line)


def line_width(line: WrappedLine) -> float:
    return sum(segment.width for segment in line)


def wrap_text(
    text: str,
    max_width: float,
    font_size: float,
    *,
    emphasize: bool = False,
    bold: bool = False,
    measure: Measure = measure_text,
) -> list[WrappedLine]:
    """
    Greedy word wrap that never splits a word.

    Whitespace between words on the same line is kept verbatim; whitespace
    at a line break is dropped. A newline forces a break. With emphasize,
    risk-vocabulary words are measured in the bold face before deciding
    whether they still fit. A word wider than max_width gets a line of its
    own. Always returns at least one (possibly empty) line.
    """
    lines: list[WrappedLine] = []
    current: WrappedLine = []
    width = 0.0
    pending = ""

    for token in split_preserving_whitespace(text):
        if token.isspace():
            newlines = token.count("\n")
            if newlines:
                lines.append(current)
                lines.extend([] for _ in range(newlines - 1))
                current, width, pending = [], 0.0, ""
            elif current:
                pending = token
            continue

        word_bold = bold or (emphasize and is_risk_term(token))
        word_width = measure(token, font_size, word_bold)
        space_width = measure(pending, font_size, bold) if pending else 0.0

        if current and width + space_width + word_width > max_width:
            lines.append(current)
            current, width = [], 0.0
        elif pending:
            current.append(Segment(text=pending, bold=bold, width=space_width))
            width += space_width

        current.append(Segment(text=token, bold=word_bold, width=word_width))
        width += word_width
        pending = ""

    if current or not lines:
        lines.append(current)
    return lines


def merge_runs(line: WrappedLine) -> list[Segment]:
    """Join adjacent segments that share a font into single runs."""
    runs: list[Segment] = []
    for segment in line:
        if runs and runs[-1].bold == segment.bold:
            previous = runs[-1]
            runs[-1] = Segment(
                text=previous.text + segment.text,
                bold=previous.bold,
                width=previous.width + segment.width,
            )
        else:
            runs.append(segment)
    return runs


class TextBlock(BaseModel):
    """A logical block of text: a heading, a paragraph or one list item."""
    text: str
    font_size: float
    line_height: float
    bold: bool = False
    emphasize: bool = False
    align: Literal["left", "center"] = "left"
    # Drawn before the first line; later lines hang-indent past it
    prefix: str = ""
    # Consecutive blocks with the same list_id form one enumeration
    list_id: Optional[str] = None
    # Move to a new page together with the whole following block
    keep_with_next: bool = False
    space_after: float = 0.0


class BarBlock(BaseModel):
    """A labelled score bar: one label line, then one bar line."""
    label: str
    value: int = Field(..., ge=0, le=100)
    risk_level: RiskLevel
    font_size: float
    line_height: float
    space_after: float = 0.0


Block = Union[TextBlock, BarBlock]


class LayoutState(str, Enum):
    WRITING_BLOCK = "writing_block"
    PAGE_BREAK_PENDING = "page_break_pending"
    DONE = "done"


class LayoutEngine:
    """
    Single-pass, forward-only block layout.

    State: current_page, cursor_y and a LayoutState. A page break is only
    taken when the current page already holds body content, so every block
    makes progress and pagination always terminates.
    """

    def __init__(self, config: LayoutConfig, measure: Measure = measure_text):
        self.config = config
        self.measure = measure
        self.state = LayoutState.WRITING_BLOCK
        self.current_page = 1
        self.cursor_y = config.margin
        self._pages: list[list[Instruction]] = [[]]
        self._page_has_body = False
        self._open_list: Optional[str] = None

    @property
    def page_count(self) -> int:
        return len(self._pages)

    def fits(self, required: float) -> bool:
        return self.cursor_y + required <= self.config.body_limit

    def block_height(self, block: Block) -> float:
        """Height a block needs when laid out in one piece."""
        if isinstance(block, BarBlock):
            return (len(self._bar_label_lines(block)) + 1) * block.line_height
        if isinstance(block, TextBlock):
            _, _, lines = self._wrap_block(block)
            return len(lines) * block.line_height
        raise TypeError(f"Unsupported block type: {type(block).__name__}")

    def write(self, block: Block, keep_height: float = 0.0) -> None:
        if isinstance(block, TextBlock):
            self.write_text(block, keep_height)
        elif isinstance(block, BarBlock):
            self.write_bar(block)
        else:
            raise TypeError(f"Unsupported block type: {type(block).__name__}")

    def write_text(self, block: TextBlock, keep_height: float = 0.0) -> None:
        """Write a text block; keep_height is reserved below it on the same page."""
        self._check_writable()

        prefix, indent, lines = self._wrap_block(block)
        required = len(lines) * block.line_height + keep_height
        in_list = block.list_id is not None
        self._request_space(required, continued=in_list and block.list_id == self._open_list)

        for index, line in enumerate(lines):
            self._request_space(block.line_height, continued=in_list)
            baseline = self._baseline(block.font_size, block.line_height)
            if index == 0 and prefix:
                self._emit(TextRun(text=prefix, x=self.config.margin, y=baseline, font_size=block.font_size, bold=block.bold))

            x = self.config.margin + indent
            if block.align == "center":
                x += max(0.0, (self.config.content_width - indent - line_width(line)) / 2)
            self._place_line(line, x, baseline, block.font_size)
            self._advance(block.line_height)

        self.cursor_y += block.space_after
        self._open_list = block.list_id

    def write_bar(self, block: BarBlock) -> None:
        self._check_writable()

        lines = self._bar_label_lines(block)
        self._request_space((len(lines) + 1) * block.line_height, continued=False)

        for line in lines:
            self._request_space(block.line_height, continued=False)
            self._place_line(line, self.config.margin, self._baseline(block.font_size, block.line_height), block.font_size)
            self._advance(block.line_height)

        self._request_space(block.line_height, continued=False)
        height = min(RendererConfig.BAR_HEIGHT, block.line_height)
        self._emit(BarRun(
            x=self.config.margin,
            y=self.cursor_y + (block.line_height - height) / 2,
            width=self.config.content_width,
            height=height,
            fill_ratio=block.value / 100,
            risk_level=block.risk_level,
        ))
        self._advance(block.line_height)

        self.cursor_y += block.space_after
        self._open_list = None

    def finish(self) -> list[list[Instruction]]:
        """End the body pass and hand back each page's body instructions."""
        self.state = LayoutState.DONE
        return [list(page) for page in self._pages]

    def layout(self, blocks: list[Block], footer_text: str) -> list[Page]:
        """Write every block, then stamp footers on the finished pages."""
        for index, block in enumerate(blocks):
            following = blocks[index + 1] if index + 1 < len(blocks) else None
            keep_height = 0.0
            if isinstance(block, TextBlock) and block.keep_with_next and following is not None:
                keep_height = self.block_height(following)
            self.write(block, keep_height)
        return stamp_footers(self.finish(), footer_text, self.config, self.measure)

    def _wrap_block(self, block: TextBlock) -> tuple[str, float, list[WrappedLine]]:
        prefix = sanitize_text(block.prefix)
        indent = self.measure(prefix, block.font_size, block.bold) if prefix else 0.0
        lines = wrap_text(
            sanitize_text(block.text),
            self.config.content_width - indent,
            block.font_size,
            emphasize=block.emphasize,
            bold=block.bold,
            measure=self.measure,
        )
        return prefix, indent, lines

    def _bar_label_lines(self, block: BarBlock) -> list[WrappedLine]:
        label = sanitize_text(f"{block.label}: {block.value}%")
        return wrap_text(label, self.config.content_width, block.font_size, measure=self.measure)

    def _check_writable(self) -> None:
        if self.state is LayoutState.DONE:
            raise RuntimeError("Layout already finished; create a new LayoutEngine")

    def _request_space(self, required: float, continued: bool) -> None:
        if self.fits(required) or not self._page_has_body:
            return
        self.state = LayoutState.PAGE_BREAK_PENDING
        self._start_new_page(continued)

    def _start_new_page(self, continued: bool) -> None:
        self._pages.append([])
        self.current_page += 1
        self.cursor_y = self.config.margin
        self._page_has_body = False
        self.state = LayoutState.WRITING_BLOCK
        logger.debug("Page break: now on page %d", self.current_page)

        if continued:
            font_size = RendererConfig.MARKER_FONT_SIZE
            line_height = self.config.line_height_body
            self._emit(TextRun(
                kind=InstructionKind.MARKER,
                text=RendererConfig.CONTINUED_MARKER,
                x=self.config.margin,
                y=self._baseline(font_size, line_height),
                font_size=font_size,
            ))
            self.cursor_y += line_height

    def _baseline(self, font_size: float, line_height: float) -> float:
        return self.cursor_y + min(font_size, line_height)

    def _place_line(self, line: WrappedLine, x: float, baseline: float, font_size: float) -> None:
        for run in merge_runs(line):
            if run.text.strip():
                self._emit(TextRun(text=run.text, x=x, y=baseline, font_size=font_size, bold=run.bold))
            x += run.width

    def _advance(self, line_height: float) -> None:
        self.cursor_y += line_height
        self._page_has_body = True

    def _emit(self, instruction: Instruction) -> None:
        self._pages[-1].append(instruction)


def stamp_footers(
    bodies: list[list[Instruction]],
    footer_text: str,
    config: LayoutConfig,
    measure: Measure = measure_text,
) -> list[Page]:
    """
    Append one identical, centered footer to every page.

    Runs after body layout because the footer names the total page count.
    """
    total = len(bodies)
    text = sanitize_text(f"{footer_text} - {total} {'page' if total == 1 else 'pages'}")
    font_size = RendererConfig.FOOTER_FONT_SIZE
    x = max(0.0, (config.page_width - measure(text, font_size, False)) / 2)
    y = config.page_height - config.footer_reserve / 2

    pages = []
    for number, body in enumerate(bodies, 1):
        footer = TextRun(kind=InstructionKind.FOOTER, text=text, x=x, y=y, font_size=font_size)
        pages.append(Page(number=number, instructions=[*body, footer]))
    return pages
