"""
PDF encoding of laid-out pages.

Uses PyMuPDF (fitz) to draw each page's instructions with the base-14
Helvetica fonts the layout engine measured with.
"""

import fitz  # PyMuPDF

from ..section1_normalization.schemas import RiskLevel
from .config import LayoutConfig, RendererConfig
from .layout import BarRun, Page, TextRun

RISK_COLORS = {
    RiskLevel.LOW: (0.29, 0.87, 0.50),
    RiskLevel.MEDIUM: (0.98, 0.80, 0.08),
    RiskLevel.HIGH: (0.97, 0.44, 0.44),
}
TRACK_COLOR = (0.88, 0.90, 0.93)
TEXT_COLOR = (0.06, 0.09, 0.16)


def _draw_text(pdf_page: fitz.Page, run: TextRun) -> None:
    pdf_page.insert_text(
        fitz.Point(run.x, run.y),
        run.text,
        fontname=RendererConfig.BOLD_FONT if run.bold else RendererConfig.BODY_FONT,
        fontsize=run.font_size,
        color=TEXT_COLOR,
    )


def _draw_bar(pdf_page: fitz.Page, bar: BarRun) -> None:
    track = fitz.Rect(bar.x, bar.y, bar.x + bar.width, bar.y + bar.height)
    pdf_page.draw_rect(track, color=None, fill=TRACK_COLOR)

    if bar.fill_ratio > 0:
        filled = fitz.Rect(bar.x, bar.y, bar.x + bar.width * bar.fill_ratio, bar.y + bar.height)
        pdf_page.draw_rect(filled, color=None, fill=RISK_COLORS[bar.risk_level])


def encode_pdf(pages: list[Page], config: LayoutConfig) -> bytes:
    """
    Serialize pages into a PDF document.

    Raises:
        ValueError: If there are no pages (PDF requires at least one)
    """
    if not pages:
        raise ValueError("Cannot encode a document with no pages")

    doc = fitz.open()
    try:
        for page in pages:
            pdf_page = doc.new_page(width=config.page_width, height=config.page_height)
            for instruction in page.instructions:
                if isinstance(instruction, BarRun):
                    _draw_bar(pdf_page, instruction)
                else:
                    _draw_text(pdf_page, instruction)

        doc.set_metadata({
            "title": RendererConfig.REPORT_TITLE,
            "creator": RendererConfig.FOOTER_TEXT,
        })
        return doc.tobytes(garbage=3, deflate=True)
    finally:
        doc.close()
