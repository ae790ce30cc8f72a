"""
Configuration for Section 2: Report Rendering

Holds report wording, font choices and the default page geometry. Geometry
defaults can be overridden from the environment (or a .env file).
"""

import os

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

load_dotenv()


class RendererConfig:
    """Static settings for the report renderer. Units are PDF points."""

    REPORT_TITLE: str = os.getenv("VERIWEAVE_REPORT_TITLE", "VeriWeave Forensic Analysis Report")
    FOOTER_TEXT: str = os.getenv("VERIWEAVE_FOOTER_TEXT", "Generated by VeriWeave Forensic Engine - Confidential")
    NO_CLAIM_TEXT: str = "No claim provided"
    CONTINUED_MARKER: str = "(continued)"

    # Output file naming
    FILENAME_PREFIX: str = "veriweave-report"
    GENERIC_FILENAME_PART: str = "analysis"
    FILENAME_TIMESTAMP_FORMAT: str = "%Y%m%d-%H%M%S"
    MAX_FILENAME_PART_LENGTH: int = 50

    # PyMuPDF base-14 font aliases (Helvetica / Helvetica-Bold)
    BODY_FONT: str = "helv"
    BOLD_FONT: str = "hebo"

    TITLE_FONT_SIZE: float = 18.0
    HEADING_FONT_SIZE: float = 12.0
    BODY_FONT_SIZE: float = 10.0
    MARKER_FONT_SIZE: float = 8.0
    FOOTER_FONT_SIZE: float = 8.0

    BAR_HEIGHT: float = 6.0

    # Default geometry: A4 portrait
    PAGE_WIDTH: float = float(os.getenv("VERIWEAVE_PAGE_WIDTH", "595"))
    PAGE_HEIGHT: float = float(os.getenv("VERIWEAVE_PAGE_HEIGHT", "842"))
    MARGIN: float = float(os.getenv("VERIWEAVE_MARGIN", "50"))
    FOOTER_RESERVE: float = float(os.getenv("VERIWEAVE_FOOTER_RESERVE", "40"))
    LINE_HEIGHT_BODY: float = 14.0
    LINE_HEIGHT_HEADING: float = 20.0


class LayoutConfig(BaseModel):
    """
    Page geometry for one layout pass.

    Accepts snake_case or camelCase names (pageWidth, footerReserve, ...).
    """
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    page_width: float = Field(..., gt=0, description="Page width")
    page_height: float = Field(..., gt=0, description="Page height")
    margin: float = Field(..., ge=0, description="Uniform inset on all sides")
    footer_reserve: float = Field(..., ge=0, description="Space at the bottom excluded from body layout")
    line_height_body: float = Field(..., gt=0, description="Vertical advance per body line")
    line_height_heading: float = Field(..., gt=0, description="Vertical advance per heading line")

    @model_validator(mode="after")
    def _check_geometry(self) -> "LayoutConfig":
        if self.content_width <= 0:
            raise ValueError("margins leave no horizontal space for content")

        # The footer baseline sits mid-reserve, so half the reserve must clear
        # the footer glyphs on both sides.
        min_reserve = 2 * RendererConfig.FOOTER_FONT_SIZE
        if self.footer_reserve < min_reserve:
            raise ValueError(
                f"footer reserve of {self.footer_reserve:g}pt cannot hold the footer (needs {min_reserve:g}pt)"
            )

        # A continuation marker plus one line of either class must fit on an
        # empty page, otherwise pagination cannot make progress.
        needed = self.line_height_body + max(self.line_height_body, self.line_height_heading)
        if self.margin + needed > self.body_limit:
            raise ValueError(
                f"page body of {self.body_limit - self.margin:g}pt cannot hold {needed:g}pt of lines"
            )
        return self

    @property
    def content_width(self) -> float:
        return self.page_width - 2 * self.margin

    @property
    def body_limit(self) -> float:
        """Lowest y coordinate body content may reach."""
        return self.page_height - self.footer_reserve

    @classmethod
    def default(cls) -> "LayoutConfig":
        return cls(
            page_width=RendererConfig.PAGE_WIDTH,
            page_height=RendererConfig.PAGE_HEIGHT,
            margin=RendererConfig.MARGIN,
            footer_reserve=RendererConfig.FOOTER_RESERVE,
            line_height_body=RendererConfig.LINE_HEIGHT_BODY,
            line_height_heading=RendererConfig.LINE_HEIGHT_HEADING,
        )
