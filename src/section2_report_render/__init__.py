"""
Section 2: Report Rendering

Lays out a normalized Finding as a fixed-page-size report:
1. Word wrapping with risk vocabulary emphasis in reasons and signals
2. Overflow-driven page breaks with "(continued)" markers in lists
3. An identical footer stamped on every page
4. Optional PDF encoding via PyMuPDF
"""

__version__ = "1.0.0"

from .config import LayoutConfig, RendererConfig
from .document import encode_pdf
from .layout import (
    BarRun,
    InstructionKind,
    LayoutEngine,
    LayoutState,
    Page,
    TextRun,
    wrap_text,
)
from .renderer import ReportRenderer, build_report_filename, render
from .text import RiskTerm, is_risk_term, sanitize_text

__all__ = [
    "LayoutConfig",
    "RendererConfig",
    "encode_pdf",
    "BarRun",
    "InstructionKind",
    "LayoutEngine",
    "LayoutState",
    "Page",
    "TextRun",
    "wrap_text",
    "ReportRenderer",
    "build_report_filename",
    "render",
    "RiskTerm",
    "is_risk_term",
    "sanitize_text",
]
