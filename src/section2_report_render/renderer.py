"""
Report Renderer for Section 2

Takes one canonical Finding and lays it out as a paginated report:
1. Title, timestamp, evidence files and claim
2. Score, risk level, status and verdict
3. Category score bars
4. Enumerated reasons and bulleted signals, with risk vocabulary in bold
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from ..section1_normalization.schemas import UNKNOWN_FILENAME, Finding, RiskLevel
from .config import LayoutConfig, RendererConfig
from .document import encode_pdf
from .layout import BarBlock, Block, LayoutEngine, Measure, Page, TextBlock, measure_text
from .text import sanitize_filename_part

logger = logging.getLogger(__name__)


class ReportRenderer:
    """
    Renders Findings into pages (and PDF bytes) for a fixed page geometry.

    Rendering is deterministic for a given Finding, config and generated_at;
    the renderer keeps no state between calls.
    """

    def __init__(self, config: Optional[LayoutConfig] = None, measure: Measure = measure_text):
        self.config = config or LayoutConfig.default()
        self.measure = measure

    def _body(self, text: str, **kwargs) -> TextBlock:
        return TextBlock(
            text=text,
            font_size=RendererConfig.BODY_FONT_SIZE,
            line_height=self.config.line_height_body,
            **kwargs,
        )

    def _heading(self, text: str) -> TextBlock:
        return TextBlock(
            text=text,
            font_size=RendererConfig.HEADING_FONT_SIZE,
            line_height=self.config.line_height_heading,
            bold=True,
            keep_with_next=True,
        )

    def build_blocks(self, finding: Finding, generated_at: datetime) -> list[Block]:
        """The report's logical blocks in reading order."""
        gap = self.config.line_height_body / 2

        blocks: list[Block] = [
            TextBlock(
                text=RendererConfig.REPORT_TITLE,
                font_size=RendererConfig.TITLE_FONT_SIZE,
                line_height=self.config.line_height_heading,
                bold=True,
                align="center",
            ),
            self._body(f"Generated: {generated_at.strftime('%Y-%m-%d %H:%M:%S %Z').strip()}", space_after=gap),
        ]

        if not finding.is_batch:
            blocks.append(self._body(f"File: {finding.filenames[0]}"))
        else:
            blocks.append(self._heading(f"Files ({len(finding.filenames)})"))
            blocks.extend(
                self._body(name, prefix=f"{index}. ", list_id="files")
                for index, name in enumerate(finding.filenames, 1)
            )

        status = finding.status
        blocks.extend([
            self._body(f"Claim: {finding.claim or RendererConfig.NO_CLAIM_TEXT}", space_after=gap),
            self._body(f"Authenticity Score: {finding.score}/100", bold=True),
            self._body(f"Risk Level: {finding.risk_level.value}"),
            self._body(f"Status: {status.value} - {status.description}", space_after=gap),
            self._heading("Verdict"),
            self._body(finding.verdict, space_after=gap),
            self._heading("Category Scores"),
        ])

        blocks.extend(
            BarBlock(
                label=key.label,
                value=value,
                risk_level=RiskLevel.from_score(value),
                font_size=RendererConfig.BODY_FONT_SIZE,
                line_height=self.config.line_height_body,
            )
            for key, value in finding.category_scores.items()
        )

        blocks.append(self._heading("Reasons"))
        blocks.extend(
            self._body(reason, prefix=f"{index}. ", emphasize=True, list_id="reasons")
            for index, reason in enumerate(finding.reasons, 1)
        )

        if finding.signals:
            blocks.append(self._heading("Signals"))
            blocks.extend(
                self._body(signal, prefix="- ", emphasize=True, list_id="signals")
                for signal in finding.signals
            )

        return blocks

    def render(self, finding: Finding, generated_at: Optional[datetime] = None) -> list[Page]:
        """
        Lay out a Finding into pages.

        Args:
            finding: Normalized finding (never modified)
            generated_at: Timestamp printed on the report; defaults to now (UTC)

        Returns:
            Pages numbered from 1, each ending with the same footer
        """
        generated_at = generated_at or datetime.now(timezone.utc)
        engine = LayoutEngine(self.config, measure=self.measure)
        pages = engine.layout(self.build_blocks(finding, generated_at), RendererConfig.FOOTER_TEXT)

        logger.info(
            "Rendered report for %d file(s): %d page(s)",
            len(finding.filenames), len(pages),
        )
        return pages

    def render_pdf(self, finding: Finding, generated_at: Optional[datetime] = None) -> bytes:
        """Render and encode the report as PDF bytes."""
        return encode_pdf(self.render(finding, generated_at), self.config)

    def build_filename(self, finding: Finding, generated_at: Optional[datetime] = None) -> str:
        return build_report_filename(finding, generated_at)

    def save_pdf(
        self,
        finding: Finding,
        output_dir: str | Path,
        generated_at: Optional[datetime] = None,
    ) -> Path:
        """
        Render a Finding and write it to output_dir.

        Returns:
            Path to the written PDF
        """
        generated_at = generated_at or datetime.now(timezone.utc)
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        output_file = output_dir / self.build_filename(finding, generated_at)
        output_file.write_bytes(self.render_pdf(finding, generated_at))
        logger.info("Saved report to %s", output_file)
        return output_file


def build_report_filename(finding: Finding, generated_at: Optional[datetime] = None) -> str:
    """
    Name for the report file.

    One file -> its sanitized stem; several -> "batch-N-files"; none known ->
    a generic name. Always ends in a generation timestamp.
    """
    generated_at = generated_at or datetime.now(timezone.utc)
    names = [name for name in finding.filenames if name != UNKNOWN_FILENAME]

    part = RendererConfig.GENERIC_FILENAME_PART
    if len(names) == 1:
        part = sanitize_filename_part(names[0], RendererConfig.MAX_FILENAME_PART_LENGTH) or part
    elif len(names) > 1:
        part = f"batch-{len(names)}-files"

    timestamp = generated_at.strftime(RendererConfig.FILENAME_TIMESTAMP_FORMAT)
    return f"{RendererConfig.FILENAME_PREFIX}-{part}-{timestamp}.pdf"


def render(
    finding: Finding,
    config: Optional[LayoutConfig] = None,
    generated_at: Optional[datetime] = None,
) -> list[Page]:
    """
    Convenience function to render a Finding with the given geometry.

    Example:
        >>> pages = render(finding, LayoutConfig.default())
        >>> pages[0].footer.text
    """
    return ReportRenderer(config).render(finding, generated_at)
