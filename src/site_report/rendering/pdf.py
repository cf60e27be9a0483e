"""Draws a DocumentPlan with reportlab and assembles finished reports.

Image problems never abort a document: a photo that cannot be drawn gets the
"(error)" placeholder. Only a failing output sink raises AssemblyError.
"""

from __future__ import annotations

from pathlib import Path
from typing import BinaryIO, Optional, Union

from pydantic import BaseModel
from reportlab.lib.colors import HexColor
from reportlab.lib.pagesizes import letter
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen.canvas import Canvas

from ..errors import AssemblyError
from ..log import get_logger
from ..schemas.evidence import Report
from ..schemas.narrative import ParsedNarrative
from .layout import (
    PAGE_HEIGHT,
    STYLES,
    CellStatus,
    DocumentPlan,
    GridCell,
    ImageProbe,
    TextLine,
    plan_document,
    probe_image,
)

logger = get_logger("rendering.pdf")

Sink = Union[str, Path, BinaryIO]

CELL_BORDER = HexColor("#90caf9")
PLACEHOLDER_FILL = HexColor("#eceff1")


class AssembledDocument(BaseModel):
    plan: DocumentPlan
    output: Optional[str] = None # file path when the sink was a path

    @property
    def page_count(self) -> int:
        return self.plan.page_count


def _draw_text(c: Canvas, line: TextLine):
    style = STYLES[line.style]
    baseline = PAGE_HEIGHT - line.top - style.size
    c.setFont(style.font, style.size)
    c.setFillColor(HexColor(style.color))
    if line.align == "center":
        c.drawCentredString(line.x, baseline, line.text)
        width = c.stringWidth(line.text, style.font, style.size)
        start = line.x - width / 2
    elif line.align == "right":
        c.drawRightString(line.x, baseline, line.text)
        width = c.stringWidth(line.text, style.font, style.size)
        start = line.x - width
    else:
        c.drawString(line.x, baseline, line.text)
        width = c.stringWidth(line.text, style.font, style.size)
        start = line.x
    if line.underline:
        c.setStrokeColor(HexColor(style.color))
        c.setLineWidth(0.75)
        c.line(start, baseline - 2, start + width, baseline - 2)


def _draw_cell(c: Canvas, cell: GridCell):
    bottom = PAGE_HEIGHT - cell.top - cell.size
    status = cell.status
    if status is CellStatus.OK:
        try:
            c.drawImage(
                ImageReader(cell.image_path),
                cell.x,
                bottom,
                width=cell.size,
                height=cell.size,
                preserveAspectRatio=True,
                anchor="c",
            )
        except Exception as e:
            logger.warning(f"Error drawing photo {cell.image_path}: {e}")
            status = CellStatus.ERROR

    if status is CellStatus.OK:
        c.setStrokeColor(CELL_BORDER)
        c.rect(cell.x, bottom, cell.size, cell.size, stroke=1, fill=0)
        caption, style = cell.caption, STYLES["caption"]
    else:
        c.setFillColor(PLACEHOLDER_FILL)
        c.setStrokeColor(CELL_BORDER)
        c.setDash(3, 3)
        c.rect(cell.x, bottom, cell.size, cell.size, stroke=1, fill=1)
        c.setDash()
        caption = cell.model_copy(update={"status": status}).caption
        style = STYLES["caption_placeholder"]

    c.setFont(style.font, style.size)
    c.setFillColor(HexColor(style.color))
    c.drawCentredString(cell.x + cell.size / 2, bottom - 2 - style.size, caption)


def render_pdf(plan: DocumentPlan, sink: Sink) -> None:
    """
    Draw every page of `plan` into `sink` (a file path or a writable binary stream).

    Raises:
        AssemblyError: the sink could not be written
    """
    target = str(sink) if isinstance(sink, (str, Path)) else sink
    c = Canvas(target, pagesize=letter)
    c.setTitle(plan.heading)
    for page in plan.pages:
        for element in page.elements:
            if isinstance(element, GridCell):
                _draw_cell(c, element)
            else:
                _draw_text(c, element)
        c.showPage()
    try:
        c.save()
    except (OSError, ValueError) as e:
        raise AssemblyError(f"Could not write report PDF: {e}", details={"sink": str(sink)}) from e


def assemble_report(
    report: Report,
    parsed: ParsedNarrative,
    sink: Sink,
    probe: ImageProbe = probe_image,
) -> AssembledDocument:
    """Plan and draw a report. Reads `report` only."""
    plan = plan_document(report, parsed, probe=probe)
    render_pdf(plan, sink)
    output = str(sink) if isinstance(sink, (str, Path)) else None
    logger.info(f"Assembled report {report.id}: {plan.page_count} pages")
    return AssembledDocument(plan=plan, output=output)
