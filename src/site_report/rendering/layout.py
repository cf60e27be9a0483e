"""Page planning for the inspection report PDF.

plan_document() turns a Report plus its ParsedNarrative into a DocumentPlan:
a list of pages holding positioned text lines and photo grid cells. It is a
pure function of its inputs (plus the image files it probes), so planning the
same report twice yields equal plans. Drawing the plan is rendering/pdf.py's job.

Page set:
  1. cover      - heading, job metadata, photo grid (first 9 photos)
  2. breakdown  - per-photo fields, continued onto extra pages when full
  3. closing    - remaining photos, Recommended Services, Additional Notes

Vertical positions are a running estimate (line height = font size * 1.25),
not exact measurement; a line that would cross the bottom margin always moves
to a new page.
"""

from __future__ import annotations

import os
from enum import Enum
from typing import Annotated, Callable, List, Literal, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, Field
from reportlab.lib.pagesizes import letter
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfbase.pdfmetrics import stringWidth

from ..log import get_logger
from ..parsing.fields import clean_value, extract_closing_sections, extract_fields, strip_closing_sections
from ..schemas.evidence import EvidenceItem, Report
from ..schemas.narrative import NarrativeSection, ParsedNarrative

logger = get_logger("rendering.layout")

PAGE_WIDTH, PAGE_HEIGHT = letter
MARGIN = 72.0
CONTENT_WIDTH = PAGE_WIDTH - 2 * MARGIN
BOTTOM_LIMIT = PAGE_HEIGHT - MARGIN
FOOTER_TOP = 20.0
LINE_SPACING = 1.25
MAX_TITLE_LINES = 3

GRID_COLUMNS = 3
FIRST_PAGE_GRID_CAPACITY = 9
CELL_SIZE = 120.0
CELL_GAP = 10.0
ROW_PITCH = CELL_SIZE + 30.0

NO_PHOTO_NOTES = "No additional notes to be added."
NO_SERVICES = "No recommended services to be added."
NO_NOTES = "No additional project notes at this time."


class PageKind(str, Enum):
    COVER = "cover"
    BREAKDOWN = "breakdown"
    CLOSING = "closing"


class CellStatus(str, Enum):
    OK = "ok"
    MISSING = "missing"
    ERROR = "error"


class TextStyle(BaseModel):
    font: str
    size: float
    color: str

    @property
    def line_height(self) -> float:
        return self.size * LINE_SPACING


STYLES = {
    "title": TextStyle(font="Helvetica-Bold", size=16, color="#1a237e"),
    "section": TextStyle(font="Helvetica-Bold", size=13, color="#263238"),
    "photo": TextStyle(font="Helvetica-Bold", size=12, color="#263238"),
    "label": TextStyle(font="Helvetica-Bold", size=11, color="#000000"),
    "bullet": TextStyle(font="Helvetica-Bold", size=11, color="#000000"),
    "body": TextStyle(font="Helvetica", size=11, color="#000000"),
    "placeholder": TextStyle(font="Helvetica", size=11, color="#b71c1c"),
    "caption": TextStyle(font="Helvetica", size=9, color="#263238"),
    "caption_placeholder": TextStyle(font="Helvetica", size=9, color="#b71c1c"),
    "footer": TextStyle(font="Helvetica", size=10, color="#222222"),
}


class TextLine(BaseModel):
    kind: Literal["text"] = "text"
    text: str
    x: float
    top: float # distance from the page's top edge to the top of the line
    style: str = "body"
    align: Literal["left", "center", "right"] = "left"
    underline: bool = False
    evidence_index: Optional[int] = None


class GridCell(BaseModel):
    kind: Literal["cell"] = "cell"
    evidence_index: int
    image_path: str
    x: float
    top: float
    size: float = CELL_SIZE
    status: CellStatus = CellStatus.OK

    @property
    def caption(self) -> str:
        label = f"Photo {self.evidence_index + 1}"
        if self.status is CellStatus.OK:
            return label
        return f"{label} ({self.status.value})"


Element = Annotated[Union[TextLine, GridCell], Field(discriminator="kind")]


class PagePlan(BaseModel):
    number: int
    kind: PageKind
    elements: List[Element] = []

    @property
    def cells(self) -> List[GridCell]:
        return [e for e in self.elements if isinstance(e, GridCell)]

    @property
    def lines(self) -> List[TextLine]:
        return [e for e in self.elements if isinstance(e, TextLine)]


class DocumentPlan(BaseModel):
    heading: str
    pages: List[PagePlan] = []

    @property
    def page_count(self) -> int:
        return len(self.pages)

    def pages_of(self, kind: PageKind) -> List[PagePlan]:
        return [p for p in self.pages if p.kind is kind]

    def grid_cells(self) -> List[GridCell]:
        return [cell for page in self.pages for cell in page.cells]

    def breakdown_lines(self, evidence_index: int) -> List[TextLine]:
        return [
            line
            for page in self.pages_of(PageKind.BREAKDOWN)
            for line in page.lines
            if line.evidence_index == evidence_index
        ]


ImageProbe = Callable[[str], CellStatus]


def probe_image(path: str) -> CellStatus:
    """Classify an evidence image as drawable, missing on disk, or unreadable."""
    if not path or not os.path.isfile(path):
        logger.warning(f"Photo file missing: {path}")
        return CellStatus.MISSING
    try:
        ImageReader(path).getSize()
    except Exception as e:
        logger.warning(f"Photo file unreadable: {path} ({e})")
        return CellStatus.ERROR
    return CellStatus.OK


def _fit_prefix(text: str, style: TextStyle, width: float) -> int:
    """Longest prefix length of `text` that fits `width` (at least one character)."""
    lo, hi = 1, len(text)
    while lo < hi:
        mid = (lo + hi + 1) // 2
        if stringWidth(text[:mid], style.font, style.size) <= width:
            lo = mid
        else:
            hi = mid - 1
    return lo


def wrap_text(text: str, style: TextStyle, width: float) -> List[str]:
    """Word-wrap with simpleSplit, then hard-split tokens wider than `width` (URLs, ids)."""
    lines: List[str] = []
    for line in simpleSplit(text, style.font, style.size, width):
        while stringWidth(line, style.font, style.size) > width:
            cut = _fit_prefix(line, style, width)
            lines.append(line[:cut])
            line = line[cut:]
        lines.append(line)
    return lines


class _PageFlow:
    """Top-down cursor over a growing list of pages. One instance per plan."""

    def __init__(self, heading: str):
        self.heading = heading
        self.pages: List[PagePlan] = []
        self.y = MARGIN
        self._kind = PageKind.COVER
        self._continued_title: Optional[str] = None

    @property
    def page(self) -> PagePlan:
        return self.pages[-1]

    def start(self, kind: PageKind, section_title: Optional[str] = None, continued_title: Optional[str] = None):
        self._kind = kind
        self._continued_title = continued_title
        self._open_page()
        if section_title:
            self.line(section_title, "section")
            self.gap(6)

    def _open_page(self):
        self.pages.append(PagePlan(number=len(self.pages) + 1, kind=self._kind))
        self.y = MARGIN
        title = STYLES["title"]
        for wrapped in wrap_text(self.heading, title, CONTENT_WIDTH)[:MAX_TITLE_LINES]:
            self.line(wrapped, "title", align="center")
        self.gap(8)
        if self._continued_title and len(self.pages) > 1 and self.pages[-2].kind is self._kind:
            self.line(self._continued_title, "section")
            self.gap(6)

    def ensure(self, height: float):
        if self.y + height > BOTTOM_LIMIT:
            self._open_page()

    def gap(self, amount: float):
        self.y += amount

    def line(
        self,
        text: str,
        style: str = "body",
        indent: float = 0.0,
        align: str = "left",
        underline: bool = False,
        evidence_index: Optional[int] = None,
    ):
        self.ensure(STYLES[style].line_height)
        if align == "center":
            x = PAGE_WIDTH / 2
        else:
            x = MARGIN + indent
        self.page.elements.append(
            TextLine(
                text=text,
                x=x,
                top=self.y,
                style=style,
                align=align,
                underline=underline,
                evidence_index=evidence_index,
            )
        )
        self.y += STYLES[style].line_height

    def paragraph(self, text: str, style: str = "body", indent: float = 0.0, align: str = "left",
                  evidence_index: Optional[int] = None):
        st = STYLES[style]
        for wrapped in wrap_text(text, st, CONTENT_WIDTH - indent):
            self.line(wrapped, style, indent=indent, align=align, evidence_index=evidence_index)

    def text_block(self, text: str, indent: float = 10.0, evidence_index: Optional[int] = None):
        """Multi-line free text; "-" / "•" lines are set bold and indented further."""
        for raw in text.split("\n"):
            stripped = raw.strip()
            if not stripped:
                continue
            if stripped[0] in "-•":
                self.paragraph(stripped, "bullet", indent=indent + 10, evidence_index=evidence_index)
            else:
                self.paragraph(stripped, "body", indent=indent, evidence_index=evidence_index)

    def grid(self, cells: Sequence[Tuple[int, EvidenceItem, CellStatus]]):
        for row_start in range(0, len(cells), GRID_COLUMNS):
            self.ensure(ROW_PITCH)
            for column, (index, item, status) in enumerate(cells[row_start:row_start + GRID_COLUMNS]):
                self.page.elements.append(
                    GridCell(
                        evidence_index=index,
                        image_path=item.image_path,
                        x=MARGIN + column * (CELL_SIZE + CELL_GAP),
                        top=self.y,
                        status=status,
                    )
                )
            self.y += ROW_PITCH

    def finish(self) -> List[PagePlan]:
        total = len(self.pages)
        for page in self.pages:
            page.elements.append(
                TextLine(
                    text=f"Page {page.number} of {total}",
                    x=PAGE_WIDTH - MARGIN,
                    top=FOOTER_TOP,
                    style="footer",
                    align="right",
                )
            )
        return self.pages


def _breakdown_entry(flow: _PageFlow, index: int, item: EvidenceItem, section: Optional[NarrativeSection]):
    # Keep the "Photo N:" title on the same page as its first line.
    flow.ensure(STYLES["photo"].line_height + STYLES["body"].line_height)
    flow.line(f"Photo {index + 1}:", "photo", evidence_index=index)

    if section is None:
        fallback = item.description.strip()
        if fallback:
            flow.text_block(fallback, evidence_index=index)
        else:
            flow.line(NO_PHOTO_NOTES, "placeholder", indent=10, evidence_index=index)
    else:
        fields = extract_fields(section.text)
        if fields.is_empty:
            # The last section runs on into the closing labels
            text = clean_value(strip_closing_sections(section.text))
            if text:
                flow.text_block(text, evidence_index=index)
            else:
                flow.line(NO_PHOTO_NOTES, "placeholder", indent=10, evidence_index=index)
        else:
            for label, value in fields.present():
                flow.ensure(STYLES["label"].line_height + STYLES["body"].line_height)
                flow.line(f"{label}:", "label", indent=10, evidence_index=index)
                flow.text_block(value, indent=20, evidence_index=index)
    flow.gap(10)


def _closing_section(flow: _PageFlow, title: str, text: Optional[str], fallback: str):
    flow.ensure(STYLES["section"].line_height + STYLES["body"].line_height)
    flow.line(title, "section", underline=True)
    flow.gap(6)
    if text:
        flow.text_block(text)
    else:
        flow.line(fallback, "placeholder", indent=10)
    flow.gap(12)


def plan_document(report: Report, parsed: ParsedNarrative, probe: ImageProbe = probe_image) -> DocumentPlan:
    """
    Lay out the report pages.

    Args:
        report: The report; only read
        parsed: Narrative parsed from report.narrative_text
        probe: Classifies each image path (injectable for tests)

    Returns:
        DocumentPlan with cover, breakdown and closing pages
    """
    cells = [(i, item, probe(item.image_path)) for i, item in enumerate(report.evidence)]
    flow = _PageFlow(parsed.heading)

    # Cover + grid
    flow.start(PageKind.COVER, continued_title="Reference Photos (continued):")
    job = report.job
    for meta in (
        f"Job: {job.job_name}",
        f"Client: {job.client_name}",
        f"Address: {job.address}",
        f"Date: {job.date}",
    ):
        flow.paragraph(meta, "body", align="center")
    flow.gap(12)
    flow.line("Reference Photos:", "section")
    flow.gap(6)
    flow.grid(cells[:FIRST_PAGE_GRID_CAPACITY])

    # Breakdown
    flow.start(
        PageKind.BREAKDOWN,
        section_title="Reference Photo breakdown:",
        continued_title="Reference Photo breakdown (continued):",
    )
    for index, item, _ in cells:
        _breakdown_entry(flow, index, item, parsed.section_for(index))
    if len(parsed.sections) > len(report.evidence):
        logger.warning(
            f"Narrative has {len(parsed.sections)} photo sections for "
            f"{len(report.evidence)} photos; extra sections are not rendered"
        )

    # Overflow photos, services, notes
    flow.start(PageKind.CLOSING)
    overflow = cells[FIRST_PAGE_GRID_CAPACITY:]
    if overflow:
        flow.line("Additional Reference Photos:", "section")
        flow.gap(6)
        flow.grid(overflow)
        flow.gap(12)
    closing = extract_closing_sections(parsed.body)
    _closing_section(flow, "Recommended Services:", closing.recommended_services, NO_SERVICES)
    _closing_section(flow, "Additional Notes:", closing.additional_notes, NO_NOTES)

    return DocumentPlan(heading=parsed.heading, pages=flow.finish())
