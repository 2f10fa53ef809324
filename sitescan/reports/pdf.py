from __future__ import annotations

import logging
from dataclasses import dataclass
from io import BytesIO

from reportlab.pdfgen import canvas

from sitescan.core.errors import ReportGenerationFailure
from sitescan.reports.builder import ReportData, build_document
from sitescan.reports.layout import PAGE_HEIGHT, PAGE_WIDTH, Box, ReportDocument, Text

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeneratedReport:
    document: ReportDocument
    pdf: bytes

    @property
    def size(self) -> int:
        return len(self.pdf)

    @property
    def pages(self) -> int:
        return self.document.page_count


def _draw_box(c: canvas.Canvas, op: Box):
    if op.fill is not None:
        c.setFillColorRGB(*op.fill)
    if op.stroke is not None:
        c.setStrokeColorRGB(*op.stroke)
        c.setLineWidth(op.stroke_width or 1)
    c.rect(op.x, op.y, op.width, op.height, stroke=int(op.stroke is not None), fill=int(op.fill is not None))


def _draw_text(c: canvas.Canvas, op: Text):
    c.setFillColorRGB(*op.color)
    c.setFont("Helvetica-Bold" if op.bold else "Helvetica", op.size)
    c.drawString(op.x, op.y, op.text)


def render_pdf(document: ReportDocument) -> bytes:
    """
    Draws every page of a laid-out document.
    invariant=1 pins the timestamps and document id, so the same document
    always renders to the same bytes.
    """
    buf = BytesIO()
    c = canvas.Canvas(buf, pagesize=(PAGE_WIDTH, PAGE_HEIGHT), invariant=1)
    c.setTitle("SiteScan Report")
    c.setAuthor("SiteScan")

    for page in document.pages:
        for op in page.ops:
            if isinstance(op, Box):
                _draw_box(c, op)
            else:
                _draw_text(c, op)
        c.showPage()

    c.save()
    return buf.getvalue()


def generate_report(data: ReportData) -> GeneratedReport:
    try:
        document = build_document(data)
        pdf = render_pdf(document)
    except Exception as e:
        logger.exception("Report generation failed for %s", data.target_url)
        raise ReportGenerationFailure(str(e)) from e

    logger.info("Report generated for %s: %s pages, %s bytes", data.target_url, document.page_count, len(pdf))
    return GeneratedReport(document=document, pdf=pdf)
