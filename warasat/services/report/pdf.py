from __future__ import annotations

import io
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_LEFT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle
from reportlab.pdfgen import canvas
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer

from warasat.services.estate.session import EstateSession
from warasat.services.i18n.localization import get_text
from warasat.services.report.render import ReportContent, build_report_content

PRIMARY = colors.HexColor("#047857")
ACCENT = colors.HexColor("#c9a227")


def _draw_frame(c: canvas.Canvas, _doc: SimpleDocTemplate) -> None:
    width, height = A4
    margin = 36
    inner = margin + 6

    c.saveState()
    c.setStrokeColor(PRIMARY)
    c.setLineWidth(1.6)
    c.rect(margin, margin, width - 2 * margin, height - 2 * margin)

    c.setStrokeColor(ACCENT)
    c.setLineWidth(0.8)
    c.rect(inner, inner, width - 2 * inner, height - 2 * inner)

    c.setFont("Helvetica", 8)
    c.setFillColor(colors.HexColor("#666666"))
    c.drawRightString(width - margin - 12, margin + 12, str(c.getPageNumber()))
    c.restoreState()


def _build_styles() -> dict[str, ParagraphStyle]:
    return {
        "title": ParagraphStyle(
            "title",
            fontName="Helvetica-Bold",
            fontSize=16,
            leading=20,
            alignment=TA_CENTER,
            textColor=PRIMARY,
            spaceAfter=10,
        ),
        "subtitle": ParagraphStyle(
            "subtitle",
            fontName="Helvetica-Oblique",
            fontSize=11.5,
            leading=14,
            alignment=TA_CENTER,
            textColor=colors.black,
            spaceAfter=6,
        ),
        "body": ParagraphStyle(
            "body",
            fontName="Helvetica",
            fontSize=10.5,
            leading=14,
            alignment=TA_LEFT,
            textColor=colors.black,
            spaceAfter=4,
        ),
        "section": ParagraphStyle(
            "section",
            fontName="Helvetica-Bold",
            fontSize=12.2,
            leading=16,
            alignment=TA_LEFT,
            textColor=PRIMARY,
            spaceBefore=8,
            spaceAfter=4,
        ),
        "note": ParagraphStyle(
            "note",
            fontName="Helvetica-Oblique",
            fontSize=9.5,
            leading=12,
            alignment=TA_LEFT,
            textColor=colors.HexColor("#444444"),
            spaceAfter=6,
        ),
    }


def _build_story(content: ReportContent, styles: dict[str, ParagraphStyle]) -> list:
    story = []
    for style_name, text in content:
        story.append(Paragraph(escape(text), styles.get(style_name, styles["body"])))
        if style_name in {"title", "subtitle"}:
            story.append(Spacer(1, 4))
    return story


def build_estate_report_pdf(
    session: EstateSession,
    *,
    lang: str = "en",
    currency: str = "PKR",
) -> bytes:
    """Render the distribution report as an A4 PDF document."""
    # Built-in Helvetica has no Urdu glyphs, so the PDF is always English.
    content = build_report_content(session, lang="en" if lang == "ur" else lang, currency=currency)
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        topMargin=72,
        bottomMargin=54,
        leftMargin=54,
        rightMargin=54,
        title=get_text("report.title", "en"),
    )
    doc.build(_build_story(content, _build_styles()), onFirstPage=_draw_frame, onLaterPages=_draw_frame)
    return buffer.getvalue()
