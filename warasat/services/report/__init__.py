"""Estate distribution reports (plain text and PDF)."""

from .pdf import build_estate_report_pdf
from .render import build_report_content, format_fraction, format_money, render_estate_report

__all__ = [
    "build_estate_report_pdf",
    "build_report_content",
    "format_fraction",
    "format_money",
    "render_estate_report",
]
