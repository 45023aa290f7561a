from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from io import BytesIO
from pathlib import Path
from typing import Callable, Optional

from dateutil.relativedelta import relativedelta
from jinja2 import Template
from reportlab.lib.enums import TA_CENTER, TA_JUSTIFY
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.units import cm
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer

logger = logging.getLogger(__name__)

PDF_FONT_NAME = "PolicySerif"
POLICY_TERM = relativedelta(years=1)
PAGE_MARGIN = 50  # points

POLICY_TITLE = "Car Insurance Policy"

BODY_TEMPLATE = Template(
    "This dummy policy covers the insured vehicle against accidents and theft.<br/>"
    "Issued: {{ issued.isoformat() }}<br/>"
    "Valid until: {{ valid_until.isoformat() }}"
)
FOOTER_TEMPLATE = Template("Generated on {{ issued.isoformat() }}.")


def _utc_today() -> date:
    return datetime.now(timezone.utc).date()


def _register_pdf_font() -> str:
    possible_fonts = [
        Path("/usr/share/fonts/truetype/dejavu/DejaVuSerif.ttf"),
        Path("/usr/share/fonts/truetype/freefont/FreeSerif.ttf"),
        Path("/usr/share/fonts/truetype/msttcorefonts/Times_New_Roman.ttf"),
    ]
    if PDF_FONT_NAME in pdfmetrics.getRegisteredFontNames():
        return PDF_FONT_NAME
    for font_path in possible_fonts:
        if font_path.exists():
            try:
                pdfmetrics.registerFont(TTFont(PDF_FONT_NAME, str(font_path)))
                logger.debug("Registered PDF font from %s", font_path)
                return PDF_FONT_NAME
            except Exception as exc:  # pragma: no cover - font registration edge case
                logger.warning("Failed to register font %s: %s", font_path, exc)
    return "Times-Roman"


class PolicyGenerator:
    """Renders the policy PDF handed to the user once the price is accepted."""

    def __init__(self, today: Optional[Callable[[], date]] = None) -> None:
        self._today = today or _utc_today

    def generate(self) -> bytes:
        issued = self._today()
        valid_until = issued + POLICY_TERM
        font_name = _register_pdf_font()
        logger.debug("Generating policy PDF issued %s using font %s", issued, font_name)

        buffer = BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            topMargin=PAGE_MARGIN,
            bottomMargin=PAGE_MARGIN,
            leftMargin=PAGE_MARGIN,
            rightMargin=PAGE_MARGIN,
            title=POLICY_TITLE,
        )

        styles = {
            "title": ParagraphStyle(
                name="Title",
                fontName=font_name,
                fontSize=20,
                leading=24,
                alignment=TA_CENTER,
                spaceAfter=18,
            ),
            "normal": ParagraphStyle(
                name="Normal",
                fontName=font_name,
                fontSize=12,
                leading=16,
                alignment=TA_JUSTIFY,
                spaceAfter=8,
            ),
            "footer": ParagraphStyle(
                name="Footer",
                fontName=font_name,
                fontSize=10,
                leading=12,
                alignment=TA_CENTER,
            ),
        }

        story = [
            Paragraph(POLICY_TITLE, styles["title"]),
            Paragraph(BODY_TEMPLATE.render(issued=issued, valid_until=valid_until), styles["normal"]),
            Spacer(1, 2 * cm),
            Paragraph(FOOTER_TEMPLATE.render(issued=issued), styles["footer"]),
        ]
        doc.build(story)
        return buffer.getvalue()
