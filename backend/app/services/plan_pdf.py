"""Plan PDF rendering service.

Renders generated plan text into a styled PDF using ReportLab Platypus:
a title page (plan title, optional logo, customer details) followed by
content pages. Every page has a dark background; headings use the accent
colour and are underlined.

Public API:
- CoverDetails: customer details printed on the title page
- PlanDocumentRenderer: text + cover details → PDF bytes
"""

import io
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from xml.sax.saxutils import (
    escape as _xml_escape,  # nosec B406 - output escaping only
)

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_LEFT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.units import inch
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFError, TTFont
from reportlab.platypus import (
    Image,
    PageBreak,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
)

logger = logging.getLogger(__name__)

# =============================================================================
# Data Structures
# =============================================================================


@dataclass(frozen=True)
class CoverDetails:
    """Customer details for the title page."""

    name: str
    email: str
    allergies: str


# =============================================================================
# Styles
# =============================================================================

BACKGROUND_COLOUR = colors.HexColor("#0f172a")
TEXT_COLOUR = colors.HexColor("#e2e8f0")
ACCENT_COLOUR = colors.HexColor("#3b82f6")

CLOSING_LINE = "Stay hydrated, consistent & rested – results will come."

_HEADER_FONT_FILE = "BebasNeue-Regular.ttf"
_BODY_FONT_FILE = "Lora-SemiBold.ttf"
_HEADER_FONT = "PlanHeader"
_BODY_FONT = "PlanBody"
_FALLBACK_HEADER_FONT = "Helvetica-Bold"
_FALLBACK_BODY_FONT = "Helvetica"

_MARGIN = 50
_LOGO_WIDTH = 180

# "Week 1", "Week 3 and 4:", "Day 5 - Push", "Weeks 1 and 2"
_HEADING_PATTERN = re.compile(r"^(weeks?|day)\s+\d+\b.{0,60}$", re.IGNORECASE)


def _register_font(name: str, path: Path, fallback: str) -> str:
    """Register a TTF font once; return the font name to use."""
    if name in pdfmetrics.getRegisteredFontNames():
        return name
    if not path.is_file():
        return fallback
    try:
        pdfmetrics.registerFont(TTFont(name, str(path)))
    except (TTFError, OSError) as e:
        logger.warning("Could not load font %s: %s", path, e)
        return fallback
    return name


def _build_styles(header_font: str, body_font: str) -> dict[str, ParagraphStyle]:
    return {
        "title": ParagraphStyle(
            "PlanTitle",
            fontName=header_font,
            fontSize=38,
            leading=44,
            alignment=TA_CENTER,
            textColor=ACCENT_COLOUR,
            spaceBefore=60,
            spaceAfter=30,
        ),
        "cover": ParagraphStyle(
            "PlanCover",
            fontName=body_font,
            fontSize=14,
            leading=20,
            alignment=TA_CENTER,
            textColor=TEXT_COLOUR,
        ),
        "heading": ParagraphStyle(
            "PlanHeading",
            fontName=header_font,
            fontSize=18,
            leading=24,
            alignment=TA_CENTER,
            textColor=ACCENT_COLOUR,
            spaceBefore=10,
            spaceAfter=8,
        ),
        "body": ParagraphStyle(
            "PlanBody",
            fontName=body_font,
            fontSize=12,
            leading=18,
            alignment=TA_LEFT,
            textColor=TEXT_COLOUR,
        ),
        "closing": ParagraphStyle(
            "PlanClosing",
            fontName=body_font,
            fontSize=12,
            leading=16,
            alignment=TA_CENTER,
            textColor=TEXT_COLOUR,
            spaceBefore=24,
        ),
    }


def _paint_background(canvas, doc) -> None:
    canvas.saveState()
    canvas.setFillColor(BACKGROUND_COLOUR)
    width, height = doc.pagesize
    canvas.rect(0, 0, width, height, stroke=0, fill=1)
    canvas.restoreState()


def is_heading(line: str) -> bool:
    """True for short "Week N" / "Day N" lines that start a section."""
    return bool(_HEADING_PATTERN.match(line.strip()))


# =============================================================================
# Renderer
# =============================================================================


class PlanDocumentRenderer:
    """Render plan text into PDF bytes.

    Fonts and the logo are optional: missing files fall back to the
    built-in Helvetica faces and a title page without a logo.
    """

    def __init__(self, font_dir: Path, logo_path: Path | None = None) -> None:
        self.font_dir = Path(font_dir)
        self.logo_path = Path(logo_path) if logo_path is not None else None

    def render(self, text: str, title: str, cover: CoverDetails) -> bytes:
        """Render the plan document.

        Args:
            text: Plan body; blank lines separate paragraphs.
            title: Title printed on the cover page.
            cover: Customer details for the cover page.

        Returns:
            PDF file as bytes.
        """
        header_font = _register_font(
            _HEADER_FONT, self.font_dir / _HEADER_FONT_FILE, _FALLBACK_HEADER_FONT
        )
        body_font = _register_font(
            _BODY_FONT, self.font_dir / _BODY_FONT_FILE, _FALLBACK_BODY_FONT
        )
        styles = _build_styles(header_font, body_font)

        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            leftMargin=_MARGIN,
            rightMargin=_MARGIN,
            topMargin=_MARGIN,
            bottomMargin=_MARGIN,
            title=title,
        )

        # ReportLab Paragraph interprets markup; escape everything we print.
        esc = _xml_escape
        elements: list[object] = []

        # --- Title page ---
        elements.append(Paragraph(esc(title), styles["title"]))
        logo = self._logo()
        if logo is not None:
            elements.append(logo)
            elements.append(Spacer(1, 0.5 * inch))
        else:
            elements.append(Spacer(1, 1.5 * inch))
        elements.append(Paragraph(f"Name : {esc(cover.name)}", styles["cover"]))
        elements.append(Paragraph(f"Email: {esc(cover.email)}", styles["cover"]))
        elements.append(
            Paragraph(f"Allergies: {esc(cover.allergies)}", styles["cover"])
        )
        elements.append(PageBreak())

        # --- Content pages ---
        for block in text.split("\n\n"):
            lines = [line.strip() for line in block.strip().splitlines()]
            body_lines: list[str] = []
            for line in lines:
                if not line:
                    continue
                if is_heading(line):
                    if body_lines:
                        elements.append(
                            Paragraph("<br/>".join(body_lines), styles["body"])
                        )
                        body_lines = []
                    elements.append(
                        Paragraph(f"<u>{esc(line)}</u>", styles["heading"])
                    )
                else:
                    body_lines.append(esc(line))
            if body_lines:
                elements.append(Paragraph("<br/>".join(body_lines), styles["body"]))
                elements.append(Spacer(1, 8))

        elements.append(Paragraph(esc(CLOSING_LINE), styles["closing"]))

        doc.build(
            elements,
            onFirstPage=_paint_background,
            onLaterPages=_paint_background,
        )
        return buffer.getvalue()

    def _logo(self) -> Image | None:
        if self.logo_path is None or not self.logo_path.is_file():
            return None
        try:
            image = Image(str(self.logo_path))
            ratio = image.imageHeight / image.imageWidth if image.imageWidth else 1
        except Exception as e:  # noqa: BLE001 - logo is optional
            logger.warning("Could not load logo %s: %s", self.logo_path, e)
            return None
        image.drawWidth = _LOGO_WIDTH
        image.drawHeight = _LOGO_WIDTH * ratio
        return image
