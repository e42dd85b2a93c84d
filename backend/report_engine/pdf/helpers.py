"""
Drawing helpers shared by the PDF block layouts and headers.
"""

from typing import Any, Optional, Sequence

from PIL import Image

from ..formatters import EMPTY_VALUE
from ..layout_config import ATTACHMENT_FIELD_TYPES
from .document import PdfDocument, RULE_GRAY
from .images import fit_within, to_reader

LINE_HEIGHT = 5
SECTION_TITLE_SIZE = 11
SECTION_TITLE_GAP = 6
RULE_GAP = 5

ERROR_RED = (220, 53, 69)
PLACEHOLDER_GRAY = (150, 150, 150)


def field_path(section: dict, field: dict) -> str:
    return f"{section.get('section_id')}.{field.get('field_id')}"


def field_value(section: dict, field: dict, data: dict) -> Any:
    return (data or {}).get(field_path(section, field))


def strip_attachment_fields(section: dict) -> dict:
    """Copy of section without photo/signature/file/image fields."""
    fields = [f for f in section.get("fields") or [] if f.get("field_type") not in ATTACHMENT_FIELD_TYPES]
    return {**section, "fields": fields}


def draw_section_title(doc: PdfDocument, title: Optional[str], y: float) -> float:
    if not title:
        return y
    doc.set_font(SECTION_TITLE_SIZE, "bold")
    doc.text(doc.margin_left, y, title)
    return y + SECTION_TITLE_GAP


def draw_horizontal_line(doc: PdfDocument, y: float) -> float:
    doc.line(doc.margin_left, y, doc.width - doc.margin_right, y, color=RULE_GRAY, width=0.1)
    return y + RULE_GAP


def calculate_text_height(doc: PdfDocument, text: Any, max_width: float, size: float = 9) -> float:
    if text is None or text == "" or text == EMPTY_VALUE:
        return LINE_HEIGHT
    return len(doc.split_text(text, max_width, size)) * LINE_HEIGHT


def draw_placeholder(doc: PdfDocument, x: float, y: float, width: float, height: float,
                     message: str, color: Sequence[int] = PLACEHOLDER_GRAY):
    """Bordered box with a short centred message where an image should be."""
    doc.rect(x, y, width, height, stroke=RULE_GRAY)
    doc.set_font(8, "normal", color)
    doc.text(x + width / 2, y + height / 2, message, align="center")


def draw_image(doc: PdfDocument, image: Image.Image, x: float, y: float,
               max_width: float, max_height: float) -> float:
    """Draw a decoded raster scaled into the box. Returns drawn height."""
    width, height = fit_within(image.width, image.height, max_width, max_height)
    doc.image(to_reader(image), x, y, width, height)
    return height
