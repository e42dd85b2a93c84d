"""
PDF document: one reportlab canvas plus the page-break arithmetic.

Coordinates are millimetres measured from the top-left corner of the page;
text y is the baseline. Conversion to reportlab points (origin bottom-left)
happens here and nowhere else.

Page numbers ("Page X of N") and the footer are stamped in finalize(), after
all content is drawn, so the total page count is known.
"""

import io
import logging
from typing import Optional, Sequence

from reportlab.lib.units import mm
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

from ..layout_config import DEFAULT_MARGINS, get_page_dimensions

logger = logging.getLogger(__name__)

FONTS = {
    "normal": "Helvetica",
    "bold": "Helvetica-Bold",
    "italic": "Helvetica-Oblique",
}

BLACK = (0, 0, 0)
FOOTER_GRAY = (128, 128, 128)
RULE_GRAY = (200, 200, 200)


class NumberedCanvas(canvas.Canvas):
    """
    Canvas that defers page output until save(), so every page can be
    decorated knowing the final page count.
    """

    def __init__(self, *args, **kwargs):
        canvas.Canvas.__init__(self, *args, **kwargs)
        self._saved_page_states = []
        self.page_decorator = None

    def showPage(self):
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        # Saved states predate the decorator; keep it out of the restore
        decorator = self.page_decorator
        total = len(self._saved_page_states)
        for number, state in enumerate(self._saved_page_states, 1):
            self.__dict__.update(state)
            if decorator:
                decorator(self, number, total)
            canvas.Canvas.showPage(self)
        canvas.Canvas.save(self)


def _rgb(color: Sequence[int]):
    return tuple(c / 255.0 for c in color)


class PdfDocument:
    """A paginated PDF being drawn top-down with an explicit y cursor."""

    def __init__(self, size: str = "A4", orientation: str = "portrait", margins: Optional[dict] = None):
        self.size = size or "A4"
        self.orientation = orientation or "portrait"
        self.width, self.height = get_page_dimensions(self.size, self.orientation)
        self.margins = dict(DEFAULT_MARGINS)
        self.margins.update({k: v for k, v in (margins or {}).items() if k in DEFAULT_MARGINS and v is not None})

        self._buffer = io.BytesIO()
        self.canvas = NumberedCanvas(self._buffer, pagesize=(self.width * mm, self.height * mm))
        self.page_count = 1
        self._page_has_content = False
        self._text_color = BLACK
        self._pdf_bytes = None

    @classmethod
    def from_page(cls, page: Optional[dict]) -> "PdfDocument":
        page = page or {}
        return cls(page.get("size"), page.get("orientation"), page.get("margins"))

    # -------------------------------------------------------------------------
    # Geometry
    # -------------------------------------------------------------------------

    @property
    def margin_top(self) -> float:
        return self.margins["top"]

    @property
    def margin_bottom(self) -> float:
        return self.margins["bottom"]

    @property
    def margin_left(self) -> float:
        return self.margins["left"]

    @property
    def margin_right(self) -> float:
        return self.margins["right"]

    @property
    def content_width(self) -> float:
        return self.width - self.margin_left - self.margin_right

    @property
    def usable_height(self) -> float:
        return self.height - self.margin_top - self.margin_bottom

    @property
    def is_blank(self) -> bool:
        """Nothing drawn yet on the only page."""
        return self.page_count == 1 and not self._page_has_content

    # -------------------------------------------------------------------------
    # Pagination
    # -------------------------------------------------------------------------

    def new_page(self) -> float:
        self.canvas.showPage()
        self.page_count += 1
        self._page_has_content = False
        logger.debug(f"Started page {self.page_count}")
        return self.margin_top

    def ensure_space(self, y: float, height: float) -> float:
        """
        Page-break check: start a new page when y + height would run past the
        bottom margin. A cursor already at the top margin stays put, so a block
        taller than a page never loops onto blank pages.
        """
        if y + height > self.height - self.margin_bottom and y > self.margin_top:
            return self.new_page()
        return y

    # -------------------------------------------------------------------------
    # Drawing primitives (mm, top-down)
    # -------------------------------------------------------------------------

    def set_font(self, size: float, style: str = "normal", color: Sequence[int] = BLACK):
        self.canvas.setFont(FONTS.get(style, FONTS["normal"]), size)
        self._text_color = tuple(color)

    def text(self, x: float, y: float, text, align: str = "left"):
        self._page_has_content = True
        self.canvas.setFillColorRGB(*_rgb(self._text_color))
        value = "" if text is None else str(text)
        px, py = x * mm, (self.height - y) * mm
        if align == "right":
            self.canvas.drawRightString(px, py, value)
        elif align == "center":
            self.canvas.drawCentredString(px, py, value)
        else:
            self.canvas.drawString(px, py, value)

    def line(self, x1: float, y1: float, x2: float, y2: float,
             color: Sequence[int] = RULE_GRAY, width: float = 0.1):
        self._page_has_content = True
        self.canvas.setStrokeColorRGB(*_rgb(color))
        self.canvas.setLineWidth(width * mm)
        self.canvas.line(x1 * mm, (self.height - y1) * mm, x2 * mm, (self.height - y2) * mm)

    def rect(self, x: float, y: float, width: float, height: float,
             fill: Optional[Sequence[int]] = None,
             stroke: Optional[Sequence[int]] = RULE_GRAY,
             line_width: float = 0.2):
        self._page_has_content = True
        if fill is not None:
            self.canvas.setFillColorRGB(*_rgb(fill))
        if stroke is not None:
            self.canvas.setStrokeColorRGB(*_rgb(stroke))
            self.canvas.setLineWidth(line_width * mm)
        self.canvas.rect(
            x * mm, (self.height - y - height) * mm, width * mm, height * mm,
            stroke=1 if stroke is not None and line_width > 0 else 0,
            fill=1 if fill is not None else 0,
        )

    def image(self, image, x: float, y: float, width: float, height: float):
        """Draw an ImageReader (or path) with its top-left corner at (x, y)."""
        self._page_has_content = True
        self.canvas.drawImage(image, x * mm, (self.height - y - height) * mm, width * mm, height * mm)

    def split_text(self, text, max_width: float, size: float = 9, style: str = "normal") -> list:
        """Wrap text to max_width mm for the given font. Always at least one line."""
        lines = simpleSplit("" if text is None else str(text), FONTS.get(style, FONTS["normal"]), size, max_width * mm)
        return lines or [""]

    # -------------------------------------------------------------------------
    # Finalization
    # -------------------------------------------------------------------------

    def finalize(self, footer: Optional[dict] = None) -> bytes:
        """
        Stamp footer and "Page X of N" on every page, then return the PDF.

        footer: {"left": str, "right": str}; either may be missing.
        """
        if self._pdf_bytes is not None:
            return self._pdf_bytes

        footer = footer or {}

        def decorate(c: canvas.Canvas, number: int, total: int):
            footer_y = self.height - 15
            if footer.get("left") or footer.get("right"):
                c.setStrokeColorRGB(*_rgb(RULE_GRAY))
                c.setLineWidth(0.1 * mm)
                c.line(self.margin_left * mm, (self.height - footer_y + 3) * mm,
                       (self.width - self.margin_right) * mm, (self.height - footer_y + 3) * mm)
                c.setFont(FONTS["normal"], 7)
                c.setFillColorRGB(*_rgb(FOOTER_GRAY))
                if footer.get("left"):
                    c.drawString(self.margin_left * mm, (self.height - footer_y) * mm, str(footer["left"]))
                if footer.get("right"):
                    c.drawRightString((self.width - self.margin_right) * mm, (self.height - footer_y) * mm, str(footer["right"]))

            c.setFont(FONTS["normal"], 9)
            c.setFillColorRGB(*_rgb(FOOTER_GRAY))
            c.drawCentredString(self.width / 2 * mm, 10 * mm, f"Page {number} of {total}")

        self.canvas.page_decorator = decorate
        self.canvas.showPage()
        self.canvas.save()

        self._pdf_bytes = self._buffer.getvalue()
        logger.info(f"Finalized PDF: {self.page_count} page(s), {len(self._pdf_bytes)} bytes")
        return self._pdf_bytes
