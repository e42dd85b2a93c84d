"""
PDF Block Layout Renderers

Seven renderers, each drawing one section at the y cursor and returning the
new cursor:

    render_two_column(doc, section, data, y)
    render_single_column(doc, section, data, y)
    render_checklist(doc, section, data, y, options)
    render_table(doc, section, data, y, rows)
    render_metrics_cards(doc, section, data, y, options)
    await render_signature_box(doc, section, signatures, y, fetcher)
    await render_photo_grid(doc, section, photos, y, options, fetcher)

section = {"section_id", "section_name", "fields": [{field_id, field_name,
field_type, required}]}; data maps "section_id.field_id" to values.
Options use the snake_case keys of template pdf_layout sections.

The four scalar renderers strip photo/signature/file/image fields; those only
ever render in the photo grid and signature box.
"""

import logging
from typing import Any, List, Optional

from PIL import Image

from ..formatters import (
    format_display_datetime,
    format_field_value,
    format_metric_value,
    get_field_label,
    is_checked,
    parse_columns,
)
from .document import BLACK, PdfDocument
from .helpers import (
    ERROR_RED,
    PLACEHOLDER_GRAY,
    RULE_GAP,
    SECTION_TITLE_GAP,
    calculate_text_height,
    draw_horizontal_line,
    draw_image,
    draw_placeholder,
    draw_section_title,
    field_path,
    field_value,
    strip_attachment_fields,
)
from .images import ImageFetcher

logger = logging.getLogger(__name__)

LABEL_GRAY = (80, 80, 80)

# Two-column
COLUMN_GAP = 10
ROW_PITCH = 10
VALUE_LINE_HEIGHT = 4

# Checklist
CHECKBOX_SIZE = 4
CHECKLIST_ROW = 6

# Table
TABLE_ROW_HEIGHT = 7
TABLE_HEADER_FILL = (240, 240, 240)

# Metrics
METRIC_CARD_HEIGHT = 22
METRIC_GAP = 5
METRIC_FILL = (59, 130, 246)
WHITE = (255, 255, 255)

# Signatures
SIGNATURE_WIDTH = 60
SIGNATURE_HEIGHT = 30
SIGNATURE_BORDER = (180, 180, 180)

# Photos
PHOTO_GAP = 5
PHOTO_RATIO = 0.75


def _fields(section: dict) -> List[dict]:
    return [f for f in section.get("fields") or [] if isinstance(f, dict)]


# =============================================================================
# SCALAR LAYOUTS
# =============================================================================

def _draw_field(doc: PdfDocument, label: str, lines: List[str], x: float, y: float):
    """Label above its wrapped value lines."""
    doc.set_font(8, "bold", LABEL_GRAY)
    doc.text(x, y, label)

    doc.set_font(9, "normal", BLACK)
    for index, line in enumerate(lines):
        doc.text(x, y + 4 + index * VALUE_LINE_HEIGHT, line)


def render_two_column(doc: PdfDocument, section: dict, data: dict, y: float) -> float:
    """Even-indexed fields on the left, odd on the right; fixed 10 mm row pitch."""
    section = strip_attachment_fields(section)
    fields = _fields(section)
    if not fields:
        return y

    column_width = (doc.content_width - COLUMN_GAP) / 2
    right_x = doc.margin_left + column_width + COLUMN_GAP

    y = doc.ensure_space(y, SECTION_TITLE_GAP + RULE_GAP + ROW_PITCH + 2)
    y = draw_section_title(doc, section.get("section_name"), y)
    y = draw_horizontal_line(doc, y)

    left, right = fields[0::2], fields[1::2]

    for i in range(len(left)):
        cells = [(left[i], doc.margin_left)]
        if i < len(right):
            cells.append((right[i], right_x))

        wrapped = []
        for field, x in cells:
            text = format_field_value(field, field_value(section, field, data))
            wrapped.append((field, x, doc.split_text(text, column_width - 2, 9)))

        # A wrapped value grows its row by one value line per extra line
        extra = max(len(lines) for _, _, lines in wrapped) - 1
        pitch = ROW_PITCH + extra * VALUE_LINE_HEIGHT

        y = doc.ensure_space(y, pitch + 2)
        for field, x, lines in wrapped:
            _draw_field(doc, get_field_label(field), lines, x, y)
        y += pitch

    return y + 3


def render_single_column(doc: PdfDocument, section: dict, data: dict, y: float) -> float:
    section = strip_attachment_fields(section)
    fields = _fields(section)
    if not fields:
        return y

    y = doc.ensure_space(y, SECTION_TITLE_GAP + RULE_GAP + 12)
    y = draw_section_title(doc, section.get("section_name"), y)
    y = draw_horizontal_line(doc, y)

    for field in fields:
        text = format_field_value(field, field_value(section, field, data))

        y = doc.ensure_space(y, calculate_text_height(doc, text, doc.content_width) + 8)

        doc.set_font(8, "bold", LABEL_GRAY)
        doc.text(doc.margin_left, y, get_field_label(field))
        y += 4

        doc.set_font(9, "normal", BLACK)
        for line in doc.split_text(text, doc.content_width, 9):
            doc.text(doc.margin_left, y, line)
            y += VALUE_LINE_HEIGHT

        y += 3

    return y + 3


def render_checklist(doc: PdfDocument, section: dict, data: dict, y: float,
                     options: Optional[dict] = None) -> float:
    """Checkbox rows. With show_checked_only, unchecked items are skipped outright."""
    options = options or {}
    show_checked_only = bool(options.get("show_checked_only"))

    section = strip_attachment_fields(section)
    fields = _fields(section)
    if not fields:
        return y

    y = doc.ensure_space(y, SECTION_TITLE_GAP + RULE_GAP + CHECKLIST_ROW)
    y = draw_section_title(doc, section.get("section_name"), y)
    y = draw_horizontal_line(doc, y)

    x = doc.margin_left
    for field in fields:
        checked = is_checked(field_value(section, field, data))
        if show_checked_only and not checked:
            continue

        y = doc.ensure_space(y, CHECKLIST_ROW)

        box_y = y - 3
        doc.rect(x, box_y, CHECKBOX_SIZE, CHECKBOX_SIZE, stroke=BLACK, line_width=0.3)
        if checked:
            doc.line(x + 0.8, box_y + 2, x + 1.5, box_y + 3.2, color=BLACK, width=0.5)
            doc.line(x + 1.5, box_y + 3.2, x + 3.2, box_y + 0.8, color=BLACK, width=0.5)

        doc.set_font(9, "normal", BLACK)
        doc.text(x + CHECKBOX_SIZE + 3, y, get_field_label(field))
        y += CHECKLIST_ROW

    return y + 3


def render_table(doc: PdfDocument, section: dict, data: dict, y: float,
                 rows: Optional[List[dict]] = None) -> float:
    """Fields as columns. One row from data, or one per entry of rows."""
    section = strip_attachment_fields(section)
    fields = _fields(section)
    if not fields:
        return y

    rows = rows if rows is not None else [data or {}]
    table_width = doc.content_width
    column_width = table_width / len(fields)
    x0 = doc.margin_left

    y = doc.ensure_space(y, SECTION_TITLE_GAP + TABLE_ROW_HEIGHT * 2 + 1)
    y = draw_section_title(doc, section.get("section_name"), y)
    y = doc.ensure_space(y, 15)

    doc.rect(x0, y, table_width, TABLE_ROW_HEIGHT, fill=TABLE_HEADER_FILL, stroke=None)
    doc.set_font(8, "bold", BLACK)
    for index, field in enumerate(fields):
        label = doc.split_text(get_field_label(field), column_width - 4, 8, "bold")[0]
        doc.text(x0 + index * column_width + 2, y + 5, label)
    y += TABLE_ROW_HEIGHT

    for row in rows:
        y = doc.ensure_space(y, TABLE_ROW_HEIGHT)
        doc.set_font(8, "normal", BLACK)
        for index, field in enumerate(fields):
            text = format_field_value(field, (row or {}).get(field_path(section, field)))
            doc.text(x0 + index * column_width + 2, y + 5, doc.split_text(text, column_width - 4, 8)[0])
            doc.rect(x0 + index * column_width, y, column_width, TABLE_ROW_HEIGHT, stroke=(200, 200, 200))
        y += TABLE_ROW_HEIGHT

    return y + 3


def render_metrics_cards(doc: PdfDocument, section: dict, data: dict, y: float,
                         options: Optional[dict] = None) -> float:
    """Cards wrap after `columns`; an incomplete last row still advances one row."""
    options = options or {}
    fields = _fields(section)
    if not fields:
        return y

    columns = parse_columns(options.get("columns"), 3)
    card_width = (doc.content_width - METRIC_GAP * (columns - 1)) / columns

    y = doc.ensure_space(y, SECTION_TITLE_GAP + METRIC_CARD_HEIGHT + METRIC_GAP)
    y = draw_section_title(doc, section.get("section_name"), y)

    x = doc.margin_left
    in_row = 0

    for field in fields:
        if in_row == 0:
            y = doc.ensure_space(y, METRIC_CARD_HEIGHT + METRIC_GAP)

        doc.rect(x, y, card_width, METRIC_CARD_HEIGHT, fill=METRIC_FILL, stroke=None)

        value = format_metric_value(field_value(section, field, data))
        unit = field.get("unit")
        doc.set_font(16, "bold", WHITE)
        doc.text(x + card_width / 2, y + 10, f"{value} {unit}" if unit else value, align="center")

        doc.set_font(7, "normal", WHITE)
        for index, line in enumerate(doc.split_text(get_field_label(field), card_width - 4, 7)):
            doc.text(x + card_width / 2, y + 16 + index * 3, line, align="center")

        in_row += 1
        if in_row >= columns:
            in_row = 0
            x = doc.margin_left
            y += METRIC_CARD_HEIGHT + METRIC_GAP
        else:
            x += card_width + METRIC_GAP

    if in_row > 0:
        y += METRIC_CARD_HEIGHT + METRIC_GAP

    return y + 3


# =============================================================================
# ATTACHMENT LAYOUTS
# =============================================================================

async def render_signature_box(doc: PdfDocument, section: dict, signatures: List[dict], y: float,
                               fetcher: Optional[ImageFetcher] = None) -> float:
    signatures = [s for s in signatures or [] if isinstance(s, dict)]
    fetcher = fetcher or ImageFetcher()

    y = doc.ensure_space(y, SECTION_TITLE_GAP + RULE_GAP + (50 if signatures else 10))
    y = draw_section_title(doc, section.get("section_name") or "Signatures", y)
    y = draw_horizontal_line(doc, y)

    if not signatures:
        doc.set_font(9, "italic", PLACEHOLDER_GRAY)
        doc.text(doc.margin_left, y, "Not signed yet")
        return y + 10

    urls = [s.get("url") or s.get("storage_url") for s in signatures]
    fetched = iter(await fetcher.fetch_all([u for u in urls if u]))

    x = doc.margin_left
    for index, (sig, url) in enumerate(zip(signatures, urls)):
        y = doc.ensure_space(y, 50)

        label = sig.get("caption") or sig.get("name") or sig.get("role") or f"Signature {index + 1}"
        doc.set_font(9, "bold", LABEL_GRAY)
        doc.text(x, y, label)
        y += 5

        doc.rect(x, y, SIGNATURE_WIDTH, SIGNATURE_HEIGHT, stroke=SIGNATURE_BORDER, line_width=0.5)

        if url:
            image = next(fetched)
            if isinstance(image, Image.Image):
                draw_image(doc, image, x, y, SIGNATURE_WIDTH, SIGNATURE_HEIGHT)
            else:
                doc.set_font(7, "normal", ERROR_RED)
                doc.text(x + SIGNATURE_WIDTH / 2, y + SIGNATURE_HEIGHT / 2, "Failed to load", align="center")
        else:
            doc.set_font(8, "normal", SIGNATURE_BORDER)
            doc.text(x + SIGNATURE_WIDTH / 2, y + SIGNATURE_HEIGHT / 2, "Not signed", align="center")

        y += SIGNATURE_HEIGHT + 3

        if sig.get("date"):
            doc.set_font(7, "normal", (100, 100, 100))
            doc.text(x, y, f"Signed: {format_display_datetime(sig['date'])}")
            y += 5

        y += 5

    return y + 3


async def render_photo_grid(doc: PdfDocument, section: dict, photos: List[dict], y: float,
                            options: Optional[dict] = None,
                            fetcher: Optional[ImageFetcher] = None) -> float:
    options = options or {}
    fetcher = fetcher or ImageFetcher()
    title = section.get("section_name") or options.get("title")

    photos = [p for p in photos or [] if isinstance(p, dict)]
    with_url = [p for p in photos if p.get("url") or p.get("storage_url")]
    if len(with_url) < len(photos):
        logger.warning(f"Skipping {len(photos) - len(with_url)} photo(s) without a URL")
    photos = with_url

    if not photos:
        if not title:
            return y
        y = doc.ensure_space(y, SECTION_TITLE_GAP + 10)
        y = draw_section_title(doc, title, y)
        doc.set_font(9, "italic", PLACEHOLDER_GRAY)
        doc.text(doc.margin_left, y, "No photos attached")
        return y + 10

    columns = parse_columns(options.get("columns"), 2)
    photo_width = (doc.content_width - PHOTO_GAP * (columns - 1)) / columns
    photo_height = photo_width * PHOTO_RATIO
    show_captions = options.get("show_captions", True) is not False
    show_timestamps = options.get("show_timestamps", True) is not False

    y = doc.ensure_space(y, SECTION_TITLE_GAP + photo_height + 14)
    y = draw_section_title(doc, title, y)

    images = await fetcher.fetch_all([p.get("url") or p.get("storage_url") for p in photos])

    x = doc.margin_left
    in_row = 0

    for photo, image in zip(photos, images):
        if in_row == 0:
            y = doc.ensure_space(y, photo_height + 14)

        if isinstance(image, Image.Image):
            draw_image(doc, image, x, y, photo_width, photo_height)
        else:
            draw_placeholder(doc, x, y, photo_width, photo_height, "Image not available")

        caption = photo.get("caption") if show_captions else None
        if caption:
            doc.set_font(7, "bold", (60, 60, 60))
            first_line = doc.split_text(caption, photo_width, 7, "bold")[0]
            doc.text(x + photo_width / 2, y + photo_height + 4, first_line, align="center")

        if show_timestamps and photo.get("timestamp"):
            doc.set_font(6, "normal", (120, 120, 120))
            doc.text(
                x + photo_width / 2,
                y + photo_height + (8 if caption else 4),
                format_display_datetime(photo["timestamp"]),
                align="center",
            )

        in_row += 1
        if in_row >= columns:
            in_row = 0
            x = doc.margin_left
            y += photo_height + 12
        else:
            x += photo_width + PHOTO_GAP

    if in_row > 0:
        y += photo_height + 12

    return y + 5
