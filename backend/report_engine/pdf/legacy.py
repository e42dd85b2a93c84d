"""
Template-driven PDF path for entries without a report layout.

The entry's template carries its own pdf_layout:

    template = {
        "fields_schema": {"sections": [{section_id, section_name, fields}]},
        "pdf_layout": {"sections": [{section_id, layout, show_if, columns, ...}]},
    }

Each pdf_layout section is matched to its fields_schema section and drawn by
one of the seven layout renderers. Entries whose template has no pdf_layout
fall back to a plain "Entry Details" key/value listing. Photos and signatures
not claimed by a photo_grid / signature_box section are drawn afterwards.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

from ..binding import get_record_data
from ..conditions import evaluate_condition
from ..enrichment import (
    DEFAULT_PHOTO_LABEL,
    attachment_kind,
    enrich_photos,
    enrich_signature,
    photo_block_item,
    signature_block_item,
)
from ..field_selection import is_field_selected
from ..formatters import format_label, format_value
from ..layout_config import ATTACHMENT_FIELD_TYPES
from .document import BLACK, PdfDocument
from .helpers import draw_horizontal_line
from .images import ImageFetcher
from .layouts import (
    LABEL_GRAY,
    render_checklist,
    render_metrics_cards,
    render_photo_grid,
    render_signature_box,
    render_single_column,
    render_table,
    render_two_column,
)

logger = logging.getLogger(__name__)

SECTION_MIN_HEIGHT = 30
ATTACHMENT_MIN_HEIGHT = 50
SIMPLE_VALUE_OFFSET = 45
SIMPLE_VALUE_WIDTH = 120
SIMPLE_LINE_HEIGHT = 5

# Data keys never listed under Entry Details
SIMPLE_SKIP_HINTS = ('photo', 'signature', 'image')


def has_template_layout(record: Mapping) -> bool:
    template = record.get('template') if isinstance(record.get('template'), Mapping) else {}
    pdf_layout = template.get('pdf_layout') if isinstance(template.get('pdf_layout'), Mapping) else {}
    fields_schema = template.get('fields_schema') if isinstance(template.get('fields_schema'), Mapping) else {}
    return bool(pdf_layout.get('sections')) and bool(fields_schema.get('sections'))


def flatten_data(data: Mapping) -> Dict[str, Any]:
    """{"site": {"name": x}} and {"site.name": x} both -> {"site.name": x}"""
    flat = {}
    for key, value in (data or {}).items():
        if isinstance(value, Mapping) and '.' not in str(key):
            for sub_key, sub_value in value.items():
                flat.setdefault(f"{key}.{sub_key}", sub_value)
        else:
            flat[str(key)] = value
    return flat


def _attachments(record: Mapping, kind: str) -> List[dict]:
    return [
        a for a in record.get('attachments') or []
        if isinstance(a, Mapping) and attachment_kind(a) == kind
    ]


def _layout_types(record: Mapping) -> set:
    sections = ((record.get('template') or {}).get('pdf_layout') or {}).get('sections') or []
    return {s.get('layout') for s in sections if isinstance(s, Mapping)}


# =============================================================================
# TEMPLATE SECTIONS
# =============================================================================

async def render_template_sections(doc: PdfDocument, record: Mapping, y: float,
                                   selection: Optional[Mapping] = None,
                                   fetcher: Optional[ImageFetcher] = None) -> float:
    template = record['template']
    schema_sections = {
        s.get('section_id'): s
        for s in template['fields_schema']['sections'] if isinstance(s, Mapping)
    }
    data = flatten_data(get_record_data(record))

    for layout_section in template['pdf_layout']['sections']:
        if not isinstance(layout_section, Mapping):
            continue

        section_id = layout_section.get('section_id')
        section = schema_sections.get(section_id)
        if section is None:
            logger.warning(f"pdf_layout section '{section_id}' not in fields_schema; skipped")
            continue

        layout = layout_section.get('layout') or 'single_column'
        attachment_layout = layout in ('photo_grid', 'signature_box')

        fields = [
            f for f in section.get('fields') or []
            if isinstance(f, Mapping) and is_field_selected(selection, f"{section_id}.{f.get('field_id')}")
        ]
        if not attachment_layout:
            fields = [f for f in fields if f.get('field_type') not in ATTACHMENT_FIELD_TYPES]
        if not fields:
            continue
        section = {**section, 'fields': fields}

        if not evaluate_condition(layout_section.get('show_if'), record):
            logger.debug(f"Section '{section_id}' hidden by show_if")
            continue

        y = doc.ensure_space(y, SECTION_MIN_HEIGHT)

        if layout == 'two_column':
            y = render_two_column(doc, section, data, y)
        elif layout == 'single_column':
            y = render_single_column(doc, section, data, y)
        elif layout == 'checklist':
            y = render_checklist(doc, section, data, y, layout_section)
        elif layout == 'table':
            y = render_table(doc, section, data, y)
        elif layout == 'metrics_cards':
            y = render_metrics_cards(doc, section, data, y, layout_section)
        elif layout == 'signature_box':
            y = await _section_signatures(doc, section, record, y, fetcher)
        elif layout == 'photo_grid':
            y = await _section_photos(doc, section, layout_section, record, y, fetcher)
        else:
            logger.warning(f"Unknown layout '{layout}' for section '{section_id}'; using single column")
            y = render_single_column(doc, section, data, y)

    return y


async def _section_signatures(doc, section, record, y, fetcher):
    keys = {
        f"{section['section_id']}.{f.get('field_id')}"
        for f in section['fields'] if f.get('field_type') == 'signature'
    }
    if not keys:
        return y

    signatures = [
        signature_block_item(enrich_signature(s, record))
        for s in _attachments(record, 'signature') if s.get('field_id') in keys
    ]
    return await render_signature_box(doc, section, signatures, y, fetcher)


async def _section_photos(doc, section, layout_section, record, y, fetcher):
    section_id = section['section_id']
    if not any(f.get('field_type') in ('photo', 'file') for f in section['fields']):
        return y

    photos = [
        p for p in _attachments(record, 'photo')
        if str(p.get('field_id') or '').startswith(f"{section_id}.")
    ]
    items = [photo_block_item(p) for p in enrich_photos(photos, record)]
    titled = {**section, 'section_name': section.get('section_name') or DEFAULT_PHOTO_LABEL}
    return await render_photo_grid(doc, titled, items, y, layout_section, fetcher)


# =============================================================================
# SIMPLE DATA
# =============================================================================

def render_simple_data(doc: PdfDocument, record: Mapping, y: float,
                       selection: Optional[Mapping] = None) -> float:
    """Every non-empty data value as "Label:  value", attachments skipped."""
    left = doc.margin_left

    doc.set_font(10, 'bold', BLACK)
    doc.text(left, y, 'Entry Details')
    y += 6
    y = draw_horizontal_line(doc, y)

    for key, value in flatten_data(get_record_data(record)).items():
        if value is None or value == '':
            continue
        if not is_field_selected(selection, key):
            continue
        if any(hint in key.lower() for hint in SIMPLE_SKIP_HINTS):
            continue

        y = doc.ensure_space(y, 10)

        doc.set_font(8, 'bold', LABEL_GRAY)
        doc.text(left, y, f"{format_label(key.split('.')[-1])}:")

        lines = doc.split_text(format_value(value), SIMPLE_VALUE_WIDTH, 9)
        doc.set_font(9, 'normal', BLACK)
        for index, line in enumerate(lines):
            doc.text(left + SIMPLE_VALUE_OFFSET, y + index * SIMPLE_LINE_HEIGHT, line)
        y += len(lines) * SIMPLE_LINE_HEIGHT + 2

    return y + 3


# =============================================================================
# STANDALONE ATTACHMENTS
# =============================================================================

async def render_standalone_attachments(doc: PdfDocument, record: Mapping, y: float,
                                        selection: Optional[Mapping] = None,
                                        fetcher: Optional[ImageFetcher] = None) -> float:
    """Photos and signatures no photo_grid / signature_box section drew."""
    claimed = _layout_types(record)

    photos = [p for p in _attachments(record, 'photo') if is_field_selected(selection, p.get('field_id'))]
    if photos and 'photo_grid' not in claimed:
        y = doc.ensure_space(y, ATTACHMENT_MIN_HEIGHT)

        groups: Dict[str, List[dict]] = {}
        for photo in enrich_photos(photos, record):
            groups.setdefault(photo.get('sectionTitle') or DEFAULT_PHOTO_LABEL, []).append(photo_block_item(photo))

        for title, items in groups.items():
            y = await render_photo_grid(doc, {'section_name': title}, items, y, {'columns': 2}, fetcher)

    signatures = [s for s in _attachments(record, 'signature') if is_field_selected(selection, s.get('field_id'))]
    if signatures and 'signature_box' not in claimed:
        y = doc.ensure_space(y, ATTACHMENT_MIN_HEIGHT)
        items = [signature_block_item(enrich_signature(s, record)) for s in signatures]
        y = await render_signature_box(doc, {'section_name': 'Signatures'}, items, y, fetcher)

    return y


async def render_entry_legacy(doc: PdfDocument, record: Mapping, y: float,
                              selection: Optional[Mapping] = None,
                              fetcher: Optional[ImageFetcher] = None) -> float:
    fetcher = fetcher or ImageFetcher()

    if has_template_layout(record):
        y = await render_template_sections(doc, record, y, selection, fetcher)
    else:
        logger.debug(f"Entry {record.get('id')} has no template pdf_layout; simple listing")
        y = render_simple_data(doc, record, y, selection)

    return await render_standalone_attachments(doc, record, y, selection, fetcher)
