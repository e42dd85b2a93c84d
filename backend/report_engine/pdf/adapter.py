"""
PDF Adapter

Draws a render tree onto a PdfDocument: report header first, then every block
through the block layout renderers. Before each block the shared page-break
check runs with an estimate of the block's height.

Unknown block types fall back to the single-column layout.
"""

import logging
from typing import Awaitable, Callable, Dict, List, Optional

from ..enrichment import attachment_kind, photo_block_item, signature_block_item
from ..formatters import format_label, guess_field_type, parse_columns
from .document import PdfDocument
from .headers import build_footer, draw_header_block, draw_report_header
from .helpers import RULE_GAP, SECTION_TITLE_GAP
from .images import ImageFetcher
from .layouts import (
    CHECKLIST_ROW,
    METRIC_CARD_HEIGHT,
    METRIC_GAP,
    PHOTO_GAP,
    PHOTO_RATIO,
    ROW_PITCH,
    TABLE_ROW_HEIGHT,
    render_checklist,
    render_metrics_cards,
    render_photo_grid,
    render_signature_box,
    render_single_column,
    render_table,
    render_two_column,
)

logger = logging.getLogger(__name__)

BlockHandler = Callable[[PdfDocument, dict, float, ImageFetcher], Awaitable[float]]


# =============================================================================
# BLOCK -> SECTION
# =============================================================================

def _content_items(block: dict) -> List[tuple]:
    content = block.get("content") or {}
    return [(k, v) for k, v in content.items() if not str(k).startswith("_")]


def block_to_section(block: dict, title: Optional[str] = None) -> tuple:
    """(section, data) in the shape the layout renderers take."""
    block_id = block.get("blockId") or "block"
    labels = (block.get("content") or {}).get("_labels") or {}

    fields, data = [], {}
    for key, value in _content_items(block):
        fields.append({
            "field_id": key,
            "field_name": labels.get(key) or format_label(key),
            "field_type": guess_field_type(value),
        })
        data[f"{block_id}.{key}"] = value

    section = {
        "section_id": block_id,
        "section_name": title if title is not None else format_label(block_id),
        "fields": fields,
    }
    return section, data


def _options(block: dict) -> dict:
    return block.get("options") or {}


def _is_two_column(block: dict) -> bool:
    options = _options(block)
    if block.get("type") == "two_column":
        return True
    if block.get("type") == "single_column":
        return False
    return block.get("layout") in ("two_column", "grid") or parse_columns(options.get("columns"), 1) == 2


# =============================================================================
# BLOCK HANDLERS
# =============================================================================

async def _header(doc, block, y, fetcher):
    content = block.get("content") or {}
    static = _options(block).get("content") or {}
    return draw_header_block(
        doc,
        content.get("title") or static.get("title"),
        content.get("subtitle") or static.get("subtitle"),
        y,
    )


async def _details(doc, block, y, fetcher):
    section, data = block_to_section(block, _options(block).get("title"))
    if _is_two_column(block):
        return render_two_column(doc, section, data, y)
    return render_single_column(doc, section, data, y)


async def _text(doc, block, y, fetcher):
    content = block.get("content") or {}
    text = content.get("text") or content.get("observations")
    if not text:
        text = next((v for _, v in _content_items(block) if isinstance(v, str) and v), None)

    title = _options(block).get("title") or "Observations"
    lines = doc.split_text(text or "—", doc.content_width, 10)

    y = doc.ensure_space(y, SECTION_TITLE_GAP + 5)
    doc.set_font(11, "bold")
    doc.text(doc.margin_left, y, title)
    y += SECTION_TITLE_GAP

    doc.set_font(10, "normal")
    for line in lines:
        y = doc.ensure_space(y, 5)
        doc.text(doc.margin_left, y, line)
        y += 5
    return y + 5


async def _checklist(doc, block, y, fetcher):
    options = _options(block)
    content = block.get("content") or {}
    items = content.get("items") or []
    title = options.get("title") or "Checklist"
    layout_options = {"show_checked_only": options.get("showCheckedOnly", False)}

    if not items:
        section, data = block_to_section(block, title)
        section["fields"] = [f for f in section["fields"] if f["field_id"] != "items"]
        return render_checklist(doc, section, data, y, layout_options)

    show_status = options.get("showStatus", True) is not False
    block_id = block.get("blockId") or "checklist"
    fields, data = [], {}
    for index, item in enumerate(items):
        status = item.get("status")
        name = item.get("task") or f"Item {index + 1}"
        if show_status and isinstance(status, str) and status:
            name = f"{name} ({status})"
        if item.get("remarks"):
            name = f"{name} - {item['remarks']}"
        field_id = f"item_{index}"
        fields.append({"field_id": field_id, "field_name": name, "field_type": "checkbox"})
        data[f"{block_id}.{field_id}"] = status

    section = {"section_id": block_id, "section_name": title, "fields": fields}
    return render_checklist(doc, section, data, y, layout_options)


async def _table(doc, block, y, fetcher):
    options = _options(block)
    content = block.get("content") or {}
    rows = content.get("rows")
    block_id = block.get("blockId") or "table"

    if isinstance(rows, list) and rows and all(isinstance(r, dict) for r in rows):
        columns = options.get("headers") or list(dict.fromkeys(k for r in rows for k in r))
        section = {
            "section_id": block_id,
            "section_name": options.get("title") or format_label(block_id),
            "fields": [{"field_id": c, "field_name": format_label(c), "field_type": "text"} for c in columns],
        }
        prefixed = [{f"{block_id}.{k}": v for k, v in r.items()} for r in rows]
        return render_table(doc, section, {}, y, prefixed)

    section, data = block_to_section(block, options.get("title"))
    return render_table(doc, section, data, y)


async def _metrics(doc, block, y, fetcher):
    options = _options(block)
    metrics = (block.get("content") or {}).get("metrics") or []
    block_id = block.get("blockId") or "metrics"

    fields, data = [], {}
    for index, metric in enumerate(metrics):
        field_id = f"metric_{index}"
        fields.append({
            "field_id": field_id,
            "field_name": metric.get("label") or "",
            "field_type": "text",
            "unit": metric.get("unit"),
        })
        data[f"{block_id}.{field_id}"] = metric.get("value")

    section = {"section_id": block_id, "section_name": options.get("title"), "fields": fields}
    return render_metrics_cards(doc, section, data, y, {"columns": options.get("columns")})


async def _photos(doc, block, y, fetcher):
    options = _options(block)
    photos = (block.get("content") or {}).get("photos") or []
    section = {"section_id": block.get("blockId"), "section_name": options.get("title") or "Photo Documentation"}
    layout_options = {
        "columns": parse_columns(options.get("columns"), 2),
        "show_captions": options.get("showCaptions", True),
        "show_timestamps": options.get("showTimestamps", True),
    }
    return await render_photo_grid(doc, section, photos, y, layout_options, fetcher)


async def _signatures(doc, block, y, fetcher):
    signatures = (block.get("content") or {}).get("signatures") or []
    section = {"section_id": block.get("blockId"), "section_name": _options(block).get("title") or "Signatures"}
    return await render_signature_box(doc, section, signatures, y, fetcher)


PDF_BLOCK_RENDERERS: Dict[str, BlockHandler] = {
    "header": _header,
    "detail_entry": _details,
    "two_column": _details,
    "single_column": _details,
    "text_section": _text,
    "checklist": _checklist,
    "table": _table,
    "metrics_cards": _metrics,
    "photo_grid": _photos,
    "signature_box": _signatures,
}


# =============================================================================
# HEIGHT ESTIMATES
# =============================================================================

def estimate_block_height(doc: PdfDocument, block: dict) -> float:
    """Rough height of a block, capped at one page of content."""
    block_type = block.get("type")
    content = block.get("content") or {}
    options = _options(block)
    title = SECTION_TITLE_GAP + RULE_GAP

    if block_type == "header":
        height = 20
    elif block_type == "photo_grid":
        if content.get("photos"):
            columns = parse_columns(options.get("columns"), 2)
            photo_width = (doc.content_width - PHOTO_GAP * (columns - 1)) / columns
            height = SECTION_TITLE_GAP + photo_width * PHOTO_RATIO + 14
        else:
            height = SECTION_TITLE_GAP + 10
    elif block_type == "signature_box":
        height = title + (50 if content.get("signatures") else 10)
    elif block_type == "text_section":
        text = content.get("text") or ""
        height = SECTION_TITLE_GAP + len(doc.split_text(text, doc.content_width, 10)) * 5 + 5
    elif block_type == "checklist":
        height = title + CHECKLIST_ROW * max(1, len(content.get("items") or []))
    elif block_type == "table":
        height = SECTION_TITLE_GAP + TABLE_ROW_HEIGHT * (1 + max(1, len(content.get("rows") or [])))
    elif block_type == "metrics_cards":
        columns = parse_columns(options.get("columns"), 3)
        rows = -(-len(content.get("metrics") or []) // columns)
        height = SECTION_TITLE_GAP + max(1, rows) * (METRIC_CARD_HEIGHT + METRIC_GAP)
    else:
        count = len(_content_items(block))
        if _is_two_column(block):
            height = title + -(-count // 2) * ROW_PITCH
        else:
            height = title + count * 13

    return min(height, doc.usable_height)


# =============================================================================
# ENTRY POINTS
# =============================================================================

async def render_block(doc: PdfDocument, block: dict, y: float, fetcher: Optional[ImageFetcher] = None) -> float:
    handler = PDF_BLOCK_RENDERERS.get(block.get("type"))
    if handler is None:
        logger.warning(f"Unknown block type '{block.get('type')}' in block '{block.get('blockId')}'; using single column")
        handler = _details
        block = {**block, "type": "single_column"}

    logger.debug(f"Rendering block {block.get('blockId')} ({block.get('type')}) at y={y:.1f}")
    return await handler(doc, block, y, fetcher or ImageFetcher())


def fill_attachment_items(block: dict, attachments: List[dict]) -> dict:
    """Copy of an attachment block with items from attachments when it has none."""
    content = block.get("content") or {}
    if block.get("type") == "photo_grid" and not content.get("photos"):
        photos = [photo_block_item(a) for a in attachments if attachment_kind(a) == "photo"]
        return {**block, "content": {**content, "photos": photos}}
    if block.get("type") == "signature_box" and not content.get("signatures"):
        signatures = [signature_block_item(a) for a in attachments if attachment_kind(a) == "signature"]
        return {**block, "content": {**content, "signatures": signatures}}
    return block


async def render_pdf(
    tree: dict,
    attachments: Optional[list] = None,
    document: Optional[PdfDocument] = None,
    fetcher: Optional[ImageFetcher] = None,
    branding: Optional[dict] = None,
    show_logo: Optional[bool] = None,
) -> PdfDocument:
    """
    Draw one render tree. With an existing document, the record starts on a
    new page of it (multi-record reports); the caller finalizes.

    attachments (enriched, see enrich_attachments) fill photo_grid and
    signature_box blocks that carry no items of their own.
    """
    if document is None:
        doc = PdfDocument.from_page(tree.get("page"))
        y = doc.margin_top
    else:
        doc = document
        y = doc.margin_top if doc.is_blank else doc.new_page()

    fetcher = fetcher or ImageFetcher()
    blocks = tree.get("blocks") or []

    if show_logo is None:
        header = next((b for b in blocks if b.get("type") == "header"), None)
        show_logo = _options(header).get("showLogo", True) is not False if header else True

    y = draw_report_header(doc, tree.get("metadata"), y, branding, show_logo=show_logo)

    for block in blocks:
        if attachments:
            block = fill_attachment_items(block, attachments)
        y = doc.ensure_space(y, estimate_block_height(doc, block))
        y = await render_block(doc, block, y, fetcher)

    logger.info(f"Drew {len(blocks)} block(s) for entry {(tree.get('metadata') or {}).get('entryId')}; {doc.page_count} page(s) so far")
    return doc


async def render_pdf_bytes(
    tree: dict,
    attachments: Optional[list] = None,
    fetcher: Optional[ImageFetcher] = None,
    branding: Optional[dict] = None,
    footer: Optional[dict] = None,
) -> bytes:
    doc = await render_pdf(tree, attachments, fetcher=fetcher, branding=branding)
    return doc.finalize(footer if footer is not None else build_footer(tree.get("metadata"), branding))
