"""
Block Renderers for Work Report Previews (HTML)

Each renderer function takes the render context and one render-tree block and
returns HTML for that block. Renderers are registered in BLOCK_RENDERERS for
dynamic lookup; unknown block types get a flagged diagnostic panel instead.

All user-supplied text goes through esc(); URLs through safe_url().
"""

import json
import logging
from html import escape as html_escape
from typing import Any, Callable, Dict, List, Optional

from .branding_config import get_branding, get_logo_data_url
from .formatters import (
    EMPTY_VALUE,
    format_date,
    format_datetime,
    format_display_date,
    format_display_datetime,
    format_label,
    format_value,
    guess_field_type,
    is_checked,
    parse_columns,
)
from .templates import generate_base_html, generate_css, page_style

logger = logging.getLogger(__name__)

SAFE_URL_SCHEMES = ('http://', 'https://', 'data:image/', '/')


class RenderContext:
    """Context object passed to all renderers with everything they need."""
    def __init__(self, tree: dict, branding: Optional[dict] = None):
        self.tree = tree
        self.page = tree.get('page') or {}
        self.metadata = tree.get('metadata') or {}
        self.branding = branding or get_branding()

    @property
    def contract(self) -> dict:
        return self.metadata.get('contract') or {}


def esc(text: Any) -> str:
    if text is None:
        return ''
    return html_escape(str(text))


def safe_url(url: Any) -> str:
    """Escaped URL, or '' for schemes that could run script (javascript:, etc.)."""
    if not url or not isinstance(url, str):
        return ''
    if not url.strip().lower().startswith(SAFE_URL_SCHEMES):
        logger.warning(f"Dropped image URL with unsupported scheme: {url[:40]}")
        return ''
    return html_escape(url, quote=True)


def display_value(value: Any) -> str:
    """Escaped display text for a content value. None -> em-dash."""
    if value is None or value == '':
        return EMPTY_VALUE
    kind = guess_field_type(value)
    if kind == 'date':
        return esc(format_date(value))
    if kind == 'datetime':
        return esc(format_datetime(value))
    return esc(format_value(value))


def content_fields(content: dict) -> List[tuple]:
    """(key, value) pairs of a block's content, without _private keys."""
    return [(k, v) for k, v in content.items() if not str(k).startswith('_')]


def _title(block: dict, default: str) -> str:
    return (block.get('options') or {}).get('title') or default


# =============================================================================
# BLOCK RENDERERS
# =============================================================================

def r_header(ctx: RenderContext, block: dict) -> str:
    content = block.get('content') or {}
    options = block.get('options') or {}
    static = options.get('content') or {}

    title = content.get('title') or static.get('title') or 'Work Report'
    subtitle = content.get('subtitle') or static.get('subtitle')

    brand_html = ''
    if options.get('showLogo', True):
        logo_url = get_logo_data_url(ctx.branding)
        logo_html = f'<img src="{safe_url(logo_url)}" class="logo" alt="Logo">' if logo_url else ''
        brand_html = f'{logo_html}<div class="brand">{esc(ctx.branding.get("brand_name"))}</div>'

    meta = []
    contract_number = content.get('contract_number') or ctx.contract.get('number')
    if contract_number:
        meta.append(f'Contract: {esc(contract_number)}')
    if ctx.contract.get('client'):
        meta.append(f'Client: {esc(ctx.contract["client"])}')
    if ctx.metadata.get('entryDate'):
        meta.append(f'Date: {esc(format_date(ctx.metadata["entryDate"]))}')
    if ctx.metadata.get('shift'):
        meta.append(f'Shift: {esc(ctx.metadata["shift"])}')

    subtitle_html = f'<div class="subtitle">{esc(subtitle)}</div>' if subtitle else ''
    meta_html = f'<div class="meta">{" | ".join(meta)}</div>' if meta else ''

    return f'''<div class="header-block">
        {brand_html}
        <h1>{esc(title)}</h1>
        {subtitle_html}
        {meta_html}
    </div>'''


def r_detail_entry(ctx: RenderContext, block: dict) -> str:
    content = block.get('content') or {}
    options = block.get('options') or {}
    labels = content.get('_labels') or {}

    single = block.get('type') == 'single_column' or block.get('layout') == 'single_column' or options.get('columns') == 1
    grid_class = 'detail-grid single-column' if single else 'detail-grid'

    fields = ''.join(
        f'''<div class="detail-field">
            <label>{esc(labels.get(key) or format_label(key))}</label>
            <span>{display_value(value)}</span>
        </div>'''
        for key, value in content_fields(content)
    )

    title = options.get('title')
    title_html = f'<h2>{esc(title)}</h2>' if title else ''
    return f'{title_html}<div class="{grid_class}">{fields}</div>'


def r_text_section(ctx: RenderContext, block: dict) -> str:
    content = block.get('content') or {}
    text = content.get('text')
    if text is None:
        text = next((v for _, v in content_fields(content) if v not in (None, '')), None)

    body = esc(text) if text not in (None, '') else EMPTY_VALUE
    return f'''<div class="text-section">
        <h3>{esc(_title(block, 'Observations'))}</h3>
        <p>{body}</p>
    </div>'''


def r_checklist(ctx: RenderContext, block: dict) -> str:
    content = block.get('content') or {}
    options = block.get('options') or {}
    items = content.get('items') or []
    show_checked_only = options.get('showCheckedOnly', False)
    if show_checked_only:
        items = [item for item in items if is_checked(item.get('status'))]

    if items:
        rows = ''.join(
            f'''<tr>
                <td>{esc(item.get('task'))}</td>
                <td><strong>{esc(format_value(item.get('status')))}</strong></td>
                <td>{esc(item.get('remarks'))}</td>
            </tr>'''
            for item in items
        )
        table = f'''<table class="checklist-table">
            <thead><tr><th style="width: 50%;">Task</th><th style="width: 25%;">Status</th><th style="width: 25%;">Remarks</th></tr></thead>
            <tbody>{rows}</tbody>
        </table>'''
        return f'<div><h2>{esc(_title(block, "Checklist"))}</h2>{table}</div>'

    labels = content.get('_labels') or {}
    rows = []
    for key, value in content_fields(content):
        if key == 'items':
            continue
        checked = is_checked(value)
        if show_checked_only and not checked:
            continue
        mark = '&#10003;' if checked else ''
        rows.append(
            f'<tr><td><span class="check-box">{mark}</span>{esc(labels.get(key) or format_label(key))}</td></tr>'
        )

    if not rows:
        return ''
    return f'''<div><h2>{esc(_title(block, "Checklist"))}</h2>
        <table class="checklist-table"><tbody>{"".join(rows)}</tbody></table>
    </div>'''


def r_table(ctx: RenderContext, block: dict) -> str:
    content = block.get('content') or {}
    options = block.get('options') or {}
    labels = content.get('_labels') or {}

    rows = content.get('rows')
    if isinstance(rows, list) and rows and all(isinstance(r, dict) for r in rows):
        columns = options.get('headers') or list(dict.fromkeys(k for r in rows for k in r))
        body_rows = [[r.get(c) for c in columns] for r in rows]
    else:
        fields = content_fields(content)
        columns = [k for k, _ in fields]
        body_rows = [[v for _, v in fields]] if fields else []

    if not columns:
        return ''

    head = ''.join(f'<th>{esc(labels.get(c) or format_label(c))}</th>' for c in columns)
    body = ''.join(
        '<tr>' + ''.join(f'<td>{display_value(v)}</td>' for v in row) + '</tr>'
        for row in body_rows
    )
    title = options.get('title')
    title_html = f'<h2>{esc(title)}</h2>' if title else ''
    return f'''{title_html}<table class="data-table">
        <thead><tr>{head}</tr></thead>
        <tbody>{body}</tbody>
    </table>'''


def r_photo_grid(ctx: RenderContext, block: dict) -> str:
    content = block.get('content') or {}
    options = block.get('options') or {}
    photos = content.get('photos') or []
    columns = parse_columns(options.get('columns'), 2)
    show_captions = options.get('showCaptions', True)
    show_timestamps = options.get('showTimestamps', True)

    title_html = f'<h2>{esc(_title(block, "Photo Documentation"))}</h2>'
    if not photos:
        return f'{title_html}<p class="empty-note">No photos attached</p>'

    items = []
    for photo in photos:
        caption_parts = []
        if show_captions and photo.get('caption'):
            caption_parts.append(f'<div><strong>{esc(photo["caption"])}</strong></div>')
        if show_timestamps and photo.get('timestamp'):
            caption_parts.append(f'<div>{esc(format_display_datetime(photo["timestamp"]))}</div>')
        if options.get('showLocation') and photo.get('location'):
            caption_parts.append(f'<div>{esc(photo["location"])}</div>')

        src = safe_url(photo.get('url'))
        img_html = f'<img src="{src}" alt="{esc(photo.get("caption") or "Photo")}" />' if src else ''
        items.append(f'''<div class="photo-item">
            {img_html}
            <div class="photo-caption">{"".join(caption_parts)}</div>
        </div>''')

    return f'{title_html}<div class="photo-grid" style="--columns: {columns};">{"".join(items)}</div>'


def r_signature_box(ctx: RenderContext, block: dict) -> str:
    content = block.get('content') or {}
    signatures = content.get('signatures') or []

    title_html = f'<h2>{esc(_title(block, "Signatures"))}</h2>'
    if not signatures:
        return f'{title_html}<p class="empty-note">Not signed yet</p>'

    items = []
    for sig in signatures:
        src = safe_url(sig.get('url'))
        if src:
            image_html = f'<img src="{src}" alt="{esc(sig.get("name") or "Signature")}" />'
        else:
            image_html = '<div class="placeholder">No signature</div>'

        lines = [f'<div class="signature-label">{esc(sig.get("caption") or sig.get("name") or "Signature")}</div>']
        if sig.get('date'):
            lines.append(f'<div class="signature-label">{esc(format_display_date(sig["date"]))}</div>')
        if sig.get('role'):
            lines.append(f'<div class="signature-label">{esc(sig["role"])}</div>')

        items.append(f'<div class="signature-item">{image_html}{"".join(lines)}</div>')

    return f'{title_html}<div class="signature-box">{"".join(items)}</div>'


def r_metrics_cards(ctx: RenderContext, block: dict) -> str:
    content = block.get('content') or {}
    options = block.get('options') or {}
    metrics = content.get('metrics') or []
    columns = parse_columns(options.get('columns'), 3)

    if not metrics:
        return ''

    cards = ''.join(
        f'''<div class="metric-card">
            <div class="metric-label">{esc(metric.get('label'))}</div>
            <div class="metric-value">{esc(metric.get('value'))}</div>
            <div class="metric-unit">{esc(metric.get('unit'))}</div>
        </div>'''
        for metric in metrics
    )
    return f'<div class="metrics-grid" style="--columns: {columns};">{cards}</div>'


def r_unknown(ctx: RenderContext, block: dict) -> str:
    logger.warning(f"Unknown block type '{block.get('type')}' in block '{block.get('blockId')}'")
    raw = json.dumps(block.get('content'), indent=2, default=str)
    return f'''<div class="unknown-block">
        <strong>Unknown block type: {esc(block.get('type'))}</strong>
        <pre>{esc(raw)}</pre>
    </div>'''


# =============================================================================
# RENDERER REGISTRY
# =============================================================================

BLOCK_RENDERERS: Dict[str, Callable[[RenderContext, dict], str]] = {
    'header': r_header,
    'detail_entry': r_detail_entry,
    'two_column': r_detail_entry,
    'single_column': r_detail_entry,
    'text_section': r_text_section,
    'checklist': r_checklist,
    'table': r_table,
    'photo_grid': r_photo_grid,
    'signature_box': r_signature_box,
    'metrics_cards': r_metrics_cards,
}


def render_block(ctx: RenderContext, block: dict) -> str:
    renderer = BLOCK_RENDERERS.get(block.get('type'), r_unknown)
    return renderer(ctx, block)


def render_blocks_html(tree: dict, branding: Optional[dict] = None) -> str:
    """One record's page fragment: a .page-preview div holding every block."""
    ctx = RenderContext(tree, branding)
    parts = [render_block(ctx, block) for block in tree.get('blocks') or []]
    return f'<div class="page-preview" style="{page_style(ctx.page)}">{"".join(parts)}</div>'


def render_html(tree: dict, branding: Optional[dict] = None) -> str:
    """Complete HTML document for one render tree."""
    return render_pages_html([tree], branding)


def render_pages_html(trees: List[dict], branding: Optional[dict] = None) -> str:
    """Complete HTML document for several records, one page-preview each."""
    branding = branding or get_branding()
    pages = [render_blocks_html(tree, branding) for tree in trees]
    body = '\n<div class="page-break"></div>\n'.join(pages)

    page = trees[0].get('page') if trees else None
    metadata = (trees[0].get('metadata') or {}) if trees else {}
    contract_number = (metadata.get('contract') or {}).get('number')
    title = f"Work Report - {contract_number}" if contract_number else "Work Report"

    logger.info(f"Rendered HTML preview: {len(trees)} record(s)")
    return generate_base_html(title, generate_css(branding, page), body)
