"""
Report Templates

CSS generation and base HTML templates using branding.
All styles are dynamically generated from branding config and the page setup.
"""

from html import escape

from .branding_config import get_logo_size_px
from .layout_config import get_page_dimensions


def generate_css(branding: dict, page: dict = None) -> str:
    """Generate complete CSS for work report previews based on branding."""
    primary = branding.get("primary_color", "#3b82f6")
    text_color = branding.get("text_color", "#1f2937")
    muted_color = branding.get("muted_color", "#6b7280")
    border_color = branding.get("border_color", "#e5e7eb")

    font_family = branding.get("font_family", "Helvetica, Arial, sans-serif")
    header_font_size = branding.get("header_font_size", "16pt")
    body_font_size = branding.get("body_font_size", "10pt")
    small_font_size = branding.get("small_font_size", "8pt")

    logo_size = get_logo_size_px(branding)

    page = page or {}
    width, height = get_page_dimensions(page.get("size"), page.get("orientation"))

    return f'''
        @page {{ size: {width}mm {height}mm; margin: 0; }}

        * {{ margin: 0; padding: 0; box-sizing: border-box; }}

        body {{
            font-family: {font_family};
            font-size: {body_font_size};
            line-height: 1.4;
            color: {text_color};
        }}

        .page-break {{ page-break-before: always; }}

        .page-preview {{
            background: white;
            margin: 0 auto;
            position: relative;
        }}

        .page-preview h1 {{ font-size: 18pt; margin: 0 0 6px 0; font-weight: 700; }}
        .page-preview h2 {{
            font-size: 13pt;
            margin: 14px 0 6px 0;
            font-weight: 600;
            border-bottom: 2px solid {border_color};
            padding-bottom: 3px;
        }}
        .page-preview h3 {{ font-size: 11pt; margin: 10px 0 4px 0; font-weight: 600; }}

        /* Header */
        .header-block {{
            border-bottom: 3px solid {primary};
            padding-bottom: 10px;
            margin-bottom: 16px;
        }}

        .header-block .brand {{
            color: {primary};
            font-size: {header_font_size};
            font-weight: 700;
            letter-spacing: -0.5px;
        }}

        .header-block .logo {{
            float: right;
            width: {logo_size};
            height: auto;
        }}

        .header-block .subtitle {{
            color: {muted_color};
            margin-top: 2px;
        }}

        .header-block .meta {{
            font-size: {small_font_size};
            color: {muted_color};
            margin-top: 3px;
        }}

        /* Detail cards */
        .detail-grid {{
            display: grid;
            grid-template-columns: repeat(2, 1fr);
            gap: 10px;
            margin: 12px 0;
        }}

        .detail-grid.single-column {{ grid-template-columns: 1fr; }}

        .detail-field {{
            padding: 8px 10px;
            background: #f9fafb;
            border-radius: 6px;
            border: 1px solid {border_color};
        }}

        .detail-field label {{
            display: block;
            font-size: {small_font_size};
            color: {muted_color};
            font-weight: 600;
            text-transform: uppercase;
            letter-spacing: 0.5px;
            margin-bottom: 3px;
        }}

        .detail-field span {{ display: block; font-weight: 500; }}

        /* Free text */
        .text-section {{
            margin: 12px 0;
            padding: 12px;
            background: #f9fafb;
            border-radius: 6px;
            border-left: 4px solid {primary};
        }}

        .text-section p {{ white-space: pre-wrap; line-height: 1.6; }}

        /* Tables */
        .checklist-table,
        .data-table {{
            width: 100%;
            border-collapse: collapse;
            margin: 10px 0;
            border: 1px solid {border_color};
        }}

        .checklist-table th,
        .data-table th {{
            background: #f3f4f6;
            padding: 6px 10px;
            text-align: left;
            font-size: {small_font_size};
            font-weight: 600;
            border-bottom: 2px solid {border_color};
        }}

        .checklist-table td,
        .data-table td {{
            padding: 6px 10px;
            border-bottom: 1px solid #f3f4f6;
        }}

        .check-box {{
            display: inline-block;
            width: 12px;
            height: 12px;
            border: 1px solid {text_color};
            margin-right: 6px;
            text-align: center;
            line-height: 11px;
            font-size: 9px;
        }}

        /* Photos */
        .photo-grid {{
            display: grid;
            grid-template-columns: repeat(var(--columns, 2), 1fr);
            gap: 12px;
            margin: 12px 0;
        }}

        .photo-item {{
            border-radius: 8px;
            overflow: hidden;
            border: 1px solid {border_color};
            background: #f9fafb;
            page-break-inside: avoid;
        }}

        .photo-item img {{ width: 100%; height: auto; display: block; }}

        .photo-caption {{
            font-size: {small_font_size};
            color: {muted_color};
            padding: 6px 10px;
            background: white;
        }}

        .empty-note {{ color: {muted_color}; font-style: italic; }}

        /* Signatures */
        .signature-box {{
            display: grid;
            grid-template-columns: repeat(2, 1fr);
            gap: 20px;
            margin: 16px 0;
            padding: 16px;
            background: #f9fafb;
            border-radius: 8px;
        }}

        .signature-item {{
            text-align: center;
            padding: 12px;
            background: white;
            border-radius: 6px;
            border: 1px solid {border_color};
            page-break-inside: avoid;
        }}

        .signature-item img {{
            max-width: 200px;
            height: auto;
            margin: 0 auto;
            display: block;
            border: 1px solid {border_color};
        }}

        .signature-item .placeholder {{
            height: 80px;
            border: 2px dashed #d1d5db;
            border-radius: 4px;
            display: flex;
            align-items: center;
            justify-content: center;
            color: #9ca3af;
        }}

        .signature-label {{
            font-size: {small_font_size};
            color: {muted_color};
            margin-top: 6px;
            font-weight: 600;
        }}

        /* Metrics */
        .metrics-grid {{
            display: grid;
            grid-template-columns: repeat(var(--columns, 3), 1fr);
            gap: 10px;
            margin: 12px 0;
        }}

        .metric-card {{
            padding: 12px;
            background: #eff6ff;
            border-radius: 8px;
            border: 1px solid #bfdbfe;
            text-align: center;
        }}

        .metric-label {{
            font-size: {small_font_size};
            color: #1e40af;
            font-weight: 600;
            text-transform: uppercase;
        }}

        .metric-value {{ font-size: 22pt; font-weight: 700; color: #1e3a8a; }}
        .metric-unit {{ font-size: {small_font_size}; color: {primary}; }}

        /* Diagnostics */
        .unknown-block {{
            margin: 10px 0;
            padding: 10px;
            background: #fef3c7;
            border-left: 4px solid #f59e0b;
            border-radius: 4px;
        }}

        .unknown-block pre {{ font-size: {small_font_size}; margin-top: 6px; white-space: pre-wrap; }}
    '''


def page_style(page: dict) -> str:
    """Inline style for one .page-preview: paper size and margins in mm."""
    width, height = get_page_dimensions(page.get("size"), page.get("orientation"))
    margins = page.get("margins") or {}
    return (
        f"width: {width}mm; min-height: {height}mm; "
        f"padding: {margins.get('top', 20)}mm {margins.get('right', 20)}mm "
        f"{margins.get('bottom', 20)}mm {margins.get('left', 20)}mm;"
    )


def generate_base_html(title: str, css: str, body: str) -> str:
    """Generate complete HTML document with CSS and body content."""
    return f'''<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <title>{escape(title)}</title>
    <style>
{css}
    </style>
</head>
<body>
    {body}
</body>
</html>'''
