"""
PDF Rendering Package

Draws render trees (and template-driven legacy entries) with reportlab.

- document: PdfDocument canvas wrapper, page breaks, footer stamping
- layouts: the seven block layout renderers
- adapter: render tree -> PdfDocument
- legacy: template pdf_layout path and simple key/value fallback
- headers: report, contract and entry headers
- images: httpx image fetching and Pillow decoding
"""

from .adapter import render_block, render_pdf, render_pdf_bytes
from .document import PdfDocument
from .headers import build_footer
from .images import ImageFetcher
from .legacy import render_entry_legacy

__all__ = [
    'PdfDocument',
    'ImageFetcher',
    'build_footer',
    'render_block',
    'render_pdf',
    'render_pdf_bytes',
    'render_entry_legacy',
]
