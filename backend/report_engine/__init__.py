"""
Report Engine Package

Turns work entries plus a report layout into HTML previews and PDFs.
Separated from routers for maintainability.

Components:
- binding / conditions: binding expressions and show_if evaluation
- layout_config: layout schema constants, stock layouts, validation
- layout_generator: layout schema generated from a template's fields_schema
- render_tree: schema + record -> backend-agnostic render tree
- enrichment: photo/signature captions from the entry's template
- branding_config / templates / renderers: HTML preview (r_* functions)
- pdf: reportlab PDF adapter and block layouts
- layout_registry / orchestrator: layout lookup and whole-report assembly
"""

from .branding_config import DEFAULT_BRANDING, get_branding
from .errors import ImageEmbedError, LayoutNotFoundError, ReportEngineError, StructuralError
from .layout_config import STOCK_LAYOUTS, get_stock_layout, validate_layout
from .layout_generator import generate_layout_from_template
from .layout_registry import LayoutRegistry, TTLCache
from .orchestrator import ReportOrchestrator, generate_filename
from .render_tree import generate_render_tree
from .renderers import BLOCK_RENDERERS, render_html, render_pages_html
from .pdf import render_pdf, render_pdf_bytes

__all__ = [
    'DEFAULT_BRANDING',
    'STOCK_LAYOUTS',
    'get_branding',
    'get_stock_layout',
    'validate_layout',
    'generate_layout_from_template',
    'generate_render_tree',
    'BLOCK_RENDERERS',
    'render_html',
    'render_pages_html',
    'render_pdf',
    'render_pdf_bytes',
    'LayoutRegistry',
    'TTLCache',
    'ReportOrchestrator',
    'generate_filename',
    'ReportEngineError',
    'StructuralError',
    'LayoutNotFoundError',
    'ImageEmbedError',
]
