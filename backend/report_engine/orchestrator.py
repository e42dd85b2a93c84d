"""
Report Orchestrator

Entry point for whole reports: one or more work entries into a single PDF
(or HTML preview) with report header, page numbers and footer.

Two modes:
    schema given    every entry goes through the render tree and the PDF
                    adapter, each starting on a new page
    no schema       template-driven legacy path: report header, contract
                    information, then per entry an "Entry i of n" bar and
                    the entry's template pdf_layout sections

Usage:
    orchestrator = ReportOrchestrator(registry=LayoutRegistry(loader))
    pdf_bytes, filename = await orchestrator.build_pdf(records, schema)
    html = orchestrator.build_html(records, schema)
"""

import io
import logging
import re
from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional, Tuple

from .branding_config import get_branding
from .field_selection import get_entry_selection, include_logo
from .layout_config import get_stock_layout
from .layout_registry import LayoutRegistry
from .pdf.adapter import render_pdf
from .pdf.document import PdfDocument
from .pdf.headers import build_footer, draw_contract_info, draw_entry_header, draw_report_header
from .pdf.images import ImageFetcher
from .pdf.legacy import render_entry_legacy
from .render_tree import extract_metadata, generate_render_tree
from .renderers import render_pages_html

logger = logging.getLogger(__name__)

DEFAULT_LAYOUT_ID = "minimal_report"
FILENAME_PREFIX = "WorkLedger"


def generate_filename(contract_number: Optional[str] = None, on: Optional[datetime] = None) -> str:
    """WorkLedger_<contract>_<YYYY-MM-DD>.pdf, non-alphanumerics in the contract as '-'."""
    on = on or datetime.now(timezone.utc)
    contract = re.sub(r'[^a-zA-Z0-9]', '-', contract_number or 'REPORT')
    return f"{FILENAME_PREFIX}_{contract}_{on.strftime('%Y-%m-%d')}.pdf"


def render_html_pdf(html_content: str) -> bytes:
    """Print an HTML preview to PDF with WeasyPrint."""
    from weasyprint import HTML

    pdf_buffer = io.BytesIO()
    HTML(string=html_content).write_pdf(pdf_buffer)
    pdf_buffer.seek(0)

    return pdf_buffer.getvalue()


class ReportOrchestrator:

    def __init__(
        self,
        registry: Optional[LayoutRegistry] = None,
        fetcher: Optional[ImageFetcher] = None,
        branding: Optional[dict] = None,
    ):
        self.registry = registry or LayoutRegistry()
        self.fetcher = fetcher or ImageFetcher()
        self.branding = branding or get_branding()

    # =========================================================================
    # PDF
    # =========================================================================

    async def build_pdf(
        self,
        records: List[dict],
        schema: Optional[dict] = None,
        field_selections: Optional[Mapping] = None,
        binding_overrides: Optional[Mapping[str, str]] = None,
        generated_at: Optional[datetime] = None,
    ) -> Tuple[bytes, str]:
        """
        Render every record into one PDF.

        Args:
            records: Work entries, in report order
            schema: Layout schema; None uses each entry's template pdf_layout
            field_selections: {entry_id: {"includeLogo", "fields"}}
            binding_overrides: Legacy binding map applied to every record
            generated_at: Report timestamp (defaults to now)

        Returns:
            (pdf bytes, suggested filename)
        """
        if not records:
            raise ValueError("At least one work entry is required")

        generated_at = generated_at or datetime.now(timezone.utc)
        metadata = extract_metadata(records[0], generated_at)

        if schema is not None:
            doc = await self._draw_with_schema(records, schema, field_selections, binding_overrides, generated_at)
        else:
            doc = await self._draw_legacy(records, field_selections, metadata)

        pdf_bytes = doc.finalize(build_footer(metadata, self.branding))
        filename = generate_filename((metadata.get("contract") or {}).get("number"), generated_at)

        logger.info(f"Generated {filename}: {len(records)} entr{'y' if len(records) == 1 else 'ies'}, {doc.page_count} page(s)")
        return pdf_bytes, filename

    async def build_pdf_for_layout(self, records: List[dict], layout_id: str, **kwargs) -> Tuple[bytes, str]:
        """build_pdf with the schema looked up in the registry."""
        return await self.build_pdf(records, self.registry.get(layout_id), **kwargs)

    async def _draw_with_schema(self, records, schema, field_selections, binding_overrides, generated_at) -> PdfDocument:
        doc = None
        for record in records:
            selection = get_entry_selection(field_selections, record.get("id"))
            tree = generate_render_tree(schema, record, binding_overrides, selection, generated_at)
            if doc is None:
                doc = PdfDocument.from_page(tree["page"])
            await render_pdf(tree, document=doc, fetcher=self.fetcher, branding=self.branding)
        return doc

    async def _draw_legacy(self, records, field_selections, metadata) -> PdfDocument:
        pdf_layout = ((records[0].get("template") or {}).get("pdf_layout")) or {}
        doc = PdfDocument(pdf_layout.get("page_size") or "A4", pdf_layout.get("orientation") or "portrait")

        y = draw_report_header(doc, metadata, doc.margin_top, self.branding)
        if records[0].get("contract"):
            y = draw_contract_info(doc, records[0]["contract"], y)

        total = len(records)
        for index, record in enumerate(records):
            selection = get_entry_selection(field_selections, record.get("id"))

            if index > 0:
                y = doc.new_page()
                if include_logo(selection):
                    y = draw_report_header(doc, metadata, y, self.branding)

            y = draw_entry_header(doc, record, index + 1, total, y)
            y = await render_entry_legacy(doc, record, y, selection, self.fetcher)

        return doc

    # =========================================================================
    # HTML
    # =========================================================================

    def build_trees(
        self,
        records: List[dict],
        schema: Optional[dict] = None,
        field_selections: Optional[Mapping] = None,
        binding_overrides: Optional[Mapping[str, str]] = None,
        generated_at: Optional[datetime] = None,
    ) -> List[dict]:
        schema = schema if schema is not None else get_stock_layout(DEFAULT_LAYOUT_ID)
        generated_at = generated_at or datetime.now(timezone.utc)
        return [
            generate_render_tree(
                schema,
                record,
                binding_overrides,
                get_entry_selection(field_selections, record.get("id")),
                generated_at,
            )
            for record in records
        ]

    def build_html(self, records: List[dict], schema: Optional[dict] = None, **kwargs: Any) -> str:
        """HTML preview of every record, one page each. No schema uses the minimal stock layout."""
        return render_pages_html(self.build_trees(records, schema, **kwargs), self.branding)

    def build_html_pdf(self, records: List[dict], schema: Optional[dict] = None, **kwargs: Any) -> Tuple[bytes, str]:
        """The HTML preview printed through WeasyPrint."""
        trees = self.build_trees(records, schema, **kwargs)
        pdf_bytes = render_html_pdf(render_pages_html(trees, self.branding))
        contract = ((trees[0].get("metadata") or {}).get("contract") or {}).get("number") if trees else None
        return pdf_bytes, generate_filename(contract)
