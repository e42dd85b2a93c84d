"""
Render Router

Posted layout + posted entries:
- POST /render-tree   one entry's render tree (JSON)
- POST /preview       HTML preview of one or more entries
- POST /pdf           streamed PDF
- POST /preview/pdf   HTML preview printed with WeasyPrint
"""

from fastapi import APIRouter
from fastapi.responses import HTMLResponse

from report_engine.orchestrator import ReportOrchestrator
from report_engine.render_tree import generate_render_tree
from schemas_reports import RenderTreeRequest, ReportRequest

from .common import pdf_response, report_errors

router = APIRouter()


@router.post("/render-tree")
async def post_render_tree(request: RenderTreeRequest):
    with report_errors():
        return generate_render_tree(
            request.layout,
            request.record,
            request.binding_overrides,
            request.field_selection,
        )


@router.post("/preview")
async def post_preview(request: ReportRequest):
    """HTML preview, one page-preview per entry."""
    orchestrator = ReportOrchestrator()
    with report_errors():
        html = orchestrator.build_html(
            request.records,
            request.layout,
            field_selections=request.field_selections,
            binding_overrides=request.binding_overrides,
        )
    return HTMLResponse(content=html)


@router.post("/pdf")
async def post_pdf(request: ReportRequest):
    orchestrator = ReportOrchestrator()
    with report_errors():
        pdf_bytes, filename = await orchestrator.build_pdf(
            request.records,
            request.layout,
            field_selections=request.field_selections,
            binding_overrides=request.binding_overrides,
        )
    return pdf_response(pdf_bytes, filename)


@router.post("/preview/pdf")
async def post_preview_pdf(request: ReportRequest):
    orchestrator = ReportOrchestrator()
    with report_errors():
        pdf_bytes, filename = orchestrator.build_html_pdf(
            request.records,
            request.layout,
            field_selections=request.field_selections,
            binding_overrides=request.binding_overrides,
        )
    return pdf_response(pdf_bytes, filename)
