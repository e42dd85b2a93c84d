"""
Entries Router

Stored work entries, loaded through report_data:
- GET  /entries/{entry_id}/html?layout_id=   HTML preview of one entry
- POST /entries/pdf                          PDF of several entries
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import HTMLResponse
from sqlalchemy.orm import Session

from database import get_db
from report_data import fetch_layout_schema, fetch_records
from report_engine.layout_registry import LayoutRegistry
from report_engine.orchestrator import ReportOrchestrator
from schemas_reports import EntriesPdfRequest

from .common import pdf_response, report_errors

router = APIRouter()


def get_orchestrator(db: Session = Depends(get_db)) -> ReportOrchestrator:
    registry = LayoutRegistry(loader=lambda layout_id: fetch_layout_schema(db, layout_id))
    return ReportOrchestrator(registry=registry)


@router.get("/entries/{entry_id}/html")
async def get_entry_html(
    entry_id: str,
    layout_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    orchestrator: ReportOrchestrator = Depends(get_orchestrator),
):
    records = fetch_records(db, [entry_id])
    if not records:
        raise HTTPException(status_code=404, detail="Work entry not found")

    with report_errors():
        schema = orchestrator.registry.get(layout_id) if layout_id else None
        html = orchestrator.build_html(records, schema)

    return HTMLResponse(content=html)


@router.post("/entries/pdf")
async def post_entries_pdf(
    request: EntriesPdfRequest,
    db: Session = Depends(get_db),
    orchestrator: ReportOrchestrator = Depends(get_orchestrator),
):
    records = fetch_records(db, request.entry_ids)
    if not records:
        raise HTTPException(status_code=404, detail="No work entries found for the selected IDs")

    with report_errors():
        schema = orchestrator.registry.get(request.layout_id) if request.layout_id else None
        pdf_bytes, filename = await orchestrator.build_pdf(records, schema, field_selections=request.field_selections)

    return pdf_response(pdf_bytes, filename)
