"""
Layouts Router

- POST /layouts/validate   structural check of a layout schema
- POST /layouts/generate   layout schema generated from a template
- GET  /layouts/stock      built-in layouts
- GET  /layouts/stock/{layout_id}
"""

from fastapi import APIRouter, HTTPException

from report_engine.layout_config import STOCK_LAYOUTS, collect_layout_errors, get_stock_layout
from report_engine.layout_generator import preview_layout_generation
from schemas_reports import LayoutGenerateRequest, LayoutValidateRequest, LayoutValidateResponse

from .common import report_errors

router = APIRouter()


@router.post("/layouts/validate", response_model=LayoutValidateResponse)
async def validate_layout_schema(request: LayoutValidateRequest):
    """Every structural error of the layout, not just the first."""
    errors = collect_layout_errors(request.layout)
    return LayoutValidateResponse(valid=not errors, errors=errors)


@router.post("/layouts/generate")
async def generate_layout(request: LayoutGenerateRequest):
    """Generated layout with a summary and suggested name; nothing is saved."""
    with report_errors():
        return preview_layout_generation(request.template)


@router.get("/layouts/stock")
async def list_stock_layouts():
    return [
        {"layout_id": layout_id, "name": entry["name"], "description": entry.get("description")}
        for layout_id, entry in STOCK_LAYOUTS.items()
    ]


@router.get("/layouts/stock/{layout_id}")
async def get_stock_layout_schema(layout_id: str):
    schema = get_stock_layout(layout_id)
    if schema is None:
        raise HTTPException(status_code=404, detail="Layout not found")
    return schema
