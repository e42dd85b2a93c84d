"""
Report Pydantic Schemas

Request/response bodies for the /api/reports endpoints. Layouts and work
entries travel as plain dicts; the report engine validates layouts itself.
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any


# =============================================================================
# RENDER REQUESTS
# =============================================================================

class RenderTreeRequest(BaseModel):
    """One entry against one layout"""
    layout: Dict[str, Any]
    record: Dict[str, Any]
    binding_overrides: Optional[Dict[str, str]] = None
    field_selection: Optional[Dict[str, Any]] = None       # {"includeLogo", "fields"}


class ReportRequest(BaseModel):
    """Several entries, one report"""
    records: List[Dict[str, Any]] = Field(..., min_length=1)
    layout: Optional[Dict[str, Any]] = None                 # None: template pdf_layout / stock layout
    binding_overrides: Optional[Dict[str, str]] = None
    field_selections: Optional[Dict[str, Dict[str, Any]]] = None   # keyed by entry id


class EntriesPdfRequest(BaseModel):
    """Stored entries by id, optionally with a stored layout"""
    entry_ids: List[str] = Field(..., min_length=1)
    layout_id: Optional[str] = None
    field_selections: Optional[Dict[str, Dict[str, Any]]] = None


# =============================================================================
# LAYOUT VALIDATION
# =============================================================================

class LayoutValidateRequest(BaseModel):
    layout: Any = None


class LayoutValidateResponse(BaseModel):
    valid: bool
    errors: List[str] = []


class LayoutGenerateRequest(BaseModel):
    """Template whose fields_schema seeds a new layout"""
    template: Dict[str, Any]
