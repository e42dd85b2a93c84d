"""
Report Layout Configuration

A layout schema is a page setup plus an ordered list of sections:

    {
        "page": {"size": "A4", "orientation": "portrait", "margins": {...}},
        "sections": [
            {"section_id": "header", "block_type": "header", ...},
            ...
        ]
    }

Two section dialects exist side by side:
- self-describing: the section carries binding_rules (Layout Builder output)
- legacy: no binding_rules; a "fields" list and sometimes "type" instead of
  "block_type" (older hardcoded layouts)

Sizes are millimetres throughout.
"""

import copy
import logging
from typing import Any, List, Optional, Tuple

from .errors import StructuralError

logger = logging.getLogger(__name__)

# =============================================================================
# PAGE SETUP
# =============================================================================

PAGE_SIZES = {
    "A4": (210, 297),
    "LETTER": (216, 279),
}

DEFAULT_MARGINS = {"top": 20, "right": 20, "bottom": 20, "left": 20}

DEFAULT_PAGE = {
    "size": "A4",
    "orientation": "portrait",
    "margins": DEFAULT_MARGINS,
}

# =============================================================================
# BLOCK TYPES
# =============================================================================

BLOCK_TYPES = (
    "header",
    "detail_entry",
    "two_column",
    "single_column",
    "text_section",
    "checklist",
    "table",
    "metrics_cards",
    "photo_grid",
    "signature_box",
)

ATTACHMENT_BLOCK_TYPES = ("photo_grid", "signature_box")

# Template field types that only render inside photo_grid / signature_box
ATTACHMENT_FIELD_TYPES = ("photo", "signature", "file", "image")

SELF_DESCRIBING = "self_describing"
LEGACY = "legacy"

# =============================================================================
# STOCK LAYOUTS
# =============================================================================

STOCK_LAYOUTS = {
    "minimal_report": {
        "name": "Minimal Report",
        "schema": {
            "page": {"size": "A4", "orientation": "portrait", "margins": dict(DEFAULT_MARGINS)},
            "sections": [
                {
                    "section_id": "header",
                    "block_type": "header",
                    "content": {"title": "Work Report", "subtitle": "Maintenance Activity"},
                    "binding_rules": {},
                    "options": {},
                },
                {
                    "section_id": "details",
                    "block_type": "detail_entry",
                    "binding_rules": {"mode": "auto_extract_all"},
                    "options": {"columns": 2},
                    "layout": "two_column",
                },
                {
                    "section_id": "photos",
                    "block_type": "photo_grid",
                    "binding_rules": {},
                    "options": {"columns": 2, "title": "Photo Documentation"},
                },
                {
                    "section_id": "signatures",
                    "block_type": "signature_box",
                    "binding_rules": {},
                    "options": {"title": "Signatures"},
                },
            ],
        },
    },
    "photo_focused": {
        "name": "Photo-Focused Report",
        "schema": {
            "page": {"size": "A4", "orientation": "portrait", "margins": {"top": 15, "right": 15, "bottom": 15, "left": 15}},
            "sections": [
                {
                    "section_id": "header",
                    "block_type": "header",
                    "content": {"title": "Visual Inspection Report"},
                    "binding_rules": {},
                    "options": {},
                },
                {
                    "section_id": "photo_evidence",
                    "block_type": "photo_grid",
                    "binding_rules": {},
                    "options": {"columns": 3, "showTimestamps": True, "showCaptions": True},
                },
                {
                    "section_id": "signatures",
                    "block_type": "signature_box",
                    "binding_rules": {},
                    "options": {"title": "Signatures"},
                },
            ],
        },
    },
    "daily_report": {
        "name": "Daily Work Report (legacy)",
        "schema": {
            "page": {"size": "A4", "orientation": "portrait", "margins": dict(DEFAULT_MARGINS)},
            "sections": [
                {"section_id": "header", "type": "header", "show_logo": True, "content": {"title": "Daily Work Report"}},
                {"section_id": "entry_info", "type": "detail_entry", "layout": "two_column", "fields": ["entry_date", "shift", "technician_name", "location"]},
                {"section_id": "work_done", "type": "text_section", "title": "Work Performed"},
                {"section_id": "checklist", "type": "checklist", "title": "Checklist", "show_status": True},
                {"section_id": "photos", "type": "photo_grid", "columns": 2, "show_timestamps": True, "show_captions": True},
                {"section_id": "signatures", "type": "signature_box", "title": "Sign-Off"},
            ],
        },
    },
}


def get_stock_layout(layout_id: str) -> Optional[dict]:
    entry = STOCK_LAYOUTS.get(layout_id)
    if not entry:
        return None
    return copy.deepcopy(entry["schema"])


# =============================================================================
# PAGE HELPERS
# =============================================================================

def get_page_config(page: Any) -> dict:
    """Page config with defaults filled in."""
    page = page if isinstance(page, dict) else {}
    margins = dict(DEFAULT_MARGINS)
    if isinstance(page.get("margins"), dict):
        margins.update({k: v for k, v in page["margins"].items() if k in DEFAULT_MARGINS and v is not None})
    return {
        "size": page.get("size") or DEFAULT_PAGE["size"],
        "orientation": page.get("orientation") or DEFAULT_PAGE["orientation"],
        "margins": margins,
    }


def get_page_dimensions(size: str = "A4", orientation: str = "portrait") -> Tuple[float, float]:
    """(width, height) in mm. Unknown sizes fall back to A4."""
    width, height = PAGE_SIZES.get(str(size or "A4").upper(), PAGE_SIZES["A4"])
    if orientation == "landscape":
        return height, width
    return width, height


# =============================================================================
# SECTION HELPERS
# =============================================================================

def get_block_type(section: dict) -> Optional[str]:
    """block_type, or the legacy "type" key."""
    return section.get("block_type") or section.get("type")


def detect_dialect(section: dict) -> str:
    if isinstance(section, dict) and "binding_rules" in section:
        return SELF_DESCRIBING
    return LEGACY


def get_section_field_keys(section: dict) -> List[str]:
    """Field keys of a legacy section. Entries may be plain keys or field dicts."""
    keys = []
    for field in section.get("fields") or []:
        if isinstance(field, str):
            keys.append(field)
        elif isinstance(field, dict) and field.get("field_id"):
            keys.append(field["field_id"])
    return keys


# =============================================================================
# VALIDATION
# =============================================================================

def collect_layout_errors(schema: Any) -> List[str]:
    """Validate a layout schema. Returns list of error messages."""
    errors = []

    if not isinstance(schema, dict):
        return ["Layout schema must be an object"]

    if "page" not in schema or schema.get("page") is None:
        errors.append("Missing 'page' configuration")
    elif not isinstance(schema["page"], dict):
        errors.append("'page' must be an object")

    if "sections" not in schema:
        errors.append("Missing 'sections' field")
        return errors

    if not isinstance(schema["sections"], list):
        errors.append("'sections' must be a list")
        return errors

    seen_ids = set()

    for i, section in enumerate(schema["sections"]):
        if not isinstance(section, dict):
            errors.append(f"Section {i} must be an object")
            continue

        section_id = section.get("section_id")
        if not section_id or not isinstance(section_id, str):
            errors.append(f"Section {i} missing required field 'section_id'")
            section_id = f"section_{i}"
        elif section_id in seen_ids:
            errors.append(f"Duplicate section_id: '{section_id}'")
        seen_ids.add(section_id)

        block_type = get_block_type(section)
        if not block_type:
            errors.append(f"Section '{section_id}' missing required field 'block_type'")
        elif not isinstance(block_type, str):
            errors.append(f"Section '{section_id}' block_type must be a string")

    return errors


def validate_layout(schema: Any) -> None:
    """Raise StructuralError on the first structural violation."""
    errors = collect_layout_errors(schema)
    if errors:
        logger.warning(f"Rejected layout schema: {errors[0]} ({len(errors)} error(s))")
        raise StructuralError(errors[0], errors)

    unknown = sorted({get_block_type(s) for s in schema["sections"]} - set(BLOCK_TYPES))
    if unknown:
        logger.warning(f"Layout uses unrecognised block types {unknown}; they render as plain content")
