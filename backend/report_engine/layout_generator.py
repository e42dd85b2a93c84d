"""
Layout Generator

Builds a self-describing layout schema from a template's fields_schema, so a
new template gets a usable report layout without hand-editing JSON:

    header           titled with the template name
    detail_entry     one per template section with scalar fields
                     (binding_rules.template_section; 1 column if it has a textarea)
    photo_grid       one per photo field (binding_rules.filter_by_field), after all details
    signature_box    one at the end when any section has a signature field
"""

import copy
import logging
import re
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from .errors import StructuralError
from .layout_config import DEFAULT_PAGE, validate_layout

logger = logging.getLogger(__name__)

SIGNATURE_BLOCK_TITLE = "Signatures & Acknowledgment"


def _template_sections(template: Any) -> list:
    fields_schema = template.get("fields_schema") if isinstance(template, Mapping) else None
    sections = fields_schema.get("sections") if isinstance(fields_schema, Mapping) else None
    if not isinstance(sections, list):
        raise StructuralError("Template has no valid fields_schema")
    return [s for s in sections if isinstance(s, Mapping)]


def generate_layout_from_template(template: Mapping, generated_at: Optional[datetime] = None) -> dict:
    """
    Layout schema for a template.

    Raises StructuralError when the template has no fields_schema.sections.
    The result always passes validate_layout.
    """
    template_sections = _template_sections(template)
    template_name = template.get("template_name") or "Work Report"

    sections = [{
        "section_id": "header",
        "block_type": "header",
        "content": {"title": template_name},
        "options": {},
        "binding_rules": {},
    }]
    photo_sections = []
    has_signatures = False

    for template_section in template_sections:
        section_id = template_section.get("section_id")
        fields = [f for f in template_section.get("fields") or [] if isinstance(f, Mapping)]

        regular = [f for f in fields if f.get("field_type") not in ("photo", "signature")]
        if regular and section_id:
            has_textarea = any(f.get("field_type") == "textarea" for f in regular)
            sections.append({
                "section_id": f"{section_id}_block",
                "block_type": "detail_entry",
                "content": {},
                "options": {
                    "columns": 1 if has_textarea else 2,
                    "title": template_section.get("section_name") or section_id,
                },
                "binding_rules": {"template_section": section_id},
            })

        for field in fields:
            if field.get("field_type") == "photo" and field.get("field_id"):
                photo_sections.append({
                    "section_id": f"{field['field_id']}_block",
                    "block_type": "photo_grid",
                    "content": {},
                    "options": {
                        "columns": field.get("columns") or 2,
                        "title": field.get("field_name") or "Photos",
                        "showTimestamps": True,
                        "showCaptions": True,
                    },
                    "binding_rules": {"filter_by_field": field["field_id"]},
                })
            elif field.get("field_type") == "signature":
                has_signatures = True

    sections.extend(photo_sections)

    if has_signatures:
        sections.append({
            "section_id": "signatures",
            "block_type": "signature_box",
            "content": {},
            "options": {"title": SIGNATURE_BLOCK_TITLE},
            "binding_rules": {},
        })

    generated_at = generated_at or datetime.now(timezone.utc)
    schema = {
        "page": copy.deepcopy(DEFAULT_PAGE),
        "sections": sections,
        "meta": {
            "generatedFrom": template.get("id") or template.get("template_id"),
            "templateName": template_name,
            "generatedAt": generated_at.isoformat(),
        },
    }
    validate_layout(schema)

    logger.info(f"Generated {len(sections)} layout sections from template '{template_name}'")
    return schema


def suggest_layout_name(template: Mapping) -> str:
    name = template.get("template_name") or ""
    name = re.sub(r"template", "", name, count=1, flags=re.IGNORECASE)
    name = re.sub(r"report", "", name, count=1, flags=re.IGNORECASE)
    name = re.sub(r"\s{2,}", " ", name).strip()
    return f"{name} - Layout" if name else "Layout"


def suggest_layout_description(template: Mapping) -> str:
    fields_schema = template.get("fields_schema") or {}
    section_count = len(fields_schema.get("sections") or []) if isinstance(fields_schema, Mapping) else 0
    return (
        f"Auto-generated layout for {template.get('template_name') or 'template'}. "
        f"Contains {section_count} sections with proper field bindings."
    )


def preview_layout_generation(template: Mapping, generated_at: Optional[datetime] = None) -> dict:
    """Generated layout plus a summary and suggested name/description, for review before saving."""
    layout = generate_layout_from_template(template, generated_at)
    sections = layout["sections"]
    return {
        "layout": layout,
        "summary": {
            "totalSections": len(sections),
            "detailSections": sum(1 for s in sections if s["block_type"] == "detail_entry"),
            "photoSections": sum(1 for s in sections if s["block_type"] == "photo_grid"),
            "hasSignatures": any(s["block_type"] == "signature_box" for s in sections),
            "hasHeader": any(s["block_type"] == "header" for s in sections),
        },
        "suggestedName": suggest_layout_name(template),
        "suggestedDescription": suggest_layout_description(template),
    }
