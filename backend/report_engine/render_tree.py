"""
Render Tree Generator

Builds the backend-agnostic render tree consumed by the HTML and PDF adapters:

    {
        "page": {"size", "orientation", "margins"},
        "metadata": {"generatedAt", "entryId", "entryDate", "shift", "contract",
                     "template", "creator", "status"},
        "blocks": [{"blockId", "type", "layout", "content", "options"}, ...]
    }

Blocks follow schema order, minus sections hidden by show_if. photo_grid and
signature_box content always comes from the entry's attachments (through the
enricher); attachment fields never appear in any other block.

Generation is stateless. The same schema, record and overrides give the same
tree, apart from metadata.generatedAt.
"""

import copy
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .binding import (
    auto_extract,
    data_key_for_binding,
    find_data_key,
    get_record_data,
    resolve,
)
from .conditions import evaluate_condition
from .enrichment import (
    attachment_kind,
    enrich_photos,
    enrich_signature,
    find_template_field,
    find_template_section,
    resolve_field_label,
    photo_block_item,
    signature_block_item,
)
from .field_selection import include_logo, is_field_selected
from .formatters import format_label, format_metric_value
from .layout_config import (
    ATTACHMENT_BLOCK_TYPES,
    ATTACHMENT_FIELD_TYPES,
    SELF_DESCRIBING,
    detect_dialect,
    get_block_type,
    get_page_config,
    get_section_field_keys,
    validate_layout,
)

logger = logging.getLogger(__name__)

DEFAULT_CHECKLIST_BINDING = "data.checklist.items"
DEFAULT_TEXT_BINDING = "data.work_details.observations"

# Legacy top-level section keys -> block option names
LEGACY_OPTION_KEYS = {
    "show_logo": "showLogo",
    "show_contract": "showContract",
    "columns": "columns",
    "title": "title",
    "show_timestamps": "showTimestamps",
    "show_captions": "showCaptions",
    "show_location": "showLocation",
    "photo_size": "photoSize",
    "show_status": "showStatus",
    "show_checked_only": "showCheckedOnly",
}

Extracted = Tuple[Dict[str, Any], Dict[str, Optional[str]]]


# =============================================================================
# ENTRY POINT
# =============================================================================

def generate_render_tree(
    schema: dict,
    record: dict,
    binding_overrides: Optional[Mapping[str, str]] = None,
    field_selection: Optional[Mapping] = None,
    generated_at: Optional[datetime] = None,
) -> dict:
    """
    Build the render tree for one entry.

    Args:
        schema: Layout schema (validated here; StructuralError if invalid)
        record: Work entry with data, contract, template and attachments
        binding_overrides: Legacy binding map {field_key: binding expression}
        field_selection: This entry's override {"includeLogo", "fields"}
        generated_at: Clock value for metadata.generatedAt

    Returns:
        Render tree dict
    """
    validate_layout(schema)
    record = record if isinstance(record, Mapping) else {}

    tree = {
        "page": get_page_config(schema.get("page")),
        "metadata": extract_metadata(record, generated_at),
        "blocks": [],
    }

    for section in schema["sections"]:
        block = build_block(section, record, binding_overrides, field_selection)
        if block is not None:
            tree["blocks"].append(block)

    logger.info(
        f"Render tree for entry {record.get('id')}: "
        f"{len(tree['blocks'])} of {len(schema['sections'])} sections rendered"
    )
    return tree


def extract_metadata(record: Mapping, generated_at: Optional[datetime] = None) -> dict:
    contract = record.get("contract") if isinstance(record.get("contract"), Mapping) else {}
    project = contract.get("project") if isinstance(contract.get("project"), Mapping) else {}
    template = record.get("template") if isinstance(record.get("template"), Mapping) else {}
    profile = record.get("created_by_profile") if isinstance(record.get("created_by_profile"), Mapping) else {}

    if generated_at is None:
        generated_at = datetime.now(timezone.utc)

    return {
        "generatedAt": generated_at.isoformat() if isinstance(generated_at, datetime) else str(generated_at),
        "entryId": record.get("id"),
        "entryDate": record.get("entry_date"),
        "shift": record.get("shift"),
        "contract": {
            "number": contract.get("contract_number"),
            "name": contract.get("contract_name"),
            "client": project.get("client_name"),
            "location": project.get("site_address"),
            "category": contract.get("contract_category"),
        },
        "template": {
            "name": template.get("template_name"),
            "category": template.get("contract_category"),
        },
        "creator": {
            "id": record.get("created_by"),
            "name": profile.get("full_name") or "Unknown",
            "role": profile.get("role"),
        },
        "status": record.get("status"),
    }


def build_block(
    section: dict,
    record: Mapping,
    binding_overrides: Optional[Mapping[str, str]] = None,
    field_selection: Optional[Mapping] = None,
) -> Optional[dict]:
    """One section -> one block, or None when show_if hides it."""
    section_id = section["section_id"]

    show_if = section.get("show_if")
    if show_if is not None and not evaluate_condition(show_if, record):
        logger.debug(f"Section '{section_id}' hidden by show_if")
        return None

    block_type = get_block_type(section)

    if block_type in ATTACHMENT_BLOCK_TYPES:
        content = extract_attachment_content(section, block_type, record, field_selection)
    else:
        if detect_dialect(section) == SELF_DESCRIBING:
            content, sources = self_describing_content(section, record)
        else:
            content, sources = legacy_content(section, block_type, record, binding_overrides)
        content = _drop_excluded_fields(content, sources, record, field_selection)

        static = section.get("content")
        if isinstance(static, Mapping):
            content = {**static, **{k: v for k, v in content.items() if v is not None or k not in static}}

    options = section.get("options") or extract_section_options(section)
    options = copy.deepcopy(dict(options))
    if block_type == "header" and not include_logo(field_selection):
        options["showLogo"] = False

    return {
        "blockId": section_id,
        "type": block_type,
        "layout": section.get("layout") or options.get("layout"),
        "content": copy.deepcopy(content),
        "options": options,
    }


def extract_section_options(section: dict) -> dict:
    """Options for sections that keep them as top-level keys."""
    options = {}
    for key, option in LEGACY_OPTION_KEYS.items():
        if key in section:
            options[option] = section[key]
    if section.get("content"):
        options["content"] = section["content"]
    return options


# =============================================================================
# SELF-DESCRIBING SECTIONS
# =============================================================================

def self_describing_content(section: dict, record: Mapping) -> Extracted:
    rules = section.get("binding_rules")
    if not isinstance(rules, Mapping):
        if rules is not None:
            logger.warning(f"Section '{section['section_id']}' has non-object binding_rules; no content")
        return {}, {}

    if rules.get("mode") == "auto_extract_all":
        return _extract_all_fields(record)
    if rules.get("template_section"):
        return _extract_template_section(record, rules)
    if isinstance(rules.get("bindings"), Mapping):
        return _extract_bindings(record, rules["bindings"])
    if rules.get("source"):
        return _extract_source(record, rules["source"])
    if rules.get("metrics"):
        return {"metrics": _extract_metrics(record, rules["metrics"])}, {}

    return {}, {}


def _extract_all_fields(record: Mapping) -> Extracted:
    content, sources = {}, {}

    for full_key, value in get_record_data(record).items():
        lower = str(full_key).lower()
        if "photo" in lower or "signature" in lower:
            continue
        if isinstance(value, list):
            continue
        short = str(full_key).split(".")[-1]
        content[short] = value
        sources[short] = full_key

    _add_entry_fields(content, record)
    return content, sources


def _extract_template_section(record: Mapping, rules: Mapping) -> Extracted:
    section_id = rules["template_section"]
    declared = rules.get("fields")
    if not isinstance(declared, list):
        declared = [rules["field"]] if rules.get("field") else None

    content, sources = {}, {}

    if declared:
        for field_id in declared:
            if not isinstance(field_id, str):
                continue
            content[field_id] = resolve(record, f"data.{section_id}.{field_id}")
            sources[field_id] = f"{section_id}.{field_id}"
    else:
        for field_id in _section_field_ids(record, section_id):
            value = resolve(record, f"data.{section_id}.{field_id}")
            if isinstance(value, list):
                continue
            content[field_id] = value
            sources[field_id] = f"{section_id}.{field_id}"
        _add_entry_fields(content, record)

    labels = {}
    for field_id in content:
        label = resolve_field_label(record, f"{section_id}.{field_id}")
        if label:
            labels[field_id] = label
    content["_labels"] = labels

    return content, sources


def _section_field_ids(record: Mapping, section_id: str) -> List[str]:
    """Fields of a template section that hold data: template order, then data order."""
    data = get_record_data(record)
    prefix = f"{section_id}."
    nested = data.get(section_id) if isinstance(data.get(section_id), Mapping) else {}

    present = [k[len(prefix):] for k in data if isinstance(k, str) and k.startswith(prefix)]
    present += [k for k in nested if k not in present]

    ordered = []
    template_section = find_template_section(record, section_id)
    if template_section:
        for field in template_section.get("fields") or []:
            field_id = field.get("field_id") if isinstance(field, Mapping) else None
            if field_id in present:
                ordered.append(field_id)

    return ordered + [f for f in present if f not in ordered]


def _extract_bindings(record: Mapping, bindings: Mapping) -> Extracted:
    content, sources = {}, {}
    for key, expr in bindings.items():
        content[key] = resolve(record, expr)
        sources[key] = data_key_for_binding(expr)
    return content, sources


def _extract_source(record: Mapping, source: str) -> Extracted:
    path = source[len("entry."):] if source.startswith("entry.") else source
    value = resolve(record, path)

    if isinstance(value, str):
        return {"text": value}, {"text": data_key_for_binding(path)}
    if not isinstance(value, Mapping):
        return {}, {}

    content, sources = {}, {}
    for key, item in value.items():
        if isinstance(item, list):
            continue
        short = str(key).split(".")[-1]
        content[short] = item
        sources[short] = data_key_for_binding(f"{path}.{key}")
    return content, sources


def _extract_metrics(record: Mapping, metrics: Any) -> List[dict]:
    if not isinstance(metrics, list):
        return []

    result = []
    for metric in metrics:
        if not isinstance(metric, Mapping):
            continue
        section_id = metric.get("template_section")
        field_id = metric.get("field")
        if section_id and field_id:
            value = resolve(record, f"data.{section_id}.{field_id}")
        else:
            value = auto_extract(record, field_id) if field_id else None
        result.append({
            "label": metric.get("label") or format_label(field_id or ""),
            "value": format_metric_value(value),
            "unit": metric.get("unit") or "",
        })
    return result


def _add_entry_fields(content: dict, record: Mapping) -> None:
    if record.get("entry_date") and not content.get("entry_date"):
        content["entry_date"] = record["entry_date"]
    if record.get("shift") and not content.get("shift"):
        content["shift"] = record["shift"]
    profile = record.get("created_by_profile")
    if isinstance(profile, Mapping) and profile.get("full_name") and not content.get("technician_name"):
        content["technician_name"] = profile["full_name"]


# =============================================================================
# LEGACY SECTIONS
# =============================================================================

def legacy_content(
    section: dict,
    block_type: Optional[str],
    record: Mapping,
    binding_map: Optional[Mapping[str, str]] = None,
) -> Extracted:
    content, sources = {}, {}

    for field_key in get_section_field_keys(section):
        if binding_map:
            expr = binding_map.get(field_key)
            if expr:
                content[field_key] = resolve(record, expr)
                sources[field_key] = data_key_for_binding(expr)
                continue
            logger.warning(
                f"No binding rule for '{field_key}' in section '{section['section_id']}'; auto-extracting"
            )
        content[field_key] = auto_extract(record, field_key)
        sources[field_key] = find_data_key(record, field_key)

    if block_type == "checklist":
        expr = (binding_map or {}).get("checklist_items") or DEFAULT_CHECKLIST_BINDING
        content["items"] = _checklist_items(resolve(record, expr))
    elif block_type == "text_section":
        expr = (binding_map or {}).get("observations") or DEFAULT_TEXT_BINDING
        content["text"] = resolve(record, expr)
        sources["text"] = data_key_for_binding(expr)

    return content, sources


def _checklist_items(items: Any) -> List[dict]:
    if not isinstance(items, list):
        return []
    result = []
    for item in items:
        if not isinstance(item, Mapping):
            continue
        result.append({
            "task": _first_present(item, ("task", "label", "item")) or "",
            "status": _first_present(item, ("status", "value", "checked")),
            "remarks": _first_present(item, ("remarks", "notes")) or "",
        })
    return result


def _first_present(item: Mapping, keys: Tuple[str, ...]) -> Any:
    for key in keys:
        value = item.get(key)
        if value is not None and value != "":
            return value
    return None


# =============================================================================
# FIELD FILTERING
# =============================================================================

def _drop_excluded_fields(
    content: dict,
    sources: Mapping[str, Optional[str]],
    record: Mapping,
    selection: Optional[Mapping],
) -> dict:
    """Remove deselected fields and attachment fields from a scalar block."""
    result = {}
    for key, value in content.items():
        if key.startswith("_"):
            result[key] = value
            continue
        source = sources.get(key)
        if not is_field_selected(selection, source):
            continue
        if is_attachment_field(record, source, value):
            continue
        result[key] = value

    labels = result.get("_labels")
    if isinstance(labels, Mapping):
        result["_labels"] = {k: v for k, v in labels.items() if k in result}
    return result


def is_attachment_field(record: Mapping, source: Optional[str], value: Any) -> bool:
    """True when a field's value belongs in photo_grid / signature_box only."""
    field = find_template_field(record, source)
    if field and field.get("field_type") in ATTACHMENT_FIELD_TYPES:
        return True

    attachment_ids = {
        a.get("id") for a in record.get("attachments") or []
        if isinstance(a, Mapping) and a.get("id") is not None
    }

    def refers_to_attachment(item: Any) -> bool:
        if isinstance(item, str):
            return item in attachment_ids
        if isinstance(item, Mapping):
            return "storage_url" in item or attachment_kind(item) in ATTACHMENT_FIELD_TYPES
        return False

    if isinstance(value, list):
        return len(value) > 0 and all(refers_to_attachment(v) for v in value)
    return refers_to_attachment(value)


# =============================================================================
# ATTACHMENT BLOCKS
# =============================================================================

def extract_attachment_content(
    section: dict,
    block_type: str,
    record: Mapping,
    selection: Optional[Mapping] = None,
) -> dict:
    rules = section.get("binding_rules") if isinstance(section.get("binding_rules"), Mapping) else {}
    attachments = [a for a in record.get("attachments") or [] if isinstance(a, Mapping)]

    if block_type == "photo_grid":
        photos = [a for a in attachments if attachment_kind(a) == "photo"]
        photos = _filter_attachments(photos, rules, selection)
        return {"photos": [photo_block_item(p) for p in enrich_photos(photos, record)]}

    signatures = [a for a in attachments if attachment_kind(a) == "signature"]
    if not signatures:
        signatures = _signatures_from_data(record, attachments)
    signatures = _filter_attachments(signatures, rules, selection)
    return {"signatures": [signature_block_item(enrich_signature(s, record)) for s in signatures]}


def _filter_attachments(attachments: List[dict], rules: Mapping, selection: Optional[Mapping]) -> List[dict]:
    field_filter = rules.get("filter_by_field")
    if field_filter:
        needle = str(field_filter).lower()
        attachments = [a for a in attachments if needle in str(a.get("field_id") or "").lower()]

    section_id = rules.get("template_section")
    if section_id:
        attachments = [a for a in attachments if str(a.get("field_id") or "").startswith(f"{section_id}.")]

    return [a for a in attachments if is_field_selected(selection, a.get("field_id"))]


def _signatures_from_data(record: Mapping, attachments: List[dict]) -> List[dict]:
    """Signature fields in data hold attachment ids; resolve them."""
    by_id = {a.get("id"): a for a in attachments if a.get("id") is not None}
    found = []
    for key, value in get_record_data(record).items():
        if "signature" in str(key).lower() and isinstance(value, str) and value in by_id:
            found.append(by_id[value])
    return found

