"""
Attachment Enricher

Adds human-readable context to photo and signature attachments using the
entry's template:

    photo      caption "Photos Before Work (2 of 3)", sectionTitle, capturedAt,
               capturedBy, location, entryDate, subCaption
    signature  caption "Worker Signature — Ahmad bin Hassan", capturedAt,
               signerName

Input attachments are never modified. Missing template data falls back to
generic labels; nothing here raises.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

from .binding import get_record_data
from .formatters import format_date, format_timestamp

logger = logging.getLogger(__name__)

DEFAULT_PHOTO_LABEL = "Photo Documentation"
DEFAULT_SIGNATURE_LABEL = "Signature"

# Sibling field ids that usually hold the signer's name
SIGNER_NAME_HINTS = ('name', 'full_name', 'signer', 'technician', 'verified_by', 'approved_by')


# =============================================================================
# TEMPLATE LOOKUPS
# =============================================================================

def get_template_sections(record: Any) -> List[dict]:
    if not isinstance(record, Mapping):
        return []
    template = record.get('template')
    if not isinstance(template, Mapping):
        return []
    schema = template.get('fields_schema')
    if not isinstance(schema, Mapping):
        return []
    sections = schema.get('sections')
    if not isinstance(sections, list):
        return []
    return [s for s in sections if isinstance(s, Mapping)]


def find_template_section(record: Any, section_id: str) -> Optional[dict]:
    for section in get_template_sections(record):
        if section.get('section_id') == section_id:
            return section
    return None


def find_template_field(record: Any, field_key: Optional[str]) -> Optional[dict]:
    """Template field for a "section.field" key."""
    if not field_key or '.' not in field_key:
        return None
    section_id, field_id = field_key.split('.', 1)
    section = find_template_section(record, section_id)
    if not section:
        return None
    for field in section.get('fields') or []:
        if isinstance(field, Mapping) and field.get('field_id') == field_id:
            return field
    return None


def resolve_field_label(record: Any, field_key: Optional[str]) -> Optional[str]:
    field = find_template_field(record, field_key)
    return field.get('field_name') if field else None


def resolve_section_name(record: Any, field_key: Optional[str]) -> Optional[str]:
    if not field_key:
        return None
    section = find_template_section(record, field_key.split('.', 1)[0])
    return section.get('section_name') if section else None


def _creator_name(record: Any) -> str:
    profile = record.get('created_by_profile') if isinstance(record, Mapping) else None
    if isinstance(profile, Mapping):
        return profile.get('full_name') or ''
    return ''


def _site_location(record: Any) -> str:
    contract = record.get('contract') if isinstance(record, Mapping) else None
    project = contract.get('project') if isinstance(contract, Mapping) else None
    if not isinstance(project, Mapping):
        return ''
    return project.get('site_address') or project.get('client_name') or ''


# =============================================================================
# SIGNER RESOLUTION
# =============================================================================

def resolve_signer_name(record: Any, signature_field_key: Optional[str]) -> str:
    """
    Who signed, from sibling fields of the signature's template section.

    1. a non-signature field whose id contains a name hint and holds text
    2. the first non-signature text/short_text field with a value
    3. the entry creator's profile name
    """
    fallback = _creator_name(record)
    if not signature_field_key:
        return fallback

    section = find_template_section(record, signature_field_key.split('.', 1)[0])
    if not section or not section.get('fields'):
        return fallback

    section_id = section.get('section_id')
    data = get_record_data(record)
    fields = [f for f in section['fields'] if isinstance(f, Mapping) and f.get('field_type') != 'signature']

    for field in fields:
        field_id = str(field.get('field_id', '')).lower()
        if any(hint in field_id for hint in SIGNER_NAME_HINTS):
            value = data.get(f"{section_id}.{field.get('field_id')}")
            if isinstance(value, str) and value.strip():
                return value.strip()

    for field in fields:
        if field.get('field_type') in ('text', 'short_text'):
            value = data.get(f"{section_id}.{field.get('field_id')}")
            if isinstance(value, str) and value.strip():
                return value.strip()

    return fallback


# =============================================================================
# ENRICHMENT
# =============================================================================

def enrich_photos(photos: List[dict], record: Any) -> List[dict]:
    entry_date = format_date(record.get('entry_date')) if isinstance(record, Mapping) else ''
    captured_by = _creator_name(record)
    location = _site_location(record)

    totals: Dict[Any, int] = {}
    for photo in photos:
        totals[photo.get('field_id')] = totals.get(photo.get('field_id'), 0) + 1
    seen: Dict[Any, int] = {}

    enriched = []
    for photo in photos:
        field_id = photo.get('field_id')
        seen[field_id] = seen.get(field_id, 0) + 1

        label = (
            resolve_field_label(record, field_id)
            or resolve_section_name(record, field_id)
            or DEFAULT_PHOTO_LABEL
        )
        caption = label
        if totals[field_id] > 1:
            caption = f"{label} ({seen[field_id]} of {totals[field_id]})"

        captured_at = format_timestamp(photo.get('created_at'))
        sub_parts = [p for p in (captured_by, captured_at) if p]

        enriched.append({
            **photo,
            'sectionTitle': label,
            'caption': caption,
            'capturedAt': captured_at,
            'capturedBy': captured_by,
            'location': location,
            'entryDate': entry_date,
            'subCaption': ' · '.join(sub_parts) or f"Entry: {entry_date}",
        })

    return enriched


def enrich_signature(signature: dict, record: Any) -> dict:
    field_id = signature.get('field_id')
    label = resolve_field_label(record, field_id) or DEFAULT_SIGNATURE_LABEL
    signer = resolve_signer_name(record, field_id)

    return {
        **signature,
        'caption': f"{label} — {signer}" if signer else label,
        'capturedAt': format_timestamp(signature.get('created_at')),
        'signerName': signer,
    }


def enrich_attachments(attachments: List[dict], record: Any) -> List[dict]:
    """Enrich a mixed attachment list, keeping its order."""
    attachments = [a for a in attachments or [] if isinstance(a, Mapping)]
    photos = enrich_photos([a for a in attachments if attachment_kind(a) == 'photo'], record)
    photo_iter = iter(photos)

    result = []
    for attachment in attachments:
        kind = attachment_kind(attachment)
        if kind == 'photo':
            result.append(next(photo_iter))
        elif kind == 'signature':
            result.append(enrich_signature(attachment, record))
        else:
            result.append(dict(attachment))
    return result


def attachment_kind(attachment: Mapping) -> Optional[str]:
    return attachment.get('file_type') or attachment.get('attachment_type')


# =============================================================================
# BLOCK ITEMS
# =============================================================================

def photo_block_item(photo: dict) -> dict:
    """Enriched photo -> photo_grid item"""
    return {
        'id': photo.get('id'),
        'url': photo.get('storage_url') or photo.get('url'),
        'field_id': photo.get('field_id'),
        'caption': photo.get('caption'),
        'subCaption': photo.get('subCaption'),
        'sectionTitle': photo.get('sectionTitle'),
        'timestamp': photo.get('created_at') or photo.get('uploaded_at'),
        'capturedAt': photo.get('capturedAt'),
        'capturedBy': photo.get('capturedBy'),
        'location': photo.get('location'),
        'entryDate': photo.get('entryDate'),
        'fileName': photo.get('file_name'),
    }


def signature_block_item(signature: dict) -> dict:
    """Enriched signature -> signature_box item"""
    metadata = signature.get('metadata') if isinstance(signature.get('metadata'), Mapping) else {}
    return {
        'id': signature.get('id'),
        'url': signature.get('storage_url') or signature.get('url'),
        'field_id': signature.get('field_id'),
        'caption': signature.get('caption'),
        'name': metadata.get('signer_name') or signature.get('signerName') or DEFAULT_SIGNATURE_LABEL,
        'role': metadata.get('signer_role') or '',
        'date': signature.get('created_at') or signature.get('uploaded_at'),
        'capturedAt': signature.get('capturedAt'),
        'signerName': signature.get('signerName'),
    }
