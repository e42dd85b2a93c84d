"""
Per-entry field selection overrides.

    {entry_id: {"includeLogo": bool, "fields": {"section.field": bool}}}

Only an explicit False excludes a field. Overrides are read-only; entry data
is never touched.
"""

from typing import Any, Mapping, Optional


def get_entry_selection(field_selections: Optional[Mapping], entry_id: Any) -> Optional[dict]:
    if not field_selections or entry_id is None:
        return None
    selection = field_selections.get(entry_id)
    if selection is None:
        selection = field_selections.get(str(entry_id))
    return selection if isinstance(selection, Mapping) else None


def is_field_selected(selection: Optional[Mapping], field_key: Optional[str]) -> bool:
    if not selection or not field_key:
        return True
    fields = selection.get('fields') or {}
    return fields.get(field_key) is not False


def include_logo(selection: Optional[Mapping]) -> bool:
    if not selection:
        return True
    return selection.get('includeLogo') is not False
