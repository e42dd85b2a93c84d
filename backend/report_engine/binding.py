"""
Binding Resolver

Turns a binding expression into a value from a work entry record.

Supported expressions:
    contract.project.client_name        dot path (mappings, list indexes)
    data.inspection.result              dot path reaching a flat "section.field" key
    attachments[file_type=photo]        exact-match array filter, single condition

Anything else containing brackets (multiple conditions, !=, >, nested paths)
is not supported and resolves to None. With no expression at all the
resolver auto-extracts the field by key.

Resolution never raises. A miss is None, which the adapters render as a
placeholder.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple, Union

logger = logging.getLogger(__name__)

_ARRAY_FILTER_RE = re.compile(r'^(\w+)\[(\w+)=(\w+)\]$')


# =============================================================================
# BINDING AST
# =============================================================================

@dataclass(frozen=True)
class FieldPath:
    segments: Tuple[str, ...]

    def __str__(self) -> str:
        return '.'.join(self.segments)


@dataclass(frozen=True)
class ArrayFilter:
    array_key: str
    filter_key: str
    filter_value: str

    def __str__(self) -> str:
        return f"{self.array_key}[{self.filter_key}={self.filter_value}]"


Binding = Union[FieldPath, ArrayFilter]


def parse_binding(expr: Any) -> Optional[Binding]:
    """Parse a binding expression. Returns None for empty or unsupported input."""
    if expr is None:
        return None
    if not isinstance(expr, str):
        logger.warning(f"Binding expression must be a string, got {type(expr).__name__}")
        return None

    expr = expr.strip()
    if not expr:
        return None

    if '[' in expr or ']' in expr:
        match = _ARRAY_FILTER_RE.match(expr)
        if not match:
            logger.warning(f"Unsupported array filter binding: {expr!r}")
            return None
        return ArrayFilter(*match.groups())

    segments = tuple(expr.split('.'))
    if any(not s for s in segments):
        logger.warning(f"Malformed binding path: {expr!r}")
        return None
    return FieldPath(segments)


# =============================================================================
# RESOLUTION
# =============================================================================

def get_record_data(record: Any) -> dict:
    """The entry's field values ("section.field" -> value)."""
    if not isinstance(record, Mapping):
        return {}
    data = record.get('data')
    if data is None:
        data = record.get('entry_data')
    return data if isinstance(data, Mapping) else {}


def resolve(record: Any, binding: Any = None, field_key: Optional[str] = None) -> Any:
    """
    Resolve a binding against a record.

    Args:
        record: Work entry (plain dict as loaded from the data layer)
        binding: Expression string, parsed Binding, or None
        field_key: Field to auto-extract when no binding is given

    Returns:
        The resolved value, or None when nothing matches
    """
    if binding is None or (isinstance(binding, str) and not binding.strip()):
        if field_key:
            return auto_extract(record, field_key)
        return None

    parsed = binding if isinstance(binding, (FieldPath, ArrayFilter)) else parse_binding(binding)
    if parsed is None:
        return None

    if isinstance(parsed, ArrayFilter):
        return _apply_array_filter(record, parsed)

    value = _walk(record, parsed.segments)
    if value is None:
        logger.debug(f"Binding '{parsed}' did not resolve")
    return value


def _walk(current: Any, segments: Tuple[str, ...]) -> Any:
    i = 0
    while i < len(segments):
        if current is None:
            return None

        if isinstance(current, Mapping):
            # Longest literal key wins so "data.a.b" reaches a flat "a.b" key
            for j in range(len(segments), i, -1):
                key = '.'.join(segments[i:j])
                if key in current:
                    current = current[key]
                    i = j
                    break
            else:
                return None

        elif isinstance(current, (list, tuple)) and segments[i].isdigit():
            index = int(segments[i])
            if index >= len(current):
                return None
            current = current[index]
            i += 1

        else:
            return None

    return current


def _apply_array_filter(record: Any, expr: ArrayFilter) -> Optional[list]:
    if not isinstance(record, Mapping):
        return None
    items = record.get(expr.array_key)
    if not isinstance(items, list):
        return None
    return [
        item for item in items
        if isinstance(item, Mapping) and item.get(expr.filter_key) == expr.filter_value
    ]


def auto_extract(record: Any, field_key: str) -> Any:
    """
    Find a field by key alone.

    Precedence:
        1. first section in data order holding the key, either as a nested
           mapping {section: {field: v}} or a flat "section.field" key
        2. data[field_key]
        3. record[field_key]  (entry_date, shift, ...)

    Two sections sharing a field id resolve to whichever comes first in data.
    """
    if not field_key or not isinstance(record, Mapping):
        return None

    data = get_record_data(record)
    suffix = f".{field_key}"

    for key, value in data.items():
        if isinstance(value, Mapping):
            if field_key in value:
                return value[field_key]
        elif isinstance(key, str) and key.endswith(suffix):
            return value

    if field_key in data:
        return data[field_key]

    if field_key in record:
        return record[field_key]

    return None


def find_data_key(record: Any, field_key: str) -> Optional[str]:
    """The "section.field" key auto_extract would read, if any."""
    if not field_key:
        return None
    data = get_record_data(record)
    suffix = f".{field_key}"
    for key, value in data.items():
        if isinstance(value, Mapping):
            if field_key in value:
                return f"{key}.{field_key}"
        elif isinstance(key, str) and key.endswith(suffix):
            return key
    if field_key in data:
        return field_key
    return None


def data_key_for_binding(binding: Any) -> Optional[str]:
    """For a "data.<section>.<field>" path, the data key it addresses."""
    parsed = binding if isinstance(binding, (FieldPath, ArrayFilter)) else parse_binding(binding)
    if isinstance(parsed, FieldPath) and len(parsed.segments) > 1 and parsed.segments[0] in ('data', 'entry_data'):
        return '.'.join(parsed.segments[1:])
    return None
