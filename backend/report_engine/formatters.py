"""
Value and date formatting shared by the HTML and PDF adapters.

Dates print day-first (DD/MM/YYYY), matching how WorkLedger entries are
recorded on site.
"""

import json
import re
from datetime import date, datetime
from typing import Any, Optional

EMPTY_VALUE = "—"  # em-dash

MONTH_ABBR = ['Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun', 'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec']

_ISO_DATE_RE = re.compile(r'^\d{4}-\d{2}-\d{2}')


def parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            return None
    return None


def format_date(value: Any) -> str:
    """05/02/2026"""
    if value is None or value == '':
        return EMPTY_VALUE
    dt = parse_datetime(value)
    if dt is None:
        return str(value)
    return dt.strftime('%d/%m/%Y')


def format_datetime(value: Any) -> str:
    """05/02/2026 17:27"""
    if value is None or value == '':
        return EMPTY_VALUE
    dt = parse_datetime(value)
    if dt is None:
        return str(value)
    return dt.strftime('%d/%m/%Y %H:%M')


def format_timestamp(value: Any) -> str:
    """Attachment capture time: 05/02/2026 at 17:27. Empty string when unknown."""
    dt = parse_datetime(value)
    if dt is None:
        return ''
    return f"{dt.strftime('%d/%m/%Y')} at {dt.strftime('%H:%M')}"


def format_display_datetime(value: Any) -> str:
    """05 Feb 2026, 17:27"""
    dt = parse_datetime(value)
    if dt is None:
        return '' if value is None else str(value)
    return f"{dt.day:02d} {MONTH_ABBR[dt.month - 1]} {dt.year}, {dt.strftime('%H:%M')}"


def format_display_date(value: Any) -> str:
    """05 Feb 2026"""
    dt = parse_datetime(value)
    if dt is None:
        return '' if value is None else str(value)
    return f"{dt.day:02d} {MONTH_ABBR[dt.month - 1]} {dt.year}"


def format_number(value: Any, decimals: int = 0) -> str:
    if value is None or value == '':
        return EMPTY_VALUE
    try:
        number = float(value)
    except (TypeError, ValueError):
        return EMPTY_VALUE
    return f"{number:.{decimals}f}"


def format_metric_value(value: Any) -> str:
    if value is None or value == '':
        return EMPTY_VALUE
    if isinstance(value, bool):
        return 'Yes' if value else 'No'
    if isinstance(value, (int, float)):
        return f"{value:,}"
    return str(value)


def format_label(key: str) -> str:
    """snake_case field id -> Title Case label."""
    if not key:
        return ''
    return ' '.join(word[:1].upper() + word[1:] for word in str(key).split('_') if word)


def get_field_label(field: dict) -> str:
    label = field.get('field_name') or format_label(field.get('field_id', ''))
    if field.get('required'):
        label += ' *'
    return label


def guess_field_type(value: Any) -> str:
    if isinstance(value, bool):
        return 'checkbox'
    if isinstance(value, (int, float)):
        return 'number'
    if isinstance(value, (date, datetime)):
        return 'date'
    if isinstance(value, str) and _ISO_DATE_RE.match(value) and parse_datetime(value) is not None:
        return 'datetime' if len(value) > 10 else 'date'
    return 'text'


def format_field_value(field: dict, value: Any) -> str:
    """Display text for a template field value, by field_type."""
    if value is None or value == '':
        return EMPTY_VALUE

    field_type = field.get('field_type')

    if field_type == 'date':
        return format_date(value)
    if field_type == 'datetime':
        return format_datetime(value)
    if field_type == 'number':
        return format_number(value, field.get('decimals') or 0)
    if field_type == 'calculated':
        return format_number(value, 2)
    if field_type == 'checkbox':
        return 'Yes' if is_checked(value) else 'No'

    return format_value(value)


def format_value(value: Any) -> str:
    """Generic display text for a value with no declared field type."""
    if value is None or value == '':
        return EMPTY_VALUE
    if isinstance(value, bool):
        return 'Yes' if value else 'No'
    if isinstance(value, list):
        if all(not isinstance(v, (dict, list)) for v in value):
            return ', '.join(str(v) for v in value)
        return json.dumps(value, default=str)
    if isinstance(value, dict):
        return json.dumps(value, default=str)
    return str(value)


# =============================================================================
# CHECKBOXES & COLUMNS
# =============================================================================

CHECKED_VALUES = ("true", "yes", "done", "ok", "pass", "passed", "complete", "completed", "checked", "✓")


def is_checked(value: Any) -> bool:
    if value is True:
        return True
    if isinstance(value, str):
        return value.strip().lower() in CHECKED_VALUES
    return False


def parse_columns(value: Any, default: int) -> int:
    """Column count from block options; anything non-numeric gives the default."""
    if isinstance(value, bool):
        return default
    try:
        columns = int(value)
    except (TypeError, ValueError):
        return default
    return max(1, columns)
