"""
show_if evaluation for layout sections.

Mapping form:
    {"field": "x", "equals": "y"}
    {"field": "x", "exists": true}
    {"field": "items", "has_items": true}
    {"field": "items", "contains": {"status": "failed"}}

String form (older templates):
    "data.section.field === 'yes'"
    "data.section.field !== false"

A condition that cannot be understood shows the section and logs a warning.
"""

import logging
from typing import Any, Mapping

from .binding import auto_extract, get_record_data, resolve

logger = logging.getLogger(__name__)

OPERATORS = ('equals', 'exists', 'has_items', 'contains')


def evaluate_condition(condition: Any, record: Any) -> bool:
    if condition is None:
        return True

    if isinstance(condition, str):
        return _evaluate_expression(condition, record)

    if not isinstance(condition, Mapping):
        logger.warning(f"Ignoring show_if of type {type(condition).__name__}; section shown")
        return True

    field = condition.get('field')
    if not isinstance(field, str) or not field.strip():
        logger.warning(f"show_if without a field: {condition!r}; section shown")
        return True

    value = _condition_value(record, field)

    if 'equals' in condition:
        return _same_value(value, condition['equals'])

    if 'exists' in condition:
        exists = value is not None
        return exists if condition['exists'] else not exists

    if 'has_items' in condition:
        has_items = isinstance(value, list) and len(value) > 0
        return has_items if condition['has_items'] else not has_items

    if 'contains' in condition:
        return _contains(value, condition['contains'])

    logger.warning(f"show_if has no known operator {OPERATORS}: {condition!r}; section shown")
    return True


def _condition_value(record: Any, field: str) -> Any:
    value = resolve(record, field)
    if value is None and '.' not in field and '[' not in field:
        value = auto_extract(record, field)
    return value


def _same_value(actual: Any, expected: Any) -> bool:
    # True must not equal 1 here
    if isinstance(actual, bool) or isinstance(expected, bool):
        return isinstance(actual, bool) and isinstance(expected, bool) and actual == expected
    return actual == expected


def _contains(value: Any, expected: Any) -> bool:
    if isinstance(value, list):
        if isinstance(expected, Mapping):
            return any(
                isinstance(item, Mapping) and all(_same_value(item.get(k), v) for k, v in expected.items())
                for item in value
            )
        return any(_same_value(item, expected) for item in value)
    if isinstance(value, str) and expected is not None:
        return str(expected) in value
    return False


def _evaluate_expression(expression: str, record: Any) -> bool:
    if '===' in expression:
        operator = '==='
    elif '!==' in expression:
        operator = '!=='
    else:
        logger.warning(f"Unsupported show_if expression {expression!r}; section shown")
        return True

    path, _, expected = expression.partition(operator)
    path = path.strip()
    expected = expected.strip().strip('\'"').strip()

    if path.startswith('data.'):
        value = get_record_data(record).get(path[len('data.'):])
    else:
        value = _condition_value(record, path)

    if expected == 'true':
        matched = value is True
    elif expected == 'false':
        matched = value is False
    else:
        matched = value is not None and str(value) == expected

    return matched if operator == '===' else not matched
