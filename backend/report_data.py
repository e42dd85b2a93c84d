"""
Report data loading.

Work entries are loaded with their contract (project and organization
nested), template, attachments and creator profile, the shape the report
engine expects:

    {id, entry_date, shift, status, data, created_by,
     contract: {..., project: {..., organization: {...}}},
     template: {template_name, fields_schema, pdf_layout, ...},
     attachments: [...], created_by_profile: {...} | None}

JSON columns come back as dicts from Postgres JSONB and as strings from
other drivers; both are accepted.
"""

import json
import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import bindparam, text
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

JSON_COLUMNS = ('data', 'fields_schema', 'pdf_layout', 'metadata', 'layout_schema')


def _load_json(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        value = value.decode('utf-8')
    if isinstance(value, str):
        try:
            return json.loads(value)
        except ValueError:
            logger.warning(f"Could not parse JSON column value: {value[:40]!r}")
            return None
    return value


def _row_dict(row) -> dict:
    result = dict(row._mapping)
    for column in JSON_COLUMNS:
        if column in result:
            result[column] = _load_json(result[column])
    return result


def _by_id(db: Session, table: str, ids: Iterable[Any]) -> Dict[Any, dict]:
    ids = [i for i in set(ids) if i is not None]
    if not ids:
        return {}
    query = text(f"SELECT * FROM {table} WHERE id IN :ids").bindparams(bindparam('ids', expanding=True))
    return {row['id']: row for row in (_row_dict(r) for r in db.execute(query, {'ids': ids}).fetchall())}


def fetch_records(db: Session, entry_ids: List[Any]) -> List[dict]:
    """Work entries for entry_ids, oldest entry_date first. Unknown ids are skipped."""
    if not entry_ids:
        return []

    entries = [
        _row_dict(r) for r in db.execute(
            text("""
                SELECT * FROM work_entries
                WHERE id IN :ids AND deleted_at IS NULL
                ORDER BY entry_date ASC
            """).bindparams(bindparam('ids', expanding=True)),
            {'ids': list(entry_ids)},
        ).fetchall()
    ]
    if not entries:
        return []

    contracts = _by_id(db, 'contracts', (e.get('contract_id') for e in entries))
    projects = _by_id(db, 'projects', (c.get('project_id') for c in contracts.values()))
    organizations = _by_id(db, 'organizations', (p.get('organization_id') for p in projects.values()))
    templates = _by_id(db, 'templates', (e.get('template_id') for e in entries))
    profiles = _by_id(db, 'user_profiles', (e.get('created_by') for e in entries))

    attachment_rows = db.execute(
        text("""
            SELECT * FROM attachments
            WHERE work_entry_id IN :ids AND deleted_at IS NULL
            ORDER BY created_at ASC
        """).bindparams(bindparam('ids', expanding=True)),
        {'ids': [e['id'] for e in entries]},
    ).fetchall()
    attachments: Dict[Any, List[dict]] = {}
    for row in attachment_rows:
        attachment = _row_dict(row)
        attachments.setdefault(attachment['work_entry_id'], []).append(attachment)

    records = []
    for entry in entries:
        contract = contracts.get(entry.get('contract_id'))
        if contract is not None:
            project = projects.get(contract.get('project_id'))
            if project is not None:
                project = {**project, 'organization': organizations.get(project.get('organization_id'))}
            contract = {**contract, 'project': project}

        records.append({
            **entry,
            'data': entry.get('data') or {},
            'contract': contract,
            'template': templates.get(entry.get('template_id')),
            'attachments': attachments.get(entry['id'], []),
            'created_by_profile': profiles.get(entry.get('created_by')),
        })

    logger.info(f"Loaded {len(records)} of {len(entry_ids)} requested work entries")
    return records


def fetch_layout_schema(db: Session, layout_id: str) -> Optional[dict]:
    """layout_schema of an active report layout, matched by id or layout_id."""
    row = db.execute(
        text("""
            SELECT layout_schema FROM report_layouts
            WHERE (id = :layout_id OR layout_id = :layout_id) AND is_active = :active
        """),
        {'layout_id': str(layout_id), 'active': True},
    ).fetchone()

    if not row:
        return None

    schema = _load_json(row[0])
    return schema if isinstance(schema, dict) else None
