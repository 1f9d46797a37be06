"""
Report service - service report persistence and lifecycle.

Reports are saved as a whole document with optimistic versioning. Finalizing
validates every component, then freezes the report together with the templates
it was captured against, so later template edits never change a finished report.
"""
import hashlib
import json
import logging
from datetime import datetime, timezone

from flask import current_app

from servfix.checklist import (
    ReportDocument, collect_component, compile_report, extract_deviations,
    find_incomplete, is_complete, item_states, load_template, TemplateError,
)
from servfix.services import template_store
from servfix.services.db import get_db
from servfix.utils import generate_id
from servfix.utils.audit import log_audit

logger = logging.getLogger(__name__)

STATUS_IN_PROGRESS = 'in_progress'
STATUS_COMPLETED = 'completed'

HEADER_FIELDS = {
    'orderNumber': 'order_number',
    'customerName': 'customer_name',
    'technicianName': 'technician_name',
    'serviceDate': 'service_date',
}


class ReportNotFound(LookupError):
    pass


class ReportLockedError(Exception):
    pass


class VersionConflictError(Exception):
    def __init__(self, report_id, expected, current):
        super().__init__(
            'Report {} is at version {}, not {}'.format(report_id, current, expected)
        )
        self.expected = expected
        self.current = current


class InvalidDocumentError(ValueError):
    """Posted document is not shaped like a report document."""


class IncompleteReportError(Exception):
    """Finalize refused; failures maps component id -> list of reasons."""

    def __init__(self, report_id, failures):
        super().__init__('Report {} has {} incomplete component(s)'.format(report_id, len(failures)))
        self.failures = failures


def _now():
    return datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S')


def can_edit_report(status):
    """
    Determine if a report can still be changed.

    Returns: (can_edit: bool, reason: str or None)
    """
    if status is None or status == STATUS_IN_PROGRESS:
        return True, None
    if status == STATUS_COMPLETED:
        return False, 'Rapporten er ferdigstilt og kan ikke endres.'
    return False, 'Ukjent rapportstatus: {}'.format(status)


def _row_to_report(row):
    report = {'id': row['id']}
    for key, column in HEADER_FIELDS.items():
        report[key] = row[column]
    report.update({
        'status': row['status'],
        'version': row['version'],
        'document': ReportDocument.model_validate(json.loads(row['document'] or '{}')),
        'templateSnapshot': json.loads(row['template_snapshot']) if row['template_snapshot'] else None,
        'deviationSnapshot': json.loads(row['deviation_snapshot']) if row['deviation_snapshot'] else None,
        'contentHash': row['content_hash'],
        'pdfPath': row['pdf_path'],
        'createdAt': row['created_at'],
        'updatedAt': row['updated_at'],
        'completedAt': row['completed_at'],
    })
    return report


def report_to_json(report):
    """JSON-safe view of a report dict (document dumped as camelCase)."""
    data = {k: v for k, v in report.items() if k not in ('document', 'templateSnapshot')}
    data['document'] = report['document'].to_json()
    data['canEdit'], data['lockReason'] = can_edit_report(report['status'])
    return data


def get_report(report_id):
    """Load a report. Raises ReportNotFound."""
    row = get_db().execute("SELECT * FROM service_report WHERE id = ?", [report_id]).fetchone()
    if row is None:
        raise ReportNotFound(report_id)
    return _row_to_report(row)


def _snapshot_template(report, component):
    snapshot = report.get('templateSnapshot') or {}
    data = snapshot.get(component.id)
    if data is None:
        return None
    try:
        return load_template(data)
    except TemplateError as e:
        logger.error("Template snapshot for component %s of report %s is invalid: %s",
                     component.id, report['id'], e)
        return None


def report_entries(report):
    """
    Pair every component with its template.

    Completed reports use their frozen template snapshot; open reports
    resolve against the template store.

    Returns: list of (component, template, warning)
    """
    entries = []
    frozen = report['status'] == STATUS_COMPLETED
    for component in report['document'].components:
        template = _snapshot_template(report, component) if frozen else None
        warning = None
        if template is None:
            template, warning = template_store.resolve(component.equipment_type, component.equipment_name)
        entries.append((component, template, warning))
    return entries


def _text_field(raw, key):
    value = raw.get(key)
    return value if isinstance(value, str) else None


def collect_document(raw):
    """
    Normalize a raw posted document against the resolved templates.

    Components without an id, or repeating an id already used earlier in the
    document, get a fresh one. Raises InvalidDocumentError.
    """
    if isinstance(raw, ReportDocument):
        raw = raw.to_json()
    raw = raw or {}
    if not isinstance(raw, dict):
        raise InvalidDocumentError('document must be an object')
    raw_components = raw.get('components') or []
    if not isinstance(raw_components, list):
        raise InvalidDocumentError('components must be a list')

    components = []
    seen_ids = set()
    for position, raw_component in enumerate(raw_components, start=1):
        if not isinstance(raw_component, dict):
            raise InvalidDocumentError('component {} must be an object'.format(position))
        template, _ = template_store.resolve(
            _text_field(raw_component, 'equipmentType'), _text_field(raw_component, 'equipmentName')
        )
        component = collect_component(template, raw_component)
        if not component.id or component.id in seen_ids:
            component.id = generate_id('cmp')
        seen_ids.add(component.id)
        components.append(component)
    comment = raw.get('overallComment') or ''
    photos = raw.get('photos') or []
    if not isinstance(comment, str) or not isinstance(photos, list):
        raise InvalidDocumentError('overallComment must be text and photos a list')
    return ReportDocument(
        components=components,
        overall_comment=comment.strip(),
        photos=[p for p in photos if isinstance(p, str) and p.strip()],
    )


def create_report(data, user_name=None):
    """Create an in_progress report from header fields and an optional document."""
    data = data or {}
    report_id = generate_id('rep')
    document = collect_document(data.get('document'))
    now = _now()

    db = get_db()
    db.execute(
        """INSERT INTO service_report
           (id, order_number, customer_name, technician_name, service_date,
            status, version, document, created_at, updated_at)
           VALUES (?, ?, ?, ?, ?, ?, 1, ?, ?, ?)""",
        [report_id, data.get('orderNumber'), data.get('customerName'),
         data.get('technicianName'), data.get('serviceDate'),
         STATUS_IN_PROGRESS, json.dumps(document.to_json(), ensure_ascii=False), now, now]
    )
    log_audit(db, 'report', report_id, 'report_created',
              new_value=STATUS_IN_PROGRESS, user_name=user_name)
    db.commit()
    logger.info("Report %s created with %d components", report_id, len(document.components))
    return get_report(report_id)


def _check_editable(report, version):
    can_edit, reason = can_edit_report(report['status'])
    if not can_edit:
        raise ReportLockedError(reason)
    if version is not None and int(version) != report['version']:
        raise VersionConflictError(report['id'], int(version), report['version'])


def save_report(report_id, document, version, user_name=None):
    """
    Replace the report document.

    Raises ReportNotFound, ReportLockedError or VersionConflictError.
    """
    report = get_report(report_id)
    _check_editable(report, version)
    collected = collect_document(document)

    db = get_db()
    cur = db.execute(
        """UPDATE service_report SET document = ?, version = version + 1, updated_at = ?
           WHERE id = ? AND version = ? AND status = ?""",
        [json.dumps(collected.to_json(), ensure_ascii=False), _now(),
         report_id, report['version'], STATUS_IN_PROGRESS]
    )
    if cur.rowcount == 0:
        db.rollback()
        current = get_report(report_id)
        raise VersionConflictError(report_id, report['version'], current['version'])

    log_audit(db, 'report', report_id, 'report_saved',
              old_value=str(report['version']), new_value=str(report['version'] + 1),
              user_name=user_name)
    db.commit()
    return get_report(report_id)


def get_capture_state(report_id):
    """Per component: resolved template, warning, item states and completion verdict."""
    report = get_report(report_id)
    components = []
    for component, template, warning in report_entries(report):
        components.append({
            'componentId': component.id,
            'template': template.to_json(),
            'warning': warning,
            'items': item_states(template, component),
            'incomplete': find_incomplete(template, component),
            'isComplete': is_complete(template, component),
        })
    return {
        'reportId': report['id'],
        'status': report['status'],
        'version': report['version'],
        'components': components,
        'isComplete': all(c['isComplete'] for c in components),
    }


def content_hash(document, template_snapshot):
    payload = json.dumps(
        {'document': document.to_json(), 'templates': template_snapshot},
        sort_keys=True, ensure_ascii=False
    )
    return hashlib.sha256(payload.encode('utf-8')).hexdigest()


def finalize_report(report_id, version, user_name=None):
    """
    Validate and lock a report.

    Raises IncompleteReportError (report stays open), ReportLockedError or
    VersionConflictError.
    """
    report = get_report(report_id)
    _check_editable(report, version)

    entries = report_entries(report)
    failures = {}
    for component, template, _ in entries:
        reasons = find_incomplete(template, component)
        if reasons:
            failures[component.id] = reasons
    if failures:
        raise IncompleteReportError(report_id, failures)

    pairs = [(component, template) for component, template, _ in entries]
    deviations = [d.to_json() for d in extract_deviations(pairs)]
    snapshot = {component.id: template.to_json() for component, template in pairs}
    digest = content_hash(report['document'], snapshot)
    now = _now()

    db = get_db()
    cur = db.execute(
        """UPDATE service_report
           SET status = ?, version = version + 1, template_snapshot = ?,
               deviation_snapshot = ?, content_hash = ?, completed_at = ?, updated_at = ?
           WHERE id = ? AND version = ? AND status = ?""",
        [STATUS_COMPLETED, json.dumps(snapshot, ensure_ascii=False),
         json.dumps(deviations, ensure_ascii=False), digest, now, now,
         report_id, report['version'], STATUS_IN_PROGRESS]
    )
    if cur.rowcount == 0:
        db.rollback()
        current = get_report(report_id)
        raise VersionConflictError(report_id, report['version'], current['version'])

    log_audit(db, 'report', report_id, 'report_finalized',
              old_value=STATUS_IN_PROGRESS, new_value=STATUS_COMPLETED, user_name=user_name,
              metadata={'deviations': len(deviations), 'contentHash': digest})
    db.commit()
    logger.info("Report %s finalized with %d deviations", report_id, len(deviations))
    return get_report(report_id)


def report_header(report):
    config = current_app.config
    return {
        'company': {
            'name': config.get('COMPANY_NAME'),
            'address': config.get('COMPANY_ADDRESS'),
            'phone': config.get('COMPANY_PHONE'),
            'email': config.get('COMPANY_EMAIL'),
            'orgnr': config.get('COMPANY_ORGNR'),
        },
        'report_id': report['id'],
        'order_number': report['orderNumber'],
        'customer_name': report['customerName'],
        'technician_name': report['technicianName'],
        'service_date': report['serviceDate'],
        'status': report['status'],
        'completed_at': report['completedAt'],
    }


def build_report_document(report_id):
    """Compiled renderer input for a report."""
    report = get_report(report_id)
    entries = [(component, template) for component, template, _ in report_entries(report)]
    compiled = compile_report(
        entries,
        header=report_header(report),
        overall_comment=report['document'].overall_comment,
        photos=report['document'].photos,
    )
    return report, compiled
