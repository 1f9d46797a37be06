"""
Report routes - capture, save and finalize service reports.
Saves and finalize carry the report version; a stale version gets 409.
"""
from flask import Blueprint, current_app, jsonify, request

from servfix.services import report_service
from servfix.services.report_service import (
    IncompleteReportError, InvalidDocumentError, ReportLockedError, ReportNotFound,
    VersionConflictError,
)

reports_bp = Blueprint('reports', __name__, url_prefix='/reports')


@reports_bp.errorhandler(ReportNotFound)
def report_not_found(e):
    return jsonify({'error': 'Report {} not found'.format(e)}), 404


@reports_bp.errorhandler(ReportLockedError)
def report_locked(e):
    return jsonify({'error': str(e)}), 409


@reports_bp.errorhandler(VersionConflictError)
def version_conflict(e):
    return jsonify({'error': str(e), 'currentVersion': e.current}), 409


@reports_bp.errorhandler(InvalidDocumentError)
def invalid_document(e):
    return jsonify({'error': str(e)}), 400


@reports_bp.errorhandler(IncompleteReportError)
def report_incomplete(e):
    return jsonify({'error': str(e), 'incomplete': e.failures}), 422


def _user_name():
    return request.headers.get('X-User-Name')


def _json_body():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else None


def _version(data):
    """The version named in the body as an int, None when absent. Raises ValueError."""
    value = data.get('version')
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ValueError('version must be an integer')
    return int(value)


@reports_bp.route('/', methods=['POST'])
def create_report():
    data = _json_body()
    if data is None:
        return jsonify({'error': 'Expected a JSON object'}), 400
    report = report_service.create_report(data, user_name=_user_name())
    return jsonify(report_service.report_to_json(report)), 201


@reports_bp.route('/<report_id>')
def get_report(report_id):
    report = report_service.get_report(report_id)
    return jsonify(report_service.report_to_json(report))


@reports_bp.route('/<report_id>', methods=['PUT'])
def save_report(report_id):
    data = _json_body()
    try:
        version = _version(data) if data is not None else None
    except ValueError:
        version = None
    if version is None:
        return jsonify({'error': 'Expected {document, version} with an integer version'}), 400
    report = report_service.save_report(
        report_id, data.get('document'), version, user_name=_user_name()
    )
    return jsonify(report_service.report_to_json(report))


@reports_bp.route('/<report_id>/capture')
def capture_state(report_id):
    return jsonify(report_service.get_capture_state(report_id))


@reports_bp.route('/<report_id>/finalize', methods=['POST'])
def finalize_report(report_id):
    try:
        version = _version(_json_body() or {})
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    try:
        report = report_service.finalize_report(report_id, version, user_name=_user_name())
    except IncompleteReportError:
        current_app.logger.info("Finalize of report %s refused: incomplete", report_id)
        raise
    return jsonify(report_service.report_to_json(report))


@reports_bp.route('/<report_id>/document')
def report_document(report_id):
    """Compiled renderer input as JSON."""
    _, compiled = report_service.build_report_document(report_id)
    return jsonify(compiled)
