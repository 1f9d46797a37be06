"""
PDF routes - Generate and download service report PDFs.
"""
from flask import Blueprint, abort, Response, url_for

from servfix.services import report_service
from servfix.services.pdf_generator import (
    generate_pdf_filename, generate_report_pdf, render_report_html,
)
from servfix.services.report_service import ReportNotFound

pdf_bp = Blueprint('pdf', __name__, url_prefix='/pdf')


def _pdf_response(report_id, disposition):
    try:
        report, pdf_bytes = generate_report_pdf(report_id)
    except ReportNotFound:
        abort(404)
    if not pdf_bytes:
        abort(500, "Failed to generate PDF")

    filename = generate_pdf_filename(report)
    return Response(
        pdf_bytes,
        mimetype='application/pdf',
        headers={
            'Content-Disposition': f'{disposition}; filename="{filename}"'
        }
    )


@pdf_bp.route('/reports/<report_id>')
def download_report_pdf(report_id):
    """Generate and download the service report PDF."""
    return _pdf_response(report_id, 'attachment')


@pdf_bp.route('/reports/<report_id>/preview')
def preview_report_pdf(report_id):
    """Preview the service report PDF in browser (inline)."""
    return _pdf_response(report_id, 'inline')


@pdf_bp.route('/reports/<report_id>/view')
def view_report_html(report_id):
    """View the service report as HTML with print/download toolbar."""
    try:
        _, compiled = report_service.build_report_document(report_id)
    except ReportNotFound:
        abort(404)

    return render_report_html(
        compiled,
        is_pdf=False,
        download_url=url_for('pdf.download_report_pdf', report_id=report_id)
    )
