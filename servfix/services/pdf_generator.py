"""
PDF Generator Service - Renders service reports.
Uses WeasyPrint for HTML to PDF conversion.
"""
import json
import logging
import os
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP

from flask import render_template, current_app
from markupsafe import escape

from servfix.checklist import Deviation
from servfix.services import report_service
from servfix.services.db import get_db
from servfix.utils.audit import log_audit

logger = logging.getLogger(__name__)


def _get_weasyprint():
    """Lazy import weasyprint."""
    try:
        from weasyprint import HTML
        return HTML
    except ImportError:
        return None


def format_nok(value):
    """Money as Norwegian kroner: kr 1 234,50"""
    if value is None or value == '':
        return ''
    amount = Decimal(str(value)).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)
    sign = '-' if amount < 0 else ''
    whole, _, ore = '{:.2f}'.format(abs(amount)).partition('.')
    groups = []
    while whole:
        groups.insert(0, whole[-3:])
        whole = whole[:-3]
    return 'kr {}{},{}'.format(sign, ' '.join(groups), ore)


def plain_text_to_html(text):
    """Convert plain text with line breaks to HTML paragraphs."""
    if not text:
        return text
    return ''.join(
        '<p>{}</p>'.format(escape(line.strip())) if line.strip() else '<p><br></p>'
        for line in text.split('\n')
    )


def render_report_html(compiled, is_pdf=True, **extra):
    """Render the compiled report with the Jinja report template."""
    return render_template(
        'pdf/service_report.html',
        **compiled,
        summary_html=plain_text_to_html(compiled['summary']['comment']),
        is_pdf=is_pdf,
        generated_at=datetime.now().strftime('%d.%m.%Y'),
        **extra
    )


def render_pdf(compiled):
    """PDF bytes for a compiled report, or None without WeasyPrint."""
    HTML = _get_weasyprint()
    if HTML is None:
        logger.error("WeasyPrint is not installed, cannot render report PDF")
        return None
    html_doc = HTML(string=render_report_html(compiled), base_url=current_app.root_path)
    return html_doc.write_pdf()


def generate_report_pdf(report_id):
    """Generate the service report PDF. Returns (report, pdf_bytes or None)."""
    report, compiled = report_service.build_report_document(report_id)
    return report, render_pdf(compiled)


def generate_pdf_filename(report):
    """Filename like 10234_SERVICERAPPORT_20260127.pdf"""
    order = report.get('orderNumber') or report['id']
    raw_date = report.get('serviceDate') or report.get('completedAt')
    date_str = None
    if raw_date:
        try:
            date_str = datetime.fromisoformat(str(raw_date)[:10]).strftime('%Y%m%d')
        except ValueError:
            date_str = None
    if not date_str:
        date_str = datetime.now().strftime('%Y%m%d')
    return '{}_SERVICERAPPORT_{}.pdf'.format(order, date_str)


def regenerate_report(report_id, output_dir):
    """
    Re-render one report into output_dir and store the path and deviations.

    One transaction per report. The PDF is written to a temporary file and
    moved into place only after the commit; on any failure the transaction
    is rolled back, the temporary file removed and the error re-raised.
    """
    report, compiled = report_service.build_report_document(report_id)
    pdf_bytes = render_pdf(compiled)
    if pdf_bytes is None:
        raise RuntimeError('PDF rendering is not available')

    os.makedirs(output_dir, exist_ok=True)
    path = os.path.join(output_dir, generate_pdf_filename(report))
    tmp_path = path + '.tmp'
    with open(tmp_path, 'wb') as f:
        f.write(pdf_bytes)

    deviations = [Deviation.model_validate(d).to_json() for d in compiled['deviations']]
    db = get_db()
    try:
        db.execute(
            "UPDATE service_report SET pdf_path = ?, deviation_snapshot = ? WHERE id = ?",
            [path, json.dumps(deviations, ensure_ascii=False), report_id]
        )
        log_audit(db, 'report', report_id, 'report_regenerated', new_value=path,
                  metadata={'deviations': len(compiled['deviations'])})
        db.commit()
    except Exception:
        db.rollback()
        os.remove(tmp_path)
        raise
    os.replace(tmp_path, path)
    return path
