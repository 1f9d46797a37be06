#!/usr/bin/env python3
"""
Regenerate PDFs for every completed service report.

Each report is rendered and stored in its own transaction: a failure rolls
back that report only, leaves no PDF behind and the run continues with the
next one.

Usage: python3 scripts/regenerate_reports.py [output_dir]
Output defaults to PDF_OUTPUT_DIR.
"""
import logging
import sys

from servfix import create_app
from servfix.services.db import get_db
from servfix.services.pdf_generator import regenerate_report
from servfix.services.report_service import STATUS_COMPLETED

logger = logging.getLogger('regenerate_reports')


def regenerate_all(output_dir):
    db = get_db()
    report_ids = [row['id'] for row in db.execute(
        "SELECT id FROM service_report WHERE status = ? ORDER BY completed_at",
        [STATUS_COMPLETED]
    ).fetchall()]

    ok, failed = [], []
    for report_id in report_ids:
        try:
            path = regenerate_report(report_id, output_dir)
        except Exception:
            db.rollback()
            logger.exception("Regeneration of report %s failed, rolled back", report_id)
            failed.append(report_id)
            continue
        ok.append(report_id)
        print(f"  {report_id} -> {path}")
    return ok, failed


def main():
    app = create_app()
    output_dir = sys.argv[1] if len(sys.argv) > 1 else app.config['PDF_OUTPUT_DIR']

    with app.app_context():
        print("=== REGENERATING SERVICE REPORTS ===\n")
        ok, failed = regenerate_all(output_dir)

    print(f"\nRegenerated: {len(ok)}, failed: {len(failed)}")
    for report_id in failed:
        print(f"  FAILED {report_id}")
    sys.exit(1 if failed else 0)


if __name__ == '__main__':
    main()
