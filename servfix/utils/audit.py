"""
Audit Log Helper
Provides log_audit() for recording report and template state changes.

Usage:
    from servfix.utils.audit import log_audit

    log_audit(
        db=conn,
        entity_type='report',
        entity_id=report_id,
        action='report_finalized',
        old_value='in_progress',
        new_value='completed',
        user_name=technician_name
    )
"""
import json
from datetime import datetime, timezone

from servfix.utils import generate_id


def log_audit(db, entity_type, entity_id, action,
              old_value=None, new_value=None,
              user_id=None, user_name=None, metadata=None):
    """
    Record an audit trail entry. The caller owns the transaction.

    Args:
        db: SQLite connection
        entity_type: 'report' or 'template'
        entity_id: ID of the entity being changed
        action: What happened (see action types below)
        old_value: Previous state (optional)
        new_value: New state (optional)
        user_id: Who performed the action
        user_name: Display name (denormalized for quick reads)
        metadata: dict or JSON string with extra context (optional)
    """
    audit_id = generate_id('aud')
    now = datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S')
    if isinstance(metadata, dict):
        metadata = json.dumps(metadata, ensure_ascii=False)

    db.execute(
        '''INSERT INTO audit_log
           (id, entity_type, entity_id, action,
            old_value, new_value, user_id, user_name, metadata, created_at)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)''',
        (audit_id, entity_type, entity_id, action,
         old_value, new_value,
         user_id or 'system', user_name or 'System',
         metadata, now)
    )

    return audit_id


# --- Standard action types for reference ---
# template_saved       - Template created or replaced
# report_created       - New service report
# report_saved         - Capture state saved (version bumped)
# report_finalized     - Report validated and locked
# report_regenerated   - Batch regeneration rendered a new PDF
