"""
Template store - loads checklist templates from sqlite.

Templates are parsed once per cache period; a stored row that no longer parses
is logged and skipped so one broken template never takes down capture.
"""
import json
import logging
import time
from datetime import datetime, timezone

from flask import current_app

from servfix.checklist import TemplateError, load_template, resolve_template
from servfix.services.db import get_db
from servfix.utils.audit import log_audit

logger = logging.getLogger(__name__)


class TemplateCache:
    """Parsed templates with a time-to-live and an explicit invalidate() hook."""

    def __init__(self, ttl=300, clock=time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._templates = None
        self._loaded_at = None

    def get(self, loader):
        """Return cached templates, calling loader() when empty or expired."""
        now = self._clock()
        if self._templates is None or now - self._loaded_at >= self.ttl:
            self._templates = loader()
            self._loaded_at = now
        return self._templates

    def invalidate(self):
        self._templates = None
        self._loaded_at = None


def _cache():
    return current_app.extensions['template_cache']


def parse_rows(rows) -> list:
    """Parse stored template rows, skipping the ones that fail."""
    templates = []
    for row in rows:
        try:
            templates.append(load_template(json.loads(row['data'])))
        except (TemplateError, ValueError) as e:
            logger.error("Skipping stored template %s: %s", row['id'], e)
    return templates


def _load_templates() -> list:
    rows = get_db().execute(
        "SELECT id, data FROM checklist_template ORDER BY name"
    ).fetchall()
    return parse_rows(rows)


def get_templates() -> list:
    """All usable templates, ordered by name."""
    return _cache().get(_load_templates)


def get_template(template_id):
    """Template by id, or None."""
    for template in get_templates():
        if template.id == template_id:
            return template
    return None


def save_template(data, user_name=None):
    """
    Validate and store a template (insert or replace).

    Raises TemplateError when the template is structurally invalid.
    """
    template = load_template(data)
    db = get_db()
    existing = db.execute(
        "SELECT id FROM checklist_template WHERE id = ?", [template.id]
    ).fetchone()
    now = datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S')

    db.execute(
        """INSERT INTO checklist_template (id, name, data, updated_at)
           VALUES (?, ?, ?, ?)
           ON CONFLICT(id) DO UPDATE SET
               name = excluded.name, data = excluded.data, updated_at = excluded.updated_at""",
        [template.id, template.name, json.dumps(template.to_json(), ensure_ascii=False), now]
    )
    log_audit(db, 'template', template.id, 'template_saved',
              new_value='updated' if existing else 'created', user_name=user_name)
    db.commit()
    _cache().invalidate()
    logger.info("Template %s saved", template.id)
    return template


def resolve(equipment_type, equipment_name=None):
    """Resolve against the stored templates. Returns (template, warning)."""
    return resolve_template(get_templates(), equipment_type, equipment_name)
