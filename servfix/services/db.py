"""
Database connection manager for servfix.
SQLite with one connection per request.
"""
import json
import logging
import os
import sqlite3
from datetime import datetime, timezone

from flask import g, current_app

logger = logging.getLogger(__name__)

SCHEMA_PATH = os.path.join(os.path.dirname(__file__), 'schema.sql')
SEED_PATH = os.path.join(os.path.dirname(__file__), 'template_seed.json')


def connect(db_path):
    """Open a connection outside the request cycle (scripts, init)."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def get_db():
    """Get database connection for current request."""
    if 'db' not in g:
        g.db = connect(current_app.config['DATABASE_PATH'])
    return g.db


def close_db(e=None):
    """Close database connection at end of request."""
    db = g.pop('db', None)
    if db is not None:
        db.close()


def seed_templates(conn, seed_path=SEED_PATH):
    """Insert the bundled checklist templates. Returns number inserted."""
    if not os.path.exists(seed_path):
        return 0
    with open(seed_path, 'r', encoding='utf-8') as f:
        templates = json.load(f)

    now = datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S')
    for data in templates:
        conn.execute(
            """INSERT OR IGNORE INTO checklist_template (id, name, data, updated_at)
               VALUES (?, ?, ?, ?)""",
            [data['id'], data['name'], json.dumps(data, ensure_ascii=False), now]
        )
    return len(templates)


def init_db(app):
    """Initialize database with schema if not exists."""
    app.teardown_appcontext(close_db)

    db_path = app.config['DATABASE_PATH']
    os.makedirs(os.path.dirname(db_path) or '.', exist_ok=True)

    if not os.path.exists(db_path):
        conn = connect(db_path)
        with open(SCHEMA_PATH, 'r', encoding='utf-8') as f:
            conn.executescript(f.read())
        seeded = seed_templates(conn)
        conn.commit()
        conn.close()
        logger.info("Database initialized at %s (%d templates seeded)", db_path, seeded)

