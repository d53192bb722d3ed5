"""
SQLite connection handling.
One connection per app context, kept on flask.g and closed on teardown.
"""

import os
import sqlite3
import logging

from flask import g, current_app

logger = logging.getLogger(__name__)


def _connect(db_path: str, timeout: float) -> sqlite3.Connection:
    if db_path != ':memory:':
        os.makedirs(os.path.dirname(db_path) or '.', exist_ok=True)

    conn = sqlite3.connect(db_path, timeout=timeout)
    conn.row_factory = sqlite3.Row
    conn.execute('PRAGMA foreign_keys = ON')
    # Readers keep going while a billing write is committing
    conn.execute('PRAGMA journal_mode = WAL')
    return conn


def get_db() -> sqlite3.Connection:
    """
    Connection for the current app context.

    A call blocked on a locked database waits DATABASE_TIMEOUT seconds,
    then sqlite3 raises OperationalError; operations report that as a
    store failure.
    """
    if 'db' not in g:
        g.db = _connect(
            current_app.config.get('DATABASE_PATH', 'instance/cabinshare.db'),
            current_app.config.get('DATABASE_TIMEOUT', 15.0)
        )
    return g.db


def close_db(e=None):
    """Teardown hook: close the context's connection if one was opened."""
    db = g.pop('db', None)
    if db is not None:
        db.close()


def init_db(seed: bool = True):
    """
    Recreate the schema. WARNING: drops all existing data.

    Args:
        seed: Insert the default organization, billing settings and admin
    """
    from database.schema import drop_tables, create_tables, create_indexes
    from database.seed import seed_database

    db = get_db()
    drop_tables(db)
    create_tables(db)
    create_indexes(db)
    if seed:
        seed_database(db)
    db.commit()

    logger.info(f"Database initialized at {current_app.config.get('DATABASE_PATH')}")
