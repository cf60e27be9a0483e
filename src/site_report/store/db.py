"""SQLite database connection and schema management.

Provides get_db_connection() context manager and init_db() for schema creation.
Reports are stored as one JSON document per row.
"""

import sqlite3
from typing import Optional
from ..config import get_settings
from contextlib import contextmanager

@contextmanager
def get_db_connection(db_path: Optional[str] = None):
    conn = sqlite3.connect(db_path or get_settings().DB_PATH)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()

def init_db(db_path: Optional[str] = None):
    schema = """
    CREATE TABLE IF NOT EXISTS reports (
        id TEXT PRIMARY KEY,
        payload TEXT NOT NULL,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
    );
    """
    with get_db_connection(db_path) as conn:
        conn.executescript(schema)
        conn.commit()
