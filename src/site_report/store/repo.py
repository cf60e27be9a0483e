"""Report stores.

The pipeline only needs get/put/list keyed by report id. InMemoryReportStore
keeps reports for the life of the process; SqliteReportStore persists them.
Each call is a single-key operation; there are no cross-report transactions.
"""

import threading
from typing import Dict, List, Optional, Protocol
from .db import get_db_connection, init_db
from ..config import get_settings
from ..log import get_logger
from ..schemas.evidence import Report

logger = get_logger("store")

class ReportStore(Protocol):
    def get(self, report_id: str) -> Optional[Report]:
        ...

    def put(self, report: Report) -> None:
        ...

    def list(self) -> List[Report]:
        ...

class InMemoryReportStore:
    def __init__(self):
        self._reports: Dict[str, Report] = {}
        self._lock = threading.Lock()

    def get(self, report_id: str) -> Optional[Report]:
        with self._lock:
            return self._reports.get(report_id)

    def put(self, report: Report) -> None:
        with self._lock:
            self._reports[report.id] = report

    def list(self) -> List[Report]:
        """Reports in insertion order."""
        with self._lock:
            return list(self._reports.values())

class SqliteReportStore:
    def __init__(self, db_path: Optional[str] = None):
        self.db_path = db_path or get_settings().DB_PATH
        init_db(self.db_path)

    def get(self, report_id: str) -> Optional[Report]:
        with get_db_connection(self.db_path) as conn:
            row = conn.execute(
                "SELECT payload FROM reports WHERE id = ?",
                (report_id,)
            ).fetchone()
        return Report.model_validate_json(row["payload"]) if row else None

    def put(self, report: Report) -> None:
        with get_db_connection(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO reports (id, payload) VALUES (?, ?)
                ON CONFLICT(id) DO UPDATE SET payload = excluded.payload, updated_at = CURRENT_TIMESTAMP
                """,
                (report.id, report.model_dump_json())
            )
            conn.commit()

    def list(self) -> List[Report]:
        with get_db_connection(self.db_path) as conn:
            rows = conn.execute("SELECT payload FROM reports ORDER BY created_at ASC, rowid ASC").fetchall()
        return [Report.model_validate_json(row["payload"]) for row in rows]

def build_store() -> ReportStore:
    backend = get_settings().STORE_BACKEND.lower()
    if backend == "sqlite":
        logger.info("Using SQLite report store")
        return SqliteReportStore()
    if backend != "memory":
        logger.warning(f"Unknown STORE_BACKEND {backend!r}, using in-memory store")
    return InMemoryReportStore()
