# cardsmith/kb/reference_store.py
"""
SQLite store of reference documents keyed by template id.

Resolves a card template's suggested reference-document ids to full
documents. List fields and sections are stored as JSON text.
"""

import json
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Iterable, Optional

from cardsmith.models import ReferenceDocument

logger = logging.getLogger(__name__)


class DatabaseError(Exception):
    """Custom exception for database errors"""
    pass


SCHEMA = """
CREATE TABLE IF NOT EXISTS reference_documents (
    template_id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    tags TEXT NOT NULL DEFAULT '[]',
    technologies TEXT NOT NULL DEFAULT '[]',
    risk_profile TEXT NOT NULL DEFAULT '[]',
    kpi_examples TEXT NOT NULL DEFAULT '[]',
    sections TEXT NOT NULL DEFAULT '[]',
    updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
)
"""


class ReferenceStore:
    """Read/write access to the reference_documents table."""

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)

    @contextmanager
    def connection(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Context manager for database connections

        Yields:
            sqlite3.Connection: Database connection with Row factory

        Raises:
            DatabaseError: If connection or a statement fails
        """
        conn = None
        try:
            conn = sqlite3.connect(str(self.db_path), timeout=10)
            conn.row_factory = sqlite3.Row
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            raise DatabaseError(f"Database error: {str(e)}") from e
        finally:
            if conn:
                conn.close()

    def ensure_schema(self) -> None:
        with self.connection() as conn:
            conn.execute(SCHEMA)

    def upsert(self, document: ReferenceDocument) -> None:
        """Insert or replace a document by its id."""
        with self.connection() as conn:
            conn.execute(
                """
                INSERT INTO reference_documents
                    (template_id, name, description, tags, technologies,
                     risk_profile, kpi_examples, sections, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(template_id) DO UPDATE SET
                    name = excluded.name,
                    description = excluded.description,
                    tags = excluded.tags,
                    technologies = excluded.technologies,
                    risk_profile = excluded.risk_profile,
                    kpi_examples = excluded.kpi_examples,
                    sections = excluded.sections,
                    updated_at = CURRENT_TIMESTAMP
                """,
                (
                    document.id,
                    document.name,
                    document.description,
                    json.dumps(list(document.tags)),
                    json.dumps(list(document.technologies)),
                    json.dumps(list(document.risk_profile)),
                    json.dumps(list(document.kpi_examples)),
                    json.dumps([s.to_dict() for s in document.sections]),
                ),
            )

    @staticmethod
    def _row_to_document(row: sqlite3.Row) -> ReferenceDocument:
        try:
            return ReferenceDocument.from_dict({
                "id": row["template_id"],
                "name": row["name"],
                "description": row["description"],
                "tags": json.loads(row["tags"]),
                "technologies": json.loads(row["technologies"]),
                "risk_profile": json.loads(row["risk_profile"]),
                "kpi_examples": json.loads(row["kpi_examples"]),
                "sections": json.loads(row["sections"]),
            })
        except json.JSONDecodeError as e:
            raise DatabaseError(f"Corrupt reference document {row['template_id']}: {e}") from e

    def get(self, template_id: str) -> Optional[ReferenceDocument]:
        with self.connection() as conn:
            row = conn.execute(
                "SELECT * FROM reference_documents WHERE template_id = ?", (template_id,)
            ).fetchone()
        return self._row_to_document(row) if row else None

    def resolve_first(self, template_ids: Iterable[str]) -> Optional[ReferenceDocument]:
        """Return the first id that resolves to a stored document."""
        for template_id in template_ids:
            if not template_id:
                continue
            try:
                document = self.get(template_id)
            except DatabaseError as e:
                logger.warning(f"Reference lookup for {template_id} failed: {e}")
                continue
            if document is not None:
                return document
        return None

    def count(self) -> int:
        with self.connection() as conn:
            return conn.execute("SELECT COUNT(*) AS count FROM reference_documents").fetchone()["count"]
