"""SQLite implementation of FormRepository."""
from __future__ import annotations
import json
import sqlite3
from contextlib import contextmanager
from typing import Iterator, List, Optional

from formbuilder.domain.form.models import FormDocument, FormResponse
from formbuilder.persistence.db import get_connection
from formbuilder.persistence.interfaces.form_repository import FormRepository, GatewayError


def _row_to_form(row) -> FormDocument:
    try:
        return FormDocument.from_dict(json.loads(row["document"]))
    except (TypeError, ValueError, AttributeError) as e:
        raise GatewayError(f"Stored form is unreadable: {e}") from e


def _row_to_response(row) -> FormResponse:
    try:
        data = json.loads(row["data"] or "{}")
    except (TypeError, ValueError) as e:
        raise GatewayError(f"Stored response {row['id']} is unreadable: {e}") from e
    return FormResponse(
        id=row["id"],
        form_id=row["form_id"],
        data=data if isinstance(data, dict) else {},
        submitted_at=row["submitted_at"],
    )


class SqliteFormRepository(FormRepository):

    def __init__(self, db_path: Optional[str] = None):
        super().__init__()
        self._db_path = db_path

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = get_connection(self._db_path)
        except sqlite3.Error as e:
            raise GatewayError(f"Cannot open form store: {e}") from e
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise GatewayError(str(e)) from e
        finally:
            conn.close()

    def save(self, owner_id: str, form: FormDocument) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO forms (id, owner_id, title, document, created_at, updated_at)
                VALUES (:id, :owner_id, :title, :document, :created_at, :updated_at)
                ON CONFLICT(owner_id, id) DO UPDATE SET
                    title      = excluded.title,
                    document   = excluded.document,
                    updated_at = excluded.updated_at
                """,
                {
                    "id": form.id,
                    "owner_id": owner_id,
                    "title": form.title,
                    "document": json.dumps(form.to_dict()),
                    "created_at": form.created_at,
                    "updated_at": form.updated_at,
                },
            )
        self._publish_list(owner_id)

    def get_by_id(self, owner_id: str, form_id: str) -> Optional[FormDocument]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT document FROM forms WHERE owner_id = ? AND id = ?",
                (owner_id, form_id),
            ).fetchone()
        return _row_to_form(row) if row else None

    def list_for_owner(self, owner_id: str) -> List[FormDocument]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT document FROM forms WHERE owner_id = ? ORDER BY updated_at DESC",
                (owner_id,),
            ).fetchall()
        return [_row_to_form(r) for r in rows]

    def delete(self, owner_id: str, form_id: str) -> bool:
        with self._connect() as conn:
            cur = conn.execute(
                "DELETE FROM forms WHERE owner_id = ? AND id = ?", (owner_id, form_id)
            )
        deleted = cur.rowcount > 0
        if deleted:
            self._publish_list(owner_id)
        return deleted

    def append_response(self, owner_id: str, response: FormResponse) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO form_responses (id, owner_id, form_id, data, submitted_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    response.id,
                    owner_id,
                    response.form_id,
                    json.dumps(response.data),
                    response.submitted_at,
                ),
            )
        self._publish_responses(owner_id, response.form_id)

    def list_responses(self, owner_id: str, form_id: str) -> List[FormResponse]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM form_responses WHERE owner_id = ? AND form_id = ? ORDER BY rowid ASC",
                (owner_id, form_id),
            ).fetchall()
        return [_row_to_response(r) for r in rows]
