"""Hosted document store (Supabase PostgREST) implementation of FormRepository."""
from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional

import requests

from formbuilder.domain.form.models import FormDocument, FormResponse
from formbuilder.persistence.interfaces.form_repository import FormRepository, GatewayError

logger = logging.getLogger(__name__)


def _as_rows(payload: Any) -> List[Any]:
    if payload is None:
        return []
    if not isinstance(payload, list):
        raise GatewayError("Form store returned a malformed body: expected a list of rows")
    return payload


def _decode_form(row: Any) -> FormDocument:
    try:
        return FormDocument.from_dict(row["document"])
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise GatewayError(f"Form store returned an unreadable form: {e}") from e


def _decode_response(row: Any) -> FormResponse:
    try:
        return FormResponse.from_dict(row)
    except (TypeError, ValueError, AttributeError) as e:
        raise GatewayError(f"Form store returned an unreadable response: {e}") from e


class SupabaseFormRepository(FormRepository):
    """
    Stores each form as a row of the ``forms`` table with the whole document in
    a jsonb ``document`` column, and responses in ``form_responses``. Saves are
    upserts on (owner_id, id). Change notifications only cover writes made
    through this process.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        super().__init__()
        if not base_url:
            raise ValueError("SUPABASE_URL must be set to use the supabase form store")
        self._rest = f"{base_url.rstrip('/')}/rest/v1"
        self._timeout = timeout
        self._session = session or requests.Session()
        self._headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

    # ------------------------------------------------------------------
    # HTTP helper
    # ------------------------------------------------------------------
    def _call(
        self,
        method: str,
        table: str,
        params: Optional[Dict[str, str]] = None,
        json_body: Any = None,
        prefer: Optional[str] = None,
    ) -> Any:
        headers = dict(self._headers)
        if prefer:
            headers["Prefer"] = prefer
        try:
            res = self._session.request(
                method,
                f"{self._rest}/{table}",
                params=params,
                json=json_body,
                headers=headers,
                timeout=self._timeout,
            )
            res.raise_for_status()
        except requests.RequestException as e:
            logger.error("Supabase %s %s failed: %s", method, table, e)
            raise GatewayError(f"Form store request failed: {e}") from e
        if not res.content:
            return None
        try:
            return res.json()
        except ValueError as e:
            logger.error("Supabase %s %s returned a malformed body: %s", method, table, e)
            raise GatewayError(f"Form store returned a malformed body: {e}") from e

    # ------------------------------------------------------------------
    # Forms
    # ------------------------------------------------------------------
    def save(self, owner_id: str, form: FormDocument) -> None:
        self._call(
            "POST",
            "forms",
            params={"on_conflict": "owner_id,id"},
            json_body={
                "id": form.id,
                "owner_id": owner_id,
                "title": form.title,
                "document": form.to_dict(),
                "created_at": form.created_at,
                "updated_at": form.updated_at,
            },
            prefer="resolution=merge-duplicates,return=minimal",
        )
        self._publish_list(owner_id)

    def get_by_id(self, owner_id: str, form_id: str) -> Optional[FormDocument]:
        rows = _as_rows(self._call(
            "GET",
            "forms",
            params={"select": "document", "owner_id": f"eq.{owner_id}", "id": f"eq.{form_id}"},
        ))
        return _decode_form(rows[0]) if rows else None

    def list_for_owner(self, owner_id: str) -> List[FormDocument]:
        rows = _as_rows(self._call(
            "GET",
            "forms",
            params={"select": "document", "owner_id": f"eq.{owner_id}", "order": "updated_at.desc"},
        ))
        return [_decode_form(r) for r in rows]

    def delete(self, owner_id: str, form_id: str) -> bool:
        rows = _as_rows(self._call(
            "DELETE",
            "forms",
            params={"owner_id": f"eq.{owner_id}", "id": f"eq.{form_id}"},
            prefer="return=representation",
        ))
        if rows:
            self._publish_list(owner_id)
        return bool(rows)

    # ------------------------------------------------------------------
    # Responses
    # ------------------------------------------------------------------
    def append_response(self, owner_id: str, response: FormResponse) -> None:
        self._call(
            "POST",
            "form_responses",
            json_body={
                "id": response.id,
                "owner_id": owner_id,
                "form_id": response.form_id,
                "data": response.data,
                "submitted_at": response.submitted_at,
            },
            prefer="return=minimal",
        )
        self._publish_responses(owner_id, response.form_id)

    def list_responses(self, owner_id: str, form_id: str) -> List[FormResponse]:
        rows = _as_rows(self._call(
            "GET",
            "form_responses",
            params={
                "select": "*",
                "owner_id": f"eq.{owner_id}",
                "form_id": f"eq.{form_id}",
                "order": "submitted_at.asc",
            },
        ))
        return [_decode_response(r) for r in rows]
