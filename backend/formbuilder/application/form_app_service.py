"""Application service: orchestrates validate -> domain op -> persist for stored forms and responses."""
from __future__ import annotations
import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional

from formbuilder.core.config import PUBLIC_BASE_URL
from formbuilder.domain.common.result import ErrorKind, Result
from formbuilder.domain.form.models import FormDocument, FormResponse
from formbuilder.domain.form.rules import new_id, normalize_document
from formbuilder.domain.response.formatting import iter_csv, newest_first
from formbuilder.domain.response.rules import validate_submission
from formbuilder.domain.share.links import build_share_link, parse_share_link
from formbuilder.persistence.interfaces.form_repository import FormRepository, GatewayError

logger = logging.getLogger(__name__)

AUTH_PENDING = "Sign-in is still pending."


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _gateway_failure(action: str, error: GatewayError) -> Result:
    logger.error("Error %s: %s", action, error)
    return Result.fail(f"Error {action}.", kind=ErrorKind.GATEWAY)


class FormAppService:
    def __init__(self, repo: FormRepository, public_base_url: str = PUBLIC_BASE_URL):
        self._repo = repo
        self._public_base_url = public_base_url

    @property
    def repo(self) -> FormRepository:
        return self._repo

    # ------------------------------------------------------------------
    # READ
    # ------------------------------------------------------------------
    def list_forms(self, owner_id: Optional[str]) -> Result[List[FormDocument]]:
        if not owner_id:
            return Result.fail(AUTH_PENDING, kind=ErrorKind.AUTH_PENDING)
        try:
            return Result.ok(self._repo.list_for_owner(owner_id))
        except GatewayError as e:
            return _gateway_failure("fetching forms", e)

    def get_form(self, owner_id: Optional[str], form_id: str) -> Result[FormDocument]:
        """Load a stored form, normalised so it satisfies the document invariants."""
        if not owner_id:
            return Result.fail(AUTH_PENDING, kind=ErrorKind.AUTH_PENDING)
        try:
            form = self._repo.get_by_id(owner_id, form_id)
        except GatewayError as e:
            return _gateway_failure("loading form", e)
        if form is None:
            return Result.miss(f"Form with ID {form_id} not found.")
        return Result.ok(normalize_document(form))

    # ------------------------------------------------------------------
    # SAVE / DELETE
    # ------------------------------------------------------------------
    def save_form(self, owner_id: Optional[str], form: FormDocument) -> Result[FormDocument]:
        """Overwrite the stored document; the saved copy carries a fresh updatedAt."""
        if not owner_id:
            return Result.fail(AUTH_PENDING, kind=ErrorKind.AUTH_PENDING)
        stamped = replace(form, updated_at=_now_iso())
        try:
            self._repo.save(owner_id, stamped)
        except GatewayError as e:
            return _gateway_failure("saving form", e)
        logger.info("Saved form %s for %s", form.id, owner_id)
        return Result.ok(stamped)

    def delete_form(self, owner_id: Optional[str], form_id: str) -> Result[bool]:
        if not owner_id:
            return Result.fail(AUTH_PENDING, kind=ErrorKind.AUTH_PENDING)
        try:
            deleted = self._repo.delete(owner_id, form_id)
        except GatewayError as e:
            return _gateway_failure("deleting form", e)
        if not deleted:
            return Result.miss(f"Form with ID {form_id} not found.")
        logger.info("Deleted form %s for %s (responses kept)", form_id, owner_id)
        return Result.ok(True)

    # ------------------------------------------------------------------
    # SHARING
    # ------------------------------------------------------------------
    def share_link(self, owner_id: Optional[str], form_id: str) -> Result[str]:
        loaded = self.get_form(owner_id, form_id)
        if not loaded.is_success:
            return Result.fail("Cannot generate share link.", kind=loaded.kind)
        return Result.ok(build_share_link(self._public_base_url, form_id, owner_id))

    def resolve_share_link(self, url: str) -> Result[FormDocument]:
        target = parse_share_link(url)
        if not target.is_success:
            return Result.fail(target.error)
        return self.get_public_form(target.value.creator_id, target.value.form_id)

    def get_public_form(self, creator_id: str, form_id: str) -> Result[FormDocument]:
        """The filler has no identity of its own; the creator id from the link scopes the lookup."""
        return self.get_form(creator_id, form_id)

    # ------------------------------------------------------------------
    # RESPONSES
    # ------------------------------------------------------------------
    def submit_response(self, creator_id: str, form_id: str, data: Dict[str, Any]) -> Result[FormResponse]:
        loaded = self.get_public_form(creator_id, form_id)
        if not loaded.is_success:
            return Result.fail(loaded.error, kind=loaded.kind)
        checked = validate_submission(loaded.value, data or {})
        if not checked.is_success:
            return Result.fail(checked.error)

        response = FormResponse(id=new_id(), form_id=form_id, data=dict(data), submitted_at=_now_iso())
        try:
            self._repo.append_response(creator_id, response)
        except GatewayError as e:
            return _gateway_failure("submitting form", e)
        logger.info("Stored response %s for form %s", response.id, form_id)
        return Result.ok(response)

    def list_responses(self, owner_id: Optional[str], form_id: str) -> Result[List[FormResponse]]:
        if not owner_id:
            return Result.fail(AUTH_PENDING, kind=ErrorKind.AUTH_PENDING)
        try:
            responses = self._repo.list_responses(owner_id, form_id)
        except GatewayError as e:
            return _gateway_failure("fetching responses", e)
        return Result.ok(newest_first(responses))

    def export_csv(self, owner_id: Optional[str], form_id: str) -> Result[Iterator[str]]:
        loaded = self.get_form(owner_id, form_id)
        if not loaded.is_success:
            return Result.fail(loaded.error, kind=loaded.kind)
        responses = self.list_responses(owner_id, form_id)
        if not responses.is_success:
            return Result.fail(responses.error, kind=responses.kind)
        return Result.ok(iter_csv(loaded.value, responses.value))
