"""Filler API: shared forms are readable and answerable without signing in.

The filler holds its answers and step position; each call sends them back and
gets the validated position in return.
"""
from __future__ import annotations
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from formbuilder.api.errors import raise_for
from formbuilder.application.fill_session import FormFillSession
from formbuilder.application.form_app_service import FormAppService
from formbuilder.container import get_form_app_service

router = APIRouter(prefix="/public", tags=["public"])


class FillStateBody(BaseModel):
    stepIndex: int = 0
    data: Dict[str, Any] = {}


class SubmissionBody(BaseModel):
    data: Dict[str, Any]
    # omitted: the answers are submitted from the last step
    stepIndex: Optional[int] = None


def _open(
    svc: FormAppService,
    creator_id: str,
    form_id: str,
    data: Optional[Dict[str, Any]] = None,
    step_index: Optional[int] = 0,
) -> FormFillSession:
    result = FormFillSession.open(svc, creator_id, form_id, data, step_index)
    raise_for(result)
    return result.value


@router.get("/resolve")
def resolve_link(url: str, svc: FormAppService = Depends(get_form_app_service)):
    """Open a share link the way the filler view does."""
    result = FormFillSession.from_share_link(svc, url)
    raise_for(result)
    session = result.value
    return {
        "creatorId": session.creator_id,
        "form": session.form.to_dict(),
        "initialData": session.data,
        "position": session.to_dict(),
    }


@router.get("/forms/{creator_id}/{form_id}")
def get_public_form(creator_id: str, form_id: str, svc: FormAppService = Depends(get_form_app_service)):
    session = _open(svc, creator_id, form_id)
    return {"form": session.form.to_dict(), "initialData": session.data, "position": session.to_dict()}


@router.post("/forms/{creator_id}/{form_id}/steps/next")
def next_step(creator_id: str, form_id: str, body: FillStateBody, svc: FormAppService = Depends(get_form_app_service)):
    """Check the required fields of the step on screen, then move forward."""
    session = _open(svc, creator_id, form_id, body.data, body.stepIndex)
    raise_for(session.next_step())
    return session.to_dict()


@router.post("/forms/{creator_id}/{form_id}/steps/previous")
def previous_step(creator_id: str, form_id: str, body: FillStateBody, svc: FormAppService = Depends(get_form_app_service)):
    session = _open(svc, creator_id, form_id, body.data, body.stepIndex)
    session.previous_step()
    return session.to_dict()


@router.post("/forms/{creator_id}/{form_id}/responses", status_code=status.HTTP_201_CREATED)
def submit_response(
    creator_id: str,
    form_id: str,
    body: SubmissionBody,
    svc: FormAppService = Depends(get_form_app_service),
):
    session = _open(svc, creator_id, form_id, body.data, body.stepIndex)
    result = session.submit(svc)
    raise_for(result)
    return result.value.to_dict()
