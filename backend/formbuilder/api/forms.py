"""Form dashboard API: catalog, stored forms, sharing and responses."""
from __future__ import annotations
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from formbuilder.api.auth import get_current_user
from formbuilder.api.errors import raise_for
from formbuilder.application.editor_session import EditorSessionRegistry
from formbuilder.application.form_app_service import FormAppService
from formbuilder.container import get_editor_sessions, get_form_app_service
from formbuilder.domain.form import registry
from formbuilder.domain.form.models import FormDocument, FormResponse
from formbuilder.domain.form.templates import TEMPLATES, get_template
from formbuilder.domain.response.formatting import labelled_answers, ordered_fields

router = APIRouter(tags=["forms"])


# ------------------------------------------------------------------
# Pydantic schemas
# ------------------------------------------------------------------
class CreateFormBody(BaseModel):
    template: Optional[str] = None


class ImportFormBody(BaseModel):
    document: Dict[str, Any]


# ------------------------------------------------------------------
# Serializers
# ------------------------------------------------------------------
def _serialize_summary(form: FormDocument) -> dict:
    return {
        "id": form.id,
        "title": form.title,
        "description": form.description,
        "fieldCount": len(form.fields),
        "stepCount": len(form.steps),
        "createdAt": form.created_at,
        "updatedAt": form.updated_at,
    }


def _serialize_response(form: FormDocument, response: FormResponse) -> dict:
    return {
        "id": response.id,
        "submittedAt": response.submitted_at,
        "answers": labelled_answers(form, response),
    }


# ------------------------------------------------------------------
# Health check and catalog
# ------------------------------------------------------------------
@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/field-types")
def list_field_types():
    return [info.to_dict() for info in registry.catalog()]


@router.get("/templates")
def list_templates():
    return [{"name": name, "title": factory()["title"]} for name, factory in TEMPLATES.items()]


# ------------------------------------------------------------------
# Form endpoints
# ------------------------------------------------------------------
@router.get("/forms/")
def list_forms(
    svc: FormAppService = Depends(get_form_app_service),
    current_user: dict = Depends(get_current_user),
):
    result = svc.list_forms(current_user["sub"])
    raise_for(result)
    return [_serialize_summary(f) for f in result.value]


@router.post("/forms/", status_code=status.HTTP_201_CREATED)
def create_form(
    body: CreateFormBody,
    sessions: EditorSessionRegistry = Depends(get_editor_sessions),
    current_user: dict = Depends(get_current_user),
):
    """Start a blank form, or one from a named built-in template, and open it for editing."""
    template = None
    if body.template:
        template = get_template(body.template)
        if template is None:
            raise HTTPException(status_code=404, detail=f"Template '{body.template}' not found")
    session, result = sessions.create(current_user["sub"], template)
    raise_for(result)
    return session.snapshot()


@router.post("/forms/import", status_code=status.HTTP_201_CREATED)
def import_form(
    body: ImportFormBody,
    sessions: EditorSessionRegistry = Depends(get_editor_sessions),
    current_user: dict = Depends(get_current_user),
):
    session, result = sessions.create(current_user["sub"], body.document)
    raise_for(result)
    return session.snapshot()


@router.get("/forms/{form_id}")
def get_form(
    form_id: str,
    svc: FormAppService = Depends(get_form_app_service),
    current_user: dict = Depends(get_current_user),
):
    result = svc.get_form(current_user["sub"], form_id)
    raise_for(result)
    return result.value.to_dict()


@router.delete("/forms/{form_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_form(
    form_id: str,
    svc: FormAppService = Depends(get_form_app_service),
    sessions: EditorSessionRegistry = Depends(get_editor_sessions),
    current_user: dict = Depends(get_current_user),
):
    raise_for(svc.delete_form(current_user["sub"], form_id))
    # only a form that is gone from the store loses its unsaved edits
    sessions.discard(current_user["sub"], form_id)


@router.get("/forms/{form_id}/share")
def share_form(
    form_id: str,
    svc: FormAppService = Depends(get_form_app_service),
    current_user: dict = Depends(get_current_user),
):
    result = svc.share_link(current_user["sub"], form_id)
    raise_for(result)
    return {"url": result.value}


# ------------------------------------------------------------------
# Response viewer
# ------------------------------------------------------------------
@router.get("/forms/{form_id}/responses")
def list_responses(
    form_id: str,
    svc: FormAppService = Depends(get_form_app_service),
    current_user: dict = Depends(get_current_user),
):
    loaded = svc.get_form(current_user["sub"], form_id)
    raise_for(loaded)
    responses = svc.list_responses(current_user["sub"], form_id)
    raise_for(responses)
    form = loaded.value
    return {
        "form": {"id": form.id, "title": form.title},
        "columns": [{"fieldId": f.id, "label": f.label} for f in ordered_fields(form)],
        "responses": [_serialize_response(form, r) for r in responses.value],
    }


@router.get("/forms/{form_id}/responses.csv")
def export_responses(
    form_id: str,
    svc: FormAppService = Depends(get_form_app_service),
    current_user: dict = Depends(get_current_user),
):
    result = svc.export_csv(current_user["sub"], form_id)
    raise_for(result)
    return StreamingResponse(
        result.value,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{form_id}-responses.csv"'},
    )
