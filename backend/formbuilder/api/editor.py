"""Builder API: editing operations on an open form.

Handlers are plain ``def`` so gateway calls run in the threadpool. Each one
holds the session lock while it edits and reads the snapshot, so concurrent
requests and the auto-save timer never interleave on one session. Every
response is the session snapshot.
"""
from __future__ import annotations
from typing import Any, Callable, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import BaseModel

from formbuilder.api.auth import get_current_user
from formbuilder.api.errors import status_for
from formbuilder.application.editor_session import EditorSessionRegistry, FormEditorSession
from formbuilder.container import get_editor_sessions
from formbuilder.domain.common.result import ErrorKind, Result

router = APIRouter(prefix="/editor", tags=["editor"])


# ------------------------------------------------------------------
# Pydantic schemas
# ------------------------------------------------------------------
class FormDetailsBody(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    settings: Optional[Dict[str, Any]] = None


class AddFieldBody(BaseModel):
    type: str
    attributes: Dict[str, Any] = {}


class ReorderBody(BaseModel):
    old_index: int
    new_index: int


class StepPatchBody(BaseModel):
    name: Optional[str] = None
    fieldIds: Optional[List[str]] = None


class CurrentStepBody(BaseModel):
    step_id: str


class SelectionBody(BaseModel):
    field_id: Optional[str] = None


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------
def _session(
    form_id: str,
    sessions: EditorSessionRegistry = Depends(get_editor_sessions),
    current_user: dict = Depends(get_current_user),
) -> FormEditorSession:
    """The open session for this form, loading it first if needed."""
    session, result = sessions.open(current_user["sub"], form_id)
    if not result.is_success:
        raise HTTPException(
            status_code=status_for(result.kind),
            detail={"error": result.error, "notifications": [n.to_dict() for n in session.notifier.drain()]},
        )
    return session


def _apply(session: FormEditorSession, operation: Callable[[], Result]) -> dict:
    """Run one operation and read back the snapshot while holding the session lock."""
    with session.lock:
        result = operation()
        # lookup misses are silent no-ops: the unchanged state is the answer
        if result.is_success or result.kind == ErrorKind.LOOKUP_MISS:
            return session.snapshot()
        raise HTTPException(status_code=status_for(result.kind), detail={"error": result.error, **session.snapshot()})


def _read(session: FormEditorSession) -> dict:
    with session.lock:
        return session.snapshot()


# ------------------------------------------------------------------
# Session
# ------------------------------------------------------------------
@router.post("/{form_id}/open")
def open_form(session: FormEditorSession = Depends(_session)):
    return _read(session)


@router.get("/{form_id}")
def get_state(session: FormEditorSession = Depends(_session)):
    return _read(session)


@router.post("/{form_id}/save")
def save_form(session: FormEditorSession = Depends(_session)):
    return _apply(session, session.save)


@router.post("/{form_id}/close")
def close_form(
    form_id: str,
    sessions: EditorSessionRegistry = Depends(get_editor_sessions),
    current_user: dict = Depends(get_current_user),
):
    return {"closed": sessions.close(current_user["sub"], form_id)}


# ------------------------------------------------------------------
# Form details and fields
# ------------------------------------------------------------------
@router.patch("/{form_id}/details")
def update_details(body: FormDetailsBody, session: FormEditorSession = Depends(_session)):
    return _apply(session, lambda: session.update_form_details(body.model_dump(exclude_unset=True)))


@router.post("/{form_id}/fields")
def add_field(body: AddFieldBody, session: FormEditorSession = Depends(_session)):
    return _apply(session, lambda: session.add_field(body.type, body.attributes))


@router.post("/{form_id}/fields/reorder")
def reorder_fields(body: ReorderBody, session: FormEditorSession = Depends(_session)):
    return _apply(session, lambda: session.reorder_fields(body.old_index, body.new_index))


@router.patch("/{form_id}/fields/{field_id}")
def update_field(
    field_id: str,
    patch: Dict[str, Any] = Body(...),
    session: FormEditorSession = Depends(_session),
):
    return _apply(session, lambda: session.update_field(field_id, patch))


@router.delete("/{form_id}/fields/{field_id}")
def delete_field(field_id: str, session: FormEditorSession = Depends(_session)):
    return _apply(session, lambda: session.delete_field(field_id))


# ------------------------------------------------------------------
# Steps
# ------------------------------------------------------------------
@router.post("/{form_id}/steps")
def add_step(session: FormEditorSession = Depends(_session)):
    return _apply(session, session.add_step)


@router.patch("/{form_id}/steps/{step_id}")
def update_step(step_id: str, body: StepPatchBody, session: FormEditorSession = Depends(_session)):
    return _apply(session, lambda: session.update_step(step_id, body.model_dump(exclude_unset=True)))


@router.delete("/{form_id}/steps/{step_id}")
def delete_step(step_id: str, session: FormEditorSession = Depends(_session)):
    return _apply(session, lambda: session.delete_step(step_id))


@router.put("/{form_id}/current-step")
def set_current_step(body: CurrentStepBody, session: FormEditorSession = Depends(_session)):
    return _apply(session, lambda: session.set_current_step_id(body.step_id))


@router.put("/{form_id}/selection")
def select_field(body: SelectionBody, session: FormEditorSession = Depends(_session)):
    with session.lock:
        session.select_field(body.field_id)
        return session.snapshot()


# ------------------------------------------------------------------
# Undo / redo
# ------------------------------------------------------------------
@router.post("/{form_id}/undo")
def undo(session: FormEditorSession = Depends(_session)):
    return _apply(session, session.undo)


@router.post("/{form_id}/redo")
def redo(session: FormEditorSession = Depends(_session)):
    return _apply(session, session.redo)
