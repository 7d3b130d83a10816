"""Dependency injection container: wires implementations to interfaces."""
from __future__ import annotations
from functools import lru_cache

from formbuilder.application.editor_session import EditorSessionRegistry, FormEditorSession
from formbuilder.application.form_app_service import FormAppService
from formbuilder.core.config import (
    AUTOSAVE_DELAY_SECONDS,
    EDITOR_IDLE_TIMEOUT_SECONDS,
    FORM_STORE,
    SUPABASE_KEY,
    SUPABASE_TIMEOUT_SECONDS,
    SUPABASE_URL,
)
from formbuilder.persistence.interfaces.form_repository import FormRepository
from formbuilder.persistence.repositories.sqlite.sqlite_form_repository import SqliteFormRepository
from formbuilder.persistence.repositories.supabase.supabase_form_repository import SupabaseFormRepository


@lru_cache(maxsize=1)
def get_form_repo() -> FormRepository:
    if FORM_STORE == "supabase":
        return SupabaseFormRepository(SUPABASE_URL, SUPABASE_KEY, timeout=SUPABASE_TIMEOUT_SECONDS)
    return SqliteFormRepository()


@lru_cache(maxsize=1)
def get_form_app_service() -> FormAppService:
    return FormAppService(repo=get_form_repo())


@lru_cache(maxsize=1)
def get_editor_sessions() -> EditorSessionRegistry:
    forms = get_form_app_service()
    return EditorSessionRegistry(
        lambda owner_id: FormEditorSession(owner_id, forms, autosave_delay=AUTOSAVE_DELAY_SECONDS),
        idle_timeout=EDITOR_IDLE_TIMEOUT_SECONDS,
    )
