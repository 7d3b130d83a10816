"""Editor session: the explicit context object behind one open form in the builder.

A session owns the current document, its undo/redo history, the selected
field, the notifications waiting for the UI and the auto-save countdown.
Nothing here is module-global; the API reaches sessions through an
``EditorSessionRegistry`` handed out by the container.
"""
from __future__ import annotations
import logging
import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple, Union

from formbuilder.application.autosave import AutoSaver
from formbuilder.application.form_app_service import AUTH_PENDING, FormAppService
from formbuilder.application.notifications import Notifier
from formbuilder.core.config import AUTOSAVE_DELAY_SECONDS, EDITOR_IDLE_TIMEOUT_SECONDS
from formbuilder.domain.common.result import ErrorKind, Result
from formbuilder.domain.form.models import FormDocument, FormField
from formbuilder.domain.form.rules import validate_form_document
from formbuilder.domain.form.service import NO_FORM, FormDomainService
from formbuilder.domain.history.engine import EditHistory

logger = logging.getLogger(__name__)


class FormEditorSession:
    def __init__(
        self,
        owner_id: Optional[str],
        forms: FormAppService,
        notifier: Optional[Notifier] = None,
        autosave_delay: Optional[float] = AUTOSAVE_DELAY_SECONDS,
        timer_factory: Callable[..., threading.Timer] = threading.Timer,
    ):
        self._owner_id = owner_id
        self._forms = forms
        self._domain = FormDomainService()
        self._history: EditHistory[FormDocument] = EditHistory()
        self._form: Optional[FormDocument] = None
        self._selected_field_id: Optional[str] = None
        self.notifier = notifier or Notifier()
        # held by API handlers around each operation and by the auto-save thread
        self.lock = threading.RLock()
        self._autosaver = (
            AutoSaver(self._autosave, autosave_delay, timer_factory) if autosave_delay else None
        )

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def owner_id(self) -> Optional[str]:
        return self._owner_id

    @property
    def form(self) -> Optional[FormDocument]:
        return self._form

    @property
    def selected_field_id(self) -> Optional[str]:
        return self._selected_field_id

    @property
    def selected_field(self) -> Optional[FormField]:
        """Resolved on every read, so a deleted field is never handed out."""
        if self._form is None:
            return None
        return self._form.find_field(self._selected_field_id)

    @property
    def history_index(self) -> int:
        return self._history.index

    @property
    def history_length(self) -> int:
        return len(self._history)

    @property
    def can_undo(self) -> bool:
        return self._history.can_undo

    @property
    def can_redo(self) -> bool:
        return self._history.can_redo

    @property
    def autosave_pending(self) -> bool:
        return bool(self._autosaver and self._autosaver.pending)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def create_blank(self) -> Result[FormDocument]:
        if not self._owner_id:
            return self._report(Result.fail(AUTH_PENDING, kind=ErrorKind.AUTH_PENDING))
        return self._start_and_save(self._domain.create_blank())

    def create_from_template(self, template: Union[FormDocument, Dict[str, Any]]) -> Result[FormDocument]:
        if not self._owner_id:
            return self._report(Result.fail(AUTH_PENDING, kind=ErrorKind.AUTH_PENDING))
        return self._start_and_save(self._domain.create_from_template(template))

    def load_form(self, form_id: str) -> Result[FormDocument]:
        result = self._forms.get_form(self._owner_id, form_id)
        if not result.is_success:
            if result.kind == ErrorKind.LOOKUP_MISS:
                # loading is the one lookup that is reported to the user
                self.notifier.error(result.error, duration=5)
                return result
            return self._report(result)
        self._start(result.value)
        logger.info("Loaded form %s for editing", form_id)
        return result

    def save(self) -> Result[FormDocument]:
        form = self._form
        if form is None:
            return self._report(Result.fail(NO_FORM))
        result = self._forms.save_form(self._owner_id, form)
        if result.is_success:
            self.notifier.info("Form saved!", duration=2)
        elif result.kind == ErrorKind.GATEWAY:
            # local edits stay authoritative; the next save is the retry
            self.notifier.error("Error saving form.", duration=5)
        else:
            self._report(result)
        return result

    def close(self) -> None:
        """Flush a pending auto-save before the session goes away."""
        if self._autosaver:
            self._autosaver.flush()

    def discard(self) -> None:
        """Drop a pending auto-save, e.g. because the form was deleted."""
        if self._autosaver:
            self._autosaver.cancel()

    # ------------------------------------------------------------------
    # Editing operations (each success is one history entry)
    # ------------------------------------------------------------------
    def update_form_details(self, patch: Dict[str, Any]) -> Result[FormDocument]:
        return self._commit(self._domain.update_form_details(self._form, patch))

    def add_field(self, field_type: str, attributes: Optional[Dict[str, Any]] = None) -> Result[FormDocument]:
        result = self._commit(self._domain.add_field(self._form, field_type, attributes))
        if result.is_success:
            self._selected_field_id = result.value.fields[-1].id
        return result

    def update_field(self, field_id: str, patch: Dict[str, Any]) -> Result[FormDocument]:
        return self._commit(self._domain.update_field(self._form, field_id, patch))

    def delete_field(self, field_id: str) -> Result[FormDocument]:
        result = self._commit(self._domain.delete_field(self._form, field_id))
        if result.is_success and self._selected_field_id == field_id:
            self._selected_field_id = None
        return result

    def reorder_fields(self, old_index: int, new_index: int) -> Result[FormDocument]:
        return self._commit(self._domain.reorder_fields(self._form, old_index, new_index))

    def add_step(self) -> Result[FormDocument]:
        return self._commit(self._domain.add_step(self._form))

    def update_step(self, step_id: str, patch: Dict[str, Any]) -> Result[FormDocument]:
        return self._commit(self._domain.update_step(self._form, step_id, patch))

    def delete_step(self, step_id: str) -> Result[FormDocument]:
        return self._commit(self._domain.delete_step(self._form, step_id))

    # ------------------------------------------------------------------
    # Navigation and selection (not historied)
    # ------------------------------------------------------------------
    def set_current_step_id(self, step_id: str) -> Result[FormDocument]:
        result = self._domain.set_current_step(self._form, step_id)
        if not result.is_success:
            return self._report(result)
        self._form = result.value
        self._touch()
        return result

    def select_field(self, field_id: Optional[str]) -> None:
        self._selected_field_id = field_id

    # ------------------------------------------------------------------
    # Undo / redo
    # ------------------------------------------------------------------
    def undo(self) -> Result[FormDocument]:
        return self._travel(self._history.undo(), "Nothing to undo.")

    def redo(self) -> Result[FormDocument]:
        return self._travel(self._history.redo(), "Nothing to redo.")

    # ------------------------------------------------------------------
    # Presentation
    # ------------------------------------------------------------------
    def snapshot(self) -> dict:
        """Everything the builder UI needs to render, plus notifications drained since the last call."""
        selected = self.selected_field
        return {
            "form": self._form.to_dict() if self._form else None,
            "selectedFieldId": selected.id if selected else None,
            "historyIndex": self._history.index,
            "historyLength": len(self._history),
            "canUndo": self.can_undo,
            "canRedo": self.can_redo,
            "notifications": [n.to_dict() for n in self.notifier.drain()],
        }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _start(self, form: FormDocument) -> None:
        if self._autosaver:
            self._autosaver.cancel()
        self._form = form
        self._history.reset(form)
        self._selected_field_id = None

    def _start_and_save(self, result: Result[FormDocument]) -> Result[FormDocument]:
        if not result.is_success:
            return self._report(result)
        self._start(result.value)
        self.save()
        return result

    def _commit(self, result: Result[FormDocument]) -> Result[FormDocument]:
        if not result.is_success:
            return self._report(result)
        checked = validate_form_document(result.value)
        if not checked.is_success:
            return self._report(checked)
        self._form = result.value
        self._history.commit(self._form)
        self._touch()
        return result

    def _travel(self, snapshot: Optional[FormDocument], nothing: str) -> Result[FormDocument]:
        if snapshot is None:
            return Result.miss(nothing)
        self._form = snapshot
        self._selected_field_id = None
        self._touch()
        return Result.ok(snapshot)

    def _touch(self) -> None:
        if self._autosaver:
            self._autosaver.schedule()

    def _autosave(self) -> Result[FormDocument]:
        with self.lock:
            return self.save()

    def _report(self, result: Result) -> Result:
        if result.kind == ErrorKind.LOOKUP_MISS:
            logger.debug("No-op: %s", result.error)
        elif result.kind == ErrorKind.AUTH_PENDING:
            logger.info("Refused while sign-in is pending: %s", result.error)
        elif result.kind == ErrorKind.GATEWAY:
            self.notifier.error(result.error, duration=5)
        else:
            self.notifier.warning(result.error)
        return result


SessionKey = Tuple[str, str]


class EditorSessionRegistry:
    """Open editor sessions keyed by (owner id, form id).

    Sessions left untouched for ``idle_timeout`` seconds are flushed and
    dropped the next time a session is opened or created.
    """

    def __init__(
        self,
        factory: Callable[[str], FormEditorSession],
        idle_timeout: Optional[float] = EDITOR_IDLE_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._factory = factory
        self._idle_timeout = idle_timeout
        self._clock = clock
        self._sessions: Dict[SessionKey, FormEditorSession] = {}
        self._last_used: Dict[SessionKey, float] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def create(self, owner_id: str, template: Optional[Union[FormDocument, Dict[str, Any]]] = None) -> Tuple[FormEditorSession, Result[FormDocument]]:
        """Start a new form (blank, or from a template) in a fresh session."""
        self.evict_idle()
        session = self._factory(owner_id)
        result = session.create_blank() if template is None else session.create_from_template(template)
        if result.is_success:
            session = self._register(session)
        return session, result

    def open(self, owner_id: str, form_id: str) -> Tuple[FormEditorSession, Result[FormDocument]]:
        """Return the open session for a form, loading it into a new session if needed."""
        self.evict_idle()
        existing = self.get(owner_id, form_id)
        if existing is not None:
            return existing, Result.ok(existing.form)
        session = self._factory(owner_id)
        result = session.load_form(form_id)
        if not result.is_success:
            return session, result
        winner = self._register(session)
        if winner is not session:
            # another request loaded the same form first; its session is the live one
            session.discard()
            return winner, Result.ok(winner.form)
        return session, result

    def get(self, owner_id: str, form_id: str) -> Optional[FormEditorSession]:
        key = (owner_id, form_id)
        with self._lock:
            session = self._sessions.get(key)
            if session is not None:
                self._last_used[key] = self._clock()
            return session

    def close(self, owner_id: str, form_id: str) -> bool:
        session = self._pop((owner_id, form_id))
        if session is None:
            return False
        session.close()
        return True

    def discard(self, owner_id: str, form_id: str) -> None:
        session = self._pop((owner_id, form_id))
        if session is not None:
            session.discard()

    def close_all(self) -> None:
        with self._lock:
            sessions, self._sessions = list(self._sessions.values()), {}
            self._last_used.clear()
        for session in sessions:
            session.close()

    def evict_idle(self) -> int:
        """Flush and drop every session idle for longer than the timeout. Returns how many went."""
        if not self._idle_timeout:
            return 0
        cutoff = self._clock() - self._idle_timeout
        with self._lock:
            idle = [key for key, used in self._last_used.items() if used <= cutoff]
            sessions = [self._sessions.pop(key) for key in idle]
            for key in idle:
                del self._last_used[key]
        for session in sessions:
            logger.info("Closing idle editor session for form %s", session.form.id if session.form else None)
            session.close()
        return len(sessions)

    def _pop(self, key: SessionKey) -> Optional[FormEditorSession]:
        with self._lock:
            self._last_used.pop(key, None)
            return self._sessions.pop(key, None)

    def _register(self, session: FormEditorSession) -> FormEditorSession:
        """Keep the first session registered under a key; later ones lose."""
        key = (session.owner_id, session.form.id)
        with self._lock:
            winner = self._sessions.setdefault(key, session)
            self._last_used[key] = self._clock()
            return winner
