"""Editor session: history, selection, notifications and auto-save wiring."""
import random
import threading

import pytest

from formbuilder.application.editor_session import EditorSessionRegistry, FormEditorSession
from formbuilder.domain.common.result import ErrorKind
from formbuilder.domain.form.registry import FIELD_TYPES
from formbuilder.domain.form.rules import validate_form_document
from formbuilder.domain.form.templates import get_template

OWNER = "owner-1"


@pytest.fixture
def session(forms, fake_timer):
    s = FormEditorSession(OWNER, forms, autosave_delay=15, timer_factory=fake_timer)
    s.create_blank()
    s.notifier.drain()
    return s


def _messages(session):
    return [n.message for n in session.notifier.drain()]


# ------------------------------------------------------------------
# Lifecycle
# ------------------------------------------------------------------
def test_create_blank_saves_and_starts_history(forms, fake_timer):
    s = FormEditorSession(OWNER, forms, timer_factory=fake_timer)
    result = s.create_blank()
    assert result.is_success
    assert s.history_length == 1
    assert not s.can_undo
    assert forms.get_form(OWNER, s.form.id).is_success
    assert _messages(s) == ["Form saved!"]


def test_create_without_identity_is_refused(forms, fake_timer):
    s = FormEditorSession(None, forms, timer_factory=fake_timer)
    result = s.create_from_template(get_template("contact_us"))
    assert result.kind == ErrorKind.AUTH_PENDING
    assert s.form is None
    assert s.notifier.pending == []


def test_load_form_resets_history_and_selection(session, forms, fake_timer):
    session.add_field("TEXT")
    session.save()

    other = FormEditorSession(OWNER, forms, timer_factory=fake_timer)
    assert other.load_form(session.form.id).is_success
    assert other.history_length == 1
    assert other.selected_field_id is None
    assert len(other.form.fields) == 1


def test_load_missing_form_notifies(forms, fake_timer):
    s = FormEditorSession(OWNER, forms, timer_factory=fake_timer)
    result = s.load_form("nope")
    assert result.kind == ErrorKind.LOOKUP_MISS
    notes = s.notifier.drain()
    assert notes[0].message == "Form with ID nope not found."
    assert notes[0].level == "error"


def test_save_failure_keeps_local_edits(failing_forms, fake_timer):
    s = FormEditorSession(OWNER, failing_forms, timer_factory=fake_timer)
    s.create_blank()
    assert s.form is not None
    s.update_form_details({"title": "Draft"})
    result = s.save()
    assert result.kind == ErrorKind.GATEWAY
    assert s.form.title == "Draft"
    assert s.can_undo
    assert _messages(s)[-1] == "Error saving form."


# ------------------------------------------------------------------
# Editing and history
# ------------------------------------------------------------------
def test_each_edit_is_one_history_entry(session):
    session.update_form_details({"title": "One"})
    session.add_field("DATE")
    session.add_step()
    assert session.history_length == 4
    assert session.history_index == 3


def test_undo_and_redo_restore_documents(session):
    session.update_form_details({"title": "One"})
    session.update_form_details({"title": "Two"})

    session.undo()
    assert session.form.title == "One"
    session.undo()
    assert session.form.title == "Untitled Form"
    assert session.undo().kind == ErrorKind.LOOKUP_MISS
    session.redo()
    assert session.form.title == "One"


def test_edit_after_undo_discards_redo(session):
    session.update_form_details({"title": "One"})
    session.update_form_details({"title": "Two"})
    session.undo()
    session.update_form_details({"title": "Branch"})
    assert not session.can_redo
    assert session.redo().kind == ErrorKind.LOOKUP_MISS
    assert session.form.title == "Branch"


def test_failed_operation_changes_nothing(session):
    before = session.form
    result = session.delete_step(before.steps[0].id)
    assert result.error == "Cannot delete the last step."
    assert session.form is before
    assert session.history_length == 1
    notes = session.notifier.drain()
    assert [(n.message, n.level) for n in notes] == [("Cannot delete the last step.", "warning")]


def test_lookup_miss_is_silent(session):
    result = session.update_field("ghost", {"label": "x"})
    assert result.kind == ErrorKind.LOOKUP_MISS
    assert session.notifier.pending == []
    assert session.history_length == 1


def test_set_current_step_is_not_historied(session):
    session.add_step()
    first = session.form.steps[0].id
    length = session.history_length
    session.set_current_step_id(first)
    assert session.form.current_step_id == first
    assert session.history_length == length


# ------------------------------------------------------------------
# Selection
# ------------------------------------------------------------------
def test_add_field_selects_it(session):
    session.add_field("CHECKBOX")
    assert session.selected_field.id == session.form.fields[0].id


def test_deleting_selected_field_clears_selection(session):
    session.add_field("TEXT")
    fid = session.selected_field_id
    session.delete_field(fid)
    assert session.selected_field_id is None
    assert session.selected_field is None


def test_undo_clears_selection(session):
    session.add_field("TEXT")
    session.undo()
    assert session.selected_field_id is None


def test_selection_of_unknown_field_resolves_to_none(session):
    session.select_field("ghost")
    assert session.selected_field is None
    assert session.snapshot()["selectedFieldId"] is None


# ------------------------------------------------------------------
# Auto-save
# ------------------------------------------------------------------
def test_each_commit_restarts_the_countdown(session, fake_timer):
    session.update_form_details({"title": "One"})
    session.update_form_details({"title": "Two"})
    first, second = fake_timer.created
    assert first.cancelled
    assert second.started and second.interval == 15
    assert session.autosave_pending


def test_autosave_fires_a_save(session, forms, fake_timer):
    session.update_form_details({"title": "Autosaved"})
    fake_timer.created[-1].fire()
    assert forms.get_form(OWNER, session.form.id).value.title == "Autosaved"
    assert not session.autosave_pending


def test_close_flushes_pending_save(session, forms):
    session.update_form_details({"title": "Flushed"})
    session.close()
    assert forms.get_form(OWNER, session.form.id).value.title == "Flushed"


def test_discard_drops_pending_save(session, forms, fake_timer):
    session.update_form_details({"title": "Dropped"})
    session.discard()
    assert fake_timer.created[-1].cancelled
    assert forms.get_form(OWNER, session.form.id).value.title == "Untitled Form"


# ------------------------------------------------------------------
# Snapshot
# ------------------------------------------------------------------
def test_snapshot_drains_notifications(session):
    session.save()
    snap = session.snapshot()
    assert snap["form"]["id"] == session.form.id
    assert snap["canUndo"] is False
    assert [n["message"] for n in snap["notifications"]] == ["Form saved!"]
    assert session.snapshot()["notifications"] == []


# ------------------------------------------------------------------
# Registry
# ------------------------------------------------------------------
@pytest.fixture
def registry(forms, fake_timer):
    return EditorSessionRegistry(lambda owner_id: FormEditorSession(owner_id, forms, timer_factory=fake_timer))


def test_registry_reuses_open_sessions(registry):
    session, result = registry.create(OWNER)
    assert result.is_success
    again, _ = registry.open(OWNER, session.form.id)
    assert again is session


def test_registry_opens_stored_forms(registry, forms):
    session, _ = registry.create(OWNER, get_template("contact_us"))
    registry.close(OWNER, session.form.id)
    assert registry.get(OWNER, session.form.id) is None

    reopened, result = registry.open(OWNER, session.form.id)
    assert result.is_success
    assert reopened is not session
    assert [f.label for f in reopened.form.fields] == ["Name", "Email", "Message"]


def test_registry_does_not_keep_failed_sessions(registry):
    _, result = registry.open(OWNER, "nope")
    assert result.kind == ErrorKind.LOOKUP_MISS
    assert registry.get(OWNER, "nope") is None


def test_registry_close_all_flushes(registry, forms):
    session, _ = registry.create(OWNER)
    session.update_form_details({"title": "Shutdown"})
    registry.close_all()
    assert forms.get_form(OWNER, session.form.id).value.title == "Shutdown"


def test_registry_open_race_keeps_one_session(registry, forms, fake_timer):
    session, _ = registry.create(OWNER)
    form_id = session.form.id
    registry.close(OWNER, form_id)
    both_loaded = threading.Barrier(2, timeout=5)

    class RacingSession(FormEditorSession):
        def load_form(self, form_id):
            result = super().load_form(form_id)
            both_loaded.wait()
            return result

    racing = EditorSessionRegistry(lambda owner_id: RacingSession(owner_id, forms, timer_factory=fake_timer))
    opened = []
    threads = [threading.Thread(target=lambda: opened.append(racing.open(OWNER, form_id)[0])) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(5)
    assert len(opened) == 2
    assert opened[0] is opened[1]
    assert racing.get(OWNER, form_id) is opened[0]


def test_autosave_waits_for_the_session_lock(session, forms, fake_timer):
    session.update_form_details({"title": "Locked"})
    timer = fake_timer.created[-1]
    with session.lock:
        worker = threading.Thread(target=timer.fire)
        worker.start()
        worker.join(0.2)
        assert worker.is_alive()
        assert forms.get_form(OWNER, session.form.id).value.title == "Untitled Form"
    worker.join(5)
    assert forms.get_form(OWNER, session.form.id).value.title == "Locked"


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_registry_evicts_idle_sessions(forms, fake_timer):
    clock = FakeClock()
    registry = EditorSessionRegistry(
        lambda owner_id: FormEditorSession(owner_id, forms, timer_factory=fake_timer),
        idle_timeout=60,
        clock=clock,
    )
    idle, _ = registry.create(OWNER)
    idle.update_form_details({"title": "Left open"})
    clock.now = 50
    busy, _ = registry.create(OWNER)
    clock.now = 100
    registry.get(OWNER, busy.form.id)

    clock.now = 130
    assert registry.evict_idle() == 1
    assert registry.get(OWNER, idle.form.id) is None
    assert registry.get(OWNER, busy.form.id) is busy
    # evicted sessions are flushed first
    assert forms.get_form(OWNER, idle.form.id).value.title == "Left open"


def test_registry_eviction_runs_on_open(forms, fake_timer):
    clock = FakeClock()
    registry = EditorSessionRegistry(
        lambda owner_id: FormEditorSession(owner_id, forms, timer_factory=fake_timer),
        idle_timeout=60,
        clock=clock,
    )
    first, _ = registry.create(OWNER)
    clock.now = 61
    reopened, _ = registry.open(OWNER, first.form.id)
    assert reopened is not first
    assert len(registry) == 1


def test_registry_without_idle_timeout_keeps_sessions(forms, fake_timer):
    clock = FakeClock()
    registry = EditorSessionRegistry(
        lambda owner_id: FormEditorSession(owner_id, forms, timer_factory=fake_timer),
        idle_timeout=0,
        clock=clock,
    )
    registry.create(OWNER)
    clock.now = 10 ** 6
    assert registry.evict_idle() == 0
    assert len(registry) == 1


# ------------------------------------------------------------------
# Random editing sequences
# ------------------------------------------------------------------
def _random_edit(rng, session):
    form = session.form
    field_ids = [f.id for f in form.fields] + ["ghost"]
    step_ids = [s.id for s in form.steps] + ["ghost"]
    op = rng.choice([
        "add_field", "add_field", "update_field", "delete_field", "reorder", "add_step",
        "update_step", "delete_step", "current_step", "undo", "redo",
    ])
    if op == "add_field":
        return op, session.add_field(rng.choice(list(FIELD_TYPES) + ["SLIDER"]))
    if op == "update_field":
        patch = rng.choice([
            {"label": f"Label {rng.randint(0, 99)}"},
            {"required": rng.choice([True, False])},
            {"options": ["a", "b"]},
            {"options": "bad"},
            {"type": "BOGUS"},
            {"rows": -1},
        ])
        return op, session.update_field(rng.choice(field_ids), patch)
    if op == "delete_field":
        return op, session.delete_field(rng.choice(field_ids))
    if op == "reorder":
        size = len(form.current_step.field_ids) if form.current_step else 0
        return op, session.reorder_fields(rng.randint(-1, size + 1), rng.randint(-1, size + 1))
    if op == "add_step":
        return op, session.add_step()
    if op == "update_step":
        picked = rng.sample(field_ids, k=min(2, len(field_ids)))
        patch = rng.choice([{"name": "Renamed"}, {"fieldIds": picked}])
        return op, session.update_step(rng.choice(step_ids), patch)
    if op == "delete_step":
        return op, session.delete_step(rng.choice(step_ids))
    if op == "current_step":
        return op, session.set_current_step_id(rng.choice(step_ids))
    if op == "undo":
        return op, session.undo()
    return op, session.redo()


@pytest.mark.parametrize("seed", range(8))
def test_random_edit_sequences_keep_the_document_valid(session, seed):
    rng = random.Random(seed)
    for _ in range(60):
        before = session.form
        op, result = _random_edit(rng, session)

        checked = validate_form_document(session.form)
        assert checked.is_success, (seed, op, checked.error)
        assert 0 <= session.history_index < session.history_length
        if not result.is_success:
            assert session.form is before
        if op == "reorder" and result.is_success:
            assert sorted(session.form.current_step.field_ids) == sorted(before.current_step.field_ids)
