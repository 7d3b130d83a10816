"""SQLite form store and its change feed."""
import pytest

from formbuilder.application.form_app_service import FormAppService
from formbuilder.domain.common.result import ErrorKind
from formbuilder.domain.form.models import FormDocument, FormResponse, Step
from formbuilder.persistence.db import get_connection
from formbuilder.persistence.interfaces.form_repository import GatewayError
from formbuilder.persistence.repositories.sqlite.sqlite_form_repository import SqliteFormRepository


def _form(form_id="f1", title="Survey", updated_at="2024-01-01"):
    return FormDocument(
        id=form_id,
        title=title,
        steps=[Step(id="s1", name="Step 1")],
        current_step_id="s1",
        updated_at=updated_at,
    )


def test_save_is_an_overwrite(repo):
    repo.save("u1", _form(title="First"))
    repo.save("u1", _form(title="Second"))
    forms = repo.list_for_owner("u1")
    assert len(forms) == 1
    assert forms[0].title == "Second"
    assert repo.get_by_id("u1", "f1").to_dict() == _form(title="Second").to_dict()


def test_forms_are_scoped_by_owner(repo):
    repo.save("u1", _form())
    repo.save("u2", _form(title="Theirs"))
    assert repo.get_by_id("u1", "f1").title == "Survey"
    assert repo.get_by_id("u2", "f1").title == "Theirs"
    assert repo.get_by_id("u3", "f1") is None


def test_list_is_most_recently_updated_first(repo):
    repo.save("u1", _form("old", updated_at="2024-01-01"))
    repo.save("u1", _form("new", updated_at="2024-06-01"))
    assert [f.id for f in repo.list_for_owner("u1")] == ["new", "old"]


def test_delete(repo):
    repo.save("u1", _form())
    assert repo.delete("u1", "f1") is True
    assert repo.delete("u1", "f1") is False


def test_responses_in_storage_order(repo):
    repo.append_response("u1", FormResponse(id="r1", form_id="f1", data={"a": 1}, submitted_at="t1"))
    repo.append_response("u1", FormResponse(id="r2", form_id="f1", data={"a": 2}, submitted_at="t2"))
    repo.append_response("u1", FormResponse(id="r3", form_id="other", submitted_at="t3"))
    assert [r.id for r in repo.list_responses("u1", "f1")] == ["r1", "r2"]
    assert repo.list_responses("u1", "f1")[1].data == {"a": 2}


def test_list_subscription_gets_snapshots_until_unsubscribed(repo):
    seen = []
    unsubscribe = repo.subscribe_to_list("u1", lambda forms: seen.append([f.id for f in forms]))
    repo.save("u1", _form("a"))
    repo.save("u2", _form("b"))
    repo.delete("u1", "a")
    unsubscribe()
    repo.save("u1", _form("c"))
    assert seen == [[], ["a"], []]


def test_response_subscription(repo):
    seen = []
    repo.subscribe_to_responses("u1", "f1", lambda responses: seen.append(len(responses)))
    repo.append_response("u1", FormResponse(id="r1", form_id="f1"))
    assert seen == [0, 1]


def test_broken_listener_does_not_fail_the_write(repo):
    def broken(_):
        raise RuntimeError("listener bug")

    repo.subscribe_to_list("u1", lambda forms: None)
    repo._hub.subscribe("forms:u1", broken)
    repo.save("u1", _form())
    assert repo.get_by_id("u1", "f1") is not None


def test_store_errors_raise_gateway_error(tmp_path):
    broken = SqliteFormRepository(str(tmp_path / "missing-dir" / "forms.db"))
    with pytest.raises(GatewayError):
        broken.list_for_owner("u1")


def _store_raw(db_path, table, row):
    conn = get_connection(db_path)
    try:
        columns = ", ".join(row)
        marks = ", ".join("?" for _ in row)
        conn.execute(f"INSERT INTO {table} ({columns}) VALUES ({marks})", tuple(row.values()))
        conn.commit()
    finally:
        conn.close()


def test_corrupt_documents_become_gateway_errors(repo, db_path):
    _store_raw(db_path, "forms", {
        "id": "bad", "owner_id": "u1", "document": "{not json", "created_at": "t", "updated_at": "t",
    })
    with pytest.raises(GatewayError):
        repo.get_by_id("u1", "bad")
    with pytest.raises(GatewayError):
        repo.list_for_owner("u1")

    result = FormAppService(repo).get_form("u1", "bad")
    assert result.kind == ErrorKind.GATEWAY


def test_corrupt_responses_become_gateway_errors(repo, db_path):
    _store_raw(db_path, "form_responses", {
        "id": "r1", "owner_id": "u1", "form_id": "f1", "data": "[oops", "submitted_at": "t",
    })
    with pytest.raises(GatewayError):
        repo.list_responses("u1", "f1")
