"""Hosted store gateway against a recorded requests session."""
import json

import pytest
import requests

from formbuilder.domain.form.models import FormDocument, FormResponse, Step
from formbuilder.persistence.interfaces.form_repository import GatewayError
from formbuilder.persistence.repositories.supabase.supabase_form_repository import SupabaseFormRepository


class FakeResponse:
    def __init__(self, payload=None, status_code=200):
        self.status_code = status_code
        self.content = json.dumps(payload).encode() if payload is not None else b""
        self._payload = payload

    def json(self):
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class FakeSession:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        return self.responses.pop(0) if self.responses else FakeResponse()


def _form():
    return FormDocument(id="f1", title="Survey", steps=[Step(id="s1", name="Step 1")], current_step_id="s1")


def _repo(session):
    return SupabaseFormRepository("https://project.supabase.co/", "anon-key", timeout=5, session=session)


def test_requires_base_url():
    with pytest.raises(ValueError):
        SupabaseFormRepository("", "key")


def test_save_is_an_upsert():
    session = FakeSession()
    _repo(session).save("u1", _form())
    method, url, kwargs = session.calls[0]
    assert method == "POST"
    assert url == "https://project.supabase.co/rest/v1/forms"
    assert kwargs["params"] == {"on_conflict": "owner_id,id"}
    assert kwargs["headers"]["Prefer"].startswith("resolution=merge-duplicates")
    assert kwargs["headers"]["apikey"] == "anon-key"
    assert kwargs["json"]["document"]["currentStepId"] == "s1"
    assert kwargs["timeout"] == 5


def test_get_by_id_filters_by_owner_and_id():
    session = FakeSession(FakeResponse([{"document": _form().to_dict()}]))
    form = _repo(session).get_by_id("u1", "f1")
    assert form.title == "Survey"
    params = session.calls[0][2]["params"]
    assert params["owner_id"] == "eq.u1"
    assert params["id"] == "eq.f1"


def test_get_by_id_miss():
    assert _repo(FakeSession(FakeResponse([]))).get_by_id("u1", "nope") is None


def test_delete_reports_whether_a_row_went_away():
    session = FakeSession(FakeResponse([{"id": "f1"}]), FakeResponse([]))
    repo = _repo(session)
    assert repo.delete("u1", "f1") is True
    assert repo.delete("u1", "f1") is False


def test_responses():
    rows = [{"id": "r1", "form_id": "f1", "data": {"a": "x"}, "submitted_at": "t1"}]
    session = FakeSession(FakeResponse(), FakeResponse(rows))
    repo = _repo(session)
    repo.append_response("u1", FormResponse(id="r1", form_id="f1", data={"a": "x"}, submitted_at="t1"))
    assert session.calls[0][2]["json"]["owner_id"] == "u1"
    listed = repo.list_responses("u1", "f1")
    assert listed[0].data == {"a": "x"}
    assert session.calls[1][2]["params"]["form_id"] == "eq.f1"


def test_http_errors_become_gateway_errors():
    repo = _repo(FakeSession(FakeResponse({"message": "denied"}, status_code=401)))
    with pytest.raises(GatewayError):
        repo.list_for_owner("u1")


def test_connection_errors_become_gateway_errors():
    class Unreachable(FakeSession):
        def request(self, method, url, **kwargs):
            raise requests.ConnectionError("no route to host")

    with pytest.raises(GatewayError):
        _repo(Unreachable()).save("u1", _form())


class MalformedResponse(FakeResponse):
    def __init__(self):
        super().__init__()
        self.content = b"<html>bad gateway</html>"

    def json(self):
        raise ValueError("Expecting value")


def test_malformed_bodies_become_gateway_errors():
    with pytest.raises(GatewayError):
        _repo(FakeSession(MalformedResponse())).list_for_owner("u1")


@pytest.mark.parametrize("payload", [
    {"document": {}},
    [{"title": "no document column"}],
    [{"document": "not an object"}],
])
def test_unreadable_rows_become_gateway_errors(payload):
    with pytest.raises(GatewayError):
        _repo(FakeSession(FakeResponse(payload))).get_by_id("u1", "f1")
