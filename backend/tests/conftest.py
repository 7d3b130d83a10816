"""Shared fixtures: a throwaway SQLite store, a hand-driven timer and a failing gateway."""
import pytest

from formbuilder.application.form_app_service import FormAppService
from formbuilder.persistence import db
from formbuilder.persistence.interfaces.form_repository import GatewayError
from formbuilder.persistence.repositories.sqlite.sqlite_form_repository import SqliteFormRepository


class FakeTimer:
    """Stands in for threading.Timer; tests fire it by hand."""

    created = []

    def __init__(self, interval, function):
        self.interval = interval
        self.function = function
        self.daemon = False
        self.started = False
        self.cancelled = False
        FakeTimer.created.append(self)

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled:
            self.function()


class FailingFormRepository(SqliteFormRepository):
    """Reads work, writes raise the way an unreachable store would."""

    def save(self, owner_id, form):
        raise GatewayError("store unreachable")

    def append_response(self, owner_id, response):
        raise GatewayError("store unreachable")

    def delete(self, owner_id, form_id):
        raise GatewayError("store unreachable")


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    path = str(tmp_path / "forms.db")
    monkeypatch.setattr(db, "DATABASE_PATH", path)
    db.init_db(path)
    return path


@pytest.fixture
def repo(db_path):
    return SqliteFormRepository(db_path)


@pytest.fixture
def forms(repo):
    return FormAppService(repo, public_base_url="http://localhost:5173/")


@pytest.fixture
def failing_forms(db_path):
    return FormAppService(FailingFormRepository(db_path), public_base_url="http://localhost:5173/")


@pytest.fixture
def fake_timer():
    FakeTimer.created = []
    return FakeTimer
