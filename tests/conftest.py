# tests/conftest.py
import os
from datetime import datetime, timedelta, UTC
from itertools import count

# The module-level app in approvals.main must not create a database file.
os.environ["DATABASE_URL"] = "sqlite://"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from approvals.config import Settings  # noqa: E402
from approvals.main import create_app  # noqa: E402
from approvals.repository import SubmissionRepository, build_engine  # noqa: E402
from approvals.services.notifier import Notifier  # noqa: E402
from approvals.workflow import WorkflowEngine  # noqa: E402

WRITER_EMAIL = "writer@example.com"
MANAGER_EMAIL = "manager@example.com"
MANAGER_INBOX = "manager-inbox@example.com"


class FakeClock:
    """Deterministic clock: every call returns a strictly later instant."""

    def __init__(self, start=datetime(2026, 1, 5, 9, 0, tzinfo=UTC), step=timedelta(seconds=1)):
        self.now = start
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now += self.step
        return current

    def advance(self, delta: timedelta) -> None:
        self.now += delta


def sequential_ids(prefix: str = "sub-"):
    counter = count(1)
    return lambda: f"{prefix}{next(counter):04d}"


class RecordingNotifier(Notifier):
    """Keeps every outbound notification instead of sending it."""

    def __init__(self):
        self.sent = []

    def send_approval_request(self, submission, recipient, approve_link, reject_link):
        self.sent.append(("request", submission, recipient, approve_link, reject_link))

    def send_approval_confirmation(self, submission, recipient):
        self.sent.append(("approved", submission, recipient))

    def send_rejection_notice(self, submission, recipient):
        self.sent.append(("rejected", submission, recipient))

    def of_kind(self, kind):
        return [entry for entry in self.sent if entry[0] == kind]


@pytest.fixture()
def engine():
    # One in-memory database per test (StaticPool keeps a single connection)
    return build_engine("sqlite://")


@pytest.fixture()
def repo(engine):
    r = SubmissionRepository(engine)
    r.create_schema()
    return r


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def workflow(repo, clock):
    return WorkflowEngine(repo, clock=clock, id_factory=sequential_ids())


@pytest.fixture()
def notifier():
    return RecordingNotifier()


@pytest.fixture()
def settings():
    return Settings(
        database_url="sqlite://",
        jwt_secret="test-jwt-secret",
        email_secret="test-email-secret",
        manager_email=MANAGER_INBOX,
        from_email="noreply@example.com",
        smtp_host="",
        base_url="http://testserver",
    )


@pytest.fixture()
def app(settings, engine, notifier, clock):
    return create_app(
        settings,
        engine=engine,
        notifier=notifier,
        clock=clock,
        id_factory=sequential_ids(),
    )


@pytest.fixture()
def client(app):
    """Cliente de pruebas para peticiones HTTP síncronas contra la app."""
    return TestClient(app)


def login(client, email, password):
    resp = client.post("/api/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    # Keep authentication explicit: requests carry the header, not the cookie
    client.cookies.clear()
    return {"Authorization": f"Bearer {resp.json()['data']['token']}"}


@pytest.fixture()
def writer_headers(client):
    return login(client, WRITER_EMAIL, "writer123")


@pytest.fixture()
def manager_headers(client):
    return login(client, MANAGER_EMAIL, "manager123")
