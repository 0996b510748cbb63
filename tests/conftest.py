"""
Shared pytest fixtures for the InfraMind test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - clock: Fixed, manually advanced clock injected into services
    - machine: AnalysisStateMachine over the real SQLAlchemy store
    - employee / other_employee / manager / owner: persisted users
    - task: task created by ``manager`` and assigned to ``employee``
    - second_manager: a manager unrelated to ``task``
    - auth_headers: Bearer headers for a user
"""

from datetime import datetime, timedelta, timezone

import pytest

from inframind import create_app
from inframind.models import db as _db
from inframind.models.auth import Role, User
from inframind.models.task import Task, TaskStatus
from inframind.services.analysis_lifecycle import AnalysisStateMachine
from inframind.services.analysis_store import AnalysisStore
from inframind.services.jwt_service import generate_access_token


class FakeClock:
    """Deterministic clock: returns the same instant until advanced."""

    def __init__(self, start=None):
        self.now = start or datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds=60):
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    return create_app("testing")


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Collaborators ────────────────────────────────────────────────────────


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def machine(clock):
    return AnalysisStateMachine(AnalysisStore(_db.session), clock=clock)


# ── Builders ─────────────────────────────────────────────────────────────


def _make_user(role=Role.EMPLOYEE, email=None) -> User:
    u = User(email=email or f"{role.value.lower()}-{User.query.count() + 1}@inframind.test",
             full_name=f"Test {role.value.title()}", role=role)
    _db.session.add(u)
    _db.session.commit()
    return u


def _make_task(creator: User, assignee: User | None = None, title="Checkout latency spike") -> Task:
    t = Task(
        title=title,
        description="p99 above 2s on /checkout",
        created_by=creator.id,
        assigned_to=assignee.id if assignee else None,
        status=TaskStatus.IN_PROGRESS if assignee else TaskStatus.OPEN,
    )
    _db.session.add(t)
    _db.session.commit()
    return t


@pytest.fixture()
def employee():
    return _make_user(Role.EMPLOYEE, "alice@inframind.test")


@pytest.fixture()
def other_employee():
    return _make_user(Role.EMPLOYEE, "bob@inframind.test")


@pytest.fixture()
def manager():
    return _make_user(Role.MANAGER, "carol@inframind.test")


@pytest.fixture()
def owner():
    return _make_user(Role.OWNER, "dave@inframind.test")


@pytest.fixture()
def second_manager():
    return _make_user(Role.MANAGER, "erin@inframind.test")


@pytest.fixture()
def task(manager, employee):
    return _make_task(manager, employee)


@pytest.fixture()
def auth_headers():
    """Return a builder: auth_headers(user) → {"Authorization": "Bearer …"}."""
    def _build(user: User, **extra):
        token = generate_access_token(user.id, user.role)
        headers = {"Authorization": f"Bearer {token}"}
        headers.update(extra)
        return headers
    return _build
