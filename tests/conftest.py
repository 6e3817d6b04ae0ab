import json
import os

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("WS_ENABLE_HEARTBEAT", "false")

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from staffhub.core.database import Base, SessionLocal, engine
from staffhub.core.dependencies import get_connection_manager
from staffhub.core.security import create_access_token
from staffhub.main import app
from staffhub.models import User, UserRole
from staffhub.schemas.team import TeamCreate
from staffhub.services import team_service, user_service
from staffhub.services.connection_manager import ConnectionManager


class FakeWebSocket:
    """Records what the connection manager pushes to it."""

    def __init__(self, fail: bool = False):
        self.sent = []
        self.accepted = False
        self.closed = False
        self.fail = fail

    async def accept(self):
        self.accepted = True

    async def send_text(self, text: str):
        if self.fail:
            raise RuntimeError("socket is gone")
        self.sent.append(text)

    async def close(self, code: int = 1000, reason: str = None):
        self.closed = True

    def events(self, event_type: str = None):
        frames = [json.loads(text) for text in self.sent]
        if event_type is None:
            return frames
        return [frame for frame in frames if frame["type"] == event_type]


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


def _user(db, email, name, role):
    user = User(email=email, name=name, role=role, is_active=True)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def org(db):
    """
    admin, hr
    manager M leads team X (E, E2) and team Y (F)
    manager M2 leads team Z (G)
    employee N belongs to no team
    """
    admin = _user(db, "admin@example.com", "Ada Admin", UserRole.ADMIN)
    hr = _user(db, "hr@example.com", "Hana HR", UserRole.HR)
    m = _user(db, "m@example.com", "Mia Manager", UserRole.MANAGER)
    m2 = _user(db, "m2@example.com", "Max Manager", UserRole.MANAGER)
    e = _user(db, "e@example.com", "Eli Employee", UserRole.EMPLOYEE)
    e2 = _user(db, "e2@example.com", "Eva Employee", UserRole.EMPLOYEE)
    f = _user(db, "f@example.com", "Finn Employee", UserRole.EMPLOYEE)
    g = _user(db, "g@example.com", "Gus Employee", UserRole.EMPLOYEE)
    n = _user(db, "n@example.com", "Nia Newhire", UserRole.EMPLOYEE)

    team_x = team_service.create_team(db, TeamCreate(name="Team X", leader_id=m.id, member_ids=[e.id, e2.id]))
    team_y = team_service.create_team(db, TeamCreate(name="Team Y", leader_id=m.id, member_ids=[f.id]))
    team_z = team_service.create_team(db, TeamCreate(name="Team Z", leader_id=m2.id, member_ids=[g.id]))

    return SimpleNamespace(
        admin=admin, hr=hr, m=m, m2=m2, e=e, e2=e2, f=f, g=g, n=n,
        team_x=team_x, team_y=team_y, team_z=team_z,
    )


@pytest.fixture
def manager():
    return ConnectionManager()


@pytest.fixture
def client(db, manager):
    manager.presence_store = user_service.store_presence
    app.dependency_overrides[get_connection_manager] = lambda: manager
    try:
        # One portal for requests and sockets alike
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def token_for():
    def _token_for(user):
        return create_access_token({"sub": user.email})
    return _token_for


@pytest.fixture
def headers_for(token_for):
    def _headers_for(user):
        return {"Authorization": f"Bearer {token_for(user)}"}
    return _headers_for


@pytest.fixture
def fake_socket():
    return FakeWebSocket
