import os

# settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("NOTIFY_REDIS_ENABLED", "false")

import uuid

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import taskflow.models  # noqa: F401
from taskflow.db import Base, get_db
from taskflow.main import create_app
from taskflow.models.user import User
from taskflow.services.notifier import ChangeEvent, notifier
from taskflow.rbac.policies import Entity
from taskflow.services.provisioning import register_identity

def _engine(url: str):
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    return create_engine(url, pool_pre_ping=True)

@pytest.fixture()
def db_session() -> Session:
    engine = _engine(os.environ["DATABASE_URL"])
    Base.metadata.create_all(engine)

    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    session: Session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)
        engine.dispose()

@pytest.fixture()
def client(db_session: Session) -> TestClient:
    app = create_app()

    def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    return TestClient(app)

def uniq_email(prefix: str) -> str:
    return f"{prefix}+{uuid.uuid4().hex[:10]}@example.com"

def register(db: Session, prefix: str, role: str | None = None, full_name: str | None = None) -> User:
    metadata = {}
    if role is not None:
        metadata["role"] = role
    if full_name is not None:
        metadata["full_name"] = full_name
    user, created = register_identity(db, uniq_email(prefix), metadata)
    assert created
    return user

@pytest.fixture()
def manager(db_session) -> User:
    return register(db_session, "manager", role="manager", full_name="Mia Manager")

@pytest.fixture()
def member(db_session) -> User:
    return register(db_session, "member", role="user", full_name="Uma User")

@pytest.fixture()
def outsider(db_session) -> User:
    return register(db_session, "outsider")

@pytest.fixture()
def task_events():
    events: list[ChangeEvent] = []
    unsubscribe = notifier.subscribe(Entity.task, events.append)
    try:
        yield events
    finally:
        unsubscribe()

# http helpers

def auth(jwt: str) -> dict[str, str]:
    return {"authorization": f"bearer {jwt}"}

def signup(client, prefix: str, role: str | None = None, full_name: str | None = None) -> tuple[str, str]:
    payload = {"email": uniq_email(prefix)}
    if role is not None:
        payload["role"] = role
    if full_name is not None:
        payload["full_name"] = full_name

    r = client.post("/auth/signup", json=payload)
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["token"], "expected token to be returned in non-prod env"

    r = client.post("/auth/redeem", json={"token": body["token"]})
    assert r.status_code == 200, r.text
    return body["user_id"], r.json()["access_token"]
