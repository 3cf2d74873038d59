import os

# settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("APP_ENV", "test")

import uuid
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import budgetup.models  # noqa: F401  registers every table
from budgetup.clock import now_utc
from budgetup.db import Base, get_db
from budgetup.main import create_app
from budgetup.models.enums import Role
from budgetup.models.invitation import Invitation
from budgetup.models.membership import Membership
from budgetup.models.user import User
from budgetup.services.audit import AuditNotifier, get_audit_notifier

def _make_engine():
    url = os.environ.get("TEST_DATABASE_URL")
    if url:
        return create_engine(url, pool_pre_ping=True)
    return create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

@pytest.fixture()
def engine():
    engine = _make_engine()
    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(engine)
        engine.dispose()

@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)

@pytest.fixture()
def db_session(session_factory) -> Session:
    session: Session = session_factory()
    try:
        yield session
    finally:
        session.close()

@pytest.fixture()
def audit_notifier(session_factory) -> AuditNotifier:
    return AuditNotifier(session_factory=session_factory)

@pytest.fixture()
def app(session_factory, audit_notifier):
    app = create_app()

    def _override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_audit_notifier] = lambda: audit_notifier
    return app

@pytest.fixture()
def client(app) -> TestClient:
    return TestClient(app)

def login(client, email: str) -> str:
    r = client.post("/auth/request-link", json={"email": email})
    assert r.status_code == 200, r.text
    token = r.json()["token"]

    r = client.post("/auth/redeem", json={"token": token})
    assert r.status_code == 200, r.text
    return r.json()["access_token"]

def auth(jwt: str) -> dict[str, str]:
    return {"authorization": f"bearer {jwt}"}

def uniq_email(prefix: str) -> str:
    return f"{prefix}+{uuid.uuid4().hex[:10]}@example.com"

def create_org(client, jwt: str, name: str | None = None) -> str:
    r = client.post("/organizations", json={"name": name or f"org-{uuid.uuid4().hex[:8]}"}, headers=auth(jwt))
    assert r.status_code == 200, r.text
    return r.json()["id"]

def user_id_for(db: Session, email: str) -> uuid.UUID:
    db.expire_all()
    user = db.scalar(select(User).where(User.email == email.lower()))
    assert user is not None
    return user.id

def add_membership(db: Session, email: str, org_id: str | uuid.UUID, role: Role) -> None:
    # direct db insert for speed + clarity
    db.add(Membership(user_id=user_id_for(db, email), org_id=uuid.UUID(str(org_id)), role=role))
    db.commit()

def seed_invitation(
    db: Session,
    org_id: str | uuid.UUID,
    created_by: uuid.UUID,
    email: str,
    code: str = "ABC123",
    role: Role = Role.member,
    expires_in: timedelta = timedelta(days=7),
    used: bool = False,
) -> Invitation:
    now = now_utc()
    inv = Invitation(
        org_id=uuid.UUID(str(org_id)),
        email=email,
        role=role,
        code=code,
        expires_at=now + expires_in,
        used_at=now if used else None,
        created_by=created_by,
    )
    db.add(inv)
    db.commit()
    db.refresh(inv)
    return inv

@pytest.fixture()
def owner(client):
    email = uniq_email("owner")
    return {"email": email, "jwt": login(client, email)}

@pytest.fixture()
def org_id(client, owner) -> str:
    return create_org(client, owner["jwt"])
