import os

# Keep the app's own engine in memory and the cleanup job off while testing.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["INVITATION_CLEANUP_ENABLED"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app import models  # noqa: F401
from app.core.database import Base
from app.core.dependencies import get_db
from app.core.security import create_access_token
from app.main import app
from app.models.user import User
from app.schemas.team import TeamCreate
from app.services import team_service


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db):
    def _make_user(email, name=None, is_active=True):
        user = User(email=email, name=name or email.split("@")[0].title(), is_active=is_active)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make_user


@pytest.fixture
def alice(make_user):
    return make_user("alice@x.com", "Alice")


@pytest.fixture
def bob(make_user):
    return make_user("b@x.com", "Bob")


@pytest.fixture
def carol(make_user):
    return make_user("carol@x.com", "Carol")


@pytest.fixture
def make_team(db):
    def _make_team(owner, name="Platform", **fields):
        return team_service.create_team(db, TeamCreate(name=name, **fields), creator_id=owner.id)
    return _make_team


@pytest.fixture
def team(make_team, alice):
    return make_team(alice)


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def _auth_headers(user):
        return {"Authorization": f"Bearer {create_access_token(user.email)}"}
    return _auth_headers
