import os

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy_utils import create_database, database_exists, drop_database
from dotenv import load_dotenv

# Load environment variables from .env.test
load_dotenv(".env.test")

from edudesk.core.config import settings
from edudesk.core.security import create_access_token
from edudesk.database import build_engine, get_db
from edudesk.main import app
from edudesk.models import (
    AgentProfile,
    Base,
    BrochureType,
    Role,
    UniversityProgram,
    User,
    UserRole,
)

TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL", "sqlite:///./test_edudesk.db")


@pytest.fixture(scope="session")
def test_engine():
    """Create a test database and return the engine."""
    if not database_exists(TEST_DATABASE_URL):
        create_database(TEST_DATABASE_URL)

    engine = build_engine(TEST_DATABASE_URL)
    Base.metadata.create_all(bind=engine)

    yield engine

    engine.dispose()
    drop_database(TEST_DATABASE_URL)


@pytest.fixture(scope="session")
def session_factory(test_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture(scope="function")
def test_db(test_engine, session_factory):
    """Create a fresh session for each test."""
    db = session_factory()

    try:
        yield db
    finally:
        db.rollback()
        db.close()

        # Clear all tables for isolation between tests
        with test_engine.begin() as conn:
            for table in reversed(Base.metadata.sorted_tables):
                conn.execute(table.delete())


@pytest.fixture(autouse=True)
def upload_root(tmp_path, monkeypatch):
    """Point brochure storage at a per-test directory."""
    root = tmp_path / "uploads"
    root.mkdir()
    monkeypatch.setattr(settings, "upload_root", str(root))
    return root


@pytest.fixture
def client(test_db, session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def roles(test_db):
    created = {}
    for name in ("superadmin", "admin", "agent"):
        role = Role(name=name)
        test_db.add(role)
        created[name] = role
    test_db.commit()
    return created


def _make_user(db, roles, email, role_names, first_name="Test", last_name="User"):
    user = User(email=email, first_name=first_name, last_name=last_name)
    user.set_password("password123")
    db.add(user)
    db.flush()
    for name in role_names:
        db.add(UserRole(user_id=user.id, role_id=roles[name].id))
    db.commit()
    return user


@pytest.fixture
def admin_user(test_db, roles):
    """Create a test user with admin role."""
    return _make_user(test_db, roles, "admin@example.com", ["admin"], "Admin", "User")


@pytest.fixture
def admin_headers(admin_user):
    token = create_access_token({"sub": admin_user.email})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_agent(test_db, roles):
    counter = {"n": 0}

    def factory(company_name="Study Abroad Co", status="approved"):
        counter["n"] += 1
        user = _make_user(
            test_db, roles, f"agent{counter['n']}@example.com", ["agent"], "Agent", str(counter["n"])
        )
        agent = AgentProfile(user_id=user.id, company_name=company_name, status=status)
        test_db.add(agent)
        test_db.commit()
        return agent

    return factory


@pytest.fixture
def agent_headers_for():
    def build(agent):
        token = create_access_token({"sub": agent.user.email})
        return {"Authorization": f"Bearer {token}"}

    return build


@pytest.fixture
def brochure_type(test_db):
    brochure_type = BrochureType(name="Postgraduate")
    test_db.add(brochure_type)
    test_db.commit()
    return brochure_type


@pytest.fixture
def make_program(test_db, brochure_type):
    def factory(name="Oxford"):
        program = UniversityProgram(name=name, brochure_type_id=brochure_type.id)
        test_db.add(program)
        test_db.commit()
        return program

    return factory
