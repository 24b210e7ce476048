from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

import buildseason.persistence.db as db
from buildseason.core.config import get_settings
from buildseason.core.security import TeamContext
from buildseason.demo import SeededTeam, seed_demo_team
from buildseason.persistence.models import Base


@pytest.fixture(scope="session")
def test_db_path(tmp_path_factory: pytest.TempPathFactory) -> Path:
    return tmp_path_factory.mktemp("db") / "test.sqlite"


@pytest.fixture(scope="session", autouse=True)
def configure_test_engine(test_db_path: Path):
    settings = get_settings()
    settings.env = "test"
    settings.auth_enabled = True

    engine = db.create_engine_from_url(f"sqlite+pysqlite:///{test_db_path}")
    TestSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)

    db.engine = engine
    db.SessionLocal = TestSessionLocal

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client(configure_test_engine):
    from buildseason.main import app

    with TestClient(app) as c:
        yield c


@pytest.fixture()
def session(configure_test_engine):
    with db.session_scope() as s:
        yield s


@pytest.fixture()
def seeded_team(configure_test_engine) -> SeededTeam:
    with db.session_scope() as s:
        return seed_demo_team(s)


@pytest.fixture()
def other_team(configure_test_engine) -> SeededTeam:
    with db.session_scope() as s:
        return seed_demo_team(s, number="254", program="frc")


@pytest.fixture()
def auth_headers(seeded_team: SeededTeam):
    settings = get_settings()
    return {
        role: {"X-API-Key": settings.gateway_api_key, "X-User-Id": user_id}
        for role, user_id in seeded_team.users.items()
    }


@pytest.fixture()
def team_ctx(seeded_team: SeededTeam):
    def _ctx(role: str) -> TeamContext:
        return TeamContext(team_id=seeded_team.team_id, caller_id=seeded_team.users[role], caller_role=role)

    return _ctx


@pytest.fixture()
def policy_settings():
    """Yield the live settings and restore lifecycle policy switches afterwards."""
    settings = get_settings()
    saved = (settings.reject_requires_reason, settings.receive_updates_inventory)
    try:
        yield settings
    finally:
        settings.reject_requires_reason, settings.receive_updates_inventory = saved
