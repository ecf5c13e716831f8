import os

os.environ.setdefault("OPSDESK_DATABASE_URL", "sqlite://")
os.environ.setdefault("OPSDESK_SEED_DEMO_DATA", "false")

import random
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

from opsdesk.main import app
from opsdesk.dependencies import get_db, get_transport
from opsdesk.models import Host, HostStatus, User, UserRole
from opsdesk.services import ScriptedTransport


async def no_sleep(seconds: float) -> None:
    return None


@pytest.fixture
def session():
    """
    In-memory SQLite session with all tables created.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session
    engine.dispose()


@pytest.fixture
def seeded(session):
    session.add_all([
        User(id="u-admin", username="admin", name="Admin User", email="admin@example.com", role=UserRole.ADMIN),
        User(id="u-operator", username="operator", name="Regular User", email="user@example.com", role=UserRole.USER),
        Host(id="h1", name="Web Server", hostname="10.0.0.1", status=HostStatus.ONLINE),
        Host(id="h2", name="Dev Server", hostname="10.0.0.2", status=HostStatus.OFFLINE),
        Host(id="h3", name="Broken Server", hostname="10.0.0.3", status=HostStatus.ERROR),
    ])
    session.commit()
    return session


@pytest.fixture
def transport():
    """Scripted transport with no latency and no random failures."""
    return ScriptedTransport(
        min_delay_ms=0,
        max_delay_ms=0,
        failure_rate=0.0,
        rng=random.Random(7),
        sleep=no_sleep,
    )


@pytest.fixture
def client(seeded, transport):
    app.dependency_overrides[get_db] = lambda: seeded
    app.dependency_overrides[get_transport] = lambda: transport
    yield TestClient(app)
    app.dependency_overrides.clear()
