from jose import jwt
from sqlmodel import select
from starlette.requests import Request

from opsdesk.core.config import get_settings
from opsdesk.core.onboarding import seed_hosts, seed_users
from opsdesk.core.security import resolve_identity
from opsdesk.models import AuditAction, AuditEvent, Host, HostStatus, User


def make_request(headers=None):
    raw = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    return Request({"type": "http", "method": "GET", "path": "/", "headers": raw})


def test_seeding_is_idempotent(session):
    seed_users(session)
    seed_hosts(session)
    seed_users(session)
    seed_hosts(session)

    assert len(session.exec(select(User)).all()) == 2
    hosts = {h.id: h for h in session.exec(select(Host)).all()}
    assert set(hosts) == {"server-1", "server-2", "server-3"}
    assert hosts["server-3"].status == HostStatus.OFFLINE

    events = session.exec(select(AuditEvent)).all()
    assert len(events) == 3
    assert {e.action for e in events} == {AuditAction.CREATE_HOST}

def test_seeded_host_is_owned_by_its_user(session):
    seed_users(session)
    seed_hosts(session)
    operator = session.exec(select(User).where(User.username == "operator")).one()
    assert session.get(Host, "server-3").added_by == operator.id

def test_identity_from_bearer_token(seeded):
    token = jwt.encode({"sub": "admin"}, get_settings().SECRET_KEY, algorithm="HS256")
    user = resolve_identity(make_request({"Authorization": f"Bearer {token}"}), seeded)
    assert user.id == "u-admin"

def test_identity_from_cookie(seeded):
    token = jwt.encode({"sub": "admin"}, get_settings().SECRET_KEY, algorithm="HS256")
    user = resolve_identity(make_request({"Cookie": f"access_token={token}"}), seeded)
    assert user.id == "u-admin"

def test_inactive_user_falls_back_to_default_operator(seeded):
    admin = seeded.get(User, "u-admin")
    admin.is_active = False
    seeded.add(admin)
    seeded.commit()
    token = jwt.encode({"sub": "admin"}, get_settings().SECRET_KEY, algorithm="HS256")

    user = resolve_identity(make_request({"Authorization": f"Bearer {token}"}), seeded)

    assert user.id == "u-operator"

def test_token_signed_with_other_key_is_ignored(seeded):
    token = jwt.encode({"sub": "admin"}, "not-the-key", algorithm="HS256")
    user = resolve_identity(make_request({"Authorization": f"Bearer {token}"}), seeded)
    assert user.id == "u-operator"

def test_anonymous_without_default_operator(seeded, monkeypatch):
    monkeypatch.setattr(get_settings(), "DEFAULT_OPERATOR", None)
    assert resolve_identity(make_request(), seeded) is None

def test_no_fallback_when_auth_required(seeded, monkeypatch):
    monkeypatch.setattr(get_settings(), "REQUIRE_AUTH", True)
    assert resolve_identity(make_request(), seeded) is None
