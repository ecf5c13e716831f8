from datetime import datetime, timedelta, timezone

from jose import jwt
from sqlmodel import select

from opsdesk.core.config import get_settings
from opsdesk.models import AuditAction, AuditEvent, CommandJob, JobStatus


def parse_timestamp(value):
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"

def test_execute_on_online_host(client):
    response = client.post("/api/commands/execute", json={"hostId": "h1", "command": "uname -a"})

    assert response.status_code == 200
    body = response.json()
    assert body["command"] == "uname -a"
    assert body["status"] in {"SUCCESS", "FAILED"}
    assert body["output"].startswith("Linux")
    assert body["hostId"] == "h1"
    assert body["executedBy"] == "u-operator"
    assert body["host"] == {"name": "Web Server", "hostname": "10.0.0.1"}
    assert body["user"]["email"] == "user@example.com"
    assert body["duration"] >= 0
    assert parse_timestamp(body["endTime"]) >= parse_timestamp(body["startTime"])
    assert parse_timestamp(body["startTime"]).utcoffset() == timedelta(0)

def test_execute_accepts_legacy_server_id(client):
    response = client.post("/api/commands/execute", json={"serverId": "h1", "command": "df -h"})
    assert response.status_code == 200
    assert response.json()["hostId"] == "h1"

def test_execute_unknown_host(client, seeded):
    response = client.post("/api/commands/execute", json={"hostId": "zz", "command": "df -h"})

    assert response.status_code == 404
    assert response.json() == {"error": "Host not found", "category": "not_found"}
    assert seeded.exec(select(CommandJob)).all() == []

def test_execute_offline_host(client, seeded):
    response = client.post("/api/commands/execute", json={"hostId": "h2", "command": "ls"})

    assert response.status_code == 400
    assert response.json() == {"error": "Host is not online", "category": "precondition"}
    assert seeded.exec(select(CommandJob)).all() == []

def test_execute_missing_fields(client, seeded):
    for payload in ({}, {"hostId": "h1"}, {"command": "ls"}, {"hostId": "h1", "command": ""}):
        response = client.post("/api/commands/execute", json=payload)
        assert response.status_code == 400
        assert response.json()["category"] == "validation"
    assert seeded.exec(select(CommandJob)).all() == []

def test_execute_malformed_body(client):
    response = client.post("/api/commands/execute", content="not json", headers={"Content-Type": "application/json"})
    assert response.status_code == 400
    assert response.json()["category"] == "validation"

def test_history_includes_executed_command(client):
    executed = client.post("/api/commands/execute", json={"hostId": "h1", "command": "uname -a"}).json()

    response = client.get("/api/commands/history")

    assert response.status_code == 200
    rows = response.json()
    assert [r["id"] for r in rows].count(executed["id"]) == 1
    row = next(r for r in rows if r["id"] == executed["id"])
    assert row["command"] == "uname -a"
    assert row["host"]["name"] == "Web Server"

def test_history_is_capped_sorted_and_repeatable(client, seeded):
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    seeded.add_all([
        CommandJob(command=f"echo {i}", host_id="h1", status=JobStatus.SUCCESS, output=str(i),
                   start_time=base + timedelta(minutes=i), end_time=base + timedelta(minutes=i), duration=0)
        for i in range(70)
    ])
    seeded.commit()

    first = client.get("/api/commands/history").json()
    second = client.get("/api/commands/history").json()

    assert len(first) == 50
    assert first == second
    start_times = [r["startTime"] for r in first]
    assert start_times == sorted(start_times, reverse=True)

    assert len(client.get("/api/commands/history", params={"limit": 5}).json()) == 5
    assert len(client.get("/api/commands/history", params={"limit": 500}).json()) == 50

def test_activity_log_records_execution(client):
    client.post(
        "/api/commands/execute",
        json={"hostId": "h1", "command": "uname -a"},
        headers={"User-Agent": "ops-cli/1.0"},
    )

    response = client.get("/api/logs/activity")

    assert response.status_code == 200
    event = response.json()[0]
    assert event["action"] == "EXECUTE_COMMAND"
    assert event["details"] == 'Executed command "uname -a" on "Web Server"'
    assert event["identity"] == "u-operator"
    assert event["agentString"] == "ops-cli/1.0"
    assert event["user"]["name"] == "Regular User"

def test_activity_log_is_capped(client, seeded):
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    seeded.add_all([
        AuditEvent(action=AuditAction.LOGIN, details=f"login {i}", timestamp=base + timedelta(seconds=i))
        for i in range(130)
    ])
    seeded.commit()

    rows = client.get("/api/logs/activity").json()

    assert len(rows) == 100
    assert rows[0]["details"] == "login 129"
    assert rows == client.get("/api/logs/activity").json()

def test_token_attributes_job_to_user(client):
    token = jwt.encode({"sub": "admin", "role": "ADMIN"}, get_settings().SECRET_KEY, algorithm="HS256")

    response = client.post(
        "/api/commands/execute",
        json={"hostId": "h1", "command": "free -m"},
        headers={"Authorization": f"Bearer {token}"},
    )

    assert response.status_code == 200
    assert response.json()["executedBy"] == "u-admin"
    assert client.get("/api/logs/activity").json()[0]["identity"] == "u-admin"

def test_invalid_token_falls_back_to_default_operator(client):
    response = client.post(
        "/api/commands/execute",
        json={"hostId": "h1", "command": "ps aux"},
        headers={"Authorization": "Bearer not-a-jwt"},
    )
    assert response.status_code == 200
    assert response.json()["executedBy"] == "u-operator"

def test_auth_required_without_token(client, seeded, monkeypatch):
    monkeypatch.setattr(get_settings(), "REQUIRE_AUTH", True)

    response = client.post("/api/commands/execute", json={"hostId": "h1", "command": "uname -a"})

    assert response.status_code == 401
    assert response.json()["category"] == "http"
    assert seeded.exec(select(CommandJob)).all() == []
