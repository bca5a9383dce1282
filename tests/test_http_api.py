import json
from datetime import datetime, timedelta, timezone

import jwt
import pytest

from core.response import GENERIC_ERROR_BODY, error_response


@pytest.mark.asyncio
async def test_insert_returns_primary_key(client, auth_headers):
    resp = await client.post("/temp-log", json={"temperature": 21.5, "humidity": 40}, headers=auth_headers)
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("application/json")
    body = resp.json()
    assert isinstance(body["pk"], int)

    resp = await client.get(f"/temp-log/{body['pk']}", headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["temperature"] == 21.5
    assert resp.json()["created_at"].endswith("Z")


@pytest.mark.asyncio
async def test_invalid_json_is_rejected_without_writing(client, auth_headers, env):
    resp = await client.post(
        "/temp-log",
        content=b'{"temperature": ',
        headers={**auth_headers, "Content-Type": "application/json"},
    )
    assert resp.status_code == 400
    assert set(resp.json()) == {"error"}
    assert await env.temp_log_service().list_logs() == []


@pytest.mark.asyncio
async def test_schema_violation_is_bad_request(client, auth_headers, env):
    resp = await client.post("/temp-log", json={"temperature": -500}, headers=auth_headers)
    assert resp.status_code == 400
    assert "temperature" in resp.json()["error"]

    resp = await client.post("/temp-log", json={"temperature": 20, "colour": "red"}, headers=auth_headers)
    assert resp.status_code == 400
    assert await env.temp_log_service().list_logs() == []


@pytest.mark.asyncio
async def test_list_is_newest_first(client, auth_headers):
    for t in (10.0, 11.0, 12.0):
        assert (await client.post("/temp-log", json={"temperature": t}, headers=auth_headers)).status_code == 200
    resp = await client.get("/temp-log", params={"size": 2}, headers=auth_headers)
    assert resp.status_code == 200
    assert [item["temperature"] for item in resp.json()] == [12.0, 11.0]


@pytest.mark.asyncio
async def test_unknown_log_is_not_found(client, auth_headers):
    resp = await client.get("/temp-log/4242", headers=auth_headers)
    assert resp.status_code == 404
    resp = await client.get("/temp-log/abc", headers=auth_headers)
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_unsupported_version_is_bad_request(client, auth_headers, env):
    resp = await client.post(
        "/temp-log",
        json={"temperature": 1},
        headers={**auth_headers, "X-API-Version": "99"},
    )
    assert resp.status_code == 400
    assert "99" in resp.json()["error"]
    assert await env.temp_log_service().list_logs() == []


@pytest.mark.asyncio
async def test_explicit_supported_version_is_accepted(client, auth_headers):
    resp = await client.get("/temp-log", headers={**auth_headers, "X-API-Version": "1"})
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_missing_credentials_are_unauthorized(client):
    resp = await client.post("/temp-log", json={"temperature": 1})
    assert resp.status_code == 401
    assert resp.headers["www-authenticate"] == "Bearer"
    assert set(resp.json()) == {"error"}


@pytest.mark.asyncio
async def test_invalid_and_foreign_tokens_are_unauthorized(client, rsa_private_key):
    resp = await client.get("/temp-log", headers={"Authorization": "Bearer garbage"})
    assert resp.status_code == 401

    resp = await client.get("/temp-log", headers={"Authorization": "Basic dXNlcjpwYXNz"})
    assert resp.status_code == 401

    # signed with a symmetric key instead of the process keypair
    forged = jwt.encode({"sub": "1", "iss": "raspberrysour", "type": "access",
                         "exp": datetime.now(timezone.utc) + timedelta(minutes=5)}, "secret", algorithm="HS256")
    resp = await client.get("/temp-log", headers={"Authorization": f"Bearer {forged}"})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_expired_token_is_unauthorized(client, rsa_private_key):
    now = datetime.now(timezone.utc)
    expired = jwt.encode(
        {"sub": "1", "username": "alice", "iss": "raspberrysour", "type": "access",
         "iat": now - timedelta(hours=2), "exp": now - timedelta(hours=1)},
        rsa_private_key,
        algorithm="RS256",
    )
    resp = await client.get("/temp-log", headers={"Authorization": f"Bearer {expired}"})
    assert resp.status_code == 401
    assert "expired" in resp.json()["error"].lower()


@pytest.mark.asyncio
async def test_register_login_and_list_users(client):
    resp = await client.post("/register", json={"username": "carol", "password": "longenough"})
    assert resp.status_code == 200
    pk = resp.json()["pk"]

    resp = await client.post("/register", json={"username": "carol", "password": "longenough"})
    assert resp.status_code == 409

    resp = await client.post("/login", json={"username": "carol", "password": "wrong-password"})
    assert resp.status_code == 401

    resp = await client.post("/login", json={"username": "carol", "password": "longenough"})
    assert resp.status_code == 200
    token = resp.json()
    assert token["token_type"] == "bearer"
    assert token["expires_in"] > 0

    resp = await client.get("/user", headers={"Authorization": f"Bearer {token['access_token']}"})
    assert resp.status_code == 200
    users = resp.json()
    assert [u["id"] for u in users] == [pk]
    assert "hashed_password" not in users[0]


@pytest.mark.asyncio
async def test_unknown_route_uses_error_body(client):
    resp = await client.get("/nowhere")
    assert resp.status_code == 404
    assert set(resp.json()) == {"error"}


@pytest.mark.asyncio
async def test_request_id_is_echoed(client, auth_headers):
    resp = await client.get("/temp-log", headers={**auth_headers, "X-Request-ID": "req-123"})
    assert resp.headers["x-request-id"] == "req-123"


def test_error_body_serialization_failure_falls_back():
    resp = error_response(400, object())
    assert resp.status_code == 500
    assert resp.body == GENERIC_ERROR_BODY.encode()
    assert json.loads(resp.body) == {"error": "internal server error"}
