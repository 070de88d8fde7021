from datetime import timedelta

import pytest

from sitelog.common.security import create_access_token, decode_token


def test_decode_rejects_tampered_token():
    token = create_access_token({"sub": "user-1"})
    with pytest.raises(ValueError):
        decode_token(token[:-2] + "xx")


def test_decode_rejects_expired_token():
    token = create_access_token({"sub": "user-1"}, expires_delta=timedelta(minutes=-5))
    with pytest.raises(ValueError):
        decode_token(token)


@pytest.mark.asyncio
async def test_get_me_creates_profile(client, auth_headers):
    response = await client.get("/api/v1/auth/me", headers=auth_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["id"] == "user-supervisor-1"
    assert data["email"] == "user-supervisor-1@test.com"
    assert data["username"] == "Dana Ruiz"

    # Second call returns the stored profile
    response = await client.get("/api/v1/auth/me", headers=auth_headers)
    assert response.json()["created_at"] == data["created_at"]


@pytest.mark.asyncio
async def test_username_falls_back_to_email(client, other_headers):
    response = await client.get("/api/v1/auth/me", headers=other_headers)
    assert response.json()["username"] == "user-supervisor-2"


@pytest.mark.asyncio
async def test_get_me_no_auth(client):
    response = await client.get("/api/v1/auth/me")
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_get_me_bad_header(client):
    response = await client.get("/api/v1/auth/me", headers={"Authorization": "Token abc"})
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_get_me_invalid_token(client):
    response = await client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_unverified_email_rejected(client, unverified_headers):
    response = await client.get("/api/v1/auth/me", headers=unverified_headers)
    assert response.status_code == 403
    assert response.json()["detail"] == "Email address is not verified"


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["ai"] is True
    assert "x-request-duration-ms" in response.headers
