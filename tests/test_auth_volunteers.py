import jwt
import pytest

from volufriend.store.collections import VOLUNTEERS


async def _token(client):
    res = await client.post("/auth", json={"username": "volu", "password": "friend"})
    assert res.status_code == 200
    return res.json()["token"]


async def _headers(client, settings):
    return {"X-API-Key": settings.api_key, "Authorization": f"Bearer {await _token(client)}"}


@pytest.mark.anyio
async def test_login_issues_service_token(client, settings):
    res = await client.post("/auth", json={"username": "volu", "password": "friend"})

    assert res.status_code == 200
    body = res.json()
    assert body["auth"] is True
    claims = jwt.decode(body["token"], settings.jwt_secret, algorithms=["HS256"])
    assert claims["sub"] == settings.auth_subject
    assert claims["exp"] - claims["iat"] == 24 * 60 * 60


@pytest.mark.anyio
async def test_login_rejects_bad_credentials(client):
    res = await client.post("/auth", json={"username": "volu", "password": "wrong"})

    assert res.status_code == 401
    assert res.json()["auth"] is False


@pytest.mark.anyio
async def test_volunteer_routes_need_api_key_and_token(client, settings, seeded):
    token = await _token(client)

    res = await client.get("/volunteers", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 401

    res = await client.get("/volunteers", headers={"X-API-Key": settings.api_key})
    assert res.status_code == 401

    res = await client.get("/volunteers", headers={"X-API-Key": settings.api_key, "Authorization": "Bearer junk"})
    assert res.status_code == 401


@pytest.mark.anyio
async def test_join_withdraw_rejoin(client, settings, store, seeded):
    headers = await _headers(client, settings)
    body = {"user_id": "user-1", "org_id": "org-1"}

    res = await client.post("/volunteers/joinorg", json=body, headers=headers)
    assert res.json()["status"] == "created"
    volunteer_id = res.json()["volunteer_id"]

    res = await client.post("/volunteers/joinorg", json=body, headers=headers)
    assert res.json()["status"] == "already_active"

    res = await client.post("/volunteers/withdraw", json=body, headers=headers)
    assert res.status_code == 200
    withdrawn = await store.get(VOLUNTEERS, volunteer_id)
    assert withdrawn["status"] == "withdrawal"
    assert "org_withdrawal_date_time" in withdrawn

    res = await client.post("/volunteers/joinorg", json=body, headers=headers)
    assert res.json() == {
        "message": "Volunteer status updated to Active successfully",
        "status": "reactivated",
        "volunteer_id": volunteer_id,
    }
    rejoined = await store.get(VOLUNTEERS, volunteer_id)
    assert rejoined["status"] == "Active"
    assert "org_withdrawal_date_time" not in rejoined
    assert len(await store.query(VOLUNTEERS, "user_id", "user-1")) == 1


@pytest.mark.anyio
async def test_withdraw_without_active_record_is_404(client, settings, seeded):
    headers = await _headers(client, settings)

    res = await client.post("/volunteers/withdraw", json={"user_id": "user-1", "org_id": "org-1"}, headers=headers)

    assert res.status_code == 404
    assert res.json()["message"] == "No active volunteer record found for User ID user-1 with Org ID org-1."


@pytest.mark.anyio
async def test_get_volunteer(client, settings, store, seeded):
    headers = await _headers(client, settings)
    await store.set(VOLUNTEERS, "vol-1", {"user_id": "user-1", "org_id": "org-1", "status": "Active"})

    res = await client.get("/volunteers/vol-1", headers=headers)
    assert res.json()["data"]["org_id"] == "org-1"

    res = await client.get("/volunteers", headers=headers)
    assert list(res.json()["data"]) == ["vol-1"]

    res = await client.get("/volunteers/ghost", headers=headers)
    assert res.status_code == 404
