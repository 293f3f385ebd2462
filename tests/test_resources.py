import pytest

from volufriend.store.collections import MESSAGES, USERS


# =============================================================================
# Users / organizations / causes
# =============================================================================

@pytest.mark.anyio
async def test_create_user_stores_blank_fields_as_null(client, store):
    res = await client.post("/users/user-9", json={"First Name": "Alan", "Last Name": "", "role": "Volunteer"})

    assert res.status_code == 201
    assert res.json() == {"id": "user-9"}
    assert await store.get(USERS, "user-9") == {"First Name": "Alan", "Last Name": None, "role": "Volunteer"}


@pytest.mark.anyio
async def test_user_update_get_delete(client, seeded):
    res = await client.put("/users/user-1", json={"token": "device-token-2"})
    assert res.status_code == 200

    res = await client.get("/users/user-1")
    assert res.json()["token"] == "device-token-2"
    assert res.json()["First Name"] == "Ada"

    res = await client.delete("/users/user-1")
    assert res.status_code == 200
    res = await client.get("/users/user-1")
    assert res.status_code == 404


@pytest.mark.anyio
async def test_list_users_is_a_map(client, seeded):
    res = await client.get("/users")

    assert set(res.json()) == {"user-1", "user-admin"}


@pytest.mark.anyio
@pytest.mark.parametrize("path", ["/organizations", "/causes"])
async def test_simple_resource_crud(client, path):
    res = await client.post(path, json={"name": "First"})
    assert res.status_code == 201
    key = res.json()["id"]

    res = await client.put(f"{path}/{key}", json={"name": "Renamed"})
    assert res.status_code == 200

    res = await client.get(f"{path}/{key}")
    assert res.json() == {"name": "Renamed"}

    res = await client.get(path)
    assert list(res.json()) == [key]

    res = await client.delete(f"{path}/{key}")
    assert res.status_code == 200
    res = await client.get(f"{path}/{key}")
    assert res.status_code == 404


# =============================================================================
# Event messages
# =============================================================================

@pytest.mark.anyio
async def test_messages_filtered_by_user(client):
    first = (await client.post("/eventmessages", json={"id": "n-1", "userId": "user-1", "title": "Hi"})).json()["id"]
    await client.post("/eventmessages", json={"id": "n-2", "userId": "user-2", "title": "Hello"})

    res = await client.get("/eventmessages", params={"user_id": "user-1"})
    assert list(res.json()) == [first]

    res = await client.get("/eventmessages", params={"user_id": "nobody"})
    assert res.status_code == 200
    assert res.json() == {}

    res = await client.get("/eventmessages")
    assert res.status_code == 400


@pytest.mark.anyio
async def test_message_get_and_update(client):
    key = (await client.post("/eventmessages", json={"id": "n-1", "userId": "user-1", "isRead": "false"})).json()["id"]

    res = await client.put(f"/eventmessages/{key}", json={"isRead": "true"})
    assert res.status_code == 200

    res = await client.get(f"/eventmessages/{key}")
    assert res.json()["isRead"] == "true"

    res = await client.get("/eventmessages/ghost")
    assert res.status_code == 404


@pytest.mark.anyio
async def test_delete_messages_by_client_id(client, store):
    await client.post("/eventmessages", json={"id": "n-1", "userId": "user-1"})
    await client.post("/eventmessages", json={"id": "n-2", "userId": "user-1"})
    kept = (await client.post("/eventmessages", json={"id": "n-3", "userId": "user-1"})).json()["id"]

    res = await client.request("DELETE", "/eventmessages/deleteall", json={
        "a": {"id": "n-1"},
        "b": {"id": "n-2"},
        "c": {"title": "no id, skipped"},
    })

    assert res.status_code == 200
    assert res.json() == {}
    assert list(await store.all(MESSAGES)) == [kept]


@pytest.mark.anyio
async def test_delete_messages_rejects_non_object(client):
    res = await client.request("DELETE", "/eventmessages/deleteall", json=[{"id": "n-1"}])

    assert res.status_code == 400
