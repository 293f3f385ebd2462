import pytest

from volufriend.store.collections import EVENTS, ORG_USERS, SHIFTS


def _event_body(**overrides):
    body = {
        "org_user_id": "ou-1",
        "org_id": "org-1",
        "title": "Food Drive",
        "start_date": "2030-03-01T17:00:00.000Z",
        "cause_id": "cause-1",
        "shifts": [{"name": "Setup"}, {"name": "Teardown"}],
    }
    body.update(overrides)
    return body


@pytest.mark.anyio
async def test_create_event_writes_event_and_shifts(client, store, seeded, dispatcher):
    res = await client.post("/events", json=_event_body())

    assert res.status_code == 201
    (event_id, entry), = res.json().items()
    assert entry["event"]["event_status"] == "active"
    assert entry["event"]["created_by"] == "ou-1"
    assert "shifts" not in entry["event"]
    assert sorted(s["name"] for s in entry["shifts"]) == ["Setup", "Teardown"]

    stored_shifts = await store.query(SHIFTS, "event_id", event_id)
    assert len(stored_shifts) == 2
    assert (await store.get(EVENTS, event_id))["title"] == "Food Drive"
    assert dispatcher.topic_sends == []


@pytest.mark.anyio
async def test_create_event_broadcasts_to_parent_org_topic(client, seeded, dispatcher):
    res = await client.post("/events", json=_event_body(parent_org="Green Lake District",
                                                         org_name="Green Lake Elementary"))

    assert res.status_code == 201
    assert len(dispatcher.topic_sends) == 1
    sent = dispatcher.topic_sends[0]
    assert sent["topic"] == "Green_Lake_District"
    assert sent["title"] == "Exciting New Opportunity with Green Lake Elementary!"
    assert sent["data"]["eventId"] == next(iter(res.json()))
    assert sent["data"]["isRead"] == "false"


@pytest.mark.anyio
async def test_create_event_survives_broadcast_failure(client, seeded, dispatcher):
    dispatcher.fail = True

    res = await client.post("/events", json=_event_body(parent_org="Green Lake District"))

    assert res.status_code == 201


@pytest.mark.anyio
async def test_create_event_admin_checks(client, store, seeded):
    res = await client.post("/events", json=_event_body(org_id="no-such-org"))
    assert res.status_code == 400

    res = await client.post("/events", json=_event_body(org_user_id="no-such-org-user"))
    assert res.status_code == 404

    await store.set(ORG_USERS, "ou-general", {
        "user_id": "user-admin", "organization_id": "org-1", "user_role_in_Org": "General",
    })
    res = await client.post("/events", json=_event_body(org_user_id="ou-general"))
    assert res.status_code == 403

    res = await client.post("/events", json=_event_body(org_id="org-2"))
    assert res.status_code == 403


@pytest.mark.anyio
async def test_get_and_list_events(client, seeded):
    res = await client.get("/events/event-1")
    assert res.status_code == 200
    assert res.json()["event"]["event_id"] == "event-1"

    res = await client.get("/events/ghost")
    assert res.status_code == 404

    res = await client.get("/events", params={"org_id": "org-1"})
    assert [e["event_id"] for e in res.json()] == ["event-1"]


@pytest.mark.anyio
async def test_update_event_and_shift(client, store, seeded):
    res = await client.put("/events/event-1", json={
        "org_user_id": "ou-1",
        "org_id": "org-1",
        "title": "Beach Cleanup (rescheduled)",
        "shifts": [{"shift_id": "shift-1", "name": "Early morning"}],
    })

    assert res.status_code == 200
    assert res.json()["event-1"]["event"]["title"] == "Beach Cleanup (rescheduled)"
    assert (await store.get(SHIFTS, "shift-1"))["name"] == "Early morning"

    res = await client.put("/events/ghost", json={"org_user_id": "ou-1", "org_id": "org-1"})
    assert res.status_code == 404


@pytest.mark.anyio
async def test_cancel_event(client, store, seeded):
    res = await client.put("/events/cancel/event-1")

    assert res.status_code == 200
    assert res.json()["event-1"]["event"]["event_status"] == "canceled"
    assert (await store.get(EVENTS, "event-1"))["event_status"] == "canceled"


@pytest.mark.anyio
async def test_delete_event_removes_shifts(client, store, seeded):
    res = await client.delete("/events/event-1")

    assert res.status_code == 200
    assert await store.get(EVENTS, "event-1") is None
    assert await store.query(SHIFTS, "event_id", "event-1") == {}

    res = await client.delete("/events/event-1")
    assert res.status_code == 404


@pytest.mark.anyio
async def test_shift_crud(client, store, seeded):
    res = await client.post("/events/shifts", json={"event_id": "event-1", "name": "Evening"})
    assert res.status_code == 201
    shift_id = res.json()["id"]

    res = await client.get("/events/event-1/shifts")
    assert shift_id in res.json()

    res = await client.put(f"/events/shifts/{shift_id}", json={"name": "Late evening"})
    assert res.status_code == 200
    assert (await store.get(SHIFTS, shift_id))["name"] == "Late evening"

    res = await client.delete(f"/events/shifts/{shift_id}")
    assert res.status_code == 200
    res = await client.delete(f"/events/shifts/{shift_id}")
    assert res.status_code == 404


@pytest.mark.anyio
@pytest.mark.parametrize("method, path", [("PUT", "/events/cancel/event-1"), ("DELETE", "/events/event-1")])
async def test_cancel_or_delete_event_drops_its_reminders(client, app, seeded, method, path):
    reminders = app.state.reminders
    reminders.schedule("user-1", "Beach Cleanup", seeded.start_date, "event-1")
    reminders.schedule("user-2", "Beach Cleanup", seeded.start_date, "event-1")
    reminders.schedule("user-1", "Other", seeded.start_date, "event-2")

    res = await client.request(method, path)

    assert res.status_code == 200
    assert [job.id for job in app.state.scheduler.get_jobs()] == ["reminder:user-1:event-2"]
