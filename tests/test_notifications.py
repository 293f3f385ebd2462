from datetime import datetime, timedelta

import pytest
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from volufriend.services.dates import parse_iso, to_iso, utc_now
from volufriend.services.notifications import LogDispatcher, build_dispatcher, build_payload, topic_for
from volufriend.services.reminders import ReminderScheduler
from volufriend.store.collections import EVENTS, SIGNUPS, USERS, VOLUNTEERS


def test_topic_replaces_whitespace():
    assert topic_for("Green Lake  School District") == "Green_Lake_School_District"


def test_payload_fields_are_strings():
    data = build_payload("Title", "Body", None, "event-1", "VoluFriend", "user-1")

    assert set(data) == {"id", "userId", "eventId", "title", "message", "isRead", "source", "receiver"}
    assert data["isRead"] == "false"
    assert data["userId"] == ""
    assert all(isinstance(v, str) for v in data.values())


def test_disabled_push_uses_log_dispatcher(settings):
    settings.push_provider = "fcm"
    settings.enable_push = False

    assert isinstance(build_dispatcher(settings), LogDispatcher)


# =============================================================================
# Reminder timing
# =============================================================================

def _reminders(settings, store, dispatcher, scheduler=None):
    return ReminderScheduler(scheduler or AsyncIOScheduler(timezone=settings.tz_default), store, dispatcher, settings)


def test_reminder_fires_evening_before_in_local_time(settings, store, dispatcher):
    reminders = _reminders(settings, store, dispatcher)

    # 09:00 PST on Nov 15
    winter = reminders.reminder_time(datetime.fromisoformat("2024-11-15T17:00:00+00:00"))
    assert winter.isoformat() == "2024-11-14T21:45:00-08:00"

    # 13:00 PDT on Jul 4
    summer = reminders.reminder_time(datetime.fromisoformat("2024-07-04T20:00:00+00:00"))
    assert summer.isoformat() == "2024-07-03T21:45:00-07:00"


def test_reminder_uses_local_calendar_day(settings, store, dispatcher):
    reminders = _reminders(settings, store, dispatcher)

    # 02:00 UTC on Mar 10 is still Mar 9 in Los Angeles
    run_at = reminders.reminder_time(datetime.fromisoformat("2024-03-10T02:00:00+00:00"))
    assert run_at.isoformat() == "2024-03-08T21:45:00-08:00"


def test_past_reminder_is_skipped(settings, store, dispatcher):
    reminders = _reminders(settings, store, dispatcher)
    soon = to_iso(utc_now() + timedelta(hours=1))

    assert reminders.schedule("user-1", "Beach Cleanup", soon, "event-1", now=utc_now() + timedelta(days=2)) is None
    assert reminders.schedule("user-1", "Beach Cleanup", "2020-01-01T00:00:00.000Z", "event-1") is None


@pytest.mark.anyio
async def test_scheduled_reminder_replaces_previous_job(settings, store, dispatcher):
    scheduler = AsyncIOScheduler(timezone=settings.tz_default)
    scheduler.start()
    try:
        reminders = _reminders(settings, store, dispatcher, scheduler)
        event_time = to_iso(utc_now() + timedelta(days=7))

        first = reminders.schedule("user-1", "Beach Cleanup", event_time, "event-1")
        second = reminders.schedule("user-1", "Beach Cleanup", event_time, "event-1")

        assert first.id == second.id == "reminder:user-1:event-1"
        assert len(scheduler.get_jobs()) == 1
        job = scheduler.get_job("reminder:user-1:event-1")
        expected = reminders.reminder_time(datetime.fromisoformat(event_time.replace("Z", "+00:00")))
        assert job.next_run_time == expected
    finally:
        scheduler.shutdown(wait=False)


async def _sign_up(store, withdrawal=False):
    await store.set(VOLUNTEERS, "vol-1", {"user_id": "user-1", "org_id": "org-1", "status": "Active"})
    await store.set(SIGNUPS, "signup-1", {
        "event_id": "event-1", "shift_id": "shift-1", "volunteer_id": "vol-1", "withdrawal": withdrawal,
    })


def _fire_time(reminders, seeded):
    return reminders.reminder_time(parse_iso(seeded.start_date))


@pytest.mark.anyio
async def test_send_event_reminder(settings, store, dispatcher, seeded):
    reminders = _reminders(settings, store, dispatcher)
    await _sign_up(store)

    message_id = await reminders.send_event_reminder(
        "user-1", "Beach Cleanup", "event-1", now=_fire_time(reminders, seeded),
    )

    assert message_id == "msg-1"
    sent = dispatcher.sent[0]
    assert sent["token"] == "device-token-1"
    assert sent["title"] == "Upcoming event reminder from Volufriend"
    assert sent["body"] == "Reminder: The event 'Beach Cleanup' is happening in 24 hours!"
    assert sent["data"]["eventId"] == "event-1"


@pytest.mark.anyio
async def test_send_event_reminder_never_raises(settings, store, dispatcher, seeded):
    reminders = _reminders(settings, store, dispatcher)
    await _sign_up(store)
    fire_at = _fire_time(reminders, seeded)
    await store.update(USERS, "user-1", {"token": None})

    assert await reminders.send_event_reminder("user-1", "Beach Cleanup", "event-1", now=fire_at) is None

    await store.update(USERS, "user-1", {"token": "device-token-1"})
    dispatcher.fail = True
    assert await reminders.send_event_reminder("user-1", "Beach Cleanup", "event-1", now=fire_at) is None


@pytest.mark.anyio
@pytest.mark.parametrize("change", ["cancel", "delete", "withdraw"])
async def test_reminder_not_sent_for_canceled_event_or_withdrawn_signup(settings, store, dispatcher, seeded, change):
    reminders = _reminders(settings, store, dispatcher)
    await _sign_up(store, withdrawal=(change == "withdraw"))
    if change == "cancel":
        await store.update(EVENTS, "event-1", {"event_status": "canceled"})
    elif change == "delete":
        await store.remove(EVENTS, "event-1")

    result = await reminders.send_event_reminder(
        "user-1", "Beach Cleanup", "event-1", now=_fire_time(reminders, seeded),
    )

    assert result is None
    assert dispatcher.sent == []


@pytest.mark.anyio
async def test_reminder_follows_a_moved_start_date(settings, store, dispatcher, seeded):
    reminders = _reminders(settings, store, dispatcher)
    await _sign_up(store)
    fire_at = _fire_time(reminders, seeded)
    later = to_iso(parse_iso(seeded.start_date) + timedelta(days=5))
    await store.update(EVENTS, "event-1", {"start_date": later})

    assert await reminders.send_event_reminder("user-1", "Beach Cleanup", "event-1", now=fire_at) is None

    assert dispatcher.sent == []
    job = reminders.scheduler.get_job("reminder:user-1:event-1")
    assert job.trigger.run_date == reminders.reminder_time(parse_iso(later))


def test_cancel_drops_pending_reminders(settings, store, dispatcher):
    reminders = _reminders(settings, store, dispatcher)
    event_time = to_iso(utc_now() + timedelta(days=7))
    reminders.schedule("user-1", "Beach Cleanup", event_time, "event-1")
    reminders.schedule("user-2", "Beach Cleanup", event_time, "event-1")
    reminders.schedule("user-1", "Tree Planting", event_time, "event-2")

    assert reminders.cancel("user-1", "event-2") is True
    assert reminders.cancel("user-1", "event-2") is False
    assert reminders.cancel_for_event("event-1") == 2
    assert reminders.scheduler.get_jobs() == []


# =============================================================================
# HTTP
# =============================================================================

@pytest.mark.anyio
async def test_schedule_reminder_endpoint(client, app):
    event_time = to_iso(utc_now() + timedelta(days=3))

    res = await client.post("/scheduleReminder", json={
        "userId": "user-1", "eventTitle": "Beach Cleanup", "eventTime": event_time, "eventId": "event-1",
    })

    assert res.status_code == 200
    assert res.json()["scheduled"] is True
    assert app.state.scheduler.get_job("reminder:user-1:event-1") is not None

    res = await client.post("/scheduleReminder", json={
        "userId": "user-1", "eventTitle": "Beach Cleanup", "eventTime": "soon", "eventId": "event-1",
    })
    assert res.status_code == 400


@pytest.mark.anyio
async def test_send_notification(client, dispatcher):
    body = {
        "token": "device-token-1",
        "source": "VoluFriend",
        "message": "See you Saturday",
        "sender": "Grace",
        "receiver": "Ada",
        "userId": "user-1",
        "eventId": "event-1",
    }

    res = await client.post("/sendNotification", json=body)
    assert res.status_code == 200
    assert dispatcher.sent[0]["title"] == "Message from Grace"
    assert dispatcher.sent[0]["data"]["receiver"] == "Ada"

    res = await client.post("/sendNotification", json={**body, "sender": ""})
    assert res.status_code == 400

    dispatcher.fail = True
    res = await client.post("/sendNotification", json=body)
    assert res.status_code == 502
    assert res.json()["error"] == "upstream_error"


@pytest.mark.anyio
async def test_push_to_device(client, dispatcher):
    res = await client.post("/volufriendmsgserver/send-notification", json={
        "receiverToken": "device-token-1", "title": "Hi", "body": "Hello there",
    })

    assert res.status_code == 201
    assert dispatcher.sent[0]["body"] == "Hello there"

    res = await client.post("/volufriendmsgserver/send-notification", json={"title": "Hi"})
    assert res.status_code == 400
