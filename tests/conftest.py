"""
Test configuration and fixtures.

Provides:
- A file-backed SQLite document store per test
- A recording notification dispatcher
- An app built by create_app() and an HTTPX AsyncClient over it
- A seeded set of users, organizations, events and shifts
"""
import os
from datetime import timedelta
from types import SimpleNamespace
from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

# Keep the module-level app in volufriend.main off the local disk and off FCM
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("ENABLE_PUSH", "false")
os.environ.setdefault("ENABLE_METRICS", "false")

from volufriend.config import Settings
from volufriend.errors import UpstreamError
from volufriend.main import create_app
from volufriend.services.dates import to_iso, utc_now
from volufriend.services.notifications import NotificationDispatcher
from volufriend.store.collections import CAUSES, EVENTS, ORG_USERS, ORGANIZATIONS, SHIFTS, USERS
from volufriend.store.factory import build_store


# =============================================================================
# Configuration
# =============================================================================

@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        database_url=f"sqlite:///{tmp_path}/volufriend.db",
        rate_limit="10000/minute",
        enable_metrics=False,
        push_provider="log",
        api_key="test-api-key",
        jwt_secret="test-secret",
        auth_username="volu",
        auth_password="friend",
    )


@pytest.fixture
def store(settings):
    s = build_store(settings)
    yield s
    s.close()


class RecordingDispatcher(NotificationDispatcher):
    """Keeps every push in memory; set `fail` to simulate FCM errors."""

    def __init__(self):
        self.sent = []
        self.topic_sends = []
        self.subscriptions = []
        self.fail = False

    async def send(self, token, title, body, data=None):
        if self.fail:
            raise UpstreamError("Push notification delivery failed")
        self.sent.append({"token": token, "title": title, "body": body, "data": data})
        return f"msg-{len(self.sent)}"

    async def send_to_topic(self, topic, title, body, data=None):
        if self.fail:
            raise UpstreamError("Push notification delivery failed")
        self.topic_sends.append({"topic": topic, "title": title, "body": body, "data": data})
        return f"topic-msg-{len(self.topic_sends)}"

    async def subscribe(self, token, topic):
        if self.fail:
            raise UpstreamError("Topic subscription failed")
        self.subscriptions.append((token, topic))


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


# =============================================================================
# App / client
# =============================================================================

@pytest.fixture
def app(settings, store, dispatcher):
    return create_app(settings=settings, store=store, dispatcher=dispatcher)


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c


# =============================================================================
# Seed data
# =============================================================================

@pytest.fixture
async def seeded(store) -> SimpleNamespace:
    """
    org-1 and org-2 share the parent org "Green Lake District".
    user-1 is a volunteer homed at org-1; ou-1 is the Admin org user of org-1.
    event-1 (org-1) starts in ten days and has shift-1 and shift-2.
    """
    start_date = to_iso(utc_now() + timedelta(days=10))
    await store.set(ORGANIZATIONS, "org-1", {"name": "Green Lake Elementary", "parent_org": "Green Lake District"})
    await store.set(ORGANIZATIONS, "org-2", {"name": "Green Lake Middle", "parent_org": "Green Lake District"})
    await store.set(ORGANIZATIONS, "org-3", {"name": "Lakeside High", "parent_org": "Lakeside District"})
    await store.set(CAUSES, "cause-1", {"name": "Environment"})
    await store.set(USERS, "user-1", {
        "First Name": "Ada",
        "Last Name": "Lovelace",
        "role": "Volunteer",
        "school_home_org_id": "org-1",
        "token": "device-token-1",
    })
    await store.set(USERS, "user-admin", {
        "First Name": "Grace",
        "Last Name": "Hopper",
        "role": "Organization",
        "school_home_org_id": "org-1",
    })
    await store.set(ORG_USERS, "ou-1", {
        "user_id": "user-admin",
        "organization_id": "org-1",
        "user_role_in_Org": "Admin",
    })
    await store.set(EVENTS, "event-1", {
        "title": "Beach Cleanup",
        "org_id": "org-1",
        "cause_id": "cause-1",
        "org_user_id": "ou-1",
        "created_by": "ou-1",
        "start_date": start_date,
        "event_status": "active",
    })
    await store.set(SHIFTS, "shift-1", {"event_id": "event-1", "name": "Morning"})
    await store.set(SHIFTS, "shift-2", {"event_id": "event-1", "name": "Afternoon"})
    await store.set(SHIFTS, "shift-other", {"event_id": "event-elsewhere", "name": "Elsewhere"})
    return SimpleNamespace(start_date=start_date)
