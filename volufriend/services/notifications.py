"""
Push notification dispatch.
FcmDispatcher delivers through Firebase Cloud Messaging; LogDispatcher only
logs and is used in development or when push is disabled.
"""
import re
import uuid
from typing import Dict, Optional

import structlog
from starlette.concurrency import run_in_threadpool

from ..config import Settings
from ..errors import UpstreamError

log = structlog.get_logger(__name__)


def topic_for(parent_org: str) -> str:
    """FCM topic names cannot contain whitespace."""
    return re.sub(r"\s+", "_", parent_org.strip())


def build_payload(
    title: str,
    message: str,
    user_id: Optional[str],
    event_id: Optional[str],
    source: str,
    receiver: Optional[str],
) -> Dict[str, str]:
    # FCM data values must be strings
    return {
        "id": str(uuid.uuid4()),
        "userId": user_id or "",
        "eventId": event_id or "",
        "title": title,
        "message": message,
        "isRead": "false",
        "source": source,
        "receiver": receiver or "",
    }


class NotificationDispatcher:
    async def send(self, token: str, title: str, body: str, data: Optional[Dict[str, str]] = None) -> str:
        raise NotImplementedError

    async def send_to_topic(self, topic: str, title: str, body: str, data: Optional[Dict[str, str]] = None) -> str:
        raise NotImplementedError

    async def subscribe(self, token: str, topic: str) -> None:
        raise NotImplementedError


class LogDispatcher(NotificationDispatcher):
    async def send(self, token, title, body, data=None):
        message_id = f"log:{uuid.uuid4()}"
        log.info("push_logged", target="token", title=title, message_id=message_id)
        return message_id

    async def send_to_topic(self, topic, title, body, data=None):
        message_id = f"log:{uuid.uuid4()}"
        log.info("push_logged", target="topic", topic=topic, title=title, message_id=message_id)
        return message_id

    async def subscribe(self, token, topic):
        log.info("topic_subscribe_logged", topic=topic)


class FcmDispatcher(NotificationDispatcher):
    def __init__(self, app):
        from firebase_admin import messaging

        self._app = app
        self._messaging = messaging

    def _message(self, title: str, body: str, data: Optional[Dict[str, str]], **target):
        return self._messaging.Message(
            notification=self._messaging.Notification(title=title, body=body),
            data=data or {},
            **target,
        )

    async def _send(self, message) -> str:
        try:
            return await run_in_threadpool(self._messaging.send, message, False, self._app)
        except Exception as exc:
            log.warning("push_failed", error=str(exc))
            raise UpstreamError("Push notification delivery failed") from exc

    async def send(self, token, title, body, data=None):
        return await self._send(self._message(title, body, data, token=token))

    async def send_to_topic(self, topic, title, body, data=None):
        return await self._send(self._message(title, body, data, topic=topic))

    async def subscribe(self, token, topic):
        try:
            response = await run_in_threadpool(self._messaging.subscribe_to_topic, [token], topic, self._app)
        except Exception as exc:
            log.warning("topic_subscribe_failed", topic=topic, error=str(exc))
            raise UpstreamError("Topic subscription failed") from exc
        if response.failure_count:
            reasons = [e.reason for e in response.errors]
            log.warning("topic_subscribe_failed", topic=topic, errors=reasons)
            raise UpstreamError("Topic subscription failed")


def build_dispatcher(settings: Settings) -> NotificationDispatcher:
    if not settings.enable_push or settings.push_provider != "fcm":
        return LogDispatcher()
    from ..store.firebase_provider import get_firebase_app

    return FcmDispatcher(get_firebase_app(settings))


async def notify_new_event(
    dispatcher: NotificationDispatcher,
    settings: Settings,
    parent_org: str,
    org_name: Optional[str],
    event_id: str,
    title: Optional[str],
    start_date: Optional[str],
) -> Optional[str]:
    """Broadcast a new event to the parent_org topic. Failures are logged, not raised."""
    org_name = org_name or "Unknown Organization"
    title_msg = f"Exciting New Opportunity with {org_name}!"
    body = (
        f'A new event has been organized by {org_name}. The event "{title}" is happening on '
        f"{start_date}. Register now and make a difference!"
    )
    data = build_payload(title_msg, body, "allusers", event_id, settings.notification_source, "allusers")
    topic = topic_for(parent_org)
    try:
        message_id = await dispatcher.send_to_topic(topic, title_msg, body, data)
    except UpstreamError:
        log.warning("new_event_push_skipped", event_id=event_id, topic=topic)
        return None
    log.info("new_event_push_sent", event_id=event_id, topic=topic, message_id=message_id)
    return message_id
