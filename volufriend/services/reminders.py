"""
Event reminders.
A reminder is a one-shot APScheduler job that fires the day before the event
at the configured local time and pushes to the user's device token. The event
and the user's signups are re-read when the job fires, so a canceled event,
a withdrawn signup or a moved start date never produces a stale push.
"""
import asyncio
from datetime import datetime, timedelta
from typing import Optional

import pytz
import structlog
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger

from ..config import Settings
from ..errors import UpstreamError, ValidationError
from ..store.collections import EVENTS, SIGNUPS, USERS, VOLUNTEERS, load, load_where
from ..store.provider import DocumentStore
from .dates import parse_iso, utc_now
from .notifications import NotificationDispatcher, build_payload

log = structlog.get_logger(__name__)


def reminder_job_id(user_id: str, event_id: str) -> str:
    return f"reminder:{user_id}:{event_id}"


class ReminderScheduler:
    def __init__(
        self,
        scheduler: AsyncIOScheduler,
        store: DocumentStore,
        dispatcher: NotificationDispatcher,
        settings: Settings,
    ):
        self.scheduler = scheduler
        self.store = store
        self.dispatcher = dispatcher
        self.settings = settings
        self.tz = pytz.timezone(settings.tz_default)

    def reminder_time(self, event_time: datetime) -> datetime:
        """The day before the event, at the configured local reminder time."""
        local_event = event_time.astimezone(self.tz)
        day_before = (local_event - timedelta(days=1)).date()
        naive = datetime(
            day_before.year,
            day_before.month,
            day_before.day,
            self.settings.reminder_hour,
            self.settings.reminder_minute,
        )
        return self.tz.localize(naive)

    def schedule(
        self,
        user_id: str,
        event_title: str,
        event_time: str,
        event_id: str,
        now: Optional[datetime] = None,
    ):
        """Returns the job, or None when the reminder time has already passed."""
        parsed = parse_iso(event_time)
        if parsed is None:
            raise ValidationError("eventTime must be an ISO-8601 date")
        run_at = self.reminder_time(parsed)
        if run_at <= (now or utc_now()):
            log.info("reminder_skipped_past", user_id=user_id, event_id=event_id, run_at=run_at.isoformat())
            return None
        job = self.scheduler.add_job(
            self.send_event_reminder,
            DateTrigger(run_date=run_at),
            args=[user_id, event_title, event_id],
            id=reminder_job_id(user_id, event_id),
            replace_existing=True,
            misfire_grace_time=60 * 60,
        )
        log.info("reminder_scheduled", user_id=user_id, event_id=event_id, run_at=run_at.isoformat())
        return job

    def cancel(self, user_id: str, event_id: str) -> bool:
        """Drop the user's pending reminder for the event; False when there was none."""
        try:
            self.scheduler.remove_job(reminder_job_id(user_id, event_id))
        except JobLookupError:
            return False
        log.info("reminder_canceled", user_id=user_id, event_id=event_id)
        return True

    def cancel_for_event(self, event_id: str) -> int:
        """Drop every pending reminder for the event."""
        suffix = f":{event_id}"
        removed = 0
        for job in self.scheduler.get_jobs():
            if not (job.id.startswith("reminder:") and job.id.endswith(suffix)):
                continue
            try:
                self.scheduler.remove_job(job.id)
            except JobLookupError:
                continue
            removed += 1
        if removed:
            log.info("event_reminders_canceled", event_id=event_id, count=removed)
        return removed

    async def has_active_signup(self, user_id: str, event_id: str) -> bool:
        volunteers = await load_where(self.store, VOLUNTEERS, "user_id", user_id)
        signup_maps = await asyncio.gather(*(
            load_where(self.store, SIGNUPS, "volunteer_id", volunteer_id) for volunteer_id in volunteers
        ))
        return any(
            signup.event_id == event_id and not signup.withdrawal
            for signups in signup_maps
            for signup in signups.values()
        )

    async def send_event_reminder(
        self,
        user_id: str,
        event_title: str,
        event_id: str,
        now: Optional[datetime] = None,
    ) -> Optional[str]:
        now = now or utc_now()
        event = await load(self.store, EVENTS, event_id)
        if not event or event.is_canceled:
            log.info("reminder_skipped_event_gone", user_id=user_id, event_id=event_id)
            return None
        start = parse_iso(event.start_date)
        if start is None or start <= now:
            log.info("reminder_skipped_event_started", user_id=user_id, event_id=event_id)
            return None
        if self.reminder_time(start) > now:
            # Start date moved later since the job was added
            self.schedule(user_id, event.title or event_title, event.start_date, event_id, now=now)
            return None
        if not await self.has_active_signup(user_id, event_id):
            log.info("reminder_skipped_no_signup", user_id=user_id, event_id=event_id)
            return None

        user = await load(self.store, USERS, user_id)
        if not user or not user.token:
            log.warning("reminder_no_token", user_id=user_id, event_id=event_id)
            return None
        title = "Upcoming event reminder from Volufriend"
        body = f"Reminder: The event '{event.title or event_title}' is happening in 24 hours!"
        data = build_payload(title, body, user_id, event_id, self.settings.notification_source, user_id)
        try:
            message_id = await self.dispatcher.send(user.token, title, body, data)
        except UpstreamError:
            log.warning("reminder_send_failed", user_id=user_id, event_id=event_id)
            return None
        log.info("reminder_sent", user_id=user_id, event_id=event_id, message_id=message_id)
        return message_id
