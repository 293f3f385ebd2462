"""
Signup reconciliation.
Given the set of shifts a volunteer wants for one event, create, touch or
withdraw signups so the volunteer's non-withdrawn signups for that event are
exactly the desired set. Signups are never deleted.
"""
from dataclasses import dataclass, field
from typing import Dict, Iterable, List

import structlog

from ..errors import NotFoundError, PartialFailureError, ValidationError
from ..schemas.records import EventRecord, SignupRecord
from ..store.collections import EVENTS, ORGANIZATIONS, SHIFTS, SIGNUPS, USERS, load, load_where
from ..store.provider import DocumentStore
from .dates import iso_now
from .volunteers import VolunteerResolver

log = structlog.get_logger(__name__)


@dataclass
class ReconcileResult:
    volunteer_id: str
    created: List[str] = field(default_factory=list)
    touched: List[str] = field(default_factory=list)
    withdrawn: List[str] = field(default_factory=list)


async def validate_signup_request(
    store: DocumentStore,
    user_id: str,
    org_id: str,
    event_id: str,
    shift_ids: Iterable[str],
) -> EventRecord:
    """Check the referenced org, user, event and shifts before any write."""
    if not await load(store, ORGANIZATIONS, org_id):
        raise ValidationError("Invalid organization ID.")
    if not await load(store, USERS, user_id):
        raise NotFoundError("User not found.")
    event = await load(store, EVENTS, event_id)
    if not event:
        raise ValidationError("Invalid event ID.")
    for shift_id in shift_ids:
        shift = await load(store, SHIFTS, shift_id)
        if not shift or shift.event_id != event_id:
            raise ValidationError(f"Shift ID {shift_id} does not belong to Event ID {event_id}.")
    return event


class SignupReconciler:
    def __init__(self, store: DocumentStore, resolver: VolunteerResolver):
        self.store = store
        self.resolver = resolver

    async def existing_signups(self, volunteer_id: str, event_id: str) -> Dict[str, List[str]]:
        """shift_id -> signup_ids of the volunteer's non-withdrawn signups on the event."""
        signups: Dict[str, SignupRecord] = await load_where(self.store, SIGNUPS, "volunteer_id", volunteer_id)
        existing = {}
        for signup_id, signup in signups.items():
            if signup.event_id == event_id and not signup.withdrawal:
                existing.setdefault(signup.shift_id, []).append(signup_id)
        return existing

    async def reconcile(
        self,
        user_id: str,
        org_id: str,
        event_id: str,
        desired_shifts: Iterable[str],
    ) -> ReconcileResult:
        """
        Shift ids are assumed to belong to the event (see validate_signup_request).
        An empty desired set withdraws every signup the volunteer holds for the event.
        """
        volunteer_id = await self.resolver.resolve_or_create(user_id, org_id)
        existing = await self.existing_signups(volunteer_id, event_id)
        result = ReconcileResult(volunteer_id=volunteer_id)
        applied: List[str] = []
        now = iso_now()

        # dict.fromkeys keeps request order while dropping duplicates
        desired = list(dict.fromkeys(desired_shifts))
        try:
            for shift_id in desired:
                signup_ids = existing.get(shift_id)
                if signup_ids:
                    # Keep the oldest signup; any duplicates are withdrawn below
                    signup_id = signup_ids.pop(0)
                    await self.store.update(SIGNUPS, signup_id, {"updated_at": now})
                    result.touched.append(shift_id)
                    applied.append(f"touch:{signup_id}")
                else:
                    signup_id = await self.store.add(SIGNUPS, {
                        "created_at": now,
                        "event_id": event_id,
                        "shift_id": shift_id,
                        "sign_up_date_time": now,
                        "updated_at": now,
                        "volunteer_id": volunteer_id,
                        "withdrawal": False,
                    })
                    result.created.append(shift_id)
                    applied.append(f"create:{signup_id}")

            for shift_id, signup_ids in existing.items():
                for signup_id in signup_ids:
                    await self.store.update(SIGNUPS, signup_id, {
                        "withdrawal": True,
                        "withdrawal_date_time": now,
                    })
                    result.withdrawn.append(shift_id)
                    applied.append(f"withdraw:{signup_id}")
        except Exception as exc:
            log.error(
                "signup_reconcile_failed",
                user_id=user_id,
                event_id=event_id,
                volunteer_id=volunteer_id,
                applied=applied,
                error=str(exc),
            )
            raise PartialFailureError("Could not sign up for event.", applied=applied) from exc

        log.info(
            "signup_reconciled",
            user_id=user_id,
            event_id=event_id,
            volunteer_id=volunteer_id,
            created=len(result.created),
            touched=len(result.touched),
            withdrawn=len(result.withdrawn),
        )
        return result
