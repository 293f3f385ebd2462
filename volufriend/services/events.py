"""
Event and shift writes.
"""
import asyncio
from typing import Any, Dict, List, Optional

import structlog

from ..errors import ForbiddenError, NotFoundError, ValidationError
from ..schemas.records import EVENT_ACTIVE, EVENT_CANCELED, ORG_ROLE_ADMIN
from ..store.collections import EVENTS, ORG_USERS, ORGANIZATIONS, SHIFTS, load
from ..store.provider import DocumentStore
from .dates import iso_now

log = structlog.get_logger(__name__)


async def ensure_org_admin(store: DocumentStore, org_user_id: str, org_id: str) -> None:
    if not await load(store, ORGANIZATIONS, org_id):
        raise ValidationError("Invalid organization ID.")
    org_user = await load(store, ORG_USERS, org_user_id)
    if not org_user:
        raise NotFoundError("Organization user not found.")
    if org_user.organization_id != org_id or org_user.user_role_in_Org != ORG_ROLE_ADMIN:
        raise ForbiddenError("User does not have admin role for this organization.")


async def create_event(
    store: DocumentStore,
    event_fields: Dict[str, Any],
    shifts: Optional[List[Dict[str, Any]]],
) -> Dict[str, Dict[str, Any]]:
    """Write the event and its shifts; returns {event_id: {event, shifts}}."""
    org_user_id = event_fields["org_user_id"]
    now = iso_now()
    event_id = store.push(EVENTS)
    event = {
        "event_status": EVENT_ACTIVE,
        **event_fields,
        "created_at": now,
        "updated_at": now,
        "created_by": org_user_id,
        "updated_by": org_user_id,
        "event_id": event_id,
    }
    await store.set(EVENTS, event_id, event)

    async def add_shift(shift_data: Dict[str, Any]) -> Dict[str, Any]:
        shift = {
            **shift_data,
            "event_id": event_id,
            "created_at": now,
            "updated_at": now,
            "created_by": org_user_id,
            "updated_by": org_user_id,
        }
        shift_id = await store.add(SHIFTS, shift)
        return {"shift_id": shift_id, **shift}

    shift_views = list(await asyncio.gather(*(add_shift(s) for s in shifts or [])))
    log.info("event_created", event_id=event_id, org_user_id=org_user_id, shifts=len(shift_views))
    return {event_id: {"event": event, "shifts": shift_views}}


async def update_event(
    store: DocumentStore,
    event_id: str,
    event_fields: Dict[str, Any],
    shifts: Optional[List[Dict[str, Any]]],
) -> None:
    shift_updates = {}
    for shift in shifts or []:
        shift = dict(shift)
        shift_id = shift.pop("shift_id", None)
        if not shift_id:
            raise ValidationError("Every shift in an update needs a shift_id")
        shift_updates[shift_id] = shift
    if await store.get(EVENTS, event_id) is None:
        raise NotFoundError("Event not found.")

    await store.update(EVENTS, event_id, {**event_fields, "updated_at": iso_now()})
    await asyncio.gather(*(
        store.update(SHIFTS, shift_id, data) for shift_id, data in shift_updates.items()
    ))
    log.info("event_updated", event_id=event_id, shifts=len(shifts or []))


async def cancel_event(store: DocumentStore, event_id: str) -> None:
    if await store.get(EVENTS, event_id) is None:
        raise NotFoundError("Event not found.")
    await store.update(EVENTS, event_id, {"event_status": EVENT_CANCELED, "updated_at": iso_now()})
    log.info("event_canceled", event_id=event_id)


async def delete_event(store: DocumentStore, event_id: str) -> int:
    """Remove the event and its shifts. Returns the number of shifts removed."""
    if await store.get(EVENTS, event_id) is None:
        raise NotFoundError("Event not found.")
    shifts = await store.query(SHIFTS, "event_id", event_id)
    await asyncio.gather(*(store.remove(SHIFTS, shift_id) for shift_id in shifts))
    await store.remove(EVENTS, event_id)
    log.info("event_deleted", event_id=event_id, shifts=len(shifts))
    return len(shifts)
