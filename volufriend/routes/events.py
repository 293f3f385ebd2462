from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends

from ..config import Settings
from ..deps import get_dispatcher, get_reminders, get_settings, get_store
from ..errors import NotFoundError
from ..schemas.events import EventWrite
from ..services import events as event_service
from ..services.dates import iso_now
from ..services.notifications import NotificationDispatcher, notify_new_event
from ..services.reminders import ReminderScheduler
from ..services.reports import build_event_with_shifts, build_events_with_shifts
from ..store.collections import EVENTS, SHIFTS
from ..store.provider import DocumentStore


router = APIRouter(prefix="/events", tags=["events"])


def _listing(events: Dict[str, Dict[str, Any]]):
    return [{"event_id": key, "event": {**event, "event_id": key}} for key, event in events.items()]


@router.get("")
async def list_events(
    org_user_id: Optional[str] = None,
    org_id: Optional[str] = None,
    store: DocumentStore = Depends(get_store),
):
    if org_user_id:
        events = await store.query(EVENTS, "created_by", org_user_id)
    elif org_id:
        events = await store.query(EVENTS, "org_id", org_id)
    else:
        events = await store.all(EVENTS)
    return _listing(events)


@router.get("/events-with-shifts")
async def events_with_shifts(
    org_user_id: Optional[str] = None,
    org_id: Optional[str] = None,
    store: DocumentStore = Depends(get_store),
):
    return await build_events_with_shifts(store, org_user_id=org_user_id, org_id=org_id)


@router.get("/events-with-shifts/{event_id}")
async def event_with_shifts(event_id: str, store: DocumentStore = Depends(get_store)):
    return await build_event_with_shifts(store, event_id)


# Shifts

@router.post("/shifts", status_code=201)
async def create_shift(payload: Dict[str, Any] = Body(...), store: DocumentStore = Depends(get_store)):
    now = iso_now()
    shift_id = await store.add(SHIFTS, {**payload, "created_at": now, "updated_at": now})
    return {"id": shift_id}


@router.put("/shifts/{shift_id}")
async def update_shift(shift_id: str, payload: Dict[str, Any] = Body(...), store: DocumentStore = Depends(get_store)):
    if await store.get(SHIFTS, shift_id) is None:
        raise NotFoundError("Shift not found.")
    await store.update(SHIFTS, shift_id, {**payload, "updated_at": iso_now()})
    return {"message": "Shift updated successfully"}


@router.delete("/shifts/{shift_id}")
async def delete_shift(shift_id: str, store: DocumentStore = Depends(get_store)):
    if await store.get(SHIFTS, shift_id) is None:
        raise NotFoundError("Shift not found.")
    await store.remove(SHIFTS, shift_id)
    return {"message": "Shift deleted successfully"}


# Events

@router.post("", status_code=201)
async def create_event(
    payload: EventWrite,
    store: DocumentStore = Depends(get_store),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    settings: Settings = Depends(get_settings),
):
    await event_service.ensure_org_admin(store, payload.org_user_id, payload.org_id)
    created = await event_service.create_event(store, payload.event_fields(), payload.shifts)
    if payload.parent_org:
        event_id = next(iter(created))
        await notify_new_event(
            dispatcher,
            settings,
            payload.parent_org,
            payload.org_name,
            event_id,
            payload.title,
            payload.start_date,
        )
    return created


@router.put("/cancel/{event_id}")
async def cancel_event(
    event_id: str,
    store: DocumentStore = Depends(get_store),
    reminders: ReminderScheduler = Depends(get_reminders),
):
    await event_service.cancel_event(store, event_id)
    reminders.cancel_for_event(event_id)
    return await build_event_with_shifts(store, event_id)


@router.get("/{event_id}")
async def get_event(event_id: str, store: DocumentStore = Depends(get_store)):
    event = await store.get(EVENTS, event_id)
    if event is None:
        raise NotFoundError("Event not found.")
    return {"event_id": event_id, "event": {**event, "event_id": event_id}}


@router.put("/{event_id}")
async def update_event(event_id: str, payload: EventWrite, store: DocumentStore = Depends(get_store)):
    await event_service.ensure_org_admin(store, payload.org_user_id, payload.org_id)
    await event_service.update_event(store, event_id, payload.event_fields(), payload.shifts)
    return await build_event_with_shifts(store, event_id)


@router.delete("/{event_id}")
async def delete_event(
    event_id: str,
    store: DocumentStore = Depends(get_store),
    reminders: ReminderScheduler = Depends(get_reminders),
):
    await event_service.delete_event(store, event_id)
    reminders.cancel_for_event(event_id)
    return {"message": "Event and associated shifts deleted successfully"}


@router.get("/{event_id}/shifts")
async def list_event_shifts(event_id: str, store: DocumentStore = Depends(get_store)):
    return await store.query(SHIFTS, "event_id", event_id)
