"""
Reporting and rollups.
Joins events, shifts, signups and attendances into per-event and per-user
views. Sibling lookups are dispatched concurrently; every join key is a
single indexed query, never a collection scan.
"""
import asyncio
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from ..errors import NotFoundError
from ..schemas.records import AttendanceRecord, EventRecord, ShiftRecord
from ..store.collections import (
    ATTENDANCES,
    CAUSES,
    EVENTS,
    ORGANIZATIONS,
    SHIFTS,
    SIGNUPS,
    USERS,
    VOLUNTEERS,
    load,
    load_range,
    load_where,
)
from ..store.provider import DocumentStore
from .dates import parse_bound, parse_iso, start_of_day, to_iso, utc_now, within


EVENT_ATTENDANCE_FIELDS = (
    "approved_by_approver_id",
    "attendance_status",
    "coordinator_email",
    "coordinator_name",
    "event_date",
    "event_id",
    "event_name",
    "hours_approved",
    "hours_attended",
    "hours_rejected",
    "organization_name",
    "shift_id",
    "shift_name",
    "signup_id",
    "user_id",
    "volunteer_name",
)

UNKNOWN_ORG = "Unknown organization"
UNKNOWN_CAUSE = "Unknown cause"


def _project(record: AttendanceRecord, fields) -> Dict[str, Any]:
    return {name: getattr(record, name) for name in fields}


# Attendance reports

async def build_event_attendance_report(
    store: DocumentStore,
    event_id: str,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    shift_id: Optional[str] = None,
) -> Dict[str, Dict[str, Any]]:
    """attendance_id -> fixed projection, bounds compared on full timestamps."""
    lower = parse_bound(start_date, "start_date")
    upper = parse_bound(end_date, "end_date")
    if not await load(store, EVENTS, event_id):
        raise NotFoundError("Event not found")

    attendances: Dict[str, AttendanceRecord] = await load_where(store, ATTENDANCES, "event_id", event_id)
    report = {}
    for attendance_id, attendance in attendances.items():
        if shift_id and attendance.shift_id != shift_id:
            continue
        if not within(parse_iso(attendance.event_date), lower, upper):
            continue
        report[attendance_id] = _project(attendance, EVENT_ATTENDANCE_FIELDS)
    return report


def _attendance_detail(attendance: AttendanceRecord) -> Dict[str, Any]:
    return {
        "organization_name": attendance.organization_name,
        "event_id": attendance.event_id,
        "event_date": attendance.event_date,
        "event_name": attendance.event_name,
        "shift_id": attendance.shift_id,
        "shift_name": attendance.shift_name,
        "coordinator_name": attendance.coordinator_name or "N/A",
        "coordinator_email": attendance.coordinator_email or "N/A",
        "hours_attended": attendance.hours_attended,
        "hours_approved": attendance.hours_approved,
        "hours_rejected": attendance.hours_rejected,
        "signup_id": attendance.signup_id,
        "approved_by_approver_id": attendance.approved_by_approver_id,
        "approved_by_approver_name": attendance.approved_by_approver_name,
        "approved_date": attendance.approved_date,
        "rejected_by_approver_id": attendance.rejected_by_approver_id,
        "rejected_by_approver_name": attendance.rejected_by_approver_name,
        "rejected_date": attendance.rejected_date,
        "attendance_status": attendance.attendance_status,
    }


async def build_user_report(
    store: DocumentStore,
    user_id: str,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
) -> Dict[str, Dict[str, Any]]:
    """
    volunteer_id -> profile + attendances. Dates are truncated to the day
    before comparing, so both boundary days are included.
    """
    lower = start_of_day(parse_bound(start_date, "start_date"))
    upper = start_of_day(parse_bound(end_date, "end_date"))
    if not await load(store, USERS, user_id):
        raise NotFoundError("User not found")

    attendances: Dict[str, AttendanceRecord] = await load_where(store, ATTENDANCES, "user_id", user_id)
    report: Dict[str, Dict[str, Any]] = {}
    for attendance_id, attendance in attendances.items():
        if not within(start_of_day(parse_iso(attendance.event_date)), lower, upper):
            continue
        # One user can volunteer under several volunteer identities
        group_key = attendance.volunteer_id or user_id
        group = report.get(group_key)
        if group is None:
            group = report[group_key] = {
                "user_id": user_id,
                "volunteer_name": f"{attendance.volunteer_first_name} {attendance.volunteer_last_name}",
                "First Name": attendance.volunteer_first_name,
                "Last Name": attendance.volunteer_last_name,
                "attendances": {},
            }
        group["attendances"][attendance_id] = _attendance_detail(attendance)
    return report


# Event rollups

async def _shift_rollup(store: DocumentStore, shift_id: str, shift: ShiftRecord) -> Dict[str, Any]:
    signups, attendances = await asyncio.gather(
        store.query(SIGNUPS, "shift_id", shift_id),
        store.query(ATTENDANCES, "shift_id", shift_id),
    )
    return {
        "shift_id": shift_id,
        **shift.dump(),
        "total_signups": len(signups),
        "total_checkins": len(attendances),
    }


async def event_shifts(store: DocumentStore, event_id: str, only: Optional[List[str]] = None) -> List[Dict[str, Any]]:
    """Shifts of an event; `only` limits the list to the given shift ids."""
    shifts: Dict[str, ShiftRecord] = await load_where(store, SHIFTS, "event_id", event_id)
    return [
        {**shift.dump(), "shift_id": shift_id}
        for shift_id, shift in shifts.items()
        if only is None or shift_id in only
    ]


async def _event_rollup(store: DocumentStore, event_id: str) -> List[Dict[str, Any]]:
    shifts: Dict[str, ShiftRecord] = await load_where(store, SHIFTS, "event_id", event_id)
    return list(await asyncio.gather(*(
        _shift_rollup(store, shift_id, shift) for shift_id, shift in shifts.items()
    )))


async def _name_of(store: DocumentStore, collection: str, key: Optional[str], default: str) -> str:
    record = await load(store, collection, key)
    return (record.name if record else None) or default


async def _org_and_cause(store: DocumentStore, event: EventRecord):
    return await asyncio.gather(
        _name_of(store, ORGANIZATIONS, event.org_id, UNKNOWN_ORG),
        _name_of(store, CAUSES, event.cause_id, UNKNOWN_CAUSE),
    )


async def _rollup_events(
    store: DocumentStore,
    events: Dict[str, EventRecord],
    require_signups: bool,
    cause_key: str = "cause",
) -> Dict[str, Dict[str, Any]]:
    async def one(event_id: str, event: EventRecord):
        shifts, (org_name, cause_name) = await asyncio.gather(
            _event_rollup(store, event_id),
            _org_and_cause(store, event),
        )
        total_signups = sum(s["total_signups"] for s in shifts)
        total_checkins = sum(s["total_checkins"] for s in shifts)
        if require_signups and total_signups == 0:
            return event_id, None
        view = {
            **event.dump(),
            "event_id": event_id,
            "org_name": org_name,
            cause_key: cause_name,
            "total_signups": total_signups,
            "total_checkins": total_checkins,
        }
        return event_id, {"event": view, "shifts": shifts}

    results = await asyncio.gather(*(one(event_id, event) for event_id, event in events.items()))
    return {event_id: entry for event_id, entry in results if entry is not None}


async def build_org_upcoming_report(
    store: DocumentStore,
    org_user_id: str,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Dict[str, Any]]:
    """
    Events of an org user starting within [start_date or now, end_date] that
    have at least one signup across their shifts, with per-shift and
    per-event signup/check-in counts.
    """
    lower = parse_bound(start_date, "start_date") or now or utc_now()
    upper = parse_bound(end_date, "end_date")
    events: Dict[str, EventRecord] = await load_where(store, EVENTS, "org_user_id", org_user_id)
    selected = {
        event_id: event for event_id, event in events.items()
        if within(parse_iso(event.start_date), lower, upper)
    }
    if not selected:
        return {}
    return await _rollup_events(store, selected, require_signups=True)


async def build_approval_report(
    store: DocumentStore,
    org_user_id: str,
    now: Optional[datetime] = None,
) -> Dict[str, Dict[str, Any]]:
    """Past events of an org user that have signups, for attendance approval."""
    now = now or utc_now()
    events: Dict[str, EventRecord] = await load_where(store, EVENTS, "org_user_id", org_user_id)
    selected = {
        event_id: event for event_id, event in events.items()
        if within(parse_iso(event.start_date), None, now)
    }
    if not selected:
        return {}
    return await _rollup_events(store, selected, require_signups=True, cause_key="cause_name")


async def build_events_with_shifts(
    store: DocumentStore,
    org_user_id: Optional[str] = None,
    org_id: Optional[str] = None,
) -> Dict[str, Dict[str, Any]]:
    """Every event matching the filters with its shift rollups; zero-signup events are kept."""
    if org_user_id:
        events = await load_where(store, EVENTS, "created_by", org_user_id)
        if org_id:
            events = {k: e for k, e in events.items() if e.org_id == org_id}
    elif org_id:
        events = await load_where(store, EVENTS, "org_id", org_id)
    else:
        return {}
    return await _rollup_events(store, events, require_signups=False)


async def build_event_with_shifts(store: DocumentStore, event_id: str) -> Dict[str, Dict[str, Any]]:
    event = await load(store, EVENTS, event_id)
    if not event:
        raise NotFoundError("Event not found")
    org_name, shifts = await asyncio.gather(
        _name_of(store, ORGANIZATIONS, event.org_id, UNKNOWN_ORG),
        event_shifts(store, event_id),
    )
    return {
        event_id: {
            "event": {**event.dump(), "event_id": event_id, "org_name": org_name},
            "shifts": shifts,
        }
    }


# Volunteer-facing views

async def build_my_upcoming_events(
    store: DocumentStore,
    user_id: str,
    volunteer_id: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Dict[str, Any]]:
    """
    Events the user holds non-withdrawn signups for, listing only those shifts.
    Both bounds: inclusive range. Start only: that calendar day. Otherwise:
    from now on, capped by end_date when given.
    """
    lower = parse_bound(start_date, "start_date")
    upper = parse_bound(end_date, "end_date")
    if not await load(store, USERS, user_id):
        raise NotFoundError("User not found")

    volunteers = await load_where(store, VOLUNTEERS, "user_id", user_id)
    if volunteer_id:
        # Only the user's own volunteer records can be listed
        volunteer_ids = [volunteer_id] if volunteer_id in volunteers else []
    else:
        volunteer_ids = [key for key, vol in volunteers.items() if vol.is_active]
    if not volunteer_ids:
        return {}

    signup_maps = await asyncio.gather(*(
        load_where(store, SIGNUPS, "volunteer_id", vid) for vid in volunteer_ids
    ))
    shifts_by_event: Dict[str, List[str]] = {}
    for signups in signup_maps:
        for signup in signups.values():
            if signup.withdrawal or not signup.event_id:
                continue
            shifts_by_event.setdefault(signup.event_id, []).append(signup.shift_id)
    if not shifts_by_event:
        return {}

    def wanted(start: Optional[datetime]) -> bool:
        if lower and upper:
            return within(start, lower, upper)
        if lower:
            return start is not None and start.date() == lower.date()
        return within(start, now or utc_now(), upper)

    async def one(event_id: str):
        event = await load(store, EVENTS, event_id)
        if not event or not wanted(parse_iso(event.start_date)):
            return event_id, None
        (org_name, cause_name), shifts = await asyncio.gather(
            _org_and_cause(store, event),
            event_shifts(store, event_id, only=shifts_by_event[event_id]),
        )
        view = {**event.dump(), "event_id": event_id, "org_name": org_name, "cause": cause_name}
        return event_id, {"event": view, "shifts": shifts}

    results = await asyncio.gather(*(one(event_id) for event_id in shifts_by_event))
    return {event_id: entry for event_id, entry in results if entry is not None}


async def build_interest_events(
    store: DocumentStore,
    user_id: str,
    current_date: Optional[str] = None,
    now: Optional[datetime] = None,
    window_days: int = 30,
    limit: int = 100,
) -> Dict[str, Dict[str, Any]]:
    """
    Upcoming events the user may want to join: events of every organization
    sharing the home org's parent_org (or the home org alone) and of the
    organizations the user volunteers for, excluding canceled events and
    events the user already holds a signup for.
    """
    now = now or utc_now()
    lower = parse_bound(current_date, "currentDate") or now
    upper = now + timedelta(days=window_days)

    user = await load(store, USERS, user_id)
    if not user:
        raise NotFoundError("User not found")
    home_org = await load(store, ORGANIZATIONS, user.school_home_org_id)
    if not home_org:
        raise NotFoundError("Organization not found")

    if home_org.parent_org:
        siblings = await store.query(ORGANIZATIONS, "parent_org", home_org.parent_org)
        org_ids = set(siblings)
    else:
        org_ids = {user.school_home_org_id}

    volunteers = await load_where(store, VOLUNTEERS, "user_id", user_id)
    org_ids.update(vol.org_id for vol in volunteers.values() if vol.org_id)

    events, signup_maps = await asyncio.gather(
        load_range(store, EVENTS, "start_date", to_iso(lower), to_iso(upper), limit),
        asyncio.gather(*(load_where(store, SIGNUPS, "volunteer_id", vid) for vid in volunteers)),
    )
    signed_up = {
        signup.event_id
        for signups in signup_maps
        for signup in signups.values()
        if not signup.withdrawal
    }
    selected = {
        event_id: event for event_id, event in events.items()
        if event.org_id in org_ids and not event.is_canceled and event_id not in signed_up
    }

    async def one(event_id: str, event: EventRecord):
        shifts, (org_name, cause_name) = await asyncio.gather(
            event_shifts(store, event_id),
            _org_and_cause(store, event),
        )
        view = {**event.dump(), "event_id": event_id, "org_name": org_name, "cause_name": cause_name}
        return event_id, {"event": view, "shifts": shifts}

    results = await asyncio.gather(*(one(event_id, event) for event_id, event in selected.items()))
    return dict(results)
