"""Collection names and typed loaders.

The store has no schema; these constants are the single source of truth for
collection names, and the loaders below convert raw records into the record
models of `schemas.records` at the store boundary.
"""
from typing import Any, Dict, Optional, Type

from ..schemas.records import (
    Record,
    UserRecord,
    OrganizationRecord,
    OrgUserRecord,
    VolunteerRecord,
    CauseRecord,
    EventRecord,
    ShiftRecord,
    SignupRecord,
    AttendanceRecord,
    MessageRecord,
)
from .provider import DocumentStore


USERS = "users"
ORGANIZATIONS = "organizations"
ORG_USERS = "org_users"
VOLUNTEERS = "volunteers"
CAUSES = "causes"
EVENTS = "events"
SHIFTS = "shifts"
SIGNUPS = "signups"
ATTENDANCES = "attendances"
MESSAGES = "messages"

RECORD_TYPES: Dict[str, Type[Record]] = {
    USERS: UserRecord,
    ORGANIZATIONS: OrganizationRecord,
    ORG_USERS: OrgUserRecord,
    VOLUNTEERS: VolunteerRecord,
    CAUSES: CauseRecord,
    EVENTS: EventRecord,
    SHIFTS: ShiftRecord,
    SIGNUPS: SignupRecord,
    ATTENDANCES: AttendanceRecord,
    MESSAGES: MessageRecord,
}


def to_record(collection: str, raw: Any) -> Record:
    model = RECORD_TYPES[collection]
    if not isinstance(raw, dict):
        raw = {}
    return model.model_validate(raw)


def to_records(collection: str, raw_map: Dict[str, Any]) -> Dict[str, Record]:
    return {key: to_record(collection, raw) for key, raw in raw_map.items()}


async def load(store: DocumentStore, collection: str, key: Optional[str]) -> Optional[Record]:
    if not key:
        return None
    raw = await store.get(collection, key)
    if raw is None:
        return None
    return to_record(collection, raw)


async def load_where(store: DocumentStore, collection: str, field: str, value: Any) -> Dict[str, Record]:
    return to_records(collection, await store.query(collection, field, value))


async def load_range(
    store: DocumentStore,
    collection: str,
    field: str,
    lower: Optional[str],
    upper: Optional[str],
    limit: Optional[int] = None,
) -> Dict[str, Record]:
    return to_records(collection, await store.query_range(collection, field, lower, upper, limit))


async def load_all(store: DocumentStore, collection: str) -> Dict[str, Record]:
    return to_records(collection, await store.all(collection))
