"""
Volunteer resolution.
A Volunteer record links a user to an organization. At most one record per
(user, org) is Active; records are never deleted, only status-flipped.
"""
import asyncio
from collections import defaultdict
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Dict, Hashable, List, Optional

import structlog

from ..errors import NotFoundError
from ..schemas.records import VOLUNTEER_ACTIVE, VOLUNTEER_WITHDRAWN, VolunteerRecord
from ..store.collections import VOLUNTEERS, load_where
from ..store.provider import DocumentStore
from .dates import iso_now

log = structlog.get_logger(__name__)


class KeyedLocks:
    """Per-key asyncio locks; upserts for one key run one at a time."""

    def __init__(self):
        self._locks: Dict[Hashable, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._users: Dict[Hashable, int] = defaultdict(int)

    @asynccontextmanager
    async def hold(self, key: Hashable):
        lock = self._locks[key]
        self._users[key] += 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]


@dataclass
class JoinResult:
    status: str  # already_active|reactivated|created
    volunteer_id: str


class VolunteerResolver:
    def __init__(self, store: DocumentStore, locks: Optional[KeyedLocks] = None):
        self.store = store
        self.locks = locks or KeyedLocks()

    async def _volunteers_for(self, user_id: str) -> Dict[str, VolunteerRecord]:
        return await load_where(self.store, VOLUNTEERS, "user_id", user_id)

    @staticmethod
    def _find(volunteers: Dict[str, VolunteerRecord], org_id: str, active: bool) -> Optional[str]:
        for key, vol in volunteers.items():
            if vol.org_id == org_id and vol.is_active == active:
                return key
        return None

    async def find_active(self, user_id: str, org_id: str) -> Optional[str]:
        return self._find(await self._volunteers_for(user_id), org_id, active=True)

    async def resolve_or_create(self, user_id: str, org_id: str) -> str:
        """Return the Active volunteer id for (user, org), creating it when absent."""
        async with self.locks.hold((user_id, org_id)):
            volunteer_id = await self.find_active(user_id, org_id)
            if volunteer_id:
                return volunteer_id
            volunteer_id = await self.store.add(VOLUNTEERS, {
                "user_id": user_id,
                "org_id": org_id,
                "org_sign_update_time": iso_now(),
                "status": VOLUNTEER_ACTIVE,
            })
            log.info("volunteer_created", user_id=user_id, org_id=org_id, volunteer_id=volunteer_id)
            return volunteer_id

    async def join_org(self, user_id: str, org_id: str) -> JoinResult:
        async with self.locks.hold((user_id, org_id)):
            volunteers = await self._volunteers_for(user_id)
            active_id = self._find(volunteers, org_id, active=True)
            if active_id:
                return JoinResult("already_active", active_id)

            inactive_id = self._find(volunteers, org_id, active=False)
            if inactive_id:
                await self.store.update(VOLUNTEERS, inactive_id, {
                    "org_sign_update_time": iso_now(),
                    "status": VOLUNTEER_ACTIVE,
                    "org_withdrawal_date_time": None,
                })
                log.info("volunteer_reactivated", user_id=user_id, org_id=org_id, volunteer_id=inactive_id)
                return JoinResult("reactivated", inactive_id)

            volunteer_id = await self.store.add(VOLUNTEERS, {
                "user_id": user_id,
                "org_id": org_id,
                "org_sign_update_time": iso_now(),
                "status": VOLUNTEER_ACTIVE,
            })
            log.info("volunteer_created", user_id=user_id, org_id=org_id, volunteer_id=volunteer_id)
            return JoinResult("created", volunteer_id)

    async def withdraw(self, user_id: str, org_id: str) -> str:
        async with self.locks.hold((user_id, org_id)):
            volunteer_id = await self.find_active(user_id, org_id)
            if not volunteer_id:
                raise NotFoundError(
                    f"No active volunteer record found for User ID {user_id} with Org ID {org_id}."
                )
            await self.store.update(VOLUNTEERS, volunteer_id, {
                "status": VOLUNTEER_WITHDRAWN,
                "org_withdrawal_date_time": iso_now(),
            })
            log.info("volunteer_withdrawn", user_id=user_id, org_id=org_id, volunteer_id=volunteer_id)
            return volunteer_id

    async def active_volunteer_ids(self, user_id: str) -> List[str]:
        volunteers = await self._volunteers_for(user_id)
        return [key for key, vol in volunteers.items() if vol.is_active]
