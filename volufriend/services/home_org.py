"""
Home organization views and updates.
"""
from typing import Any, Dict, Optional

import structlog

from ..errors import NotFoundError, UpstreamError, ValidationError
from ..schemas.records import (
    ORG_ROLES,
    ROLE_ORGANIZATION,
    ROLE_VOLUNTEER,
    USER_ROLES,
    OrgUserRecord,
    UserRecord,
)
from ..store.collections import ORG_USERS, ORGANIZATIONS, USERS, load, load_where
from ..store.provider import DocumentStore
from .notifications import NotificationDispatcher, topic_for
from .volunteers import KeyedLocks, VolunteerResolver

log = structlog.get_logger(__name__)


async def find_org_user(store: DocumentStore, user_id: str, org_id: str):
    """(org_user_id, record) for the user's entry in the org, or (None, None)."""
    entries: Dict[str, OrgUserRecord] = await load_where(store, ORG_USERS, "user_id", user_id)
    for key, entry in entries.items():
        if entry.organization_id == org_id:
            return key, entry
    return None, None


async def _load_user(store: DocumentStore, user_id: str) -> UserRecord:
    user = await load(store, USERS, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


async def check_home_org(store: DocumentStore, user_id: str) -> Dict[str, Any]:
    user = await _load_user(store, user_id)
    org_id = (user.school_home_org_id or "").strip()
    if not org_id:
        raise ValidationError("Invalid or missing school home org")
    org = await load(store, ORGANIZATIONS, org_id)
    if not org:
        raise NotFoundError("Organization not found")
    return {
        "userId": user_id,
        "username": user.username,
        "orgId": org_id,
        "role": user.role,
        "orgName": org.name,
    }


async def get_home_org(store: DocumentStore, user_id: str) -> Dict[str, Any]:
    user = await _load_user(store, user_id)
    org_id = user.school_home_org_id
    view = {
        "userId": user_id,
        "username": user.username,
        "orgId": org_id,
        "role": None,
        "orgName": None,
        "userRoleInOrg": None,
        "userIdInOrg": None,
        "parentOrg": None,
    }
    if not org_id or not org_id.strip():
        return view

    org = await load(store, ORGANIZATIONS, org_id)
    view.update(
        role=user.role,
        orgName=org.name if org else None,
        parentOrg=org.parent_org if org else None,
    )
    if user.role == ROLE_ORGANIZATION:
        org_user_id, org_user = await find_org_user(store, user_id, org_id)
        if not org_user:
            raise NotFoundError(f"No role found for user {user_id} in organization {org_id}")
        view.update(userRoleInOrg=org_user.user_role_in_Org, userIdInOrg=org_user_id)
    return view


class HomeOrgService:
    def __init__(
        self,
        store: DocumentStore,
        resolver: VolunteerResolver,
        dispatcher: NotificationDispatcher,
        locks: Optional[KeyedLocks] = None,
    ):
        self.store = store
        self.resolver = resolver
        self.dispatcher = dispatcher
        self.locks = locks or KeyedLocks()

    async def update_home_org(
        self,
        user_id: str,
        org_id: str,
        role: str,
        created_at: str,
        created_by: str,
        org_role: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Point the user at a new home org. Validation happens before any write:
        an Organization user gets an org_users entry, a Volunteer gets an Active
        volunteer record and a topic subscription for the parent org.
        """
        if not org_id or not role or not created_at or not created_by:
            raise ValidationError("Missing required fields in request body")
        if role not in USER_ROLES:
            raise ValidationError("Invalid role")
        if role == ROLE_ORGANIZATION and org_role not in ORG_ROLES:
            raise ValidationError("Invalid organization role")

        org = await load(self.store, ORGANIZATIONS, org_id)
        if not org:
            raise NotFoundError("Organization not found")
        user = await _load_user(self.store, user_id)

        await self.store.update(USERS, user_id, {"school_home_org_id": org_id, "role": role})

        if role == ROLE_ORGANIZATION:
            await self._upsert_org_user(user_id, org_id, org_role, created_at, created_by)
        elif role == ROLE_VOLUNTEER:
            await self.resolver.resolve_or_create(user_id, org_id)
            if org.parent_org and user.token:
                await self._subscribe(user.token, org.parent_org, user_id)

        log.info("home_org_updated", user_id=user_id, org_id=org_id, role=role)
        response = {
            "userId": user_id,
            "username": user.username,
            "orgId": org_id,
            "role": role,
            "orgName": org.name,
        }
        if role == ROLE_ORGANIZATION:
            response["user_role_in_Org"] = org_role
        return response

    async def _upsert_org_user(self, user_id, org_id, org_role, created_at, created_by):
        async with self.locks.hold((user_id, org_id)):
            org_user_id, _ = await find_org_user(self.store, user_id, org_id)
            if org_user_id:
                await self.store.update(ORG_USERS, org_user_id, {
                    "updated_at": created_at,
                    "updated_by": created_by,
                    "user_role_in_Org": org_role,
                })
                return org_user_id
            return await self.store.add(ORG_USERS, {
                "created_at": created_at,
                "created_by": created_by,
                "organization_id": org_id,
                "updated_at": created_at,
                "updated_by": created_by,
                "user_id": user_id,
                "user_role_in_Org": org_role,
            })

    async def _subscribe(self, token: str, parent_org: str, user_id: str) -> None:
        topic = topic_for(parent_org)
        try:
            await self.dispatcher.subscribe(token, topic)
        except UpstreamError:
            log.warning("topic_subscribe_skipped", user_id=user_id, topic=topic)
            return
        log.info("topic_subscribed", user_id=user_id, topic=topic)
