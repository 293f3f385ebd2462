from typing import Any, Dict

from fastapi import APIRouter, Body, Depends

from ..deps import get_store
from ..errors import NotFoundError
from ..store.collections import ORGANIZATIONS
from ..store.provider import DocumentStore


router = APIRouter(prefix="/organizations", tags=["organizations"])


@router.get("")
async def list_organizations(store: DocumentStore = Depends(get_store)):
    return await store.all(ORGANIZATIONS)


@router.get("/{org_id}")
async def get_organization(org_id: str, store: DocumentStore = Depends(get_store)):
    record = await store.get(ORGANIZATIONS, org_id)
    if record is None:
        raise NotFoundError("Organization not found")
    return record


@router.post("", status_code=201)
async def create_organization(payload: Dict[str, Any] = Body(...), store: DocumentStore = Depends(get_store)):
    org_id = await store.add(ORGANIZATIONS, payload)
    return {"id": org_id}


@router.put("/{org_id}")
async def update_organization(org_id: str, payload: Dict[str, Any] = Body(...), store: DocumentStore = Depends(get_store)):
    await store.update(ORGANIZATIONS, org_id, payload)
    return {"message": "Organization updated successfully"}


@router.delete("/{org_id}")
async def delete_organization(org_id: str, store: DocumentStore = Depends(get_store)):
    await store.remove(ORGANIZATIONS, org_id)
    return {"message": "Organization deleted successfully"}
