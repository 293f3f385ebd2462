from typing import Any, Dict

from fastapi import APIRouter, Body, Depends

from ..deps import get_store
from ..errors import NotFoundError
from ..store.collections import CAUSES
from ..store.provider import DocumentStore


router = APIRouter(prefix="/causes", tags=["causes"])


@router.get("")
async def list_causes(store: DocumentStore = Depends(get_store)):
    return await store.all(CAUSES)


@router.get("/{cause_id}")
async def get_cause(cause_id: str, store: DocumentStore = Depends(get_store)):
    record = await store.get(CAUSES, cause_id)
    if record is None:
        raise NotFoundError("Cause not found")
    return record


@router.post("", status_code=201)
async def create_cause(payload: Dict[str, Any] = Body(...), store: DocumentStore = Depends(get_store)):
    cause_id = await store.add(CAUSES, payload)
    return {"id": cause_id}


@router.put("/{cause_id}")
async def update_cause(cause_id: str, payload: Dict[str, Any] = Body(...), store: DocumentStore = Depends(get_store)):
    await store.update(CAUSES, cause_id, payload)
    return {"message": "Cause updated successfully"}


@router.delete("/{cause_id}")
async def delete_cause(cause_id: str, store: DocumentStore = Depends(get_store)):
    await store.remove(CAUSES, cause_id)
    return {"message": "Cause deleted successfully"}
