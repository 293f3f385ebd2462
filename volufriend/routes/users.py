from typing import Any, Dict

from fastapi import APIRouter, Body, Depends

from ..deps import get_store
from ..errors import NotFoundError
from ..store.collections import USERS
from ..store.provider import DocumentStore


router = APIRouter(prefix="/users", tags=["users"])


@router.get("")
async def list_users(store: DocumentStore = Depends(get_store)):
    return await store.all(USERS)


@router.get("/{user_id}")
async def get_user(user_id: str, store: DocumentStore = Depends(get_store)):
    user = await store.get(USERS, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


@router.post("/{new_user_id}", status_code=201)
async def create_user(new_user_id: str, payload: Dict[str, Any] = Body(...), store: DocumentStore = Depends(get_store)):
    # Profile forms send "" for untouched fields
    data = {k: (None if v == "" else v) for k, v in payload.items()}
    await store.set(USERS, new_user_id, data)
    return {"id": new_user_id}


@router.put("/{user_id}")
async def update_user(user_id: str, payload: Dict[str, Any] = Body(...), store: DocumentStore = Depends(get_store)):
    await store.update(USERS, user_id, payload)
    return {"message": "User updated successfully"}


@router.delete("/{user_id}")
async def delete_user(user_id: str, store: DocumentStore = Depends(get_store)):
    await store.remove(USERS, user_id)
    return {"message": "User deleted successfully"}
