from typing import Any, Dict

from fastapi import APIRouter, Body, Depends

from ..deps import get_store
from ..errors import NotFoundError, ValidationError
from ..logging import structlog
from ..store.collections import MESSAGES
from ..store.provider import DocumentStore


router = APIRouter(prefix="/eventmessages", tags=["messages"])


@router.get("")
async def list_messages(user_id: str = "", store: DocumentStore = Depends(get_store)):
    if not user_id:
        raise ValidationError("user_id is required")
    return await store.query(MESSAGES, "userId", user_id)


@router.delete("/deleteall")
async def delete_messages(payload: Any = Body(...), store: DocumentStore = Depends(get_store)):
    """Body maps arbitrary keys to message records; each record's client `id` selects what to delete."""
    if not isinstance(payload, dict):
        raise ValidationError("Invalid request format, expected an object of messages.")
    removed = 0
    for record in payload.values():
        client_id = record.get("id") if isinstance(record, dict) else None
        if not client_id:
            continue
        matches = await store.query(MESSAGES, "id", client_id)
        for key in matches:
            await store.remove(MESSAGES, key)
            removed += 1
    structlog.get_logger().info("messages_deleted", count=removed)
    return {}


@router.get("/{message_id}")
async def get_message(message_id: str, store: DocumentStore = Depends(get_store)):
    message = await store.get(MESSAGES, message_id)
    if message is None:
        raise NotFoundError("Message not found.")
    return message


@router.post("", status_code=201)
async def create_message(payload: Dict[str, Any] = Body(...), store: DocumentStore = Depends(get_store)):
    message_id = await store.add(MESSAGES, payload)
    return {"id": message_id}


@router.put("/{message_id}")
async def update_message(message_id: str, payload: Dict[str, Any] = Body(...), store: DocumentStore = Depends(get_store)):
    await store.update(MESSAGES, message_id, payload)
    return {"message": "Message updated successfully"}
