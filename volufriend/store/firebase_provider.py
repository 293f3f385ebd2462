"""
Firebase Realtime Database document store.
Collections are top-level nodes; keys are child names.
"""
from typing import Any, Dict, Optional

import firebase_admin
from firebase_admin import credentials, db as firebase_db
from starlette.concurrency import run_in_threadpool

from ..config import Settings
from .provider import DocumentStore


def get_firebase_app(settings: Settings) -> firebase_admin.App:
    """Initialize the default Firebase app once and return it."""
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass
    if not settings.firebase_credentials or not settings.firebase_database_url:
        raise RuntimeError("FIREBASE_CREDENTIALS and FIREBASE_DATABASE_URL must be set")
    cred = credentials.Certificate(settings.firebase_credentials)
    return firebase_admin.initialize_app(cred, {"databaseURL": settings.firebase_database_url})


def _as_map(value) -> Dict[str, Dict[str, Any]]:
    if not value:
        return {}
    if isinstance(value, list):
        # RTDB returns arrays for integer-like keys
        return {str(i): v for i, v in enumerate(value) if v is not None}
    return dict(value)


class FirebaseDocumentStore(DocumentStore):
    def __init__(self, app: firebase_admin.App):
        self._app = app

    def _ref(self, *parts: str):
        return firebase_db.reference("/".join(parts), app=self._app)

    async def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        return await run_in_threadpool(self._ref(collection, key).get)

    async def set(self, collection: str, key: str, record: Dict[str, Any]) -> None:
        await run_in_threadpool(self._ref(collection, key).set, record)

    async def update(self, collection: str, key: str, partial: Dict[str, Any]) -> None:
        await run_in_threadpool(self._ref(collection, key).update, partial)

    async def remove(self, collection: str, key: str) -> None:
        await run_in_threadpool(self._ref(collection, key).delete)

    async def query(self, collection: str, field: str, value: Any) -> Dict[str, Dict[str, Any]]:
        query = self._ref(collection).order_by_child(field).equal_to(value)
        return _as_map(await run_in_threadpool(query.get))

    async def query_range(
        self,
        collection: str,
        field: str,
        lower: Optional[str],
        upper: Optional[str],
        limit: Optional[int] = None,
    ) -> Dict[str, Dict[str, Any]]:
        query = self._ref(collection).order_by_child(field)
        if lower is not None:
            query = query.start_at(lower)
        if upper is not None:
            query = query.end_at(upper)
        if limit:
            query = query.limit_to_first(limit)
        return _as_map(await run_in_threadpool(query.get))

    async def all(self, collection: str) -> Dict[str, Dict[str, Any]]:
        return _as_map(await run_in_threadpool(self._ref(collection).get))
