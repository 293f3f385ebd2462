"""
SQL-backed document store for development and tests.
Each record is a JSON document in the `documents` table; equality and range
queries use JSON path extraction so filtering happens in the database.
"""
from typing import Any, Dict, Optional

from sqlalchemy import select, delete
from starlette.concurrency import run_in_threadpool

from ..models.models import Document
from .provider import DocumentStore


def _field_expr(field: str, value: Any):
    column = Document.data[field]
    if isinstance(value, bool):
        return column.as_boolean()
    if isinstance(value, int):
        return column.as_integer()
    if isinstance(value, float):
        return column.as_float()
    return column.as_string()


class SqlDocumentStore(DocumentStore):
    def __init__(self, session_factory, engine=None):
        self._session_factory = session_factory
        self._engine = engine

    # Sync implementations, run in the threadpool by the async API

    def _get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        with self._session_factory() as db:
            row = db.get(Document, (collection, key))
            return dict(row.data) if row else None

    def _set(self, collection: str, key: str, record: Dict[str, Any]) -> None:
        with self._session_factory() as db:
            row = db.get(Document, (collection, key))
            if row is None:
                db.add(Document(collection=collection, key=key, data=dict(record)))
            else:
                row.data = dict(record)
            db.commit()

    def _update(self, collection: str, key: str, partial: Dict[str, Any]) -> None:
        with self._session_factory() as db:
            row = db.get(Document, (collection, key))
            merged = dict(row.data) if row else {}
            for name, value in partial.items():
                if value is None:
                    merged.pop(name, None)
                else:
                    merged[name] = value
            if row is None:
                db.add(Document(collection=collection, key=key, data=merged))
            else:
                row.data = merged
            db.commit()

    def _remove(self, collection: str, key: str) -> None:
        with self._session_factory() as db:
            db.execute(delete(Document).where(Document.collection == collection, Document.key == key))
            db.commit()

    def _select(self, stmt) -> Dict[str, Dict[str, Any]]:
        with self._session_factory() as db:
            rows = db.execute(stmt).scalars().all()
            return {row.key: dict(row.data) for row in rows}

    def _query(self, collection: str, field: str, value: Any) -> Dict[str, Dict[str, Any]]:
        stmt = (
            select(Document)
            .where(Document.collection == collection, _field_expr(field, value) == value)
            .order_by(Document.key)
        )
        return self._select(stmt)

    def _query_range(
        self,
        collection: str,
        field: str,
        lower: Optional[str],
        upper: Optional[str],
        limit: Optional[int],
    ) -> Dict[str, Dict[str, Any]]:
        column = Document.data[field].as_string()
        stmt = select(Document).where(Document.collection == collection, column.is_not(None))
        if lower is not None:
            stmt = stmt.where(column >= lower)
        if upper is not None:
            stmt = stmt.where(column <= upper)
        stmt = stmt.order_by(column, Document.key)
        if limit:
            stmt = stmt.limit(limit)
        return self._select(stmt)

    def _all(self, collection: str) -> Dict[str, Dict[str, Any]]:
        return self._select(select(Document).where(Document.collection == collection).order_by(Document.key))

    # DocumentStore API

    async def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        return await run_in_threadpool(self._get, collection, key)

    async def set(self, collection: str, key: str, record: Dict[str, Any]) -> None:
        await run_in_threadpool(self._set, collection, key, record)

    async def update(self, collection: str, key: str, partial: Dict[str, Any]) -> None:
        await run_in_threadpool(self._update, collection, key, partial)

    async def remove(self, collection: str, key: str) -> None:
        await run_in_threadpool(self._remove, collection, key)

    async def query(self, collection: str, field: str, value: Any) -> Dict[str, Dict[str, Any]]:
        return await run_in_threadpool(self._query, collection, field, value)

    async def query_range(
        self,
        collection: str,
        field: str,
        lower: Optional[str],
        upper: Optional[str],
        limit: Optional[int] = None,
    ) -> Dict[str, Dict[str, Any]]:
        return await run_in_threadpool(self._query_range, collection, field, lower, upper, limit)

    async def all(self, collection: str) -> Dict[str, Dict[str, Any]]:
        return await run_in_threadpool(self._all, collection)

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
