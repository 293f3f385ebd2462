from fastapi import Request

from ..config import Settings
from ..db import make_engine, make_session_factory, create_tables
from .provider import DocumentStore


def build_store(settings: Settings) -> DocumentStore:
    """
    Get document store based on configuration.
    Uses the Firebase Realtime Database in production and a SQL table of
    JSON documents for local development and tests.
    """
    if settings.store_provider == "firebase":
        from .firebase_provider import FirebaseDocumentStore, get_firebase_app

        return FirebaseDocumentStore(get_firebase_app(settings))

    from .sql_provider import SqlDocumentStore

    engine = make_engine(settings.database_url)
    if settings.auto_create_db:
        create_tables(engine)
    return SqlDocumentStore(make_session_factory(engine), engine=engine)


def get_store(request: Request) -> DocumentStore:
    return request.app.state.store
