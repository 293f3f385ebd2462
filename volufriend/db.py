import os

from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool


Base = declarative_base()


def make_engine(database_url: str):
    if database_url.startswith("sqlite:///./"):
        os.makedirs(os.path.dirname(database_url[len("sqlite:///"):]) or ".", exist_ok=True)
    if database_url.endswith(":memory:"):
        # Every threadpool worker must see the same in-memory database
        return create_engine(
            database_url,
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            future=True,
            connect_args={"check_same_thread": False, "timeout": 30},
        )
    return create_engine(
        database_url,
        future=True,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
        pool_recycle=3600,  # Recycle connections after 1 hour
    )


def make_session_factory(engine):
    # One short-lived Session per store call; sessions are never shared across threads
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True, expire_on_commit=False)


def create_tables(engine) -> None:
    from .models import models  # noqa: F401  registers tables on Base

    Base.metadata.create_all(bind=engine)
