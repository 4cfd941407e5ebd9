# newsdesk/database.py
"""
Database handle.

A single Database object owns the engine and session factory. It is built
once at process start (see newsdesk.main) and handed to whatever needs it:
request handlers get sessions through the get_db dependency, background
workers open their own sessions from the same object.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from dotenv import load_dotenv
from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from newsdesk.config import Settings

# Load .env file (DATABASE_URL lives there)
load_dotenv()

Base = declarative_base()


class Database:
    """Engine plus session factory, constructed once and passed by reference."""

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        self.engine: Engine = _build_engine(url, echo=echo)
        self.SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=self.engine,
            future=True,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(settings.DATABASE_URL)

    def create_all(self) -> None:
        """
        Import models and create tables if they don't exist.
        Alembic is the real migration tool, but this keeps local dev and tests sane.
        """
        from newsdesk import models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)

    @contextmanager
    def session(self) -> Iterator[Session]:
        db: Session = self.SessionLocal()
        try:
            yield db
        finally:
            db.close()

    def dispose(self) -> None:
        self.engine.dispose()


def _build_engine(url: str, echo: bool = False) -> Engine:
    if url.startswith("sqlite"):
        # In-memory SQLite must share one connection across threads or every
        # session would see an empty database.
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url in ("sqlite://", "sqlite+pysqlite://"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, future=True, echo=echo, **kwargs)
    return create_engine(url, future=True, echo=echo, pool_pre_ping=True)


def get_db(request: Request) -> Iterator[Session]:
    """
    FastAPI dependency that gives you a DB session and cleans it up after.
    """
    db: Session = request.app.state.database.SessionLocal()
    try:
        yield db
    finally:
        db.close()
