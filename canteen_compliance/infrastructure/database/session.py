"""Database engine and session management"""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from canteen_compliance.config import settings


def build_engine(database_url: str) -> Engine:
    """
    Pooled engine for Postgres; SQLite (local runs) gets a thread-shareable connection
    since the sweep runs in a worker thread.
    """
    if database_url.startswith("sqlite"):
        return create_engine(database_url, connect_args={"check_same_thread": False})

    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=5,
        pool_recycle=1800,
    )


engine = build_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Session:
    """Request-scoped session for API handlers"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
