"""Database engine and per-request session management"""

from typing import Any, Dict, Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from quote_engine.config import settings


def build_engine(database_url: str) -> Engine:
    """Pooled engine for PostgreSQL; SQLite (local runs, tests) gets a thread-shared connection"""
    if database_url.startswith("sqlite"):
        return create_engine(database_url, connect_args={"check_same_thread": False})

    options: Dict[str, Any] = {
        "pool_pre_ping": True,  # Verify connections before using
        "pool_size": 10,
        "max_overflow": 10,
        "pool_recycle": 3600,
    }
    return create_engine(database_url, **options)


engine = build_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Iterator[Session]:
    """Request-scoped session; routers commit or roll back explicitly"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
