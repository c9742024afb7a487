"""Ledger store engine and per-request sessions"""

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker, Session
from shop_credit.config import settings


def engine_options(database_url: str) -> dict:
    """
    Engine keyword arguments for the configured backend.

    SQLite (tests, local runs) is shared across the TestClient threads and takes
    no pool sizing. Server backends get a pre-pinged, recycled connection pool.
    """
    if make_url(database_url).get_backend_name() == "sqlite":
        return {"connect_args": {"check_same_thread": False}}

    return {
        "pool_pre_ping": True,
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_recycle": settings.db_pool_recycle,
    }


engine = create_engine(settings.database_url, **engine_options(settings.database_url))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Session:
    """Yield a session for one request; the endpoint owns commit/rollback"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
