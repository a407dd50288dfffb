# meatshare/db/core.py
from __future__ import annotations

from typing import Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from meatshare.config import get_settings

SQLALCHEMY_DATABASE_URL: str = get_settings().database_url

# ------------------------------------------------------------
# SQLAlchemy (SQLite needs check_same_thread off under FastAPI)
# ------------------------------------------------------------
connect_args = {}
if SQLALCHEMY_DATABASE_URL.startswith("sqlite"):
    connect_args = {"check_same_thread": False}

engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


# ------------------------------------------------------------
# FastAPI dependency: DB session
# ------------------------------------------------------------
def get_db() -> Iterator[Session]:
    db: Optional[Session] = None
    try:
        db = SessionLocal()
        yield db
    finally:
        if db is not None:
            db.close()
