from __future__ import annotations

from collections.abc import Generator

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from substitute_planner.infra.db.models import Base
from substitute_planner.settings import load_settings


def build_engine(database_url: str) -> Engine:
    if database_url.startswith("sqlite"):
        return create_engine(database_url, connect_args={"check_same_thread": False})
    return create_engine(database_url, pool_pre_ping=True)


def init_db(bind: Engine) -> None:
    """Creates the history tables when they are missing."""
    Base.metadata.create_all(bind)


settings = load_settings()

if not settings.database_url:
    raise RuntimeError("DATABASE_URL is required when DB_BACKEND=postgres")

engine = build_engine(settings.database_url)
init_db(engine)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, class_=Session)


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
