"""
Database engine and session management.
"""
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from celebstyle_gateway.config import settings

Base = declarative_base()


def build_engine(database_url: str, echo: bool = False, **kwargs) -> Engine:
    """Create an engine, allowing SQLite connections to cross threads."""
    connect_args = kwargs.pop("connect_args", {})
    if database_url.startswith("sqlite"):
        connect_args.setdefault("check_same_thread", False)
    else:
        kwargs.setdefault("pool_pre_ping", True)
    return create_engine(database_url, echo=echo, connect_args=connect_args, **kwargs)


engine = build_engine(settings.database_url, echo=settings.database_echo)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Engine = None) -> None:
    """Create tables that do not exist yet (Alembic owns real migrations)."""
    # Imported for its side effect of registering the tables on Base.
    from celebstyle_gateway import db_models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
