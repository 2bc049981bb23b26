from __future__ import annotations

import contextlib
from typing import Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from steam_openid.config import settings


def make_engine(url: str) -> Engine:
    if url.startswith("sqlite"):
        # SQLite pools don't take size/overflow; allow use from Flask worker threads
        return create_engine(url, connect_args={"check_same_thread": False}, future=True)
    return create_engine(url, pool_pre_ping=True, pool_size=5, max_overflow=5, future=True)


def make_session_factory(bind: Engine) -> sessionmaker:
    return sessionmaker(bind=bind, autoflush=False, autocommit=False, future=True)


engine = make_engine(settings.database_url)
SessionLocal = make_session_factory(engine)


@contextlib.contextmanager
def session_scope(factory: Optional[sessionmaker] = None) -> Iterator[Session]:
    session = (factory or SessionLocal)()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
