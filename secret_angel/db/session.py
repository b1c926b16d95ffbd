from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False)


def init_engine(database_url: str, **engine_kwargs):
    engine_kwargs.setdefault("pool_pre_ping", True)
    engine = create_engine(database_url, future=True, **engine_kwargs)
    SessionLocal.configure(bind=engine)
    return engine


def _ensure_initialized(factory: sessionmaker) -> None:
    if factory.kw.get("bind") is None:
        raise RuntimeError("Database engine not initialized. Call init_engine() before use.")


@contextmanager
def get_session(factory: Optional[sessionmaker] = None) -> Iterator[Session]:
    factory = factory or SessionLocal
    _ensure_initialized(factory)
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
