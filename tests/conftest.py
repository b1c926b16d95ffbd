from functools import partial

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from secret_angel.db import Participant, get_session
from secret_angel.db.models import Base


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite+pysqlite://",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    return partial(get_session, factory)


@pytest.fixture
def add_participants(session_factory):
    def _add(*names, wishlist=""):
        with session_factory() as session:
            session.add_all([Participant(name=name, wishlist=wishlist) for name in names])
    return _add
