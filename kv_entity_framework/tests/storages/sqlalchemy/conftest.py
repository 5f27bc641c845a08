from typing import Generator

import pytest
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeMeta, Session, declarative_base, sessionmaker

from kv_entity_framework.storages.sqlalchemy import SqlAlchemyStore


@pytest.fixture()
def sa_base() -> DeclarativeMeta:
    return declarative_base()


@pytest.fixture()
def session(sa_base: DeclarativeMeta, engine: Engine) -> Generator[Session, None, None]:
    sa_base.metadata.drop_all(engine)
    session_factory = sessionmaker(engine)
    session = session_factory()
    yield session
    session.rollback()
    session.close()
    sa_base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture()
def sa_store(session: Session, sa_base: DeclarativeMeta) -> SqlAlchemyStore:
    return SqlAlchemyStore(session, sa_base)
