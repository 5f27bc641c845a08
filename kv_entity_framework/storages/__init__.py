import typing

from kv_entity_framework.settings import Settings
from kv_entity_framework.storages.base import Key, Store, StoredRecord
from kv_entity_framework.storages.memory import InMemoryStore

MEMORY_URL = "memory://"


def create_store(settings: typing.Optional[Settings] = None) -> Store:
    settings = settings or Settings()
    if settings.store_url == MEMORY_URL:
        return InMemoryStore()

    from sqlalchemy import create_engine
    from sqlalchemy.orm import declarative_base, sessionmaker

    from kv_entity_framework.storages.sqlalchemy import SqlAlchemyStore

    engine = create_engine(settings.store_url, echo=settings.echo)
    session_factory = sessionmaker(engine)
    return SqlAlchemyStore(session_factory(), declarative_base())


__all__ = ["Key", "Store", "StoredRecord", "InMemoryStore", "create_store"]
