import logging
from typing import Iterator, Optional, Sequence, Type

from sqlalchemy.orm import DeclarativeMeta, Session

from kv_entity_framework.query import Predicate
from kv_entity_framework.storages.base import Key, Store, StoredRecord, matches
from kv_entity_framework.storages.sqlalchemy.constructing_model.raw_model import RawModel
from kv_entity_framework.storages.sqlalchemy.registry import SaRegistry


logger = logging.getLogger(__name__)


class SqlAlchemyStore(Store):
    def __init__(self, session: Session, base: DeclarativeMeta, registry: Optional[SaRegistry] = None) -> None:
        self._session = session
        self._base = base
        self.registry = registry or SaRegistry()

    @property
    def session(self) -> Session:
        return self._session

    def model_for(self, kind: str) -> Type:
        model = self.registry.kinds_models.get(kind)
        if model is None:
            model = RawModel.for_kind(kind, self._base).materialize()
            model.__table__.create(bind=self._session.connection(), checkfirst=True)
            logger.debug("materialized model %s for table %s", model.__name__, model.__tablename__)
            self.registry.kinds_models[kind] = model
        return model

    def get(self, kind: str, record_id: int) -> Optional[StoredRecord]:
        row = self._session.get(self.model_for(kind), record_id)
        if row is None:
            return None
        return self._to_record(kind, row)

    def put(self, record: StoredRecord) -> int:
        model = self.model_for(record.kind)
        stored = record.copy()
        row = model(id=stored.id, properties=stored.properties, unindexed=sorted(stored.unindexed))
        if stored.id is None:
            self._session.add(row)
        else:
            row = self._session.merge(row)
        self._session.flush()
        return row.id

    def delete(self, key: Key) -> None:
        row = self._session.get(self.model_for(key.kind), key.id)
        if row is not None:
            self._session.delete(row)
            self._session.flush()

    def scan(self, kind: str, predicates: Sequence[Predicate]) -> Iterator[StoredRecord]:
        model = self.model_for(kind)
        # TODO: push EQUAL predicates on indexed properties down into SQL with JSON path expressions
        rows = self._session.query(model).order_by(model.id).all()
        records = [self._to_record(kind, row) for row in rows]
        return (record for record in records if matches(record, predicates))

    @staticmethod
    def _to_record(kind: str, row: object) -> StoredRecord:
        return StoredRecord(kind, row.id, dict(row.properties), set(row.unindexed)).copy()
