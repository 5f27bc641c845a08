import itertools
import typing
from collections import defaultdict

from kv_entity_framework.query import Predicate
from kv_entity_framework.storages.base import Key, Store, StoredRecord, matches


class InMemoryStore(Store):
    def __init__(self) -> None:
        self._records: typing.DefaultDict[str, typing.Dict[int, StoredRecord]] = defaultdict(dict)
        self._sequences: typing.DefaultDict[str, typing.Iterator[int]] = defaultdict(lambda: itertools.count(1))

    def get(self, kind: str, record_id: int) -> typing.Optional[StoredRecord]:
        record = self._records[kind].get(record_id)
        if record is None:
            return None
        return record.copy()

    def put(self, record: StoredRecord) -> int:
        stored = record.copy()
        if stored.id is None:
            stored.id = next(self._sequences[stored.kind])
        self._records[stored.kind][stored.id] = stored
        return stored.id

    def delete(self, key: Key) -> None:
        self._records[key.kind].pop(key.id, None)

    def scan(self, kind: str, predicates: typing.Sequence[Predicate]) -> typing.Iterator[StoredRecord]:
        snapshot = sorted(self._records[kind].values(), key=lambda record: record.id)
        return (record.copy() for record in snapshot if matches(record, predicates))

    def __len__(self) -> int:
        return sum(len(records) for records in self._records.values())
