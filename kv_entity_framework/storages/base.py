import abc
import copy
import typing

import attr

from kv_entity_framework.query import Predicate


@attr.s(auto_attribs=True, frozen=True)
class Key:
    kind: str
    id: int


@attr.s(auto_attribs=True)
class StoredRecord:
    kind: str
    id: typing.Optional[int] = None
    properties: typing.Dict[str, typing.Any] = attr.Factory(dict)
    unindexed: typing.Set[str] = attr.Factory(set)

    @property
    def key(self) -> typing.Optional[Key]:
        if self.id is None:
            return None
        return Key(self.kind, self.id)

    def set_property(self, name: str, value: typing.Any, indexed: bool = True) -> None:
        self.properties[name] = value
        if indexed:
            self.unindexed.discard(name)
        else:
            self.unindexed.add(name)

    def copy(self) -> "StoredRecord":
        return StoredRecord(self.kind, self.id, copy.deepcopy(self.properties), set(self.unindexed))


def matches(record: StoredRecord, predicates: typing.Sequence[Predicate]) -> bool:
    for predicate in predicates:
        if predicate.name not in record.properties or predicate.name in record.unindexed:
            return False
        if not predicate.operator.evaluate(record.properties[predicate.name], predicate.value):
            return False
    return True


class Store(metaclass=abc.ABCMeta):
    @abc.abstractmethod
    def get(self, kind: str, record_id: int) -> typing.Optional[StoredRecord]:
        pass

    @abc.abstractmethod
    def put(self, record: StoredRecord) -> int:
        pass

    @abc.abstractmethod
    def delete(self, key: Key) -> None:
        pass

    @abc.abstractmethod
    def scan(self, kind: str, predicates: typing.Sequence[Predicate]) -> typing.Iterator[StoredRecord]:
        pass
