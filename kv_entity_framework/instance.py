import typing
from datetime import datetime

from kv_entity_framework.errors import (
    AutoGeneratedViolation,
    IllegalArgument,
    IllegalUsage,
    MandatoryViolation,
    ReadOnlyViolation,
    TypeMismatch,
)
from kv_entity_framework.field import Field
from kv_entity_framework.query import QueryArg
from kv_entity_framework.storages.base import StoredRecord

if typing.TYPE_CHECKING:
    from kv_entity_framework.entity import Entity


FieldRef = typing.Union[Field, str]


class Instance:
    """One record of an entity.

    Holds the last persisted snapshot of the record, in the store's native representation, and an overlay
    of pending updates. The overlay only ever contains fields whose value differs from the snapshot.
    """

    def __init__(self, entity: "Entity") -> None:
        self._entity = entity
        self._record = StoredRecord(entity.name)
        self._updates: typing.Dict[Field, typing.Any] = {}

    @property
    def entity(self) -> "Entity":
        return self._entity

    @property
    def id(self) -> typing.Optional[int]:
        return self._record.id

    @property
    def time_created(self) -> typing.Optional[datetime]:
        return self.get(self._entity.time_created)

    @property
    def time_updated(self) -> typing.Optional[datetime]:
        return self.get(self._entity.time_updated)

    @property
    def is_persisted(self) -> bool:
        return self._record.id is not None

    def get(self, field: FieldRef) -> typing.Any:
        field = self._check_field(field)
        if field is self._entity.id:
            return self.id
        # membership, not truthiness: a pending update may be None
        if field in self._updates:
            return self._updates[field]
        if field.name in self._record.properties:
            return field.to_object(self._record.properties[field.name])
        return field.default_value()

    def set(self, field: FieldRef, value: typing.Any) -> None:
        field = self._check_field(field)
        if field is self._entity.id:
            raise IllegalArgument("cannot set the id of a record")
        if not field.accepts(value):
            raise TypeMismatch(field, value)
        if value is None and field.mandatory:
            raise MandatoryViolation(field)
        if self.is_persisted and field.read_only:
            raise ReadOnlyViolation(field, value)
        if field.auto_generated:
            raise AutoGeneratedViolation(field, value)
        self._updates[field] = value
        self._remove_if_not_updated(field)

    def has_pending_updates(self) -> bool:
        return len(self._updates) > 0

    @property
    def pending_updates(self) -> typing.Dict[Field, typing.Any]:
        return dict(self._updates)

    def natural_key_as_query_args(self) -> typing.List[QueryArg]:
        fields = self._entity.natural_key
        if not fields:
            raise IllegalUsage(f"entity {self._entity.name} does not declare a natural key")
        return [QueryArg(field, self.get(field)) for field in fields]

    def get_related(self, field: FieldRef) -> typing.Optional["Instance"]:
        field = self._check_field(field)
        if not field.is_foreign_key:
            raise IllegalArgument(f"field {field.full_name} is not a foreign key")
        related_id = self.get(field)
        if related_id is None:
            return None
        return self._entity.related_entity(field).find(related_id)

    # For Entity:
    def _commit(self, field: Field, value: typing.Any) -> None:
        self._record.set_property(field.name, field.to_primitive(value), field.indexed)
        self._updates.pop(field, None)

    # For Entity:
    def _adopt_overlay_from(self, other: "Instance") -> None:
        self._updates = dict(other._updates)
        for field in list(self._updates):
            self._remove_if_not_updated(field)

    # For Entity:
    def _adopt_record_from(self, other: "Instance") -> None:
        self._updates.clear()
        self._record = other._record.copy()

    # For Entity:
    def _hydrate(self, record: StoredRecord) -> None:
        self._updates.clear()
        self._record = record

    # For Entity:
    def _assign_id(self, record_id: int) -> None:
        self._record.id = record_id

    # For Entity:
    @property
    def _stored_record(self) -> StoredRecord:
        return self._record

    def _check_field(self, field: FieldRef) -> Field:
        return self._entity.check_field(field)

    def _remove_if_not_updated(self, field: Field) -> None:
        current = self._record.properties.get(field.name)
        if _same_primitive(field.to_primitive(self._updates[field]), current):
            del self._updates[field]

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if not isinstance(other, Instance):
            return NotImplemented
        return self.is_persisted and self._entity is other._entity and self.id == other.id

    __hash__ = None

    def __repr__(self) -> str:
        values = " ".join(f"[{name}={self.get(field)!r}]" for name, field in self._entity.fields.items())
        return f"{self._entity.instance_name}: {values}"


def _same_primitive(left: typing.Any, right: typing.Any) -> bool:
    # True == 1 == 1.0, but each is stored as a different value
    if type(left) is not type(right):
        return False
    if isinstance(left, list):
        return len(left) == len(right) and all(_same_primitive(a, b) for a, b in zip(left, right))
    if isinstance(left, dict):
        return left.keys() == right.keys() and all(_same_primitive(left[key], right[key]) for key in left)
    return left == right
