import typing

import attr

from kv_entity_framework.field import Field
from kv_entity_framework.query import QueryArg, QueryResult

if typing.TYPE_CHECKING:
    from kv_entity_framework.entity import Entity
    from kv_entity_framework.instance import Instance


@attr.s(auto_attribs=True, frozen=True, eq=False)
class UniqueConstraint:
    fields: typing.Tuple[Field, ...] = attr.ib(converter=tuple)

    @fields.validator
    def _check_fields(self, attribute: attr.Attribute, value: typing.Tuple[Field, ...]) -> None:
        if len(value) < 2:
            raise ValueError("unique constraints must have more than one field")

    def intersects(self, fields: typing.AbstractSet[Field]) -> bool:
        return any(field in fields for field in self.fields)

    def to_args(self, values: typing.Mapping[Field, typing.Any]) -> typing.List[QueryArg]:
        return [QueryArg(field, values[field]) for field in self.fields]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, UniqueConstraint):
            return NotImplemented
        return frozenset(self.fields) == frozenset(other.fields)

    def __hash__(self) -> int:
        return hash(frozenset(self.fields))

    def __str__(self) -> str:
        return "(" + ", ".join(field.name for field in self.fields) + ")"


@attr.s(auto_attribs=True, frozen=True)
class Dependency:
    entity: "Entity"
    foreign_key: Field

    def find_instances_related_to(self, instance: "Instance") -> QueryResult:
        return self.entity.find_where(QueryArg(self.foreign_key, instance.id))
