import enum
import typing

import attr

from kv_entity_framework import types
from kv_entity_framework.generators import ValueGenerator

if typing.TYPE_CHECKING:
    from kv_entity_framework.query import Operator, QueryArg


class Constraint(enum.Enum):
    MANDATORY = "MANDATORY"
    UNIQUE = "UNIQUE"
    READ_ONLY = "READ_ONLY"
    AUTO_GENERATED = "AUTO_GENERATED"


class OnDelete(enum.Enum):
    CASCADE = "CASCADE"
    RESTRICT = "RESTRICT"
    SET_NULL = "SET_NULL"


# Fields compare by identity: two entities may declare identically shaped fields
@attr.s(auto_attribs=True, frozen=True, eq=False, repr=False)
class Field:
    entity_name: str
    name: str
    type: typing.Type
    indexed: bool = True
    constraints: typing.FrozenSet[Constraint] = attr.ib(default=frozenset(), converter=frozenset)
    default: typing.Optional[ValueGenerator] = None
    references: typing.Optional[str] = None
    on_delete: typing.Optional[OnDelete] = None

    @property
    def full_name(self) -> str:
        return f"{self.entity_name}.{self.name}"

    @property
    def mandatory(self) -> bool:
        return Constraint.MANDATORY in self.constraints

    @property
    def unique(self) -> bool:
        return Constraint.UNIQUE in self.constraints

    @property
    def read_only(self) -> bool:
        return Constraint.READ_ONLY in self.constraints

    @property
    def auto_generated(self) -> bool:
        return Constraint.AUTO_GENERATED in self.constraints

    @property
    def is_foreign_key(self) -> bool:
        return self.references is not None

    def default_value(self) -> typing.Any:
        if self.default is None:
            return None
        return self.default.generate()

    def accepts(self, value: typing.Any) -> bool:
        return value is None or types.is_compatible(value, self.type)

    def to_primitive(self, value: typing.Any) -> typing.Any:
        if value is None:
            return None
        return types.to_primitive(value)

    def to_object(self, primitive: typing.Any) -> typing.Any:
        return types.to_object(primitive, self.type)

    def to_arg(self, value: typing.Any, operator: typing.Optional["Operator"] = None) -> "QueryArg":
        from kv_entity_framework.query import Operator, QueryArg

        return QueryArg(self, value, operator or Operator.EQUAL)

    def __repr__(self) -> str:
        return f"Field({self.full_name})"
