import enum
import logging
import operator
import typing

import attr

from kv_entity_framework.errors import IllegalArgument, IllegalUsage
from kv_entity_framework.field import Field

if typing.TYPE_CHECKING:
    from kv_entity_framework.entity import Entity
    from kv_entity_framework.instance import Instance


logger = logging.getLogger(__name__)


def _contains(left: typing.Any, right: typing.Any) -> bool:
    return left in right


class Operator(enum.Enum):
    EQUAL = "="
    NOT_EQUAL = "!="
    LESS_THAN = "<"
    LESS_THAN_OR_EQUAL = "<="
    GREATER_THAN = ">"
    GREATER_THAN_OR_EQUAL = ">="
    IN = "IN"

    def evaluate(self, left: typing.Any, right: typing.Any) -> bool:
        if self is Operator.EQUAL:
            return left == right
        if self is Operator.NOT_EQUAL:
            return left != right
        if left is None or right is None:
            return False
        try:
            return _functions[self](left, right)
        except TypeError:
            return False


_functions = {
    Operator.LESS_THAN: operator.lt,
    Operator.LESS_THAN_OR_EQUAL: operator.le,
    Operator.GREATER_THAN: operator.gt,
    Operator.GREATER_THAN_OR_EQUAL: operator.ge,
    Operator.IN: _contains,
}


@attr.s(auto_attribs=True, frozen=True)
class Predicate:
    name: str
    operator: Operator
    value: typing.Any


@attr.s(auto_attribs=True, frozen=True)
class QueryArg:
    field: Field
    value: typing.Any
    operator: Operator = Operator.EQUAL

    def to_predicate(self) -> Predicate:
        if self.operator is Operator.IN:
            return Predicate(self.field.name, self.operator, [self.field.to_primitive(v) for v in self.value])
        return Predicate(self.field.name, self.operator, self.field.to_primitive(self.value))

    def matches(self, instance: "Instance") -> bool:
        return self.operator.evaluate(instance.get(self.field), self.value)

    def __str__(self) -> str:
        return f"{self.field.name} {self.operator.value} {self.value!r}"


class QueryResult:
    def __init__(self, instances: typing.Iterator["Instance"]) -> None:
        self._instances = instances
        self._consumed = False

    def __iter__(self) -> typing.Iterator["Instance"]:
        if self._consumed:
            raise IllegalUsage("query result has already been iterated, run the query again")
        self._consumed = True
        return self._instances

    def list(self) -> typing.List["Instance"]:
        return list(self)


class Query:
    def __init__(self, entity: "Entity") -> None:
        self._entity = entity
        self._args: typing.List[QueryArg] = []

    @property
    def args(self) -> typing.List[QueryArg]:
        return list(self._args)

    def where(self, *args: QueryArg) -> "Query":
        for arg in args:
            if arg is None:
                raise IllegalArgument("query arguments cannot be None")
            self._entity.check_field(arg.field)
            if arg.field is self._entity.id:
                raise IllegalUsage("cannot filter on id in a query, use find or find_single instead")
            if arg.operator is Operator.IN and not isinstance(arg.value, (list, tuple, set, frozenset)):
                raise IllegalArgument(f"IN operator on {arg.field.full_name} expects a collection")
            self._args.append(arg)
        return self

    def run(self) -> QueryResult:
        predicates = [arg.to_predicate() for arg in self._args]
        logger.info("running query: SELECT * FROM %s%s", self._entity.name, where_clause(self._args))
        records = self._entity.store.scan(self._entity.name, predicates)
        return QueryResult(self._entity._create(record) for record in records)


def where_clause(args: typing.Sequence[QueryArg]) -> str:
    if not args:
        return ""
    return " WHERE " + " AND ".join(str(arg) for arg in args)
