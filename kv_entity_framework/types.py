import base64
import enum
import typing
import uuid
from datetime import date, datetime
from decimal import Decimal
from functools import singledispatch


SUPPORTED_TYPES = (str, int, float, bool, datetime, date, Decimal, uuid.UUID, bytes, list, dict, object)


def is_supported(field_type: typing.Type) -> bool:
    return field_type in SUPPORTED_TYPES or _is_enum(field_type)


def _is_enum(field_type: typing.Type) -> bool:
    return isinstance(field_type, type) and issubclass(field_type, enum.Enum)


def is_json_native(value: typing.Any) -> bool:
    if value is None or isinstance(value, (str, int, float, bool)):
        return True
    if isinstance(value, list):
        return all(is_json_native(item) for item in value)
    if isinstance(value, dict):
        return all(isinstance(key, str) and is_json_native(item) for key, item in value.items())
    return False


def is_compatible(value: typing.Any, field_type: typing.Type) -> bool:
    # free-form values are stored unconverted
    if field_type in (object, list, dict):
        return (field_type is object or isinstance(value, field_type)) and is_json_native(value)
    # bool is an int and datetime is a date, neither survives the round trip as the other
    if field_type in (int, float) and isinstance(value, bool):
        return False
    if field_type is date and isinstance(value, datetime):
        return False
    return isinstance(value, field_type)


@singledispatch
def to_primitive(argument: typing.Any) -> typing.Any:
    return argument


@to_primitive.register(uuid.UUID)
def _(argument: uuid.UUID) -> str:
    return str(argument)


@to_primitive.register(Decimal)
def _(argument: Decimal) -> str:
    return str(argument)


@to_primitive.register(date)
def _(argument: date) -> str:
    return argument.isoformat()


@to_primitive.register(bytes)
def _(argument: bytes) -> str:
    return base64.b64encode(argument).decode("ascii")


@to_primitive.register(enum.Enum)
def _(argument: enum.Enum) -> typing.Any:
    return argument.value


@to_primitive.register(list)
@to_primitive.register(tuple)
def _(argument: typing.Sequence) -> list:
    return [to_primitive(item) for item in argument]


@to_primitive.register(dict)
def _(argument: dict) -> dict:
    return {key: to_primitive(value) for key, value in argument.items()}


mapping: typing.Dict[typing.Type, typing.Callable[[typing.Any], typing.Any]] = {
    uuid.UUID: uuid.UUID,
    Decimal: Decimal,
    datetime: datetime.fromisoformat,
    date: date.fromisoformat,
    bytes: lambda argument: base64.b64decode(argument.encode("ascii")),
    float: float,
    list: list,
    dict: dict,
}


def to_object(argument: typing.Any, field_type: typing.Type) -> typing.Any:
    if argument is None:
        return None
    if _is_enum(field_type):
        return field_type(argument)
    try:
        return mapping[field_type](argument)
    except KeyError:
        return argument
