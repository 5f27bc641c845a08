import abc
import typing
from datetime import datetime, timezone

import attr


T = typing.TypeVar("T")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ValueGenerator(typing.Generic[T], metaclass=abc.ABCMeta):
    @abc.abstractmethod
    def generate(self) -> T:
        pass


@attr.s(auto_attribs=True, frozen=True)
class Direct(ValueGenerator[T]):
    value: T

    def generate(self) -> T:
        return self.value


class Now(ValueGenerator[datetime]):
    def generate(self) -> datetime:
        return utcnow()

    def __repr__(self) -> str:
        return "Now()"
