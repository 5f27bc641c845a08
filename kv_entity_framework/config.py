import typing

from kv_entity_framework.entity import Entity
from kv_entity_framework.errors import IllegalUsage
from kv_entity_framework.field import Constraint
from kv_entity_framework.instance import Instance


BASE_URL = "base-url"
ENV = "env"
ALLOWED_ORIGINS = "allowed-origins"


class ConfigValue(Instance):
    @property
    def name(self) -> str:
        return self.get(self.entity.name_field)

    @property
    def value(self) -> typing.Any:
        return self.get(self.entity.value_field)

    @value.setter
    def value(self, value: typing.Any) -> None:
        self.set(self.entity.value_field, value)


class Config(Entity):
    """Name/value configuration records, read once per key and cached for the lifetime of the process."""

    def __init__(self) -> None:
        super().__init__("Config", instance_type=ConfigValue)
        self.name_field = self.add_field(
            "name", str, constraints=(Constraint.MANDATORY, Constraint.UNIQUE, Constraint.READ_ONLY)
        )
        self.value_field = self.add_field("value", object, indexed=False, constraints=(Constraint.MANDATORY,))
        self.set_natural_key(self.name_field)
        self._cache: typing.Dict[str, typing.Optional[ConfigValue]] = {}

    def get_value(self, name: str) -> typing.Any:
        if name in self._cache:
            value = self._cache[name]
        else:
            value = self.find_single(self.name_field.to_arg(name))
            self._cache[name] = value
        if value is None:
            return None
        return value.value

    def put_value(self, name: str, value: typing.Any) -> bool:
        self._cache.pop(name, None)
        return self.save(self.new(name=name, value=value))

    @property
    def base_url(self) -> str:
        base_url = self.get_value(BASE_URL)
        if base_url is None:
            raise IllegalUsage("base URL config property has not been set")
        return base_url

    @property
    def environment(self) -> str:
        environment = self.get_value(ENV)
        if environment is None:
            raise IllegalUsage("environment config property has not been set")
        return environment

    @property
    def allowed_origins(self) -> typing.List[str]:
        allowed_origins = self.get_value(ALLOWED_ORIGINS)
        return [] if allowed_origins is None else list(allowed_origins)
