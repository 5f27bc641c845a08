import logging
from typing import Dict, Iterator, Type

import attr

from kv_entity_framework.entity import Entity
from kv_entity_framework.errors import IllegalArgument, IllegalUsage
from kv_entity_framework.instance import Instance
from kv_entity_framework.storages.base import Store


logger = logging.getLogger(__name__)


@attr.s(auto_attribs=True)
class Entities:
    """Every entity known to the process, bound to the store they persist to.

    Built in two phases: ``register`` every entity first, then ``load`` once to resolve foreign keys
    into dependencies. Entities may therefore reference each other in any declaration order.
    """

    store: Store
    _entities: Dict[str, Entity] = attr.Factory(dict)
    _loaded: bool = False

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    def register(self, entity: Entity) -> Entity:
        if self._loaded:
            raise IllegalUsage(f"cannot register entity {entity.name}, entities have already been loaded")
        if entity.name in self._entities:
            raise IllegalArgument(f"entity {entity.name} has already been registered")
        if entity.instance_type is not Instance and any(
            registered.instance_type is entity.instance_type for registered in self._entities.values()
        ):
            raise IllegalArgument(f"instance type {entity.instance_name} is already used by another entity")
        entity._bind(self)
        self._entities[entity.name] = entity
        logger.debug("registered entity %s", entity.name)
        return entity

    def load(self) -> None:
        if self._loaded:
            return
        for entity in self._entities.values():
            entity._load()
        self._loaded = True
        logger.info("loaded %d entities", len(self._entities))

    def for_instance_type(self, instance_type: Type[Instance]) -> Entity:
        for entity in self._entities.values():
            if entity.instance_type is instance_type:
                return entity
        raise IllegalArgument(f"no entity registered for {instance_type.__name__}")

    def __getitem__(self, name: str) -> Entity:
        return self._entities[name]

    def __contains__(self, name: object) -> bool:
        return name in self._entities

    def __iter__(self) -> Iterator[Entity]:
        return iter(self._entities.values())

    def __len__(self) -> int:
        return len(self._entities)
