import pytest
from _pytest.config.argparsing import Parser

from kv_entity_framework import Constraint, Entities, Entity, InMemoryStore


def pytest_addoption(parser: Parser) -> None:
    parser.addoption("--sqlalchemy-url", action="store", default="sqlite://")


@pytest.fixture()
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture()
def entities(store: InMemoryStore) -> Entities:
    return Entities(store)


@pytest.fixture()
def users(entities: Entities) -> Entity:
    users = Entity("User")
    users.add_field("email", str, constraints=(Constraint.MANDATORY, Constraint.UNIQUE))
    users.add_field("name", str, constraints=(Constraint.MANDATORY,))
    users.add_field("age", int)
    users.add_field("nickname", str, default="anonymous")
    users.set_natural_key("email")
    return entities.register(users)


@pytest.fixture()
def loaded_users(entities: Entities, users: Entity) -> Entity:
    entities.load()
    return users
