from datetime import date, datetime
from decimal import Decimal

import pytest

from kv_entity_framework import (
    AutoGeneratedViolation,
    Constraint,
    Entities,
    Entity,
    Field,
    IllegalArgument,
    IllegalUsage,
    Instance,
    IntegrityError,
    MandatoryViolation,
    QueryArg,
    ReadOnlyViolation,
    TypeMismatch,
)


def test_new_instance_is_transient(loaded_users: Entity) -> None:
    user = loaded_users.new()

    assert not user.is_persisted
    assert user.id is None
    assert not user.has_pending_updates()


def test_set_records_pending_update(loaded_users: Entity) -> None:
    user = loaded_users.new()

    user.set("email", "a@x.com")

    assert user.has_pending_updates()
    assert user.get("email") == "a@x.com"
    assert user.pending_updates == {loaded_users.fields["email"]: "a@x.com"}


def test_get_falls_back_on_default_without_materializing_it(loaded_users: Entity) -> None:
    user = loaded_users.new()

    assert user.get("nickname") == "anonymous"
    assert user.get("age") is None
    assert not user.has_pending_updates()


def test_set_accepts_field_objects(loaded_users: Entity) -> None:
    user = loaded_users.new()

    user.set(loaded_users.fields["age"], 30)

    assert user.get("age") == 30


def test_set_rejects_field_of_another_entity(entities: Entities, users: Entity) -> None:
    books = entities.register(Entity("Book"))
    title = books.add_field("title", str)
    entities.load()

    with pytest.raises(IntegrityError):
        users.new().set(title, "Dune")
    with pytest.raises(IntegrityError):
        users.new().set("title", "Dune")


def test_set_rejects_id(loaded_users: Entity) -> None:
    with pytest.raises(IllegalArgument):
        loaded_users.new().set("id", 7)


@pytest.mark.parametrize("field_name, value", [("age", "thirty"), ("age", True), ("email", 12)])
def test_set_rejects_incompatible_type(loaded_users: Entity, field_name: str, value: object) -> None:
    with pytest.raises(TypeMismatch):
        loaded_users.new().set(field_name, value)


@pytest.mark.parametrize("field_name", ["email", "name", "time_created"])
def test_set_rejects_null_for_mandatory_field(loaded_users: Entity, field_name: str) -> None:
    with pytest.raises(MandatoryViolation):
        loaded_users.new().set(field_name, None)


def test_read_only_field_can_be_set_before_persisting(loaded_users: Entity) -> None:
    user = loaded_users.new(email="a@x.com", name="A")
    created = user.get("time_created")

    user.set("time_created", created)

    assert user.get("time_created") == created


def test_read_only_field_cannot_be_set_once_persisted(loaded_users: Entity) -> None:
    user = loaded_users.new(email="a@x.com", name="A")
    loaded_users.insert(user)

    with pytest.raises(ReadOnlyViolation):
        user.set("time_created", user.time_created)


def test_auto_generated_field_cannot_be_set(entities: Entities) -> None:
    tickets = Entity("Ticket")
    # only reachable by bypassing add_field, which rejects auto-generated fields
    serial = tickets._add(Field("Ticket", "serial", int, constraints={Constraint.AUTO_GENERATED}))
    entities.register(tickets)
    entities.load()

    with pytest.raises(AutoGeneratedViolation):
        tickets.new().set(serial, 1)


def test_setting_persisted_value_is_not_an_update(loaded_users: Entity) -> None:
    user = loaded_users.new(email="a@x.com", name="A")
    loaded_users.insert(user)

    user.set("name", "A")

    assert not user.has_pending_updates()


def test_setting_value_back_collapses_pending_update(loaded_users: Entity) -> None:
    user = loaded_users.new(email="a@x.com", name="A", age=20)
    loaded_users.insert(user)

    user.set("age", 21)
    assert user.has_pending_updates()
    user.set("age", 20)

    assert not user.has_pending_updates()
    assert user.get("age") == 20


def test_setting_null_keeps_pending_null(loaded_users: Entity) -> None:
    user = loaded_users.new(email="a@x.com", name="A", age=20)
    loaded_users.insert(user)

    user.set("age", None)

    assert user.has_pending_updates()
    assert user.get("age") is None


def test_natural_key_as_query_args(loaded_users: Entity) -> None:
    user = loaded_users.new(email="a@x.com")

    assert user.natural_key_as_query_args() == [QueryArg(loaded_users.fields["email"], "a@x.com")]


def test_natural_key_is_required_for_query_args(entities: Entities) -> None:
    notes = entities.register(Entity("Note"))
    entities.load()

    with pytest.raises(IllegalUsage):
        notes.new().natural_key_as_query_args()


def test_instances_are_equal_when_they_share_identity(loaded_users: Entity) -> None:
    user = loaded_users.new(email="a@x.com", name="A")
    loaded_users.insert(user)

    assert loaded_users.find(user.id) == user
    assert loaded_users.new(email="a@x.com", name="A") != loaded_users.new(email="a@x.com", name="A")


def test_repr_lists_fields(loaded_users: Entity) -> None:
    user = loaded_users.new(email="a@x.com", name="A")

    assert repr(user).startswith("User: [id=None]")
    assert "[email='a@x.com']" in repr(user)


class Person(Instance):
    @property
    def email(self) -> str:
        return self.get("email")


def test_records_are_built_by_registered_factory(entities: Entities) -> None:
    people = Entity("Person", instance_type=Person)
    people.add_field("email", str, constraints=(Constraint.UNIQUE,))
    entities.register(people)
    entities.load()
    people.insert(people.new(email="p@x.com"))

    [person] = people.find_all()

    assert isinstance(person, Person)
    assert person.email == "p@x.com"
    assert people.instance_name == "Person"


@pytest.fixture()
def documents(entities: Entities) -> Entity:
    documents = Entity("Document")
    documents.add_field("tags", list)
    documents.add_field("blob", object, indexed=False)
    entities.register(documents)
    entities.load()
    return documents


@pytest.mark.parametrize(
    "field_name, value",
    [("tags", [Decimal("1.5"), date(2020, 1, 1)]), ("blob", {1: "one"}), ("blob", datetime(2020, 1, 1))],
)
def test_free_form_fields_only_accept_json_values(documents: Entity, field_name: str, value: object) -> None:
    with pytest.raises(TypeMismatch):
        documents.new().set(field_name, value)


@pytest.mark.parametrize("stored, value", [(1, True), (1, 1.0), (0, False), ([1], [1.0]), ({"a": 1}, {"a": True})])
def test_equal_values_of_another_type_are_updates(documents: Entity, stored: object, value: object) -> None:
    document = documents.new(blob=stored)
    documents.insert(document)

    document.set("blob", value)

    assert document.has_pending_updates()
    assert documents.update(document)
    assert type(documents.find(document.id).get("blob")) is type(value)
