from datetime import datetime, timezone

import pytest
from sqlalchemy import inspect
from sqlalchemy.orm import Session

from kv_entity_framework import Constraint, Entities, Entity, OnDelete, UniqueViolation
from kv_entity_framework.query import Operator, Predicate
from kv_entity_framework.storages import Key, StoredRecord
from kv_entity_framework.storages.sqlalchemy import SqlAlchemyStore


def test_tables_are_named_after_kinds(sa_store: SqlAlchemyStore, session: Session) -> None:
    model = sa_store.model_for("BlogPost")

    assert model.__tablename__ == "blog_posts"
    assert inspect(session.connection()).has_table("blog_posts")
    assert sa_store.model_for("BlogPost") is model


def test_put_get_delete(sa_store: SqlAlchemyStore) -> None:
    record = StoredRecord("User", properties={"name": "A", "bio": "x"}, unindexed={"bio"})

    record_id = sa_store.put(record)
    sa_store.put(StoredRecord("User", record_id, {"name": "B", "bio": "x"}, {"bio"}))

    fetched = sa_store.get("User", record_id)
    assert fetched == StoredRecord("User", record_id, {"name": "B", "bio": "x"}, {"bio"})

    sa_store.delete(Key("User", record_id))
    sa_store.delete(Key("User", record_id))
    assert sa_store.get("User", record_id) is None


def test_ids_start_at_one_per_kind(sa_store: SqlAlchemyStore) -> None:
    assert sa_store.put(StoredRecord("User")) == 1
    assert sa_store.put(StoredRecord("User")) == 2
    assert sa_store.put(StoredRecord("Post")) == 1


def test_scan(sa_store: SqlAlchemyStore) -> None:
    for age in (40, 10, 25):
        sa_store.put(StoredRecord("User", properties={"age": age}))

    records = sa_store.scan("User", [Predicate("age", Operator.GREATER_THAN, 18)])

    assert [record.properties["age"] for record in records] == [40, 25]


def test_user_scenario_against_database(sa_store: SqlAlchemyStore) -> None:
    entities = Entities(sa_store)
    users = Entity("User")
    users.add_field("email", str, constraints=(Constraint.MANDATORY, Constraint.UNIQUE))
    users.add_field("name", str, constraints=(Constraint.MANDATORY,))
    users.set_natural_key("email")
    posts = Entity("Post")
    posts.add_field("published_at", datetime)
    posts.add_foreign_key("author", "User", OnDelete.CASCADE)
    entities.register(users)
    entities.register(posts)
    entities.load()

    user = users.new(email="a@x.com", name="A")
    users.insert(user)
    assert user.id == 1
    with pytest.raises(UniqueViolation):
        users.insert(users.new(email="a@x.com", name="B"))

    published_at = datetime(2024, 3, 1, 12, tzinfo=timezone.utc)
    post = posts.new(author=user.id, published_at=published_at)
    posts.insert(post)
    assert posts.find(post.id).get("published_at") == published_at

    user.set("name", "A2")
    assert users.update(user)
    assert users.find(1).get("name") == "A2"

    users.delete(user)
    assert users.find(1) is None
    assert posts.find(post.id) is None
