import logging
from datetime import datetime, timezone

from kv_entity_framework import (
    Config,
    Constraint,
    Entities,
    Entity,
    OnDelete,
    Operator,
    ReferentialRestriction,
    Settings,
    UniqueViolation,
    configure_logging,
    create_store,
)


logging.basicConfig()
settings = Settings()
configure_logging(settings)
entities = Entities(create_store(settings))

users = Entity("User")
email = users.add_field("email", str, constraints=(Constraint.MANDATORY, Constraint.UNIQUE))
name = users.add_field("name", str, constraints=(Constraint.MANDATORY,))
users.set_natural_key(email)

posts = Entity("Post")
title = posts.add_field("title", str, constraints=(Constraint.MANDATORY,))
published_at = posts.add_field("published_at", datetime)
posts.add_foreign_key("author", users, OnDelete.CASCADE)

pins = Entity("Pin")
pins.add_foreign_key("post", posts, OnDelete.RESTRICT)

config = Config()
for entity in (users, posts, pins, config):
    entities.register(entity)
entities.load()

config.put_value("env", "example")

alice = users.new(email="alice@example.com", name="Alice")
users.insert(alice)
try:
    users.insert(users.new(email="alice@example.com", name="Impostor"))
except UniqueViolation as e:
    print(e)

for day in range(1, 4):
    posts.insert(
        posts.new(title=f"Day {day}", author=alice.id, published_at=datetime(2024, 1, day, tzinfo=timezone.utc))
    )

since = datetime(2024, 1, 2, tzinfo=timezone.utc)
recent = posts.find_where(published_at.to_arg(since, Operator.GREATER_THAN_OR_EQUAL))
print([post.get(title) for post in recent])

renamed = users.new(email="alice@example.com", name="Alice Liddell")
users.save(renamed)
print(users.find(alice.id))

first_post = posts.find_single(title.to_arg("Day 1"))
pin = pins.new(post=first_post.id)
pins.insert(pin)
try:
    users.delete(alice)
except ReferentialRestriction as e:
    print(e)

pins.delete(pin)
users.delete(alice)
print(posts.find_all().list(), config.environment)
