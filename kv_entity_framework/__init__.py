from kv_entity_framework.config import Config, ConfigValue
from kv_entity_framework.constraints import Dependency, UniqueConstraint
from kv_entity_framework.entity import Entity
from kv_entity_framework.errors import (
    AutoGeneratedViolation,
    ConstraintViolation,
    IllegalArgument,
    IllegalUsage,
    IntegrityError,
    KvEntityError,
    MandatoryViolation,
    ReadOnlyViolation,
    ReferentialRestriction,
    TypeMismatch,
    UniqueViolation,
)
from kv_entity_framework.field import Constraint, Field, OnDelete
from kv_entity_framework.generators import Direct, Now, ValueGenerator
from kv_entity_framework.instance import Instance
from kv_entity_framework.query import Operator, QueryArg, QueryResult
from kv_entity_framework.registry import Entities
from kv_entity_framework.settings import Settings, configure_logging
from kv_entity_framework.storages import InMemoryStore, Store, create_store
from kv_entity_framework.storages.sqlalchemy import SqlAlchemyStore
