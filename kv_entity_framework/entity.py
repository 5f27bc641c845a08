"""Schema and repository for one record type.

Constraints are enforced client side against a store that offers none of them. Uniqueness and dependency
checks are check-then-act: two concurrent writers may both pass a uniqueness check and both succeed.
Callers needing stronger guarantees must serialize writes externally.
"""
import logging
import typing
from collections import OrderedDict
from datetime import datetime
from types import MappingProxyType

from kv_entity_framework import generators, types
from kv_entity_framework.constraints import Dependency, UniqueConstraint
from kv_entity_framework.errors import (
    IllegalArgument,
    IllegalUsage,
    IntegrityError,
    MandatoryViolation,
    ReadOnlyViolation,
    ReferentialRestriction,
    UniqueViolation,
)
from kv_entity_framework.field import Constraint, Field, OnDelete
from kv_entity_framework.generators import Direct, Now, ValueGenerator
from kv_entity_framework.instance import FieldRef, Instance
from kv_entity_framework.query import Operator, Query, QueryArg, QueryResult, where_clause
from kv_entity_framework.storages.base import Key, Store, StoredRecord

if typing.TYPE_CHECKING:
    from kv_entity_framework.registry import Entities


logger = logging.getLogger(__name__)

InstanceFactory = typing.Callable[["Entity"], Instance]


class Entity:
    def __init__(
        self, name: str, instance_type: InstanceFactory = Instance, instance_name: typing.Optional[str] = None
    ) -> None:
        if not name:
            raise IllegalArgument("entity name cannot be empty")
        self.name = name
        self.instance_type = instance_type
        self.instance_name = instance_name or (
            name if instance_type is Instance else getattr(instance_type, "__name__", name)
        )
        self._fields: typing.Dict[str, Field] = OrderedDict()
        self._dependencies: typing.List[Dependency] = []
        self._unique_constraints: typing.List[UniqueConstraint] = []
        self._natural_key: typing.Tuple[Field, ...] = ()
        self._related_entities: typing.Dict[Field, "Entity"] = {}
        self._entities: typing.Optional["Entities"] = None
        self._loaded = False

        self.id = self._add(
            Field(name, "id", int, True, {Constraint.MANDATORY, Constraint.UNIQUE, Constraint.AUTO_GENERATED})
        )
        self.time_created = self._add(
            Field(name, "time_created", datetime, True, {Constraint.MANDATORY, Constraint.READ_ONLY}, Now())
        )
        self.time_updated = self._add(
            Field(name, "time_updated", datetime, True, {Constraint.MANDATORY, Constraint.READ_ONLY}, Now())
        )

    # Data structure methods:
    @property
    def fields(self) -> typing.Mapping[str, Field]:
        return MappingProxyType(self._fields)

    @property
    def dependencies(self) -> typing.Tuple[Dependency, ...]:
        return tuple(self._dependencies)

    @property
    def unique_constraints(self) -> typing.Tuple[UniqueConstraint, ...]:
        return tuple(self._unique_constraints)

    @property
    def natural_key(self) -> typing.Tuple[Field, ...]:
        return self._natural_key

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def store(self) -> Store:
        self._check_loaded()
        return self._entities.store

    def add_field(
        self,
        name: str,
        type_: typing.Type,
        indexed: bool = True,
        default: typing.Any = None,
        constraints: typing.Iterable[Constraint] = (),
    ) -> Field:
        constraints = frozenset(constraints)
        if Constraint.AUTO_GENERATED in constraints:
            raise IntegrityError(f"field {name} cannot be auto-generated, only id is generated by the store")
        if Constraint.UNIQUE in constraints and not indexed:
            raise IllegalArgument(f"unique field {name} must be indexed")
        if not types.is_supported(type_):
            raise TypeError(f"Unsupported type - {type_}")
        if default is not None and not isinstance(default, ValueGenerator):
            if not types.is_compatible(default, type_):
                raise IllegalArgument(f"default value {default!r} is not a {type_.__name__}")
            default = Direct(default)
        return self._add(Field(self.name, name, type_, indexed, constraints, default))

    def add_foreign_key(
        self,
        name: str,
        references: typing.Union[str, "Entity"],
        on_delete: OnDelete,
        constraints: typing.Iterable[Constraint] = (),
    ) -> Field:
        if not isinstance(on_delete, OnDelete):
            raise IllegalArgument(f"unknown on-delete policy for foreign key {name}: {on_delete!r}")
        constraints = frozenset(constraints)
        if Constraint.AUTO_GENERATED in constraints:
            raise IntegrityError(f"foreign key {name} cannot be auto-generated")
        target = references.name if isinstance(references, Entity) else references
        return self._add(Field(self.name, name, int, True, constraints, None, target, on_delete))

    def add_unique_constraint(self, *fields: FieldRef) -> UniqueConstraint:
        self._check_not_loaded()
        resolved = [self.check_field(field) for field in fields]
        if not resolved:
            raise IllegalArgument("a unique constraint needs at least two fields")
        if len(set(resolved)) != len(resolved):
            raise IllegalArgument(f"duplicate fields in unique constraint {resolved}")
        self._check_indexed(resolved, "unique constraint")
        if len(resolved) == 1:
            if resolved[0].unique:
                raise IllegalArgument(f"field {resolved[0].full_name} is unique, do not add it as a constraint")
            raise IllegalArgument("constraints must have more than one field (use UNIQUE instead)")
        constraint = UniqueConstraint(resolved)
        if constraint in self._unique_constraints:
            raise IllegalArgument(f"a unique constraint with fields {constraint} already exists")
        self._unique_constraints.append(constraint)
        return constraint

    def set_natural_key(self, *fields: FieldRef) -> None:
        self._check_not_loaded()
        if not fields:
            raise IllegalArgument("a natural key needs at least one field")
        resolved = tuple(self.check_field(field) for field in fields)
        self._check_indexed(resolved, "natural key")
        self._natural_key = resolved

    def check_field(self, field: FieldRef) -> Field:
        if isinstance(field, str):
            resolved = self._fields.get(field)
            if resolved is None:
                raise IntegrityError(f"field '{field}' cannot be used in entity {self.name}")
            return resolved
        if self._fields.get(field.name) is not field:
            raise IntegrityError(f"field {field.full_name} cannot be used in entity {self.name}")
        return field

    def related_entity(self, field: FieldRef) -> "Entity":
        self._check_loaded()
        field = self.check_field(field)
        try:
            return self._related_entities[field]
        except KeyError:
            raise IllegalArgument(f"field {field.full_name} is not a foreign key") from None

    def new(self, **values: typing.Any) -> Instance:
        instance = self.instance_type(self)
        for name, value in values.items():
            instance.set(name, value)
        return instance

    # Data management methods:
    def insert(self, instance: Instance) -> None:
        self._check_instance(instance)
        self._check_loaded()
        if instance.is_persisted:
            raise IllegalUsage(f"{self.instance_name} has already been persisted")
        # Snapshot of updates to check constraints:
        updated_fields = set(instance.pending_updates)
        # Data type, read-only and auto-generated were validated on Instance.set.
        # Mandatory is checked again to catch omitted fields.
        values: typing.Dict[Field, typing.Any] = {}
        # one timestamp for every Now default of this record
        now = generators.utcnow()
        for field in self._fields.values():
            if field is self.id:
                continue
            if field.auto_generated:
                raise IntegrityError(f"no generator available for auto-generated field {field.full_name}")
            if isinstance(field.default, Now) and field not in updated_fields:
                value = now
            else:
                # Instance.get falls back on the default generator
                value = instance.get(field)
            if value is None and field.mandatory:
                raise MandatoryViolation(field)
            if value is not None and field.unique:
                self._check_unique(instance, field, value, insert=True)
            values[field] = value
        self._check_unique_constraints(instance, values, updated_fields, insert=True)
        for field, value in values.items():
            instance._commit(field, value)
        logger.info("inserting instance [%r]", instance)
        self._put(instance)
        logger.info("persisted with id %s", instance.id)

    def update(self, instance: Instance) -> bool:
        self._check_instance(instance)
        self._check_loaded()
        self._check_persisted(instance)
        if not instance.has_pending_updates():
            return False
        updates = instance.pending_updates
        # Only uniqueness is left to validate, everything else was checked on Instance.set
        for field, value in updates.items():
            if field.unique and value is not None:
                self._check_unique(instance, field, value, insert=False)
        values = {field: instance.get(field) for field in self._fields.values()}
        self._check_unique_constraints(instance, values, set(updates), insert=False)
        for field, value in updates.items():
            instance._commit(field, value)
        instance._commit(self.time_updated, generators.utcnow())
        logger.info("updating instance [%r]", instance)
        self._put(instance)
        return True

    def save(self, instance: Instance) -> bool:
        """Insert ``instance``, or update the record sharing its natural key.

        Read-only fields of an existing record cannot be changed through ``save``. The stored snapshot and id
        are always carried back to ``instance``.
        """
        self._check_instance(instance)
        self._check_loaded()
        existing = self.find_single(*instance.natural_key_as_query_args())
        if existing is None:
            self.insert(instance)
            return True
        existing._adopt_overlay_from(instance)
        for field, value in existing.pending_updates.items():
            if field.read_only:
                raise ReadOnlyViolation(field, value)
        updated = self.update(existing)
        # Carry the id over so the caller can discover it
        instance._adopt_record_from(existing)
        return updated

    def delete(self, instance: Instance) -> None:
        self._check_instance(instance)
        self._check_loaded()
        self._check_persisted(instance)
        self._check_restrictions(instance, set())
        self._delete(instance, set())

    def bulk_delete_where(self, *args: QueryArg) -> int:
        """Delete every record matching ``args`` without processing dependencies.

        Dependents with CASCADE, RESTRICT or SET_NULL foreign keys into the deleted records are left untouched.
        Use ``delete`` when referential integrity matters.
        """
        keys = [instance._stored_record.key for instance in self.find_where(*args)]
        logger.info("running query: DELETE FROM %s%s", self.name, where_clause(args))
        for key in keys:
            self.store.delete(key)
        return len(keys)

    def bulk_delete_all(self) -> int:
        return self.bulk_delete_where()

    def find(self, record_id: int) -> typing.Optional[Instance]:
        if not isinstance(record_id, int) or isinstance(record_id, bool) or record_id < 1:
            raise IllegalArgument(f"invalid id: {record_id!r}")
        self._check_loaded()
        # TODO: cache records retrieved by id, foreign key lookups fetch the same records repeatedly
        logger.info("running query: SELECT * FROM %s WHERE id = %s", self.name, record_id)
        record = self.store.get(self.name, record_id)
        logger.debug("%s %s", self.instance_name, "not found" if record is None else "found")
        if record is None:
            return None
        return self._create(record)

    def find_single(self, *args: QueryArg) -> typing.Optional[Instance]:
        if not args:
            raise IllegalArgument("find_single needs at least one argument")
        if any(arg is None for arg in args):
            raise IllegalArgument("query arguments cannot be None")
        self._check_loaded()
        id_arg = next((arg for arg in args if arg.field is self.id), None)
        if id_arg is not None:
            if id_arg.operator is not Operator.EQUAL:
                raise IllegalArgument(f"id can only be matched for equality, got {id_arg}")
            # The store cannot combine a point lookup with filters, compare the rest in memory
            instance = self.find(id_arg.value)
            if instance is None:
                return None
            for arg in args:
                if arg is not id_arg and not arg.matches(instance):
                    logger.debug("field %s does not match", arg.field.full_name)
                    return None
            return instance
        results = self.find_where(*args).list()
        if not results:
            return None
        if len(results) == 1:
            return results[0]
        raise IntegrityError(f"expected 1 {self.instance_name}, found {len(results)}")

    def find_where(self, *args: QueryArg) -> QueryResult:
        self._check_loaded()
        return Query(self).where(*args).run()

    def find_all(self) -> QueryResult:
        return self.find_where()

    # For Entities:
    def _bind(self, entities: "Entities") -> None:
        self._entities = entities

    # For Entities:
    def _load(self) -> None:
        if self._loaded:
            return
        logger.info("loading entity %s", self.name)
        for field in self._fields.values():
            if field.is_foreign_key:
                if field.references not in self._entities:
                    raise IllegalUsage(f"foreign key {field.full_name} references unknown entity {field.references}")
                foreign_entity = self._entities[field.references]
                self._related_entities[field] = foreign_entity
                foreign_entity._dependencies.append(Dependency(self, field))
                logger.info("created dependency between %s and %s", foreign_entity.name, self.name)
        self._add_natural_key_constraint()
        self._loaded = True

    # For Query and Instance:
    def _create(self, record: StoredRecord) -> Instance:
        instance = self.instance_type(self)
        instance._hydrate(record)
        return instance

    def _add(self, field: Field) -> Field:
        self._check_not_loaded()
        if not field.name:
            raise IllegalArgument("field name cannot be empty")
        if field.name in self._fields:
            raise IllegalArgument(f"field named '{field.name}' already exists")
        self._fields[field.name] = field
        return field

    def _add_natural_key_constraint(self) -> None:
        if len(self._natural_key) == 1:
            if not self._natural_key[0].unique:
                raise IllegalUsage(
                    f"field {self._natural_key[0].full_name} cannot be a natural key because it is not unique"
                )
        elif len(self._natural_key) > 1:
            constraint = UniqueConstraint(self._natural_key)
            if constraint not in self._unique_constraints:
                self._unique_constraints.append(constraint)

    def _delete(self, instance: Instance, deleting: typing.Set[Key]) -> None:
        key = instance._stored_record.key
        deleting.add(key)
        logger.info("deleting %s with id %s", self.instance_name, instance.id)
        for dependency in self._dependencies:
            logger.info("found dependency in %s", dependency.entity.name)
            foreign_key = dependency.foreign_key
            for related in dependency.find_instances_related_to(instance).list():
                if related._stored_record.key in deleting:
                    continue
                if foreign_key.on_delete is OnDelete.CASCADE:
                    dependency.entity._delete(related, deleting)
                elif foreign_key.on_delete is OnDelete.RESTRICT:
                    raise ReferentialRestriction(related, instance)
                elif foreign_key.on_delete is OnDelete.SET_NULL:
                    related.set(foreign_key, None)
                    dependency.entity.update(related)
                else:
                    raise IntegrityError(f"unknown on-delete policy {foreign_key.on_delete!r}")
        logger.info("running query: DELETE FROM %s WHERE id = %s", self.name, instance.id)
        self.store.delete(key)

    def _check_restrictions(self, instance: Instance, visited: typing.Set[Key]) -> None:
        # Read-only pass: fail before mutating anything when a RESTRICT dependent is reachable
        visited.add(instance._stored_record.key)
        for dependency in self._dependencies:
            on_delete = dependency.foreign_key.on_delete
            if on_delete not in (OnDelete.CASCADE, OnDelete.RESTRICT):
                continue
            for related in dependency.find_instances_related_to(instance).list():
                if related._stored_record.key in visited:
                    continue
                if on_delete is OnDelete.RESTRICT:
                    raise ReferentialRestriction(related, instance)
                dependency.entity._check_restrictions(related, visited)

    def _put(self, instance: Instance) -> None:
        if instance.has_pending_updates():
            raise IntegrityError(f"{self.instance_name} has uncommitted updates")
        instance._assign_id(self.store.put(instance._stored_record))

    # TODO: performance, the conflicting record is fetched once per field and once per constraint
    def _check_unique(self, instance: Instance, field: Field, value: typing.Any, insert: bool) -> None:
        existing = self.find_single(QueryArg(field, value))
        if existing is not None and (insert or existing != instance):
            raise UniqueViolation(field, value)

    def _check_unique_constraints(
        self,
        instance: Instance,
        values: typing.Mapping[Field, typing.Any],
        updated_fields: typing.AbstractSet[Field],
        insert: bool,
    ) -> None:
        for constraint in self._unique_constraints:
            if not constraint.intersects(updated_fields):
                continue
            existing = self.find_single(*constraint.to_args(values))
            if existing is not None and (insert or existing != instance):
                raise UniqueViolation(constraint=constraint)

    def _check_instance(self, instance: Instance) -> None:
        if instance is None:
            raise IllegalArgument("instance cannot be None")
        if instance.entity is not self:
            raise IllegalArgument(f"{instance.entity.instance_name} cannot be handled by entity {self.name}")

    def _check_indexed(self, fields: typing.Iterable[Field], usage: str) -> None:
        for field in fields:
            if not field.indexed:
                raise IllegalArgument(f"field {field.full_name} must be indexed to be part of a {usage}")

    def _check_loaded(self) -> None:
        if self._entities is None or not self._loaded:
            raise IllegalUsage(f"entity {self.name} has not been loaded yet")

    def _check_not_loaded(self) -> None:
        if self._loaded:
            raise IllegalUsage(f"entity {self.name} has already been loaded, its schema cannot change")

    def _check_persisted(self, instance: Instance) -> None:
        if not instance.is_persisted:
            raise IllegalUsage(f"{self.instance_name} has not been persisted")

    def __repr__(self) -> str:
        return f"Entity({self.name})"
