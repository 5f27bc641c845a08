import typing

if typing.TYPE_CHECKING:
    from kv_entity_framework.constraints import UniqueConstraint
    from kv_entity_framework.field import Field
    from kv_entity_framework.instance import Instance


class KvEntityError(Exception):
    code = "KV_ENTITY_ERROR"


class IllegalUsage(KvEntityError):
    code = "ILLEGAL_USAGE"


class IllegalArgument(IllegalUsage, ValueError):
    code = "ILLEGAL_ARGUMENT"


class IntegrityError(KvEntityError):
    code = "INTEGRITY_ERROR"


class ConstraintViolation(KvEntityError, ValueError):
    code = "CONSTRAINT_VIOLATION"

    def __init__(self, message: str, field: typing.Optional["Field"] = None, value: typing.Any = None) -> None:
        super().__init__(message)
        self.field = field
        self.value = value


class MandatoryViolation(ConstraintViolation):
    code = "MANDATORY_VIOLATION"

    def __init__(self, field: "Field") -> None:
        super().__init__(f"mandatory constraint: field '{field.name}' cannot be empty", field)


class ReadOnlyViolation(ConstraintViolation):
    code = "READ_ONLY_VIOLATION"

    def __init__(self, field: "Field", value: typing.Any) -> None:
        super().__init__(f"read-only constraint: field '{field.name}' cannot be set", field, value)


class AutoGeneratedViolation(ConstraintViolation):
    code = "AUTO_GENERATED_VIOLATION"

    def __init__(self, field: "Field", value: typing.Any) -> None:
        super().__init__(f"auto-generated constraint: field '{field.name}' cannot be set", field, value)


class TypeMismatch(ConstraintViolation, TypeError):
    code = "TYPE_MISMATCH"

    def __init__(self, field: "Field", value: typing.Any) -> None:
        super().__init__(
            f"field '{field.name}' expects {field.type.__name__}, got {type(value).__name__}", field, value
        )


class UniqueViolation(ConstraintViolation):
    code = "UNIQUE_VIOLATION"

    def __init__(
        self,
        field: typing.Optional["Field"] = None,
        value: typing.Any = None,
        constraint: typing.Optional["UniqueConstraint"] = None,
    ) -> None:
        if constraint is not None:
            message = f"unique constraint: a record with the same values for {constraint} already exists"
        else:
            message = f"unique constraint: a record with {field.name} = {value!r} already exists"
        super().__init__(message, field, value)
        self.constraint = constraint


class ReferentialRestriction(KvEntityError):
    code = "REFERENTIAL_RESTRICTION"

    def __init__(self, related: "Instance", referenced: "Instance") -> None:
        super().__init__(
            f"{referenced.entity.name} with id {referenced.id} cannot be deleted because it is referenced "
            f"by {related.entity.name} with id {related.id}"
        )
        self.related = related
        self.referenced = referenced
