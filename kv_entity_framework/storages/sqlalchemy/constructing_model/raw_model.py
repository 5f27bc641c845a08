from typing import Dict, Tuple, Type

import attr
import inflection
from sqlalchemy import JSON, Column, Integer


@attr.s(auto_attribs=True)
class RawModel:
    name: str
    bases: Tuple[Type, ...]
    namespace: Dict

    @classmethod
    def for_kind(cls, kind: str, base: Type) -> "RawModel":
        table_name = inflection.pluralize(inflection.underscore(kind))
        raw_model = cls(name=f"{kind}Record", bases=(base,), namespace={"__tablename__": table_name})
        raw_model.append_column("id", Column(Integer, primary_key=True, autoincrement=True))
        raw_model.append_column("properties", Column(JSON, nullable=False))
        raw_model.append_column("unindexed", Column(JSON, nullable=False))
        return raw_model

    def append_column(self, name: str, column: Column) -> None:
        self.namespace[name] = column

    def materialize(self) -> Type:
        return type(self.name, self.bases, self.namespace)
