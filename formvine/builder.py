# Copyright (c) 2025 The formvine authors. MIT LICENSE.
#
# Formvine Builder
# ================
#
# The schema builder is the entry point for declaring schemas. Custom
# builder methods are registered once, when the builder is created,
# through the extensions mapping. They are bound to that builder
# instance only.


from typing import *
import enum
import types

from .composites import (
    GroupBuilder,
    VineArray,
    VineObject,
    VineRecord,
    VineTuple,
    VineUnionOfTypes,
    UnionBuilder,
)
from .schema import (
    BaseType,
    VineAccepted,
    VineAny,
    VineBoolean,
    VineDate,
    VineEnum,
    VineLiteral,
    VineNumber,
    VineString,
)


class SchemaBuilder:
    """
    Build schema nodes.

        schema = vine.object({
            'username': vine.string(),
            'password': vine.string().min_length(8),
        })
    """

    def __init__(self, extensions: Dict[str, Callable] = None) -> None:
        # Conditional object properties, and unions.
        self.group = GroupBuilder()
        self.union = UnionBuilder()

        self.extensions = dict(extensions or {})
        for name, extension in self.extensions.items():
            if hasattr(self, name):
                raise ValueError(f'Cannot register extension "{name}". The builder already defines it')
            setattr(self, name, types.MethodType(extension, self))

    def string(self) -> VineString:
        return VineString()

    def number(self, strict: bool = False) -> VineNumber:
        return VineNumber({'strict': strict})

    def boolean(self, strict: bool = False) -> VineBoolean:
        return VineBoolean({'strict': strict})

    def accepted(self) -> VineAccepted:
        "A checkbox that must be checked."
        return VineAccepted()

    def date(self, formats: Sequence[str] = None) -> VineDate:
        return VineDate({'formats': list(formats)} if formats else None)

    def literal(self, value: Any) -> VineLiteral:
        "A value matching a pre-defined value."
        return VineLiteral(value)

    def object(self, properties: Dict[str, BaseType]) -> VineObject:
        "A dict with known properties."
        return VineObject(properties)

    def array(self, schema: BaseType) -> VineArray:
        "A list, validating every element."
        return VineArray(schema)

    def tuple(self, schemas: List[BaseType]) -> VineTuple:
        "A list of known length, with a schema per position."
        return VineTuple(schemas)

    def record(self, schema: BaseType) -> VineRecord:
        "A dict with unknown keys, validating every value."
        return VineRecord(schema)

    def enum(self, choices: Union[Sequence, Callable, Type[enum.Enum]]) -> VineEnum:
        "A value from a list of choices, a callable returning them, or an Enum class."
        return VineEnum(choices)

    def any(self) -> VineAny:
        return VineAny()

    def union_of_types(self, schemas: List[BaseType]) -> VineUnionOfTypes:
        "A union of distinct schema types, selected by their type checks."
        return VineUnionOfTypes(schemas)


__all__ = [
    'SchemaBuilder',
]
