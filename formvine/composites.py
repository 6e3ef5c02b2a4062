# Copyright (c) 2025 The formvine authors. MIT LICENSE.
#
# Formvine Composites
# ===================
#
# Schema nodes that contain other schema nodes. Compiling a composite
# compiles its children in declaration order with the same refs store,
# so ref ids stay unique across the whole schema.
#
# - VineObject: known properties, unknown properties, merged groups.
# - ObjectGroup: conditional sets of properties merged into an object.
# - VineArray, VineTuple, VineRecord: list and dict containers.
# - VineUnion, VineUnionOfTypes: first matching branch wins.


from typing import *
import copy

from .helpers import camelcase, isarray, isobject
from .reporters import messages
from .rules import create_rule
from .schema import (
    BaseType,
    S_array,
    S_group,
    S_object,
    S_record,
    S_tuple,
    S_union,
)


# Type checks
# ===========

def validate_OBJECT(value, _options, field):
    if not isobject(value):
        field.report(messages['object'], 'object')


def validate_ARRAY(value, _options, field):
    if not isarray(value):
        field.report(messages['array'], 'array')


def validate_TUPLE(value, _options, field):
    if not isarray(value):
        field.report(messages['tuple'], 'tuple')


def validate_RECORD(value, _options, field):
    if not isobject(value):
        field.report(messages['record'], 'record')


object_rule = create_rule(validate_OBJECT, name='object')
array_rule = create_rule(validate_ARRAY, name='array')
tuple_rule = create_rule(validate_TUPLE, name='tuple')
record_rule = create_rule(validate_RECORD, name='record')


# Container rules
# ===============
# These also run with bail disabled, after a failed type check,
# so they ignore values of the wrong kind.

def validate_items_min_length(value, options, field):
    if isinstance(value, (list, dict)) and len(value) < options['min']:
        rule = options['prefix'] + '.min_length'
        field.report(messages[rule], rule, {'min': options['min']})


def validate_items_max_length(value, options, field):
    if isinstance(value, (list, dict)) and len(value) > options['max']:
        rule = options['prefix'] + '.max_length'
        field.report(messages[rule], rule, {'max': options['max']})


def validate_items_fixed_length(value, options, field):
    if isinstance(value, (list, dict)) and len(value) != options['size']:
        rule = options['prefix'] + '.fixed_length'
        field.report(messages[rule], rule, {'size': options['size']})


def validate_not_empty(value, _options, field):
    if isarray(value) and 0 == len(value):
        field.report(messages['not_empty'], 'not_empty')


def validate_distinct(value, options, field):
    if not isarray(value):
        return

    keys = options.get('fields')
    seen = []
    for item in value:
        if keys:
            item = tuple(item.get(key) if isobject(item) else None for key in keys)
        if item in seen:
            field.report(messages['distinct'], 'distinct', {'fields': keys} if keys else None)
            return
        seen.append(item)


def mutate_compact(value, _options, field):
    if isarray(value):
        field.mutate([item for item in value if item is not None and '' != item])


items_min_length_rule = create_rule(validate_items_min_length, name='min_length')
items_max_length_rule = create_rule(validate_items_max_length, name='max_length')
items_fixed_length_rule = create_rule(validate_items_fixed_length, name='fixed_length')
not_empty_rule = create_rule(validate_not_empty, name='not_empty')
distinct_rule = create_rule(validate_distinct, name='distinct')
compact_rule = create_rule(mutate_compact, name='compact')


# Groups
# ======

def report_no_group_match(_value, field):
    field.report(messages['union_group'], 'union_group')


def report_no_union_match(_value, field):
    field.report(messages['union'], 'union')


def report_no_type_match(_value, field):
    field.report(messages['union_of_types'], 'union_of_types')


def always(_value, _field):
    return True


class GroupConditional:
    "One branch of an object group: a predicate and the properties it adds."

    def __init__(self, conditional: Callable, properties: Dict[str, BaseType]) -> None:
        self.conditional = conditional
        self.properties = properties

    def clone(self) -> 'GroupConditional':
        return GroupConditional(
            self.conditional,
            {name: schema.clone() for name, schema in self.properties.items()})

    def compile(self, refs, options):
        return {
            'conditional_fn_id': refs.track(self.conditional),
            'children': [
                schema.compile(name, refs, options)
                for name, schema in self.properties.items()
            ],
        }


class ObjectGroup:
    """
    A list of conditionals evaluated in order against the owning object.
    Properties of the first matching conditional are validated and merged
    into the object output. When none match, the otherwise callback runs.
    """

    def __init__(self, conditionals: List[GroupConditional]) -> None:
        self.conditionals = list(conditionals)
        self.otherwise_callback = report_no_group_match

    def clone(self) -> 'ObjectGroup':
        cloned = ObjectGroup([conditional.clone() for conditional in self.conditionals])
        cloned.otherwise(self.otherwise_callback)
        return cloned

    def otherwise(self, callback: Callable) -> 'ObjectGroup':
        "Called with (value, field) when no conditional matches."
        self.otherwise_callback = callback
        return self

    def compile(self, refs, options):
        return {
            'type': S_group,
            'else_conditional_fn_id': refs.track(self.otherwise_callback),
            'conditions': [conditional.compile(refs, options) for conditional in self.conditionals],
        }


class GroupBuilder:
    """
    Build object groups.

        guide = vine.group([
            vine.group.if_(lambda data, field: data.get('is_hiring_guide'), {
                'guide_id': vine.string(),
                'amount': vine.number(),
            }),
            vine.group.else_({
                'is_hiring_guide': vine.literal(False),
            }),
        ])
    """

    def __call__(self, conditionals: List[GroupConditional]) -> ObjectGroup:
        return ObjectGroup(conditionals)

    def if_(self, conditional: Callable, properties: Dict[str, BaseType]) -> GroupConditional:
        return GroupConditional(conditional, properties)

    def else_(self, properties: Dict[str, BaseType]) -> GroupConditional:
        return GroupConditional(always, properties)


# Object
# ======

class VineObject(BaseType[Dict[str, Any], Dict[str, Any]]):
    """
    A dict with known properties. Unknown properties are dropped from
    the output unless allowed.
    """

    unique_name = 'object'

    def __init__(self, properties: Dict[str, BaseType], options=None, validations=None):
        super().__init__(options, validations if validations is not None else [object_rule()])
        self.properties = dict(properties)
        self.groups: List[ObjectGroup] = []
        self.allow_unknown = False
        self.unknown_transform = None
        self.camel_case = False

    def clone(self):
        cloned = super().clone()
        cloned.properties = {name: schema.clone() for name, schema in self.properties.items()}
        cloned.groups = [group.clone() for group in self.groups]
        return cloned

    def is_of_type(self, value, field=None):
        return isobject(value)

    def get_properties(self) -> Dict[str, BaseType]:
        "Copies of the property schemas, for composing new objects."
        return {name: schema.clone() for name, schema in self.properties.items()}

    def allow_unknown_properties(self, transform: Callable = None):
        """
        Copy unknown properties to the output. The optional transform
        receives (unknown, field) and returns the dict to merge.
        """
        self.allow_unknown = True
        self.unknown_transform = transform
        return self

    def merge(self, group: ObjectGroup):
        "Merge conditional properties into this object."
        self.groups.append(group)
        return self

    def to_camel_case(self):
        "Camel case the output keys of this object's properties."
        self.camel_case = True
        return self

    def compile(self, property_name, refs, options):
        node = {
            'type': S_object,
            **self.compile_common(property_name, refs, options),
            'allow_unknown_properties': self.allow_unknown,
            'unknown_fn_id': refs.track(self.unknown_transform) if self.unknown_transform else None,
        }

        child_options = {**options, 'to_camel_case': self.camel_case}
        node['properties'] = [
            schema.compile(name, refs, child_options)
            for name, schema in self.properties.items()
        ]
        node['groups'] = [group.compile(refs, child_options) for group in self.groups]
        return node


# Array, tuple and record
# =======================

class VineArray(BaseType[List[Any], List[Any]]):
    "A list whose elements all share one schema."

    unique_name = 'array'

    def __init__(self, schema: BaseType, options=None, validations=None):
        super().__init__(options, validations if validations is not None else [array_rule()])
        self.schema = schema

    def clone(self):
        cloned = super().clone()
        cloned.schema = self.schema.clone()
        return cloned

    def is_of_type(self, value, field=None):
        return isarray(value)

    def min_length(self, length: int):
        return self.use(items_min_length_rule({'min': length, 'prefix': S_array}))

    def max_length(self, length: int):
        return self.use(items_max_length_rule({'max': length, 'prefix': S_array}))

    def fixed_length(self, length: int):
        return self.use(items_fixed_length_rule({'size': length, 'prefix': S_array}))

    def not_empty(self):
        return self.use(not_empty_rule())

    def distinct(self, fields: Union[str, List[str]] = None):
        "Reject duplicate elements, or elements with duplicate values for fields."
        if isinstance(fields, str):
            fields = [fields]
        return self.use(distinct_rule({'fields': fields}))

    def compact(self):
        "Remove None and empty string elements."
        return self.use(compact_rule())

    def compile(self, property_name, refs, options):
        return {
            'type': S_array,
            **self.compile_common(property_name, refs, options),
            'each': self.schema.compile('*', refs, {**options, 'to_camel_case': False}),
        }


class VineTuple(BaseType[List[Any], List[Any]]):
    "A list with a known schema per position."

    def __init__(self, schemas: List[BaseType], options=None, validations=None):
        super().__init__(options, validations if validations is not None else [tuple_rule()])
        self.schemas = list(schemas)
        self.allow_unknown = False

    def clone(self):
        cloned = super().clone()
        cloned.schemas = [schema.clone() for schema in self.schemas]
        return cloned

    def allow_unknown_properties(self):
        "Keep elements beyond the declared positions."
        self.allow_unknown = True
        return self

    def compile(self, property_name, refs, options):
        child_options = {**options, 'to_camel_case': False}
        return {
            'type': S_tuple,
            **self.compile_common(property_name, refs, options),
            'allow_unknown_properties': self.allow_unknown,
            'properties': [
                schema.compile(index, refs, child_options)
                for index, schema in enumerate(self.schemas)
            ],
        }


class VineRecord(BaseType[Dict[str, Any], Dict[str, Any]]):
    "A dict with unknown keys and values sharing one schema."

    unique_name = 'record'

    def __init__(self, schema: BaseType, options=None, validations=None):
        super().__init__(options, validations if validations is not None else [record_rule()])
        self.schema = schema

    def clone(self):
        cloned = super().clone()
        cloned.schema = self.schema.clone()
        return cloned

    def is_of_type(self, value, field=None):
        return isobject(value)

    def min_length(self, length: int):
        return self.use(items_min_length_rule({'min': length, 'prefix': S_record}))

    def max_length(self, length: int):
        return self.use(items_max_length_rule({'max': length, 'prefix': S_record}))

    def fixed_length(self, length: int):
        return self.use(items_fixed_length_rule({'size': length, 'prefix': S_record}))

    def compile(self, property_name, refs, options):
        return {
            'type': S_record,
            **self.compile_common(property_name, refs, options),
            'each': self.schema.compile('*', refs, {**options, 'to_camel_case': False}),
        }


# Unions
# ======

class UnionConditional:
    "One branch of a union: a predicate and the schema to use when it matches."

    def __init__(self, conditional: Callable, schema: BaseType) -> None:
        self.conditional = conditional
        self.schema = schema

    def clone(self) -> 'UnionConditional':
        return UnionConditional(self.conditional, self.schema.clone())

    def compile(self, property_name, refs, options):
        return {
            'conditional_fn_id': refs.track(self.conditional),
            'schema': self.schema.compile(property_name, refs, options),
        }


class VineUnion:
    """
    Select a schema for a value using predicates evaluated in order.
    Predicates receive (value, field). Only the first match is validated.
    """

    def __init__(self, conditionals: List[UnionConditional]) -> None:
        self.conditionals = list(conditionals)
        self.otherwise_callback = report_no_union_match

    def clone(self) -> 'VineUnion':
        cloned = copy.copy(self)
        cloned.conditionals = [conditional.clone() for conditional in self.conditionals]
        return cloned

    def otherwise(self, callback: Callable) -> 'VineUnion':
        "Called with (value, field) when no predicate matches."
        self.otherwise_callback = callback
        return self

    def compile(self, property_name, refs, options):
        to_camel_case = options.get('to_camel_case') and isinstance(property_name, str)
        return {
            'type': S_union,
            'field_name': property_name,
            'property_name': camelcase(property_name) if to_camel_case else property_name,
            'else_conditional_fn_id': refs.track(self.otherwise_callback),
            'conditions': [
                conditional.compile(property_name, refs, options)
                for conditional in self.conditionals
            ],
        }


class UnionBuilder:
    """
    Build unions.

        contact = vine.union([
            vine.union.if_(lambda value, field: isinstance(value, str), vine.string().trim()),
            vine.union.else_(vine.number()),
        ])
    """

    def __call__(self, conditionals: List[UnionConditional]) -> VineUnion:
        return VineUnion(conditionals)

    def if_(self, conditional: Callable, schema: BaseType) -> UnionConditional:
        return UnionConditional(conditional, schema)

    def else_(self, schema: BaseType) -> UnionConditional:
        return UnionConditional(always, schema)


@runtime_checkable
class DiscriminableSchema(Protocol):
    "A schema that can select itself for a value in union_of_types."

    unique_name: Optional[str]

    def is_of_type(self, value: Any, field: Any = None) -> bool:
        ...


class VineUnionOfTypes(VineUnion):
    """
    A union whose branches are selected by the type checks of the
    member schemas themselves. Members must be discriminable and
    carry distinct names.
    """

    def __init__(self, schemas: List[BaseType]) -> None:
        names = set()
        for schema in schemas:
            if not isinstance(schema, DiscriminableSchema) or not schema.unique_name:
                raise ValueError(
                    f'Cannot use "{type(schema).__name__}". '
                    'The schema type is not compatible for use with "union_of_types"')

            if schema.unique_name in names:
                raise ValueError(
                    f'Cannot use duplicate schema "{schema.unique_name}". '
                    '"union_of_types" needs distinct schema types only')

            names.add(schema.unique_name)

        super().__init__([UnionConditional(schema.is_of_type, schema) for schema in schemas])
        self.otherwise_callback = report_no_type_match

    def clone(self) -> 'VineUnionOfTypes':
        cloned = copy.copy(self)
        cloned.conditionals = [
            UnionConditional(schema.is_of_type, schema)
            for schema in (conditional.schema.clone() for conditional in self.conditionals)
        ]
        return cloned


__all__ = [
    'DiscriminableSchema',
    'GroupBuilder',
    'GroupConditional',
    'ObjectGroup',
    'UnionBuilder',
    'UnionConditional',
    'VineArray',
    'VineObject',
    'VineRecord',
    'VineTuple',
    'VineUnion',
    'VineUnionOfTypes',
]
