# Copyright (c) 2025 The formvine authors. MIT LICENSE.
#
# Formvine Schema
# ===============
#
# Schema nodes describe the expected shape of one value. They hold
# options and an ordered list of validations, and know how to lower
# themselves into a compiled node: plain JSON-like data plus callbacks
# tracked in a refs store.
#
# Base types
# - BaseType: options, modifiers (optional, nullable, bail, parse),
#   validations and the compile protocol.
# - BaseLiteralType: leaf values, adds transform.
#
# Leaf types
# - VineString, VineNumber, VineBoolean, VineAccepted, VineDate,
#   VineEnum, VineLiteral, VineAny.
#
# Value rules also run after a failed type check when bail is disabled,
# so they skip values of the wrong kind.
#
# Composite types live in formvine.composites.


from typing import *
from datetime import date, datetime, time
import copy
import enum
import re

from .helpers import (
    UNDEF,
    asboolean,
    asnumber,
    camelcase,
    exists,
    getkey,
    isnumber,
    isstring,
    istrue,
    ismissing,
)
from .reporters import messages
from .rules import Rule, Validation, create_rule


# Compiled node types.
S_literal = 'literal'
S_object = 'object'
S_array = 'array'
S_tuple = 'tuple'
S_record = 'record'
S_union = 'union'
S_group = 'group'
S_root = 'root'

S_today = 'today'

DEFAULT_DATE_FORMATS = ('%Y-%m-%d', '%Y-%m-%d %H:%M:%S')

R_ALPHA = re.compile(r'^[a-zA-Z]+$')
R_ALPHA_NUMERIC = re.compile(r'^[a-zA-Z0-9]+$')

Input = TypeVar('Input')
Output = TypeVar('Output')


# Implicit rules
# ==============

def validate_required(value, options, field):
    "The value must be present. None is accepted only by nullable fields."
    if value is UNDEF or (value is None and not options.get('allow_null')):
        field.report(messages['required'], 'required')


def validate_required_when(value, options, field):
    if ismissing(value) and options['callback'](field):
        field.report(messages['required'], 'required')


def validate_required_if_exists(value, options, field):
    if ismissing(value) and all(exists(getkey(field.parent, name)) for name in options['fields']):
        field.report(messages['required'], 'required')


def validate_required_if_missing(value, options, field):
    if ismissing(value) and all(ismissing(getkey(field.parent, name)) for name in options['fields']):
        field.report(messages['required'], 'required')


required_rule = create_rule(validate_required, name='required', implicit=True)
required_when_rule = create_rule(validate_required_when, name='required_when', implicit=True)
required_if_exists_rule = create_rule(validate_required_if_exists, name='required_if_exists', implicit=True)
required_if_missing_rule = create_rule(validate_required_if_missing, name='required_if_missing', implicit=True)


class BaseType(Generic[Input, Output]):
    """
    Shared behavior of every schema node. Modifiers return clones,
    rule attachment appends to this node and returns it.
    """

    # Set by types that can take part in union_of_types.
    unique_name: Optional[str] = None

    def __init__(self, options: Dict[str, Any] = None, validations: List[Validation] = None) -> None:
        self.options = {
            'bail': True,
            'allow_null': False,
            'is_optional': False,
            'parse': None,
            **(options or {}),
        }
        self.validations = list(validations or [])

    def clone(self):
        "Copy this node. The copy has its own options and validation list."
        cloned = copy.copy(self)
        cloned.options = dict(self.options)
        cloned.validations = list(self.validations)
        return cloned

    def optional(self):
        "Accept an undefined value."
        cloned = self.clone()
        cloned.options['is_optional'] = True
        return cloned

    def nullable(self):
        "Accept None as a value."
        cloned = self.clone()
        cloned.options['allow_null'] = True
        return cloned

    def use(self, validation: Validation):
        "Attach a validation."
        if isinstance(validation, Rule):
            validation = validation()
        self.validations.append(validation)
        return self

    def bail(self, state: bool):
        "Stop at the first failing rule of this field (default), or run them all."
        self.options['bail'] = state
        return self

    def parse(self, callback: Callable):
        "Pre-process the raw input value before any rule runs."
        self.options['parse'] = callback
        return self

    def required_when(self, callback: Callable):
        "Require the field when callback(field) is true."
        return self.use(required_when_rule({'callback': callback}))

    def required_if_exists(self, fields: Union[str, List[str]]):
        "Require the field when all of the given sibling fields exist."
        return self.use(required_if_exists_rule({'fields': _aslist(fields)}))

    def required_if_missing(self, fields: Union[str, List[str]]):
        "Require the field when all of the given sibling fields are missing."
        return self.use(required_if_missing_rule({'fields': _aslist(fields)}))

    def is_of_type(self, value: Any, field: Any = None) -> bool:
        "Used by union_of_types to select a branch."
        return False

    def compile_validations(self, refs) -> List[Dict[str, Any]]:
        validations = self.validations
        if not self.options['is_optional']:
            validations = [required_rule({'allow_null': self.options['allow_null']})] + validations

        return [
            {
                'rule_fn_id': refs.track(validation),
                'implicit': validation.rule.implicit,
                'is_async': validation.rule.is_async,
            }
            for validation in validations
        ]

    def compile_common(self, property_name: Any, refs, options: Dict[str, Any]) -> Dict[str, Any]:
        parse = self.options['parse']
        to_camel_case = options.get('to_camel_case') and isinstance(property_name, str)

        return {
            'field_name': property_name,
            'property_name': camelcase(property_name) if to_camel_case else property_name,
            'bail': self.options['bail'],
            'allow_null': self.options['allow_null'],
            'is_optional': self.options['is_optional'],
            'parse_fn_id': refs.track(parse) if parse else None,
            'validations': self.compile_validations(refs),
        }

    def compile(self, property_name: Any, refs, options: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError(f'{type(self).__name__} cannot be compiled')


class BaseLiteralType(BaseType[Input, Output]):
    "Base of leaf value types."

    def transform(self, callback: Callable):
        "Convert the output value once every rule has passed."
        self.options['transform'] = callback
        return self

    def compile(self, property_name, refs, options):
        transform = self.options.get('transform')
        return {
            'type': S_literal,
            **self.compile_common(property_name, refs, options),
            'transform_fn_id': refs.track(transform) if transform else None,
        }


# String
# ======

def validate_STRING(value, _options, field):
    if not isstring(value):
        field.report(messages['string'], 'string')


def validate_min_length(value, options, field):
    if not isstring(value):
        return
    if len(value) < options['min']:
        field.report(messages['min_length'], 'min_length', options)


def validate_max_length(value, options, field):
    if not isstring(value):
        return
    if len(value) > options['max']:
        field.report(messages['max_length'], 'max_length', options)


def validate_fixed_length(value, options, field):
    if not isstring(value):
        return
    if len(value) != options['size']:
        field.report(messages['fixed_length'], 'fixed_length', options)


def validate_regex(value, options, field):
    if not isstring(value):
        return
    if not re.search(options['pattern'], value):
        field.report(messages['regex'], 'regex')


def validate_alpha(value, options, field):
    if not isstring(value):
        return
    if not R_ALPHA.match(_strip_allowed(value, options)):
        field.report(messages['alpha'], 'alpha')


def validate_alpha_numeric(value, options, field):
    if not isstring(value):
        return
    if not R_ALPHA_NUMERIC.match(_strip_allowed(value, options)):
        field.report(messages['alpha_numeric'], 'alpha_numeric')


def validate_starts_with(value, options, field):
    if not isstring(value):
        return
    if not value.startswith(options['substring']):
        field.report(messages['starts_with'], 'starts_with', options)


def validate_ends_with(value, options, field):
    if not isstring(value):
        return
    if not value.endswith(options['substring']):
        field.report(messages['ends_with'], 'ends_with', options)


def validate_confirmed(value, options, field):
    other_field = options.get('confirmation_field') or f'{field.name}_confirmation'
    if getkey(field.parent, other_field) != value:
        field.report(messages['confirmed'], 'confirmed', {'other_field': other_field})


def validate_in(value, options, field):
    choices = _choices(options['choices'], field)
    if value not in choices:
        field.report(messages['in'], 'in', {'choices': choices})


def validate_not_in(value, options, field):
    choices = _choices(options['list'], field)
    if value in choices:
        field.report(messages['not_in'], 'not_in', {'list': choices})


def mutate_trim(value, _options, field):
    if not isstring(value):
        return
    field.mutate(value.strip())


def mutate_to_lower_case(value, _options, field):
    if not isstring(value):
        return
    field.mutate(value.lower())


def mutate_to_upper_case(value, _options, field):
    if not isstring(value):
        return
    field.mutate(value.upper())


def mutate_to_camel_case(value, _options, field):
    if not isstring(value):
        return
    field.mutate(camelcase(value))


string_rule = create_rule(validate_STRING, name='string')
min_length_rule = create_rule(validate_min_length, name='min_length')
max_length_rule = create_rule(validate_max_length, name='max_length')
fixed_length_rule = create_rule(validate_fixed_length, name='fixed_length')
regex_rule = create_rule(validate_regex, name='regex')
alpha_rule = create_rule(validate_alpha, name='alpha')
alpha_numeric_rule = create_rule(validate_alpha_numeric, name='alpha_numeric')
starts_with_rule = create_rule(validate_starts_with, name='starts_with')
ends_with_rule = create_rule(validate_ends_with, name='ends_with')
confirmed_rule = create_rule(validate_confirmed, name='confirmed')
in_rule = create_rule(validate_in, name='in')
not_in_rule = create_rule(validate_not_in, name='not_in')
trim_rule = create_rule(mutate_trim, name='trim')
to_lower_case_rule = create_rule(mutate_to_lower_case, name='to_lower_case')
to_upper_case_rule = create_rule(mutate_to_upper_case, name='to_upper_case')
to_camel_case_rule = create_rule(mutate_to_camel_case, name='to_camel_case')


class VineString(BaseLiteralType[str, str]):
    """
    A string value.

        vine.string().trim().min_length(3).max_length(40)
    """

    unique_name = 'string'

    def __init__(self, options=None, validations=None):
        super().__init__(options, validations if validations is not None else [string_rule()])

    def is_of_type(self, value, field=None):
        return isstring(value)

    def min_length(self, length: int):
        return self.use(min_length_rule({'min': length}))

    def max_length(self, length: int):
        return self.use(max_length_rule({'max': length}))

    def fixed_length(self, length: int):
        return self.use(fixed_length_rule({'size': length}))

    def regex(self, pattern: Union[str, re.Pattern]):
        return self.use(regex_rule({'pattern': pattern}))

    def alpha(self, allow_spaces: bool = False, allow_underscores: bool = False, allow_dashes: bool = False):
        return self.use(alpha_rule({
            'allow_spaces': allow_spaces,
            'allow_underscores': allow_underscores,
            'allow_dashes': allow_dashes,
        }))

    def alpha_numeric(self, allow_spaces: bool = False, allow_underscores: bool = False, allow_dashes: bool = False):
        return self.use(alpha_numeric_rule({
            'allow_spaces': allow_spaces,
            'allow_underscores': allow_underscores,
            'allow_dashes': allow_dashes,
        }))

    def starts_with(self, substring: str):
        return self.use(starts_with_rule({'substring': substring}))

    def ends_with(self, substring: str):
        return self.use(ends_with_rule({'substring': substring}))

    def confirmed(self, confirmation_field: str = None):
        return self.use(confirmed_rule({'confirmation_field': confirmation_field}))

    def in_list(self, choices: Union[Sequence[str], Callable]):
        return self.use(in_rule({'choices': choices}))

    def not_in_list(self, values: Union[Sequence[str], Callable]):
        return self.use(not_in_rule({'list': values}))

    def trim(self):
        return self.use(trim_rule())

    def to_lower_case(self):
        return self.use(to_lower_case_rule())

    def to_upper_case(self):
        return self.use(to_upper_case_rule())

    def to_camel_case(self):
        return self.use(to_camel_case_rule())


# Number
# ======

def validate_NUMBER(value, options, field):
    if options.get('strict'):
        if not isnumber(value):
            field.report(messages['number'], 'number')
        return

    out = asnumber(value)
    if out is None:
        field.report(messages['number'], 'number')
    else:
        field.mutate(out)


def validate_min(value, options, field):
    if not isnumber(value):
        return
    if value < options['min']:
        field.report(messages['min'], 'min', options)


def validate_max(value, options, field):
    if not isnumber(value):
        return
    if value > options['max']:
        field.report(messages['max'], 'max', options)


def validate_range(value, options, field):
    if not isnumber(value):
        return
    if value < options['min'] or value > options['max']:
        field.report(messages['range'], 'range', options)


def validate_positive(value, _options, field):
    if not isnumber(value):
        return
    if value < 0:
        field.report(messages['positive'], 'positive')


def validate_negative(value, _options, field):
    if not isnumber(value):
        return
    if value >= 0:
        field.report(messages['negative'], 'negative')


def validate_without_decimals(value, _options, field):
    if not isnumber(value):
        return
    if isinstance(value, float) and not value.is_integer():
        field.report(messages['without_decimals'], 'without_decimals')


number_rule = create_rule(validate_NUMBER, name='number')
min_rule = create_rule(validate_min, name='min')
max_rule = create_rule(validate_max, name='max')
range_rule = create_rule(validate_range, name='range')
positive_rule = create_rule(validate_positive, name='positive')
negative_rule = create_rule(validate_negative, name='negative')
without_decimals_rule = create_rule(validate_without_decimals, name='without_decimals')


class VineNumber(BaseLiteralType[Union[str, int, float], Union[int, float]]):
    """
    A number. Numeric strings are cast unless the schema is strict.
    """

    unique_name = 'number'

    def __init__(self, options=None, validations=None):
        options = {'strict': False, **(options or {})}
        super().__init__(options, validations if validations is not None
                         else [number_rule({'strict': options['strict']})])

    def is_of_type(self, value, field=None):
        if self.options['strict']:
            return isnumber(value)
        return asnumber(value) is not None

    def min(self, value):
        return self.use(min_rule({'min': value}))

    def max(self, value):
        return self.use(max_rule({'max': value}))

    def range(self, bounds: Sequence):
        return self.use(range_rule({'min': bounds[0], 'max': bounds[1]}))

    def positive(self):
        return self.use(positive_rule())

    def negative(self):
        return self.use(negative_rule())

    def without_decimals(self):
        return self.use(without_decimals_rule())

    def in_list(self, choices: Union[Sequence, Callable]):
        return self.use(in_rule({'choices': choices}))


# Boolean and accepted
# ====================

def validate_BOOLEAN(value, options, field):
    if options.get('strict'):
        if not isinstance(value, bool):
            field.report(messages['boolean'], 'boolean')
        return

    out = asboolean(value)
    if out is None:
        field.report(messages['boolean'], 'boolean')
    else:
        field.mutate(out)


def validate_ACCEPTED(value, _options, field):
    if not istrue(value):
        field.report(messages['accepted'], 'accepted')
    else:
        field.mutate(True)


boolean_rule = create_rule(validate_BOOLEAN, name='boolean')
accepted_rule = create_rule(validate_ACCEPTED, name='accepted')


class VineBoolean(BaseLiteralType[Union[bool, str, int], bool]):
    "A boolean. Form values like 'on', '1' and 'false' are cast unless strict."

    unique_name = 'boolean'

    def __init__(self, options=None, validations=None):
        options = {'strict': False, **(options or {})}
        super().__init__(options, validations if validations is not None
                         else [boolean_rule({'strict': options['strict']})])

    def is_of_type(self, value, field=None):
        if self.options['strict']:
            return isinstance(value, bool)
        return asboolean(value) is not None


class VineAccepted(BaseLiteralType[Union[bool, str, int], bool]):
    "A checkbox that must be checked. Outputs True."

    def __init__(self, options=None, validations=None):
        super().__init__(options, validations if validations is not None else [accepted_rule()])


# Date
# ====

def validate_DATE(value, options, field):
    if isinstance(value, datetime):
        return

    if isinstance(value, date):
        field.mutate(datetime.combine(value, time()))
        return

    formats = options.get('formats') or DEFAULT_DATE_FORMATS
    if isstring(value):
        for fmt in formats:
            try:
                field.mutate(datetime.strptime(value, fmt))
                return
            except ValueError:
                continue

    field.report(messages['date'], 'date', {'formats': list(formats)})


def validate_after(value, options, field):
    if not isinstance(value, datetime):
        return
    compare = _comparable_date(options['compare'])
    if not value > compare:
        field.report(messages['date.after'], 'date.after', {'expected_value': str(compare)})


def validate_before(value, options, field):
    if not isinstance(value, datetime):
        return
    compare = _comparable_date(options['compare'])
    if not value < compare:
        field.report(messages['date.before'], 'date.before', {'expected_value': str(compare)})


date_rule = create_rule(validate_DATE, name='date')
after_rule = create_rule(validate_after, name='date.after')
before_rule = create_rule(validate_before, name='date.before')


class VineDate(BaseLiteralType[Union[str, date, datetime], datetime]):
    """
    A date or datetime. Strings are parsed with strptime formats.
    The output is always a datetime.
    """

    unique_name = 'date'

    def __init__(self, options=None, validations=None):
        options = {'formats': list(DEFAULT_DATE_FORMATS), **(options or {})}
        super().__init__(options, validations if validations is not None
                         else [date_rule({'formats': options['formats']})])

    def is_of_type(self, value, field=None):
        return isstring(value) or isinstance(value, date)

    def after(self, compare: Union[str, datetime, date]):
        "Value must be after a datetime, or after 'today'."
        return self.use(after_rule({'compare': compare}))

    def before(self, compare: Union[str, datetime, date]):
        "Value must be before a datetime, or before 'today'."
        return self.use(before_rule({'compare': compare}))


# Enum, literal and any
# =====================

def validate_ENUM(value, options, field):
    choices = _choices(options['choices'], field)
    if value not in choices:
        field.report(messages['enum'], 'enum', {'choices': list(choices)})


def validate_LITERAL(value, options, field):
    expected = options['expected_value']

    if isinstance(expected, bool):
        out = asboolean(value)
    elif isnumber(expected):
        out = asnumber(value)
    else:
        out = value

    if out != expected or (out is None and expected is not None):
        field.report(messages['literal'], 'literal', {'expected_value': expected})
    else:
        field.mutate(out)


enum_rule = create_rule(validate_ENUM, name='enum')
literal_rule = create_rule(validate_LITERAL, name='literal')


class VineEnum(BaseLiteralType[Any, Any]):
    """
    A value from a fixed list of choices. Choices may be a sequence,
    a callable receiving the field context, or an enum.Enum subclass
    (in which case the member values are the choices).
    """

    def __init__(self, choices: Union[Sequence, Callable, Type[enum.Enum]], options=None, validations=None):
        if isinstance(choices, type) and issubclass(choices, enum.Enum):
            choices = [member.value for member in choices]
        self.choices = choices
        super().__init__(options, validations if validations is not None
                         else [enum_rule({'choices': choices})])


class VineLiteral(BaseLiteralType[Any, Any]):
    "A value equal to a pre-defined value."

    def __init__(self, value: Any, options=None, validations=None):
        self.value = value
        super().__init__(options, validations if validations is not None
                         else [literal_rule({'expected_value': value})])


class VineAny(BaseLiteralType[Any, Any]):
    "Any value at all."


# Internal utilities
# ==================

def _aslist(val: Any) -> List[Any]:
    return list(val) if isinstance(val, (list, tuple)) else [val]


def _choices(choices: Any, field: Any) -> Sequence:
    return choices(field) if callable(choices) else choices


def _strip_allowed(value: str, options: Dict[str, Any]) -> str:
    if options.get('allow_spaces'):
        value = value.replace(' ', '')
    if options.get('allow_underscores'):
        value = value.replace('_', '')
    if options.get('allow_dashes'):
        value = value.replace('-', '')
    return value


def _comparable_date(compare: Any) -> datetime:
    if S_today == compare:
        return datetime.combine(date.today(), time())
    if isinstance(compare, datetime):
        return compare
    if isinstance(compare, date):
        return datetime.combine(compare, time())
    raise ValueError(f'Invalid date to compare with: {compare!r}')


__all__ = [
    'BaseLiteralType',
    'BaseType',
    'VineAccepted',
    'VineAny',
    'VineBoolean',
    'VineDate',
    'VineEnum',
    'VineLiteral',
    'VineNumber',
    'VineString',
]
