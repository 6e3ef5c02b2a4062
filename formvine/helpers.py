# Copyright (c) 2025 The formvine authors. MIT LICENSE.
#
# Formvine Helpers
# ================
#
# Type-checking and casting helpers that keep HTML form serialization
# in mind: form values arrive as strings, so numbers and booleans are
# cast rather than rejected unless a schema asks to be strict.
#
# - exists, ismissing: value presence (None is present, UNDEF is not).
# - isstring, isobject, isarray, isnumber, isboolean: value kinds.
# - istrue, isfalse, asnumber, asboolean: form value casting.
# - camelcase: convert a key to camelCase.
# - joinpath: append a key to a dotted field path.


from typing import *
import math
import re


class Undefined:
    "Marker for a value that is not present at all (as opposed to None)."

    def __repr__(self):
        return 'UNDEF'

    def __bool__(self):
        return False

    def __copy__(self):
        return self

    def __deepcopy__(self, _memo):
        return self


# The standard undefined value. Missing dict keys and list
# positions resolve to this, never to None.
UNDEF = Undefined()

S_MT = ''
S_DT = '.'
S_WILDCARD = '*'

# Form values considered "on".
TRUTHY = ('1', 'true', 'on', 'yes')
FALSY = ('0', 'false', 'off', 'no')

R_CAMEL_SPLIT = re.compile(r'[\s_\-.]+')
R_CAMEL_UPPER = re.compile(r'([a-z0-9])([A-Z])')


def exists(val: Any = UNDEF) -> bool:
    "Value is present and not None."
    return val is not UNDEF and val is not None


def ismissing(val: Any = UNDEF) -> bool:
    "Value is UNDEF or None."
    return not exists(val)


def isdefined(val: Any = UNDEF) -> bool:
    "Value is anything but UNDEF. None counts as defined."
    return val is not UNDEF


def isstring(val: Any = UNDEF) -> bool:
    return isinstance(val, str)


def isobject(val: Any = UNDEF) -> bool:
    "Value is a dict with string keys."
    return isinstance(val, dict)


def isarray(val: Any = UNDEF) -> bool:
    return isinstance(val, list)


def isboolean(val: Any = UNDEF) -> bool:
    return isinstance(val, bool)


def isnumber(val: Any = UNDEF) -> bool:
    "A finite int or float. Booleans are not numbers."
    if isinstance(val, bool):
        return False
    if isinstance(val, int):
        return True
    if isinstance(val, float):
        return math.isfinite(val)
    return False


def istrue(val: Any = UNDEF) -> bool:
    "Value is a truthy form value."
    if val is True or (isnumber(val) and 1 == val):
        return True
    return isinstance(val, str) and val.strip().lower() in TRUTHY


def isfalse(val: Any = UNDEF) -> bool:
    "Value is a falsy form value."
    if val is False or (isnumber(val) and 0 == val):
        return True
    return isinstance(val, str) and val.strip().lower() in FALSY


def asnumber(val: Any = UNDEF) -> Any:
    """
    Cast a value to a number. Returns None when the value cannot be
    represented as a finite number. Integral strings become ints.
    """
    if isnumber(val):
        return val

    if not isinstance(val, str):
        return None

    sval = val.strip()
    if S_MT == sval:
        return None

    try:
        return int(sval)
    except ValueError:
        pass

    try:
        out = float(sval)
    except ValueError:
        return None

    return out if math.isfinite(out) else None


def asboolean(val: Any = UNDEF) -> Optional[bool]:
    "Cast a form value to a boolean. Returns None when not castable."
    if isinstance(val, bool):
        return val
    if istrue(val):
        return True
    if isfalse(val):
        return False
    return None


def camelcase(key: Any = UNDEF) -> str:
    "Convert snake_case, kebab-case or spaced keys to camelCase."
    if not isinstance(key, str):
        return S_MT if key is UNDEF or key is None else str(key)

    # Break existing camel humps so they survive the lowercasing below.
    key = R_CAMEL_UPPER.sub(r'\1 \2', key)
    parts = [p for p in R_CAMEL_SPLIT.split(key) if S_MT != p]

    if 0 == len(parts):
        return S_MT

    head = parts[0].lower()
    return head + S_MT.join(p[:1].upper() + p[1:].lower() for p in parts[1:])


def joinpath(base: str, key: Any) -> str:
    "Append a key to a dotted path. An empty base yields the key alone."
    key = str(key)
    if S_MT == base:
        return key
    return base + S_DT + key


def getkey(parent: Any, key: Any) -> Any:
    "Get a child value of a dict or list, or UNDEF."
    if isinstance(parent, dict):
        return parent.get(key, UNDEF)

    if isinstance(parent, list):
        if isinstance(key, int) and 0 <= key < len(parent):
            return parent[key]

    return UNDEF


__all__ = [
    'UNDEF',
    'Undefined',
    'asboolean',
    'asnumber',
    'camelcase',
    'exists',
    'getkey',
    'isarray',
    'isboolean',
    'isdefined',
    'isfalse',
    'ismissing',
    'isnumber',
    'isobject',
    'isstring',
    'istrue',
    'joinpath',
]
