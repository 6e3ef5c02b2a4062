# formvine init

from .helpers import UNDEF
from .composites import (
    DiscriminableSchema,
    ObjectGroup,
    VineArray,
    VineObject,
    VineRecord,
    VineTuple,
    VineUnion,
    VineUnionOfTypes,
)
from .refs import RefsStore
from .reporters import (
    SimpleErrorReporter,
    SimpleMessagesProvider,
    ValidationError,
)
from .rules import (
    FieldContext,
    Rule,
    Validation,
    create_rule,
)
from .schema import (
    BaseLiteralType,
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
from .validator import (
    Vine,
    VineValidator,
)


# Default instance, configured with the default messages.
vine = Vine()


__all__ = [
    'BaseLiteralType',
    'BaseType',
    'DiscriminableSchema',
    'FieldContext',
    'ObjectGroup',
    'RefsStore',
    'Rule',
    'SimpleErrorReporter',
    'SimpleMessagesProvider',
    'UNDEF',
    'Validation',
    'ValidationError',
    'Vine',
    'VineAccepted',
    'VineAny',
    'VineArray',
    'VineBoolean',
    'VineDate',
    'VineEnum',
    'VineLiteral',
    'VineNumber',
    'VineObject',
    'VineRecord',
    'VineString',
    'VineTuple',
    'VineUnion',
    'VineUnionOfTypes',
    'VineValidator',
    'create_rule',
    'vine',
]
