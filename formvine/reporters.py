# Copyright (c) 2025 The formvine authors. MIT LICENSE.
#
# Formvine Reporters
# ==================
#
# Error messages, the messages provider that formats them, the error
# reporter that collects them during one validation run, and the
# exception raised once a run has failed.


from typing import *
import re


# Default error messages, keyed by rule name. Messages may be
# overridden per field using the "<wildcard path>.<rule>" key.
messages = {
    'required': 'The {{ field }} field must be defined',
    'string': 'The {{ field }} field must be a string',
    'min_length': 'The {{ field }} field must have at least {{ min }} characters',
    'max_length': 'The {{ field }} field must not be greater than {{ max }} characters',
    'fixed_length': 'The {{ field }} field must be {{ size }} characters long',
    'regex': 'The {{ field }} field format is invalid',
    'alpha': 'The {{ field }} field must contain only letters',
    'alpha_numeric': 'The {{ field }} field must contain only letters and numbers',
    'starts_with': 'The {{ field }} field must start with {{ substring }}',
    'ends_with': 'The {{ field }} field must end with {{ substring }}',
    'confirmed': 'The {{ field }} field and {{ other_field }} field must be the same',
    'in': 'The selected {{ field }} is invalid',
    'not_in': 'The selected {{ field }} is invalid',

    'number': 'The {{ field }} field must be a number',
    'min': 'The {{ field }} field must be at least {{ min }}',
    'max': 'The {{ field }} field must not be greater than {{ max }}',
    'range': 'The {{ field }} field must be between {{ min }} and {{ max }}',
    'positive': 'The {{ field }} field must be positive',
    'negative': 'The {{ field }} field must be negative',
    'without_decimals': 'The {{ field }} field must be an integer',

    'boolean': 'The value must be a boolean',
    'accepted': 'The {{ field }} field must be accepted',
    'enum': 'The selected {{ field }} is invalid',
    'literal': 'The {{ field }} field must be {{ expected_value }}',

    'date': 'The {{ field }} field must be a datetime value',
    'date.after': 'The {{ field }} field must be a date after {{ expected_value }}',
    'date.before': 'The {{ field }} field must be a date before {{ expected_value }}',

    'object': 'The {{ field }} field must be an object',
    'record': 'The {{ field }} field must be an object',
    'record.min_length': 'The {{ field }} field must have at least {{ min }} items',
    'record.max_length': 'The {{ field }} field must not have more than {{ max }} items',
    'record.fixed_length': 'The {{ field }} field must contain {{ size }} items',

    'array': 'The {{ field }} field must be an array',
    'array.min_length': 'The {{ field }} field must have at least {{ min }} items',
    'array.max_length': 'The {{ field }} field must not have more than {{ max }} items',
    'array.fixed_length': 'The {{ field }} field must contain {{ size }} items',
    'not_empty': 'The {{ field }} field must not be empty',
    'distinct': 'The {{ field }} field has duplicate values',
    'tuple': 'The {{ field }} field must be an array',

    'union': 'Invalid value provided for {{ field }} field',
    'union_group': 'Invalid value provided for {{ field }} field',
    'union_of_types': 'Invalid value provided for {{ field }} field',
}

# Human friendly field names, keyed by wildcard path.
fields = {
    '': 'data',
}

S_ROOT_NAME = 'data'

R_PLACEHOLDER = re.compile(r'{{\s*([\w.]+)\s*}}')


class SimpleMessagesProvider:
    """
    Resolves the message for a reported error and interpolates
    the field name and rule arguments into it.
    """

    def __init__(self, messages: Dict[str, str] = None, fields: Dict[str, str] = None) -> None:
        self.messages = dict(messages or {})
        self.fields = dict(fields or {})

    def interpolate(self, message: str, data: Dict[str, Any]) -> str:
        "Replace {{ name }} placeholders, leaving unknown names untouched."

        def replace(mobj):
            key = mobj.group(1)
            val = data
            for part in key.split('.'):
                if not isinstance(val, dict) or part not in val:
                    return mobj.group(0)
                val = val[part]
            return str(val)

        return R_PLACEHOLDER.sub(replace, message)

    def get_message(self, raw_message: str, rule: str, field: Any, args: Dict[str, Any] = None) -> str:
        message = self.messages.get(rule) or raw_message

        # Field overrides share keys with prefixed rules like "array.min_length",
        # which always name the rule. The root field has no override key.
        if '' != field.wildcard_path:
            key = f'{field.wildcard_path}.{rule}'
            if key not in messages:
                message = self.messages.get(key) or message

        field_name = self.fields.get(field.wildcard_path)
        if field_name is None:
            field_name = S_ROOT_NAME if '' == field.name else field.name

        return self.interpolate(message, {'field': field_name, **(args or {})})


class ValidationError(Exception):
    "Raised when a validation run reports one or more errors."

    code = 'E_VALIDATION_ERROR'
    status = 422

    def __init__(self, messages: List[Dict[str, Any]], message: str = 'Validation failure') -> None:
        super().__init__(message)
        self.message = message
        self.messages = messages

    @property
    def errors(self) -> List[Dict[str, Any]]:
        return self.messages

    def __str__(self) -> str:
        return f'{self.code}: {self.message}'


class SimpleErrorReporter:
    """
    Collects errors as a flat list. A fresh instance is created
    for every validation run.
    """

    def __init__(self) -> None:
        self.has_errors = False
        self.errors: List[Dict[str, Any]] = []

    def report(self, message: str, rule: str, field: Any, args: Dict[str, Any] = None) -> None:
        error = {
            'message': message,
            'rule': rule,
            'field': field.get_field_path(),
        }

        if args:
            error['meta'] = args

        if field.is_array_member:
            error['index'] = field.name

        self.has_errors = True
        self.errors.append(error)

    def create_error(self) -> ValidationError:
        return ValidationError(self.errors)


__all__ = [
    'SimpleErrorReporter',
    'SimpleMessagesProvider',
    'ValidationError',
    'fields',
    'messages',
]
