# Copyright (c) 2025 The formvine authors. MIT LICENSE.
#
# Formvine Rules
# ==============
#
# Rules are the unit of validation. A rule receives the field value,
# its options and the field context, and either does nothing (pass),
# reports an error through the field (fail), or mutates the field value
# (transform). Rules never raise to signal invalid data.
#
# Execution gate, applied to every validation in declaration order:
#
#     (field.is_defined or rule.implicit) and (field.is_valid or not bail)
#
# So implicit rules (required-ness) see absent fields, other rules do
# not, and with bail enabled the first failure on a field silences the
# remaining rules of that field only.


from typing import *
import inspect

from .helpers import UNDEF, isdefined, joinpath, S_WILDCARD


class Rule:
    """
    A named, possibly asynchronous, validation function.
    Calling a rule with options yields a Validation to attach to a schema.
    """

    def __init__(
        self,
        validator: Callable,          # (value, options, field) -> None | awaitable.
        name: str = None,             # Rule name used in error reports.
        implicit: bool = False,       # Run even when the field is not defined.
        is_async: bool = None         # Dispatch mode, detected when None.
    ) -> None:
        self.validator = validator
        self.name = name or getattr(validator, '__name__', 'rule')
        self.implicit = implicit
        self.is_async = inspect.iscoroutinefunction(validator) if is_async is None else is_async

    def __call__(self, options: Any = None) -> 'Validation':
        return Validation(self, options)

    def __repr__(self):
        return f'<Rule {self.name}{" async" if self.is_async else ""}>'


class Validation:
    "A rule bound to its options, as attached to a schema node."

    def __init__(self, rule: Rule, options: Any = None) -> None:
        self.rule = rule
        self.options = options

    @property
    def name(self) -> str:
        return self.rule.name

    def __repr__(self):
        return f'<Validation {self.rule.name} {self.options!r}>'


def create_rule(
        validator: Callable,
        name: str = None,
        implicit: bool = False,
        is_async: bool = None
) -> Rule:
    """
    Convert a validation function to a rule.

        def even(value, options, field):
            if value % 2:
                field.report('The {{ field }} field must be even', 'even')

        even_rule = create_rule(even)
        schema = vine.number().use(even_rule())
    """
    return Rule(validator, name=name, implicit=implicit, is_async=is_async)


class FieldContext:
    """
    Runtime state for one position in the input tree during one
    validation run.
    """

    def __init__(
        self,
        name: Any,                    # Key or index within the parent.
        value: Any,                   # Current value, UNDEF when absent.
        parent: Any,                  # Parent dict or list, UNDEF at the root.
        wildcard_path: str,           # Path with * for array and record members.
        field_path: str,              # Concrete path, indexes included.
        data: Any,                    # Root input.
        meta: Dict[str, Any],         # Caller supplied metadata.
        reporter: Any,                # Error reporter shared by the run.
        messages_provider: Any,       # Formats reported messages.
        is_array_member: bool = False
    ) -> None:
        self.name = name
        self.value = value
        self.parent = parent
        self.wildcard_path = wildcard_path
        self.field_path = field_path
        self.data = data
        self.meta = meta
        self.reporter = reporter
        self.messages_provider = messages_provider
        self.is_array_member = is_array_member
        self.is_defined = isdefined(value)
        self.is_valid = True

    @classmethod
    def root(cls, data: Any, meta: Dict[str, Any], reporter: Any, messages_provider: Any) -> 'FieldContext':
        return cls('', data, UNDEF, '', '', data, meta, reporter, messages_provider)

    def child(self, name: Any, value: Any, is_array_member: bool = False, wildcard: bool = False) -> 'FieldContext':
        """
        Create the context of a property or element of this field's value.
        Array and record members use * in their wildcard path.
        """
        return FieldContext(
            name=name,
            value=value,
            parent=self.value,
            wildcard_path=joinpath(self.wildcard_path, S_WILDCARD if wildcard else name),
            field_path=joinpath(self.field_path, name),
            data=self.data,
            meta=self.meta,
            reporter=self.reporter,
            messages_provider=self.messages_provider,
            is_array_member=is_array_member,
        )

    def get_field_path(self) -> str:
        return self.field_path

    def mutate(self, new_value: Any) -> 'FieldContext':
        "Replace the value seen by the rules that follow."
        self.value = new_value
        self.is_defined = isdefined(new_value)
        return self

    def report(self, message: str, rule: str, args: Dict[str, Any] = None) -> None:
        "Report an error for this field and mark it invalid."
        self.is_valid = False
        self.reporter.report(
            self.messages_provider.get_message(message, rule, self, args),
            rule,
            self,
            args,
        )

    def __repr__(self):
        return f'<FieldContext {self.field_path or "<root>"} {self.value!r}>'


def should_run(validation: Validation, field: FieldContext, bail: bool = True) -> bool:
    return (field.is_defined or validation.rule.implicit) and (field.is_valid or not bail)


def execute_rules(validations: Iterable[Validation], field: FieldContext, bail: bool = True) -> None:
    """
    Run validations synchronously, in declaration order. Meeting an
    async rule is a programming error.
    """
    for validation in validations:
        rule = validation.rule
        if rule.is_async:
            raise RuntimeError(
                f'Cannot execute async rule "{rule.name}". Use "validate" instead of "validate_sync"')

        if should_run(validation, field, bail):
            result = rule.validator(field.value, validation.options, field)
            if inspect.isawaitable(result):
                _discard(result)
                raise RuntimeError(
                    f'Rule "{rule.name}" returned an awaitable. Mark it with is_async=True')


async def execute_rules_async(validations: Iterable[Validation], field: FieldContext, bail: bool = True) -> None:
    "Run validations in declaration order, awaiting each one before the next."
    for validation in validations:
        rule = validation.rule
        if should_run(validation, field, bail):
            result = rule.validator(field.value, validation.options, field)
            if inspect.isawaitable(result):
                await result


def _discard(awaitable):
    # Avoid "coroutine was never awaited" warnings for rejected results.
    close = getattr(awaitable, 'close', None)
    if callable(close):
        close()


__all__ = [
    'FieldContext',
    'Rule',
    'Validation',
    'create_rule',
    'execute_rules',
    'execute_rules_async',
    'should_run',
]
