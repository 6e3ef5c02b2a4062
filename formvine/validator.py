# Copyright (c) 2025 The formvine authors. MIT LICENSE.
#
# Formvine Validator
# ==================
#
# The validator facade binds a schema, compiled once, to the runtime
# options of validation: messages provider, error reporter factory,
# metadata validator and the empty string policy.
#
#     validator = vine.compile(schema)
#     output = await validator.validate(data)
#     output = validator.validate_sync(data)


from typing import *
import inspect
import logging
import types

from . import helpers
from .builder import SchemaBuilder
from .compiler import Compiler, run_sync
from .helpers import UNDEF
from .refs import RefsStore
from .reporters import (
    SimpleErrorReporter,
    SimpleMessagesProvider,
    ValidationError,
    fields,
    messages,
)
from .rules import create_rule
from .schema import S_root


log = logging.getLogger(__name__)


class VineValidator:
    """
    A compiled schema. Compilation happens once, in the constructor;
    each call to validate is an independent run with its own reporter.
    """

    def __init__(self, schema: Any, options: Dict[str, Any]) -> None:
        self.messages_provider = options['messages_provider']
        self.error_reporter = options['error_reporter']
        self.meta_data_validator = options.get('meta_data_validator')
        self.convert_empty_strings_to_null = options.get('convert_empty_strings_to_null', False)

        self.refs = RefsStore()
        self.schema = {
            'type': S_root,
            'schema': schema.compile('', self.refs, {
                'convert_empty_strings_to_null': self.convert_empty_strings_to_null,
                'to_camel_case': False,
            }),
        }

        self.execute = Compiler(self.schema, {
            'convert_empty_strings_to_null': self.convert_empty_strings_to_null,
        }).compile()

        log.debug('compiled %s with %d refs', type(schema).__name__, len(self.refs))

    def _start(self, meta, messages_provider, error_reporter):
        meta = {} if meta is None else meta

        # Runs before any field is looked at. Raising here aborts the run.
        checked = None
        if self.meta_data_validator is not None:
            checked = self.meta_data_validator(meta)

        reporter = (error_reporter or self.error_reporter)()
        provider = messages_provider or self.messages_provider
        return meta, provider, reporter, checked

    def _finish(self, out, reporter):
        if reporter.has_errors:
            raise reporter.create_error()
        return None if out is UNDEF else out

    async def validate(
            self,
            data: Any,
            meta: Dict[str, Any] = None,
            messages_provider: Any = None,
            error_reporter: Callable = None
    ) -> Any:
        "Validate data, returning the output or raising the reporter's error."
        meta, provider, reporter, checked = self._start(meta, messages_provider, error_reporter)
        if inspect.isawaitable(checked):
            await checked

        out = await self.execute(data, meta, self.refs, provider, reporter)
        return self._finish(out, reporter)

    def validate_sync(
            self,
            data: Any,
            meta: Dict[str, Any] = None,
            messages_provider: Any = None,
            error_reporter: Callable = None
    ) -> Any:
        "Validate without an event loop. Async rules and predicates raise RuntimeError."
        meta, provider, reporter, checked = self._start(meta, messages_provider, error_reporter)
        if inspect.isawaitable(checked):
            close = getattr(checked, 'close', None)
            if callable(close):
                close()
            raise RuntimeError(
                'Metadata validator is async. Use "validate" instead of "validate_sync"')

        out = run_sync(self.execute(data, meta, self.refs, provider, reporter, sync=True))
        return self._finish(out, reporter)

    async def try_validate(self, data: Any, **options) -> Tuple[Optional[ValidationError], Any]:
        "Like validate, returning (error, None) or (None, output)."
        try:
            return None, await self.validate(data, **options)
        except ValidationError as err:
            return err, None

    def try_validate_sync(self, data: Any, **options) -> Tuple[Optional[ValidationError], Any]:
        try:
            return None, self.validate_sync(data, **options)
        except ValidationError as err:
            return err, None

    def to_json(self) -> Dict[str, Any]:
        "The compiled schema and a description of its refs."
        return {
            'schema': self.schema,
            'refs': self.refs.to_json(),
        }


class Vine(SchemaBuilder):
    """
    Validate user input using pre-compiled schemas.

    The configuration given here is copied into every validator at
    compile time, so changing it later only affects later compiles.
    """

    def __init__(
        self,
        messages_provider: Any = None,              # Formats error messages.
        error_reporter: Callable = None,            # Factory of a reporter per run.
        convert_empty_strings_to_null: bool = False,
        extensions: Dict[str, Callable] = None      # Custom builder methods.
    ) -> None:
        self.messages_provider = messages_provider or SimpleMessagesProvider(messages, fields)
        self.error_reporter = error_reporter or SimpleErrorReporter
        self.convert_empty_strings_to_null = convert_empty_strings_to_null

        self.helpers = helpers
        self.create_rule = create_rule

        # Registered last, so extensions cannot shadow the attributes above.
        super().__init__(extensions)

    def _options(self, meta_data_validator=None):
        return {
            'messages_provider': self.messages_provider,
            'error_reporter': self.error_reporter,
            'convert_empty_strings_to_null': self.convert_empty_strings_to_null,
            'meta_data_validator': meta_data_validator,
        }

    def compile(self, schema: Any) -> VineValidator:
        """
        Pre-compile a schema into a validator.

            validator = vine.compile(schema)
            await validator.validate(data)
        """
        return VineValidator(schema, self._options())

    def with_meta_data(self, callback: Callable = None):
        """
        Validate the metadata given to the validator at runtime. The
        callback receives the metadata and raises when it is invalid.
        It may be async, in which case only validate accepts it.

            validator = vine.with_meta_data(check_meta).compile(schema)
            await validator.validate(data, meta={'user_id': 1})
        """
        return types.SimpleNamespace(
            compile=lambda schema: VineValidator(schema, self._options(callback)))

    async def validate(self, schema: Any, data: Any, **options) -> Any:
        "Compile and run a schema in one go."
        return await self.compile(schema).validate(data, **options)

    def validate_sync(self, schema: Any, data: Any, **options) -> Any:
        return self.compile(schema).validate_sync(data, **options)


__all__ = [
    'Vine',
    'VineValidator',
]
