# Copyright (c) 2025 The formvine authors. MIT LICENSE.
#
# Formvine Compiler
# =================
#
# Turns a compiled schema (JSON-like nodes plus a refs store) into an
# executable validation function, and runs it.
#
# The executable walks the nodes depth-first. Every position in the
# input gets a FieldContext, and every rule position goes through the
# rule engine in formvine.rules. Children are processed sequentially in
# declaration order, so errors are reported in a stable order.
#
# The same walker serves both dispatch modes. In async mode awaitable
# results (async rules, async predicates) are awaited. In sync mode
# they are rejected, which means the walker never suspends and can be
# driven to completion without an event loop (see run_sync).


from typing import *
import inspect
import logging

from .helpers import UNDEF, getkey, isarray, isobject
from .rules import FieldContext, execute_rules, execute_rules_async
from .schema import S_literal, S_root


log = logging.getLogger(__name__)


class Compiler:
    """
    Compile a root node into an executable.

        execute = Compiler(rootnode, {'convert_empty_strings_to_null': True}).compile()
        output = await execute(data, meta, refs, messages_provider, reporter)
    """

    def __init__(self, rootnode: Dict[str, Any], options: Dict[str, Any] = None) -> None:
        if not isobject(rootnode) or S_root != rootnode.get('type'):
            raise ValueError('Compiler expects a root node, got: ' + repr(rootnode)[:80])

        self.rootnode = rootnode
        self.options = {
            'convert_empty_strings_to_null': False,
            **(options or {}),
        }

    def compile(self) -> Callable:
        schema = self.rootnode['schema']
        options = self.options

        log.debug('compiled %s schema, empty strings to null: %s',
                  schema['type'], options['convert_empty_strings_to_null'])

        def execute(data, meta, refs, messages_provider, reporter, sync=False):
            "Validate data. Returns a coroutine resolving to the output."
            run = Execution(refs, options, sync)
            field = FieldContext.root(data, meta, reporter, messages_provider)
            return run.node(schema, field)

        return execute


def run_sync(coro: Coroutine) -> Any:
    "Drive a coroutine that is not expected to suspend."
    try:
        coro.send(None)
    except StopIteration as stop:
        return stop.value

    coro.close()
    raise RuntimeError('Validation suspended on an awaitable. Use "validate" instead of "validate_sync"')


class Execution:
    "State of one validation run over a compiled schema."

    def __init__(self, refs, options: Dict[str, Any], sync: bool) -> None:
        self.refs = refs
        self.options = options
        self.sync = sync

    async def call(self, callback: Callable, *args) -> Any:
        "Invoke a user callback, awaiting its result in async mode."
        result = callback(*args)
        if inspect.isawaitable(result):
            if self.sync:
                close = getattr(result, 'close', None)
                if callable(close):
                    close()
                raise RuntimeError(
                    f'Callback "{getattr(callback, "__name__", callback)}" is async. '
                    'Use "validate" instead of "validate_sync"')
            result = await result
        return result

    async def node(self, node: Dict[str, Any], field: FieldContext) -> Any:
        "Validate a field against a node. Returns the output value, or UNDEF."
        handler = getattr(self, 'node_' + node['type'], None)
        if handler is None:
            raise ValueError(f'Unknown node type "{node["type"]}" at {field.get_field_path() or "<root>"}')
        return await handler(node, field)

    async def prepare(self, node: Dict[str, Any], field: FieldContext) -> None:
        "Apply the parse callback, then run the node's validations."
        parse_fn_id = node.get('parse_fn_id')
        if parse_fn_id:
            parse = self.refs.get(parse_fn_id)
            field.mutate(await self.call(parse, field.value, {
                'data': field.data,
                'parent': field.parent,
                'meta': field.meta,
            }))

        if S_literal == node['type'] and self.options['convert_empty_strings_to_null']:
            if '' == field.value:
                field.mutate(None)

        validations = [self.refs.get(validation['rule_fn_id']) for validation in node['validations']]

        # A null on a nullable field only faces the implicit rules.
        if field.value is None and node['allow_null']:
            validations = [validation for validation in validations if validation.rule.implicit]

        if self.sync:
            execute_rules(validations, field, node['bail'])
        else:
            await execute_rules_async(validations, field, node['bail'])

    def proceed(self, node: Dict[str, Any], field: FieldContext, kind: Callable) -> bool:
        "Composite children run only for a valid container value."
        return (
            field.is_defined and
            kind(field.value) and
            (field.is_valid or not node['bail'])
        )

    def output(self, node: Dict[str, Any], field: FieldContext) -> Any:
        if field.value is None and node['allow_null']:
            return None
        if not field.is_defined or not field.is_valid:
            return UNDEF
        return field.value

    async def node_literal(self, node, field):
        await self.prepare(node, field)

        out = self.output(node, field)
        transform_fn_id = node.get('transform_fn_id')
        if transform_fn_id and out is not UNDEF and out is not None:
            out = await self.call(self.refs.get(transform_fn_id), out, field)
        return out

    async def node_object(self, node, field):
        await self.prepare(node, field)

        if not self.proceed(node, field, isobject):
            return self.output(node, field)

        value = field.value
        out = {}

        for child in node['properties']:
            await self.property(child, field, out)

        for group in node['groups']:
            await self.group(group, field, out)

        if node['allow_unknown_properties']:
            known = set(_fieldnames(node))
            unknown = {key: val for key, val in value.items() if key not in known}

            unknown_fn_id = node.get('unknown_fn_id')
            if unknown_fn_id:
                unknown = await self.call(self.refs.get(unknown_fn_id), unknown, field)

            for key, val in (unknown or {}).items():
                out.setdefault(key, val)

        return out if field.is_valid else UNDEF

    async def property(self, child, field, out):
        cfield = field.child(child['field_name'], getkey(field.value, child['field_name']))
        cout = await self.node(child, cfield)
        if cout is not UNDEF:
            out[child['property_name']] = cout

    async def group(self, group, field, out):
        "Merge the properties of the first matching conditional."
        for condition in group['conditions']:
            conditional = self.refs.get(condition['conditional_fn_id'])
            if await self.call(conditional, field.value, field):
                for child in condition['children']:
                    await self.property(child, field, out)
                return

        await self.call(self.refs.get(group['else_conditional_fn_id']), field.value, field)

    async def node_array(self, node, field):
        await self.prepare(node, field)

        if not self.proceed(node, field, isarray):
            return self.output(node, field)

        out = []
        for index, item in enumerate(field.value):
            cfield = field.child(index, item, is_array_member=True, wildcard=True)
            cout = await self.node(node['each'], cfield)
            out.append(None if cout is UNDEF else cout)

        return out if field.is_valid else UNDEF

    async def node_tuple(self, node, field):
        await self.prepare(node, field)

        if not self.proceed(node, field, isarray):
            return self.output(node, field)

        value = field.value
        out = []
        for child in node['properties']:
            index = child['field_name']
            cfield = field.child(index, getkey(value, index), is_array_member=True)
            out.append(await self.node(child, cfield))

        # Missing trailing optional elements are dropped, not padded.
        while 0 < len(out) and out[-1] is UNDEF:
            out.pop()
        out = [None if item is UNDEF else item for item in out]

        if node['allow_unknown_properties']:
            out.extend(value[len(node['properties']):])

        return out if field.is_valid else UNDEF

    async def node_record(self, node, field):
        await self.prepare(node, field)

        if not self.proceed(node, field, isobject):
            return self.output(node, field)

        out = {}
        for key, val in field.value.items():
            cfield = field.child(key, val, wildcard=True)
            cout = await self.node(node['each'], cfield)
            if cout is not UNDEF:
                out[key] = cout

        return out if field.is_valid else UNDEF

    async def node_union(self, node, field):
        "Validate against the schema of the first matching predicate."
        for condition in node['conditions']:
            conditional = self.refs.get(condition['conditional_fn_id'])
            if await self.call(conditional, field.value, field):
                return await self.node(condition['schema'], field)

        await self.call(self.refs.get(node['else_conditional_fn_id']), field.value, field)
        return UNDEF


def _fieldnames(node):
    "Every input key an object node knows about, including group properties."
    for child in node['properties']:
        yield child['field_name']
    for group in node['groups']:
        for condition in group['conditions']:
            for child in condition['children']:
                yield child['field_name']


__all__ = [
    'Compiler',
    'Execution',
    'run_sync',
]
