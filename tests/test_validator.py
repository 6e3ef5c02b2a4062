# RUN: python -m unittest discover -s tests
# RUN-SOME: python -m unittest discover -s tests -k union

import asyncio
import enum
import unittest
from datetime import date, datetime

from formvine import (
    SimpleErrorReporter,
    SimpleMessagesProvider,
    ValidationError,
    Vine,
    create_rule,
    vine,
)
from formvine.reporters import fields, messages


class Role(enum.Enum):
    ADMIN = 'admin'
    USER = 'user'


def login_schema():
    return vine.object({
        'username': vine.string(),
        'password': vine.string().min_length(8),
    })


class TestValidate(unittest.IsolatedAsyncioTestCase):

    async def assertErrors(self, validator, data, expected, **options):
        with self.assertRaises(ValidationError) as ctx:
            await validator.validate(data, **options)
        self.assertEqual(expected, ctx.exception.messages)


    async def test_valid_round_trip(self):
        validator = vine.compile(login_schema())
        data = {'username': 'virk', 'password': 'secret123'}

        self.assertEqual(data, await validator.validate(data))
        self.assertEqual(data, validator.validate_sync(data))


    async def test_unknown_properties_dropped(self):
        validator = vine.compile(login_schema())
        out = await validator.validate({'username': 'virk', 'password': 'secret123', 'admin': True})
        self.assertEqual({'username': 'virk', 'password': 'secret123'}, out)


    async def test_missing_password(self):
        await self.assertErrors(vine.compile(login_schema()), {'username': 'virk'}, [{
            'message': 'The password field must be defined',
            'rule': 'required',
            'field': 'password',
        }])


    async def test_rule_meta(self):
        await self.assertErrors(vine.compile(login_schema()), {'username': 'virk', 'password': 'abc'}, [{
            'message': 'The password field must have at least 8 characters',
            'rule': 'min_length',
            'field': 'password',
            'meta': {'min': 8},
        }])


    async def test_errors_in_declaration_order(self):
        validator = vine.compile(vine.object({
            'a': vine.string(),
            'b': vine.number(),
            'c': vine.boolean(),
        }))

        with self.assertRaises(ValidationError) as ctx:
            await validator.validate({'a': 1, 'b': 'x', 'c': 'maybe'})
        self.assertEqual(['a', 'b', 'c'], [e['field'] for e in ctx.exception.messages])
        self.assertEqual(['string', 'number', 'boolean'], [e['rule'] for e in ctx.exception.messages])


    async def test_bail_per_field(self):
        schema = vine.object({
            'code': vine.string().min_length(10).starts_with('x'),
            'name': vine.string().min_length(10).starts_with('x').bail(False),
        })

        with self.assertRaises(ValidationError) as ctx:
            await vine.validate(schema, {'code': 'abc', 'name': 'abc'})

        self.assertEqual([
            ('code', 'min_length'),
            ('name', 'min_length'),
            ('name', 'starts_with'),
        ], [(e['field'], e['rule']) for e in ctx.exception.messages])


    async def test_root_type_error(self):
        await self.assertErrors(vine.compile(login_schema()), 'nope', [{
            'message': 'The data field must be an object',
            'rule': 'object',
            'field': '',
        }])


    async def test_root_missing(self):
        await self.assertErrors(vine.compile(vine.string()), None, [{
            'message': 'The data field must be defined',
            'rule': 'required',
            'field': '',
        }])


class TestBailDisabled(unittest.IsolatedAsyncioTestCase):

    async def assertRules(self, schema, data, expected):
        with self.assertRaises(ValidationError) as ctx:
            await vine.validate(schema, data)
        self.assertEqual(expected, [(e['field'], e['rule']) for e in ctx.exception.messages])


    async def test_number_wrong_kind(self):
        await self.assertRules(
            vine.object({'age': vine.number().min(18).bail(False)}), {'age': 'abc'}, [('age', 'number')])

        schema = vine.number(strict=True).min(1).max(9).range([1, 9]).positive().negative() \
            .without_decimals().bail(False)
        await self.assertRules(schema, True, [('', 'number')])


    async def test_string_wrong_kind(self):
        schema = vine.string().min_length(3).max_length(5).fixed_length(4).regex(r'^a') \
            .alpha().alpha_numeric().starts_with('a').ends_with('z') \
            .trim().to_lower_case().to_upper_case().to_camel_case().bail(False)
        await self.assertRules(vine.object({'name': schema}), {'name': 5}, [('name', 'string')])


    async def test_date_wrong_kind(self):
        schema = vine.date().after('today').before('today').bail(False)
        await self.assertRules(vine.object({'due': schema}), {'due': 'nope'}, [('due', 'date')])


    async def test_right_kind_reports_every_rule(self):
        schema = vine.number().min(18).max(5).positive().bail(False)
        await self.assertRules(vine.object({'age': schema}), {'age': '-1'},
                               [('age', 'min'), ('age', 'positive')])


class TestPresence(unittest.IsolatedAsyncioTestCase):

    async def test_optional(self):
        validator = vine.compile(vine.object({'age': vine.number().optional()}))
        self.assertEqual({}, await validator.validate({}))
        self.assertEqual({'age': 3}, await validator.validate({'age': '3'}))


    async def test_optional_rejects_null(self):
        validator = vine.compile(vine.object({'age': vine.number().optional()}))
        with self.assertRaises(ValidationError) as ctx:
            await validator.validate({'age': None})
        self.assertEqual(['number'], [e['rule'] for e in ctx.exception.messages])


    async def test_nullable(self):
        calls = []
        track = create_rule(lambda value, options, field: calls.append(value), name='track')
        validator = vine.compile(vine.object({'age': vine.number().use(track()).nullable()}))

        self.assertEqual({'age': None}, await validator.validate({'age': None}))
        self.assertEqual([], calls)

        with self.assertRaises(ValidationError) as ctx:
            await validator.validate({})
        self.assertEqual(['required'], [e['rule'] for e in ctx.exception.messages])


    async def test_optional_nullable(self):
        validator = vine.compile(vine.object({'age': vine.number().optional().nullable()}))
        self.assertEqual({}, await validator.validate({}))
        self.assertEqual({'age': None}, await validator.validate({'age': None}))


    async def test_empty_strings_to_null(self):
        custom = Vine(convert_empty_strings_to_null=True)

        validator = custom.compile(custom.object({'name': custom.string().nullable()}))
        self.assertEqual({'name': None}, await validator.validate({'name': ''}))

        validator = custom.compile(custom.object({'name': custom.string()}))
        with self.assertRaises(ValidationError) as ctx:
            await validator.validate({'name': ''})
        self.assertEqual(['required'], [e['rule'] for e in ctx.exception.messages])

        # Off by default.
        validator = vine.compile(vine.object({'name': vine.string().nullable()}))
        self.assertEqual({'name': ''}, await validator.validate({'name': ''}))


    async def test_required_if_missing(self):
        validator = vine.compile(vine.object({
            'email': vine.string().optional(),
            'phone': vine.string().optional().required_if_missing('email'),
        }))

        self.assertEqual({'email': 'a@b.c'}, await validator.validate({'email': 'a@b.c'}))

        with self.assertRaises(ValidationError) as ctx:
            await validator.validate({})
        self.assertEqual([('phone', 'required')],
                         [(e['field'], e['rule']) for e in ctx.exception.messages])


    async def test_required_if_exists(self):
        validator = vine.compile(vine.object({
            'password': vine.string().optional(),
            'old_password': vine.string().optional().required_if_exists(['password']),
        }))

        self.assertEqual({}, await validator.validate({}))
        with self.assertRaises(ValidationError):
            await validator.validate({'password': 'x'})


    async def test_required_when(self):
        validator = vine.compile(vine.object({
            'kind': vine.string(),
            'vat': vine.string().optional().required_when(lambda field: field.parent.get('kind') == 'company'),
        }))

        self.assertEqual({'kind': 'person'}, await validator.validate({'kind': 'person'}))
        with self.assertRaises(ValidationError):
            await validator.validate({'kind': 'company'})


class TestLeafTypes(unittest.IsolatedAsyncioTestCase):

    async def test_string_mutations(self):
        schema = vine.object({
            'name': vine.string().trim().to_upper_case(),
            'slug': vine.string().to_camel_case(),
        })
        out = await vine.validate(schema, {'name': '  virk ', 'slug': 'hello_world'})
        self.assertEqual({'name': 'VIRK', 'slug': 'helloWorld'}, out)


    async def test_string_confirmed(self):
        schema = vine.object({'password': vine.string().confirmed()})

        out = await vine.validate(schema, {'password': 'x', 'password_confirmation': 'x'})
        self.assertEqual({'password': 'x'}, out)

        with self.assertRaises(ValidationError) as ctx:
            await vine.validate(schema, {'password': 'x', 'password_confirmation': 'y'})
        self.assertEqual([{
            'message': 'The password field and password_confirmation field must be the same',
            'rule': 'confirmed',
            'field': 'password',
            'meta': {'other_field': 'password_confirmation'},
        }], ctx.exception.messages)


    async def test_string_rules(self):
        schema = vine.object({
            'code': vine.string().alpha_numeric(allow_dashes=True).fixed_length(5),
            'name': vine.string().alpha(allow_spaces=True).in_list(['Jo Bo', 'Al']),
            'color': vine.string().not_in_list(['red']).regex(r'^[a-z]+$').ends_with('e'),
        })

        out = await vine.validate(schema, {'code': 'ab-12', 'name': 'Jo Bo', 'color': 'blue'})
        self.assertEqual({'code': 'ab-12', 'name': 'Jo Bo', 'color': 'blue'}, out)

        with self.assertRaises(ValidationError) as ctx:
            await vine.validate(schema, {'code': 'ab_12', 'name': 'Zed', 'color': 'red'})
        self.assertEqual(['alpha_numeric', 'in', 'not_in'], [e['rule'] for e in ctx.exception.messages])


    async def test_number(self):
        schema = vine.object({
            'age': vine.number().range([18, 99]).without_decimals(),
            'score': vine.number(strict=True).positive(),
        })

        self.assertEqual({'age': 20, 'score': 1.5}, await vine.validate(schema, {'age': '20', 'score': 1.5}))

        with self.assertRaises(ValidationError) as ctx:
            await vine.validate(schema, {'age': '20.5', 'score': '1'})
        self.assertEqual(['without_decimals', 'number'], [e['rule'] for e in ctx.exception.messages])

        with self.assertRaises(ValidationError) as ctx:
            await vine.validate(schema, {'age': True, 'score': -1})
        self.assertEqual(['number', 'positive'], [e['rule'] for e in ctx.exception.messages])


    async def test_number_bounds_meta(self):
        with self.assertRaises(ValidationError) as ctx:
            await vine.validate(vine.object({'n': vine.number().min(5).max(10)}), {'n': 11})
        self.assertEqual([{
            'message': 'The n field must not be greater than 10',
            'rule': 'max',
            'field': 'n',
            'meta': {'max': 10},
        }], ctx.exception.messages)


    async def test_boolean_and_accepted(self):
        schema = vine.object({
            'subscribe': vine.boolean(),
            'terms': vine.accepted(),
        })

        self.assertEqual({'subscribe': False, 'terms': True},
                         await vine.validate(schema, {'subscribe': '0', 'terms': 'on'}))

        with self.assertRaises(ValidationError) as ctx:
            await vine.validate(schema, {'subscribe': 'maybe', 'terms': 'off'})
        self.assertEqual(['boolean', 'accepted'], [e['rule'] for e in ctx.exception.messages])

        with self.assertRaises(ValidationError):
            await vine.validate(vine.object({'b': vine.boolean(strict=True)}), {'b': 'true'})


    async def test_date(self):
        schema = vine.object({'born': vine.date().before('today')})

        out = await vine.validate(schema, {'born': '2000-01-15'})
        self.assertEqual({'born': datetime(2000, 1, 15)}, out)

        out = await vine.validate(schema, {'born': date(2000, 1, 15)})
        self.assertEqual({'born': datetime(2000, 1, 15)}, out)

        with self.assertRaises(ValidationError) as ctx:
            await vine.validate(schema, {'born': '15/01/2000'})
        self.assertEqual(['date'], [e['rule'] for e in ctx.exception.messages])

        with self.assertRaises(ValidationError) as ctx:
            await vine.validate(vine.object({'due': vine.date().after('today')}), {'due': '2000-01-15'})
        self.assertEqual(['date.after'], [e['rule'] for e in ctx.exception.messages])


    async def test_date_formats(self):
        out = await vine.validate(vine.date(['%d/%m/%Y']), '15/01/2000')
        self.assertEqual(datetime(2000, 1, 15), out)


    async def test_enum(self):
        self.assertEqual('admin', await vine.validate(vine.enum(Role), 'admin'))
        self.assertEqual('b', await vine.validate(vine.enum(['a', 'b']), 'b'))
        self.assertEqual('b', await vine.validate(vine.enum(lambda field: ['b']), 'b'))

        with self.assertRaises(ValidationError) as ctx:
            await vine.validate(vine.enum(['a', 'b']), 'c')
        self.assertEqual([{
            'message': 'The selected data is invalid',
            'rule': 'enum',
            'field': '',
            'meta': {'choices': ['a', 'b']},
        }], ctx.exception.messages)


    async def test_literal(self):
        self.assertIs(True, await vine.validate(vine.literal(True), 'true'))
        self.assertEqual(1, await vine.validate(vine.literal(1), '1'))
        self.assertEqual('yes', await vine.validate(vine.literal('yes'), 'yes'))

        with self.assertRaises(ValidationError):
            await vine.validate(vine.literal('yes'), 'no')


    async def test_any(self):
        self.assertEqual({'x': [1]}, await vine.validate(vine.any(), {'x': [1]}))


    async def test_parse_and_transform(self):
        schema = vine.object({
            'tags': vine.string()
                .parse(lambda value, ctx: ','.join(value) if isinstance(value, list) else value)
                .transform(lambda value, field: value.split(',')),
        })

        self.assertEqual({'tags': ['a', 'b']}, await vine.validate(schema, {'tags': ['a', 'b']}))
        self.assertEqual({'tags': ['a']}, await vine.validate(schema, {'tags': 'a'}))


    async def test_parse_context(self):
        seen = []

        def parse(value, ctx):
            seen.append((ctx['data'], ctx['parent'], ctx['meta']))
            return value

        data = {'name': 'x'}
        await vine.validate(vine.object({'name': vine.string().parse(parse)}), data, meta={'id': 1})
        self.assertEqual([(data, data, {'id': 1})], seen)


class TestComposites(unittest.IsolatedAsyncioTestCase):

    async def test_array(self):
        schema = vine.object({'scores': vine.array(vine.number()).min_length(1)})

        self.assertEqual({'scores': [1, 2]}, await vine.validate(schema, {'scores': ['1', 2]}))

        with self.assertRaises(ValidationError) as ctx:
            await vine.validate(schema, {'scores': ['1', 2, 'x']})
        self.assertEqual([{
            'message': 'The 2 field must be a number',
            'rule': 'number',
            'field': 'scores.2',
            'index': 2,
        }], ctx.exception.messages)

        with self.assertRaises(ValidationError) as ctx:
            await vine.validate(schema, {'scores': []})
        self.assertEqual([{
            'message': 'The scores field must have at least 1 items',
            'rule': 'array.min_length',
            'field': 'scores',
            'meta': {'min': 1},
        }], ctx.exception.messages)


    async def test_array_wildcard_messages(self):
        provider = SimpleMessagesProvider(
            {**messages, 'scores.*.number': 'Score {{ field }} is not a number'}, fields)
        validator = vine.compile(vine.object({'scores': vine.array(vine.number())}))

        with self.assertRaises(ValidationError) as ctx:
            await validator.validate({'scores': ['x']}, messages_provider=provider)
        self.assertEqual('Score 0 is not a number', ctx.exception.messages[0]['message'])


    async def test_field_named_like_container(self):
        schema = vine.object({'array': vine.string().min_length(3)})

        with self.assertRaises(ValidationError) as ctx:
            await vine.validate(schema, {'array': 'a'})
        self.assertEqual([{
            'message': 'The array field must have at least 3 characters',
            'rule': 'min_length',
            'field': 'array',
            'meta': {'min': 3},
        }], ctx.exception.messages)


    async def test_array_rules(self):
        self.assertEqual([1, 2], await vine.validate(vine.array(vine.any()).compact(), [1, None, '', 2]))

        with self.assertRaises(ValidationError) as ctx:
            await vine.validate(vine.array(vine.number()).distinct(), [1, 2, 1])
        self.assertEqual(['distinct'], [e['rule'] for e in ctx.exception.messages])

        users = vine.array(vine.object({'id': vine.number()})).distinct('id')
        with self.assertRaises(ValidationError):
            await vine.validate(users, [{'id': 1}, {'id': 1}])

        with self.assertRaises(ValidationError) as ctx:
            await vine.validate(vine.array(vine.any()).not_empty(), [])
        self.assertEqual(['not_empty'], [e['rule'] for e in ctx.exception.messages])

        with self.assertRaises(ValidationError) as ctx:
            await vine.validate(vine.array(vine.any()).fixed_length(2).max_length(1).bail(False), [1, 2, 3])
        self.assertEqual(['array.fixed_length', 'array.max_length'],
                         [e['rule'] for e in ctx.exception.messages])


    async def test_array_of_objects_paths(self):
        schema = vine.array(vine.object({'id': vine.number()}))

        with self.assertRaises(ValidationError) as ctx:
            await vine.validate(schema, [{'id': 1}, {'id': 'x'}])
        self.assertEqual([{
            'message': 'The id field must be a number',
            'rule': 'number',
            'field': '1.id',
        }], ctx.exception.messages)


    async def test_array_type_error_skips_children(self):
        calls = []
        track = create_rule(lambda value, options, field: calls.append(value), name='track')

        with self.assertRaises(ValidationError) as ctx:
            await vine.validate(vine.array(vine.any().use(track())), 'abc')
        self.assertEqual(['array'], [e['rule'] for e in ctx.exception.messages])
        self.assertEqual([], calls)


    async def test_tuple(self):
        schema = vine.tuple([vine.string(), vine.number().optional()])

        self.assertEqual(['a'], await vine.validate(schema, ['a']))
        self.assertEqual(['a', 3], await vine.validate(schema, ['a', '3']))
        self.assertEqual(['a', 3], await vine.validate(schema, ['a', 3, 'x']))

        extra = vine.tuple([vine.string(), vine.number()]).allow_unknown_properties()
        self.assertEqual(['a', 3, 'x'], await vine.validate(extra, ['a', 3, 'x']))

        with self.assertRaises(ValidationError) as ctx:
            await vine.validate(schema, [])
        self.assertEqual([{
            'message': 'The 0 field must be defined',
            'rule': 'required',
            'field': '0',
            'index': 0,
        }], ctx.exception.messages)


    async def test_record(self):
        schema = vine.record(vine.number()).max_length(2)

        self.assertEqual({'a': 1, 'b': 2}, await vine.validate(schema, {'a': '1', 'b': 2}))

        with self.assertRaises(ValidationError) as ctx:
            await vine.validate(schema, {'a': 'x'})
        self.assertEqual([{
            'message': 'The a field must be a number',
            'rule': 'number',
            'field': 'a',
        }], ctx.exception.messages)

        with self.assertRaises(ValidationError) as ctx:
            await vine.validate(schema, {'a': 1, 'b': 2, 'c': 3})
        self.assertEqual(['record.max_length'], [e['rule'] for e in ctx.exception.messages])


    async def test_nested_object_null(self):
        schema = vine.object({'profile': vine.object({'bio': vine.string()}).nullable()})
        self.assertEqual({'profile': None}, await vine.validate(schema, {'profile': None}))
        self.assertEqual({'profile': {'bio': 'x'}}, await vine.validate(schema, {'profile': {'bio': 'x'}}))


    async def test_allow_unknown_properties(self):
        schema = vine.object({'name': vine.string()}).allow_unknown_properties()
        out = await vine.validate(schema, {'name': 'x', 'extra': 1})
        self.assertEqual({'name': 'x', 'extra': 1}, out)

        upper = vine.object({'name': vine.string()}).allow_unknown_properties(
            lambda unknown, field: {key.upper(): val for key, val in unknown.items()})
        out = await vine.validate(upper, {'name': 'x', 'extra': 1})
        self.assertEqual({'name': 'x', 'EXTRA': 1}, out)


    async def test_camel_case(self):
        schema = vine.object({
            'full_name': vine.string(),
            'home_address': vine.object({'zip_code': vine.string()}),
            'tags': vine.array(vine.object({'tag_name': vine.string()})),
        }).to_camel_case()

        out = await vine.validate(schema, {
            'full_name': 'Virk',
            'home_address': {'zip_code': '123'},
            'tags': [{'tag_name': 'a'}],
        })

        self.assertEqual({
            'fullName': 'Virk',
            'homeAddress': {'zip_code': '123'},
            'tags': [{'tag_name': 'a'}],
        }, out)


    async def test_camel_case_errors_use_input_names(self):
        schema = vine.object({'full_name': vine.string()}).to_camel_case()

        with self.assertRaises(ValidationError) as ctx:
            await vine.validate(schema, {})
        self.assertEqual('full_name', ctx.exception.messages[0]['field'])


class TestUnion(unittest.IsolatedAsyncioTestCase):

    def contact(self, calls):
        def is_email(value, field):
            calls.append('email')
            return isinstance(value, str) and '@' in value

        def is_phone(value, field):
            calls.append('phone')
            return isinstance(value, str) and value.isdigit()

        return vine.object({
            'contact': vine.union([
                vine.union.if_(is_email, vine.string().trim()),
                vine.union.if_(is_phone, vine.number()),
            ]),
        })


    async def test_first_match_wins(self):
        calls = []
        schema = self.contact(calls)

        self.assertEqual({'contact': 'a@b.c'}, await vine.validate(schema, {'contact': 'a@b.c '}))
        self.assertEqual(['email'], calls)

        calls.clear()
        self.assertEqual({'contact': 123}, await vine.validate(schema, {'contact': '123'}))
        self.assertEqual(['email', 'phone'], calls)


    async def test_fallback_only(self):
        with self.assertRaises(ValidationError) as ctx:
            await vine.validate(self.contact([]), {'contact': 5})
        self.assertEqual([{
            'message': 'Invalid value provided for contact field',
            'rule': 'union',
            'field': 'contact',
        }], ctx.exception.messages)


    async def test_otherwise(self):
        union = vine.union([vine.union.if_(lambda v, f: isinstance(v, str), vine.string())])
        union.otherwise(lambda value, field: field.report('Use text for {{ field }}', 'text'))

        with self.assertRaises(ValidationError) as ctx:
            await vine.validate(vine.object({'note': union}), {'note': 1})
        self.assertEqual([{'message': 'Use text for note', 'rule': 'text', 'field': 'note'}],
                         ctx.exception.messages)


    async def test_else(self):
        schema = vine.union([
            vine.union.if_(lambda v, f: isinstance(v, list), vine.array(vine.string())),
            vine.union.else_(vine.string()),
        ])
        self.assertEqual(['a'], await vine.validate(schema, ['a']))
        self.assertEqual('a', await vine.validate(schema, 'a'))


    async def test_async_predicate(self):
        async def is_list(value, field):
            await asyncio.sleep(0)
            return isinstance(value, list)

        schema = vine.union([
            vine.union.if_(is_list, vine.array(vine.number())),
            vine.union.else_(vine.number()),
        ])

        self.assertEqual([1], await vine.validate(schema, ['1']))
        self.assertEqual(1, await vine.validate(schema, '1'))

        with self.assertRaises(RuntimeError):
            vine.validate_sync(schema, ['1'])


    async def test_camel_cased_union_property(self):
        schema = vine.object({
            'home_phone': vine.union([vine.union.else_(vine.string())]),
        }).to_camel_case()
        self.assertEqual({'homePhone': 'x'}, await vine.validate(schema, {'home_phone': 'x'}))


    async def test_union_of_types(self):
        schema = vine.object({
            'value': vine.union_of_types([vine.string(), vine.number(strict=True), vine.array(vine.string())]),
        })

        self.assertEqual({'value': 'a'}, await vine.validate(schema, {'value': 'a'}))
        self.assertEqual({'value': 5}, await vine.validate(schema, {'value': 5}))
        self.assertEqual({'value': ['a']}, await vine.validate(schema, {'value': ['a']}))

        with self.assertRaises(ValidationError) as ctx:
            await vine.validate(schema, {'value': True})
        self.assertEqual([{
            'message': 'Invalid value provided for value field',
            'rule': 'union_of_types',
            'field': 'value',
        }], ctx.exception.messages)


class TestGroup(unittest.IsolatedAsyncioTestCase):

    def schema(self):
        return vine.object({'name': vine.string()}).merge(vine.group([
            vine.group.if_(lambda data, field: data.get('kind') == 'company', {
                'kind': vine.literal('company'),
                'vat': vine.string(),
            }),
            vine.group.if_(lambda data, field: data.get('kind') == 'person', {
                'kind': vine.literal('person'),
                'age': vine.number(),
            }),
        ]))


    async def test_group_match(self):
        out = await vine.validate(self.schema(), {'name': 'x', 'kind': 'person', 'age': '30', 'vat': 'no'})
        self.assertEqual({'name': 'x', 'kind': 'person', 'age': 30}, out)


    async def test_group_errors(self):
        with self.assertRaises(ValidationError) as ctx:
            await vine.validate(self.schema(), {'name': 'x', 'kind': 'company'})
        self.assertEqual([{
            'message': 'The vat field must be defined',
            'rule': 'required',
            'field': 'vat',
        }], ctx.exception.messages)


    async def test_group_fallback(self):
        with self.assertRaises(ValidationError) as ctx:
            await vine.validate(self.schema(), {'name': 'x', 'kind': 'robot'})
        self.assertEqual([{
            'message': 'Invalid value provided for data field',
            'rule': 'union_group',
            'field': '',
        }], ctx.exception.messages)


    async def test_group_else_and_unknown(self):
        schema = vine.object({}).merge(vine.group([
            vine.group.if_(lambda data, field: data.get('hiring') == 'yes', {'budget': vine.number()}),
            vine.group.else_({'hiring': vine.literal('no')}),
        ])).allow_unknown_properties()

        self.assertEqual({'hiring': 'no', 'x': 1}, await vine.validate(schema, {'hiring': 'no', 'x': 1}))

        # Keys declared by any branch are never copied as unknown.
        self.assertEqual({'budget': 10},
                         await vine.validate(schema, {'hiring': 'yes', 'budget': '10'}))


class TestFacade(unittest.IsolatedAsyncioTestCase):

    async def test_meta_data_rejected_first(self):
        calls = []
        track = create_rule(lambda value, options, field: calls.append(value), name='track')

        def check_meta(meta):
            if 'user_id' not in meta:
                raise ValueError('user_id is required')

        validator = vine.with_meta_data(check_meta).compile(vine.object({'name': vine.string().use(track())}))

        with self.assertRaises(ValueError):
            await validator.validate({'name': 'x'})
        with self.assertRaises(ValueError):
            validator.validate_sync({'name': 'x'}, meta={})
        self.assertEqual([], calls)

        self.assertEqual({'name': 'x'}, await validator.validate({'name': 'x'}, meta={'user_id': 1}))
        self.assertEqual(['x'], calls)


    async def test_async_meta_data(self):
        calls = []
        track = create_rule(lambda value, options, field: calls.append(value), name='track')

        async def check_meta(meta):
            await asyncio.sleep(0)
            if 'admin' != meta.get('role'):
                raise ValueError('admin role is required')

        validator = vine.with_meta_data(check_meta).compile(vine.object({'name': vine.string().use(track())}))

        with self.assertRaises(ValueError):
            await validator.validate({'name': 'x'}, meta={'role': 'x'})
        self.assertEqual([], calls)

        with self.assertRaises(RuntimeError):
            validator.validate_sync({'name': 'x'}, meta={'role': 'admin'})
        self.assertEqual([], calls)

        self.assertEqual({'name': 'x'}, await validator.validate({'name': 'x'}, meta={'role': 'admin'}))
        self.assertEqual(['x'], calls)


    async def test_meta_reaches_rules(self):
        seen = []
        track = create_rule(lambda value, options, field: seen.append(field.meta), name='track')
        await vine.validate(vine.string().use(track()), 'x', meta={'tenant': 't1'})
        self.assertEqual([{'tenant': 't1'}], seen)


    async def test_validate_sync_rejects_async_rule(self):
        async def unique(value, options, field):
            await asyncio.sleep(0)
            if value == 'taken':
                field.report('The {{ field }} is taken', 'unique')

        validator = vine.compile(vine.object({'username': vine.string().use(create_rule(unique)())}))

        with self.assertRaises(RuntimeError):
            validator.validate_sync({'username': 'free'})

        self.assertEqual({'username': 'free'}, await validator.validate({'username': 'free'}))

        with self.assertRaises(ValidationError) as ctx:
            await validator.validate({'username': 'taken'})
        self.assertEqual('The username is taken', ctx.exception.messages[0]['message'])


    async def test_async_transform_rejected_in_sync(self):
        async def upper(value, field):
            return value.upper()

        validator = vine.compile(vine.string().transform(upper))
        self.assertEqual('A', await validator.validate('a'))
        with self.assertRaises(RuntimeError):
            validator.validate_sync('a')


    async def test_try_validate(self):
        validator = vine.compile(login_schema())

        err, out = await validator.try_validate({'username': 'virk', 'password': 'secret123'})
        self.assertIsNone(err)
        self.assertEqual({'username': 'virk', 'password': 'secret123'}, out)

        err, out = await validator.try_validate({'username': 'virk'})
        self.assertIsInstance(err, ValidationError)
        self.assertIsNone(out)
        self.assertEqual(['required'], [e['rule'] for e in err.messages])

        err, out = validator.try_validate_sync({})
        self.assertEqual(['username', 'password'], [e['field'] for e in err.messages])


    async def test_validate_sync(self):
        self.assertEqual({'n': 1}, vine.validate_sync(vine.object({'n': vine.number()}), {'n': '1'}))


    async def test_custom_messages_and_reporter(self):
        class CollectingReporter(SimpleErrorReporter):
            def create_error(self):
                return LookupError([error['field'] for error in self.errors])

        custom = Vine(
            messages_provider=SimpleMessagesProvider(
                {**messages, 'username.required': 'Pick a {{ field }}'}, {'username': 'user name'}),
            error_reporter=CollectingReporter,
        )
        validator = custom.compile(login_schema())

        with self.assertRaises(LookupError) as ctx:
            await validator.validate({})
        self.assertEqual((['username', 'password'],), ctx.exception.args)

        with self.assertRaises(ValidationError) as ctx:
            await validator.validate({}, error_reporter=SimpleErrorReporter)
        self.assertEqual('Pick a user name', ctx.exception.messages[0]['message'])


    async def test_concurrent_runs_are_independent(self):
        async def slow(value, options, field):
            await asyncio.sleep(0)
            if value == 'bad':
                field.report('bad value', 'slow')

        validator = vine.compile(vine.object({'v': vine.string().use(create_rule(slow)())}))

        results = await asyncio.gather(
            validator.try_validate({'v': 'bad'}),
            validator.try_validate({'v': 'good'}),
            validator.try_validate({'v': 'bad'}),
        )

        self.assertEqual([1, 0, 1], [len(err.messages) if err else 0 for err, _ in results])
        self.assertEqual({'v': 'good'}, results[1][1])


    async def test_validator_reuse(self):
        validator = vine.compile(login_schema())
        with self.assertRaises(ValidationError):
            await validator.validate({})
        self.assertEqual({'username': 'a', 'password': '12345678'},
                         await validator.validate({'username': 'a', 'password': '12345678'}))


if __name__ == '__main__':
    unittest.main()
