import unittest
from collections import OrderedDict

from mongoparams.handlers import *
from mongoparams.exc import InvalidQueryError
from mongoparams.stages import Pipeline, MatchStage, SortStage, SkipStage, LimitStage, ProjectStage, CustomStage


class HandlersTest(unittest.TestCase):
    """ Test individual handlers """

    longMessage = True
    maxDiff = None

    def test_search(self):
        search = lambda params, fields, **settings: \
            MongoSearch(params, settings).input(fields).compile_criteria()

        # No search term: nothing
        self.assertEqual(search({}, ['name']), {})
        self.assertEqual(search({'search': ''}, ['name']), {})
        # No fields: nothing
        self.assertEqual(search({'search': 'ali'}, []), {})

        # Search
        self.assertEqual(search({'search': 'ali'}, ['name', 'email']), {
            '$or': [
                {'name': {'$regex': 'ali', '$options': 'i'}},
                {'email': {'$regex': 'ali', '$options': 'i'}},
            ]
        })

        # Escaped by default
        self.assertEqual(search({'search': 'a.b*'}, ['name']),
                         {'$or': [{'name': {'$regex': r'a\.b\*', '$options': 'i'}}]})

        # Settings: raw regexp, options
        self.assertEqual(search({'search': '^a.b'}, ['name'], escape_search=False, search_options='im'),
                         {'$or': [{'name': {'$regex': '^a.b', '$options': 'im'}}]})

        # Empty
        self.assertTrue(MongoSearch({}).input(['name']).is_input_empty())

    def test_filter(self):
        filter = lambda params, fields=None, **settings: \
            MongoFilter(params, settings).input(fields).compile_criteria()

        # Reserved keys are never filters
        self.assertEqual(filter({'search': 'a', 'sort': 'b', 'page': '1', 'limit': '2',
                                 'fields': 'c', 'is_count_only': '1'}), {})

        # All fields
        self.assertEqual(filter({'status': 'active', 'age': {'$gte': 18}, 'page': '1'}),
                         {'status': 'active', 'age': {'$gte': 18}})

        # Allow-list
        self.assertEqual(filter({'status': 'active', 'role': 'admin', 'password': 'x'}, ['status', 'role']),
                         {'status': 'active', 'role': 'admin'})
        self.assertEqual(filter({'password': 'x'}, ['status']), {})

        # or, and: list
        self.assertEqual(filter({'or': [{'status': 'active'}, {'role': 'admin'}],
                                 'and': [{'age': {'$gte': 18}}]}),
                         {'$or': [{'status': 'active'}, {'role': 'admin'}],
                          '$and': [{'age': {'$gte': 18}}]})

        # or: dict, as query string parsers make it
        self.assertEqual(filter({'or': {'0': {'status': 'active'}, '1': {'role': 'admin'}}}),
                         {'$or': [{'status': 'active'}, {'role': 'admin'}]})

        # or, and are subject to the allow-list
        self.assertEqual(filter({'or': [{'status': 'active'}], 'status': 'banned'}, ['status']),
                         {'status': 'banned'})
        self.assertEqual(filter({'or': [{'status': 'active'}]}, ['status', 'or']),
                         {'$or': [{'status': 'active'}]})

        # Empty or: nothing
        self.assertEqual(filter({'or': [], 'and': ''}), {})

    def test_filter_malformed_composite(self):
        """ Malformed `or`/`and` are skipped and logged, not raised """
        filter = lambda params, **settings: MongoFilter(params, settings).input().compile_criteria()

        # Not a list
        with self.assertLogs('mongoparams.handlers.filter', level='WARNING') as logs:
            self.assertEqual(filter({'or': 'status', 'status': 'active'}), {'status': 'active'})
        self.assertIn('`or`', logs.output[0])

        # Not a list of objects
        with self.assertLogs('mongoparams.handlers.filter', level='WARNING'):
            self.assertEqual(filter({'and': [{'a': 1}, 'b'], 'or': [{'c': 1}]}),
                             {'$or': [{'c': 1}]})

        # Strict mode: raise
        with self.assertRaises(InvalidQueryError):
            filter({'or': 'status'}, strict_composite_filters=True)

    def test_sort(self):
        sort = lambda params, fields=None, **settings: \
            MongoSort(params, settings).input(fields)

        # Empty: default sort
        s = sort({})
        self.assertTrue(s.is_input_empty())
        self.assertEqual(s.compile_sort(), OrderedDict(created_at=-1))
        self.assertEqual(sort({}, default_sort={'name': 1}).compile_sort(), OrderedDict(name=1))

        # Fields, in order
        s = sort({'sort': '-age,name'})
        self.assertEqual(list(s.compile_sort().items()), [('age', -1), ('name', 1)])
        self.assertEqual(s.get_final_input_value(), ['-age', 'name'])

        # Allow-list matches unprefixed names
        self.assertEqual(list(sort({'sort': '-age,name,-password'}, ['age', 'name']).compile_sort().items()),
                         [('age', -1), ('name', 1)])

        # Nothing allowed: default
        self.assertEqual(sort({'sort': 'password'}, ['name']).compile_sort(), OrderedDict(created_at=-1))

        # Duplicates: last one wins
        self.assertEqual(dict(sort({'sort': 'age,-age'}).compile_sort()), {'age': -1})

    def test_project(self):
        project = lambda params, fields=None: MongoProject(params).input(fields)

        # Empty
        p = project({})
        self.assertTrue(p.is_input_empty())
        self.assertEqual(p.compile_projection(), None)

        # Include, exclude
        self.assertEqual(project({'fields': 'name,email'}).compile_projection(), {'name': 1, 'email': 1})
        self.assertEqual(project({'fields': '-password'}).compile_projection(), {'password': 0})

        # Allow-list
        self.assertEqual(project({'fields': 'name,-password,secret'}, ['name', 'password']).compile_projection(),
                         {'name': 1, 'password': 0})
        self.assertEqual(project({'fields': 'secret'}, ['name']).compile_projection(), None)

    def test_paginate(self):
        paginate = lambda params, **settings: MongoPaginate(params, settings).input()

        # Not activated
        for params in ({}, {'page': '2'}, {'limit': '10'}, {'page': '', 'limit': '10'}):
            p = paginate(params)
            self.assertFalse(p.has_limit, params)
            self.assertEqual(p.get_final_input_value(), {'page': 1, 'limit': 0}, params)

        # Activated
        p = paginate({'page': '3', 'limit': '20'})
        self.assertTrue(p.has_limit)
        self.assertEqual((p.page, p.limit, p.skip), (3, 20, 40))

        # Non-numeric: defaults
        p = paginate({'page': 'abc', 'limit': 'xyz'})
        self.assertEqual((p.page, p.limit, p.skip), (1, 10, 0))
        p = paginate({'page': '0', 'limit': '-5'})
        self.assertEqual((p.page, p.limit), (1, 10))
        p = paginate({'page': '2', 'limit': 'xyz'}, default_limit=25)
        self.assertEqual((p.page, p.limit, p.skip), (2, 25, 25))

        # Max limit
        p = paginate({'page': '1', 'limit': '1000'}, max_limit=100)
        self.assertEqual(p.limit, 100)

    def test_count(self):
        # count_only
        self.assertTrue(MongoCount({'is_count_only': 'true'}).count_only)
        self.assertFalse(MongoCount({}).count_only)

        c = MongoCount({})
        pipeline = Pipeline([
            MatchStage({'status': 'active'}),
            CustomStage({'$addFields': {'x': 1}}),
            SortStage({'name': 1}),
            SkipStage(10),
            LimitStage(10),
            ProjectStage({'name': 1}),
        ])
        original = pipeline.compile()

        # Count: skip, limit, project are removed
        self.assertEqual(c.count_pipeline(pipeline), [
            {'$match': {'status': 'active'}},
            {'$addFields': {'x': 1}},
            {'$sort': {'name': 1}},
            {'$count': 'total'},
        ])

        # Statistics: merged into $match
        self.assertEqual(c.count_pipeline(pipeline, {'role': 'admin', 'status': 'banned'}), [
            {'$match': {'status': 'banned', 'role': 'admin'}},
            {'$addFields': {'x': 1}},
            {'$sort': {'name': 1}},
            {'$count': 'total'},
        ])

        # The original pipeline is intact
        self.assertEqual(pipeline.compile(), original)

        # Empty pipeline: match all
        self.assertEqual(c.count_pipeline(Pipeline()), [{'$match': {}}, {'$count': 'total'}])
        self.assertEqual(c.count_pipeline(Pipeline([SkipStage(1), LimitStage(1)])),
                         [{'$match': {}}, {'$count': 'total'}])

        # Statistics without a $match: added at the head
        self.assertEqual(c.count_pipeline(Pipeline([CustomStage({'$unwind': '$tags'})]), {'a': 1}),
                         [{'$match': {'a': 1}}, {'$unwind': '$tags'}, {'$count': 'total'}])

        # Count from rows
        self.assertEqual(c.count_from_rows([]), 0)
        self.assertEqual(c.count_from_rows([{'total': 5}]), 5)

        # Criteria for find()
        criteria = {'age': {'$gte': 18}}
        counted = MongoCount.count_criteria(criteria, {'status': 'active'})
        self.assertEqual(counted, {'age': {'$gte': 18}, 'status': 'active'})
        counted['age']['$gte'] = 0
        self.assertEqual(criteria, {'age': {'$gte': 18}})  # deep copy

    def test_populate(self):
        populate = lambda spec, **settings: MongoPopulate({}, settings).input(spec)

        # Empty
        self.assertTrue(populate(None).is_input_empty())
        self.assertTrue(populate([]).is_input_empty())

        # String, with references
        p = populate('author tags', references={'author': 'users', 'tags': 'tags'})
        self.assertEqual(p.get_final_input_value(), [
            {'path': 'author', 'collection': 'users'},
            {'path': 'tags', 'collection': 'tags'},
        ])
        p = populate('author,tags', references={'author': 'users', 'tags': 'tags'})
        self.assertEqual([pp.path for pp in p.populate_params], ['author', 'tags'])

        # Object, nested
        p = populate({
            'path': 'author',
            'collection': 'users',
            'select': 'name,-password',
            'match': {'is_active': True},
            'populate': [{'path': 'company', 'collection': 'companies', 'select': 'title'}],
        })
        self.assertEqual(p.get_final_input_value(), [{
            'path': 'author',
            'collection': 'users',
            'select': {'name': 1, 'password': 0},
            'match': {'is_active': True},
            'populate': [{'path': 'company', 'collection': 'companies', 'select': {'title': 1}}],
        }])

        # select: space-separated, or a dict
        self.assertEqual(populate({'path': 'a', 'collection': 'c', 'select': 'x y'}).populate_params[0].select,
                         {'x': 1, 'y': 1})
        self.assertEqual(populate({'path': 'a', 'collection': 'c', 'select': {'x': 1}}).populate_params[0].select,
                         {'x': 1})

        # Errors
        with self.assertRaises(InvalidQueryError):
            populate('author')  # unknown collection
        with self.assertRaises(InvalidQueryError):
            populate({'collection': 'users'})  # no path
        with self.assertRaises(InvalidQueryError):
            populate({'path': 'a', 'collection': 'c', 'filter': {}})  # unknown key
        with self.assertRaises(InvalidQueryError):
            populate({'path': 'a', 'collection': 'c', 'match': 'x'})
        with self.assertRaises(InvalidQueryError):
            populate(1)
        with self.assertRaises(InvalidQueryError):
            populate([1])

        # merge(): add, replace
        p = populate([{'path': 'a', 'collection': 'c1'}, {'path': 'b', 'collection': 'c2'}])
        p.merge([{'path': 'a', 'collection': 'c3'}, {'path': 'd', 'collection': 'c4'}])
        self.assertEqual([(pp.path, pp.collection) for pp in p.populate_params],
                         [('a', 'c3'), ('b', 'c2'), ('d', 'c4')])

    def test_populate_lookup(self):
        compile_stages = lambda spec: [stage.to_dict() for stage in MongoPopulate({}).input(spec).compile_stages()]

        # Simple
        self.assertEqual(compile_stages({'path': 'author', 'collection': 'users'}), [
            {'$lookup': {'from': 'users', 'localField': 'author', 'foreignField': '_id', 'as': 'author'}},
        ])

        # Match, select, nested
        self.assertEqual(compile_stages({
            'path': 'author',
            'collection': 'users',
            'select': 'name,company',
            'match': {'is_active': True},
            'populate': {'path': 'company', 'collection': 'companies'},
        }), [
            {'$lookup': {
                'from': 'users', 'localField': 'author', 'foreignField': '_id', 'as': 'author',
                'pipeline': [
                    {'$match': {'is_active': True}},
                    {'$lookup': {'from': 'companies', 'localField': 'company', 'foreignField': '_id',
                                 'as': 'company'}},
                    {'$project': {'name': 1, 'company': 1}},
                ],
            }},
        ])
