import logging
from typing import *

from motor.motor_asyncio import AsyncIOMotorCollection, AsyncIOMotorDatabase

from . import handlers
from .find import FindQuery
from .params import QueryParams
from .result import ResultEnvelope, StatisticsRequest
from .util import CountingQuery, QuerySettingsDict

logger = logging.getLogger(__name__)


class MongoQuery:
    """ Query builder that makes a find() query

        This is the simple sibling of AggregationQuery: the same parameters, the same methods,
        but instead of pipeline stages it accumulates the settings of a single find() query.
        There are no stages to order here: later calls just overwrite earlier settings.

            result = await MongoQuery(db.users, request.query_params) \\
                .search(['name', 'email']) \\
                .filter(['status']) \\
                .sort() \\
                .paginate() \\
                .populate('company') \\
                .execute()

        Soft delete: documents with the `is_deleted` marker set (see `soft_delete_field` setting)
        are excluded, unless the filter explicitly conditions on the marker field
        (i.e. it is in the allow-list of filter(), and the API user has sent it). Then the explicit value wins.
    """

    def __init__(self,
                 collection: AsyncIOMotorCollection,
                 query_params,
                 settings=None,
                 database: Optional[AsyncIOMotorDatabase] = None):
        """ Init a query builder

        :param collection: The collection to query
        :param query_params: Query parameters of the request
        :type query_params: dict | QueryParams
        :param settings: Builder settings
        :type settings: QuerySettingsDict | dict | None
        :param database: The database to find populate() target collections in.
            Default: the database of `collection`.
        """
        self._collection = collection
        self._database = database
        self._params = QueryParams.wrap(query_params)
        self._settings = QuerySettingsDict.from_settings(settings)

        self._find_query = FindQuery()

        # Handlers with state that execute() needs
        self.handler_paginate = self._init_handler(handlers.MongoPaginate)
        self.handler_count = self._init_handler(handlers.MongoCount)

    def _init_handler(self, handler_cls):
        return handler_cls(self._params, self._settings)

    @property
    def find_query(self) -> FindQuery:
        """ The find() query handle """
        return self._find_query

    @property
    def page(self) -> int:
        return self.handler_paginate.page

    @property
    def limit(self) -> int:
        return self.handler_paginate.limit

    # region Fluent interface

    def search(self, applicable_fields):
        """ Search for the `search` term in the given fields """
        criteria = self._init_handler(handlers.MongoSearch).input(applicable_fields).compile_criteria()
        if criteria:
            self._find_query.where(criteria)
        return self

    def filter(self, applicable_fields=None):
        """ Filter by the parameters """
        criteria = self._init_handler(handlers.MongoFilter).input(applicable_fields).compile_criteria()
        if criteria:
            self._find_query.where(criteria)
        return self

    def sort(self, applicable_fields=None):
        """ Sort by the `sort` parameter, or by the default sort """
        self._find_query.sort(self._init_handler(handlers.MongoSort).input(applicable_fields).compile_sort())
        return self

    def fields(self, applicable_fields=None):
        """ Select the fields from the `fields` parameter """
        self._find_query.select(self._init_handler(handlers.MongoProject).input(applicable_fields).compile_projection())
        return self

    def paginate(self):
        """ Paginate with the `page` and `limit` parameters, if both are given """
        self.handler_paginate = self._init_handler(handlers.MongoPaginate).input()
        if self.handler_paginate.has_limit:
            self._find_query.skip(self.handler_paginate.skip).limit(self.handler_paginate.limit)
        return self

    def populate(self, spec):
        """ Populate references with additional queries

        Can be called multiple times: paths are added, and a path given again is replaced.

        :param spec: Populate spec: see MongoPopulate
        :raises InvalidQueryError: invalid populate spec
        """
        handler = self._init_handler(handlers.MongoPopulate).input(self._find_query.populate_params).merge(spec)
        self._find_query.populate(handler.populate_params)
        return self

    def tap(self, callback: Callable[[FindQuery], FindQuery]):
        """ Replace the find() query with whatever the callback makes of it

        Nothing is checked: you're on your own.
        """
        self._find_query = callback(self._find_query)
        return self

    # endregion

    def soft_delete_criteria(self) -> dict:
        """ Criteria that exclude soft-deleted documents, if applicable

            Only the compiled filter counts: a parameter that filter() has dropped does not disable this.
        """
        field = self._settings['soft_delete_field']
        if not field or field in self._find_query.criteria:
            return {}
        return {field: {'$ne': True}}

    async def execute(self, statistics: Optional[Iterable] = None) -> ResultEnvelope:
        """ Run the query: load documents, count them, and compute statistics

        :param statistics: List of StatisticsRequest, or dicts: {key: str, filter: dict}
        :raises InvalidQueryError: invalid statistics request
        """
        # Work with a copy of the handle
        find_query = self._find_query.clone()
        soft_delete = self.soft_delete_criteria()

        find_kwargs = find_query.compile_find_kwargs(soft_delete)
        logger.debug('Find on %s: %r', getattr(self._collection, 'name', self._collection), find_kwargs)

        # Counting ignores pagination, projection, sorting
        criteria = find_kwargs['filter']
        count_criteria = self.handler_count.count_criteria(criteria)
        statistics_criteria = None
        if statistics is not None:
            statistics_criteria = [
                (stat.key, self.handler_count.count_criteria(criteria, stat.filter))
                for stat in map(StatisticsRequest.from_value, statistics)
            ]

        counting_query = CountingQuery(
            fetch=lambda: self._find(find_kwargs, find_query.populate_params),
            count=lambda: self._collection.count_documents(count_criteria),
            statistics=None if statistics_criteria is None else [
                (key, self._make_count(stat_criteria))
                for key, stat_criteria in statistics_criteria
            ],
        )
        return await counting_query.execute(page=self.page,
                                            limit=self.limit,
                                            count_only=self.handler_count.count_only)

    def _make_count(self, criteria):
        return lambda: self._collection.count_documents(criteria)

    async def _find(self, find_kwargs, populate_params):
        documents = await self._collection.find(**find_kwargs).to_list(length=None)
        if populate_params:
            database = self._database if self._database is not None else self._collection.database
            await self._init_handler(handlers.MongoPopulate).input(populate_params).load(database, documents)
        return documents

    def __repr__(self):
        return 'MongoQuery({!r})'.format(self._find_query)
