import logging
from typing import *

from motor.motor_asyncio import AsyncIOMotorCollection

from . import handlers
from .params import QueryParams
from .result import ResultEnvelope, StatisticsRequest
from .stages import Pipeline, Stage, SortStage, SkipStage, LimitStage, ProjectStage, MatchStage
from .util import CountingQuery, QuerySettingsDict

logger = logging.getLogger(__name__)


class AggregationQuery:
    """ Query builder that makes an aggregation pipeline

        Every method edits the pipeline and returns the same object, so that you can chain them:

            result = await AggregationQuery(db.users, request.query_params) \\
                .search(['name', 'email']) \\
                .filter(['status']) \\
                .sort(['name', 'created_at']) \\
                .fields() \\
                .paginate() \\
                .execute()

        The order of stages is taken care of:

        * $match is always the first stage; search() and filter() merge into it
        * $lookup from populate() and custom stages from pipeline() go before sorting, pagination, projection
        * $sort and $project are replaced, not merged, when sort() and fields() are called again

        The builder is meant for a single query. Calling execute() twice will just run the same pipeline again.
    """

    def __init__(self, collection: AsyncIOMotorCollection, query_params, settings=None):
        """ Init a query builder

        :param collection: The collection to query
        :param query_params: Query parameters of the request
        :type query_params: dict | QueryParams
        :param settings: Builder settings
        :type settings: QuerySettingsDict | dict | None
        """
        self._collection = collection
        self._params = QueryParams.wrap(query_params)
        self._settings = QuerySettingsDict.from_settings(settings)

        self._pipeline = Pipeline()

        #: Accumulated filter() criteria, regardless of where the $match stage ends up
        self._base_filter = {}

        # Handlers with state that execute() needs
        self.handler_paginate = self._init_handler(handlers.MongoPaginate)
        self.handler_count = self._init_handler(handlers.MongoCount)

    def _init_handler(self, handler_cls):
        return handler_cls(self._params, self._settings)

    @property
    def stages(self) -> Tuple[Stage, ...]:
        """ Current pipeline stages """
        return self._pipeline.stages

    @property
    def base_filter(self) -> dict:
        """ Filter criteria accumulated by filter() """
        return dict(self._base_filter)

    @property
    def page(self) -> int:
        return self.handler_paginate.page

    @property
    def limit(self) -> int:
        return self.handler_paginate.limit

    def compile_pipeline(self) -> List[dict]:
        """ Get the pipeline as it will be sent to the database """
        return self._pipeline.compile()

    # region Fluent interface

    def search(self, applicable_fields):
        """ Search for the `search` term in the given fields

        :param applicable_fields: Fields to search in
        """
        criteria = self._init_handler(handlers.MongoSearch).input(applicable_fields).compile_criteria()
        if criteria:
            self._pipeline.merge_match(criteria)
        return self

    def filter(self, applicable_fields=None):
        """ Filter by the parameters

        :param applicable_fields: Fields that can be filtered by. Default: all of them.
        """
        criteria = self._init_handler(handlers.MongoFilter).input(applicable_fields).compile_criteria()
        if criteria:
            self._pipeline.merge_match(criteria)
            self._base_filter.update(criteria)
        return self

    def sort(self, applicable_fields=None):
        """ Sort by the `sort` parameter, or by the default sort

        :param applicable_fields: Fields that can be sorted by. Default: all of them.
        """
        sort = self._init_handler(handlers.MongoSort).input(applicable_fields).compile_sort()
        self._pipeline.remove(SortStage.kind)
        self._pipeline.append(SortStage(sort))
        return self

    def fields(self, applicable_fields=None):
        """ Project the fields from the `fields` parameter

        :param applicable_fields: Fields that can be selected. Default: all of them.
        """
        projection = self._init_handler(handlers.MongoProject).input(applicable_fields).compile_projection()
        self._pipeline.remove(ProjectStage.kind)
        if projection:
            self._pipeline.append(ProjectStage(projection))
        return self

    def paginate(self):
        """ Paginate with the `page` and `limit` parameters, if both are given """
        self.handler_paginate = self._init_handler(handlers.MongoPaginate).input()
        if self.handler_paginate.has_limit:
            self._pipeline.remove(SkipStage.kind, LimitStage.kind)
            self._pipeline.append(SkipStage(self.handler_paginate.skip),
                                  LimitStage(self.handler_paginate.limit))
        return self

    def populate(self, spec):
        """ Populate references with $lookup

        :param spec: Populate spec: see MongoPopulate
        :raises InvalidQueryError: invalid populate spec
        """
        stages = self._init_handler(handlers.MongoPopulate).input(spec).compile_stages()
        return self.pipeline(stages)

    def tap(self, callback: Callable[[List[dict]], Iterable]):
        """ Replace the pipeline with whatever the callback makes of it

        The callback gets the list of stage dicts and may return any list of stages.
        Nothing is checked: you're on your own.
        """
        self._pipeline.replace(callback(self._pipeline.compile()))
        return self

    def pipeline(self, stages: Iterable, position: Optional[int] = None):
        """ Add custom stages

        :param stages: Stage dicts, or Stage objects
        :param position: Index to insert the stages at.
            By default, stages go before any $sort, $skip, $limit, $project, or to the end of the pipeline.
        """
        stages = list(stages)
        if not stages:
            return self

        if position is None or position < 0:
            position = self._pipeline.default_insert_position()
        self._pipeline.insert(position, *stages)
        return self

    # endregion

    async def execute(self, statistics: Optional[Iterable] = None) -> ResultEnvelope:
        """ Run the query: load documents, count them, and compute statistics

        :param statistics: List of StatisticsRequest, or dicts: {key: str, filter: dict}
        :raises InvalidQueryError: invalid statistics request
        """
        count_pipeline = self.handler_count.count_pipeline(self._pipeline)
        statistics_pipelines = None
        if statistics is not None:
            statistics_pipelines = [
                (stat.key, self.handler_count.count_pipeline(self._pipeline, stat.filter))
                for stat in map(StatisticsRequest.from_value, statistics)
            ]

        pipeline = self._pipeline.compile() or [MatchStage({}).to_dict()]
        logger.debug('Aggregation on %s: %r', getattr(self._collection, 'name', self._collection), pipeline)

        counting_query = CountingQuery(
            fetch=lambda: self._aggregate(pipeline),
            count=lambda: self._aggregate_count(count_pipeline),
            statistics=None if statistics_pipelines is None else [
                (key, self._make_count(stat_pipeline))
                for key, stat_pipeline in statistics_pipelines
            ],
        )
        return await counting_query.execute(page=self.page,
                                            limit=self.limit,
                                            count_only=self.handler_count.count_only)

    def _make_count(self, pipeline):
        return lambda: self._aggregate_count(pipeline)

    async def _aggregate(self, pipeline):
        return await self._collection.aggregate(pipeline).to_list(length=None)

    async def _aggregate_count(self, pipeline):
        return self.handler_count.count_from_rows(await self._aggregate(pipeline))

    def __repr__(self):
        return 'AggregationQuery({!r})'.format(self.compile_pipeline())
