"""
### Count

Every query counts the total number of matching documents, ignoring pagination.
It is reported as `meta.total`.

To get the count *without* the documents, send `is_count_only` with any truthy value:

```
GET /api/user?status=active&is_count_only=1
```

This gives `{data: [], meta: {total: 127, page: 1, limit: 0}}`.

#### Statistics

The back-end may request additional counts: every statistics request is the query's filter,
intersected with an additional condition:

```python
await query.execute([
    {'key': 'active', 'filter': {'status': 'active'}},
    {'key': 'banned', 'filter': {'status': 'banned'}},
])
#-> meta.statistics = {'active': 100, 'banned': 27}
```
"""

from copy import deepcopy

from .base import ParamsHandlerBase
from ..stages import Pipeline, MatchStage, CountStage, SkipStage, LimitStage, ProjectStage


class MongoCount(ParamsHandlerBase):
    """ Counting: derive count queries from the main query

        Counting never modifies the main query: it works with deep copies.
    """

    query_param_name = 'is_count_only'

    #: Stages that don't change the count
    COUNT_EXCLUDED_STAGES = (SkipStage.kind, LimitStage.kind, ProjectStage.kind)

    #: The field the $count stage puts the result into
    COUNT_FIELD = 'total'

    def __init__(self, params, settings=None):
        super(MongoCount, self).__init__(params, settings)

        #: Only count, don't load documents?
        self.count_only = self.params.is_count_only

    def is_input_empty(self):
        return not self.count_only

    def count_pipeline(self, pipeline: Pipeline, criteria=None) -> list:
        """ Make a pipeline that counts documents of the given pipeline

        :param pipeline: The main pipeline. It is not modified.
        :param criteria: Additional criteria to merge into the first $match stage (statistics)
        :return: compiled pipeline
        """
        # When we count, we don't care about pagination and projections
        count_pipeline = pipeline.clone(exclude=self.COUNT_EXCLUDED_STAGES)

        if criteria is not None:
            count_pipeline.merge_match(criteria)

        if not len(count_pipeline):
            count_pipeline.append(MatchStage({}))

        count_pipeline.append(CountStage(self.COUNT_FIELD))
        return count_pipeline.compile()

    def count_from_rows(self, rows) -> int:
        """ Get the count from the result of a count pipeline

            $count gives no rows at all when nothing has matched
        """
        if not rows:
            return 0
        return rows[0].get(self.COUNT_FIELD) or 0

    @staticmethod
    def count_criteria(criteria, extra_criteria=None) -> dict:
        """ Make criteria for counting with find(): a copy of criteria + extra criteria (statistics) """
        criteria = deepcopy(dict(criteria))
        criteria.update(deepcopy(dict(extra_criteria or {})))
        return criteria

    def get_final_input_value(self):
        return self.count_only
