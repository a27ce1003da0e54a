from collections.abc import Mapping
from typing import *

from .exc import InvalidQueryError


class StatisticsRequest:
    """ A named additional count: the query's filter, intersected with `filter` """

    __slots__ = ('key', 'filter')

    def __init__(self, key: str, filter: Mapping):
        self.key = key
        self.filter = dict(filter or {})

    @classmethod
    def from_value(cls, value) -> 'StatisticsRequest':
        """ Make a StatisticsRequest from a {key, filter} dict, unless it already is one """
        if isinstance(value, cls):
            return value
        if isinstance(value, Mapping) and 'key' in value:
            return cls(value['key'], value.get('filter'))
        raise InvalidQueryError('Statistics request must be an object with `key` and `filter`; {!r} provided'
                                .format(value))

    def __repr__(self):
        return 'StatisticsRequest({0.key!r}, {0.filter!r})'.format(self)


class ResultMeta:
    """ Metadata of a result: counts and pagination """

    __slots__ = ('total', 'page', 'limit', 'statistics')

    def __init__(self, total: int, page: int, limit: int, statistics: Optional[Dict[str, int]] = None):
        self.total = total
        self.page = page
        self.limit = limit
        #: Statistics counts; `None` when not requested
        self.statistics = statistics

    def to_dict(self) -> dict:
        ret = dict(total=self.total, page=self.page, limit=self.limit)
        if self.statistics is not None:
            ret['statistics'] = dict(self.statistics)
        return ret

    def __repr__(self):
        return 'ResultMeta({!r})'.format(self.to_dict())


class ResultEnvelope:
    """ The result of a query: documents + metadata

        Use to_dict() to get a JSON-friendly structure:

            {'data': [...], 'meta': {'total': 3, 'page': 1, 'limit': 0}}
    """

    __slots__ = ('data', 'meta')

    def __init__(self, data: List[dict], meta: ResultMeta):
        self.data = data
        self.meta = meta

    def to_dict(self) -> dict:
        return dict(data=self.data, meta=self.meta.to_dict())

    def __repr__(self):
        return 'ResultEnvelope(data=<{} documents>, meta={!r})'.format(len(self.data), self.meta)
