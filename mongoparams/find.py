from collections import OrderedDict
from copy import deepcopy

from pymongo import ASCENDING, DESCENDING

from .params import parse_field_list


class FindQuery:
    """ The settings of a find() query: a chainable handle

        Unlike a pipeline, there are no stages here: every setting is just overwritten by later calls.
        The only exception is where(), which merges criteria.

        MongoQuery builds one of these, and tap() gives it to you:

            MongoQuery(db.users, params).tap(lambda q: q.sort({'name': +1}).limit(5))
    """

    __slots__ = ('criteria', 'projection', 'sort_spec', 'skip_count', 'limit_count', 'populate_params')

    def __init__(self):
        #: Filter criteria
        self.criteria = {}
        #: Projection dict, or `None`
        self.projection = None
        #: Sort spec: OrderedDict {field: +1|-1}, or `None`
        self.sort_spec = None
        self.skip_count = 0
        self.limit_count = 0
        #: Populate: list of PopulateParams
        self.populate_params = []

    def where(self, criteria):
        """ Merge criteria: keys overwrite existing keys """
        self.criteria = {**self.criteria, **criteria}
        return self

    def select(self, projection):
        """ Replace the projection

        :param projection: {field: 1|0} dict, or `None` for all fields
        """
        self.projection = dict(projection) if projection else None
        return self

    def sort(self, sort_spec):
        """ Replace the sort

        :param sort_spec: {field: +1|-1} dict, list of (field, direction) tuples, 'a,-b' string, or `None`
        """
        if not sort_spec:
            self.sort_spec = None
        elif isinstance(sort_spec, str):
            self.sort_spec = OrderedDict((name, DESCENDING if desc else ASCENDING)
                                         for name, desc in parse_field_list(sort_spec))
        else:
            self.sort_spec = OrderedDict(sort_spec)
        return self

    def skip(self, n: int):
        self.skip_count = n or 0
        return self

    def limit(self, n: int):
        """ Limit the number of documents. 0 means no limit. """
        self.limit_count = n or 0
        return self

    def populate(self, populate_params):
        """ Replace the list of paths to populate """
        self.populate_params = list(populate_params or ())
        return self

    def clone(self) -> 'FindQuery':
        """ Deep copy """
        cls = self.__class__
        result = cls.__new__(cls)
        for name in self.__slots__:
            setattr(result, name, deepcopy(getattr(self, name)))
        return result

    def compile_find_kwargs(self, extra_criteria=None) -> dict:
        """ Arguments for collection.find()

        :param extra_criteria: Criteria to add, e.g. soft-delete exclusion
        """
        return dict(
            filter={**self.criteria, **(extra_criteria or {})},
            projection=self.projection,
            sort=list(self.sort_spec.items()) if self.sort_spec else None,
            skip=self.skip_count,
            limit=self.limit_count,
        )

    def __repr__(self):
        return '<FindQuery(' \
               'criteria={0.criteria!r}, ' \
               'projection={0.projection!r}, ' \
               'sort={0.sort_spec!r}, ' \
               'skip={0.skip_count!r}, ' \
               'limit={0.limit_count!r}, ' \
               'populate={0.populate_params!r}' \
               ')>'.format(self)
