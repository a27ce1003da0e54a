"""
### Search

A free-text search over a list of fields chosen by the back-end:

```
GET /api/user?search=ali
```

Every field is matched with a case-insensitive substring regular expression, and the matches are OR-ed:

```javascript
{ $or: [ {name: {$regex: 'ali', $options: 'i'}}, {email: {$regex: 'ali', $options: 'i'}} ] }
```

### Filter

Every parameter that's not reserved is a filter field:

```
GET /api/user?status=active&role=admin
```

gives `{status: 'active', role: 'admin'}`. The back-end decides which fields can be filtered by.

Two keys are special: `or` and `and`. They hold lists of conditions that are combined with `$or` / `$and`:

```
GET /api/user?or[0][status]=active&or[1][role]=admin
```

gives `{$or: [{status: 'active'}, {role: 'admin'}]}`
(provided that your web framework parses the query string into nested structures).
The conditions are passed to the database as they are.
"""

import logging
import re
from collections.abc import Mapping

from .base import ParamsHandlerBase
from ..exc import InvalidQueryError

logger = logging.getLogger(__name__)


class MongoSearch(ParamsHandlerBase):
    """ Search: a regular expression over a number of fields """

    query_param_name = 'search'

    def __init__(self, params, settings=None):
        super(MongoSearch, self).__init__(params, settings)

        # On input
        #: The search criteria: {'$or': [...]}, or an empty dict
        self.criteria = {}

    def input(self, applicable_fields=None):
        super(MongoSearch, self).input(applicable_fields)
        term = self.params.search

        # No search term, or no fields to search in
        if not term or not self.applicable_fields:
            self.criteria = {}
            return self

        pattern = re.escape(str(term)) if self.settings['escape_search'] else str(term)
        self.criteria = {
            '$or': [
                {field: {'$regex': pattern, '$options': self.settings['search_options']}}
                for field in self.applicable_fields
            ]
        }
        return self

    def is_input_empty(self):
        return not self.criteria

    def compile_criteria(self) -> dict:
        return dict(self.criteria)

    def get_final_input_value(self):
        return self.criteria


class MongoFilter(ParamsHandlerBase):
    """ Filter: non-reserved parameters become conditions

        * field=value: equality or any other condition the value represents
        * or=[{...}, {...}]: $or of conditions
        * and=[{...}, {...}]: $and of conditions
    """

    query_param_name = 'filter'

    #: Composite keys, and the operators they compile into
    COMPOSITE_OPERATORS = (('or', '$or'), ('and', '$and'))

    def __init__(self, params, settings=None):
        super(MongoFilter, self).__init__(params, settings)

        # On input
        #: The filter criteria
        self.criteria = {}

    def input(self, applicable_fields=None):
        super(MongoFilter, self).input(applicable_fields)

        # Copy the parameters, leave only those we can filter with
        query = dict(self.params.extra)
        query = {key: query[key] for key in self.filter_applicable(query)}

        criteria = {}

        # Composite conditions
        for key, operator in self.COMPOSITE_OPERATORS:
            value = query.pop(key, None)
            if not value:
                continue
            try:
                conditions = self._parse_composite(key, value)
            except InvalidQueryError as e:
                if self.settings['strict_composite_filters']:
                    raise
                logger.warning('Skipping the `%s` filter: %s', key, e)
                continue
            if conditions:
                criteria[operator] = conditions

        # Plain conditions
        criteria.update(query)

        self.criteria = criteria
        return self

    def _parse_composite(self, key, value):
        """ Get a list of conditions from an `or`/`and` value

            Accepts a list of conditions, or a dict of them, which is what query string parsers
            make from `or[0][a]=1&or[1][b]=2`.

            :raises InvalidQueryError: the value is not a collection of conditions
        """
        if isinstance(value, Mapping):
            conditions = list(value.values())
        elif isinstance(value, (list, tuple)):
            conditions = list(value)
        else:
            raise InvalidQueryError('`{}` must be a list of conditions, {} given'
                                    .format(key, type(value).__name__))

        for condition in conditions:
            if not isinstance(condition, Mapping):
                raise InvalidQueryError('`{}` conditions must be objects, {} given'
                                        .format(key, type(condition).__name__))
        return conditions

    def is_input_empty(self):
        return not self.criteria

    def compile_criteria(self) -> dict:
        return dict(self.criteria)

    def get_final_input_value(self):
        return self.criteria
