"""
### Query Parameters

Query builders are fed with the flat parameters of an HTTP request:

```
GET /api/user?search=ali&status=active&sort=-created_at,name&fields=name,email&page=2&limit=20
```

Parsing of query-string array and object syntax (e.g. `or[0][status]=active`) is up to your web framework:
by the time the parameters get here, they should already be materialized into lists and dicts.

The following keys are reserved:

* `search`: a search term, see `search()`
* `sort`: comma-separated list of fields, `-` prefix for descending order
* `fields`: comma-separated list of fields to include, `-` prefix to exclude
* `page`, `limit`: pagination; only works when both are given
* `is_count_only`: any truthy value: count documents, don't load them
* `or`, `and`: lists of conditions that are combined with `$or` / `$and`

Every other key is a filter field.
"""

from types import MappingProxyType
from typing import *


#: Parameter keys that are never used as filter fields
RESERVED_KEYS = frozenset(('search', 'sort', 'page', 'limit', 'fields', 'is_count_only'))

#: Parameter keys that hold composite conditions
COMPOSITE_KEYS = ('or', 'and')


class QueryParams:
    """ Query parameters: reserved options + an open mapping of filter fields

        The object is immutable: it makes a private copy of the input.

        Example:

            qp = QueryParams({'search': 'ali', 'page': '2', 'limit': '10', 'status': 'active'})
            qp.search  # -> 'ali'
            qp.extra  # -> {'status': 'active'}
    """

    __slots__ = ('raw', 'search', 'sort', 'fields', 'page', 'limit', 'is_count_only', 'extra')

    def __init__(self, params: Optional[Mapping[str, Any]] = None):
        params = dict(params or {})

        #: All parameters, read-only
        self.raw = MappingProxyType(params)

        # Reserved, typed options
        self.search = params.get('search') or None
        self.sort = params.get('sort') or ''
        self.fields = params.get('fields') or ''
        self.page = params.get('page')
        self.limit = params.get('limit')
        self.is_count_only = bool(params.get('is_count_only'))

        #: Everything else: filter fields, including the composite `or` and `and`
        self.extra = MappingProxyType({key: value
                                       for key, value in params.items()
                                       if key not in RESERVED_KEYS})

    @classmethod
    def wrap(cls, params) -> 'QueryParams':
        """ Make QueryParams, unless it already is """
        return params if isinstance(params, cls) else cls(params)

    def __contains__(self, key):
        return key in self.raw

    def __repr__(self):
        return '{}({!r})'.format(self.__class__.__name__, dict(self.raw))


def parse_field_list(value) -> List[Tuple[str, bool]]:
    """ Parse a comma-separated list of fields, each with an optional `-` prefix

        The same syntax is used by `sort` and `fields`.
        A list of such strings is accepted as well: that's what repeated query string keys turn into.

        Example:

            parse_field_list('-age,name')  # -> [('age', True), ('name', False)]

        :return: list of (field name, negated)
    """
    if not value:
        return []
    if isinstance(value, str):
        value = [value]

    ret = []
    for chunk in value:
        for item in str(chunk).split(','):
            item = item.strip()
            negated = item.startswith('-')
            name = item[1:] if negated else item
            if name:
                ret.append((name, negated))
    return ret


def filter_applicable(names: Iterable[str], applicable_fields: Optional[Iterable[str]] = None) -> List[str]:
    """ Keep only the names present in the allow-list. Empty allow-list allows everything. """
    names = list(names)
    if not applicable_fields:
        return names
    applicable_fields = set(applicable_fields)
    return [name for name in names if name in applicable_fields]


def to_int(value, default: int) -> int:
    """ Coerce a parameter to an integer, or give the default """
    try:
        return int(value)
    except (TypeError, ValueError):
        return default
