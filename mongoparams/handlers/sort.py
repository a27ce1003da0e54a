"""
### Sort

Sorting is a comma-separated list of fields, each optionally prefixed by `-` for descending order:

```
GET /api/user?sort=-age,first_name
```

gives `{age: -1, first_name: +1}`. The order of fields is preserved.
When a field is mentioned twice, the last occurrence wins.

When there's nothing to sort by, the default sort is used: newest first (`{created_at: -1}`).
"""

from collections import OrderedDict

from pymongo import ASCENDING, DESCENDING

from .base import ParamsHandlerBase
from ..params import parse_field_list


class MongoSort(ParamsHandlerBase):
    """ Sorting

        * '' : the default sort
        * 'a,-b' : OrderedDict({ a: +1, b: -1 })
    """

    query_param_name = 'sort'

    def __init__(self, params, settings=None):
        super(MongoSort, self).__init__(params, settings)

        # On input
        #: OrderedDict() of a sort spec: {key: +1|-1}
        self.sort_spec = None

    def input(self, applicable_fields=None):
        super(MongoSort, self).input(applicable_fields)

        spec = OrderedDict()
        for name, desc in parse_field_list(self.params.sort):
            if not self.applicable_fields or name in self.applicable_fields:
                spec[name] = DESCENDING if desc else ASCENDING

        self.sort_spec = spec
        return self

    def is_input_empty(self):
        return not self.sort_spec

    def compile_sort(self) -> OrderedDict:
        """ Sort spec to use: the input, or the default one """
        if self.sort_spec:
            return OrderedDict(self.sort_spec)
        return OrderedDict(self.settings['default_sort'])

    def get_final_input_value(self):
        return ['{}{}'.format('-' if d == -1 else '', name)
                for name, d in (self.sort_spec or {}).items()]
