"""
### Pagination

Pagination needs two parameters: `page` (1-based) and `limit` (page size):

```
GET /api/user?page=3&limit=20
```

gives `skip=40, limit=20`.

Pagination only happens when both parameters are given. If only one of them is there, it's ignored.
Values that are not positive numbers fall back to the defaults: page 1, 10 items per page.
"""

from .base import ParamsHandlerBase
from ..params import to_int


class MongoPaginate(ParamsHandlerBase):
    """ Pagination: page & limit

        When not activated, `page=1` and `limit=0` are reported.
    """

    query_param_name = 'limit'

    def __init__(self, params, settings=None):
        super(MongoPaginate, self).__init__(params, settings)

        # On input
        self.page = 1
        self.limit = 0

    def input(self, applicable_fields=None):
        super(MongoPaginate, self).input(applicable_fields)
        page, limit = self.params.page, self.params.limit

        # Both, or nothing
        if not page or not limit:
            return self

        self.page = to_int(page, 1)
        if self.page < 1:
            self.page = 1

        self.limit = to_int(limit, 0)
        if self.limit <= 0:
            self.limit = self.settings['default_limit']

        # Max limit
        max_limit = self.settings['max_limit']
        if max_limit:
            self.limit = min(self.limit, max_limit)
        return self

    @property
    def has_limit(self):
        """ Check whether pagination is active """
        return self.limit > 0

    @property
    def skip(self):
        return (self.page - 1) * self.limit

    def is_input_empty(self):
        return not self.has_limit

    def get_final_input_value(self):
        return dict(page=self.page, limit=self.limit)
