"""
### Fields

Projection: a comma-separated list of fields to include:

```
GET /api/user?fields=name,email
```

gives `{name: 1, email: 1}`. A `-` prefix excludes a field instead:

```
GET /api/user?fields=-password
```

gives `{password: 0}`.

Don't mix the two: the database does not allow inclusion and exclusion in one projection
(except for `_id`). This is not checked.
"""

from collections.abc import Mapping

from .base import ParamsHandlerBase
from ..params import parse_field_list


class MongoProject(ParamsHandlerBase):
    """ Projection of fields

        * '' : no projection: the database returns all fields
        * 'a,-b' : { a: 1, b: 0 }
    """

    query_param_name = 'fields'

    def __init__(self, params, settings=None):
        super(MongoProject, self).__init__(params, settings)

        # On input
        #: Projection dict: {name: 1|0}
        self.projection = None

    def input(self, applicable_fields=None):
        super(MongoProject, self).input(applicable_fields)
        self.projection = compile_projection(self.params.fields, self.applicable_fields)
        return self

    def is_input_empty(self):
        return not self.projection

    def compile_projection(self):
        """ The projection dict, or `None` when there's no projection """
        return dict(self.projection) if self.projection else None

    def get_final_input_value(self):
        return self.projection


def compile_projection(value, applicable_fields=None) -> dict:
    """ Compile a projection from a field list

        Also accepts a ready projection dict, which is returned as is.

        :param value: 'a,-b', 'a b', ['a', '-b'], or {'a': 1}
        :param applicable_fields: allow-list of field names
    """
    if isinstance(value, Mapping):
        return dict(value)
    if isinstance(value, str):
        value = value.split()

    projection = {}
    for name, exclude in parse_field_list(value):
        if not applicable_fields or name in applicable_fields:
            projection[name] = 0 if exclude else 1
    return projection
