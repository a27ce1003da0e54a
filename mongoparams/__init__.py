"""
MongoParams turns the query parameters of an HTTP request into MongoDB queries.

The main use case is a list endpoint of an API:
every time the UI needs some *searching*, *filtering*, *sorting*, *pagination*, or to load some
*related documents*, you won't have to write a single line of repetitive code!

The API user sends plain query parameters:

```
GET /api/user?search=ali&status=active&sort=-created_at&fields=name,email&page=2&limit=20
```

and the back-end decides what's allowed:

```python
result = await AggregationQuery(db.users, request.query_params) \\
    .search(['name', 'email']) \\
    .filter(['status']) \\
    .sort(['name', 'created_at']) \\
    .fields(['name', 'email', 'created_at']) \\
    .paginate() \\
    .execute()

result.to_dict()
#-> {'data': [...], 'meta': {'total': 127, 'page': 2, 'limit': 20}}
```

The documents and their total count are loaded concurrently.
"""

# Exceptions that are used here and there
from .exc import *

# Query parameters, and how they are parsed
from .params import QueryParams

# Handlers compile individual parameters into MongoDB expressions
from . import handlers

# Aggregation pipeline stages
from .stages import Pipeline, Stage

# The two query builders:
# AggregationQuery makes an aggregation pipeline,
# MongoQuery makes a find() query
from .aggregation import AggregationQuery
from .query import MongoQuery
from .find import FindQuery

# Results
from .result import ResultEnvelope, ResultMeta, StatisticsRequest

# Helpers
# Settings objects for the query builders
from .util import QuerySettingsDict
# Query runner that loads documents and counts them concurrently
from .util import CountingQuery
