"""

Every query builder is fed with the flat parameters of an HTTP request.
You would typically pass the request's query string straight to it:

```
GET /api/user?search=ali&status=active&sort=-created_at&fields=name,email&page=2&limit=20
```

The back-end decides which operations are available, and which fields they can use:

```python
AggregationQuery(db.users, request.query_params) \\
    .search(['name', 'email']) \\
    .filter(['status', 'role']) \\
    .sort(['name', 'created_at']) \\
    .fields() \\
    .paginate()
```

Every operation is implemented by a handler:

* `search`: MongoSearch, a regular expression over several fields
* `filter`: MongoFilter, filter fields and `or`/`and` conditions
* `sort`: MongoSort, the sort spec
* `fields`: MongoProject, the projection
* `page`, `limit`: MongoPaginate, pagination
* `is_count_only`: MongoCount, counting
* populate: MongoPopulate, loading referenced documents

Handlers know nothing of the backend: they only compile expressions,
and the query builders put them to use.
"""

from .base import ParamsHandlerBase
from .filter import MongoSearch, MongoFilter
from .sort import MongoSort
from .project import MongoProject
from .limit import MongoPaginate
from .count import MongoCount
from .populate import MongoPopulate, PopulateParams
