import asyncio
import logging
from typing import *

from ..result import ResultEnvelope, ResultMeta

logger = logging.getLogger(__name__)


class CountingQuery:
    """ Query runner that counts the documents while returning results

        The main query, the count query, and every statistics query are independent of each other,
        so they're all sent to the database concurrently.
        If any of them fails, the whole thing fails: the error propagates, and the queries that are still
        running are cancelled. There is no partial result.

        Example:

            ```python
            cq = CountingQuery(
                fetch=lambda: collection.find(criteria).skip(20).limit(10).to_list(length=None),
                count=lambda: collection.count_documents(criteria),
                statistics=[
                    ('active', lambda: collection.count_documents({**criteria, 'status': 'active'})),
                ],
            )
            result = await cq.execute(page=3, limit=10)
            result.meta.total  # -> 127
            result.meta.statistics  # -> {'active': 100}
            ```
    """

    __slots__ = ('_fetch', '_count', '_statistics')

    def __init__(self,
                 fetch: Callable[[], Awaitable[List[dict]]],
                 count: Callable[[], Awaitable[int]],
                 statistics: Optional[Sequence[Tuple[str, Callable[[], Awaitable[int]]]]] = None):
        """ Init the runner with query functions

        :param fetch: Async function that loads the documents
        :param count: Async function that counts the documents
        :param statistics: List of (key, async function that counts), or `None` when not requested
        """
        self._fetch = fetch
        self._count = count
        self._statistics = list(statistics) if statistics is not None else None

    async def execute(self, page: int, limit: int, count_only: bool = False) -> ResultEnvelope:
        """ Run all queries and collect the results

        :param page: Current page, for the metadata
        :param limit: Page size, for the metadata
        :param count_only: Only count; don't load any documents
        """
        statistics = self._statistics or []

        coros = [self._count()]
        coros.extend(count() for key, count in statistics)
        if not count_only:
            coros.append(self._fetch())

        logger.debug('Running %d queries concurrently (count_only=%s)', len(coros), count_only)
        results = await gather_or_cancel(*coros)

        # Unpack
        total = results[0] or 0
        data = [] if count_only else results[-1]

        # Duplicate keys: the last one wins
        stats = None
        if self._statistics is not None:
            stats = {}
            for (key, count), value in zip(statistics, results[1:1 + len(statistics)]):
                stats[key] = value or 0

        return ResultEnvelope(
            data=data,
            meta=ResultMeta(total=total, page=page, limit=limit, statistics=stats),
        )


async def gather_or_cancel(*coros):
    """ asyncio.gather(), but when one fails, cancel the rest """
    tasks = [asyncio.ensure_future(coro) for coro in coros]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        # Let them finish so that no exception remains unretrieved
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
