import asyncio
from datetime import datetime

from bson import ObjectId
from mongomock_motor import AsyncMongoMockClient


COMPANY_ACME = ObjectId()
COMPANY_GLOBEX = ObjectId()
TAG_ADMIN = ObjectId()
TAG_STAFF = ObjectId()


def users():
    """ Test users: Alice, Bob, Charlie, and a deleted Dave """
    return [
        dict(name='Alice', email='alice@example.com', status='active', age=30,
             company=COMPANY_ACME, tags=[TAG_ADMIN, TAG_STAFF],
             created_at=datetime(2020, 1, 1)),
        dict(name='Bob', email='bob@example.com', status='active', age=25,
             company=COMPANY_GLOBEX, tags=[TAG_STAFF],
             created_at=datetime(2020, 1, 2)),
        dict(name='Charlie', email='charlie@example.com', status='banned', age=40,
             company=None, tags=[],
             created_at=datetime(2020, 1, 3)),
        dict(name='Dave', email='dave@example.com', status='active', age=35,
             company=COMPANY_ACME, tags=[],
             created_at=datetime(2020, 1, 4), is_deleted=True),
    ]


def companies():
    return [
        dict(_id=COMPANY_ACME, title='Acme', is_active=True),
        dict(_id=COMPANY_GLOBEX, title='Globex', is_active=False),
    ]


def tags():
    return [
        dict(_id=TAG_ADMIN, title='admin'),
        dict(_id=TAG_STAFF, title='staff'),
    ]


async def get_test_db(with_deleted=True):
    """ A fresh in-memory database with `users`, `companies`, `tags` """
    db = AsyncMongoMockClient()['test']
    await db.users.insert_many([user for user in users()
                                if with_deleted or not user.get('is_deleted')])
    await db.companies.insert_many(companies())
    await db.tags.insert_many(tags())
    return db


def names(documents):
    """ Get the list of names from documents """
    return [doc['name'] for doc in documents]


class FakeCursor:
    def __init__(self, collection, result):
        self.collection = collection
        self.result = result

    async def to_list(self, length=None):
        return await self.collection.run(self.result)


class FakeCollection:
    """ A collection that returns canned results and tracks concurrency

        Pipelines that end with $count get `count`; everything else gets `documents`.
    """

    name = 'fake'

    def __init__(self, documents=(), count=0, error=None, delay=0.01):
        self.documents = list(documents)
        self.count = count
        self.error = error
        self.delay = delay

        self.pipelines = []
        self.running = 0
        self.max_running = 0

    def aggregate(self, pipeline):
        self.pipelines.append(pipeline)
        if '$count' in pipeline[-1]:
            return FakeCursor(self, [{'total': self.count}] if self.count else [])
        return FakeCursor(self, self.documents)

    async def run(self, result):
        self.running += 1
        self.max_running = max(self.max_running, self.running)
        try:
            await asyncio.sleep(self.delay)
            if self.error:
                raise self.error
            return result
        finally:
            self.running -= 1
